"""Output-format instructions for structured (JSON) documents."""

import json
from datetime import date
from typing import Optional

STRUCTURE_RULES = """JSON STRUCTURE RULES:
- "title": Document title (string, required)
- "metadata": Object with project info (optional but recommended)
- "summary": Executive summary, 2-4 sentences (string, optional but recommended)
- "sections": Array of section objects (required, at least one)
  - "heading": Section name (string, required)
  - "summary", "content": Section overview and main text (strings, optional)
  - "callout": {"type": "info"|"warning"|"tip"|"note", "content": "..."} (optional)
  - "table": {"headers": [...], "rows": [[...], ...]} (optional)
  - "items": Strings or objects with title, description, priority, status, tags, details (optional)
  - "subsections": Objects with title, content, table, items (optional)
- "appendix": Objects with title and content (optional)
- "references": Strings (optional)

Use tables for comparative data, priority/status fields for requirements,
and callouts for risks or important notes. Escape quotes properly.
Output ONLY the JSON object, no text before or after it."""


def structured_output_instructions(
    title: str,
    project_name: Optional[str] = None,
    client_name: Optional[str] = None,
    today: Optional[date] = None,
) -> str:
    """Instructions appended to the final call when structured output is requested."""
    skeleton = {
        "title": title,
        "metadata": {
            "project": project_name or "Untitled Project",
            "client": client_name or "",
            "date": (today or date.today()).strftime("%B %d, %Y"),
            "version": "1.0",
            "status": "Draft",
        },
        "summary": "...",
        "sections": [
            {
                "heading": "Section Title",
                "summary": "...",
                "items": [{"title": "...", "description": "...", "priority": "High", "details": ["..."]}],
            }
        ],
        "appendix": [],
        "references": [],
    }
    return (
        "OUTPUT FORMAT:\n"
        "Return ONLY a valid JSON object with this structure:\n\n"
        f"{json.dumps(skeleton, indent=2)}\n\n"
        f"{STRUCTURE_RULES}"
    )
