"""Render a DocumentStructure to markdown, plain text, JSON or CSV."""

import csv
import io
import json
import re
from typing import Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from contracts import DocumentItem, DocumentStructure, DocumentTable
from structured_logging import get_logger

logger = get_logger(__name__)

RULE = "-" * 60
FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*\})\s*```", re.DOTALL)


def _item_text(item: Union[str, DocumentItem]) -> str:
    return item if isinstance(item, str) else item.label()


def _markdown_table(table: DocumentTable) -> List[str]:
    lines = [
        f"| {' | '.join(table.headers)} |",
        f"| {' | '.join('---' for _ in table.headers)} |",
    ]
    lines.extend(f"| {' | '.join(row)} |" for row in table.rows)
    lines.append("")
    return lines


def to_markdown(doc: DocumentStructure) -> str:
    lines = [f"# {doc.title}", ""]

    if doc.metadata:
        lines.append("---")
        lines.extend(f"{key}: {value}" for key, value in doc.metadata.items())
        lines.extend(["---", ""])

    if doc.summary:
        lines.extend(["## Executive Summary", "", doc.summary, ""])

    for section in doc.sections:
        lines.extend([f"## {section.heading}", ""])
        if section.summary:
            lines.extend([section.summary, ""])
        if section.callout:
            lines.extend([f"> **{section.callout.type.value.upper()}**: {section.callout.content}", ""])
        if section.content:
            lines.extend([section.content, ""])
        if section.table:
            lines.extend(_markdown_table(section.table))

        for item in section.items:
            if isinstance(item, str):
                lines.append(f"- {item}")
                continue
            if not item.title:
                if item.label():
                    lines.append(f"- {item.label()}")
                continue
            heading = f"### {item.title}"
            if item.priority:
                heading += f" `[{item.priority}]`"
            if item.status:
                heading += f" `{item.status}`"
            lines.extend([heading, ""])
            if item.description:
                lines.extend([item.description, ""])
            if item.content:
                lines.extend([item.content, ""])
            if item.tags:
                lines.extend([f"**Tags:** {', '.join(f'`{t}`' for t in item.tags)}", ""])
            if item.details:
                lines.extend(f"- {detail}" for detail in item.details)
                lines.append("")
        if section.items and isinstance(section.items[-1], str):
            lines.append("")

        for sub in section.subsections:
            lines.extend([f"### {sub.title}", ""])
            if sub.content:
                lines.extend([sub.content, ""])
            if sub.table:
                lines.extend(_markdown_table(sub.table))
            texts = [_item_text(i) for i in sub.items if _item_text(i)]
            if texts:
                lines.extend(f"- {t}" for t in texts)
                lines.append("")

    if doc.appendix:
        lines.extend(["---", "", "## Appendix", ""])
        for i, appendix in enumerate(doc.appendix):
            lines.extend([f"### Appendix {chr(65 + i)}: {appendix.title}", "", appendix.content, ""])

    if doc.references:
        lines.extend(["## References", ""])
        lines.extend(f"{i}. {ref}" for i, ref in enumerate(doc.references, 1))
        lines.append("")

    return "\n".join(lines)


def to_plain_text(doc: DocumentStructure) -> str:
    lines = [doc.title.upper(), "=" * len(doc.title), ""]

    if doc.metadata:
        lines.extend(f"{key.upper()}: {value}" for key, value in doc.metadata.items())
        lines.extend(["", RULE, ""])

    if doc.summary:
        lines.extend(["EXECUTIVE SUMMARY", "", doc.summary, "", RULE, ""])

    for section in doc.sections:
        lines.extend([section.heading.upper(), "-" * len(section.heading), ""])
        if section.summary:
            lines.extend([section.summary, ""])
        if section.content:
            lines.extend([section.content, ""])
        for item in section.items:
            if isinstance(item, str):
                lines.append(f"* {item}")
                continue
            lines.append(f"  {item.label()}")
            if item.title and item.description:
                lines.append(f"  {item.description}")
            lines.extend(f"    - {detail}" for detail in item.details)
        if section.items:
            lines.append("")
        for sub in section.subsections:
            lines.append(f"  {sub.title.upper()}")
            if sub.content:
                lines.append(f"  {sub.content}")
            lines.extend(f"    * {_item_text(i)}" for i in sub.items if _item_text(i))
            lines.append("")

    return "\n".join(lines)


def to_json(doc: DocumentStructure) -> str:
    return json.dumps(doc.model_dump(exclude_none=True, mode="json"), indent=2)


def to_csv(doc: DocumentStructure) -> str:
    """Flatten the document into one row per section, item, detail and table row."""
    rows = [["Section", "Heading", "Content", "Type", "Priority", "Status", "Tags"]]

    for section in doc.sections:
        rows.append([section.heading, section.heading, section.summary or section.content or "",
                     "section", "", "", ""])
        if section.table:
            headers = " | ".join(section.table.headers)
            rows.extend([section.heading, headers, " | ".join(r), "table_row", "", "", ""]
                        for r in section.table.rows)
        for item in section.items:
            if isinstance(item, str):
                rows.append([section.heading, "", item, "item", "", "", ""])
                continue
            rows.append([section.heading, item.title or "", item.description or item.content or "",
                         "item", item.priority or "", item.status or "", "; ".join(item.tags)])
            rows.extend([section.heading, item.title or "", d, "detail", "", "", ""] for d in item.details)
        for sub in section.subsections:
            rows.append([section.heading, sub.title, sub.content or "", "subsection", "", "", ""])
            for item in sub.items:
                if isinstance(item, str):
                    rows.append([section.heading, sub.title, item, "subitem", "", "", ""])
                else:
                    rows.append([section.heading, sub.title, item.label(), "subitem",
                                 item.priority or "", item.status or "", "; ".join(item.tags)])

    for appendix in doc.appendix:
        rows.append(["Appendix", appendix.title, appendix.content, "appendix", "", "", ""])

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


FORMATTERS: Dict[str, Callable[[DocumentStructure], str]] = {
    "markdown": to_markdown,
    "md": to_markdown,
    "text": to_plain_text,
    "txt": to_plain_text,
    "json": to_json,
    "csv": to_csv,
}


def format_document(doc: DocumentStructure, fmt: str = "markdown") -> str:
    """Render in the requested format; unknown formats fall back to markdown."""
    return FORMATTERS.get((fmt or "").lower(), to_markdown)(doc)


def parse_structured_response(text: str) -> Optional[DocumentStructure]:
    """Parse a model response into a DocumentStructure.

    Accepts bare JSON or JSON inside a ``` fence. Returns None (and logs)
    when the response is not valid structured output.
    """
    match = FENCED_JSON.search(text)
    candidate = match.group(1) if match else text.strip()
    if not match and not candidate.startswith("{"):
        start, end = candidate.find("{"), candidate.rfind("}")
        if start == -1 or end <= start:
            logger.warning("Structured response contains no JSON object")
            return None
        candidate = candidate[start:end + 1]

    try:
        return DocumentStructure.model_validate_json(candidate)
    except ValidationError as e:
        logger.warning(f"Failed to parse structured response: {e.error_count()} validation errors")
        return None
