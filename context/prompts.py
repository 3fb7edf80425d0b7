"""Framing text for multi-pass generation prompts."""

SYSTEM_PROMPT = """You are a document writer for a client-services agency.

You turn stakeholder interviews, uploaded materials and project details into
professional deliverables. Use only the project context you are given, keep
the section order the task asks for, and do not invent stakeholders, quotes
or figures.
"""

SEQUENTIAL_PART_PROMPT = """This request is split into {total} parts because the project context is too large for one call.
This is part {index} of {total}. Write the parts of the document that the context below supports.
Another step will merge all parts into one document, so do not add a closing summary."""

CONTINUITY_PROMPT = """PREVIOUS PART (excerpt, for continuity only; do not repeat it):
{excerpt}"""

GROUNDING_PROMPT = """Generate a compact grounding summary of the context above, at most {max_tokens} tokens.
Capture the decisions, facts, names, figures and open issues later steps need.
Later steps will not see the original context, only this summary."""

DETAIL_PROMPT = """Refine the output by incorporating these additional details.
Use the base context for grounding. Write only the document content the additional details support."""

MERGE_PROMPT = """Combine the partial drafts above into one coherent document.
Keep the section order the task defines, remove duplication, and keep every
concrete fact from the drafts. Drafts are listed in priority order."""

BACKGROUND_HEADER = "BACKGROUND (grounding summary; do not reproduce verbatim):"
