"""Document output: structured-output instructions and format renderers."""

from .formatters import (
    to_markdown,
    to_plain_text,
    to_json,
    to_csv,
    format_document,
    parse_structured_response,
)
from .instructions import structured_output_instructions

__all__ = [
    "to_markdown",
    "to_plain_text",
    "to_json",
    "to_csv",
    "format_document",
    "parse_structured_response",
    "structured_output_instructions",
]
