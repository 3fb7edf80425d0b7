"""Structured document contracts for generated deliverables."""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class CalloutType(str, Enum):
    """Kind of highlighted note attached to a section."""
    INFO = "info"
    WARNING = "warning"
    TIP = "tip"
    NOTE = "note"


class Callout(BaseModel):
    type: CalloutType = CalloutType.INFO
    content: str


class DocumentTable(BaseModel):
    headers: List[str]
    rows: List[List[str]] = Field(default_factory=list)


class DocumentItem(BaseModel):
    """A detailed point inside a section (finding, requirement, story)."""
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    details: List[str] = Field(default_factory=list)
    value: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    def label(self) -> str:
        """Best short text for list rendering."""
        return self.title or self.description or self.content or ""


class DocumentSubsection(BaseModel):
    title: str
    content: Optional[str] = None
    items: List[Union[str, DocumentItem]] = Field(default_factory=list)
    table: Optional[DocumentTable] = None


class DocumentSection(BaseModel):
    heading: str
    summary: Optional[str] = None
    content: Optional[str] = None
    callout: Optional[Callout] = None
    table: Optional[DocumentTable] = None
    items: List[Union[str, DocumentItem]] = Field(default_factory=list)
    subsections: List[DocumentSubsection] = Field(default_factory=list)


class DocumentAppendix(BaseModel):
    title: str
    content: str


class DocumentStructure(BaseModel):
    """JSON shape requested from the model when structured output is enabled."""
    title: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    summary: Optional[str] = None
    sections: List[DocumentSection] = Field(..., min_length=1)
    appendix: List[DocumentAppendix] = Field(default_factory=list)
    references: List[str] = Field(default_factory=list)
