"""Project data contracts.

Read-only views of the records the hosted data store holds for a project:
client, project, stakeholders, questions, interview responses and uploads.
Extraction services populate the upload fields asynchronously; DocForge
only consumes them.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ResponseType(str, Enum):
    """How a stakeholder answered a question."""
    TEXT = "text"
    AUDIO = "audio"
    VIDEO = "video"
    FILE = "file"


class ContentType(str, Enum):
    """What kind of text the extraction service produced for an upload."""
    TEXT = "text"
    VIDEO_TRANSCRIPT = "video_transcript"
    AUDIO_TRANSCRIPT = "audio_transcript"
    IMAGE_OCR = "image_ocr"
    STRUCTURED_DATA = "structured_data"
    BINARY = "binary"


class ExtractionStatus(str, Enum):
    """Lifecycle of the external extraction job for an upload."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    NOT_APPLICABLE = "not_applicable"


class Client(BaseModel):
    id: str
    name: str
    industry: Optional[str] = None


class Project(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    status: str = "active"
    client_id: Optional[str] = None
    start_date: Optional[datetime] = None
    target_end_date: Optional[datetime] = None
    progress: int = Field(default=0, ge=0, le=100)
    transcript: Optional[str] = None


class Stakeholder(BaseModel):
    id: str
    project_id: str
    name: str
    email: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None
    status: str = "pending"


class Question(BaseModel):
    id: str
    project_id: str
    text: str
    category: str = "General"
    priority: Optional[str] = None


class InterviewResponse(BaseModel):
    """A stakeholder's answer to one question."""
    id: str
    project_id: str
    stakeholder_id: str
    question_id: str
    response_type: ResponseType = ResponseType.TEXT
    response_text: Optional[str] = None
    transcription: Optional[str] = None
    created_at: Optional[datetime] = None

    def answer_text(self) -> str:
        """Text of the answer; audio/video answers fall back to their transcript."""
        if self.response_text and self.response_text.strip():
            return self.response_text.strip()
        if self.transcription and self.transcription.strip():
            return self.transcription.strip()
        if self.response_type in (ResponseType.AUDIO, ResponseType.VIDEO):
            return f"[{self.response_type.value} response, transcription not available]"
        return "No response provided"


class ExtractedUpload(BaseModel):
    """An uploaded file plus whatever text extraction has produced so far."""
    upload_id: str
    project_id: str
    file_name: str
    mime_type: str = "application/octet-stream"
    upload_type: Optional[str] = None
    extracted_content: Optional[str] = None
    content_type: ContentType = ContentType.BINARY
    extraction_status: ExtractionStatus = ExtractionStatus.PENDING
    extraction_error: Optional[str] = None
    description: Optional[str] = None
    file_size: Optional[int] = None
    include_in_generation: bool = True

    def has_usable_content(self) -> bool:
        return (
            self.extraction_status == ExtractionStatus.COMPLETED
            and bool(self.extracted_content and self.extracted_content.strip())
        )


class ProjectBundle(BaseModel):
    """All records for one project, as exported from the data store."""
    project: Project
    client: Optional[Client] = None
    stakeholders: List[Stakeholder] = Field(default_factory=list)
    questions: List[Question] = Field(default_factory=list)
    responses: List[InterviewResponse] = Field(default_factory=list)
    uploads: List[ExtractedUpload] = Field(default_factory=list)
