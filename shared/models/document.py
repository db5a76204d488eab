"""Pydantic models for uploaded documents and their processing lifecycle.

Hierarchy:
  DocumentCreate   : fields supplied when a document record is created.
  Document         : stored record with identity, timestamps and lifecycle state.
  DocumentProgress : the polled progress view, also used to validate progress updates.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class DocumentStatus(str, Enum):
    """Processing lifecycle: ``processing`` → ``completed`` | ``error`` (both terminal)."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class DocumentCreate(BaseModel):
    """Fields of a new document record.

    owner_id is nullable for backward compatibility. Documents without an
    owner are only visible to unscoped store queries.
    """

    name: str
    original_name: str
    mime_type: str
    size: int
    content: str = ""
    chunk_count: int = 0
    status: DocumentStatus = DocumentStatus.PROCESSING
    progress: int = Field(default=0, ge=0, le=100)
    owner_id: str | None = None


class Document(DocumentCreate):
    """A stored document record."""

    id: int
    uploaded_at: datetime
    error: str | None = None

    def is_terminal(self) -> bool:
        return self.status in (DocumentStatus.COMPLETED, DocumentStatus.ERROR)


class DocumentProgress(BaseModel):
    """Progress snapshot of a document, 0–100."""

    progress: int = Field(ge=0, le=100)
    status: DocumentStatus
