"""Pydantic models for the chat transcript and the answer stream."""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class SourceCitation(BaseModel):
    """Snapshot of a retrieved chunk attached to an assistant message.

    Citations are copies, not references: they stay readable after the cited
    document or chunk has been deleted.

    Attributes:
        document_id: ID of the document the chunk belonged to.
        chunk_index: Ordinal of the chunk inside its document, if known.
        excerpt:     The first characters of the chunk followed by "...".
        similarity:  Cosine similarity as a rounded percentage.
        metadata:    The chunk metadata at the time of the answer.
    """

    document_id: int
    chunk_index: int | None = None
    excerpt: str
    similarity: int
    metadata: dict[str, Any] | None = None


class ChatMessageCreate(BaseModel):
    content: str
    role: ChatRole
    sources: list[SourceCitation] | None = None
    owner_id: str | None = None


class ChatMessage(ChatMessageCreate):
    """A stored chat message. Conversation order is insertion order."""

    id: int
    created_at: datetime


class StreamEvent(BaseModel):
    """A single event of the answer stream.

    Sequence on success: ``chunk`` (repeated), ``sources``, ``done``.
    On generator failure a single ``error`` event replaces the remainder.
    """

    type: Literal["chunk", "sources", "done", "error"]
    content: str | None = None
    sources: list[SourceCitation] | None = None
    message: str | None = None

    def to_sse_frame(self) -> str:
        """Render the event as a server-sent events ``data:`` frame."""
        payload = self.model_dump(mode="json", exclude_none=True)
        return f"data: {json.dumps(payload)}\n\n"
