"""Pydantic models for document chunks."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class ChunkDraft(BaseModel):
    """A fragment produced by the text splitter, not yet embedded or stored.

    Attributes:
        content:  The fragment text, a raw slice of the document text.
        metadata: Always contains ``filename``, ``chunk_index``, ``char_start``
                  and ``char_length``.
    """

    content: str
    metadata: dict[str, Any]


class Chunk(BaseModel):
    """A stored chunk of a document.

    An empty embedding marks a chunk whose embedding failed. Such chunks stay
    stored and counted but are never returned by similarity search.
    """

    id: int
    document_id: int
    content: str
    embedding: list[float] = []
    metadata: dict[str, Any] | None = None
    created_at: datetime

    def has_embedding(self) -> bool:
        return len(self.embedding) > 0


class ScoredChunk(Chunk):
    """A chunk returned by similarity search, with its cosine similarity (-1..1)."""

    similarity: float
