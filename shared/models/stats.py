from pydantic import BaseModel


class UsageStats(BaseModel):
    """Per-identity usage figures. total_tokens_used is a rough estimate only."""

    document_count: int
    chunk_count: int
    message_count: int
    total_tokens_used: int
