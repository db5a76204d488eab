"""Cosine similarity and top-k ranking of stored chunks."""

import math
from typing import Iterable, Sequence

from shared.models.chunk import Chunk, ScoredChunk


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors.

    Returns 0.0 when the lengths differ or either vector has zero norm.

    Args:
        a (Sequence[float]): First vector.
        b (Sequence[float]): Second vector.

    Returns:
        float: Similarity in [-1, 1].
    """
    if len(a) != len(b):
        return 0.0

    dot_product = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot_product += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot_product / (math.sqrt(norm_a) * math.sqrt(norm_b))


def rank_chunks(query_embedding: Sequence[float], chunks: Iterable[Chunk], limit: int = 5) -> list[ScoredChunk]:
    """Rank chunks by cosine similarity to a query vector.

    Chunks without an embedding, or with an embedding of a different
    dimension than the query, are not candidates. The sort is stable, so
    equally similar chunks keep the order in which they were passed in.

    Args:
        query_embedding (Sequence[float]): The query vector.
        chunks (Iterable[Chunk]): Candidate chunks, in insertion order.
        limit (int): Maximum number of results.

    Returns:
        list[ScoredChunk]: At most ``limit`` chunks, most similar first.
    """
    if limit <= 0:
        return []

    dimension = len(query_embedding)
    scored = [
        ScoredChunk(**chunk.model_dump(), similarity=cosine_similarity(query_embedding, chunk.embedding))
        for chunk in chunks
        if chunk.has_embedding() and len(chunk.embedding) == dimension
    ]
    scored.sort(key=lambda item: item.similarity, reverse=True)
    return scored[:limit]
