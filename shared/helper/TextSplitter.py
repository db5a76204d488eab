"""Chunking policy: split extracted document text into overlapping fragments."""

from shared.models.chunk import ChunkDraft

DEFAULT_CHUNK_SIZE = 500     # characters per fragment
DEFAULT_CHUNK_OVERLAP = 50   # characters shared by consecutive fragments

# tried in order, the first one found inside the window wins
_BREAKS = ("\n\n", "\n", " ")


class TextSplitter:
    """Splits text into fragments of at most ``chunk_size`` characters.

    Each fragment is a raw slice of the input. A window ends at the last
    paragraph break inside it; without one it falls back to a line break,
    then a space, and finally to a hard cut at ``chunk_size``. The next
    window starts ``chunk_overlap`` characters before the previous one ended,
    so dropping the first ``chunk_overlap`` characters of every fragment but
    the first and concatenating the rest yields the original text.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, chunk_overlap: int = DEFAULT_CHUNK_OVERLAP) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}.")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap must be between 0 and chunk_size - 1, got {chunk_overlap} (chunk_size={chunk_size})."
            )
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    ##########################################
    ################# SPLIT ##################
    ##########################################

    def split_spans(self, text: str) -> list[tuple[int, int]]:
        """Compute the ``(start, end)`` character spans of all fragments.

        Args:
            text (str): The full document text.

        Returns:
            list[tuple[int, int]]: Ordered, half-open spans. Empty for empty text.
        """
        spans: list[tuple[int, int]] = []
        length = len(text)
        start = 0
        while start < length:
            end = min(start + self.chunk_size, length)
            if end < length:
                end = self._find_break(text, start, end)
            spans.append((start, end))
            if end >= length:
                break
            start = end - self.chunk_overlap
        return spans

    def split(self, text: str, filename: str) -> list[ChunkDraft]:
        """Split text into fragments carrying their position metadata.

        Args:
            text (str): The full document text.
            filename (str): Originating filename, stored in each fragment's metadata.

        Returns:
            list[ChunkDraft]: Ordered fragments, none for empty text.
        """
        drafts: list[ChunkDraft] = []
        for chunk_index, (start, end) in enumerate(self.split_spans(text)):
            drafts.append(ChunkDraft(
                content=text[start:end],
                metadata={
                    "filename": filename,
                    "chunk_index": chunk_index,
                    "char_start": start,
                    "char_length": end - start,
                },
            ))
        return drafts

    def _find_break(self, text: str, start: int, end: int) -> int:
        # a break at or before start + overlap would not move the next window forward
        earliest = start + self.chunk_overlap + 1
        for separator in _BREAKS:
            position = text.rfind(separator, earliest, end)
            if position != -1:
                return position + len(separator)
        return end
