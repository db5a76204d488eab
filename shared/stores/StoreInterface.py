from abc import ABC, abstractmethod
from typing import Any, Sequence

from shared.helper.HelperConfig import HelperConfig
from shared.helper.similarity import rank_chunks
from shared.models.chat import ChatMessage, ChatMessageCreate
from shared.models.chunk import Chunk, ScoredChunk
from shared.models.document import Document, DocumentCreate, DocumentProgress, DocumentStatus


class StoreInterface(ABC):
    """Persistence contract for documents, chunks and chat messages.

    Orchestrators only talk to this interface, so an engine can be backed by
    an in-memory structure or a durable database without changing them.

    Absent records are reported as None / False, never as exceptions.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine_name(self) -> str:
        """
        Returns the lowercase engine name, e.g. "memory".
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Open connections or other resources. Nothing to do for volatile engines."""

    async def close(self) -> None:
        """Release resources acquired in boot()."""

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    @abstractmethod
    async def create_document(self, document: DocumentCreate) -> Document:
        """Store a new document record with a fresh id and upload timestamp."""
        pass

    @abstractmethod
    async def get_document(self, document_id: int) -> Document | None:
        pass

    @abstractmethod
    async def get_all_documents(self, owner_id: str | None = None) -> list[Document]:
        """
        Returns documents, most recently uploaded first.

        Args:
            owner_id (str | None): If given, only documents owned by exactly this
                identity. Documents without owner are only part of the unfiltered result.
        """
        pass

    @abstractmethod
    async def update_document(self, document_id: int, updates: dict[str, Any]) -> Document | None:
        """
        Applies a partial update and returns the updated record, or None if unknown.
        """
        pass

    @abstractmethod
    async def _delete_document_record(self, document_id: int) -> bool:
        """Removes only the document record. Returns False if it did not exist."""
        pass

    async def update_document_progress(self, document_id: int, progress: int, status: DocumentStatus | None = None) -> Document | None:
        """Updates progress, and status if given, leaving every other field untouched.

        Args:
            document_id (int): The document to update.
            progress (int): New progress value, 0–100.
            status (DocumentStatus | None): New status, unchanged if None.

        Returns:
            Document | None: The updated record, or None if the document does not exist.

        Raises:
            ValueError: If progress is outside 0–100.
        """
        current = await self.get_document(document_id)
        if current is None:
            return None
        validated = DocumentProgress(progress=progress, status=status or current.status)
        updates: dict[str, Any] = {"progress": validated.progress}
        if status is not None:
            updates["status"] = validated.status
        return await self.update_document(document_id, updates)

    async def delete_document(self, document_id: int) -> bool:
        """Deletes a document and all of its chunks.

        The chunk deletion result is ignored: a document without chunks is
        still deleted successfully.

        Returns:
            bool: False if the document did not exist.
        """
        deleted = await self._delete_document_record(document_id)
        if deleted:
            await self.delete_chunks_by_document(document_id)
        return deleted

    ##########################################
    ################ CHUNKS ##################
    ##########################################

    @abstractmethod
    async def create_chunk(
        self,
        document_id: int,
        content: str,
        embedding: Sequence[float] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Chunk:
        """
        Stores a chunk. A missing embedding becomes an empty vector, missing metadata stays None.
        """
        pass

    @abstractmethod
    async def get_chunks_by_document(self, document_id: int) -> list[Chunk]:
        pass

    @abstractmethod
    async def get_all_chunks(self) -> list[Chunk]:
        """Returns all chunks in insertion order."""
        pass

    @abstractmethod
    async def delete_chunks_by_document(self, document_id: int) -> bool:
        """Returns True iff at least one chunk was removed."""
        pass

    async def find_similar_chunks(
        self,
        query_embedding: Sequence[float],
        owner_id: str | None = None,
        limit: int = 5,
    ) -> list[ScoredChunk]:
        """Ranks stored chunks by cosine similarity to a query vector.

        Engines with native vector search should override this.

        Args:
            query_embedding (Sequence[float]): The query vector.
            owner_id (str | None): If given, only chunks of documents owned by this identity.
            limit (int): Maximum number of results.

        Returns:
            list[ScoredChunk]: Most similar first. Chunks without a usable
                embedding are never returned.
        """
        chunks = await self.get_all_chunks()
        if owner_id is not None:
            owned_ids = {document.id for document in await self.get_all_documents(owner_id)}
            chunks = [chunk for chunk in chunks if chunk.document_id in owned_ids]
        return rank_chunks(query_embedding, chunks, limit)

    ##########################################
    ############# CHAT MESSAGES ##############
    ##########################################

    @abstractmethod
    async def create_chat_message(self, message: ChatMessageCreate) -> ChatMessage:
        pass

    @abstractmethod
    async def get_all_chat_messages(self, owner_id: str | None = None) -> list[ChatMessage]:
        """Returns messages oldest first, optionally only those of one identity."""
        pass

    @abstractmethod
    async def clear_chat_messages(self, owner_id: str | None = None) -> bool:
        """
        Deletes the messages of one identity, or all messages if owner_id is None.
        Always returns True.
        """
        pass
