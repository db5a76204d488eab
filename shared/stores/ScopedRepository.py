"""Identity-scoped access to the store.

Everything a request does on behalf of a user goes through a ScopedRepository
bound to that user's identity, so queries and mutations never cross owners.
"""

from enum import Enum
from typing import Sequence

from shared.models.chat import ChatMessage, ChatMessageCreate, ChatRole, SourceCitation
from shared.models.chunk import ScoredChunk
from shared.models.document import Document
from shared.models.stats import UsageStats
from shared.stores.StoreInterface import StoreInterface

TOKENS_PER_MESSAGE_ESTIMATE = 100


class AccessStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


class ScopedRepository:
    """Store facade filtered to a single owner.

    With owner_id None the repository is unscoped and sees every record,
    including records that have no owner. With an owner_id, records without
    owner are invisible and single-document access to them is forbidden.
    """

    def __init__(self, store: StoreInterface, owner_id: str | None) -> None:
        self._store = store
        self.owner_id = owner_id

    def _owns(self, document: Document) -> bool:
        return self.owner_id is None or document.owner_id == self.owner_id

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    async def list_documents(self) -> list[Document]:
        return await self._store.get_all_documents(self.owner_id)

    async def lookup_document(self, document_id: int) -> tuple[AccessStatus, Document | None]:
        """Fetch a document and decide whether this identity may access it.

        Returns:
            tuple[AccessStatus, Document | None]: The document is only returned with OK.
        """
        document = await self._store.get_document(document_id)
        if document is None:
            return AccessStatus.NOT_FOUND, None
        if not self._owns(document):
            return AccessStatus.FORBIDDEN, None
        return AccessStatus.OK, document

    async def delete_document(self, document_id: int) -> AccessStatus:
        """Delete an owned document together with its chunks."""
        status, _ = await self.lookup_document(document_id)
        if status is not AccessStatus.OK:
            return status
        deleted = await self._store.delete_document(document_id)
        return AccessStatus.OK if deleted else AccessStatus.NOT_FOUND

    async def count_chunks(self) -> int:
        total = 0
        for document in await self.list_documents():
            total += len(await self._store.get_chunks_by_document(document.id))
        return total

    async def find_similar_chunks(self, query_embedding: Sequence[float], limit: int = 5) -> list[ScoredChunk]:
        return await self._store.find_similar_chunks(query_embedding, owner_id=self.owner_id, limit=limit)

    ##########################################
    ############# CHAT MESSAGES ##############
    ##########################################

    async def list_messages(self) -> list[ChatMessage]:
        return await self._store.get_all_chat_messages(self.owner_id)

    async def add_message(self, content: str, role: ChatRole, sources: list[SourceCitation] | None = None) -> ChatMessage:
        return await self._store.create_chat_message(
            ChatMessageCreate(content=content, role=role, sources=sources, owner_id=self.owner_id)
        )

    async def clear_messages(self) -> bool:
        return await self._store.clear_chat_messages(self.owner_id)

    ##########################################
    ################# STATS ##################
    ##########################################

    async def get_stats(self) -> UsageStats:
        documents = await self.list_documents()
        messages = await self.list_messages()
        return UsageStats(
            document_count=len(documents),
            chunk_count=await self.count_chunks(),
            message_count=len(messages),
            total_tokens_used=len(messages) * TOKENS_PER_MESSAGE_ESTIMATE,
        )
