from datetime import datetime, timezone
from itertools import count
from typing import Any, Sequence

from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ChatMessage, ChatMessageCreate
from shared.models.chunk import Chunk
from shared.models.document import Document, DocumentCreate
from shared.stores.StoreInterface import StoreInterface


class StoreMemory(StoreInterface):
    """Volatile in-process store backed by one dict per record type.

    None of the methods awaits anything, so every operation runs to completion
    before another coroutine gets scheduled. Records are replaced rather than
    mutated in place; previously returned objects never change underneath the caller.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._documents: dict[int, Document] = {}
        self._chunks: dict[int, Chunk] = {}
        self._chat_messages: dict[int, ChatMessage] = {}
        self._document_ids = count(1)
        self._chunk_ids = count(1)
        self._message_ids = count(1)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Memory"

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    async def create_document(self, document: DocumentCreate) -> Document:
        stored = Document(**document.model_dump(), id=next(self._document_ids), uploaded_at=self._now())
        self._documents[stored.id] = stored
        return stored

    async def get_document(self, document_id: int) -> Document | None:
        return self._documents.get(document_id)

    async def get_all_documents(self, owner_id: str | None = None) -> list[Document]:
        documents = list(self._documents.values())
        if owner_id is not None:
            documents = [document for document in documents if document.owner_id == owner_id]
        return sorted(documents, key=lambda document: (document.uploaded_at, document.id), reverse=True)

    async def update_document(self, document_id: int, updates: dict[str, Any]) -> Document | None:
        current = self._documents.get(document_id)
        if current is None:
            return None
        # id and upload time are assigned by the store
        updates = {key: value for key, value in updates.items() if key not in ("id", "uploaded_at")}
        updated = current.model_copy(update=updates)
        self._documents[document_id] = updated
        return updated

    async def _delete_document_record(self, document_id: int) -> bool:
        return self._documents.pop(document_id, None) is not None

    ##########################################
    ################ CHUNKS ##################
    ##########################################

    async def create_chunk(
        self,
        document_id: int,
        content: str,
        embedding: Sequence[float] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Chunk:
        chunk = Chunk(
            id=next(self._chunk_ids),
            document_id=document_id,
            content=content,
            embedding=list(embedding) if embedding else [],
            metadata=dict(metadata) if metadata is not None else None,
            created_at=self._now(),
        )
        self._chunks[chunk.id] = chunk
        return chunk

    async def get_chunks_by_document(self, document_id: int) -> list[Chunk]:
        return [chunk for chunk in self._chunks.values() if chunk.document_id == document_id]

    async def get_all_chunks(self) -> list[Chunk]:
        return list(self._chunks.values())

    async def delete_chunks_by_document(self, document_id: int) -> bool:
        chunk_ids = [chunk.id for chunk in self._chunks.values() if chunk.document_id == document_id]
        for chunk_id in chunk_ids:
            del self._chunks[chunk_id]
        return len(chunk_ids) > 0

    ##########################################
    ############# CHAT MESSAGES ##############
    ##########################################

    async def create_chat_message(self, message: ChatMessageCreate) -> ChatMessage:
        # rebuilt from a dump, so citations stay a snapshot of what the caller passed in
        stored = ChatMessage(
            **message.model_dump(),
            id=next(self._message_ids),
            created_at=self._now(),
        )
        self._chat_messages[stored.id] = stored
        return stored

    async def get_all_chat_messages(self, owner_id: str | None = None) -> list[ChatMessage]:
        messages = list(self._chat_messages.values())
        if owner_id is not None:
            messages = [message for message in messages if message.owner_id == owner_id]
        return sorted(messages, key=lambda message: (message.created_at, message.id))

    async def clear_chat_messages(self, owner_id: str | None = None) -> bool:
        if owner_id is None:
            self._chat_messages.clear()
            return True
        message_ids = [message.id for message in self._chat_messages.values() if message.owner_id == owner_id]
        for message_id in message_ids:
            del self._chat_messages[message_id]
        return True
