"""Ingestion service.

Turns an uploaded file into a searchable document: extracts its text, splits
it into overlapping chunks, embeds every chunk and stores them, reporting
progress on the document record along the way.

Lifecycle of a document:
  processing (0) → 25 extracting → 50 embedding → 75 persisting → completed (100)
  any fatal failure → error (0)
"""

import asyncio

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.TextSplitter import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, TextSplitter
from shared.models.chunk import ChunkDraft
from shared.models.document import Document, DocumentCreate, DocumentStatus
from shared.stores.StoreInterface import StoreInterface
from services.ingestion.TextExtractor import TextExtractor

PROGRESS_EXTRACTING = 25
PROGRESS_EMBEDDING = 50
PROGRESS_PERSISTING = 75
PROGRESS_COMPLETED = 100


class _DocumentVanished(Exception):
    """The document record was deleted while it was being processed."""


class IngestionService:
    """Runs the extraction → chunking → embedding → persistence pipeline."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: StoreInterface,
        llm_client: LLMClientInterface,
        extractor: TextExtractor,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._llm_client = llm_client
        self._extractor = extractor
        self._splitter = TextSplitter(
            chunk_size=helper_config.get_number_val("CHUNK_SIZE", default=DEFAULT_CHUNK_SIZE),
            chunk_overlap=helper_config.get_number_val("CHUNK_OVERLAP", default=DEFAULT_CHUNK_OVERLAP),
        )
        self._embed_concurrency = max(1, helper_config.get_number_val("EMBED_CONCURRENCY", default=1))

    ##########################################
    ################# CREATE #################
    ##########################################

    async def do_create_document(self, owner_id: str | None, filename: str, mime_type: str, data: bytes) -> Document:
        """Create the document record for an upload, before any processing.

        Returns:
            Document: The new record in state ``processing`` with progress 0.
        """
        document = await self._store.create_document(DocumentCreate(
            name=filename,
            original_name=filename,
            mime_type=mime_type,
            size=len(data),
            owner_id=owner_id,
        ))
        self.logging.info("Created document id=%d ('%s', %d bytes)", document.id, filename, len(data))
        return document

    ##########################################
    ################ PIPELINE ################
    ##########################################

    async def do_process_document(self, document_id: int, data: bytes, mime_type: str, filename: str) -> None:
        """Process an uploaded file into chunks of the given document.

        Never raises: a failure moves the document to ``error`` with progress 0
        and records the message. Chunks persisted before the failure remain.

        Args:
            document_id (int): The record created by do_create_document().
            data (bytes): The raw file content.
            mime_type (str): The declared media type.
            filename (str): The original filename.
        """
        self.logging.info("Processing document id=%d ('%s')...", document_id, filename)
        try:
            await self._run_pipeline(document_id, data, mime_type, filename)
        except _DocumentVanished:
            self.logging.warning("Document id=%d was deleted during processing, discarding its chunks.", document_id)
            await self._store.delete_chunks_by_document(document_id)
        except Exception as exc:
            self.logging.exception("Processing failed for document id=%d ('%s'): %s", document_id, filename, exc)
            await self._store.update_document(document_id, {
                "status": DocumentStatus.ERROR,
                "progress": 0,
                "error": str(exc) or exc.__class__.__name__,
            })

    async def _run_pipeline(self, document_id: int, data: bytes, mime_type: str, filename: str) -> None:
        await self._set_progress(document_id, PROGRESS_EXTRACTING)
        text = await self._extractor.do_extract(data, mime_type, filename)
        drafts = self._splitter.split(text, filename)
        self.logging.debug("Document id=%d: %d characters, %d chunks", document_id, len(text), len(drafts))

        await self._set_progress(document_id, PROGRESS_EMBEDDING)
        embeddings = await self._embed_drafts(document_id, drafts)

        await self._set_progress(document_id, PROGRESS_PERSISTING)
        for draft, embedding in zip(drafts, embeddings):
            await self._store.create_chunk(
                document_id=document_id,
                content=draft.content,
                embedding=embedding,
                metadata={**draft.metadata, "mime_type": mime_type},
            )

        finished = await self._store.update_document(document_id, {
            "content": text,
            "chunk_count": len(drafts),
            "status": DocumentStatus.COMPLETED,
            "progress": PROGRESS_COMPLETED,
        })
        if finished is None:
            raise _DocumentVanished(document_id)

        failed = sum(1 for embedding in embeddings if not embedding)
        self.logging.info(
            "Document id=%d ('%s') completed: %d chunks stored, %d without embedding.",
            document_id, filename, len(drafts), failed,
        )

    async def _set_progress(self, document_id: int, progress: int) -> None:
        if await self._store.update_document_progress(document_id, progress) is None:
            raise _DocumentVanished(document_id)

    ##########################################
    ############### EMBEDDING ################
    ##########################################

    async def _embed_drafts(self, document_id: int, drafts: list[ChunkDraft]) -> list[list[float]]:
        """Embed all chunks, one request per chunk, results in chunk order.

        A chunk whose embedding fails gets an empty vector; the others are unaffected.
        """
        sem = asyncio.Semaphore(self._embed_concurrency)
        return await asyncio.gather(*[
            self._embed_draft(document_id, draft, sem) for draft in drafts
        ])

    async def _embed_draft(self, document_id: int, draft: ChunkDraft, sem: asyncio.Semaphore) -> list[float]:
        async with sem:
            try:
                return await self._llm_client.do_embed_text(draft.content)
            except Exception as exc:
                self.logging.error(
                    "Embedding failed for chunk %s of document id=%d: %s",
                    draft.metadata.get("chunk_index"), document_id, exc,
                )
                return []
