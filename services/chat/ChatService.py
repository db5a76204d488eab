import asyncio
from typing import AsyncIterator

from pydantic import BaseModel

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ChatRole, SourceCitation, StreamEvent
from shared.models.chunk import ScoredChunk
from shared.stores.ScopedRepository import ScopedRepository

GENERATION_ERROR_MESSAGE = "Failed to generate response"

SYSTEM_PROMPT = """You are a helpful AI assistant that answers questions based on the provided document context.
Use the context to provide accurate, detailed answers. If the context doesn't contain enough information to answer the question, say so clearly.
Always cite which parts of the context you're using in your response.

Context:
{context}"""


class ChatTurn(BaseModel):
    """Everything prepared for answering one question, before generation starts."""

    question: str
    chunks: list[ScoredChunk]
    messages: list[dict]


def build_citations(chunks: list[ScoredChunk], excerpt_chars: int = 200) -> list[SourceCitation]:
    """Build the citation snapshots for the chunks an answer was grounded on.

    Args:
        chunks (list[ScoredChunk]): The retrieved chunks, most similar first.
        excerpt_chars (int): Length of the excerpt taken from each chunk.

    Returns:
        list[SourceCitation]: One citation per chunk, in the same order.
    """
    citations: list[SourceCitation] = []
    for chunk in chunks:
        metadata = dict(chunk.metadata) if chunk.metadata is not None else None
        citations.append(SourceCitation(
            document_id=chunk.document_id,
            chunk_index=(metadata or {}).get("chunk_index"),
            excerpt=chunk.content[:excerpt_chars] + "...",
            similarity=round(chunk.similarity * 100),
            metadata=metadata,
        ))
    return citations


class ChatService:
    """Answers questions from the asker's own documents: embed → rank → generate → cite."""

    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client
        self.retrieval_limit = helper_config.get_number_val("CHAT_RETRIEVAL_LIMIT", default=5)
        self.history_limit = helper_config.get_number_val("CHAT_HISTORY_LIMIT", default=10)
        self.excerpt_chars = helper_config.get_number_val("CHAT_EXCERPT_CHARS", default=200)

    ##########################################
    ################ PREPARE #################
    ##########################################

    async def do_prepare_turn(self, repository: ScopedRepository, question: str) -> ChatTurn:
        """Persist the question and gather everything the generator needs.

        The user message is stored first, so it stays in the transcript even
        if a later step fails.

        Args:
            repository (ScopedRepository): Repository bound to the asker.
            question (str): The question text.

        Returns:
            ChatTurn: Retrieved chunks and the generator messages.

        Raises:
            Exception: If embedding the question or loading the context fails.
        """
        history = await repository.list_messages()
        await repository.add_message(question, ChatRole.USER)

        query_embedding = await self._llm_client.do_embed_text(question)
        chunks = await repository.find_similar_chunks(query_embedding, limit=self.retrieval_limit)
        self.logging.info(
            "Retrieved %d chunk(s) for owner '%s' (best similarity: %s)",
            len(chunks), repository.owner_id,
            "%.3f" % chunks[0].similarity if chunks else "n/a",
        )

        messages = [{"role": "system", "content": SYSTEM_PROMPT.format(context="\n\n".join(chunk.content for chunk in chunks))}]
        recent = history[-self.history_limit:] if self.history_limit > 0 else []
        messages.extend({"role": message.role.value, "content": message.content} for message in recent)
        messages.append({"role": ChatRole.USER.value, "content": question})

        return ChatTurn(question=question, chunks=chunks, messages=messages)

    ##########################################
    ################ STREAM ##################
    ##########################################

    async def do_stream_answer(self, repository: ScopedRepository, turn: ChatTurn) -> AsyncIterator[StreamEvent]:
        """Stream the answer to a prepared turn.

        Yields one ``chunk`` event per generated fragment, then ``sources`` and
        ``done``. The assistant message is stored once generation has finished,
        before ``sources`` is emitted. If generation fails, a single ``error``
        event is yielded and nothing is stored. If the consumer stops early,
        nothing is stored either.
        """
        fragments: list[str] = []
        try:
            async for fragment in self._llm_client.do_chat_stream(turn.messages):
                fragments.append(fragment)
                yield StreamEvent(type="chunk", content=fragment)
        except (asyncio.CancelledError, GeneratorExit):
            self.logging.info("Answer stream for owner '%s' stopped by the client after %d fragment(s)", repository.owner_id, len(fragments))
            raise
        except Exception as exc:
            self.logging.error("Generation failed for owner '%s': %s", repository.owner_id, exc)
            yield StreamEvent(type="error", message=GENERATION_ERROR_MESSAGE)
            return

        sources = build_citations(turn.chunks, self.excerpt_chars)
        await repository.add_message("".join(fragments), ChatRole.ASSISTANT, sources=sources)
        yield StreamEvent(type="sources", sources=sources)
        yield StreamEvent(type="done")
