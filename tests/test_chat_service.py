from datetime import datetime, timezone

import pytest

from conftest import FakeLLMClient, embed_words
from services.chat.ChatService import GENERATION_ERROR_MESSAGE, ChatService, build_citations
from shared.models.chat import ChatRole
from shared.models.chunk import ScoredChunk
from shared.models.document import DocumentCreate


async def seed_document(store, owner_id, chunks: list[str]):
    document = await store.create_document(
        DocumentCreate(name="kb.txt", original_name="kb.txt", mime_type="text/plain", size=1, owner_id=owner_id)
    )
    for index, content in enumerate(chunks):
        await store.create_chunk(
            document.id, content, embed_words(content), {"filename": "kb.txt", "chunk_index": index}
        )
    return document


async def collect(stream) -> list:
    return [event async for event in stream]


class TestPrepareTurn:
    @pytest.mark.asyncio
    async def test_question_is_persisted_and_context_retrieved(self, helper_config, repository, store, llm_client):
        await seed_document(store, repository.owner_id, ["alpha alpha", "bravo bravo", "charlie"])
        service = ChatService(helper_config=helper_config, llm_client=llm_client)

        turn = await service.do_prepare_turn(repository, "What about bravo?")

        assert [m.content for m in await repository.list_messages()] == ["What about bravo?"]
        assert turn.chunks[0].content == "bravo bravo"
        assert turn.messages[0]["role"] == "system"
        assert "Context:\n" in turn.messages[0]["content"]
        assert "bravo bravo" in turn.messages[0]["content"]
        assert turn.messages[-1] == {"role": "user", "content": "What about bravo?"}

    @pytest.mark.asyncio
    async def test_retrieval_never_crosses_identities(self, helper_config, repository, store, llm_client):
        await seed_document(store, "someone-else", ["bravo secret"])
        service = ChatService(helper_config=helper_config, llm_client=llm_client)

        turn = await service.do_prepare_turn(repository, "bravo")

        assert turn.chunks == []
        assert "secret" not in turn.messages[0]["content"]

    @pytest.mark.asyncio
    async def test_history_is_limited_to_last_ten_messages(self, helper_config, repository, llm_client):
        for i in range(12):
            await repository.add_message(f"message {i}", ChatRole.USER if i % 2 == 0 else ChatRole.ASSISTANT)
        service = ChatService(helper_config=helper_config, llm_client=llm_client)

        turn = await service.do_prepare_turn(repository, "latest question")

        history = turn.messages[1:-1]
        assert [m["content"] for m in history] == [f"message {i}" for i in range(2, 12)]
        assert history[0]["role"] == "user"
        assert history[1]["role"] == "assistant"
        assert turn.messages[-1]["content"] == "latest question"

    @pytest.mark.asyncio
    async def test_embedding_failure_propagates_after_question_is_stored(self, helper_config, repository):
        service = ChatService(helper_config=helper_config, llm_client=FakeLLMClient(fail_embed_for=["boom"]))

        with pytest.raises(Exception):
            await service.do_prepare_turn(repository, "boom")

        assert [m.role for m in await repository.list_messages()] == [ChatRole.USER]


class TestStreamAnswer:
    @pytest.mark.asyncio
    async def test_event_sequence_and_persistence(self, helper_config, repository, store):
        document = await seed_document(store, repository.owner_id, ["bravo " * 60, "alpha"])
        llm_client = FakeLLMClient(reply=["Bravo ", "is ", "covered."])
        service = ChatService(helper_config=helper_config, llm_client=llm_client)

        turn = await service.do_prepare_turn(repository, "bravo")
        events = await collect(service.do_stream_answer(repository, turn))

        assert [event.type for event in events] == ["chunk", "chunk", "chunk", "sources", "done"]
        assert "".join(event.content for event in events[:3]) == "Bravo is covered."

        sources = events[3].sources
        assert sources[0].document_id == document.id
        assert sources[0].similarity == 100
        assert sources[0].excerpt == ("bravo " * 60)[:200] + "..."
        assert sources[0].chunk_index == 0

        messages = await repository.list_messages()
        assert [m.role for m in messages] == [ChatRole.USER, ChatRole.ASSISTANT]
        assert messages[1].content == "Bravo is covered."
        assert messages[1].sources == sources

    @pytest.mark.asyncio
    async def test_no_context_still_answers(self, helper_config, repository, llm_client):
        service = ChatService(helper_config=helper_config, llm_client=llm_client)

        turn = await service.do_prepare_turn(repository, "anything there?")
        events = await collect(service.do_stream_answer(repository, turn))

        assert events[-2].type == "sources"
        assert events[-2].sources == []
        assert events[-1].type == "done"

    @pytest.mark.asyncio
    async def test_generator_failure_emits_single_error(self, helper_config, repository):
        llm_client = FakeLLMClient(reply=["partial", "never"], fail_chat_at=1)
        service = ChatService(helper_config=helper_config, llm_client=llm_client)

        turn = await service.do_prepare_turn(repository, "question")
        events = await collect(service.do_stream_answer(repository, turn))

        assert [event.type for event in events] == ["chunk", "error"]
        assert events[-1].message == GENERATION_ERROR_MESSAGE
        assert [m.role for m in await repository.list_messages()] == [ChatRole.USER]

    @pytest.mark.asyncio
    async def test_consumer_stopping_early_persists_nothing(self, helper_config, repository):
        llm_client = FakeLLMClient(reply=["one", "two", "three"])
        service = ChatService(helper_config=helper_config, llm_client=llm_client)

        turn = await service.do_prepare_turn(repository, "question")
        stream = service.do_stream_answer(repository, turn)
        first = await stream.__anext__()
        await stream.aclose()

        assert first.content == "one"
        assert [m.role for m in await repository.list_messages()] == [ChatRole.USER]


class TestCitations:
    def test_excerpt_and_percentage(self):
        chunk = ScoredChunk(
            id=1,
            document_id=4,
            content="short",
            embedding=[1.0],
            metadata={"chunk_index": 2},
            created_at=datetime.now(timezone.utc),
            similarity=0.876,
        )

        [citation] = build_citations([chunk])

        assert citation.excerpt == "short..."
        assert citation.similarity == 88
        assert citation.chunk_index == 2
        assert citation.metadata == {"chunk_index": 2}
