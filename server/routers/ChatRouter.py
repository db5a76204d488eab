from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from server.dependencies.identity import get_repository
from server.models.responses import MessageResponse
from services.chat.ChatService import ChatService, ChatTurn
from shared.models.chat import ChatMessage
from shared.stores.ScopedRepository import ScopedRepository

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.get("/messages")
async def list_messages(repository: ScopedRepository = Depends(get_repository)) -> list[ChatMessage]:
    """Return the caller's transcript, oldest first."""
    return await repository.list_messages()


@router.delete("/messages")
async def clear_messages(repository: ScopedRepository = Depends(get_repository)) -> MessageResponse:
    await repository.clear_messages()
    return MessageResponse(message="Chat history cleared")


@router.post("/send")
async def send_message(request: Request, repository: ScopedRepository = Depends(get_repository)) -> StreamingResponse:
    """Answer a question from the caller's documents as a server-sent events stream.

    Body: ``{"content": "<question>"}``. Each frame is ``data: <json>`` with
    ``type`` one of ``chunk``, ``sources``, ``done`` or ``error``.

    Raises:
        HTTPException: 400 if content is missing or not a string (nothing is stored),
            500 if the question could not be prepared for answering.
    """
    try:
        body = await request.json()
    except ValueError:
        body = None
    content = body.get("content") if isinstance(body, dict) else None
    if not isinstance(content, str) or not content:
        raise HTTPException(status_code=400, detail="Message content is required")

    chat_service: ChatService = request.app.state.chat_service
    try:
        turn = await chat_service.do_prepare_turn(repository, content)
    except Exception as exc:
        request.app.state.logging.error("Failed to prepare answer for %s: %s", repository.owner_id, exc)
        raise HTTPException(status_code=500, detail="Failed to process message")

    return StreamingResponse(
        _sse_frames(chat_service, repository, turn),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
    )


async def _sse_frames(chat_service: ChatService, repository: ScopedRepository, turn: ChatTurn) -> AsyncIterator[str]:
    async for event in chat_service.do_stream_answer(repository, turn):
        yield event.to_sse_frame()
