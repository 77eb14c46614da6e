"""Chat routes — chat CRUD, messages, streaming replies and health."""

from __future__ import annotations

import json
from contextlib import aclosing

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import StreamingResponse
from loguru import logger

from ashteams_chat.application.exceptions import NotFoundError
from ashteams_chat.application.use_cases.chat import ChatUseCase, StreamReset, TurnResult
from ashteams_chat.domain.models import Caller
from ashteams_chat.presentation.infrastructure.auth import get_caller, get_current_user_id
from ashteams_chat.presentation.schemas import (
    ChatResponse,
    CreateChatRequest,
    MessageResponse,
    SendMessageRequest,
    SendMessageResponse,
    UpdateChatRequest,
)

router = APIRouter(tags=["chat"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_chat_id(raw: str) -> int:
    """Path ids that are not plain decimal integers can never name a chat."""
    if not (raw.isascii() and raw.isdigit()):
        raise NotFoundError("Chat not found")
    return int(raw)


def _turn_response(result: TurnResult) -> SendMessageResponse:
    return SendMessageResponse(
        user_message=MessageResponse.model_validate(result.user_message),
        ai_message=MessageResponse.model_validate(result.ai_message),
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health")
async def health():
    """Simple liveness / readiness check."""
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Chats
# ---------------------------------------------------------------------------


@router.get("/api/chats", response_model=list[ChatResponse])
async def list_chats(raw_request: Request, caller: Caller = Depends(get_caller)):
    """List the caller's chats, most recently updated first."""
    uc: ChatUseCase = raw_request.app.state.chat_uc
    return [ChatResponse.model_validate(c) for c in uc.list_chats(caller)]


@router.post("/api/chats", response_model=ChatResponse, status_code=201)
async def create_chat(
    raw_request: Request,
    request: CreateChatRequest | None = None,
    user_id: int | None = Depends(get_current_user_id),
):
    """Create a chat for the logged-in user, or for the ``sessionId`` in the body."""
    uc: ChatUseCase = raw_request.app.state.chat_uc
    request = request or CreateChatRequest()
    caller = Caller(user_id=user_id, session_id=request.session_id or None)

    chat = uc.create_chat(caller, request.title)
    logger.info(
        "POST /api/chats | chat={} user={} anonymous={}", chat.id, chat.user_id, chat.is_anonymous
    )
    return ChatResponse.model_validate(chat)


@router.delete("/api/chats/{chat_id}", status_code=204)
async def delete_chat(chat_id: str, raw_request: Request, caller: Caller = Depends(get_caller)):
    uc: ChatUseCase = raw_request.app.state.chat_uc
    uc.delete_chat(caller, _parse_chat_id(chat_id))
    logger.info("DELETE /api/chats/{}", chat_id)
    return Response(status_code=204)


@router.patch("/api/chats/{chat_id}", response_model=ChatResponse)
async def rename_chat(
    chat_id: str,
    raw_request: Request,
    request: UpdateChatRequest | None = None,
    caller: Caller = Depends(get_caller),
):
    """Rename a chat. A missing or empty title leaves it unchanged."""
    uc: ChatUseCase = raw_request.app.state.chat_uc
    title = request.title if request else None
    chat = uc.rename_chat(caller, _parse_chat_id(chat_id), title)
    logger.info("PATCH /api/chats/{} | title={}", chat_id, chat.title)
    return ChatResponse.model_validate(chat)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@router.get("/api/chats/{chat_id}/messages", response_model=list[MessageResponse])
async def list_messages(chat_id: str, raw_request: Request, caller: Caller = Depends(get_caller)):
    """Get all messages in a chat, ordered chronologically."""
    uc: ChatUseCase = raw_request.app.state.chat_uc
    messages = uc.list_messages(caller, _parse_chat_id(chat_id))
    return [MessageResponse.model_validate(m) for m in messages]


@router.post("/api/chats/{chat_id}/messages", response_model=SendMessageResponse)
async def send_message(
    chat_id: str,
    raw_request: Request,
    request: SendMessageRequest | None = None,
    caller: Caller = Depends(get_caller),
):
    """Send a message and receive the assistant's reply.

    Always 200 once the user message is accepted; a provider failure is
    reported as an apology in ``aiMessage``.
    """
    uc: ChatUseCase = raw_request.app.state.chat_uc
    content = request.content if request else None
    result = await uc.send_message(caller, _parse_chat_id(chat_id), content)
    logger.info(
        "POST /api/chats/{}/messages | user_msg={} ai_msg={} degraded={}",
        chat_id,
        result.user_message.id,
        result.ai_message.id,
        result.failed,
    )
    return _turn_response(result)


@router.post("/api/chats/{chat_id}/messages/stream")
async def send_message_stream(
    chat_id: str,
    raw_request: Request,
    request: SendMessageRequest | None = None,
    caller: Caller = Depends(get_caller),
):
    """Send a message and receive a streamed reply.

    Line protocol:
    - ``0:"text chunk"\\n``                   — streamed text fragments
    - ``8:[{"type":"reset"}]\\n``             — discard the fragments sent so far
    - ``2:[{userMessage, aiMessage}]\\n``     — the persisted turn
    - ``d:{"finishReason":"stop"}\\n``        — done (``"error"`` if the apology was used)

    When the provider fails after fragments were sent, a reset line precedes
    the apology, so the rendered reply always matches the stored ``aiMessage``.
    """
    uc: ChatUseCase = raw_request.app.state.chat_uc
    content = request.content if request else None
    turn = uc.start_turn(caller, _parse_chat_id(chat_id), content)
    logger.info("POST /api/chats/{}/messages/stream | user_msg={}", chat_id, turn.user_message.id)

    async def event_generator():
        finish_reason = "stop"

        async with aclosing(uc.stream_reply(turn)) as chunks:
            async for chunk in chunks:
                if isinstance(chunk, TurnResult):
                    annotation = _turn_response(chunk).model_dump(mode="json", by_alias=True)
                    yield f"2:{json.dumps([annotation])}\n"
                    if chunk.failed:
                        finish_reason = "error"
                elif isinstance(chunk, StreamReset):
                    yield f"8:{json.dumps([{'type': 'reset'}])}\n"
                else:
                    yield f"0:{json.dumps(chunk)}\n"

        yield f"d:{json.dumps({'finishReason': finish_reason})}\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


@router.delete("/api/chats/{chat_id}/messages", status_code=204)
async def clear_messages(chat_id: str, raw_request: Request, caller: Caller = Depends(get_caller)):
    uc: ChatUseCase = raw_request.app.state.chat_uc
    uc.clear_messages(caller, _parse_chat_id(chat_id))
    logger.info("DELETE /api/chats/{}/messages", chat_id)
    return Response(status_code=204)
