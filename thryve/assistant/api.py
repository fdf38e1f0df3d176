# -*- coding: utf-8 -*-
"""Assistant: API endpoints (conversations/messages)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user
from .client import complete
from .models import (
    ChatMessage,
    ConversationCreateRequest,
    ConversationDetailResponse,
    ConversationListResponse,
    ConversationSummary,
    MessageCreateRequest,
    MessageCreateResponse,
)
from .storage import (
    append_message,
    create_conversation,
    delete_conversation,
    list_conversations,
    list_messages,
    require_conversation,
)

router = APIRouter(prefix="/api/assistant", tags=["Assistant"])


@router.post("/conversations", response_model=ConversationSummary, summary="Start a conversation")
def post_conversation(request: ConversationCreateRequest, user: dict = Depends(get_current_user)):
    return ConversationSummary(**create_conversation(user_id=user["id"], title=request.title))


@router.get("/conversations", response_model=ConversationListResponse, summary="List my conversations")
def get_conversations(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: dict = Depends(get_current_user),
):
    rows = list_conversations(user_id=user["id"], limit=limit, offset=offset)
    return ConversationListResponse(count=len(rows), items=[ConversationSummary(**r) for r in rows])


@router.get("/conversations/{conversation_id}", response_model=ConversationDetailResponse, summary="Get a conversation")
def get_conversation(conversation_id: str, user: dict = Depends(get_current_user)):
    row = require_conversation(user_id=user["id"], conversation_id=conversation_id)
    messages = list_messages(conversation_id=conversation_id)
    return ConversationDetailResponse(
        conversation=ConversationSummary(**row),
        messages=[ChatMessage(**m) for m in messages],
    )


@router.delete("/conversations/{conversation_id}", summary="Delete a conversation")
def remove_conversation(conversation_id: str, user: dict = Depends(get_current_user)):
    delete_conversation(user_id=user["id"], conversation_id=conversation_id)
    return {"status": "ok"}


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageCreateResponse,
    summary="Send a message to the assistant",
)
async def post_message(conversation_id: str, request: MessageCreateRequest, user: dict = Depends(get_current_user)):
    require_conversation(user_id=user["id"], conversation_id=conversation_id)
    history = list_messages(conversation_id=conversation_id)
    user_msg = append_message(conversation_id=conversation_id, role="user", content=request.content)

    # AssistantUnavailable propagates as 503; the user message stays, no assistant row is written.
    reply = await complete(message=request.content, history=history)

    assistant_msg = append_message(conversation_id=conversation_id, role="assistant", content=reply)
    return MessageCreateResponse(
        user_message=ChatMessage(**user_msg),
        assistant_message=ChatMessage(**assistant_msg),
    )
