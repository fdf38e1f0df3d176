# -*- coding: utf-8 -*-
"""Assistant: Pydantic models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ConversationCreateRequest(BaseModel):
    title: str = Field(default="New conversation", min_length=1, max_length=64)


class ConversationSummary(BaseModel):
    id: str
    title: str
    created_at: str
    updated_at: str


class ConversationListResponse(BaseModel):
    count: int
    items: list[ConversationSummary]


class ChatMessage(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    content: str
    created_at: str


class ConversationDetailResponse(BaseModel):
    conversation: ConversationSummary
    messages: list[ChatMessage]


class MessageCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)


class MessageCreateResponse(BaseModel):
    user_message: ChatMessage
    assistant_message: ChatMessage
