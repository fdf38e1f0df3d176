# -*- coding: utf-8 -*-
"""Notifications: Pydantic models."""

from __future__ import annotations

from typing import Any, Dict, Literal

from pydantic import BaseModel, Field

NotificationType = Literal["health_metric", "reading_request", "reading_accepted"]


class Notification(BaseModel):
    id: str
    recipient_id: str
    actor_id: str
    type: NotificationType
    title: str
    message: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    created_at: str


class NotificationListResponse(BaseModel):
    count: int
    unread: int
    items: list[Notification]


class UnreadCountResponse(BaseModel):
    unread: int
