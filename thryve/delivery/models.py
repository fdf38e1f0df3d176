# -*- coding: utf-8 -*-
"""Delivery: Pydantic models."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

NotificationType = Literal["health_metric", "reading_request", "reading_accepted"]
Channel = Literal["push", "email", "whatsapp"]


class NotificationSettings(BaseModel):
    push_enabled: bool
    email_enabled: bool
    whatsapp_enabled: bool
    instant_alerts_enabled: bool
    updated_at: Optional[str] = None


class NotificationSettingsUpdate(BaseModel):
    push_enabled: Optional[bool] = None
    email_enabled: Optional[bool] = None
    whatsapp_enabled: Optional[bool] = None
    instant_alerts_enabled: Optional[bool] = None


class PushKeys(BaseModel):
    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class PushSubscriptionCreate(BaseModel):
    endpoint: str = Field(min_length=1, max_length=2048)
    keys: PushKeys


class PushSubscription(BaseModel):
    id: str
    endpoint: str
    is_active: bool
    created_at: str
    updated_at: str


class WhatsAppContactCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    phone_number: str = Field(pattern=r"^\+?[1-9]\d{6,14}$")
    notification_types: Optional[list[NotificationType]] = None


class WhatsAppContact(BaseModel):
    id: str
    name: str
    phone_number: str
    is_active: bool
    notification_types: list[str]
    created_at: str


class DispatchReport(BaseModel):
    channel: Channel
    claimed: int
    sent: int
    failed: int
    retried: int
    deactivated: int
    skipped: int = 0
