# -*- coding: utf-8 -*-
"""Delivery: API endpoints (preferences, push subscriptions, WhatsApp contacts, dispatch)."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user, verify_dispatch_token
from .destinations import (
    add_whatsapp_contact,
    delete_push_subscription,
    delete_whatsapp_contact,
    get_notification_settings,
    list_push_subscriptions,
    list_whatsapp_contacts,
    update_notification_settings,
    upsert_push_subscription,
)
from .dispatcher import Dispatcher
from .models import (
    Channel,
    DispatchReport,
    NotificationSettings,
    NotificationSettingsUpdate,
    PushSubscription,
    PushSubscriptionCreate,
    WhatsAppContact,
    WhatsAppContactCreate,
)
from .queue import MAX_BATCH_SIZE

router = APIRouter(prefix="/api/delivery", tags=["Delivery"])
internal_router = APIRouter(prefix="/api/internal", tags=["Internal"])


@router.get("/settings", response_model=NotificationSettings, summary="Get my delivery preferences")
def get_settings(user: dict = Depends(get_current_user)):
    return NotificationSettings(**get_notification_settings(user_id=user["id"]))


@router.patch("/settings", response_model=NotificationSettings, summary="Update my delivery preferences")
def patch_settings(request: NotificationSettingsUpdate, user: dict = Depends(get_current_user)):
    row = update_notification_settings(user_id=user["id"], changes=request.model_dump(exclude_unset=True))
    return NotificationSettings(**row)


@router.get("/push-subscriptions", response_model=list[PushSubscription], summary="List my push subscriptions")
def get_push_subscriptions(user: dict = Depends(get_current_user)):
    return [PushSubscription(**row) for row in list_push_subscriptions(user_id=user["id"])]


@router.post("/push-subscriptions", response_model=PushSubscription, summary="Register a push subscription")
def create_push_subscription(request: PushSubscriptionCreate, user: dict = Depends(get_current_user)):
    row = upsert_push_subscription(
        user_id=user["id"],
        endpoint=request.endpoint,
        p256dh_key=request.keys.p256dh,
        auth_key=request.keys.auth,
    )
    return PushSubscription(**row)


@router.delete("/push-subscriptions/{subscription_id}", summary="Remove a push subscription")
def remove_push_subscription(subscription_id: str, user: dict = Depends(get_current_user)):
    delete_push_subscription(user_id=user["id"], subscription_id=subscription_id)
    return {"status": "ok"}


@router.get("/whatsapp-contacts", response_model=list[WhatsAppContact], summary="List my WhatsApp contacts")
def get_whatsapp_contacts(user: dict = Depends(get_current_user)):
    return [WhatsAppContact(**row) for row in list_whatsapp_contacts(user_id=user["id"])]


@router.post("/whatsapp-contacts", response_model=WhatsAppContact, summary="Add a WhatsApp contact")
def create_whatsapp_contact(request: WhatsAppContactCreate, user: dict = Depends(get_current_user)):
    row = add_whatsapp_contact(
        user_id=user["id"],
        name=request.name,
        phone_number=request.phone_number,
        notification_types=request.notification_types,
    )
    return WhatsAppContact(**row)


@router.delete("/whatsapp-contacts/{contact_id}", summary="Remove a WhatsApp contact")
def remove_whatsapp_contact(contact_id: str, user: dict = Depends(get_current_user)):
    delete_whatsapp_contact(user_id=user["id"], contact_id=contact_id)
    return {"status": "ok"}


@internal_router.post(
    "/dispatch/{channel}",
    response_model=DispatchReport,
    summary="Process one batch of queued deliveries",
    dependencies=[Depends(verify_dispatch_token)],
)
def dispatch(channel: Channel, batch_size: Optional[int] = Query(default=None, ge=1, le=MAX_BATCH_SIZE)):
    report = Dispatcher(channel).run_batch(batch_size)
    return DispatchReport(**report.to_dict())
