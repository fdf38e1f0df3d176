# -*- coding: utf-8 -*-
"""Notifications: API endpoints (inbox)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user
from ..errors import NotFound
from .models import Notification, NotificationListResponse, UnreadCountResponse
from .storage import delete_notification, list_notifications, mark_all_read, mark_read, unread_count

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse, summary="List my notifications")
def get_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: dict = Depends(get_current_user),
):
    rows = list_notifications(user_id=user["id"], unread_only=unread_only, limit=limit, offset=offset)
    return NotificationListResponse(
        count=len(rows),
        unread=unread_count(user_id=user["id"]),
        items=[Notification(**r) for r in rows],
    )


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Count unread notifications")
def get_unread_count(user: dict = Depends(get_current_user)):
    return UnreadCountResponse(unread=unread_count(user_id=user["id"]))


@router.post("/read-all", summary="Mark all notifications as read")
def post_read_all(user: dict = Depends(get_current_user)):
    return {"updated": mark_all_read(user_id=user["id"])}


@router.post("/{notification_id}/read", summary="Mark one notification as read")
def post_read(notification_id: str, user: dict = Depends(get_current_user)):
    if not mark_read(user_id=user["id"], notification_id=notification_id):
        raise NotFound("Notification not found")
    return {"status": "ok"}


@router.delete("/{notification_id}", summary="Delete a notification")
def remove_notification(notification_id: str, user: dict = Depends(get_current_user)):
    if not delete_notification(user_id=user["id"], notification_id=notification_id):
        raise NotFound("Notification not found")
    return {"status": "ok"}
