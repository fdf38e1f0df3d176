# -*- coding: utf-8 -*-
"""Delivery: per-user channel preferences and destination resolution.

A destination is one concrete address on a channel: a push subscription, the
user's email address, or a WhatsApp contact. Destinations that a provider
reports as permanently gone are deactivated and never tried again.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings
from ..errors import NotFound

NOTIFICATION_TYPES = ("health_metric", "reading_request", "reading_accepted")

_SETTINGS_DEFAULTS = {
    "push_enabled": True,
    "email_enabled": False,
    "whatsapp_enabled": False,
    "instant_alerts_enabled": True,
}

_CHANNEL_FLAG = {
    "push": "push_enabled",
    "email": "email_enabled",
    "whatsapp": "whatsapp_enabled",
}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class Destination:
    id: str
    channel: str
    address: str
    meta: Dict[str, Any] = field(default_factory=dict)


# ---- Notification settings ----


def fetch_settings(conn: sqlite3.Connection, user_id: str) -> Dict[str, Any]:
    row = conn.execute("SELECT * FROM notification_settings WHERE user_id = ?", (user_id,)).fetchone()
    out: Dict[str, Any] = {"user_id": user_id, **_SETTINGS_DEFAULTS, "updated_at": None}
    if row:
        d = dict(row)
        for key in _SETTINGS_DEFAULTS:
            out[key] = bool(d.get(key))
        out["updated_at"] = d.get("updated_at")
    return out


def get_notification_settings(*, user_id: str) -> Dict[str, Any]:
    with db_conn(settings.app_db_path) as conn:
        return fetch_settings(conn, user_id)


def update_notification_settings(*, user_id: str, changes: Dict[str, Optional[bool]]) -> Dict[str, Any]:
    with db_conn(settings.app_db_path) as conn:
        current = fetch_settings(conn, user_id)
        for key, value in changes.items():
            if key in _SETTINGS_DEFAULTS and value is not None:
                current[key] = bool(value)
        now = _utc_now()
        conn.execute(
            """
            INSERT INTO notification_settings (user_id, push_enabled, email_enabled, whatsapp_enabled, instant_alerts_enabled, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                push_enabled = excluded.push_enabled,
                email_enabled = excluded.email_enabled,
                whatsapp_enabled = excluded.whatsapp_enabled,
                instant_alerts_enabled = excluded.instant_alerts_enabled,
                updated_at = excluded.updated_at
            """,
            (
                user_id,
                int(current["push_enabled"]),
                int(current["email_enabled"]),
                int(current["whatsapp_enabled"]),
                int(current["instant_alerts_enabled"]),
                now,
            ),
        )
        current["updated_at"] = now
        return current


def enabled_channels(conn: sqlite3.Connection, user_id: str, notification_type: str) -> List[str]:
    """Channels that should receive a queue entry for this recipient and event."""
    prefs = fetch_settings(conn, user_id)
    if notification_type == "health_metric" and not prefs["instant_alerts_enabled"]:
        return []
    return [channel for channel, flag in _CHANNEL_FLAG.items() if prefs[flag]]


# ---- Push subscriptions ----


def upsert_push_subscription(*, user_id: str, endpoint: str, p256dh_key: str, auth_key: str) -> Dict[str, Any]:
    """Register a browser subscription; re-registering the same endpoint reactivates it."""
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO push_subscriptions (id, user_id, endpoint, p256dh_key, auth_key, is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, 1, ?, ?)
            ON CONFLICT(user_id, endpoint) DO UPDATE SET
                p256dh_key = excluded.p256dh_key,
                auth_key = excluded.auth_key,
                is_active = 1,
                updated_at = excluded.updated_at
            """,
            (str(uuid4()), user_id, endpoint, p256dh_key, auth_key, now, now),
        )
        row = conn.execute(
            "SELECT * FROM push_subscriptions WHERE user_id = ? AND endpoint = ?",
            (user_id, endpoint),
        ).fetchone()
        return _subscription_row(row)


def _subscription_row(row: sqlite3.Row) -> Dict[str, Any]:
    d = dict(row)
    d["is_active"] = bool(d.get("is_active"))
    return d


def list_push_subscriptions(*, user_id: str) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM push_subscriptions WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,),
        ).fetchall()
        return [_subscription_row(r) for r in rows]


def delete_push_subscription(*, user_id: str, subscription_id: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "DELETE FROM push_subscriptions WHERE id = ? AND user_id = ?",
            (subscription_id, user_id),
        )
        if cur.rowcount == 0:
            raise NotFound("Push subscription not found")


# ---- WhatsApp contacts ----


def _contact_row(row: sqlite3.Row) -> Dict[str, Any]:
    d = dict(row)
    try:
        d["notification_types"] = json.loads(d.pop("notification_types_json") or "[]")
    except json.JSONDecodeError:
        d["notification_types"] = []
    d["is_active"] = bool(d.get("is_active"))
    return d


def add_whatsapp_contact(
    *, user_id: str, name: str, phone_number: str, notification_types: Optional[List[str]] = None
) -> Dict[str, Any]:
    contact_id = str(uuid4())
    now = _utc_now()
    types = list(notification_types) if notification_types is not None else list(NOTIFICATION_TYPES)
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO whatsapp_contacts (id, user_id, name, phone_number, is_active, notification_types_json, created_at, updated_at)
            VALUES (?, ?, ?, ?, 1, ?, ?, ?)
            """,
            (contact_id, user_id, name, phone_number, json.dumps(types), now, now),
        )
    return {
        "id": contact_id,
        "user_id": user_id,
        "name": name,
        "phone_number": phone_number,
        "is_active": True,
        "notification_types": types,
        "created_at": now,
        "updated_at": now,
    }


def list_whatsapp_contacts(*, user_id: str) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM whatsapp_contacts WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,),
        ).fetchall()
        return [_contact_row(r) for r in rows]


def delete_whatsapp_contact(*, user_id: str, contact_id: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "DELETE FROM whatsapp_contacts WHERE id = ? AND user_id = ?",
            (contact_id, user_id),
        )
        if cur.rowcount == 0:
            raise NotFound("WhatsApp contact not found")


# ---- Resolution ----


def resolve(conn: sqlite3.Connection, *, channel: str, user_id: str, notification_type: str) -> List[Destination]:
    """Active destinations for one recipient on one channel."""
    if channel == "push":
        rows = conn.execute(
            "SELECT * FROM push_subscriptions WHERE user_id = ? AND is_active = 1 ORDER BY created_at",
            (user_id,),
        ).fetchall()
        return [
            Destination(
                id=r["id"],
                channel="push",
                address=r["endpoint"],
                meta={"keys": {"p256dh": r["p256dh_key"], "auth": r["auth_key"]}},
            )
            for r in rows
        ]
    if channel == "email":
        prefs = fetch_settings(conn, user_id)
        if not prefs["email_enabled"]:
            return []
        row = conn.execute("SELECT email, full_name FROM users WHERE id = ?", (user_id,)).fetchone()
        if not row or not row["email"]:
            return []
        return [
            Destination(
                id=f"email:{user_id}",
                channel="email",
                address=row["email"],
                meta={"user_id": user_id, "full_name": row["full_name"]},
            )
        ]
    if channel == "whatsapp":
        rows = conn.execute(
            "SELECT * FROM whatsapp_contacts WHERE user_id = ? AND is_active = 1 ORDER BY created_at",
            (user_id,),
        ).fetchall()
        out: List[Destination] = []
        for r in rows:
            contact = _contact_row(r)
            if notification_type not in contact["notification_types"]:
                continue
            out.append(
                Destination(
                    id=contact["id"],
                    channel="whatsapp",
                    address=contact["phone_number"],
                    meta={"name": contact["name"]},
                )
            )
        return out
    raise ValueError(f"unknown channel: {channel}")


def deactivate(conn: sqlite3.Connection, destination: Destination) -> None:
    now = _utc_now()
    if destination.channel == "push":
        conn.execute(
            "UPDATE push_subscriptions SET is_active = 0, updated_at = ? WHERE id = ?",
            (now, destination.id),
        )
    elif destination.channel == "whatsapp":
        conn.execute(
            "UPDATE whatsapp_contacts SET is_active = 0, updated_at = ? WHERE id = ?",
            (now, destination.id),
        )
    elif destination.channel == "email":
        user_id = destination.meta.get("user_id") or destination.id.split(":", 1)[-1]
        conn.execute(
            "UPDATE notification_settings SET email_enabled = 0, updated_at = ? WHERE user_id = ?",
            (now, user_id),
        )
