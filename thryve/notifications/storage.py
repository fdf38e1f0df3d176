# -*- coding: utf-8 -*-
"""Notifications: in-app inbox storage."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _row_to_notification(row: sqlite3.Row) -> Dict[str, Any]:
    d = dict(row)
    try:
        d["payload"] = json.loads(d.pop("payload_json") or "{}")
    except json.JSONDecodeError:
        d["payload"] = {}
    d["is_read"] = bool(d.get("is_read"))
    return d


def insert_notification(
    conn: sqlite3.Connection,
    *,
    recipient_id: str,
    actor_id: str,
    type: str,
    title: str,
    message: str,
    payload: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Write one inbox row inside the caller's transaction."""
    notification_id = str(uuid4())
    now = _utc_now()
    conn.execute(
        """
        INSERT INTO notifications (id, recipient_id, actor_id, type, title, message, payload_json, is_read, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?)
        """,
        (
            notification_id,
            recipient_id,
            actor_id,
            type,
            title,
            message,
            json.dumps(payload or {}, ensure_ascii=False),
            now,
        ),
    )
    return {
        "id": notification_id,
        "recipient_id": recipient_id,
        "actor_id": actor_id,
        "type": type,
        "title": title,
        "message": message,
        "payload": payload or {},
        "is_read": False,
        "created_at": now,
    }


def list_notifications(
    *, user_id: str, unread_only: bool = False, limit: int = 50, offset: int = 0
) -> List[Dict[str, Any]]:
    sql = "SELECT * FROM notifications WHERE recipient_id = ?"
    params: list[Any] = [user_id]
    if unread_only:
        sql += " AND is_read = 0"
    sql += " ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
    params.extend([int(limit), int(offset)])
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(sql, tuple(params)).fetchall()
        return [_row_to_notification(r) for r in rows]


def unread_count(*, user_id: str) -> int:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT COUNT(1) AS n FROM notifications WHERE recipient_id = ? AND is_read = 0",
            (user_id,),
        ).fetchone()
        return int(row["n"]) if row else 0


def mark_read(*, user_id: str, notification_id: str) -> bool:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "UPDATE notifications SET is_read = 1 WHERE id = ? AND recipient_id = ?",
            (notification_id, user_id),
        )
        return cur.rowcount > 0


def mark_all_read(*, user_id: str) -> int:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "UPDATE notifications SET is_read = 1 WHERE recipient_id = ? AND is_read = 0",
            (user_id,),
        )
        return int(cur.rowcount)


def delete_notification(*, user_id: str, notification_id: str) -> bool:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "DELETE FROM notifications WHERE id = ? AND recipient_id = ?",
            (notification_id, user_id),
        )
        return cur.rowcount > 0
