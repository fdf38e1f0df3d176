# -*- coding: utf-8 -*-
"""Assistant: DB storage helpers (conversations and messages)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings
from ..errors import NotFound


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def create_conversation(*, user_id: str, title: str) -> Dict[str, Any]:
    conversation_id = str(uuid4())
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            "INSERT INTO chat_conversations (id, user_id, title, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (conversation_id, user_id, title, now, now),
        )
    return {"id": conversation_id, "user_id": user_id, "title": title, "created_at": now, "updated_at": now}


def list_conversations(*, user_id: str, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM chat_conversations WHERE user_id = ? ORDER BY updated_at DESC LIMIT ? OFFSET ?",
            (user_id, int(limit), int(offset)),
        ).fetchall()
        return [dict(r) for r in rows]


def get_conversation(*, user_id: str, conversation_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM chat_conversations WHERE id = ? AND user_id = ?",
            (conversation_id, user_id),
        ).fetchone()
        return dict(row) if row else None


def require_conversation(*, user_id: str, conversation_id: str) -> Dict[str, Any]:
    row = get_conversation(user_id=user_id, conversation_id=conversation_id)
    if not row:
        raise NotFound("Conversation not found")
    return row


def delete_conversation(*, user_id: str, conversation_id: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "DELETE FROM chat_conversations WHERE id = ? AND user_id = ?",
            (conversation_id, user_id),
        )
        if cur.rowcount == 0:
            raise NotFound("Conversation not found")


def append_message(*, conversation_id: str, role: str, content: str) -> Dict[str, Any]:
    msg_id = str(uuid4())
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            "INSERT INTO chat_messages (id, conversation_id, role, content, created_at) VALUES (?, ?, ?, ?, ?)",
            (msg_id, conversation_id, role, content, now),
        )
        conn.execute(
            "UPDATE chat_conversations SET updated_at = ? WHERE id = ?",
            (now, conversation_id),
        )
    return {"id": msg_id, "conversation_id": conversation_id, "role": role, "content": content, "created_at": now}


def list_messages(*, conversation_id: str, limit: int = 200) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM chat_messages WHERE conversation_id = ? ORDER BY created_at ASC, rowid ASC LIMIT ?",
            (conversation_id, int(limit)),
        ).fetchall()
        return [dict(r) for r in rows]
