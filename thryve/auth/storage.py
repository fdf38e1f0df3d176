# -*- coding: utf-8 -*-
"""Auth: DB storage helpers."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def display_name(row: Optional[Dict[str, Any]]) -> str:
    """Full name, else the email local part, else "Someone"."""
    if not row:
        return "Someone"
    full_name = (row.get("full_name") or "").strip()
    if full_name:
        return full_name
    email = (row.get("email") or "").strip()
    if email:
        return email.split("@", 1)[0]
    return "Someone"


def fetch_user(conn: sqlite3.Connection, user_id: str) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return dict(row) if row else None


def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM users WHERE email = ?", (email.lower().strip(),)).fetchone()
        return dict(row) if row else None


def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        return fetch_user(conn, user_id)


def create_user(*, email: str, password_hash: str, full_name: Optional[str] = None) -> Dict[str, Any]:
    user_id = str(uuid4())
    now = _utc_now()
    email_norm = email.lower().strip()
    name = (full_name or "").strip() or None
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            "INSERT INTO users (id, email, full_name, password_hash, created_at) VALUES (?, ?, ?, ?, ?)",
            (user_id, email_norm, name, password_hash, now),
        )
    return {
        "id": user_id,
        "email": email_norm,
        "full_name": name,
        "password_hash": password_hash,
        "created_at": now,
    }


def update_full_name(*, user_id: str, full_name: Optional[str]) -> Optional[Dict[str, Any]]:
    name = (full_name or "").strip() or None
    with db_conn(settings.app_db_path) as conn:
        conn.execute("UPDATE users SET full_name = ? WHERE id = ?", (name, user_id))
        return fetch_user(conn, user_id)
