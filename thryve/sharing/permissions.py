# -*- coding: utf-8 -*-
"""Sharing: reading permissions (who may view whose metrics)."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings
from ..errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

PERMISSION_STATUSES = ("active", "blocked")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def grant(conn: sqlite3.Connection, *, viewer_id: str, owner_id: str) -> bool:
    """Create an active permission; an existing row for the pair is left untouched.

    Returns True when a new row was inserted.
    """
    now = _utc_now()
    cur = conn.execute(
        """
        INSERT INTO reading_permissions (id, viewer_id, owner_id, status, created_at, updated_at)
        VALUES (?, ?, ?, 'active', ?, ?)
        ON CONFLICT(viewer_id, owner_id) DO NOTHING
        """,
        (str(uuid4()), viewer_id, owner_id, now, now),
    )
    return cur.rowcount > 0


def fetch_permission(conn: sqlite3.Connection, *, viewer_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        "SELECT * FROM reading_permissions WHERE viewer_id = ? AND owner_id = ?",
        (viewer_id, owner_id),
    ).fetchone()
    return dict(row) if row else None


def get_permission(*, viewer_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        return fetch_permission(conn, viewer_id=viewer_id, owner_id=owner_id)


def list_viewers(*, owner_id: str) -> List[Dict[str, Any]]:
    """Everyone holding a permission on this owner's readings, blocked ones included."""
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            """
            SELECT p.*, u.email AS viewer_email, u.full_name AS viewer_name
            FROM reading_permissions p
            JOIN users u ON u.id = p.viewer_id
            WHERE p.owner_id = ?
            ORDER BY p.created_at DESC
            """,
            (owner_id,),
        ).fetchall()
        return [dict(r) for r in rows]


def list_owners(*, viewer_id: str) -> List[Dict[str, Any]]:
    """Owners whose readings this viewer may currently read."""
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            """
            SELECT p.*, u.email AS owner_email, u.full_name AS owner_name
            FROM reading_permissions p
            JOIN users u ON u.id = p.owner_id
            WHERE p.viewer_id = ? AND p.status = 'active'
            ORDER BY p.created_at DESC
            """,
            (viewer_id,),
        ).fetchall()
        return [dict(r) for r in rows]


def set_status(*, owner_id: str, viewer_id: str, status: str) -> Dict[str, Any]:
    """Block or unblock a viewer. Only the owner side of the pair can do this."""
    if status not in PERMISSION_STATUSES:
        raise ValidationError(f"Invalid permission status: {status}")
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "UPDATE reading_permissions SET status = ?, updated_at = ? WHERE owner_id = ? AND viewer_id = ?",
            (status, _utc_now(), owner_id, viewer_id),
        )
        if cur.rowcount == 0:
            raise NotFound("Viewer not found")
        row = fetch_permission(conn, viewer_id=viewer_id, owner_id=owner_id)
    logger.info("permission %s -> %s set to %s", viewer_id, owner_id, status)
    return row or {}


def revoke(*, owner_id: str, viewer_id: str) -> None:
    """Remove a viewer entirely. The accepted request goes too, so the viewer may ask again."""
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "DELETE FROM reading_permissions WHERE owner_id = ? AND viewer_id = ?",
            (owner_id, viewer_id),
        )
        if cur.rowcount == 0:
            raise NotFound("Viewer not found")
        conn.execute(
            "DELETE FROM reading_requests WHERE owner_id = ? AND requester_id = ?",
            (owner_id, viewer_id),
        )
    logger.info("permission %s -> %s revoked", viewer_id, owner_id)
