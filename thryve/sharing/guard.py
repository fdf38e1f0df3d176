# -*- coding: utf-8 -*-
"""Sharing: access guard for reading another user's metrics."""

from __future__ import annotations

import sqlite3
from typing import Optional

from ..app_db import db_conn
from ..config import settings
from ..errors import AuthorizationError
from .permissions import fetch_permission


def _can_read(conn: sqlite3.Connection, viewer_id: str, owner_id: str) -> bool:
    if viewer_id == owner_id:
        return True
    permission = fetch_permission(conn, viewer_id=viewer_id, owner_id=owner_id)
    return bool(permission and permission["status"] == "active")


def can_read(viewer_id: str, owner_id: str, conn: Optional[sqlite3.Connection] = None) -> bool:
    """Owners always read their own data; anyone else needs an active permission."""
    if conn is not None:
        return _can_read(conn, viewer_id, owner_id)
    with db_conn(settings.app_db_path) as c:
        return _can_read(c, viewer_id, owner_id)


def require_read(viewer_id: str, owner_id: str, conn: Optional[sqlite3.Connection] = None) -> None:
    if not can_read(viewer_id, owner_id, conn):
        raise AuthorizationError()
