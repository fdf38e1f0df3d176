# -*- coding: utf-8 -*-
"""Sharing: reading request workflow.

A request goes pending -> accepted | declined exactly once. Accepting grants the
requester an active permission and notifies them, all in the same transaction
as the status change.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..auth.storage import fetch_user
from ..config import settings
from ..errors import AlreadyResolved, DuplicateRequest, InvalidSelfRequest, NotFound, ValidationError
from ..notifications.notifier import notifier
from .permissions import grant

logger = logging.getLogger(__name__)

DECISIONS = {"accept": "accepted", "decline": "declined"}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def fetch_request(conn: sqlite3.Connection, request_id: str) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM reading_requests WHERE id = ?", (request_id,)).fetchone()
    return dict(row) if row else None


def _fetch_pair(conn: sqlite3.Connection, requester_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        "SELECT * FROM reading_requests WHERE requester_id = ? AND owner_id = ?",
        (requester_id, owner_id),
    ).fetchone()
    return dict(row) if row else None


def create_request(*, requester_id: str, owner_id: str, message: Optional[str] = None) -> Dict[str, Any]:
    if requester_id == owner_id:
        raise InvalidSelfRequest()
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        if not fetch_user(conn, owner_id):
            raise NotFound("User not found")

        existing = _fetch_pair(conn, requester_id, owner_id)
        if existing:
            if existing["status"] == "declined" and settings.allow_rerequest_after_decline:
                conn.execute(
                    "UPDATE reading_requests SET status = 'pending', message = ?, updated_at = ? WHERE id = ?",
                    (message, now, existing["id"]),
                )
                request = {**existing, "status": "pending", "message": message, "updated_at": now}
                notifier.on_request_created(conn, request)
                logger.info("reading request %s reopened after decline", request["id"])
                return request
            if existing["status"] == "accepted":
                raise DuplicateRequest("You already have access to this user's readings")
            if existing["status"] == "declined":
                raise DuplicateRequest("This user has declined your request")
            raise DuplicateRequest()

        request = {
            "id": str(uuid4()),
            "requester_id": requester_id,
            "owner_id": owner_id,
            "status": "pending",
            "message": message,
            "created_at": now,
            "updated_at": now,
        }
        try:
            conn.execute(
                """
                INSERT INTO reading_requests (id, requester_id, owner_id, status, message, created_at, updated_at)
                VALUES (?, ?, ?, 'pending', ?, ?, ?)
                """,
                (request["id"], requester_id, owner_id, message, now, now),
            )
        except sqlite3.IntegrityError as exc:
            # Lost a race with a concurrent request for the same pair.
            raise DuplicateRequest() from exc
        notifier.on_request_created(conn, request)
    logger.info("reading request %s created", request["id"])
    return request


def create_request_by_email(*, requester_id: str, owner_email: str, message: Optional[str] = None) -> Dict[str, Any]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT id FROM users WHERE email = ?",
            (owner_email.lower().strip(),),
        ).fetchone()
    if not row:
        raise NotFound("No user found with that email")
    return create_request(requester_id=requester_id, owner_id=row["id"], message=message)


def respond(*, request_id: str, owner_id: str, decision: str) -> Dict[str, Any]:
    status = DECISIONS.get(decision)
    if status is None:
        raise ValidationError("decision must be 'accept' or 'decline'")
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        request = fetch_request(conn, request_id)
        if not request or request["owner_id"] != owner_id:
            raise NotFound("Reading request not found")
        if request["status"] != "pending":
            raise AlreadyResolved()
        cur = conn.execute(
            "UPDATE reading_requests SET status = ?, updated_at = ? WHERE id = ? AND status = 'pending'",
            (status, now, request_id),
        )
        if cur.rowcount == 0:
            raise AlreadyResolved()
        request = {**request, "status": status, "updated_at": now}
        if status == "accepted":
            grant(conn, viewer_id=request["requester_id"], owner_id=owner_id)
            notifier.on_request_accepted(conn, request)
    logger.info("reading request %s %s", request_id, status)
    return request


def cancel_request(*, requester_id: str, request_id: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        request = fetch_request(conn, request_id)
        if not request or request["requester_id"] != requester_id:
            raise NotFound("Reading request not found")
        if request["status"] != "pending":
            raise AlreadyResolved()
        conn.execute("DELETE FROM reading_requests WHERE id = ? AND status = 'pending'", (request_id,))


def list_incoming(*, owner_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
    sql = """
        SELECT r.*, u.email AS requester_email, u.full_name AS requester_name
        FROM reading_requests r
        JOIN users u ON u.id = r.requester_id
        WHERE r.owner_id = ?
    """
    params: list[Any] = [owner_id]
    if status:
        sql += " AND r.status = ?"
        params.append(status)
    sql += " ORDER BY r.created_at DESC"
    with db_conn(settings.app_db_path) as conn:
        return [dict(r) for r in conn.execute(sql, tuple(params)).fetchall()]


def list_outgoing(*, requester_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
    sql = """
        SELECT r.*, u.email AS owner_email, u.full_name AS owner_name
        FROM reading_requests r
        JOIN users u ON u.id = r.owner_id
        WHERE r.requester_id = ?
    """
    params: list[Any] = [requester_id]
    if status:
        sql += " AND r.status = ?"
        params.append(status)
    sql += " ORDER BY r.created_at DESC"
    with db_conn(settings.app_db_path) as conn:
        return [dict(r) for r in conn.execute(sql, tuple(params)).fetchall()]
