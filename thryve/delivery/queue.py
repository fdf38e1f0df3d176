# -*- coding: utf-8 -*-
"""Delivery: durable outbound queue.

Entries move pending -> sent | failed. A batch is claimed by stamping a fresh
`claim_id` on due, unclaimed rows under a write lock, so two dispatchers running
at the same time never receive the same entry. A claim older than the claim TTL
is considered abandoned and may be taken over. A dispatcher renews its claim
right before sending each entry and drops the entry if the renewal fails.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings

CHANNELS = ("push", "email", "whatsapp")
MAX_BATCH_SIZE = 50


def _utc_now() -> str:
    return _iso(datetime.now(timezone.utc))


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _row_to_entry(row: sqlite3.Row) -> Dict[str, Any]:
    d = dict(row)
    try:
        d["content"] = json.loads(d.pop("content_json") or "{}")
    except json.JSONDecodeError:
        d["content"] = {}
    return d


def enqueue(
    conn: sqlite3.Connection,
    *,
    recipient_id: str,
    channel: str,
    content: Dict[str, Any],
    notification_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Insert a pending entry inside the caller's transaction."""
    if channel not in CHANNELS:
        raise ValueError(f"unknown channel: {channel}")
    entry_id = str(uuid4())
    now = _utc_now()
    conn.execute(
        """
        INSERT INTO delivery_queue (id, recipient_id, channel, notification_id, content_json, status, attempts, created_at)
        VALUES (?, ?, ?, ?, ?, 'pending', 0, ?)
        """,
        (entry_id, recipient_id, channel, notification_id, json.dumps(content, ensure_ascii=False), now),
    )
    return {
        "id": entry_id,
        "recipient_id": recipient_id,
        "channel": channel,
        "notification_id": notification_id,
        "content": content,
        "status": "pending",
        "attempts": 0,
        "created_at": now,
    }


def claim_batch(*, channel: str, batch_size: int, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Claim up to `batch_size` due pending entries, oldest first."""
    batch_size = max(1, min(int(batch_size), MAX_BATCH_SIZE))
    now_dt = now or datetime.now(timezone.utc)
    now_s = _iso(now_dt)
    stale_before = _iso(now_dt - timedelta(seconds=settings.delivery_claim_ttl))
    claim_id = str(uuid4())
    with db_conn(settings.app_db_path) as conn:
        conn.execute("BEGIN IMMEDIATE")
        conn.execute(
            """
            UPDATE delivery_queue
            SET claim_id = ?, claimed_at = ?
            WHERE id IN (
                SELECT id FROM delivery_queue
                WHERE channel = ?
                  AND status = 'pending'
                  AND (next_attempt_at IS NULL OR next_attempt_at <= ?)
                  AND (claim_id IS NULL OR claimed_at < ?)
                ORDER BY created_at ASC, rowid ASC
                LIMIT ?
            )
            """,
            (claim_id, now_s, channel, now_s, stale_before, batch_size),
        )
        rows = conn.execute(
            "SELECT * FROM delivery_queue WHERE claim_id = ? ORDER BY created_at ASC, rowid ASC",
            (claim_id,),
        ).fetchall()
        return [_row_to_entry(r) for r in rows]


def renew_claim(conn: sqlite3.Connection, *, entry_id: str, claim_id: str) -> bool:
    """Refresh `claimed_at` for an entry still held under `claim_id`.

    Returns False when another dispatcher has taken the entry over; the caller
    must then leave it alone.
    """
    cur = conn.execute(
        "UPDATE delivery_queue SET claimed_at = ? WHERE id = ? AND claim_id = ? AND status = 'pending'",
        (_utc_now(), entry_id, claim_id),
    )
    return cur.rowcount > 0


def record_attempt(
    conn: sqlite3.Connection, *, entry_id: str, destination_id: str, outcome: str, error: Optional[str] = None
) -> None:
    conn.execute(
        """
        INSERT INTO delivery_attempts (id, entry_id, destination_id, outcome, error, attempted_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (str(uuid4()), entry_id, destination_id, outcome, error, _utc_now()),
    )


def finalize_entry(
    conn: sqlite3.Connection,
    *,
    entry_id: str,
    claim_id: str,
    status: str,
    error: Optional[str] = None,
    retry_at: Optional[datetime] = None,
) -> bool:
    """Close out a claimed entry. Returns False if the claim was lost."""
    now = _utc_now()
    cur = conn.execute(
        """
        UPDATE delivery_queue
        SET status = ?, attempts = attempts + 1, attempted_at = ?, error = ?,
            next_attempt_at = ?, claim_id = NULL, claimed_at = NULL
        WHERE id = ? AND claim_id = ?
        """,
        (status, now, error, _iso(retry_at) if retry_at else None, entry_id, claim_id),
    )
    return cur.rowcount > 0


def get_entry(entry_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM delivery_queue WHERE id = ?", (entry_id,)).fetchone()
        return _row_to_entry(row) if row else None


def list_attempts(entry_id: str) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM delivery_attempts WHERE entry_id = ? ORDER BY attempted_at ASC, rowid ASC",
            (entry_id,),
        ).fetchall()
        return [dict(r) for r in rows]


def queue_stats() -> Dict[str, Dict[str, int]]:
    stats: Dict[str, Dict[str, int]] = {
        channel: {"pending": 0, "sent": 0, "failed": 0} for channel in CHANNELS
    }
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT channel, status, COUNT(1) AS n FROM delivery_queue GROUP BY channel, status"
        ).fetchall()
    for r in rows:
        stats.setdefault(r["channel"], {})[r["status"]] = int(r["n"])
    return stats
