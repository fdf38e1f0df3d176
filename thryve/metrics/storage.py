# -*- coding: utf-8 -*-
"""Metrics: DB storage helpers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, get_args
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings
from ..errors import NotFound, ValidationError
from ..notifications.notifier import notifier
from ..sharing.guard import require_read
from .models import MetricType

logger = logging.getLogger(__name__)

_UPDATABLE = ("value", "unit", "notes", "recorded_at")
METRIC_TYPES = get_args(MetricType)


def _iso(dt: datetime) -> str:
    # Fixed-width so recorded_at compares and sorts correctly as text.
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _utc_now() -> str:
    return _iso(datetime.now(timezone.utc))


def _normalize_timestamp(value: Optional[str]) -> str:
    if not value:
        return _utc_now()
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(f"Invalid recorded_at: {value}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return _iso(dt)


def record_metric(
    *,
    owner_id: str,
    metric_type: str,
    value: str,
    unit: str,
    notes: Optional[str] = None,
    recorded_at: Optional[str] = None,
) -> Dict[str, Any]:
    """Insert a reading and fan out to active viewers in the same transaction."""
    if metric_type not in METRIC_TYPES:
        raise ValidationError(f"Unknown metric_type: {metric_type}")
    if not str(value).strip():
        raise ValidationError("value must not be empty")
    metric = {
        "id": str(uuid4()),
        "owner_id": owner_id,
        "metric_type": metric_type,
        "value": value,
        "unit": unit,
        "notes": notes,
        "recorded_at": _normalize_timestamp(recorded_at),
        "created_at": _utc_now(),
    }
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO health_metrics (id, owner_id, metric_type, value, unit, notes, recorded_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                metric["id"],
                owner_id,
                metric_type,
                value,
                unit,
                notes,
                metric["recorded_at"],
                metric["created_at"],
            ),
        )
        notifier.on_metric_created(conn, metric)
    return metric


def list_metrics(
    *,
    viewer_id: str,
    owner_id: str,
    metric_type: Optional[str] = None,
    since: Optional[str] = None,
    until: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """Readings of `owner_id`, newest first. Raises AuthorizationError if the viewer may not read them."""
    with db_conn(settings.app_db_path) as conn:
        require_read(viewer_id, owner_id, conn)
        sql = "SELECT * FROM health_metrics WHERE owner_id = ?"
        params: list[Any] = [owner_id]
        if metric_type:
            sql += " AND metric_type = ?"
            params.append(metric_type)
        if since:
            sql += " AND recorded_at >= ?"
            params.append(_normalize_timestamp(since))
        if until:
            sql += " AND recorded_at <= ?"
            params.append(_normalize_timestamp(until))
        sql += " ORDER BY recorded_at DESC, created_at DESC LIMIT ? OFFSET ?"
        params.extend([int(limit), int(offset)])
        rows = conn.execute(sql, tuple(params)).fetchall()
        return [dict(r) for r in rows]


def get_metric(*, owner_id: str, metric_id: str) -> Dict[str, Any]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM health_metrics WHERE id = ? AND owner_id = ?",
            (metric_id, owner_id),
        ).fetchone()
    if not row:
        raise NotFound("Metric not found")
    return dict(row)


def update_metric(*, owner_id: str, metric_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Owner-only edit. Edits do not notify viewers."""
    fields = {k: v for k, v in changes.items() if k in _UPDATABLE and v is not None}
    if "recorded_at" in fields:
        fields["recorded_at"] = _normalize_timestamp(fields["recorded_at"])
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM health_metrics WHERE id = ? AND owner_id = ?",
            (metric_id, owner_id),
        ).fetchone()
        if not row:
            raise NotFound("Metric not found")
        if fields:
            assignments = ", ".join(f"{k} = ?" for k in fields)
            conn.execute(
                f"UPDATE health_metrics SET {assignments} WHERE id = ?",
                (*fields.values(), metric_id),
            )
        return {**dict(row), **fields}


def delete_metric(*, owner_id: str, metric_id: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "DELETE FROM health_metrics WHERE id = ? AND owner_id = ?",
            (metric_id, owner_id),
        )
        if cur.rowcount == 0:
            raise NotFound("Metric not found")
    logger.info("metric %s deleted by owner %s", metric_id, owner_id)
