# -*- coding: utf-8 -*-
"""Notifications: event fanout.

Each hook runs inside the transaction of the write that triggered it, so the
inbox rows and queue entries commit (or roll back) together with the business
row. Nothing here talks to the network; delivery happens later from the queue.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from ..auth.storage import display_name, fetch_user
from ..delivery import destinations
from ..delivery.queue import enqueue
from .storage import insert_notification

logger = logging.getLogger(__name__)

FRIENDS_URL = "/#friends"


def _metric_label(metric_type: str) -> str:
    return metric_type.replace("_", " ")


class EventNotifier:
    """Turns business events into inbox notifications plus queued deliveries."""

    def _fan_out(
        self,
        conn: sqlite3.Connection,
        *,
        recipients: List[str],
        actor_id: str,
        type: str,
        title: str,
        message: str,
        payload: Dict[str, Any],
        tag: str,
        require_interaction: bool = False,
    ) -> List[Dict[str, Any]]:
        created: List[Dict[str, Any]] = []
        for recipient_id in recipients:
            notification = insert_notification(
                conn,
                recipient_id=recipient_id,
                actor_id=actor_id,
                type=type,
                title=title,
                message=message,
                payload=payload,
            )
            content = {
                "type": type,
                "title": title,
                "body": message,
                "data": {
                    **payload,
                    "type": type,
                    "url": FRIENDS_URL,
                    "tag": tag,
                    "requireInteraction": require_interaction,
                },
            }
            channels = destinations.enabled_channels(conn, recipient_id, type)
            for channel in channels:
                enqueue(
                    conn,
                    recipient_id=recipient_id,
                    channel=channel,
                    content=content,
                    notification_id=notification["id"],
                )
            created.append(notification)
        return created

    def on_metric_created(self, conn: sqlite3.Connection, metric: Dict[str, Any]) -> List[Dict[str, Any]]:
        owner_id = metric["owner_id"]
        rows = conn.execute(
            "SELECT viewer_id FROM reading_permissions WHERE owner_id = ? AND status = 'active' ORDER BY created_at",
            (owner_id,),
        ).fetchall()
        viewers = [r["viewer_id"] for r in rows]
        if not viewers:
            return []
        owner_name = display_name(fetch_user(conn, owner_id))
        message = (
            f"{owner_name} added a new {_metric_label(metric['metric_type'])} reading: "
            f"{metric['value']} {metric['unit']}"
        )
        created = self._fan_out(
            conn,
            recipients=viewers,
            actor_id=owner_id,
            type="health_metric",
            title="Health Update Available",
            message=message,
            payload={
                "metric_id": metric["id"],
                "metric_type": metric["metric_type"],
                "value": metric["value"],
                "unit": metric["unit"],
                "recorded_at": metric["recorded_at"],
                "user_name": owner_name,
            },
            tag=f"health-update-{owner_id}",
        )
        logger.info("metric %s fanned out to %d viewer(s)", metric["id"], len(created))
        return created

    def on_request_created(self, conn: sqlite3.Connection, request: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        requester = fetch_user(conn, request["requester_id"])
        requester_name = display_name(requester)
        created = self._fan_out(
            conn,
            recipients=[request["owner_id"]],
            actor_id=request["requester_id"],
            type="reading_request",
            title="New Reading Request",
            message=f"{requester_name} wants to view your health readings",
            payload={
                "request_id": request["id"],
                "requester_name": requester_name,
                "requester_email": (requester or {}).get("email"),
                "message": request.get("message"),
            },
            tag=f"reading-request-{request['id']}",
            require_interaction=True,
        )
        return created[0] if created else None

    def on_request_accepted(self, conn: sqlite3.Connection, request: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        owner_name = display_name(fetch_user(conn, request["owner_id"]))
        created = self._fan_out(
            conn,
            recipients=[request["requester_id"]],
            actor_id=request["owner_id"],
            type="reading_accepted",
            title="Reading Request Accepted",
            message=f"{owner_name} has accepted your request to view their health readings!",
            payload={
                "request_id": request["id"],
                "owner_id": request["owner_id"],
                "owner_name": owner_name,
            },
            tag=f"reading-accepted-{request['id']}",
        )
        return created[0] if created else None


notifier = EventNotifier()
