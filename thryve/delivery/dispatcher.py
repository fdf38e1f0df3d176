# -*- coding: utf-8 -*-
"""Delivery: batch dispatcher for one channel.

run_batch claims due entries, sends each to every active destination of its
recipient, records one attempt row per destination, and finalizes the entry:

- no destinations           -> sent
- at least one delivered     -> sent
- nothing delivered          -> failed (or back to pending with backoff when
                                retries are enabled and every failure was transient)

Before each entry is sent its claim is renewed. An entry whose claim was taken
over by another dispatcher is skipped without sending.

Network calls happen outside any database transaction.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..app_db import db_conn
from ..config import settings
from . import destinations
from .channels import ChannelSender, DeliveryOutcome, SendResult, build_sender
from .queue import CHANNELS, claim_batch, finalize_entry, record_attempt, renew_claim

logger = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    channel: str
    claimed: int = 0
    sent: int = 0
    failed: int = 0
    retried: int = 0
    deactivated: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Dispatcher:
    def __init__(
        self,
        channel: str,
        sender: Optional[ChannelSender] = None,
        *,
        max_attempts: Optional[int] = None,
        backoff_base: Optional[float] = None,
    ) -> None:
        if channel not in CHANNELS:
            raise ValueError(f"unknown channel: {channel}")
        self.channel = channel
        self.sender = sender or build_sender(channel)
        self.max_attempts = max(int(max_attempts or settings.delivery_max_attempts), 1)
        self.backoff_base = float(settings.delivery_backoff_base if backoff_base is None else backoff_base)

    def run_batch(self, batch_size: Optional[int] = None, *, now: Optional[datetime] = None) -> DispatchReport:
        entries = claim_batch(
            channel=self.channel,
            batch_size=batch_size or settings.delivery_batch_size,
            now=now,
        )
        return self.process(entries)

    def process(self, entries: Iterable[Dict[str, Any]]) -> DispatchReport:
        """Deliver entries previously returned by `claim_batch`."""
        report = DispatchReport(channel=self.channel)
        for entry in entries:
            report.claimed += 1
            try:
                status, deactivated = self._process_entry(entry)
            except Exception as exc:  # noqa: BLE001
                logger.exception("dispatch of entry %s failed", entry["id"])
                with db_conn(settings.app_db_path) as conn:
                    finalize_entry(
                        conn,
                        entry_id=entry["id"],
                        claim_id=entry["claim_id"],
                        status="failed",
                        error=f"{type(exc).__name__}: {exc}",
                    )
                report.failed += 1
                continue
            report.deactivated += deactivated
            if status == "sent":
                report.sent += 1
            elif status == "pending":
                report.retried += 1
            elif status == "skipped":
                report.skipped += 1
            else:
                report.failed += 1
        if report.claimed:
            logger.info(
                "dispatch %s: claimed=%d sent=%d failed=%d retried=%d deactivated=%d skipped=%d",
                self.channel,
                report.claimed,
                report.sent,
                report.failed,
                report.retried,
                report.deactivated,
                report.skipped,
            )
        return report

    def _process_entry(self, entry: Dict[str, Any]) -> Tuple[str, int]:
        content = entry.get("content") or {}
        with db_conn(settings.app_db_path) as conn:
            if not renew_claim(conn, entry_id=entry["id"], claim_id=entry["claim_id"]):
                logger.warning("entry %s was taken over by another dispatcher; skipping", entry["id"])
                return "skipped", 0
            targets = destinations.resolve(
                conn,
                channel=self.channel,
                user_id=entry["recipient_id"],
                notification_type=str(content.get("type") or ""),
            )

        results: List[Tuple[destinations.Destination, SendResult]] = [
            (dest, self.sender.send(dest, content)) for dest in targets
        ]

        delivered = [r for _, r in results if r.outcome == DeliveryOutcome.DELIVERED]
        invalid = [d for d, r in results if r.outcome == DeliveryOutcome.PERMANENTLY_INVALID]
        transient = [r for _, r in results if r.outcome == DeliveryOutcome.TRANSIENT_ERROR]

        retry_at: Optional[datetime] = None
        error: Optional[str] = None
        if not results or delivered:
            status = "sent"
        else:
            errors = [r.error for _, r in results if r.error]
            error = "; ".join(errors)[:1000] or "delivery failed"
            attempts_after = int(entry.get("attempts") or 0) + 1
            if transient and not invalid and attempts_after < self.max_attempts:
                status = "pending"
                delay = self.backoff_base * (2 ** (attempts_after - 1))
                retry_at = datetime.now(timezone.utc) + timedelta(seconds=delay)
            else:
                status = "failed"

        with db_conn(settings.app_db_path) as conn:
            for dest, result in results:
                record_attempt(
                    conn,
                    entry_id=entry["id"],
                    destination_id=dest.id,
                    outcome=result.outcome.value,
                    error=result.error,
                )
            for dest in invalid:
                destinations.deactivate(conn, dest)
                logger.info("deactivated %s destination %s", dest.channel, dest.id)
            owned = finalize_entry(
                conn,
                entry_id=entry["id"],
                claim_id=entry["claim_id"],
                status=status,
                error=error,
                retry_at=retry_at,
            )
        if not owned:
            logger.warning("entry %s was reclaimed before it could be finalized", entry["id"])
        return status, len(invalid)


def dispatch_channel(channel: str, batch_size: Optional[int] = None) -> DispatchReport:
    return Dispatcher(channel).run_batch(batch_size)
