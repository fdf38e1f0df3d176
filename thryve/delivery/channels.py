# -*- coding: utf-8 -*-
"""Delivery: channel senders (web push gateway, Resend email, Twilio WhatsApp).

Every sender reports exactly one outcome per destination and never raises for
provider errors: a destination the provider says is gone is `permanently_invalid`,
anything else that went wrong is `transient_error`.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..errors import DeliveryError
from .destinations import Destination

logger = logging.getLogger(__name__)


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    PERMANENTLY_INVALID = "permanently_invalid"
    TRANSIENT_ERROR = "transient_error"


@dataclass
class SendResult:
    outcome: DeliveryOutcome
    error: Optional[str] = None


class ChannelSender:
    channel: str = ""

    def __init__(self, client: Optional[httpx.Client] = None) -> None:
        self._client = client

    def send(self, destination: Destination, content: Dict[str, Any]) -> SendResult:
        try:
            if self._client is not None:
                self._deliver(self._client, destination, content)
            else:
                with httpx.Client(timeout=settings.delivery_timeout) as client:
                    self._deliver(client, destination, content)
        except DeliveryError as exc:
            outcome = DeliveryOutcome.PERMANENTLY_INVALID if exc.permanent else DeliveryOutcome.TRANSIENT_ERROR
            logger.warning("%s delivery to %s failed (%s): %s", self.channel, destination.id, outcome.value, exc.detail)
            return SendResult(outcome, exc.detail)
        except httpx.HTTPError as exc:
            logger.warning("%s delivery to %s failed: %s", self.channel, destination.id, exc)
            return SendResult(DeliveryOutcome.TRANSIENT_ERROR, f"{type(exc).__name__}: {exc}")
        return SendResult(DeliveryOutcome.DELIVERED)

    def _deliver(self, client: httpx.Client, destination: Destination, content: Dict[str, Any]) -> None:
        raise NotImplementedError


def _raise_for_status(resp: httpx.Response, *, permanent: bool = False) -> None:
    if resp.status_code < 400:
        return
    body = (resp.text or "")[:500]
    raise DeliveryError(f"HTTP {resp.status_code}: {body}", permanent=permanent, status_code=resp.status_code)


class PushSender(ChannelSender):
    """Posts the subscription plus payload to a web-push gateway that handles VAPID signing.

    With no gateway configured the send is logged and treated as delivered (local dev).
    """

    channel = "push"

    def _deliver(self, client: httpx.Client, destination: Destination, content: Dict[str, Any]) -> None:
        payload = {
            "title": content.get("title") or "Thryve",
            "body": content.get("body") or "",
            "icon": "/icon-192x192.png",
            "badge": "/icon-192x192.png",
            "data": content.get("data") or {},
        }
        if not settings.push_gateway_url:
            logger.info("push gateway not configured; would send to %s: %s", destination.id, payload["title"])
            return
        resp = client.post(
            settings.push_gateway_url,
            json={
                "subscription": {"endpoint": destination.address, "keys": destination.meta.get("keys") or {}},
                "payload": payload,
            },
        )
        # 404/410 from the push service means the subscription expired or was revoked.
        _raise_for_status(resp, permanent=resp.status_code in (404, 410))


_EMAIL_SUBJECTS = {
    "reading_request": "New Reading Access Request - Thryve",
    "reading_accepted": "Reading Access Approved - Thryve",
    "health_metric": "Health Update - Thryve",
}


def render_email(content: Dict[str, Any]) -> Dict[str, str]:
    subject = _EMAIL_SUBJECTS.get(str(content.get("type") or ""), "Thryve Notification")
    title = html.escape(str(content.get("title") or ""))
    body = html.escape(str(content.get("body") or ""))
    link = f"{settings.app_url.rstrip('/')}/{str((content.get('data') or {}).get('url') or '').lstrip('/')}"
    return {
        "subject": subject,
        "html": (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
            f"<h2>{title}</h2>"
            f"<p>{body}</p>"
            f'<p><a href="{html.escape(link)}">Open Thryve</a></p>'
            "</div>"
        ),
    }


class EmailSender(ChannelSender):
    channel = "email"

    def _deliver(self, client: httpx.Client, destination: Destination, content: Dict[str, Any]) -> None:
        if not settings.resend_api_key:
            raise DeliveryError("RESEND_API_KEY is not configured")
        rendered = render_email(content)
        resp = client.post(
            f"{settings.resend_base_url.rstrip('/')}/emails",
            headers={"Authorization": f"Bearer {settings.resend_api_key}"},
            json={
                "from": settings.email_from,
                "to": [destination.address],
                "subject": rendered["subject"],
                "html": rendered["html"],
            },
        )
        # Resend rejects malformed or unknown recipients with 422.
        _raise_for_status(resp, permanent=resp.status_code == 422)


_METRIC_EMOJI = {
    "blood_pressure": "❤️",
    "heart_rate": "💓",
    "temperature": "🌡️",
    "weight": "⚖️",
    "sleep": "😴",
}

# Twilio error codes for an invalid or non-WhatsApp recipient number.
_TWILIO_INVALID_RECIPIENT = {21211, 21614}


def render_whatsapp(content: Dict[str, Any]) -> str:
    data = content.get("data") or {}
    if content.get("type") == "health_metric":
        metric_type = str(data.get("metric_type") or "")
        emoji = _METRIC_EMOJI.get(metric_type, "📊")
        type_name = metric_type.replace("_", " ").upper()
        when = str(data.get("recorded_at") or "")
        try:
            when = datetime.fromisoformat(when.replace("Z", "+00:00")).strftime("%H:%M")
        except ValueError:
            pass
        return (
            f"{emoji} *Health Update*\n\n"
            f"*{type_name}*: {data.get('value')} {data.get('unit')}\n"
            f"*Time*: {when}\n\n"
            "Stay healthy! 🌟"
        )
    return f"*{content.get('title') or 'Thryve'}*\n\n{content.get('body') or ''}"


def _whatsapp_address(number: str) -> str:
    return number if number.startswith("whatsapp:") else f"whatsapp:{number}"


class WhatsAppSender(ChannelSender):
    channel = "whatsapp"

    def _deliver(self, client: httpx.Client, destination: Destination, content: Dict[str, Any]) -> None:
        sid = settings.twilio_account_sid
        token = settings.twilio_auth_token
        from_number = settings.twilio_whatsapp_number
        if not (sid and token and from_number):
            raise DeliveryError("Twilio credentials are not configured")
        resp = client.post(
            f"{settings.twilio_base_url.rstrip('/')}/2010-04-01/Accounts/{sid}/Messages.json",
            auth=(sid, token),
            data={
                "From": _whatsapp_address(from_number),
                "To": _whatsapp_address(destination.address),
                "Body": render_whatsapp(content),
            },
        )
        permanent = False
        if resp.status_code == 400:
            try:
                permanent = int(resp.json().get("code") or 0) in _TWILIO_INVALID_RECIPIENT
            except (ValueError, AttributeError):
                permanent = False
        _raise_for_status(resp, permanent=permanent)


_SENDERS = {
    "push": PushSender,
    "email": EmailSender,
    "whatsapp": WhatsAppSender,
}


def build_sender(channel: str, client: Optional[httpx.Client] = None) -> ChannelSender:
    try:
        return _SENDERS[channel](client)
    except KeyError as exc:
        raise ValueError(f"unknown channel: {channel}") from exc
