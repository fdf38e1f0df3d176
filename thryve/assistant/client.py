# -*- coding: utf-8 -*-
"""OpenAI-compatible chat completions client for the health assistant."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..errors import AssistantUnavailable

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a warm, empathetic, and conversational health companion. Your purpose is to support users in discussing and reflecting on their physical, mental, and emotional health.

You speak like a thoughtful, understanding friend, not a doctor and not a bot. Ask gentle, open-ended questions to encourage self-reflection. Respond naturally, acknowledge feelings, and offer helpful, evidence-based suggestions when appropriate.

You can talk about:
- Energy, stress, and emotions
- Physical health: diet, fitness, hydration, pain, symptoms, blood sugar management
- Mental well-being, moods, routines, burnout, motivation
- Mindfulness, self-care, and healthy habits

Avoid or decline:
- Conversations not related to health or well-being
- Diagnosing medical conditions or providing medical treatment
- Sensitive topics that require professional help (gently encourage the user to talk to a licensed professional)

If a user brings up unrelated topics, kindly say:
"I'm here to support you with anything related to your health and well-being. Let's keep our focus there, your care matters."

Always keep the conversation two-sided: ask follow-up questions and stay curious about the user's well-being."""

# Keep the prompt bounded on long conversations.
MAX_HISTORY_MESSAGES = 20


def build_messages(message: str, history: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    for item in history[-MAX_HISTORY_MESSAGES:]:
        role = item.get("role")
        if role in ("user", "assistant") and item.get("content"):
            messages.append({"role": role, "content": str(item["content"])})
    messages.append({"role": "user", "content": message})
    return messages


async def complete(
    *,
    message: str,
    history: Optional[List[Dict[str, Any]]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Return the assistant reply or raise AssistantUnavailable."""
    if not settings.assistant_api_key:
        raise AssistantUnavailable("The health assistant is not configured")

    url = f"{settings.assistant_base_url.rstrip('/')}/chat/completions"
    body = {
        "model": settings.assistant_model,
        "messages": build_messages(message, history or []),
        "max_tokens": settings.assistant_max_tokens,
        "temperature": settings.assistant_temperature,
    }
    headers = {"Authorization": f"Bearer {settings.assistant_api_key}"}
    try:
        async with httpx.AsyncClient(timeout=settings.assistant_timeout, transport=transport) as client:
            resp = await client.post(url, json=body, headers=headers)
            resp.raise_for_status()
            data = resp.json()
    except httpx.HTTPStatusError as exc:
        logger.warning("assistant upstream returned %s: %s", exc.response.status_code, exc.response.text[:300])
        raise AssistantUnavailable() from exc
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("assistant upstream call failed: %s", exc)
        raise AssistantUnavailable() from exc

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise AssistantUnavailable() from exc
    reply = str(content or "").strip()
    if reply.startswith("Assistant:"):
        reply = reply[len("Assistant:"):].strip()
    if not reply:
        raise AssistantUnavailable()
    return reply
