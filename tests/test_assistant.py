# -*- coding: utf-8 -*-

from __future__ import annotations

import asyncio
import json
import unittest
from typing import List
from unittest import mock

import httpx

from helpers import AppTestCase


class TestAssistant(AppTestCase):
    env = {
        "THRYVE_ASSISTANT_API_KEY": "test-key",
        # Make the upstream fail fast so message posting degrades deterministically.
        "THRYVE_ASSISTANT_BASE_URL": "http://127.0.0.1:1/v1",
    }

    def _complete(self, handler, **kwargs) -> str:
        from thryve.assistant.client import complete

        return asyncio.run(complete(transport=httpx.MockTransport(handler), **kwargs))

    def test_complete_builds_prompt(self) -> None:
        from thryve.assistant.client import SYSTEM_PROMPT

        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"choices": [{"message": {"content": "  How did you sleep?  "}}]})

        reply = self._complete(
            handler,
            message="I feel tired",
            history=[{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
        )
        self.assertEqual(reply, "How did you sleep?")
        body = json.loads(seen[0].content)
        self.assertEqual(body["messages"][0], {"role": "system", "content": SYSTEM_PROMPT})
        self.assertEqual([m["role"] for m in body["messages"][1:]], ["user", "assistant", "user"])
        self.assertEqual(body["messages"][-1]["content"], "I feel tired")
        self.assertEqual(body["max_tokens"], 300)
        self.assertEqual(body["temperature"], 0.7)
        self.assertEqual(seen[0].headers["authorization"], "Bearer test-key")
        self.assertTrue(str(seen[0].url).endswith("/chat/completions"))

    def test_complete_failures(self) -> None:
        from thryve.errors import AssistantUnavailable

        def upstream_error(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="overloaded")

        def empty_reply(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": [{"message": {"content": "   "}}]})

        def bad_shape(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        for handler in (upstream_error, empty_reply, bad_shape):
            with self.assertRaises(AssistantUnavailable):
                self._complete(handler, message="hello")

    def test_conversation_crud(self) -> None:
        client, _ = self.new_user()
        other, _ = self.new_user(prefix="other")

        resp = client.post("/api/assistant/conversations", json={"title": "Sleep"})
        self.assertEqual(resp.status_code, 200)
        conversation_id = resp.json()["id"]

        self.assertEqual(client.get("/api/assistant/conversations").json()["count"], 1)
        self.assertEqual(other.get(f"/api/assistant/conversations/{conversation_id}").status_code, 404)

        self.assertEqual(client.delete(f"/api/assistant/conversations/{conversation_id}").status_code, 200)
        self.assertEqual(client.get(f"/api/assistant/conversations/{conversation_id}").status_code, 404)

    def test_upstream_failure_keeps_user_message_only(self) -> None:
        client, _ = self.new_user()
        conversation_id = client.post("/api/assistant/conversations", json={}).json()["id"]

        resp = client.post(f"/api/assistant/conversations/{conversation_id}/messages", json={"content": "hello"})
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json()["error"], "AssistantUnavailable")

        messages = client.get(f"/api/assistant/conversations/{conversation_id}").json()["messages"]
        self.assertEqual([(m["role"], m["content"]) for m in messages], [("user", "hello")])

    def test_reply_is_stored(self) -> None:
        from thryve.assistant import api as assistant_api

        client, _ = self.new_user()
        conversation_id = client.post("/api/assistant/conversations", json={"title": "Stress"}).json()["id"]

        async def fake_complete(*, message, history):
            return f"echo: {message} ({len(history)} earlier)"

        with mock.patch.object(assistant_api, "complete", fake_complete):
            resp = client.post(f"/api/assistant/conversations/{conversation_id}/messages", json={"content": "hi"})
            self.assertEqual(resp.status_code, 200, resp.text)
            self.assertEqual(resp.json()["assistant_message"]["content"], "echo: hi (0 earlier)")
            resp = client.post(f"/api/assistant/conversations/{conversation_id}/messages", json={"content": "again"})
            self.assertEqual(resp.json()["assistant_message"]["content"], "echo: again (2 earlier)")

        messages = client.get(f"/api/assistant/conversations/{conversation_id}").json()["messages"]
        self.assertEqual([m["role"] for m in messages], ["user", "assistant", "user", "assistant"])


class TestAssistantNotConfigured(AppTestCase):
    def test_missing_key_is_unavailable(self) -> None:
        client, _ = self.new_user()
        conversation_id = client.post("/api/assistant/conversations", json={}).json()["id"]
        resp = client.post(f"/api/assistant/conversations/{conversation_id}/messages", json={"content": "hello"})
        self.assertEqual(resp.status_code, 503)


if __name__ == "__main__":
    unittest.main()
