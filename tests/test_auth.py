# -*- coding: utf-8 -*-

from __future__ import annotations

import base64
import json
import unittest

from fastapi.testclient import TestClient

from helpers import AppTestCase


class TestSessionTokens(AppTestCase):
    def _bearer(self, token: str) -> int:
        client = TestClient(self.app)
        self.addCleanup(client.close)
        return client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code

    def test_token_claims_and_bearer_login(self) -> None:
        from thryve.auth.security import decode_token

        client, user = self.new_user(full_name="Dana Viewer")
        resp = client.post("/api/auth/login", json={"email": user["email"], "password": "password123"})
        self.assertEqual(resp.status_code, 200)
        token = resp.json()["token"]

        claims = decode_token(token)
        self.assertEqual(claims["iss"], "thryve")
        self.assertEqual(claims["sub"], user["id"])
        self.assertEqual(claims["name"], "Dana Viewer")
        self.assertGreater(claims["exp"], claims["iat"])
        self.assertEqual(self._bearer(token), 200)

    def test_tampered_or_foreign_tokens_rejected(self) -> None:
        from thryve.auth.security import _segment, _signature

        client, user = self.new_user()
        token = client.post("/api/auth/login", json={"email": user["email"], "password": "password123"}).json()["token"]
        header, payload, sig = token.split(".")

        claims = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
        forged = dict(claims, sub="someone-else")
        self.assertEqual(self._bearer(f"{header}.{_segment(forged)}.{sig}"), 401)

        # Correctly signed but not issued by this service.
        foreign = dict(claims, iss="elsewhere")
        head = f"{header}.{_segment(foreign)}"
        self.assertEqual(self._bearer(f"{head}.{_signature(head)}"), 401)

        expired = dict(claims, exp=claims["iat"] - 1)
        head = f"{header}.{_segment(expired)}"
        self.assertEqual(self._bearer(f"{head}.{_signature(head)}"), 401)

        self.assertEqual(self._bearer("not-a-token"), 401)

    def test_password_hash_roundtrip(self) -> None:
        from thryve.auth.security import hash_password, verify_password

        stored = hash_password("correct horse")
        self.assertTrue(stored.startswith("pbkdf2_sha256$"))
        self.assertTrue(verify_password("correct horse", stored))
        self.assertFalse(verify_password("wrong", stored))
        self.assertFalse(verify_password("correct horse", "plain-text"))

    def test_wrong_password_rejected(self) -> None:
        client, user = self.new_user()
        resp = client.post("/api/auth/login", json={"email": user["email"], "password": "nope-nope"})
        self.assertEqual(resp.status_code, 401)


if __name__ == "__main__":
    unittest.main()
