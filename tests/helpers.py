# -*- coding: utf-8 -*-

from __future__ import annotations

import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from fastapi.testclient import TestClient

# Env vars a test class may override; cleared before each class so classes do not leak into each other.
_MANAGED_ENV = (
    "THRYVE_DISPATCH_TOKEN",
    "THRYVE_PUSH_GATEWAY_URL",
    "THRYVE_DELIVERY_MAX_ATTEMPTS",
    "THRYVE_DELIVERY_BACKOFF_BASE",
    "THRYVE_ALLOW_REREQUEST_AFTER_DECLINE",
    "THRYVE_ASSISTANT_API_KEY",
    "THRYVE_ASSISTANT_BASE_URL",
    "RESEND_API_KEY",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_WHATSAPP_NUMBER",
)


class AppTestCase(unittest.TestCase):
    env: Dict[str, str] = {}

    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="thryve-test-"))
        data_root = cls._tmp / "data"
        os.environ["THRYVE_DATA_ROOT"] = str(data_root)
        os.environ["THRYVE_DB_PATH"] = str(data_root / "thryve.db")
        os.environ["THRYVE_JWT_SECRET"] = "test-secret"
        for key in _MANAGED_ENV:
            os.environ.pop(key, None)
        os.environ.update(cls.env)

        # Ensure settings/app reflect the env vars above.
        for name in list(sys.modules.keys()):
            if name == "thryve" or name.startswith("thryve."):
                sys.modules.pop(name, None)

        from thryve.api import app  # noqa: WPS433 (import inside test for env control)

        cls.app = app

    @classmethod
    def tearDownClass(cls) -> None:
        for key in cls.env:
            os.environ.pop(key, None)
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def new_user(self, *, full_name: Optional[str] = "Test User", prefix: str = "user") -> Tuple[TestClient, Dict[str, Any]]:
        """Register a fresh user and return a client that carries their session cookie."""
        client = TestClient(self.app)
        self.addCleanup(client.close)
        body: Dict[str, Any] = {"email": f"{prefix}-{uuid4().hex[:8]}@example.com", "password": "password123"}
        if full_name is not None:
            body["full_name"] = full_name
        resp = client.post("/api/auth/register", json=body)
        self.assertEqual(resp.status_code, 200, resp.text)
        return client, resp.json()["user"]

    def share(self, owner: Tuple[TestClient, Dict[str, Any]], viewer: Tuple[TestClient, Dict[str, Any]]) -> None:
        """viewer asks, owner accepts."""
        resp = viewer[0].post("/api/sharing/requests", json={"owner_id": owner[1]["id"]})
        self.assertEqual(resp.status_code, 201, resp.text)
        resp = owner[0].post(f"/api/sharing/requests/{resp.json()['id']}/respond", json={"decision": "accept"})
        self.assertEqual(resp.status_code, 200, resp.text)

    def db(self):
        from thryve.app_db import db_conn
        from thryve.config import settings

        return db_conn(settings.app_db_path)
