# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from helpers import AppTestCase


class TestShareBlockScenario(AppTestCase):
    def test_request_accept_read_notify_block(self) -> None:
        from thryve.sharing.guard import can_read

        a_client, a = self.new_user(full_name="Alex", prefix="a")
        b_client, b = self.new_user(full_name="Blake", prefix="b")

        # A asks to view B's readings.
        resp = a_client.post("/api/sharing/requests", json={"owner_id": b["id"]})
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["status"], "pending")
        request_id = resp.json()["id"]
        self.assertFalse(can_read(a["id"], b["id"]))

        # B accepts.
        resp = b_client.post(f"/api/sharing/requests/{request_id}/respond", json={"decision": "accept"})
        self.assertEqual(resp.json()["status"], "accepted")
        self.assertTrue(can_read(a["id"], b["id"]))
        self.assertEqual(a_client.get(f"/api/metrics/users/{b['id']}").status_code, 200)

        # B logs a reading; A gets exactly one notification for it.
        resp = b_client.post(
            "/api/metrics", json={"metric_type": "blood_pressure", "value": "120/80", "unit": "mmHg"}
        )
        self.assertEqual(resp.status_code, 201)
        items = [n for n in a_client.get("/api/notifications").json()["items"] if n["type"] == "health_metric"]
        self.assertEqual(len(items), 1)
        self.assertIn("120/80", items[0]["message"])
        self.assertIn("mmHg", items[0]["message"])

        readings = a_client.get(f"/api/metrics/users/{b['id']}").json()
        self.assertEqual([r["value"] for r in readings["items"]], ["120/80"])

        # B blocks A: no reads, no further notifications.
        resp = b_client.post(f"/api/sharing/viewers/{a['id']}/block")
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(can_read(a["id"], b["id"]))
        self.assertEqual(a_client.get(f"/api/metrics/users/{b['id']}").status_code, 403)

        b_client.post("/api/metrics", json={"metric_type": "heart_rate", "value": 64, "unit": "bpm"})
        items = [n for n in a_client.get("/api/notifications").json()["items"] if n["type"] == "health_metric"]
        self.assertEqual(len(items), 1)

    def test_profile_and_logout(self) -> None:
        client, user = self.new_user(full_name="Before")
        resp = client.patch("/api/auth/me", json={"full_name": "After"})
        self.assertEqual(resp.json()["full_name"], "After")

        self.assertEqual(client.post("/api/auth/logout").status_code, 200)
        self.assertEqual(client.get("/api/auth/me").status_code, 401)

        resp = client.post("/api/auth/login", json={"email": user["email"], "password": "password123"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(client.get("/api/auth/me").json()["full_name"], "After")

        resp = client.post("/api/auth/login", json={"email": user["email"], "password": "wrong-password"})
        self.assertEqual(resp.status_code, 401)


if __name__ == "__main__":
    unittest.main()
