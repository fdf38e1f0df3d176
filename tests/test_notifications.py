# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from helpers import AppTestCase


class TestMetricFanout(AppTestCase):
    def _queue_rows(self, recipient_id: str):
        with self.db() as conn:
            rows = conn.execute(
                "SELECT channel, status, notification_id FROM delivery_queue WHERE recipient_id = ? ORDER BY channel",
                (recipient_id,),
            ).fetchall()
            return [dict(r) for r in rows]

    def test_metric_notifies_active_viewers_only(self) -> None:
        owner = self.new_user(full_name="Alice Owner", prefix="owner")
        viewer_a = self.new_user(prefix="viewer-a")
        viewer_b = self.new_user(prefix="viewer-b")
        blocked = self.new_user(prefix="blocked")
        for viewer in (viewer_a, viewer_b, blocked):
            self.share(owner, viewer)
        owner[0].post(f"/api/sharing/viewers/{blocked[1]['id']}/block")

        resp = owner[0].post(
            "/api/metrics",
            json={"metric_type": "blood_pressure", "value": "120/80", "unit": "mmHg"},
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        metric = resp.json()
        self.assertEqual(metric["value"], "120/80")

        for viewer in (viewer_a, viewer_b):
            items = viewer[0].get("/api/notifications").json()["items"]
            metric_items = [n for n in items if n["type"] == "health_metric"]
            self.assertEqual(len(metric_items), 1)
            n = metric_items[0]
            self.assertEqual(n["title"], "Health Update Available")
            self.assertEqual(n["message"], "Alice Owner added a new blood pressure reading: 120/80 mmHg")
            self.assertEqual(n["actor_id"], owner[1]["id"])
            self.assertEqual(n["payload"]["metric_type"], "blood_pressure")
            self.assertEqual(n["payload"]["user_name"], "Alice Owner")
            self.assertFalse(n["is_read"])

        blocked_items = blocked[0].get("/api/notifications").json()["items"]
        self.assertEqual([n for n in blocked_items if n["type"] == "health_metric"], [])

        # Owner does not notify themselves.
        owner_items = owner[0].get("/api/notifications").json()["items"]
        self.assertEqual([n for n in owner_items if n["type"] == "health_metric"], [])

    def test_metric_without_viewers_creates_nothing(self) -> None:
        owner_client, owner = self.new_user(prefix="lonely")
        resp = owner_client.post("/api/metrics", json={"metric_type": "heart_rate", "value": 72, "unit": "bpm"})
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["value"], "72")
        with self.db() as conn:
            n = conn.execute(
                "SELECT COUNT(1) AS n FROM notifications WHERE actor_id = ?", (owner["id"],)
            ).fetchone()["n"]
        self.assertEqual(n, 0)

    def test_queue_entries_follow_channel_preferences(self) -> None:
        owner = self.new_user(prefix="owner")
        push_viewer = self.new_user(prefix="push")
        quiet_viewer = self.new_user(prefix="quiet")
        multi_viewer = self.new_user(prefix="multi")
        self.share(owner, push_viewer)
        self.share(owner, quiet_viewer)
        self.share(owner, multi_viewer)

        resp = quiet_viewer[0].patch("/api/delivery/settings", json={"instant_alerts_enabled": False})
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["instant_alerts_enabled"])
        self.assertTrue(resp.json()["push_enabled"])
        multi_viewer[0].patch("/api/delivery/settings", json={"email_enabled": True, "whatsapp_enabled": True})

        owner[0].post("/api/metrics", json={"metric_type": "weight", "value": 70.5, "unit": "kg"})

        rows = self._queue_rows(push_viewer[1]["id"])
        # One entry for the acceptance notice and one for the metric, both on push.
        self.assertEqual([r["channel"] for r in rows], ["push", "push"])
        self.assertTrue(all(r["status"] == "pending" for r in rows))

        rows = self._queue_rows(quiet_viewer[1]["id"])
        self.assertEqual([r["channel"] for r in rows], ["push"])  # acceptance only
        items = quiet_viewer[0].get("/api/notifications").json()["items"]
        # Inbox row is still written when instant alerts are off.
        self.assertIn("health_metric", [n["type"] for n in items])

        rows = self._queue_rows(multi_viewer[1]["id"])
        # Acceptance went out on push only; the metric on every enabled channel.
        self.assertEqual(sorted(r["channel"] for r in rows), ["email", "push", "push", "whatsapp"])

    def test_metric_edit_does_not_notify(self) -> None:
        owner = self.new_user(prefix="owner")
        viewer = self.new_user(prefix="viewer")
        self.share(owner, viewer)
        metric = owner[0].post("/api/metrics", json={"metric_type": "sleep", "value": 7, "unit": "hours"}).json()

        resp = owner[0].patch(f"/api/metrics/{metric['id']}", json={"value": 8})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["value"], "8")

        # Viewer cannot edit or delete.
        self.assertEqual(viewer[0].patch(f"/api/metrics/{metric['id']}", json={"value": 9}).status_code, 404)
        self.assertEqual(viewer[0].delete(f"/api/metrics/{metric['id']}").status_code, 404)

        items = viewer[0].get("/api/notifications").json()["items"]
        self.assertEqual(len([n for n in items if n["type"] == "health_metric"]), 1)

        readings = viewer[0].get(f"/api/metrics/users/{owner[1]['id']}").json()
        self.assertEqual(readings["items"][0]["value"], "8")

        self.assertEqual(owner[0].delete(f"/api/metrics/{metric['id']}").status_code, 200)
        self.assertEqual(viewer[0].get(f"/api/metrics/users/{owner[1]['id']}").json()["count"], 0)

    def test_invalid_metric_type_rejected(self) -> None:
        client, _ = self.new_user()
        resp = client.post("/api/metrics", json={"metric_type": "glucose", "value": 5, "unit": "mmol/L"})
        self.assertEqual(resp.status_code, 422)


class TestRequestNotifications(AppTestCase):
    def test_request_and_acceptance_messages(self) -> None:
        owner_client, owner = self.new_user(full_name="Bob Owner", prefix="owner")
        viewer_client, viewer = self.new_user(full_name=None, prefix="carol")

        request_id = viewer_client.post("/api/sharing/requests", json={"owner_id": owner["id"]}).json()["id"]
        items = owner_client.get("/api/notifications").json()["items"]
        self.assertEqual(len(items), 1)
        local_part = viewer["email"].split("@", 1)[0]
        self.assertEqual(items[0]["type"], "reading_request")
        self.assertEqual(items[0]["title"], "New Reading Request")
        self.assertEqual(items[0]["message"], f"{local_part} wants to view your health readings")
        self.assertEqual(items[0]["payload"]["request_id"], request_id)

        owner_client.post(f"/api/sharing/requests/{request_id}/respond", json={"decision": "accept"})
        items = viewer_client.get("/api/notifications").json()["items"]
        self.assertEqual(items[0]["title"], "Reading Request Accepted")
        self.assertEqual(items[0]["message"], "Bob Owner has accepted your request to view their health readings!")

    def test_decline_sends_nothing(self) -> None:
        owner_client, owner = self.new_user(prefix="owner")
        viewer_client, _ = self.new_user(prefix="viewer")
        request_id = viewer_client.post("/api/sharing/requests", json={"owner_id": owner["id"]}).json()["id"]
        owner_client.post(f"/api/sharing/requests/{request_id}/respond", json={"decision": "decline"})
        self.assertEqual(viewer_client.get("/api/notifications").json()["items"], [])

    def test_reading_request_payload_requires_interaction(self) -> None:
        _, owner = self.new_user(prefix="owner")
        viewer_client, _ = self.new_user(prefix="viewer")
        viewer_client.post("/api/sharing/requests", json={"owner_id": owner["id"]})
        from thryve.delivery.queue import claim_batch

        entries = [e for e in claim_batch(channel="push", batch_size=50) if e["recipient_id"] == owner["id"]]
        self.assertEqual(len(entries), 1)
        data = entries[0]["content"]["data"]
        self.assertEqual(data["type"], "reading_request")
        self.assertEqual(data["url"], "/#friends")
        self.assertTrue(data["requireInteraction"])


class TestInbox(AppTestCase):
    def test_read_state_and_delete(self) -> None:
        owner = self.new_user(prefix="owner")
        viewer = self.new_user(prefix="viewer")
        self.share(owner, viewer)
        for value in (60, 61, 62):
            owner[0].post("/api/metrics", json={"metric_type": "heart_rate", "value": value, "unit": "bpm"})

        client = viewer[0]
        body = client.get("/api/notifications").json()
        self.assertEqual(body["unread"], 4)
        ids = [n["id"] for n in body["items"]]

        self.assertEqual(client.post(f"/api/notifications/{ids[0]}/read").status_code, 200)
        self.assertEqual(client.get("/api/notifications/unread-count").json()["unread"], 3)
        unread = client.get("/api/notifications?unread_only=true").json()["items"]
        self.assertNotIn(ids[0], [n["id"] for n in unread])

        # Another user cannot touch this inbox.
        self.assertEqual(owner[0].post(f"/api/notifications/{ids[1]}/read").status_code, 404)
        self.assertEqual(owner[0].delete(f"/api/notifications/{ids[1]}").status_code, 404)

        self.assertEqual(client.post("/api/notifications/read-all").json()["updated"], 3)
        self.assertEqual(client.get("/api/notifications/unread-count").json()["unread"], 0)

        self.assertEqual(client.delete(f"/api/notifications/{ids[1]}").status_code, 200)
        self.assertEqual(client.get("/api/notifications").json()["count"], 3)


if __name__ == "__main__":
    unittest.main()
