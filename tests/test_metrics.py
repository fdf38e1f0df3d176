# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from helpers import AppTestCase


class TestMetricStorage(AppTestCase):
    def test_time_filters_respect_fractional_seconds(self) -> None:
        client, _ = self.new_user()
        for recorded_at in ("2024-01-01T10:00:00Z", "2024-01-01T10:00:00.300000Z", "2024-01-01T09:59:59.900Z"):
            resp = client.post(
                "/api/metrics",
                json={"metric_type": "heart_rate", "value": 70, "unit": "bpm", "recorded_at": recorded_at},
            )
            self.assertEqual(resp.status_code, 201, resp.text)

        resp = client.get("/api/metrics", params={"since": "2024-01-01T10:00:00Z"})
        self.assertEqual(
            [m["recorded_at"] for m in resp.json()["items"]],
            ["2024-01-01T10:00:00.300000Z", "2024-01-01T10:00:00.000000Z"],
        )

        resp = client.get("/api/metrics", params={"until": "2024-01-01T10:00:00Z"})
        self.assertEqual(
            [m["recorded_at"] for m in resp.json()["items"]],
            ["2024-01-01T10:00:00.000000Z", "2024-01-01T09:59:59.900000Z"],
        )

        # Offsets are normalized to UTC before comparing.
        resp = client.get("/api/metrics", params={"since": "2024-01-01T11:00:00.200+01:00"})
        self.assertEqual([m["recorded_at"] for m in resp.json()["items"]], ["2024-01-01T10:00:00.300000Z"])

    def test_unknown_metric_type_rejected_by_storage(self) -> None:
        from thryve.errors import ValidationError
        from thryve.metrics.storage import list_metrics, record_metric

        _, me = self.new_user()
        with self.assertRaises(ValidationError):
            record_metric(owner_id=me["id"], metric_type="glucose", value="5.4", unit="mmol/L")
        with self.assertRaises(ValidationError):
            record_metric(owner_id=me["id"], metric_type="weight", value="  ", unit="kg")
        self.assertEqual(list_metrics(viewer_id=me["id"], owner_id=me["id"]), [])

    def test_invalid_recorded_at_rejected(self) -> None:
        client, _ = self.new_user()
        resp = client.post(
            "/api/metrics",
            json={"metric_type": "weight", "value": 70, "unit": "kg", "recorded_at": "yesterday"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "ValidationError")


if __name__ == "__main__":
    unittest.main()
