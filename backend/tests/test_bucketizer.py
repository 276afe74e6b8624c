from __future__ import annotations

from types import SimpleNamespace
from unittest import TestCase

from app.services.bucketizer import bucket_key, bucketize_readings


def _reading(captured_at: int, **values: float | None) -> SimpleNamespace:
    fields = {
        "voltage": None,
        "current": None,
        "real_power_kw": None,
        "energy_kwh": None,
        "power_factor": None,
    }
    fields.update(values)
    return SimpleNamespace(captured_at=captured_at, **fields)


class BucketizerTests(TestCase):
    def test_empty_input_gives_no_buckets(self) -> None:
        self.assertEqual(bucketize_readings([], 300), [])

    def test_readings_group_by_aligned_key(self) -> None:
        readings = [
            _reading(200, voltage=220.0, energy_kwh=0.25),
            _reading(0, voltage=230.0, energy_kwh=0.25, current=1.0, power_factor=0.9),
            _reading(100, voltage=240.0, energy_kwh=0.5, current=3.0, power_factor=None),
        ]

        buckets = bucketize_readings(readings, 150)

        self.assertEqual([bucket.timestamp for bucket in buckets], [0, 150])
        first, second = buckets
        self.assertEqual(first.voltage, 235.0)
        self.assertEqual(first.peak_voltage, 240.0)
        self.assertEqual(first.min_voltage, 230.0)
        self.assertEqual(first.current, 2.0)
        self.assertEqual(first.energy_kwh, 0.75)
        self.assertEqual(first.power_factor, 0.9)
        self.assertEqual(second.voltage, 220.0)
        self.assertEqual(second.energy_kwh, 0.25)
        self.assertIsNone(second.current)

    def test_null_metrics_stay_null(self) -> None:
        buckets = bucketize_readings([_reading(10), _reading(20)], 60)

        self.assertEqual(len(buckets), 1)
        self.assertIsNone(buckets[0].voltage)
        self.assertIsNone(buckets[0].peak_voltage)
        self.assertIsNone(buckets[0].real_power_kw)
        self.assertEqual(buckets[0].energy_kwh, 0)

    def test_non_positive_interval_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            bucketize_readings([_reading(0)], 0)

    def test_bucket_key_floors_to_interval(self) -> None:
        self.assertEqual(bucket_key(299, 300), 0)
        self.assertEqual(bucket_key(300, 300), 300)
        self.assertEqual(bucket_key(-1, 300), -300)
