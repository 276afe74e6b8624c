from __future__ import annotations

from datetime import datetime, timezone
from unittest import TestCase

from app.services.time_range import granularity_for_range, resolve_range

JAN_1_2026_UTC = 1767225600


class ResolveRangeTests(TestCase):
    def test_numeric_bounds_are_epoch_seconds(self) -> None:
        resolved = resolve_range(from_value="0", to_value="3600", timezone_name="Asia/Kolkata")

        self.assertEqual(resolved.from_ts, 0)
        self.assertEqual(resolved.to_ts, 3600)
        self.assertEqual(resolved.duration_seconds, 3600)

    def test_naive_dates_use_the_requested_timezone(self) -> None:
        resolved = resolve_range(
            from_value="2026-01-01T00:00:00",
            to_value="2026-01-02",
            timezone_name="Asia/Kolkata",
        )

        self.assertEqual(resolved.from_ts, JAN_1_2026_UTC - 19800)
        self.assertEqual(resolved.to_ts, JAN_1_2026_UTC + 86400 - 19800)

    def test_explicit_offsets_win_over_timezone(self) -> None:
        resolved = resolve_range(
            from_value="2026-01-01T00:00:00Z",
            to_value="2026-01-01T06:00:00+00:00",
            timezone_name="America/New_York",
        )

        self.assertEqual(resolved.from_ts, JAN_1_2026_UTC)
        self.assertEqual(resolved.to_ts, JAN_1_2026_UTC + 6 * 3600)

    def test_period_is_used_unless_both_bounds_are_given(self) -> None:
        now = datetime(2026, 1, 8, tzinfo=timezone.utc)

        resolved = resolve_range(period="week", from_value="0", now=now)

        self.assertEqual(resolved.to_ts, JAN_1_2026_UTC + 7 * 86400)
        self.assertEqual(resolved.from_ts, JAN_1_2026_UTC)

    def test_default_period_is_one_day(self) -> None:
        now = datetime(2026, 1, 2, tzinfo=timezone.utc)

        resolved = resolve_range(now=now)

        self.assertEqual(resolved.from_ts, JAN_1_2026_UTC)
        self.assertEqual(resolved.duration_seconds, 86400)

    def test_zero_length_range_reports_one_second(self) -> None:
        resolved = resolve_range(from_value="100", to_value="100")

        self.assertEqual(resolved.duration_seconds, 1)

    def test_invalid_input_raises_value_error(self) -> None:
        with self.assertRaises(ValueError):
            resolve_range(timezone_name="Mars/Olympus_Mons")
        with self.assertRaises(ValueError):
            resolve_range(from_value="yesterday", to_value="today")


class GranularityTests(TestCase):
    def test_thresholds(self) -> None:
        cases = [
            (3600, 300),
            (6 * 3600, 300),
            (6 * 3600 + 1, 900),
            (2 * 86400, 900),
            (7 * 86400, 3600),
            (31 * 86400, 14400),
            (32 * 86400, 86400),
        ]
        for duration, expected in cases:
            with self.subTest(duration=duration):
                self.assertEqual(granularity_for_range(duration), expected)
