from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest import TestCase

from app.services.summary import (
    NO_TELEMETRY_INSIGHT,
    OPTIMAL_INSIGHT,
    InsightInputs,
    build_insights,
    build_summary,
    efficiency_score,
    estimate_energy,
    renewable_share,
    split_energy_by_period,
)

_FIELDS = (
    "voltage",
    "current",
    "real_power_kw",
    "apparent_power_kva",
    "reactive_power_kvar",
    "energy_kwh",
    "total_energy_kwh",
    "power_factor",
)


def _reading(captured_at: int, **values: float | None) -> SimpleNamespace:
    fields = {name: None for name in _FIELDS}
    fields.update(values)
    return SimpleNamespace(captured_at=captured_at, **fields)


def _utc(*args: int) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp())


class EmptySummaryTests(TestCase):
    def test_no_readings_gives_the_empty_summary(self) -> None:
        summary = build_summary([])

        self.assertEqual(summary.insights, [NO_TELEMETRY_INSIGHT])
        self.assertIsNone(summary.totals.energy_kwh)
        self.assertIsNone(summary.averages.voltage)
        self.assertIsNone(summary.peaks.power_kw)
        self.assertIsNone(summary.lows.current)
        self.assertIsNone(summary.rms_current)
        self.assertIsNone(summary.load_factor)
        self.assertEqual(summary.voltage_history, [])
        self.assertEqual(summary.efficiency_score, 0)
        self.assertEqual(summary.renewable_share, 0.0)


class BuildSummaryTests(TestCase):
    def test_statistics_and_insights(self) -> None:
        readings = [
            _reading(
                3600,
                voltage=200.0,
                current=4.0,
                real_power_kw=3.0,
                apparent_power_kva=2.5,
                reactive_power_kvar=1.0,
                total_energy_kwh=1.0,
                power_factor=0.9,
            ),
            _reading(
                0,
                voltage=250.0,
                current=2.0,
                real_power_kw=1.0,
                apparent_power_kva=1.5,
                reactive_power_kvar=1.0,
                total_energy_kwh=0.0,
                power_factor=0.9,
            ),
        ]

        summary = build_summary(readings, interval_seconds=3600)

        self.assertEqual(summary.totals.energy_kwh, 1.0)
        self.assertEqual(summary.averages.voltage, 225.0)
        self.assertEqual(summary.averages.current, 3.0)
        self.assertEqual(summary.averages.power_kw, 2.0)
        self.assertEqual(summary.averages.pf, 0.9)
        self.assertEqual(summary.peaks.voltage, 250.0)
        self.assertEqual(summary.peaks.current, 4.0)
        self.assertEqual(summary.peaks.power_kw, 3.0)
        self.assertEqual(summary.lows.voltage, 200.0)
        self.assertEqual(summary.lows.current, 2.0)
        self.assertEqual(summary.rms_current, 3.162)
        self.assertEqual(summary.load_factor, 0.667)
        self.assertEqual(summary.efficiency_score, 78)
        self.assertEqual([point.timestamp for point in summary.voltage_history], [0, 3600])
        self.assertEqual(summary.power_distribution.real, 40.0)
        self.assertEqual(summary.power_distribution.reactive, 20.0)
        self.assertEqual(summary.power_distribution.apparent, 40.0)
        self.assertEqual(
            summary.insights,
            [
                "Voltage spikes detected above 245V. Investigate transformer tap settings.",
                "Low voltage events below 205V observed. Check feeder loading.",
                "Average power factor below 0.92. Consider capacitor bank tuning.",
            ],
        )

    def test_all_null_metric_stays_null(self) -> None:
        summary = build_summary([_reading(0, current=1.0), _reading(60, current=3.0)])

        self.assertIsNone(summary.averages.voltage)
        self.assertIsNone(summary.peaks.voltage)
        self.assertIsNone(summary.load_factor)
        self.assertEqual(summary.averages.current, 2.0)


class EstimateEnergyTests(TestCase):
    def test_cumulative_counter_uses_max_minus_min(self) -> None:
        readings = [
            _reading(0, total_energy_kwh=10.0, real_power_kw=50.0),
            _reading(60, total_energy_kwh=12.0, real_power_kw=50.0),
            _reading(120, total_energy_kwh=15.0, real_power_kw=50.0),
        ]
        self.assertEqual(estimate_energy(readings), 5.0)

    def test_trapezoidal_integration_without_counter(self) -> None:
        readings = [
            _reading(3600, real_power_kw=3.0),
            _reading(0, real_power_kw=1.0, total_energy_kwh=4.0),
        ]
        self.assertEqual(estimate_energy(readings), 2.0)

    def test_pairs_missing_power_are_skipped(self) -> None:
        readings = [
            _reading(0, real_power_kw=1.0),
            _reading(1800, real_power_kw=None),
            _reading(3600, real_power_kw=1.0),
        ]
        self.assertEqual(estimate_energy(readings), 0.0)


class EnergySplitTests(TestCase):
    def _readings(self) -> list[SimpleNamespace]:
        return [
            _reading(_utc(2026, 1, 1, 17), total_energy_kwh=0.0),
            _reading(_utc(2026, 1, 1, 18), total_energy_kwh=2.0),
            _reading(_utc(2026, 1, 2, 3), total_energy_kwh=3.0),
            _reading(_utc(2026, 1, 2, 12), total_energy_kwh=4.0),
        ]

    def test_split_in_utc(self) -> None:
        split = split_energy_by_period(self._readings(), timezone_name="UTC")

        self.assertEqual(split.peak, 50.0)
        self.assertEqual(split.off_peak, 25.0)
        self.assertEqual(split.shoulder, 25.0)

    def test_split_follows_local_hour(self) -> None:
        split = split_energy_by_period(self._readings(), timezone_name="Asia/Kolkata")

        self.assertEqual(split.peak, 25.0)
        self.assertEqual(split.off_peak, 0.0)
        self.assertEqual(split.shoulder, 75.0)

    def test_negative_deltas_are_skipped(self) -> None:
        readings = [
            _reading(_utc(2026, 1, 1, 17), total_energy_kwh=5.0),
            _reading(_utc(2026, 1, 1, 18), total_energy_kwh=1.0),
            _reading(_utc(2026, 1, 1, 19), total_energy_kwh=2.0),
        ]
        split = split_energy_by_period(readings)

        self.assertEqual(split.peak, 100.0)

    def test_no_deltas_gives_zero_split(self) -> None:
        split = split_energy_by_period([_reading(0, total_energy_kwh=1.0)])

        self.assertEqual((split.peak, split.off_peak, split.shoulder), (0.0, 0.0, 0.0))

    def test_renewable_share_counts_daylight_hours(self) -> None:
        self.assertEqual(renewable_share(self._readings(), timezone_name="UTC"), 25.0)
        self.assertEqual(renewable_share([], timezone_name="UTC"), 0.0)


class InsightTests(TestCase):
    def test_no_rule_matches_gives_optimal_message(self) -> None:
        insights = build_insights(
            InsightInputs(
                peak_voltage=232.0,
                min_voltage=228.0,
                pf_avg=0.97,
                load_factor=0.8,
                energy_kwh=12.0,
            )
        )
        self.assertEqual(insights, [OPTIMAL_INSIGHT])

    def test_missing_voltage_reads_as_undervoltage(self) -> None:
        summary = build_summary(
            [
                _reading(0, real_power_kw=1.0, power_factor=0.97),
                _reading(3600, real_power_kw=1.0, power_factor=0.97),
            ]
        )

        self.assertIsNone(summary.lows.voltage)
        self.assertEqual(
            summary.insights,
            ["Low voltage events below 205V observed. Check feeder loading."],
        )

    def test_gaps_fill_with_neutral_values(self) -> None:
        inputs = InsightInputs.from_statistics(
            peak_voltage=None,
            min_voltage=None,
            pf_avg=None,
            load_factor=None,
            energy_kwh=250.0,
        )

        self.assertEqual((inputs.peak_voltage, inputs.min_voltage), (0.0, 0.0))
        self.assertEqual((inputs.pf_avg, inputs.load_factor), (1.0, 1.0))
        self.assertEqual(
            build_insights(inputs),
            [
                "Low voltage events below 205V observed. Check feeder loading.",
                "High daily energy usage recorded. Review shift schedules.",
            ],
        )

    def test_efficiency_score_is_not_bounded(self) -> None:
        self.assertEqual(efficiency_score(pf_avg=None, load_factor=None), 0)
        self.assertEqual(efficiency_score(pf_avg=1.0, load_factor=1.4), 120)
