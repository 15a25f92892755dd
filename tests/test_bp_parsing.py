# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from duulair.summaries.bp import calculate_bp_stats, classify_bp_status, parse_bp_reading, round_half_up
from duulair.summaries.models import BPReading, BPStatus


class TestParseBPReading(unittest.TestCase):
    def test_structured_metadata_wins_over_text(self) -> None:
        reading = parse_bp_reading("150/95", {"systolic": 120, "diastolic": 80, "heart_rate": 70})
        self.assertIsNotNone(reading)
        self.assertEqual((reading.systolic, reading.diastolic, reading.heart_rate), (120, 80, 70))

    def test_text_fallback_with_pulse(self) -> None:
        reading = parse_bp_reading("135 / 85 pulse 72", {})
        self.assertEqual((reading.systolic, reading.diastolic, reading.heart_rate), (135, 85, 72))

        reading = parse_bp_reading("BP 128/82 HR: 66", None)
        self.assertEqual(reading.heart_rate, 66)

        reading = parse_bp_reading("120/80 heart rate 70", None)
        self.assertEqual(reading.heart_rate, 70)

        reading = parse_bp_reading("120/80 heart_rate:70", None)
        self.assertEqual(reading.heart_rate, 70)

        reading = parse_bp_reading("128/82", None)
        self.assertIsNone(reading.heart_rate)

    def test_incomplete_metadata_falls_back_to_text(self) -> None:
        reading = parse_bp_reading("140/90", {"systolic": 120})
        self.assertEqual((reading.systolic, reading.diastolic), (140, 90))

    def test_non_numeric_metadata_is_ignored(self) -> None:
        self.assertIsNone(parse_bp_reading(None, {"systolic": "120", "diastolic": "80"}))
        self.assertIsNone(parse_bp_reading(None, {"systolic": True, "diastolic": 80}))

    def test_non_finite_metadata_is_ignored(self) -> None:
        self.assertIsNone(parse_bp_reading(None, {"systolic": float("inf"), "diastolic": 80}))
        self.assertIsNone(parse_bp_reading(None, {"systolic": 120, "diastolic": float("nan")}))

        reading = parse_bp_reading("118/76", {"systolic": 120, "diastolic": 80, "heart_rate": float("inf")})
        self.assertEqual((reading.systolic, reading.diastolic), (120, 80))
        self.assertIsNone(reading.heart_rate)

    def test_unparseable_values(self) -> None:
        self.assertIsNone(parse_bp_reading(None, None))
        self.assertIsNone(parse_bp_reading("", {}))
        self.assertIsNone(parse_bp_reading("feeling fine today", {}))


class TestClassifyBPStatus(unittest.TestCase):
    def test_thresholds(self) -> None:
        self.assertEqual(classify_bp_status(119, 79), BPStatus.NORMAL)
        self.assertEqual(classify_bp_status(130, 70), BPStatus.ELEVATED)
        self.assertEqual(classify_bp_status(120, 80), BPStatus.ELEVATED)
        self.assertEqual(classify_bp_status(140, 70), BPStatus.HIGH)
        self.assertEqual(classify_bp_status(120, 90), BPStatus.HIGH)
        self.assertEqual(classify_bp_status(180, 70), BPStatus.CRISIS)
        self.assertEqual(classify_bp_status(120, 120), BPStatus.CRISIS)

    def test_missing_values(self) -> None:
        self.assertIsNone(classify_bp_status(None, 80))
        self.assertIsNone(classify_bp_status(120, None))


class TestBPStats(unittest.TestCase):
    def test_empty(self) -> None:
        stats = calculate_bp_stats([])
        self.assertIsNone(stats.systolic_avg)
        self.assertIsNone(stats.status)

    def test_averages_round_half_up_and_zero_heart_rate_is_skipped(self) -> None:
        stats = calculate_bp_stats(
            [
                BPReading(systolic=120, diastolic=80, heart_rate=70),
                BPReading(systolic=131, diastolic=85, heart_rate=0),
            ]
        )
        self.assertEqual(stats.systolic_avg, 126)
        self.assertEqual(stats.diastolic_avg, 83)
        self.assertEqual((stats.systolic_min, stats.systolic_max), (120, 131))
        self.assertEqual((stats.diastolic_min, stats.diastolic_max), (80, 85))
        self.assertEqual((stats.heart_rate_avg, stats.heart_rate_min, stats.heart_rate_max), (70, 70, 70))
        # Status follows the averages, not the worst reading.
        self.assertEqual(stats.status, BPStatus.ELEVATED)

    def test_no_heart_rates(self) -> None:
        stats = calculate_bp_stats([BPReading(systolic=110, diastolic=70)])
        self.assertIsNone(stats.heart_rate_avg)
        self.assertEqual(stats.status, BPStatus.NORMAL)

    def test_round_half_up(self) -> None:
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(3.5), 4)
        self.assertEqual(round_half_up(66.666666, 2), 66.67)


if __name__ == "__main__":
    unittest.main()
