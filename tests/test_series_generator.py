import os
import sys
import unittest

import numpy as np

# Allow `import core.*` like the app does when running `python app/main.py`.
REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
APP_DIR = os.path.join(REPO_ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from core.config import BASE_TS_MS
from core.models import Granularity
from core.series_generator import generate_series, granularity_to_ms, series_to_array, timeframe_to_ms

ALL_VALUES = ["month", "week", "day", "hour", "15min", "bogus"]


class SeriesGeneratorTests(unittest.TestCase):
    def test_length_for_every_granularity(self):
        for value in ALL_VALUES:
            with self.subTest(granularity=value):
                self.assertEqual(len(generate_series(value)), 200)

    def test_day_scenario(self):
        bars = generate_series("day")
        self.assertEqual(len(bars), 200)
        self.assertEqual(bars[0].open, 200.0)
        self.assertEqual(bars[1].open, bars[0].close)
        self.assertEqual(bars[0].timestamp, BASE_TS_MS)

    def test_open_chains_previous_close(self):
        bars = generate_series("hour", rng=np.random.default_rng(3))
        for prev, cur in zip(bars, bars[1:]):
            self.assertEqual(cur.open, prev.close)

    def test_close_moves_at_most_five(self):
        bars = generate_series("day", rng=np.random.default_rng(4))
        for bar in bars:
            self.assertLessEqual(abs(bar.close - bar.open), 5.0 + 1e-9)

    def test_high_low_bracket_body(self):
        bars = generate_series("week", rng=np.random.default_rng(5))
        for bar in bars:
            self.assertLessEqual(bar.low, min(bar.open, bar.close))
            self.assertGreaterEqual(bar.high, max(bar.open, bar.close))
            self.assertLessEqual(bar.high - max(bar.open, bar.close), 5.0 + 1e-9)
            self.assertLessEqual(min(bar.open, bar.close) - bar.low, 5.0 + 1e-9)

    def test_volume_range(self):
        bars = generate_series("day", rng=np.random.default_rng(6))
        for bar in bars:
            self.assertGreaterEqual(bar.volume, 500.0)
            self.assertLessEqual(bar.volume, 1500.0)

    def test_timestamps_fixed_spacing(self):
        expected = {
            "month": 30 * 86_400_000,
            "week": 7 * 86_400_000,
            "day": 86_400_000,
            "hour": 3_600_000,
            "15min": 900_000,
            "bogus": 86_400_000,
        }
        for value, step in expected.items():
            with self.subTest(granularity=value):
                bars = generate_series(value)
                for prev, cur in zip(bars, bars[1:]):
                    self.assertGreater(cur.timestamp, prev.timestamp)
                    self.assertEqual(cur.timestamp - prev.timestamp, step)

    def test_seeded_generator_is_reproducible(self):
        a = generate_series("day", rng=np.random.default_rng(42))
        b = generate_series("day", rng=np.random.default_rng(42))
        self.assertEqual(a, b)

    def test_unseeded_calls_differ(self):
        a = generate_series("day")
        b = generate_series("day")
        self.assertNotEqual([x.close for x in a], [x.close for x in b])

    def test_non_positive_count_is_empty(self):
        self.assertEqual(generate_series("day", bar_count=0), ())

    def test_timeframe_to_ms(self):
        self.assertEqual(timeframe_to_ms("15m"), 900_000)
        self.assertEqual(timeframe_to_ms("1M"), 30 * 86_400_000)
        self.assertEqual(timeframe_to_ms(""), 86_400_000)
        self.assertEqual(timeframe_to_ms("xx"), 86_400_000)
        self.assertEqual(granularity_to_ms(Granularity.HOUR), 3_600_000)

    def test_series_to_array_columns(self):
        bars = generate_series("day", rng=np.random.default_rng(1))
        arr = series_to_array(bars)
        self.assertEqual(arr.shape, (200, 6))
        self.assertEqual(arr[0, 1], 200.0)
        self.assertEqual(arr[10, 4], bars[10].close)
        self.assertEqual(series_to_array(()).shape, (0, 6))


if __name__ == "__main__":
    unittest.main()
