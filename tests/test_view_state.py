import os
import sys
import unittest

import numpy as np

# Allow `import core.*` like the app does when running `python app/main.py`.
REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
APP_DIR = os.path.join(REPO_ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from core.models import Granularity, ViewState, with_granularity, with_hover, zoomed_in, zoomed_out
from core.view_state import ChartController


def _empty_generator(granularity, rng=None):
    return ()


class ViewStateTransitionTests(unittest.TestCase):
    def test_defaults(self):
        state = ViewState()
        self.assertEqual(state.zoom_level, 1.0)
        self.assertEqual(state.granularity, Granularity.DAY)
        self.assertIsNone(state.hovered_bar)

    def test_transitions_return_new_state(self):
        state = ViewState()
        self.assertEqual(zoomed_in(state).zoom_level, 1.5)
        self.assertEqual(zoomed_out(state).zoom_level, 0.5)
        self.assertEqual(state.zoom_level, 1.0)
        self.assertEqual(with_granularity(state, "hour").granularity, Granularity.HOUR)
        self.assertEqual(with_granularity(state, "nope").granularity, Granularity.DAY)

    def test_coerce(self):
        self.assertEqual(Granularity.coerce("15min"), Granularity.MIN15)
        self.assertEqual(Granularity.coerce(" Week "), Granularity.WEEK)
        self.assertEqual(Granularity.coerce(None), Granularity.DAY)
        self.assertEqual(Granularity.coerce(42), Granularity.DAY)
        self.assertIs(Granularity.coerce(Granularity.MONTH), Granularity.MONTH)


class ChartControllerTests(unittest.TestCase):
    def _controller(self, seed: int = 11) -> ChartController:
        return ChartController(rng=np.random.default_rng(seed))

    def test_zoom_out_floor_scenario(self):
        ctl = self._controller()
        self.assertEqual(ctl.zoom_level, 1.0)
        ctl.zoom_out()
        self.assertEqual(ctl.zoom_level, 0.5)
        ctl.zoom_out()
        self.assertEqual(ctl.zoom_level, 0.1)
        ctl.zoom_out()
        self.assertEqual(ctl.zoom_level, 0.1)

    def test_zoom_out_never_below_floor(self):
        ctl = ChartController(rng=np.random.default_rng(1), state=ViewState(zoom_level=7.3))
        for _ in range(50):
            ctl.zoom_out()
            self.assertGreaterEqual(ctl.zoom_level, 0.1)
        self.assertAlmostEqual(ctl.zoom_level, 0.1)

    def test_zoom_in_unbounded(self):
        ctl = self._controller()
        for i in range(1, 101):
            ctl.zoom_in()
            self.assertAlmostEqual(ctl.zoom_level, 1.0 + 0.5 * i)

    def test_granularity_fallback_matches_day(self):
        bogus = ChartController(rng=np.random.default_rng(9), state=ViewState(granularity=Granularity.HOUR))
        day = ChartController(rng=np.random.default_rng(9), state=ViewState(granularity=Granularity.HOUR))
        bogus.set_granularity("bogus")
        day.set_granularity("day")
        self.assertEqual(bogus.granularity, Granularity.DAY)
        self.assertEqual(bogus.series, day.series)
        self.assertEqual(bogus.visible_window(), day.visible_window())

    def test_set_granularity_replaces_series_and_keeps_zoom(self):
        ctl = self._controller()
        ctl.zoom_in()
        before = ctl.series
        ctl.set_granularity("week")
        self.assertIsNot(ctl.series, before)
        self.assertEqual(len(ctl.series), 200)
        self.assertEqual(ctl.series[1].timestamp - ctl.series[0].timestamp, 7 * 86_400_000)
        self.assertEqual(ctl.zoom_level, 1.5)

    def test_hover_round_trip(self):
        ctl = self._controller()
        bar = ctl.series[17]
        ctl.on_hover(bar)
        self.assertIs(ctl.hovered_bar, bar)
        ctl.on_hover(None)
        self.assertIsNone(ctl.hovered_bar)

    def test_hover_cleared_on_granularity_change(self):
        ctl = self._controller()
        ctl.on_hover(ctl.series[0])
        ctl.set_granularity("month")
        self.assertIsNone(ctl.hovered_bar)

    def test_visible_window(self):
        ctl = self._controller()
        self.assertEqual(ctl.visible_window(), (119.0, 199.0))
        ctl.zoom_in()
        lo, hi = ctl.visible_window()
        self.assertAlmostEqual(lo, 199.0 - 80.0 / 1.5)
        self.assertEqual(hi, 199.0)
        ctl.zoom_out()
        ctl.zoom_out()
        ctl.zoom_out()
        self.assertAlmostEqual(ctl.visible_window()[0], 199.0 - 800.0)

    def test_empty_series_window(self):
        ctl = ChartController(generator=_empty_generator)
        self.assertEqual(ctl.series, ())
        self.assertEqual(ctl.visible_window(), (0.0, 0.0))
        self.assertIsNone(ctl.price_extents())
        self.assertIsNone(ctl.volume_extents())
        self.assertIsNone(ctl.bar_at(0))

    def test_x_accessor_and_bar_at(self):
        ctl = self._controller()
        self.assertEqual(ctl.x_accessor(ctl.series[-1]), 199)
        self.assertEqual(ctl.x_accessor(ctl.series[5]), 5)
        self.assertIs(ctl.bar_at(4.6), ctl.series[5])
        self.assertIsNone(ctl.bar_at(-1))
        self.assertIsNone(ctl.bar_at(200))
        self.assertIsNone(ctl.bar_at(float("nan")))

    def test_price_extents_cover_visible_bars(self):
        ctl = self._controller()
        lo, hi = ctl.price_extents()
        visible = ctl.series[119:200]
        self.assertEqual(lo, min(b.low for b in visible))
        self.assertEqual(hi, max(b.high for b in visible))
        self.assertEqual(ctl.volume_extents(), (0.0, max(b.volume for b in visible)))

    def test_listeners_notified(self):
        ctl = self._controller()
        seen = []
        unsubscribe = ctl.subscribe(seen.append)
        ctl.zoom_in()
        ctl.on_hover(ctl.series[3])
        ctl.set_granularity("hour")
        self.assertEqual(len(seen), 3)
        self.assertEqual(seen[-1].granularity, Granularity.HOUR)
        unsubscribe()
        ctl.zoom_out()
        self.assertEqual(len(seen), 3)


if __name__ == "__main__":
    unittest.main()
