import unittest

from core.contracts import AccelerationSample
from core.stability import StabilityDetector

STILL = AccelerationSample(0.0, 0.0, 9.5)


def _nudge(sample: AccelerationSample, dx=0.0, dy=0.0, dz=0.0) -> AccelerationSample:
    return AccelerationSample(sample.x + dx, sample.y + dy, sample.z + dz)


class TestStabilityDetector(unittest.TestCase):
    def test_first_sample_counts_as_still(self):
        det = StabilityDetector()
        state = det.update(AccelerationSample(3.0, -4.0, 9.81))
        self.assertTrue(state.is_stationary)
        self.assertEqual(state.stable_seconds, 0)

    def test_ready_exactly_once_after_fifth_second(self):
        det = StabilityDetector(threshold=0.5, stable_seconds=5)
        sample = STILL
        det.update(sample)
        fired = []
        for second in range(1, 9):
            # Small jitter below threshold between ticks.
            sample = _nudge(sample, dx=0.49 if second % 2 else -0.49, dz=0.1)
            det.update(sample)
            fired.append(det.tick())
        self.assertEqual(fired, [False, False, False, False, True, False, False, False])
        self.assertTrue(det.ready)

    def test_not_ready_before_fifth_second(self):
        det = StabilityDetector(stable_seconds=5)
        det.update(STILL)
        self.assertFalse(any(det.tick() for _ in range(4)))
        self.assertEqual(det.state.stable_seconds, 4)
        self.assertEqual(det.remaining_seconds, 1)

    def test_motion_resets_counter_on_that_sample(self):
        for axis in ("dx", "dy", "dz"):
            with self.subTest(axis=axis):
                det = StabilityDetector()
                det.update(STILL)
                for _ in range(4):
                    det.tick()
                state = det.update(_nudge(STILL, **{axis: 0.5}))
                self.assertFalse(state.is_stationary)
                self.assertEqual(state.stable_seconds, 0)
                self.assertFalse(det.tick())
                self.assertEqual(det.state.stable_seconds, 0)

    def test_counting_restarts_after_motion(self):
        det = StabilityDetector(stable_seconds=3)
        det.update(STILL)
        det.tick()
        det.tick()
        moved = _nudge(STILL, dy=2.0)
        det.update(moved)
        det.update(moved)
        self.assertTrue(det.state.is_stationary)
        self.assertEqual(det.state.stable_seconds, 0)
        self.assertEqual([det.tick() for _ in range(3)], [False, False, True])

    def test_tick_without_stillness_does_nothing(self):
        det = StabilityDetector()
        self.assertFalse(det.tick())
        self.assertEqual(det.state.stable_seconds, 0)

    def test_reset(self):
        det = StabilityDetector(stable_seconds=1)
        det.update(STILL)
        self.assertTrue(det.tick())
        det.reset()
        self.assertFalse(det.ready)
        self.assertFalse(det.state.is_stationary)

    def test_invalid_policy(self):
        with self.assertRaises(ValueError):
            StabilityDetector(threshold=0)
        with self.assertRaises(ValueError):
            StabilityDetector(stable_seconds=0)


if __name__ == "__main__":
    unittest.main()
