import logging
import random
import threading
import time
from contextlib import contextmanager

from core.contracts import AccelerationSample

from .base import MotionSensor, SensorConfig, register_sensor

L = logging.getLogger("stillcheck.sensor.mock")

GRAVITY = 9.81


@register_sensor("mock")
class MockSensor(MotionSensor):
    """Device resting flat (gravity on z) with optional uniform jitter per axis.

    `shake(seconds)` injects large jumps for that long, to exercise the
    motion path without hardware.
    """

    def __init__(self, cfg: SensorConfig):
        super().__init__(cfg)
        self._stop_evt = threading.Event()
        self._thread: threading.Thread | None = None
        self._shake_until = 0.0
        self._rng = random.Random()

    def shake(self, seconds: float) -> None:
        self._shake_until = time.monotonic() + max(float(seconds), 0.0)

    def _sample(self) -> AccelerationSample:
        now = time.monotonic()
        amp = float(self.cfg.noise)
        if now < self._shake_until:
            amp = max(amp, 3.0)

        def jitter():
            return self._rng.uniform(-amp, amp) if amp > 0 else 0.0

        return AccelerationSample(
            x=jitter(), y=jitter(), z=GRAVITY + jitter(), timestamp=time.time()
        )

    def _run(self):
        period = 1.0 / max(self.cfg.rate_hz, 0.1)
        while not self._stop_evt.wait(period):
            self._emit(self._sample())

    @contextmanager
    def session(self):
        self._stop_evt.clear()
        self._thread = threading.Thread(
            target=self._run, name="stillcheck-sensor", daemon=True
        )
        self._thread.start()
        L.info("mock sensor @ %.1f Hz noise=%.3f", self.cfg.rate_hz, self.cfg.noise)
        try:
            yield self
        finally:
            self._stop_evt.set()
            self._thread.join(timeout=1.0)
            self._thread = None


__all__ = ["MockSensor", "GRAVITY"]
