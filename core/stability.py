"""Stillness detection from consecutive accelerometer samples."""

from __future__ import annotations

import logging

from core.contracts import AccelerationSample, StabilityState

L = logging.getLogger("stillcheck.stability")

DEFAULT_MOTION_THRESHOLD = 0.5
DEFAULT_STABLE_SECONDS = 5


class StabilityDetector:
    """Tracks whether the device is stationary and for how many whole seconds.

    `update()` consumes one sample and compares it per axis with the previous
    one. `tick()` is driven by an external one-second timer while the device
    is stationary; it advances the counter and returns True exactly once, on
    the tick that reaches `stable_seconds`.
    """

    def __init__(
        self,
        threshold: float = DEFAULT_MOTION_THRESHOLD,
        stable_seconds: int = DEFAULT_STABLE_SECONDS,
    ):
        if threshold <= 0:
            raise ValueError("threshold must be > 0")
        if stable_seconds < 1:
            raise ValueError("stable_seconds must be >= 1")
        self.threshold = float(threshold)
        self.stable_seconds = int(stable_seconds)
        self._prev: AccelerationSample | None = None
        self._state = StabilityState()
        self._ready = False

    @property
    def state(self) -> StabilityState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def remaining_seconds(self) -> int:
        return max(self.stable_seconds - self._state.stable_seconds, 0)

    def update(self, sample: AccelerationSample) -> StabilityState:
        prev = self._prev
        self._prev = sample
        if prev is None:
            # No previous sample yet: the first delta counts as zero.
            still = True
        else:
            still = (
                abs(sample.x - prev.x) < self.threshold
                and abs(sample.y - prev.y) < self.threshold
                and abs(sample.z - prev.z) < self.threshold
            )
        if still:
            if not self._state.is_stationary:
                self._state = StabilityState(
                    is_stationary=True, stable_seconds=self._state.stable_seconds
                )
        elif self._state.is_stationary or self._state.stable_seconds:
            L.debug(
                "motion after %ss still (dx=%.3f dy=%.3f dz=%.3f)",
                self._state.stable_seconds,
                abs(sample.x - prev.x),
                abs(sample.y - prev.y),
                abs(sample.z - prev.z),
            )
            self._state = StabilityState(is_stationary=False, stable_seconds=0)
        return self._state

    def tick(self) -> bool:
        """Advance the stillness counter by one second; True on the readiness tick."""
        if self._ready or not self._state.is_stationary:
            return False
        count = self._state.stable_seconds + 1
        self._state = StabilityState(is_stationary=True, stable_seconds=count)
        if count >= self.stable_seconds:
            self._ready = True
            return True
        return False

    def reset(self) -> None:
        self._prev = None
        self._state = StabilityState()
        self._ready = False


__all__ = [
    "DEFAULT_MOTION_THRESHOLD",
    "DEFAULT_STABLE_SECONDS",
    "StabilityDetector",
]
