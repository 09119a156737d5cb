from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Type

from core.contracts import AccelerationSample
from core.registry import NamedRegistry

L = logging.getLogger("stillcheck.sensor")

SampleCallback = Callable[[AccelerationSample], None]

sensors: NamedRegistry[Type["MotionSensor"]] = NamedRegistry(
    __package__ or "sensor", "sensor type"
)


@dataclass
class SensorConfig:
    rate_hz: float = 20.0
    noise: float = 0.0
    replay_file: str = ""
    loop: bool = True


def build_sensor_config(cfg_block) -> SensorConfig:
    return SensorConfig(
        rate_hz=float(cfg_block.rate_hz),
        noise=float(cfg_block.noise),
        replay_file=str(cfg_block.replay_file or ""),
        loop=bool(cfg_block.loop),
    )


class Subscription:
    def __init__(self, sensor: "MotionSensor", callback: SampleCallback):
        self._sensor = sensor
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._sensor._unsubscribe(self)


class MotionSensor(ABC):
    """Push stream of acceleration samples, no back-pressure.

    Subclasses produce samples on their own thread and hand them to
    `_emit()`; subscribers are called on that thread and must hand off quickly.
    """

    def __init__(self, cfg: SensorConfig):
        self.cfg = cfg
        self._subs: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: SampleCallback) -> Subscription:
        sub = Subscription(self, callback)
        with self._lock:
            self._subs.append(sub)
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subs:
                self._subs.remove(sub)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subs)

    def _emit(self, sample: AccelerationSample) -> None:
        with self._lock:
            subs = list(self._subs)
        for sub in subs:
            if not sub.active:
                continue
            try:
                sub.callback(sample)
            except Exception:
                L.exception("sensor subscriber failed; unsubscribing")
                sub.cancel()

    @contextmanager
    @abstractmethod
    def session(self):
        """Start producing samples; stop on exit."""
        yield


def register_sensor(name: str):
    return sensors.register(name)


def create_sensor(name: str, cfg: SensorConfig) -> MotionSensor:
    cls = sensors.resolve(name)
    return cls(cfg)


__all__ = [
    "MotionSensor",
    "SampleCallback",
    "SensorConfig",
    "Subscription",
    "build_sensor_config",
    "create_sensor",
    "register_sensor",
]
