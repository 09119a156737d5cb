"""Replays recorded accelerometer samples from CSV (x,y,z[,timestamp] per row)."""

import csv
import logging
import threading
from contextlib import contextmanager

from core.contracts import AccelerationSample

from .base import MotionSensor, SensorConfig, register_sensor

L = logging.getLogger("stillcheck.sensor.replay")


def load_samples(path: str) -> list[AccelerationSample]:
    samples: list[AccelerationSample] = []
    with open(path, "r", encoding="utf-8", newline="") as f:
        for lineno, row in enumerate(csv.reader(f), start=1):
            if not row or row[0].strip().startswith("#"):
                continue
            try:
                values = [float(v) for v in row[:4]]
            except ValueError:
                if lineno == 1:
                    continue  # header
                raise ValueError(f"{path}:{lineno}: expected numeric x,y,z")
            if len(values) < 3:
                raise ValueError(f"{path}:{lineno}: expected at least x,y,z")
            ts = values[3] if len(values) > 3 else 0.0
            samples.append(AccelerationSample(values[0], values[1], values[2], ts))
    return samples


@register_sensor("replay")
class ReplaySensor(MotionSensor):
    def __init__(self, cfg: SensorConfig):
        super().__init__(cfg)
        self._samples: list[AccelerationSample] = []
        self._stop_evt = threading.Event()
        self._thread: threading.Thread | None = None

    def _run(self):
        period = 1.0 / max(self.cfg.rate_hz, 0.1)
        while not self._stop_evt.is_set():
            for sample in self._samples:
                if self._stop_evt.wait(period):
                    return
                self._emit(sample)
            if not self.cfg.loop:
                L.info("replay finished (%d samples)", len(self._samples))
                return

    @contextmanager
    def session(self):
        if not self.cfg.replay_file:
            raise RuntimeError("sensor replay_file is required")
        self._samples = load_samples(self.cfg.replay_file)
        if not self._samples:
            raise RuntimeError(f"no samples in {self.cfg.replay_file}")
        self._stop_evt.clear()
        self._thread = threading.Thread(
            target=self._run, name="stillcheck-replay", daemon=True
        )
        self._thread.start()
        try:
            yield self
        finally:
            self._stop_evt.set()
            self._thread.join(timeout=1.0)
            self._thread = None


__all__ = ["ReplaySensor", "load_samples"]
