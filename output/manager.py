# -- coding: utf-8 --
"""OutputManager: keep the latest run snapshot and fan events out to channels."""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Protocol

from core.contracts import (
    CaptureRecorded,
    DetectionPhase,
    PhaseChanged,
    RunClosed,
    RunComplete,
    RunOutcome,
)

L = logging.getLogger("stillcheck.output")

Event = PhaseChanged | CaptureRecorded | RunComplete | RunClosed


@dataclass(frozen=True)
class StatusSnapshot:
    run_id: int = 0
    phase: DetectionPhase | None = None
    status_text: str = ""
    plates: tuple[str | None, str | None, str | None] = (None, None, None)
    captured: int = 0
    outcome: RunOutcome | None = None
    active: bool = False
    completed_runs: int = 0
    passed_runs: int = 0
    resets: int = 0
    updated_at: datetime | None = None

    @property
    def message(self) -> str:
        """Verdict text for the presentation layer; per-capture detail on FAIL."""
        if self.outcome is None:
            return ""
        msg = self.outcome.message
        if self.outcome.passed:
            return msg

        def show(p):
            return p if p is not None else "Not detected"

        o = self.outcome
        return (
            f"{msg}\n"
            f"Photo 1: {show(o.plate1)}\n"
            f"Photo 2: {show(o.plate2)}\n"
            f"Video: {show(o.plate3)}"
        )

    def as_dict(self) -> dict[str, Any]:
        outcome = self.outcome
        return {
            "run_id": self.run_id,
            "active": self.active,
            "phase": self.phase.value if self.phase else None,
            "status": self.status_text,
            "plates": list(self.plates),
            "captured": self.captured,
            "result": (
                None
                if outcome is None
                else {
                    "passed": outcome.passed,
                    "detected_plate": outcome.detected_plate,
                    "message": self.message,
                }
            ),
            "stats": {
                "completed": self.completed_runs,
                "passed": self.passed_runs,
                "failed": self.completed_runs - self.passed_runs,
                "resets": self.resets,
            },
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class OutputChannel(Protocol):
    def start(self): ...
    def stop(self): ...
    def publish(self, event: Event, snapshot: StatusSnapshot): ...


def _apply(snap: StatusSnapshot, event: Event) -> StatusSnapshot:
    if isinstance(event, PhaseChanged):
        if event.run_id != snap.run_id:
            snap = replace(
                snap,
                run_id=event.run_id,
                plates=(None, None, None),
                captured=0,
                outcome=None,
            )
        return replace(
            snap,
            phase=event.phase,
            status_text=event.status_text,
            active=True,
            updated_at=event.at,
        )
    if isinstance(event, CaptureRecorded):
        plates = list(snap.plates)
        plates[event.index - 1] = event.plate
        return replace(
            snap,
            plates=(plates[0], plates[1], plates[2]),
            captured=max(snap.captured, event.index),
            updated_at=event.at,
        )
    if isinstance(event, RunComplete):
        return replace(
            snap,
            outcome=event.outcome,
            completed_runs=snap.completed_runs + 1,
            passed_runs=snap.passed_runs + (1 if event.outcome.passed else 0),
            updated_at=event.at,
        )
    if isinstance(event, RunClosed):
        if event.reason == "reset":
            return replace(
                snap,
                plates=(None, None, None),
                captured=0,
                resets=snap.resets + 1,
                updated_at=event.at,
            )
        return replace(snap, active=False, updated_at=event.at)
    return snap


class OutputManager:
    """Sequencer listener. Channel failures are logged and reported by raise_if_failed()."""

    def __init__(self):
        self._channels: list[OutputChannel] = []
        self._lock = threading.Lock()
        self._snapshot = StatusSnapshot()
        self._failed: list[tuple[OutputChannel, Exception]] = []

    def add_channel(self, channel: OutputChannel):
        self._channels.append(channel)

    @property
    def channels(self) -> list[OutputChannel]:
        return list(self._channels)

    def start(self):
        started: list[OutputChannel] = []
        try:
            for ch in self._channels:
                ch.start()
                started.append(ch)
        except Exception:
            for ch in reversed(started):
                try:
                    ch.stop()
                except Exception:
                    L.exception("output channel stop failed during rollback")
            raise

    def stop(self):
        for ch in reversed(self._channels):
            try:
                ch.stop()
            except Exception:
                L.exception("output channel stop failed: %s", type(ch).__name__)

    def snapshot(self) -> StatusSnapshot:
        with self._lock:
            return self._snapshot

    def raise_if_failed(self):
        with self._lock:
            failed = list(self._failed)
        if failed:
            ch, err = failed[0]
            raise RuntimeError(f"output channel {type(ch).__name__} failed: {err}") from err
        for ch in self._channels:
            check = getattr(ch, "raise_if_failed", None)
            if callable(check):
                check()

    # ---- SequencerListener ----

    def on_phase_changed(self, event: PhaseChanged) -> None:
        self._publish(event)

    def on_capture_recorded(self, event: CaptureRecorded) -> None:
        self._publish(event)

    def on_run_complete(self, event: RunComplete) -> None:
        self._publish(event)

    def on_run_closed(self, event: RunClosed) -> None:
        self._publish(event)

    def _publish(self, event: Event):
        with self._lock:
            self._snapshot = _apply(self._snapshot, event)
            snap = self._snapshot
        for ch in self._channels:
            try:
                ch.publish(event, snap)
            except Exception as e:
                L.exception("output channel %s publish failed", type(ch).__name__)
                with self._lock:
                    self._failed.append((ch, e))


__all__ = ["Event", "OutputChannel", "OutputManager", "StatusSnapshot"]
