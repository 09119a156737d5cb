"""Data contracts for sensor samples, captures, run outcomes, and events."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class StillCheckError(Exception):
    """Base class for collaborator failures that end a run."""


class CaptureError(StillCheckError):
    """Camera device or I/O failure."""


class RecognitionError(StillCheckError):
    """OCR engine failure or malformed image input."""


class DetectionPhase(str, Enum):
    SETTLE_COUNTDOWN = "SettleCountdown"
    AWAITING_STATIONARY = "AwaitingStationary"
    READY = "Ready"
    CAPTURE_1 = "Capture1"
    CAPTURE_2 = "Capture2"
    CAPTURE_VIDEO = "CaptureVideo"
    RESULT = "Result"


@dataclass(frozen=True, slots=True)
class AccelerationSample:
    x: float
    y: float
    z: float
    timestamp: float = 0.0


@dataclass(frozen=True, slots=True)
class StabilityState:
    is_stationary: bool = False
    stable_seconds: int = 0


@dataclass(frozen=True, slots=True)
class CaptureRecord:
    phase_label: str
    raw_image_bytes: bytes = field(repr=False)
    recognized_plate: str | None = None


@dataclass(frozen=True, slots=True)
class RunOutcome:
    passed: bool
    plate1: str | None = None
    plate2: str | None = None
    plate3: str | None = None

    @property
    def detected_plate(self) -> str | None:
        """Most recent successful extraction: capture 3, then 2, then 1."""
        for plate in (self.plate3, self.plate2, self.plate1):
            if plate is not None:
                return plate
        return None

    @property
    def message(self) -> str:
        plate = self.detected_plate or "Not Detected"
        if self.passed:
            return f"Vehicle Number {plate} Matched Successfully!"
        return f"Vehicle Number {plate} Did Not Match - Test Failed!"


# Events fired by the sequencer; presentation adapters consume them read-only.


@dataclass(frozen=True, slots=True)
class PhaseChanged:
    run_id: int
    phase: DetectionPhase
    status_text: str
    at: datetime | None = None


@dataclass(frozen=True, slots=True)
class CaptureRecorded:
    run_id: int
    index: int
    plate: str | None
    at: datetime | None = None


@dataclass(frozen=True, slots=True)
class RunComplete:
    run_id: int
    outcome: RunOutcome
    at: datetime | None = None


@dataclass(frozen=True, slots=True)
class RunClosed:
    run_id: int
    reason: str  # "completed" / "reset" / "abandoned"
    at: datetime | None = None


__all__ = [
    "StillCheckError",
    "CaptureError",
    "RecognitionError",
    "DetectionPhase",
    "AccelerationSample",
    "StabilityState",
    "CaptureRecord",
    "RunOutcome",
    "PhaseChanged",
    "CaptureRecorded",
    "RunComplete",
    "RunClosed",
]
