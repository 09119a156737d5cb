"""Capture sequencer: settle, wait for stillness, three captures, verdict.

One run is one coroutine. Everything it starts in the background (the
stability ticker, the sensor subscription) belongs to the run's `RunScope`
and is released when the run ends, whether it completed, was reset by a
capture failure, or was cancelled from outside.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Protocol

from audio.base import TONE_ALARM, Audio
from core.config.schema import WorkflowConfigBlock
from core.contracts import (
    AccelerationSample,
    CaptureError,
    CaptureRecord,
    CaptureRecorded,
    DetectionPhase,
    PhaseChanged,
    RecognitionError,
    RunClosed,
    RunComplete,
    RunOutcome,
)
from core.evaluator import evaluate
from core.lifecycle import RunScope
from core.stability import StabilityDetector

L = logging.getLogger("stillcheck.sequencer")

Sleep = Callable[[float], Awaitable[Any]]

CAPTURE_LABELS = ("photo1", "photo2", "video")

SAY_DOCK = "Please dock your device on the tripod"
SAY_ALARM = "Raising alarm"
SAY_PASSED = "Test passed successfully"
SAY_FAILED = "Test failed"


class SequencerListener(Protocol):
    def on_phase_changed(self, event: PhaseChanged) -> None: ...

    def on_capture_recorded(self, event: CaptureRecorded) -> None: ...

    def on_run_complete(self, event: RunComplete) -> None: ...

    def on_run_closed(self, event: RunClosed) -> None: ...


class _NullListener:
    def on_phase_changed(self, event: PhaseChanged) -> None:
        pass

    def on_capture_recorded(self, event: CaptureRecorded) -> None:
        pass

    def on_run_complete(self, event: RunComplete) -> None:
        pass

    def on_run_closed(self, event: RunClosed) -> None:
        pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _plate_text(plate: str | None) -> str:
    return plate if plate is not None else "No plate detected"


class CaptureSequencer:
    def __init__(
        self,
        camera,
        extractor,
        audio: Audio,
        sensor,
        *,
        policy: WorkflowConfigBlock | None = None,
        listener: SequencerListener | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.camera = camera
        self.extractor = extractor
        self.audio = audio
        self.sensor = sensor
        self.policy = policy or WorkflowConfigBlock()
        self.listener = listener or _NullListener()
        self._sleep = sleep
        self._phase = DetectionPhase.SETTLE_COUNTDOWN
        self._status = ""
        self._records: list[CaptureRecord] = []
        self._run_id = 0
        self._resets = 0

    @property
    def phase(self) -> DetectionPhase:
        return self._phase

    @property
    def status(self) -> str:
        return self._status

    @property
    def records(self) -> list[CaptureRecord]:
        return list(self._records)

    @property
    def run_id(self) -> int:
        return self._run_id

    @property
    def resets(self) -> int:
        return self._resets

    async def run_once(self) -> RunOutcome:
        """Drive runs until one reaches a verdict; capture failures restart from the top."""
        while True:
            self._run_id += 1
            run_id = self._run_id
            self._records = []
            try:
                async with RunScope(run_id, logger=L) as scope:
                    outcome = await self._run(scope)
            except (CaptureError, RecognitionError) as e:
                self._resets += 1
                self._records = []
                L.warning("[run %d] %s; restarting from settle countdown", run_id, e)
                self.listener.on_run_closed(RunClosed(run_id, "reset", _now()))
                continue
            except asyncio.CancelledError:
                self._records = []
                L.info("[run %d] abandoned", run_id)
                self.listener.on_run_closed(RunClosed(run_id, "abandoned", _now()))
                raise
            self.listener.on_run_closed(RunClosed(run_id, "completed", _now()))
            return outcome

    async def _run(self, scope: RunScope) -> RunOutcome:
        await self._settle_countdown()
        await self._await_stationary(scope)
        await self._ready()
        plate1 = await self._capture_photo(1)
        plate2 = await self._capture_photo(2)
        plate3 = await self._capture_video()
        return await self._result(plate1, plate2, plate3)

    # ---- phases ----

    async def _settle_countdown(self):
        total = int(self.policy.settle_countdown_s)
        self._enter(
            DetectionPhase.SETTLE_COUNTDOWN, f"Detection starting in {total} seconds..."
        )
        for remaining in range(total, 0, -1):
            self._set_status(f"Detection starting in {remaining} seconds...")
            await self._sleep(self.policy.tick_s)

    async def _await_stationary(self, scope: RunScope):
        self._enter(DetectionPhase.AWAITING_STATIONARY, "Please dock your device on tripod...")
        await self._cue(self.audio.speak, SAY_DOCK)

        detector = StabilityDetector(
            self.policy.motion_threshold, self.policy.stable_seconds
        )
        loop = asyncio.get_running_loop()
        samples: asyncio.Queue[AccelerationSample | None] = asyncio.Queue()

        def on_sample(sample: AccelerationSample):
            # Sensor thread.
            loop.call_soon_threadsafe(samples.put_nowait, sample)

        async def count_still_seconds():
            while True:
                await self._sleep(self.policy.tick_s)
                if detector.tick():
                    samples.put_nowait(None)
                    return
                self._set_status(f"Device steady... {detector.remaining_seconds}s")

        sub = scope.adopt(self.sensor.subscribe(on_sample))
        ticker: asyncio.Task | None = None
        try:
            while True:
                sample = await samples.get()
                if sample is None or detector.ready:
                    break
                state = detector.update(sample)
                if state.is_stationary:
                    if ticker is None:
                        ticker = scope.spawn(count_still_seconds(), name="stability")
                        self._set_status(
                            f"Device steady... {detector.remaining_seconds}s"
                        )
                else:
                    if ticker is not None:
                        await scope.cancel_task(ticker)
                        ticker = None
                    self._set_status("Device moving... Hold steady!")
        finally:
            scope.release(sub)
            await scope.cancel_task(ticker)
        L.info("[run %d] stationary for %ds", self._run_id, detector.stable_seconds)

    async def _ready(self):
        self._enter(DetectionPhase.READY, "Device ready! Starting capture...")
        await self._cue(
            self.audio.speak,
            f"Device in stationary mode for {int(self.policy.stable_seconds)} seconds",
        )
        await self._cue(self.audio.play_tone, TONE_ALARM)
        await self._sleep(self.policy.ready_delay_s)

    async def _capture_photo(self, index: int) -> str | None:
        phase = DetectionPhase.CAPTURE_1 if index == 1 else DetectionPhase.CAPTURE_2
        ordinal = "first" if index == 1 else "second"
        self._enter(phase, f"Capturing {ordinal} photo...")
        image, grab_ms = await self._timed(self.camera.capture_still)
        self._set_status(f"Processing {ordinal} photo...")
        plate = await self._record(index, image, grab_ms)
        follow = "Waiting..." if index == 1 else "Matching..."
        self._set_status(f"Photo {index}: {_plate_text(plate)}\n{follow}")

        await self._sleep(self.policy.capture_dwell_s)
        if index == 1:
            await self._cue(self.audio.speak, SAY_ALARM)
            await self._sleep(self.policy.cue_pause_s)
        await self._cue(self.audio.play_tone, TONE_ALARM)
        await self._sleep(self.policy.cue_pause_s)
        return plate

    async def _capture_video(self) -> str | None:
        duration = self.policy.video_duration_s
        self._enter(
            DetectionPhase.CAPTURE_VIDEO, f"Recording video ({duration:g} seconds)..."
        )
        await asyncio.to_thread(self.camera.start_video)
        try:
            await self._sleep(duration)
        except BaseException:
            await self._abort_recording()
            raise
        clip, clip_ms = await self._timed(self.camera.stop_video)
        L.info("[run %d] clip %d bytes in %.0fms", self._run_id, len(clip), clip_ms)

        await self._sleep(self.policy.frame_settle_s)
        self._set_status("Processing video frame...")
        image, grab_ms = await self._timed(self.camera.capture_still)
        plate = await self._record(3, image, grab_ms)
        self._set_status(f"Video: {_plate_text(plate)}\nCalculating result...")
        await self._sleep(self.policy.result_pause_s)
        return plate

    async def _result(self, plate1, plate2, plate3) -> RunOutcome:
        outcome = evaluate(plate1, plate2, plate3)
        self._enter(DetectionPhase.RESULT, "PASSED" if outcome.passed else "FAILED")
        L.info("[run %d] %s", self._run_id, outcome.message)
        self.listener.on_run_complete(RunComplete(self._run_id, outcome, _now()))
        await self._cue(self.audio.speak, SAY_PASSED if outcome.passed else SAY_FAILED)
        for remaining in range(int(self.policy.result_countdown_s), 0, -1):
            self._set_status(f"Returning to home in {remaining}")
            await self._sleep(self.policy.tick_s)
        return outcome

    # ---- helpers ----

    async def _timed(self, fn):
        t0 = time.perf_counter()
        result = await asyncio.to_thread(fn)
        return result, (time.perf_counter() - t0) * 1000.0

    async def _record(self, index: int, image: bytes, grab_ms: float) -> str | None:
        plate, ocr_ms = await self._timed(lambda: self.extractor.extract(image))
        label = CAPTURE_LABELS[index - 1]
        self._records.append(CaptureRecord(label, image, plate))
        L.info(
            "[run %d] capture=%s grab=%.0fms ocr=%.0fms plate=%s",
            self._run_id,
            label,
            grab_ms,
            ocr_ms,
            plate,
        )
        self.listener.on_capture_recorded(
            CaptureRecorded(self._run_id, index, plate, _now())
        )
        return plate

    async def _abort_recording(self):
        if not getattr(self.camera, "recording", False):
            return
        try:
            await asyncio.to_thread(self.camera.stop_video)
        except CaptureError as e:
            L.warning("[run %d] stop recording after failure: %s", self._run_id, e)

    async def _cue(self, fn, arg) -> None:
        try:
            await fn(arg)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            L.warning("[run %d] audio cue %r failed: %s", self._run_id, arg, e)

    def _enter(self, phase: DetectionPhase, status: str):
        if phase != self._phase:
            L.info("[run %d] phase %s -> %s", self._run_id, self._phase.value, phase.value)
        self._phase = phase
        self._set_status(status, force=True)

    def _set_status(self, status: str, *, force: bool = False):
        if status == self._status and not force:
            return
        self._status = status
        self.listener.on_phase_changed(
            PhaseChanged(self._run_id, self._phase, status, _now())
        )


__all__ = ["CaptureSequencer", "SequencerListener", "CAPTURE_LABELS"]
