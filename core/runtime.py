"""Core runtime: SystemRuntime orchestration and runtime assembly."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import CancelledError, Future, TimeoutError
from contextlib import ExitStack
from typing import TYPE_CHECKING, Callable

from core.contracts import RunOutcome
from core.lifecycle import LoopRunner

if TYPE_CHECKING:  # pragma: no cover
    from core.sequencer import CaptureSequencer
    from output.manager import OutputManager, StatusSnapshot

L = logging.getLogger("stillcheck.runtime")


class SystemRuntime:
    """Owns device sessions, runs the sequencer on the shared loop, stops in stages.

    A run starts when one is requested (HMI start, `request_run()`) or, with
    `auto_start`, as soon as the previous run has closed. At most one run is
    active at a time.
    """

    def __init__(
        self,
        camera,
        sensor,
        sequencer: CaptureSequencer,
        output_mgr: OutputManager,
        loop_runner: LoopRunner,
        *,
        auto_start: bool = True,
        max_runs: int = 0,
    ):
        self.camera = camera
        self.sensor = sensor
        self.sequencer = sequencer
        self.output_mgr = output_mgr
        self.loop_runner = loop_runner
        self.auto_start = bool(auto_start)
        self.max_runs = int(max_runs)
        self.outcomes: list[RunOutcome] = []

        self._stop_evt = threading.Event()
        self._run_lock = threading.Lock()
        self._run_requested = False
        self._active: Future[RunOutcome] | None = None
        self._session_stack: ExitStack | None = None
        self._started = False
        self._stopped = False

    def start(self):
        if self._started:
            raise RuntimeError(
                "SystemRuntime is single-use; start() may only be called once"
            )
        if self._stopped:
            raise RuntimeError("SystemRuntime is stopped and cannot be started again")
        self._started = True
        try:
            self._enter_device_sessions()
            self.output_mgr.start()
        except Exception:
            L.exception("Runtime start failed; rolling back partial startup")
            try:
                self.stop()
            except Exception:
                L.exception("Runtime rollback stop failed")
            raise

    def request_stop(self):
        self._stop_evt.set()

    def request_run(self) -> bool:
        """Ask for a run; False while one is active, queued, or the runtime is stopping."""
        if not self._started or self._stop_evt.is_set() or self._runs_exhausted():
            return False
        with self._run_lock:
            if self._run_requested or (self._active is not None and not self._active.done()):
                return False
            self._run_requested = True
        return True

    def snapshot(self) -> StatusSnapshot:
        return self.output_mgr.snapshot()

    def run(self, runtime_limit_s: float | None = None):
        if not self._started:
            raise RuntimeError("SystemRuntime.run() requires start() first")
        start_ts = time.perf_counter()
        if not self.auto_start:
            L.info("Waiting for start request")
        try:
            while not self._stop_evt.wait(0.1):
                self._collect_finished_run()
                self._maybe_start_run()
                self.output_mgr.raise_if_failed()
                if (
                    runtime_limit_s is not None
                    and (time.perf_counter() - start_ts) >= runtime_limit_s
                ):
                    L.info(
                        "Runtime limit reached (%ss); shutting down service",
                        runtime_limit_s,
                    )
                    self.request_stop()
        finally:
            self.stop()

    def _runs_exhausted(self) -> bool:
        return self.max_runs > 0 and len(self.outcomes) >= self.max_runs

    def _maybe_start_run(self):
        if self._stop_evt.is_set() or self._runs_exhausted():
            return
        with self._run_lock:
            if self._active is not None:
                return
            if not (self.auto_start or self._run_requested):
                return
            self._run_requested = False
            self._active = self.loop_runner.submit(self.sequencer.run_once())
        L.info("Run %d starting", len(self.outcomes) + 1)

    def _collect_finished_run(self):
        fut = self._active
        if fut is None or not fut.done():
            return
        with self._run_lock:
            self._active = None
        # Anything other than a verdict is a defect; let it stop the service.
        outcome = fut.result()
        self.outcomes.append(outcome)
        passed = sum(1 for o in self.outcomes if o.passed)
        L.info(
            "Run %d finished: %s (passed %d/%d)",
            len(self.outcomes),
            "PASS" if outcome.passed else "FAIL",
            passed,
            len(self.outcomes),
        )
        if self._runs_exhausted():
            L.info("max_runs=%d reached; shutting down service", self.max_runs)
            self.request_stop()

    def stop(self):
        if self._stopped:
            return
        self._stopped = True
        self._stop_evt.set()
        stop_t0 = time.perf_counter()
        stage_t0 = stop_t0

        def _log_stage(name: str):
            nonlocal stage_t0
            now = time.perf_counter()
            L.debug("Shutdown stage=%s elapsed=%.1fms", name, (now - stage_t0) * 1000)
            stage_t0 = now

        def _run_stage(name: str, fn: Callable[[], None]):
            try:
                fn()
            except Exception:
                L.exception("Shutdown stage failed: %s", name)
            finally:
                _log_stage(name)

        _run_stage("active_run", self._abandon_active_run)
        _run_stage("output_manager", self.output_mgr.stop)
        _run_stage("async_loop", self.loop_runner.shutdown_loop)
        _run_stage("device_sessions", self._exit_device_sessions)
        L.debug(
            "Shutdown stage=total elapsed=%.1fms",
            (time.perf_counter() - stop_t0) * 1000,
        )

    def _abandon_active_run(self):
        with self._run_lock:
            fut, self._active = self._active, None
        if fut is None or fut.done():
            return
        L.info("Abandoning active run (phase=%s)", self.sequencer.phase.value)
        fut.cancel()
        try:
            fut.result(timeout=2.0)
        except (CancelledError, TimeoutError):
            pass

    def _enter_device_sessions(self):
        if self._session_stack is not None:
            return
        with ExitStack() as stack:
            stack.enter_context(self.camera.session())
            stack.enter_context(self.sensor.session())
            self._session_stack = stack.pop_all()

    def _exit_device_sessions(self):
        stack = self._session_stack
        if stack is None:
            return
        self._session_stack = None
        stack.close()


def _wire_output_channels(cfg, *, runtime: SystemRuntime, output_mgr, loop_runner):
    if cfg.output.console.enabled:
        from output.console import ConsoleOutput

        output_mgr.add_channel(ConsoleOutput())

    if cfg.output.hmi.enabled:
        from output.hmi import HmiOutput

        output_mgr.add_channel(
            HmiOutput(
                cfg.output.hmi.host,
                cfg.output.hmi.port,
                runtime,
                loop_runner=loop_runner,
            )
        )


def build_runtime_from_loaded_config(cfg) -> SystemRuntime:
    """Assemble collaborators from a validated LoadedConfig."""
    from audio import create_audio
    from camera import create_camera_from_loaded_config
    from core.sequencer import CaptureSequencer
    from ocr import create_recognizer
    from output.manager import OutputManager
    from plate import EnhanceParams, PlateExtractor
    from sensor import build_sensor_config, create_sensor

    loop_runner = LoopRunner(logger=L)
    camera = create_camera_from_loaded_config(cfg)
    recognizer = create_recognizer(cfg.ocr.impl, cfg.ocr_params)
    extractor = PlateExtractor(
        recognizer,
        enhance_enabled=cfg.ocr.enhance_enabled,
        enhance_params=EnhanceParams(
            contrast=cfg.ocr.enhance_contrast,
            brightness=cfg.ocr.enhance_brightness,
            threshold=cfg.ocr.enhance_threshold,
            jpeg_quality=cfg.ocr.enhance_jpeg_quality,
        ),
    )
    sensor = create_sensor(cfg.sensor.type, build_sensor_config(cfg.sensor))
    audio = create_audio(cfg.audio.type, cfg.audio)
    output_mgr = OutputManager()
    sequencer = CaptureSequencer(
        camera,
        extractor,
        audio,
        sensor,
        policy=cfg.workflow,
        listener=output_mgr,
    )
    runtime = SystemRuntime(
        camera,
        sensor,
        sequencer,
        output_mgr,
        loop_runner,
        auto_start=cfg.runtime.auto_start,
        max_runs=cfg.runtime.max_runs,
    )
    _wire_output_channels(
        cfg, runtime=runtime, output_mgr=output_mgr, loop_runner=loop_runner
    )
    return runtime


__all__ = ["SystemRuntime", "build_runtime_from_loaded_config"]
