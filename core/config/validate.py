"""Runtime config value validation."""

from __future__ import annotations

from typing import Any

from .schema import ConfigError, LoadedConfig

_LOG_LEVELS = {"debug", "info", "warning", "warn", "error", "critical"}


def validate_config(cfg: LoadedConfig) -> None:
    # runtime
    _require_float("runtime.max_runtime_s", cfg.runtime.max_runtime_s, min_v=0.0)
    _require_int("runtime.max_runs", cfg.runtime.max_runs, min_v=0)
    _require_choice("runtime.log_level", cfg.runtime.log_level, _LOG_LEVELS)

    # camera
    _require_int("camera.device_index", cfg.camera.device_index, min_v=0)
    _require_int("camera.width", cfg.camera.width, min_v=0)
    _require_int("camera.height", cfg.camera.height, min_v=0)
    _require_int("camera.jpeg_quality", cfg.camera.jpeg_quality, min_v=1, max_v=100)
    _require_float("camera.video_fps", cfg.camera.video_fps, min_v=1.0)
    _require_int("camera.exposure_us", cfg.camera.exposure_us, min_v=0)
    _require_float("camera.analogue_gain", cfg.camera.analogue_gain, min_v=0.0)
    _require_int("camera.settle_ms", cfg.camera.settle_ms, min_v=0)

    # ocr
    _require_float("ocr.enhance_contrast", cfg.ocr.enhance_contrast, min_v=0.0)
    _require_float(
        "ocr.enhance_brightness", cfg.ocr.enhance_brightness, min_v=-1.0, max_v=1.0
    )
    _require_int("ocr.enhance_threshold", cfg.ocr.enhance_threshold, min_v=0, max_v=255)
    _require_int(
        "ocr.enhance_jpeg_quality", cfg.ocr.enhance_jpeg_quality, min_v=1, max_v=100
    )

    # sensor
    _require_float("sensor.rate_hz", cfg.sensor.rate_hz, min_v=0.1)
    _require_float("sensor.noise", cfg.sensor.noise, min_v=0.0)

    # audio
    _require_str_list("audio.tone_command", cfg.audio.tone_command)
    _require_str_list("audio.speech_command", cfg.audio.speech_command)
    _require_int("audio.speech_wpm", cfg.audio.speech_wpm, min_v=1)

    # workflow
    wf = cfg.workflow
    _require_float("workflow.motion_threshold", wf.motion_threshold, min_v=0.0)
    if float(wf.motion_threshold) <= 0.0:
        raise ConfigError("workflow.motion_threshold must be > 0")
    _require_int("workflow.stable_seconds", wf.stable_seconds, min_v=1)
    _require_int("workflow.settle_countdown_s", wf.settle_countdown_s, min_v=0)
    _require_float("workflow.ready_delay_s", wf.ready_delay_s, min_v=0.0)
    _require_float("workflow.capture_dwell_s", wf.capture_dwell_s, min_v=0.0)
    _require_float("workflow.video_duration_s", wf.video_duration_s, min_v=0.0)
    _require_int("workflow.result_countdown_s", wf.result_countdown_s, min_v=0)
    _require_float("workflow.cue_pause_s", wf.cue_pause_s, min_v=0.0)
    _require_float("workflow.frame_settle_s", wf.frame_settle_s, min_v=0.0)
    _require_float("workflow.result_pause_s", wf.result_pause_s, min_v=0.0)
    _require_float("workflow.tick_s", wf.tick_s, min_v=0.001)

    # output
    _require_port("output.hmi.port", cfg.output.hmi.port)


def _require_int(
    name: str, value: Any, *, min_v: int | None = None, max_v: int | None = None
) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer")
    try:
        iv = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer") from e
    if min_v is not None and iv < min_v:
        op = ">=" if min_v != 1 else ">"
        threshold = min_v if min_v != 1 else 0
        raise ConfigError(f"{name} must be {op} {threshold}")
    if max_v is not None and iv > max_v:
        raise ConfigError(f"{name} must be <= {max_v}")
    return iv


def _require_float(
    name: str, value: Any, *, min_v: float | None = None, max_v: float | None = None
) -> float:
    try:
        fv = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number") from e
    if min_v is not None and fv < min_v:
        raise ConfigError(f"{name} must be >= {min_v:g}")
    if max_v is not None and fv > max_v:
        raise ConfigError(f"{name} must be <= {max_v:g}")
    return fv


def _require_port(name: str, value: Any) -> int:
    return _require_int(name, value, min_v=1, max_v=65535)


def _require_str_list(name: str, value: Any) -> list[str]:
    if not isinstance(value, list) or not value:
        raise ConfigError(f"{name} must be a non-empty list of strings")
    for i, item in enumerate(value):
        if not isinstance(item, str):
            raise ConfigError(f"{name}[{i}] must be a string")
    return value


def _require_choice(name: str, value: Any, choices: set[str]) -> str:
    key = str(value or "").strip().lower()
    if key not in choices:
        raise ConfigError(f"{name} must be one of {sorted(choices)}")
    return key


__all__ = ["validate_config"]
