"""Typed config schema blocks shared by loader/validator/runtime."""

from dataclasses import dataclass, field
from typing import Any, Dict, List


class ConfigError(Exception):
    pass


@dataclass
class RuntimeConfig:
    save_dir: str = "data"
    max_runtime_s: float = 0.0
    log_level: str = "info"
    # Start a run at boot and again after every finished run (unattended mode).
    auto_start: bool = True
    # Stop the service after this many completed runs; 0 = unlimited.
    max_runs: int = 0


@dataclass
class CameraConfigBlock:
    type: str = "mock"
    device_index: int = 0
    width: int = 0
    height: int = 0
    jpeg_quality: int = 90
    video_fps: float = 15.0
    video_ext: str = ".avi"
    save_media: bool = False
    # mock camera
    image_dir: str = ""
    order: str = "name_asc"
    end_mode: str = "loop"
    # raspi camera
    ae_enable: bool = True
    awb_enable: bool = True
    exposure_us: int = 0
    analogue_gain: float = 0.0
    settle_ms: int = 200
    use_still: bool = True


@dataclass
class OcrConfigBlock:
    impl: str = "tesseract"
    config_file: str = ""
    # Second-pass image variant: grayscale -> contrast/brightness -> binary threshold.
    enhance_enabled: bool = True
    enhance_contrast: float = 1.2
    enhance_brightness: float = 0.05
    enhance_threshold: int = 90
    enhance_jpeg_quality: int = 85


@dataclass
class SensorConfigBlock:
    type: str = "mock"
    rate_hz: float = 20.0
    noise: float = 0.0
    replay_file: str = ""
    loop: bool = True


@dataclass
class AudioConfigBlock:
    type: str = "log"
    tone_file: str = ""
    tone_command: List[str] = field(default_factory=lambda: ["aplay", "-q"])
    speech_command: List[str] = field(default_factory=lambda: ["espeak-ng"])
    language: str = "en-IN"
    speech_wpm: int = 150


@dataclass
class WorkflowConfigBlock:
    # Per-axis delta (accel units) at or above which a sample counts as motion.
    motion_threshold: float = 0.5
    # Consecutive stationary seconds before the device is declared ready.
    stable_seconds: int = 5
    # Countdown before sensor sampling starts, giving the operator time to mount.
    settle_countdown_s: int = 15
    # Pause after the ready cue before the first still.
    ready_delay_s: float = 2.0
    # Dead time after each of the two stills.
    capture_dwell_s: float = 5.0
    # Length of the recorded clip.
    video_duration_s: float = 3.0
    # Countdown shown with the verdict before the run is discarded.
    result_countdown_s: int = 10
    # Gap between consecutive audio cues inside one step.
    cue_pause_s: float = 0.5
    # Pause between stopping the clip and taking the third still.
    frame_settle_s: float = 0.5
    # Pause after the third extraction before evaluating.
    result_pause_s: float = 1.0
    # Period of every countdown and of the stability counter.
    tick_s: float = 1.0


@dataclass
class OutputConsoleConfigBlock:
    enabled: bool = True


@dataclass
class OutputHmiConfigBlock:
    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class OutputConfigBlock:
    console: OutputConsoleConfigBlock = field(default_factory=OutputConsoleConfigBlock)
    hmi: OutputHmiConfigBlock = field(default_factory=OutputHmiConfigBlock)


@dataclass
class LoadedConfig:
    runtime: RuntimeConfig
    camera: CameraConfigBlock
    ocr: OcrConfigBlock
    sensor: SensorConfigBlock
    audio: AudioConfigBlock
    workflow: WorkflowConfigBlock
    output: OutputConfigBlock
    ocr_params: Dict[str, Any]
    paths: Dict[str, str] = field(default_factory=dict)


__all__ = [
    "ConfigError",
    "RuntimeConfig",
    "CameraConfigBlock",
    "OcrConfigBlock",
    "SensorConfigBlock",
    "AudioConfigBlock",
    "WorkflowConfigBlock",
    "OutputConsoleConfigBlock",
    "OutputHmiConfigBlock",
    "OutputConfigBlock",
    "LoadedConfig",
]
