"""Config package facade."""

from .loader import load_config
from .schema import (
    AudioConfigBlock,
    CameraConfigBlock,
    ConfigError,
    LoadedConfig,
    OcrConfigBlock,
    OutputConfigBlock,
    RuntimeConfig,
    SensorConfigBlock,
    WorkflowConfigBlock,
)
from .validate import validate_config

__all__ = [
    "AudioConfigBlock",
    "CameraConfigBlock",
    "ConfigError",
    "LoadedConfig",
    "OcrConfigBlock",
    "OutputConfigBlock",
    "RuntimeConfig",
    "SensorConfigBlock",
    "WorkflowConfigBlock",
    "load_config",
    "validate_config",
]
