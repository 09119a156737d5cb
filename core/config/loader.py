"""YAML loader and section builders for runtime configuration."""

from __future__ import annotations

import glob
import os
from typing import Any

import yaml

from .schema import (
    AudioConfigBlock,
    CameraConfigBlock,
    ConfigError,
    LoadedConfig,
    OcrConfigBlock,
    OutputConfigBlock,
    OutputConsoleConfigBlock,
    OutputHmiConfigBlock,
    RuntimeConfig,
    SensorConfigBlock,
    WorkflowConfigBlock,
)

_TOP_LEVEL_KEYS = {
    "runtime",
    "camera",
    "ocr",
    "sensor",
    "audio",
    "workflow",
    "output",
}


def load_config(config_dir: str = "config") -> LoadedConfig:
    main_path = _find_main_config(config_dir)
    main_data = _read_yaml(main_path)
    _validate_allowed_keys(main_data, _TOP_LEVEL_KEYS, "<root>", main_path)

    runtime = _build_dataclass(
        RuntimeConfig, main_data.get("runtime"), main_path, section="runtime"
    )
    camera = _build_camera_config(main_data.get("camera"), main_path)
    ocr = _build_dataclass(OcrConfigBlock, main_data.get("ocr"), main_path, section="ocr")
    sensor = _build_dataclass(
        SensorConfigBlock, main_data.get("sensor"), main_path, section="sensor"
    )
    audio = _build_dataclass(
        AudioConfigBlock, main_data.get("audio"), main_path, section="audio"
    )
    workflow = _build_dataclass(
        WorkflowConfigBlock, main_data.get("workflow"), main_path, section="workflow"
    )
    output = _build_output_config(main_data.get("output"), main_path)

    paths = {"main": main_path}
    ocr_params: dict[str, Any] = {}
    if ocr.config_file:
        ocr_path = ocr.config_file
        if not os.path.isabs(ocr_path):
            ocr_path = os.path.join(config_dir, ocr_path)
        if not os.path.exists(ocr_path):
            raise ConfigError(f"OCR config not found: {ocr_path}")
        ocr_params = _read_yaml(ocr_path)
        paths["ocr"] = ocr_path

    return LoadedConfig(
        runtime=runtime,
        camera=camera,
        ocr=ocr,
        sensor=sensor,
        audio=audio,
        workflow=workflow,
        output=output,
        ocr_params=ocr_params,
        paths=paths,
    )


def _find_main_config(config_dir: str) -> str:
    patterns = [
        os.path.join(config_dir, "main_*.yaml"),
        os.path.join(config_dir, "main_*.yml"),
    ]
    candidates: list[str] = []
    for pattern in patterns:
        candidates.extend(glob.glob(pattern))
    if len(candidates) == 0:
        raise ConfigError(f"No main_*.yaml found under {config_dir}")
    if len(candidates) > 1:
        raise ConfigError(
            f"Expected exactly one main_*.yaml, found: {', '.join(sorted(candidates))}"
        )
    return candidates[0]


def _read_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"YAML root must be a mapping: {path}")
    return data


def _build_dataclass(cls, data: Any, main_path: str, section: str):
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"'{section}' must be a mapping in {main_path}")
    obj = cls()
    fields = cls.__dataclass_fields__
    for k, v in data.items():
        if k in fields:
            setattr(obj, k, v)
        else:
            raise ConfigError(f"Unknown field {section}.{k} in {main_path}")
    return obj


def _validate_allowed_keys(
    data: dict[str, Any], allowed_keys: set[str], section: str, main_path: str
) -> None:
    for key in data.keys():
        if key not in allowed_keys:
            raise ConfigError(f"Unknown field {section}.{key} in {main_path}")


def _build_camera_config(data: Any, main_path: str) -> CameraConfigBlock:
    if data is None:
        return CameraConfigBlock()
    if not isinstance(data, dict):
        raise ConfigError(f"'camera' must be a mapping in {main_path}")

    cfg = CameraConfigBlock()
    if "type" in data:
        cfg.type = str(data.get("type") or cfg.type)
    selected_type = str(cfg.type or "").strip()
    camera_fields = CameraConfigBlock.__dataclass_fields__

    def _apply_camera_fields(block: dict[str, Any], section: str):
        for k, v in block.items():
            if k in camera_fields and k != "type":
                setattr(cfg, k, v)
            else:
                raise ConfigError(f"Unknown field {section}.{k} in {main_path}")

    for key, value in data.items():
        if key in {"type", "common"}:
            continue
        if isinstance(value, dict):
            continue
        raise ConfigError(
            f"camera.{key} must be nested under camera.common or camera.{selected_type} in {main_path}"
        )

    common_data = data.get("common")
    if common_data is not None:
        if not isinstance(common_data, dict):
            raise ConfigError(f"'camera.common' must be a mapping in {main_path}")
        _apply_camera_fields(common_data, "camera.common")

    # Blocks for other camera types are allowed so one file can hold several setups.
    selected_block = data.get(selected_type)
    if selected_block is not None:
        if not isinstance(selected_block, dict):
            raise ConfigError(
                f"'camera.{selected_type}' must be a mapping in {main_path}"
            )
        _apply_camera_fields(selected_block, f"camera.{selected_type}")
    return cfg


def _build_output_config(data: Any, main_path: str) -> OutputConfigBlock:
    if data is None:
        return OutputConfigBlock()
    if not isinstance(data, dict):
        raise ConfigError(f"'output' must be a mapping in {main_path}")
    cfg = OutputConfigBlock()
    block_classes = {
        "console": OutputConsoleConfigBlock,
        "hmi": OutputHmiConfigBlock,
    }
    _validate_allowed_keys(data, set(block_classes), "output", main_path)
    for key, cls in block_classes.items():
        block = data.get(key)
        if block is None:
            continue
        setattr(cfg, key, _build_dataclass(cls, block, main_path, section=f"output.{key}"))
    return cfg


__all__ = ["load_config"]
