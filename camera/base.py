# -- coding: utf-8 --

import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Type

from core.contracts import CaptureError
from core.registry import NamedRegistry

from .save_utils import MediaArchive

L = logging.getLogger("stillcheck.camera")

cameras: NamedRegistry[Type["BaseCamera"]] = NamedRegistry(
    __package__ or "camera", "camera type"
)


@dataclass
class CameraConfig:
    media_dir: str = ""
    device_index: int = 0
    width: int = 0
    height: int = 0
    jpeg_quality: int = 90
    video_fps: float = 15.0
    video_ext: str = ".avi"
    save_media: bool = False
    image_dir: str = ""
    order: str = "name_asc"
    end_mode: str = "loop"
    ae_enable: bool = True
    awb_enable: bool = True
    exposure_us: int = 0
    analogue_gain: float = 0.0
    settle_ms: int = 200
    use_still: bool = True


def build_camera_config(cfg_block, *, media_dir: str = "") -> CameraConfig:
    return CameraConfig(
        media_dir=media_dir,
        device_index=int(cfg_block.device_index),
        width=int(cfg_block.width),
        height=int(cfg_block.height),
        jpeg_quality=int(cfg_block.jpeg_quality),
        video_fps=float(cfg_block.video_fps),
        video_ext=_normalize_ext(cfg_block.video_ext),
        save_media=bool(cfg_block.save_media),
        image_dir=str(cfg_block.image_dir),
        order=str(cfg_block.order),
        end_mode=str(cfg_block.end_mode),
        ae_enable=bool(cfg_block.ae_enable),
        awb_enable=bool(cfg_block.awb_enable),
        exposure_us=int(cfg_block.exposure_us),
        analogue_gain=float(cfg_block.analogue_gain),
        settle_ms=int(cfg_block.settle_ms),
        use_still=bool(cfg_block.use_still),
    )


def _normalize_ext(ext: object) -> str:
    raw = str(ext or "")
    if not raw:
        return ".avi"
    return raw if raw.startswith(".") else f".{raw}"


class BaseCamera(ABC):
    """Camera collaborator: JPEG stills and short clips as bytes.

    Subclasses implement the `_`-prefixed device primitives; the public
    methods serialize access, time the call, archive media when enabled, and
    turn any device failure into `CaptureError`.
    """

    device_id = "camera"

    def __init__(self, cfg: CameraConfig):
        self.cfg = cfg
        self.lock = threading.Lock()
        self._recording = False
        self._archive = MediaArchive(cfg.media_dir) if cfg.save_media else None

    @abstractmethod
    def _capture_still(self) -> bytes:
        """Grab one frame and return it JPEG-encoded."""

    @abstractmethod
    def _start_video(self) -> None: ...

    @abstractmethod
    def _stop_video(self) -> bytes:
        """Stop the clip and return the encoded container bytes."""

    @contextmanager
    @abstractmethod
    def session(self):
        """Manage camera lifecycle."""
        yield

    @property
    def recording(self) -> bool:
        return self._recording

    def capture_still(self) -> bytes:
        with self.lock:
            start = time.perf_counter()
            data = self._guard("capture_still", self._capture_still)
            if not data:
                raise CaptureError(f"{self.device_id}: capture_still returned no data")
            L.debug(
                "%s still %d bytes in %.1fms",
                self.device_id,
                len(data),
                (time.perf_counter() - start) * 1000,
            )
        self._save(data, ".jpg")
        return data

    def start_video(self) -> None:
        with self.lock:
            if self._recording:
                raise CaptureError(f"{self.device_id}: video already recording")
            self._guard("start_video", self._start_video)
            self._recording = True

    def stop_video(self) -> bytes:
        with self.lock:
            if not self._recording:
                raise CaptureError(f"{self.device_id}: video not recording")
            self._recording = False
            data = self._guard("stop_video", self._stop_video)
        self._save(data, self.cfg.video_ext)
        return data

    def _guard(self, stage: str, fn):
        try:
            return fn()
        except CaptureError:
            raise
        except Exception as e:
            raise CaptureError(
                f"{self.device_id} stage={stage}: {type(e).__name__}: {e}"
            ) from e

    def _save(self, data: bytes, ext: str) -> None:
        if self._archive is None or not data:
            return
        try:
            self._archive.save(data, ext)
        except OSError:
            L.exception("%s media archive write failed", self.device_id)


def register_camera(name: str):
    return cameras.register(name)


def create_camera(name: str, cfg: CameraConfig) -> BaseCamera:
    cls = cameras.resolve(name)
    return cls(cfg)


def create_camera_from_loaded_config(cfg) -> BaseCamera:
    media_dir = os.path.join(cfg.runtime.save_dir, "media")
    cam_cfg = build_camera_config(cfg.camera, media_dir=media_dir)
    return create_camera(cfg.camera.type, cam_cfg)


__all__ = [
    "CameraConfig",
    "build_camera_config",
    "BaseCamera",
    "register_camera",
    "create_camera",
    "create_camera_from_loaded_config",
]
