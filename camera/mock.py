# -- coding: utf-8 --

import logging
import os
import random
import re
import time
from contextlib import contextmanager

import cv2
import numpy as np

from camera.base import BaseCamera, CameraConfig, register_camera
from camera.video import ClipWriter
from plate.enhance import encode_image_jpeg

L = logging.getLogger("stillcheck.camera.mock")

_SUPPORTED_EXTS = {".jpg", ".jpeg", ".png", ".bmp"}
_ORDER_CHOICES = {
    "name_asc",
    "name_desc",
    "name_natural",
    "mtime_asc",
    "mtime_desc",
    "random",
}
_END_CHOICES = {"loop", "stop", "hold"}


def _natural_key(name: str):
    parts = re.split(r"(\d+)", name)
    return [int(p) if p.isdigit() else p.lower() for p in parts]


def _resolve_image_dir(path: str) -> str:
    base = str(path or "").strip()
    if not base:
        raise RuntimeError("mock image_dir is required")
    if not os.path.isabs(base):
        base = os.path.abspath(os.path.join(os.getcwd(), base))
    if not os.path.isdir(base):
        raise RuntimeError(f"mock image_dir not found: {base}")
    return base


def _list_images(root_dir: str) -> list[str]:
    files = []
    for name in os.listdir(root_dir):
        full = os.path.join(root_dir, name)
        if os.path.isfile(full) and os.path.splitext(name)[1].lower() in _SUPPORTED_EXTS:
            files.append(full)
    return files


def _sort_images(paths: list[str], order: str) -> list[str]:
    if order == "name_asc":
        return sorted(paths, key=lambda p: os.path.basename(p).lower())
    if order == "name_desc":
        return sorted(paths, key=lambda p: os.path.basename(p).lower(), reverse=True)
    if order == "name_natural":
        return sorted(paths, key=lambda p: _natural_key(os.path.basename(p)))
    if order == "mtime_asc":
        return sorted(paths, key=os.path.getmtime)
    if order == "mtime_desc":
        return sorted(paths, key=os.path.getmtime, reverse=True)
    if order == "random":
        shuffled = list(paths)
        random.shuffle(shuffled)
        return shuffled
    return paths


def _imread_any(path: str) -> np.ndarray | None:
    arr = cv2.imread(path, cv2.IMREAD_COLOR)
    if arr is not None:
        return arr
    # cv2.imread cannot open some non-ASCII paths; decode from a byte buffer instead.
    try:
        data = np.fromfile(path, dtype=np.uint8)
    except OSError:
        return None
    if data.size == 0:
        return None
    return cv2.imdecode(data, cv2.IMREAD_COLOR)


@register_camera("mock")
class MockCamera(BaseCamera):
    """Plays back an image directory: each still is the next file.

    A clip repeats the last still at `video_fps` for the recorded duration.
    """

    device_id = "mock"

    def __init__(self, cfg: CameraConfig):
        super().__init__(cfg)
        self._paths: list[str] = []
        self._pos = 0
        self._root_dir = ""
        self._order = str(cfg.order or "name_asc").strip().lower()
        self._end_mode = str(cfg.end_mode or "loop").strip().lower()
        self._last_frame: np.ndarray | None = None
        self._video_started_at: float | None = None

    def _scan(self):
        if self._order not in _ORDER_CHOICES:
            raise RuntimeError(
                f"mock order must be one of {sorted(_ORDER_CHOICES)}, got {self._order!r}"
            )
        if self._end_mode not in _END_CHOICES:
            raise RuntimeError(
                f"mock end_mode must be one of {sorted(_END_CHOICES)}, got {self._end_mode!r}"
            )
        self._paths = _sort_images(_list_images(self._root_dir), self._order)
        if not self._paths:
            raise RuntimeError(f"no images found in {self._root_dir}")
        self._pos = 0

    def _next_path(self) -> str | None:
        if not self._paths:
            return None
        if self._pos < len(self._paths):
            path = self._paths[self._pos]
            self._pos += 1
            return path
        if self._end_mode == "loop":
            if self._order == "random":
                self._paths = _sort_images(self._paths, self._order)
            self._pos = 1
            return self._paths[0]
        if self._end_mode == "hold":
            return self._paths[-1]
        return None

    def _capture_still(self) -> bytes:
        path = self._next_path()
        if not path:
            raise RuntimeError("no_more_images")
        arr = _imread_any(path)
        if arr is None:
            raise RuntimeError(f"read_failed: {path}")
        self._last_frame = arr
        L.info("mock still @ %s", os.path.relpath(path))
        return encode_image_jpeg(arr, quality=self.cfg.jpeg_quality)

    def _start_video(self) -> None:
        self._video_started_at = time.monotonic()

    def _stop_video(self) -> bytes:
        started = self._video_started_at
        self._video_started_at = None
        frame = self._last_frame
        if frame is None:
            path = self._paths[0] if self._paths else ""
            frame = _imread_any(path) if path else None
        if frame is None:
            raise RuntimeError("no frame available for clip")
        elapsed = time.monotonic() - (started or time.monotonic())
        count = max(1, int(round(elapsed * self.cfg.video_fps)))
        clip = ClipWriter(self.cfg.video_fps, self.cfg.video_ext)
        try:
            for _ in range(count):
                clip.write(frame)
        except Exception:
            clip.discard()
            raise
        return clip.finish()

    @contextmanager
    def session(self):
        self._root_dir = _resolve_image_dir(self.cfg.image_dir)
        self._scan()
        try:
            yield self
        finally:
            self._last_frame = None


__all__ = ["MockCamera"]
