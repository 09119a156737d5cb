"""Temporary-file clip writer shared by the OpenCV-backed cameras."""

from __future__ import annotations

import os
import tempfile

import cv2
import numpy as np

_FOURCC_BY_EXT = {
    ".avi": "MJPG",
    ".mp4": "mp4v",
}


class ClipWriter:
    def __init__(self, fps: float, ext: str = ".avi"):
        self.fps = float(fps)
        self.ext = ext if ext in _FOURCC_BY_EXT else ".avi"
        fd, self.path = tempfile.mkstemp(prefix="stillcheck_clip_", suffix=self.ext)
        os.close(fd)
        self._writer: cv2.VideoWriter | None = None
        self.frames = 0

    def write(self, frame: np.ndarray) -> None:
        if frame.ndim == 2:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        if self._writer is None:
            h, w = frame.shape[:2]
            fourcc = cv2.VideoWriter_fourcc(*_FOURCC_BY_EXT[self.ext])
            self._writer = cv2.VideoWriter(self.path, fourcc, self.fps, (w, h))
            if not self._writer.isOpened():
                self._writer = None
                raise RuntimeError(f"opencv_videowriter_open_failed: {self.path}")
        self._writer.write(frame)
        self.frames += 1

    def finish(self) -> bytes:
        try:
            if self._writer is not None:
                self._writer.release()
                self._writer = None
            if self.frames == 0:
                raise RuntimeError("clip has no frames")
            with open(self.path, "rb") as f:
                return f.read()
        finally:
            self.discard()

    def discard(self) -> None:
        if self._writer is not None:
            self._writer.release()
            self._writer = None
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


__all__ = ["ClipWriter"]
