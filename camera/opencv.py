# -- coding: utf-8 --

import logging
import threading
import time
from contextlib import contextmanager

import cv2

from camera.base import BaseCamera, CameraConfig, register_camera
from camera.video import ClipWriter
from plate.enhance import encode_image_jpeg

L = logging.getLogger("stillcheck.camera.opencv")


@register_camera("opencv")
class OpenCvCamera(BaseCamera):
    """UVC/V4L2 device through cv2.VideoCapture.

    While a clip is recording, a grabber thread writes frames at `video_fps`;
    stills are read from the same capture handle under a device lock.
    """

    device_id = "opencv"

    def __init__(self, cfg: CameraConfig):
        super().__init__(cfg)
        self._cap: cv2.VideoCapture | None = None
        self._dev_lock = threading.Lock()
        self._clip: ClipWriter | None = None
        self._rec_stop = threading.Event()
        self._rec_thread: threading.Thread | None = None
        self._rec_error: Exception | None = None

    def _read(self):
        cap = self._cap
        if cap is None:
            raise RuntimeError("camera_not_started")
        with self._dev_lock:
            ok, frame = cap.read()
        if not ok or frame is None:
            raise RuntimeError("opencv_read_failed")
        return frame

    def _capture_still(self) -> bytes:
        return encode_image_jpeg(self._read(), quality=self.cfg.jpeg_quality)

    def _start_video(self) -> None:
        self._clip = ClipWriter(self.cfg.video_fps, self.cfg.video_ext)
        self._rec_stop.clear()
        self._rec_error = None
        self._rec_thread = threading.Thread(
            target=self._record_loop, name="stillcheck-clip", daemon=True
        )
        self._rec_thread.start()

    def _record_loop(self):
        clip = self._clip
        period = 1.0 / max(self.cfg.video_fps, 1.0)
        next_ts = time.monotonic()
        try:
            while not self._rec_stop.is_set():
                if clip is not None:
                    clip.write(self._read())
                next_ts += period
                self._rec_stop.wait(max(next_ts - time.monotonic(), 0.0))
        except Exception as e:
            self._rec_error = e
            L.warning("clip recording stopped: %s", e)

    def _stop_video(self) -> bytes:
        self._rec_stop.set()
        thread = self._rec_thread
        self._rec_thread = None
        if thread is not None:
            thread.join(timeout=2.0)
        clip, self._clip = self._clip, None
        if clip is None:
            raise RuntimeError("no clip in progress")
        if self._rec_error is not None:
            clip.discard()
            raise RuntimeError(f"clip recording failed: {self._rec_error}")
        return clip.finish()

    @contextmanager
    def session(self):
        cap = cv2.VideoCapture(int(self.cfg.device_index))
        if not cap.isOpened():
            cap.release()
            raise RuntimeError(f"opencv device {self.cfg.device_index} not available")
        if self.cfg.width and self.cfg.height:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, int(self.cfg.width))
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, int(self.cfg.height))
        self._cap = cap
        L.info("opencv camera %s opened", self.cfg.device_index)
        try:
            yield self
        finally:
            if self._rec_thread is not None:
                self._rec_stop.set()
                self._rec_thread.join(timeout=2.0)
                self._rec_thread = None
            if self._clip is not None:
                self._clip.discard()
                self._clip = None
            self._recording = False
            self._cap = None
            cap.release()


__all__ = ["OpenCvCamera"]
