# -- coding: utf-8 --

import io
import os
import tempfile
import time
from contextlib import contextmanager

import cv2
import numpy as np
from picamera2 import Picamera2, Preview
from picamera2.encoders import H264Encoder
from picamera2.outputs import FileOutput

from camera.base import BaseCamera, CameraConfig, register_camera
from plate.enhance import encode_image_jpeg


def _to_bgr(arr: np.ndarray) -> np.ndarray:
	if arr.ndim == 3 and arr.shape[2] == 4:
		return arr[:, :, :3]
	if arr.ndim == 2:
		return cv2.cvtColor(arr, cv2.COLOR_GRAY2BGR)
	return arr


@register_camera("raspi")
class RaspiCamera(BaseCamera):
	"""Pi camera via picamera2; clips are raw H.264 from the hardware encoder."""

	device_id = "raspi"

	def __init__(self, cfg: CameraConfig):
		super().__init__(cfg)
		self._cam: Picamera2 | None = None
		self._encoder: H264Encoder | None = None
		self._clip_path: str | None = None

	def _build_controls(self) -> dict:
		ctrls: dict = {}
		if self.cfg.ae_enable is not None:
			ctrls["AeEnable"] = bool(self.cfg.ae_enable)
		if self.cfg.awb_enable is not None:
			ctrls["AwbEnable"] = bool(self.cfg.awb_enable)
		if self.cfg.exposure_us and int(self.cfg.exposure_us) > 0:
			ctrls["ExposureTime"] = int(self.cfg.exposure_us)
		if self.cfg.analogue_gain and float(self.cfg.analogue_gain) > 0:
			ctrls["AnalogueGain"] = float(self.cfg.analogue_gain)
		return ctrls

	def _apply_controls(self):
		ctrls = self._build_controls()
		cam = self._cam
		if not ctrls or cam is None:
			return
		cam.set_controls(ctrls)
		settle_ms = max(int(self.cfg.settle_ms or 0), 0)
		if settle_ms > 0:
			time.sleep(settle_ms / 1000.0)

	def _capture_still(self) -> bytes:
		if not self._cam:
			raise RuntimeError("camera_not_started")
		arr = self._cam.capture_array()
		bgr = _to_bgr(arr).astype(np.uint8, copy=False)
		return encode_image_jpeg(bgr, quality=self.cfg.jpeg_quality)

	def _start_video(self) -> None:
		if not self._cam:
			raise RuntimeError("camera_not_started")
		fd, path = tempfile.mkstemp(prefix="stillcheck_clip_", suffix=".h264")
		os.close(fd)
		self._clip_path = path
		self._encoder = H264Encoder()
		# start_encoder keeps the camera running, so stills still work afterwards.
		self._cam.start_encoder(self._encoder, FileOutput(path))

	def _stop_video(self) -> bytes:
		cam, path = self._cam, self._clip_path
		self._clip_path = None
		self._encoder = None
		if cam is None or path is None:
			raise RuntimeError("no clip in progress")
		try:
			cam.stop_encoder()
			with io.open(path, "rb") as f:
				return f.read()
		finally:
			try:
				os.remove(path)
			except FileNotFoundError:
				pass

	@contextmanager
	def session(self):
		self._cam = Picamera2()
		main_cfg: dict[str, object] = {"format": "XBGR8888"}
		if self.cfg.width and self.cfg.height:
			main_cfg["size"] = (int(self.cfg.width), int(self.cfg.height))
		if self.cfg.use_still:
			cfg = self._cam.create_still_configuration(main=main_cfg)
		else:
			cfg = self._cam.create_video_configuration(main=main_cfg)
		self._cam.configure(cfg)
		self._cam.start_preview(Preview.NULL)
		self._cam.start()
		self._apply_controls()
		try:
			yield self
		finally:
			try:
				if self._encoder is not None:
					self._cam.stop_encoder()
				self._cam.stop()
			finally:
				self._cam.close()
				self._cam = None
				self._encoder = None
				self._recording = False


__all__ = ["RaspiCamera"]
