import os
import sys
import tempfile
import threading
import unittest
from unittest import mock

import cv2

from audio import create_audio
from audio.command import CommandAudio
from camera import CameraConfig, create_camera
from core.config import AudioConfigBlock
from core.contracts import AccelerationSample, CaptureError
from plate.enhance import decode_image
from sensor import SensorConfig, create_sensor
from sensor.replay import load_samples

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
IMAGE_DIR = os.path.join(REPO_ROOT, "tests", "images")


class TestReplaySensor(unittest.TestCase):
    def _csv(self, d, text):
        path = os.path.join(d, "samples.csv")
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_load_samples_skips_header_and_comments(self):
        with tempfile.TemporaryDirectory() as d:
            path = self._csv(d, "x,y,z,t\n# bench run\n0.1,0.0,9.8\n0.2,0.1,9.7,12.5\n\n")
            samples = load_samples(path)
        self.assertEqual(
            samples,
            [
                AccelerationSample(0.1, 0.0, 9.8, 0.0),
                AccelerationSample(0.2, 0.1, 9.7, 12.5),
            ],
        )

    def test_load_samples_rejects_bad_rows(self):
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(ValueError):
                load_samples(self._csv(d, "0,0,9.8\n0,zero,9.8\n"))
            with self.assertRaises(ValueError):
                load_samples(self._csv(d, "0,0\n"))

    def test_session_emits_all_samples_once(self):
        with tempfile.TemporaryDirectory() as d:
            path = self._csv(d, "0,0,9.8\n0,0,9.9\n0,0,9.7\n")
            sensor = create_sensor("replay", SensorConfig(rate_hz=200, replay_file=path, loop=False))
            got = []
            done = threading.Event()

            def on_sample(sample):
                got.append(sample.z)
                if len(got) == 3:
                    done.set()

            sub = sensor.subscribe(on_sample)
            with sensor.session():
                self.assertTrue(done.wait(2.0))
            sub.cancel()
        self.assertEqual(got, [9.8, 9.9, 9.7])
        self.assertEqual(sensor.subscriber_count, 0)

    def test_replay_requires_file(self):
        sensor = create_sensor("replay", SensorConfig())
        with self.assertRaises(RuntimeError):
            with sensor.session():
                pass


class TestMotionSensorFanout(unittest.TestCase):
    def test_failing_subscriber_is_dropped(self):
        sensor = create_sensor("mock", SensorConfig())
        seen = []

        def broken(_sample):
            raise ValueError("boom")

        sensor.subscribe(broken)
        sensor.subscribe(seen.append)
        with self.assertLogs("stillcheck.sensor", level="ERROR"):
            sensor._emit(AccelerationSample(0, 0, 9.8))
        sensor._emit(AccelerationSample(0, 0, 9.8))
        self.assertEqual(len(seen), 2)
        self.assertEqual(sensor.subscriber_count, 1)

    def test_unknown_sensor_type(self):
        with self.assertRaises(ValueError):
            create_sensor("gyro9000", SensorConfig())


class TestMockCamera(unittest.TestCase):
    def test_stills_video_and_archive(self):
        with tempfile.TemporaryDirectory() as d:
            cam = create_camera(
                "mock",
                CameraConfig(image_dir=IMAGE_DIR, video_fps=5, save_media=True, media_dir=d),
            )
            with cam.session():
                still = cam.capture_still()
                cam.start_video()
                self.assertTrue(cam.recording)
                clip = cam.stop_video()
            saved = [f for _, _, files in os.walk(d) for f in files]

        img = decode_image(still, cv2.IMREAD_COLOR)
        self.assertEqual(img.shape, (32, 64, 3))
        self.assertGreater(len(clip), 0)
        self.assertEqual(sorted(os.path.splitext(f)[1] for f in saved), [".avi", ".jpg"])

    def test_failures_become_capture_error(self):
        cam = create_camera("mock", CameraConfig(image_dir=IMAGE_DIR, end_mode="stop"))
        with cam.session():
            with self.assertRaises(CaptureError):
                cam.stop_video()
            for _ in range(3):
                cam.capture_still()
            with self.assertRaises(CaptureError):
                cam.capture_still()

    def test_missing_image_dir(self):
        cam = create_camera("mock", CameraConfig(image_dir=os.path.join(IMAGE_DIR, "nope")))
        with self.assertRaises(RuntimeError):
            with cam.session():
                pass


class TestCommandAudio(unittest.IsolatedAsyncioTestCase):
    async def test_speech_and_tone_argv(self):
        calls = []

        async def fake_run(argv):
            calls.append(argv)

        with self.assertLogs("stillcheck.audio.command", "WARNING"):
            audio = CommandAudio(AudioConfigBlock(tone_file="alarm.wav"))
        with mock.patch("audio.command._run", fake_run):
            await audio.speak("Test passed successfully")
            await audio.play_tone()
        self.assertEqual(
            calls,
            [
                ["espeak-ng", "-v", "en-IN", "-s", "150", "Test passed successfully"],
                ["aplay", "-q", "alarm.wav"],
            ],
        )

    async def test_tone_without_file_is_logged_only(self):
        audio = create_audio("command", AudioConfigBlock())
        with self.assertLogs("stillcheck.audio.command", "INFO"):
            await audio.play_tone()

    async def test_missing_or_failing_command_raises(self):
        missing = CommandAudio(AudioConfigBlock(speech_command=["/nonexistent/stillcheck-say"]))
        with self.assertRaises(RuntimeError):
            await missing.speak("hello")
        failing = CommandAudio(
            AudioConfigBlock(speech_command=[sys.executable, "-c", "import sys; sys.exit(3)"])
        )
        with self.assertRaises(RuntimeError) as ctx:
            await failing.speak("hello")
        self.assertIn("exited 3", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
