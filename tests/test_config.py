import copy
import os
import tempfile
import unittest

from core.config import (
    AudioConfigBlock,
    CameraConfigBlock,
    ConfigError,
    LoadedConfig,
    OcrConfigBlock,
    OutputConfigBlock,
    RuntimeConfig,
    SensorConfigBlock,
    WorkflowConfigBlock,
    load_config,
    validate_config,
)

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
DEFAULT_CONFIG_DIR = os.path.join(REPO_ROOT, "config")
TEST_CONFIG_DIR = os.path.join(REPO_ROOT, "config", "tests")


def _make_cfg() -> LoadedConfig:
    return LoadedConfig(
        runtime=RuntimeConfig(),
        camera=CameraConfigBlock(),
        ocr=OcrConfigBlock(),
        sensor=SensorConfigBlock(),
        audio=AudioConfigBlock(),
        workflow=WorkflowConfigBlock(),
        output=OutputConfigBlock(),
        ocr_params={},
    )


def _write(dir_path: str, name: str, text: str) -> str:
    path = os.path.join(dir_path, name)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path


class TestConfigValidation(unittest.TestCase):
    def test_defaults_pass(self):
        validate_config(_make_cfg())

    def test_workflow_defaults_match_policy(self):
        wf = WorkflowConfigBlock()
        self.assertEqual(wf.motion_threshold, 0.5)
        self.assertEqual(wf.stable_seconds, 5)
        self.assertEqual(wf.settle_countdown_s, 15)
        self.assertEqual(wf.ready_delay_s, 2.0)
        self.assertEqual(wf.capture_dwell_s, 5.0)
        self.assertEqual(wf.video_duration_s, 3.0)
        self.assertEqual(wf.result_countdown_s, 10)
        self.assertEqual(OcrConfigBlock().enhance_threshold, 90)

    def test_invalid_values_raise_config_error(self):
        cases = [
            ("workflow.motion_threshold", "workflow", {"motion_threshold": 0}),
            ("workflow.stable_seconds", "workflow", {"stable_seconds": 0}),
            ("workflow.settle_countdown_s", "workflow", {"settle_countdown_s": -1}),
            ("workflow.capture_dwell_s", "workflow", {"capture_dwell_s": "soon"}),
            ("workflow.tick_s", "workflow", {"tick_s": 0}),
            ("camera.jpeg_quality", "camera", {"jpeg_quality": 101}),
            ("camera.video_fps", "camera", {"video_fps": 0}),
            ("ocr.enhance_threshold", "ocr", {"enhance_threshold": 256}),
            ("sensor.rate_hz", "sensor", {"rate_hz": 0}),
            ("audio.speech_command", "audio", {"speech_command": []}),
            ("audio.tone_command", "audio", {"tone_command": "aplay"}),
            ("runtime.max_runs", "runtime", {"max_runs": -1}),
            ("runtime.max_runs", "runtime", {"max_runs": True}),
            ("runtime.log_level", "runtime", {"log_level": "loud"}),
            ("output.hmi.port", "output.hmi", {"port": 70000}),
        ]
        for expected_name, target, patch in cases:
            with self.subTest(field=expected_name, patch=patch):
                cfg = copy.deepcopy(_make_cfg())
                obj = cfg
                for part in target.split("."):
                    obj = getattr(obj, part)
                for k, v in patch.items():
                    setattr(obj, k, v)
                with self.assertRaises(ConfigError) as ctx:
                    validate_config(cfg)
                self.assertIn(expected_name, str(ctx.exception))


class TestConfigLoader(unittest.TestCase):
    def test_shipped_configs_load_and_validate(self):
        for config_dir in (DEFAULT_CONFIG_DIR, TEST_CONFIG_DIR):
            with self.subTest(config_dir=config_dir):
                cfg = load_config(config_dir)
                validate_config(cfg)
                self.assertTrue(cfg.paths["main"].endswith(".yaml"))

    def test_test_config_uses_devices_free_impls(self):
        cfg = load_config(TEST_CONFIG_DIR)
        self.assertEqual(cfg.camera.type, "mock")
        self.assertEqual(cfg.ocr.impl, "static")
        self.assertEqual(len(cfg.ocr_params["texts"]), 3)
        self.assertEqual(cfg.camera.image_dir, "tests/images")
        self.assertEqual(cfg.runtime.max_runs, 1)

    def test_camera_type_block_overrides_common(self):
        with tempfile.TemporaryDirectory() as d:
            _write(
                d,
                "main_x.yaml",
                "camera:\n"
                "  type: opencv\n"
                "  common: {width: 640, jpeg_quality: 70}\n"
                "  opencv: {width: 1280}\n"
                "  raspi: {width: 9999}\n",
            )
            cfg = load_config(d)
        self.assertEqual(cfg.camera.width, 1280)
        self.assertEqual(cfg.camera.jpeg_quality, 70)

    def test_unknown_keys_rejected(self):
        bad = [
            "bogus: 1\n",
            "workflow:\n  settle_seconds: 3\n",
            "camera:\n  width: 640\n",
            "camera:\n  common: {nope: 1}\n",
            "output:\n  modbus: {enabled: true}\n",
            "output:\n  hmi: {history: 5}\n",
        ]
        for text in bad:
            with self.subTest(text=text):
                with tempfile.TemporaryDirectory() as d:
                    _write(d, "main_x.yaml", text)
                    with self.assertRaises(ConfigError):
                        load_config(d)

    def test_exactly_one_main_file(self):
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(ConfigError):
                load_config(d)
            _write(d, "main_a.yaml", "{}\n")
            _write(d, "main_b.yaml", "{}\n")
            with self.assertRaises(ConfigError):
                load_config(d)

    def test_invalid_yaml_and_missing_ocr_file(self):
        with tempfile.TemporaryDirectory() as d:
            _write(d, "main_x.yaml", "runtime: [unclosed\n")
            with self.assertRaises(ConfigError):
                load_config(d)
        with tempfile.TemporaryDirectory() as d:
            _write(d, "main_x.yaml", "ocr:\n  config_file: missing.yaml\n")
            with self.assertRaises(ConfigError):
                load_config(d)

    def test_ocr_params_loaded_relative_to_config_dir(self):
        with tempfile.TemporaryDirectory() as d:
            _write(d, "main_x.yaml", "ocr:\n  impl: static\n  config_file: ocr.yaml\n")
            _write(d, "ocr.yaml", "texts: ['MH12AB1234']\n")
            cfg = load_config(d)
        self.assertEqual(cfg.ocr_params, {"texts": ["MH12AB1234"]})
        self.assertTrue(cfg.paths["ocr"].endswith("ocr.yaml"))


if __name__ == "__main__":
    unittest.main()
