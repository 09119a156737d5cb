# -- coding: utf-8 --

import argparse
import logging
import time

from core.config import ConfigError, load_config, validate_config
from core.runtime import build_runtime_from_loaded_config


def parse_args():
    p = argparse.ArgumentParser(
        description="StillCheck stationary-vehicle plate check (config-driven)",
    )
    p.add_argument(
        "--config-dir", default="config", help="Directory containing main_*.yaml"
    )
    p.add_argument("--verbose", action="store_true", help="Debug log")
    p.add_argument(
        "--log-level", default="", help="Override log level (debug/info/warning/error)"
    )
    p.add_argument(
        "--runs",
        type=int,
        default=None,
        help="Stop after N completed runs (overrides runtime.max_runs; 0 = unlimited)",
    )
    return p.parse_args()


def setup_logging(verbose: bool, log_level: str = ""):
    if verbose:
        level = logging.DEBUG
    else:
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "warn": logging.WARNING,
            "error": logging.ERROR,
            "critical": logging.CRITICAL,
        }
        level = level_map.get(str(log_level or "").strip().lower(), logging.INFO)
    # Use UTC for all %(asctime)s timestamps in logs.
    logging.Formatter.converter = time.gmtime
    logging.basicConfig(
        level=level, format="%(asctime)sZ [%(levelname)s] %(message)s", force=True
    )
    if not verbose:
        for name in ("aiohttp.access", "aiohttp.server"):
            logging.getLogger(name).setLevel(logging.WARNING)


def main():
    args = parse_args()
    setup_logging(args.verbose, args.log_level)
    try:
        cfg = load_config(args.config_dir)
        if args.runs is not None:
            cfg.runtime.max_runs = args.runs
        validate_config(cfg)
    except ConfigError as e:
        logging.error("Config invalid: %s", e)
        raise SystemExit(1) from e
    # Config-driven log level (unless overridden by CLI).
    if not args.verbose and not args.log_level:
        setup_logging(args.verbose, cfg.runtime.log_level)

    logging.info(
        "Starting: camera=%s ocr=%s sensor=%s audio=%s hmi=%s runs=%s runtime=%s",
        cfg.camera.type,
        cfg.ocr.impl,
        cfg.sensor.type,
        cfg.audio.type,
        f"{cfg.output.hmi.host}:{cfg.output.hmi.port}"
        if cfg.output.hmi.enabled
        else "off",
        cfg.runtime.max_runs or "unlimited",
        f"{cfg.runtime.max_runtime_s}s" if cfg.runtime.max_runtime_s else "unlimited",
    )
    logging.info(
        "Config files: main=%s ocr=%s",
        cfg.paths.get("main"),
        cfg.paths.get("ocr"),
    )

    try:
        try:
            runtime = build_runtime_from_loaded_config(cfg)
        except ValueError as e:
            logging.error("Config invalid: %s", e)
            raise SystemExit(1) from e
        runtime.start()
        runtime.run(
            runtime_limit_s=cfg.runtime.max_runtime_s
            if cfg.runtime.max_runtime_s > 0
            else None
        )
        logging.info("Done")
    except KeyboardInterrupt:
        logging.info("Service STOPPED by user (Ctrl+C)")
    except SystemExit:
        raise
    except Exception:
        logging.exception("Error")
        raise


if __name__ == "__main__":
    main()
