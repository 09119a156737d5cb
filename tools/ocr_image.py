# -- coding: utf-8 --
"""Run plate extraction on image files: python -m tools.ocr_image IMG [IMG...]"""

import argparse
import logging
import time

from core.config import ConfigError, load_config
from ocr import create_recognizer
from plate import EnhanceParams, PlateExtractor, find_plate, normalize_for_match


def _build_extractor(args):
	if args.config_dir:
		cfg = load_config(args.config_dir)
		recognizer = create_recognizer(cfg.ocr.impl, cfg.ocr_params)
		params = EnhanceParams(
			contrast=cfg.ocr.enhance_contrast,
			brightness=cfg.ocr.enhance_brightness,
			threshold=cfg.ocr.enhance_threshold,
			jpeg_quality=cfg.ocr.enhance_jpeg_quality,
		)
		return recognizer, PlateExtractor(
			recognizer,
			enhance_enabled=cfg.ocr.enhance_enabled and not args.no_enhance,
			enhance_params=params,
		)
	recognizer = create_recognizer("tesseract", {"psm": args.psm, "lang": args.lang})
	return recognizer, PlateExtractor(recognizer, enhance_enabled=not args.no_enhance)


def main():
	p = argparse.ArgumentParser(description="Extract a plate from image files")
	p.add_argument('images', nargs='+', help='Image files (jpg/png/bmp)')
	p.add_argument('--config-dir', default='', help='Use OCR settings from this config dir')
	p.add_argument('--psm', type=int, default=11, help='Tesseract page segmentation mode')
	p.add_argument('--lang', default='eng', help='Tesseract language')
	p.add_argument('--no-enhance', action='store_true', help='Skip the enhanced fallback pass')
	p.add_argument('--show-text', action='store_true', help='Print raw recognized text')
	p.add_argument('--verbose', action='store_true', help='Debug log')
	args = p.parse_args()
	logging.basicConfig(
		level=logging.DEBUG if args.verbose else logging.WARNING,
		format="%(levelname)s %(name)s: %(message)s",
	)

	try:
		recognizer, extractor = _build_extractor(args)
	except (ConfigError, ValueError) as e:
		raise SystemExit(f"setup failed: {e}")

	plates = []
	for path in args.images:
		with open(path, "rb") as f:
			data = f.read()
		if args.show_text:
			recognized = recognizer.recognize(data)
			print(f"--- {path}\n{recognized.whole_text}\n--- first match: {find_plate(recognized)}")
		t0 = time.perf_counter()
		plate = extractor.extract(data)
		dt_ms = (time.perf_counter() - t0) * 1000
		plates.append(plate)
		print(f"{path}: plate={plate or '-'} match_key={normalize_for_match(plate) if plate else '-'} ({dt_ms:.0f}ms)")

	if len(plates) > 1:
		keys = {normalize_for_match(p) if p else None for p in plates}
		same = None not in keys and len(keys) == 1
		print(f"all match: {'yes' if same else 'no'}")


if __name__ == "__main__":
	main()
