import logging
from typing import Any

import cv2
import pytesseract

from core.contracts import RecognitionError
from plate.enhance import decode_image

from .base import RecognizedText, register_recognizer

L = logging.getLogger("stillcheck.ocr.tesseract")


@register_recognizer("tesseract")
class TesseractRecognizer:
    """Tesseract via `image_to_data`, grouped into blocks and lines by layout ids."""

    def __init__(self, params: dict[str, Any]):
        self.lang = str(params.get("lang", "eng"))
        self.psm = int(params.get("psm", 11))
        self.oem = int(params.get("oem", 3))
        self.min_conf = float(params.get("min_conf", -1.0))
        self.timeout_s = float(params.get("timeout_s", 0.0))
        cmd = str(params.get("tesseract_cmd", "") or "")
        if cmd:
            pytesseract.pytesseract.tesseract_cmd = cmd
        self._validate()

    def _validate(self):
        if not (0 <= self.psm <= 13):
            raise ValueError("ocr psm must be 0..13")
        if not (0 <= self.oem <= 3):
            raise ValueError("ocr oem must be 0..3")
        if self.timeout_s < 0:
            raise ValueError("ocr timeout_s must be >= 0")

    @property
    def config(self) -> str:
        return f"--oem {self.oem} --psm {self.psm}"

    def recognize(self, image_bytes: bytes) -> RecognizedText:
        img = decode_image(image_bytes)
        if img is None:
            raise RecognitionError(f"undecodable image ({len(image_bytes or b'')} bytes)")
        rgb = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        try:
            data = pytesseract.image_to_data(
                rgb,
                lang=self.lang,
                config=self.config,
                output_type=pytesseract.Output.DICT,
                timeout=self.timeout_s,
            )
        except (pytesseract.TesseractError, OSError, RuntimeError) as e:
            raise RecognitionError(f"tesseract failed: {e}") from e
        return self._group(data)

    def _group(self, data: dict[str, list]) -> RecognizedText:
        lines: dict[tuple[int, int, int], list[str]] = {}
        for i, word in enumerate(data.get("text", [])):
            word = str(word or "").strip()
            if not word:
                continue
            try:
                conf = float(data["conf"][i])
            except (KeyError, IndexError, TypeError, ValueError):
                conf = -1.0
            if conf < self.min_conf:
                continue
            key = (
                int(data["block_num"][i]),
                int(data["par_num"][i]),
                int(data["line_num"][i]),
            )
            lines.setdefault(key, []).append(word)

        by_block: dict[int, list[str]] = {}
        for (block, _par, _line), words in sorted(lines.items()):
            by_block.setdefault(block, []).append(" ".join(words))
        result = RecognizedText.from_lines([by_block[b] for b in sorted(by_block)])
        L.debug("tesseract blocks=%d text=%r", len(result.blocks), result.whole_text)
        return result


__all__ = ["TesseractRecognizer"]
