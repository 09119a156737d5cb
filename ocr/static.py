import itertools
import logging
from typing import Any

from core.contracts import RecognitionError

from .base import RecognizedText, register_recognizer

L = logging.getLogger("stillcheck.ocr.static")


@register_recognizer("static")
class StaticRecognizer:
    """Returns scripted texts in turn, ignoring the image. For dry runs.

    params:
      texts: list of strings (one per call, cycled); "\\n" separates lines and
        an empty line starts a new block.
    """

    def __init__(self, params: dict[str, Any]):
        texts = params.get("texts", [])
        if not isinstance(texts, list) or not all(isinstance(t, str) for t in texts):
            raise ValueError("ocr static texts must be a list of strings")
        self.texts = list(texts) or [""]
        self._cycle = itertools.cycle(self.texts)

    def recognize(self, image_bytes: bytes) -> RecognizedText:
        if not image_bytes:
            raise RecognitionError("empty image")
        raw = next(self._cycle)
        blocks: list[list[str]] = [[]]
        for line in raw.split("\n"):
            if line.strip():
                blocks[-1].append(line)
            elif blocks[-1]:
                blocks.append([])
        L.debug("static text=%r", raw)
        return RecognizedText.from_lines(blocks)


__all__ = ["StaticRecognizer"]
