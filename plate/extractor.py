import logging
from typing import Callable, Iterator

from ocr.base import RecognizedText, Recognizer

from .enhance import EnhanceParams, enhance_for_ocr
from .normalize import extract_plate_text

L = logging.getLogger("stillcheck.plate.extractor")


def iter_candidate_texts(recognized: RecognizedText) -> Iterator[str]:
    """Block text, then each of its lines, for every block; finally the whole text."""
    for block in recognized.blocks:
        yield block.text
        for line in block.lines:
            yield line.text
    yield recognized.whole_text


def find_plate(recognized: RecognizedText) -> str | None:
    for text in iter_candidate_texts(recognized):
        plate = extract_plate_text(text)
        if plate is not None:
            return plate
    return None


class PlateExtractor:
    """Plate text from one still: raw image first, enhanced variant as fallback."""

    def __init__(
        self,
        recognizer: Recognizer,
        *,
        enhance_enabled: bool = True,
        enhance_params: EnhanceParams | None = None,
        enhancer: Callable[[bytes, EnhanceParams], bytes | None] = enhance_for_ocr,
    ):
        self.recognizer = recognizer
        self.enhance_enabled = enhance_enabled
        self.enhance_params = enhance_params or EnhanceParams()
        self._enhancer = enhancer

    def extract(self, image_bytes: bytes) -> str | None:
        plate = self._pass("raw", image_bytes, require_text=True)
        if plate is not None:
            return plate
        if not self.enhance_enabled:
            return None
        try:
            enhanced = self._enhancer(image_bytes, self.enhance_params)
        except Exception as e:
            L.warning("enhance failed: %s", e)
            return None
        if enhanced is None:
            return None
        return self._pass("enhanced", enhanced, require_text=False)

    def _pass(self, label: str, data: bytes, *, require_text: bool) -> str | None:
        try:
            recognized = self.recognizer.recognize(data)
        except Exception as e:
            # Collaborator failure only ends this pass.
            L.warning("ocr %s pass failed: %s", label, e)
            return None
        if require_text and not recognized.whole_text.strip():
            L.debug("ocr %s pass: no text", label)
            return None
        plate = find_plate(recognized)
        L.debug("ocr %s pass: plate=%s text=%r", label, plate, recognized.whole_text)
        return plate


__all__ = ["PlateExtractor", "find_plate", "iter_candidate_texts"]
