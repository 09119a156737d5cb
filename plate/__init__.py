from .enhance import EnhanceParams, enhance_for_ocr
from .extractor import PlateExtractor, find_plate
from .normalize import (
    extract_plate_text,
    match_plate,
    normalize_for_match,
    normalize_ocr_text,
)

__all__ = [
    "EnhanceParams",
    "PlateExtractor",
    "enhance_for_ocr",
    "extract_plate_text",
    "find_plate",
    "match_plate",
    "normalize_for_match",
    "normalize_ocr_text",
]
