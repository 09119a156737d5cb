import logging
from dataclasses import dataclass

import cv2
import numpy as np

L = logging.getLogger("stillcheck.plate.enhance")


@dataclass(frozen=True)
class EnhanceParams:
    contrast: float = 1.2
    brightness: float = 0.05
    threshold: int = 90
    jpeg_quality: int = 85


def decode_image(data: bytes, flags: int = cv2.IMREAD_COLOR) -> np.ndarray | None:
    if not data:
        return None
    buf = np.frombuffer(data, dtype=np.uint8)
    return cv2.imdecode(buf, flags)


def encode_image_jpeg(img: np.ndarray, quality: int = 90) -> bytes:
    ok, buf = cv2.imencode(
        ".jpg", img.astype(np.uint8, copy=False), [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)]
    )
    if not ok:
        raise RuntimeError("opencv_imencode_failed")
    return buf.tobytes()


def binarize_for_ocr(gray: np.ndarray, params: EnhanceParams) -> np.ndarray:
    """Contrast/brightness adjust a grayscale image, then hard-threshold it.

    Contrast scales around mid-gray; brightness is a fraction of full scale.
    Pixels below `params.threshold` become 0, the rest 255.
    """
    g = gray.astype(np.float32)
    g = (g - 127.5) * float(params.contrast) + 127.5 + float(params.brightness) * 255.0
    g = np.clip(g, 0, 255).astype(np.uint8)
    return np.where(g < int(params.threshold), 0, 255).astype(np.uint8)


def enhance_for_ocr(data: bytes, params: EnhanceParams | None = None) -> bytes | None:
    """Build the high-contrast variant of an encoded image; None if undecodable."""
    params = params or EnhanceParams()
    gray = decode_image(data, cv2.IMREAD_GRAYSCALE)
    if gray is None:
        L.debug("enhance skipped: image not decodable (%d bytes)", len(data or b""))
        return None
    return encode_image_jpeg(binarize_for_ocr(gray, params), quality=params.jpeg_quality)


__all__ = [
    "EnhanceParams",
    "binarize_for_ocr",
    "decode_image",
    "encode_image_jpeg",
    "enhance_for_ocr",
]
