"""Scan verification — decode a rendered symbol with OpenCV's QR detector."""

import time
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image

from qrstyle.logging import audit, get_logger, trace

log = get_logger("verify")


@dataclass
class ScanResult:
    """Result of a single scan attempt."""
    success: bool
    decoded_data: str | None = None
    decode_time_ms: float = 0.0
    decoder: str = "opencv"
    error: str | None = None


def _to_gray(image: Image.Image) -> np.ndarray:
    rgba = image.convert("RGBA")
    flat = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
    flat.alpha_composite(rgba)
    return cv2.cvtColor(np.array(flat.convert("RGB")), cv2.COLOR_RGB2GRAY)


@trace
def scan_opencv(image: Image.Image) -> ScanResult:
    """Scan a symbol with ``cv2.QRCodeDetector``; transparency is flattened onto white."""
    start = time.perf_counter()
    try:
        data, _points, _ = cv2.QRCodeDetector().detectAndDecode(_to_gray(image))
    except cv2.error as e:
        elapsed = (time.perf_counter() - start) * 1000
        audit("scan.error", logger=log, error=str(e), time_ms=round(elapsed, 1))
        return ScanResult(success=False, decode_time_ms=elapsed, error=str(e))

    elapsed = (time.perf_counter() - start) * 1000
    if data:
        audit("scan.verified", logger=log, success=True, time_ms=round(elapsed, 1), data=data[:80])
        return ScanResult(success=True, decoded_data=data, decode_time_ms=elapsed)
    audit("scan.verified", logger=log, success=False, time_ms=round(elapsed, 1))
    return ScanResult(success=False, decode_time_ms=elapsed, error="No QR code detected")


def verify_render(image: Image.Image, expected: str) -> ScanResult:
    """Scan ``image`` and mark the result failed unless it decodes to ``expected``."""
    result = scan_opencv(image)
    if result.success and result.decoded_data != expected:
        result.success = False
        result.error = f"Decoded data mismatch: {result.decoded_data[:80]!r}"
    return result
