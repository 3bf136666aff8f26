"""
Module: scanner.qr

Purpose:
    Decode the page QR from a scan.

    Attempts, in order, stopping at the first payload:
    1. Full grayscale image
    2. Full image, inverted polarity
    3. Top-right crop (where the QR is printed), upscaled

Key Functions:
    - decode_qr(): Return the decoded text or None

Dependencies:
    - cv2: QRCodeDetector
    - numpy: Crops and polarity inversion

Used By:
    - scanner.pipeline: recover_answers(), read_qr()
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

import cv2
import numpy as np

from .config import RecoveryConfig

logger = logging.getLogger(__name__)


def _candidates(gray: np.ndarray, config: RecoveryConfig) -> Iterator[tuple[str, np.ndarray]]:
    base = np.clip(gray, 0, 255).astype(np.uint8)
    yield "full", base
    yield "inverted", 255 - base

    height, width = base.shape
    x0 = int(width * config.qr_crop_left_ratio)
    y1 = max(1, int(height * config.qr_crop_bottom_ratio))
    crop = base[:y1, x0:]
    if crop.size:
        crop = cv2.resize(
            crop, None,
            fx=config.qr_crop_upscale, fy=config.qr_crop_upscale,
            interpolation=cv2.INTER_CUBIC,
        )
        yield "top-right crop", crop


def decode_qr(gray: np.ndarray, config: RecoveryConfig) -> Optional[str]:
    """
    Decode the page QR.

    Detector failures (OpenCV raises on some degenerate inputs) count as
    "not found" for that attempt.

    Args:
        gray: HxW grayscale array (0..255)
        config: Recovery configuration (crop geometry)

    Returns:
        Decoded text, or None when no attempt succeeded
    """
    detector = cv2.QRCodeDetector()
    for name, candidate in _candidates(gray, config):
        try:
            data, _points, _straight = detector.detectAndDecode(candidate)
        except cv2.error as e:
            logger.debug(f"QR attempt '{name}' failed: {e}")
            continue
        if data:
            logger.debug(f"QR decoded from {name}: {data}")
            return data
    logger.debug("No QR decoded")
    return None
