"""
Module: scanner.decoding

Purpose:
    Turn scan input (raw bytes, base64 text, a data URL or a PIL image)
    into the grayscale buffer the rest of the scanner works on.

    Orientation: EXIF rotation is applied before anything else.
    Contrast: autocontrast stretches the histogram of phone photos.
    Size: wider images are downscaled to max_image_width_px (never upscaled).

Key Functions:
    - decode_image(): Main entry point
    - load_image_bytes(): Normalise the accepted input forms to bytes

Dependencies:
    - PIL: Decoding, EXIF transpose, contrast, resampling
    - numpy: Pixel arrays

Used By:
    - scanner.pipeline: recover_answers(), read_qr()
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Union

import numpy as np
from PIL import Image, ImageOps

from omr_toolkit.core.errors import ImageDecodeError

from .config import RecoveryConfig

logger = logging.getLogger(__name__)

ImageInput = Union[bytes, bytearray, str, Image.Image]

DATA_URL_MARKER = ";base64,"


@dataclass(frozen=True)
class DecodedImage:
    """
    Decoded scan.

    Attributes:
        gray: HxW float32 array, RGB channel average in 0..255
    """

    gray: np.ndarray

    @property
    def width(self) -> int:
        return int(self.gray.shape[1])

    @property
    def height(self) -> int:
        return int(self.gray.shape[0])


def load_image_bytes(image: Union[bytes, bytearray, str], max_bytes: int) -> bytes:
    """
    Return the raw encoded image bytes for ``image``.

    Strings are treated as base64, optionally wrapped in a
    ``data:image/...;base64,`` URL.

    Raises:
        ImageDecodeError: Bad base64, empty input or input above ``max_bytes``
    """
    if isinstance(image, str):
        text = image.strip()
        if text.startswith("data:"):
            marker = text.find(DATA_URL_MARKER)
            if marker < 0:
                raise ImageDecodeError("data URL is not base64 encoded")
            text = text[marker + len(DATA_URL_MARKER):]
        try:
            data = base64.b64decode("".join(text.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageDecodeError(f"invalid base64 image data: {e}") from e
    else:
        data = bytes(image)

    if not data:
        raise ImageDecodeError("empty image data")
    if len(data) > max_bytes:
        raise ImageDecodeError(f"image is too large: {len(data)} bytes (limit {max_bytes})")
    return data


def _open(image: ImageInput, config: RecoveryConfig) -> Image.Image:
    if isinstance(image, Image.Image):
        return image.copy()
    data = load_image_bytes(image, config.max_image_bytes)
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"image could not be decoded: {e}") from e
    return img


def decode_image(image: ImageInput, config: RecoveryConfig) -> DecodedImage:
    """
    Decode a scan into a grayscale array.

    Args:
        image: Encoded bytes, base64 text, data URL or PIL image
        config: Recovery configuration (size bounds)

    Returns:
        DecodedImage

    Raises:
        ImageDecodeError: Unreadable data or undeterminable dimensions

    Example:
        >>> decoded = decode_image(png_bytes, RecoveryConfig())
        >>> decoded.gray.shape == (decoded.height, decoded.width)
        True
    """
    img = _open(image, config)
    if img.width <= 0 or img.height <= 0:
        raise ImageDecodeError(f"image has no dimensions: {img.width}x{img.height}")

    try:
        img = ImageOps.exif_transpose(img)
        img = ImageOps.autocontrast(img.convert("RGB"))
    except (OSError, ValueError) as e:
        raise ImageDecodeError(f"image could not be normalised: {e}") from e

    if img.width > config.max_image_width_px:
        height = max(1, round(img.height * config.max_image_width_px / img.width))
        logger.debug(f"Downscaling {img.width}x{img.height} to {config.max_image_width_px}x{height}")
        img = img.resize((config.max_image_width_px, height), Image.Resampling.LANCZOS)

    gray = np.asarray(img, dtype=np.float32).mean(axis=2)
    logger.debug(f"Decoded image {img.width}x{img.height}")
    return DecodedImage(gray=gray)
