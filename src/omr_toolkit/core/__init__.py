"""
OMR Toolkit Core Package

Shared data models, errors and serialization used by both halves of the
pipeline: the builder (variant generation, layout) and the scanner
(answer recovery).
"""

from .errors import CoordinateMapError, ImageDecodeError, OmrToolkitError, SerializationError
from .models import (
    Choice,
    CoordinateMap,
    PageDescriptor,
    PageMap,
    Question,
    RecoveryResult,
    VariantMap,
)

__all__ = [
    "OmrToolkitError",
    "ImageDecodeError",
    "CoordinateMapError",
    "SerializationError",
    "Choice",
    "Question",
    "VariantMap",
    "CoordinateMap",
    "PageMap",
    "PageDescriptor",
    "RecoveryResult",
]
