"""
Scanner Package

Recovery engine: reads the answers marked on a photographed or scanned
sheet using the coordinate map written when the sheet was generated.
"""

from .config import RecoveryConfig
from .decoding import DecodedImage, decode_image
from .pipeline import read_qr, recover_answers
from .registration import AffineMapping, ProjectiveMapping, compute_homography

__all__ = [
    "RecoveryConfig",
    "DecodedImage",
    "decode_image",
    "read_qr",
    "recover_answers",
    "AffineMapping",
    "ProjectiveMapping",
    "compute_homography",
]
