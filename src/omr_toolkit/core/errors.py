"""
Module: core.errors

Purpose:
    Exception hierarchy for hard failures.

    Only malformed input is raised. Degraded sheets (missing QR, missing
    marks, faint bubbles) are reported through warnings and "none" answers
    in the RecoveryResult, never as exceptions.

Key Classes:
    - OmrToolkitError: Base class
    - ImageDecodeError: Scan could not be decoded into pixels
    - CoordinateMapError: Coordinate map missing or invalid for a page
    - SerializationError: Persisted JSON does not describe a valid model
"""

from __future__ import annotations


class OmrToolkitError(Exception):
    """Base class for all toolkit errors."""
    pass


class ImageDecodeError(OmrToolkitError):
    """Raised when an input image cannot be decoded or has no dimensions."""
    pass


class CoordinateMapError(OmrToolkitError):
    """Raised when the coordinate map for a requested page is missing or invalid."""
    pass


class SerializationError(OmrToolkitError):
    """Raised when persisted data cannot be parsed into a model."""
    pass
