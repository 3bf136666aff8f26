"""Centralized threshold and magic number configuration.

This module contains the hardcoded thresholds, ratios, and magic numbers
shared by the layout and recovery stages. Values that both sides of the
pipeline must agree on (registration mark geometry) live here so the
printed sheet and the scanner can never drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RegistrationMarkGeometry:
    """Geometry of the L-shaped corner marks printed on every page (points)."""

    arm_length: float = 12.0  # Length of each arm of the L
    stroke_width: float = 2.0  # Line width of the arms

    @property
    def centroid_inset(self) -> float:
        """Offset from the L vertex to the centre of mass of its ink.

        Two equal arms of length L meeting at the vertex have their
        combined centroid L/4 inward along both axes.
        """
        return self.arm_length / 4.0


@dataclass
class InstructionThresholds:
    """Shrink schedule for the page-1 instructions block."""

    default_font_size: float = 8.0
    line_height_ratio: float = 1.25  # line height = font size * ratio
    shrink_step: float = 0.5  # Points removed per attempt
    max_shrink_steps: int = 4  # 8.0 -> 6.0 at most
    label_font_size: float = 8.5
    padding: float = 8.0
    max_width: float = 420.0


@dataclass
class RecoveryThresholds:
    """Thresholds for image decoding, registration and bubble sampling."""

    # Decoding
    max_image_width_px: int = 1600  # Downscale bound to limit per-pixel cost
    max_image_bytes: int = 15_000_000  # Raw (decoded base64) input size guard

    # Registration mark search
    corner_region_ratios: tuple[float, ...] = (0.08, 0.12, 0.16)  # Nested corner windows
    corner_dark_threshold: int = 110  # Gray value below which a pixel is ink
    corner_min_cluster_px: int = 10  # Minimum ink pixels for a valid mark
    corner_cluster_slack_pt: float = 3.0  # Extra box around the mark arm
    corner_max_area_ratio: float = 4.0  # Ink area limit, in printed L marks
    corner_max_fill_ratio: float = 0.75  # Bounding-box ink share above which a blob is not an L
    singular_pivot_epsilon: float = 1e-10  # Pivot magnitude treated as singular

    # Bubble sampling
    bubble_dark_threshold: int = 128  # Gray value below which a pixel counts as filled
    bubble_sample_radius_pt: float = 3.5  # Inside the printed 5.2pt ring
    acceptance_fraction: float = 0.2  # Below this the answer is "none"
    confidence_gain: float = 1.5  # confidence = min(1, fraction * gain)
    double_mark_ratio: float = 0.8  # Second >= ratio * best counts as double mark

    # Fiducial refinement
    fiducial_search_radius_pt: float = 6.0
    fiducial_min_cluster_px: int = 6
    fiducial_scale_range: tuple[float, float] = (0.8, 1.25)

    # Alignment against the printed rings
    ring_band_pt: tuple[float, float] = (4.0, 6.0)  # Covers the 5.2pt ring and its border
    ring_outer_band_pt: tuple[float, float] = (6.2, 7.0)  # Paper just outside the ring
    offset_search_pt: float = 3.0  # +/- shift tried per question
    offset_step_pt: float = 1.0
    vertical_scale_range: tuple[float, float] = (0.96, 1.04)
    vertical_scale_step: float = 0.01
    alignment_min_gain: float = 0.02  # Mean ring contrast gain needed to move the centres
    coherence_sample_questions: int = 5
    coherence_margin: float = 0.03  # Scale mapping must beat the homography by this

    # QR fallback crop (fractions of width/height, top-right quadrant)
    qr_crop_left_ratio: float = 0.5
    qr_crop_bottom_ratio: float = 0.45
    qr_crop_upscale: float = 2.0


# Global instances for easy import
REGISTRATION_MARK = RegistrationMarkGeometry()
INSTRUCTION_THRESHOLDS = InstructionThresholds()
RECOVERY_THRESHOLDS = RecoveryThresholds()
