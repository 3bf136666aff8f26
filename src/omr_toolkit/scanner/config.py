"""
Module: scanner.config

Purpose:
    Immutable configuration for one recovery call. Defaults come from
    the global RECOVERY_THRESHOLDS so a caller only overrides what it
    needs (tests use this to tighten or relax the acceptance rule).

Key Classes:
    - RecoveryConfig: Decode bounds, ink thresholds, sampling geometry

Dependencies:
    - common.thresholds: Default values

Used By:
    - scanner.pipeline: recover_answers(), read_qr()
"""

from __future__ import annotations

from dataclasses import dataclass

from omr_toolkit.common.thresholds import RECOVERY_THRESHOLDS

_T = RECOVERY_THRESHOLDS


@dataclass(frozen=True)
class RecoveryConfig:
    """
    Tuning for the recovery engine (immutable).

    Attributes:
        max_image_width_px: Wider inputs are downscaled to this width
        max_image_bytes: Raw input size above which decoding is refused
        corner_region_ratios: Corner window sizes tried in order
        corner_dark_threshold: Gray value below which a pixel belongs to a mark
        corner_min_cluster_px: Ink pixels required to accept a corner mark
        corner_cluster_slack_pt: Extra room around the mark arm when clustering
        corner_max_area_ratio: Ink area above this many printed L marks is not a mark
        corner_max_fill_ratio: Bounding-box ink share above which a blob is not a mark
        singular_pivot_epsilon: Pivot magnitude treated as a singular system
        bubble_dark_threshold: Gray value below which a bubble pixel is filled
        bubble_sample_radius_pt: Sampling disc radius in document points
        acceptance_fraction: Minimum filled fraction for an opinion
        confidence_gain: confidence = min(1, fraction * gain)
        double_mark_ratio: Second-best/best ratio reported as a double mark
        fiducial_search_radius_pt: Search radius around each expected fiducial
        fiducial_min_cluster_px: Ink pixels required to accept a fiducial
        fiducial_scale_range: Accepted vertical scale implied by the fiducials
        ring_band_pt: Radii (points) of the band covering a printed bubble ring
        ring_outer_band_pt: Radii (points) of the paper band just outside the ring
        offset_search_pt: Largest per-question shift tried, each axis
        offset_step_pt: Shift grid step
        vertical_scale_range: Vertical stretch tried about the first bubble
        vertical_scale_step: Stretch grid step
        alignment_min_gain: Ring contrast gain required to move the centres
        coherence_sample_questions: Questions used to compare the two mappings
        coherence_margin: Lead the scale mapping needs to replace the homography
        qr_crop_left_ratio: Left edge of the QR fallback crop (fraction of width)
        qr_crop_bottom_ratio: Bottom edge of the QR fallback crop (fraction of height)
        qr_crop_upscale: Enlargement applied to the fallback crop

    Example:
        >>> config = RecoveryConfig(acceptance_fraction=0.3)
        >>> config.confidence_for(0.5)
        0.75
    """

    max_image_width_px: int = _T.max_image_width_px
    max_image_bytes: int = _T.max_image_bytes

    corner_region_ratios: tuple[float, ...] = _T.corner_region_ratios
    corner_dark_threshold: int = _T.corner_dark_threshold
    corner_min_cluster_px: int = _T.corner_min_cluster_px
    corner_cluster_slack_pt: float = _T.corner_cluster_slack_pt
    corner_max_area_ratio: float = _T.corner_max_area_ratio
    corner_max_fill_ratio: float = _T.corner_max_fill_ratio
    singular_pivot_epsilon: float = _T.singular_pivot_epsilon

    bubble_dark_threshold: int = _T.bubble_dark_threshold
    bubble_sample_radius_pt: float = _T.bubble_sample_radius_pt
    acceptance_fraction: float = _T.acceptance_fraction
    confidence_gain: float = _T.confidence_gain
    double_mark_ratio: float = _T.double_mark_ratio

    fiducial_search_radius_pt: float = _T.fiducial_search_radius_pt
    fiducial_min_cluster_px: int = _T.fiducial_min_cluster_px
    fiducial_scale_range: tuple[float, float] = _T.fiducial_scale_range

    ring_band_pt: tuple[float, float] = _T.ring_band_pt
    ring_outer_band_pt: tuple[float, float] = _T.ring_outer_band_pt
    offset_search_pt: float = _T.offset_search_pt
    offset_step_pt: float = _T.offset_step_pt
    vertical_scale_range: tuple[float, float] = _T.vertical_scale_range
    vertical_scale_step: float = _T.vertical_scale_step
    alignment_min_gain: float = _T.alignment_min_gain
    coherence_sample_questions: int = _T.coherence_sample_questions
    coherence_margin: float = _T.coherence_margin

    qr_crop_left_ratio: float = _T.qr_crop_left_ratio
    qr_crop_bottom_ratio: float = _T.qr_crop_bottom_ratio
    qr_crop_upscale: float = _T.qr_crop_upscale

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.max_image_width_px < 16:
            raise ValueError(f"max_image_width_px too small: {self.max_image_width_px}")
        if self.max_image_bytes <= 0:
            raise ValueError(f"max_image_bytes must be positive: {self.max_image_bytes}")
        if not self.corner_region_ratios or not all(
            0.0 < r <= 0.5 for r in self.corner_region_ratios
        ):
            raise ValueError(f"corner_region_ratios must be within (0, 0.5]: {self.corner_region_ratios}")
        for name in ("corner_dark_threshold", "bubble_dark_threshold"):
            value = getattr(self, name)
            if not 0 < value <= 255:
                raise ValueError(f"{name} must be within (0, 255]: {value}")
        if self.bubble_sample_radius_pt <= 0:
            raise ValueError(f"bubble_sample_radius_pt must be positive: {self.bubble_sample_radius_pt}")
        if not 0.0 < self.acceptance_fraction <= 1.0:
            raise ValueError(f"acceptance_fraction must be within (0, 1]: {self.acceptance_fraction}")
        if self.confidence_gain <= 0:
            raise ValueError(f"confidence_gain must be positive: {self.confidence_gain}")
        low, high = self.fiducial_scale_range
        if not 0 < low <= 1.0 <= high:
            raise ValueError(f"fiducial_scale_range must bracket 1.0: {self.fiducial_scale_range}")
        if not 0.0 < self.corner_max_fill_ratio <= 1.0:
            raise ValueError(f"corner_max_fill_ratio must be within (0, 1]: {self.corner_max_fill_ratio}")
        if self.corner_max_area_ratio <= 1.0:
            raise ValueError(f"corner_max_area_ratio must exceed 1: {self.corner_max_area_ratio}")
        for name in ("ring_band_pt", "ring_outer_band_pt"):
            inner, outer = getattr(self, name)
            if not 0 <= inner < outer:
                raise ValueError(f"{name} must be (inner, outer) with inner < outer: {getattr(self, name)}")
        if self.ring_band_pt[1] > self.ring_outer_band_pt[0]:
            raise ValueError("ring_band_pt must lie inside ring_outer_band_pt")
        if self.offset_search_pt < 0 or self.offset_step_pt <= 0:
            raise ValueError("offset_search_pt must be >= 0 and offset_step_pt positive")
        low, high = self.vertical_scale_range
        if not 0 < low <= 1.0 <= high or self.vertical_scale_step <= 0:
            raise ValueError(f"vertical_scale_range must bracket 1.0: {self.vertical_scale_range}")

    def confidence_for(self, fraction: float) -> float:
        """Confidence reported for a filled fraction."""
        return min(1.0, max(0.0, fraction * self.confidence_gain))

    def is_accepted(self, fraction: float) -> bool:
        return fraction >= self.acceptance_fraction
