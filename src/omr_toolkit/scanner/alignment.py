"""
Module: scanner.alignment

Purpose:
    Line the expected bubble centres up with the rings actually printed
    on the sheet.

    Every bubble is printed as a ring, so a centre sitting exactly on
    its bubble sees dark ink in the ring band and paper just outside it.
    The ring contrast ``max(0, mean(outer) - mean(ring)) / 255`` scores
    that; the mean over a question's bubbles scores a set of centres.

    Three uses:
    1. choose_mapping(): once per scan, keep the homography unless the
       scale mapping lines the first questions up clearly better
    2. fit_vertical(): per question, small vertical stretch and offset
       about the first bubble
    3. search_offset(): per question, small (dx, dy) shift

    Centres only move when the contrast gain reaches alignment_min_gain,
    so a blank region (no rings, no contrast) leaves them untouched.

Key Functions:
    - alignment_score(): Mean ring contrast of a set of centres
    - best_shift(): Offset grid search behind search_offset() and choose_mapping()
    - fit_vertical(): Vertical scale/offset correction
    - search_offset(): Shift correction
    - choose_mapping(): Homography vs scale coherence check

Key Classes:
    - RingSampler: Band masks for one pixel scale

Dependencies:
    - numpy: Band masks
    - scanner.registration: Mapping types

Used By:
    - scanner.bubbles: read_question()
    - scanner.pipeline: recover_answers()
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from omr_toolkit.core.models import PageMap, QuestionMarks

from .config import RecoveryConfig
from .registration import AffineMapping, Mapping, PixelPoint, ProjectiveMapping

logger = logging.getLogger(__name__)

SCALE_CHOSEN_WARNING = "scale mapping chosen: printed bubbles align better than with the corner registration"

Shift = Tuple[float, float]


@dataclass(frozen=True, eq=False)
class RingSampler:
    """
    Ring and outer band masks, centred in a square patch.

    Attributes:
        radius: Half-size of the patch in pixels
        ring: Mask of the band covering the printed ring
        outer: Mask of the paper band just outside it
    """

    radius: int
    ring: np.ndarray
    outer: np.ndarray

    @classmethod
    def for_scale(cls, px_per_pt: float, config: RecoveryConfig) -> "RingSampler":
        ring_in, ring_out = (r * px_per_pt for r in config.ring_band_pt)
        outer_in, outer_out = (r * px_per_pt for r in config.ring_outer_band_pt)
        radius = max(1, int(math.ceil(outer_out)))
        yy, xx = np.mgrid[-radius:radius + 1, -radius:radius + 1]
        dist = np.hypot(xx, yy)
        return cls(
            radius=radius,
            ring=(dist >= ring_in) & (dist <= ring_out),
            outer=(dist >= outer_in) & (dist <= outer_out),
        )

    def contrast(self, gray: np.ndarray, center: PixelPoint) -> float:
        """Ring contrast at ``center``; 0.0 when the patch leaves the image."""
        if not self.ring.any() or not self.outer.any():
            return 0.0
        height, width = gray.shape
        cx, cy = int(round(center[0])), int(round(center[1]))
        r = self.radius
        if cx - r < 0 or cy - r < 0 or cx + r >= width or cy + r >= height:
            return 0.0
        patch = gray[cy - r:cy + r + 1, cx - r:cx + r + 1]
        return max(0.0, float(patch[self.outer].mean() - patch[self.ring].mean()) / 255.0)


def alignment_score(gray: np.ndarray, centres: Sequence[PixelPoint], sampler: RingSampler) -> float:
    """Mean ring contrast over ``centres`` (0.0 for none)."""
    if not centres:
        return 0.0
    return sum(sampler.contrast(gray, c) for c in centres) / len(centres)


def _steps(limit_pt: float, step_pt: float, px_per_pt: float) -> List[float]:
    """Symmetric pixel offsets, nearest to zero first."""
    step = max(1.0, step_pt * px_per_pt)
    count = int(limit_pt * px_per_pt / step + 1e-9)
    return sorted((i * step for i in range(-count, count + 1)), key=abs)


def _shifted(centres: Sequence[PixelPoint], dx: float, dy: float) -> List[PixelPoint]:
    return [(x + dx, y + dy) for x, y in centres]


def best_shift(
    gray: np.ndarray,
    centres: Sequence[PixelPoint],
    sampler: RingSampler,
    px_per_pt: float,
    config: RecoveryConfig,
) -> Tuple[Shift, float, float]:
    """
    Best shift over the offset grid.

    Returns:
        ``(shift, best_score, unshifted_score)``; ties keep the smaller shift
    """
    offsets = _steps(config.offset_search_pt, config.offset_step_pt, px_per_pt)
    grid = sorted(((dx, dy) for dy in offsets for dx in offsets), key=lambda d: abs(d[0]) + abs(d[1]))
    base = alignment_score(gray, centres, sampler)
    best, best_score = (0.0, 0.0), base
    for dx, dy in grid:
        score = alignment_score(gray, _shifted(centres, dx, dy), sampler)
        if score > best_score:
            best, best_score = (dx, dy), score
    return best, best_score, base


def search_offset(
    gray: np.ndarray,
    centres: Sequence[PixelPoint],
    sampler: RingSampler,
    px_per_pt: float,
    config: RecoveryConfig,
) -> Shift:
    """Shift that lines ``centres`` up with their rings, or (0, 0)."""
    shift, best, base = best_shift(gray, centres, sampler, px_per_pt, config)
    if best - base < config.alignment_min_gain:
        return 0.0, 0.0
    logger.debug(f"Offset {shift} raises ring contrast {base:.3f} -> {best:.3f}")
    return shift


def fit_vertical(
    gray: np.ndarray,
    centres: Sequence[PixelPoint],
    sampler: RingSampler,
    px_per_pt: float,
    config: RecoveryConfig,
) -> List[PixelPoint]:
    """
    Stretch and shift a bubble column vertically about its first centre.

    ``y' = y0 + (y - y0) * scale + offset``; x is left alone. Needs two
    or more centres.
    """
    if len(centres) < 2:
        return list(centres)
    base_y = centres[0][1]
    low, high = config.vertical_scale_range
    count = int(round((high - low) / config.vertical_scale_step))
    scales = sorted((low + i * config.vertical_scale_step for i in range(count + 1)), key=lambda s: abs(s - 1.0))
    offsets = _steps(config.offset_search_pt, config.offset_step_pt, px_per_pt)

    def fitted(scale: float, offset: float) -> List[PixelPoint]:
        return [(x, base_y + (y - base_y) * scale + offset) for x, y in centres]

    base = alignment_score(gray, centres, sampler)
    best, best_score = None, base
    for scale in scales:
        for offset in offsets:
            score = alignment_score(gray, fitted(scale, offset), sampler)
            if score > best_score:
                best, best_score = (scale, offset), score

    if best is None or best_score - base < config.alignment_min_gain:
        return list(centres)
    logger.debug(f"Vertical fit scale={best[0]:.2f} offset={best[1]:.1f}px")
    return fitted(*best)


def _coherence(gray: np.ndarray, samples: Sequence[QuestionMarks], mapping: Mapping, config: RecoveryConfig) -> float:
    """Mean best-shift ring contrast of ``samples`` under ``mapping``."""
    total = 0.0
    for marks in samples:
        px_per_pt = mapping.local_scale(marks.bubbles[0].point)
        sampler = RingSampler.for_scale(px_per_pt, config)
        centres = [mapping.apply(b.point) for b in marks.bubbles]
        total += best_shift(gray, centres, sampler, px_per_pt, config)[1]
    return total / len(samples)


def choose_mapping(
    gray: np.ndarray,
    page_map: PageMap,
    mapping: Mapping,
    config: RecoveryConfig,
    warnings: List[str],
) -> Mapping:
    """
    Keep the registered mapping unless the scale mapping fits clearly better.

    Both mappings are scored on the first ``coherence_sample_questions``
    questions, each at its best shift. The scale mapping replaces the
    homography only when it leads by more than ``coherence_margin``; a
    warning records the switch. Scale mappings pass through unchanged.
    """
    if not isinstance(mapping, ProjectiveMapping):
        return mapping
    samples = [q for q in sorted(page_map.questions, key=lambda q: q.number) if q.bubbles]
    samples = samples[:config.coherence_sample_questions]
    if not samples:
        return mapping

    height, width = gray.shape
    scaled = AffineMapping.for_image(width, height)
    registered_score = _coherence(gray, samples, mapping, config)
    scaled_score = _coherence(gray, samples, scaled, config)
    logger.debug(f"Ring coherence: homography {registered_score:.3f}, scale {scaled_score:.3f}")

    if scaled_score > registered_score + config.coherence_margin:
        logger.warning("Scale mapping fits the printed bubbles better than the corner registration")
        warnings.append(SCALE_CHOSEN_WARNING)
        return scaled
    return mapping
