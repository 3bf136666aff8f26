"""
Module: scanner.bubbles

Purpose:
    Read the marked bubble of each question.

    Algorithm (per question):
    1. Map every bubble centre to pixels
    2. Refine the centres with the question's fiducials when both are found
    3. Fit a vertical stretch, then a small shift, against the printed rings
    4. Sample a disc around each centre; fill = fraction of dark pixels
    5. Highest fill wins; below the acceptance fraction the answer is None

Key Functions:
    - sample_fill(): Dark fraction inside a disc
    - locate_dark_cluster(): Centroid of ink near an expected point
    - refine_with_fiducials(): Local vertical scale/offset correction
    - read_question(): DetectedAnswer for one question

Dependencies:
    - numpy: Disc masks
    - scanner.registration: Mapping
    - scanner.alignment: Ring contrast fits

Used By:
    - scanner.pipeline: recover_answers()
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from omr_toolkit.core.models import DetectedAnswer, QuestionMarks

from .alignment import RingSampler, fit_vertical, search_offset
from .config import RecoveryConfig
from .registration import Mapping, PixelPoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuestionReading:
    """
    Result of reading one question.

    Attributes:
        answer: Detected answer
        fills: Filled fraction per letter, in bubble order
        refined: True when fiducials adjusted the centres, False when they
            were expected but not found, None when the map has none
        shift: (dx, dy) pixel shift adopted from the ring search
    """

    answer: DetectedAnswer
    fills: Dict[str, float]
    refined: Optional[bool]
    shift: Tuple[float, float] = (0.0, 0.0)


def _window(gray: np.ndarray, center: PixelPoint, radius: float):
    """Clipped integer window around ``center`` plus its pixel grids."""
    height, width = gray.shape
    cx, cy = center
    x0 = max(0, int(math.floor(cx - radius)))
    x1 = min(width - 1, int(math.ceil(cx + radius)))
    y0 = max(0, int(math.floor(cy - radius)))
    y1 = min(height - 1, int(math.ceil(cy + radius)))
    if x0 > x1 or y0 > y1:
        return None
    yy, xx = np.mgrid[y0:y1 + 1, x0:x1 + 1]
    return gray[y0:y1 + 1, x0:x1 + 1], xx, yy


def sample_fill(
    gray: np.ndarray,
    center: PixelPoint,
    radius: float,
    threshold: float,
) -> float:
    """
    Fraction of pixels darker than ``threshold`` inside a disc.

    A disc entirely outside the image reads as empty (0.0).
    """
    window = _window(gray, center, radius)
    if window is None:
        return 0.0
    pixels, xx, yy = window
    inside = (xx - center[0]) ** 2 + (yy - center[1]) ** 2 <= radius * radius
    total = int(inside.sum())
    if total == 0:
        return 0.0
    return float((pixels[inside] < threshold).sum()) / total


def locate_dark_cluster(
    gray: np.ndarray,
    center: PixelPoint,
    radius: float,
    threshold: float,
    min_pixels: int,
) -> Optional[PixelPoint]:
    """Centre of mass of the dark pixels in a square window, or None."""
    window = _window(gray, center, radius)
    if window is None:
        return None
    pixels, xx, yy = window
    dark = pixels < threshold
    if int(dark.sum()) < min_pixels:
        return None
    return float(xx[dark].mean()), float(yy[dark].mean())


def refine_with_fiducials(
    gray: np.ndarray,
    centres: Sequence[PixelPoint],
    expected_top: PixelPoint,
    expected_bottom: PixelPoint,
    search_radius: float,
    config: RecoveryConfig,
) -> Optional[List[PixelPoint]]:
    """
    Adjust bubble centres using the two fiducials of a question.

    The fiducials give a horizontal shift (mean dx) and a vertical
    scale/offset: ``y' = y * scale + offset``.

    Returns:
        Adjusted centres, or None when a fiducial is missing or the
        implied scale is outside ``config.fiducial_scale_range``
    """
    found_top = locate_dark_cluster(
        gray, expected_top, search_radius,
        config.corner_dark_threshold, config.fiducial_min_cluster_px,
    )
    found_bottom = locate_dark_cluster(
        gray, expected_bottom, search_radius,
        config.corner_dark_threshold, config.fiducial_min_cluster_px,
    )
    if found_top is None or found_bottom is None:
        return None

    expected_span = expected_bottom[1] - expected_top[1]
    if abs(expected_span) < 1.0:
        return None
    scale = (found_bottom[1] - found_top[1]) / expected_span
    low, high = config.fiducial_scale_range
    if not low <= scale <= high:
        logger.debug(f"Fiducial scale {scale:.3f} outside [{low}, {high}]")
        return None

    offset_y = found_top[1] - expected_top[1] * scale
    offset_x = ((found_top[0] - expected_top[0]) + (found_bottom[0] - expected_bottom[0])) / 2.0
    return [(x + offset_x, y * scale + offset_y) for x, y in centres]


def read_question(
    gray: np.ndarray,
    marks: QuestionMarks,
    mapping: Mapping,
    config: RecoveryConfig,
    warnings: List[str],
) -> QuestionReading:
    """
    Detect the marked bubble of one question.

    A second bubble filled nearly as much as the best one is reported as
    a warning; the best bubble is still returned.
    """
    if not marks.bubbles:
        return QuestionReading(DetectedAnswer(marks.number, None, 0.0), {}, None)

    centres = [mapping.apply(b.point) for b in marks.bubbles]
    scale = mapping.local_scale(marks.bubbles[0].point)

    refined: Optional[bool] = None
    if marks.fiducials is not None:
        adjusted = refine_with_fiducials(
            gray, centres,
            mapping.apply(marks.fiducials.top),
            mapping.apply(marks.fiducials.bottom),
            config.fiducial_search_radius_pt * scale,
            config,
        )
        refined = adjusted is not None
        if adjusted is not None:
            centres = adjusted

    sampler = RingSampler.for_scale(scale, config)
    centres = fit_vertical(gray, centres, sampler, scale, config)
    shift = search_offset(gray, centres, sampler, scale, config)
    centres = [(x + shift[0], y + shift[1]) for x, y in centres]

    radius = config.bubble_sample_radius_pt * scale
    fills = {
        bubble.letter: sample_fill(gray, centre, radius, config.bubble_dark_threshold)
        for bubble, centre in zip(marks.bubbles, centres)
    }

    ranked: List[Tuple[str, float]] = sorted(fills.items(), key=lambda item: item[1], reverse=True)
    best_letter, best = ranked[0]
    opinion = best_letter if config.is_accepted(best) else None

    if opinion is not None and len(ranked) > 1:
        second_letter, second = ranked[1]
        if config.is_accepted(second) and second >= config.double_mark_ratio * best:
            message = (
                f"question {marks.number}: multiple bubbles marked "
                f"({best_letter}, {second_letter}); keeping {best_letter}"
            )
            logger.warning(message)
            warnings.append(message)

    logger.debug(
        f"Question {marks.number}: "
        + ", ".join(f"{letter}={fill:.2f}" for letter, fill in fills.items())
    )
    answer = DetectedAnswer(
        question_number=marks.number,
        opinion=opinion,
        confidence=config.confidence_for(best),
    )
    return QuestionReading(answer=answer, fills=fills, refined=refined, shift=shift)
