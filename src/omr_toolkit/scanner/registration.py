"""
Module: scanner.registration

Purpose:
    Find the four L-shaped corner marks in a scan and resolve the mapping
    from document points to image pixels.

    All four marks found and a non-singular system -> ProjectiveMapping
    (8-parameter homography). Anything else -> AffineMapping (per-axis
    scale plus vertical flip) and a warning. scanner.alignment may still
    replace a homography that fits the printed bubbles worse than the
    scale mapping.

Key Functions:
    - detect_corner(): Centroid of the plausible L mark in one corner
    - solve_linear_system(): Gaussian elimination with partial pivoting
    - compute_homography(): 4 point pairs -> 8 coefficients
    - resolve_mapping(): Main entry point

Key Classes:
    - AffineMapping: Scale fallback
    - ProjectiveMapping: Full registration

Dependencies:
    - numpy: Pixel masks, linear system
    - cv2: Connected components of the corner windows
    - common.units: Reference page size
    - core.models: Point, PageMap, registration_anchors

Used By:
    - scanner.pipeline: recover_answers()
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from omr_toolkit.common.thresholds import REGISTRATION_MARK
from omr_toolkit.common.units import PAGE_HEIGHT_PT, PAGE_WIDTH_PT, mm_to_points
from omr_toolkit.core.models import CORNER_NAMES, PageMap, Point, registration_anchors

from .config import RecoveryConfig

logger = logging.getLogger(__name__)

PixelPoint = Tuple[float, float]

FALLBACK_WARNING = "no fiducials found; full registration unavailable (scale fallback)"
SINGULAR_WARNING = "registration marks are degenerate; full registration unavailable (scale fallback)"

@dataclass(frozen=True)
class AffineMapping:
    """
    Scale fallback: document points -> pixels by image size over page size.

    The y axis is flipped (document origin bottom-left, image top-left).
    """

    scale_x: float
    scale_y: float
    image_height: float

    kind = "affine"

    @classmethod
    def for_image(cls, width: int, height: int) -> "AffineMapping":
        return cls(
            scale_x=width / PAGE_WIDTH_PT,
            scale_y=height / PAGE_HEIGHT_PT,
            image_height=float(height),
        )

    def apply(self, point: Point) -> PixelPoint:
        return point.x * self.scale_x, self.image_height - point.y * self.scale_y

    def local_scale(self, point: Point) -> float:
        """Pixels per document point around ``point``."""
        return (self.scale_x + self.scale_y) / 2.0


@dataclass(frozen=True)
class ProjectiveMapping:
    """
    Full registration: homography from top-down document points to pixels.

    Coefficients are ``h11 h12 h13 h21 h22 h23 h31 h32`` with ``h33 = 1``.
    """

    coefficients: Tuple[float, ...]

    kind = "projective"

    def apply(self, point: Point) -> PixelPoint:
        return apply_homography(self.coefficients, (point.x, PAGE_HEIGHT_PT - point.y))

    def local_scale(self, point: Point) -> float:
        """Mean pixel length of a unit step along each document axis."""
        x0, y0 = self.apply(point)
        x1, y1 = self.apply(Point(point.x + 1.0, point.y))
        x2, y2 = self.apply(Point(point.x, point.y + 1.0))
        return (math.hypot(x1 - x0, y1 - y0) + math.hypot(x2 - x0, y2 - y0)) / 2.0


Mapping = Union[AffineMapping, ProjectiveMapping]


# =============================================================================
# Corner detection
# =============================================================================

def _corner_window(
    corner: str, width: int, height: int, ratio: float
) -> Tuple[int, int, int, int]:
    """``(x0, y0, x1, y1)`` of the corner sub-region, end-exclusive."""
    rw = max(1, int(width * ratio))
    rh = max(1, int(height * ratio))
    x0 = 0 if corner.endswith("left") else width - rw
    y0 = 0 if corner.startswith("top") else height - rh
    return x0, y0, x0 + rw, y0 + rh


def _rejection(
    box: Tuple[int, int, int, int],
    area: int,
    window: Tuple[int, int, int, int],
    corner: str,
    image_size: Tuple[int, int],
    limits: Tuple[float, float],
    config: RecoveryConfig,
) -> Optional[str]:
    """Why an ink component cannot be a corner mark, or None when it can."""
    left, top, w, h = box
    width, height = image_size
    max_area, max_side = limits
    x0, y0, x1, y1 = window
    if area < config.corner_min_cluster_px:
        return "too small"
    if left <= 0 or top <= 0 or left + w >= width or top + h >= height:
        return "touches the image border"
    clipped_x = left + w >= x1 if corner.endswith("left") else left <= x0
    clipped_y = top + h >= y1 if corner.startswith("top") else top <= y0
    if clipped_x or clipped_y:
        return "clipped by the search window"
    if area > max_area or w > max_side or h > max_side:
        return "larger than a corner mark"
    if area / float(w * h) > config.corner_max_fill_ratio:
        return "solid blob"
    return None


def detect_corner(
    gray: np.ndarray,
    corner: str,
    config: RecoveryConfig,
) -> Optional[PixelPoint]:
    """
    Ink centroid of the mark in one corner of the image.

    Each corner window is split into 8-connected ink components. A
    component is a candidate only when it looks like a printed L: it
    stays clear of the image border, holds at most
    ``corner_max_area_ratio`` marks worth of ink, fits a mark-sized box
    and leaves most of that box empty. Dark photo borders and solid
    blobs are therefore never taken for marks. The candidate nearest
    the image corner wins.

    Args:
        gray: HxW grayscale array
        corner: One of CORNER_NAMES
        config: Recovery configuration

    Returns:
        (x, y) in pixels, or None when no window holds a plausible mark
    """
    height, width = gray.shape
    px_per_pt = width / PAGE_WIDTH_PT
    mark = REGISTRATION_MARK
    mark_area = (2 * mark.arm_length - mark.stroke_width) * mark.stroke_width * px_per_pt ** 2
    limits = (
        config.corner_max_area_ratio * mark_area,
        2.0 * (mark.arm_length + config.corner_cluster_slack_pt) * px_per_pt,
    )
    corner_x = 0 if corner.endswith("left") else width
    corner_y = 0 if corner.startswith("top") else height

    for ratio in config.corner_region_ratios:
        window = _corner_window(corner, width, height, ratio)
        x0, y0, x1, y1 = window
        dark = (gray[y0:y1, x0:x1] < config.corner_dark_threshold).astype(np.uint8)
        count, _, stats, centroids = cv2.connectedComponentsWithStats(dark, connectivity=8)

        best: Optional[PixelPoint] = None
        best_distance = math.inf
        for label in range(1, count):
            left, top, w, h, area = (int(v) for v in stats[label])
            box = (left + x0, top + y0, w, h)
            reason = _rejection(box, area, window, corner, (width, height), limits, config)
            if reason is not None:
                if area >= config.corner_min_cluster_px:
                    logger.debug(f"Corner {corner}: {area} px component at {box[:2]} rejected, {reason}")
                continue
            near_x = box[0] if corner_x == 0 else box[0] + w
            near_y = box[1] if corner_y == 0 else box[1] + h
            distance = math.hypot(near_x - corner_x, near_y - corner_y)
            if distance < best_distance:
                best_distance = distance
                best = float(centroids[label][0]) + x0, float(centroids[label][1]) + y0

        if best is not None:
            logger.debug(f"Corner {corner} at {best} (window {ratio})")
            return best
        logger.debug(f"Corner {corner}: no plausible mark in window {ratio}")
    return None


# =============================================================================
# Homography
# =============================================================================

def solve_linear_system(
    a: Sequence[Sequence[float]],
    b: Sequence[float],
    epsilon: float = 1e-10,
) -> Optional[np.ndarray]:
    """
    Solve ``a @ x = b`` by Gauss-Jordan elimination with partial pivoting.

    Returns None when a pivot falls below ``epsilon`` (singular system).

    Example:
        >>> solve_linear_system([[2, 0], [0, 4]], [2, 8]).tolist()
        [1.0, 2.0]
    """
    m = np.hstack([np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64).reshape(-1, 1)])
    n = m.shape[0]
    for i in range(n):
        pivot_row = i + int(np.argmax(np.abs(m[i:, i])))
        if abs(m[pivot_row, i]) < epsilon:
            return None
        if pivot_row != i:
            m[[i, pivot_row]] = m[[pivot_row, i]]
        m[i] /= m[i, i]
        for k in range(n):
            if k != i:
                m[k] -= m[k, i] * m[i]
    return m[:, n]


def compute_homography(
    source: Sequence[PixelPoint],
    target: Sequence[PixelPoint],
    epsilon: float = 1e-10,
) -> Optional[Tuple[float, ...]]:
    """
    Homography mapping four source points onto four target points.

    Each pair contributes the rows ``[x, y, 1, 0, 0, 0, -u*x, -u*y] = u``
    and ``[0, 0, 0, x, y, 1, -v*x, -v*y] = v``.

    Returns:
        Eight coefficients, or None for a singular system or a mapping
        that sends a source point behind the projection plane
    """
    if len(source) != 4 or len(target) != 4:
        raise ValueError("homography needs exactly four point pairs")

    rows: List[List[float]] = []
    rhs: List[float] = []
    for (x, y), (u, v) in zip(source, target):
        rows.append([x, y, 1.0, 0.0, 0.0, 0.0, -u * x, -u * y])
        rhs.append(u)
        rows.append([0.0, 0.0, 0.0, x, y, 1.0, -v * x, -v * y])
        rhs.append(v)

    solution = solve_linear_system(rows, rhs, epsilon)
    if solution is None:
        return None
    h = tuple(float(value) for value in solution)
    if any(h[6] * x + h[7] * y + 1.0 <= 0 for x, y in source):
        return None
    return h


def apply_homography(h: Sequence[float], point: PixelPoint) -> PixelPoint:
    h11, h12, h13, h21, h22, h23, h31, h32 = h
    x, y = point
    denom = h31 * x + h32 * y + 1.0
    return (h11 * x + h12 * y + h13) / denom, (h21 * x + h22 * y + h23) / denom


# =============================================================================
# Mapping resolution
# =============================================================================

def resolve_mapping(
    gray: np.ndarray,
    page_map: PageMap,
    margin_mm: float,
    config: RecoveryConfig,
    warnings: List[str],
) -> Mapping:
    """
    Choose the document -> pixel mapping for a scan.

    Anchors come from the page map; maps written without them fall back
    to the anchors implied by ``margin_mm``.

    Args:
        gray: HxW grayscale array
        page_map: Coordinate map entry for the scanned page
        margin_mm: Margin used when the page was generated
        config: Recovery configuration
        warnings: Degradation messages are appended here

    Returns:
        ProjectiveMapping, or AffineMapping when registration failed
    """
    height, width = gray.shape
    fallback = AffineMapping.for_image(width, height)

    detected = {name: detect_corner(gray, name, config) for name in CORNER_NAMES}
    missing = [name for name, point in detected.items() if point is None]
    if missing:
        logger.warning(f"Corner marks not found: {', '.join(missing)}")
        warnings.append(FALLBACK_WARNING)
        return fallback

    anchors = page_map.registration if page_map.has_registration else registration_anchors(margin_mm)
    source = [(anchors[name].x, PAGE_HEIGHT_PT - anchors[name].y) for name in CORNER_NAMES]
    target = [detected[name] for name in CORNER_NAMES]

    h = compute_homography(source, target, config.singular_pivot_epsilon)
    if h is None:
        logger.warning("Homography could not be solved from the corner marks")
        warnings.append(SINGULAR_WARNING)
        return fallback

    logger.debug(f"Projective registration resolved (margin {mm_to_points(margin_mm):.1f}pt)")
    return ProjectiveMapping(coefficients=h)
