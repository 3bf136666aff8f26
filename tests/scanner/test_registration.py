"""
Unit Tests for registration: corner detection and the homography solve.
"""

import numpy as np
import pytest
from PIL import Image, ImageDraw, ImageOps

from omr_toolkit.common.units import PAGE_HEIGHT_PT, mm_to_points
from omr_toolkit.core.models import CORNER_NAMES, PageMap, Point, registration_anchors
from omr_toolkit.scanner import AffineMapping, ProjectiveMapping, RecoveryConfig, compute_homography
from omr_toolkit.scanner.registration import (
    FALLBACK_WARNING,
    apply_homography,
    detect_corner,
    resolve_mapping,
    solve_linear_system,
)

SCALE = 2.0  # pixels per point of the synthetic sheets


def draw_corner_marks(draw: ImageDraw.ImageDraw, margin_mm: float = 10.0, scale: float = SCALE,
                      width_px: int = 1224, height_px: int = 1584) -> None:
    """Draw the four L marks as printed: 12pt arms, 2pt stroke, vertex on the margin."""
    m = mm_to_points(margin_mm) * scale
    arm, half = 12 * scale, 1 * scale
    vertices = {
        "top_left": (m, m, 1, 1),
        "top_right": (width_px - m, m, -1, 1),
        "bottom_left": (m, height_px - m, 1, -1),
        "bottom_right": (width_px - m, height_px - m, -1, -1),
    }
    for vx, vy, dx, dy in vertices.values():
        x_end = vx + dx * arm
        y_end = vy + dy * arm
        draw.rectangle([min(vx - dx * half, x_end), vy - half, max(vx - dx * half, x_end), vy + half], fill=0)
        draw.rectangle([vx - half, min(vy - dy * half, y_end), vx + half, max(vy - dy * half, y_end)], fill=0)


def blank_sheet(width_px: int = 1224, height_px: int = 1584) -> Image.Image:
    return Image.new("L", (width_px, height_px), color=255)


class TestLinearSystem:
    """Tests for solve_linear_system()."""

    def test_solves_diagonal_system(self):
        assert solve_linear_system([[2, 0], [0, 4]], [2, 8]).tolist() == [1.0, 2.0]

    def test_swaps_rows_on_zero_pivot(self):
        solution = solve_linear_system([[0, 1], [1, 0]], [3, 5])
        assert solution.tolist() == pytest.approx([5.0, 3.0])

    def test_singular_system(self):
        assert solve_linear_system([[1, 2], [2, 4]], [1, 2]) is None


class TestHomography:
    """Tests for compute_homography() on synthetic point sets."""

    def test_recovers_known_homography(self):
        h = (1.9, 0.05, 12.0, -0.03, 2.1, 8.0, 0.0001, -0.00005)
        source = [(31.0, 31.0), (581.0, 31.0), (31.0, 761.0), (581.0, 761.0)]
        target = [apply_homography(h, p) for p in source]

        solved = compute_homography(source, target)
        assert solved[:6] == pytest.approx(h[:6], rel=1e-6)
        for point in [(100.0, 200.0), (306.0, 396.0), (500.0, 700.0)]:
            assert apply_homography(solved, point) == pytest.approx(apply_homography(h, point), abs=1e-6)

    def test_maps_source_points_onto_targets(self):
        source = [(0.0, 0.0), (100.0, 0.0), (0.0, 100.0), (100.0, 100.0)]
        target = [(10.0, 5.0), (220.0, 15.0), (0.0, 205.0), (230.0, 230.0)]
        h = compute_homography(source, target)
        for src, dst in zip(source, target):
            assert apply_homography(h, src) == pytest.approx(dst)

    def test_identity(self):
        pts = [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0)]
        assert compute_homography(pts, pts) == pytest.approx((1, 0, 0, 0, 1, 0, 0, 0), abs=1e-12)

    def test_collinear_source_points(self):
        source = [(0.0, 0.0), (1.0, 1.0), (2.0, 2.0), (3.0, 3.0)]
        target = [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0)]
        assert compute_homography(source, target) is None

    def test_requires_four_pairs(self):
        with pytest.raises(ValueError):
            compute_homography([(0, 0)] * 3, [(0, 0)] * 3)


class TestMappings:
    """Tests for AffineMapping and ProjectiveMapping."""

    def test_affine_scales_and_flips(self):
        mapping = AffineMapping.for_image(1224, 1584)
        assert mapping.apply(Point(0, 0)) == pytest.approx((0, 1584))
        assert mapping.apply(Point(612, 792)) == pytest.approx((1224, 0))
        assert mapping.local_scale(Point(10, 10)) == pytest.approx(2.0)

    def test_pure_scale_homography_matches_affine(self):
        mapping = ProjectiveMapping((2.0, 0.0, 0.0, 0.0, 2.0, 0.0, 0.0, 0.0))
        affine = AffineMapping.for_image(1224, 1584)
        for point in (Point(50, 700), Point(300, 400), Point(580, 40)):
            assert mapping.apply(point) == pytest.approx(affine.apply(point))
        assert mapping.local_scale(Point(300, 400)) == pytest.approx(2.0)


class TestCornerDetection:
    """Tests for detect_corner() and resolve_mapping()."""

    @pytest.fixture
    def sheet(self):
        img = blank_sheet()
        draw_corner_marks(ImageDraw.Draw(img))
        return np.asarray(img, dtype=np.float32)

    @pytest.mark.parametrize("corner", CORNER_NAMES)
    def test_centroid_near_anchor(self, sheet, corner):
        anchor = registration_anchors(10.0)[corner]
        expected = (anchor.x * SCALE, (PAGE_HEIGHT_PT - anchor.y) * SCALE)
        found = detect_corner(sheet, corner, RecoveryConfig())
        assert found is not None
        assert found[0] == pytest.approx(expected[0], abs=SCALE)
        assert found[1] == pytest.approx(expected[1], abs=SCALE)

    def test_blank_corner(self):
        gray = np.full((1584, 1224), 255.0, dtype=np.float32)
        assert detect_corner(gray, "top_left", RecoveryConfig()) is None

    def test_ignores_speck(self):
        gray = np.full((1584, 1224), 255.0, dtype=np.float32)
        gray[20:22, 20:22] = 0
        assert detect_corner(gray, "top_left", RecoveryConfig()) is None

    def test_all_marks_give_projective_mapping(self, sheet):
        warnings = []
        page_map = PageMap(1, registration_anchors(10.0))
        mapping = resolve_mapping(sheet, page_map, 10.0, RecoveryConfig(), warnings)
        assert isinstance(mapping, ProjectiveMapping)
        assert warnings == []
        x, y = mapping.apply(Point(300, 400))
        assert x == pytest.approx(600, abs=3)
        assert y == pytest.approx((792 - 400) * 2, abs=3)

    def test_margin_used_when_map_lacks_anchors(self, sheet):
        mapping = resolve_mapping(sheet, PageMap(1), 10.0, RecoveryConfig(), [])
        assert isinstance(mapping, ProjectiveMapping)

    def test_missing_marks_fall_back_with_warning(self):
        gray = np.full((1584, 1224), 255.0, dtype=np.float32)
        warnings = []
        mapping = resolve_mapping(gray, PageMap(1), 10.0, RecoveryConfig(), warnings)
        assert isinstance(mapping, AffineMapping)
        assert warnings == [FALLBACK_WARNING]
        assert "full registration unavailable" in warnings[0]


class TestImplausibleCorners:
    """Dark photo borders and blobs must not pass for corner marks."""

    BORDER = 60

    @pytest.fixture
    def framed_sheet(self):
        """Marked sheet photographed on a dark gray table."""
        img = blank_sheet()
        draw_corner_marks(ImageDraw.Draw(img))
        img = ImageOps.expand(img, border=self.BORDER, fill=70)
        return np.asarray(img, dtype=np.float32)

    @pytest.mark.parametrize("corner", CORNER_NAMES)
    def test_gray_border_is_skipped_for_the_printed_mark(self, framed_sheet, corner):
        anchor = registration_anchors(10.0)[corner]
        expected = (
            anchor.x * SCALE + self.BORDER,
            (PAGE_HEIGHT_PT - anchor.y) * SCALE + self.BORDER,
        )
        found = detect_corner(framed_sheet, corner, RecoveryConfig())
        assert found is not None
        assert found[0] == pytest.approx(expected[0], abs=SCALE)
        assert found[1] == pytest.approx(expected[1], abs=SCALE)

    def test_gray_border_still_registers_the_page(self, framed_sheet):
        warnings = []
        mapping = resolve_mapping(framed_sheet, PageMap(1), 10.0, RecoveryConfig(), warnings)
        assert isinstance(mapping, ProjectiveMapping)
        assert warnings == []
        x, y = mapping.apply(Point(300, 400))
        assert x == pytest.approx(600 + self.BORDER, abs=3)
        assert y == pytest.approx((792 - 400) * 2 + self.BORDER, abs=3)

    def test_border_without_marks_falls_back_with_warning(self):
        img = ImageOps.expand(blank_sheet(), border=self.BORDER, fill=70)
        gray = np.asarray(img, dtype=np.float32)
        warnings = []
        mapping = resolve_mapping(gray, PageMap(1), 10.0, RecoveryConfig(), warnings)
        assert isinstance(mapping, AffineMapping)
        assert warnings == [FALLBACK_WARNING]

    @pytest.mark.parametrize("size", [16, 50])
    def test_rejects_solid_blob(self, size):
        gray = np.full((1584, 1224), 255.0, dtype=np.float32)
        gray[40:40 + size, 40:40 + size] = 0.0
        assert detect_corner(gray, "top_left", RecoveryConfig()) is None

    def test_mark_found_next_to_blob(self):
        img = blank_sheet()
        draw_corner_marks(ImageDraw.Draw(img))
        gray = np.asarray(img, dtype=np.float32).copy()
        gray[5:25, 5:25] = 0.0  # Thumb over the very corner
        anchor = registration_anchors(10.0)["top_left"]
        found = detect_corner(gray, "top_left", RecoveryConfig())
        assert found == pytest.approx((anchor.x * SCALE, (PAGE_HEIGHT_PT - anchor.y) * SCALE), abs=SCALE)
