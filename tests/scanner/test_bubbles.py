"""
Unit Tests for bubble sampling, fiducial refinement and question reading.

Sheets are synthetic numpy arrays at 2 px/pt read through an
AffineMapping, so expected pixel positions are easy to compute.
"""

import numpy as np
import pytest

from omr_toolkit.core.models import BubblePosition, Fiducials, Point, QuestionMarks
from omr_toolkit.scanner import AffineMapping, RecoveryConfig
from omr_toolkit.scanner.bubbles import (
    locate_dark_cluster,
    read_question,
    refine_with_fiducials,
    sample_fill,
)

WIDTH, HEIGHT = 1224, 1584
MAPPING = AffineMapping.for_image(WIDTH, HEIGHT)


def blank():
    return np.full((HEIGHT, WIDTH), 255.0, dtype=np.float32)


def fill_disc(gray, center, radius, value=0.0):
    yy, xx = np.mgrid[0:gray.shape[0], 0:gray.shape[1]]
    gray[(xx - center[0]) ** 2 + (yy - center[1]) ** 2 <= radius ** 2] = value


def fill_square(gray, center, half):
    cx, cy = int(round(center[0])), int(round(center[1]))
    gray[cy - half:cy + half + 1, cx - half:cx + half + 1] = 0.0


def question(number=1, letters="ABCDE", x=480.0, top=600.0, pitch=13.0, fiducials=True):
    bubbles = tuple(BubblePosition(letter, x, top - i * pitch) for i, letter in enumerate(letters))
    fid = None
    if fiducials:
        fid = Fiducials(Point(x + 92, top), Point(x + 92, top - (len(letters) - 1) * pitch))
    return QuestionMarks(number, f"q{number}", bubbles, fid)


def draw_fiducials(gray, marks, mapping=MAPPING, shift=(0.0, 0.0)):
    for point in (marks.fiducials.top, marks.fiducials.bottom):
        x, y = mapping.apply(point)
        fill_square(gray, (x + shift[0], y + shift[1]), 4)


def draw_ring(gray, center, radius=10.4, border=2.2):
    """Printed bubble outline: 5.2pt ring, 1.1pt border at 2 px/pt."""
    cx, cy = center
    yy, xx = np.mgrid[int(cy) - 14:int(cy) + 15, int(cx) - 14:int(cx) + 15]
    d = np.hypot(xx - cx, yy - cy)
    patch = gray[int(cy) - 14:int(cy) + 15, int(cx) - 14:int(cx) + 15]
    patch[np.abs(d - radius) <= border / 2] = 0.0


class TestSampling:
    """Tests for sample_fill() and locate_dark_cluster()."""

    def test_filled_disc_reads_one(self):
        gray = blank()
        fill_disc(gray, (100, 100), 12)
        assert sample_fill(gray, (100, 100), 7, 128) == pytest.approx(1.0)

    def test_blank_reads_zero(self):
        assert sample_fill(blank(), (100, 100), 7, 128) == 0.0

    def test_half_filled_disc(self):
        gray = blank()
        gray[:, :100] = 0.0
        assert sample_fill(gray, (100, 300), 10, 128) == pytest.approx(0.5, abs=0.08)

    def test_disc_outside_image_is_empty(self):
        assert sample_fill(blank(), (-50, -50), 5, 128) == 0.0

    def test_returns_cluster_centroid(self):
        gray = blank()
        fill_square(gray, (200, 210), 3)
        found = locate_dark_cluster(gray, (198, 212), 12, 110, 6)
        assert found == pytest.approx((200, 210))

    def test_single_pixel_is_not_a_cluster(self):
        gray = blank()
        gray[100, 100] = 0.0
        assert locate_dark_cluster(gray, (100, 100), 12, 110, 6) is None


class TestFiducialRefinement:
    """Tests for refine_with_fiducials()."""

    def test_centres_follow_shifted_fiducials(self):
        marks = question()
        gray = blank()
        draw_fiducials(gray, marks, shift=(4, 6))
        centres = [MAPPING.apply(b.point) for b in marks.bubbles]
        top = MAPPING.apply(marks.fiducials.top)
        bottom = MAPPING.apply(marks.fiducials.bottom)

        refined = refine_with_fiducials(gray, centres, top, bottom, 12.0, RecoveryConfig())
        assert refined is not None
        for (x0, y0), (x1, y1) in zip(centres, refined):
            assert x1 == pytest.approx(x0 + 4, abs=0.6)
            assert y1 == pytest.approx(y0 + 6, abs=0.6)

    def test_missing_fiducial(self):
        marks = question()
        centres = [MAPPING.apply(b.point) for b in marks.bubbles]
        top = MAPPING.apply(marks.fiducials.top)
        bottom = MAPPING.apply(marks.fiducials.bottom)
        assert refine_with_fiducials(blank(), centres, top, bottom, 12.0, RecoveryConfig()) is None

    def test_rejects_implausible_scale(self):
        marks = question(letters="AB")
        gray = blank()
        top = MAPPING.apply(marks.fiducials.top)
        bottom = MAPPING.apply(marks.fiducials.bottom)
        # Bottom square drawn far below its expected spot: scale > 1.25
        fill_square(gray, top, 4)
        fill_square(gray, (bottom[0], bottom[1] + 11), 4)
        centres = [MAPPING.apply(b.point) for b in marks.bubbles]
        assert refine_with_fiducials(gray, centres, top, bottom, 12.0, RecoveryConfig()) is None


class TestReadQuestion:
    """Tests for read_question()."""

    def _sheet_with_mark(self, marks, letter, radius_pt=5.0):
        gray = blank()
        draw_fiducials(gray, marks)
        bubble = next(b for b in marks.bubbles if b.letter == letter)
        fill_disc(gray, MAPPING.apply(bubble.point), radius_pt * 2)
        return gray

    def test_detects_filled_letter(self):
        marks = question()
        gray = self._sheet_with_mark(marks, "C")
        warnings = []
        reading = read_question(gray, marks, MAPPING, RecoveryConfig(), warnings)
        assert reading.answer.opinion == "C"
        assert reading.answer.confidence == pytest.approx(1.0)
        assert reading.refined is True
        assert warnings == []

    def test_unmarked_question_has_no_opinion(self):
        marks = question()
        gray = blank()
        draw_fiducials(gray, marks)
        reading = read_question(gray, marks, MAPPING, RecoveryConfig(), [])
        assert reading.answer.opinion is None
        assert reading.answer.confidence == 0.0

    def test_faint_tick_is_below_acceptance(self):
        """A tick covering a sliver of the bubble is not an answer."""
        marks = question()
        gray = blank()
        draw_fiducials(gray, marks)
        x, y = MAPPING.apply(marks.bubbles[1].point)
        gray[int(y) - 1:int(y) + 1, int(x) - 2:int(x) + 2] = 0.0
        reading = read_question(gray, marks, MAPPING, RecoveryConfig(), [])
        assert reading.answer.opinion is None
        assert 0.0 < reading.answer.confidence < 0.3

    def test_double_mark_warning(self):
        marks = question(number=4)
        gray = self._sheet_with_mark(marks, "A")
        fill_disc(gray, MAPPING.apply(marks.bubbles[3].point), 10)
        warnings = []
        reading = read_question(gray, marks, MAPPING, RecoveryConfig(), warnings)
        assert reading.answer.opinion in ("A", "D")
        assert len(warnings) == 1
        assert warnings[0].startswith("question 4: multiple bubbles marked")

    def test_refined_is_none_without_fiducials_in_map(self):
        marks = question(fiducials=False)
        gray = blank()
        fill_disc(gray, MAPPING.apply(marks.bubbles[0].point), 10)
        reading = read_question(gray, marks, MAPPING, RecoveryConfig(), [])
        assert reading.refined is None
        assert reading.answer.opinion == "A"

    def test_unprinted_fiducials_still_read_answer(self):
        marks = question()
        gray = blank()
        fill_disc(gray, MAPPING.apply(marks.bubbles[4].point), 10)
        reading = read_question(gray, marks, MAPPING, RecoveryConfig(), [])
        assert reading.refined is False
        assert reading.answer.opinion == "E"

    def test_acceptance_fraction_is_configurable(self):
        """Every other column inked: about half the disc, enough by default, not under 0.8."""
        marks = question(fiducials=False)
        gray = blank()
        x, y = MAPPING.apply(marks.bubbles[0].point)
        yy, xx = np.mgrid[0:HEIGHT, 0:WIDTH]
        striped = ((xx - x) ** 2 + (yy - y) ** 2 <= 100) & (xx % 2 == 0)
        gray[striped] = 0.0

        strict = RecoveryConfig(acceptance_fraction=0.8)
        assert read_question(gray, marks, MAPPING, strict, []).answer.opinion is None
        assert read_question(gray, marks, MAPPING, RecoveryConfig(), []).answer.opinion == "A"

    def test_printed_rings_pull_centres_onto_the_mark(self):
        """A column printed 3pt right of where the mapping puts it is still read in full."""
        marks = question(fiducials=False)
        gray = blank()
        for bubble in marks.bubbles:
            x, y = MAPPING.apply(bubble.point)
            draw_ring(gray, (x + 6, y + 4))
        x, y = MAPPING.apply(marks.bubbles[1].point)
        fill_disc(gray, (x + 6, y + 4), 8)

        reading = read_question(gray, marks, MAPPING, RecoveryConfig(), [])
        assert reading.answer.opinion == "B"
        assert reading.answer.confidence == pytest.approx(1.0)
        assert reading.shift[0] == pytest.approx(6.0)
