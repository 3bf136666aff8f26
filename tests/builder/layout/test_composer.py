"""
Unit Tests for question block composition.
"""

import pytest

from omr_toolkit.builder.layout import LayoutConfig, compose_exam, compose_question
from omr_toolkit.builder.layout.composer import IMAGE_UNAVAILABLE_NOTE, order_questions
from omr_toolkit.builder.layout.models import Circle, ImageBox, TextRun
from omr_toolkit.core.models import VariantMap


@pytest.fixture
def config():
    return LayoutConfig()


class TestComposeQuestion:
    """Tests for compose_question()."""

    def test_five_lettered_bubbles(self, config, question_factory):
        layout = compose_question(question_factory("q1"), 1, (4, 3, 2, 1, 0), config)
        assert [b.letter for b in layout.bubbles] == ["A", "B", "C", "D", "E"]
        assert sum(isinstance(op, Circle) for op in layout.ops) == 5

    def test_three_choices(self, config, question_factory):
        layout = compose_question(question_factory("q1", choice_count=3), 1, (0, 1, 2), config)
        assert [b.letter for b in layout.bubbles] == ["A", "B", "C"]

    def test_choice_text_follows_option_order(self, config, question_factory):
        """The choice rendered after "A)" is the one named by option_order[0]."""
        question = question_factory("q1", choice_count=3)
        layout = compose_question(question, 1, (2, 0, 1), config)
        texts = [op.text for op in layout.ops if isinstance(op, TextRun)]
        under_a = "".join(texts[texts.index("A)") + 1:texts.index("B)")])
        assert under_a.strip() == "Option 3 of q1"

    def test_geometry_is_deterministic(self, config, question_factory):
        question = question_factory("q1", "A statement with `code` and text " * 5)
        first = compose_question(question, 3, (1, 0, 2, 4, 3), config)
        second = compose_question(question, 3, (1, 0, 2, 4, 3), config)
        assert first.height == second.height
        assert first.bubbles == second.bubbles
        assert first.ops == second.ops

    def test_bubbles_independent_of_statement_length(self, config, question_factory):
        """Bubble offsets depend only on the panel, not on the prose."""
        short = compose_question(question_factory("q1", "Short?"), 1, (0, 1, 2, 3, 4), config)
        long = compose_question(question_factory("q1", "Long words " * 80), 1, (0, 1, 2, 3, 4), config)
        assert short.bubbles == long.bubbles
        assert long.height > short.height

    def test_fiducials_bracket_bubbles(self, config, question_factory):
        layout = compose_question(question_factory("q1"), 1, (0, 1, 2, 3, 4), config)
        (top_x, top_off), (bottom_x, bottom_off) = layout.fiducials
        assert top_off == layout.bubbles[0].offset
        assert bottom_off == layout.bubbles[-1].offset
        assert top_x == bottom_x == config.fiducial_x

    def test_number_drawn_first(self, config, question_factory):
        layout = compose_question(question_factory("q1"), 12, (0, 1, 2, 3, 4), config)
        assert layout.ops[0].text == "12."

    def test_image_box_within_column(self, config, question_factory, sample_png):
        layout = compose_question(question_factory("q1", image=sample_png), 1, (0, 1, 2, 3, 4), config)
        boxes = [op for op in layout.ops if isinstance(op, ImageBox)]
        assert len(boxes) == 1
        assert boxes[0].width <= config.text_width
        assert boxes[0].height <= config.image_max_height
        assert layout.warnings == ()

    def test_corrupt_image_note_and_warning(self, config, question_factory):
        layout = compose_question(
            question_factory("q1", image=b"not an image"), 7, (0, 1, 2, 3, 4), config,
        )
        texts = [op.text for op in layout.ops if isinstance(op, TextRun)]
        assert IMAGE_UNAVAILABLE_NOTE in texts
        assert len(layout.warnings) == 1
        assert layout.warnings[0].startswith("question 7")

    def test_images_scaled_down_not_up(self, config, question_factory, png_factory):
        big_q = question_factory("q1", choice_count=2, image=png_factory((1000, 1000)))
        small_q = question_factory("q2", choice_count=2, image=png_factory((20, 10)))
        big = compose_question(big_q, 1, (0, 1), config)
        small = compose_question(small_q, 1, (0, 1), config)
        big_box = next(op for op in big.ops if isinstance(op, ImageBox))
        small_box = next(op for op in small.ops if isinstance(op, ImageBox))
        assert big_box.height == pytest.approx(config.image_max_height)
        assert (small_box.width, small_box.height) == (20, 10)


class TestComposeExam:
    """Tests for order_questions() and compose_exam()."""

    def test_numbered_in_variant_order(self, config, sample_questions):
        vm = VariantMap(("q3", "q1", "q5", "q2", "q4"))
        layouts = compose_exam(sample_questions, vm, config)
        assert [l.question_id for l in layouts] == ["q3", "q1", "q5", "q2", "q4"]
        assert [l.number for l in layouts] == [1, 2, 3, 4, 5]

    def test_unknown_variant_id_is_skipped_with_warning(self, config, sample_questions):
        warnings = []
        ids = tuple(q.id for q in sample_questions)
        ordered = order_questions(sample_questions, VariantMap(ids[:1] + ("missing",) + ids[1:]), warnings)
        assert [q.id for q in ordered] == list(ids)
        assert "missing" in warnings[0]

    def test_question_absent_from_variant_raises(self, config, sample_questions):
        vm = VariantMap(tuple(q.id for q in sample_questions[:4]))
        with pytest.raises(ValueError, match="q5"):
            compose_exam(sample_questions, vm, config)
