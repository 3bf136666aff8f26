import io
import random
import sys
from pathlib import Path

import pytest
from PIL import Image

# Add src to sys.path so we can import omr_toolkit
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from omr_toolkit.core.models import Choice, Question  # noqa: E402


def make_question(qid: str, statement: str = "", choice_count: int = 5, correct: int = 0, image=None):
    """Build a valid question with ``choice_count`` options."""
    choices = tuple(
        Choice(f"Option {i + 1} of {qid}", is_correct=(i == correct))
        for i in range(choice_count)
    )
    return Question(
        id=qid,
        statement=statement or f"Statement of question {qid}?",
        choices=choices,
        image=image,
    )


def png_bytes(size=(40, 30), color="navy") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, format="PNG")
    return buf.getvalue()


# Common test fixtures
@pytest.fixture
def question_factory():
    """Return the question builder."""
    return make_question


@pytest.fixture
def sample_questions():
    """Five questions with mixed content."""
    return [
        make_question("q1", "What does `len([1, 2])` return?"),
        make_question("q2", "Pick the odd one out.", choice_count=4, correct=2),
        make_question("q3", "Given:\n```python\nx = 1\ny = x + 1\n```\nWhat is `y`?", choice_count=3),
        make_question("q4", "Which is a prime number?", choice_count=2, correct=1),
        make_question("q5", "A longer statement " * 12),
    ]


@pytest.fixture
def seeded_rng():
    """Deterministic random source."""
    return random.Random(1234)


@pytest.fixture
def sample_png():
    """Small valid PNG image bytes."""
    return png_bytes()


@pytest.fixture
def png_factory():
    """Return a PNG builder taking (size, color)."""
    return png_bytes
