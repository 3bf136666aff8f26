"""
Module: builder.variants

Purpose:
    Generate the randomized question order and per-question option order
    for one exam instance.

Key Functions:
    - generate_variant(): Shuffle question ids and option indices
    - shuffle(): Fisher-Yates over a sequence

Dependencies:
    - random (std): Non-cryptographic uniform generator

Used By:
    - builder.controller
    - cli: ``omr-toolkit generate``
"""

from __future__ import annotations

import logging
import random
from typing import Optional, Sequence, TypeVar

from omr_toolkit.core.models import Question, VariantMap

logger = logging.getLogger(__name__)

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: random.Random) -> list[T]:
    """
    Return a shuffled copy using Fisher-Yates (last-to-first swap).

    Every permutation is equally likely given a uniform ``rng``.
    """
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def generate_variant(
    questions: Sequence[Question],
    rng: Optional[random.Random] = None,
) -> VariantMap:
    """
    Produce a VariantMap for the given questions.

    Question ids are shuffled, and independently each question's option
    indices ``0..n-1``. The generator is unseeded unless ``rng`` is given,
    so two calls are expected to differ.

    Args:
        questions: Questions selected for the exam
        rng: Optional random source (tests inject a seeded instance)

    Returns:
        VariantMap; empty for empty input

    Example:
        >>> vm = generate_variant(questions, rng=random.Random(7))
        >>> sorted(vm.question_order) == sorted(q.id for q in questions)
        True
    """
    rng = rng or random.Random()
    question_order = tuple(shuffle([q.id for q in questions], rng))
    option_order = {
        q.id: tuple(shuffle(range(len(q.choices)), rng))
        for q in questions
    }
    logger.debug(f"Generated variant for {len(question_order)} questions")
    return VariantMap(question_order=question_order, option_order=option_order)
