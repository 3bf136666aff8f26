"""
Serialization Utilities

Provides to/from JSON utilities for the persisted contracts: the question
list fed to the builder, the VariantMap and the CoordinateMap.

- All models have `to_dict()` and `from_dict()` methods; this module only
  handles files and turns parse failures into SerializationError.
- Nothing derived is ever written. A coordinate map is stored exactly as
  the layout engine produced it and read back without recomputation.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, TypeVar

from ..errors import SerializationError
from ..models.coordinates import CoordinateMap
from ..models.questions import Question
from ..models.variants import VariantMap

logger = logging.getLogger(__name__)

T = TypeVar("T")


def dump_json(data: Any, path: Path) -> None:
    """Write ``data`` as indented UTF-8 JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SerializationError(f"{path}: invalid JSON ({e})") from e


def _build(factory: Callable[[Any], T], data: Any, what: str) -> T:
    try:
        return factory(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise SerializationError(f"invalid {what}: {e}") from e


# ─────────────────────────────────────────────────────────────────────────────
# Questions
# ─────────────────────────────────────────────────────────────────────────────

def deserialize_questions(data: Any) -> list[Question]:
    """
    Parse a question list.

    Accepts either a bare list or ``{"questions": [...]}``.

    Raises:
        SerializationError: If any entry is not a valid question
    """
    if isinstance(data, dict):
        data = data.get("questions", [])
    if not isinstance(data, list):
        raise SerializationError("questions must be a list")
    return [_build(Question.from_dict, item, "question") for item in data]


def save_questions(questions: Iterable[Question], path: Path) -> None:
    dump_json({"questions": [q.to_dict() for q in questions]}, path)


def load_questions(path: Path) -> list[Question]:
    questions = deserialize_questions(_read_json(path))
    logger.debug(f"Loaded {len(questions)} questions from {path}")
    return questions


# ─────────────────────────────────────────────────────────────────────────────
# Variant map
# ─────────────────────────────────────────────────────────────────────────────

def deserialize_variant_map(data: Any) -> VariantMap:
    return _build(VariantMap.from_dict, data, "variant map")


def save_variant_map(variant_map: VariantMap, path: Path) -> None:
    dump_json(variant_map.to_dict(), path)


def load_variant_map(path: Path) -> VariantMap:
    return deserialize_variant_map(_read_json(path))


# ─────────────────────────────────────────────────────────────────────────────
# Coordinate map
# ─────────────────────────────────────────────────────────────────────────────

def deserialize_coordinate_map(data: Any) -> CoordinateMap:
    return _build(CoordinateMap.from_dict, data, "coordinate map")


def save_coordinate_map(coordinate_map: CoordinateMap, path: Path) -> None:
    dump_json(coordinate_map.to_dict(), path)


def load_coordinate_map(path: Path) -> CoordinateMap:
    coordinate_map = deserialize_coordinate_map(_read_json(path))
    logger.debug(
        f"Loaded coordinate map from {path}: {len(coordinate_map.pages)} pages, "
        f"{coordinate_map.question_count} questions"
    )
    return coordinate_map
