"""Serialization helpers for the persisted contracts."""

from .serialization import (
    dump_json,
    load_coordinate_map,
    load_questions,
    load_variant_map,
    save_coordinate_map,
    save_questions,
    save_variant_map,
)

__all__ = [
    "dump_json",
    "load_coordinate_map",
    "load_questions",
    "load_variant_map",
    "save_coordinate_map",
    "save_questions",
    "save_variant_map",
]
