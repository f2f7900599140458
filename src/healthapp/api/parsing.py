"""Helpers for the loosely shaped JSON the backend returns."""

from __future__ import annotations

from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)


def unwrap(data: Any, key: str) -> Any:
    """Return ``data[key]`` when *data* is a dict holding *key*, else *data*."""
    if isinstance(data, dict) and key in data:
        return data[key]
    return data


def parse_items(data: Any, key: str, model: type[M]) -> list[M]:
    """Parse a list response that may be bare or wrapped under *key*.

    Items that fail validation are logged and skipped.
    """
    raw_items = unwrap(data, key)
    if not isinstance(raw_items, list):
        logger.warning(f"Expected a list of {key}, got {type(raw_items).__name__}")
        return []

    items: list[M] = []
    for raw in raw_items:
        try:
            items.append(model.model_validate(raw))
        except ValidationError as exc:
            item_id = raw.get("id", "<unknown>") if isinstance(raw, dict) else "<unknown>"
            logger.warning(f"Failed to parse {model.__name__} {item_id}: {exc}")
    return items
