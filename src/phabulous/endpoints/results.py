"""Helpers for unpacking Conduit result payloads."""

from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import ValidationError

from ..conduit.errors import ConduitMalformedResponseError

T = TypeVar("T")


def result_mapping(result: Any, method: str) -> dict[str, Any]:
    """Return ``result`` as a mapping.

    PHP serializes an empty associative array as ``[]``, so an empty list is
    accepted as an empty mapping.
    """
    if result is None or result == []:
        return {}
    if not isinstance(result, dict):
        raise ConduitMalformedResponseError(
            f"Expected an object result, got {type(result).__name__}", method=method
        )
    return result


def result_entries(result: Any, method: str) -> list[dict[str, Any]]:
    """Return the entries of a list result or of a PHID-keyed mapping result."""
    if result is None:
        return []
    if isinstance(result, dict):
        values = list(result.values())
    elif isinstance(result, list):
        values = result
    else:
        raise ConduitMalformedResponseError(
            f"Expected a list or object result, got {type(result).__name__}", method=method
        )
    if not all(isinstance(entry, dict) for entry in values):
        raise ConduitMalformedResponseError("Result entries must be objects", method=method)
    return values


def convert_entry(
    convert: Callable[..., T], entry: dict[str, Any], method: str, *args: Any
) -> T:
    """Build a model from a result entry.

    Raises:
        ConduitMalformedResponseError: If the entry lacks fields or has bad types
    """
    try:
        return convert(entry, *args)
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        raise ConduitMalformedResponseError(
            f"Unexpected result entry: {type(e).__name__}: {e}", method=method
        ) from e
