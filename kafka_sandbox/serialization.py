"""JSON text encoding for message values.

Dataclasses are written as objects, dates and datetimes as ISO-8601 strings
(never as epoch numbers), so the payloads stay readable in console consumers
and other tools.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import json
from typing import Any, Callable, TypeVar

from .errors import SerializationError

T = TypeVar("T")


def _default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(value: Any) -> str:
    """Encode `value` as compact JSON text.

    Raises:
        SerializationError: the value (or something inside it) has no JSON form.
    """
    try:
        return json.dumps(value, default=_default, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(str(e)) from e


def from_json(payload: bytes | str | None, from_dict: Callable[[Any], T] | None = None) -> T | Any:
    """Decode a message value, optionally converting the decoded JSON with `from_dict`."""
    if payload is None:
        return None
    try:
        # Depending on the client, values arrive as bytes or str.
        text = payload.decode("utf-8") if isinstance(payload, bytes) else str(payload)
        data = json.loads(text)
    except (UnicodeDecodeError, ValueError) as e:
        raise SerializationError(f"Malformed JSON payload: {e}") from e

    if from_dict is None:
        return data
    try:
        return from_dict(data)
    except (TypeError, KeyError, ValueError) as e:
        raise SerializationError(f"Cannot convert payload: {e}") from e
