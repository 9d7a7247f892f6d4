"""Best-effort decoding of raw form field values into call arguments.

Each submitted field is tried as a JSON literal so that numbers, lists,
objects, booleans and null reach the service with their proper type. Anything
that is not valid JSON is passed through as the original string.

Examples:
    >>> decode("42")
    42
    >>> decode("[1, 2]")
    [1, 2]
    >>> decode("hello")
    'hello'
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of a decode attempt.

    `ok` is the only success signal: a decoded `0`, `false`, `null`, `[]` or
    `{}` is a success even though the value itself is falsy.
    """

    ok: bool
    value: Any


def try_decode(raw: str) -> DecodeResult:
    """Attempt a strict JSON decode of `raw`."""
    try:
        return DecodeResult(ok=True, value=json.loads(raw))
    except (json.JSONDecodeError, TypeError, ValueError, RecursionError):
        return DecodeResult(ok=False, value=raw)


def decode(raw: str) -> Any:
    """Decode `raw` into a typed value, falling back to `raw` unchanged."""
    result = try_decode(raw)
    if result.ok:
        return result.value
    return raw
