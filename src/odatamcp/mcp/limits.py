"""Coercion and clamping helpers for loosely-typed tool arguments."""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class QueryLimits:
    """Bounds applied to ``$top`` and ``$skip`` on every query."""

    default_top: int = 10
    min_top: int = 1
    max_top: int = 100
    min_skip: int = 0


DEFAULT_LIMITS = QueryLimits()

# Optional sign and ASCII digits only; no underscores or other Unicode digits.
_INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")


def parse_int_text(text: str) -> int | None:
    """
    Parse a trimmed decimal integer string.

    Returns
    -------
    int | None
        Parsed integer, or ``None`` when the text is not a plain decimal integer.
    """
    stripped = text.strip()
    if _INTEGER_TEXT.fullmatch(stripped) is None:
        return None
    return int(stripped)


def coerce_int(value: object) -> int | None:
    """
    Interpret a numeric or numeric-string argument as an integer.

    Parameters
    ----------
    value:
        Raw argument value from the tool call.

    Returns
    -------
    int | None
        Parsed integer, or ``None`` when the value has any other shape.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        return parse_int_text(value)
    return None


def coerce_text(value: object) -> str | None:
    """
    Return the value when it is a non-blank string.

    Returns
    -------
    str | None
        The original string (untrimmed), or ``None``.
    """
    if isinstance(value, str) and value.strip():
        return value
    return None


def clamp_top(value: object, limits: QueryLimits = DEFAULT_LIMITS) -> int:
    """
    Clamp a requested ``$top`` into ``[min_top, max_top]``.

    Missing or unparseable values fall back to ``default_top``.

    Returns
    -------
    int
        Applied page size.
    """
    requested = coerce_int(value)
    if requested is None:
        return limits.default_top
    return max(limits.min_top, min(requested, limits.max_top))


def clamp_skip(value: object, limits: QueryLimits = DEFAULT_LIMITS) -> int:
    """
    Clamp a requested ``$skip`` to be non-negative.

    Returns
    -------
    int
        Applied offset; ``0`` for unparseable values.
    """
    requested = coerce_int(value)
    if requested is None:
        return limits.min_skip
    return max(limits.min_skip, requested)
