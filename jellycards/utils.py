"""Utility helpers for time units, progress and image references."""

from __future__ import annotations

import math
from typing import Any, Iterable
from urllib.parse import quote, urlencode


TICKS_PER_MILLISECOND = 10_000
DEFAULT_ON_DEMAND_COUNT = 30
MAX_ON_DEMAND_COUNT = 200

_ENABLED_FLAGS = {"true", "1", "yes", "on"}


def _as_number(value: Any) -> int | float | None:
    """Return ``value`` as a finite number, or ``None`` when it is not numeric."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def ticks_to_ms(value: Any) -> int | None:
    """Convert upstream ticks (10,000 per millisecond) to whole milliseconds.

    Missing and non-numeric values yield ``None``; zero is a real position
    and converts to ``0``.
    """

    number = _as_number(value)
    if number is None:
        return None
    if isinstance(number, int):
        return number // TICKS_PER_MILLISECOND
    return math.floor(number / TICKS_PER_MILLISECOND)


def coerce_ms(value: Any) -> int | None:
    """Return an already-millisecond upstream value as an integer."""

    number = _as_number(value)
    if number is None:
        return None
    if isinstance(number, int):
        return number
    return math.floor(number)


def progress_percent(runtime_ms: int | None, position_ms: int | None) -> int:
    """Return the rounded playback percentage.

    The result is not clamped: a position past the runtime reports more than
    100 so bad upstream data stays visible.
    """

    if not runtime_ms or not position_ms:
        return 0
    # Half-up rounding, matching how the display layer rounds percentages.
    return math.floor(position_ms / runtime_ms * 100 + 0.5)


def image_reference(
    provider: str,
    item_id: Any,
    kind: str = "Primary",
    max_width: int | None = None,
) -> str:
    """Return the opaque image path resolved later by the image proxy."""

    params: dict[str, Any] = {"type": kind}
    if max_width:
        params["maxWidth"] = int(max_width)
    return (
        f"/{quote(provider, safe='')}/image/{quote(str(item_id), safe='')}"
        f"?{urlencode(params)}"
    )


def parse_count(
    value: Any,
    *,
    default: int = DEFAULT_ON_DEMAND_COUNT,
    maximum: int = MAX_ON_DEMAND_COUNT,
) -> int:
    """Normalise a requested item count to ``[0, maximum]``."""

    number = _as_number(value)
    if number is None:
        return default
    count = number if isinstance(number, int) else math.floor(number)
    return max(0, min(maximum, count))


def split_csv(value: Any) -> tuple[str, ...]:
    """Split a comma separated string (or iterable) into unique trimmed parts."""

    if value is None:
        return ()
    if isinstance(value, str):
        raw_values: Iterable[Any] = value.split(",")
    elif isinstance(value, Iterable):
        raw_values = value
    else:
        raw_values = [value]

    cleaned: list[str] = []
    for entry in raw_values:
        text = str(entry).strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return tuple(cleaned)


def is_enabled(value: Any) -> bool:
    """Interpret boolean flags that may arrive as strings."""

    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _ENABLED_FLAGS
    return False
