"""Normalize heterogeneous duration values into integer milliseconds."""

from __future__ import annotations

import math
import re
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

# Checked in order on wrapper/duration objects
_WRAPPER_ATTRIBUTES = ("total_milliseconds", "milliseconds", "value")

_CLOCK_RE = re.compile(r"^(?:(?:(\d+):)?(\d+):)?(\d+)(?:\.(\d*))?$")


def to_milliseconds(value: Any) -> Optional[int]:
    """Return ``value`` as whole milliseconds, or None when it is not a duration.

    Accepts plain ints, timedeltas, floats/Decimals (rounded half away from
    zero), wrapper objects exposing ``total_milliseconds``/``milliseconds``/
    ``value``, and anything whose ``str()`` is a clock string such as
    ``"1:03.502"``.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value if INT32_MIN <= value <= INT32_MAX else None

    if isinstance(value, timedelta):
        return _round_millis(Decimal(value // timedelta(microseconds=1)) / 1000)

    if isinstance(value, (float, Decimal)):
        return _round_millis(value)

    if isinstance(value, str):
        return parse_clock_time(value)

    for attr in _WRAPPER_ATTRIBUTES:
        try:
            candidate = getattr(value, attr, None)
        except Exception:
            continue
        if candidate is None or candidate is value:
            continue
        if callable(candidate):
            continue
        inner = to_milliseconds(candidate)
        if inner is not None:
            return inner
        break

    try:
        text = str(value)
    except Exception:
        return None
    return parse_clock_time(text)


def parse_clock_time(text: Optional[str]) -> Optional[int]:
    """Parse ``ss[.fff]``, ``m:ss[.fff]`` or ``h:m:ss[.fff]`` into milliseconds.

    The fraction is truncated or right-padded to three digits.
    """
    if text is None:
        return None

    match = _CLOCK_RE.match(text.strip())
    if match is None:
        return None

    hours, minutes, seconds, fraction = match.groups()
    millis = int(((fraction or "")[:3]).ljust(3, "0"))
    total = int(hours or 0) * 3_600_000 + int(minutes or 0) * 60_000 + int(seconds) * 1000 + millis

    if total < 0 or total > INT32_MAX:
        return None
    return total


def _round_millis(value: float | Decimal) -> Optional[int]:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        rounded = int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError):
        return None
    return rounded if INT32_MIN <= rounded <= INT32_MAX else None
