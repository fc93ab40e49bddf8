"""Script metadata helpers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, List, Optional, Union

from mapcheck.gbx.models import ScriptMetadata

WAYPOINT_TIMES_KEY = "Race_AuthorRaceWaypointTimes"


def extract_waypoint_times(
    metadata: Union[ScriptMetadata, Mapping[str, Any], None],
) -> Optional[List[int]]:
    """Return the author's per-waypoint times, the last one being the finish.

    Trait values may be bare or wrapped in objects exposing ``value``.
    Elements that are not integers are dropped; None means the trait is
    missing or is not a sequence.
    """
    if metadata is None:
        return None

    traits = metadata.traits if isinstance(metadata, ScriptMetadata) else metadata
    if WAYPOINT_TIMES_KEY not in traits:
        return None

    sequence = _unwrap(traits[WAYPOINT_TIMES_KEY])
    if isinstance(sequence, (str, bytes)) or not isinstance(sequence, Iterable):
        return None

    times: List[int] = []
    for item in sequence:
        number = _coerce_int(_unwrap(item))
        if number is not None:
            times.append(number)
    return times


def _unwrap(value: Any) -> Any:
    if isinstance(value, (str, bytes, list, tuple)):
        return value
    inner = getattr(value, "value", None)
    return value if inner is None else inner


def _coerce_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        # Wider script integers wrap into 32 bits the way the game stores them
        return (value + 2**31) % 2**32 - 2**31
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None
