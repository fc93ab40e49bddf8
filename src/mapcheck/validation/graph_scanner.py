"""Cycle-safe, depth-bounded traversal over decoded record graphs.

Used by the GPS stage to locate ghost-shaped nodes below a map's in-game
clip group, plus a fixed-shape descent that lists raw GPS record times.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from itertools import islice
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Type, TypeVar, Union, overload

from pydantic import BaseModel

from mapcheck.gbx.models import MapRecord, MediaBlockEntity
from mapcheck.validation.time_normalizer import to_milliseconds

MAX_COLLECTION_ITEMS = 20_000

_SCALAR_TYPES = (
    str,
    bytes,
    bytearray,
    memoryview,
    bool,
    int,
    float,
    complex,
    Decimal,
    Fraction,
    Enum,
    date,
    datetime,
    time,
    timedelta,
)

T = TypeVar("T")


@dataclass(frozen=True)
class GpsCandidate:
    """Raw, unvalidated duration found in the clip graph."""

    time_ms: int
    source: str


def is_scalar(value: Any) -> bool:
    return isinstance(value, _SCALAR_TYPES)


@overload
def traverse_for_type(root: Any, target: Type[T], max_depth: Optional[int] = None) -> Iterator[T]:
    ...


@overload
def traverse_for_type(root: Any, target: Callable[[Any], bool], max_depth: Optional[int] = None) -> Iterator[Any]:
    ...


def traverse_for_type(
    root: Any,
    target: Union[type, Callable[[Any], bool]],
    max_depth: Optional[int] = None,
) -> Iterator[Any]:
    """Yield every node reachable from ``root`` that matches ``target``.

    ``target`` is either a class (isinstance match) or a predicate. Each node
    is visited once, keyed on identity. The root is depth 0; nodes at
    ``max_depth`` are still yielded but their children are not expanded.
    Order is last-pushed-first-visited.
    """
    matches = _build_matcher(target)
    # Holding the nodes keeps their ids unique for the lifetime of the scan.
    visited: Dict[int, Any] = {}
    stack: List[Tuple[Any, int]] = [(root, 0)]

    while stack:
        node, depth = stack.pop()
        if node is None or id(node) in visited:
            continue
        visited[id(node)] = node

        if matches(node):
            yield node

        if max_depth is not None and depth >= max_depth:
            continue

        for child in iter_children(node):
            stack.append((child, depth + 1))


def iter_children(node: Any) -> Iterator[Any]:
    """Yield the non-scalar children of ``node``.

    Collections contribute their items (at most ``MAX_COLLECTION_ITEMS``);
    structured objects contribute their declared fields. Fields that raise on
    access are skipped.
    """
    if node is None or is_scalar(node):
        return

    if isinstance(node, BaseModel):
        yield from _field_values(node, type(node).model_fields)
        return

    if dataclasses.is_dataclass(node) and not isinstance(node, type):
        yield from _field_values(node, [f.name for f in dataclasses.fields(node)])
        return

    if isinstance(node, Mapping):
        yield from islice(_non_scalar(node.values()), MAX_COLLECTION_ITEMS)
        return

    if isinstance(node, Collection):
        yield from islice(_non_scalar(node), MAX_COLLECTION_ITEMS)
        return

    names: List[str] = list(getattr(node, "__dict__", {}) or {})
    for klass in type(node).__mro__:
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        names.extend(name for name in slots if name not in ("__dict__", "__weakref__"))
    yield from _field_values(node, names)


def enumerate_gps_record_data_candidates(map_record: MapRecord) -> Iterator[GpsCandidate]:
    """Walk clip triggers → tracks → entity blocks → entity records.

    Each entity record yields its ``finish_time`` (when positive) and the
    time of its last sample, tagged with the exact index path.
    """
    clip_group = map_record.clip_group_in_game
    if clip_group is None or not clip_group.clips:
        return

    for trigger_index, trigger in enumerate(clip_group.clips):
        clip = trigger.clip if trigger is not None else None
        if clip is None or not clip.tracks:
            continue

        for track_index, track in enumerate(clip.tracks):
            if track is None or not track.blocks:
                continue

            for block_index, block in enumerate(track.blocks):
                if not isinstance(block, MediaBlockEntity):
                    continue
                record_data = block.record_data
                if record_data is None or not record_data.entities:
                    continue

                for entity_index, entity in enumerate(record_data.entities):
                    base_path = (
                        f"clip_group_in_game.clips[{trigger_index}].clip.tracks[{track_index}]"
                        f".blocks[{block_index}].record_data.entities[{entity_index}]"
                    )

                    if entity.finish_time > 0:
                        yield GpsCandidate(entity.finish_time, f"{base_path}.finish_time")

                    if not entity.samples:
                        continue

                    last_index = len(entity.samples) - 1
                    last_time = to_milliseconds(entity.samples[last_index].time)
                    if last_time is not None:
                        yield GpsCandidate(last_time, f"{base_path}.samples[{last_index}].time")


def _build_matcher(target: Union[type, Callable[[Any], bool]]) -> Callable[[Any], bool]:
    if isinstance(target, type):
        return lambda node: isinstance(node, target)
    return target


def _field_values(node: Any, names: Collection[str]) -> Iterator[Any]:
    for name in names:
        try:
            value = getattr(node, name)
        except Exception:
            continue
        if value is None or is_scalar(value):
            continue
        yield value


def _non_scalar(items: Any) -> Iterator[Any]:
    return (item for item in items if item is not None and not is_scalar(item))
