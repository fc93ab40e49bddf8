"""
Shared test fixtures for pytest

GBX helpers build minimal binary containers (version 6 header with
user-data chunks only) so decoder and runner tests work on real bytes.
"""

import struct
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

import pytest

from mapcheck.gbx.models import (
    Clip,
    ClipGroup,
    ClipTrigger,
    EntityRecord,
    Ghost,
    MapRecord,
    MediaBlockEntity,
    MediaBlockGhost,
    RecordData,
    Sample,
    ScriptMetadata,
    Track,
)
from mapcheck.validation.metadata import WAYPOINT_TIMES_KEY

MAP_CLASS_ID = 0x03043000
REPLAY_CLASS_ID = 0x03093000
NEW_LOOKBACK = 0x40000000
STADIUM_COLLECTION = 26


def gbx_string(text: str) -> bytes:
    data = text.encode("utf-8")
    return struct.pack("<I", len(data)) + data


def ident(uid: str, author: str = "author") -> bytes:
    """Lookback version + (uid, collection id, author) as the first strings of a chunk."""
    return (
        struct.pack("<I", 3)
        + struct.pack("<I", NEW_LOOKBACK) + gbx_string(uid)
        + struct.pack("<I", STADIUM_COLLECTION)
        + struct.pack("<I", NEW_LOOKBACK) + gbx_string(author)
    )


def map_common_chunk(uid: str, name: str, author: str = "author") -> Tuple[int, bytes]:
    return 0x03043003, bytes([11]) + ident(uid, author) + gbx_string(name)


def map_info_chunk(author_time: int, checkpoints: int = 0, version: int = 13) -> Tuple[int, bytes]:
    data = bytes([version]) + struct.pack("<I", 0)
    data += struct.pack("<iiii", author_time + 3000, author_time + 2000, author_time + 1000, author_time)
    data += struct.pack("<i", 0)  # cost
    data += struct.pack("<I", 0)  # lap race
    data += struct.pack("<iiiii", 1, 0, -1, 0, 0)  # play mode, unknown, author score, editor mode, unknown
    data += struct.pack("<ii", checkpoints, 1)
    return 0x03043002, data


def replay_info_chunk(uid: str, best_time: int, nickname: str = "driver") -> Tuple[int, bytes]:
    data = struct.pack("<I", 6) + ident(uid) + struct.pack("<i", best_time) + gbx_string(nickname)
    data += gbx_string("login")
    return 0x03093000, data


def build_gbx(class_id: int, chunks: Iterable[Tuple[int, bytes]]) -> bytes:
    chunk_list = list(chunks)
    user_data = struct.pack("<I", len(chunk_list))
    user_data += b"".join(struct.pack("<II", chunk_id, len(data)) for chunk_id, data in chunk_list)
    user_data += b"".join(data for _, data in chunk_list)

    header = b"GBX" + struct.pack("<H", 6) + b"BUCR" + struct.pack("<I", class_id)
    header += struct.pack("<I", len(user_data)) + user_data
    return header + struct.pack("<II", 0, 0)


def build_map_gbx(uid: str, name: str, author_time: int, checkpoints: int = 0) -> bytes:
    return build_gbx(MAP_CLASS_ID, [map_info_chunk(author_time, checkpoints), map_common_chunk(uid, name)])


def build_replay_gbx(uid: str, best_time: int) -> bytes:
    return build_gbx(REPLAY_CLASS_ID, [replay_info_chunk(uid, best_time)])


def gps_clip_group(
    ghost_times: Iterable[object] = (),
    entity_finish_times: Iterable[int] = (),
    sample_times: Optional[List[object]] = None,
) -> ClipGroup:
    """Clip group with one track per evidence flavour."""
    ghost_track = Track(
        name="ghosts",
        blocks=[MediaBlockGhost(ghost_model=Ghost(race_time=value)) for value in ghost_times],
    )
    entities = [EntityRecord(finish_time=value) for value in entity_finish_times]
    if sample_times is not None:
        entities.append(EntityRecord(samples=[Sample(time=value) for value in sample_times]))
    entity_track = Track(
        name="entities",
        blocks=[MediaBlockEntity(record_data=RecordData(entities=entities))] if entities else [],
    )
    return ClipGroup(clips=[ClipTrigger(clip=Clip(name="intro", tracks=[ghost_track, entity_track]))])


@pytest.fixture
def make_map() -> Callable[..., MapRecord]:
    """Factory for map records with optional evidence attached."""

    def _make(
        uid: str = "MapUid123",
        author_time: object = 5432,
        waypoints: Optional[List[int]] = None,
        checkpoints: int = 2,
        validation_ghost_time: object = None,
        clip_group: Optional[ClipGroup] = None,
        name: str = "Test Map",
    ) -> MapRecord:
        metadata = None
        if waypoints is not None:
            metadata = ScriptMetadata(traits={WAYPOINT_TIMES_KEY: waypoints})
        ghost = Ghost(race_time=validation_ghost_time) if validation_ghost_time is not None else None
        return MapRecord(
            uid=uid,
            name=name,
            author_time=author_time,
            checkpoint_count=checkpoints,
            validation_ghost=ghost,
            script_metadata=metadata,
            clip_group_in_game=clip_group,
        )

    return _make


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, bytes], Path]:
    def _write(relative: str, data: bytes) -> Path:
        target = tmp_path / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return target

    return _write
