"""Decoders turning GBX files into ``MapRecord`` / ``ReplayRecord`` models.

``HeaderDecoder`` reads only the container header (user-data chunks), which
is uncompressed and stable across game versions:
- 0x03043002: map times (author time) and, from chunk version 13, checkpoint count
- 0x03043003: map identity (uid, author login) and display name
- 0x03093000: replay map identity and best ghost time

Body structures (validation ghost, script metadata, media clips) live in the
compressed body and require a full class-aware decoder; such a decoder can be
plugged in through the ``decoder`` setting (``"package.module:Attribute"``).
"""

import importlib
import logging
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from mapcheck.gbx.models import Ghost, MapRecord, ReplayRecord
from mapcheck.gbx.reader import ChunkReader, GbxDecodeError, GbxHeader, read_header_from_path

logger = logging.getLogger(__name__)

MAP_CLASS_ID = 0x03043000
REPLAY_CLASS_ID = 0x03093000

CHUNK_MAP_INFO = 0x03043002
CHUNK_MAP_COMMON = 0x03043003
CHUNK_REPLAY_INFO = 0x03093000


@runtime_checkable
class GbxDecoder(Protocol):
    """Anything able to decode map and replay files into record models."""

    def decode_map(self, path: Path) -> MapRecord:
        ...

    def decode_replay(self, path: Path) -> ReplayRecord:
        ...


class HeaderDecoder:
    """Decode records from GBX header chunks only."""

    def decode_map(self, path: Path) -> MapRecord:
        header = read_header_from_path(path)
        _expect_class(header, MAP_CLASS_ID, "map")

        record = MapRecord()
        common = header.reader(CHUNK_MAP_COMMON)
        if common is not None:
            _read_map_common(common, record)

        info = header.reader(CHUNK_MAP_INFO)
        if info is not None:
            _read_map_info(info, record)

        if record.uid is None:
            logger.debug("Map header of %s carried no identity chunk", path)
        return record

    def decode_replay(self, path: Path) -> ReplayRecord:
        header = read_header_from_path(path)
        _expect_class(header, REPLAY_CLASS_ID, "replay")

        record = ReplayRecord()
        info = header.reader(CHUNK_REPLAY_INFO)
        if info is not None:
            _read_replay_info(info, record)
        return record


def _expect_class(header: GbxHeader, class_id: int, label: str) -> None:
    if header.class_id != class_id:
        raise GbxDecodeError(
            f"Expected {label} class 0x{class_id:08X}, found 0x{header.class_id:08X}"
        )


def _read_map_common(reader: ChunkReader, record: MapRecord) -> None:
    reader.read_u8()  # chunk version
    uid, _collection, author = reader.read_ident()
    record.uid = uid or None
    record.author_login = author or None
    record.name = reader.read_string()


def _read_map_info(reader: ChunkReader, record: MapRecord) -> None:
    version = reader.read_u8()
    if version < 3:
        uid, _collection, author = reader.read_ident()
        name = reader.read_string()
        record.uid = record.uid or uid or None
        record.author_login = record.author_login or author or None
        record.name = record.name or name

    reader.read_bool()
    if version < 1:
        return

    reader.read_time()  # bronze
    reader.read_time()  # silver
    reader.read_time()  # gold
    record.author_time = reader.read_time()

    if version == 2:
        reader.read_u8()
    if version < 4:
        return
    reader.read_i32()  # cost
    if version < 5:
        return
    reader.read_bool()  # lap race
    if version == 6:
        reader.read_bool()
    if version < 7:
        return
    reader.read_i32()  # play mode
    if version < 9:
        return
    reader.read_i32()
    if version < 10:
        return
    reader.read_i32()  # author score
    if version < 11:
        return
    reader.read_i32()  # editor mode
    if version < 12:
        return
    reader.read_i32()
    if version < 13:
        return
    record.checkpoint_count = reader.read_i32()
    reader.read_i32()  # laps


def _read_replay_info(reader: ChunkReader, record: ReplayRecord) -> None:
    version = reader.read_u32()
    if version < 2:
        return

    uid, _collection, _author = reader.read_ident()
    record.map_uid = uid or None
    best_time = reader.read_time()
    nickname = reader.read_string()
    login: Optional[str] = None
    if version >= 6 and reader.remaining >= 4:
        login = reader.read_string() or None

    if best_time is not None:
        record.ghosts.append(
            Ghost(race_time=best_time, nickname=nickname or None, login=login, validate_challenge_uid=record.map_uid)
        )


def load_decoder(target: Union[str, GbxDecoder, None] = None) -> GbxDecoder:
    """Resolve a decoder from an import path like ``"pkg.module:ClassName"``.

    Classes are instantiated without arguments; any other attribute is used
    as-is and must implement ``decode_map`` and ``decode_replay``.
    """
    if target is None:
        return HeaderDecoder()
    if not isinstance(target, str):
        return target

    module_name, _, attr_name = target.partition(":")
    if not module_name or not attr_name:
        raise ValueError(f"Decoder must look like 'package.module:Attribute', got {target!r}")

    module = importlib.import_module(module_name)
    try:
        candidate = getattr(module, attr_name)
    except AttributeError as exc:
        raise ValueError(f"Decoder {attr_name!r} not found in {module_name}") from exc

    decoder = candidate() if isinstance(candidate, type) else candidate
    if not isinstance(decoder, GbxDecoder):
        raise ValueError(f"Decoder {target!r} does not implement decode_map/decode_replay")

    logger.debug("Using decoder %s", target)
    return decoder
