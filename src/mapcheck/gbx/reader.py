"""Low-level GBX container reading.

Covers the parts of the container that do not need class-specific body
parsing: the magic probe, the file header and the user-data (header) chunks.
All integers are little-endian.
"""

import logging
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

GBX_MAGIC = b"GBX"
MIN_HEADER_VERSION = 6
HEAVY_CHUNK_FLAG = 0x80000000
LOOKBACK_NEW_STRING_FLAGS = 0xC0000000
LOOKBACK_EMPTY = 0xFFFFFFFF
MAX_HEADER_CHUNKS = 256
MAX_STRING_LENGTH = 0x10000

# Old engine ids still found in files saved by earlier game versions
_LEGACY_CLASS_IDS = {
    0x24003000: 0x03043000,  # CGameCtnChallenge
    0x2407E000: 0x03093000,  # CGameCtnReplayRecord
}


class GbxFormatError(ValueError):
    """The file is not a GBX container."""


class GbxDecodeError(ValueError):
    """The file is a GBX container but its structure could not be read."""


def looks_like_gbx(path: Union[str, Path]) -> bool:
    """Return True when the first three bytes of ``path`` are the GBX magic."""
    try:
        with open(path, "rb") as handle:
            return handle.read(len(GBX_MAGIC)) == GBX_MAGIC
    except OSError:
        return False


def remap_class_id(class_id: int) -> int:
    return _LEGACY_CLASS_IDS.get(class_id, class_id)


def chunk_class_id(chunk_id: int) -> int:
    """Class part of a chunk id (e.g. 0x03043002 -> 0x03043000)."""
    return remap_class_id(chunk_id & 0xFFFFF000) | (chunk_id & 0xFFF)


class ChunkReader:
    """Cursor over a chunk payload with GBX primitive readers.

    Lookback strings are scoped to a single reader, so every header chunk
    starts with an empty string table.
    """

    def __init__(self, data: bytes, chunk_id: int = 0) -> None:
        self._data = data
        self._offset = 0
        self.chunk_id = chunk_id
        self._lookback_version: Optional[int] = None
        self._lookback_strings: List[str] = []

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def _take(self, size: int) -> bytes:
        if size < 0 or self._offset + size > len(self._data):
            raise GbxDecodeError(
                f"Unexpected end of chunk 0x{self.chunk_id:08X} "
                f"(wanted {size} byte(s) at offset {self._offset}, have {self.remaining})"
            )
        start = self._offset
        self._offset += size
        return self._data[start : self._offset]

    def read_bytes(self, size: int) -> bytes:
        return self._take(size)

    def read_u8(self) -> int:
        return self._take(1)[0]

    def read_u16(self) -> int:
        return struct.unpack("<H", self._take(2))[0]

    def read_u32(self) -> int:
        return struct.unpack("<I", self._take(4))[0]

    def read_i32(self) -> int:
        return struct.unpack("<i", self._take(4))[0]

    def read_bool(self) -> bool:
        return self.read_u32() != 0

    def read_time(self) -> Optional[int]:
        """Millisecond time where -1 means "not set"."""
        value = self.read_i32()
        return None if value == -1 else value

    def read_string(self) -> str:
        length = self.read_u32()
        if length > MAX_STRING_LENGTH:
            raise GbxDecodeError(f"String length {length} exceeds limit in chunk 0x{self.chunk_id:08X}")
        return self._take(length).decode("utf-8", errors="replace")

    def read_lookback_string(self) -> str:
        if self._lookback_version is None:
            self._lookback_version = self.read_u32()

        value = self.read_u32()
        if value == LOOKBACK_EMPTY:
            return ""

        if value & LOOKBACK_NEW_STRING_FLAGS:
            index = value & ~LOOKBACK_NEW_STRING_FLAGS
            if index == 0:
                text = self.read_string()
                self._lookback_strings.append(text)
                return text
            if index > len(self._lookback_strings):
                raise GbxDecodeError(f"Lookback index {index} out of range in chunk 0x{self.chunk_id:08X}")
            return self._lookback_strings[index - 1]

        # Plain numbers are collection ids; the name table is not needed here
        return str(value)

    def read_ident(self) -> Tuple[str, str, str]:
        """Read an (id, collection, author) triple."""
        return self.read_lookback_string(), self.read_lookback_string(), self.read_lookback_string()


@dataclass
class GbxHeader:
    """Parsed container header with raw user-data chunks keyed by chunk id."""

    version: int
    format: str
    class_id: int
    chunks: Dict[int, bytes] = field(default_factory=dict)

    def reader(self, chunk_id: int) -> Optional[ChunkReader]:
        data = self.chunks.get(chunk_id)
        if data is None:
            return None
        return ChunkReader(data, chunk_id)


def read_header(stream: BinaryIO) -> GbxHeader:
    """Parse the container header from ``stream`` (positioned at the magic)."""
    magic = stream.read(len(GBX_MAGIC))
    if magic != GBX_MAGIC:
        raise GbxFormatError("not a gbx file")

    preamble = ChunkReader(_read_exact(stream, 2))
    version = preamble.read_u16()
    if version < MIN_HEADER_VERSION:
        raise GbxDecodeError(f"Unsupported GBX version {version} (need >= {MIN_HEADER_VERSION})")

    # byte format, ref-table compression, body compression, unknown flag
    flags = _read_exact(stream, 4)
    gbx_format = chr(flags[0])
    if gbx_format != "B":
        raise GbxDecodeError(f"Unsupported GBX format {gbx_format!r} (only binary is supported)")

    fixed = ChunkReader(_read_exact(stream, 8))
    class_id = remap_class_id(fixed.read_u32())
    user_data_size = fixed.read_u32()

    header = GbxHeader(version=version, format=gbx_format, class_id=class_id)
    if user_data_size == 0:
        return header

    user_data = ChunkReader(_read_exact(stream, user_data_size))
    header.chunks = _split_header_chunks(user_data)
    logger.debug(
        "GBX header: version=%s class=0x%08X chunks=%s",
        version,
        class_id,
        ", ".join(f"0x{chunk_id:08X}" for chunk_id in header.chunks),
    )
    return header


def read_header_from_path(path: Union[str, Path]) -> GbxHeader:
    with open(path, "rb") as handle:
        return read_header(handle)


def _split_header_chunks(user_data: ChunkReader) -> Dict[int, bytes]:
    count = user_data.read_u32()
    if count > MAX_HEADER_CHUNKS:
        raise GbxDecodeError(f"Header declares {count} chunks (limit {MAX_HEADER_CHUNKS})")

    entries: List[Tuple[int, int]] = []
    for _ in range(count):
        chunk_id = chunk_class_id(user_data.read_u32())
        size = user_data.read_u32() & ~HEAVY_CHUNK_FLAG
        entries.append((chunk_id, size))

    chunks: Dict[int, bytes] = {}
    for chunk_id, size in entries:
        chunks[chunk_id] = user_data.read_bytes(size)
    return chunks


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise GbxDecodeError(f"Unexpected end of file (wanted {size} byte(s), got {len(data)})")
    return data
