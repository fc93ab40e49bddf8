"""GBX container probing and record decoding package exports."""

from mapcheck.gbx.decoder import GbxDecoder, HeaderDecoder, load_decoder
from mapcheck.gbx.models import MapRecord, ReplayRecord
from mapcheck.gbx.reader import GbxDecodeError, GbxFormatError, looks_like_gbx

__all__ = [
    "GbxDecoder",
    "HeaderDecoder",
    "load_decoder",
    "MapRecord",
    "ReplayRecord",
    "GbxDecodeError",
    "GbxFormatError",
    "looks_like_gbx",
]
