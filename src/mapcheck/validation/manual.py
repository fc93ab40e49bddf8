"""Manual override table loading."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManualEntry:
    valid: bool = True
    note: Optional[str] = None


EMPTY_OVERRIDES: Mapping[str, ManualEntry] = MappingProxyType({})


def load_manual_overrides(path: Union[str, Path]) -> Mapping[str, ManualEntry]:
    """Load overrides from a JSON file (one object or a list of objects)."""
    text = Path(path).read_text(encoding="utf-8-sig")
    overrides = parse_manual_overrides(text)
    logger.info("Loaded %s manual override(s) from %s", len(overrides), path)
    return overrides


def parse_manual_overrides(text: str) -> Mapping[str, ManualEntry]:
    """Parse override JSON, keyed by map uid; later entries replace earlier ones.

    Python-style ``True``/``False`` spellings are accepted.
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError:
        document = json.loads(text.replace("True", "true").replace("False", "false"))

    entries: Dict[str, ManualEntry] = {}
    if isinstance(document, dict):
        _add_entry(entries, document)
    elif isinstance(document, list):
        for element in document:
            _add_entry(entries, element)
    return MappingProxyType(entries)


def _add_entry(entries: Dict[str, ManualEntry], element: Any) -> None:
    if not isinstance(element, dict):
        return

    uid = element.get("uid")
    if not isinstance(uid, str) or not uid.strip():
        return

    valid = element.get("valid") is not False
    note = element.get("note")
    entries[uid] = ManualEntry(valid=valid, note=note if isinstance(note, str) else None)
