"""Decoded GBX record schema using Pydantic.

Structure mirrors what a decoder hands to the validation layer:
- MapRecord: identity, author time, validation ghost, script metadata, in-game clips
- ReplayRecord: map identity candidates and ghosts (top-level and clip-embedded)
- Clip graph: ClipGroup → ClipTrigger → Clip → Track → MediaBlock → RecordData → EntityRecord → Sample

Duration fields are typed ``Any`` on purpose: decoders report times as plain
milliseconds, timedeltas, wrapper objects or formatted strings, and
``mapcheck.validation.time_normalizer`` is responsible for reading them.
Nodes may reference each other cyclically (assign after construction).
"""

from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Node(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)


class Ghost(_Node):
    """A recorded run: the race time plus the map it was driven on."""
    race_time: Any = None
    nickname: Optional[str] = None
    login: Optional[str] = None
    validate_challenge_uid: Optional[str] = None  # Map uid stamped at validation


class Sample(_Node):
    """Single time-stamped sample of an entity record."""
    time: Any = None


class EntityRecord(_Node):
    """One recorded entity (usually a car) inside a GPS record block."""
    finish_time: int = 0  # Raw end-of-run marker, 0 when unset
    samples: List[Sample] = Field(default_factory=list)


class RecordData(_Node):
    entities: List[EntityRecord] = Field(default_factory=list)


class MediaBlock(_Node):
    """Base media block; decoders emit subclasses for the kinds they understand."""
    start: Any = None
    end: Any = None


class MediaBlockGhost(MediaBlock):
    """Ghost playback block (the classic GPS form)."""
    ghost_model: Optional[Ghost] = None


class MediaBlockEntity(MediaBlock):
    """Entity playback block carrying raw record data (newer GPS form)."""
    record_data: Optional[RecordData] = None


class Track(_Node):
    name: Optional[str] = None
    blocks: List[MediaBlock] = Field(default_factory=list)


class Clip(_Node):
    name: Optional[str] = None
    tracks: List[Track] = Field(default_factory=list)


class ClipTrigger(_Node):
    """Clip bound to an in-game trigger zone."""
    clip: Optional[Clip] = None


class ClipGroup(_Node):
    clips: List[ClipTrigger] = Field(default_factory=list)


class ScriptMetadata(_Node):
    """Script traits keyed by name (e.g. ``Race_AuthorRaceWaypointTimes``)."""
    traits: Dict[str, Any] = Field(default_factory=dict)


class MapRecord(_Node):
    """
    Decoded map (challenge) record.

    Only ``uid``, ``name``, ``author_time`` and ``checkpoint_count`` are
    available from the container header; the remaining fields require a
    body-level decoder and stay empty otherwise.
    """
    uid: Optional[str] = None
    name: Optional[str] = None
    author_login: Optional[str] = None
    author_time: Any = None
    checkpoint_count: int = 0
    validation_ghost: Optional[Ghost] = None
    script_metadata: Optional[ScriptMetadata] = None
    clip_group_in_game: Optional[ClipGroup] = None


class ReplayRecord(_Node):
    """
    Decoded replay record.

    The map identity can come from three places; ``resolve_map_uid`` picks
    the first non-empty one.
    """
    map_uid: Optional[str] = None  # Embedded map-info identifier
    challenge: Optional[MapRecord] = None  # Embedded map, when the replay carries it
    ghosts: List[Ghost] = Field(default_factory=list)
    clip: Optional[Clip] = None

    def resolve_map_uid(self) -> Optional[str]:
        candidates = [
            self.map_uid,
            self.challenge.uid if self.challenge is not None else None,
            self.ghosts[0].validate_challenge_uid if self.ghosts else None,
        ]
        for candidate in candidates:
            if candidate and candidate.strip():
                return candidate
        return None

    def iter_ghosts(self, also_in_clips: bool = True) -> Iterator[Ghost]:
        """Yield top-level ghosts, then ghosts referenced by clip ghost blocks."""
        yield from self.ghosts
        if not also_in_clips or self.clip is None:
            return
        for track in self.clip.tracks:
            for block in track.blocks:
                if isinstance(block, MediaBlockGhost) and block.ghost_model is not None:
                    yield block.ghost_model
