"""Per-map validation report schema."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Validated(str, Enum):
    """Confidence that the author time is genuine."""
    YES = "Yes"
    MAYBE = "Maybe"
    UNKNOWN = "Unknown"


class ReportType(str, Enum):
    """Evidence source that decided the classification."""
    NORMAL = "normal"
    PLUGIN = "plugin"
    VALIDATION_GHOST = "validationghost"
    GPS = "gps"
    REPLAY = "replay"
    MANUAL = "manual"


class Report(BaseModel):
    """
    Outcome of classifying one map file.

    ``validated`` and ``type`` are set together; a report carrying only
    ``error`` means the file could not be read as a map at all.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    uid: Optional[str] = None
    validated: Optional[Validated] = None
    type: Optional[ReportType] = None
    note: Optional[str] = None
    path: Optional[str] = None
    map_name: Optional[str] = None
    replay_path: Optional[str] = None
    error: Optional[str] = None

    def classify(self, validated: Validated, report_type: ReportType, note: Optional[str] = None) -> "Report":
        self.validated = validated
        self.type = report_type
        self.note = note
        return self

    def to_json_dict(self) -> Dict[str, Any]:
        """camelCase JSON payload with unset fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
