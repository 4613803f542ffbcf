"""Export snapshot of a loaded dashboard view as a downloadable JSON file."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

EXPORT_VERSION = "1.0"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExportSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    view: str
    time_range: str = Field(serialization_alias="timeRange")
    data: Any
    exported_at: datetime = Field(default_factory=utcnow, serialization_alias="exportedAt")
    version: str = EXPORT_VERSION

    def to_json(self) -> bytes:
        """UTF-8 JSON body as offered for download."""
        return self.model_dump_json(by_alias=True, indent=2).encode("utf-8")


def build_export(view: str, time_range: str, data: Any) -> ExportSnapshot:
    return ExportSnapshot(view=str(view), time_range=str(time_range), data=data)


def export_filename(snapshot: ExportSnapshot) -> str:
    """``analytics-<view>-<timeRange>-<YYYY-MM-DD>.json``"""
    day = snapshot.exported_at.date().isoformat()
    return f"analytics-{snapshot.view}-{snapshot.time_range}-{day}.json"
