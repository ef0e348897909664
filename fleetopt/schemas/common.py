"""Common shared schemas used across the snapshot models."""

from pydantic import BaseModel, ConfigDict, Field


class SnapshotModel(BaseModel):
    """Base for snapshot records: accepts snake_case or the collaborators' camelCase keys."""
    model_config = ConfigDict(populate_by_name=True)


class Position(SnapshotModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
