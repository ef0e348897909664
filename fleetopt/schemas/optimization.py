"""Fleet optimization input snapshot schemas."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from fleetopt.config import get_settings
from fleetopt.optimization.models import (
    OptimizationInput,
    ProjectLocation,
    VesselAssignment,
    VesselPosition,
    ensure_utc,
)

from .common import Position, SnapshotModel


class VesselModel(Position):
    """Vessel position as reported by the tracking subsystem."""
    id: str = Field(..., min_length=1)
    name: str
    type: str = Field(..., min_length=1, description="Vessel type, e.g. 'tugboat'")
    speed: Optional[float] = Field(None, gt=0, lt=60, description="Transit speed in knots")

    def to_domain(self) -> VesselPosition:
        speed = self.speed if self.speed is not None else get_settings().default_speed_kts
        return VesselPosition(
            id=self.id, name=self.name, type=self.type, lat=self.lat, lng=self.lng, speed_kts=speed,
        )


class ProjectModel(Position):
    """Project site from the scheduling subsystem."""
    id: str = Field(..., min_length=1)
    name: str
    required_vessel_types: List[str] = Field(default_factory=list, alias="requiredVesselTypes")
    priority: Literal["critical", "high", "medium", "low"] = "medium"
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")

    @field_validator("start_date", "end_date")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_window(self) -> "ProjectModel":
        if self.end_date < self.start_date:
            raise ValueError(f"Project {self.id} ends before it starts")
        return self

    def to_domain(self) -> ProjectLocation:
        return ProjectLocation(
            id=self.id,
            name=self.name,
            lat=self.lat,
            lng=self.lng,
            required_vessel_types=frozenset(self.required_vessel_types),
            start_date=self.start_date,
            end_date=self.end_date,
            priority=self.priority,
        )


class AssignmentModel(SnapshotModel):
    """Vessel-to-project booking from the assignment store."""
    id: str = Field(..., min_length=1)
    vessel_id: str = Field(..., alias="vesselId")
    vessel_name: Optional[str] = Field(None, alias="vesselName")
    project_id: str = Field(..., alias="projectId")
    project_name: Optional[str] = Field(None, alias="projectName")
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")
    status: Literal["scheduled", "active", "completed", "cancelled"] = "scheduled"
    utilization: Optional[float] = Field(None, ge=0, le=100)

    @field_validator("start_date", "end_date")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_interval(self) -> "AssignmentModel":
        if self.end_date < self.start_date:
            raise ValueError(f"Assignment {self.id} ends before it starts")
        return self

    def to_domain(self) -> VesselAssignment:
        return VesselAssignment(
            id=self.id,
            vessel_id=self.vessel_id,
            project_id=self.project_id,
            start_date=self.start_date,
            end_date=self.end_date,
            vessel_name=self.vessel_name,
            project_name=self.project_name,
            status=self.status,
            utilization=self.utilization,
        )


class OptimizationRequest(SnapshotModel):
    """Complete read-only snapshot handed to the optimizer.

    Referential integrity is not checked here: assignments naming unknown
    vessels or projects pass through and are reported by the optimizer.
    """
    vessels: List[VesselModel] = Field(default_factory=list, max_length=5000)
    projects: List[ProjectModel] = Field(default_factory=list, max_length=5000)
    current_assignments: List[AssignmentModel] = Field(
        default_factory=list, alias="currentAssignments", max_length=50_000
    )

    @field_validator("vessels")
    @classmethod
    def unique_vessel_ids(cls, v: List[VesselModel]) -> List[VesselModel]:
        seen = set()
        for vessel in v:
            if vessel.id in seen:
                raise ValueError(f"Duplicate vessel id '{vessel.id}'")
            seen.add(vessel.id)
        return v

    def to_input(self) -> OptimizationInput:
        return OptimizationInput(
            vessels=[v.to_domain() for v in self.vessels],
            projects=[p.to_domain() for p in self.projects],
            current_assignments=[a.to_domain() for a in self.current_assignments],
        )
