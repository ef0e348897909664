"""
Fleet scheduling data model.

Input roster types (vessels, projects, assignments) are supplied by the
caller as a read-only snapshot. Everything else here is derived on each
optimization call and discarded afterwards.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from fleetopt.optimization.geo import fuel_rate_for_type

DEFAULT_SPEED_KTS = 10.0


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC so all comparisons are well defined."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class VesselType(str, Enum):
    """Vessel categories with a known fuel consumption rate."""
    TUGBOAT = "tugboat"
    SUPPLY_VESSEL = "supply_vessel"
    CRANE_BARGE = "crane_barge"
    DREDGER = "dredger"
    SURVEY_VESSEL = "survey_vessel"
    BARGE = "barge"


class ProjectPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ChangeType(str, Enum):
    """Kinds of schedule change the optimizer can propose."""
    RESEQUENCE = "resequence"
    REASSIGN = "reassign"
    SWAP = "swap"
    CONSOLIDATE = "consolidate"


# -------------------------------------------------------------------
# Input roster
# -------------------------------------------------------------------

@dataclass
class VesselPosition:
    """Current vessel position and type.

    ``type`` is a plain string: fleets carry vessel types outside
    ``VesselType`` (e.g. ``pipelay_barge``) and those fall back to the
    default fuel rate.
    """
    id: str
    name: str
    type: str
    lat: float
    lng: float
    speed_kts: Optional[float] = None  # None -> DEFAULT_SPEED_KTS

    def __post_init__(self):
        if isinstance(self.type, Enum):
            self.type = self.type.value

    def transit_speed(self, default_kts: float = DEFAULT_SPEED_KTS) -> float:
        """Speed used for transit estimates; ``default_kts`` only when unset."""
        return default_kts if self.speed_kts is None else self.speed_kts

    @property
    def fuel_rate(self) -> float:
        """Fuel burn in liters per nautical mile, implied by type."""
        return fuel_rate_for_type(self.type)


@dataclass
class ProjectLocation:
    """Project site with its required vessel types and time window."""
    id: str
    name: str
    lat: float
    lng: float
    required_vessel_types: FrozenSet[str]
    start_date: datetime
    end_date: datetime
    priority: ProjectPriority = ProjectPriority.MEDIUM

    def __post_init__(self):
        self.required_vessel_types = frozenset(
            t.value if isinstance(t, Enum) else t for t in self.required_vessel_types
        )
        self.priority = ProjectPriority(self.priority)
        self.start_date = ensure_utc(self.start_date)
        self.end_date = ensure_utc(self.end_date)


@dataclass
class VesselAssignment:
    """Links a vessel to a project for an interval."""
    id: str
    vessel_id: str
    project_id: str
    start_date: datetime
    end_date: datetime
    vessel_name: Optional[str] = None
    project_name: Optional[str] = None
    status: str = "scheduled"
    utilization: Optional[float] = None

    def __post_init__(self):
        self.start_date = ensure_utc(self.start_date)
        self.end_date = ensure_utc(self.end_date)


@dataclass
class OptimizationInput:
    """Read-only snapshot consumed by the optimizer."""
    vessels: List[VesselPosition]
    projects: List[ProjectLocation]
    current_assignments: List[VesselAssignment]


# -------------------------------------------------------------------
# Derived per run
# -------------------------------------------------------------------

@dataclass
class ScheduledAssignment:
    """An assignment joined with its project's location (working-list entry)."""
    project_id: str
    project_name: str
    lat: float
    lng: float
    start_date: datetime
    end_date: datetime
    assignment_id: Optional[str] = None


@dataclass
class RoutePoint:
    name: str
    lat: float
    lng: float


@dataclass
class RouteSegment:
    """One transit leg of a vessel schedule."""
    from_point: RoutePoint
    to_point: RoutePoint
    distance_nm: float
    estimated_hours: float
    fuel_liters: float


@dataclass
class VesselSchedule:
    """Ordered assignments of one vessel with transit totals.

    Assignment dates are the vessel's booked time slots. After a resequence
    a project may occupy a slot outside its own project window.
    """
    vessel_id: str
    vessel_name: str
    vessel_type: str
    assignments: List[ScheduledAssignment]
    routes: List[RouteSegment]
    total_transit_distance_nm: float = 0.0
    total_transit_hours: float = 0.0
    total_fuel_liters: float = 0.0
    idle_days: float = 0.0


@dataclass
class FleetMetrics:
    total_fleet_distance_nm: float
    total_fleet_fuel_liters: float
    total_fleet_transit_hours: float
    total_idle_days: float
    average_utilization: float


@dataclass
class ChangeImpact:
    distance_saved_nm: float
    fuel_saved_liters: float
    time_saved_hours: float
    cost_saved_usd: float


@dataclass
class SequenceSummary:
    """Visiting order of one vessel, before or after a change."""
    vessel: str
    sequence: List[str]
    total_distance_nm: float


@dataclass
class OptimizationChange:
    """One proposed schedule change with its reasoning and benefit."""
    type: ChangeType
    description: str
    reasoning: str
    impact: ChangeImpact
    affected_vessels: List[str]
    before: List[SequenceSummary]
    after: List[SequenceSummary]


@dataclass
class ScheduleConflict:
    id: str
    type: str  # "vessel_double_booking"
    severity: str  # "critical", "warning", "info"
    affected_vessels: List[str]
    affected_projects: List[str]
    description: str
    suggested_resolution: str


@dataclass
class SkippedAssignment:
    """An assignment dropped by the lenient join."""
    assignment_id: str
    vessel_id: str
    project_id: str
    reason: str  # "unknown_vessel" or "unknown_project"


@dataclass
class OptimizationSummary:
    total_distance_saved_nm: float
    total_fuel_saved_liters: float
    total_time_saved_hours: float
    total_cost_saved_usd: float
    utilization_gain_percent: float


@dataclass
class FleetOptimizationResult:
    """Complete before/after comparison of one optimization run."""
    id: str
    timestamp: datetime

    # Original state
    original_schedules: List[VesselSchedule]
    original_metrics: FleetMetrics

    # Optimized state
    optimized_schedules: List[VesselSchedule]
    optimized_metrics: FleetMetrics

    changes: List[OptimizationChange]
    summary: OptimizationSummary
    confidence: float
    warnings: List[str]

    # Audit
    conflicts: List[ScheduleConflict] = field(default_factory=list)
    skipped: List[SkippedAssignment] = field(default_factory=list)
    computation_time_ms: float = 0.0

    def to_dict(self) -> Dict:
        """Plain-dict form with ISO timestamps and enum values."""
        return _jsonable(asdict(self))


def _jsonable(value):
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value
