"""Fleet scheduling optimization: distances, sequencing, scoring and orchestration."""

from .models import (
    FleetOptimizationResult,
    OptimizationChange,
    OptimizationInput,
    ProjectLocation,
    VesselAssignment,
    VesselPosition,
    VesselSchedule,
    VesselType,
)
from .geo import distance_nm, fuel_liters, haversine_nm, transit_hours
from .schedule import analyze_vessel_schedule, calculate_average_utilization
from .sequencer import SequenceOptimizer, SequenceResult, optimize_sequence
from .scoring import AssignmentScorer, VesselScore, rank_vessels_for_project, score_vessel_for_project
from .conflicts import detect_schedule_conflicts
from .fleet_optimizer import FleetOptimizer, optimize_fleet

__all__ = [
    "FleetOptimizationResult",
    "OptimizationChange",
    "OptimizationInput",
    "ProjectLocation",
    "VesselAssignment",
    "VesselPosition",
    "VesselSchedule",
    "VesselType",
    "distance_nm",
    "fuel_liters",
    "haversine_nm",
    "transit_hours",
    "analyze_vessel_schedule",
    "calculate_average_utilization",
    "SequenceOptimizer",
    "SequenceResult",
    "optimize_sequence",
    "AssignmentScorer",
    "VesselScore",
    "rank_vessels_for_project",
    "score_vessel_for_project",
    "detect_schedule_conflicts",
    "FleetOptimizer",
    "optimize_fleet",
]
