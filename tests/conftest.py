"""
Shared pytest fixtures for FleetOpt tests.

All dates are expressed as day offsets from a fixed reference time so
utilization and idle-time figures are reproducible.
"""

from datetime import datetime, timedelta, timezone

import pytest

from fleetopt.config import Settings
from fleetopt.optimization.models import (
    ProjectLocation,
    ScheduledAssignment,
    VesselAssignment,
    VesselPosition,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def day(offset: float) -> datetime:
    """Reference time plus *offset* days."""
    return NOW + timedelta(days=offset)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings():
    """Default settings independent of the caller's environment."""
    return Settings(
        fuel_cost_usd_per_liter=0.85,
        default_speed_kts=10.0,
        min_segment_nm=1.0,
        utilization_window_days=30,
        resequence_min_saving_nm=5.0,
        reassign_min_score_gap=20.0,
        reassign_min_distance_gain_nm=10.0,
        two_opt_max_iterations=10_000,
        optimization_timeout_s=None,
    )


@pytest.fixture
def make_vessel():
    def _make(vessel_id, lat, lng, vessel_type="tugboat", speed_kts=10.0, name=None):
        return VesselPosition(
            id=vessel_id,
            name=name or vessel_id,
            type=vessel_type,
            lat=lat,
            lng=lng,
            speed_kts=speed_kts,
        )
    return _make


@pytest.fixture
def make_project():
    def _make(project_id, lat, lng, types=("tugboat",), start=0, end=10,
              priority="medium", name=None):
        return ProjectLocation(
            id=project_id,
            name=name or project_id,
            lat=lat,
            lng=lng,
            required_vessel_types=frozenset(types),
            start_date=day(start),
            end_date=day(end),
            priority=priority,
        )
    return _make


@pytest.fixture
def make_assignment():
    def _make(assignment_id, vessel_id, project_id, start=0, end=10):
        return VesselAssignment(
            id=assignment_id,
            vessel_id=vessel_id,
            project_id=project_id,
            start_date=day(start),
            end_date=day(end),
        )
    return _make


@pytest.fixture
def make_stop():
    """Joined working-list entry at a location for a day range."""
    def _make(name, lat, lng, start=0, end=1):
        return ScheduledAssignment(
            project_id=name,
            project_name=name,
            lat=lat,
            lng=lng,
            start_date=day(start),
            end_date=day(end),
            assignment_id=f"a-{name}",
        )
    return _make
