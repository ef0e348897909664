"""
Per-vessel schedule analysis.

Turns a vessel's assignment list into ordered route segments with
transit distance, hours, fuel and idle time, and rolls schedules up into
fleet-level metrics.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from fleetopt.optimization.geo import fuel_liters, haversine_nm, transit_hours
from fleetopt.optimization.models import (
    DEFAULT_SPEED_KTS,
    FleetMetrics,
    RoutePoint,
    RouteSegment,
    ScheduledAssignment,
    VesselPosition,
    VesselSchedule,
    ensure_utc,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86_400.0

# Legs at or below this length are treated as GPS / float noise
MIN_SEGMENT_NM = 1.0


def analyze_vessel_schedule(
    vessel: VesselPosition,
    assignments: Sequence[ScheduledAssignment],
    min_segment_nm: float = MIN_SEGMENT_NM,
    default_speed_kts: float = DEFAULT_SPEED_KTS,
) -> VesselSchedule:
    """
    Analyze a vessel's schedule and calculate transit requirements.

    Assignments are visited in start-date order: first from the vessel's
    current position, then project to project. Legs of *min_segment_nm*
    or less are not recorded. Idle days accumulate from gaps between the
    end of one assignment and the start of the next.

    Args:
        vessel: Vessel with current position, type and speed
        assignments: Joined assignments (not mutated)
        min_segment_nm: Legs must be strictly longer than this to count
        default_speed_kts: Speed used when the vessel reports none

    Returns:
        VesselSchedule with routes and totals
    """
    ordered = sorted(assignments, key=lambda a: a.start_date)
    speed = vessel.transit_speed(default_speed_kts)

    routes: List[RouteSegment] = []
    idle_days = 0.0

    def add_leg(origin: RoutePoint, stop: ScheduledAssignment):
        dist = haversine_nm(origin.lat, origin.lng, stop.lat, stop.lng)
        if dist <= min_segment_nm:
            return
        routes.append(RouteSegment(
            from_point=origin,
            to_point=RoutePoint(stop.project_name, stop.lat, stop.lng),
            distance_nm=dist,
            estimated_hours=transit_hours(dist, speed),
            fuel_liters=fuel_liters(dist, vessel.type),
        ))

    if ordered:
        add_leg(RoutePoint(f"{vessel.name} (current)", vessel.lat, vessel.lng), ordered[0])

    for current, nxt in zip(ordered, ordered[1:]):
        gap_days = (nxt.start_date - current.end_date).total_seconds() / SECONDS_PER_DAY
        if gap_days > 0:
            idle_days += gap_days
        add_leg(RoutePoint(current.project_name, current.lat, current.lng), nxt)

    return VesselSchedule(
        vessel_id=vessel.id,
        vessel_name=vessel.name,
        vessel_type=vessel.type,
        assignments=ordered,
        routes=routes,
        total_transit_distance_nm=sum(r.distance_nm for r in routes),
        total_transit_hours=sum(r.estimated_hours for r in routes),
        total_fuel_liters=sum(r.fuel_liters for r in routes),
        idle_days=idle_days,
    )


def calculate_average_utilization(
    schedules: Sequence[VesselSchedule],
    now: Optional[datetime] = None,
    window_days: int = 30,
) -> float:
    """
    Percentage of fleet vessel-days in the look-ahead window that are booked.

    Each assignment contributes the days it overlaps [now, now + window];
    the fleet total is divided by ``len(schedules) * window_days``.
    """
    if not schedules:
        return 0.0

    window_start = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
    window_end = window_start + timedelta(days=window_days)

    assigned_days = 0.0
    for schedule in schedules:
        for assignment in schedule.assignments:
            start = max(assignment.start_date, window_start)
            end = min(assignment.end_date, window_end)
            if end > start:
                assigned_days += (end - start).total_seconds() / SECONDS_PER_DAY

    return assigned_days / (len(schedules) * window_days) * 100


def summarize_fleet(
    schedules: Sequence[VesselSchedule],
    now: Optional[datetime] = None,
    window_days: int = 30,
) -> FleetMetrics:
    """Sum per-vessel totals into fleet metrics."""
    return FleetMetrics(
        total_fleet_distance_nm=sum(s.total_transit_distance_nm for s in schedules),
        total_fleet_fuel_liters=sum(s.total_fuel_liters for s in schedules),
        total_fleet_transit_hours=sum(s.total_transit_hours for s in schedules),
        total_idle_days=sum(s.idle_days for s in schedules),
        average_utilization=calculate_average_utilization(schedules, now, window_days),
    )
