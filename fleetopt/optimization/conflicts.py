"""
Schedule conflict detection.

Flags vessels booked on two assignments whose intervals overlap. Conflicts
are reported alongside optimization results, never raised.
"""

import logging
from collections import defaultdict
from itertools import combinations
from typing import Dict, List, Sequence

from fleetopt.optimization.models import (
    ProjectLocation,
    ProjectPriority,
    ScheduleConflict,
    VesselAssignment,
)

logger = logging.getLogger(__name__)


def detect_schedule_conflicts(
    assignments: Sequence[VesselAssignment],
    projects: Sequence[ProjectLocation] = (),
) -> List[ScheduleConflict]:
    """
    Find double bookings: same vessel, overlapping intervals.

    Severity is ``critical`` when either project is critical priority,
    otherwise ``warning``. Intervals touching at an endpoint overlap
    (windows are inclusive, as in suitability scoring).
    """
    priorities: Dict[str, ProjectPriority] = {p.id: p.priority for p in projects}
    names: Dict[str, str] = {p.id: p.name for p in projects}

    by_vessel: Dict[str, List[VesselAssignment]] = defaultdict(list)
    for assignment in assignments:
        by_vessel[assignment.vessel_id].append(assignment)

    conflicts: List[ScheduleConflict] = []
    for vessel_id, booked in by_vessel.items():
        booked = sorted(booked, key=lambda a: a.start_date)
        for first, second in combinations(booked, 2):
            if first.start_date > second.end_date or second.start_date > first.end_date:
                continue

            critical = ProjectPriority.CRITICAL in (
                priorities.get(first.project_id), priorities.get(second.project_id)
            )
            vessel_label = first.vessel_name or vessel_id
            first_name = names.get(first.project_id, first.project_name or first.project_id)
            second_name = names.get(second.project_id, second.project_name or second.project_id)

            conflicts.append(ScheduleConflict(
                id=f"conflict-{vessel_id}-{first.id}-{second.id}",
                type="vessel_double_booking",
                severity="critical" if critical else "warning",
                affected_vessels=[vessel_id],
                affected_projects=[first.project_id, second.project_id],
                description=(
                    f"{vessel_label} is booked on {first_name} and {second_name} "
                    f"over overlapping periods"
                ),
                suggested_resolution=(
                    f"Move {second_name} to another suitable vessel or shift it "
                    f"after {first.end_date.date().isoformat()}"
                ),
            ))

    if conflicts:
        logger.info(f"Detected {len(conflicts)} schedule conflicts")
    return conflicts
