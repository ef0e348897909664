"""
Vessel-to-project suitability scoring.

Additive rubric on a 0-100 scale (base 50) with a human-readable reason
for every term, so each reassignment can be audited.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from fleetopt.optimization.geo import haversine_nm
from fleetopt.optimization.models import ProjectLocation, VesselAssignment, VesselPosition

logger = logging.getLogger(__name__)


@dataclass
class VesselScore:
    """Suitability of one vessel for one project."""
    vessel: VesselPosition
    score: float
    reasons: List[str] = field(default_factory=list)
    distance_nm: float = 0.0


class AssignmentScorer:
    """
    Scores how suitable a vessel is for a project.

    Terms are applied in order (type, proximity, availability) and the
    total is clamped to [0, 100].
    """

    BASE_SCORE = 50.0
    MIN_SCORE = 0.0
    MAX_SCORE = 100.0

    TYPE_MATCH_BONUS = 30.0
    TYPE_MISMATCH_PENALTY = -40.0

    # (upper bound nm, points) checked in order; beyond FAR_NM is penalised
    NEARBY_NM = 20.0
    NEARBY_BONUS = 20.0
    MODERATE_NM = 50.0
    MODERATE_BONUS = 10.0
    FAR_NM = 150.0
    FAR_PENALTY = -15.0

    CONFLICT_PENALTY = -50.0
    AVAILABLE_BONUS = 10.0

    def score(
        self,
        vessel: VesselPosition,
        project: ProjectLocation,
        existing_assignments: Iterable[VesselAssignment],
    ) -> VesselScore:
        """
        Score *vessel* for *project* against the existing bookings.

        Args:
            vessel: Candidate vessel
            project: Project to staff
            existing_assignments: Bookings checked for overlap with the
                project window, bookings of this project included

        Returns:
            VesselScore with clamped score and ordered reasons
        """
        score = self.BASE_SCORE
        reasons: List[str] = []

        # Type match (highest weight)
        if vessel.type in project.required_vessel_types:
            score += self.TYPE_MATCH_BONUS
            reasons.append(f"Type match: {vessel.type}")
        else:
            needs = "/".join(sorted(project.required_vessel_types)) or "none"
            score += self.TYPE_MISMATCH_PENALTY
            reasons.append(f"Type mismatch: needs {needs}, has {vessel.type}")

        # Proximity
        distance = haversine_nm(vessel.lat, vessel.lng, project.lat, project.lng)
        if distance < self.NEARBY_NM:
            score += self.NEARBY_BONUS
            reasons.append(f"Nearby: {distance:.0f}nm transit")
        elif distance < self.MODERATE_NM:
            score += self.MODERATE_BONUS
            reasons.append(f"Moderate distance: {distance:.0f}nm transit")
        elif distance > self.FAR_NM:
            score += self.FAR_PENALTY
            reasons.append(f"Far: {distance:.0f}nm transit")

        # Availability
        if has_schedule_conflict(vessel.id, project, existing_assignments):
            score += self.CONFLICT_PENALTY
            reasons.append("Schedule conflict exists")
        else:
            score += self.AVAILABLE_BONUS
            reasons.append("Available during project period")

        return VesselScore(
            vessel=vessel,
            score=max(self.MIN_SCORE, min(self.MAX_SCORE, score)),
            reasons=reasons,
            distance_nm=distance,
        )

    def rank(
        self,
        vessels: Sequence[VesselPosition],
        project: ProjectLocation,
        existing_assignments: Sequence[VesselAssignment],
    ) -> List[VesselScore]:
        """All vessels scored for *project*, best first (roster order on ties)."""
        scores = [self.score(v, project, existing_assignments) for v in vessels]
        return sorted(scores, key=lambda s: s.score, reverse=True)


def has_schedule_conflict(
    vessel_id: str,
    project: ProjectLocation,
    existing_assignments: Iterable[VesselAssignment],
) -> bool:
    """True if the vessel has any booking overlapping the project window (inclusive)."""
    return any(
        a.vessel_id == vessel_id
        and a.start_date <= project.end_date
        and a.end_date >= project.start_date
        for a in existing_assignments
    )


_default_scorer = AssignmentScorer()


def score_vessel_for_project(
    vessel: VesselPosition,
    project: ProjectLocation,
    existing_assignments: Iterable[VesselAssignment],
) -> VesselScore:
    """Score one vessel with the default rubric."""
    return _default_scorer.score(vessel, project, existing_assignments)


def rank_vessels_for_project(
    vessels: Sequence[VesselPosition],
    project: ProjectLocation,
    existing_assignments: Sequence[VesselAssignment],
) -> List[VesselScore]:
    """Rank every vessel for *project* with the default rubric."""
    return _default_scorer.rank(vessels, project, existing_assignments)
