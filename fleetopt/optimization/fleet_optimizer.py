"""
Fleet-wide schedule optimization.

Combines schedule analysis, sequencing and suitability scoring into a
single explainable run:

0. Baseline: join assignments to projects and analyze every vessel.
1. Resequence: reorder each vessel's visits (nearest-neighbour + 2-opt).
2. Reassign: move a project to a clearly better-suited, closer vessel.
3. Recompute schedules on the updated working lists.
4. Summarize savings, then score confidence and collect warnings.

Phases 1 and 2 run once each; there is no fixed-point iteration, so a
vessel that gains a project in phase 2 is not resequenced again.
"""

import logging
import time
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Set, Tuple

from fleetopt.config import Settings, get_settings
from fleetopt.metrics import metrics, timed
from fleetopt.optimization.conflicts import detect_schedule_conflicts
from fleetopt.optimization.geo import fuel_liters, transit_hours
from fleetopt.optimization.models import (
    ChangeImpact,
    ChangeType,
    FleetMetrics,
    FleetOptimizationResult,
    OptimizationChange,
    OptimizationInput,
    OptimizationSummary,
    ProjectLocation,
    ScheduledAssignment,
    SequenceSummary,
    SkippedAssignment,
    VesselPosition,
    VesselSchedule,
    ensure_utc,
)
from fleetopt.optimization.schedule import analyze_vessel_schedule, summarize_fleet
from fleetopt.optimization.scoring import AssignmentScorer
from fleetopt.optimization.sequencer import SequenceOptimizer

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 70.0
MAX_CONFIDENCE = 95.0

NEAR_OPTIMAL_WARNING = "Current schedule is already near-optimal. No significant improvements found."
MINIMAL_SAVINGS_WARNING = "Savings are minimal. Schedule may already be well-optimized."
MINIMAL_SAVINGS_NM = 10.0
RETIMED_WARNING = (
    "Resequenced vessels keep their booked time slots; optimized assignment dates "
    "are vessel slots and may fall outside a project's own window."
)

WorkingLists = Dict[str, List[ScheduledAssignment]]


def calculate_confidence(change_count: int, distance_saved_nm: float, cost_saved_usd: float) -> float:
    """
    Confidence in the proposed schedule, 70-95.

    More changes and larger savings both raise confidence.
    """
    confidence = BASE_CONFIDENCE

    if change_count >= 3:
        confidence += 10
    elif change_count >= 1:
        confidence += 5

    if distance_saved_nm > 100:
        confidence += 10
    elif distance_saved_nm > 50:
        confidence += 5

    if cost_saved_usd > 5000:
        confidence += 5

    return max(BASE_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


class FleetOptimizer:
    """
    Orchestrates per-vessel resequencing and cross-vessel reassignment.

    Holds only configuration; every call to ``optimize`` builds its own
    working state, so one instance can serve concurrent callers.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        scorer: Optional[AssignmentScorer] = None,
    ):
        self.settings = settings or get_settings()
        self.scorer = scorer or AssignmentScorer()
        self.sequencer = SequenceOptimizer(max_iterations=self.settings.two_opt_max_iterations)

    @timed("fleet_optimization")
    def optimize(
        self,
        data: OptimizationInput,
        now: Optional[datetime] = None,
        timeout_s: Optional[float] = None,
    ) -> FleetOptimizationResult:
        """
        Optimize the fleet schedule described by *data*.

        Args:
            data: Vessel, project and assignment snapshot (not mutated)
            now: Reference time for the utilization window (default: UTC now)
            timeout_s: Wall-clock budget for sequencing; falls back to
                ``settings.optimization_timeout_s`` (None = unbounded)

        Returns:
            FleetOptimizationResult. "Nothing to improve" is reported via
            empty ``changes`` and ``warnings``, never raised.
        """
        started = time.perf_counter()
        now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
        timeout = timeout_s if timeout_s is not None else self.settings.optimization_timeout_s
        deadline = time.monotonic() + timeout if timeout is not None else None

        vessels_by_id = _index_first(data.vessels)
        projects_by_id = _index_first(data.projects)

        # Phase 0: baseline
        working, skipped = self._join(data, vessels_by_id, projects_by_id)
        original_schedules = [self._analyze(v, working[v.id]) for v in data.vessels]
        original_metrics = self._summarize(original_schedules, now)

        changes: List[OptimizationChange] = []

        # Phase 1: resequence each vessel's own visits
        stopped_early = False
        retimed = False
        for vessel in data.vessels:
            change, converged, moved = self._resequence(vessel, working, deadline)
            stopped_early = stopped_early or not converged
            retimed = retimed or moved
            if change is not None:
                changes.append(change)

        # Phase 2: move projects to better-suited vessels
        reassigned: Set[str] = set()
        for project in data.projects:
            if project.id in reassigned:
                continue
            change = self._reassign(project, data, vessels_by_id, working)
            if change is not None:
                reassigned.add(project.id)
                changes.append(change)

        # Phase 3: recompute
        optimized_schedules = [self._analyze(v, working[v.id]) for v in data.vessels]
        optimized_metrics = self._summarize(optimized_schedules, now)

        # Phase 4: summary
        fuel_saved = original_metrics.total_fleet_fuel_liters - optimized_metrics.total_fleet_fuel_liters
        summary = OptimizationSummary(
            total_distance_saved_nm=(
                original_metrics.total_fleet_distance_nm - optimized_metrics.total_fleet_distance_nm
            ),
            total_fuel_saved_liters=fuel_saved,
            total_time_saved_hours=(
                original_metrics.total_fleet_transit_hours - optimized_metrics.total_fleet_transit_hours
            ),
            total_cost_saved_usd=fuel_saved * self.settings.fuel_cost_usd_per_liter,
            utilization_gain_percent=(
                optimized_metrics.average_utilization - original_metrics.average_utilization
            ),
        )

        # Phase 5: confidence and warnings
        confidence = calculate_confidence(
            len(changes), summary.total_distance_saved_nm, summary.total_cost_saved_usd
        )
        warnings = self._collect_warnings(changes, summary, skipped, stopped_early, retimed)

        skipped_ids = {s.assignment_id for s in skipped}
        conflicts = detect_schedule_conflicts(
            [a for a in data.current_assignments if a.id not in skipped_ids], data.projects
        )

        computation_time_ms = (time.perf_counter() - started) * 1000

        metrics.increment("fleet_optimizations_processed")
        metrics.increment("changes_emitted", len(changes))
        metrics.increment("assignments_skipped", len(skipped))
        metrics.set_gauge("last_confidence", confidence)
        metrics.set_gauge("last_distance_saved_nm", summary.total_distance_saved_nm)

        logger.info(
            f"Fleet optimization: {len(data.vessels)} vessels, {len(data.projects)} projects, "
            f"{len(data.current_assignments)} assignments -> {len(changes)} changes, "
            f"{summary.total_distance_saved_nm:.1f}nm / ${summary.total_cost_saved_usd:.0f} saved, "
            f"confidence {confidence:.0f} ({computation_time_ms:.1f}ms)"
        )

        return FleetOptimizationResult(
            id=f"opt-{uuid.uuid4().hex[:12]}",
            timestamp=now,
            original_schedules=original_schedules,
            original_metrics=original_metrics,
            optimized_schedules=optimized_schedules,
            optimized_metrics=optimized_metrics,
            changes=changes,
            summary=summary,
            confidence=confidence,
            warnings=warnings,
            conflicts=conflicts,
            skipped=skipped,
            computation_time_ms=computation_time_ms,
        )

    # -------------------------------------------------------------------
    # Phase 0
    # -------------------------------------------------------------------

    def _join(
        self,
        data: OptimizationInput,
        vessels_by_id: Dict[str, VesselPosition],
        projects_by_id: Dict[str, ProjectLocation],
    ) -> Tuple[WorkingLists, List[SkippedAssignment]]:
        """
        Attach project locations to assignments.

        Assignments naming an unknown vessel or project are left out of
        every working list and reported as skipped.
        """
        working: WorkingLists = {v.id: [] for v in data.vessels}
        skipped: List[SkippedAssignment] = []

        for assignment in data.current_assignments:
            project = projects_by_id.get(assignment.project_id)
            if assignment.vessel_id not in vessels_by_id:
                reason = "unknown_vessel"
            elif project is None:
                reason = "unknown_project"
            else:
                working[assignment.vessel_id].append(ScheduledAssignment(
                    project_id=project.id,
                    project_name=project.name,
                    lat=project.lat,
                    lng=project.lng,
                    start_date=assignment.start_date,
                    end_date=assignment.end_date,
                    assignment_id=assignment.id,
                ))
                continue

            logger.warning(
                f"Skipping assignment {assignment.id}: {reason.replace('_', ' ')} "
                f"(vessel={assignment.vessel_id}, project={assignment.project_id})"
            )
            skipped.append(SkippedAssignment(
                assignment_id=assignment.id,
                vessel_id=assignment.vessel_id,
                project_id=assignment.project_id,
                reason=reason,
            ))

        return working, skipped

    # -------------------------------------------------------------------
    # Phase 1
    # -------------------------------------------------------------------

    def _resequence(
        self,
        vessel: VesselPosition,
        working: WorkingLists,
        deadline: Optional[float],
    ) -> Tuple[Optional[OptimizationChange], bool, bool]:
        """
        Reorder one vessel's visits.

        The vessel keeps its chronological time slots; the k-th slot goes
        to the k-th stop of the optimized order, so idle time and
        utilization are unchanged while the sailed route follows the new
        order. Returns (change or None, converged, retimed).
        """
        current = sorted(working[vessel.id], key=lambda a: a.start_date)
        if len(current) < 2:
            return None, True, False

        result = self.sequencer.optimize(
            (vessel.lat, vessel.lng), [(a.lat, a.lng) for a in current], deadline
        )
        visited = [current[k] for k in result.order]
        reordered = [
            replace(stop, start_date=slot.start_date, end_date=slot.end_date)
            for stop, slot in zip(visited, current)
        ]

        before = self._analyze(vessel, current)
        after = self._analyze(vessel, reordered)
        if after.total_transit_distance_nm > before.total_transit_distance_nm:
            # Only legs at or under the noise threshold differ; keep the calendar
            logger.debug(f"{vessel.name}: optimized order not shorter once short legs are dropped")
            return None, result.converged, False

        working[vessel.id] = reordered
        retimed = any(stop is not slot for stop, slot in zip(visited, current))

        saved = result.improvement_nm
        if saved < self.settings.resequence_min_saving_nm:
            return None, result.converged, retimed

        fuel_saved = fuel_liters(saved, vessel.type)
        change = OptimizationChange(
            type=ChangeType.RESEQUENCE,
            description=f"Reorder {vessel.name} project sequence",
            reasoning=(
                f"By visiting projects in optimal order based on proximity, transit distance "
                f"reduced from {result.initial_distance_nm:.0f}nm to {result.distance_nm:.0f}nm."
            ),
            impact=ChangeImpact(
                distance_saved_nm=saved,
                fuel_saved_liters=fuel_saved,
                time_saved_hours=transit_hours(saved, self._speed(vessel)),
                cost_saved_usd=fuel_saved * self.settings.fuel_cost_usd_per_liter,
            ),
            affected_vessels=[vessel.id],
            before=[SequenceSummary(
                vessel=vessel.name,
                sequence=[a.project_name for a in current],
                total_distance_nm=result.initial_distance_nm,
            )],
            after=[SequenceSummary(
                vessel=vessel.name,
                sequence=[a.project_name for a in visited],
                total_distance_nm=result.distance_nm,
            )],
        )
        logger.debug(f"Resequenced {vessel.name}: {saved:.1f}nm saved")
        return change, result.converged, retimed

    # -------------------------------------------------------------------
    # Phase 2
    # -------------------------------------------------------------------

    def _reassign(
        self,
        project: ProjectLocation,
        data: OptimizationInput,
        vessels_by_id: Dict[str, VesselPosition],
        working: WorkingLists,
    ) -> Optional[OptimizationChange]:
        """
        Move *project* to the best-scoring vessel when that is clearly better.

        Scores use the original assignments for conflict checks. The move
        must beat the current vessel by more than the score gap, bring a
        vessel at least the distance gain closer, and must not lengthen
        the two vessels' combined transit.
        """
        current_vessel = next(
            (vessels_by_id[a.vessel_id] for a in data.current_assignments
             if a.project_id == project.id and a.vessel_id in vessels_by_id),
            None,
        )
        if current_vessel is None:
            return None

        scores = [self.scorer.score(v, project, data.current_assignments) for v in data.vessels]
        eligible = [s for s in scores if s.score > 0]
        if not eligible:
            return None
        best = max(eligible, key=lambda s: s.score)
        current = next(s for s in scores if s.vessel.id == current_vessel.id)
        new_vessel = best.vessel

        if new_vessel.id == current_vessel.id:
            return None
        if best.score - current.score <= self.settings.reassign_min_score_gap:
            return None
        distance_gain = current.distance_nm - best.distance_nm
        if distance_gain < self.settings.reassign_min_distance_gain_nm:
            return None

        moved = [a for a in working[current_vessel.id] if a.project_id == project.id]
        if not moved:
            return None
        remaining = [a for a in working[current_vessel.id] if a.project_id != project.id]
        gained = working[new_vessel.id] + moved

        transit_before = (
            self._analyze(current_vessel, working[current_vessel.id]).total_transit_distance_nm
            + self._analyze(new_vessel, working[new_vessel.id]).total_transit_distance_nm
        )
        transit_after = (
            self._analyze(current_vessel, remaining).total_transit_distance_nm
            + self._analyze(new_vessel, gained).total_transit_distance_nm
        )
        if transit_after > transit_before:
            logger.info(
                f"Not reassigning {project.name} to {new_vessel.name}: combined transit "
                f"would grow from {transit_before:.1f}nm to {transit_after:.1f}nm"
            )
            return None

        working[current_vessel.id] = remaining
        working[new_vessel.id] = gained

        fuel_saved = (
            fuel_liters(current.distance_nm, current_vessel.type)
            - fuel_liters(best.distance_nm, new_vessel.type)
        )
        time_saved = (
            transit_hours(current.distance_nm, self._speed(current_vessel))
            - transit_hours(best.distance_nm, self._speed(new_vessel))
        )
        fuel_saved = max(0.0, fuel_saved)

        logger.debug(
            f"Reassigned {project.name}: {current_vessel.name} ({current.score:.0f}) -> "
            f"{new_vessel.name} ({best.score:.0f})"
        )

        return OptimizationChange(
            type=ChangeType.REASSIGN,
            description=f"Reassign {project.name} from {current_vessel.name} to {new_vessel.name}",
            reasoning=(
                f"{new_vessel.name} is {distance_gain:.0f}nm closer and scores "
                f"{best.score:.0f} vs {current.score:.0f}. Reasons: {'; '.join(best.reasons)}"
            ),
            impact=ChangeImpact(
                distance_saved_nm=distance_gain,
                fuel_saved_liters=fuel_saved,
                time_saved_hours=max(0.0, time_saved),
                cost_saved_usd=fuel_saved * self.settings.fuel_cost_usd_per_liter,
            ),
            affected_vessels=[current_vessel.id, new_vessel.id],
            before=[SequenceSummary(
                vessel=current_vessel.name,
                sequence=[project.name],
                total_distance_nm=current.distance_nm,
            )],
            after=[SequenceSummary(
                vessel=new_vessel.name,
                sequence=[project.name],
                total_distance_nm=best.distance_nm,
            )],
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def _speed(self, vessel: VesselPosition) -> float:
        return vessel.transit_speed(self.settings.default_speed_kts)

    def _analyze(self, vessel: VesselPosition, assignments: Sequence[ScheduledAssignment]) -> VesselSchedule:
        return analyze_vessel_schedule(
            vessel,
            assignments,
            min_segment_nm=self.settings.min_segment_nm,
            default_speed_kts=self.settings.default_speed_kts,
        )

    def _summarize(self, schedules: Sequence[VesselSchedule], now: datetime) -> FleetMetrics:
        return summarize_fleet(schedules, now, self.settings.utilization_window_days)

    def _collect_warnings(
        self,
        changes: Sequence[OptimizationChange],
        summary: OptimizationSummary,
        skipped: Sequence[SkippedAssignment],
        stopped_early: bool,
        retimed: bool = False,
    ) -> List[str]:
        warnings: List[str] = []
        if not changes:
            warnings.append(NEAR_OPTIMAL_WARNING)
        if summary.total_distance_saved_nm < MINIMAL_SAVINGS_NM:
            warnings.append(MINIMAL_SAVINGS_WARNING)
        if skipped:
            warnings.append(
                f"{len(skipped)} assignment(s) reference unknown vessels or projects "
                f"and were left out of the analysis."
            )
        if stopped_early:
            warnings.append(
                "Sequence search stopped at its iteration cap or timeout; "
                "some routes may be improvable further."
            )
        if retimed:
            warnings.append(RETIMED_WARNING)
        return warnings


def _index_first(items) -> Dict:
    """Map id -> item, keeping the first item for duplicate ids."""
    index: Dict = {}
    for item in items:
        index.setdefault(item.id, item)
    return index


def optimize_fleet(
    data: OptimizationInput,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
    timeout_s: Optional[float] = None,
) -> FleetOptimizationResult:
    """Run one fleet optimization with the given (or global) settings."""
    return FleetOptimizer(settings=settings).optimize(data, now=now, timeout_s=timeout_s)
