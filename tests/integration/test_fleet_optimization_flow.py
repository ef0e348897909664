"""
Integration tests for the complete fleet optimization flow.

Builds small fleets, runs the optimizer end to end and checks the
before/after schedules, proposed changes, confidence and warnings.
"""

import json
import logging
from dataclasses import replace

import numpy as np
import pytest

from fleetopt.metrics import metrics
from fleetopt.optimization import FleetOptimizer, OptimizationInput, optimize_fleet
from fleetopt.optimization.fleet_optimizer import (
    MINIMAL_SAVINGS_WARNING,
    NEAR_OPTIMAL_WARNING,
    RETIMED_WARNING,
    calculate_confidence,
)
from fleetopt.optimization.geo import distance_nm
from fleetopt.optimization.models import ChangeType
from fleetopt.schemas import OptimizationRequest


@pytest.fixture
def optimizer(settings):
    return FleetOptimizer(settings=settings)


@pytest.fixture
def single_tug_fleet(make_vessel, make_project, make_assignment):
    """One tug booked C, A, B in date order; B is nearest to the tug."""
    vessel = make_vessel("t-1", 24.0, 54.0, "tugboat", name="Tug One")
    projects = [
        make_project("p-c", 24.8, 54.8, start=0, end=5, name="C"),
        make_project("p-a", 24.5, 54.0, start=6, end=10, name="A"),
        make_project("p-b", 24.0, 54.5, start=11, end=15, name="B"),
    ]
    assignments = [
        make_assignment("a-c", "t-1", "p-c", start=0, end=5),
        make_assignment("a-a", "t-1", "p-a", start=6, end=10),
        make_assignment("a-b", "t-1", "p-b", start=11, end=15),
    ]
    return OptimizationInput(vessels=[vessel], projects=projects, current_assignments=assignments)


@pytest.fixture
def mismatched_fleet(make_vessel, make_project, make_assignment):
    """A dredging project staffed by a distant tug while a dredger idles nearby."""
    vessels = [
        make_vessel("t-1", 25.0, 56.0, "tugboat", name="Tug"),
        make_vessel("d-1", 25.0, 55.2, "dredger", name="Dredger"),
    ]
    projects = [make_project("p-1", 25.0, 55.0, types=("dredger",), start=0, end=10, name="Channel")]
    assignments = [make_assignment("a-1", "t-1", "p-1", start=0, end=10)]
    return OptimizationInput(vessels=vessels, projects=projects, current_assignments=assignments)


@pytest.fixture
def well_matched_fleet(make_vessel, make_project, make_assignment):
    vessels = [
        make_vessel("t-1", 24.0, 54.0, "tugboat"),
        make_vessel("d-1", 25.0, 55.0, "dredger"),
    ]
    projects = [
        make_project("p-1", 24.0, 54.0, types=("tugboat",), start=0, end=10),
        make_project("p-2", 25.0, 55.0, types=("dredger",), start=0, end=10),
    ]
    assignments = [
        make_assignment("a-1", "t-1", "p-1", start=0, end=10),
        make_assignment("a-2", "d-1", "p-2", start=0, end=10),
    ]
    return OptimizationInput(vessels=vessels, projects=projects, current_assignments=assignments)


def _random_fleet(seed, make_vessel, make_project, make_assignment):
    rng = np.random.RandomState(seed)
    types = ["tugboat", "dredger", "supply_vessel", "crane_barge", "barge"]
    vessels = [
        make_vessel(f"v-{k}", 24 + rng.uniform(0, 2), 54 + rng.uniform(0, 2), types[k % len(types)])
        for k in range(4)
    ]
    projects, assignments = [], []
    slot = {v.id: 0 for v in vessels}
    for k in range(10):
        vessel = vessels[rng.randint(len(vessels))]
        required = (types[int(rng.randint(len(types)))],)
        start = slot[vessel.id]
        end = start + int(rng.randint(1, 6))
        slot[vessel.id] = end + int(rng.randint(0, 3))
        projects.append(make_project(
            f"p-{k}", 24 + rng.uniform(0, 2), 54 + rng.uniform(0, 2),
            types=required, start=start, end=end,
        ))
        assignments.append(make_assignment(f"a-{k}", vessel.id, f"p-{k}", start=start, end=end))
    return OptimizationInput(vessels=vessels, projects=projects, current_assignments=assignments)


class TestResequencing:
    """One vessel, several projects in a poor order."""

    def test_proposes_resequence(self, optimizer, single_tug_fleet, now):
        result = optimizer.optimize(single_tug_fleet, now=now)

        assert [c.type for c in result.changes] == [ChangeType.RESEQUENCE]
        change = result.changes[0]
        assert change.affected_vessels == ["t-1"]
        assert change.before[0].sequence == ["C", "A", "B"]
        assert change.after[0].sequence == ["B", "A", "C"]
        assert change.description == "Reorder Tug One project sequence"
        assert change.reasoning.startswith("By visiting projects in optimal order")

    def test_first_stop_is_nearest(self, optimizer, single_tug_fleet, now):
        result = optimizer.optimize(single_tug_fleet, now=now)

        tug = (24.0, 54.0)
        nearest = min(single_tug_fleet.projects, key=lambda p: distance_nm(tug, (p.lat, p.lng)))
        assert result.changes[0].after[0].sequence[0] == nearest.name
        assert result.optimized_schedules[0].routes[0].to_point.name == nearest.name

    def test_impact_matches_summary(self, optimizer, single_tug_fleet, now):
        result = optimizer.optimize(single_tug_fleet, now=now)

        impact = result.changes[0].impact
        assert impact.distance_saved_nm > 10
        assert impact.distance_saved_nm == pytest.approx(result.summary.total_distance_saved_nm, rel=1e-6)
        assert impact.fuel_saved_liters == pytest.approx(impact.distance_saved_nm * 25.0)
        assert impact.cost_saved_usd == pytest.approx(impact.fuel_saved_liters * 0.85)
        assert impact.time_saved_hours == pytest.approx(impact.distance_saved_nm / 10.0)

    def test_calendar_slots_kept(self, optimizer, single_tug_fleet, now):
        result = optimizer.optimize(single_tug_fleet, now=now)

        original, optimized = result.original_schedules[0], result.optimized_schedules[0]
        assert [a.start_date for a in optimized.assignments] == [a.start_date for a in original.assignments]
        assert optimized.idle_days == pytest.approx(original.idle_days)
        assert result.summary.utilization_gain_percent == pytest.approx(0.0)

    def test_retimed_project_flagged(self, optimizer, single_tug_fleet, now):
        """C is visited last, so it takes the last slot, after its own window closes."""
        result = optimizer.optimize(single_tug_fleet, now=now)

        project_c = next(p for p in single_tug_fleet.projects if p.name == "C")
        stop_c = next(a for a in result.optimized_schedules[0].assignments if a.project_name == "C")
        assert stop_c.start_date > project_c.end_date
        assert RETIMED_WARNING in result.warnings

    def test_confidence_and_warnings(self, optimizer, single_tug_fleet, now):
        result = optimizer.optimize(single_tug_fleet, now=now)

        # One change, under 50 nm and $5000 saved
        assert result.confidence == 75.0
        assert result.warnings == [RETIMED_WARNING]

    def test_small_saving_adopted_without_change(self, optimizer, make_vessel, make_project,
                                                 make_assignment, now):
        data = OptimizationInput(
            vessels=[make_vessel("t-1", 0.0, 0.0)],
            projects=[make_project("p-x", 0.0, 1.0, start=0, end=1, name="X"),
                      make_project("p-y", 0.0, 0.95, start=2, end=3, name="Y")],
            current_assignments=[make_assignment("a-x", "t-1", "p-x", start=0, end=1),
                                 make_assignment("a-y", "t-1", "p-y", start=2, end=3)],
        )

        result = optimizer.optimize(data, now=now)

        assert result.changes == []
        assert result.summary.total_distance_saved_nm == pytest.approx(3.0, abs=0.05)
        assert [a.project_name for a in result.optimized_schedules[0].assignments] == ["Y", "X"]
        assert NEAR_OPTIMAL_WARNING in result.warnings
        assert MINIMAL_SAVINGS_WARNING in result.warnings

    def test_zero_timeout_still_returns_valid_result(self, optimizer, single_tug_fleet, now):
        result = optimizer.optimize(single_tug_fleet, now=now, timeout_s=0.0)

        assert any("stopped at its iteration cap or timeout" in w for w in result.warnings)
        assert (result.optimized_metrics.total_fleet_distance_nm
                <= result.original_metrics.total_fleet_distance_nm + 1e-6)


class TestReassignment:
    """Type-mismatched vessel far away, matching vessel close by."""

    def test_reassigns_to_matching_vessel(self, optimizer, mismatched_fleet, now):
        result = optimizer.optimize(mismatched_fleet, now=now)

        assert [c.type for c in result.changes] == [ChangeType.REASSIGN]
        change = result.changes[0]
        assert change.affected_vessels == ["t-1", "d-1"]
        assert change.description == "Reassign Channel from Tug to Dredger"
        assert "Type match: dredger" in change.reasoning
        assert "scores 100 vs 0" in change.reasoning

    def test_optimized_schedules_follow_the_move(self, optimizer, mismatched_fleet, now):
        result = optimizer.optimize(mismatched_fleet, now=now)

        tug, dredger = result.optimized_schedules
        assert tug.assignments == []
        assert [a.project_id for a in dredger.assignments] == ["p-1"]
        assert result.summary.total_distance_saved_nm == pytest.approx(
            result.changes[0].impact.distance_saved_nm, rel=1e-6)
        assert result.summary.total_fuel_saved_liters > 0

    def test_confidence(self, optimizer, mismatched_fleet, now):
        result = optimizer.optimize(mismatched_fleet, now=now)

        assert result.confidence == 75.0
        assert result.warnings == []

    def test_score_gap_gate(self, settings, mismatched_fleet, now):
        strict = replace(settings, reassign_min_score_gap=100.0)

        result = FleetOptimizer(settings=strict).optimize(mismatched_fleet, now=now)

        assert result.changes == []

    def test_distance_gain_gate(self, settings, mismatched_fleet, now):
        strict = replace(settings, reassign_min_distance_gain_nm=50.0)

        result = FleetOptimizer(settings=strict).optimize(mismatched_fleet, now=now)

        assert result.changes == []

    def test_not_moved_when_combined_transit_grows(self, optimizer, make_vessel, make_project,
                                                   make_assignment, now, caplog):
        """The tug passes the site on its way to the next job anyway."""
        data = OptimizationInput(
            vessels=[make_vessel("t-1", 25.0, 56.0, "tugboat", name="Tug"),
                     make_vessel("d-1", 25.0, 55.2, "dredger", name="Dredger")],
            projects=[make_project("p-1", 25.0, 55.0, types=("dredger",), start=0, end=10),
                      make_project("p-2", 25.0, 54.5, types=("tugboat",), start=12, end=20)],
            current_assignments=[make_assignment("a-1", "t-1", "p-1", start=0, end=10),
                                 make_assignment("a-2", "t-1", "p-2", start=12, end=20)],
        )

        with caplog.at_level(logging.INFO, logger="fleetopt.optimization.fleet_optimizer"):
            result = optimizer.optimize(data, now=now)

        assert result.changes == []
        assert "Not reassigning" in caplog.text

    def test_nearer_vessel_of_same_type_takes_over(self, optimizer, make_vessel, make_project,
                                                   make_assignment, now):
        """The booked tug carries its own conflict penalty against an idle tug nearby."""
        data = OptimizationInput(
            vessels=[make_vessel("t-1", 24.65, 54.0, "tugboat", name="Far Tug"),
                     make_vessel("t-2", 24.05, 54.0, "tugboat", name="Near Tug")],
            projects=[make_project("p-1", 24.0, 54.0, types=("tugboat",), start=0, end=10, name="Jetty")],
            current_assignments=[make_assignment("a-1", "t-1", "p-1", start=0, end=10)],
        )

        result = optimizer.optimize(data, now=now)

        assert [c.type for c in result.changes] == [ChangeType.REASSIGN]
        change = result.changes[0]
        assert change.description == "Reassign Jetty from Far Tug to Near Tug"
        assert "scores 100 vs 40" in change.reasoning
        assert [a.project_id for a in result.optimized_schedules[1].assignments] == ["p-1"]


class TestNothingToImprove:

    def test_near_optimal_fleet(self, optimizer, well_matched_fleet, now):
        result = optimizer.optimize(well_matched_fleet, now=now)

        assert result.changes == []
        assert result.warnings == [NEAR_OPTIMAL_WARNING, MINIMAL_SAVINGS_WARNING]
        assert result.confidence == 70.0
        assert result.optimized_metrics.total_fleet_distance_nm == \
            result.original_metrics.total_fleet_distance_nm

    def test_vessel_without_assignments(self, optimizer, make_vessel, now):
        data = OptimizationInput(vessels=[make_vessel("t-1", 24.0, 54.0)], projects=[], current_assignments=[])

        result = optimizer.optimize(data, now=now)

        schedule = result.original_schedules[0]
        assert schedule.routes == []
        assert schedule.total_transit_distance_nm == 0.0
        assert schedule.idle_days == 0.0
        assert result.original_metrics.average_utilization == 0.0

    def test_empty_snapshot(self, optimizer, now):
        result = optimizer.optimize(OptimizationInput([], [], []), now=now)

        assert result.original_schedules == []
        assert result.optimized_metrics.average_utilization == 0.0
        assert result.confidence == 70.0


class TestInputHandling:

    def test_dangling_references_skipped(self, optimizer, make_vessel, make_project,
                                         make_assignment, now):
        data = OptimizationInput(
            vessels=[make_vessel("t-1", 24.0, 54.0)],
            projects=[make_project("p-1", 24.5, 54.0)],
            current_assignments=[
                make_assignment("a-1", "t-1", "p-1"),
                make_assignment("a-2", "ghost", "p-1"),
                make_assignment("a-3", "t-1", "p-missing"),
            ],
        )

        result = optimizer.optimize(data, now=now)

        assert [(s.assignment_id, s.reason) for s in result.skipped] == [
            ("a-2", "unknown_vessel"),
            ("a-3", "unknown_project"),
        ]
        assert len(result.original_schedules[0].assignments) == 1
        assert any(w.startswith("2 assignment(s) reference unknown") for w in result.warnings)

    def test_snapshot_not_mutated(self, optimizer, single_tug_fleet, now):
        before = [(a.id, a.vessel_id, a.start_date, a.end_date) for a in single_tug_fleet.current_assignments]

        optimizer.optimize(single_tug_fleet, now=now)

        after = [(a.id, a.vessel_id, a.start_date, a.end_date) for a in single_tug_fleet.current_assignments]
        assert after == before

    def test_double_booking_reported(self, optimizer, make_vessel, make_project, make_assignment, now):
        data = OptimizationInput(
            vessels=[make_vessel("t-1", 24.0, 54.0)],
            projects=[make_project("p-1", 24.5, 54.0), make_project("p-2", 24.0, 54.5)],
            current_assignments=[make_assignment("a-1", "t-1", "p-1", start=0, end=10),
                                 make_assignment("a-2", "t-1", "p-2", start=5, end=15)],
        )

        result = optimizer.optimize(data, now=now)

        assert [c.type for c in result.conflicts] == ["vessel_double_booking"]

    def test_from_request_payload(self, settings, now):
        request = OptimizationRequest.model_validate({
            "vessels": [{"id": "t-1", "name": "Tug", "type": "tugboat", "lat": 24.0, "lng": 54.0}],
            "projects": [{"id": "p-1", "name": "Jetty", "lat": 24.5, "lng": 54.0,
                          "requiredVesselTypes": ["tugboat"],
                          "startDate": "2026-01-02T00:00:00Z", "endDate": "2026-01-05T00:00:00Z"}],
            "currentAssignments": [{"id": "a-1", "vesselId": "t-1", "projectId": "p-1",
                                    "startDate": "2026-01-02T00:00:00Z",
                                    "endDate": "2026-01-05T00:00:00Z"}],
        })

        result = optimize_fleet(request.to_input(), settings=settings, now=now)

        assert result.original_metrics.average_utilization == pytest.approx(10.0)
        assert result.original_metrics.total_fleet_distance_nm == pytest.approx(
            distance_nm((24.0, 54.0), (24.5, 54.0)))


class TestResultProperties:

    @pytest.mark.parametrize("seed", range(8))
    def test_optimized_never_longer(self, optimizer, make_vessel, make_project, make_assignment, now, seed):
        data = _random_fleet(seed, make_vessel, make_project, make_assignment)

        result = optimizer.optimize(data, now=now)

        assert (result.optimized_metrics.total_fleet_distance_nm
                <= result.original_metrics.total_fleet_distance_nm + 1e-6)
        assert 70.0 <= result.confidence <= 95.0
        assert {c.type for c in result.changes} <= {ChangeType.RESEQUENCE, ChangeType.REASSIGN}

    @pytest.mark.parametrize("seed", range(4))
    def test_every_booking_kept(self, optimizer, make_vessel, make_project, make_assignment, now, seed):
        data = _random_fleet(seed, make_vessel, make_project, make_assignment)

        result = optimizer.optimize(data, now=now)

        def booked(schedules):
            return sorted(a.assignment_id for s in schedules for a in s.assignments)

        assert booked(result.optimized_schedules) == booked(result.original_schedules)

    def test_reassigns_each_project_once(self, optimizer, mismatched_fleet, now):
        result = optimizer.optimize(mismatched_fleet, now=now)

        moved = [c.description for c in result.changes if c.type == ChangeType.REASSIGN]
        assert len(moved) == len(set(moved))

    def test_to_dict_is_json_ready(self, optimizer, single_tug_fleet, now):
        result = optimizer.optimize(single_tug_fleet, now=now)

        payload = json.loads(json.dumps(result.to_dict()))

        assert payload["id"].startswith("opt-")
        assert payload["timestamp"] == now.isoformat()
        assert payload["changes"][0]["type"] == "resequence"
        assert payload["optimized_schedules"][0]["vessel_id"] == "t-1"

    def test_run_counted_in_metrics(self, optimizer, well_matched_fleet, now):
        processed = metrics.get_counter("fleet_optimizations_processed")

        optimizer.optimize(well_matched_fleet, now=now)

        assert metrics.get_counter("fleet_optimizations_processed") == processed + 1
        assert metrics.get_timing("fleet_optimization").count >= 1


class TestConfidence:

    @pytest.mark.parametrize("changes,distance,cost,expected", [
        (0, 0.0, 0.0, 70.0),
        (1, 10.0, 100.0, 75.0),
        (3, 0.0, 0.0, 80.0),
        (1, 60.0, 0.0, 80.0),
        (2, 150.0, 0.0, 85.0),
        (3, 150.0, 6000.0, 95.0),
        (0, -20.0, -500.0, 70.0),
    ])
    def test_calculate_confidence(self, changes, distance, cost, expected):
        assert calculate_confidence(changes, distance, cost) == expected
