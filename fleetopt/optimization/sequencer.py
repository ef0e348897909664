"""
Visiting-order optimization for a single vessel.

Two-phase open-path heuristic (the vessel does not return to its start):

1. Nearest-neighbour construction from the start point.
2. 2-opt local search: reverse a sub-sequence whenever that strictly
   shortens the route, restarting the scan after each accepted move.

The optimizer works on index arrays into a coordinate list rather than
on domain objects, so any entity with a (lat, lng) can be sequenced.
Node 0 of the distance matrix is the start point; node k (k >= 1) is
location k - 1.
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from fleetopt.optimization.geo import distance_matrix

logger = logging.getLogger(__name__)


@dataclass
class SequenceResult:
    """Outcome of sequencing one vessel's locations."""
    order: List[int]  # indices into the input location list, visiting order
    distance_nm: float
    initial_distance_nm: float  # input order
    nearest_neighbor_distance_nm: float
    iterations: int = 0  # accepted 2-opt moves
    converged: bool = True  # False when the iteration cap or deadline stopped 2-opt

    @property
    def improvement_nm(self) -> float:
        return self.initial_distance_nm - self.distance_nm


def route_distance(dist: Sequence[Sequence[float]], route: Sequence[int]) -> float:
    """Open-path length from node 0 through *route* (node ids)."""
    if not route:
        return 0.0
    total = dist[0][route[0]]
    for a, b in zip(route, route[1:]):
        total += dist[a][b]
    return float(total)


def nearest_neighbor(dist: Sequence[Sequence[float]], n: int) -> List[int]:
    """
    Greedy construction from node 0 over nodes 1..n.

    The first-encountered minimum wins ties, so the result is
    deterministic for a given input order.
    """
    remaining = list(range(1, n + 1))
    route: List[int] = []
    current = 0
    while remaining:
        nearest_pos = 0
        nearest_dist = float('inf')
        for pos, node in enumerate(remaining):
            if dist[current][node] < nearest_dist:
                nearest_dist = dist[current][node]
                nearest_pos = pos
        current = remaining.pop(nearest_pos)
        route.append(current)
    return route


class SequenceOptimizer:
    """
    Nearest-neighbour + first-improvement 2-opt sequencer.

    ``max_iterations`` caps accepted 2-opt moves; a monotonic ``deadline``
    (``time.monotonic()`` value) stops the search between passes. Either
    way the best route found so far is returned.
    """

    # Moves must shorten the route by more than this to be accepted
    IMPROVEMENT_EPS_NM = 1e-9

    def __init__(self, max_iterations: int = 10_000):
        self.max_iterations = max_iterations

    def optimize(
        self,
        start: Tuple[float, float],
        points: Sequence[Tuple[float, float]],
        deadline: Optional[float] = None,
    ) -> SequenceResult:
        """
        Find a low-distance visiting order for *points* from *start*.

        Args:
            start: (lat, lng) of the vessel
            points: (lat, lng) of each location, in current order
            deadline: Optional ``time.monotonic()`` cutoff for 2-opt

        Returns:
            SequenceResult; 0 or 1 locations come back unchanged
        """
        n = len(points)
        dist = distance_matrix([tuple(start)] + [tuple(p) for p in points]).tolist()
        identity = list(range(1, n + 1))
        initial = route_distance(dist, identity)

        if n <= 1:
            return SequenceResult(
                order=list(range(n)),
                distance_nm=initial,
                initial_distance_nm=initial,
                nearest_neighbor_distance_nm=initial,
            )

        nn_route = nearest_neighbor(dist, n)
        nn_distance = route_distance(dist, nn_route)

        # Greedy construction can lose to the given order; never start worse
        seed = nn_route if nn_distance <= initial else identity
        route, iterations, converged = self.two_opt(dist, seed, deadline)
        final = route_distance(dist, route)

        logger.debug(
            f"Sequenced {n} locations: input {initial:.1f}nm, "
            f"nearest-neighbour {nn_distance:.1f}nm, 2-opt {final:.1f}nm "
            f"({iterations} moves{'' if converged else ', stopped early'})"
        )

        return SequenceResult(
            order=[node - 1 for node in route],
            distance_nm=final,
            initial_distance_nm=initial,
            nearest_neighbor_distance_nm=nn_distance,
            iterations=iterations,
            converged=converged,
        )

    def two_opt(
        self,
        dist: Sequence[Sequence[float]],
        route: Sequence[int],
        deadline: Optional[float] = None,
    ) -> Tuple[List[int], int, bool]:
        """
        First-improvement 2-opt on an open path starting at node 0.

        Returns:
            (route, accepted_moves, converged)
        """
        route = list(route)
        iterations = 0
        while True:
            if deadline is not None and time.monotonic() >= deadline:
                logger.warning(f"2-opt stopped at deadline after {iterations} moves")
                return route, iterations, False

            move = self._find_improving_move(dist, route)
            if move is None:
                return route, iterations, True
            if iterations >= self.max_iterations:
                logger.warning(
                    f"2-opt stopped at iteration cap ({self.max_iterations}) "
                    f"on a {len(route)}-location route"
                )
                return route, iterations, False

            i, j = move
            route[i:j + 1] = route[i:j + 1][::-1]
            iterations += 1

    def _find_improving_move(
        self, dist: Sequence[Sequence[float]], route: List[int]
    ) -> Optional[Tuple[int, int]]:
        """
        First (i, j) whose reversal strictly shortens the route.

        Distances are symmetric, so only the two boundary edges change:
        (pred(i), i) and (j, succ(j)); the last stop has no successor.
        """
        n = len(route)
        for i in range(n - 1):
            prev = 0 if i == 0 else route[i - 1]
            d_prev_i = dist[prev][route[i]]
            for j in range(i + 1, n):
                old = d_prev_i
                new = dist[prev][route[j]]
                if j + 1 < n:
                    old += dist[route[j]][route[j + 1]]
                    new += dist[route[i]][route[j + 1]]
                if new - old < -self.IMPROVEMENT_EPS_NM:
                    return i, j
        return None


def optimize_sequence(
    start: Tuple[float, float],
    points: Sequence[Tuple[float, float]],
    max_iterations: int = 10_000,
    deadline: Optional[float] = None,
) -> SequenceResult:
    """Module-level convenience wrapper around ``SequenceOptimizer``."""
    return SequenceOptimizer(max_iterations=max_iterations).optimize(start, points, deadline)

