"""
FleetOpt snapshot schemas.

Re-exports the pydantic models used to parse the optimizer's input:
    from fleetopt.schemas import OptimizationRequest
"""

from .common import Position, SnapshotModel  # noqa: F401
from .optimization import (  # noqa: F401
    AssignmentModel,
    OptimizationRequest,
    ProjectModel,
    VesselModel,
)
