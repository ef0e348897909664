"""FleetOpt: vessel-to-project scheduling and route sequencing engine."""

__version__ = "0.1.0"
