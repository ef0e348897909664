"""
FleetOpt Configuration Module.

Centralized configuration management using environment variables.
Supports .env files for local development.

Usage:
    from fleetopt.config import settings

    print(settings.fuel_cost_usd_per_liter)
    print(settings.reassign_min_score_gap)
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
import logging

from dotenv import load_dotenv

# Load .env file if present
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    try:
        return float(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def get_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def get_optional_float(key: str) -> Optional[float]:
    """Get float from environment variable, None when unset or blank."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        return None


@dataclass
class Settings:
    """Optimizer settings loaded from environment."""

    # Cost model
    fuel_cost_usd_per_liter: float = field(
        default_factory=lambda: get_float("FLEET_FUEL_COST_USD_PER_LITER", 0.85)
    )
    default_speed_kts: float = field(
        default_factory=lambda: get_float("FLEET_DEFAULT_SPEED_KTS", 10.0)
    )

    # Schedule analysis
    min_segment_nm: float = field(
        default_factory=lambda: get_float("FLEET_MIN_SEGMENT_NM", 1.0)
    )
    utilization_window_days: int = field(
        default_factory=lambda: get_int("FLEET_UTILIZATION_WINDOW_DAYS", 30)
    )

    # Decision gates
    resequence_min_saving_nm: float = field(
        default_factory=lambda: get_float("FLEET_RESEQUENCE_MIN_SAVING_NM", 5.0)
    )
    reassign_min_score_gap: float = field(
        default_factory=lambda: get_float("FLEET_REASSIGN_MIN_SCORE_GAP", 20.0)
    )
    reassign_min_distance_gain_nm: float = field(
        default_factory=lambda: get_float("FLEET_REASSIGN_MIN_DISTANCE_GAIN_NM", 10.0)
    )

    # Search budget
    two_opt_max_iterations: int = field(
        default_factory=lambda: get_int("FLEET_TWO_OPT_MAX_ITERATIONS", 10_000)
    )
    optimization_timeout_s: Optional[float] = field(
        default_factory=lambda: get_optional_float("FLEET_OPTIMIZATION_TIMEOUT_S")
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = field(
        default_factory=lambda: os.getenv(
            "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.fuel_cost_usd_per_liter < 0:
            logging.warning(
                f"Fuel cost {self.fuel_cost_usd_per_liter} USD/L is negative, using 0.85"
            )
            self.fuel_cost_usd_per_liter = 0.85

        if self.default_speed_kts <= 0:
            logging.warning(
                f"Default speed {self.default_speed_kts} kts must be positive, using 10.0"
            )
            self.default_speed_kts = 10.0

        if self.utilization_window_days <= 0:
            logging.warning(
                f"Utilization window {self.utilization_window_days} days must be "
                f"positive, using 30"
            )
            self.utilization_window_days = 30

        if self.two_opt_max_iterations < 1:
            logging.warning(
                f"2-opt iteration cap {self.two_opt_max_iterations} must be at least 1, "
                f"using 10000"
            )
            self.two_opt_max_iterations = 10_000

        if self.optimization_timeout_s is not None and self.optimization_timeout_s <= 0:
            logging.warning(
                f"Optimization timeout {self.optimization_timeout_s}s is not positive, "
                f"running without a timeout"
            )
            self.optimization_timeout_s = None

    def configure_logging(self):
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        logging.basicConfig(level=level, format=self.log_format)


# Singleton instance
settings = Settings()


# Convenience function for testing
def get_settings() -> Settings:
    """Get the settings instance (useful for dependency injection)."""
    return settings
