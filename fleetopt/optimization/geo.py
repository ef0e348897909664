"""
Distance, transit time and fuel estimates for vessel movements.

Great-circle distances use the haversine formula on a spherical Earth
(radius 3440.065 nm). Fuel is a flat liters-per-nm rate by vessel type.
"""

import math
from typing import Mapping, Sequence, Tuple

import numpy as np

EARTH_RADIUS_NM = 3440.065

AVERAGE_VESSEL_SPEED_KNOTS = 10.0

# Fuel consumption rates by vessel type (liters per nautical mile)
FUEL_CONSUMPTION_RATES: Mapping[str, float] = {
    "dredger": 85.0,
    "crane_barge": 45.0,
    "supply_vessel": 35.0,
    "tugboat": 25.0,
    "survey_vessel": 20.0,
    "barge": 0.0,  # Towed
}
DEFAULT_FUEL_RATE = 40.0


def haversine_nm(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Calculate great circle distance in nautical miles."""
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = (math.sin(dlat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2))
         * math.sin(dlng / 2) ** 2)
    # Clamp guards against a creeping past 1.0 for antipodal points
    return EARTH_RADIUS_NM * 2 * math.asin(math.sqrt(min(1.0, a)))


def distance_nm(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Distance between two (lat, lng) points in nautical miles."""
    return haversine_nm(a[0], a[1], b[0], b[1])


def distance_matrix(points: Sequence[Tuple[float, float]]) -> np.ndarray:
    """
    Pairwise haversine distances (nm) for a list of (lat, lng) points.

    Returns an (n, n) symmetric array with a zero diagonal.
    """
    if len(points) == 0:
        return np.zeros((0, 0))
    coords = np.radians(np.asarray(points, dtype=float))
    lat = coords[:, 0][:, None]
    lng = coords[:, 1][:, None]
    dlat = lat.T - lat
    dlng = lng.T - lng
    a = np.sin(dlat / 2) ** 2 + np.cos(lat) * np.cos(lat.T) * np.sin(dlng / 2) ** 2
    dist = EARTH_RADIUS_NM * 2 * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))
    np.fill_diagonal(dist, 0.0)
    return dist


def transit_hours(distance: float, speed_kts: float = AVERAGE_VESSEL_SPEED_KNOTS) -> float:
    """Transit time in hours; a vessel with no speed never arrives."""
    if speed_kts <= 0:
        return float('inf')
    return distance / speed_kts


def fuel_rate_for_type(vessel_type: str) -> float:
    """Liters per nm for *vessel_type*, default rate for unknown types."""
    rate = FUEL_CONSUMPTION_RATES.get(vessel_type)
    return DEFAULT_FUEL_RATE if rate is None else rate


def fuel_liters(distance: float, vessel_type: str) -> float:
    """Fuel consumption in liters for *distance* nm."""
    return distance * fuel_rate_for_type(vessel_type)
