"""Distances between coordinates, used for arrival detection and fares."""

from math import asin, cos, radians, sin, sqrt

EARTH_RADIUS_METERS = 6371000


def calculate_distance(lat1, lon1, lat2, lon2) -> float:
    """
    Great-circle (haversine) distance in meters.

    Accepts floats or Decimals, as stored on rides and driver profiles.
    """
    phi1, lam1, phi2, lam2 = (radians(float(v)) for v in (lat1, lon1, lat2, lon2))
    h = sin((phi2 - phi1) / 2) ** 2 + cos(phi1) * cos(phi2) * sin((lam2 - lam1) / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * asin(sqrt(h))


def is_within(lat1, lon1, lat2, lon2, threshold_meters: float) -> bool:
    """True when the two points are closer than ``threshold_meters``."""
    return calculate_distance(lat1, lon1, lat2, lon2) < threshold_meters
