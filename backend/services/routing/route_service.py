"""Route computation with a degraded straight-line fallback."""

import json
import logging
from typing import Optional, Tuple

from services.ride_management.exceptions import RoutingUnavailableError
from .osrm_client import OSRMClient, LatLon

logger = logging.getLogger(__name__)


def straight_line_polyline(origin: LatLon, destination: LatLon) -> str:
    """Two-point polyline used when the routing provider is unavailable."""
    return json.dumps([[float(origin[0]), float(origin[1])], [float(destination[0]), float(destination[1])]])


def compute_route_polyline(
    origin: LatLon,
    destination: LatLon,
    client: Optional[OSRMClient] = None,
) -> Tuple[str, bool]:
    """
    Compute a route, falling back to a straight line.

    Returns:
        (polyline, degraded) where degraded is True for the fallback
    """
    client = client or OSRMClient()
    try:
        return client.route(origin, destination), False
    except RoutingUnavailableError as exc:
        logger.warning("Routing unavailable, using straight line: %s", exc)
        return straight_line_polyline(origin, destination), True
