"""
Routing provider adapter.

Re-exports the OSRM client and the degraded straight-line fallback so the
ride services import from ``services.routing`` without knowing file names.
"""

from .osrm_client import OSRMClient, LatLon
from .route_service import compute_route_polyline, straight_line_polyline

__all__ = [
    "OSRMClient",
    "LatLon",
    "compute_route_polyline",
    "straight_line_polyline",
]
