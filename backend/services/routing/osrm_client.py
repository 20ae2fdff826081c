"""
OSRM adapter.

Sole responsibility: talk to OSRM over HTTP and return the route geometry
as the opaque polyline string stored on the ride. Coordinates are (lat, lon)
internally and (lon, lat) on the wire.
"""

import json
import logging
from typing import List, Optional, Tuple

import requests
from django.conf import settings

from services.ride_management.exceptions import RoutingUnavailableError

logger = logging.getLogger(__name__)

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]


class OSRMClient:
    """Thin HTTP client for the OSRM /route service."""

    def __init__(self, base_url: Optional[str] = None, profile: str = "driving", timeout: Optional[int] = None):
        self.base_url = (base_url if base_url is not None else settings.OSRM_BASE_URL).rstrip("/")
        self.profile = profile
        self.timeout = timeout or settings.ROUTING_TIMEOUT_SECONDS

    def format_coordinates(self, coords: List[LatLon]) -> str:
        """Convert list of (lat, lon) to OSRM format 'lon,lat;lon,lat;...'"""
        return ';'.join(f"{lon},{lat}" for lat, lon in coords)

    def route(self, origin: LatLon, destination: LatLon) -> str:
        """
        Fetch the driving route between two points.

        Returns:
            JSON-encoded list of [lat, lon] pairs

        Raises:
            RoutingUnavailableError: OSRM is not configured, unreachable, or has no route
        """
        if not self.base_url:
            raise RoutingUnavailableError("OSRM base URL is not configured")

        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates([origin, destination])}"
        try:
            response = requests.get(
                url,
                params={"overview": "full", "geometries": "geojson"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise RoutingUnavailableError(f"OSRM request failed: {exc}") from exc

        if data.get("code") != "Ok" or not data.get("routes"):
            raise RoutingUnavailableError(f"OSRM error: {data.get('message', data.get('code', 'no route'))}")

        coordinates = data["routes"][0]["geometry"]["coordinates"]
        return json.dumps([[lat, lon] for lon, lat in coordinates])
