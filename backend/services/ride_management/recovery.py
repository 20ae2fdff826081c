"""
Rebuilding a client's trip screen from the stored ride.

A client that reconnects, restarts or misses pushes asks for its current
view. The view is computed only from the persisted ride, through the same
``derive_phase`` mapping the live WebSocket updates use, so it is the same
no matter how many times or when it is asked for.
"""

import enum
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional, Tuple

from rides.models import (
    RideRequest,
    PENDING,
    ACCEPTED,
    DRIVER_EN_ROUTE_TO_ORIGIN,
    DRIVER_AT_ORIGIN,
    TRIP_STARTED,
    DRIVER_AT_DESTINATION,
    TRIP_COMPLETED,
    TERMINAL_STATUSES,
)
from .store import ride_store

logger = logging.getLogger(__name__)


class TripPhase(str, enum.Enum):
    SEARCHING = "searching"
    EN_ROUTE_TO_ORIGIN = "en_route_to_origin"
    AT_ORIGIN = "at_origin"
    EN_ROUTE_TO_DESTINATION = "en_route_to_destination"
    AT_DESTINATION = "at_destination"
    COMPLETED = "completed"
    ENDED = "ended"


_PHASE_BY_STATUS = {
    PENDING: TripPhase.SEARCHING,
    ACCEPTED: TripPhase.EN_ROUTE_TO_ORIGIN,
    DRIVER_EN_ROUTE_TO_ORIGIN: TripPhase.EN_ROUTE_TO_ORIGIN,
    DRIVER_AT_ORIGIN: TripPhase.AT_ORIGIN,
    TRIP_STARTED: TripPhase.EN_ROUTE_TO_DESTINATION,
    DRIVER_AT_DESTINATION: TripPhase.AT_DESTINATION,
    TRIP_COMPLETED: TripPhase.COMPLETED,
}


def derive_phase(ride: RideRequest) -> TripPhase:
    """Map any stored ride to exactly one phase."""
    phase = _PHASE_BY_STATUS.get(ride.status)
    if phase is not None:
        return phase
    if ride.status in TERMINAL_STATUSES:
        return TripPhase.ENDED

    # Unknown status: fall back to the furthest milestone reached
    logger.warning("Ride %s has unexpected status %r", ride.id, ride.status)
    if ride.completed_at:
        return TripPhase.COMPLETED
    if ride.driver_arrived_at_destination_at:
        return TripPhase.AT_DESTINATION
    if ride.trip_started_at:
        return TripPhase.EN_ROUTE_TO_DESTINATION
    if ride.driver_arrived_at_origin_at:
        return TripPhase.AT_ORIGIN
    if ride.accepted_at:
        return TripPhase.EN_ROUTE_TO_ORIGIN
    return TripPhase.ENDED


Marker = Tuple[float, float]


@dataclass(frozen=True)
class ActiveTripView:
    """What a passenger or driver screen shows for one ride."""

    ride_id: str
    role: str
    phase: TripPhase
    status: str
    counterpart_id: Optional[int]
    origin_marker: Optional[Marker]
    destination_marker: Optional[Marker]
    route_polyline: Optional[str]
    route_to_origin_polyline: Optional[str]
    route_to_destination_polyline: Optional[str]
    fare: Optional[str]
    updated_at: Optional[datetime]

    def as_dict(self) -> dict:
        data = asdict(self)
        data["phase"] = self.phase.value
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data


def build_view(ride: RideRequest, role: str) -> ActiveTripView:
    """Derive the screen state for ``role`` from the ride record.

    Both cached routes are always exposed; ``route_polyline`` is the one
    the current phase highlights.
    """
    phase = derive_phase(ride)
    origin = (float(ride.origin_lat), float(ride.origin_lng))
    destination = (float(ride.destination_lat), float(ride.destination_lng))

    origin_marker = destination_marker = route = None
    if phase == TripPhase.SEARCHING:
        origin_marker, destination_marker = origin, destination
    elif phase in (TripPhase.EN_ROUTE_TO_ORIGIN, TripPhase.AT_ORIGIN):
        origin_marker = origin
        route = ride.route_to_origin_polyline
    elif phase in (TripPhase.EN_ROUTE_TO_DESTINATION, TripPhase.AT_DESTINATION):
        destination_marker = destination
        route = ride.route_to_destination_polyline

    if role == "passenger":
        counterpart_id = ride.driver_id
    elif role == "driver":
        counterpart_id = ride.passenger_id
    else:
        raise ValueError(f"Unknown role: {role}")

    fare = ride.fare
    return ActiveTripView(
        ride_id=str(ride.id),
        role=role,
        phase=phase,
        status=ride.status,
        counterpart_id=counterpart_id,
        origin_marker=origin_marker,
        destination_marker=destination_marker,
        route_polyline=route,
        route_to_origin_polyline=ride.route_to_origin_polyline,
        route_to_destination_polyline=ride.route_to_destination_polyline,
        fare=str(fare) if fare is not None else None,
        updated_at=ride.updated_at,
    )


def recover_for_passenger(passenger) -> Optional[ActiveTripView]:
    ride = ride_store.find_active_for(passenger, "passenger")
    if ride is None:
        return None
    return build_view(ride, "passenger")


def recover_for_driver(driver) -> Optional[ActiveTripView]:
    ride = ride_store.find_active_for(driver, "driver")
    if ride is None:
        return None
    return build_view(ride, "driver")
