"""
Ride management service - Core ride lifecycle operations.

This module handles:
    - Storing rides and applying conditional updates
    - Creating and retrying ride requests
    - Resolving the acceptance race
    - Advancing trip phases
    - Cancelling rides and logging who cancelled
    - Expiring abandoned rides and offers
    - Rebuilding a client's trip view after reconnecting
"""

from .results import RideResult
from .store import RideRequestStore, ride_store
from .ride_lifecycle import (
    create_ride_request,
    retry_ride_request,
    accept_ride,
    advance_phase,
    cancel_ride_by_passenger,
    cancel_ride_by_driver,
    get_current_passenger_ride,
    get_current_driver_ride,
)
from .abandonment import decline_offer, sweep_overdue
from .recovery import TripPhase, ActiveTripView, derive_phase, recover_for_passenger, recover_for_driver

from .exceptions import (
    RideConflictError,
    RideNotFoundError,
    DriverNotAvailableError,
    ActiveRideExistsError,
    InvalidTransitionError,
    TransportError,
    RoutingUnavailableError,
)

__all__ = [
    "RideResult",
    "RideRequestStore",
    "ride_store",
    # Lifecycle operations
    "create_ride_request",
    "retry_ride_request",
    "accept_ride",
    "advance_phase",
    "cancel_ride_by_passenger",
    "cancel_ride_by_driver",
    "get_current_passenger_ride",
    "get_current_driver_ride",
    "decline_offer",
    "sweep_overdue",
    # Recovery
    "TripPhase",
    "ActiveTripView",
    "derive_phase",
    "recover_for_passenger",
    "recover_for_driver",
    # Exceptions
    "RideConflictError",
    "RideNotFoundError",
    "DriverNotAvailableError",
    "ActiveRideExistsError",
    "InvalidTransitionError",
    "TransportError",
    "RoutingUnavailableError",
]
