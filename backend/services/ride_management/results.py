from dataclasses import dataclass
from typing import Any, Dict, Optional

from rides.models import RideRequest


@dataclass
class RideResult:
    """Result object for ride operations.

    A lost race is not an error: ``success`` is False and ``error_code``
    tells the client what happened (``already_taken``, ``ride_moved_on``).
    """
    success: bool
    ride: Optional[RideRequest] = None
    message: str = ""
    error_code: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


def is_party(ride: RideRequest, user) -> bool:
    """Passenger, assigned driver, or the driver released from the ride."""
    return user is not None and user.id in (ride.passenger_id, ride.driver_id, ride.released_driver_id)


def moved_on(
    ride_id,
    caller,
    message: str = "This ride has moved on.",
    error_code: str = "ride_moved_on",
) -> RideResult:
    """Lost-race result; the current ride is attached only for its own parties."""
    from .store import ride_store
    from .exceptions import RideNotFoundError

    try:
        ride = ride_store.get(ride_id)
    except RideNotFoundError:
        ride = None
    if ride is not None and not is_party(ride, caller):
        ride = None
    return RideResult(success=False, ride=ride, message=message, error_code=error_code)
