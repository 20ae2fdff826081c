"""
Cancellation by either party.

Passenger and driver may press cancel at the same moment, or while a
timer fires. Each attempt writes its own RideCancellation row (one per
party per ride) and then tries the conditional status change. Only one
attempt can change the status; the other is kept in the log with
``changed_status=False`` and its caller gets ``ride_moved_on``.
"""

import logging
from typing import Optional

from django.db import transaction
from django.db.models import F, Q

from rides.models import (
    RideCancellation,
    CANCELLED_BY_PASSENGER,
    CANCELLED_BY_DRIVER,
    NON_TERMINAL_STATUSES,
    ACTIVE_ASSIGNED_STATUSES,
)
from .exceptions import RideConflictError, RideNotFoundError
from .results import RideResult
from .store import ride_store

logger = logging.getLogger(__name__)

ROLE_PASSENGER = "passenger"
ROLE_DRIVER = "driver"


def _transition_for(role: str, canceller):
    if role == ROLE_PASSENGER:
        return Q(passenger=canceller, status__in=NON_TERMINAL_STATUSES), CANCELLED_BY_PASSENGER
    if role == ROLE_DRIVER:
        return Q(driver=canceller, status__in=ACTIVE_ASSIGNED_STATUSES), CANCELLED_BY_DRIVER
    raise ValueError(f"Unknown canceller role: {role}")


def record_cancellation(
    ride_id,
    canceller,
    role: str,
    reason_code: str = "unspecified",
    custom_reason: Optional[str] = None,
) -> RideResult:
    """
    Log a cancellation attempt and try to end the ride.

    Args:
        ride_id: ID of the ride
        canceller: User cancelling
        role: ``passenger`` or ``driver``
        reason_code: Short machine-readable reason
        custom_reason: Free text from the user

    Returns:
        RideResult; success False with ``ride_moved_on`` when the ride had
        already left a cancellable status

    Raises:
        RideNotFoundError: The ride does not exist or the caller is not a party to it
    """
    expected, target = _transition_for(role, canceller)
    ride = ride_store.get(ride_id)
    if canceller.id not in (ride.passenger_id, ride.driver_id, ride.released_driver_id):
        raise RideNotFoundError(f"Ride {ride_id} not found")

    with transaction.atomic():
        try:
            ride = ride_store.conditional_update(
                ride_id,
                expected,
                {
                    "status": target,
                    "released_driver_id": F("driver_id"),
                    "driver": None,
                },
            )
            changed = True
        except RideConflictError:
            changed = False

        record, created = RideCancellation.objects.get_or_create(
            ride_id=ride_id,
            cancelled_by=canceller,
            defaults={
                "canceller_role": role,
                "reason_code": reason_code,
                "custom_reason": custom_reason,
                "changed_status": changed,
            },
        )

    if not changed:
        logger.info("Cancellation of ride %s by %s %s had no effect", ride_id, role, canceller.id)
        return RideResult(
            success=False,
            ride=ride_store.get(ride_id),
            message="This ride has already moved on.",
            error_code="ride_moved_on",
            extra={"cancellation_id": record.id},
        )

    logger.info("Ride %s cancelled by %s %s (%s)", ride.id, role, canceller.id, reason_code)
    _after_cancel(ride, role)

    return RideResult(
        success=True,
        ride=ride,
        message="Ride cancelled successfully",
        extra={"cancellation_id": record.id, "was_assigned": ride.released_driver_id is not None},
    )


def _after_cancel(ride, role: str):
    from drivers.services import release_driver
    from realtime.notifications import notify_driver_event, notify_passenger_event, notify_ride_updated
    from services.matching import withdraw_open_offers

    withdraw_open_offers(ride, event_type="ride_cancelled", message="Ride request cancelled.")
    release_driver(ride.released_driver_id)

    if role == ROLE_PASSENGER:
        notify_driver_event("ride_cancelled", ride, ride.released_driver_id, "Passenger cancelled this ride.")
    else:
        notify_passenger_event("ride_cancelled", ride, "Driver cancelled the ride. Please request again.")

    notify_ride_updated(ride)
