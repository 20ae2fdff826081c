"""
Core ride lifecycle operations.

This module is the entry point the views and consumers call. It holds the
passenger side (create, retry) and re-exposes the driver and cancellation
operations under the names the HTTP layer uses.
"""

import logging
from typing import Optional, Dict, Any

from django.db import IntegrityError, transaction

from rides.models import (
    RideRequest,
    NO_DRIVERS_AVAILABLE,
    CANCELLED_BY_DRIVER,
    NON_TERMINAL_STATUSES,
)
from rides.serializers import RideRequestCreateSerializer
from .acceptance import accept_ride
from .cancellation import record_cancellation, ROLE_DRIVER, ROLE_PASSENGER
from .exceptions import ActiveRideExistsError, RideNotFoundError
from .results import RideResult
from .store import ride_store
from .trip_phase import advance_phase

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = (NO_DRIVERS_AVAILABLE, CANCELLED_BY_DRIVER)


# ===================== Passenger Operations =====================

def check_active_ride(user) -> Optional[RideRequest]:
    """Check if user has an active ride."""
    return ride_store.find_active_for(user, ROLE_PASSENGER)


def create_ride_request(passenger, data: Dict[str, Any]) -> RideResult:
    """
    Create a new ride request and offer it to every eligible driver.

    Args:
        passenger: User model instance (passenger)
        data: Raw request payload

    Returns:
        RideResult with the created ride. A repeated ``client_reference``
        returns the ride stored the first time instead of a new one.

    Raises:
        rest_framework.exceptions.ValidationError: Bad payload
        ActiveRideExistsError: If passenger already has an active ride
    """
    serializer = RideRequestCreateSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    fields = dict(serializer.validated_data)

    client_reference = fields.get("client_reference")
    if client_reference:
        existing = RideRequest.objects.filter(passenger=passenger, client_reference=client_reference).first()
        if existing:
            return _duplicate(existing)

    return _create(passenger, fields)


def _duplicate(ride: RideRequest) -> RideResult:
    logger.info("Ride %s already exists for client reference %s", ride.id, ride.client_reference)
    return RideResult(success=True, ride=ride, message="Ride request already received.", extra={"duplicate": True})


def _create(passenger, fields: Dict[str, Any], retried_from: Optional[RideRequest] = None) -> RideResult:
    if check_active_ride(passenger):
        raise ActiveRideExistsError("You already have an active ride request")

    if fields.get("estimated_fare") is None:
        from services.pricing import estimate_fare
        fields["estimated_fare"] = estimate_fare(
            fields["service_id"],
            fields["origin_lat"],
            fields["origin_lng"],
            fields["destination_lat"],
            fields["destination_lng"],
        )

    try:
        with transaction.atomic():
            ride = ride_store.create(passenger=passenger, retried_from=retried_from, **fields)
    except IntegrityError:
        # A concurrent request committed first: same client_reference, or
        # another ride that is still in progress
        client_reference = fields.get("client_reference")
        if client_reference:
            existing = RideRequest.objects.filter(passenger=passenger, client_reference=client_reference).first()
            if existing is not None:
                return _duplicate(existing)
        if RideRequest.objects.filter(passenger=passenger, status__in=NON_TERMINAL_STATUSES).exists():
            raise ActiveRideExistsError("You already have an active ride request")
        raise

    from services.matching import dispatch_ride
    from realtime.notifications import notify_passenger_event
    from .abandonment import arm_passenger_timeout

    arm_passenger_timeout(ride)
    offered = dispatch_ride(ride)

    if offered:
        message = "Notifying nearby drivers..."
    else:
        notify_passenger_event(
            "no_drivers_online",
            ride,
            "No drivers online yet. We will keep looking.",
        )
        message = "No drivers online yet."

    return RideResult(
        success=True,
        ride=ride,
        message=message,
        extra={"drivers_notified": offered},
    )


def retry_ride_request(passenger, ride_id) -> RideResult:
    """
    Request the same trip again after nobody took it or the driver cancelled.

    Raises:
        RideNotFoundError: No such ride for this passenger
        ActiveRideExistsError: The passenger already has an active ride
    """
    previous = ride_store.get(ride_id)
    if previous.passenger_id != passenger.id:
        raise RideNotFoundError(f"Ride {ride_id} not found")

    if previous.status not in RETRYABLE_STATUSES:
        return RideResult(
            success=False,
            ride=previous,
            message="Only rides that found no driver or were cancelled by the driver can be retried.",
            error_code="not_retryable",
        )

    fields = {
        "origin_lat": previous.origin_lat,
        "origin_lng": previous.origin_lng,
        "origin_address": previous.origin_address,
        "destination_lat": previous.destination_lat,
        "destination_lng": previous.destination_lng,
        "destination_address": previous.destination_address,
        "service_id": previous.service_id,
        "estimated_fare": previous.estimated_fare,
        "is_third_party": previous.is_third_party,
        "passenger_name": previous.passenger_name,
        "passenger_phone": previous.passenger_phone,
    }
    logger.info("Passenger %s retrying ride %s", passenger.id, previous.id)
    return _create(passenger, fields, retried_from=previous)


def get_current_passenger_ride(passenger) -> Optional[RideRequest]:
    """Get passenger's current active ride."""
    return ride_store.find_active_for(passenger, ROLE_PASSENGER)


def cancel_ride_by_passenger(passenger, ride_id, reason_code: str = "unspecified", custom_reason: str = None) -> RideResult:
    return record_cancellation(ride_id, passenger, ROLE_PASSENGER, reason_code, custom_reason)


# ===================== Driver Operations =====================

def cancel_ride_by_driver(driver, ride_id, reason_code: str = "unspecified", custom_reason: str = None) -> RideResult:
    return record_cancellation(ride_id, driver, ROLE_DRIVER, reason_code, custom_reason)


def get_current_driver_ride(driver) -> Optional[RideRequest]:
    """Get driver's current active ride."""
    return ride_store.find_active_for(driver, ROLE_DRIVER)


__all__ = [
    "RideResult",
    "check_active_ride",
    "create_ride_request",
    "retry_ride_request",
    "get_current_passenger_ride",
    "cancel_ride_by_passenger",
    "accept_ride",
    "advance_phase",
    "cancel_ride_by_driver",
    "get_current_driver_ride",
]
