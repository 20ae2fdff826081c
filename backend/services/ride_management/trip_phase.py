"""
Trip phases after acceptance.

    accepted -> driver_en_route_to_origin -> driver_at_origin
             -> trip_started -> driver_at_destination -> trip_completed

Only the assigned driver moves the ride forward. Each advance is a
conditional update keyed on the driver and the allowed predecessor
statuses, so a retried or stale request simply loses with ``ride_moved_on``.
"""

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.db.models import F, Q
from django.utils import timezone

from drivers.models import DriverProfile
from rides.models import (
    ACCEPTED,
    DRIVER_EN_ROUTE_TO_ORIGIN,
    DRIVER_AT_ORIGIN,
    TRIP_STARTED,
    DRIVER_AT_DESTINATION,
    TRIP_COMPLETED,
    ACTIVE_ASSIGNED_STATUSES,
)
from .exceptions import InvalidTransitionError, RideConflictError
from .results import RideResult, moved_on
from .store import ride_store

logger = logging.getLogger(__name__)

# target -> statuses it may be reached from
ALLOWED_PREDECESSORS = {
    DRIVER_EN_ROUTE_TO_ORIGIN: (ACCEPTED,),
    DRIVER_AT_ORIGIN: (ACCEPTED, DRIVER_EN_ROUTE_TO_ORIGIN),
    TRIP_STARTED: (ACCEPTED, DRIVER_EN_ROUTE_TO_ORIGIN, DRIVER_AT_ORIGIN),
    DRIVER_AT_DESTINATION: (TRIP_STARTED,),
    TRIP_COMPLETED: (TRIP_STARTED, DRIVER_AT_DESTINATION),
}

PASSENGER_EVENTS = {
    DRIVER_EN_ROUTE_TO_ORIGIN: ("driver_en_route", "Your driver is on the way."),
    DRIVER_AT_ORIGIN: ("driver_arrived", "Your driver has arrived at the pickup point."),
    TRIP_STARTED: ("trip_started", "Your trip has started."),
    DRIVER_AT_DESTINATION: ("driver_at_destination", "You have arrived at your destination."),
    TRIP_COMPLETED: ("ride_completed", "Your ride has been completed. Thank you for riding with us!"),
}

ROUTE_TO_ORIGIN = "origin"
ROUTE_TO_DESTINATION = "destination"


def _patch_for(target: str, now) -> dict:
    patch = {"status": target}
    if target == DRIVER_AT_ORIGIN:
        patch["driver_arrived_at_origin_at"] = now
    elif target == TRIP_STARTED:
        patch["trip_started_at"] = now
    elif target == DRIVER_AT_DESTINATION:
        patch["driver_arrived_at_destination_at"] = now
    elif target == TRIP_COMPLETED:
        patch["completed_at"] = now
        # Flat fare: what was quoted is what is charged
        patch["actual_fare"] = F("estimated_fare")
    return patch


def advance_phase(driver, ride_id, target: str) -> RideResult:
    """
    Move an accepted ride to its next phase.

    Args:
        driver: User model instance holding the ride
        ride_id: ID of the ride
        target: Status to move to

    Returns:
        RideResult; success False with ``ride_moved_on`` when the ride is not
        held by this driver or not in a status the target can follow

    Raises:
        InvalidTransitionError: target is not a driver-driven phase
    """
    if target not in ALLOWED_PREDECESSORS:
        raise InvalidTransitionError(f"Cannot move a ride to '{target}'")

    try:
        ride = ride_store.conditional_update(
            ride_id,
            Q(driver=driver, status__in=ALLOWED_PREDECESSORS[target]),
            _patch_for(target, timezone.now()),
        )
    except RideConflictError:
        logger.info("Driver %s could not move ride %s to %s", driver.id, ride_id, target)
        return moved_on(ride_id, driver)

    logger.info("Ride %s is now %s", ride.id, target)

    if target == DRIVER_EN_ROUTE_TO_ORIGIN:
        schedule_route_cache(ride, ROUTE_TO_ORIGIN)
    elif target == TRIP_STARTED:
        schedule_route_cache(ride, ROUTE_TO_DESTINATION)
    elif target == DRIVER_AT_ORIGIN:
        from .abandonment import arm_no_show_timeout
        arm_no_show_timeout(ride)
    elif target == TRIP_COMPLETED:
        _settle_completed(ride)

    from realtime.notifications import notify_passenger_event, notify_ride_updated

    event_type, message = PASSENGER_EVENTS[target]
    notify_passenger_event(event_type, ride, message)
    notify_ride_updated(ride)

    return RideResult(success=True, ride=ride, message=f"Ride is now {ride.get_status_display().lower()}.")


def _settle_completed(ride):
    from drivers.services import release_driver

    release_driver(ride.driver_id)
    get_user_model().objects.filter(pk__in=[ride.passenger_id, ride.driver_id]).update(
        completed_rides=F("completed_rides") + 1
    )


# ===================== Route cache =====================

def schedule_route_cache(ride, leg: str) -> bool:
    """Compute and store a route in the background. Never blocks the advance."""
    from rides.tasks import cache_route_task

    try:
        cache_route_task.delay(str(ride.id), ride.driver_id, leg)
    except Exception:
        logger.warning("Could not queue %s route for ride %s", leg, ride.id, exc_info=True)
        return False
    return True


def cache_route(ride_id, driver_id, leg: str) -> Optional[str]:
    """
    Compute a route for the given leg and store it on the ride.

    The route to the pickup starts at the driver's last reported position;
    without one there is nothing to compute. The write only lands while the
    same driver still holds the ride.

    Returns:
        The stored polyline, or None when nothing was stored
    """
    from services.routing import compute_route_polyline

    ride = ride_store.get(ride_id)

    if leg == ROUTE_TO_ORIGIN:
        profile = DriverProfile.objects.filter(user_id=driver_id).first()
        if profile is None or not profile.has_location:
            logger.info("No known location for driver %s, skipping route for ride %s", driver_id, ride_id)
            return None
        start = (profile.current_latitude, profile.current_longitude)
        end = (ride.origin_lat, ride.origin_lng)
        field = "route_to_origin_polyline"
    elif leg == ROUTE_TO_DESTINATION:
        start = (ride.origin_lat, ride.origin_lng)
        end = (ride.destination_lat, ride.destination_lng)
        field = "route_to_destination_polyline"
    else:
        raise ValueError(f"Unknown route leg: {leg}")

    polyline, degraded = compute_route_polyline(start, end)

    try:
        ride = ride_store.conditional_update(
            ride_id,
            Q(driver_id=driver_id, status__in=ACTIVE_ASSIGNED_STATUSES),
            {field: polyline},
        )
    except RideConflictError:
        logger.info("Ride %s moved on before its %s route was stored", ride_id, leg)
        return None

    if degraded:
        logger.info("Stored straight-line %s route for ride %s", leg, ride_id)

    from realtime.notifications import notify_ride_updated
    notify_ride_updated(ride)
    return polyline
