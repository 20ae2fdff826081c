import logging

from django.conf import settings
from django.utils import timezone

from drivers.models import DriverProfile
from rides.models import (
    RideRequest,
    ACCEPTED,
    DRIVER_EN_ROUTE_TO_ORIGIN,
    DRIVER_AT_ORIGIN,
    TRIP_STARTED,
    DRIVER_AT_DESTINATION,
)
from common.utils.geo import is_within

logger = logging.getLogger(__name__)


# DRIVER STATUS UPDATE
def update_driver_status(profile: DriverProfile, new_status: str) -> bool:
    """
    Switch a driver between online and offline.

    Conditional on the stored status: a driver holding a ride stays busy
    until the ride ends, even if an accept lands after ``profile`` was read.

    Returns:
        True if the status changed
    """
    updated = DriverProfile.objects.filter(
        pk=profile.pk,
        status__in=[DriverProfile.STATUS_ONLINE, DriverProfile.STATUS_OFFLINE],
    ).update(status=new_status)
    if not updated:
        logger.info("Driver %s is busy, status stays", profile.user_id)
        return False

    profile.status = new_status
    logger.info("Driver %s is now %s", profile.user_id, new_status)
    return True


def release_driver(user_id):
    """Put a driver whose ride ended back online."""
    if not user_id:
        return 0
    return DriverProfile.objects.filter(
        user_id=user_id, status=DriverProfile.STATUS_BUSY
    ).update(status=DriverProfile.STATUS_ONLINE)


def update_driver_location(profile: DriverProfile, lat, lon):
    """
    Update driver location, used by:
    - HTTP fallback
    - WebSocket driver tracking events

    When the driver holds a ride, the passenger gets the new position and
    arrival at the pickup or drop-off point is detected from it.
    """
    profile.current_latitude = lat
    profile.current_longitude = lon
    profile.last_location_update = timezone.now()
    profile.save(update_fields=["current_latitude", "current_longitude", "last_location_update"])

    from services.ride_management.store import ride_store

    ride = ride_store.find_active_for(profile.user, "driver")
    if ride is None:
        return profile

    from realtime.notifications import notify_passenger_event
    notify_passenger_event(
        "driver_location",
        ride,
        extra={"latitude": float(lat), "longitude": float(lon)},
    )

    detect_arrival(profile, ride)
    return profile


def detect_arrival(profile: DriverProfile, ride: RideRequest):
    """
    Advance to driver_at_origin / driver_at_destination once the driver is
    within PROXIMITY_THRESHOLD_METERS of the point they are heading to.

    Returns:
        RideResult of the advance, or None when the driver is not close enough
    """
    threshold = settings.PROXIMITY_THRESHOLD_METERS
    lat, lon = profile.current_latitude, profile.current_longitude

    if ride.status in (ACCEPTED, DRIVER_EN_ROUTE_TO_ORIGIN):
        if not is_within(lat, lon, ride.origin_lat, ride.origin_lng, threshold):
            return None
        target = DRIVER_AT_ORIGIN
    elif ride.status == TRIP_STARTED:
        if not is_within(lat, lon, ride.destination_lat, ride.destination_lng, threshold):
            return None
        target = DRIVER_AT_DESTINATION
    else:
        return None

    from services.ride_management.trip_phase import advance_phase

    result = advance_phase(profile.user, ride.id, target)
    if result.success:
        logger.info("Driver %s reached %s for ride %s", profile.user_id, target, ride.id)
    return result
