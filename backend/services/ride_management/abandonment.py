"""
Timeouts for rides and offers nobody acted on.

Three timers exist:
    - Passenger timeout: a pending ride nobody accepted ends in no_drivers_available
    - Popup timeout: a driver's offer expires; the ride itself is untouched
    - No-show timeout: the passenger never boarded; driver_at_origin ends in timed_out_passenger

Each timer is a Celery task (rides/tasks.py) that calls the matching expire_*
function here. Every expire_* is a conditional write, so a timer that fires
after the ride moved on does nothing. Timers never raise; overdue work the
broker lost is picked up by ``sweep_overdue`` (process_ride_timeouts command).
"""

import logging
from datetime import timedelta
from typing import Dict, Optional

from django.conf import settings
from django.db.models import F, Q
from django.utils import timezone

from rides.models import (
    RideRequest,
    RideOffer,
    PENDING,
    DRIVER_AT_ORIGIN,
    NO_DRIVERS_AVAILABLE,
    TIMED_OUT_PASSENGER,
)
from .exceptions import RideConflictError
from .store import ride_store

logger = logging.getLogger(__name__)


# ===================== Arming =====================

def _schedule(task, args, countdown: int) -> bool:
    if not settings.RIDE_TIMERS_ENABLED:
        return False
    try:
        task.apply_async(args=args, countdown=countdown)
    except Exception:
        # Broker down: the sweep command will find the overdue record
        logger.warning("Could not schedule %s%s", task.name, tuple(args), exc_info=True)
        return False
    return True


def arm_passenger_timeout(ride: RideRequest) -> bool:
    from rides.tasks import expire_pending_ride_task
    return _schedule(expire_pending_ride_task, [str(ride.id)], settings.PASSENGER_REQUEST_TIMEOUT_SECONDS)


def arm_offer_timeout(offer: RideOffer) -> bool:
    from rides.tasks import expire_ride_offer_task
    return _schedule(expire_ride_offer_task, [offer.id], settings.DRIVER_REQUEST_POPUP_TIMEOUT_SECONDS)


def arm_no_show_timeout(ride: RideRequest) -> bool:
    from rides.tasks import expire_pickup_wait_task
    return _schedule(expire_pickup_wait_task, [str(ride.id)], settings.PICKUP_WAIT_TIMEOUT_SECONDS)


# ===================== Firing =====================

def expire_passenger_request(ride_id) -> Optional[RideRequest]:
    """
    Move a still-pending ride to no_drivers_available.

    Returns:
        The expired ride, or None if it had already moved on
    """
    try:
        ride = ride_store.conditional_update(ride_id, Q(status=PENDING), {"status": NO_DRIVERS_AVAILABLE})
    except RideConflictError:
        logger.info("Passenger timeout for ride %s ignored, ride moved on", ride_id)
        return None

    logger.info("Ride %s expired without a driver", ride_id)

    from realtime.notifications import notify_passenger_event, notify_ride_updated
    from services.matching import withdraw_open_offers

    withdraw_open_offers(ride, event_type="ride_cancelled", message="Ride request expired.")
    notify_passenger_event(
        "no_drivers_available",
        ride,
        "No drivers accepted your ride request. Please try again later.",
    )
    notify_ride_updated(ride)
    return ride


def expire_offer(offer_id: int) -> bool:
    """
    Expire one driver's popup. The ride record is never touched.

    Returns:
        True if the offer was still pending and is now expired
    """
    expired = RideOffer.objects.filter(pk=offer_id, status=RideOffer.PENDING).update(
        status=RideOffer.EXPIRED,
        responded_at=timezone.now(),
    )
    if not expired:
        logger.debug("Offer %s already answered, nothing to expire", offer_id)
        return False

    offer = RideOffer.objects.select_related("ride").get(pk=offer_id)

    from realtime.notifications import notify_driver_event
    notify_driver_event("offer_expired", offer.ride, offer.driver_id, "Ride request timed out.")
    return True


def decline_offer(driver, ride_id) -> bool:
    """
    Record that a driver dismissed a ride.

    Drivers that came online after dispatch have no offer row yet; one is
    created already declined so the ride stays hidden from them.

    Returns:
        True if the driver's offer changed to declined
    """
    ride = ride_store.get(ride_id)
    now = timezone.now()

    declined = RideOffer.objects.filter(ride=ride, driver=driver, status=RideOffer.PENDING).update(
        status=RideOffer.DECLINED,
        responded_at=now,
    )
    if declined:
        logger.info("Driver %s declined ride %s", driver.id, ride.id)
        return True

    _, created = RideOffer.objects.get_or_create(
        ride=ride,
        driver=driver,
        defaults={"status": RideOffer.DECLINED, "sent_at": now, "responded_at": now},
    )
    return created


def expire_no_show(ride_id) -> Optional[RideRequest]:
    """
    End a ride whose passenger never showed up at the pickup point.

    Returns:
        The ended ride, or None if the trip started or ended meanwhile
    """
    try:
        ride = ride_store.conditional_update(
            ride_id,
            Q(status=DRIVER_AT_ORIGIN),
            {
                "status": TIMED_OUT_PASSENGER,
                "released_driver_id": F("driver_id"),
                "driver": None,
            },
        )
    except RideConflictError:
        logger.info("No-show timeout for ride %s ignored, ride moved on", ride_id)
        return None

    logger.info("Ride %s ended, passenger did not show up", ride_id)

    from drivers.services import release_driver
    from realtime.notifications import notify_driver_event, notify_passenger_event, notify_ride_updated

    release_driver(ride.released_driver_id)
    notify_passenger_event("ride_cancelled", ride, "Your driver waited but you did not arrive.")
    notify_driver_event("ride_cancelled", ride, ride.released_driver_id, "Passenger did not show up.")
    notify_ride_updated(ride)
    return ride


# ===================== Sweep =====================

def sweep_overdue(now=None) -> Dict[str, int]:
    """
    Re-check every timer whose deadline has passed.

    Covers firings lost to a broker outage or a worker restart. Runs the
    same conditional operations as the timers, so overlapping with a live
    timer is harmless.
    """
    now = now or timezone.now()
    counts = {"rides_expired": 0, "offers_expired": 0, "no_shows": 0}

    offer_cutoff = now - timedelta(seconds=settings.DRIVER_REQUEST_POPUP_TIMEOUT_SECONDS)
    overdue_offers = list(
        RideOffer.objects.filter(status=RideOffer.PENDING, sent_at__lte=offer_cutoff).values_list("id", flat=True)
    )
    for offer_id in overdue_offers:
        if expire_offer(offer_id):
            counts["offers_expired"] += 1

    ride_cutoff = now - timedelta(seconds=settings.PASSENGER_REQUEST_TIMEOUT_SECONDS)
    overdue_rides = list(
        RideRequest.objects.filter(status=PENDING, created_at__lte=ride_cutoff).values_list("id", flat=True)
    )
    for ride_id in overdue_rides:
        if expire_passenger_request(ride_id):
            counts["rides_expired"] += 1

    pickup_cutoff = now - timedelta(seconds=settings.PICKUP_WAIT_TIMEOUT_SECONDS)
    overdue_pickups = list(
        RideRequest.objects.filter(
            status=DRIVER_AT_ORIGIN,
            driver_arrived_at_origin_at__lte=pickup_cutoff,
        ).values_list("id", flat=True)
    )
    for ride_id in overdue_pickups:
        if expire_no_show(ride_id):
            counts["no_shows"] += 1

    if any(counts.values()):
        logger.info("Timeout sweep: %s", counts)
    return counts
