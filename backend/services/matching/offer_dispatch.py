"""
Offer fan-out and withdrawal.

Broadcast pattern:
1. Ride is created in 'pending'
2. One RideOffer row + one push per eligible driver, all at once
3. Each offer carries its own popup timer (see ride_management.abandonment)
4. When the ride is taken or ends, remaining pending offers are withdrawn

Pushes are fire-and-forget: a driver that could not be notified is logged
and skipped, the ride itself is unaffected.
"""

import logging
from typing import List, Optional

from django.conf import settings
from django.utils import timezone

from rides.models import RideRequest, RideOffer, PENDING
from realtime.notifications import notify_driver_event
from .eligibility import eligible_drivers

logger = logging.getLogger(__name__)


def dispatch_ride(ride: RideRequest) -> int:
    """
    Offer a pending ride to every eligible driver not yet offered.

    Args:
        ride: RideRequest instance in 'pending'

    Returns:
        Number of drivers newly offered the ride
    """
    already_offered = set(ride.offers.values_list("driver_id", flat=True))
    profiles = eligible_drivers(exclude_user_ids=already_offered)

    offered = 0
    for profile in profiles:
        if offer_ride_to_driver(ride, profile.user_id) is not None:
            offered += 1

    logger.info("Dispatched ride %s to %d driver(s)", ride.id, offered)
    return offered


def offer_ride_to_driver(ride: RideRequest, driver_id: int) -> Optional[RideOffer]:
    """
    Record that a driver was shown the ride, push it, and arm its popup timer.

    Returns:
        The new RideOffer, or None if this driver already had one
    """
    from services.ride_management.abandonment import arm_offer_timeout

    offer, created = RideOffer.objects.get_or_create(
        ride=ride,
        driver_id=driver_id,
        defaults={"sent_at": timezone.now()},
    )
    if not created:
        return None

    delivered = notify_driver_event(
        "ride_offer",
        ride,
        driver_id,
        extra={
            "offer_id": offer.id,
            "expires_in": settings.DRIVER_REQUEST_POPUP_TIMEOUT_SECONDS,
        },
    )
    if not delivered:
        logger.warning("Offer for ride %s could not be pushed to driver_%s", ride.id, driver_id)

    arm_offer_timeout(offer)
    return offer


def withdraw_open_offers(
    ride: RideRequest,
    except_driver_id: Optional[int] = None,
    event_type: str = "ride_taken",
    message: str = "This ride is no longer available.",
) -> int:
    """
    Withdraw every still-pending offer for a ride and tell those drivers.

    Returns:
        Number of offers withdrawn
    """
    open_offers = ride.offers.filter(status=RideOffer.PENDING)
    if except_driver_id is not None:
        open_offers = open_offers.exclude(driver_id=except_driver_id)

    driver_ids = list(open_offers.values_list("driver_id", flat=True))
    withdrawn = RideOffer.objects.filter(
        ride=ride, driver_id__in=driver_ids, status=RideOffer.PENDING
    ).update(status=RideOffer.WITHDRAWN, responded_at=timezone.now())

    for driver_id in driver_ids:
        notify_driver_event(event_type, ride, driver_id, message)

    return withdrawn


def open_requests_for_driver(driver) -> List[RideRequest]:
    """
    Pending rides a driver may still accept (polling fallback).

    Rides this driver declined or let time out are left out.
    """
    dismissed = RideOffer.objects.filter(
        driver=driver, status__in=RideOffer.DISMISSED_STATUSES
    ).values_list("ride_id", flat=True)

    return list(
        RideRequest.objects.filter(status=PENDING)
        .exclude(id__in=dismissed)
        .select_related("passenger")
        .order_by("created_at")
    )
