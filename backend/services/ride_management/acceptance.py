"""
Driver acceptance.

Every online driver sees a pending ride at the same time, so several may
press "accept" together. Exactly one wins: the only write that assigns a
driver is a conditional update on ``status = pending AND driver IS NULL``.
Everybody else gets an ``already_taken`` result and goes back to idle.

The driver side is claimed the same way: ``online -> busy`` is a conditional
update in the same transaction, so one driver can never hold two rides.
"""

import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from drivers.models import DriverProfile
from rides.models import RideOffer, PENDING, ACCEPTED
from .exceptions import RideConflictError, RideNotFoundError, DriverNotAvailableError
from .results import RideResult, moved_on
from .store import ride_store

logger = logging.getLogger(__name__)


def _unavailable_reason(driver) -> str:
    profile = DriverProfile.objects.filter(user=driver).first()
    if profile is None:
        return "Driver profile not found"
    if not profile.is_verified:
        return "Your account has not been verified yet"
    if profile.status == DriverProfile.STATUS_BUSY:
        return "Finish your current ride before accepting another"
    return "Please go online before accepting rides"


def _claim_driver(driver) -> None:
    """Move an online, verified driver to busy, or raise."""
    claimed = DriverProfile.objects.filter(
        user=driver,
        status=DriverProfile.STATUS_ONLINE,
        is_verified=True,
    ).update(status=DriverProfile.STATUS_BUSY)
    if not claimed:
        raise DriverNotAvailableError(_unavailable_reason(driver))


def accept_ride(driver, ride_id) -> RideResult:
    """
    Try to take a pending ride.

    Args:
        driver: User model instance (driver)
        ride_id: ID of the ride to accept

    Returns:
        RideResult; success False with error_code ``already_taken`` when
        another driver won or the ride is no longer pending

    Raises:
        DriverNotAvailableError: The driver is not online and verified, or
            already holds a ride
    """
    now = timezone.now()

    try:
        # A lost ride write rolls the driver claim back
        with transaction.atomic():
            _claim_driver(driver)
            ride = ride_store.conditional_update(
                ride_id,
                Q(status=PENDING, driver__isnull=True),
                {"status": ACCEPTED, "driver": driver, "accepted_at": now},
            )
    except RideNotFoundError:
        logger.info("Driver %s tried to accept missing ride %s", driver.id, ride_id)
        return RideResult(success=False, message="Ride not found.", error_code="ride_not_found")
    except RideConflictError:
        logger.info("Driver %s lost the race for ride %s", driver.id, ride_id)
        return moved_on(
            ride_id,
            driver,
            "This ride was already taken or is no longer available.",
            "already_taken",
        )

    logger.info("Driver %s accepted ride %s", driver.id, ride.id)

    RideOffer.objects.update_or_create(
        ride=ride,
        driver=driver,
        defaults={"status": RideOffer.ACCEPTED, "responded_at": now},
    )

    from realtime.notifications import notify_passenger_event, notify_ride_updated
    from services.matching import withdraw_open_offers

    withdraw_open_offers(
        ride,
        except_driver_id=driver.id,
        event_type="ride_taken",
        message="Another driver accepted this ride.",
    )

    notify_passenger_event(
        "ride_accepted",
        ride,
        "Your ride has been accepted! The driver is on the way.",
    )
    notify_ride_updated(ride)

    return RideResult(
        success=True,
        ride=ride,
        message="Ride accepted! Navigate to the pickup location.",
    )
