"""Celery tasks for ride timers and route caching.

Every task calls an idempotent service function and never raises: a task
that fails is logged, and whatever it should have done is picked up by the
``process_ride_timeouts`` sweep.
"""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def expire_pending_ride_task(ride_id: str):
    """
    Passenger timeout: end a ride nobody accepted.

    Scheduled when the ride is created. A no-op once the ride left 'pending'.
    """
    from services.ride_management.abandonment import expire_passenger_request

    try:
        ride = expire_passenger_request(ride_id)
    except Exception:
        logger.exception("Error expiring ride %s", ride_id)
        return False
    return ride is not None


@shared_task
def expire_ride_offer_task(offer_id: int):
    """
    Popup timeout: expire one driver's offer.

    Scheduled when the offer is sent. The ride itself is never changed.
    """
    from services.ride_management.abandonment import expire_offer

    try:
        return expire_offer(offer_id)
    except Exception:
        logger.exception("Error expiring offer %s", offer_id)
        return False


@shared_task
def expire_pickup_wait_task(ride_id: str):
    """
    No-show timeout: end a ride whose passenger never boarded.

    Scheduled when the driver reaches the pickup point.
    """
    from services.ride_management.abandonment import expire_no_show

    try:
        ride = expire_no_show(ride_id)
    except Exception:
        logger.exception("Error ending no-show ride %s", ride_id)
        return False
    return ride is not None


@shared_task
def cache_route_task(ride_id: str, driver_id: int, leg: str):
    """Compute a route leg and store it on the ride."""
    from services.ride_management.trip_phase import cache_route

    try:
        return cache_route(ride_id, driver_id, leg)
    except Exception:
        logger.exception("Error caching %s route for ride %s", leg, ride_id)
        return None
