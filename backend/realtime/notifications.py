"""
Notification helpers for sending WebSocket messages to connected clients.

This module is the push transport for the ride flow:
- Send ride-related events to a driver (driver_<id> group)
- Send ride-related events to a passenger (user_<id> group)
- Broadcast "ride changed" markers so both live UIs re-fetch the ride

Delivery is fire-and-forget. A failed send is logged and reported as False;
it never fails the ride operation that triggered it.
"""

from __future__ import annotations

import logging
from typing import Dict, Any, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def _group_send(group: str, payload: Dict[str, Any]) -> bool:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning("No channel layer available, dropping %s for %s", payload.get("type"), group)
        return False

    try:
        async_to_sync(channel_layer.group_send)(group, payload)
    except Exception:
        logger.warning("Push to %s failed for event %s", group, payload.get("type"), exc_info=True)
        return False
    return True


def _ride_data(ride) -> Dict[str, Any]:
    from rides.serializers import RideRequestSerializer
    return RideRequestSerializer(ride).data


# ---------------------- Ride Event Notifications ----------------------

def notify_driver_event(
    event_type: str,
    ride,
    driver_id: int | None,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send an event to a specific driver using their personal group: driver_<driver_id>

    Args:
        event_type: Handler name in consumer (ride_offer, ride_taken, ride_cancelled, offer_expired)
        ride: RideRequest model instance
        driver_id: Target driver's user ID
        message: Optional message to include
        extra: Additional payload data

    Returns:
        True if handed to the channel layer, False otherwise
    """
    if not driver_id:
        return False

    payload = {
        "type": event_type,
        "ride_id": str(ride.id),
        "driver_id": driver_id,
        "ride_data": _ride_data(ride),
        **(extra or {}),
    }

    if message:
        payload["message"] = message

    logger.debug("WS -> driver_%s: %s", driver_id, event_type)
    return _group_send(f"driver_{driver_id}", payload)


def notify_passenger_event(
    event_type: str,
    ride,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send ride-related event to the passenger through: user_<passenger_id>

    Args:
        event_type: Handler name in consumer (ride_accepted, ride_cancelled, no_drivers_available, ...)
        ride: RideRequest model instance
        message: Optional message to include
        extra: Additional payload data

    Returns:
        True if handed to the channel layer, False otherwise
    """
    passenger_id = ride.passenger_id
    if not passenger_id:
        return False

    payload = {
        "type": event_type,
        "ride_id": str(ride.id),
        "status": ride.status,
        "ride_data": _ride_data(ride),
        **(extra or {}),
    }

    if message:
        payload["message"] = message

    logger.debug("WS -> user_%s: %s", passenger_id, event_type)
    return _group_send(f"user_{passenger_id}", payload)


def notify_ride_updated(ride, driver_id: Optional[int] = None) -> int:
    """
    Tell every observer of a ride that it changed.

    The payload only carries the ride id, status and updated_at; consumers
    re-fetch the record and derive their view from it, so duplicated or
    reordered deliveries are harmless.

    Returns:
        Number of groups the marker was handed to
    """
    payload = {
        "type": "ride_updated",
        "ride_id": str(ride.id),
        "status": ride.status,
        "updated_at": ride.updated_at.isoformat() if ride.updated_at else None,
    }

    groups = [f"ride_{ride.id}", f"user_{ride.passenger_id}"]
    holder = driver_id or ride.driver_id or ride.released_driver_id
    if holder:
        groups.append(f"driver_{holder}")

    return sum(1 for group in groups if _group_send(group, payload))
