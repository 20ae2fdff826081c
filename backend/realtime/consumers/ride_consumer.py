"""Ride tracking WebSocket consumer for following one ride."""

import logging
from typing import Dict, Any, Set

from channels.db import database_sync_to_async

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class RideConsumer(BaseConsumer):
    """
    WebSocket consumer for ride tracking.

    Used by both drivers and passengers to follow a ride they are party to
    through the ``ride_<ride_id>`` group.
    """

    async def on_connect(self):
        """Set up ride tracking connection."""
        self.joined_rides: Set[str] = set()

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Ride tracking connection established",
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Handle ride tracking messages."""

        if msg_type == "start_tracking":
            await self._handle_start_tracking(data)
        elif msg_type == "stop_tracking":
            await self._handle_stop_tracking(data)
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Message Handlers ----------------------

    async def _handle_start_tracking(self, data: Dict[str, Any]):
        ride_id = data.get("ride_id")

        if ride_id is None:
            await self.send_error("start_tracking requires ride_id")
            return

        is_valid = await self._validate_ride_participant(ride_id)
        if not is_valid:
            await self.send_error("You are not authorized to track this ride")
            return

        ride_group = f"ride_{ride_id}"
        await self._join_group(ride_group)
        self.joined_rides.add(ride_group)

        await self.send_success("tracking_started", ride_id=ride_id)
        await self.send_trip_view(ride_id)

    async def _handle_stop_tracking(self, data: Dict[str, Any]):
        ride_id = data.get("ride_id")
        ride_group = f"ride_{ride_id}"

        if ride_group in self.joined_rides:
            await self._leave_group(ride_group)
            self.joined_rides.discard(ride_group)

        await self.send_success("tracking_stopped", ride_id=ride_id)

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _validate_ride_participant(self, ride_id) -> bool:
        from services.ride_management import ride_store, RideNotFoundError

        try:
            ride = ride_store.get(ride_id)
        except RideNotFoundError:
            return False
        return self.user_id in (ride.passenger_id, ride.driver_id, ride.released_driver_id)
