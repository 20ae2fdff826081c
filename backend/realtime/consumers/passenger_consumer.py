"""Passenger WebSocket consumer: ride events and trip views for the passenger."""

import logging

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class PassengerConsumer(BaseConsumer):
    """
    WebSocket consumer for passengers.

    Passenger events arrive on the personal ``user_<id>`` group joined by
    the base consumer. On connect the passenger immediately gets the trip
    view of their active ride, if any.
    """

    async def on_connect(self):
        if self.role != "passenger":
            await self.send_error("This endpoint is for passengers only")
            await self.close()
            return

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Passenger connected successfully",
        })
        await self.send_trip_view()
