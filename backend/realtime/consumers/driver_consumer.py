"""Driver WebSocket consumer for location updates, ride offers and trip views."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class DriverConsumer(BaseConsumer):
    """
    WebSocket consumer for drivers.

    Handles:
        - Driver location updates (relayed to the passenger, drives arrival detection)
        - Ride offer notifications
        - Status changes (online/offline)
    """

    async def on_connect(self):
        """Set up driver-specific groups on connection."""
        if self.role != "driver":
            await self.send_error("This endpoint is for drivers only")
            await self.close()
            return

        # Join driver-specific group for targeted notifications
        self.driver_group = f"driver_{self.user_id}"
        await self._join_group(self.driver_group)

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Driver connected successfully",
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Handle driver-specific messages."""

        if msg_type == "driver_location_update":
            await self._handle_location_update(data)
        elif msg_type == "driver_status_update":
            await self._handle_status_update(data)
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Message Handlers ----------------------

    async def _handle_location_update(self, data: Dict[str, Any]):
        """Store the driver's position; the service relays it and detects arrival."""
        from drivers.serializers import LocationUpdateSerializer

        serializer = LocationUpdateSerializer(data=data)
        if not serializer.is_valid():
            await self.send_error("driver_location_update requires valid latitude and longitude")
            return

        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]
        await self._update_driver_location_db(lat, lon)

        logger.debug("Driver %s location update: lat=%s, lon=%s", self.user_id, lat, lon)

    async def _handle_status_update(self, data: Dict[str, Any]):
        """Handle driver status change (online/offline)."""
        status = data.get("status")

        if status not in ["online", "offline"]:
            await self.send_error("Invalid status. Must be: online or offline")
            return

        updated = await self._update_driver_status_db(status)
        if not updated:
            await self.send_error("Finish or cancel your current ride first")
            return

        await self.send_success("status_updated", status=status)

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _update_driver_location_db(self, lat, lon):
        from drivers import services

        profile = self.user.driver_profile
        services.update_driver_location(profile, lat, lon)

    @database_sync_to_async
    def _update_driver_status_db(self, status: str) -> bool:
        from drivers import services
        from drivers.models import DriverProfile

        profile = DriverProfile.objects.get(user_id=self.user_id)
        return services.update_driver_status(profile, status)
