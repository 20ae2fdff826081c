"""Base WebSocket consumer with shared functionality for all consumers."""

import logging
from typing import Dict, Any, Optional, Set

from channels.generic.websocket import AsyncJsonWebsocketConsumer
from channels.db import database_sync_to_async

logger = logging.getLogger(__name__)


class BaseConsumer(AsyncJsonWebsocketConsumer):
    """
    Base consumer with shared connection management and helper methods.

    Subclasses should override:
        - on_connect(): join role-specific groups
        - handle_message(msg_type, data): handle incoming messages

    Every consumer answers ``recover`` and ``ride_updated`` the same way: it
    re-reads the ride and sends the trip view derived from it, so a missed,
    repeated or reordered push never leaves the client in a wrong phase.
    """

    async def connect(self):
        self.user = self.scope["user"]

        if self.user.is_anonymous:
            await self.close()
            return

        # Basic attributes available to all consumers
        self.user_id = getattr(self.user, "id", None)
        self.role = getattr(self.user, "role", None)

        # Track joined groups for cleanup
        self.joined_groups: Set[str] = set()

        # Personal group (useful for targeted server->user messages)
        self.user_group = f"user_{self.user_id}"
        await self._join_group(self.user_group)

        await self.accept()
        await self.on_connect()

    async def on_connect(self):
        """Override in subclass for custom connect logic."""
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
        })

    async def disconnect(self, close_code):
        """Leave all joined groups on disconnect."""
        try:
            for group in list(getattr(self, "joined_groups", ())):
                await self._leave_group(group)
            await self.on_disconnect(close_code)
        except Exception:
            logger.exception("Error during disconnect for user %s", getattr(self, 'user_id', 'unknown'))

    async def on_disconnect(self, close_code):
        """Override in subclass for custom disconnect logic."""
        pass

    async def receive_json(self, data: Dict[str, Any]):
        """Route incoming messages to appropriate handlers."""
        msg_type = data.get("type")
        if not msg_type:
            await self.send_error("Message type is required")
            return

        try:
            if msg_type == "recover":
                await self.send_trip_view()
            else:
                await self.handle_message(msg_type, data)
        except Exception:
            logger.exception("Error handling message type %s", msg_type)
            await self.send_error(f"Error processing {msg_type}")

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Override in subclass to handle specific message types."""
        await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Group Management Helpers ----------------------

    async def _join_group(self, group_name: str):
        """Join a channel group and track it."""
        await self.channel_layer.group_add(group_name, self.channel_name)
        self.joined_groups.add(group_name)

    async def _leave_group(self, group_name: str):
        """Leave a channel group and untrack it."""
        await self.channel_layer.group_discard(group_name, self.channel_name)
        self.joined_groups.discard(group_name)

    # ---------------------- Response Helpers ----------------------

    async def send_error(self, message: str):
        """Send an error message to the client."""
        await self.send_json({
            "type": "error",
            "message": message,
        })

    async def send_success(self, event_type: str, **kwargs):
        """Send a success response to the client."""
        await self.send_json({
            "type": event_type,
            **kwargs,
        })

    # ---------------------- Trip View ----------------------

    async def send_trip_view(self, ride_id=None):
        """Send the trip view for ``ride_id``, or for the caller's active ride."""
        view = await self._load_trip_view(ride_id)
        await self.send_json({
            "type": "trip_view",
            "has_active_ride": view is not None,
            "view": view,
        })

    @database_sync_to_async
    def _load_trip_view(self, ride_id=None) -> Optional[Dict[str, Any]]:
        from services.ride_management import ride_store, RideNotFoundError
        from services.ride_management.recovery import build_view, recover_for_driver, recover_for_passenger

        if ride_id is None:
            recover = recover_for_driver if self.role == "driver" else recover_for_passenger
            view = recover(self.user)
            return view.as_dict() if view else None

        try:
            ride = ride_store.get(ride_id)
        except RideNotFoundError:
            return None

        if self.user_id == ride.passenger_id:
            return build_view(ride, "passenger").as_dict()
        if self.user_id in (ride.driver_id, ride.released_driver_id):
            return build_view(ride, "driver").as_dict()
        return None

    # ---------------------- Common Event Handlers ----------------------
    # These handle group_send events from server-side code

    async def ride_updated(self, event):
        """A ride this connection observes changed; re-derive and send the view."""
        await self.send_trip_view(event.get("ride_id"))

    async def ride_offer(self, event):
        """Sent by server to a driver to offer a ride."""
        await self.send_json({
            "type": "new_ride_request",
            "ride": event.get("ride_data"),
            "offer_id": event.get("offer_id"),
            "expires_in": event.get("expires_in"),
        })

    async def forward_ride_event(self, event):
        """Pass a ride event through to the client."""
        await self.send_json({
            "type": event["type"],
            "ride_id": event.get("ride_id"),
            "status": event.get("status"),
            "message": event.get("message", ""),
            "ride": event.get("ride_data", {}),
        })

    # Driver-facing
    ride_taken = forward_ride_event
    offer_expired = forward_ride_event
    ride_cancelled = forward_ride_event

    # Passenger-facing
    ride_accepted = forward_ride_event
    driver_en_route = forward_ride_event
    driver_arrived = forward_ride_event
    trip_started = forward_ride_event
    driver_at_destination = forward_ride_event
    ride_completed = forward_ride_event
    no_drivers_available = forward_ride_event
    no_drivers_online = forward_ride_event

    async def driver_location(self, event):
        """Position of the driver holding the passenger's ride."""
        await self.send_json({
            "type": "driver_location",
            "ride_id": event.get("ride_id"),
            "latitude": event.get("latitude"),
            "longitude": event.get("longitude"),
        })
