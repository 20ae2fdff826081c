"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer
from .driver_consumer import DriverConsumer
from .passenger_consumer import PassengerConsumer
from .ride_consumer import RideConsumer

__all__ = [
    "BaseConsumer",
    "DriverConsumer",
    "PassengerConsumer",
    "RideConsumer",
]
