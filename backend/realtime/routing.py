"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.driver_consumer import DriverConsumer
from .consumers.passenger_consumer import PassengerConsumer
from .consumers.ride_consumer import RideConsumer

websocket_urlpatterns = [
    # Offers, ride events and trip views for drivers
    # URL: ws://localhost:8000/ws/driver/?token=<access>
    re_path(r"ws/driver/$", DriverConsumer.as_asgi(), name="driver-ws"),

    # Ride events and trip views for passengers
    # URL: ws://localhost:8000/ws/passenger/?token=<access>
    re_path(r"ws/passenger/$", PassengerConsumer.as_asgi(), name="passenger-ws"),

    # Following a single ride (shared by both roles)
    # URL: ws://localhost:8000/ws/ride/?token=<access>
    re_path(r"ws/ride/$", RideConsumer.as_asgi(), name="ride-ws"),
]
