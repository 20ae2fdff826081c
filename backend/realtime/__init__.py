"""
Realtime app for WebSocket communication.

This app provides:
- WebSocket consumers for drivers, passengers, and ride tracking
- Notification helpers pushing ride events and change markers to groups
- JWT/Cookie authentication middleware for WebSocket connections

Key Components:
    - consumers/: WebSocket consumers (driver, passenger, ride)
    - notifications.py: Ride event notification helpers

Usage:
    from realtime.consumers import DriverConsumer, PassengerConsumer, RideConsumer
    from realtime.notifications import notify_driver_event, notify_passenger_event, notify_ride_updated
"""
