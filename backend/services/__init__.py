"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - ride_management: Ride lifecycle, races, timeouts and recovery
    - matching: Driver eligibility and offer fan-out
    - routing: Route polylines from OSRM with a straight-line fallback
    - pricing: Fare estimates from the configured fare policy
"""
