"""
Driver eligibility and offer fan-out.

This module handles:
    - Selecting the drivers eligible to see a new ride request
    - Fanning the request out to every eligible driver at once
    - Withdrawing outstanding offers once the ride is taken or ends
    - Listing the pending rides a polling driver may still accept
"""

from .eligibility import eligible_drivers
from .offer_dispatch import (
    dispatch_ride,
    offer_ride_to_driver,
    withdraw_open_offers,
    open_requests_for_driver,
)

__all__ = [
    "eligible_drivers",
    "dispatch_ride",
    "offer_ride_to_driver",
    "withdraw_open_offers",
    "open_requests_for_driver",
]
