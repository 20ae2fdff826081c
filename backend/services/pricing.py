"""Fare estimation from the configured fare policy."""

import logging
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings

from common.utils import calculate_distance

logger = logging.getLogger(__name__)


def estimate_fare(service_id: str, origin_lat, origin_lng, destination_lat, destination_lng) -> Decimal:
    """
    Estimate the fare for a trip using straight-line distance.

    fare = max(base_fare + price_per_km * km, min_fare, MINIMUM_FARE)
    """
    policy = settings.RIDE_FARE_POLICY[service_id]
    km = Decimal(str(calculate_distance(origin_lat, origin_lng, destination_lat, destination_lng) / 1000))

    fare = Decimal(str(policy["base_fare"])) + Decimal(str(policy["price_per_km"])) * km
    floor = max(Decimal(str(policy.get("min_fare", 0))), Decimal(str(settings.MINIMUM_FARE)))
    fare = max(fare, floor).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    logger.debug("Estimated %s fare for %.2f km: %s", service_id, km, fare)
    return fare
