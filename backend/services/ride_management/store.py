"""
Durable ride record access.

Every mutation after creation is a single conditional UPDATE: the row is
written only if it still satisfies the expected predicate. This is the one
concurrency-control primitive of the system; no row locks, no
read-modify-write.
"""

import logging
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError
from django.db.models import Q
from django.utils import timezone

from rides.models import (
    RideRequest,
    NON_TERMINAL_STATUSES,
    ACTIVE_ASSIGNED_STATUSES,
)
from .exceptions import RideConflictError, RideNotFoundError

logger = logging.getLogger(__name__)


class RideRequestStore:
    """Single source of truth for ride records."""

    def create(self, **payload) -> RideRequest:
        ride = RideRequest.objects.create(**payload)
        logger.info("Created ride %s for passenger %s", ride.id, ride.passenger_id)
        return ride

    def get(self, ride_id) -> RideRequest:
        try:
            return RideRequest.objects.get(pk=ride_id)
        except (RideRequest.DoesNotExist, ValidationError, ValueError):
            raise RideNotFoundError(f"Ride {ride_id} not found")

    def conditional_update(self, ride_id, expected: Q, patch: Dict[str, Any]) -> RideRequest:
        """
        Apply ``patch`` only if the stored ride still matches ``expected``.

        Args:
            ride_id: Ride primary key
            expected: Predicate the stored row must satisfy at write time
            patch: Field values (or F expressions) to write

        Returns:
            The freshly stored ride

        Raises:
            RideNotFoundError: The ride does not exist
            RideConflictError: The ride exists but no longer matches
        """
        values = dict(patch)
        values["updated_at"] = timezone.now()

        updated = RideRequest.objects.filter(Q(pk=ride_id) & expected).update(**values)
        if updated == 0:
            if not RideRequest.objects.filter(pk=ride_id).exists():
                raise RideNotFoundError(f"Ride {ride_id} not found")
            raise RideConflictError(f"Ride {ride_id} no longer matches the expected state")

        return RideRequest.objects.get(pk=ride_id)

    def find_active_for(self, party, role: str) -> Optional[RideRequest]:
        """Most recent non-terminal ride tied to a passenger or driver."""
        if role == "passenger":
            return (
                RideRequest.objects.filter(passenger=party, status__in=NON_TERMINAL_STATUSES)
                .order_by("-created_at")
                .first()
            )
        if role == "driver":
            return (
                RideRequest.objects.filter(driver=party, status__in=ACTIVE_ASSIGNED_STATUSES)
                .order_by("-accepted_at")
                .first()
            )
        raise ValueError(f"Unknown role: {role}")


ride_store = RideRequestStore()
