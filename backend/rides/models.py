import uuid

from django.db import models
from django.conf import settings


# ---------------------- Ride status vocabulary ----------------------

PENDING = 'pending'
ACCEPTED = 'accepted'
DRIVER_EN_ROUTE_TO_ORIGIN = 'driver_en_route_to_origin'
DRIVER_AT_ORIGIN = 'driver_at_origin'
TRIP_STARTED = 'trip_started'
DRIVER_AT_DESTINATION = 'driver_at_destination'
TRIP_COMPLETED = 'trip_completed'
CANCELLED_BY_PASSENGER = 'cancelled_by_passenger'
CANCELLED_BY_DRIVER = 'cancelled_by_driver'
NO_DRIVERS_AVAILABLE = 'no_drivers_available'
TIMED_OUT_PASSENGER = 'timed_out_passenger'

STATUS_CHOICES = [
    (PENDING, 'Pending'),
    (ACCEPTED, 'Accepted'),
    (DRIVER_EN_ROUTE_TO_ORIGIN, 'Driver en route to pickup'),
    (DRIVER_AT_ORIGIN, 'Driver at pickup'),
    (TRIP_STARTED, 'Trip started'),
    (DRIVER_AT_DESTINATION, 'Driver at destination'),
    (TRIP_COMPLETED, 'Trip completed'),
    (CANCELLED_BY_PASSENGER, 'Cancelled by passenger'),
    (CANCELLED_BY_DRIVER, 'Cancelled by driver'),
    (NO_DRIVERS_AVAILABLE, 'No drivers available'),
    (TIMED_OUT_PASSENGER, 'Passenger did not show up'),
]

# Statuses in which a driver holds the ride
ASSIGNED_STATUSES = (
    ACCEPTED,
    DRIVER_EN_ROUTE_TO_ORIGIN,
    DRIVER_AT_ORIGIN,
    TRIP_STARTED,
    DRIVER_AT_DESTINATION,
    TRIP_COMPLETED,
)
ACTIVE_ASSIGNED_STATUSES = ASSIGNED_STATUSES[:-1]
TERMINAL_STATUSES = (
    TRIP_COMPLETED,
    CANCELLED_BY_PASSENGER,
    CANCELLED_BY_DRIVER,
    NO_DRIVERS_AVAILABLE,
    TIMED_OUT_PASSENGER,
)
NON_TERMINAL_STATUSES = (PENDING,) + ACTIVE_ASSIGNED_STATUSES

# Position along the main path; side exits rank after everything
STATUS_RANK = {
    PENDING: 0,
    ACCEPTED: 1,
    DRIVER_EN_ROUTE_TO_ORIGIN: 2,
    DRIVER_AT_ORIGIN: 3,
    TRIP_STARTED: 4,
    DRIVER_AT_DESTINATION: 5,
    TRIP_COMPLETED: 6,
    CANCELLED_BY_PASSENGER: 7,
    CANCELLED_BY_DRIVER: 7,
    NO_DRIVERS_AVAILABLE: 7,
    TIMED_OUT_PASSENGER: 7,
}


class RideRequest(models.Model):
    """A passenger's trip from creation to completion or cancellation.

    Every write after creation goes through
    ``services.ride_management.store.RideRequestStore.conditional_update``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)

    # Parties
    passenger = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='ride_requests'
    )
    is_third_party = models.BooleanField(default=False)
    passenger_name = models.CharField(max_length=150, blank=True, default='')
    passenger_phone = models.CharField(max_length=20, blank=True, default='')

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='assigned_rides'
    )
    # Driver who held the ride when it left the assigned path
    released_driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='released_rides'
    )

    # Geometry
    origin_lat = models.DecimalField(max_digits=9, decimal_places=6)
    origin_lng = models.DecimalField(max_digits=9, decimal_places=6)
    origin_address = models.TextField(blank=True, default='')
    destination_lat = models.DecimalField(max_digits=9, decimal_places=6)
    destination_lng = models.DecimalField(max_digits=9, decimal_places=6)
    destination_address = models.TextField(blank=True, default='')

    # Commercial
    service_id = models.CharField(max_length=50)
    estimated_fare = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    actual_fare = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    # Lifecycle
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=PENDING)
    accepted_at = models.DateTimeField(null=True, blank=True)
    driver_arrived_at_origin_at = models.DateTimeField(null=True, blank=True)
    trip_started_at = models.DateTimeField(null=True, blank=True)
    driver_arrived_at_destination_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now_add=True)

    # Route cache (opaque, produced by the routing provider)
    route_to_origin_polyline = models.TextField(null=True, blank=True)
    route_to_destination_polyline = models.TextField(null=True, blank=True)

    # Client correlation id for idempotent creation
    client_reference = models.CharField(max_length=64, null=True, blank=True)
    retried_from = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='retries'
    )

    class Meta:
        db_table = 'ride_requests'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['passenger', 'client_reference'],
                name='unique_passenger_client_reference'
            ),
            # At most one ride in progress per passenger
            models.UniqueConstraint(
                fields=['passenger'],
                condition=models.Q(status__in=NON_TERMINAL_STATUSES),
                name='one_active_ride_per_passenger'
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'created_at'], name='ride_status_created_idx'),
        ]

    def __str__(self):
        return f"Ride {self.id} - {self.passenger_id} - {self.status}"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def fare(self):
        return self.actual_fare if self.actual_fare is not None else self.estimated_fare


class RideOffer(models.Model):
    """Tracks which drivers were shown the ride and how each one responded.

    This is the per-driver "declined / timed out" ledger; offer changes
    never touch the ride itself.
    """

    PENDING = 'pending'
    ACCEPTED = 'accepted'
    DECLINED = 'declined'
    EXPIRED = 'expired'
    WITHDRAWN = 'withdrawn'
    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (ACCEPTED, 'Accepted'),
        (DECLINED, 'Declined'),
        (EXPIRED, 'Expired'),
        (WITHDRAWN, 'Withdrawn'),
    ]
    DISMISSED_STATUSES = (DECLINED, EXPIRED)

    ride = models.ForeignKey(
        RideRequest,
        on_delete=models.CASCADE,
        related_name='offers'
    )

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ride_offers'
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)

    sent_at = models.DateTimeField(null=True, blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['sent_at']
        constraints = [
            models.UniqueConstraint(
                fields=['ride', 'driver'],
                name='unique_ride_driver'
            )
        ]

    def __str__(self):
        return f"Offer #{self.id} - Ride {self.ride_id} -> Driver {self.driver_id} ({self.status})"


class RideCancellation(models.Model):
    """Append-only record of who cancelled a ride, when, and why."""

    ROLE_CHOICES = [
        ('passenger', 'Passenger'),
        ('driver', 'Driver'),
    ]

    ride = models.ForeignKey(
        RideRequest,
        on_delete=models.PROTECT,
        related_name='cancellations'
    )
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='ride_cancellations'
    )
    canceller_role = models.CharField(max_length=10, choices=ROLE_CHOICES)
    reason_code = models.CharField(max_length=50)
    custom_reason = models.TextField(null=True, blank=True)
    # Whether this attempt is the one that moved the ride to cancelled_by_*
    changed_status = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'ride_cancellations'
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['ride', 'cancelled_by'],
                name='unique_cancellation_per_party'
            )
        ]

    def __str__(self):
        return f"Cancellation of {self.ride_id} by {self.canceller_role} {self.cancelled_by_id}"
