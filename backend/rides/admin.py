"""Tells what to show in the Django admin interface for rides app"""

from django.contrib import admin
from .models import RideRequest, RideOffer, RideCancellation

@admin.register(RideRequest)
class RideRequestAdmin(admin.ModelAdmin):
    """Ride Request admin"""
    list_display = ['id', 'passenger', 'driver', 'status', 'service_id', 'created_at', 'accepted_at', 'completed_at']
    list_filter = ['status', 'service_id', 'created_at']
    search_fields = ['passenger__username', 'driver__username', 'origin_address', 'destination_address']
    readonly_fields = [
        'created_at', 'updated_at', 'accepted_at', 'driver_arrived_at_origin_at',
        'trip_started_at', 'driver_arrived_at_destination_at', 'completed_at',
    ]
    date_hierarchy = 'created_at'


@admin.register(RideOffer)
class RideOfferAdmin(admin.ModelAdmin):
    list_display = ("ride", "driver", "status", "sent_at", "responded_at")
    list_filter = ("status",)
    search_fields = ("ride__id", "driver__username")


@admin.register(RideCancellation)
class RideCancellationAdmin(admin.ModelAdmin):
    list_display = ("ride", "cancelled_by", "canceller_role", "reason_code", "changed_status", "created_at")
    list_filter = ("canceller_role", "changed_status")
    search_fields = ("ride__id", "cancelled_by__username")
