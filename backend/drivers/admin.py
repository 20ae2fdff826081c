from django.contrib import admin
from drivers.models import DriverProfile


@admin.register(DriverProfile)
class DriverProfileAdmin(admin.ModelAdmin):
    """Admin panel for managing Driver Profiles"""

    list_display = [
        "user",
        "vehicle_number",
        "status",
        "is_verified",
        "current_latitude",
        "current_longitude",
        "last_location_update",
    ]
    list_filter = ["status", "is_verified"]
    list_editable = ["is_verified"]
    search_fields = ["user__username", "vehicle_number"]
    readonly_fields = ["last_location_update"]
    ordering = ("user__username",)
