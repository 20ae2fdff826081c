from rest_framework import serializers
from drivers.models import DriverProfile
from accounts.serializers import UserSerializer


class DriverProfileSerializer(serializers.ModelSerializer):
    """
    Full driver profile serializer
    """
    user = UserSerializer(read_only=True)

    class Meta:
        model = DriverProfile
        fields = [
            "id",
            "user",
            "vehicle_number",
            "vehicle_model",
            "vehicle_color",
            "is_verified",
            "status",
            "current_latitude",
            "current_longitude",
            "last_location_update",
        ]
        read_only_fields = ["id", "is_verified", "status", "last_location_update"]


class DriverStatusSerializer(serializers.Serializer):
    """
    Serializer for updating driver availability (online/offline).
    Busy is set by the ride flow, never by the driver.
    """
    status = serializers.ChoiceField(choices=[DriverProfile.STATUS_ONLINE, DriverProfile.STATUS_OFFLINE])


class LocationUpdateSerializer(serializers.Serializer):
    """
    Serializer for updating driver GPS location.
    """
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-180, max_value=180)
