from decimal import Decimal

from django.conf import settings
from rest_framework import serializers

from .models import RideRequest


class RideRequestSerializer(serializers.ModelSerializer):
    """Serializer for Ride Requests"""

    class Meta:
        model = RideRequest
        fields = [
            'id', 'created_at', 'updated_at', 'status',
            'passenger', 'is_third_party', 'passenger_name', 'passenger_phone', 'driver',
            'origin_lat', 'origin_lng', 'origin_address',
            'destination_lat', 'destination_lng', 'destination_address',
            'service_id', 'estimated_fare', 'actual_fare',
            'accepted_at', 'driver_arrived_at_origin_at', 'trip_started_at',
            'driver_arrived_at_destination_at', 'completed_at',
            'route_to_origin_polyline', 'route_to_destination_polyline',
            'client_reference', 'retried_from',
        ]
        read_only_fields = fields


class RideRequestCreateSerializer(serializers.Serializer):
    """Validates a passenger's ride request before anything is stored."""

    origin_lat = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    origin_lng = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-180, max_value=180)
    origin_address = serializers.CharField(required=False, allow_blank=True, default='')
    destination_lat = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    destination_lng = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-180, max_value=180)
    destination_address = serializers.CharField(required=False, allow_blank=True, default='')

    service_id = serializers.CharField(max_length=50)
    estimated_fare = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0'), required=False, allow_null=True
    )

    # Ride booked on someone else's behalf
    is_third_party = serializers.BooleanField(required=False, default=False)
    passenger_name = serializers.CharField(required=False, allow_blank=True, max_length=150, default='')
    passenger_phone = serializers.CharField(required=False, allow_blank=True, max_length=20, default='')

    client_reference = serializers.CharField(required=False, allow_null=True, max_length=64)

    def validate_service_id(self, value):
        if value not in settings.RIDE_FARE_POLICY:
            raise serializers.ValidationError(f"Unknown service '{value}'")
        return value

    def validate(self, data):
        if data.get('is_third_party'):
            if not data.get('passenger_name', '').strip():
                raise serializers.ValidationError({'passenger_name': 'Rider name is required for third-party rides'})
            if not data.get('passenger_phone', '').strip():
                raise serializers.ValidationError({'passenger_phone': 'Rider phone is required for third-party rides'})

        if (data['origin_lat'], data['origin_lng']) == (data['destination_lat'], data['destination_lng']):
            raise serializers.ValidationError('Origin and destination must differ')
        return data


class RideCancelSerializer(serializers.Serializer):
    """Serializer for ride cancellation"""
    reason_code = serializers.CharField(max_length=50, required=False, default='unspecified')
    custom_reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class PhaseAdvanceSerializer(serializers.Serializer):
    """Driver request to move an accepted ride to its next phase."""
    status = serializers.CharField(max_length=32)

