from rest_framework import serializers
from django.contrib.auth import authenticate

from .models import User
from drivers.models import DriverProfile


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "role",
            "phone_number",
            "completed_rides",
        ]
        read_only_fields = ["id", "completed_rides"]


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        user = authenticate(username=data["username"], password=data["password"])
        if not user:
            raise serializers.ValidationError("Invalid username or password")
        return user


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True)
    vehicle_number = serializers.CharField(required=False)
    vehicle_model = serializers.CharField(required=False, allow_blank=True)
    vehicle_color = serializers.CharField(required=False, allow_blank=True)

    class Meta:
        model = User
        fields = [
            'username', 'password', 'email', 'role', 'phone_number',
            'vehicle_number', 'vehicle_model', 'vehicle_color',
        ]

    def validate_email(self, value):
        if value and User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email already exists")
        return value

    def validate(self, data):
        # If registering as driver, vehicle_number is required
        if data['role'] == User.ROLE_DRIVER and not data.get('vehicle_number'):
            raise serializers.ValidationError({
                'vehicle_number': 'Vehicle number is required for drivers'
            })
        return data

    def create(self, validated_data):
        vehicle_fields = {
            key: validated_data.pop(key)
            for key in ('vehicle_number', 'vehicle_model', 'vehicle_color')
            if key in validated_data
        }

        user = User.objects.create_user(
            username=validated_data['username'],
            email=validated_data.get('email', ''),
            password=validated_data['password'],
            role=validated_data['role'],
            phone_number=validated_data['phone_number']
        )

        # Drivers start offline and unverified until an operator approves them
        if user.is_driver:
            DriverProfile.objects.create(user=user, **vehicle_fields)

        return user
