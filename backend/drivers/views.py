from django.conf import settings
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from drivers.models import DriverProfile
from drivers.permissions import IsDriver
from drivers.serializers import (
    DriverProfileSerializer,
    DriverStatusSerializer,
    LocationUpdateSerializer,
)
from rides.serializers import RideRequestSerializer, RideCancelSerializer, PhaseAdvanceSerializer
from common.responses import ride_result_response, trip_view_response
from services.matching import open_requests_for_driver
from services.ride_management import (
    ride_store,
    accept_ride,
    advance_phase,
    cancel_ride_by_driver,
    decline_offer,
    RideNotFoundError,
    DriverNotAvailableError,
    InvalidTransitionError,
)

from drivers import services


class DriverProfileView(APIView):
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        serializer = DriverProfileSerializer(request.user.driver_profile, context={"request": request})
        return Response(serializer.data)


#    NOTE: WS can replace this in future, but HTTP fallback remains.
class DriverStatusView(APIView):
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        profile = request.user.driver_profile
        return Response({"status": profile.status, "is_verified": profile.is_verified})

    def put(self, request):
        profile = request.user.driver_profile

        serializer = DriverStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"]

        if not services.update_driver_status(profile, new_status):
            return Response(
                {"error": "Finish or cancel your current ride first", "status": DriverProfile.STATUS_BUSY},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response({
            "message": f"Status updated to {new_status}",
            "status": new_status
        })


#    A candidate to move fully to WS. Keep HTTP fallback.
class DriverLocationUpdateView(APIView):
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        profile = request.user.driver_profile
        return Response({
            "latitude": float(profile.current_latitude) if profile.current_latitude is not None else None,
            "longitude": float(profile.current_longitude) if profile.current_longitude is not None else None,
            "last_updated": profile.last_location_update,
            "status": profile.status,
        })

    def post(self, request):
        profile = request.user.driver_profile

        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]

        services.update_driver_location(profile, lat, lon)

        return Response({
            "message": "Location updated",
            "latitude": float(lat),
            "longitude": float(lon),
            "status": profile.status
        })


class DriverPendingRequestsView(APIView):
    """
    GET: Polling fallback listing the pending rides this driver may accept.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        profile = request.user.driver_profile
        poll_interval = settings.DRIVER_REQUEST_POLLING_INTERVAL_SECONDS

        if profile.status != DriverProfile.STATUS_ONLINE or not profile.is_verified:
            return Response({
                "rides": [],
                "count": 0,
                "message": "Go online to receive ride requests.",
                "poll_interval_seconds": poll_interval,
            })

        rides = open_requests_for_driver(request.user)
        serialized = RideRequestSerializer(rides, many=True, context={"request": request})

        return Response({
            "rides": serialized.data,
            "count": len(serialized.data),
            "poll_interval_seconds": poll_interval,
        })


class DriverDeclineRideView(APIView):
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, ride_id):
        try:
            declined = decline_offer(request.user, ride_id)
        except RideNotFoundError:
            return Response({"error": "Ride not found"}, status=status.HTTP_404_NOT_FOUND)

        return Response({"message": "Offer declined.", "declined": declined})


class DriverAcceptRideView(APIView):
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, ride_id):
        try:
            result = accept_ride(request.user, ride_id)
        except DriverNotAvailableError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return ride_result_response(result, request=request)


class DriverAdvanceRideView(APIView):
    """
    POST: Move the held ride to its next phase, e.g. {"status": "trip_started"}.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, ride_id):
        serializer = PhaseAdvanceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = advance_phase(request.user, ride_id, serializer.validated_data["status"])
        except InvalidTransitionError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return ride_result_response(result, request=request)


class DriverCancelRideView(APIView):
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, ride_id):
        serializer = RideCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = cancel_ride_by_driver(
                request.user,
                ride_id,
                reason_code=serializer.validated_data["reason_code"],
                custom_reason=serializer.validated_data.get("custom_reason"),
            )
        except RideNotFoundError:
            return Response({"error": "Ride not found"}, status=status.HTTP_404_NOT_FOUND)

        return ride_result_response(result, request=request)


class DriverCurrentRideView(APIView):
    """
    GET: Rebuild the driver's trip screen after a reconnect; also the polling endpoint.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        ride = ride_store.find_active_for(request.user, "driver")
        return trip_view_response(
            ride,
            "driver",
            poll_interval=settings.TRIP_STATUS_POLLING_INTERVAL_SECONDS,
            request=request,
        )
