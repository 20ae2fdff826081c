# passengers/views/rides.py

from django.conf import settings
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from ..permissions import IsPassenger
from rides.serializers import RideCancelSerializer
from common.responses import ride_result_response, trip_view_response
from services.ride_management import (
    ride_store,
    create_ride_request,
    retry_ride_request,
    cancel_ride_by_passenger,
    ActiveRideExistsError,
    RideNotFoundError,
)


class PassengerCreateRideRequestView(APIView):
    """
    POST: Passenger creates a ride request.
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def post(self, request):
        try:
            result = create_ride_request(request.user, request.data)
        except ActiveRideExistsError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        duplicate = bool(result.extra and result.extra.get("duplicate"))
        return ride_result_response(
            result,
            success_status=status.HTTP_200_OK if duplicate else status.HTTP_201_CREATED,
            request=request,
        )


class PassengerCurrentRideView(APIView):
    """
    GET: Passenger polling endpoint; also rebuilds the trip screen after a reconnect.
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def get(self, request):
        ride = ride_store.find_active_for(request.user, "passenger")
        return trip_view_response(
            ride,
            "passenger",
            poll_interval=settings.TRIP_STATUS_POLLING_INTERVAL_SECONDS,
            request=request,
        )


class PassengerCancelRideView(APIView):
    """
    POST: Passenger cancels a ride.
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def post(self, request, ride_id):
        serializer = RideCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = cancel_ride_by_passenger(
                request.user,
                ride_id,
                reason_code=serializer.validated_data["reason_code"],
                custom_reason=serializer.validated_data.get("custom_reason"),
            )
        except RideNotFoundError:
            return Response({"error": "Ride not found"}, status=status.HTTP_404_NOT_FOUND)

        return ride_result_response(result, request=request)


class PassengerRetryRideView(APIView):
    """
    POST: Request the same trip again after no driver was found or the driver cancelled.
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def post(self, request, ride_id):
        try:
            result = retry_ride_request(request.user, ride_id)
        except RideNotFoundError:
            return Response({"error": "Ride not found"}, status=status.HTTP_404_NOT_FOUND)
        except ActiveRideExistsError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return ride_result_response(result, success_status=status.HTTP_201_CREATED, request=request)
