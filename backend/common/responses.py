"""Turn ride service results into HTTP responses."""

from rest_framework import status
from rest_framework.response import Response

from rides.serializers import RideRequestSerializer

# Failures the client fixes by changing its request, not by resetting
CLIENT_ERRORS = ("not_retryable",)


def ride_result_response(result, success_status=status.HTTP_200_OK, request=None) -> Response:
    """
    Successful results carry the ride. Lost races answer 409 with
    ``reset: true`` so the client drops back to its idle screen.
    """
    ride_data = (
        RideRequestSerializer(result.ride, context={"request": request}).data
        if result.ride is not None else None
    )

    if result.success:
        body = {"message": result.message, "ride": ride_data}
        body.update(result.extra or {})
        return Response(body, status=success_status)

    if result.error_code in CLIENT_ERRORS:
        return Response(
            {"error": result.message, "error_code": result.error_code, "ride": ride_data},
            status=status.HTTP_400_BAD_REQUEST,
        )

    return Response(
        {
            "error": result.message,
            "error_code": result.error_code,
            "reset": True,
            "ride": ride_data,
        },
        status=status.HTTP_409_CONFLICT,
    )


def trip_view_response(ride, role, poll_interval=None, request=None) -> Response:
    """
    Current-ride answer shared by passenger and driver polling. The view and
    the serialized ride come from the same read of ``ride``.
    """
    from services.ride_management.recovery import build_view

    if ride is None:
        return Response({
            "has_active_ride": False,
            "message": "No active ride found",
            "poll_interval_seconds": poll_interval,
        })

    return Response({
        "has_active_ride": True,
        "view": build_view(ride, role).as_dict(),
        "ride": RideRequestSerializer(ride, context={"request": request}).data,
        "poll_interval_seconds": poll_interval,
    })
