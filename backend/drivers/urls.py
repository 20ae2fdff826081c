from django.urls import path
from .views import (
    DriverProfileView,
    DriverStatusView,
    DriverLocationUpdateView,
    DriverPendingRequestsView,
    DriverDeclineRideView,
    DriverAcceptRideView,
    DriverAdvanceRideView,
    DriverCancelRideView,
    DriverCurrentRideView,
)

app_name = "drivers"

urlpatterns = [
    path("profile/", DriverProfileView.as_view(), name="profile"),
    path("status/", DriverStatusView.as_view(), name="status"),
    path("location/", DriverLocationUpdateView.as_view(), name="location"),
    path("requests/", DriverPendingRequestsView.as_view(), name="pending-requests"),
    path("current-ride/", DriverCurrentRideView.as_view(), name="current-ride"),
    path("rides/<uuid:ride_id>/decline/", DriverDeclineRideView.as_view(), name="decline-ride"),
    path("rides/<uuid:ride_id>/accept/", DriverAcceptRideView.as_view(), name="accept-ride"),
    path("rides/<uuid:ride_id>/advance/", DriverAdvanceRideView.as_view(), name="advance-ride"),
    path("rides/<uuid:ride_id>/cancel/", DriverCancelRideView.as_view(), name="cancel-ride"),
]
