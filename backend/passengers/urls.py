# passengers/urls.py

from django.urls import path

from .views.rides import (
    PassengerCreateRideRequestView,
    PassengerCurrentRideView,
    PassengerCancelRideView,
    PassengerRetryRideView,
)

app_name = "passengers"

urlpatterns = [
    path("request/", PassengerCreateRideRequestView.as_view(), name="create-ride"),
    path("current/", PassengerCurrentRideView.as_view(), name="current-ride"),
    path("<uuid:ride_id>/cancel/", PassengerCancelRideView.as_view(), name="cancel-ride"),
    path("<uuid:ride_id>/retry/", PassengerRetryRideView.as_view(), name="retry-ride"),
]
