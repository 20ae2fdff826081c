from unittest.mock import patch

from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from rides.models import RideRequest, RideCancellation, PENDING, CANCELLED_BY_PASSENGER, NO_DRIVERS_AVAILABLE
from rides.tests.helpers import make_passenger, make_driver, make_ride, ride_payload
from services.ride_management import accept_ride
from .views.rides import (
	PassengerCreateRideRequestView,
	PassengerCurrentRideView,
	PassengerCancelRideView,
	PassengerRetryRideView,
)


class PassengerRideApiTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.passenger = make_passenger()
		self.driver = make_driver('driver_one', 'WB-1001')

	def post(self, view, path, data=None, user=None, **kwargs):
		request = self.factory.post(path, data or {}, format='json')
		force_authenticate(request, user=User.objects.get(pk=(user or self.passenger).pk))
		return view.as_view()(request, **kwargs)

	def get_current(self):
		request = self.factory.get('/api/passenger/current/')
		force_authenticate(request, user=User.objects.get(pk=self.passenger.pk))
		return PassengerCurrentRideView.as_view()(request)

	def test_create_ride_request(self):
		response = self.post(PassengerCreateRideRequestView, '/api/passenger/request/', ride_payload())

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['ride']['status'], PENDING)
		self.assertEqual(response.data['drivers_notified'], 1)

	def test_repeated_submission_returns_existing_ride(self):
		payload = ride_payload(client_reference='tap-1')
		first = self.post(PassengerCreateRideRequestView, '/api/passenger/request/', payload)
		second = self.post(PassengerCreateRideRequestView, '/api/passenger/request/', payload)

		self.assertEqual(first.status_code, 201)
		self.assertEqual(second.status_code, 200)
		self.assertEqual(first.data['ride']['id'], second.data['ride']['id'])
		self.assertEqual(RideRequest.objects.count(), 1)

	def test_second_active_ride_is_refused(self):
		make_ride(self.passenger)

		response = self.post(PassengerCreateRideRequestView, '/api/passenger/request/', ride_payload())

		self.assertEqual(response.status_code, 400)

	def test_invalid_payload_is_refused(self):
		response = self.post(
			PassengerCreateRideRequestView, '/api/passenger/request/', ride_payload(origin_lat='95')
		)

		self.assertEqual(response.status_code, 400)
		self.assertIn('origin_lat', response.data)

	def test_drivers_cannot_request_rides(self):
		response = self.post(
			PassengerCreateRideRequestView, '/api/passenger/request/', ride_payload(), user=self.driver
		)

		self.assertEqual(response.status_code, 403)

	def test_current_ride_reports_searching_then_assigned(self):
		self.assertFalse(self.get_current().data['has_active_ride'])

		ride = make_ride(self.passenger)
		searching = self.get_current()
		self.assertTrue(searching.data['has_active_ride'])
		self.assertEqual(searching.data['view']['phase'], 'searching')
		self.assertEqual(searching.data['poll_interval_seconds'], 3)

		accept_ride(self.driver, ride.id)
		assigned = self.get_current()
		self.assertEqual(assigned.data['view']['phase'], 'en_route_to_origin')
		self.assertEqual(assigned.data['view']['counterpart_id'], self.driver.id)
		self.assertEqual(assigned.data['ride']['driver'], self.driver.id)

	def test_cancel_pending_ride(self):
		ride = make_ride(self.passenger)

		response = self.post(
			PassengerCancelRideView, f'/api/passenger/{ride.id}/cancel/',
			{'reason_code': 'changed_mind'}, ride_id=ride.id
		)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['ride']['status'], CANCELLED_BY_PASSENGER)
		self.assertFalse(response.data['was_assigned'])
		self.assertEqual(RideCancellation.objects.get(ride=ride).reason_code, 'changed_mind')

	def test_cancel_after_ride_ended_is_conflict(self):
		ride = make_ride(self.passenger, status=NO_DRIVERS_AVAILABLE)

		response = self.post(PassengerCancelRideView, f'/api/passenger/{ride.id}/cancel/', ride_id=ride.id)

		self.assertEqual(response.status_code, 409)
		self.assertTrue(response.data['reset'])
		self.assertEqual(response.data['error_code'], 'ride_moved_on')

	def test_cancel_someone_elses_ride_is_not_found(self):
		ride = make_ride(make_passenger('other', '9000000001'))

		response = self.post(PassengerCancelRideView, f'/api/passenger/{ride.id}/cancel/', ride_id=ride.id)

		self.assertEqual(response.status_code, 404)
		self.assertEqual(RideRequest.objects.get(pk=ride.id).status, PENDING)

	@patch('realtime.notifications._group_send', return_value=True)
	def test_cancel_assigned_ride_frees_the_driver(self, mock_send):
		ride = make_ride(self.passenger)
		accept_ride(self.driver, ride.id)

		response = self.post(PassengerCancelRideView, f'/api/passenger/{ride.id}/cancel/', ride_id=ride.id)

		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['was_assigned'])
		self.assertEqual(User.objects.get(pk=self.driver.pk).driver_profile.status, 'online')
		sent = [(c.args[0], c.args[1]['type']) for c in mock_send.call_args_list]
		self.assertIn((f'driver_{self.driver.id}', 'ride_cancelled'), sent)

	def test_retry_after_no_drivers_available(self):
		ride = make_ride(self.passenger, status=NO_DRIVERS_AVAILABLE)

		response = self.post(PassengerRetryRideView, f'/api/passenger/{ride.id}/retry/', ride_id=ride.id)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['ride']['retried_from'], ride.id)
		self.assertEqual(response.data['ride']['status'], PENDING)

	def test_retry_of_active_ride_is_bad_request(self):
		ride = make_ride(self.passenger)

		response = self.post(PassengerRetryRideView, f'/api/passenger/{ride.id}/retry/', ride_id=ride.id)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error_code'], 'not_retryable')
