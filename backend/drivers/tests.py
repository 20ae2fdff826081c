from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from drivers.models import DriverProfile
from rides.models import (
	RideOffer,
	RideRequest,
	ACCEPTED,
	DRIVER_EN_ROUTE_TO_ORIGIN,
	DRIVER_AT_ORIGIN,
	TRIP_STARTED,
	DRIVER_AT_DESTINATION,
	CANCELLED_BY_DRIVER,
)
from rides.tests.helpers import make_passenger, make_driver, make_ride, ORIGIN, DESTINATION
from services.matching import dispatch_ride
from services.ride_management import accept_ride, ride_store
from drivers import services
from .views import (
	DriverStatusView,
	DriverLocationUpdateView,
	DriverPendingRequestsView,
	DriverDeclineRideView,
	DriverAcceptRideView,
	DriverAdvanceRideView,
	DriverCancelRideView,
	DriverCurrentRideView,
)


class DriverApiTestCase(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.passenger = make_passenger()
		self.driver = make_driver(
			'driver_one', 'WB-1001',
			latitude=Decimal('28.600000'), longitude=Decimal('77.200000')
		)

	def call(self, view, method='post', data=None, user=None, **kwargs):
		# Fresh user per request, like the auth layer would load it
		user = User.objects.get(pk=(user or self.driver).pk)
		if method == 'get':
			request = self.factory.get('/api/driver/')
		else:
			request = getattr(self.factory, method)('/api/driver/', data or {}, format='json')
		force_authenticate(request, user=user)
		return view.as_view()(request, **kwargs)

	def profile(self, user=None):
		return DriverProfile.objects.get(user=user or self.driver)


class DriverStatusApiTests(DriverApiTestCase):
	def test_driver_goes_offline_and_online(self):
		response = self.call(DriverStatusView, 'put', {'status': 'offline'})

		self.assertEqual(response.status_code, 200)
		self.assertEqual(self.profile().status, DriverProfile.STATUS_OFFLINE)

		self.call(DriverStatusView, 'put', {'status': 'online'})
		self.assertEqual(self.profile().status, DriverProfile.STATUS_ONLINE)

	def test_driver_cannot_set_busy(self):
		response = self.call(DriverStatusView, 'put', {'status': 'busy'})

		self.assertEqual(response.status_code, 400)

	def test_busy_driver_cannot_go_offline(self):
		DriverProfile.objects.filter(user=self.driver).update(status=DriverProfile.STATUS_BUSY)

		response = self.call(DriverStatusView, 'put', {'status': 'offline'})

		self.assertEqual(response.status_code, 400)
		self.assertEqual(self.profile().status, DriverProfile.STATUS_BUSY)

	def test_stale_profile_cannot_overwrite_busy(self):
		# Read while online, then an accept claims the driver
		stale = self.profile()
		DriverProfile.objects.filter(user=self.driver).update(status=DriverProfile.STATUS_BUSY)

		changed = services.update_driver_status(stale, DriverProfile.STATUS_OFFLINE)

		self.assertFalse(changed)
		self.assertEqual(self.profile().status, DriverProfile.STATUS_BUSY)

	def test_passengers_are_forbidden(self):
		response = self.call(DriverStatusView, 'get', user=self.passenger)

		self.assertEqual(response.status_code, 403)


class DriverLocationApiTests(DriverApiTestCase):
	def test_location_is_stored(self):
		response = self.call(DriverLocationUpdateView, data={'latitude': '28.610000', 'longitude': '77.210000'})

		self.assertEqual(response.status_code, 200)
		profile = self.profile()
		self.assertEqual(profile.current_latitude, Decimal('28.610000'))
		self.assertEqual(profile.current_longitude, Decimal('77.210000'))

	def test_out_of_range_location_is_rejected(self):
		response = self.call(DriverLocationUpdateView, data={'latitude': '123', 'longitude': '77.21'})

		self.assertEqual(response.status_code, 400)

	@patch('realtime.notifications._group_send', return_value=True)
	def test_passenger_sees_driver_position(self, mock_send):
		ride = make_ride(self.passenger)
		accept_ride(self.driver, ride.id)
		mock_send.reset_mock()

		self.call(DriverLocationUpdateView, data={'latitude': '28.605000', 'longitude': '77.205000'})

		group, payload = mock_send.call_args_list[0].args
		self.assertEqual(group, f'user_{self.passenger.id}')
		self.assertEqual(payload['type'], 'driver_location')
		self.assertEqual(payload['latitude'], 28.605)

	def test_reaching_pickup_point_marks_arrival(self):
		ride = make_ride(self.passenger)
		accept_ride(self.driver, ride.id)

		self.call(DriverLocationUpdateView, data={'latitude': str(ORIGIN[0]), 'longitude': str(ORIGIN[1])})

		ride.refresh_from_db()
		self.assertEqual(ride.status, DRIVER_AT_ORIGIN)
		self.assertIsNotNone(ride.driver_arrived_at_origin_at)

	def test_reaching_drop_off_point_marks_arrival(self):
		ride = make_ride(self.passenger, status=TRIP_STARTED, driver=self.driver)

		self.call(
			DriverLocationUpdateView,
			data={'latitude': str(DESTINATION[0]), 'longitude': str(DESTINATION[1])}
		)

		ride.refresh_from_db()
		self.assertEqual(ride.status, DRIVER_AT_DESTINATION)

	def test_far_from_pickup_nothing_changes(self):
		ride = make_ride(self.passenger)
		accept_ride(self.driver, ride.id)

		self.call(DriverLocationUpdateView, data={'latitude': '28.500000', 'longitude': '77.100000'})

		ride.refresh_from_db()
		self.assertEqual(ride.status, ACCEPTED)


class DriverRideApiTests(DriverApiTestCase):
	def setUp(self):
		super().setUp()
		self.ride = make_ride(self.passenger)

	def test_pending_requests_list(self):
		response = self.call(DriverPendingRequestsView, 'get')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['count'], 1)
		self.assertEqual(response.data['rides'][0]['id'], str(self.ride.id))
		self.assertEqual(response.data['poll_interval_seconds'], 7)

	def test_offline_driver_gets_no_requests(self):
		DriverProfile.objects.filter(user=self.driver).update(status=DriverProfile.STATUS_OFFLINE)

		response = self.call(DriverPendingRequestsView, 'get')

		self.assertEqual(response.data['count'], 0)

	def test_declined_ride_leaves_the_list(self):
		dispatch_ride(self.ride)

		response = self.call(DriverDeclineRideView, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['declined'])
		self.assertEqual(
			RideOffer.objects.get(ride=self.ride, driver=self.driver).status,
			RideOffer.DECLINED
		)
		self.assertEqual(self.call(DriverPendingRequestsView, 'get').data['count'], 0)

	def test_accept_then_late_accept_conflicts(self):
		other = make_driver('driver_two', 'WB-1002')

		first = self.call(DriverAcceptRideView, ride_id=self.ride.id)
		second = self.call(DriverAcceptRideView, user=other, ride_id=self.ride.id)

		self.assertEqual(first.status_code, 200)
		self.assertEqual(first.data['ride']['status'], ACCEPTED)
		self.assertEqual(second.status_code, 409)
		self.assertEqual(second.data['error_code'], 'already_taken')
		self.assertTrue(second.data['reset'])
		self.assertIsNone(second.data['ride'])

	def test_stranger_advancing_a_taken_ride_sees_no_ride_details(self):
		other = make_driver('driver_two', 'WB-1002')
		accept_ride(other, self.ride.id)

		response = self.call(DriverAdvanceRideView, data={'status': TRIP_STARTED}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error_code'], 'ride_moved_on')
		self.assertIsNone(response.data['ride'])
		self.assertNotIn(self.passenger.phone_number, str(response.data))

	def test_assigned_driver_losing_a_race_gets_the_current_ride(self):
		accept_ride(self.driver, self.ride.id)
		RideRequest.objects.filter(pk=self.ride.id).update(status=TRIP_STARTED)

		response = self.call(DriverAdvanceRideView, data={'status': DRIVER_AT_ORIGIN}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['ride']['status'], TRIP_STARTED)

	def test_unverified_driver_cannot_accept(self):
		DriverProfile.objects.filter(user=self.driver).update(is_verified=False)

		response = self.call(DriverAcceptRideView, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(RideRequest.objects.get(pk=self.ride.id).driver_id, None)

	def test_advance_through_pickup(self):
		accept_ride(self.driver, self.ride.id)

		response = self.call(DriverAdvanceRideView, data={'status': DRIVER_EN_ROUTE_TO_ORIGIN}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['ride']['status'], DRIVER_EN_ROUTE_TO_ORIGIN)
		self.ride.refresh_from_db()
		self.assertIsNotNone(self.ride.route_to_origin_polyline)

	def test_advance_to_unknown_phase_is_bad_request(self):
		accept_ride(self.driver, self.ride.id)

		response = self.call(DriverAdvanceRideView, data={'status': 'flying'}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 400)

	def test_advance_of_ride_not_held_conflicts(self):
		response = self.call(DriverAdvanceRideView, data={'status': TRIP_STARTED}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error_code'], 'ride_moved_on')

	def test_driver_cancels_held_ride(self):
		accept_ride(self.driver, self.ride.id)

		response = self.call(DriverCancelRideView, data={'reason_code': 'vehicle_issue'}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['ride']['status'], CANCELLED_BY_DRIVER)
		self.assertEqual(self.profile().status, DriverProfile.STATUS_ONLINE)

	def test_cancel_of_unrelated_ride_is_not_found(self):
		response = self.call(DriverCancelRideView, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 404)

	def test_current_ride_view(self):
		self.assertFalse(self.call(DriverCurrentRideView, 'get').data['has_active_ride'])

		accept_ride(self.driver, self.ride.id)
		response = self.call(DriverCurrentRideView, 'get')

		self.assertTrue(response.data['has_active_ride'])
		self.assertEqual(response.data['view']['role'], 'driver')
		self.assertEqual(response.data['view']['counterpart_id'], self.passenger.id)
		self.assertEqual(response.data['view']['phase'], 'en_route_to_origin')

	def test_current_ride_view_and_ride_come_from_one_read(self):
		accept_ride(self.driver, self.ride.id)

		with patch.object(ride_store, 'get', wraps=ride_store.get) as get:
			response = self.call(DriverCurrentRideView, 'get')

		get.assert_not_called()
		self.assertEqual(response.data['view']['ride_id'], str(response.data['ride']['id']))
		self.assertEqual(response.data['view']['status'], response.data['ride']['status'])
