from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase, override_settings
from rest_framework.exceptions import ValidationError

from drivers.models import DriverProfile
from rides.models import (
	RideOffer,
	RideRequest,
	PENDING,
	NO_DRIVERS_AVAILABLE,
	TRIP_COMPLETED,
)
from services.matching import dispatch_ride, open_requests_for_driver
from services.pricing import estimate_fare
from services.ride_management import (
	create_ride_request,
	retry_ride_request,
	decline_offer,
	ActiveRideExistsError,
)
from .helpers import make_passenger, make_driver, make_ride, ride_payload, ORIGIN, DESTINATION


class DispatchTests(TestCase):
	def setUp(self):
		self.passenger = make_passenger()
		self.online = make_driver('online', 'WB-1001')
		self.offline = make_driver('offline', 'WB-1002', status=DriverProfile.STATUS_OFFLINE)
		self.unverified = make_driver('unverified', 'WB-1003', is_verified=False)
		self.busy = make_driver('busy', 'WB-1004', status=DriverProfile.STATUS_BUSY)
		self.ride = make_ride(self.passenger)

	def test_only_online_verified_drivers_are_offered(self):
		offered = dispatch_ride(self.ride)

		self.assertEqual(offered, 1)
		self.assertEqual(
			list(RideOffer.objects.filter(ride=self.ride).values_list('driver_id', flat=True)),
			[self.online.id]
		)

	def test_second_dispatch_skips_drivers_already_offered(self):
		dispatch_ride(self.ride)
		late = make_driver('late', 'WB-1005')

		self.assertEqual(dispatch_ride(self.ride), 1)
		self.assertEqual(dispatch_ride(self.ride), 0)
		self.assertTrue(RideOffer.objects.filter(ride=self.ride, driver=late).exists())

	@patch('realtime.notifications._group_send', return_value=False)
	def test_failed_push_still_records_the_offer(self, mock_send):
		self.assertEqual(dispatch_ride(self.ride), 1)

		offer = RideOffer.objects.get(ride=self.ride, driver=self.online)
		self.assertEqual(offer.status, RideOffer.PENDING)
		self.assertEqual(mock_send.call_args.args[0], f'driver_{self.online.id}')
		self.assertEqual(mock_send.call_args.args[1]['type'], 'ride_offer')

	@override_settings(RIDE_TIMERS_ENABLED=True)
	@patch('rides.tasks.expire_ride_offer_task.apply_async')
	def test_each_offer_arms_its_own_popup_timer(self, mock_apply):
		make_driver('second', 'WB-1006')

		dispatch_ride(self.ride)

		self.assertEqual(mock_apply.call_count, 2)
		offer_ids = set(RideOffer.objects.filter(ride=self.ride).values_list('id', flat=True))
		armed = {c.kwargs['args'][0] for c in mock_apply.call_args_list}
		self.assertEqual(armed, offer_ids)
		self.assertTrue(all(c.kwargs['countdown'] == 30 for c in mock_apply.call_args_list))

	def test_open_requests_hide_declined_rides(self):
		other = make_ride(make_passenger('other', '9000000001'))
		dispatch_ride(self.ride)

		decline_offer(self.online, self.ride.id)

		self.assertEqual(open_requests_for_driver(self.online), [other])

	def test_decline_without_offer_records_declined_row(self):
		self.assertTrue(decline_offer(self.offline, self.ride.id))

		offer = RideOffer.objects.get(ride=self.ride, driver=self.offline)
		self.assertEqual(offer.status, RideOffer.DECLINED)
		self.assertNotIn(self.ride, open_requests_for_driver(self.offline))


class CreateRideRequestTests(TestCase):
	def setUp(self):
		self.passenger = make_passenger()

	def test_ride_with_no_drivers_online_stays_pending(self):
		with patch('realtime.notifications._group_send', return_value=True) as mock_send:
			result = create_ride_request(self.passenger, ride_payload())

		self.assertTrue(result.success)
		self.assertEqual(result.ride.status, PENDING)
		self.assertEqual(result.extra['drivers_notified'], 0)
		sent = [(c.args[0], c.args[1]['type']) for c in mock_send.call_args_list]
		self.assertIn((f'user_{self.passenger.id}', 'no_drivers_online'), sent)

	def test_ride_is_offered_to_online_drivers(self):
		driver = make_driver('driver_one', 'WB-1001')

		result = create_ride_request(self.passenger, ride_payload())

		self.assertEqual(result.extra['drivers_notified'], 1)
		self.assertTrue(RideOffer.objects.filter(ride=result.ride, driver=driver).exists())

	def test_repeated_client_reference_returns_first_ride(self):
		first = create_ride_request(self.passenger, ride_payload(client_reference='abc-1'))
		second = create_ride_request(self.passenger, ride_payload(client_reference='abc-1'))

		self.assertEqual(first.ride.id, second.ride.id)
		self.assertTrue(second.extra['duplicate'])
		self.assertEqual(RideRequest.objects.filter(passenger=self.passenger).count(), 1)

	def test_second_active_ride_is_refused(self):
		create_ride_request(self.passenger, ride_payload())

		with self.assertRaises(ActiveRideExistsError):
			create_ride_request(self.passenger, ride_payload())

	def test_missing_fare_is_estimated(self):
		result = create_ride_request(self.passenger, ride_payload())

		expected = estimate_fare('rickshaw', ORIGIN[0], ORIGIN[1], DESTINATION[0], DESTINATION[1])
		self.assertEqual(result.ride.estimated_fare, expected)

	def test_supplied_fare_is_kept(self):
		result = create_ride_request(self.passenger, ride_payload(estimated_fare='75.50'))

		self.assertEqual(result.ride.estimated_fare, Decimal('75.50'))

	def test_unknown_service_is_rejected(self):
		with self.assertRaises(ValidationError):
			create_ride_request(self.passenger, ride_payload(service_id='helicopter'))
		self.assertFalse(RideRequest.objects.exists())

	def test_third_party_ride_needs_rider_details(self):
		with self.assertRaises(ValidationError):
			create_ride_request(self.passenger, ride_payload(is_third_party=True))

	@override_settings(RIDE_TIMERS_ENABLED=True)
	@patch('rides.tasks.expire_pending_ride_task.apply_async')
	def test_passenger_timer_is_armed(self, mock_apply):
		result = create_ride_request(self.passenger, ride_payload())

		mock_apply.assert_called_once_with(args=[str(result.ride.id)], countdown=90)

	@override_settings(RIDE_TIMERS_ENABLED=True)
	@patch('rides.tasks.expire_pending_ride_task.apply_async', side_effect=ConnectionError('broker down'))
	def test_broker_outage_does_not_fail_the_request(self, mock_apply):
		result = create_ride_request(self.passenger, ride_payload())

		self.assertTrue(result.success)
		self.assertEqual(result.ride.status, PENDING)


class RetryRideRequestTests(TestCase):
	def setUp(self):
		self.passenger = make_passenger()

	def test_retry_after_no_drivers_available(self):
		previous = make_ride(self.passenger, status=NO_DRIVERS_AVAILABLE)

		result = retry_ride_request(self.passenger, previous.id)

		self.assertTrue(result.success)
		self.assertNotEqual(result.ride.id, previous.id)
		self.assertEqual(result.ride.status, PENDING)
		self.assertEqual(result.ride.retried_from, previous)
		self.assertEqual(result.ride.estimated_fare, previous.estimated_fare)

	def test_completed_ride_is_not_retryable(self):
		previous = make_ride(self.passenger, status=TRIP_COMPLETED)

		result = retry_ride_request(self.passenger, previous.id)

		self.assertFalse(result.success)
		self.assertEqual(result.error_code, 'not_retryable')
		self.assertEqual(RideRequest.objects.count(), 1)
