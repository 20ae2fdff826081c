from unittest.mock import patch

from django.test import TestCase

from drivers.models import DriverProfile
from rides.models import (
	RideCancellation,
	RideRequest,
	ACCEPTED,
	CANCELLED_BY_PASSENGER,
	NO_DRIVERS_AVAILABLE,
	NON_TERMINAL_STATUSES,
)
from services.matching import dispatch_ride
from services.ride_management import (
	accept_ride,
	cancel_ride_by_driver,
	cancel_ride_by_passenger,
	create_ride_request,
	ride_store,
	ActiveRideExistsError,
	DriverNotAvailableError,
)
from services.ride_management import acceptance
from services.ride_management.abandonment import expire_passenger_request
from .helpers import make_passenger, make_driver, make_ride, ride_payload


def writer_in_between(real, other):
	"""Run ``other`` once, right before the first call reaches ``real``."""
	pending = [other]

	def side_effect(*args, **kwargs):
		if pending:
			pending.pop()()
		return real(*args, **kwargs)

	return side_effect


class ConcurrentWriterTestCase(TestCase):
	def setUp(self):
		patcher = patch('realtime.notifications._group_send', return_value=True)
		patcher.start()
		self.addCleanup(patcher.stop)

		self.passenger = make_passenger()
		self.driver = make_driver('driver_one', 'WB-1001')
		self.other_driver = make_driver('driver_two', 'WB-1002')
		self.ride = make_ride(self.passenger)

	def status_of(self, driver):
		return DriverProfile.objects.get(user=driver).status


class AcceptInterleavingTests(ConcurrentWriterTestCase):
	def accept_after(self, other, driver, ride_id):
		"""Accept, with ``other`` committing just before the accept's transaction opens."""
		with patch.object(
			acceptance.transaction, 'atomic',
			side_effect=writer_in_between(acceptance.transaction.atomic, other)
		):
			return accept_ride(driver, ride_id)

	def test_one_driver_accepting_two_rides_at_once_holds_one(self):
		second_ride = make_ride(make_passenger('passenger_two', '9000000002'))
		won = []

		with self.assertRaises(DriverNotAvailableError):
			self.accept_after(
				lambda: won.append(accept_ride(self.driver, second_ride.id)),
				self.driver, self.ride.id
			)

		self.assertTrue(won[0].success)
		self.assertEqual(RideRequest.objects.filter(driver=self.driver).count(), 1)
		self.assertEqual(RideRequest.objects.get(pk=second_ride.id).driver, self.driver)
		self.assertIsNone(RideRequest.objects.get(pk=self.ride.id).driver)
		self.assertEqual(self.status_of(self.driver), DriverProfile.STATUS_BUSY)

	def test_driver_beaten_to_the_ride_is_back_online(self):
		dispatch_ride(self.ride)

		result = self.accept_after(lambda: accept_ride(self.other_driver, self.ride.id), self.driver, self.ride.id)

		self.assertFalse(result.success)
		self.assertEqual(result.error_code, 'already_taken')
		self.assertIsNone(result.ride)
		self.assertEqual(RideRequest.objects.get(pk=self.ride.id).driver, self.other_driver)
		self.assertEqual(self.status_of(self.driver), DriverProfile.STATUS_ONLINE)
		self.assertEqual(self.status_of(self.other_driver), DriverProfile.STATUS_BUSY)

	def test_request_expiring_before_the_accept_lands(self):
		result = self.accept_after(lambda: expire_passenger_request(self.ride.id), self.driver, self.ride.id)

		self.assertEqual(result.error_code, 'already_taken')
		self.assertEqual(RideRequest.objects.get(pk=self.ride.id).status, NO_DRIVERS_AVAILABLE)
		self.assertEqual(self.status_of(self.driver), DriverProfile.STATUS_ONLINE)

	def test_losing_driver_does_not_see_the_winners_ride(self):
		won = accept_ride(self.other_driver, self.ride.id)
		lost = accept_ride(self.driver, self.ride.id)

		self.assertEqual(won.ride.id, self.ride.id)
		self.assertIsNone(lost.ride)
		self.assertEqual(lost.error_code, 'already_taken')


class CancelInterleavingTests(ConcurrentWriterTestCase):
	def test_accept_between_passenger_read_and_cancel_write(self):
		with patch.object(
			ride_store, 'conditional_update',
			side_effect=writer_in_between(
				ride_store.conditional_update,
				lambda: accept_ride(self.driver, self.ride.id)
			)
		):
			result = cancel_ride_by_passenger(self.passenger, self.ride.id)

		self.assertTrue(result.success)
		self.assertTrue(result.extra['was_assigned'])
		ride = RideRequest.objects.get(pk=self.ride.id)
		self.assertEqual(ride.status, CANCELLED_BY_PASSENGER)
		self.assertEqual(ride.released_driver, self.driver)
		self.assertEqual(self.status_of(self.driver), DriverProfile.STATUS_ONLINE)

	def test_passenger_cancels_between_driver_read_and_cancel_write(self):
		accept_ride(self.driver, self.ride.id)

		with patch.object(
			ride_store, 'conditional_update',
			side_effect=writer_in_between(
				ride_store.conditional_update,
				lambda: cancel_ride_by_passenger(self.passenger, self.ride.id)
			)
		):
			result = cancel_ride_by_driver(self.driver, self.ride.id)

		self.assertFalse(result.success)
		self.assertEqual(result.error_code, 'ride_moved_on')
		self.assertEqual(RideRequest.objects.get(pk=self.ride.id).status, CANCELLED_BY_PASSENGER)
		self.assertEqual(RideCancellation.objects.filter(ride=self.ride).count(), 2)
		self.assertEqual(RideCancellation.objects.filter(ride=self.ride, changed_status=True).count(), 1)
		self.assertEqual(self.status_of(self.driver), DriverProfile.STATUS_ONLINE)


class CreateInterleavingTests(TestCase):
	def setUp(self):
		self.passenger = make_passenger()
		make_driver('driver_one', 'WB-1001')

	def active_rides(self):
		return RideRequest.objects.filter(passenger=self.passenger, status__in=NON_TERMINAL_STATUSES)

	def test_second_create_after_the_active_check_is_refused(self):
		def other_request_commits_first(passenger):
			make_ride(passenger)
			return None

		with patch(
			'services.ride_management.ride_lifecycle.check_active_ride',
			side_effect=other_request_commits_first
		):
			with self.assertRaises(ActiveRideExistsError):
				create_ride_request(self.passenger, ride_payload())

		self.assertEqual(self.active_rides().count(), 1)

	def test_new_ride_allowed_once_previous_has_ended(self):
		make_ride(self.passenger, status=NO_DRIVERS_AVAILABLE)

		result = create_ride_request(self.passenger, ride_payload())

		self.assertTrue(result.success)
		self.assertEqual(self.active_rides().count(), 1)

	def test_accepted_ride_still_blocks_a_new_request(self):
		ride = make_ride(self.passenger)
		accept_ride(make_driver('driver_two', 'WB-1002'), ride.id)

		with patch('services.ride_management.ride_lifecycle.check_active_ride', return_value=None):
			with self.assertRaises(ActiveRideExistsError):
				create_ride_request(self.passenger, ride_payload())

		self.assertEqual(RideRequest.objects.get(pk=ride.id).status, ACCEPTED)
