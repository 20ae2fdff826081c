import uuid
from datetime import timedelta

from django.db.models import F, Q
from django.test import TestCase
from django.utils import timezone

from rides.models import (
	RideRequest,
	PENDING,
	ACCEPTED,
	DRIVER_AT_ORIGIN,
	TRIP_COMPLETED,
	CANCELLED_BY_PASSENGER,
)
from services.ride_management.exceptions import RideConflictError, RideNotFoundError
from services.ride_management.store import ride_store
from .helpers import make_passenger, make_driver, make_ride


class RideRequestStoreTests(TestCase):
	def setUp(self):
		self.passenger = make_passenger()
		self.driver = make_driver('driver_one', 'WB-1001')
		self.ride = make_ride(self.passenger)

	def test_conditional_update_applies_patch_and_bumps_updated_at(self):
		before = self.ride.updated_at

		ride = ride_store.conditional_update(
			self.ride.id,
			Q(status=PENDING, driver__isnull=True),
			{'status': ACCEPTED, 'driver': self.driver, 'accepted_at': timezone.now()}
		)

		self.assertEqual(ride.status, ACCEPTED)
		self.assertEqual(ride.driver_id, self.driver.id)
		self.assertGreaterEqual(ride.updated_at, before)

	def test_conditional_update_conflict_leaves_row_untouched(self):
		RideRequest.objects.filter(pk=self.ride.id).update(status=CANCELLED_BY_PASSENGER)

		with self.assertRaises(RideConflictError):
			ride_store.conditional_update(self.ride.id, Q(status=PENDING), {'status': ACCEPTED})

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.status, CANCELLED_BY_PASSENGER)
		self.assertIsNone(self.ride.driver_id)

	def test_conditional_update_on_missing_ride_is_not_found(self):
		with self.assertRaises(RideNotFoundError):
			ride_store.conditional_update(uuid.uuid4(), Q(status=PENDING), {'status': ACCEPTED})

	def test_not_found_is_a_conflict(self):
		self.assertTrue(issubclass(RideNotFoundError, RideConflictError))

	def test_get_with_malformed_id_is_not_found(self):
		with self.assertRaises(RideNotFoundError):
			ride_store.get('not-a-uuid')

	def test_patch_can_move_driver_into_released_driver(self):
		RideRequest.objects.filter(pk=self.ride.id).update(status=DRIVER_AT_ORIGIN, driver=self.driver)

		ride = ride_store.conditional_update(
			self.ride.id,
			Q(status=DRIVER_AT_ORIGIN),
			{'status': CANCELLED_BY_PASSENGER, 'released_driver_id': F('driver_id'), 'driver': None}
		)

		self.assertIsNone(ride.driver_id)
		self.assertEqual(ride.released_driver_id, self.driver.id)

	def test_find_active_for_passenger_skips_terminal_rides(self):
		RideRequest.objects.filter(pk=self.ride.id).update(status=CANCELLED_BY_PASSENGER)
		self.assertIsNone(ride_store.find_active_for(self.passenger, 'passenger'))

		newer = make_ride(self.passenger)
		self.assertEqual(ride_store.find_active_for(self.passenger, 'passenger'), newer)

	def test_find_active_for_driver_uses_latest_acceptance(self):
		other_passenger = make_passenger('passenger_two', '9000000002')
		older = make_ride(other_passenger)
		now = timezone.now()
		RideRequest.objects.filter(pk=older.id).update(
			status=TRIP_COMPLETED, driver=self.driver, accepted_at=now - timedelta(hours=1)
		)
		RideRequest.objects.filter(pk=self.ride.id).update(status=ACCEPTED, driver=self.driver, accepted_at=now)

		self.assertEqual(ride_store.find_active_for(self.driver, 'driver'), self.ride)

	def test_find_active_for_rejects_unknown_role(self):
		with self.assertRaises(ValueError):
			ride_store.find_active_for(self.passenger, 'dispatcher')
