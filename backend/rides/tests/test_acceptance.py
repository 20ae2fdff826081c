import uuid
from unittest.mock import patch

from django.test import TestCase

from drivers.models import DriverProfile
from rides.models import RideOffer, RideRequest, PENDING, ACCEPTED, CANCELLED_BY_PASSENGER
from services.matching import dispatch_ride
from services.ride_management import accept_ride, DriverNotAvailableError
from .helpers import make_passenger, make_driver, make_ride


class AcceptanceRaceTests(TestCase):
	def setUp(self):
		self.passenger = make_passenger()
		self.driver_one = make_driver('driver_one', 'WB-1001')
		self.driver_two = make_driver('driver_two', 'WB-1002')
		self.ride = make_ride(self.passenger)
		dispatch_ride(self.ride)

	def test_first_acceptance_wins_second_is_told_already_taken(self):
		# Both drivers saw the same pending ride
		seen_by_one = RideRequest.objects.get(pk=self.ride.id)
		seen_by_two = RideRequest.objects.get(pk=self.ride.id)
		self.assertEqual(seen_by_one.status, PENDING)
		self.assertEqual(seen_by_two.status, PENDING)

		first = accept_ride(self.driver_one, seen_by_one.id)
		second = accept_ride(self.driver_two, seen_by_two.id)

		self.assertTrue(first.success)
		self.assertFalse(second.success)
		self.assertEqual(second.error_code, 'already_taken')

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.status, ACCEPTED)
		self.assertEqual(self.ride.driver, self.driver_one)
		self.assertIsNotNone(self.ride.accepted_at)

	def test_winner_updates_offer_ledger_and_driver_status(self):
		accept_ride(self.driver_one, self.ride.id)

		offer_one = RideOffer.objects.get(ride=self.ride, driver=self.driver_one)
		offer_two = RideOffer.objects.get(ride=self.ride, driver=self.driver_two)
		self.assertEqual(offer_one.status, RideOffer.ACCEPTED)
		self.assertEqual(offer_two.status, RideOffer.WITHDRAWN)

		self.assertEqual(DriverProfile.objects.get(user=self.driver_one).status, DriverProfile.STATUS_BUSY)
		self.assertEqual(DriverProfile.objects.get(user=self.driver_two).status, DriverProfile.STATUS_ONLINE)

	@patch('realtime.notifications._group_send', return_value=True)
	def test_other_drivers_are_told_the_ride_was_taken(self, mock_send):
		accept_ride(self.driver_one, self.ride.id)

		sent = [(c.args[0], c.args[1]['type']) for c in mock_send.call_args_list]
		self.assertIn((f'driver_{self.driver_two.id}', 'ride_taken'), sent)
		self.assertIn((f'user_{self.passenger.id}', 'ride_accepted'), sent)
		self.assertIn((f'ride_{self.ride.id}', 'ride_updated'), sent)
		self.assertNotIn((f'driver_{self.driver_one.id}', 'ride_taken'), sent)

	def test_at_most_one_of_many_drivers_is_assigned(self):
		drivers = [self.driver_one, self.driver_two] + [
			make_driver(f'driver_{n}', f'WB-20{n}') for n in range(3, 8)
		]

		results = [accept_ride(driver, self.ride.id) for driver in drivers]

		self.assertEqual(sum(1 for r in results if r.success), 1)
		self.assertTrue(all(r.error_code == 'already_taken' for r in results if not r.success))

	def test_accept_after_cancellation_is_already_taken(self):
		RideRequest.objects.filter(pk=self.ride.id).update(status=CANCELLED_BY_PASSENGER)

		result = accept_ride(self.driver_one, self.ride.id)

		self.assertFalse(result.success)
		self.assertEqual(result.error_code, 'already_taken')
		self.ride.refresh_from_db()
		self.assertIsNone(self.ride.driver_id)

	def test_accept_missing_ride(self):
		result = accept_ride(self.driver_one, uuid.uuid4())

		self.assertFalse(result.success)
		self.assertEqual(result.error_code, 'ride_not_found')

	def test_offline_driver_cannot_accept(self):
		DriverProfile.objects.filter(user=self.driver_one).update(status=DriverProfile.STATUS_OFFLINE)
		self.driver_one.refresh_from_db()

		with self.assertRaises(DriverNotAvailableError):
			accept_ride(self.driver_one, self.ride.id)

	def test_unverified_driver_cannot_accept(self):
		driver = make_driver('driver_new', 'WB-3001', is_verified=False)

		with self.assertRaises(DriverNotAvailableError):
			accept_ride(driver, self.ride.id)

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.status, PENDING)

	def test_busy_driver_cannot_take_a_second_ride(self):
		accept_ride(self.driver_one, self.ride.id)
		other = make_ride(make_passenger('passenger_two', '9000000002'))
		self.driver_one.refresh_from_db()

		with self.assertRaises(DriverNotAvailableError):
			accept_ride(self.driver_one, other.id)
