import json
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from rides.models import (
	RideRequest,
	PENDING,
	ACCEPTED,
	DRIVER_EN_ROUTE_TO_ORIGIN,
	DRIVER_AT_ORIGIN,
	TRIP_STARTED,
	DRIVER_AT_DESTINATION,
	TRIP_COMPLETED,
	CANCELLED_BY_PASSENGER,
	CANCELLED_BY_DRIVER,
	NO_DRIVERS_AVAILABLE,
	TIMED_OUT_PASSENGER,
)
from services.ride_management import (
	accept_ride,
	advance_phase,
	cancel_ride_by_driver,
	derive_phase,
	recover_for_driver,
	recover_for_passenger,
	TripPhase,
)
from services.ride_management.recovery import build_view
from .helpers import make_passenger, make_driver, make_ride, ORIGIN, DESTINATION


class DerivePhaseTests(TestCase):
	def test_every_status_maps_to_one_phase(self):
		expected = {
			PENDING: TripPhase.SEARCHING,
			ACCEPTED: TripPhase.EN_ROUTE_TO_ORIGIN,
			DRIVER_EN_ROUTE_TO_ORIGIN: TripPhase.EN_ROUTE_TO_ORIGIN,
			DRIVER_AT_ORIGIN: TripPhase.AT_ORIGIN,
			TRIP_STARTED: TripPhase.EN_ROUTE_TO_DESTINATION,
			DRIVER_AT_DESTINATION: TripPhase.AT_DESTINATION,
			TRIP_COMPLETED: TripPhase.COMPLETED,
			CANCELLED_BY_PASSENGER: TripPhase.ENDED,
			CANCELLED_BY_DRIVER: TripPhase.ENDED,
			NO_DRIVERS_AVAILABLE: TripPhase.ENDED,
			TIMED_OUT_PASSENGER: TripPhase.ENDED,
		}
		for status, phase in expected.items():
			with self.subTest(status=status):
				self.assertEqual(derive_phase(RideRequest(status=status)), phase)

	def test_unknown_status_falls_back_to_furthest_milestone(self):
		now = timezone.now()

		self.assertEqual(
			derive_phase(RideRequest(status='legacy', accepted_at=now, trip_started_at=now)),
			TripPhase.EN_ROUTE_TO_DESTINATION
		)
		self.assertEqual(derive_phase(RideRequest(status='legacy', accepted_at=now)), TripPhase.EN_ROUTE_TO_ORIGIN)
		self.assertEqual(derive_phase(RideRequest(status='legacy')), TripPhase.ENDED)


class BuildViewTests(TestCase):
	def setUp(self):
		self.passenger = make_passenger()
		self.driver = make_driver('driver_one', 'WB-1001')

	def test_searching_view_shows_both_markers(self):
		view = build_view(make_ride(self.passenger), 'passenger')

		self.assertEqual(view.phase, TripPhase.SEARCHING)
		self.assertEqual(view.origin_marker, (float(ORIGIN[0]), float(ORIGIN[1])))
		self.assertEqual(view.destination_marker, (float(DESTINATION[0]), float(DESTINATION[1])))
		self.assertIsNone(view.counterpart_id)
		self.assertIsNone(view.route_polyline)
		self.assertEqual(view.fare, '120.00')

	def test_pickup_view_shows_origin_and_route_to_origin(self):
		ride = make_ride(
			self.passenger, status=DRIVER_EN_ROUTE_TO_ORIGIN, driver=self.driver,
			route_to_origin_polyline='[[1.0, 2.0]]', route_to_destination_polyline='[[3.0, 4.0]]'
		)

		view = build_view(ride, 'passenger')

		self.assertEqual(view.counterpart_id, self.driver.id)
		self.assertIsNotNone(view.origin_marker)
		self.assertIsNone(view.destination_marker)
		self.assertEqual(view.route_polyline, '[[1.0, 2.0]]')
		self.assertEqual(view.route_to_origin_polyline, '[[1.0, 2.0]]')
		self.assertEqual(view.route_to_destination_polyline, '[[3.0, 4.0]]')

	def test_trip_view_shows_destination_and_route_to_destination(self):
		ride = make_ride(
			self.passenger, status=TRIP_STARTED, driver=self.driver,
			route_to_origin_polyline='[[1.0, 2.0]]', route_to_destination_polyline='[[3.0, 4.0]]'
		)

		view = build_view(ride, 'driver')

		self.assertEqual(view.counterpart_id, self.passenger.id)
		self.assertIsNone(view.origin_marker)
		self.assertIsNotNone(view.destination_marker)
		self.assertEqual(view.route_polyline, '[[3.0, 4.0]]')
		self.assertEqual(view.route_to_origin_polyline, '[[1.0, 2.0]]')
		self.assertEqual(view.route_to_destination_polyline, '[[3.0, 4.0]]')

	def test_searching_view_exposes_cached_routes_without_highlighting_one(self):
		ride = make_ride(self.passenger, route_to_destination_polyline='[[3.0, 4.0]]')

		view = build_view(ride, 'passenger')

		self.assertIsNone(view.route_polyline)
		self.assertIsNone(view.route_to_origin_polyline)
		self.assertEqual(view.route_to_destination_polyline, '[[3.0, 4.0]]')
		self.assertEqual(view.as_dict()['route_to_destination_polyline'], '[[3.0, 4.0]]')

	def test_completed_view_reports_charged_fare(self):
		ride = make_ride(
			self.passenger, status=TRIP_COMPLETED, driver=self.driver, actual_fare=Decimal('120.00')
		)

		view = build_view(ride, 'passenger')

		self.assertEqual(view.phase, TripPhase.COMPLETED)
		self.assertIsNone(view.origin_marker)
		self.assertIsNone(view.destination_marker)
		self.assertEqual(view.fare, '120.00')

	def test_unknown_role_is_rejected(self):
		with self.assertRaises(ValueError):
			build_view(make_ride(self.passenger), 'dispatcher')


class RecoveryTests(TestCase):
	def setUp(self):
		self.passenger = make_passenger()
		self.driver = make_driver(
			'driver_one', 'WB-1001',
			latitude=Decimal('28.600000'), longitude=Decimal('77.200000')
		)
		self.ride = make_ride(self.passenger)

	def test_nothing_to_recover_without_a_ride(self):
		other = make_passenger('other', '9000000001')

		self.assertIsNone(recover_for_passenger(other))
		self.assertIsNone(recover_for_driver(self.driver))

	def test_reconnect_during_trip_restores_the_trip_screen(self):
		accept_ride(self.driver, self.ride.id)
		advance_phase(self.driver, self.ride.id, DRIVER_AT_ORIGIN)
		advance_phase(self.driver, self.ride.id, TRIP_STARTED)

		# Client drops here and comes back
		passenger_view = recover_for_passenger(self.passenger)
		driver_view = recover_for_driver(self.driver)

		self.assertEqual(passenger_view.phase, TripPhase.EN_ROUTE_TO_DESTINATION)
		self.assertEqual(driver_view.phase, TripPhase.EN_ROUTE_TO_DESTINATION)
		self.assertEqual(passenger_view.counterpart_id, self.driver.id)
		self.assertEqual(
			json.loads(passenger_view.route_polyline),
			[[float(ORIGIN[0]), float(ORIGIN[1])], [float(DESTINATION[0]), float(DESTINATION[1])]]
		)

	def test_repeated_recovery_returns_the_same_view(self):
		accept_ride(self.driver, self.ride.id)

		first = recover_for_passenger(self.passenger)
		second = recover_for_passenger(self.passenger)

		self.assertEqual(first, second)
		self.assertEqual(first.as_dict(), second.as_dict())

	def test_ended_ride_has_nothing_to_recover(self):
		RideRequest.objects.filter(pk=self.ride.id).update(status=NO_DRIVERS_AVAILABLE)

		self.assertIsNone(recover_for_passenger(self.passenger))

	def test_released_driver_no_longer_recovers_the_ride(self):
		accept_ride(self.driver, self.ride.id)
		cancel_ride_by_driver(self.driver, self.ride.id)

		self.assertIsNone(recover_for_driver(self.driver))
		self.assertIsNone(recover_for_passenger(self.passenger))

	def test_view_serializes_phase_and_timestamp(self):
		data = recover_for_passenger(self.passenger).as_dict()

		self.assertEqual(data['phase'], 'searching')
		self.assertEqual(data['status'], PENDING)
		self.assertEqual(data['ride_id'], str(self.ride.id))
		self.assertIsInstance(data['updated_at'], str)
