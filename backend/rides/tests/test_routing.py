import json
from decimal import Decimal
from unittest.mock import patch, MagicMock

import requests
from django.test import SimpleTestCase, override_settings

from common.utils import calculate_distance
from services.pricing import estimate_fare
from services.ride_management.exceptions import RoutingUnavailableError
from services.routing import OSRMClient, compute_route_polyline, straight_line_polyline


def osrm_response(payload):
	response = MagicMock()
	response.json.return_value = payload
	response.raise_for_status.return_value = None
	return response


class OSRMClientTests(SimpleTestCase):
	def setUp(self):
		self.client = OSRMClient(base_url='http://osrm.test/')

	def test_coordinates_are_sent_lon_lat(self):
		self.assertEqual(self.client.format_coordinates([(28.6, 77.2), (28.7, 77.3)]), '77.2,28.6;77.3,28.7')

	@patch('services.routing.osrm_client.requests.get')
	def test_route_geometry_is_returned_lat_lon(self, mock_get):
		mock_get.return_value = osrm_response({
			'code': 'Ok',
			'routes': [{'geometry': {'coordinates': [[77.2, 28.6], [77.25, 28.65], [77.3, 28.7]]}}],
		})

		polyline = self.client.route((28.6, 77.2), (28.7, 77.3))

		self.assertEqual(json.loads(polyline), [[28.6, 77.2], [28.65, 77.25], [28.7, 77.3]])
		self.assertEqual(mock_get.call_args.args[0], 'http://osrm.test/route/v1/driving/77.2,28.6;77.3,28.7')

	@patch('services.routing.osrm_client.requests.get', side_effect=requests.ConnectionError('refused'))
	def test_unreachable_server_raises(self, mock_get):
		with self.assertRaises(RoutingUnavailableError):
			self.client.route((28.6, 77.2), (28.7, 77.3))

	@patch('services.routing.osrm_client.requests.get')
	def test_no_route_raises(self, mock_get):
		mock_get.return_value = osrm_response({'code': 'NoRoute', 'message': 'Impossible route'})

		with self.assertRaises(RoutingUnavailableError):
			self.client.route((28.6, 77.2), (28.7, 77.3))

	@override_settings(OSRM_BASE_URL='')
	@patch('services.routing.osrm_client.requests.get')
	def test_unconfigured_server_is_never_called(self, mock_get):
		with self.assertRaises(RoutingUnavailableError):
			OSRMClient().route((28.6, 77.2), (28.7, 77.3))
		mock_get.assert_not_called()


class RouteFallbackTests(SimpleTestCase):
	def test_straight_line_when_provider_fails(self):
		client = MagicMock()
		client.route.side_effect = RoutingUnavailableError('down')

		polyline, degraded = compute_route_polyline((28.6, 77.2), (28.7, 77.3), client=client)

		self.assertTrue(degraded)
		self.assertEqual(polyline, straight_line_polyline((28.6, 77.2), (28.7, 77.3)))
		self.assertEqual(json.loads(polyline), [[28.6, 77.2], [28.7, 77.3]])

	def test_provider_route_is_not_degraded(self):
		client = MagicMock()
		client.route.return_value = '[[28.6, 77.2], [28.7, 77.3]]'

		self.assertEqual(
			compute_route_polyline((28.6, 77.2), (28.7, 77.3), client=client),
			('[[28.6, 77.2], [28.7, 77.3]]', False)
		)


class FareEstimateTests(SimpleTestCase):
	def test_distance_between_known_points(self):
		# Roughly one degree of latitude
		self.assertAlmostEqual(calculate_distance(28.0, 77.0, 29.0, 77.0) / 1000, 111.2, delta=0.5)

	def test_short_trip_pays_the_minimum(self):
		fare = estimate_fare('taxi', Decimal('28.6'), Decimal('77.2'), Decimal('28.6001'), Decimal('77.2'))

		self.assertEqual(fare, Decimal('50.00'))

	def test_long_trip_is_priced_per_km(self):
		fare = estimate_fare('rickshaw', 28.0, 77.0, 29.0, 77.0)

		self.assertGreater(fare, Decimal('1600'))
		self.assertLess(fare, Decimal('1720'))
		self.assertEqual(fare, fare.quantize(Decimal('0.01')))
