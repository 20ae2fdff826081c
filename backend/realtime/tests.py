from unittest.mock import patch, MagicMock, AsyncMock

from django.test import TestCase

from realtime import notifications
from realtime.notifications import notify_driver_event, notify_passenger_event, notify_ride_updated
from rides.models import CANCELLED_BY_DRIVER
from rides.tests.helpers import make_passenger, make_driver, make_ride


class RideNotificationTests(TestCase):
	def setUp(self):
		self.passenger = make_passenger()
		self.driver = make_driver('driver_one', 'WB-1001')
		self.ride = make_ride(self.passenger)

	@patch('realtime.notifications._group_send', return_value=True)
	def test_ride_update_reaches_ride_passenger_and_driver_groups(self, mock_send):
		self.ride.driver = self.driver

		self.assertEqual(notify_ride_updated(self.ride), 3)

		groups = [c.args[0] for c in mock_send.call_args_list]
		self.assertEqual(groups, [f'ride_{self.ride.id}', f'user_{self.passenger.id}', f'driver_{self.driver.id}'])
		payload = mock_send.call_args.args[1]
		self.assertEqual(payload['type'], 'ride_updated')
		self.assertEqual(payload['ride_id'], str(self.ride.id))
		self.assertEqual(set(payload), {'type', 'ride_id', 'status', 'updated_at'})

	@patch('realtime.notifications._group_send', return_value=True)
	def test_released_driver_still_hears_about_the_ride(self, mock_send):
		self.ride.status = CANCELLED_BY_DRIVER
		self.ride.released_driver = self.driver

		notify_ride_updated(self.ride)

		self.assertIn(f'driver_{self.driver.id}', [c.args[0] for c in mock_send.call_args_list])

	@patch('realtime.notifications._group_send', return_value=True)
	def test_unassigned_ride_skips_driver_group(self, mock_send):
		self.assertEqual(notify_ride_updated(self.ride), 2)

	@patch('realtime.notifications._group_send', return_value=True)
	def test_driver_event_carries_ride_data(self, mock_send):
		notify_driver_event('ride_offer', self.ride, self.driver.id, extra={'offer_id': 7})

		group, payload = mock_send.call_args.args
		self.assertEqual(group, f'driver_{self.driver.id}')
		self.assertEqual(payload['offer_id'], 7)
		self.assertEqual(payload['ride_data']['id'], str(self.ride.id))
		self.assertNotIn('message', payload)

	@patch('realtime.notifications._group_send', return_value=True)
	def test_driver_event_without_driver_is_dropped(self, mock_send):
		self.assertFalse(notify_driver_event('ride_taken', self.ride, None))
		mock_send.assert_not_called()

	@patch('realtime.notifications._group_send', return_value=True)
	def test_passenger_event_includes_status_and_message(self, mock_send):
		notify_passenger_event('no_drivers_available', self.ride, 'Please try again later.')

		group, payload = mock_send.call_args.args
		self.assertEqual(group, f'user_{self.passenger.id}')
		self.assertEqual(payload['status'], self.ride.status)
		self.assertEqual(payload['message'], 'Please try again later.')


class GroupSendTests(TestCase):
	@patch('realtime.notifications.get_channel_layer', return_value=None)
	def test_missing_channel_layer_reports_failure(self, mock_layer):
		self.assertFalse(notifications._group_send('user_1', {'type': 'ride_updated'}))

	@patch('realtime.notifications.get_channel_layer')
	def test_failing_layer_reports_failure(self, mock_layer):
		layer = MagicMock()
		layer.group_send = AsyncMock(side_effect=ConnectionError('redis gone'))
		mock_layer.return_value = layer

		self.assertFalse(notifications._group_send('user_1', {'type': 'ride_updated'}))

	@patch('realtime.notifications.get_channel_layer')
	def test_delivered_push_reports_success(self, mock_layer):
		layer = MagicMock()
		layer.group_send = AsyncMock(return_value=None)
		mock_layer.return_value = layer

		self.assertTrue(notifications._group_send('user_1', {'type': 'ride_updated'}))
		layer.group_send.assert_awaited_once_with('user_1', {'type': 'ride_updated'})
