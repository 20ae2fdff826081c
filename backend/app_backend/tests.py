from unittest.mock import patch, MagicMock

import redis
from django.test import TestCase
from rest_framework.test import APIRequestFactory

import rides.tasks  # noqa: F401
from .views import health_check


class HealthCheckTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()

	@patch('app_backend.views.redis.Redis.from_url')
	def test_all_services_healthy(self, mock_from_url):
		mock_from_url.return_value = MagicMock()

		response = health_check(self.factory.get('/health/'))

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], 'healthy')
		self.assertEqual(
			response.data['services'],
			{'database': 'healthy', 'redis': 'healthy', 'channels': 'healthy', 'celery': 'healthy'}
		)

	@patch('app_backend.views.redis.Redis.from_url')
	def test_redis_outage_is_reported(self, mock_from_url):
		client = MagicMock()
		client.ping.side_effect = redis.ConnectionError('connection refused')
		mock_from_url.return_value = client

		response = health_check(self.factory.get('/health/'))

		self.assertEqual(response.status_code, 503)
		self.assertTrue(response.data['services']['redis'].startswith('unhealthy'))
