from django.test import TestCase
from rest_framework.test import APIRequestFactory

from drivers.models import DriverProfile
from .models import User
from .views import RegisterView, LoginView


class RegistrationTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()

	def register(self, **data):
		request = self.factory.post('/api/auth/register/', data, format='json')
		return RegisterView.as_view()(request)

	def test_passenger_registration_returns_tokens(self):
		response = self.register(
			username='asha', password='pass1234', role='passenger', phone_number='9000000000'
		)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['user']['role'], 'passenger')
		self.assertIn('access', response.data['tokens'])
		self.assertIn('refresh', response.data['tokens'])
		self.assertFalse(DriverProfile.objects.exists())

	def test_driver_starts_offline_and_unverified(self):
		response = self.register(
			username='ravi', password='driver1234', role='driver',
			phone_number='9100000000', vehicle_number='WB-1001'
		)

		self.assertEqual(response.status_code, 201)
		profile = DriverProfile.objects.get(user__username='ravi')
		self.assertEqual(profile.status, DriverProfile.STATUS_OFFLINE)
		self.assertFalse(profile.is_verified)
		self.assertEqual(profile.vehicle_number, 'WB-1001')

	def test_driver_needs_vehicle_number(self):
		response = self.register(
			username='ravi', password='driver1234', role='driver', phone_number='9100000000'
		)

		self.assertEqual(response.status_code, 400)
		self.assertIn('vehicle_number', response.data)
		self.assertFalse(User.objects.filter(username='ravi').exists())

	def test_duplicate_email_is_rejected(self):
		User.objects.create_user(username='first', password='x', email='a@example.com', role='passenger')

		response = self.register(
			username='second', password='pass1234', email='a@example.com',
			role='passenger', phone_number='9000000000'
		)

		self.assertEqual(response.status_code, 400)


class LoginTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		User.objects.create_user(username='asha', password='pass1234', role='passenger', phone_number='9000000000')

	def login(self, password):
		request = self.factory.post('/api/auth/login/', {'username': 'asha', 'password': password}, format='json')
		return LoginView.as_view()(request)

	def test_valid_credentials_return_tokens(self):
		response = self.login('pass1234')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['user']['username'], 'asha')
		self.assertIn('access', response.data['tokens'])

	def test_wrong_password_is_rejected(self):
		self.assertEqual(self.login('nope').status_code, 400)
