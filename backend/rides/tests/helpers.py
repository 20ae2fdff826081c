from decimal import Decimal

from accounts.models import User
from drivers.models import DriverProfile
from rides.models import RideRequest

ORIGIN = (Decimal('28.613900'), Decimal('77.209000'))
DESTINATION = (Decimal('28.612900'), Decimal('77.229500'))


def make_passenger(username='passenger', phone_number='9000000000'):
	return User.objects.create_user(
		username=username,
		password='pass1234',
		role=User.ROLE_PASSENGER,
		phone_number=phone_number
	)


def make_driver(username, vehicle_number, status=DriverProfile.STATUS_ONLINE, is_verified=True,
				latitude=None, longitude=None):
	user = User.objects.create_user(
		username=username,
		password='driver1234',
		role=User.ROLE_DRIVER,
		phone_number='9100000000'
	)
	DriverProfile.objects.create(
		user=user,
		vehicle_number=vehicle_number,
		status=status,
		is_verified=is_verified,
		current_latitude=latitude,
		current_longitude=longitude
	)
	return user


def make_ride(passenger, **fields):
	values = {
		'origin_lat': ORIGIN[0],
		'origin_lng': ORIGIN[1],
		'origin_address': 'Connaught Place',
		'destination_lat': DESTINATION[0],
		'destination_lng': DESTINATION[1],
		'destination_address': 'India Gate',
		'service_id': 'rickshaw',
		'estimated_fare': Decimal('120.00'),
	}
	values.update(fields)
	return RideRequest.objects.create(passenger=passenger, **values)


def ride_payload(**overrides):
	payload = {
		'origin_lat': str(ORIGIN[0]),
		'origin_lng': str(ORIGIN[1]),
		'origin_address': 'Connaught Place',
		'destination_lat': str(DESTINATION[0]),
		'destination_lng': str(DESTINATION[1]),
		'destination_address': 'India Gate',
		'service_id': 'rickshaw',
	}
	payload.update(overrides)
	return payload
