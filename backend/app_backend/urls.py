from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Authentication endpoints (at /api/auth/)
    path('api/auth/', include('accounts.urls')),  # accounts.urls have register, login, refresh endpoints

    # Passenger APIs (create, current ride, cancel, retry)
    path('api/passenger/', include('passengers.urls')),

    # Driver APIs (status, location, pending requests, accept, advance, cancel, current ride)
    path('api/driver/', include('drivers.urls')),
]
