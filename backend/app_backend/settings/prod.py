"""Production overrides: Redis-backed push, restricted hosts and origins."""

from .settings import *  # noqa: F401,F403
import os

DEBUG = False
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(',')
CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000").split(',')
CSRF_TRUSTED_ORIGINS = CORS_ALLOWED_ORIGINS

# Pushes must reach consumers in every worker process
CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels_redis.core.RedisChannelLayer",
        "CONFIG": {
            "hosts": [REDIS_URL],  # noqa: F405
            "capacity": int(os.getenv("CHANNEL_LAYER_CAPACITY", 1500)),
            "expiry": 30,
        },
    }
}

# Ride timers need a live broker; never run them inline here
CELERY_TASK_ALWAYS_EAGER = False
RIDE_TIMERS_ENABLED = True
