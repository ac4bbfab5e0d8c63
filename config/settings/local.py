from .base import *
from .base import env

DEBUG = env.bool("DJANGO_DEBUG", True)
SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="local-barn-stats-insecure-Qz1mX8rT0vK3pL6wN9sD2fH5jB7cY4eA",
)
ALLOWED_HOSTS = ["localhost", "0.0.0.0", "127.0.0.1"]
