import os

# Mock SECRET_KEY for tests BEFORE importing settings to bypass validation
os.environ.setdefault("SECRET_KEY", "django-insecure-test-key-for-unit-tests-only")

from .settings import *  # noqa: F403

# Override Database to use SQLite for tests
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "test_db.sqlite3",  # noqa: F405
    }
}

# Disable external services
PAYMENT_PROVIDER = "mock"
PAYMENT_CURRENCY = "usd"

STRIPE_SECRET_KEY = "sk_test_mock_key"

# Faster password hashing for factories
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# SessionAuthentication supports client.force_login() in tests
REST_FRAMEWORK["DEFAULT_AUTHENTICATION_CLASSES"] = [  # noqa: F405
    "rest_framework.authentication.SessionAuthentication",
]
