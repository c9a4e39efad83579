"""
Central pytest configuration for the pharmacy POS tests.

Environment variables are set before anything from ``pharmacy_pos`` is
imported so that settings read from the environment see test values. Most
fixtures build ``Settings`` explicitly anyway; the variables cover code paths
that call ``load_settings()`` themselves.
"""

import os

os.environ["TESTING"] = "true"
os.environ["RATE_LIMIT_ENABLED"] = "0"  # Disable rate limiting in tests
os.environ["LOG_TO_FILE"] = "0"
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from tests.config.markers import *  # noqa: E402,F401,F403
from tests.fixtures.database_fixtures import *  # noqa: E402,F401,F403
from tests.fixtures.integration_fixtures import *  # noqa: E402,F401,F403
