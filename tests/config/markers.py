"""
Pytest markers for the pharmacy POS tests.

Markers are registered here and added automatically from the test file
location, so ``pytest -m unit`` and ``pytest -m integration`` work without
decorating every test.
"""

import pytest


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "auth: mark test as authentication-related")
    config.addinivalue_line("markers", "api: mark test as API endpoint test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "concurrency: mark test as exercising parallel writers")
    config.addinivalue_line("markers", "services: mark test as service layer test")
    config.addinivalue_line("markers", "repositories: mark test as repository test")


def pytest_collection_modifyitems(config, items):
    """Modify test items during collection."""
    for item in items:
        path = str(item.fspath)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
        if "integration" in path:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.api)
        if "auth" in path or "auth" in item.name:
            item.add_marker(pytest.mark.auth)
        if "concurren" in path or "concurren" in item.name:
            item.add_marker(pytest.mark.concurrency)
            item.add_marker(pytest.mark.slow)
