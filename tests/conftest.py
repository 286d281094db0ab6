"""
Pytest configuration and fixtures for testing.

This module provides relay state, settings and application fixtures shared
by the unit and integration tests.
"""

import random

import pytest
from fastapi.testclient import TestClient

from telerelay import application
from telerelay.settings import Settings
from telerelay.state import RelayState


@pytest.fixture
def settings():
    """
    Settings with background tasks effectively idle.

    Returns:
        Settings: Delivery tick of one hour, idle room expiry disabled.
    """
    return Settings(
        DELIVERY_TICK_SECONDS=3600,
        ROOM_IDLE_TIMEOUT_SECONDS=0,
    )


@pytest.fixture
def relay(settings):
    """
    Fresh relay state with a seeded random generator.

    Returns:
        RelayState: Registry, broker and delivery tracker with no connections.
    """
    return RelayState(settings, rng=random.Random(7))


@pytest.fixture
def app(settings):
    """
    Create a FastAPI application with its own relay state.

    Returns:
        FastAPI: FastAPI application instance.
    """
    return application(settings)


@pytest.fixture
def client(app):
    """
    Create a test client running the application lifespan.

    Yields:
        TestClient: FastAPI test client instance.
    """
    with TestClient(app) as test_client:
        yield test_client
