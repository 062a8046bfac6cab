"""
Pytest fixtures for order synchronization tests.
"""
import pytest

from orders.channel import LocalEventChannel
from orders.services import OrderSyncEngine

from .factories import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def channel():
    return LocalEventChannel()


@pytest.fixture
def engine(clock, channel):
    engine = OrderSyncEngine(restaurant_id="rest-1", clock=clock)
    with engine.session(channel):
        yield engine
