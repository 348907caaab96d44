"""
Shared test fixtures.

The taxi only talks to its navigator and sensor through a handful of
attributes, so the fakes below let tests script arrival, pending paths and
obstacles tick by tick without a road network.
"""

from unittest.mock import MagicMock

import pytest

from taxifleet.models.errors import DestinationUnreachable
from taxifleet.models.taxi import TaxiAgent
from taxifleet.simulation.dispatcher import FleetDispatcher


class FakeNavigator:
    def __init__(self, position=(0.0, 0.0), stopping_distance=1.0):
        self.position = position
        self.heading = (1.0, 0.0)
        self.speed = 6.0
        self.stopping_distance = stopping_distance
        self.destination = None
        self.is_pending = False
        self.remaining_distance = 10.0
        self.is_paused = False
        self.off_road = set()
        self.disconnected = set()
        self.unroutable = set()
        self.pause_calls = 0
        self.resume_calls = 0
        self.stop_calls = 0

    def sample_position(self, point, max_distance):
        if point in self.off_road:
            return None
        return point

    def can_route(self, start, end):
        return (start, end) not in self.unroutable

    def set_destination(self, point):
        if point in self.disconnected:
            raise DestinationUnreachable(point, reason="no route")
        self.destination = point
        self.remaining_distance = 10.0

    def pause(self):
        self.pause_calls += 1
        self.is_paused = True

    def resume(self):
        self.resume_calls += 1
        self.is_paused = False

    def stop(self):
        self.stop_calls += 1
        self.destination = None

    def advance(self, dt):
        pass


class FakeSensor:
    def __init__(self, blocked=False):
        self.blocked = blocked
        self.calls = []

    def is_blocked_ahead(self, max_distance):
        self.calls.append(max_distance)
        return self.blocked


@pytest.fixture
def navigator():
    return FakeNavigator()


@pytest.fixture
def sensor():
    return FakeSensor()


@pytest.fixture
def passenger():
    p = MagicMock(name="passenger")
    p.passenger_id = "P1"
    p.is_terminal = False
    return p


@pytest.fixture
def dispatcher():
    return FleetDispatcher(retry_interval=3.0)


@pytest.fixture
def make_taxi():
    """Factory: make_taxi("T1", position=(x, y), sensor=..., dispatcher=...)"""

    def _make(taxi_id, position=(0.0, 0.0), sensor=None, dispatcher=None, **kwargs):
        return TaxiAgent(taxi_id, FakeNavigator(position), sensor=sensor,
                         dispatcher=dispatcher, **kwargs)

    return _make
