"""
Interfaces the taxi and passenger agents need from their collaborators.

The concrete implementations shipped with the simulation live in
``road_network`` (navigator), ``sensor`` (obstacle sensor),
``simulation.simulation`` (trip event sink) and ``simulation.dispatcher``.
"""

from typing import Optional, Protocol, Tuple

Point = Tuple[float, float]


class Navigator(Protocol):
    """Path-following capability owned by a single taxi."""

    speed: float
    stopping_distance: float

    @property
    def position(self) -> Point: ...

    @property
    def heading(self) -> Point: ...

    @property
    def is_pending(self) -> bool: ...

    @property
    def remaining_distance(self) -> float: ...

    def sample_position(self, point: Point, max_distance: float) -> Optional[Point]:
        """Nearest navigable point within max_distance, or None."""
        ...

    def can_route(self, start: Point, end: Point) -> bool:
        """True if end can be driven to from start."""
        ...

    def set_destination(self, point: Point) -> None:
        """Start travelling to point. Raises DestinationUnreachable."""
        ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def stop(self) -> None: ...

    def advance(self, dt: float) -> None: ...


class ObstacleSensor(Protocol):
    def is_blocked_ahead(self, max_distance: float) -> bool:
        """True if another taxi is ahead within max_distance (never the owner)."""
        ...


class TripEventSink(Protocol):
    def report_trip_completed(self) -> None: ...

    def report_trip_cancelled(self) -> None: ...


class Dispatcher(Protocol):
    def receive_request(self, passenger, pickup: Point, dropoff: Point) -> bool: ...

    def cancel_request(self, passenger) -> bool: ...

    def on_taxi_available(self, taxi) -> None: ...
