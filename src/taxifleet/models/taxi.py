"""
Taxi agent: a deliberative trip loop layered over a reactive braking loop.

Every simulation tick ``step`` first asks the obstacle sensor whether
another taxi is blocking the way. While blocked the taxi sits in
``WAITING`` with its navigator paused; the state it was in before braking
is kept in ``interrupted_state`` and restored once the road clears. If the
taxi stays braked for ``max_brake_time`` the navigator is resumed anyway
so two taxis facing each other cannot deadlock.

The trip loop runs once the road is clear, or straight away when the
navigator has already reached its target: arriving at the pickup boards
the passenger and heads for the dropoff, arriving at the dropoff frees
the taxi and tells the dispatcher.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Set, Tuple

from taxifleet.models.errors import DestinationUnreachable, InvalidStateTransition
from taxifleet.models.interfaces import Dispatcher, Navigator, ObstacleSensor, Point
from taxifleet.simulation.config import (
    ARRIVAL_TOLERANCE,
    BRAKE_DISTANCE,
    DESTINATION_SEARCH_RADIUS,
    MAX_BRAKE_TIME,
)

logger = logging.getLogger(__name__)


class TaxiState(Enum):
    AVAILABLE = "available"
    ASSIGNED = "assigned"
    GOING_TO_PICKUP = "going to pickup"
    PASSENGER_ABOARD = "passenger aboard"
    EN_ROUTE = "passenger aboard"  # alias: driving to the dropoff
    WAITING = "waiting"


# Maps current state -> states it may move to
TAXI_TRANSITIONS: Dict[TaxiState, Set[TaxiState]] = {
    TaxiState.AVAILABLE: {TaxiState.ASSIGNED},
    TaxiState.ASSIGNED: {TaxiState.GOING_TO_PICKUP, TaxiState.AVAILABLE},
    TaxiState.GOING_TO_PICKUP: {
        TaxiState.PASSENGER_ABOARD,
        TaxiState.WAITING,
        TaxiState.AVAILABLE,
    },
    TaxiState.PASSENGER_ABOARD: {TaxiState.AVAILABLE, TaxiState.WAITING},
    TaxiState.WAITING: {
        TaxiState.GOING_TO_PICKUP,
        TaxiState.PASSENGER_ABOARD,
        TaxiState.AVAILABLE,
    },
}

MOVING_STATES = (TaxiState.GOING_TO_PICKUP, TaxiState.PASSENGER_ABOARD)


@dataclass(frozen=True)
class Trip:
    passenger: object
    pickup: Point
    dropoff: Point


class TaxiAgent:
    def __init__(self, taxi_id: str, navigator: Navigator,
                 sensor: Optional[ObstacleSensor] = None,
                 dispatcher: Optional[Dispatcher] = None,
                 brake_distance: float = BRAKE_DISTANCE,
                 max_brake_time: float = MAX_BRAKE_TIME,
                 search_radius: float = DESTINATION_SEARCH_RADIUS):
        """
        Args:
            taxi_id: Unique identifier within the fleet
            navigator: Path-following capability, owns the taxi position
            sensor: Obstacle sensor, None disables braking entirely
            dispatcher: Notified when the taxi frees up
        """
        self.taxi_id = taxi_id
        self.navigator = navigator
        self.sensor = sensor
        self.dispatcher = dispatcher
        self.brake_distance = brake_distance
        self.max_brake_time = max_brake_time
        self.search_radius = search_radius

        self.state = TaxiState.AVAILABLE
        self.trip: Optional[Trip] = None
        self.has_destination = False
        self.is_braking = False
        self.brake_timer = 0.0
        self.interrupted_state: Optional[TaxiState] = None

    def __repr__(self):
        return f"TaxiAgent({self.taxi_id!r}, {self.state.name})"

    @property
    def position(self) -> Tuple[float, float]:
        return self.navigator.position

    @property
    def passenger(self):
        return self.trip.passenger if self.trip else None

    @property
    def is_available(self) -> bool:
        return self.state == TaxiState.AVAILABLE

    @property
    def heading_to_pickup(self) -> bool:
        """True while the current (or interrupted) leg ends at the pickup"""
        phase = self.interrupted_state if self.state == TaxiState.WAITING else self.state
        return phase == TaxiState.GOING_TO_PICKUP

    def _transition(self, new_state: TaxiState) -> None:
        allowed = TAXI_TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise InvalidStateTransition(
                f"{self.taxi_id}: cannot transition from {self.state} to {new_state}"
            )
        self.state = new_state

    # ── Trip loop ─────────────────────────────────────────────────────

    def assign_trip(self, passenger, pickup, dropoff) -> None:
        """Bind this taxi to a passenger and start driving to the pickup.

        Both points are snapped onto the road network and the dropoff must be
        reachable from the pickup, otherwise DestinationUnreachable is raised
        with the taxi left AVAILABLE.
        """
        if self.state != TaxiState.AVAILABLE:
            raise InvalidStateTransition(
                f"{self.taxi_id} is {self.state.value}, cannot take a new trip"
            )
        pickup_target = self._snap(pickup)
        dropoff_target = self._snap(dropoff)
        if not self.navigator.can_route(pickup_target, dropoff_target):
            logger.warning("[%s] No road from pickup %s to dropoff %s",
                           self.taxi_id, pickup_target, dropoff_target)
            raise DestinationUnreachable(dropoff, reason="no route from pickup")

        self.trip = Trip(passenger, pickup_target, dropoff_target)
        self._transition(TaxiState.ASSIGNED)
        logger.info("[%s] Trip assigned, heading to pickup %s", self.taxi_id, pickup_target)
        try:
            self._set_destination(pickup_target)
        except DestinationUnreachable:
            # Snapped but not connected: hand the taxi back untouched
            self.trip = None
            self._transition(TaxiState.AVAILABLE)
            raise
        self._transition(TaxiState.GOING_TO_PICKUP)

    def abandon_trip(self) -> bool:
        """Withdraw a trip whose passenger has not boarded yet."""
        if self.trip is None or not self.heading_to_pickup:
            return False
        logger.info("[%s] Trip withdrawn before pickup", self.taxi_id)
        self.navigator.stop()
        self._clear_braking()
        self.trip = None
        self.has_destination = False
        self._transition(TaxiState.AVAILABLE)
        return True

    def _snap(self, point):
        target = self.navigator.sample_position(point, self.search_radius)
        if target is None:
            logger.warning(
                "[%s] Destination %s is off the road network "
                "(nothing navigable within %.1f)", self.taxi_id, point, self.search_radius
            )
            raise DestinationUnreachable(point)
        return target

    def _set_destination(self, point) -> None:
        target = self._snap(point)
        self.navigator.set_destination(target)
        self.navigator.resume()
        self.has_destination = True
        logger.debug("[%s] Navigating to %s", self.taxi_id, target)

    def _on_destination_reached(self):
        self.has_destination = False
        if self.state == TaxiState.GOING_TO_PICKUP:
            self._pick_up_passenger()
        elif self.state == TaxiState.PASSENGER_ABOARD:
            self._drop_off_passenger()

    def _pick_up_passenger(self):
        if self.trip is None or self.trip.passenger is None:
            return
        self._transition(TaxiState.PASSENGER_ABOARD)
        self.trip.passenger.on_taxi_arrived(self)
        logger.info("[%s] Passenger picked up, heading to dropoff", self.taxi_id)
        self._set_destination(self.trip.dropoff)

    def _drop_off_passenger(self):
        logger.info("[%s] Passenger dropped off", self.taxi_id)
        if self.passenger is not None:
            self.passenger.on_trip_completed(self)
        self.trip = None
        self._transition(TaxiState.AVAILABLE)
        if self.dispatcher is not None:
            self.dispatcher.on_taxi_available(self)

    # ── Reactive loop ─────────────────────────────────────────────────

    def _detect_taxi_ahead(self) -> bool:
        if self.sensor is None:
            return False
        return self.sensor.is_blocked_ahead(self.brake_distance)

    def _clear_braking(self):
        self.is_braking = False
        self.brake_timer = 0.0
        self.interrupted_state = None

    def _has_arrived(self) -> bool:
        return (self.has_destination
                and not self.navigator.is_pending
                and self.navigator.remaining_distance
                <= self.navigator.stopping_distance + ARRIVAL_TOLERANCE)

    def step(self, dt: float):
        """Run one simulation tick"""
        # A taxi standing at its target has nothing left to brake for
        arrived = self._has_arrived()
        if self.is_braking or self.state in MOVING_STATES:
            if not arrived and self._detect_taxi_ahead():
                if not self.is_braking:
                    self.is_braking = True
                    self.brake_timer = 0.0
                    self.navigator.pause()
                    self.interrupted_state = self.state
                    self._transition(TaxiState.WAITING)
                    logger.debug("[%s] Taxi ahead, braking", self.taxi_id)
                else:
                    self.brake_timer += dt
                    if self.brake_timer >= self.max_brake_time:
                        # Let the navigator replan rather than wait forever
                        self.brake_timer = 0.0
                        self.navigator.resume()
                        logger.debug("[%s] Braked too long, forcing navigator on", self.taxi_id)
                return

            if self.is_braking:
                resume_to = self.interrupted_state
                self._clear_braking()
                self.navigator.resume()
                self._transition(resume_to)

        if arrived:
            self._on_destination_reached()
