import logging
from enum import Enum
from typing import Dict, Optional, Set, Tuple

from taxifleet.models.errors import InvalidStateTransition
from taxifleet.models.interfaces import Dispatcher, TripEventSink
from taxifleet.simulation.config import (
    PASSENGER_MAX_WAIT_TIME,
    PASSENGER_RETRY_DELAY,
    PASSENGER_STARTUP_DELAY,
)

logger = logging.getLogger(__name__)


class PassengerState(Enum):
    INACTIVE = "inactive"
    REQUESTING_TRIP = "requesting trip"
    WAITING_FOR_TAXI = "waiting for taxi"
    ON_TRIP = "on trip"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


PASSENGER_TRANSITIONS: Dict[PassengerState, Set[PassengerState]] = {
    PassengerState.INACTIVE: {PassengerState.REQUESTING_TRIP},
    PassengerState.REQUESTING_TRIP: {
        PassengerState.WAITING_FOR_TAXI,
        PassengerState.CANCELLED,
    },
    PassengerState.WAITING_FOR_TAXI: {PassengerState.ON_TRIP, PassengerState.CANCELLED},
    PassengerState.ON_TRIP: {PassengerState.COMPLETED},
    PassengerState.COMPLETED: set(),
    PassengerState.CANCELLED: set(),
}

TERMINAL_STATES = (PassengerState.COMPLETED, PassengerState.CANCELLED)


class PassengerAgent:
    """Reactive rider: asks for a trip, waits, rides, or gives up.

    Timers are plain counters advanced by ``step``; nothing here blocks.
    """

    def __init__(self, passenger_id: str,
                 pickup: Optional[Tuple[float, float]],
                 dropoff: Optional[Tuple[float, float]],
                 dispatcher: Optional[Dispatcher] = None,
                 stats: Optional[TripEventSink] = None,
                 max_wait_time: float = PASSENGER_MAX_WAIT_TIME,
                 startup_delay: float = PASSENGER_STARTUP_DELAY,
                 retry_delay: float = PASSENGER_RETRY_DELAY):
        self.passenger_id = passenger_id
        self.pickup = pickup
        self.dropoff = dropoff
        self.position = pickup
        self.dispatcher = dispatcher
        self.stats = stats
        self.max_wait_time = max_wait_time
        self.retry_delay = retry_delay

        self.state = PassengerState.INACTIVE
        self.active = True
        self.assigned_taxi = None
        self.wait_timer = 0.0
        # Seconds until the next request attempt, None when nothing is scheduled
        self.request_due_in: Optional[float] = startup_delay

    def __repr__(self):
        return f"PassengerAgent({self.passenger_id!r}, {self.state.name})"

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def is_waiting(self) -> bool:
        return self.state in (PassengerState.REQUESTING_TRIP, PassengerState.WAITING_FOR_TAXI)

    def _transition(self, new_state: PassengerState) -> None:
        if new_state == self.state:
            return
        allowed = PASSENGER_TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise InvalidStateTransition(
                f"{self.passenger_id}: cannot transition from {self.state} to {new_state}"
            )
        self.state = new_state

    def step(self, dt: float):
        if self.is_terminal:
            return

        if self.is_waiting:
            self.wait_timer += dt
            if self.wait_timer >= self.max_wait_time:
                self.cancel()
                return

        if self.request_due_in is not None:
            self.request_due_in -= dt
            if self.request_due_in <= 0:
                self.request_due_in = None
                self.create_request()

    def create_request(self) -> bool:
        """Ask the dispatcher for a trip. Returns True if a taxi was assigned."""
        if self.is_terminal or self.state in (PassengerState.WAITING_FOR_TAXI,
                                              PassengerState.ON_TRIP):
            return False
        if self.pickup is None or self.dropoff is None:
            logger.warning("[%s] Missing pickup/dropoff point, request aborted",
                           self.passenger_id)
            return False

        if self.state == PassengerState.INACTIVE:
            self.wait_timer = 0.0
        self._transition(PassengerState.REQUESTING_TRIP)
        logger.info("[%s] Requesting trip from %s to %s",
                    self.passenger_id, self.pickup, self.dropoff)

        accepted = (self.dispatcher is not None
                    and self.dispatcher.receive_request(self, self.pickup, self.dropoff))
        if accepted:
            # on_taxi_assigned normally got here first
            if self.state == PassengerState.REQUESTING_TRIP:
                self._transition(PassengerState.WAITING_FOR_TAXI)
                self.wait_timer = 0.0
            logger.info("[%s] Request accepted, waiting for taxi", self.passenger_id)
        elif self.state == PassengerState.REQUESTING_TRIP:
            logger.info("[%s] No taxi available, retrying in %.1fs",
                        self.passenger_id, self.retry_delay)
            self.request_due_in = self.retry_delay
        return bool(accepted)

    def cancel(self):
        self._transition(PassengerState.CANCELLED)
        self.active = False
        self.request_due_in = None
        logger.info("[%s] Waited %.1fs, request cancelled", self.passenger_id, self.wait_timer)
        if self.dispatcher is not None:
            self.dispatcher.cancel_request(self)
        self.assigned_taxi = None
        if self.stats is not None:
            self.stats.report_trip_cancelled()

    # ── Notifications from dispatcher / taxi ──────────────────────────

    def on_taxi_assigned(self, taxi):
        if self.state != PassengerState.REQUESTING_TRIP:
            logger.debug("[%s] Ignoring assignment of %s while %s",
                         self.passenger_id, taxi, self.state.value)
            return
        self.assigned_taxi = taxi
        self.request_due_in = None
        self.wait_timer = 0.0
        self._transition(PassengerState.WAITING_FOR_TAXI)

    def on_taxi_arrived(self, taxi=None):
        if self.state != PassengerState.WAITING_FOR_TAXI:
            logger.debug("[%s] Taxi arrived while %s, ignored", self.passenger_id, self.state.value)
            return
        self._transition(PassengerState.ON_TRIP)
        logger.info("[%s] Taxi arrived, on trip", self.passenger_id)

    def on_trip_completed(self, taxi=None):
        if self.state != PassengerState.ON_TRIP:
            logger.debug("[%s] Trip completion while %s, ignored", self.passenger_id, self.state.value)
            return
        self._transition(PassengerState.COMPLETED)
        self.position = self.dropoff
        self.assigned_taxi = None
        logger.info("[%s] Trip completed", self.passenger_id)
        if self.stats is not None:
            self.stats.report_trip_completed()
