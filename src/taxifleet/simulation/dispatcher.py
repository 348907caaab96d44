"""
Fleet dispatcher
================

Central coordinator holding the taxi registry and the pending-request
queue.

Matching
--------
``select_best_taxi`` is a linear scan over registered taxis, keeping the
``AVAILABLE`` one with the strictly smallest Euclidean distance to the
pickup. Ties go to whichever taxi was registered first.

Pending requests
----------------
A request that finds no free taxi is queued (FIFO). The queue is drained
whenever a taxi reports it is free and, as a safety net against missed
events, every ``retry_interval`` seconds of simulated time. A drain pass
handles at most as many requests as were queued when it started and stops
at the first request it cannot match: with no taxi left, later requests
would fail too. The unmatched request goes back to the head of the queue
so the remaining requests keep their arrival order.

Cancellation
------------
A passenger that gives up calls ``cancel_request``: its queued entry is
removed and a taxi still driving to pick it up is released.

Concurrency
-----------
The simulation is single-threaded, but every access to the registry and
queue happens under one re-entrant lock so selection + assignment stays
atomic if the dispatcher is ever driven from several threads. The lock is
re-entrant because drop-off and cancellation callbacks drain the queue
from inside dispatcher calls.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, List, Optional, Tuple

import numpy as np

from taxifleet.models.errors import DestinationUnreachable
from taxifleet.models.taxi import TaxiAgent, TaxiState
from taxifleet.simulation.config import DISPATCH_RETRY_INTERVAL

logger = logging.getLogger(__name__)


class DispatcherState(Enum):
    MONITORING = "monitoring"
    PROCESSING_REQUEST = "processing request"
    ASSIGNING_TAXI = "assigning taxi"
    SUPERVISING_TRIP = "supervising trip"


@dataclass(frozen=True)
class TripRequest:
    passenger: object
    pickup: Tuple[float, float]
    dropoff: Tuple[float, float]


def _passenger_name(passenger) -> str:
    return getattr(passenger, "passenger_id", repr(passenger))


class FleetDispatcher:
    def __init__(self, retry_interval: float = DISPATCH_RETRY_INTERVAL):
        self.taxis: List[TaxiAgent] = []
        self.pending_requests: Deque[TripRequest] = deque()
        self.state = DispatcherState.MONITORING
        self.retry_interval = retry_interval
        self._retry_timer = 0.0
        self._lock = threading.RLock()

    @property
    def pending_count(self) -> int:
        return len(self.pending_requests)

    def is_queued(self, passenger) -> bool:
        with self._lock:
            return any(req.passenger is passenger for req in self.pending_requests)

    # ── Registry ──────────────────────────────────────────────────────

    def register_taxi(self, taxi: TaxiAgent) -> bool:
        """Add a taxi to the fleet. Registering the same taxi_id again is a no-op."""
        with self._lock:
            if any(t.taxi_id == taxi.taxi_id for t in self.taxis):
                return False
            self.taxis.append(taxi)
        if taxi.dispatcher is None:
            taxi.dispatcher = self
        logger.info("[Dispatcher] Taxi registered: %s", taxi.taxi_id)
        return True

    # ── Requests ──────────────────────────────────────────────────────

    def receive_request(self, passenger, pickup, dropoff) -> bool:
        """Assign the nearest free taxi now, or queue the request.

        Returns True if a taxi was assigned immediately.
        """
        with self._lock:
            self.state = DispatcherState.PROCESSING_REQUEST
            logger.info("[Dispatcher] Request received from %s", _passenger_name(passenger))

            request = TripRequest(passenger, pickup, dropoff)
            best = self.select_best_taxi(pickup)
            if best is not None:
                try:
                    self._assign_trip(best, request)
                except DestinationUnreachable as exc:
                    logger.warning("[Dispatcher] Refusing request from %s: %s",
                                   _passenger_name(passenger), exc)
                    self.state = DispatcherState.MONITORING
                    return False
                # A retry that matched directly supersedes the queued copy
                self._remove_queued(passenger)
                self.state = DispatcherState.SUPERVISING_TRIP
                return True

            if not self.is_queued(passenger):
                self.pending_requests.append(request)
            self.state = DispatcherState.MONITORING
            logger.info("[Dispatcher] No taxis available, request queued (%d pending)",
                        len(self.pending_requests))
            return False

    def cancel_request(self, passenger) -> bool:
        """Forget a passenger that gave up. Returns True if anything was withdrawn."""
        with self._lock:
            withdrawn = self._remove_queued(passenger) > 0
            released = False
            for taxi in self.taxis:
                if taxi.passenger is passenger and taxi.abandon_trip():
                    released = True
            if withdrawn or released:
                logger.info("[Dispatcher] Request from %s cancelled", _passenger_name(passenger))
            if released:
                self.try_assign_pending_requests()
            return withdrawn or released

    def _remove_queued(self, passenger) -> int:
        before = len(self.pending_requests)
        self.pending_requests = deque(
            req for req in self.pending_requests if req.passenger is not passenger
        )
        return before - len(self.pending_requests)

    # ── Matching ──────────────────────────────────────────────────────

    def select_best_taxi(self, pickup) -> Optional[TaxiAgent]:
        """Nearest AVAILABLE taxi to the pickup, first registered wins ties"""
        best = None
        best_distance = float('inf')
        target = np.array(pickup, dtype=float)

        with self._lock:
            for taxi in self.taxis:
                if taxi.state != TaxiState.AVAILABLE:
                    continue
                distance = np.linalg.norm(np.array(taxi.position, dtype=float) - target)
                if distance < best_distance:
                    best_distance = distance
                    best = taxi
        return best

    def _assign_trip(self, taxi: TaxiAgent, request: TripRequest):
        self.state = DispatcherState.ASSIGNING_TAXI
        logger.info("[Dispatcher] Assigning %s to %s",
                    taxi.taxi_id, _passenger_name(request.passenger))
        taxi.assign_trip(request.passenger, request.pickup, request.dropoff)
        on_assigned = getattr(request.passenger, "on_taxi_assigned", None)
        if on_assigned is not None:
            on_assigned(taxi)

    def try_assign_pending_requests(self) -> int:
        """Drain the pending queue as far as free taxis allow.

        Returns the number of requests matched.
        """
        matched = 0
        with self._lock:
            attempts = len(self.pending_requests)
            for _ in range(attempts):
                if not self.pending_requests:
                    break
                request = self.pending_requests.popleft()
                if getattr(request.passenger, "is_terminal", False) is True:
                    logger.debug("[Dispatcher] Dropping stale request from %s",
                                 _passenger_name(request.passenger))
                    continue

                best = self.select_best_taxi(request.pickup)
                if best is None:
                    # No free taxis left, later requests would fail too
                    self.pending_requests.appendleft(request)
                    break
                try:
                    self._assign_trip(best, request)
                except DestinationUnreachable as exc:
                    logger.warning("[Dispatcher] Discarding request from %s: %s",
                                   _passenger_name(request.passenger), exc)
                    continue
                matched += 1

            if matched:
                self.state = DispatcherState.SUPERVISING_TRIP
                logger.info("[Dispatcher] Assigned %d pending requests (%d still queued)",
                            matched, len(self.pending_requests))
        return matched

    # ── Events ────────────────────────────────────────────────────────

    def on_taxi_available(self, taxi: TaxiAgent):
        logger.info("[Dispatcher] %s available again", taxi.taxi_id)
        self.state = DispatcherState.MONITORING
        self.try_assign_pending_requests()

    def step(self, dt: float) -> int:
        """Advance the background retry timer, draining the queue when it fires"""
        self._retry_timer += dt
        if self._retry_timer < self.retry_interval:
            return 0
        self._retry_timer = 0.0
        return self.try_assign_pending_requests()
