import logging
import random
from collections import Counter
from typing import Dict, List, Optional, Tuple

import networkx as nx
import numpy as np

from taxifleet.models.demand import DemandDistribution
from taxifleet.models.passenger import PassengerAgent
from taxifleet.models.road_network import GraphNavigator
from taxifleet.models.sensor import TaxiProximitySensor
from taxifleet.models.taxi import TaxiAgent, TaxiState
from taxifleet.simulation.dispatcher import FleetDispatcher
from .config import *

logger = logging.getLogger(__name__)


class SimulationStats:
    """Aggregates trip outcomes reported by passengers"""

    def __init__(self):
        self.trips_completed = 0
        self.trips_cancelled = 0

    def report_trip_completed(self):
        self.trips_completed += 1

    def report_trip_cancelled(self):
        self.trips_cancelled += 1


class FleetSimulation:
    def __init__(self, road_network: nx.Graph, demand: Optional[DemandDistribution] = None,
                 n_taxis: int = TOTAL_TAXIS, spawn_passengers: bool = True,
                 seed: Optional[int] = None):
        """Initialize the simulation
        Args:
            road_network: The road network taxis drive on
            demand: Where new passengers appear, None disables spawning
            n_taxis: Number of taxis to register at start
            spawn_passengers: Generate passengers automatically in step()
            seed: Seed for taxi placement and passenger generation
        """
        self.road_network = road_network
        self.demand = demand
        self.spawn_passengers = spawn_passengers and demand is not None
        self.random = random.Random(seed)
        self.rng = np.random.default_rng(seed)

        self.dispatcher = FleetDispatcher()
        self.stats = SimulationStats()

        # Initialize collections
        self.taxis: List[TaxiAgent] = []
        self.passengers: List[PassengerAgent] = []
        self.current_time = 0.0
        self._spawned = 0

        # Create initial taxis at random road network nodes
        nodes = list(road_network.nodes())
        for i in range(n_taxis):
            self.add_taxi(f"Taxi_{i + 1:02d}", self.random.choice(nodes))

    def add_taxi(self, taxi_id: str, location: Tuple[float, float]) -> TaxiAgent:
        """Create a taxi with its own navigator and sensor and register it"""
        navigator = GraphNavigator(self.road_network, location)
        taxi = TaxiAgent(taxi_id, navigator, dispatcher=self.dispatcher)
        taxi.sensor = TaxiProximitySensor(navigator, self.taxis)
        self.taxis.append(taxi)
        self.dispatcher.register_taxi(taxi)
        return taxi

    def add_passenger(self, pickup, dropoff, passenger_id: Optional[str] = None,
                      max_wait_time: float = PASSENGER_MAX_WAIT_TIME) -> PassengerAgent:
        """Add a new passenger to the simulation"""
        self._spawned += 1
        passenger = PassengerAgent(
            passenger_id or f"Passenger_{self._spawned:03d}",
            pickup, dropoff,
            dispatcher=self.dispatcher,
            stats=self.stats,
            max_wait_time=max_wait_time,
        )
        self.passengers.append(passenger)
        logger.info("Passenger spawned: %s", passenger.passenger_id)
        return passenger

    @property
    def active_passengers(self) -> List[PassengerAgent]:
        return [p for p in self.passengers if not p.is_terminal]

    def taxi_state_counts(self) -> Dict[TaxiState, int]:
        counts = Counter(taxi.state for taxi in self.taxis)
        return {state: counts.get(state, 0) for state in TaxiState}

    def generate_passengers(self, dt: float):
        """Probabilistically generate new passengers"""
        # Use Poisson distribution to determine number of new passengers
        n_new = self.rng.poisson(PASSENGER_GENERATION_RATE * dt)

        for _ in range(n_new):
            if len(self.active_passengers) >= MAX_ACTIVE_PASSENGERS:
                break
            pickup = self.demand.sample_point(self.rng, self.random)
            dropoff = self.demand.sample_point(self.rng, self.random)

            # Avoid trivially short trips
            attempts = 0
            while (np.linalg.norm(np.array(pickup) - np.array(dropoff)) < MIN_TRIP_DISTANCE
                   and attempts < 10):
                dropoff = self.demand.sample_point(self.rng, self.random)
                attempts += 1

            self.add_passenger(pickup, dropoff)

    def step(self, dt: float):
        """Advance simulation by one timestep"""
        self.current_time += dt

        if self.spawn_passengers:
            self.generate_passengers(dt)

        for taxi in self.taxis:
            taxi.navigator.advance(dt)
        for taxi in self.taxis:
            taxi.step(dt)
        for passenger in self.passengers:
            passenger.step(dt)
        self.dispatcher.step(dt)

    def run(self, duration: float, dt: float = 0.1):
        """Step the simulation headless for the given simulated duration"""
        for _ in range(int(round(duration / dt))):
            self.step(dt)
        return self.stats
