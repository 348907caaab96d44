import logging

from taxifleet.models.demand import random_demand
from taxifleet.models.road_network import create_sample_road_network
from taxifleet.simulation.config import (
    DEMAND_HOTSPOT_STDDEV,
    MAP_SIZE,
    N_DEMAND_HOTSPOTS,
    TOTAL_TAXIS,
)
from taxifleet.simulation.simulation import FleetSimulation
from taxifleet.visualization.visualizer import FleetVisualization


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    road_network = create_sample_road_network(size=MAP_SIZE)

    # Demand hotspots where passengers appear
    demand = random_demand(MAP_SIZE, N_DEMAND_HOTSPOTS, DEMAND_HOTSPOT_STDDEV)

    sim = FleetSimulation(road_network, demand, n_taxis=TOTAL_TAXIS)

    vis = FleetVisualization(sim)
    vis.show()


if __name__ == "__main__":
    main()
