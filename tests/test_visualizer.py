"""Smoke test for the matplotlib view, rendered off-screen."""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from taxifleet.models.demand import random_demand
from taxifleet.models.road_network import create_sample_road_network
from taxifleet.models.taxi import TaxiState
from taxifleet.simulation.simulation import FleetSimulation
from taxifleet.visualization.visualizer import FleetVisualization


@pytest.fixture
def vis():
    grid = create_sample_road_network(size=8)
    sim = FleetSimulation(grid, random_demand(8, 2, 1.0), n_taxis=2, seed=3)
    view = FleetVisualization(sim)
    yield view
    plt.close(view.fig)


def test_update_advances_simulation(vis):
    vis.update(0)
    assert vis.sim.current_time == pytest.approx(vis.dt)
    assert len(vis.times) == 1


def test_taxis_drawn_by_state(vis):
    vis.update(0)
    drawn = sum(len(vis.taxi_plots[state].get_offsets()) for state in TaxiState)
    assert drawn == len(vis.sim.taxis)


def test_statistics_track_counters(vis):
    for _ in range(5):
        vis.update(0)
    assert vis.series['available'][-1] + vis.series['busy'][-1] \
        + vis.series['braking'][-1] <= len(vis.sim.taxis)
    assert len(vis.lines) == len(vis.series)
