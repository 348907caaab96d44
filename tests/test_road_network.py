"""Tests for the grid navigator, proximity sensor and demand sampling."""

from types import SimpleNamespace

import networkx as nx
import numpy as np
import pytest

from taxifleet.models.demand import DemandDistribution, DemandHotspot, random_demand
from taxifleet.models.errors import DestinationUnreachable
from taxifleet.models.road_network import (
    GraphNavigator,
    create_sample_road_network,
    nearest_node,
)
from taxifleet.models.sensor import TaxiProximitySensor


@pytest.fixture
def grid():
    return create_sample_road_network(size=10)


class TestRoadNetwork:
    def test_grid_size(self, grid):
        assert grid.number_of_nodes() == 100

    def test_edges_have_length(self, grid):
        assert grid[(0, 0)][(0, 1)]['length'] == pytest.approx(1.0)

    def test_rejects_degenerate_grid(self):
        with pytest.raises(ValueError):
            create_sample_road_network(size=1)

    def test_nearest_node(self, grid):
        node, distance = nearest_node(grid, (2.3, 3.6))
        assert node == (2, 4)
        assert distance == pytest.approx(np.hypot(0.3, 0.4))


class TestGraphNavigator:
    def test_snaps_onto_network(self, grid):
        nav = GraphNavigator(grid, (0, 0))
        assert nav.sample_position((2.3, 3.6), max_distance=5.0) == (2, 4)

    def test_rejects_points_far_from_network(self, grid):
        nav = GraphNavigator(grid, (0, 0))
        assert nav.sample_position((30.0, 30.0), max_distance=5.0) is None

    def test_path_is_pending_until_next_advance(self, grid):
        nav = GraphNavigator(grid, (0, 0), speed=6.0)
        nav.set_destination((3, 0))
        assert nav.is_pending
        assert nav.remaining_distance == float('inf')

        nav.advance(0.0)
        assert not nav.is_pending
        assert nav.remaining_distance == pytest.approx(3.0)

    def test_drives_to_destination(self, grid):
        nav = GraphNavigator(grid, (0, 0), speed=6.0)
        nav.set_destination((3, 0))
        nav.advance(0.25)
        assert nav.position == pytest.approx((1.5, 0.0))
        assert nav.heading == pytest.approx((1.0, 0.0))

        nav.advance(1.0)
        assert nav.position == pytest.approx((3.0, 0.0))
        assert nav.remaining_distance == pytest.approx(0.0)

    def test_follows_grid_around_corner(self, grid):
        nav = GraphNavigator(grid, (0, 0), speed=1.0)
        nav.set_destination((2, 2))
        nav.advance(0.0)
        assert nav.remaining_distance == pytest.approx(4.0)

    def test_pause_holds_position(self, grid):
        nav = GraphNavigator(grid, (0, 0), speed=6.0)
        nav.set_destination((5, 0))
        nav.advance(0.0)
        nav.pause()
        nav.advance(1.0)
        assert nav.position == (0.0, 0.0)

        nav.resume()
        assert nav.is_pending
        nav.advance(0.5)
        assert nav.position == pytest.approx((3.0, 0.0))

    def test_stop_clears_destination(self, grid):
        nav = GraphNavigator(grid, (0, 0))
        nav.set_destination((5, 0))
        nav.stop()
        nav.advance(1.0)
        assert nav.position == (0.0, 0.0)
        assert nav.destination is None

    def test_off_network_destination_rejected(self, grid):
        nav = GraphNavigator(grid, (0, 0))
        with pytest.raises(DestinationUnreachable):
            nav.set_destination((2.5, 2.5))

    def test_can_route_on_connected_grid(self, grid):
        nav = GraphNavigator(grid, (0, 0))
        assert nav.can_route((3, 0), (9, 9))
        assert not nav.can_route((3, 0), (2.5, 2.5))

    def test_can_route_between_islands(self):
        west_side = create_sample_road_network(size=5)
        east_side = nx.relabel_nodes(create_sample_road_network(size=5),
                                     lambda node: (node[0] + 10, node[1]))
        nav = GraphNavigator(nx.union(west_side, east_side), (0, 0))
        assert nav.can_route((3, 0), (4, 4))
        assert not nav.can_route((3, 0), (12, 2))

    def test_disconnected_destination_rejected(self):
        graph = nx.Graph()
        graph.add_edge((0, 0), (1, 0), length=1.0)
        graph.add_edge((5, 5), (6, 5), length=1.0)
        nav = GraphNavigator(graph, (0, 0))
        with pytest.raises(DestinationUnreachable):
            nav.set_destination((6, 5))
        assert nav.destination is None


def _taxi_at(grid, position, heading=(1.0, 0.0), is_available=False):
    nav = GraphNavigator(grid, position)
    nav._heading = heading
    return SimpleNamespace(navigator=nav, position=nav.position, is_available=is_available)


class TestTaxiProximitySensor:
    def test_detects_taxi_ahead(self, grid):
        me = _taxi_at(grid, (2, 2))
        fleet = [me, _taxi_at(grid, (4, 2))]
        sensor = TaxiProximitySensor(me.navigator, fleet)
        assert sensor.is_blocked_ahead(3.0)

    def test_ignores_taxi_behind(self, grid):
        me = _taxi_at(grid, (2, 2))
        fleet = [me, _taxi_at(grid, (0, 2))]
        assert not TaxiProximitySensor(me.navigator, fleet).is_blocked_ahead(3.0)

    def test_ignores_taxi_out_of_range(self, grid):
        me = _taxi_at(grid, (2, 2))
        fleet = [me, _taxi_at(grid, (7, 2))]
        assert not TaxiProximitySensor(me.navigator, fleet).is_blocked_ahead(3.0)

    def test_ignores_parked_taxi(self, grid):
        me = _taxi_at(grid, (2, 2))
        fleet = [me, _taxi_at(grid, (3, 2), is_available=True)]
        assert not TaxiProximitySensor(me.navigator, fleet).is_blocked_ahead(3.0)

    def test_ignores_itself(self, grid):
        me = _taxi_at(grid, (2, 2))
        assert not TaxiProximitySensor(me.navigator, [me]).is_blocked_ahead(3.0)

    def test_taxi_beside_the_road_is_not_ahead(self, grid):
        me = _taxi_at(grid, (2, 2))
        fleet = [me, _taxi_at(grid, (2, 4))]
        assert not TaxiProximitySensor(me.navigator, fleet).is_blocked_ahead(3.0)


class TestDemand:
    def test_samples_stay_on_map(self):
        hotspot = DemandHotspot((0, 0), np.eye(2) * 25.0, weight=1.0)
        demand = DemandDistribution([hotspot], map_size=10)
        rng = np.random.default_rng(7)
        for _ in range(50):
            x, y = demand.sample_point(rng)
            assert 0.0 <= x <= 9.0
            assert 0.0 <= y <= 9.0

    def test_density_peaks_at_hotspot(self):
        demand = DemandDistribution([DemandHotspot((5, 5), np.eye(2), weight=1.0)], map_size=10)
        assert demand.get_density((5, 5)) > demand.get_density((1, 1))

    def test_scalar_variance_is_isotropic(self):
        hotspot = DemandHotspot((5, 5), 4.0)
        assert np.allclose(hotspot.covariance, np.eye(2) * 4.0)
        assert hotspot.get_density((7, 5)) == pytest.approx(hotspot.get_density((5, 7)))

    @pytest.mark.parametrize("covariance, weight", [(np.eye(3), 1.0), (1.0, 0.0)])
    def test_invalid_hotspot_rejected(self, covariance, weight):
        with pytest.raises(ValueError):
            DemandHotspot((5, 5), covariance, weight=weight)

    def test_sampling_is_reproducible_with_rng(self):
        hotspot = DemandHotspot((5, 5), 2.0)
        first = hotspot.sample(np.random.default_rng(11))
        assert hotspot.sample(np.random.default_rng(11)) == first

    def test_random_demand_hotspot_count(self):
        assert len(random_demand(20, 4, 2.0).hotspots) == 4
