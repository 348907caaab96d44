import logging
from typing import List, Optional, Tuple

import networkx as nx
import numpy as np

from taxifleet.models.errors import DestinationUnreachable
from taxifleet.simulation.config import TAXI_SPEED, TAXI_STOPPING_DISTANCE

logger = logging.getLogger(__name__)


def create_sample_road_network(size: int = 10) -> nx.Graph:
    """Square street grid; nodes are integer (x, y) intersections."""
    if size < 2:
        raise ValueError(f"road grid needs at least 2x2 intersections, got size={size}")
    grid = nx.grid_2d_graph(size, size)
    lengths = {
        (u, v): float(np.hypot(u[0] - v[0], u[1] - v[1])) for u, v in grid.edges()
    }
    nx.set_edge_attributes(grid, lengths, "length")
    return grid


def nearest_node(road_network: nx.Graph, position, nodes: Optional[np.ndarray] = None):
    """Find the nearest node in the road network to a given position.

    Returns ``(node, distance)``.
    """
    if nodes is None:
        nodes = np.array(list(road_network.nodes()), dtype=float)
    distances = np.linalg.norm(nodes - np.array(position, dtype=float), axis=1)
    idx = int(np.argmin(distances))
    node = tuple(int(c) if float(c).is_integer() else c for c in nodes[idx])
    return node, float(distances[idx])


class GraphNavigator:
    """Follows shortest paths over a road network graph.

    Path planning happens on the first ``advance`` after a destination is
    set (or after ``resume``), so ``is_pending`` stays true for one tick,
    the way an asynchronous path query would.
    """

    def __init__(self, road_network: nx.Graph, position: Tuple[float, float],
                 speed: float = TAXI_SPEED,
                 stopping_distance: float = TAXI_STOPPING_DISTANCE):
        self.road_network = road_network
        self.speed = speed
        self.stopping_distance = stopping_distance
        self._nodes = np.array(list(road_network.nodes()), dtype=float)
        self._position = (float(position[0]), float(position[1]))
        self._heading = (1.0, 0.0)
        self._destination = None
        self._path: List[Tuple[float, float]] = []
        self.is_pending = False
        self.is_paused = False

    @property
    def position(self) -> Tuple[float, float]:
        return self._position

    @property
    def heading(self) -> Tuple[float, float]:
        return self._heading

    @property
    def destination(self):
        return self._destination

    @property
    def remaining_distance(self) -> float:
        if self.is_pending:
            return float('inf')
        if self._destination is None:
            return 0.0
        total = 0.0
        current = np.array(self._position)
        for waypoint in self._path:
            nxt = np.array(waypoint, dtype=float)
            total += float(np.linalg.norm(nxt - current))
            current = nxt
        return total

    def sample_position(self, point, max_distance: float):
        """Snap a point onto the road network, None if nothing is close enough"""
        node, distance = nearest_node(self.road_network, point, self._nodes)
        if distance > max_distance:
            return None
        return node

    def can_route(self, start, end) -> bool:
        """True if both points are network nodes joined by some path"""
        if start not in self.road_network or end not in self.road_network:
            return False
        return nx.has_path(self.road_network, start, end)

    def set_destination(self, point) -> None:
        if point not in self.road_network:
            raise DestinationUnreachable(point)
        start, _ = nearest_node(self.road_network, self._position, self._nodes)
        if not nx.has_path(self.road_network, start, point):
            raise DestinationUnreachable(point, reason="no route from current position")
        self._destination = point
        self._path = []
        self.is_pending = True

    def pause(self):
        self.is_paused = True

    def resume(self):
        self.is_paused = False
        if self._destination is not None:
            # Replan from wherever the vehicle is now
            self.is_pending = True

    def stop(self):
        self._destination = None
        self._path = []
        self.is_pending = False

    def _plan(self):
        start, _ = nearest_node(self.road_network, self._position, self._nodes)
        nodes = nx.shortest_path(self.road_network, start, self._destination, weight='length')
        self._path = [(float(n[0]), float(n[1])) for n in nodes]
        self.is_pending = False

    def advance(self, dt: float):
        """Move along the planned path for dt seconds"""
        if self.is_pending:
            self._plan()
        if self.is_paused or not self._path:
            return

        budget = self.speed * dt
        current = np.array(self._position)
        while budget > 0 and self._path:
            target = np.array(self._path[0])
            offset = target - current
            distance = float(np.linalg.norm(offset))
            if distance > 0:
                self._heading = (float(offset[0] / distance), float(offset[1] / distance))
            if distance <= budget:
                current = target
                budget -= distance
                self._path.pop(0)
            else:
                current = current + offset / distance * budget
                budget = 0.0
        self._position = (float(current[0]), float(current[1]))
