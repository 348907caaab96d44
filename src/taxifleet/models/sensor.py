import math
from typing import Iterable

import numpy as np

from taxifleet.simulation.config import SENSOR_HALF_ANGLE_DEG


class TaxiProximitySensor:
    """Detects other taxis inside a forward cone of the owner's heading.

    Only taxis out on a trip are considered obstacles. Parked (available)
    taxis are left out, and buildings are already handled by the road
    network itself.
    """

    def __init__(self, navigator, fleet: Iterable, half_angle_deg: float = SENSOR_HALF_ANGLE_DEG):
        self.navigator = navigator
        self.fleet = fleet
        self.min_cosine = math.cos(math.radians(half_angle_deg))

    def is_blocked_ahead(self, max_distance: float) -> bool:
        origin = np.array(self.navigator.position, dtype=float)
        heading = np.array(self.navigator.heading, dtype=float)
        norm = np.linalg.norm(heading)
        if norm == 0:
            return False
        heading = heading / norm

        for other in self.fleet:
            # Ignore ourselves
            if other.navigator is self.navigator:
                continue
            if getattr(other, "is_available", False):
                continue
            offset = np.array(other.position, dtype=float) - origin
            distance = np.linalg.norm(offset)
            if distance == 0 or distance > max_distance:
                continue
            if np.dot(offset / distance, heading) >= self.min_cosine:
                return True
        return False
