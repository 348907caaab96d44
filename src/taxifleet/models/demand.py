import random
from typing import List, Optional, Tuple

import numpy as np
from scipy.stats import multivariate_normal


class DemandHotspot:
    """Gaussian blob of trip demand centred on one map location.

    ``covariance`` is either a 2x2 matrix or a single variance applied to
    both axes.
    """

    def __init__(self, center: Tuple[float, float], covariance, weight: float = 1.0):
        cov = np.asarray(covariance, dtype=float)
        if cov.ndim == 0:
            cov = np.eye(2) * cov
        if cov.shape != (2, 2):
            raise ValueError(f"hotspot covariance must be 2x2, got shape {cov.shape}")
        if weight <= 0:
            raise ValueError(f"hotspot weight must be positive, got {weight}")
        self.center = (float(center[0]), float(center[1]))
        self.covariance = cov
        self.weight = weight
        self._pdf = multivariate_normal(mean=self.center, cov=cov)

    def get_density(self, point: Tuple[float, float]) -> float:
        return self.weight * self._pdf.pdf(point)

    def sample(self, rng: Optional[np.random.Generator] = None) -> Tuple[float, float]:
        x, y = self._pdf.rvs(random_state=rng)
        return (float(x), float(y))


class DemandDistribution:
    """Weighted mixture of hotspots where passengers appear, clipped to the map"""

    def __init__(self, hotspots: List[DemandHotspot], map_size: float):
        self.hotspots = hotspots
        self.map_size = map_size

    def get_density(self, point: Tuple[float, float]) -> float:
        """Calculate the total probability density at a given point"""
        return sum(hotspot.get_density(point) for hotspot in self.hotspots)

    def sample_point(self, rng: Optional[np.random.Generator] = None,
                     chooser: Optional[random.Random] = None) -> Tuple[float, float]:
        """Generate a random point from the mixture distribution"""
        chooser = chooser or random
        # Choose a random hotspot based on weights
        weights = [hotspot.weight for hotspot in self.hotspots]
        chosen = chooser.choices(self.hotspots, weights=weights)[0]

        x, y = chosen.sample(rng)
        # Ensure coordinates are within map bounds
        max_coord = self.map_size - 1
        return (max(0.0, min(x, max_coord)), max(0.0, min(y, max_coord)))


def random_demand(map_size: int, n_hotspots: int, stddev: float,
                  chooser: Optional[random.Random] = None) -> DemandDistribution:
    """Place hotspots on random grid points, biased away from the map edge"""
    chooser = chooser or random
    margin = max(1, map_size // 5)
    hotspots = []
    for _ in range(n_hotspots):
        center = (chooser.randint(margin, map_size - 1 - margin),
                  chooser.randint(margin, map_size - 1 - margin))
        hotspots.append(DemandHotspot(
            center=center,
            covariance=stddev ** 2,
            weight=chooser.uniform(0.5, 1.0),
        ))
    return DemandDistribution(hotspots, map_size)
