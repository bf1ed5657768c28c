"""Fractal gradient-noise height function."""

from __future__ import annotations

import numpy as np
from opensimplex import OpenSimplex

from chunkgen.config import NoiseConfig


def max_possible_noise_value(config: NoiseConfig) -> float:
    """Closed-form upper bound of the accumulated octave sum."""

    return float(sum(config.persistence**k for k in range(config.octaves)))


class NoiseSampler:
    """Chunk-independent height function of integer world coordinates.

    Every sample, single point or grid, goes through `noise2array`, so a world
    coordinate yields the same height no matter which chunk requests it.
    """

    def __init__(self, seed: int, config: NoiseConfig) -> None:
        self.seed = int(seed)
        self.config = config
        self._simplex = OpenSimplex(seed=self.seed)
        self._max_possible = max_possible_noise_value(config)

    @property
    def max_possible_value(self) -> float:
        return self._max_possible

    def grid(self, x0: int, z0: int, width: int, depth: int) -> np.ndarray:
        """Sample heights for world x in [x0, x0+width) and z in [z0, z0+depth).

        Returns a `(depth, width)` float32 array indexed `[z, x]`.
        """

        if width <= 0 or depth <= 0:
            raise ValueError("width and depth must be positive")

        xs = np.arange(x0, x0 + width, dtype=np.float64)
        zs = np.arange(z0, z0 + depth, dtype=np.float64)
        return self._accumulate(xs, zs)

    def height(self, world_x: int, world_z: int) -> float:
        xs = np.array([world_x], dtype=np.float64)
        zs = np.array([world_z], dtype=np.float64)
        return float(self._accumulate(xs, zs)[0, 0])

    def _accumulate(self, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        cfg = self.config
        noise_x = xs / cfg.fineness
        noise_z = zs / cfg.fineness

        total = np.zeros((zs.size, xs.size), dtype=np.float64)
        amplitude = 1.0
        frequency = 1.0
        for _ in range(cfg.octaves):
            layer = self._simplex.noise2array(noise_x * frequency, noise_z * frequency)
            # [-1, 1] -> [0, 1]
            layer = np.clip((1.0 + layer) * 0.5, 0.0, 1.0)
            total += np.power(layer, cfg.noise_slope) * amplitude
            amplitude *= cfg.persistence
            frequency *= cfg.lacunarity

        return (total / self._max_possible * cfg.max_height).astype(np.float32)
