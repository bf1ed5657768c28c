"""Noise-only height field sampling for one chunk."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from chunkgen.noise import NoiseSampler


@dataclass(frozen=True)
class BaseHeights:
    """Pre-erosion heights of a chunk and the one-cell ring around it.

    `padded` has shape `(depth + 3, width + 3)`; `padded[1:-1, 1:-1]` is the
    chunk grid and the outer ring holds the neighbouring world coordinates.
    """

    chunk_x: int
    chunk_z: int
    origin_x: int
    origin_z: int
    padded: np.ndarray

    @property
    def interior(self) -> np.ndarray:
        return self.padded[1:-1, 1:-1]

    def height_field(self) -> np.ndarray:
        """Fresh, writable copy of the chunk grid for erosion to mutate."""

        return np.ascontiguousarray(self.interior, dtype=np.float32).copy()


def chunk_origin(chunk_x: int, chunk_z: int, width: int, depth: int) -> tuple[int, int]:
    return chunk_x * width, chunk_z * depth


def generate_base_heights(
    sampler: NoiseSampler,
    chunk_x: int,
    chunk_z: int,
    width: int,
    depth: int,
) -> BaseHeights:
    """Sample the noise height at every grid point of the chunk plus its ring."""

    origin_x, origin_z = chunk_origin(chunk_x, chunk_z, width, depth)
    padded = sampler.grid(origin_x - 1, origin_z - 1, width + 3, depth + 3)
    padded.setflags(write=False)
    return BaseHeights(
        chunk_x=chunk_x,
        chunk_z=chunk_z,
        origin_x=origin_x,
        origin_z=origin_z,
        padded=padded,
    )
