"""Chunk generation pipeline: noise, erosion, mesh, and colors."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import operator
import time

import numpy as np

from chunkgen.color import classify_colors
from chunkgen.config import ChunkConfig
from chunkgen.erosion import make_erosion
from chunkgen.heightfield import BaseHeights, generate_base_heights
from chunkgen.mesh import derive_normals, derive_vertices, pad_with_ring, triangle_indices
from chunkgen.metrics import ErosionMetrics
from chunkgen.noise import NoiseSampler
from chunkgen.rng import RngStream
from chunkgen.seed import ChunkSeedKey, check_chunk_coordinates, normalize_seed

logger = logging.getLogger(__name__)

BUFFER_NAMES = ("heightmap", "vertices", "normals", "colors", "indices")


@dataclass(frozen=True)
class ChunkOutput:
    """Freshly allocated buffers for one chunk; the caller owns all of them.

    `heightmap` holds `(W + 1) * (D + 1)` row-major float32 heights;
    `vertices`, `normals` and `colors` hold interleaved float32 triples in the
    same point order; `indices` holds `W * D * 6` uint32 vertex indices.
    """

    seed: int
    chunk_x: int
    chunk_z: int
    width: int
    depth: int
    heightmap: np.ndarray
    vertices: np.ndarray
    normals: np.ndarray
    colors: np.ndarray
    indices: np.ndarray
    base_heights: BaseHeights
    erosion_metrics: ErosionMetrics

    def height_grid(self) -> np.ndarray:
        """Heights as a `(depth + 1, width + 1)` view indexed `[z, x]`."""

        return self.heightmap.reshape(self.depth + 1, self.width + 1)

    def buffers(self) -> dict[str, np.ndarray]:
        return {name: getattr(self, name) for name in BUFFER_NAMES}


def generate_chunk(seed: int, chunk_x: int, chunk_z: int, *, config: ChunkConfig | None = None) -> ChunkOutput:
    """Deterministically synthesize the chunk at integer coordinates `(chunk_x, chunk_z)`."""

    config = config or ChunkConfig()
    seed = normalize_seed(seed)
    return _generate(seed, chunk_x, chunk_z, config, NoiseSampler(seed, config.noise))


class TerrainGenerator:
    """Chunk generator bound to one global seed and configuration.

    Holds no buffers between calls, so concurrent calls on different chunks
    never share mutable storage. The seed and its noise sampler are swapped as
    one tuple, so a call racing `set_seed` sees either the old pair or the new.
    """

    def __init__(self, seed: int = 0, config: ChunkConfig | None = None) -> None:
        self.config = config or ChunkConfig()
        self.set_seed(seed)

    @property
    def seed(self) -> int:
        return self._state[0]

    def set_seed(self, seed: int) -> None:
        seed = normalize_seed(seed)
        self._state = (seed, NoiseSampler(seed, self.config.noise))

    def noise_height(self, world_x: int, world_z: int) -> float:
        """Pre-erosion height at a world coordinate."""

        return self._state[1].height(world_x, world_z)

    def generate_chunk(self, chunk_x: int, chunk_z: int) -> ChunkOutput:
        seed, sampler = self._state
        return _generate(seed, chunk_x, chunk_z, self.config, sampler)


def _generate(seed: int, chunk_x: int, chunk_z: int, config: ChunkConfig, sampler: NoiseSampler) -> ChunkOutput:
    if isinstance(chunk_x, bool) or isinstance(chunk_z, bool):
        raise TypeError("chunk coordinates must be integers")
    chunk_x, chunk_z = operator.index(chunk_x), operator.index(chunk_z)
    width, depth = config.chunk_width, config.chunk_depth
    check_chunk_coordinates(chunk_x, chunk_z, width, depth)

    t0 = time.perf_counter()
    base = generate_base_heights(sampler, chunk_x, chunk_z, width, depth)
    height = base.height_field()
    t_noise = time.perf_counter() - t0

    rng = RngStream.for_chunk(ChunkSeedKey(seed, chunk_x, chunk_z))
    erosion_metrics = make_erosion(config).erode(height, rng)

    t1 = time.perf_counter()
    padded = pad_with_ring(height, base.padded)
    normals = derive_normals(padded)
    vertices = derive_vertices(height, base.origin_x, base.origin_z)
    colors = classify_colors(height, config.noise.max_height, config.color_regions)
    indices = triangle_indices(width, depth)
    t_mesh = time.perf_counter() - t1

    logger.debug(
        "chunk (%d, %d): noise %.3fs, erosion %.3fs, mesh %.3fs",
        chunk_x,
        chunk_z,
        t_noise,
        erosion_metrics.erosion_seconds,
        t_mesh,
    )

    return ChunkOutput(
        seed=seed,
        chunk_x=chunk_x,
        chunk_z=chunk_z,
        width=width,
        depth=depth,
        heightmap=height.ravel(),
        vertices=vertices.reshape(-1),
        normals=normals.reshape(-1),
        colors=colors.reshape(-1),
        indices=indices,
        base_heights=base,
        erosion_metrics=erosion_metrics,
    )
