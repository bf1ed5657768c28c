"""Deterministic terrain chunk generation."""

from .chunk import ChunkOutput, TerrainGenerator, generate_chunk
from .config import DEFAULT_CHUNK_SIZE, ChunkConfig, ColorRegion, NoiseConfig
from .seed import ChunkCoordinateError, SeedError

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "ChunkConfig",
    "ChunkCoordinateError",
    "ChunkOutput",
    "ColorRegion",
    "NoiseConfig",
    "SeedError",
    "TerrainGenerator",
    "generate_chunk",
]
