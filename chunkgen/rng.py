"""Deterministic per-chunk RNG streams."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from chunkgen.seed import ChunkSeedKey


def _normalize_seed(seed: int) -> int:
    return int(seed) & ((1 << 64) - 1)


@dataclass(frozen=True)
class RngStream:
    """Immutable 64-bit stream seed feeding a PCG64 generator."""

    seed: int

    @classmethod
    def for_chunk(cls, key: ChunkSeedKey) -> "RngStream":
        return cls(key.stream_seed())

    def generator(self) -> np.random.Generator:
        return np.random.Generator(np.random.PCG64(np.uint64(_normalize_seed(self.seed))))
