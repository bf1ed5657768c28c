"""Seed parsing, chunk keys, and coordinate range checks."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import re

U32_MAX = (1 << 32) - 1
I32_MIN = -(1 << 31)
I32_MAX = (1 << 31) - 1

_NUMERIC_RE = re.compile(r"^(0x[0-9a-fA-F]+|\d+)$")

_EXAMPLE_SEEDS = ["0", "42", "3141592653", "0xC0FFEE"]


class SeedError(ValueError):
    """Raised when a seed is not an unsigned 32-bit integer."""


class ChunkCoordinateError(ValueError):
    """Raised when chunk coordinates would overflow signed 32-bit world coordinates."""


def normalize_seed(value: int | str) -> int:
    """Validate `value` and return it as an unsigned 32-bit seed."""

    if value is None:
        raise SeedError(_error_message("Seed is required."))
    if isinstance(value, bool):
        raise SeedError(_error_message("Seed must be an integer, not a boolean."))

    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            raise SeedError(_error_message("Seed cannot be empty."))
        if not _NUMERIC_RE.fullmatch(raw):
            raise SeedError(_error_message("Seed must be a decimal or 0x-prefixed hex integer."))
        seed = int(raw, 0)
    else:
        seed = int(value)

    if not 0 <= seed <= U32_MAX:
        raise SeedError(_error_message(f"Seed {seed} is outside the unsigned 32-bit range."))
    return seed


@dataclass(frozen=True)
class ChunkSeedKey:
    """The inputs that fully determine one chunk's random stream."""

    global_seed: int
    chunk_x: int
    chunk_z: int

    def canonical(self) -> str:
        return f"chunk:{self.global_seed}:{self.chunk_x}:{self.chunk_z}"

    def stream_seed(self) -> int:
        """Hash the key to a deterministic unsigned 64-bit stream seed."""

        digest = hashlib.blake2b(
            self.canonical().encode("ascii"),
            digest_size=8,
            person=b"chunkkey0",
        ).digest()
        return int.from_bytes(digest, byteorder="big", signed=False)


def check_chunk_coordinates(chunk_x: int, chunk_z: int, width: int, depth: int) -> None:
    """Reject chunk coordinates whose sampled world coordinates leave int32 range.

    Sampling covers the chunk grid plus a one-cell ring around it, so the
    extreme world coordinates are `chunk * size - 1` and `chunk * size + size + 1`.
    """

    for name, chunk, size in (("chunk_x", chunk_x, width), ("chunk_z", chunk_z, depth)):
        if not I32_MIN <= chunk <= I32_MAX:
            raise ChunkCoordinateError(f"{name}={chunk} is outside the signed 32-bit range")
        lo = chunk * size - 1
        hi = chunk * size + size + 1
        if lo < I32_MIN or hi > I32_MAX:
            limit = (I32_MAX - size - 1) // size
            raise ChunkCoordinateError(
                f"{name}={chunk} overflows signed 32-bit world coordinates for chunk size {size}; "
                f"keep it within [{-limit}, {limit}]"
            )


def _error_message(reason: str) -> str:
    examples = ", ".join(_EXAMPLE_SEEDS)
    return f"{reason} Examples: {examples}"
