"""Configuration models for chunk terrain generation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


DEFAULT_CHUNK_SIZE = 1024
EROSION_MODELS = ("inertia", "velocity", "none")

DEFAULT_EROSION_KERNEL: tuple[tuple[float, ...], ...] = (
    (0.003765, 0.015019, 0.023792, 0.015019, 0.003765),
    (0.015019, 0.059912, 0.094907, 0.059912, 0.015019),
    (0.023792, 0.094907, 0.150342, 0.094907, 0.023792),
    (0.015019, 0.059912, 0.094907, 0.059912, 0.015019),
    (0.003765, 0.015019, 0.023792, 0.015019, 0.003765),
)


@dataclass(frozen=True)
class ColorRegion:
    """One height band of the color table; `max_height` is normalized to [0, 1]."""

    max_height: float
    color: tuple[int, int, int]
    blend: float = 1.0


DEFAULT_COLOR_REGIONS: tuple[ColorRegion, ...] = (
    ColorRegion(0.093, (201, 178, 99), 0.6),
    ColorRegion(0.164, (164, 155, 98), 0.6),
    ColorRegion(0.243, (164, 155, 98), 0.6),
    ColorRegion(0.374, (120, 127, 160), 1.0),
    ColorRegion(0.571, (90, 91, 98), 1.0),
    ColorRegion(0.846, (193, 198, 214), 1.0),
    ColorRegion(1.0, (235, 236, 240), 1.0),
)


@dataclass(frozen=True)
class NoiseConfig:
    """Controls the fractal noise height function."""

    max_height: float = 512.0
    octaves: int = 5
    persistence: float = 0.25
    lacunarity: float = 2.5
    fineness: float = 512.0
    noise_slope: float = 0.84


@dataclass(frozen=True)
class InertiaErosionConfig:
    """Droplet erosion where the flow direction carries inertia between steps."""

    drops_per_cell: float = 1.2
    edge_damp_min_distance: float = 2.0
    edge_damp_max_distance: float = 10.0
    edge_damp_strength: float = 3.0
    inertia: float = 0.05
    sediment_capacity_factor: float = 1.0
    min_sediment_capacity: float = 0.1
    erode_speed: float = 0.3
    deposit_speed: float = 0.5
    evaporate_speed: float = 0.01
    gravity: float = 0.2
    max_droplet_lifetime: int = 512
    stop_height_start: float = 0.37
    stop_height_end: float = 0.34
    initial_water_volume: float = 1.0
    initial_speed: float = 4.0
    kernel: tuple[tuple[float, ...], ...] = DEFAULT_EROSION_KERNEL

    @property
    def kernel_radius(self) -> int:
        return len(self.kernel) // 2


@dataclass(frozen=True)
class VelocityErosionConfig:
    """Droplet erosion driven by a friction-damped velocity vector."""

    drops_per_cell: float = 0.75
    erosion_rate: float = 0.1
    deposition_rate: float = 0.075
    speed: float = 0.15
    friction: float = 0.7
    radius: float = 0.8
    max_iterations: int = 800
    iteration_scale: float = 0.04
    stop_height: float = 0.37
    edge_damp_min_distance: float = 3.0
    edge_damp_max_distance: float = 10.0
    edge_damp_strength: float = 5.0
    blur_passes: int = 1


@dataclass(frozen=True)
class ChunkConfig:
    """Primary chunk generation configuration."""

    chunk_width: int = DEFAULT_CHUNK_SIZE
    chunk_depth: int = DEFAULT_CHUNK_SIZE
    erosion_model: str = "inertia"
    noise: NoiseConfig = field(default_factory=NoiseConfig)
    inertia: InertiaErosionConfig = field(default_factory=InertiaErosionConfig)
    velocity: VelocityErosionConfig = field(default_factory=VelocityErosionConfig)
    color_regions: tuple[ColorRegion, ...] = DEFAULT_COLOR_REGIONS

    def __post_init__(self) -> None:
        validate_config(self)

    @property
    def vertex_count(self) -> int:
        return (self.chunk_width + 1) * (self.chunk_depth + 1)

    @property
    def index_count(self) -> int:
        return self.chunk_width * self.chunk_depth * 6

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def validate_config(config: ChunkConfig) -> None:
    """Raise `ValueError` if `config` cannot produce a well-formed chunk."""

    if config.chunk_width < 4 or config.chunk_depth < 4:
        raise ValueError("chunk_width and chunk_depth must be >= 4")
    if config.erosion_model not in EROSION_MODELS:
        raise ValueError(
            f"unknown erosion_model {config.erosion_model!r}; expected one of {', '.join(EROSION_MODELS)}"
        )

    noise = config.noise
    if noise.octaves < 1:
        raise ValueError("octaves must be >= 1")
    if noise.max_height <= 0 or noise.fineness <= 0:
        raise ValueError("max_height and fineness must be positive")
    if noise.persistence <= 0 or noise.lacunarity <= 0:
        raise ValueError("persistence and lacunarity must be positive")

    kernel = config.inertia.kernel
    size = len(kernel)
    if size % 2 != 1 or any(len(row) != size for row in kernel):
        raise ValueError("erosion kernel must be a square table with odd size")
    if config.inertia.edge_damp_min_distance < config.inertia.kernel_radius:
        raise ValueError("edge_damp_min_distance must be >= the erosion kernel radius")
    if config.inertia.edge_damp_max_distance <= config.inertia.edge_damp_min_distance:
        raise ValueError("inertia edge_damp_max_distance must exceed edge_damp_min_distance")
    if config.inertia.stop_height_start <= config.inertia.stop_height_end:
        raise ValueError("stop_height_start must exceed stop_height_end")
    if config.velocity.edge_damp_min_distance < 1.0:
        raise ValueError("velocity edge_damp_min_distance must be >= 1")
    if config.velocity.edge_damp_max_distance <= config.velocity.edge_damp_min_distance:
        raise ValueError("velocity edge_damp_max_distance must exceed edge_damp_min_distance")

    validate_color_regions(config.color_regions)


def validate_color_regions(regions: tuple[ColorRegion, ...]) -> None:
    if not regions:
        raise ValueError("color_regions must not be empty")
    bounds = [region.max_height for region in regions]
    if any(b <= a for a, b in zip(bounds, bounds[1:])):
        raise ValueError("color_regions must be strictly increasing in max_height")
    if bounds[-1] < 1.0:
        raise ValueError("the last color region must cover normalized height 1.0")
    for region in regions:
        if region.blend <= 0:
            raise ValueError("color region blend must be positive")
        if len(region.color) != 3 or any(not 0 <= c <= 255 for c in region.color):
            raise ValueError("color region color must be an RGB triplet in [0, 255]")
