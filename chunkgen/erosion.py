"""Droplet-based hydraulic erosion of a chunk height field.

Two droplet models share one interface. `InertiaErosion` follows a unit-step
flow direction that resists turning and carries a speed/water/capacity state;
`VelocityErosion` integrates a friction-damped velocity and trades sediment in
proportion to the local slope. Both mutate the `(depth + 1, width + 1)` grid in
place, run their traces strictly in sequence, and draw every random number from
the chunk's `RngStream` before the first trace starts. A fixed number of draws
per trace makes this equivalent to consuming one advancing stream.

Droplets never raise: leaving the grid interior, flat ground, a degenerate
direction, or dropping below the water line simply ends the trace.
"""

from __future__ import annotations

import logging
import math
import time

from numba import njit
import numpy as np
from scipy.ndimage import correlate

from chunkgen.config import ChunkConfig, InertiaErosionConfig, VelocityErosionConfig
from chunkgen.metrics import ErosionMetrics
from chunkgen.rng import RngStream

logger = logging.getLogger(__name__)

_BLUR_KERNEL = np.array(
    [
        [0.0625, 0.125, 0.0625],
        [0.125, 0.25, 0.125],
        [0.0625, 0.125, 0.0625],
    ],
    dtype=np.float32,
)


def drop_count(drops_per_cell: float, width: int, depth: int) -> int:
    return int(math.floor(drops_per_cell * width * depth))


@njit(cache=True)
def get_height_interpolated(height, x, z):
    """Bilinear height at continuous grid coordinates; caller keeps (x, z) inside the grid."""

    floor_x = int(math.floor(x))
    floor_z = int(math.floor(z))
    offset_x = x - floor_x
    offset_z = z - floor_z

    top_left = height[floor_z, floor_x]
    top_right = height[floor_z, floor_x + 1]
    bottom_left = height[floor_z + 1, floor_x]
    bottom_right = height[floor_z + 1, floor_x + 1]

    left = top_left + (bottom_left - top_left) * offset_z
    right = top_right + (bottom_right - top_right) * offset_z
    return left + (right - left) * offset_x


@njit(cache=True)
def _add_clamped(height, cell_z, cell_x, amount, max_height):
    value = height[cell_z, cell_x] + amount
    height[cell_z, cell_x] = min(max(value, 0.0), max_height)


@njit(cache=True)
def _splat(height, x, z, amount, max_height):
    """Add `amount` around (x, z) with inverse-bilinear weights, clamped to [0, max_height]."""

    floor_x = int(math.floor(x))
    floor_z = int(math.floor(z))
    offset_x = x - floor_x
    offset_z = z - floor_z

    _add_clamped(height, floor_z, floor_x, amount * (1.0 - offset_x) * (1.0 - offset_z), max_height)
    _add_clamped(height, floor_z, floor_x + 1, amount * offset_x * (1.0 - offset_z), max_height)
    _add_clamped(height, floor_z + 1, floor_x, amount * (1.0 - offset_x) * offset_z, max_height)
    _add_clamped(height, floor_z + 1, floor_x + 1, amount * offset_x * offset_z, max_height)


@njit(cache=True)
def _edge_damping(x, z, width, depth, min_distance, max_distance, strength):
    """Edge damping factor at (x, z); negative when the trace must stop."""

    dist = min(x, min(z, min(width - x, depth - z)))
    if dist <= min_distance:
        return -1.0
    if dist <= max_distance:
        return ((dist - min_distance) / (max_distance - min_distance)) ** strength
    return 1.0


@njit(cache=True)
def _trace_inertia(
    height,
    spawns,
    kernel,
    max_height,
    max_lifetime,
    inertia,
    capacity_factor,
    min_capacity,
    erode_speed,
    deposit_speed,
    evaporate_speed,
    gravity,
    stop_start,
    stop_end,
    initial_water,
    initial_speed,
    damp_min,
    damp_max,
    damp_strength,
):
    depth = height.shape[0] - 1
    width = height.shape[1] - 1
    radius = kernel.shape[0] // 2
    steps = 0
    eroded = 0.0
    deposited = 0.0
    carried = 0.0

    for drop in range(spawns.shape[0]):
        x = spawns[drop, 0]
        z = spawns[drop, 1]
        dir_x = 0.0
        dir_z = 0.0
        speed = initial_speed
        water = initial_water
        sediment = 0.0

        for _ in range(max_lifetime):
            if x < 1.0 or z < 1.0 or x + 1.0 >= width or z + 1.0 >= depth:
                break

            cur_y = get_height_interpolated(height, x, z)
            if cur_y / max_height <= stop_end:
                break

            left = get_height_interpolated(height, x - 1.0, z)
            top = get_height_interpolated(height, x, z - 1.0)
            right = get_height_interpolated(height, x + 1.0, z)
            bottom = get_height_interpolated(height, x, z + 1.0)

            norm_x = left - right
            norm_y = 2.0
            norm_z = top - bottom
            scale = 1.0 / math.sqrt(norm_x * norm_x + norm_y * norm_y + norm_z * norm_z)
            norm_x *= scale
            norm_y *= scale
            norm_z *= scale
            if norm_y == 1.0:
                break

            prev_x = x
            prev_z = z
            dir_x = dir_x * inertia + norm_x * (1.0 - inertia)
            dir_z = dir_z * inertia + norm_z * (1.0 - inertia)
            if dir_x == 0.0 and dir_z == 0.0:
                break
            length = math.sqrt(dir_x * dir_x + dir_z * dir_z)
            dir_x /= length
            dir_z /= length
            x += dir_x
            z += dir_z
            delta_height = get_height_interpolated(height, x, z) - cur_y

            damp = _edge_damping(prev_x, prev_z, width, depth, damp_min, damp_max, damp_strength)
            if damp < 0.0:
                break
            damp *= min((cur_y / max_height - stop_end) / (stop_start - stop_end), 1.0)

            capacity = max(-delta_height * speed * water * capacity_factor, min_capacity)
            steps += 1

            if sediment > capacity or delta_height > 0.0:
                if delta_height > 0.0:
                    amount = damp * min(delta_height, sediment)
                else:
                    amount = damp * (sediment - capacity) * deposit_speed
                _splat(height, prev_x, prev_z, amount, max_height)
                sediment -= amount
                deposited += amount
            else:
                amount = damp * min((capacity - sediment) * erode_speed, -delta_height)
                center_x = int(math.floor(prev_x))
                center_z = int(math.floor(prev_z))
                for kz in range(kernel.shape[0]):
                    for kx in range(kernel.shape[1]):
                        cell_z = center_z + kz - radius
                        cell_x = center_x + kx - radius
                        value = height[cell_z, cell_x] - amount * kernel[kz, kx]
                        height[cell_z, cell_x] = max(0.0, value)
                sediment += amount
                eroded += amount

            speed = math.sqrt(max(speed * speed + delta_height * gravity, 0.0))
            water *= 1.0 - evaporate_speed

        carried += sediment

    return steps, eroded, deposited, carried


@njit(cache=True)
def _trace_velocity(
    height,
    spawns,
    max_height,
    max_iterations,
    erosion_rate,
    deposition_rate,
    speed,
    friction,
    iteration_scale,
    stop_height,
    damp_min,
    damp_max,
    damp_strength,
):
    depth = height.shape[0] - 1
    width = height.shape[1] - 1
    steps = 0
    eroded = 0.0
    deposited = 0.0
    carried = 0.0

    for drop in range(spawns.shape[0]):
        x = spawns[drop, 0]
        z = spawns[drop, 1]
        offset_x = spawns[drop, 2]
        offset_z = spawns[drop, 3]
        prev_x = x
        prev_z = z
        velocity_x = 0.0
        velocity_z = 0.0
        sediment = 0.0

        for i in range(max_iterations):
            sample_x = x + offset_x
            sample_z = z + offset_z
            if sample_x < 1.0 or sample_z < 1.0 or sample_x + 1.0 >= width or sample_z + 1.0 >= depth:
                break

            if get_height_interpolated(height, sample_x, sample_z) / max_height <= stop_height:
                break

            left = get_height_interpolated(height, sample_x - 1.0, sample_z)
            top = get_height_interpolated(height, sample_x, sample_z - 1.0)
            right = get_height_interpolated(height, sample_x + 1.0, sample_z)
            bottom = get_height_interpolated(height, sample_x, sample_z + 1.0)

            norm_x = left - right
            norm_y = 2.0
            norm_z = top - bottom
            scale = 1.0 / math.sqrt(norm_x * norm_x + norm_y * norm_y + norm_z * norm_z)
            norm_x *= scale
            norm_y *= scale
            norm_z *= scale
            if norm_y == 1.0:
                break

            damp = _edge_damping(prev_x, prev_z, width, depth, damp_min, damp_max, damp_strength)
            if damp < 0.0:
                break

            deposit = damp * sediment * deposition_rate * norm_y
            erosion = damp * erosion_rate * (1.0 - norm_y) * min(1.0, i * iteration_scale)
            _splat(height, prev_x, prev_z, deposit - erosion, max_height)
            sediment += erosion - deposit
            eroded += erosion
            deposited += deposit
            steps += 1

            velocity_x = friction * velocity_x + norm_x * speed
            velocity_z = friction * velocity_z + norm_z * speed
            if velocity_x == 0.0 and velocity_z == 0.0:
                break
            prev_x = x
            prev_z = z
            x += velocity_x
            z += velocity_z

        carried += sediment

    return steps, eroded, deposited, carried


class ErosionStrategy:
    """Mutates a height field in place and reports what it moved."""

    name = "base"

    def erode(self, height: np.ndarray, rng: RngStream) -> ErosionMetrics:
        raise NotImplementedError


class NoErosion(ErosionStrategy):
    name = "none"

    def erode(self, height: np.ndarray, rng: RngStream) -> ErosionMetrics:
        return ErosionMetrics(model=self.name, drops=0, steps=0, eroded=0.0, deposited=0.0, carried=0.0)


class InertiaErosion(ErosionStrategy):
    name = "inertia"

    def __init__(self, config: InertiaErosionConfig, max_height: float) -> None:
        self.config = config
        self.max_height = float(max_height)
        self.kernel = np.asarray(config.kernel, dtype=np.float64)

    def spawn_points(self, rng: np.random.Generator, width: int, depth: int) -> np.ndarray:
        count = drop_count(self.config.drops_per_cell, width, depth)
        return rng.random((count, 2)) * np.array([width, depth], dtype=np.float64)

    def erode(self, height: np.ndarray, rng: RngStream) -> ErosionMetrics:
        _check_grid(height)
        cfg = self.config
        depth, width = height.shape[0] - 1, height.shape[1] - 1
        spawns = self.spawn_points(rng.generator(), width, depth)

        t0 = time.perf_counter()
        steps, eroded, deposited, carried = _trace_inertia(
            height,
            spawns,
            self.kernel,
            self.max_height,
            int(cfg.max_droplet_lifetime),
            float(cfg.inertia),
            float(cfg.sediment_capacity_factor),
            float(cfg.min_sediment_capacity),
            float(cfg.erode_speed),
            float(cfg.deposit_speed),
            float(cfg.evaporate_speed),
            float(cfg.gravity),
            float(cfg.stop_height_start),
            float(cfg.stop_height_end),
            float(cfg.initial_water_volume),
            float(cfg.initial_speed),
            float(cfg.edge_damp_min_distance),
            float(cfg.edge_damp_max_distance),
            float(cfg.edge_damp_strength),
        )
        seconds = time.perf_counter() - t0
        logger.debug("inertia erosion: %d drops, %d steps in %.3fs", spawns.shape[0], steps, seconds)
        return ErosionMetrics(
            model=self.name,
            drops=int(spawns.shape[0]),
            steps=int(steps),
            eroded=float(eroded),
            deposited=float(deposited),
            carried=float(carried),
            erosion_seconds=seconds,
        )


class VelocityErosion(ErosionStrategy):
    name = "velocity"

    def __init__(self, config: VelocityErosionConfig, max_height: float) -> None:
        self.config = config
        self.max_height = float(max_height)

    def spawn_points(self, rng: np.random.Generator, width: int, depth: int) -> np.ndarray:
        count = drop_count(self.config.drops_per_cell, width, depth)
        draws = rng.random((count, 4))
        spawns = np.empty_like(draws)
        spawns[:, 0] = draws[:, 0] * width
        spawns[:, 1] = draws[:, 1] * depth
        spawns[:, 2:] = (draws[:, 2:] * 2.0 - 1.0) * self.config.radius
        return spawns

    def erode(self, height: np.ndarray, rng: RngStream) -> ErosionMetrics:
        _check_grid(height)
        cfg = self.config
        depth, width = height.shape[0] - 1, height.shape[1] - 1
        spawns = self.spawn_points(rng.generator(), width, depth)

        t0 = time.perf_counter()
        steps, eroded, deposited, carried = _trace_velocity(
            height,
            spawns,
            self.max_height,
            int(cfg.max_iterations),
            float(cfg.erosion_rate),
            float(cfg.deposition_rate),
            float(cfg.speed),
            float(cfg.friction),
            float(cfg.iteration_scale),
            float(cfg.stop_height),
            float(cfg.edge_damp_min_distance),
            float(cfg.edge_damp_max_distance),
            float(cfg.edge_damp_strength),
        )
        for _ in range(cfg.blur_passes):
            blur_interior(height)
        seconds = time.perf_counter() - t0
        logger.debug("velocity erosion: %d drops, %d steps in %.3fs", spawns.shape[0], steps, seconds)
        return ErosionMetrics(
            model=self.name,
            drops=int(spawns.shape[0]),
            steps=int(steps),
            eroded=float(eroded),
            deposited=float(deposited),
            carried=float(carried),
            erosion_seconds=seconds,
        )


def blur_interior(height: np.ndarray) -> None:
    """Apply one 3x3 smoothing pass to every cell not on the grid border."""

    blurred = correlate(height, _BLUR_KERNEL, mode="nearest")
    height[1:-1, 1:-1] = blurred[1:-1, 1:-1]


def make_erosion(config: ChunkConfig) -> ErosionStrategy:
    """Build the erosion strategy named by `config.erosion_model`."""

    max_height = config.noise.max_height
    if config.erosion_model == "inertia":
        return InertiaErosion(config.inertia, max_height)
    if config.erosion_model == "velocity":
        return VelocityErosion(config.velocity, max_height)
    if config.erosion_model == "none":
        return NoErosion()
    raise ValueError(f"unknown erosion model: {config.erosion_model}")


def _check_grid(height: np.ndarray) -> None:
    if height.ndim != 2:
        raise ValueError("height must be a 2D array")
    if height.dtype != np.float32 or not height.flags.writeable or not height.flags.c_contiguous:
        raise ValueError("height must be a writable, C-contiguous float32 array")
