"""Vertex, normal, and index buffers derived from a final height field."""

from __future__ import annotations

import numpy as np

NORMAL_FLATNESS = 6.0


def pad_with_ring(height: np.ndarray, ring: np.ndarray) -> np.ndarray:
    """Surround `height` with the outer ring of `ring`.

    `ring` is a `(depth + 3, width + 3)` grid whose border holds heights of the
    world coordinates one cell outside the chunk.
    """

    if ring.shape != (height.shape[0] + 2, height.shape[1] + 2):
        raise ValueError("ring must be one cell larger than height on every side")
    padded = np.array(ring, dtype=np.float32, copy=True)
    padded[1:-1, 1:-1] = height
    return padded


def derive_normals(padded: np.ndarray) -> np.ndarray:
    """Unit surface normals from an 8-neighbour weighted central difference.

    Returns a `(depth + 1, width + 1, 3)` float32 array for the interior of
    `padded`. The y component is fixed at `NORMAL_FLATNESS` before
    normalization, so a planar neighbourhood reads as straight up.
    """

    if padded.ndim != 2 or min(padded.shape) < 3:
        raise ValueError("padded must be a 2D array of at least 3x3")

    h = padded.astype(np.float32, copy=False)
    left = h[1:-1, :-2]
    right = h[1:-1, 2:]
    top = h[:-2, 1:-1]
    bottom = h[2:, 1:-1]
    top_left = h[:-2, :-2]
    bottom_right = h[2:, 2:]

    norm_x = 2.0 * (left - right) - bottom_right + top_left + bottom - top
    norm_z = 2.0 * (top - bottom) + bottom_right + top_left - bottom - left
    norm_y = np.full_like(norm_x, NORMAL_FLATNESS)

    normals = np.stack((norm_x, norm_y, norm_z), axis=-1).astype(np.float32)
    length = np.sqrt(np.sum(normals.astype(np.float64) ** 2, axis=-1, keepdims=True))
    return (normals / length).astype(np.float32)


def derive_vertices(height: np.ndarray, origin_x: int, origin_z: int) -> np.ndarray:
    """World-space `(x, height, z)` positions, one per grid point, as `(depth + 1, width + 1, 3)`."""

    rows, cols = height.shape
    world_z, world_x = np.indices((rows, cols), dtype=np.float64)
    vertices = np.empty((rows, cols, 3), dtype=np.float32)
    vertices[..., 0] = world_x + origin_x
    vertices[..., 1] = height
    vertices[..., 2] = world_z + origin_z
    return vertices


def triangle_indices(width: int, depth: int) -> np.ndarray:
    """Two triangles per cell in row-major cell order, six uint32 indices per cell.

    For the cell whose top-left vertex is `p` the triangles are
    `(p, p + W + 1, p + 1)` and `(p + W + 1, p + W + 2, p + 1)`.
    """

    if width <= 0 or depth <= 0:
        raise ValueError("width and depth must be positive")

    stride = width + 1
    z, x = np.indices((depth, width), dtype=np.uint32)
    p = (z * stride + x).ravel()
    below = p + stride
    cells = np.stack((p, below, p + 1, below, below + 1, p + 1), axis=-1)
    return cells.astype(np.uint32).ravel()
