"""Preview rasters derived from chunk buffers."""

from __future__ import annotations

import numpy as np


def hillshade(
    normals: np.ndarray,
    *,
    azimuth_deg: float = 315.0,
    altitude_deg: float = 45.0,
) -> np.ndarray:
    """Compute an 8-bit grayscale hillshade from `(rows, cols, 3)` unit normals."""

    if normals.ndim != 3 or normals.shape[-1] != 3:
        raise ValueError("normals must be a (rows, cols, 3) array")

    azimuth = np.deg2rad(azimuth_deg)
    altitude = np.deg2rad(altitude_deg)
    light = np.array(
        [
            np.cos(altitude) * np.sin(azimuth),
            np.sin(altitude),
            -np.cos(altitude) * np.cos(azimuth),
        ],
        dtype=np.float64,
    )
    shaded = np.clip(normals.astype(np.float64) @ light, 0.0, 1.0)
    return np.round(shaded * 255.0).astype(np.uint8)


def height_preview_u16(height: np.ndarray, *, max_height: float | None = None) -> np.ndarray:
    """Map float heights to 16-bit grayscale.

    With `max_height` the scale is absolute `[0, max_height]`, so adjacent
    chunks share one ramp; otherwise the chunk's own range is stretched.
    """

    if max_height is not None:
        lo, hi = 0.0, float(max_height)
    else:
        lo, hi = float(height.min()), float(height.max())
    scale = max(hi - lo, 1e-6)
    norm = np.clip((height - lo) / scale, 0.0, 1.0)
    return np.round(norm * 65535.0).astype(np.uint16)


def color_preview_u8(colors: np.ndarray) -> np.ndarray:
    """Encode float RGB in [0, 1] as 8-bit RGB."""

    return np.round(np.clip(colors, 0.0, 1.0) * 255.0).astype(np.uint8)


def normal_preview_u8(normals: np.ndarray) -> np.ndarray:
    """Encode unit normals in [-1, 1] as 8-bit RGB."""

    encoded = (np.clip(normals.astype(np.float32), -1.0, 1.0) * 0.5) + 0.5
    return np.round(encoded * 255.0).astype(np.uint8)


def erosion_delta_u8(height: np.ndarray, base: np.ndarray, *, clip: float | None = None) -> np.ndarray:
    """Map the signed erosion change `height - base` into 8-bit, 128 meaning unchanged."""

    delta = height.astype(np.float32) - base.astype(np.float32)
    if clip is None:
        clip = float(np.max(np.abs(delta))) if delta.size else 1.0
    normalized = np.clip(delta / max(clip, 1e-6), -1.0, 1.0)
    return np.round(((normalized * 0.5) + 0.5) * 255.0).astype(np.uint8)
