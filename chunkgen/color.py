"""Height-band vertex coloring."""

from __future__ import annotations

import numpy as np

from chunkgen.config import ColorRegion, validate_color_regions


def classify_colors(height: np.ndarray, max_height: float, regions: tuple[ColorRegion, ...]) -> np.ndarray:
    """Blend band colors by normalized height.

    Each point takes the first band whose `max_height` is at or above its
    normalized height and blends from the previous band's color with factor
    `(h - prev) / ((cur - prev) * cur.blend)` clipped to [0, 1]. The first band
    is used as is; points above every band are black. Returns float32 RGB in
    [0, 1] with shape `height.shape + (3,)`.
    """

    validate_color_regions(regions)
    if max_height <= 0:
        raise ValueError("max_height must be positive")

    bounds = np.array([region.max_height for region in regions], dtype=np.float64)
    blends = np.array([region.blend for region in regions], dtype=np.float64)
    palette = np.array([region.color for region in regions], dtype=np.float64) / 255.0

    norm = height.astype(np.float64) / float(max_height)
    band = np.searchsorted(bounds, norm, side="left")
    inside = band < len(regions)

    cur = np.minimum(band, len(regions) - 1)
    prev = np.maximum(cur - 1, 0)
    span = (bounds[cur] - bounds[prev]) * blends[cur]
    factor = np.where(cur > 0, (norm - bounds[prev]) / np.where(cur > 0, span, 1.0), 0.0)
    factor = np.clip(factor, 0.0, 1.0)[..., None]

    colors = palette[prev] + (palette[cur] - palette[prev]) * factor
    colors = np.where((cur == 0)[..., None], palette[0], colors)
    colors[~inside] = 0.0
    return colors.astype(np.float32)
