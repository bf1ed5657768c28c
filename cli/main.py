"""CLI entry point for chunk terrain generation."""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
import logging
from pathlib import Path
import platform
import shutil
import tempfile
import time

import numba
import numpy as np

from chunkgen.chunk import generate_chunk
from chunkgen.config import DEFAULT_CHUNK_SIZE, EROSION_MODELS, ChunkConfig
from chunkgen.derive import (
    color_preview_u8,
    erosion_delta_u8,
    height_preview_u16,
    hillshade,
    normal_preview_u8,
)
from chunkgen.io import (
    move_tree_contents,
    resolve_output_dir,
    safe_clean_output_dir,
    write_chunk_npz,
    write_json,
    write_png_rgb,
    write_png_u16,
    write_png_u8,
)
from chunkgen.metrics import height_stats
from chunkgen.seed import ChunkCoordinateError, normalize_seed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deterministic eroded terrain chunk generator")
    parser.add_argument("--seed", default="0", help="Unsigned 32-bit global seed (decimal or 0x hex)")
    parser.add_argument("--chunk-x", type=int, default=0, help="Chunk x coordinate")
    parser.add_argument("--chunk-z", type=int, default=0, help="Chunk z coordinate")
    parser.add_argument("--size", type=int, default=DEFAULT_CHUNK_SIZE, help="Chunk width and depth in cells")
    parser.add_argument(
        "--erosion",
        choices=EROSION_MODELS,
        default="inertia",
        help="Droplet erosion model",
    )
    parser.add_argument("--out", default="out", help="Output root directory")
    parser.add_argument("--overwrite", action="store_true", help="Overwrite files in existing output directory")
    parser.add_argument(
        "--json",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write metadata JSON files",
    )
    parser.add_argument("--verbose", action="store_true", help="Log phase timings")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        seed = normalize_seed(args.seed)
        config = ChunkConfig(chunk_width=args.size, chunk_depth=args.size, erosion_model=args.erosion)
    except ValueError as exc:
        parser.error(str(exc))

    generation_start = time.perf_counter()
    try:
        chunk = generate_chunk(seed, args.chunk_x, args.chunk_z, config=config)
    except ChunkCoordinateError as exc:
        parser.error(str(exc))
    generation_seconds = time.perf_counter() - generation_start

    rows, cols = config.chunk_depth + 1, config.chunk_width + 1
    height = chunk.height_grid()
    normals = chunk.normals.reshape(rows, cols, 3)
    colors = chunk.colors.reshape(rows, cols, 3)
    base = chunk.base_heights.interior
    stats = height_stats(height, base)

    png_u16_outputs: dict[str, np.ndarray] = {
        "height_16.png": height_preview_u16(height, max_height=config.noise.max_height),
    }
    png_u8_outputs: dict[str, np.ndarray] = {
        "hillshade.png": hillshade(normals),
        "debug_erosion_delta.png": erosion_delta_u8(height, base),
    }
    png_rgb_outputs: dict[str, np.ndarray] = {
        "colors.png": color_preview_u8(colors),
        "normals.png": normal_preview_u8(normals),
    }

    out_dir = resolve_output_dir(args.out, seed, chunk.chunk_x, chunk.chunk_z, overwrite=args.overwrite)

    stage_dir = Path(tempfile.mkdtemp(prefix=".staging-", dir=str(out_dir.parent)))
    try:
        write_chunk_npz(stage_dir / "chunk.npz", chunk)
        for name, raster in png_u16_outputs.items():
            write_png_u16(stage_dir / name, raster)
        for name, raster in png_u8_outputs.items():
            write_png_u8(stage_dir / name, raster)
        for name, raster in png_rgb_outputs.items():
            write_png_rgb(stage_dir / name, raster)
        if args.json:
            deterministic_meta = {
                "seed": seed,
                "chunk_x": chunk.chunk_x,
                "chunk_z": chunk.chunk_z,
                "config": config.to_dict(),
                "erosion": chunk.erosion_metrics.deterministic_dict(),
                "height": {
                    "min": stats.min_height,
                    "max": stats.max_height,
                    "mean": stats.mean_height,
                    "mean_abs_erosion_change": stats.mean_abs_change,
                },
                "buffers": {
                    name: {"dtype": str(buffer.dtype), "length": int(buffer.size)}
                    for name, buffer in chunk.buffers().items()
                },
            }
            meta = {
                **deterministic_meta,
                "generated_at_utc": datetime.now(timezone.utc).isoformat(),
                "generation_seconds": generation_seconds,
                "erosion_seconds": chunk.erosion_metrics.erosion_seconds,
                "python_version": platform.python_version(),
                "numpy_version": np.__version__,
                "numba_version": numba.__version__,
            }
            write_json(stage_dir / "deterministic_meta.json", deterministic_meta)
            write_json(stage_dir / "meta.json", meta)

        safe_clean_output_dir(out_dir, out_root=Path(args.out))
        move_tree_contents(stage_dir, out_dir)
    finally:
        shutil.rmtree(stage_dir, ignore_errors=True)

    metrics = chunk.erosion_metrics
    print(f"Generated chunk: {out_dir}")
    print(
        f"Heights: min={stats.min_height:.2f}, max={stats.max_height:.2f}, "
        f"mean={stats.mean_height:.2f}, mean erosion change={stats.mean_abs_change:.4f}"
    )
    print(
        f"Erosion ({metrics.model}): drops={metrics.drops}, steps={metrics.steps}, "
        f"eroded={metrics.eroded:.2f}, deposited={metrics.deposited:.2f}, carried={metrics.carried:.2f}"
    )
    print(f"Generation time: {generation_seconds:.3f} s ({config.chunk_width}x{config.chunk_depth})")
    file_count = sum(1 for child in out_dir.iterdir() if child.is_file())
    print(f"Output files: {file_count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
