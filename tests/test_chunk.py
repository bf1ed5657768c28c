from __future__ import annotations

import hashlib

import numpy as np
import pytest

from chunkgen.chunk import BUFFER_NAMES, TerrainGenerator, generate_chunk
from chunkgen.config import ChunkConfig, NoiseConfig
from chunkgen.noise import NoiseSampler
from chunkgen.seed import ChunkCoordinateError, SeedError

SIZE = 32
CONFIG = ChunkConfig(chunk_width=SIZE, chunk_depth=SIZE, noise=NoiseConfig(fineness=128.0))

# Recorded for seed 42, chunk (0, 0) at CONFIG. These follow the BLAKE2b key,
# numpy's SeedSequence/PCG64 draws and the opensimplex permutation table, so a
# dependency release that changes any of them shows up here.
REFERENCE_CORNERS = {
    (0, 0): 286.025452,
    (0, SIZE): 360.939117,
    (SIZE, 0): 307.762421,
    (SIZE, SIZE): 331.92453,
}
REFERENCE_DIGESTS = {
    "heightmap": "572273bd02f2564e7e7ce714cba89cf3d7d67b7f0348777aa55b4003a791162f",
    "vertices": "4524726591866bb9ed50f42c8c5ebd5733828ee196f2dc5b46e2dc0c9584ee0b",
    "normals": "1f4faba1f1801a2eedc4a6a8044a9a11ab0dd56f06c60f505688e5f614e379ba",
    "colors": "dc4937d4f71f61d45273831b60d30e68aecd34c1f9ceddc6c1ce55b219db1ab9",
    "indices": "767b97e40409d29b8b77966370226e3222e2164f6f870a30980b689add7dd9a7",
}


@pytest.fixture(scope="module")
def chunk_00():
    return TerrainGenerator(42, CONFIG).generate_chunk(0, 0)


@pytest.fixture(scope="module")
def chunk_10():
    return TerrainGenerator(42, CONFIG).generate_chunk(1, 0)


def test_buffer_layout(chunk_00) -> None:
    points = CONFIG.vertex_count

    assert chunk_00.heightmap.shape == (points,)
    assert chunk_00.vertices.shape == (points * 3,)
    assert chunk_00.normals.shape == (points * 3,)
    assert chunk_00.colors.shape == (points * 3,)
    assert chunk_00.indices.shape == (CONFIG.index_count,)
    assert (points, CONFIG.index_count) == ((SIZE + 1) * (SIZE + 1), SIZE * SIZE * 6)
    for name in ("heightmap", "vertices", "normals", "colors"):
        assert getattr(chunk_00, name).dtype == np.float32, name
    assert chunk_00.indices.dtype == np.uint32
    assert tuple(chunk_00.buffers()) == BUFFER_NAMES


def test_heights_in_range(chunk_00) -> None:
    assert chunk_00.heightmap.min() >= 0.0
    assert chunk_00.heightmap.max() <= CONFIG.noise.max_height


def test_normals_unit_length(chunk_00) -> None:
    normals = chunk_00.normals.reshape(-1, 3).astype(np.float64)

    assert np.allclose(np.linalg.norm(normals, axis=1), 1.0, atol=1e-4)
    assert (normals[:, 1] > 0.0).all()


def test_indices_valid(chunk_00) -> None:
    assert int(chunk_00.indices.max()) < (SIZE + 1) * (SIZE + 1)
    assert chunk_00.indices.size == SIZE * SIZE * 6


def test_colors_in_unit_range(chunk_00) -> None:
    assert chunk_00.colors.min() >= 0.0
    assert chunk_00.colors.max() <= 1.0


def test_vertices_carry_heights_and_world_coordinates(chunk_10) -> None:
    vertices = chunk_10.vertices.reshape(SIZE + 1, SIZE + 1, 3)

    assert np.array_equal(vertices[..., 1], chunk_10.height_grid())
    assert vertices[0, 0, 0] == SIZE
    assert vertices[0, -1, 0] == 2 * SIZE
    assert vertices[-1, 0, 2] == SIZE


def test_erosion_modifies_chunk(chunk_00) -> None:
    assert chunk_00.erosion_metrics.model == "inertia"
    assert chunk_00.erosion_metrics.drops == int(1.2 * SIZE * SIZE)
    assert chunk_00.height_grid().shape == chunk_00.base_heights.interior.shape


def test_seed_42_reference_chunk(chunk_00) -> None:
    height = chunk_00.height_grid()

    assert chunk_00.indices[:6].tolist() == [0, SIZE + 1, 1, SIZE + 1, SIZE + 2, 1]
    for (z, x), expected in REFERENCE_CORNERS.items():
        assert float(height[z, x]) == pytest.approx(expected, abs=1e-4), (z, x)
    # A damped kernel write still reaches the top-left corner.
    assert float(chunk_00.base_heights.interior[0, 0]) == pytest.approx(286.025513, abs=1e-4)
    assert height[0, 0] < chunk_00.base_heights.interior[0, 0]

    metrics = chunk_00.erosion_metrics
    assert (metrics.drops, metrics.steps) == (1228, 9442)
    assert metrics.eroded == pytest.approx(2517.9338303995141, rel=1e-9)
    assert metrics.deposited == pytest.approx(182.19311376421743, rel=1e-9)
    assert metrics.carried == pytest.approx(2335.7407166352937, rel=1e-9)

    digests = {name: hashlib.sha256(buffer.tobytes()).hexdigest() for name, buffer in chunk_00.buffers().items()}
    assert digests == REFERENCE_DIGESTS


def test_shared_edge_matches_neighbour_sampling(chunk_00, chunk_10) -> None:
    left_padded = chunk_00.base_heights.padded
    right_padded = chunk_10.base_heights.padded

    # Column x = SIZE is shared by both chunks.
    assert np.array_equal(left_padded[1:-1, -2], right_padded[1:-1, 1])
    # Chunk (0, 0)'s out-of-bounds ring column x = SIZE + 1 is chunk (1, 0)'s second column.
    assert np.array_equal(left_padded[1:-1, -1], right_padded[1:-1, 2])
    # And chunk (1, 0)'s left ring is chunk (0, 0)'s column x = SIZE - 1.
    assert np.array_equal(right_padded[1:-1, 0], left_padded[1:-1, -3])


def test_edge_normals_use_noise_outside_chunk(chunk_00) -> None:
    from chunkgen.mesh import derive_normals, pad_with_ring

    expected = derive_normals(pad_with_ring(chunk_00.height_grid(), chunk_00.base_heights.padded))

    assert np.array_equal(chunk_00.normals.reshape(SIZE + 1, SIZE + 1, 3), expected)


def test_set_seed_switches_terrain() -> None:
    generator = TerrainGenerator(1, CONFIG)
    first = generator.generate_chunk(0, 0)
    generator.set_seed(2)
    second = generator.generate_chunk(0, 0)
    generator.set_seed(1)
    third = generator.generate_chunk(0, 0)

    assert generator.seed == 1
    assert not np.array_equal(first.heightmap, second.heightmap)
    assert np.array_equal(first.heightmap, third.heightmap)


def test_set_seed_never_mixes_seed_and_sampler(monkeypatch) -> None:
    config = ChunkConfig(chunk_width=8, chunk_depth=8, erosion_model="none")
    expected = generate_chunk(1, 0, 0, config=config).heightmap
    generator = TerrainGenerator(1, config)
    during = []

    class InterleavedSampler(NoiseSampler):
        def __init__(self, seed, noise):
            # A generation call landing while set_seed is still building state.
            during.append(generator.generate_chunk(0, 0))
            super().__init__(seed, noise)

    monkeypatch.setattr("chunkgen.chunk.NoiseSampler", InterleavedSampler)
    generator.set_seed(2)

    assert len(during) == 1
    assert during[0].seed == 1
    assert np.array_equal(during[0].heightmap, expected)
    assert generator.seed == 2


def test_default_seed_is_zero() -> None:
    assert TerrainGenerator(config=CONFIG).seed == 0


def test_outputs_are_not_shared_between_calls() -> None:
    generator = TerrainGenerator(42, CONFIG)
    first = generator.generate_chunk(0, 0)
    snapshot = first.heightmap.copy()
    first.heightmap[:] = -1.0
    second = generator.generate_chunk(0, 0)

    assert np.array_equal(second.heightmap, snapshot)


def test_invalid_inputs_raise() -> None:
    with pytest.raises(SeedError):
        generate_chunk(-1, 0, 0, config=CONFIG)
    with pytest.raises(ChunkCoordinateError):
        generate_chunk(0, 2**31 // SIZE, 0, config=CONFIG)
    with pytest.raises(ChunkCoordinateError):
        generate_chunk(0, 0, -(2**31) // SIZE, config=CONFIG)


@pytest.mark.parametrize("coords", [(1.7, 0), (0, 2.0), (True, 0), ("1", 0)])
def test_non_integer_coordinates_raise(coords) -> None:
    config = ChunkConfig(chunk_width=8, chunk_depth=8)

    with pytest.raises(TypeError):
        generate_chunk(1, *coords, config=config)


def test_numpy_integer_coordinates_are_accepted() -> None:
    config = ChunkConfig(chunk_width=8, chunk_depth=8, erosion_model="none")
    output = generate_chunk(1, np.int64(1), np.int32(-2), config=config)

    assert (output.chunk_x, output.chunk_z) == (1, -2)
    assert type(output.chunk_x) is int


@pytest.mark.parametrize(
    "overrides",
    [
        {"chunk_width": 2},
        {"erosion_model": "glacial"},
        {"noise": NoiseConfig(octaves=0)},
    ],
)
def test_invalid_config_raises(overrides) -> None:
    with pytest.raises(ValueError):
        ChunkConfig(**overrides)
