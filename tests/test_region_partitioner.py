"""Tests for macro region partitioning."""

import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from py_terrain.core.biomes import BiomeOptions, BiomeType
from py_terrain.core.errors import InvalidParameterError, NotInitializedError
from py_terrain.core.region_partitioner import (
    RegionOptions,
    RegionPartitioner,
    cell_id_from_value,
    cosine_falloff,
)

SAMPLE_POSITIONS = [
    (0.0, 0.0),
    (100000.0, 100000.0),
    (-2500.0, 731.0),
    (12345.6, -9876.5),
    (5000.0, 5000.0),
    (-40000.0, 22000.0),
]


class TestRegionOptions:
    """Test configuration validation."""

    def test_defaults(self):
        options = RegionOptions()
        assert options.region_scale == 0.00015
        assert options.max_boundary_radius == 30
        assert options.boundary_samples == 24
        assert options.neighbor_samples == 16

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"region_scale": 0.0},
            {"region_scale": -0.001},
            {"blend_distance": -1.0},
            {"warp_strength": -5.0},
            {"max_boundary_radius": 0},
            {"boundary_samples": 0},
        ],
    )
    def test_rejects_invalid(self, kwargs):
        with pytest.raises(InvalidParameterError):
            RegionOptions(**kwargs)

    def test_biome_options_validation(self):
        with pytest.raises(InvalidParameterError):
            BiomeOptions(rare_inclusion_probability=1.5)
        with pytest.raises(InvalidParameterError):
            BiomeOptions(common_biomes=(BiomeType.DESERT,), rare_biomes=(BiomeType.DESERT,))


class TestHelpers:
    """Test pure helper functions."""

    def test_cell_id_quantization(self):
        ids = cell_id_from_value(np.array([-1.0, 0.0, 0.0004, 0.9995, 1.0]))
        assert ids.tolist() == [0, 1000, 1000, 1999, 2000]

    def test_cosine_falloff(self):
        assert cosine_falloff(0.0, 10.0) == 1.0
        assert cosine_falloff(5.0, 10.0) == pytest.approx(math.cos(math.pi / 4))
        assert cosine_falloff(10.0, 10.0) == pytest.approx(0.0, abs=1e-12)
        assert cosine_falloff(11.0, 10.0) == 0.0

    def test_falloff_is_monotonic(self):
        weights = [cosine_falloff(d, 10.0) for d in range(0, 12)]
        assert all(a >= b for a, b in zip(weights, weights[1:]))


class TestInitialization:
    """Test lifecycle rules."""

    def test_queries_before_initialize_fail(self):
        region = RegionPartitioner()
        assert not region.is_initialized
        with pytest.raises(NotInitializedError):
            region.biome_at(0, 0)
        with pytest.raises(NotInitializedError):
            region.cell_id_at(0, 0)
        with pytest.raises(NotInitializedError):
            region.distance_to_boundary(0, 0)
        with pytest.raises(NotInitializedError):
            region.blend_weights(0, 0, 10)
        with pytest.raises(NotInitializedError):
            region.assign_biome(5)

    def test_initialize_clears_caches(self, partitioner):
        partitioner.biome_at(0, 0)
        assert partitioner.assigned_cells
        partitioner.initialize(7)
        assert partitioner.assigned_cells == {}
        assert partitioner.seed == 7


class TestTessellation:
    """Test cell ids."""

    def test_cell_ids_in_range(self, partitioner):
        xs = np.linspace(-50000, 50000, 200)
        ids = partitioner.cell_ids(xs, xs[::-1])
        assert ids.min() >= 0
        assert ids.max() <= 2000

    def test_cell_id_matches_batch(self, partitioner):
        xs = np.array([p[0] for p in SAMPLE_POSITIONS])
        zs = np.array([p[1] for p in SAMPLE_POSITIONS])
        batch = partitioner.cell_ids(xs, zs)
        for (x, z), expected in zip(SAMPLE_POSITIONS, batch.tolist()):
            assert partitioner.cell_id_at(x, z) == expected

    def test_cells_are_large(self, partitioner):
        xs = np.arange(0.0, 20000.0, 50.0)
        ids = partitioner.cell_ids(xs, np.zeros_like(xs))
        changes = int(np.sum(ids[1:] != ids[:-1]))
        # Regions span thousands of units at the default scale
        assert changes < 20

    def test_cell_value_matches_id(self, partitioner):
        value = partitioner.cell_value(300.0, -200.0)
        assert -1.0 <= value <= 1.0
        assert int(math.floor((value + 1.0) * 1000.0)) == partitioner.cell_id_at(300.0, -200.0)


class TestBiomeAssignment:
    """Test lazy biome assignment."""

    def test_determinism(self, partitioner):
        first = [partitioner.biome_at(x, z) for x, z in SAMPLE_POSITIONS]
        second = [partitioner.biome_at(x, z) for x, z in SAMPLE_POSITIONS]
        assert first == second

    def test_determinism_across_reinitialization(self, partitioner):
        first = [partitioner.biome_at(x, z) for x, z in SAMPLE_POSITIONS]
        partitioner.initialize(42)
        second = [partitioner.biome_at(x, z) for x, z in SAMPLE_POSITIONS]
        assert first == second

    def test_seed_42_example(self, partitioner):
        assert partitioner.biome_at(0, 0) == partitioner.biome_at(0, 0)
        far = partitioner.biome_at(100000, 100000)
        assert far == partitioner.biome_at(100000, 100000)
        assert isinstance(far, BiomeType)

    def test_coverage(self, partitioner):
        xs, zs = np.meshgrid(np.arange(-30000.0, 30000.0, 3000.0), np.arange(-30000.0, 30000.0, 3000.0))
        for x, z in zip(xs.ravel().tolist(), zs.ravel().tolist()):
            assert partitioner.biome_at(x, z) in set(BiomeType)

    def test_order_independence(self):
        forward = RegionPartitioner()
        forward.initialize(42)
        backward = RegionPartitioner()
        backward.initialize(42)

        cells = list(range(0, 2001, 37))
        expected = {cell: forward.assign_biome(cell) for cell in cells}
        observed = {cell: backward.assign_biome(cell) for cell in reversed(cells)}
        assert expected == observed

    def test_write_once(self, partitioner):
        cell = partitioner.cell_id_at(0, 0)
        biome = partitioner.assign_biome(cell)
        for _ in range(3):
            assert partitioner.assign_biome(cell) == biome
        assert partitioner.assigned_cells[cell] == biome

    def test_soft_neighbor_distinctness(self, partitioner):
        common = set(partitioner.options.biomes.common_biomes)
        for cell in range(0, 2001, 50):
            biome = partitioner.assign_biome(cell)
            used = {
                partitioner.assigned_cells[n] for n in partitioner.neighbors_of(cell) if n < cell
            }
            if common - used:
                assert biome not in used

    def test_exhausted_candidates_still_assign(self):
        options = RegionOptions(
            biomes=BiomeOptions(common_biomes=(BiomeType.DESERT,), rare_biomes=())
        )
        region = RegionPartitioner(options)
        region.initialize(3)
        # One candidate: every neighbor shares it, yet assignment succeeds
        assert {region.assign_biome(cell) for cell in range(0, 2001, 100)} == {BiomeType.DESERT}

    def test_rare_biome_never_drawn_when_disabled(self):
        options = RegionOptions(biomes=BiomeOptions(rare_inclusion_probability=0.0))
        region = RegionPartitioner(options)
        region.initialize(9)
        biomes = {region.assign_biome(cell) for cell in range(0, 2001, 25)}
        assert BiomeType.ISLANDS not in biomes

    def test_concurrent_resolution_matches_sequential(self):
        positions = [(x * 1700.0, z * 2300.0) for x in range(-6, 6) for z in range(-6, 6)]

        sequential = RegionPartitioner()
        sequential.initialize(42)
        expected = [sequential.biome_at(x, z) for x, z in positions]

        shared = RegionPartitioner()
        shared.initialize(42)
        with ThreadPoolExecutor(max_workers=8) as pool:
            observed = list(pool.map(lambda p: shared.biome_at(*p), positions))

        assert observed == expected


class TestNeighbors:
    """Test neighbor discovery."""

    def test_neighbors_are_distinct(self, partitioner):
        for cell in (0, 512, 1000, 1999):
            neighbors = partitioner.neighbors_of(cell)
            assert cell not in neighbors
            assert len(neighbors) == len(set(neighbors))
            assert len(neighbors) <= partitioner.options.neighbor_samples

    def test_neighbors_cached(self, partitioner):
        assert partitioner.neighbors_of(700) == partitioner.neighbors_of(700)

    def test_representative_point_deterministic(self, partitioner):
        point = partitioner.representative_point(321)
        assert point == partitioner.representative_point(321)
        assert -10000 <= point[0] < 10000
        assert -10000 <= point[1] < 10000


class TestBoundaryDistance:
    """Test boundary search."""

    def test_range(self, partitioner):
        for x, z in SAMPLE_POSITIONS:
            distance = partitioner.distance_to_boundary(x, z)
            assert 1.0 <= distance <= partitioner.options.max_boundary_radius

    def test_near_boundary_is_small(self, partitioner, cell_boundary):
        before, after = cell_boundary
        assert partitioner.distance_to_boundary(before, 0.0) <= 2.0
        assert partitioner.distance_to_boundary(after, 0.0) <= 2.0

    def test_grows_away_from_boundary(self, partitioner, cell_boundary):
        before, _ = cell_boundary
        near = partitioner.distance_to_boundary(before, 0.0)
        far = partitioner.distance_to_boundary(before - 500.0, 0.0)
        assert far >= near

    def test_is_near_boundary_at_boundary(self, partitioner, cell_boundary):
        before, after = cell_boundary
        assert partitioner.is_near_boundary(before, 0.0, threshold=0.0)


class TestBlendWeights:
    """Test blend weights."""

    def test_normalization(self, partitioner, cell_boundary):
        before, _ = cell_boundary
        positions = SAMPLE_POSITIONS + [(before + dx, 0.0) for dx in (-8.0, -3.0, 0.0, 3.0, 8.0)]
        for x, z in positions:
            for distance in (1.0, 5.0, 10.0, 25.0):
                weights = partitioner.blend_weights(x, z, distance)
                assert sum(weights.values()) == pytest.approx(1.0, abs=1e-3)
                assert all(0.0 <= w <= 1.0 for w in weights.values())

    def test_boundary_consistency(self, partitioner, cell_boundary):
        before, _ = cell_boundary
        positions = SAMPLE_POSITIONS + [(before - dx, 0.0) for dx in (0.0, 5.0, 15.0, 40.0)]
        for x, z in positions:
            if partitioner.distance_to_boundary(x, z) > 10:
                assert partitioner.blend_weights(x, z, 10) == {partitioner.biome_at(x, z): 1.0}

    def test_seed_42_origin_example(self, partitioner):
        if partitioner.distance_to_boundary(0, 0) > 10:
            weights = partitioner.blend_weights(0, 0, 10)
            assert len(weights) == 1
            assert list(weights.values()) == [1.0]

    def test_boundary_mixes_biomes(self, world, biome_boundary):
        before, after = biome_boundary
        region = world.partitioner
        weights = region.blend_weights(before, 0.0, 10.0)
        assert region.biome_at(after, 0.0) in weights
        assert weights[region.biome_at(before, 0.0)] == max(weights.values())

    def test_zero_blend_distance(self, partitioner, cell_boundary):
        before, _ = cell_boundary
        assert partitioner.blend_weights(before, 0.0, 0.0) == {partitioner.biome_at(before, 0.0): 1.0}

    def test_negative_blend_distance(self, partitioner):
        with pytest.raises(InvalidParameterError):
            partitioner.blend_weights(0.0, 0.0, -1.0)

    def test_neighboring_biomes_includes_current(self, partitioner):
        found = partitioner.neighboring_biomes(50.0, 50.0, 5)
        assert found[partitioner.biome_at(50.0, 50.0)] == 0.0
        assert all(0.0 <= d <= 5.0 for d in found.values())


class TestChunkBoundaryCheck:
    """Test the chunk pre-check."""

    def test_chunk_on_boundary(self, partitioner, cell_boundary):
        before, _ = cell_boundary
        origin = math.floor(before) - 8
        assert partitioner.is_chunk_near_boundary(origin, -8, 16, 10.0)

    def test_chunk_far_from_boundary(self, partitioner, cell_boundary):
        before, _ = cell_boundary
        origin_x = before - 2000.0
        if all(
            partitioner.distance_to_boundary(origin_x + dx, dz) > 10.0
            for dx in (0, 8, 15)
            for dz in (0, 8, 15)
        ):
            assert not partitioner.is_chunk_near_boundary(origin_x, 0.0, 16, 10.0)

    def test_invalid_chunk_size(self, partitioner):
        with pytest.raises(InvalidParameterError):
            partitioner.is_chunk_near_boundary(0, 0, 0, 10.0)

    def test_negative_blend_distance(self, partitioner):
        with pytest.raises(InvalidParameterError):
            partitioner.is_chunk_near_boundary(0, 0, 16, -1.0)


class TestNearestRegionCenter:
    """Test region center lookup."""

    def test_own_biome(self, partitioner):
        biome = partitioner.biome_at(0.0, 0.0)
        cell = partitioner.cell_id_at(0.0, 0.0)
        assert partitioner.nearest_region_center(0.0, 0.0, biome) == partitioner.representative_point(cell)

    def test_unknown_biome_falls_back_to_query_point(self):
        options = RegionOptions(biomes=BiomeOptions(rare_inclusion_probability=0.0))
        region = RegionPartitioner(options)
        region.initialize(42)
        assert region.nearest_region_center(10.0, 20.0, BiomeType.ISLANDS) == (10.0, 20.0)
