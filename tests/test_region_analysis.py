"""Tests for world diagnostics."""

import numpy as np
import pytest

from py_terrain.core.biomes import BIOME_NAMES
from py_terrain.core.errors import InvalidParameterError
from py_terrain.core.region_analysis import (
    biome_statistics,
    cell_raster,
    characterize_neighbor_discovery,
    raster_adjacency,
)


class TestRasterAdjacency:
    """Test adjacency extraction."""

    def test_simple_grid(self):
        cells = np.array([[1, 1, 2], [1, 3, 2], [3, 3, 2]])
        adjacency = raster_adjacency(cells)
        assert adjacency == {1: {2, 3}, 2: {1, 3}, 3: {1, 2}}

    def test_single_cell(self):
        assert raster_adjacency(np.full((4, 4), 7)) == {7: set()}


class TestBiomeStatistics:
    """Test biome distribution."""

    def test_percentages(self, partitioner):
        stats = biome_statistics(partitioner, extent=40000.0, step=1000.0)
        assert stats
        assert set(stats) <= set(BIOME_NAMES.values())
        assert sum(s["percentage"] for s in stats.values()) == pytest.approx(100.0)
        assert sum(s["samples"] for s in stats.values()) == 40 * 40

    def test_invalid_raster(self, partitioner):
        with pytest.raises(InvalidParameterError):
            cell_raster(partitioner, (0.0, 0.0), 100.0, 0.0)


class TestNeighborDiscovery:
    """Test the discovery report."""

    def test_report(self, partitioner):
        report = characterize_neighbor_discovery(partitioner, extent=30000.0, step=500.0)
        assert report.cells == len(report.adjacency)
        assert report.cells > 1
        assert 0.0 <= report.recall <= 1.0
        assert 0.0 <= report.precision <= 1.0
        assert report.matched_pairs <= min(report.observed_pairs, report.discovered_pairs)
