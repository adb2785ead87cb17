"""Shared fixtures for terrain tests."""

import pytest

from py_terrain.core.region_partitioner import RegionPartitioner
from py_terrain.core.world import WorldContext


def locate_transition(key, z=0.0, start=0.0, step=250.0, limit=250000.0, precision=0.25):
    """
    Walk along +x from `start` until key(x, z) changes, then bisect.

    Returns:
        (x_before, x_after) with key(x_before, z) != key(x_after, z) and
        x_after - x_before <= precision
    """
    first = key(start, z)
    x = start
    while x < start + limit:
        nxt = x + step
        if key(nxt, z) != first:
            low, high = x, nxt
            low_key = key(low, z)
            while high - low > precision:
                mid = (low + high) / 2.0
                if key(mid, z) == low_key:
                    low = mid
                else:
                    high = mid
            return low, high
        x = nxt
    raise AssertionError("no transition found along the sample line")


@pytest.fixture
def partitioner():
    """Partitioner initialized with seed 42."""
    region = RegionPartitioner()
    region.initialize(42)
    return region


@pytest.fixture
def world():
    """World initialized with seed 42."""
    return WorldContext(seed=42)


@pytest.fixture
def cell_boundary(partitioner):
    """A pair of nearby x positions on either side of a cell boundary (z = 0)."""
    return locate_transition(partitioner.cell_id_at)


@pytest.fixture
def biome_boundary(world):
    """A pair of nearby x positions on either side of a biome boundary (z = 0)."""
    return locate_transition(world.biome_at)
