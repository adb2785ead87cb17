"""
Diagnostics over a sampled window of the world.

- biome_statistics: share of each macro biome on a raster
- characterize_neighbor_discovery: how well the cached neighbor lists of the
  partitioner match cell adjacency observed on a raster

Neighbor lists are discovered around a representative point drawn from each
cell's random stream, not from the cell's geometry, so they are expected to
miss true neighbors. The report quantifies by how much.
"""

from dataclasses import dataclass, field
from typing import Dict, Set, Tuple

import numpy as np
import structlog

from .biomes import BIOME_NAMES, BiomeType
from .errors import InvalidParameterError
from .region_partitioner import RegionPartitioner

logger = structlog.get_logger()


def _raster(origin: Tuple[float, float], extent: float, step: float):
    if extent <= 0 or step <= 0:
        raise InvalidParameterError("extent/step", (extent, step), "must be positive")
    offsets = np.arange(0.0, extent, step)
    return np.meshgrid(origin[0] + offsets, origin[1] + offsets, indexing="ij")


def cell_raster(
    partitioner: RegionPartitioner, origin: Tuple[float, float], extent: float, step: float
) -> np.ndarray:
    """Cell ids sampled on a square raster starting at `origin`."""
    xs, zs = _raster(origin, extent, step)
    return partitioner.cell_ids(xs, zs)


def biome_statistics(
    partitioner: RegionPartitioner,
    origin: Tuple[float, float] = (0.0, 0.0),
    extent: float = 20000.0,
    step: float = 250.0,
) -> Dict[str, Dict[str, float]]:
    """
    Biome distribution on a raster.

    Returns:
        Mapping biome name -> {"samples": count, "percentage": share * 100}
    """
    cells = cell_raster(partitioner, origin, extent, step)
    biome_by_cell = {cell: partitioner.biome_of_cell(cell) for cell in np.unique(cells).tolist()}
    biomes = np.vectorize(lambda cell: int(biome_by_cell[cell]))(cells)

    total = biomes.size
    stats = {}
    for biome in BiomeType:
        count = int(np.sum(biomes == biome))
        if count:
            stats[BIOME_NAMES[biome]] = {"samples": count, "percentage": count / total * 100.0}

    logger.info("Biome statistics computed", samples=total, biomes=len(stats))
    return stats


@dataclass
class NeighborDiscoveryReport:
    """Agreement between discovered neighbor lists and raster adjacency."""

    cells: int = 0  # Cells present in the raster
    observed_pairs: int = 0  # Adjacent id pairs seen on the raster
    discovered_pairs: int = 0  # Raster cells' (cell, neighbor) pairs from discovery
    matched_pairs: int = 0  # Discovered pairs that are also observed
    adjacency: Dict[int, Set[int]] = field(default_factory=dict)

    @property
    def recall(self) -> float:
        """Share of observed adjacencies that discovery also reports."""
        return self.matched_pairs / self.observed_pairs if self.observed_pairs else 0.0

    @property
    def precision(self) -> float:
        """Share of discovered neighbors that are observed adjacencies."""
        return self.matched_pairs / self.discovered_pairs if self.discovered_pairs else 0.0


def raster_adjacency(cells: np.ndarray) -> Dict[int, Set[int]]:
    """Cell id -> ids sharing a raster edge with it (4-connectivity)."""
    adjacency: Dict[int, Set[int]] = {int(cell): set() for cell in np.unique(cells).tolist()}
    for a, b in (
        (cells[:-1, :], cells[1:, :]),
        (cells[:, :-1], cells[:, 1:]),
    ):
        differs = a != b
        for left, right in zip(a[differs].tolist(), b[differs].tolist()):
            adjacency[left].add(right)
            adjacency[right].add(left)
    return adjacency


def characterize_neighbor_discovery(
    partitioner: RegionPartitioner,
    origin: Tuple[float, float] = (0.0, 0.0),
    extent: float = 40000.0,
    step: float = 100.0,
) -> NeighborDiscoveryReport:
    """
    Compare discovered neighbor lists with adjacency observed on a raster.

    Args:
        partitioner: Initialized partitioner
        origin: Lower corner of the raster
        extent: Raster side length in world units
        step: Raster spacing

    Returns:
        NeighborDiscoveryReport with recall and precision
    """
    cells = cell_raster(partitioner, origin, extent, step)
    adjacency = raster_adjacency(cells)

    report = NeighborDiscoveryReport(cells=len(adjacency), adjacency=adjacency)
    for cell, observed in adjacency.items():
        discovered = set(partitioner.neighbors_of(cell))
        report.observed_pairs += len(observed)
        report.discovered_pairs += len(discovered)
        report.matched_pairs += len(discovered & observed)

    logger.info(
        "Neighbor discovery characterized",
        cells=report.cells,
        recall=round(report.recall, 3),
        precision=round(report.precision, 3),
    )
    return report
