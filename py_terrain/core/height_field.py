"""
Height field synthesis.

Combines macro biome blend weights, sub-zone blend factors and per-zone noise
profiles into one integer elevation per world column:

1. Macro weights come from the region partitioner, or at chunk level from a
   coarse weight grid that is bilinearly interpolated
2. Each weighted biome mixes its sub-zone noise samples by factor, nudges its
   base height by the composite profile and maps the sample to a normalized
   height; the island biome thresholds its sample into landmasses
3. Normalized heights are averaged by weight and scaled to world blocks
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

import numpy as np
import structlog

from .alea_prng import derive_seed
from .biomes import BiomeType, SubZone
from .errors import InvalidParameterError, NotInitializedError
from .noise_field import get_noise_field
from .noise_profiles import blend_profiles, get_profile
from .region_partitioner import BlendWeights, RegionPartitioner
from .sub_regions import SubRegionClassifier

logger = structlog.get_logger()

HEIGHT_SEED_OFFSET = 3000


@dataclass(frozen=True)
class HeightOptions:
    """Height synthesis options. Heights are fractions of world_height."""

    base_height: float = 0.2
    noise_contribution: float = 0.4  # Height range added on top of base_height
    world_height: int = 128  # Blocks per column
    water_level: float = 0.18
    island_threshold: float = 0.55  # Island samples below this are underwater
    underwater_scale: float = 0.3  # Underwater height = sample * underwater_scale
    island_steepness: float = 2.0
    chunk_size: int = 16
    coarse_grid_cells: int = 2  # Weight grid cells per chunk side near boundaries
    weight_epsilon: float = 1e-3  # Biomes weighted below this are skipped

    def __post_init__(self):
        if self.world_height < 1:
            raise InvalidParameterError("world_height", self.world_height, "must be at least 1")
        if self.chunk_size < 1:
            raise InvalidParameterError("chunk_size", self.chunk_size, "must be at least 1")
        if self.coarse_grid_cells < 1:
            raise InvalidParameterError("coarse_grid_cells", self.coarse_grid_cells, "must be at least 1")
        if not 0.0 < self.island_threshold < 1.0:
            raise InvalidParameterError("island_threshold", self.island_threshold, "must be in (0, 1)")
        if not 0.0 <= self.water_level <= 1.0:
            raise InvalidParameterError("water_level", self.water_level, "must be in [0, 1]")
        if self.noise_contribution < 0:
            raise InvalidParameterError(
                "noise_contribution", self.noise_contribution, "must not be negative"
            )
        if not 0.0 <= self.weight_epsilon < 0.5:
            raise InvalidParameterError("weight_epsilon", self.weight_epsilon, "must be in [0, 0.5)")

    @property
    def underwater_bound(self) -> float:
        """Highest normalized height an underwater island sample can reach."""
        return self.island_threshold * self.underwater_scale


def land_height(noise: float, base: float, contribution: float) -> float:
    """Rolling terrain: base plus the scaled [0, 1] sample."""
    return base + noise * contribution


def island_height(
    noise: float,
    base: float,
    contribution: float,
    threshold: float,
    underwater_scale: float = 0.3,
    steepness: float = 2.0,
) -> float:
    """
    Thresholded island terrain.

    Samples below `threshold` become shallow sea floor (noise * underwater_scale).
    The excess above it is rescaled to [0, 1], squared and steepened, so land
    rises quickly from `base` toward `base + contribution`.
    """
    if noise < threshold:
        return noise * underwater_scale
    excess = (noise - threshold) / (1.0 - threshold)
    shaped = min(excess * excess * steepness, 1.0)
    return base + shaped * contribution


def interpolate_weights(
    corners: List[BlendWeights], tx: float, tz: float
) -> BlendWeights:
    """
    Bilinear blend of four weight maps.

    Args:
        corners: Weight maps at (0, 0), (1, 0), (0, 1), (1, 1)
        tx, tz: Fractional position inside the grid cell

    Returns:
        Renormalized weight map
    """
    factors = (
        (1.0 - tx) * (1.0 - tz),
        tx * (1.0 - tz),
        (1.0 - tx) * tz,
        tx * tz,
    )
    combined: Dict[BiomeType, float] = {}
    for weights, factor in zip(corners, factors):
        if factor <= 0.0:
            continue
        for biome, weight in weights.items():
            combined[biome] = combined.get(biome, 0.0) + weight * factor

    total = sum(combined.values())
    return {biome: weight / total for biome, weight in combined.items() if weight > 0.0}


class HeightFieldSynthesizer:
    """
    Produces elevations continuous across macro and sub-zone boundaries.

    Reads the partitioner and classifiers it is given; it owns only its
    height noise channel.
    """

    def __init__(
        self,
        partitioner: RegionPartitioner,
        classifiers: Mapping[BiomeType, SubRegionClassifier],
        options: Optional[HeightOptions] = None,
    ):
        """
        Args:
            partitioner: Source of macro biomes and blend weights
            classifiers: One sub-zone classifier per macro biome
            options: Height options, defaults to HeightOptions()
        """
        self.partitioner = partitioner
        self.classifiers = classifiers
        self.options = options or HeightOptions()
        self.island_biome = partitioner.options.biomes.island_biome
        self.seed: Optional[int] = None
        self._height_seed: Optional[int] = None

    def initialize(self, seed: int) -> None:
        self.seed = int(seed)
        self._height_seed = derive_seed(seed, HEIGHT_SEED_OFFSET)
        logger.debug("Height synthesizer initialized", seed=self.seed)

    def _require_initialized(self) -> None:
        if self.seed is None:
            raise NotInitializedError("HeightFieldSynthesizer")

    @property
    def water_level_block(self) -> int:
        """Water surface in blocks."""
        return int(math.floor(self.options.water_level * self.options.world_height + 0.5))

    def to_block(self, height: float) -> int:
        """Normalized height to a clamped integer block elevation."""
        block = int(math.floor(height * self.options.world_height + 0.5))
        return max(0, min(self.options.world_height - 1, block))

    def zone_noise(self, x: float, z: float, biome: BiomeType, factors: Mapping[SubZone, float]) -> float:
        """
        Height noise in [0, 1] for the given sub-zone factors.

        Each zone samples its own fixed-frequency field and the samples are
        mixed by factor, so the noise phase stays anchored to world position
        across a transition. An interpolated frequency would shift the phase
        by d(frequency) * x per block.
        """
        total = sum(factors.values())
        return sum(
            get_noise_field(self._height_seed, get_profile(biome, zone).noise).sample01(x, z) * factor
            for zone, factor in factors.items()
        ) / total

    def biome_height(self, x: float, z: float, biome: BiomeType) -> float:
        """
        Normalized height of `biome`'s terrain at (x, z), ignoring other biomes.

        The base offset comes from the composite profile; the noise sample
        comes from zone_noise.
        """
        self._require_initialized()
        options = self.options

        factors = self.classifiers[biome].blend_factors(x, z)
        profile = blend_profiles(biome, factors)
        noise = self.zone_noise(x, z, biome, factors)
        base = options.base_height + profile.base_offset

        if biome == self.island_biome:
            return island_height(
                noise,
                base,
                options.noise_contribution,
                options.island_threshold,
                options.underwater_scale,
                options.island_steepness,
            )
        return land_height(noise, base, options.noise_contribution)

    def height_at_with_weights(self, x: float, z: float, weights: Mapping[BiomeType, float]) -> int:
        """
        Elevation at (x, z) for precomputed macro weights.

        Args:
            x, z: World position
            weights: Biome weights, e.g. interpolated from a chunk grid

        Returns:
            Block elevation in [0, world_height - 1]
        """
        epsilon = self.options.weight_epsilon
        significant = {biome: weight for biome, weight in weights.items() if weight > epsilon}
        if not significant:
            raise InvalidParameterError("weights", dict(weights), "no biome weight above epsilon")

        dominant = max(significant, key=significant.get)
        if len(significant) == 1 or significant[dominant] >= 1.0 - epsilon:
            return self.to_block(self.biome_height(x, z, dominant))

        total = sum(significant.values())
        height = sum(
            self.biome_height(x, z, biome) * weight / total for biome, weight in significant.items()
        )
        return self.to_block(height)

    def height_at(self, x: float, z: float) -> int:
        """Elevation at (x, z) using exact blend weights."""
        self._require_initialized()
        return self.height_at_with_weights(x, z, self.partitioner.blend_weights(x, z))

    def chunk_origin(self, chunk_x: int, chunk_z: int):
        size = self.options.chunk_size
        return chunk_x * size, chunk_z * size

    def is_chunk_near_boundary(self, chunk_x: int, chunk_z: int) -> bool:
        origin_x, origin_z = self.chunk_origin(chunk_x, chunk_z)
        return self.partitioner.is_chunk_near_boundary(origin_x, origin_z, self.options.chunk_size)

    def chunk_weights(self, chunk_x: int, chunk_z: int) -> List[List[BlendWeights]]:
        """
        Macro weights for every column of a chunk, indexed [local_x][local_z].

        Chunks clear of boundaries get single-biome weights. Chunks near one
        get weights from a coarse grid, interpolated per column.
        """
        self._require_initialized()
        size = self.options.chunk_size
        origin_x, origin_z = self.chunk_origin(chunk_x, chunk_z)
        local = np.arange(size, dtype=np.float64)

        if not self.is_chunk_near_boundary(chunk_x, chunk_z):
            xs, zs = np.meshgrid(origin_x + local, origin_z + local, indexing="ij")
            cells = self.partitioner.cell_ids(xs, zs)
            biomes = {cell: self.partitioner.biome_of_cell(cell) for cell in np.unique(cells).tolist()}
            return [[{biomes[cell]: 1.0} for cell in row] for row in cells.tolist()]

        cells_per_side = self.options.coarse_grid_cells
        step = size / cells_per_side
        grid = [
            [
                self.partitioner.blend_weights(origin_x + i * step, origin_z + j * step)
                for j in range(cells_per_side + 1)
            ]
            for i in range(cells_per_side + 1)
        ]

        weights = []
        for lx in range(size):
            gx = lx / step
            i0 = min(int(gx), cells_per_side - 1)
            tx = gx - i0
            column = []
            for lz in range(size):
                gz = lz / step
                j0 = min(int(gz), cells_per_side - 1)
                tz = gz - j0
                corners = [grid[i0][j0], grid[i0 + 1][j0], grid[i0][j0 + 1], grid[i0 + 1][j0 + 1]]
                column.append(interpolate_weights(corners, tx, tz))
            weights.append(column)
        return weights

    def chunk_heights(self, chunk_x: int, chunk_z: int) -> np.ndarray:
        """
        Elevations of every column of a chunk.

        Returns:
            int32 array of shape (chunk_size, chunk_size), indexed [local_x, local_z]
        """
        size = self.options.chunk_size
        origin_x, origin_z = self.chunk_origin(chunk_x, chunk_z)
        weights = self.chunk_weights(chunk_x, chunk_z)

        heights = np.zeros((size, size), dtype=np.int32)
        for lx in range(size):
            for lz in range(size):
                heights[lx, lz] = self.height_at_with_weights(
                    origin_x + lx, origin_z + lz, weights[lx][lz]
                )

        logger.debug(
            "Chunk heights generated",
            chunk_x=chunk_x,
            chunk_z=chunk_z,
            min_height=int(heights.min()),
            max_height=int(heights.max()),
        )
        return heights
