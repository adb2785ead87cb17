"""
World context: one seeded world and everything derived from it.

A WorldContext is constructed explicitly and passed to whoever needs terrain
queries. Several contexts with different seeds can live side by side.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import structlog

from .biomes import BiomeType, SubZone
from .errors import InvalidParameterError, NotInitializedError
from .height_field import HeightFieldSynthesizer, HeightOptions
from .materials import build_material_column
from .region_partitioner import BlendWeights, RegionOptions, RegionPartitioner
from .sub_regions import SubRegionConfig, SubZoneFactors, build_classifiers

logger = structlog.get_logger()


@dataclass(frozen=True)
class WorldOptions:
    """All generation options of a world."""

    region: RegionOptions = field(default_factory=RegionOptions)
    height: HeightOptions = field(default_factory=HeightOptions)
    subregions: Optional[Dict[BiomeType, SubRegionConfig]] = None  # None uses the defaults


def chunk_generation_order(center_x: int, center_z: int, view_distance: int) -> List[Tuple[int, int]]:
    """
    Chunks within a circular view distance, closest first.

    Args:
        center_x, center_z: Chunk the viewer stands in
        view_distance: Radius in chunks

    Returns:
        (chunk_x, chunk_z) pairs ordered by distance, then by coordinates
    """
    if view_distance < 0:
        raise InvalidParameterError("view_distance", view_distance, "must not be negative")

    chunks = []
    for dx in range(-view_distance, view_distance + 1):
        for dz in range(-view_distance, view_distance + 1):
            distance_sq = dx * dx + dz * dz
            if distance_sq <= view_distance * view_distance:
                chunks.append((distance_sq, center_x + dx, center_z + dz))
    chunks.sort()
    return [(chunk_x, chunk_z) for _, chunk_x, chunk_z in chunks]


class WorldContext:
    """
    Owns the partitioner, sub-zone classifiers and height synthesizer of one world.
    """

    def __init__(self, options: Optional[WorldOptions] = None, seed: Optional[int] = None):
        """
        Args:
            options: Generation options, defaults to WorldOptions()
            seed: Optional seed; when given the world is initialized immediately
        """
        self.options = options or WorldOptions()
        self.partitioner = RegionPartitioner(self.options.region)
        self.classifiers = build_classifiers(self.options.subregions)
        self.synthesizer = HeightFieldSynthesizer(self.partitioner, self.classifiers, self.options.height)
        self.seed: Optional[int] = None

        if seed is not None:
            self.initialize(seed)

    @classmethod
    def from_settings(cls, settings) -> "WorldContext":
        """
        Build and initialize a world from application settings.

        Raises:
            InvalidParameterError: if a configured value is out of range
        """
        options = WorldOptions(
            region=RegionOptions(
                region_scale=settings.region_scale,
                warp_strength=settings.warp_strength,
                blend_distance=settings.blend_distance,
                max_boundary_radius=settings.max_boundary_radius,
            ),
            height=HeightOptions(
                world_height=settings.world_height,
                water_level=settings.water_level,
                chunk_size=settings.chunk_size,
            ),
        )
        return cls(options, seed=settings.seed)

    def initialize(self, seed: int) -> None:
        """Reset every cache and reseed every channel."""
        self.partitioner.initialize(seed)
        for classifier in self.classifiers.values():
            classifier.initialize(seed)
        self.synthesizer.initialize(seed)
        self.seed = int(seed)
        logger.info("World initialized", seed=self.seed)

    def _require_initialized(self) -> None:
        if self.seed is None:
            raise NotInitializedError("WorldContext")

    def biome_at(self, x: float, z: float) -> BiomeType:
        self._require_initialized()
        return self.partitioner.biome_at(x, z)

    def blend_weights(self, x: float, z: float, blend_distance: Optional[float] = None) -> BlendWeights:
        self._require_initialized()
        return self.partitioner.blend_weights(x, z, blend_distance)

    def distance_to_boundary(self, x: float, z: float) -> float:
        self._require_initialized()
        return self.partitioner.distance_to_boundary(x, z)

    def sub_region_of(
        self, x: float, z: float, biome: Optional[BiomeType] = None
    ) -> Tuple[SubZone, SubZoneFactors]:
        """Dominant sub-zone and factors; the biome defaults to the one at (x, z)."""
        self._require_initialized()
        if biome is None:
            biome = self.partitioner.biome_at(x, z)
        return self.classifiers[biome].classify(x, z)

    def height_at(self, x: float, z: float) -> int:
        self._require_initialized()
        return self.synthesizer.height_at(x, z)

    def height_at_with_weights(self, x: float, z: float, weights: BlendWeights) -> int:
        self._require_initialized()
        return self.synthesizer.height_at_with_weights(x, z, weights)

    def is_chunk_near_boundary(
        self, origin_x: float, origin_z: float, chunk_size: int, blend_distance: Optional[float] = None
    ) -> bool:
        self._require_initialized()
        return self.partitioner.is_chunk_near_boundary(origin_x, origin_z, chunk_size, blend_distance)

    def chunk_heights(self, chunk_x: int, chunk_z: int) -> np.ndarray:
        self._require_initialized()
        return self.synthesizer.chunk_heights(chunk_x, chunk_z)

    @property
    def water_level(self) -> int:
        return self.synthesizer.water_level_block

    def material_column(self, x: float, z: float) -> np.ndarray:
        """Material stack of the column at (x, z), indexed by y."""
        self._require_initialized()
        biome = self.partitioner.biome_at(x, z)
        sub_zone, _ = self.classifiers[biome].classify(x, z)
        height = self.synthesizer.height_at(x, z)
        return build_material_column(height, biome, sub_zone, self.water_level)
