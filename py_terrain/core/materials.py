"""
Material columns built from elevation, biome and sub-zone.

Layering from the bottom up:
- bedrock floor
- stone body
- biome subsurface under the top block
- one surface block chosen by biome and sub-zone
- water from the surface up to the water level
"""

from enum import IntEnum
from typing import Optional

import numpy as np

from .biomes import BiomeType, SubZone
from .errors import InvalidParameterError

BEDROCK_LAYERS = 3
SUBSURFACE_DEPTH = 3
SHORE_HEIGHT = 2  # Island columns this close above water get sand


class Material(IntEnum):
    """Voxel materials."""

    AIR = 0
    BEDROCK = 1
    STONE = 2
    DIRT = 3
    GRASS = 4
    SAND = 5
    SNOW = 6
    ICE = 7
    GRAVEL = 8
    WATER = 9


SUBSURFACE = {
    BiomeType.FOREST_LANDS: Material.DIRT,
    BiomeType.DESERT: Material.SAND,
    BiomeType.TUNDRA: Material.SNOW,
    BiomeType.ISLANDS: Material.SAND,
}

SURFACE = {
    BiomeType.FOREST_LANDS: Material.GRASS,
    BiomeType.DESERT: Material.SAND,
    BiomeType.TUNDRA: Material.SNOW,
    BiomeType.ISLANDS: Material.GRASS,
}

# Sub-zones whose surface differs from their biome default
SUBZONE_SURFACE = {
    SubZone.MOUNTAINS: Material.STONE,
    SubZone.ROCKY: Material.GRAVEL,
    SubZone.OASIS: Material.GRASS,
    SubZone.FROZEN: Material.ICE,
    SubZone.BEACH: Material.SAND,
    SubZone.LAGOON: Material.SAND,
}


def surface_material(
    biome: BiomeType, sub_zone: Optional[SubZone], height: int, water_level: int
) -> Material:
    """Top block of a column."""
    if sub_zone in SUBZONE_SURFACE:
        return SUBZONE_SURFACE[sub_zone]
    if biome == BiomeType.ISLANDS and height <= water_level + SHORE_HEIGHT:
        return Material.SAND
    return SURFACE[biome]


def build_material_column(
    height: int, biome: BiomeType, sub_zone: Optional[SubZone], water_level: int
) -> np.ndarray:
    """
    Materials of one column from y = 0 up to max(height, water_level).

    Args:
        height: Surface elevation in blocks
        biome: Macro biome of the column
        sub_zone: Dominant sub-zone, or None for the biome default
        water_level: Water surface in blocks

    Returns:
        uint8 array of Material values indexed by y
    """
    if height < 0:
        raise InvalidParameterError("height", height, "must not be negative")

    top = max(height, water_level)
    column = np.full(top + 1, Material.AIR, dtype=np.uint8)

    column[: height + 1] = Material.STONE
    column[max(0, height - SUBSURFACE_DEPTH) : height] = SUBSURFACE[biome]
    column[height] = surface_material(biome, sub_zone, height, water_level)
    column[height + 1 : water_level + 1] = Material.WATER
    column[: min(BEDROCK_LAYERS, height + 1)] = Material.BEDROCK

    return column
