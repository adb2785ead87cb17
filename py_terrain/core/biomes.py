"""
Macro biome and sub-zone vocabulary.

This module defines:
- BiomeType: macro biomes assigned per partition cell
- SubZone: secondary zones inside each macro biome
- BiomeOptions: candidate-set rules used during biome assignment
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Tuple

from .errors import InvalidParameterError


class BiomeType(IntEnum):
    """Macro biomes."""

    FOREST_LANDS = 0
    DESERT = 1
    TUNDRA = 2
    ISLANDS = 3


# Biome names for display
BIOME_NAMES = {
    BiomeType.FOREST_LANDS: "Forest Lands",
    BiomeType.DESERT: "Desert",
    BiomeType.TUNDRA: "Tundra",
    BiomeType.ISLANDS: "Islands",
}


class SubZone(IntEnum):
    """Sub-zones, grouped by owning macro biome."""

    PLAINS = 0
    FOREST = 1
    MOUNTAINS = 2
    DUNES = 10
    ROCKY = 11
    OASIS = 12
    SNOWY = 20
    FROZEN = 21
    ALPINE = 22
    BEACH = 30
    JUNGLE = 31
    LAGOON = 32


SUBZONE_NAMES = {
    SubZone.PLAINS: "Plains",
    SubZone.FOREST: "Forest",
    SubZone.MOUNTAINS: "Mountains",
    SubZone.DUNES: "Dunes",
    SubZone.ROCKY: "Rocky",
    SubZone.OASIS: "Oasis",
    SubZone.SNOWY: "Snowy",
    SubZone.FROZEN: "Frozen",
    SubZone.ALPINE: "Alpine",
    SubZone.BEACH: "Beach",
    SubZone.JUNGLE: "Jungle",
    SubZone.LAGOON: "Lagoon",
}

BIOME_SUBZONES: Dict[BiomeType, Tuple[SubZone, ...]] = {
    BiomeType.FOREST_LANDS: (SubZone.PLAINS, SubZone.FOREST, SubZone.MOUNTAINS),
    BiomeType.DESERT: (SubZone.DUNES, SubZone.ROCKY, SubZone.OASIS),
    BiomeType.TUNDRA: (SubZone.SNOWY, SubZone.FROZEN, SubZone.ALPINE),
    BiomeType.ISLANDS: (SubZone.BEACH, SubZone.JUNGLE, SubZone.LAGOON),
}


def parse_biome(name: str) -> BiomeType:
    """
    Resolve a biome from its enum name or display name, case-insensitively.

    Raises:
        InvalidParameterError: if the name matches no biome
    """
    key = name.strip().upper().replace(" ", "_").replace("-", "_")
    if key in BiomeType.__members__:
        return BiomeType[key]
    raise InvalidParameterError("biome", name, f"expected one of {list(BiomeType.__members__)}")


@dataclass(frozen=True)
class BiomeOptions:
    """Candidate-set rules for biome assignment."""

    common_biomes: Tuple[BiomeType, ...] = (
        BiomeType.FOREST_LANDS,
        BiomeType.DESERT,
        BiomeType.TUNDRA,
    )
    rare_biomes: Tuple[BiomeType, ...] = (BiomeType.ISLANDS,)
    rare_inclusion_probability: float = 0.40  # Independent draw per rare biome
    island_biome: BiomeType = BiomeType.ISLANDS  # Biome using landmass thresholding

    def __post_init__(self):
        if not self.common_biomes and not self.rare_biomes:
            raise InvalidParameterError("common_biomes", self.common_biomes, "no biomes to assign")
        if set(self.common_biomes) & set(self.rare_biomes):
            raise InvalidParameterError(
                "rare_biomes", self.rare_biomes, "a biome cannot be both common and rare"
            )
        if not 0.0 <= self.rare_inclusion_probability <= 1.0:
            raise InvalidParameterError(
                "rare_inclusion_probability", self.rare_inclusion_probability, "must be in [0, 1]"
            )

    @property
    def all_biomes(self) -> Tuple[BiomeType, ...]:
        """Every biome that may ever be assigned, in draw order."""
        return self.common_biomes + self.rare_biomes
