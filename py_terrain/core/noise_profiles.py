"""
Terrain noise parameters per (biome, sub-zone).

The table is built once at import and never mutated. Composite profiles for
positions inside sub-zone transitions are derived from it:
- continuous parameters (frequency, lacunarity, gain, base offset) are
  averaged by sub-zone factor
- octave count is averaged then rounded
- discrete parameters (fractal mode, noise kind) come from the dominant
  sub-zone, a nearest-neighbor choice in factor space
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

from .biomes import BIOME_SUBZONES, BiomeType, SubZone
from .errors import InvalidParameterError
from .noise_field import FractalKind, NoiseProfile


@dataclass(frozen=True)
class TerrainProfile:
    """Height noise parameters plus a base-height nudge for one sub-zone."""

    noise: NoiseProfile
    base_offset: float = 0.0  # Added to the synthesizer's base height


def _profile(frequency, octaves, lacunarity, gain, base_offset=0.0, fractal=FractalKind.FBM):
    return TerrainProfile(
        noise=NoiseProfile(
            frequency=frequency,
            octaves=octaves,
            lacunarity=lacunarity,
            gain=gain,
            fractal=fractal,
        ),
        base_offset=base_offset,
    )


NOISE_PROFILES: Mapping[Tuple[BiomeType, SubZone], TerrainProfile] = MappingProxyType(
    {
        # Forest lands: rolling hills, raised ridges in the mountains
        (BiomeType.FOREST_LANDS, SubZone.PLAINS): _profile(0.008, 2, 2.0, 0.5, -0.03),
        (BiomeType.FOREST_LANDS, SubZone.FOREST): _profile(0.012, 3, 2.0, 0.6),
        (BiomeType.FOREST_LANDS, SubZone.MOUNTAINS): _profile(
            0.014, 4, 2.0, 0.6, 0.12, FractalKind.RIDGED
        ),
        # Desert: flat dunes, broken rock shelves, sunken oases
        (BiomeType.DESERT, SubZone.DUNES): _profile(0.01, 2, 2.0, 0.6),
        (BiomeType.DESERT, SubZone.ROCKY): _profile(0.014, 3, 2.1, 0.55, 0.05),
        (BiomeType.DESERT, SubZone.OASIS): _profile(0.006, 1, 2.0, 0.5, -0.04),
        # Tundra
        (BiomeType.TUNDRA, SubZone.SNOWY): _profile(0.012, 2, 1.8, 0.5),
        (BiomeType.TUNDRA, SubZone.FROZEN): _profile(0.008, 2, 1.8, 0.45, -0.03),
        (BiomeType.TUNDRA, SubZone.ALPINE): _profile(0.016, 4, 2.0, 0.55, 0.1, FractalKind.RIDGED),
        # Islands: offsets stay small so land never starts below the underwater bound
        (BiomeType.ISLANDS, SubZone.BEACH): _profile(0.018, 2, 1.8, 0.5),
        (BiomeType.ISLANDS, SubZone.JUNGLE): _profile(0.016, 3, 1.9, 0.5, 0.02),
        (BiomeType.ISLANDS, SubZone.LAGOON): _profile(0.02, 2, 1.8, 0.45, -0.01),
    }
)


def get_profile(biome: BiomeType, zone: SubZone) -> TerrainProfile:
    """
    Look up the profile of one (biome, sub-zone) pair.

    Raises:
        InvalidParameterError: if the zone does not belong to the biome
    """
    profile = NOISE_PROFILES.get((biome, zone))
    if profile is None:
        raise InvalidParameterError("sub_zone", zone.name, f"not a sub-zone of {biome.name}")
    return profile


def blend_profiles(biome: BiomeType, factors: Mapping[SubZone, float]) -> TerrainProfile:
    """
    Composite profile for a position with the given sub-zone factors.

    Args:
        biome: Macro biome owning the factors
        factors: Sub-zone factors, summing to 1

    Returns:
        TerrainProfile mixing the zone profiles
    """
    if not factors:
        raise InvalidParameterError("factors", factors, "at least one sub-zone factor is required")

    if len(factors) == 1:
        (zone,) = factors
        return get_profile(biome, zone)

    order = {zone: index for index, zone in enumerate(BIOME_SUBZONES[biome])}
    dominant = max(factors, key=lambda zone: (factors[zone], -order.get(zone, len(order))))
    total = sum(factors.values())

    frequency = lacunarity = gain = octaves = base_offset = 0.0
    for zone, factor in factors.items():
        profile = get_profile(biome, zone)
        weight = factor / total
        frequency += profile.noise.frequency * weight
        lacunarity += profile.noise.lacunarity * weight
        gain += profile.noise.gain * weight
        octaves += profile.noise.octaves * weight
        base_offset += profile.base_offset * weight

    dominant_noise = get_profile(biome, dominant).noise
    return TerrainProfile(
        noise=NoiseProfile(
            frequency=frequency,
            octaves=max(1, int(round(octaves))),
            lacunarity=lacunarity,
            gain=gain,
            fractal=dominant_noise.fractal,
            kind=dominant_noise.kind,
        ),
        base_offset=base_offset,
    )
