"""
Sub-zone classification inside a macro biome.

Each macro biome owns one SubRegionClassifier. The classifier samples a
low-frequency zone channel at domain-warped coordinates, normalizes it to
[0, 1] and maps it onto threshold bands:

- inside a band's core the band's zone has factor 1
- across a transition straddling a band boundary the two adjacent zones ramp
  linearly and sum to 1
- an optional overlay zone is carved out of another zone's core by a mask

Band transitions never overlap, so at most two zones are nonzero anywhere.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np
import structlog

from .alea_prng import derive_seed
from .biomes import BIOME_SUBZONES, BiomeType, SubZone
from .errors import InvalidParameterError, NotInitializedError
from .noise_field import FractalKind, NoiseKind, NoiseProfile, get_noise_field

logger = structlog.get_logger()

SubZoneFactors = Dict[SubZone, float]

FACTOR_EPSILON = 1e-9
LAYOUT_TOLERANCE = 1e-9  # Absorbs float error in band edge arithmetic


@dataclass(frozen=True)
class ZoneBand:
    """A band of the normalized zone value owned by one zone, ending at `upper`."""

    zone: SubZone
    upper: float


@dataclass(frozen=True)
class ZoneOverlay:
    """
    A zone carved out of the core of a host zone.

    The overlay factor is mask(x, z) * band(v), where the band ramps over
    [lower - transition, lower + transition] and [upper - transition,
    upper + transition], and the mask ramps across mask_threshold.
    """

    zone: SubZone
    host: SubZone
    lower: float
    upper: float
    transition: float
    mask_scale: float = 0.02  # Coordinate scale fed to the mask channel
    mask_threshold: float = 0.7
    mask_transition: float = 0.05


@dataclass(frozen=True)
class SubRegionConfig:
    """Band layout and noise channels of one classifier."""

    bands: Tuple[ZoneBand, ...]
    transitions: Tuple[float, ...]  # Half-width per internal band boundary
    zone_profile: NoiseProfile
    zone_seed_offset: int
    warp_profile: NoiseProfile
    warp_seed_offset: int
    warp_scale: float = 0.008  # Coordinate scale fed to the warp channel
    warp_strength: float = 80.0
    warp_offset: float = 500.0
    overlay: Optional[ZoneOverlay] = None

    def __post_init__(self):
        if not self.bands:
            raise InvalidParameterError("bands", self.bands, "at least one band is required")
        if len(self.transitions) != len(self.bands) - 1:
            raise InvalidParameterError(
                "transitions", self.transitions, "need one half-width per internal boundary"
            )
        if self.bands[-1].upper != 1.0:
            raise InvalidParameterError("bands", self.bands, "last band must end at 1.0")

        previous_edge = 0.0
        for band, width in zip(self.bands[:-1], self.transitions):
            if width <= 0:
                raise InvalidParameterError("transitions", width, "half-widths must be positive")
            if band.upper - width < previous_edge - LAYOUT_TOLERANCE:
                raise InvalidParameterError(
                    "bands", band, "transition overlaps the previous transition or 0.0"
                )
            previous_edge = band.upper + width
        if previous_edge > 1.0 + LAYOUT_TOLERANCE:
            raise InvalidParameterError("transitions", self.transitions, "last transition exceeds 1.0")

        if self.overlay is not None:
            self._validate_overlay(self.overlay)

    def _validate_overlay(self, overlay: ZoneOverlay) -> None:
        if overlay.zone in self.zones:
            raise InvalidParameterError("overlay", overlay.zone, "overlay zone already owns a band")
        if overlay.transition <= 0 or overlay.mask_transition <= 0:
            raise InvalidParameterError("overlay", overlay, "transitions must be positive")
        inside = False
        for low, high in self.core_ranges(overlay.host):
            if (
                low <= overlay.lower - overlay.transition + LAYOUT_TOLERANCE
                and overlay.upper + overlay.transition <= high + LAYOUT_TOLERANCE
            ):
                inside = True
        if not inside:
            raise InvalidParameterError("overlay", overlay, "overlay band must lie inside a host core")

    @property
    def zones(self) -> Tuple[SubZone, ...]:
        """Distinct band zones in band order."""
        seen = []
        for band in self.bands:
            if band.zone not in seen:
                seen.append(band.zone)
        return tuple(seen)

    def core_ranges(self, zone: SubZone):
        """Value ranges where `zone` has factor 1 before any overlay."""
        ranges = []
        lower = 0.0
        for index, band in enumerate(self.bands):
            core_low = lower if index == 0 else lower + self.transitions[index - 1]
            core_high = band.upper if index == len(self.bands) - 1 else band.upper - self.transitions[index]
            if band.zone == zone:
                ranges.append((core_low, core_high))
            lower = band.upper
        return ranges


def _ramp_up(value: float, edge: float, half_width: float) -> float:
    """0 below edge - half_width, 1 above edge + half_width, linear between."""
    return float(np.clip((value - (edge - half_width)) / (2.0 * half_width), 0.0, 1.0))


def band_factors(value: float, config: SubRegionConfig) -> SubZoneFactors:
    """
    Per-zone factors of a normalized zone value, before overlays.

    Args:
        value: Normalized zone value in [0, 1]
        config: Band layout

    Returns:
        Mapping zone -> factor for every band zone (zeros included)
    """
    factors = {zone: 0.0 for zone in config.zones}
    bands = config.bands
    for index, band in enumerate(bands):
        rise = 1.0 if index == 0 else _ramp_up(value, bands[index - 1].upper, config.transitions[index - 1])
        fall = 1.0 if index == len(bands) - 1 else 1.0 - _ramp_up(value, band.upper, config.transitions[index])
        factors[band.zone] += min(rise, fall)
    return factors


class SubRegionClassifier:
    """Classifies positions inside one macro biome into sub-zones."""

    def __init__(self, biome: BiomeType, config: SubRegionConfig):
        """
        Args:
            biome: Owning macro biome
            config: Band layout and channels
        """
        self.biome = biome
        self.config = config
        self.seed: Optional[int] = None
        self._zone = None
        self._warp = None

    @property
    def zones(self) -> Tuple[SubZone, ...]:
        """All zones this classifier can report, overlay last."""
        if self.config.overlay is None:
            return self.config.zones
        return self.config.zones + (self.config.overlay.zone,)

    def initialize(self, seed: int) -> None:
        self.seed = int(seed)
        self._zone = get_noise_field(derive_seed(seed, self.config.zone_seed_offset), self.config.zone_profile)
        self._warp = get_noise_field(derive_seed(seed, self.config.warp_seed_offset), self.config.warp_profile)
        logger.debug("Sub-region classifier initialized", biome=self.biome.name, seed=self.seed)

    def _require_initialized(self) -> None:
        if self.seed is None:
            raise NotInitializedError(f"SubRegionClassifier({self.biome.name})")

    def zone_value(self, x: float, z: float) -> float:
        """Normalized, domain-warped zone value in [0, 1]."""
        self._require_initialized()
        config = self.config
        scale = config.warp_scale
        warp_x = self._warp.sample(x * scale, z * scale) * config.warp_strength
        warp_z = (
            self._warp.sample((x + config.warp_offset) * scale, (z + config.warp_offset) * scale)
            * config.warp_strength
        )
        raw = self._zone.sample(x + warp_x, z + warp_z)
        return float(np.clip((raw + 1.0) * 0.5, 0.0, 1.0))

    def _overlay_mask(self, x: float, z: float, overlay: ZoneOverlay) -> float:
        mask = self._warp.sample01(x * overlay.mask_scale, z * overlay.mask_scale)
        return _ramp_up(mask, overlay.mask_threshold, overlay.mask_transition)

    def blend_factors(self, x: float, z: float) -> SubZoneFactors:
        """
        Normalized nonzero sub-zone factors at a position.

        Returns:
            Mapping zone -> factor, summing to 1
        """
        value = self.zone_value(x, z)
        factors = band_factors(value, self.config)

        overlay = self.config.overlay
        if overlay is not None:
            band = min(
                _ramp_up(value, overlay.lower, overlay.transition),
                1.0 - _ramp_up(value, overlay.upper, overlay.transition),
            )
            carved = 0.0
            if band > 0.0:
                carved = min(factors[overlay.host], band * self._overlay_mask(x, z, overlay))
            factors[overlay.host] -= carved
            factors[overlay.zone] = carved

        nonzero = {zone: factor for zone, factor in factors.items() if factor > FACTOR_EPSILON}
        total = sum(nonzero.values())
        return {zone: factor / total for zone, factor in nonzero.items()}

    def classify(self, x: float, z: float) -> Tuple[SubZone, SubZoneFactors]:
        """
        Dominant sub-zone and blend factors at a position.

        Ties go to the zone listed first in `zones`.
        """
        factors = self.blend_factors(x, z)
        order = {zone: index for index, zone in enumerate(self.zones)}
        dominant = max(factors, key=lambda zone: (factors[zone], -order[zone]))
        return dominant, factors


def _zone_channel(frequency: float, lacunarity: float) -> NoiseProfile:
    return NoiseProfile(frequency=frequency, octaves=2, lacunarity=lacunarity, gain=0.5)


_SHARED_WARP = NoiseProfile(
    frequency=0.003,
    octaves=2,
    lacunarity=1.8,
    gain=0.4,
    fractal=FractalKind.FBM,
    kind=NoiseKind.OPENSIMPLEX2,
)


DEFAULT_SUBREGION_CONFIGS: Dict[BiomeType, SubRegionConfig] = {
    BiomeType.FOREST_LANDS: SubRegionConfig(
        bands=(
            ZoneBand(SubZone.PLAINS, 0.333),
            ZoneBand(SubZone.FOREST, 0.667),
            ZoneBand(SubZone.MOUNTAINS, 1.0),
        ),
        transitions=(0.1, 0.1),
        zone_profile=_zone_channel(0.001, 1.8),
        zone_seed_offset=300,
        warp_profile=_SHARED_WARP,
        warp_seed_offset=400,
    ),
    BiomeType.DESERT: SubRegionConfig(
        bands=(
            ZoneBand(SubZone.DUNES, 0.7),
            ZoneBand(SubZone.ROCKY, 0.95),
            ZoneBand(SubZone.OASIS, 1.0),
        ),
        transitions=(0.1, 0.025),  # Oases stay small
        zone_profile=_zone_channel(0.004, 2.0),
        zone_seed_offset=2000,
        warp_profile=_SHARED_WARP,
        warp_seed_offset=2500,
    ),
    BiomeType.TUNDRA: SubRegionConfig(
        bands=(
            ZoneBand(SubZone.SNOWY, 0.6),
            ZoneBand(SubZone.FROZEN, 0.85),
            ZoneBand(SubZone.ALPINE, 1.0),
        ),
        transitions=(0.1, 0.1),
        zone_profile=_zone_channel(0.004, 2.0),
        zone_seed_offset=2100,
        warp_profile=_SHARED_WARP,
        warp_seed_offset=2600,
    ),
    BiomeType.ISLANDS: SubRegionConfig(
        bands=(
            ZoneBand(SubZone.BEACH, 0.3),
            ZoneBand(SubZone.JUNGLE, 0.85),
            ZoneBand(SubZone.BEACH, 1.0),
        ),
        transitions=(0.05, 0.05),
        zone_profile=_zone_channel(0.004, 2.0),
        zone_seed_offset=2200,
        warp_profile=_SHARED_WARP,
        warp_seed_offset=2700,
        overlay=ZoneOverlay(
            zone=SubZone.LAGOON,
            host=SubZone.JUNGLE,
            lower=0.4,
            upper=0.6,
            transition=0.05,
        ),
    ),
}


def build_classifiers(
    configs: Optional[Dict[BiomeType, SubRegionConfig]] = None,
) -> Dict[BiomeType, SubRegionClassifier]:
    """
    Create one uninitialized classifier per macro biome.

    Raises:
        InvalidParameterError: if a biome has no configuration or a config
            reports zones that do not belong to its biome
    """
    configs = configs or DEFAULT_SUBREGION_CONFIGS
    classifiers = {}
    for biome in BiomeType:
        if biome not in configs:
            raise InvalidParameterError("subregion_configs", biome.name, "missing classifier config")
        classifier = SubRegionClassifier(biome, configs[biome])
        stray = set(classifier.zones) - set(BIOME_SUBZONES[biome])
        if stray:
            raise InvalidParameterError(
                "subregion_configs", biome.name, f"zones {sorted(z.name for z in stray)} belong elsewhere"
            )
        classifiers[biome] = classifier
    return classifiers
