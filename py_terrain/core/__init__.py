"""
Core terrain generation functionality.
"""

from .errors import TerrainError, NotInitializedError, InvalidParameterError
from .biomes import BiomeType, SubZone, BiomeOptions, BIOME_NAMES, SUBZONE_NAMES, BIOME_SUBZONES
from .noise_field import NoiseField, NoiseProfile, NoiseKind, FractalKind, get_noise_field
from .region_partitioner import RegionPartitioner, RegionOptions
from .sub_regions import SubRegionClassifier, SubRegionConfig, ZoneBand, ZoneOverlay, build_classifiers
from .noise_profiles import TerrainProfile, NOISE_PROFILES, blend_profiles
from .height_field import HeightFieldSynthesizer, HeightOptions, island_height
from .materials import Material, build_material_column
from .world import WorldContext, WorldOptions, chunk_generation_order

__all__ = ['TerrainError', 'NotInitializedError', 'InvalidParameterError',
           'BiomeType', 'SubZone', 'BiomeOptions', 'BIOME_NAMES', 'SUBZONE_NAMES', 'BIOME_SUBZONES',
           'NoiseField', 'NoiseProfile', 'NoiseKind', 'FractalKind', 'get_noise_field',
           'RegionPartitioner', 'RegionOptions',
           'SubRegionClassifier', 'SubRegionConfig', 'ZoneBand', 'ZoneOverlay', 'build_classifiers',
           'TerrainProfile', 'NOISE_PROFILES', 'blend_profiles',
           'HeightFieldSynthesizer', 'HeightOptions', 'island_height',
           'Material', 'build_material_column',
           'WorldContext', 'WorldOptions', 'chunk_generation_order']
