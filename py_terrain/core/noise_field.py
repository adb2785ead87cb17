"""
Seeded scalar noise channels.

This module wraps FastNoiseLite behind two small types:
- NoiseProfile: immutable parameter bundle (kind, frequency, fractal settings)
- NoiseField: one seeded channel answering sample(x, z) in [-1, 1]

Instances are memoised per (seed, profile) so callers can ask for a field by
value without paying construction cost on every query.
"""

from dataclasses import dataclass
from enum import IntEnum
from functools import lru_cache
from typing import Union

import numpy as np
from pyfastnoiselite.pyfastnoiselite import (
    CellularDistanceFunction,
    CellularReturnType,
    FastNoiseLite,
    FractalType,
    NoiseType,
)

from .errors import InvalidParameterError

ArrayLike = Union[float, np.ndarray]


class NoiseKind(IntEnum):
    """Base noise algorithm of a channel."""

    PERLIN = 0
    OPENSIMPLEX2 = 1
    CELLULAR = 2


class FractalKind(IntEnum):
    """Octave combination mode of a channel."""

    NONE = 0
    FBM = 1
    RIDGED = 2


_NOISE_TYPES = {
    NoiseKind.PERLIN: NoiseType.NoiseType_Perlin,
    NoiseKind.OPENSIMPLEX2: NoiseType.NoiseType_OpenSimplex2,
    NoiseKind.CELLULAR: NoiseType.NoiseType_Cellular,
}

_FRACTAL_TYPES = {
    FractalKind.NONE: FractalType.FractalType_None,
    FractalKind.FBM: FractalType.FractalType_FBm,
    FractalKind.RIDGED: FractalType.FractalType_Ridged,
}


@dataclass(frozen=True)
class NoiseProfile:
    """Parameters of one noise channel."""

    frequency: float
    octaves: int = 1
    lacunarity: float = 2.0
    gain: float = 0.5
    fractal: FractalKind = FractalKind.FBM
    kind: NoiseKind = NoiseKind.PERLIN
    cellular_jitter: float = 1.0  # Only used by cellular channels

    def __post_init__(self):
        if self.frequency <= 0:
            raise InvalidParameterError("frequency", self.frequency, "must be positive")
        if self.octaves < 1:
            raise InvalidParameterError("octaves", self.octaves, "must be at least 1")
        if self.lacunarity <= 0:
            raise InvalidParameterError("lacunarity", self.lacunarity, "must be positive")
        if self.gain < 0:
            raise InvalidParameterError("gain", self.gain, "must not be negative")


class NoiseField:
    """
    A seeded, stateless noise channel.

    Sampling never mutates the field, so one instance can be shared by
    concurrent readers.
    """

    def __init__(self, seed: int, profile: NoiseProfile):
        """
        Build the backing FastNoiseLite generator.

        Args:
            seed: Channel seed (already offset for its purpose)
            profile: Channel parameters
        """
        self.seed = seed
        self.profile = profile

        noise = FastNoiseLite(seed=seed)
        noise.noise_type = _NOISE_TYPES[profile.kind]
        noise.frequency = profile.frequency
        noise.fractal_type = _FRACTAL_TYPES[profile.fractal]
        noise.fractal_octaves = profile.octaves
        noise.fractal_lacunarity = profile.lacunarity
        noise.fractal_gain = profile.gain
        if profile.kind == NoiseKind.CELLULAR:
            noise.cellular_distance_function = (
                CellularDistanceFunction.CellularDistanceFunction_Euclidean
            )
            noise.cellular_return_type = CellularReturnType.CellularReturnType_CellValue
            noise.cellular_jitter = profile.cellular_jitter
        self._noise = noise

    def sample_many(self, xs: ArrayLike, zs: ArrayLike) -> np.ndarray:
        """
        Sample the channel at many positions.

        Args:
            xs: X coordinates (scalar or array)
            zs: Z coordinates, broadcastable against xs

        Returns:
            float64 array with the broadcast shape of the inputs
        """
        xs, zs = np.broadcast_arrays(np.asarray(xs, dtype=np.float64), np.asarray(zs, dtype=np.float64))
        shape = xs.shape
        if xs.size == 0:
            return np.zeros(shape, dtype=np.float64)
        coords = np.array([xs.ravel(), zs.ravel()], dtype=np.float32)
        values = self._noise.gen_from_coords(coords)
        return np.asarray(values, dtype=np.float64).reshape(shape)

    def sample(self, x: float, z: float) -> float:
        """Sample the channel at one position."""
        return float(self.sample_many(x, z).ravel()[0])

    def sample01(self, x: float, z: float) -> float:
        """Sample remapped from [-1, 1] to [0, 1]."""
        return (self.sample(x, z) + 1.0) * 0.5


@lru_cache(maxsize=2048)
def get_noise_field(seed: int, profile: NoiseProfile) -> NoiseField:
    """Memoised NoiseField for a (seed, profile) pair."""
    return NoiseField(seed, profile)
