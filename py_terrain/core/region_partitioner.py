"""
Macro biome partitioning of the world plane.

This module implements:
- Warped cellular tessellation into integer cell ids
- Lazy, write-once biome assignment per cell with soft neighbor distinctness
- Boundary distance search and cosine blend weights near region borders
- Chunk-level boundary pre-check used by the height synthesizer

Cell ids are quantized cellular values, so the same id can describe several
disjoint patches of the plane. Every patch sharing an id shares its biome.
"""

import math
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import structlog

from .alea_prng import cell_stream, derive_seed
from .biomes import BiomeOptions, BiomeType
from .errors import InvalidParameterError, NotInitializedError
from .noise_field import FractalKind, NoiseKind, NoiseProfile, get_noise_field

logger = structlog.get_logger()

# Channel seed offsets
CELL_SEED_OFFSET = 0
WARP_SEED_OFFSET = 500
ASSIGN_SEED_OFFSET = 1000

WARP_SAMPLE_OFFSET = 1000.0  # Decorrelates the x and z warp samples
CELL_ID_SCALE = 1000.0
ANCHOR_RANGE = 10000  # Representative points lie in [-ANCHOR_RANGE, ANCHOR_RANGE)
WEIGHT_EPSILON = 1e-6

BlendWeights = Dict[BiomeType, float]


@dataclass(frozen=True)
class RegionOptions:
    """Region partitioning options."""

    region_scale: float = 0.00015  # Cellular frequency, smaller gives larger regions
    warp_strength: float = 50.0  # Domain warp displacement in world units
    warp_frequency: float = 0.0025
    warp_octaves: int = 3
    cellular_jitter: float = 0.01
    max_boundary_radius: int = 30  # Search cap for distance_to_boundary
    boundary_samples: int = 24  # Angular samples per search radius
    neighbor_samples: int = 16  # Circle samples used to discover neighbor cells
    blend_distance: float = 10.0  # Default blend distance for weight queries
    biomes: BiomeOptions = field(default_factory=BiomeOptions)

    def __post_init__(self):
        if self.region_scale <= 0:
            raise InvalidParameterError("region_scale", self.region_scale, "must be positive")
        if self.warp_strength < 0:
            raise InvalidParameterError("warp_strength", self.warp_strength, "must not be negative")
        if self.warp_frequency <= 0:
            raise InvalidParameterError("warp_frequency", self.warp_frequency, "must be positive")
        if self.max_boundary_radius < 1:
            raise InvalidParameterError(
                "max_boundary_radius", self.max_boundary_radius, "must be at least 1"
            )
        for name in ("boundary_samples", "neighbor_samples", "warp_octaves"):
            if getattr(self, name) < 1:
                raise InvalidParameterError(name, getattr(self, name), "must be at least 1")
        if self.blend_distance < 0:
            raise InvalidParameterError("blend_distance", self.blend_distance, "must not be negative")


def cell_id_from_value(value) -> np.ndarray:
    """Quantize cellular values in [-1, 1] into integer cell ids."""
    return np.floor((np.asarray(value, dtype=np.float64) + 1.0) * CELL_ID_SCALE).astype(np.int64)


def cosine_falloff(distance: float, blend_distance: float) -> float:
    """
    Weight of a biome first seen at `distance` from the query point.

    1 at distance 0, cos(d / blend_distance * pi / 2) up to blend_distance, 0 beyond.
    """
    if distance <= 0:
        return 1.0
    if blend_distance <= 0 or distance > blend_distance:
        return 0.0
    return math.cos(distance / blend_distance * math.pi / 2.0)


class RegionPartitioner:
    """
    Partitions the plane into cells and maps each cell to one macro biome.

    The partitioner must be initialized with a seed before any query. Caches
    grow monotonically until the next initialize() call.
    """

    def __init__(self, options: Optional[RegionOptions] = None):
        """
        Create an uninitialized partitioner.

        Args:
            options: Partitioning options, defaults to RegionOptions()
        """
        self.options = options or RegionOptions()
        self.seed: Optional[int] = None

        self._cell_biomes: Dict[int, BiomeType] = {}
        self._cell_neighbors: Dict[int, List[int]] = {}
        self._lock = threading.RLock()

        self._cells = None
        self._warp = None
        self._assign_seed = None

        self._boundary_angles = np.linspace(
            0.0, 2.0 * math.pi, self.options.boundary_samples, endpoint=False
        )
        self._neighbor_angles = np.linspace(
            0.0, 2.0 * math.pi, self.options.neighbor_samples, endpoint=False
        )

    def initialize(self, seed: int) -> None:
        """
        Reset all caches and derive the noise channels for `seed`.

        Args:
            seed: World seed
        """
        options = self.options
        cell_profile = NoiseProfile(
            frequency=options.region_scale,
            fractal=FractalKind.NONE,
            kind=NoiseKind.CELLULAR,
            cellular_jitter=options.cellular_jitter,
        )
        warp_profile = NoiseProfile(
            frequency=options.warp_frequency,
            octaves=options.warp_octaves,
            lacunarity=2.0,
            gain=0.5,
            fractal=FractalKind.FBM,
            kind=NoiseKind.OPENSIMPLEX2,
        )

        with self._lock:
            self.seed = int(seed)
            self._cells = get_noise_field(derive_seed(seed, CELL_SEED_OFFSET), cell_profile)
            self._warp = get_noise_field(derive_seed(seed, WARP_SEED_OFFSET), warp_profile)
            self._assign_seed = derive_seed(seed, ASSIGN_SEED_OFFSET)
            self._cell_biomes = {}
            self._cell_neighbors = {}

        logger.info(
            "Region partitioner initialized",
            seed=self.seed,
            region_scale=options.region_scale,
            warp_strength=options.warp_strength,
        )

    @property
    def is_initialized(self) -> bool:
        return self.seed is not None

    def _require_initialized(self) -> None:
        if self.seed is None:
            raise NotInitializedError("RegionPartitioner")

    # Tessellation

    def warp(self, xs, zs) -> Tuple[np.ndarray, np.ndarray]:
        """Domain-warp world coordinates."""
        self._require_initialized()
        xs = np.asarray(xs, dtype=np.float64)
        zs = np.asarray(zs, dtype=np.float64)
        strength = self.options.warp_strength
        warp_x = self._warp.sample_many(xs + WARP_SAMPLE_OFFSET, zs) * strength
        warp_z = self._warp.sample_many(xs, zs + WARP_SAMPLE_OFFSET) * strength
        return xs + warp_x, zs + warp_z

    def cell_values(self, xs, zs) -> np.ndarray:
        """Raw warped cellular values in [-1, 1]."""
        warped_x, warped_z = self.warp(xs, zs)
        return self._cells.sample_many(warped_x, warped_z)

    def cell_ids(self, xs, zs) -> np.ndarray:
        """Cell ids for arrays of world positions."""
        return cell_id_from_value(self.cell_values(xs, zs))

    def cell_id_at(self, x: float, z: float) -> int:
        """Cell id of one world position."""
        return int(self.cell_ids(x, z).ravel()[0])

    def cell_value(self, x: float, z: float) -> float:
        """Raw warped cellular value of one world position."""
        return float(self.cell_values(x, z).ravel()[0])

    def is_near_boundary(self, x: float, z: float, threshold: float = 0.05) -> bool:
        """
        Cheap boundary test on the raw cellular value.

        Compares the value at the warped position with its 3x3 neighborhood in
        warped space.

        Args:
            x, z: World position
            threshold: Minimum value difference counted as a boundary

        Returns:
            True if any neighbor differs by more than `threshold`
        """
        warped_x, warped_z = self.warp(x, z)
        offsets = np.array([-1.0, 0.0, 1.0])
        dx, dz = np.meshgrid(offsets, offsets, indexing="ij")
        values = self._cells.sample_many(warped_x + dx, warped_z + dz)
        center = values[1, 1]
        return bool(np.any(np.abs(values - center) > threshold))

    # Biome assignment

    def biome_at(self, x: float, z: float) -> BiomeType:
        """Macro biome at a world position."""
        return self.biome_of_cell(self.cell_id_at(x, z))

    def biome_of_cell(self, cell_id: int) -> BiomeType:
        """Biome of a cell, resolving it on first use."""
        self._require_initialized()
        biome = self._cell_biomes.get(cell_id)
        if biome is None:
            biome = self.assign_biome(cell_id)
        return biome

    def assign_biome(self, cell_id: int) -> BiomeType:
        """
        Resolve the biome of `cell_id`, assigning it if needed.

        Neighbors with a lower id are resolved first, so the chosen biome
        depends only on (seed, cell_id) and never on visiting order. Once
        written, an assignment is never changed.

        Args:
            cell_id: Cell identifier

        Returns:
            The cell's biome
        """
        self._require_initialized()
        with self._lock:
            pending = [cell_id]
            while pending:
                current = pending[-1]
                if current in self._cell_biomes:
                    pending.pop()
                    continue

                neighbors = self._neighbors_locked(current)
                unresolved = [n for n in neighbors if n < current and n not in self._cell_biomes]
                if unresolved:
                    pending.extend(unresolved)
                    continue

                self._assign_locked(current, neighbors)
                pending.pop()

            return self._cell_biomes[cell_id]

    def _assign_locked(self, cell_id: int, neighbors: List[int]) -> None:
        options = self.options.biomes
        stream = cell_stream(self._assign_seed, cell_id, "biome")

        candidates = list(options.common_biomes)
        for rare in options.rare_biomes:
            if stream.chance(options.rare_inclusion_probability):
                candidates.append(rare)
        if not candidates:
            candidates = list(options.all_biomes)

        used = {self._cell_biomes[n] for n in neighbors if n < cell_id}
        available = [biome for biome in candidates if biome not in used]
        if not available:
            # Every candidate is taken by a neighbor
            available = candidates

        biome = stream.choice(available)
        self._cell_biomes[cell_id] = biome

        logger.debug(
            "Assigned biome to cell",
            cell_id=cell_id,
            biome=biome.name,
            candidates=len(candidates),
            neighbors=len(neighbors),
        )

    def representative_point(self, cell_id: int) -> Tuple[float, float]:
        """
        Deterministic sample point associated with a cell id.

        This is drawn from the cell's own random stream rather than from the
        cell geometry, so it is only an approximate stand-in for a centroid.
        """
        self._require_initialized()
        stream = cell_stream(self._assign_seed, cell_id, "anchor")
        x = stream.randint(-ANCHOR_RANGE, ANCHOR_RANGE)
        z = stream.randint(-ANCHOR_RANGE, ANCHOR_RANGE)
        return float(x), float(z)

    def neighbors_of(self, cell_id: int) -> List[int]:
        """Neighbor cell ids of `cell_id`, discovered once and cached."""
        self._require_initialized()
        with self._lock:
            return list(self._neighbors_locked(cell_id))

    def _neighbors_locked(self, cell_id: int) -> List[int]:
        neighbors = self._cell_neighbors.get(cell_id)
        if neighbors is not None:
            return neighbors

        anchor_x, anchor_z = self.representative_point(cell_id)
        radius = 1.0 / self.options.region_scale
        xs = anchor_x + radius * np.cos(self._neighbor_angles)
        zs = anchor_z + radius * np.sin(self._neighbor_angles)
        sampled = cell_id_from_value(self._cells.sample_many(xs, zs))

        neighbors = []
        for neighbor_id in sampled.tolist():
            if neighbor_id != cell_id and neighbor_id not in neighbors:
                neighbors.append(neighbor_id)

        self._cell_neighbors[cell_id] = neighbors
        return neighbors

    @property
    def assigned_cells(self) -> Dict[int, BiomeType]:
        """Snapshot of the assignment cache."""
        with self._lock:
            return dict(self._cell_biomes)

    # Boundary queries

    def _ring_cell_ids(self, x: float, z: float, radii) -> np.ndarray:
        radii = np.asarray(radii, dtype=np.float64).reshape(-1, 1)
        xs = x + radii * np.cos(self._boundary_angles)
        zs = z + radii * np.sin(self._boundary_angles)
        return self.cell_ids(xs, zs)

    def distance_to_boundary(self, x: float, z: float) -> float:
        """
        Approximate distance from (x, z) to the nearest cell boundary.

        Binary search over integer search radii in [1, max_boundary_radius].
        A radius counts as crossing a boundary when any of its angular samples
        lands in another cell.

        Returns:
            Smallest crossing radius found, or max_boundary_radius if none
        """
        center_id = self.cell_id_at(x, z)
        low, high = 1, self.options.max_boundary_radius
        found = float(self.options.max_boundary_radius)

        while low <= high:
            radius = (low + high) // 2
            ring = self._ring_cell_ids(x, z, [radius])
            if np.any(ring != center_id):
                found = float(radius)
                high = radius - 1
            else:
                low = radius + 1

        return found

    def neighboring_biomes(self, x: float, z: float, max_distance: int) -> Dict[BiomeType, float]:
        """
        Biomes seen within `max_distance` and the radius where each first appears.

        The biome at (x, z) itself is reported at distance 0.
        """
        current = self.biome_at(x, z)
        result = {current: 0.0}
        if max_distance < 1:
            return result

        radii = np.arange(1, int(max_distance) + 1)
        rings = self._ring_cell_ids(x, z, radii)
        biome_by_cell = {cell: self.biome_of_cell(cell) for cell in np.unique(rings).tolist()}

        for radius, ring in zip(radii.tolist(), rings):
            for cell in np.unique(ring).tolist():
                biome = biome_by_cell[cell]
                if biome not in result:
                    result[biome] = float(radius)

        return result

    def blend_weights(
        self, x: float, z: float, blend_distance: Optional[float] = None
    ) -> BlendWeights:
        """
        Normalized biome weights for smooth transitions near region borders.

        Args:
            x, z: World position
            blend_distance: Falloff distance, defaults to options.blend_distance

        Returns:
            Mapping biome -> weight, summing to 1
        """
        if blend_distance is None:
            blend_distance = self.options.blend_distance
        if blend_distance < 0:
            raise InvalidParameterError("blend_distance", blend_distance, "must not be negative")

        current = self.biome_at(x, z)
        if self.distance_to_boundary(x, z) > blend_distance:
            return {current: 1.0}

        max_distance = max(1, int(math.ceil(blend_distance)))
        weights = {}
        for biome, distance in self.neighboring_biomes(x, z, max_distance).items():
            weight = cosine_falloff(distance, blend_distance)
            if weight > WEIGHT_EPSILON:
                weights[biome] = weight

        total = sum(weights.values())
        if total <= 0:
            return {current: 1.0}
        return {biome: weight / total for biome, weight in weights.items()}

    def is_chunk_near_boundary(
        self,
        origin_x: float,
        origin_z: float,
        chunk_size: int,
        blend_distance: Optional[float] = None,
    ) -> bool:
        """
        Coarse test whether any part of a chunk may need biome blending.

        Probes the chunk center, its four corner columns and its four edge
        midpoints.
        """
        if blend_distance is None:
            blend_distance = self.options.blend_distance
        if blend_distance < 0:
            raise InvalidParameterError("blend_distance", blend_distance, "must not be negative")
        if chunk_size < 1:
            raise InvalidParameterError("chunk_size", chunk_size, "must be at least 1")

        last = chunk_size - 1
        half = chunk_size // 2
        sample_points = [
            (half, half),
            (0, 0),
            (last, 0),
            (0, last),
            (last, last),
            (half, 0),
            (half, last),
            (0, half),
            (last, half),
        ]
        return any(
            self.distance_to_boundary(origin_x + dx, origin_z + dz) <= blend_distance
            for dx, dz in sample_points
        )

    def nearest_region_center(self, x: float, z: float, biome: BiomeType) -> Tuple[float, float]:
        """
        Approximate center of the nearest known region of `biome`.

        Checks the cell at (x, z), then its neighbors, then every resolved cell
        of that biome. Falls back to (x, z) when no such cell is known yet.
        """
        cell_id = self.cell_id_at(x, z)
        if self.biome_of_cell(cell_id) == biome:
            return self.representative_point(cell_id)

        known = self.assigned_cells
        for neighbor_id in self.neighbors_of(cell_id):
            if known.get(neighbor_id) == biome:
                return self.representative_point(neighbor_id)

        best = (float(x), float(z))
        best_distance = math.inf
        for other_id, other_biome in known.items():
            if other_biome != biome:
                continue
            cx, cz = self.representative_point(other_id)
            distance = (cx - x) ** 2 + (cz - z) ** 2
            if distance < best_distance:
                best_distance = distance
                best = (cx, cz)
        return best
