"""FastAPI query service over one seeded world."""

from typing import Dict, List, Optional

import structlog
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import settings
from ..core.biomes import BIOME_NAMES, SUBZONE_NAMES, parse_biome
from ..core.errors import InvalidParameterError, NotInitializedError
from ..core.materials import Material
from ..core.world import WorldContext
from ..utils.log_config import configure_logging

logger = structlog.get_logger()


# Response models
class BiomeResponse(BaseModel):
    """Macro biome at a position."""

    x: float
    z: float
    cell_id: int
    biome: str
    display_name: str


class BlendWeightsResponse(BaseModel):
    """Normalized biome weights at a position."""

    x: float
    z: float
    blend_distance: float
    distance_to_boundary: float
    weights: Dict[str, float]


class SubRegionResponse(BaseModel):
    """Dominant sub-zone and blend factors at a position."""

    x: float
    z: float
    biome: str
    sub_zone: str
    display_name: str
    factors: Dict[str, float]


class HeightResponse(BaseModel):
    """Terrain elevation at a position."""

    x: float
    z: float
    height: int
    water_level: int
    underwater: bool


class ChunkHeightsResponse(BaseModel):
    """Elevations of one chunk, indexed [local_x][local_z]."""

    chunk_x: int
    chunk_z: int
    chunk_size: int
    near_boundary: bool
    heights: List[List[int]]


class ColumnResponse(BaseModel):
    """Material stack of one column, bottom first."""

    x: float
    z: float
    height: int
    materials: List[str] = Field(..., description="Material names indexed by y")


def create_app(world: Optional[WorldContext] = None) -> FastAPI:
    """
    Build the service around a world.

    Args:
        world: World to serve; built from settings when omitted

    Returns:
        Configured FastAPI application
    """
    configure_logging(settings.log_level, settings.log_format)
    if world is None:
        world = WorldContext.from_settings(settings)

    app = FastAPI(
        title="Terrain Query API",
        description="Biome regions, sub-zones and heights of a seeded world",
        version="0.1.0",
    )
    app.state.world = world

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidParameterError)
    async def invalid_parameter_handler(request: Request, exc: InvalidParameterError):
        logger.warning("Rejected request parameter", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(NotInitializedError)
    async def not_initialized_handler(request: Request, exc: NotInitializedError):
        logger.error("World not initialized", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": "Terrain Query API", "version": "0.1.0", "status": "running"}

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        current = app.state.world
        return {"status": "healthy" if current.seed is not None else "uninitialized", "seed": current.seed}

    # Query endpoints are sync so FastAPI runs the generation work in its threadpool
    @app.get("/biome", response_model=BiomeResponse)
    def get_biome(x: float, z: float):
        current = app.state.world
        biome = current.biome_at(x, z)
        return BiomeResponse(
            x=x,
            z=z,
            cell_id=current.partitioner.cell_id_at(x, z),
            biome=biome.name,
            display_name=BIOME_NAMES[biome],
        )

    @app.get("/blend-weights", response_model=BlendWeightsResponse)
    def get_blend_weights(
        x: float,
        z: float,
        blend_distance: Optional[float] = Query(None, description="Defaults to the configured distance"),
    ):
        current = app.state.world
        if blend_distance is None:
            blend_distance = current.options.region.blend_distance
        weights = current.blend_weights(x, z, blend_distance)
        return BlendWeightsResponse(
            x=x,
            z=z,
            blend_distance=blend_distance,
            distance_to_boundary=current.distance_to_boundary(x, z),
            weights={biome.name: weight for biome, weight in weights.items()},
        )

    @app.get("/sub-region", response_model=SubRegionResponse)
    def get_sub_region(x: float, z: float, biome: Optional[str] = None):
        current = app.state.world
        macro = parse_biome(biome) if biome else current.biome_at(x, z)
        zone, factors = current.sub_region_of(x, z, macro)
        return SubRegionResponse(
            x=x,
            z=z,
            biome=macro.name,
            sub_zone=zone.name,
            display_name=SUBZONE_NAMES[zone],
            factors={name.name: factor for name, factor in factors.items()},
        )

    @app.get("/height", response_model=HeightResponse)
    def get_height(x: float, z: float):
        current = app.state.world
        height = current.height_at(x, z)
        return HeightResponse(
            x=x, z=z, height=height, water_level=current.water_level, underwater=height < current.water_level
        )

    @app.get("/chunks/{chunk_x}/{chunk_z}/heights", response_model=ChunkHeightsResponse)
    def get_chunk_heights(chunk_x: int, chunk_z: int):
        current = app.state.world
        synthesizer = current.synthesizer
        heights = current.chunk_heights(chunk_x, chunk_z)
        logger.info("Chunk heights served", chunk_x=chunk_x, chunk_z=chunk_z)
        return ChunkHeightsResponse(
            chunk_x=chunk_x,
            chunk_z=chunk_z,
            chunk_size=synthesizer.options.chunk_size,
            near_boundary=synthesizer.is_chunk_near_boundary(chunk_x, chunk_z),
            heights=heights.tolist(),
        )

    @app.get("/column", response_model=ColumnResponse)
    def get_column(x: float, z: float):
        current = app.state.world
        column = current.material_column(x, z)
        return ColumnResponse(
            x=x,
            z=z,
            height=current.height_at(x, z),
            materials=[Material(value).name for value in column.tolist()],
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
