"""SDR Image API HTTP surface.

FastAPI routes serving the mirrored image records:
- /api/v1/last-updated
- /api/v1/images/... listing and recommendation endpoints
- /api/v1/sync to force a sync cycle
- /live liveness probe and /metrics Prometheus endpoint

Store failures are answered with empty results, never an error status.
"""

import logging
from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, Optional

from fastapi import FastAPI, HTTPException, Request, status
from prometheus_client import make_asgi_app
from pydantic import BaseModel, Field

from image_api.__version__ import __version__
from image_api.models import ImageRecord
from image_api.queries import ImageQueries
from image_api.scheduler import SyncScheduler
from image_api.storage import ImageStore

logger = logging.getLogger("image_api.api")


class ImageModel(BaseModel):
    """Image record as served to API consumers."""

    id: Optional[int] = Field(None, description="Store-assigned identifier")
    name: str = Field(..., description="Repository name")
    url: str = Field(..., description="Pull reference for the primary channel")
    url_trixie: str = Field(
        ..., description="Pull reference for the trixie channel, empty when unpublished"
    )
    tag: str = Field(..., description="Primary channel tag")
    tag_trixie: str = Field(..., description="Trixie channel tag")
    release_notes: str = Field("", description="Release notes")
    stable: bool = Field(..., description="Stability flag")
    is_pinned_version: bool = Field(..., description="Tag is a pinned build")
    created_date: str = Field(..., description="Creation time (ISO 8601)")
    modified_date: str = Field(..., description="Modification time (ISO 8601)")


class ImagesResponse(BaseModel):
    images: list[ImageModel] = Field(default_factory=list)


class LastUpdatedResponse(BaseModel):
    lastUpdated: str = Field(..., description="ISO 8601 timestamp or 'never'")


class SyncResponse(BaseModel):
    result: dict[str, Any]


def _images(records: list[ImageRecord]) -> ImagesResponse:
    return ImagesResponse(images=[ImageModel(**r.to_dict()) for r in records])


def _queries(request: Request) -> ImageQueries:
    return request.app.state.queries


def create_app(
    store: ImageStore,
    scheduler: SyncScheduler | None = None,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager] | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        store: Image store the read endpoints query
        scheduler: Scheduler used by POST /api/v1/sync; the endpoint answers
            503 without one
        lifespan: Optional lifespan context (starts/stops the scheduler)

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="SDR Image API",
        description="Recommended container images for the organization's projects",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.queries = ImageQueries(store)
    app.state.scheduler = scheduler

    app.mount("/metrics", make_asgi_app())

    @app.get("/", tags=["Health"])
    async def root():
        return {"message": "alive"}

    @app.get("/live", tags=["Health"])
    async def liveness():
        """Liveness probe: the process is up and serving."""
        return {"status": "alive"}

    @app.get("/api/v1/last-updated", response_model=LastUpdatedResponse, tags=["Images"])
    async def last_updated(request: Request):
        """Time of the last sync cycle, or "never"."""
        when = await _queries(request).last_updated()
        return LastUpdatedResponse(lastUpdated=when.isoformat() if when else "never")

    @app.get("/api/v1/images/all", response_model=ImagesResponse, tags=["Images"])
    async def all_images(request: Request):
        return _images(await _queries(request).images())

    @app.get("/api/v1/images/all/stable", response_model=ImagesResponse, tags=["Images"])
    async def all_stable_images(request: Request):
        return _images(await _queries(request).images(stable_only=True))

    @app.get(
        "/api/v1/images/all/recommended", response_model=ImagesResponse, tags=["Images"]
    )
    async def all_recommended(request: Request):
        """Recommended image for every repository."""
        return _images(await _queries(request).recommended())

    @app.get(
        "/api/v1/images/trixie/all/recommended",
        response_model=ImagesResponse,
        tags=["Images"],
    )
    async def all_recommended_trixie(request: Request):
        """Recommended trixie-channel image for every repository that has one."""
        return _images(await _queries(request).recommended(secondary_only=True))

    @app.get(
        "/api/v1/images/byname/{name}", response_model=ImagesResponse, tags=["Images"]
    )
    async def images_by_name(name: str, request: Request):
        return _images(await _queries(request).images(name=name))

    @app.get(
        "/api/v1/images/byname/{name}/stable",
        response_model=ImagesResponse,
        tags=["Images"],
    )
    async def stable_images_by_name(name: str, request: Request):
        return _images(await _queries(request).images(name=name, stable_only=True))

    @app.get(
        "/api/v1/images/byname/{name}/recommended",
        response_model=ImagesResponse,
        tags=["Images"],
    )
    async def recommended_by_name(name: str, request: Request):
        return _images(await _queries(request).recommended(name=name))

    @app.get(
        "/api/v1/images/trixie/byname/{name}/recommended",
        response_model=ImagesResponse,
        tags=["Images"],
    )
    async def recommended_trixie_by_name(name: str, request: Request):
        return _images(
            await _queries(request).recommended(name=name, secondary_only=True)
        )

    @app.post("/api/v1/sync", response_model=SyncResponse, tags=["Sync"])
    async def force_sync(request: Request):
        """Run a forced sync cycle and return its result."""
        sync_scheduler: SyncScheduler | None = request.app.state.scheduler
        if sync_scheduler is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Sync is not enabled on this instance",
            )
        result = await sync_scheduler.trigger(force=True)
        logger.info("manual_sync", extra={"sync_status": result.status})
        return SyncResponse(result=result.to_dict())

    return app
