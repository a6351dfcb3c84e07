"""Entry point for the FastAPI front of the media-server client."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, Awaitable, TypeVar

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from .config import settings
from .database import Database
from .filters import BrowseFilters, describe_filters
from .models import EpisodeOptions
from .preferences import PreferenceStore, load_device_identity
from .services.auth import SessionAuth, SessionManager, SessionUnavailableError
from .services.catalog import CatalogClient, ForeignLocatorError
from .services.media import MediaResolver

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

T = TypeVar("T")

app: FastAPI


class ListingQuery(BaseModel):
    """Normalized view of query parameters for listing endpoints."""

    page: int = Field(default=1, ge=1)
    query: str = Field(default="", validation_alias=AliasChoices("query", "q"))
    category: str | None = None
    sort: str | None = Field(default=None, validation_alias=AliasChoices("sort", "sortBy"))
    ascending: bool = False


class LocatorQuery(BaseModel):
    url: str = Field(min_length=1)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(settings.request_timeout, connect=10.0),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    store = PreferenceStore(database.session_factory)
    device = await load_device_identity(settings, store)
    sessions = SessionManager(
        settings.media_server_url,
        settings.media_server_username,
        settings.media_server_password,
        device,
        http_client,
        store,
    )
    http_client.auth = SessionAuth(sessions, require_session=settings.require_session)

    episode_options = EpisodeOptions(
        template=settings.episode_template,
        prefix=settings.episode_prefix,
        details=settings.episode_details,
    )
    fastapi_app.state.catalog_client = CatalogClient(
        settings.media_server_url, sessions, http_client, episode_options
    )
    fastapi_app.state.media_resolver = MediaResolver(
        settings.media_server_url, sessions, http_client
    )
    fastapi_app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Browse and play a Jellyfin library",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_catalog_client(app: FastAPI) -> CatalogClient:
    client = getattr(app.state, "catalog_client", None)
    if not isinstance(client, CatalogClient):
        raise RuntimeError("Catalog client not initialised")
    return client


def get_media_resolver(app: FastAPI) -> MediaResolver:
    resolver = getattr(app.state, "media_resolver", None)
    if not isinstance(resolver, MediaResolver):
        raise RuntimeError("Media resolver not initialised")
    return resolver


async def _call_upstream(awaitable: Awaitable[T]) -> T:
    """Await an upstream call, translating failures into HTTP errors."""

    try:
        return await awaitable
    except SessionUnavailableError as exc:
        logger.warning("No media-server session available: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ForeignLocatorError as exc:
        logger.warning("Rejected item locator: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except httpx.HTTPError as exc:
        logger.warning("Media server request failed: %s", exc)
        raise HTTPException(status_code=502, detail="Media server unreachable") from exc
    except ValidationError as exc:
        logger.warning("Unexpected media server payload: %s", exc)
        raise HTTPException(status_code=502, detail="Unexpected media server response") from exc
    except ValueError as exc:
        logger.warning("Undecodable media server payload: %s", exc)
        raise HTTPException(status_code=502, detail="Unexpected media server response") from exc


def register_routes(fastapi_app: FastAPI) -> None:
    def _listing_query(request: Request) -> ListingQuery:
        try:
            return ListingQuery.model_validate(dict(request.query_params))
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc

    def _locator(request: Request) -> str:
        try:
            return LocatorQuery.model_validate(dict(request.query_params)).url
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/filters")
    async def filters() -> dict[str, list[str]]:
        return describe_filters()

    @fastapi_app.get("/api/popular")
    async def popular(request: Request) -> dict[str, Any]:
        params = _listing_query(request)
        page = await _call_upstream(get_catalog_client(fastapi_app).popular(params.page))
        return page.model_dump(mode="json")

    @fastapi_app.get("/api/latest")
    async def latest(request: Request) -> dict[str, Any]:
        params = _listing_query(request)
        page = await _call_upstream(get_catalog_client(fastapi_app).latest(params.page))
        return page.model_dump(mode="json")

    @fastapi_app.get("/api/search")
    async def search(request: Request) -> dict[str, Any]:
        params = _listing_query(request)
        try:
            browse_filters = BrowseFilters.from_labels(
                params.category, params.sort, params.ascending
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        page = await _call_upstream(
            get_catalog_client(fastapi_app).search(params.page, params.query, browse_filters)
        )
        return page.model_dump(mode="json")

    @fastapi_app.get("/api/anime")
    async def anime_details(request: Request) -> dict[str, Any]:
        anime = await _call_upstream(
            get_catalog_client(fastapi_app).details(_locator(request))
        )
        return anime.model_dump(mode="json")

    @fastapi_app.get("/api/episodes")
    async def episodes(request: Request) -> list[dict[str, Any]]:
        items = await _call_upstream(
            get_catalog_client(fastapi_app).episodes(_locator(request))
        )
        return [episode.model_dump(mode="json") for episode in items]

    @fastapi_app.get("/api/videos")
    async def videos(request: Request) -> list[dict[str, Any]]:
        items = await _call_upstream(
            get_media_resolver(fastapi_app).videos(_locator(request))
        )
        return [video.model_dump(mode="json") for video in items]


app = create_app()
