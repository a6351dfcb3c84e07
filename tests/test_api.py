"""Tests for the JSON routes exposed to the presentation layer."""

from __future__ import annotations

import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.filters import BrowseFilters
from app.main import register_routes
from app.models import AnimeEntity, AnimePage, EpisodeEntity, Video
from app.services.auth import SessionUnavailableError
from app.services.catalog import CatalogClient, split_locator
from app.services.media import MediaResolver

SERVER_URL = "https://jf"


class DummyCatalogClient(CatalogClient):
    """Minimal CatalogClient stub recording the calls it receives."""

    def __init__(self) -> None:  # pragma: no cover - nothing to initialise
        # Deliberately skip super().__init__ to avoid touching the network.
        self.calls: list[tuple] = []
        self.failure: Exception | None = None

    def _maybe_fail(self) -> None:
        if self.failure is not None:
            raise self.failure

    async def popular(self, page: int) -> AnimePage:  # type: ignore[override]
        self.calls.append(("popular", page))
        self._maybe_fail()
        return AnimePage(
            animes=[AnimeEntity(url="https://jf/Users/u/Items/1#series", title="Show")],
            has_next_page=True,
        )

    async def latest(self, page: int) -> AnimePage:  # type: ignore[override]
        self.calls.append(("latest", page))
        return AnimePage()

    async def search(  # type: ignore[override]
        self, page: int, query: str, filters: BrowseFilters
    ) -> AnimePage:
        self.calls.append(("search", page, query, filters))
        return AnimePage()

    async def details(self, anime_url: str) -> AnimeEntity:  # type: ignore[override]
        self.calls.append(("details", anime_url))
        split_locator(anime_url, SERVER_URL)
        return AnimeEntity(url=anime_url, title="Show")

    async def episodes(self, anime_url: str) -> list[EpisodeEntity]:  # type: ignore[override]
        self.calls.append(("episodes", anime_url))
        split_locator(anime_url, SERVER_URL)
        return [EpisodeEntity(name="1 - Pilot", url="https://jf/Users/u/Items/e1", episode_number=1)]


class DummyMediaResolver(MediaResolver):
    def __init__(self) -> None:  # pragma: no cover - nothing to initialise
        pass

    async def videos(self, episode_url: str) -> list[Video]:  # type: ignore[override]
        split_locator(episode_url, SERVER_URL)
        return [
            Video(
                url="https://jf/Videos/e1/stream?static=True",
                quality="Source",
                video_url="https://jf/Videos/e1/stream?static=True",
                headers={"Authorization": "MediaBrowser Token=\"t\""},
            )
        ]


def _app() -> tuple[FastAPI, DummyCatalogClient]:
    app = FastAPI()
    register_routes(app)
    catalog = DummyCatalogClient()
    app.state.catalog_client = catalog
    app.state.media_resolver = DummyMediaResolver()
    return app, catalog


def test_popular_returns_page_payload() -> None:
    app, catalog = _app()

    with TestClient(app) as client:
        response = client.get("/api/popular", params={"page": 2})

    assert response.status_code == 200
    payload = response.json()
    assert payload["has_next_page"] is True
    assert payload["animes"][0]["status"] == "unknown"
    assert catalog.calls == [("popular", 2)]


def test_search_resolves_filter_labels() -> None:
    app, catalog = _app()

    with TestClient(app) as client:
        response = client.get(
            "/api/search",
            params={"q": "ghost", "category": "tv shows (asian)", "sort": "Name", "ascending": "true"},
        )

    assert response.status_code == 200
    _, page, query, filters = catalog.calls[0]
    assert (page, query) == (1, "ghost")
    assert filters.parent_id == "2dfef46d25ad65cf8fc4b0d882567a25"
    assert filters.sort_by == "SortName"
    assert filters.sort_order == "Ascending"


def test_search_rejects_unknown_category() -> None:
    app, _ = _app()

    with TestClient(app) as client:
        response = client.get("/api/search", params={"category": "Cartoons"})

    assert response.status_code == 400


def test_invalid_page_is_rejected() -> None:
    app, _ = _app()

    with TestClient(app) as client:
        response = client.get("/api/latest", params={"page": 0})

    assert response.status_code == 400


def test_episodes_and_videos_require_locator() -> None:
    app, _ = _app()

    with TestClient(app) as client:
        missing = client.get("/api/episodes")
        episodes = client.get("/api/episodes", params={"url": "https://jf/Users/u/Items/1#series"})
        videos = client.get("/api/videos", params={"url": "https://jf/Users/u/Items/e1"})

    assert missing.status_code == 400
    assert episodes.json()[0]["name"] == "1 - Pilot"
    assert videos.json()[0]["quality"] == "Source"


def test_foreign_locators_are_rejected() -> None:
    app, _ = _app()
    locator = {"url": "https://evil.example.net/Users/u/Items/x#series"}

    with TestClient(app) as client:
        responses = [
            client.get(path, params=locator)
            for path in ("/api/anime", "/api/episodes", "/api/videos")
        ]

    assert [response.status_code for response in responses] == [400, 400, 400]


def test_upstream_failures_map_to_gateway_errors() -> None:
    app, catalog = _app()

    with TestClient(app) as client:
        catalog.failure = SessionUnavailableError("login rejected (401)")
        unavailable = client.get("/api/popular")
        catalog.failure = httpx.ConnectError("refused")
        unreachable = client.get("/api/popular")

    assert unavailable.status_code == 503
    assert unreachable.status_code == 502


def test_filters_lists_options() -> None:
    app, _ = _app()

    with TestClient(app) as client:
        payload = client.get("/api/filters").json()

    assert payload["categories"][0] == "All"
    assert payload["sorts"] == ["Name", "Date Added", "Premiere Date"]
