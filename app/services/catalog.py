"""Catalog listing, detail and episode lookups against the media server."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..filters import BrowseFilters
from ..models import (
    AnimeEntity,
    AnimePage,
    CatalogItem,
    EpisodeEntity,
    EpisodeOptions,
    ItemList,
)
from .auth import SessionManager

logger = logging.getLogger(__name__)

PAGE_SIZE = 20
EPISODE_FIELDS = "DateCreated,OriginalTitle,SortName"
LATEST_SORT_BY = "DateCreated,SortName"


def start_index(page: int) -> int:
    return (page - 1) * PAGE_SIZE


def has_more(page: int, total_count: int) -> bool:
    """Return whether another page exists after ``page``."""

    return PAGE_SIZE * page < total_count


def build_list_url(
    base_url: str,
    user_id: str,
    page: int,
    *,
    sort_by: str | None = None,
    sort_order: str | None = None,
    parent_id: str | None = None,
    search_term: str | None = None,
) -> httpx.URL:
    """Return the items query for a page of the library listing.

    The listing is recursive and limited to movies and series with at most one
    primary image each. Search and parent filters narrow that set further.
    """

    params: dict[str, Any] = {
        "StartIndex": str(start_index(page)),
        "Limit": str(PAGE_SIZE),
        "Recursive": "true",
        "IncludeItemTypes": "Movie,Series",
        "ImageTypeLimit": "1",
        "EnableImageTypes": "Primary",
    }
    if search_term and search_term.strip():
        params["SearchTerm"] = search_term
    if parent_id and parent_id.strip():
        params["ParentId"] = parent_id
    if sort_by:
        params["SortBy"] = sort_by
    if sort_order:
        params["SortOrder"] = sort_order
    return httpx.URL(f"{base_url}/Users/{user_id}/Items", params=params)


class ForeignLocatorError(ValueError):
    """Raised when a locator points somewhere other than the media server."""


def split_locator(locator: str, base_url: str) -> tuple[str, str, str]:
    """Split an item locator into ``(address, item_id, fragment)``.

    The address must live on ``base_url``: same scheme, host and port, and
    under its path. Anything else raises :class:`ForeignLocatorError`.
    """

    address, _, fragment = locator.partition("#")
    try:
        url = httpx.URL(address)
    except httpx.InvalidURL as exc:
        raise ForeignLocatorError(f"Invalid item locator: {locator!r}") from exc
    base = httpx.URL(base_url)
    base_path = base.path.rstrip("/") + "/"
    if (url.scheme, url.host, url.port) != (base.scheme, base.host, base.port) or not (
        url.path.startswith(base_path)
    ):
        raise ForeignLocatorError(f"Locator is not on the media server: {address!r}")
    item_id = url.path.rstrip("/").rsplit("/", 1)[-1]
    return address, item_id, fragment


class CatalogClient:
    """Browse the media server's library."""

    def __init__(
        self,
        base_url: str,
        sessions: SessionManager,
        http_client: httpx.AsyncClient,
        episode_options: EpisodeOptions | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._sessions = sessions
        self._client = http_client
        self._episode_options = episode_options or EpisodeOptions()

    async def _user_id(self) -> str:
        return (await self._sessions.ensure_session()).user_id

    async def popular(self, page: int) -> AnimePage:
        return await self.search(page, "", BrowseFilters())

    async def latest(self, page: int) -> AnimePage:
        url = build_list_url(
            self._base_url,
            await self._user_id(),
            page,
            sort_by=LATEST_SORT_BY,
            sort_order="Descending",
        )
        return await self._fetch_page(url, page)

    async def search(self, page: int, query: str, filters: BrowseFilters) -> AnimePage:
        url = build_list_url(
            self._base_url,
            await self._user_id(),
            page,
            sort_by=filters.sort_by,
            sort_order=filters.sort_order,
            parent_id=filters.parent_id,
            search_term=query,
        )
        return await self._fetch_page(url, page)

    async def _fetch_page(self, url: httpx.URL, page: int) -> AnimePage:
        response = await self._client.get(url)
        listing = ItemList.model_validate(response.json())
        user_id = self._sessions.session.user_id
        return AnimePage(
            animes=[item.to_anime(self._base_url, user_id) for item in listing.items],
            has_next_page=has_more(page, listing.total_record_count),
        )

    async def details(self, anime_url: str) -> AnimeEntity:
        address, _, _ = split_locator(anime_url, self._base_url)
        user_id = await self._user_id()
        response = await self._client.get(address)
        item = CatalogItem.model_validate(response.json())
        return item.to_anime(self._base_url, user_id)

    def episode_source(self, anime_url: str, user_id: str) -> tuple[httpx.URL, bool]:
        """Pick where to load episodes from based on the locator fragment.

        Returns the URL and whether it answers with a list of items.
        """

        address, item_id, fragment = split_locator(anime_url, self._base_url)
        fields = {"Fields": EPISODE_FIELDS}
        if fragment.startswith("seriesId,"):
            series_id = fragment.split(",", 1)[1]
            return (
                httpx.URL(
                    f"{self._base_url}/Shows/{series_id}/Episodes",
                    params={"SeasonId": item_id, **fields},
                ),
                True,
            )
        if fragment.startswith("series"):
            return httpx.URL(f"{self._base_url}/Shows/{item_id}/Episodes", params=fields), True
        if fragment.startswith("boxSet"):
            return (
                httpx.URL(
                    f"{self._base_url}/Users/{user_id}/Items",
                    params={"ParentId": item_id, **fields},
                ),
                True,
            )
        return httpx.URL(address), False

    async def episodes(self, anime_url: str) -> list[EpisodeEntity]:
        """Return the episodes of an entry, newest first."""

        user_id = await self._user_id()
        url, is_listing = self.episode_source(anime_url, user_id)
        logger.debug("Loading episodes for %s from %s", anime_url, url)
        response = await self._client.get(url)
        if is_listing:
            items = ItemList.model_validate(response.json()).items
        else:
            items = [CatalogItem.model_validate(response.json())]
        episodes = [
            item.to_episode(self._base_url, user_id, self._episode_options) for item in items
        ]
        episodes.reverse()
        return episodes
