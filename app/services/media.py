"""Resolve playable video locations for episodes."""

from __future__ import annotations

import logging

import httpx

from ..models import CatalogItem, Video
from .auth import SessionManager
from .catalog import split_locator

logger = logging.getLogger(__name__)

SOURCE_QUALITY = "Source"


class MediaResolver:
    """Builds direct-stream URLs for an item's first media source."""

    def __init__(self, base_url: str, sessions: SessionManager, http_client: httpx.AsyncClient):
        self._base_url = base_url.rstrip("/")
        self._sessions = sessions
        self._client = http_client

    def stream_url(self, item_id: str) -> str:
        return f"{self._base_url}/Videos/{item_id}/stream?static=True"

    async def videos(self, episode_url: str) -> list[Video]:
        """Return the playable variants of an episode.

        Only the original file is offered; an item without media sources
        yields an empty list.
        """

        address, _, _ = split_locator(episode_url, self._base_url)
        response = await self._client.get(address)
        item = CatalogItem.model_validate(response.json())
        if item.first_media_source is None:
            logger.info("Item %s has no media sources", item.id)
            return []

        url = self.stream_url(item.id)
        return [
            Video(
                url=url,
                quality=SOURCE_QUALITY,
                video_url=url,
                headers={"Authorization": self._sessions.authorization_header()},
            )
        ]
