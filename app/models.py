"""Pydantic models describing media-server payloads and mapped entities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_pascal

from .templating import render_template
from .utils import (
    date_part,
    format_bytes,
    format_seconds,
    html_to_text,
    parse_date_time,
    ticks_to_seconds,
)

EXTRA_INFO_SEPARATOR = " • "
VIRTUAL_LOCATION = "Virtual"


class ItemType(str, Enum):
    """Catalog item kinds; anything the server adds later becomes ``Other``."""

    BOX_SET = "BoxSet"
    MOVIE = "Movie"
    SEASON = "Season"
    SERIES = "Series"
    EPISODE = "Episode"
    OTHER = "Other"

    @classmethod
    def from_value(cls, value: object) -> "ItemType":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.OTHER


class CompletionStatus(str, Enum):
    COMPLETED = "completed"
    ONGOING = "ongoing"
    UNKNOWN = "unknown"

    @classmethod
    def from_raw(cls, value: str | None) -> "CompletionStatus":
        lowered = (value or "").lower()
        if lowered == "ended":
            return cls.COMPLETED
        if lowered == "continuing":
            return cls.ONGOING
        return cls.UNKNOWN


class ServerModel(BaseModel):
    """Base for payloads using the server's PascalCase field names."""

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
    )


class MediaStream(ServerModel):
    codec: str
    index: int
    type: str
    supports_external_stream: bool
    is_external: bool
    language: str | None = None
    display_title: str | None = None
    bit_rate: int | None = None


class MediaSource(ServerModel):
    """A playable file (or stream) attached to an item."""

    size: int | None = None
    id: str | None = None
    bitrate: int | None = None
    transcoding_url: str | None = None
    supports_transcoding: bool
    supports_direct_stream: bool
    media_streams: list[MediaStream] = Field(default_factory=list)


class ImageTags(ServerModel):
    primary: str | None = None


class Studio(ServerModel):
    name: str


class LoginSessionInfo(ServerModel):
    user_id: str


class LoginResponse(ServerModel):
    """Payload returned by ``/Users/AuthenticateByName``."""

    access_token: str
    session_info: LoginSessionInfo


class AnimeEntity(BaseModel):
    """Series/movie level entry handed to the presentation layer."""

    url: str
    title: str
    thumbnail_url: str | None = None
    description: str | None = None
    genre: str | None = None
    author: str | None = None
    status: CompletionStatus = CompletionStatus.UNKNOWN


class EpisodeEntity(BaseModel):
    """A playable entry listed under an :class:`AnimeEntity`."""

    name: str
    url: str
    extra_info: str = ""
    release_timestamp: int | None = None
    episode_number: float | None = None


class AnimePage(BaseModel):
    animes: list[AnimeEntity] = Field(default_factory=list)
    has_next_page: bool = False


class Video(BaseModel):
    """A resolved playback location together with the headers it needs."""

    url: str
    quality: str
    video_url: str
    headers: dict[str, str] = Field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DeviceIdentity:
    """Client/device description sent with every request."""

    client_name: str
    version: str
    device_id: str
    device_name: str


@dataclass(slots=True)
class EpisodeOptions:
    """User preferences controlling how episode rows are rendered."""

    template: str = "{number} - {title}"
    prefix: str = ""
    details: Collection[str] = ()


def build_image_url(base_url: str, item_id: str, tag: str) -> str:
    """Return the primary image URL for an item."""

    query = urlencode({"tag": tag})
    return f"{base_url}/Items/{item_id}/Images/Primary?{query}"


def build_item_url(base_url: str, user_id: str, item_id: str, fragment: str | None = None) -> str:
    url = f"{base_url}/Users/{user_id}/Items/{item_id}"
    if fragment:
        url = f"{url}#{fragment}"
    return url


class CatalogItem(ServerModel):
    """Raw catalog record as returned by the media server."""

    id: str
    name: str
    type: ItemType
    location_type: str
    image_tags: ImageTags
    collection_type: str | None = None
    series_id: str | None = None
    series_name: str | None = None
    season_name: str | None = None
    series_primary_image_tag: str | None = None
    status: str | None = None
    overview: str | None = None
    genres: list[str] | None = None
    studios: list[Studio] | None = None
    original_title: str | None = None
    sort_name: str | None = None
    index_number: int | None = None
    premiere_date: str | None = None
    run_time_ticks: int | None = None
    date_created: str | None = None
    media_sources: list[MediaSource] | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> ItemType:
        return ItemType.from_value(value)

    @property
    def is_virtual(self) -> bool:
        return self.location_type == VIRTUAL_LOCATION

    @property
    def first_media_source(self) -> MediaSource | None:
        if not self.media_sources:
            return None
        return self.media_sources[0]

    def locator_fragment(self) -> str | None:
        """Return the URL fragment used later to pick an episode strategy."""

        if self.type is ItemType.SEASON:
            return f"seriesId,{self.series_id}"
        if self.type is ItemType.MOVIE:
            return "movie"
        if self.type is ItemType.BOX_SET:
            return "boxSet"
        if self.type is ItemType.SERIES:
            return "series"
        return None

    def _series_thumbnail(self, base_url: str) -> str | None:
        if not (self.series_id and self.series_primary_image_tag):
            return None
        return build_image_url(base_url, self.series_id, self.series_primary_image_tag)

    def to_anime(self, base_url: str, user_id: str) -> AnimeEntity:
        """Map the record to an :class:`AnimeEntity`."""

        title = self.name
        thumbnail_url = None
        if self.image_tags.primary:
            thumbnail_url = build_image_url(base_url, self.id, self.image_tags.primary)

        if self.type is ItemType.MOVIE:
            status = CompletionStatus.COMPLETED
        else:
            status = CompletionStatus.from_raw(self.status)

        if self.type is ItemType.SEASON:
            if self.is_virtual:
                title = self.series_name or "Season"
            else:
                title = " ".join(part for part in (self.series_name, self.name) if part)
            if not self.image_tags.primary and self.series_id:
                thumbnail_url = self._series_thumbnail(base_url)

        return AnimeEntity(
            url=build_item_url(base_url, user_id, self.id, self.locator_fragment()),
            title=title,
            thumbnail_url=thumbnail_url,
            description=html_to_text(self.overview) if self.overview is not None else None,
            genre=", ".join(self.genres) if self.genres is not None else None,
            author=(
                ", ".join(studio.name for studio in self.studios)
                if self.studios is not None
                else None
            ),
            status=status,
        )

    def template_values(self, prefix: str = "") -> dict[str, str]:
        """Return the fields available to episode name templates."""

        source = self.first_media_source
        size_bytes = source.size if source is not None else None
        runtime_seconds = (
            ticks_to_seconds(self.run_time_ticks) if self.run_time_ticks is not None else None
        )
        title = prefix if self.type is ItemType.MOVIE else f"{prefix}{self.name}"
        return {
            "title": title,
            "originalTitle": self.original_title or "",
            "sortTitle": self.sort_name or "",
            "type": self.type.value,
            "typeShort": self.type.value.replace("Episode", "Ep."),
            "seriesTitle": self.series_name or "",
            "seasonTitle": self.season_name or "",
            "number": str(self.index_number) if self.index_number is not None else "",
            "createdDate": date_part(self.date_created),
            "releaseDate": date_part(self.premiere_date),
            "size": format_bytes(size_bytes) if size_bytes is not None else "",
            "sizeBytes": str(size_bytes) if size_bytes is not None else "",
            "runtime": format_seconds(runtime_seconds) if runtime_seconds is not None else "",
            "runtimeS": str(runtime_seconds) if runtime_seconds is not None else "",
        }

    def extra_info(self, details: Collection[str]) -> str:
        values = self.template_values()
        parts: list[str] = []
        if "Overview" in details and self.overview is not None and self.type is ItemType.EPISODE:
            parts.append(self.overview)
        source = self.first_media_source
        if "Size" in details and source is not None and source.size is not None:
            parts.append(values["size"])
        if "Runtime" in details and self.run_time_ticks is not None:
            parts.append(values["runtime"])
        return EXTRA_INFO_SEPARATOR.join(parts)

    def to_episode(
        self,
        base_url: str,
        user_id: str,
        options: EpisodeOptions | None = None,
    ) -> EpisodeEntity:
        """Map the record to an :class:`EpisodeEntity`."""

        options = options or EpisodeOptions()
        episode_number: float | None = None
        if self.index_number is not None:
            episode_number = float(self.index_number)
        if self.type is ItemType.MOVIE:
            episode_number = 1.0

        return EpisodeEntity(
            name=render_template(options.template, self.template_values(options.prefix)),
            url=build_item_url(base_url, user_id, self.id),
            extra_info=self.extra_info(options.details),
            release_timestamp=(
                parse_date_time(self.premiere_date) if self.premiere_date is not None else None
            ),
            episode_number=episode_number,
        )


class ItemList(ServerModel):
    """A page of catalog items with the server-reported total."""

    items: list[CatalogItem]
    total_record_count: int
