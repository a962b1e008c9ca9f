# models.py
from enum import Enum
from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class Kind(str, Enum):
    SERIES = "SERIES"
    MOVIE = "MOVIE"
    CARTOON = "CARTOON"


class Genre(BaseModel):
    id: str = Field(..., description="Canonical genre slug, e.g. 'martial-arts'")
    name: str = Field(..., description="Display name")
    icon: str = Field(..., description="Emoji icon for the genre")

    class Config:
        from_attributes = True


class Language(BaseModel):
    code: str = Field(..., description="Language code, e.g. 'hindi'")
    name: str = Field(..., description="Display name")
    flag: str = Field(..., description="Flag emoji")

    class Config:
        from_attributes = True


class ContentItem(BaseModel):
    id: str = Field(..., description="Slug taken from the canonical URL")
    title: str = Field(..., description="Item title")
    url: str = Field(..., description="Canonical page URL")
    poster_url: Optional[str] = Field(None, description="Poster thumbnail URL")
    backdrop: Optional[str] = Field(None, description="HD background markup or URL")
    kind: Kind = Field(Kind.SERIES, description="SERIES, MOVIE or CARTOON")
    sub_category: Optional[str] = Field(None, description="TV Series, Movie, OVA/Special or ONA")
    year: Optional[int] = Field(None, description="Release year, null when unknown")
    episode: Optional[int] = Field(None, description="Latest episode marker shown on the card")
    genres: List[Genre] = Field(default_factory=list, description="Genres in first-seen order")
    languages: List[Language] = Field(default_factory=list, description="Available audio languages")
    related_items: List["ContentItem"] = Field(default_factory=list, description="Related items")

    class Config:
        from_attributes = True


class Season(BaseModel):
    season: int = Field(..., description="Season number")
    episode_count: int = Field(..., description="Number of episodes in the season")
    start_episode: int = Field(..., description="First episode number")
    end_episode: int = Field(..., description="Last episode number")
    tag: Optional[str] = Field(None, description="Trailing tag shown next to the season, if any")

    class Config:
        from_attributes = True


class ContentDetail(ContentItem):
    synopsis: Optional[str] = Field(None, description="Synopsis, truncated")
    other_names: List[str] = Field(default_factory=list, description="Alternative titles")
    duration: Optional[str] = Field(None, description="Episode or movie runtime, e.g. '24 min'")
    total_seasons: Optional[int] = Field(None, description="Season count stated on the page")
    total_episodes: Optional[int] = Field(None, description="Episode count stated on the page")
    networks: List[str] = Field(default_factory=list, description="Broadcast networks")
    seasons: List[Season] = Field(default_factory=list, description="Dubbed seasons")


class Episode(BaseModel):
    id: str = Field(..., description="{content_id}-{season}x{number}")
    season: int = Field(..., description="Season number")
    number: int = Field(..., description="Episode number")
    title: str = Field(..., description="Episode title")
    url: str = Field(..., description="Episode page URL")
    is_sub_only: bool = Field(False, description="Only available with subtitles")
    has_dub: bool = Field(True, description="Dubbed audio available")
    has_sub: bool = Field(True, description="Subtitles available")

    class Config:
        from_attributes = True


class EpisodeList(BaseModel):
    id: str = Field(..., description="Content id")
    url: str = Field(..., description="Page the episodes were read from")
    kind: Kind = Field(..., description="Kind of the content item")
    episodes: List[Episode] = Field(default_factory=list, description="Episodes sorted by season then number")
    seasons: List[Season] = Field(default_factory=list, description="Seasons derived from the episodes")
    total_episodes: int = Field(0, description="Number of episodes")
    total_seasons: int = Field(0, description="Number of seasons")
    separator_found: bool = Field(False, description="Whether a sub/dub separator was found")
    sub_only_episodes: int = Field(0, description="Number of sub-only episodes")

    class Config:
        from_attributes = True


class StreamSource(BaseModel):
    player: str = Field(..., description="Display label, e.g. 'HD 1 (Sub)'")
    url: str = Field(..., description="Source URL")
    is_sub: bool = Field(False, description="Subtitled audio track")
    is_dub: bool = Field(False, description="Dubbed audio track")
    is_regional: bool = Field(False, description="Single-audio regional content")
    type: str = Field("iframe", description="hls, mp4, iframe, embed or direct")

    class Config:
        from_attributes = True


class DownloadLink(BaseModel):
    quality: str = Field(..., description="Detected quality, e.g. '1080p' or 'Auto'")
    host: str = Field(..., description="File host name")
    url: str = Field(..., description="Download URL")
    text: str = Field("", description="Link text")

    class Config:
        from_attributes = True


class AvailabilityInfo(BaseModel):
    has_sub: bool = Field(True, description="Subtitled track available")
    has_dub: bool = Field(False, description="Dubbed track available")
    is_regional: bool = Field(False, description="Single-audio regional content")
    languages: List[str] = Field(default_factory=list, description="Detected language codes in priority order")
    preferred: Optional[str] = Field(None, description="Language asked for by the caller")
    resolved_language: str = Field("original", description="Best match for the preferred language")
    resolved_label: str = Field("Original", description="Display name of the resolved language")

    class Config:
        from_attributes = True


class StreamResult(BaseModel):
    episode_id: str = Field(..., description="Episode id")
    episode: Optional[int] = Field(None, description="Episode number")
    url: str = Field(..., description="Watch page URL")
    sources: List[StreamSource] = Field(default_factory=list, description="Playable sources")
    download_links: List[DownloadLink] = Field(default_factory=list, description="Download links")
    language: AvailabilityInfo = Field(default_factory=AvailabilityInfo, description="Resolved availability")
    is_dual_audio: bool = Field(False, description="Separate sub and dub servers")
    is_regional: bool = Field(False, description="Single-audio servers")
    server_types: List[str] = Field(default_factory=list, description="Lowercased server labels")
    message: Optional[str] = Field(None, description="Human readable summary")
    related_items: List[ContentItem] = Field(default_factory=list, description="Related items")

    class Config:
        from_attributes = True


class RankedItem(ContentItem):
    rank: Optional[int] = Field(None, description="Position in the chart")
    source: Optional[str] = Field(None, description="Section the item came from")


class SpotlightItem(RankedItem):
    spotlight_info: Optional[str] = Field(None, description="Caption for the spotlight slide")


class FreshDrop(ContentItem):
    season: Optional[str] = Field(None, description="Season label, e.g. '2' or '1-3'")
    latest_episode: Optional[str] = Field(None, description="Latest episode label")


class UpcomingEpisode(ContentItem):
    next_episode: Optional[str] = Field(None, description="Upcoming episode label")
    countdown: Optional[str] = Field(None, description="Countdown text as shown")
    countdown_target: Optional[str] = Field(None, description="Countdown target timestamp")


class HomeFilters(BaseModel):
    genres: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    letters: List[str] = Field(default_factory=list)
    networks: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CacheMeta(BaseModel):
    age_seconds: float = Field(..., description="Age of the cached payload")
    is_stale: bool = Field(False, description="Older than the staleness threshold")
    warning: Optional[str] = Field(None, description="Set when the payload is stale")


class HomeMeta(BaseModel):
    source: str = Field(..., description="Source site")
    timestamp: str = Field(..., description="ISO timestamp of the extraction")
    processing_time_ms: int = Field(0, description="Extraction time")
    item_count: int = Field(0, description="Distinct items across all sections")
    is_fallback: bool = Field(False, description="Static sample data was served")
    cache: Optional[CacheMeta] = Field(None, description="Present when served from cache")


class HomePayload(BaseModel):
    spotlight: List[SpotlightItem] = Field(default_factory=list)
    trending: List[RankedItem] = Field(default_factory=list)
    most_watched_series: List[RankedItem] = Field(default_factory=list)
    most_watched_movies: List[RankedItem] = Field(default_factory=list)
    fresh_drops: List[FreshDrop] = Field(default_factory=list)
    upcoming_episodes: List[UpcomingEpisode] = Field(default_factory=list)
    on_air_series: List[ContentItem] = Field(default_factory=list)
    new_arrivals: List[ContentItem] = Field(default_factory=list)
    cartoon_highlights: List[ContentItem] = Field(default_factory=list)
    filters: HomeFilters = Field(default_factory=HomeFilters)
    meta: HomeMeta

    class Config:
        from_attributes = True


class ListingPage(BaseModel):
    items: List[ContentItem] = Field(default_factory=list)
    page: int = Field(1, description="Current page")
    page_size: int = Field(20, description="Items per page")
    total: int = Field(0, description="Items found before slicing")
    has_next: bool = Field(False, description="More items exist after this page")

    class Config:
        from_attributes = True


class CacheStats(BaseModel):
    size: int
    max_size: int
    hits: int
    misses: int
    hit_rate: float


class HealthResponse(BaseModel):
    status: str = Field(..., description="'ok' when the service is up")
    timestamp: str
    cache: CacheStats


class ApiResponse(BaseModel):
    success: bool = Field(True)
    data: Optional[Dict] = Field(None, description="Payload on success")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error message")
    code: Optional[int] = Field(None, description="HTTP status code")
    details: Optional[str] = Field(None, description="Additional error details")

    class Config:
        from_attributes = True
