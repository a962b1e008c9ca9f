# controller.py
"""
Orchestrates extractor calls for the routing layer.

Every public coroutine returns a JSON-ready dict with a ``success`` flag:

    {"success": True, "data": {...}}
    {"success": False, "error": "...", "error_code": "FETCH_ERROR", "status_code": 503}

Nothing raises past this layer.
"""
import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import quote_plus

import config
from cache import ExtractionCache
from episode_scraper import scrape_episodes
from errors import DeadlineExceeded, ExtractionError, FetchError
from fetcher import Fetcher
from home_scraper import scrape_home
from info_scraper import scrape_info
from models import CacheMeta, ContentItem, HomePayload, Kind, ListingPage
from scraper import ITEM_CARD_SELECTORS, paginate, scrape_listing
from stream_scraper import scrape_stream

logger = logging.getLogger(__name__)

HOME_KEY = "home"
HOME_UNAVAILABLE = "Unable to fetch data from source. Please try again later."

MOVIE_CARD_SELECTORS = [
    ".movies-list .movie-item",
    ".movies-list li",
    ".movie-item",
    "ul.post-lst li",
    ".TPost.movies",
    "article.post-movie",
    "article.post",
    "li.post",
    'a[href*="/movies/"]',
]
SERIES_CARD_SELECTORS = ITEM_CARD_SELECTORS + ['a[href*="/series/"]']
CARTOON_CARD_SELECTORS = ITEM_CARD_SELECTORS
SEARCH_CARD_SELECTORS = ["article.post", "ul.post-lst li", "li.post"]
GENRE_CARD_SELECTORS = ["article.post", "li.post", "ul.post-lst li"]

# Home sections, in the order items are collected for letter browsing
HOME_ITEM_SECTIONS = [
    "spotlight",
    "trending",
    "most_watched_series",
    "most_watched_movies",
    "fresh_drops",
    "upcoming_episodes",
    "on_air_series",
    "new_arrivals",
    "cartoon_highlights",
]
CATALOGS = ("genres", "languages", "networks", "letters")
LETTER_PATHS = ["/letter/{lower}/", "/?letter={upper}", "/anime-list/{lower}/"]

Result = Dict[str, Any]


def listing_url(path: str, page: int = 1) -> str:
    """
    Examples:
        ('movies', 1) -> https://animesalt.cc/movies/
        ('category/genre/action', 2) -> https://animesalt.cc/category/genre/action/page/2/
    """
    url = f"{config.BASE_URL}/{path}/"
    return url + f"page/{page}/" if page > 1 else url


def normalize_letter(letter: str) -> Optional[str]:
    """
    Examples:
        'a' -> 'A'
        '#' -> '#'
        'ab' -> None
    """
    letter = (letter or "").strip().upper()
    if len(letter) == 1 and (letter == "#" or letter.isdigit() or "A" <= letter <= "Z"):
        return letter
    return None


def starts_with_letter(title: str, letter: str) -> bool:
    # '#' collects every title that does not open with A-Z
    first = title.strip()[:1].upper()
    if letter == "#":
        return bool(first) and not ("A" <= first <= "Z")
    return first == letter


def home_items(payload: HomePayload, sections: List[str] = HOME_ITEM_SECTIONS) -> List[ContentItem]:
    """Distinct items across home sections, as plain content items."""
    seen = set()
    items = []
    for name in sections:
        for item in getattr(payload, name):
            if item.url in seen:
                continue
            seen.add(item.url)
            items.append(ContentItem.model_validate(item.model_dump(include=set(ContentItem.model_fields))))
    return items


def ok(payload: Any) -> Result:
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump(mode="json")
    return {"success": True, "data": payload}


def failure(message: str, error_code: str, status_code: int) -> Result:
    return {"success": False, "error": message, "error_code": error_code, "status_code": status_code}


def error_result(error: Exception) -> Result:
    """Map an extraction failure to a result dict."""
    if isinstance(error, DeadlineExceeded):
        return failure(HOME_UNAVAILABLE, "SCRAPING_ERROR", 503)
    if isinstance(error, FetchError):
        if error.status_code == 404:
            return failure(f"Not found: {error.url}", "NOT_FOUND", 404)
        if error.transient:
            return failure(f"{error.message}. Please try again later.", "FETCH_ERROR", 503)
        return failure(error.message, "FETCH_ERROR", 502)
    if isinstance(error, ExtractionError):
        return failure(error.message, "PARSE_ERROR", 500)
    return failure(f"Scraping error: {error}", "INTERNAL_ERROR", 500)


class Controller:
    def __init__(
        self,
        fetcher: Fetcher,
        cache: Optional[ExtractionCache] = None,
        home_deadline: float = config.HOME_DEADLINE,
        rng: Optional[random.Random] = None,
    ):
        self.fetcher = fetcher
        self.cache = cache if cache is not None else ExtractionCache()
        self.home_deadline = home_deadline
        self.rng = rng

    async def _cached(self, key: str, ttl: float, produce: Callable[[], Awaitable[Any]]) -> Result:
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Cache hit: {key}")
            return ok(cached)
        try:
            payload = await produce()
        except Exception as e:
            if isinstance(e, (FetchError, ExtractionError)):
                logger.error(f"Extraction failed for {key}: {e}")
            else:
                logger.exception(f"Unexpected error for {key}: {e}")
            return error_result(e)
        self.cache.set(key, payload, ttl)
        return ok(payload)

    async def _load_home(self) -> HomePayload:
        """Cached home payload with cache meta, or a fresh extraction under the deadline."""
        cached: Optional[HomePayload] = self.cache.get(HOME_KEY)
        if cached is not None:
            age = self.cache.age(HOME_KEY) or 0.0
            is_stale = age > config.STALE_AFTER
            meta = cached.meta.model_copy(update={"cache": CacheMeta(
                age_seconds=round(age, 3),
                is_stale=is_stale,
                warning="Cached home data is more than an hour old" if is_stale else None,
            )})
            return cached.model_copy(update={"meta": meta})

        try:
            payload = await asyncio.wait_for(scrape_home(self.fetcher, rng=self.rng), timeout=self.home_deadline)
        except asyncio.TimeoutError:
            logger.error(f"Home extraction exceeded {self.home_deadline}s deadline")
            raise DeadlineExceeded("Home extraction timed out")

        if not payload.meta.is_fallback:
            self.cache.set(HOME_KEY, payload, config.CACHE_TTL["home"])
        return payload

    async def _from_home(self, build: Callable[[HomePayload], Result]) -> Result:
        try:
            payload = await self._load_home()
        except DeadlineExceeded as e:
            return error_result(e)
        except Exception as e:
            logger.exception(f"Unexpected error while scraping home: {e}")
            return error_result(e)
        return build(payload)

    async def get_home(self) -> Result:
        return await self._from_home(ok)

    async def get_info(self, content_id: str) -> Result:
        return await self._cached(
            f"info:{content_id}", config.CACHE_TTL["info"],
            lambda: scrape_info(content_id, self.fetcher),
        )

    async def get_episodes(self, content_id: str) -> Result:
        return await self._cached(
            f"episodes:{content_id}", config.CACHE_TTL["episodes"],
            lambda: scrape_episodes(content_id, self.fetcher),
        )

    async def get_stream(self, episode_id: str, lang: str = "hindi") -> Result:
        return await self._cached(
            f"stream:{episode_id}:{lang}", config.CACHE_TTL["stream"],
            lambda: scrape_stream(episode_id, self.fetcher, lang),
        )

    async def _listing(
        self,
        key: str,
        path: str,
        selectors: List[str],
        page: int,
        page_size: int,
        kind: Optional[Kind] = None,
    ) -> Result:
        """One site listing page, optionally narrowed to one kind, cut to ``page_size``."""
        async def produce() -> ListingPage:
            items, has_next = await scrape_listing(listing_url(path, page), self.fetcher, selectors)
            if kind is not None:
                items = [item for item in items if item.kind == kind]
            return ListingPage(
                items=items[:page_size],
                page=page,
                page_size=page_size,
                total=len(items),
                has_next=has_next,
            )

        return await self._cached(f"{key}:{page}:{page_size}", config.CACHE_TTL[key.split(":")[0]], produce)

    async def get_movies(self, page: int = 1, page_size: int = config.DEFAULT_PAGE_SIZE) -> Result:
        return await self._listing("movies", "movies", MOVIE_CARD_SELECTORS, page, page_size, Kind.MOVIE)

    async def get_series(self, page: int = 1, page_size: int = config.DEFAULT_PAGE_SIZE) -> Result:
        return await self._listing("series", "series", SERIES_CARD_SELECTORS, page, page_size, Kind.SERIES)

    async def get_cartoons(self, cartoon_type: str = "series", page: int = 1, page_size: int = config.DEFAULT_PAGE_SIZE) -> Result:
        cartoon_type = cartoon_type.strip().lower()
        if cartoon_type not in config.CARTOON_TYPES:
            return failure(f"Unknown cartoon type: {cartoon_type}", "VALIDATION_ERROR", 400)
        return await self._listing(
            f"cartoon:{cartoon_type}", f"cartoon/{cartoon_type}", CARTOON_CARD_SELECTORS, page, page_size,
        )

    async def search(self, query: str, page: int = 1, page_size: int = config.DEFAULT_PAGE_SIZE) -> Result:
        query = query.strip()
        if not query:
            return failure("Search query cannot be empty", "VALIDATION_ERROR", 400)

        async def produce() -> ListingPage:
            url = f"{config.BASE_URL}/?s={quote_plus(query)}"
            items, _ = await scrape_listing(url, self.fetcher, SEARCH_CARD_SELECTORS)
            return paginate(items, page, page_size)

        return await self._cached(f"search:{query.lower()}:{page}:{page_size}", config.CACHE_TTL["search"], produce)

    async def get_genre(self, genre: str, page: int = 1, page_size: int = config.DEFAULT_PAGE_SIZE) -> Result:
        genre = genre.strip().lower()
        return await self._listing(f"genre:{genre}", f"category/genre/{genre}", GENRE_CARD_SELECTORS, page, page_size)

    async def get_ongoing(self, page: int = 1, page_size: int = config.DEFAULT_PAGE_SIZE) -> Result:
        return await self._from_home(lambda home: ok(paginate(list(home.on_air_series), page, page_size)))

    async def get_letter(self, letter: str, page: int = 1, page_size: int = config.DEFAULT_PAGE_SIZE) -> Result:
        """
        Titles starting with ``letter`` ('#' for anything but A-Z).

        The site's letter pages are tried in turn; when none lists anything,
        the home page items are filtered by first character instead.
        """
        normalized = normalize_letter(letter)
        if normalized is None:
            return failure(f"Invalid letter: {letter}", "VALIDATION_ERROR", 400)

        key = f"letter:{normalized}"
        items: Optional[List[ContentItem]] = self.cache.get(key)
        if items is None:
            for pattern in LETTER_PATHS:
                url = config.BASE_URL + pattern.format(lower=quote_plus(normalized.lower()), upper=quote_plus(normalized))
                try:
                    items, _ = await scrape_listing(url, self.fetcher, ITEM_CARD_SELECTORS)
                except FetchError as e:
                    logger.debug(f"Letter page {url} unavailable: {e}")
                    continue
                if items:
                    self.cache.set(key, items, config.CACHE_TTL["letter"])
                    break
        if items:
            return ok(paginate(items, page, page_size))

        logger.warning(f"No letter page for {normalized}, filtering home items")
        return await self._from_home(lambda home: ok(paginate(
            [item for item in home_items(home) if starts_with_letter(item.title, normalized)], page, page_size,
        )))

    async def get_random(self) -> Result:
        def pick(home: HomePayload) -> Result:
            if not home.trending:
                return failure("No trending items to pick from", "NOT_FOUND", 404)
            item = (self.rng or random).choice(home.trending)
            return ok({"item": item.model_dump(mode="json")})

        return await self._from_home(pick)

    async def get_top_ten(self) -> Result:
        def top(home: HomePayload) -> Result:
            series = home.most_watched_series or [item for item in home.trending if item.kind == Kind.SERIES]
            movies = home.most_watched_movies or [item for item in home.trending if item.kind == Kind.MOVIE]
            return ok({
                "series": [item.model_dump(mode="json") for item in series[:10]],
                "movies": [item.model_dump(mode="json") for item in movies[:10]],
            })

        return await self._from_home(top)

    async def get_schedule(self) -> Result:
        return await self._from_home(lambda home: ok({
            "upcoming": [item.model_dump(mode="json") for item in home.upcoming_episodes],
        }))

    async def get_catalog(self, name: str) -> Result:
        """Filter values from the home page: genres, languages, networks or letters."""
        if name not in CATALOGS:
            return failure(f"Unknown catalog: {name}", "VALIDATION_ERROR", 400)

        def catalog(home: HomePayload) -> Result:
            data: Dict[str, Any] = {name: getattr(home.filters, name)}
            if name == "genres":
                data["valid_genres"] = config.VALID_GENRES
            return ok(data)

        return await self._from_home(catalog)

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats().model_dump()

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Extraction cache cleared")
