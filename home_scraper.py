# home_scraper.py
"""
Home page aggregation for animesalt.cc.

Sections are located by their heading text, each with its own alternative
titles and a page-wide fallback selector. Trending and spotlight lists are
built from the most-watched charts; spotlight backdrops are fetched from each
item's own page in parallel.
"""
import logging
import random
import re
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

import config
from availability import parse_year
from document import attr, clean_text, closest, parse_html, select_all, select_attr, select_text
from errors import FetchError
from fetcher import Fetcher
from models import (
    ContentItem, FreshDrop, HomeFilters, HomeMeta, HomePayload, Kind,
    RankedItem, SpotlightItem, UpcomingEpisode,
)
from scraper import (
    clean_title, extract_id_from_url, genre_from_slug, image_url, kind_from_url,
    normalize_url, parse_item_card, parse_item_cards, sub_category_for, upgrade_poster,
)

logger = logging.getLogger(__name__)

SECTION_CONTAINERS = "section, .widget, .wdgt-home, .wdgt"
SECTION_HEADINGS = ".section-title, .widget-title, h3"

MOST_WATCHED_SERIES_TITLES = ["Most-Watched Series", "Most Watched Series", "Top Series", "Popular Series"]
MOST_WATCHED_MOVIES_TITLES = ["Most-Watched Movies", "Most Watched Movies", "Top Movies", "Popular Movies", "Trending Movies"]
FRESH_DROPS_TITLES = ["Fresh Drops", "Latest Episodes"]
UPCOMING_TITLES = ["Upcoming Episodes", "Coming Soon"]
ON_AIR_TITLES = ["On-Air Series", "Currently Airing", "Ongoing Series", "Airing Now"]
NEW_ARRIVALS_TITLES = ["New Anime Arrivals", "New Arrivals", "Latest Additions", "Just Added"]
CARTOON_TITLES = ["Just In: Cartoon Series", "Cartoon Series", "Cartoons"]

SWIPER_CARDS = ".swiper-slide li article.post, .swiper-slide > li, li.post, article.post, .post"
GRID_CARDS = "article.post, .post, .movies .tt, .item, .anime-card"

DEFAULT_GENRES = [
    'Action', 'Adventure', 'Comedy', 'Drama', 'Fantasy', 'Horror', 'Isekai',
    'Romance', 'Sci-Fi', 'Supernatural', 'Martial Arts', 'Mecha', 'Psychological',
    'School', 'Shounen', 'Slice of Life', 'Sports', 'Thriller', 'Ecchi', 'Music',
]
DEFAULT_LANGUAGES = [
    'English', 'Hindi', 'Japanese', 'Tamil', 'Telugu',
    'Bengali', 'Malayalam', 'Kannada', 'Korean', 'Chinese',
]


def _heading(text: str) -> str:
    """
    Examples:
        'Just In: Cartoon Series View More…' -> 'just in: cartoon series'
    """
    text = re.sub(r'View\s+More.*$', '', clean_text(text), flags=re.IGNORECASE)
    return text.strip().lower()


def find_section(soup: BeautifulSoup, titles: Sequence[str]) -> Optional[Tag]:
    """Innermost section container whose heading matches one of ``titles``, tried in order."""
    containers = select_all(soup, SECTION_CONTAINERS)
    for title in titles:
        wanted = title.lower()
        match = None
        for container in containers:
            heading = _heading(select_text(container, SECTION_HEADINGS) or "")
            if heading and wanted in heading:
                match = container
        if match is not None:
            return match
    return None


def parse_chart_item(element: Tag) -> Optional[RankedItem]:
    link = normalize_url(
        select_attr(element, "a.chart-poster", "href")
        or select_attr(element, 'a[href*="/series/"]', "href")
        or select_attr(element, 'a[href*="/movies/"]', "href")
        or select_attr(element, "a", "href")
    )
    content_id = extract_id_from_url(link)
    if not content_id:
        return None
    title = select_text(element, ".chart-title") or clean_title(select_attr(element, "img", "alt")) or content_id
    kind = kind_from_url(link)

    rank = None
    rank_text = select_text(element, ".chart-number")
    if rank_text and rank_text.isdigit():
        rank = int(rank_text)

    genres = []
    genre_text = select_text(element, ".chart-genre")
    if genre_text:
        genre = genre_from_slug(re.sub(r'\s+', '-', genre_text.split(',')[0].strip().lower()))
        if genre:
            genres.append(genre)

    return RankedItem(
        id=content_id,
        title=title,
        url=link,
        poster_url=image_url(element),
        kind=kind,
        sub_category=sub_category_for(kind, title),
        year=parse_year(clean_text(element.get_text(" "))),
        genres=genres,
        rank=rank,
        source="Most Watched",
    )


def _chart(soup: BeautifulSoup, titles: Sequence[str], want_movies: bool) -> List[RankedItem]:
    section = find_section(soup, titles)
    if section is not None:
        elements = section.select(".chart-item")
    else:
        logger.warning(f"Section '{titles[0]}' not found, using page-wide chart items")
        elements = select_all(soup, ".chart-content .chart-item")

    items = []
    seen = set()
    for element in elements:
        item = parse_chart_item(element)
        if item is None or item.id in seen:
            continue
        if section is None and (item.kind == Kind.MOVIE) != want_movies:
            continue
        seen.add(item.id)
        items.append(item)
    return items


def extract_most_watched_series(soup: BeautifulSoup) -> List[RankedItem]:
    return _chart(soup, MOST_WATCHED_SERIES_TITLES, want_movies=False)


def extract_most_watched_movies(soup: BeautifulSoup) -> List[RankedItem]:
    return _chart(soup, MOST_WATCHED_MOVIES_TITLES, want_movies=True)


def _episode_label(text: Optional[str]) -> Optional[str]:
    """
    Examples:
        'EP:11' -> '11'
        'EP 3-4' -> '3-4'
        '12 Episodes' -> '12'
    """
    if not text:
        return None
    match = re.search(r'EP:?\s*([\d-]+)', text, re.IGNORECASE) or re.search(r'(\d+)\s*episodes?', text, re.IGNORECASE)
    return match.group(1) if match else None


def extract_fresh_drops(soup: BeautifulSoup) -> List[FreshDrop]:
    section = find_section(soup, FRESH_DROPS_TITLES)
    if section is not None:
        elements = section.select(SWIPER_CARDS)
    else:
        elements = select_all(soup, "article.post, .post")[:12]

    drops = []
    seen = set()
    for element in elements:
        item = parse_item_card(element)
        if item is None or item.id in seen:
            continue
        seen.add(item.id)
        season_text = select_text(element, ".post-ql") or ""
        season = re.search(r'Seasons?\s*([\d-]+)', season_text, re.IGNORECASE)
        drops.append(FreshDrop(
            **item.model_dump(),
            season=season.group(1) if season else None,
            latest_episode=_episode_label(select_text(element, ".year")),
        ))
    return drops


def extract_upcoming_episodes(soup: BeautifulSoup) -> List[UpcomingEpisode]:
    section = find_section(soup, UPCOMING_TITLES)
    if section is None:
        return []
    upcoming = []
    seen = set()
    for element in section.select(".swiper-slide li.post, .swiper-slide > li, li.post, article.post, .post"):
        item = parse_item_card(element)
        if item is None or item.id in seen:
            continue
        seen.add(item.id)
        countdown = element.select_one(".countdown-timer")
        upcoming.append(UpcomingEpisode(
            **item.model_dump(),
            next_episode=_episode_label(select_text(element, ".year")),
            countdown=(clean_text(countdown.get_text(" ")) or None) if countdown is not None else None,
            countdown_target=attr(countdown, "data-target"),
        ))
    return upcoming


def extract_on_air_series(soup: BeautifulSoup) -> List[ContentItem]:
    section = find_section(soup, ON_AIR_TITLES)
    if section is not None:
        return parse_item_cards(section.select(GRID_CARDS))
    cards = []
    for link in select_all(soup, 'a[href*="/series/"]'):
        card = closest(link, "article.post, .post, li")
        if card is not None and card not in cards:
            cards.append(card)
    return parse_item_cards(cards, limit=12)


def extract_new_arrivals(soup: BeautifulSoup) -> List[ContentItem]:
    section = find_section(soup, NEW_ARRIVALS_TITLES)
    if section is not None:
        return parse_item_cards(section.select(GRID_CARDS))
    return parse_item_cards(select_all(soup, "article.post, .post"), limit=12)


def extract_cartoon_highlights(soup: BeautifulSoup) -> List[ContentItem]:
    section = find_section(soup, CARTOON_TITLES)
    if section is not None:
        return parse_item_cards(section.select(SWIPER_CARDS))
    return parse_item_cards(select_all(soup, ".latest-movies-series-swiper-slide > li"))


def build_trending(series: List[RankedItem], movies: List[RankedItem]) -> List[RankedItem]:
    """Top six series then top four movies, ranked 1-10 in that order."""
    picked = series[:config.TRENDING_SERIES] + movies[:config.TRENDING_MOVIES]
    return [
        item.model_copy(update={"rank": rank, "source": "Trending"})
        for rank, item in enumerate(picked, start=1)
    ]


def spotlight_pool(trending: List[ContentItem], *others: List[ContentItem]) -> List[ContentItem]:
    """
    Trending items, topped up from the other lists. Movies from any list are
    pulled in first until the reserved movie positions can be filled, then
    any item tops the pool up to the spotlight size.
    """
    pool = list(trending)
    seen = {item.id for item in pool}
    movies_needed = len(config.SPOTLIGHT_MOVIE_POSITIONS) - sum(1 for item in pool if item.kind == Kind.MOVIE)

    def add(item: ContentItem) -> None:
        seen.add(item.id)
        pool.append(item)

    for items in others:
        for item in items:
            if movies_needed <= 0:
                break
            if item.kind == Kind.MOVIE and item.id not in seen:
                add(item)
                movies_needed -= 1

    for items in others:
        for item in items:
            if len(pool) >= config.SPOTLIGHT_SIZE:
                return pool
            if item.id not in seen:
                add(item)
    return pool


def arrange_spotlight(pool: List[ContentItem], rng: Optional[random.Random] = None) -> List[ContentItem]:
    """
    Movies go to positions 2 and 6 (1-based); every other position takes a
    series, falling back to leftover movies once series run out.
    """
    rng = rng or random.Random()
    movies = [item for item in pool if item.kind == Kind.MOVIE]
    series = [item for item in pool if item.kind != Kind.MOVIE]
    rng.shuffle(movies)
    rng.shuffle(series)

    reserved = {}
    for position in config.SPOTLIGHT_MOVIE_POSITIONS:
        if movies:
            reserved[position] = movies.pop(0)

    arranged = []
    for position in range(1, config.SPOTLIGHT_SIZE + 1):
        if position in reserved:
            arranged.append(reserved[position])
        elif series:
            arranged.append(series.pop(0))
        elif movies:
            arranged.append(movies.pop(0))
    return arranged


def fallback_backdrop(item: ContentItem) -> str:
    url = upgrade_poster(item.poster_url) or ""
    title = item.title.replace('"', '&quot;')
    return f'<div class="bghd"><img class="TPostBg lazyloaded" data-src="{url}" alt="{title}" src="{url}"></div>'


def extract_backdrop_markup(soup: BeautifulSoup) -> Optional[str]:
    """HD background block from an item page, protocol-relative URLs made absolute."""
    block = soup.select_one("div.bghd") or soup.select_one('div[class*="backdrop"], div[class*="bg-"], div.TPostBg')
    if block is None:
        return None
    markup = str(block)
    return markup.replace('src="//', 'src="https://')


def backdrop_for(item: ContentItem, html: Optional[str]) -> str:
    """Backdrop block from the item page, or the poster-derived fragment."""
    markup = extract_backdrop_markup(parse_html(html)) if html else None
    if not markup:
        logger.warning(f"Backdrop fallback for {item.title}")
        return fallback_backdrop(item)
    return markup


async def build_spotlight(pool: List[ContentItem], fetcher: Fetcher, rng: Optional[random.Random] = None) -> List[SpotlightItem]:
    arranged = arrange_spotlight(pool, rng)
    # Every item page is requested at once; a failed page comes back as None
    pages = await fetcher.fetch_many([item.url for item in arranged], concurrency=config.SPOTLIGHT_SIZE)
    spotlight = []
    for position, (item, html) in enumerate(zip(arranged, pages), start=1):
        data = item.model_dump(exclude={"rank", "source", "backdrop"})
        spotlight.append(SpotlightItem(
            **data,
            backdrop=backdrop_for(item, html),
            rank=position,
            source="Spotlight",
            spotlight_info=f"Top {position} trending on AnimeSalt",
        ))
    return spotlight


def _link_names(soup: BeautifulSoup, selector: str, segment: str) -> List[str]:
    names = []
    for link in select_all(soup, selector):
        name = clean_text(link.get_text(" ")) or attr(link.find("img"), "title", "alt")
        if not name:
            href = attr(link, "href") or ""
            if segment in href:
                slug = href.split(segment)[1].strip("/").split("/")[0]
                name = slug.replace("-", " ").title()
        if name and name not in names:
            names.append(name)
    return names


def extract_filters(soup: BeautifulSoup) -> HomeFilters:
    letters = _link_names(soup, "ul.az-lst a[href*='/letter/'], .az-lst a[href*='/letter/']", "/letter/")
    if not letters:
        letters = _link_names(soup, "a[href*='/letter/']", "/letter/")
    return HomeFilters(
        genres=sorted(_link_names(soup, "a[href*='/category/genre/']", "/genre/")) or list(DEFAULT_GENRES),
        languages=sorted(_link_names(soup, "a[href*='/category/language/']", "/language/")) or list(DEFAULT_LANGUAGES),
        letters=letters or list(config.DEFAULT_LETTERS),
        networks=sorted(_link_names(soup, "a[href*='/category/network/']", "/network/")) or list(config.DEFAULT_NETWORKS),
    )


def count_distinct(*sections: List[ContentItem]) -> int:
    merged: Dict[str, ContentItem] = {}
    for items in sections:
        for item in items:
            merged.setdefault(item.id, item)
    return len(merged)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def scrape_home(fetcher: Fetcher, rng: Optional[random.Random] = None, clock: Callable[[], float] = time.monotonic) -> HomePayload:
    """Aggregate the home page; a failed page fetch yields the static fallback payload."""
    started = clock()
    url = f"{config.BASE_URL}/"
    logger.info(f"Scraping home URL: {url}")
    try:
        html = await fetcher.fetch(url)
    except FetchError as e:
        logger.error(f"Home page unavailable, serving fallback data: {e}")
        return fallback_home()

    soup = parse_html(html)
    most_watched_series = extract_most_watched_series(soup)
    most_watched_movies = extract_most_watched_movies(soup)
    fresh_drops = extract_fresh_drops(soup)
    upcoming = extract_upcoming_episodes(soup)
    on_air = extract_on_air_series(soup)
    new_arrivals = extract_new_arrivals(soup)
    cartoons = extract_cartoon_highlights(soup)

    trending = build_trending(most_watched_series, most_watched_movies)
    pool = spotlight_pool(trending, most_watched_series, most_watched_movies, on_air, new_arrivals, fresh_drops, cartoons)
    spotlight = await build_spotlight(pool, fetcher, rng)

    sections = [spotlight, trending, most_watched_series, most_watched_movies, fresh_drops, upcoming, on_air, new_arrivals, cartoons]
    payload = HomePayload(
        spotlight=spotlight,
        trending=trending,
        most_watched_series=most_watched_series,
        most_watched_movies=most_watched_movies,
        fresh_drops=fresh_drops,
        upcoming_episodes=upcoming,
        on_air_series=on_air,
        new_arrivals=new_arrivals,
        cartoon_highlights=cartoons,
        filters=extract_filters(soup),
        meta=HomeMeta(
            source=config.BASE_URL,
            timestamp=_now(),
            processing_time_ms=int((clock() - started) * 1000),
            item_count=count_distinct(*sections),
        ),
    )
    logger.info(f"Home scraped: {payload.meta.item_count} distinct items, {len(spotlight)} spotlight")
    return payload


FALLBACK_ITEMS = [
    ("naruto-shippuden", "Naruto Shippuden", "kV27j3Nz4d5z8u6mN3EJw9RiLg2", Kind.SERIES, 2007),
    ("one-piece", "One Piece", "xxeV4QLiYP8jmqnwJ0f9xN8t2lE", Kind.SERIES, 1999),
    ("demon-slayer-kimetsu-no-yaiba", "Demon Slayer: Kimetsu no Yaiba", "h8Rb1dH4e3P7uQaQ8f4tJqkT2l0", Kind.SERIES, 2019),
    ("dragon-ball-super", "Dragon Ball Super", "1QvGuE3uG5S2c5r6v7q0vJ8l0lS", Kind.SERIES, 2015),
    ("death-note", "Death Note", "tCZFfYTIwrR7n94J6G14Y4hAFU6", Kind.SERIES, 2006),
    ("jujutsu-kaisen-0", "Jujutsu Kaisen 0", "23oJaeBh0FDk2mQ2P240PU9Xxfh", Kind.MOVIE, 2021),
    ("solo-leveling", "Solo Leveling", "rsOApVLbIQEcNkqSlOxNPyg3FyI", Kind.SERIES, 2024),
    ("attack-on-titan", "Attack on Titan", "i5vX0pJ5lX1v7g8f8Z8f8Z8f8Z8", Kind.SERIES, 2013),
    ("my-hero-academia", "My Hero Academia", "v9vX0v9X0v9X0v9X0v9X0v9X0", Kind.SERIES, 2016),
    ("chainsaw-man", "Chainsaw Man", "xdzLBZjCVSEgic7m7nJc4jNJZVW", Kind.SERIES, 2022),
]


def fallback_home() -> HomePayload:
    """Static sample payload served when the home page cannot be fetched."""
    spotlight = []
    for rank, (content_id, title, poster, kind, year) in enumerate(FALLBACK_ITEMS, start=1):
        path = "movies" if kind == Kind.MOVIE else "series"
        item = ContentItem(
            id=content_id,
            title=title,
            url=f"{config.BASE_URL}/{path}/{content_id}/",
            poster_url=f"https://image.tmdb.org/t/p/w500/{poster}.jpg",
            kind=kind,
            sub_category=sub_category_for(kind, title),
            year=year,
        )
        spotlight.append(SpotlightItem(
            **item.model_dump(exclude={"backdrop"}),
            backdrop=fallback_backdrop(item),
            rank=rank,
            source="Fallback",
            spotlight_info=f"Top {rank} trending on AnimeSalt",
        ))
    trending = [RankedItem(**item.model_dump(exclude={"backdrop", "spotlight_info"}), backdrop=None) for item in spotlight]
    return HomePayload(
        spotlight=spotlight,
        trending=trending,
        filters=HomeFilters(
            genres=list(DEFAULT_GENRES),
            languages=list(DEFAULT_LANGUAGES),
            letters=list(config.DEFAULT_LETTERS),
            networks=list(config.DEFAULT_NETWORKS),
        ),
        meta=HomeMeta(
            source=config.BASE_URL,
            timestamp=_now(),
            item_count=len(spotlight),
            is_fallback=True,
        ),
    )
