# info_scraper.py
"""
Item detail extraction from /series/{id}/, /movies/{id}/ or /cartoon/{id}/.

Each attribute is read independently through its own ordered list of
strategies; the first non-empty result wins.
"""
import logging
import re
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

import config
from availability import is_sub_only_tag, language_objects, parse_year
from document import (
    attr, clean_text, first_match, meta_content, page_text, parse_html,
    select_all, select_attr, select_first_nonempty, select_text,
)
from errors import ExtractionError, FetchError
from fetcher import Fetcher
from models import ContentDetail, ContentItem, Genre, Kind, Season
from scraper import (
    content_url, extract_id_from_url, genre_from_slug, kind_from_url,
    normalize_url, parse_item_cards, sub_category_for, watch_url,
)

logger = logging.getLogger(__name__)

TITLE_SELECTORS = ["h1.entry-title", "h1.title", ".anime-title h1", ".TPost .Title", "h1"]
POSTER_SELECTORS = [".anime-poster img", ".poster img", ".TPost .Image img", ".post-thumbnail img"]
BACKDROP_SELECTORS = [".TPostBg", "#w_content .TPostBg", ".bghd img"]
SYNOPSIS_SELECTORS = [".description p", ".description", ".synopsis", ".entry-content p", ".Description p", "article p"]
RELATED_CONTAINERS = [".related-anime", ".similar-anime", ".recommendations", ".related-posts"]
RELATED_CARD_SELECTORS = ['[class*="related"] .post', '[class*="recommend"] .post']
GENERIC_CARD_SELECTORS = ["article.post", "li.post", ".anime-card"]

SEASON_LINE = re.compile(
    r'Season\s+(\d+)\s*[•·|]\s*(\d+)\s*-\s*(\d+)\s*\((\d+)\)((?:\s*[\(\[][^\)\]]*[\)\]])*)',
    re.IGNORECASE,
)


def extract_title(soup: BeautifulSoup) -> Optional[str]:
    return first_match(soup, [
        *[lambda s, sel=sel: select_text(s, sel) for sel in TITLE_SELECTORS],
        lambda s: meta_content(s, "og:title"),
    ])


def extract_poster(soup: BeautifulSoup) -> Optional[str]:
    poster = first_match(soup, [
        *[lambda s, sel=sel: select_attr(s, sel, "data-src", "data-lazy-src", "src") for sel in POSTER_SELECTORS],
        lambda s: meta_content(s, "og:image"),
    ])
    return normalize_url(poster)


def extract_backdrop(soup: BeautifulSoup) -> Optional[str]:
    """Background element, lazy-load attribute first, then src, then og:image."""
    backdrop = first_match(soup, [
        *[lambda s, sel=sel: select_attr(s, sel, "data-src") for sel in BACKDROP_SELECTORS],
        *[lambda s, sel=sel: select_attr(s, sel, "src") for sel in BACKDROP_SELECTORS],
        lambda s: meta_content(s, "og:image"),
    ])
    return normalize_url(backdrop)


def _clean_synopsis(text: Optional[str]) -> Optional[str]:
    text = clean_text(text)
    text = re.sub(r'^(?:Description|Synopsis|Overview)\s*:\s*', '', text, flags=re.IGNORECASE)
    if len(text) <= config.SYNOPSIS_MIN_LENGTH:
        return None
    if re.search(r'\bread more\b', text, re.IGNORECASE) and len(text) < 120:
        return None
    return text


def extract_synopsis(soup: BeautifulSoup) -> Optional[str]:
    def from_paragraphs(s):
        for selector in SYNOPSIS_SELECTORS:
            for element in select_all(s, selector):
                text = _clean_synopsis(element.get_text(" "))
                if text:
                    return text
        return None

    synopsis = first_match(soup, [
        from_paragraphs,
        lambda s: clean_text(meta_content(s, "description")),
        lambda s: clean_text(meta_content(s, "og:description")),
    ])
    if not synopsis:
        return None
    synopsis = re.sub(r'^(?:Description|Synopsis|Overview)\s*:\s*', '', synopsis, flags=re.IGNORECASE)
    return synopsis[:config.SYNOPSIS_MAX_LENGTH]


def _count(pattern: str, text: str) -> Optional[int]:
    match = re.search(pattern, text, re.IGNORECASE)
    return int(match.group(1)) if match else None


def extract_metadata(soup: BeautifulSoup) -> dict:
    """Season/episode counts, runtime and year from whole-page text."""
    text = page_text(soup)
    duration = None
    duration_match = re.search(r'(\d+)\s*min\b', text, re.IGNORECASE)
    if duration_match:
        duration = f"{duration_match.group(1)} min"

    year_text = select_text(soup, ".year, .date, [class*='year'], .released")
    year = parse_year(year_text) or parse_year(text)

    return {
        "total_seasons": _count(r'(\d+)\s*Seasons?\b', text),
        "total_episodes": _count(r'(\d+)\s*Episodes?\b', text),
        "duration": duration,
        "year": year,
    }


def extract_genres(soup: BeautifulSoup) -> List[Genre]:
    genres = []
    seen = set()
    for link in select_all(soup, 'a[href*="/category/genre/"], .genres a, [class*="genre"] a'):
        href = attr(link, "href") or ""
        slug = href.split("/genre/")[1].strip("/").split("/")[0] if "/genre/" in href else ""
        genre = genre_from_slug(slug)
        if genre is None or genre.id in seen:
            continue
        seen.add(genre.id)
        genres.append(genre)
    return genres


def extract_language_codes(soup: BeautifulSoup) -> List[str]:
    codes = []
    for link in select_all(soup, 'a[href*="/category/language/"]'):
        href = attr(link, "href") or ""
        slug = href.split("/language/")[1].strip("/").split("/")[0].lower()
        slug = re.sub(r'-(?:language|dub|dubbed)$', '', slug)
        if slug in config.LANGUAGES and slug not in codes:
            codes.append(slug)
    return codes


def extract_networks(soup: BeautifulSoup) -> List[str]:
    networks = []
    for link in select_all(soup, 'a[href*="/network/"]'):
        name = clean_text(link.get_text(" ")) or attr(link.find("img"), "alt", "title")
        if not name:
            href = attr(link, "href") or ""
            name = href.split("/network/")[1].strip("/").replace("-", " ").title()
        if name and name not in networks:
            networks.append(name)
    return networks


def extract_other_names(soup: BeautifulSoup) -> List[str]:
    text = select_text(soup, ".other-names, .alternative-title, .alt-title")
    if not text:
        return []
    text = re.sub(r'^(?:Other Names?|Also Known As)\s*:\s*', '', text, flags=re.IGNORECASE)
    return [name.strip() for name in re.split(r'[,;/]', text) if name.strip()]


def parse_season_lines(text: str) -> List[Season]:
    """
    Seasons from lines like 'Season 2 • 25-48 (24)'. Seasons tagged as
    sub-only or raw are dropped.
    Examples:
        'Season 1 • 1-24 (24) Season 2 • 25-48 (24) (Sub Only)' -> [Season 1]
    """
    seasons = []
    seen = set()
    for match in SEASON_LINE.finditer(text):
        number = int(match.group(1))
        tag = clean_text(match.group(5)) or None
        if number in seen:
            continue
        seen.add(number)
        if is_sub_only_tag(tag):
            logger.debug(f"Dropping sub-only season {number} ({tag})")
            continue
        seasons.append(Season(
            season=number,
            start_episode=int(match.group(2)),
            end_episode=int(match.group(3)),
            episode_count=int(match.group(4)),
            tag=tag,
        ))
    return seasons


def split_seasons(total_seasons: Optional[int], total_episodes: Optional[int]) -> List[Season]:
    """
    Spread a stated episode count evenly across a stated season count.
    Examples:
        (2, 48) -> Season 1 1-24, Season 2 25-48
        (3, 10) -> Season 1 1-4, Season 2 5-8, Season 3 9-10
    """
    if not total_seasons or not total_episodes or total_episodes < total_seasons:
        return []
    per_season = -(-total_episodes // total_seasons)
    seasons = []
    for number in range(1, total_seasons + 1):
        start = (number - 1) * per_season + 1
        end = min(number * per_season, total_episodes)
        if start > end:
            break
        seasons.append(Season(season=number, start_episode=start, end_episode=end, episode_count=end - start + 1))
    return seasons


def extract_related(soup: BeautifulSoup, content_id: str, kind: Kind, limit: int = config.MAX_RELATED) -> List[ContentItem]:
    """Recommended section first, else any item cards on the page."""
    def from_containers(s):
        cards = []
        for container in select_all(s, ", ".join(RELATED_CONTAINERS)):
            cards.extend(container.select("article, li, .post, .anime-card"))
        return cards

    cards = first_match(soup, [
        from_containers,
        lambda s: select_first_nonempty(s, RELATED_CARD_SELECTORS),
        lambda s: select_first_nonempty(s, GENERIC_CARD_SELECTORS),
    ]) or []
    related = [
        item for item in parse_item_cards(cards)
        if item.id != content_id and item.kind == kind
    ]
    return related[:limit]


def resolve_canonical_url(soup: BeautifulSoup, fetched_url: str, content_id: str) -> str:
    canonical = normalize_url(
        select_attr(soup, 'link[rel="canonical"]', "href") or meta_content(soup, "og:url")
    )
    if canonical and extract_id_from_url(canonical) == content_id:
        return canonical
    return fetched_url


def parse_info(soup: BeautifulSoup, content_id: str, url: str) -> ContentDetail:
    """Build a ContentDetail from an item page. Raises ExtractionError without a title."""
    url = resolve_canonical_url(soup, url, content_id)
    kind = kind_from_url(url)

    title = extract_title(soup)
    if not title:
        raise ExtractionError(f"Title not found for {content_id}", url=url)
    title = re.sub(r'\s*[-|–]\s*(?:AnimeSalt|Watch).*$', '', title, flags=re.IGNORECASE).strip() or title

    metadata = extract_metadata(soup)
    seasons = []
    if kind != Kind.MOVIE:
        seasons = parse_season_lines(page_text(soup))
        if not seasons and not SEASON_LINE.search(page_text(soup)):
            seasons = split_seasons(metadata["total_seasons"], metadata["total_episodes"])

    return ContentDetail(
        id=content_id,
        title=title,
        url=url,
        poster_url=extract_poster(soup),
        backdrop=extract_backdrop(soup),
        kind=kind,
        sub_category=sub_category_for(kind, title),
        year=metadata["year"],
        genres=extract_genres(soup),
        languages=language_objects(extract_language_codes(soup)),
        related_items=extract_related(soup, content_id, kind),
        synopsis=extract_synopsis(soup),
        other_names=extract_other_names(soup),
        duration=metadata["duration"],
        total_seasons=metadata["total_seasons"],
        total_episodes=metadata["total_episodes"],
        networks=extract_networks(soup),
        seasons=seasons,
    )


async def fetch_content_page(content_id: str, fetcher: Fetcher) -> Tuple[str, str]:
    """
    Fetch the item page trying series first, then movies, then cartoon.
    Only a 404 moves on to the next kind; other failures propagate. Returns
    the URL the site finally served, so a redirect corrects the guessed kind.
    """
    last_error = None
    for kind in (Kind.SERIES, Kind.MOVIE, Kind.CARTOON):
        url = content_url(content_id, kind)
        try:
            return await fetcher.fetch_page(url)
        except FetchError as e:
            if e.status_code != 404:
                raise
            logger.info(f"{content_id} not found at {url}, trying next kind")
            last_error = e
    raise last_error


async def scrape_info(content_id: str, fetcher: Fetcher) -> ContentDetail:
    url, html = await fetch_content_page(content_id, fetcher)
    logger.info(f"Scraping item detail URL: {url}")
    detail = parse_info(parse_html(html), content_id, url)

    if not detail.backdrop and detail.kind != Kind.MOVIE:
        # The first episode's watch page usually carries the HD background
        try:
            watch_html = await fetcher.fetch(watch_url(f"{content_id}-1x1"))
            backdrop = extract_backdrop(parse_html(watch_html))
            if backdrop:
                detail = detail.model_copy(update={"backdrop": backdrop})
        except FetchError as e:
            logger.warning(f"No backdrop for {content_id}: {e}")

    logger.info(f"Scraped {detail.kind.value} {content_id}: {len(detail.seasons)} seasons, {len(detail.genres)} genres")
    return detail
