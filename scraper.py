# scraper.py
"""
Shared helpers for the animesalt.cc extractors:
- URL normalization and id/kind detection from canonical URLs
- Item card parsing used by the home, listing, info and stream pages
- Quality/host detection for download links
- Pagination of listing results
"""
import logging
import re
from typing import List, Optional, Tuple

from bs4 import Tag

import config
from availability import parse_year
from document import attr, clean_text, parse_html, select_attr, select_first_nonempty, select_text
from fetcher import Fetcher
from models import ContentItem, Genre, Kind, ListingPage

logger = logging.getLogger(__name__)

BASE_URL = config.BASE_URL

KIND_PATHS = {
    Kind.SERIES: "series",
    Kind.MOVIE: "movies",
    Kind.CARTOON: "cartoon",
}

# Listing card selectors, tried in order
ITEM_CARD_SELECTORS = [
    "ul.post-lst li",
    "article.post",
    ".movies .tt",
    ".anime-card",
    "li.post",
]


def normalize_url(url: Optional[str]) -> Optional[str]:
    """
    Make a URL absolute and HTTPS-qualified.
    Examples:
        //image.tmdb.org/t/p/w500/a.jpg -> https://image.tmdb.org/t/p/w500/a.jpg
        /series/naruto/ -> https://animesalt.cc/series/naruto/
        animesalt.cc/movies/your-name/ -> https://animesalt.cc/movies/your-name/
        https://animesalt.cc/series/naruto/ -> (unchanged)
    """
    if not url:
        return None
    url = url.strip()
    if not url:
        return None
    if url.startswith("//"):
        return "https:" + url
    if url.startswith("/"):
        return BASE_URL + url
    if url.startswith("http://"):
        return "https://" + url[len("http://"):]
    if url.startswith("https://"):
        return url
    if url.startswith(config.SITE_HOST):
        return "https://" + url
    if re.match(r'^[a-z][a-z0-9+.-]*:', url, re.IGNORECASE):
        # data:, javascript: and friends are not fetchable pages
        return None
    return BASE_URL + "/" + url.lstrip("/")


def extract_id_from_url(url: Optional[str]) -> Optional[str]:
    """
    Extract the content or episode id from a site URL.
    Examples:
        https://animesalt.cc/series/naruto-shippuden/ -> naruto-shippuden
        /movies/your-name -> your-name
        /episode/naruto-shippuden-2x15/ -> naruto-shippuden-2x15
        https://animesalt.cc/category/genre/action/ -> None
    """
    if not url:
        return None
    url = url.split("?")[0].split("#")[0]
    match = re.search(r'/(?:series|movies|cartoon)/([^/]+)/?$', url)
    if match:
        return match.group(1)
    match = re.search(r'/(?:episode|watch)/([^/]+-\d+x\d+)/?$', url)
    if match:
        return match.group(1)
    return None


def kind_from_url(url: Optional[str]) -> Kind:
    """
    Examples:
        /movies/your-name/ -> Kind.MOVIE
        /cartoon/ben-10/ -> Kind.CARTOON
        /series/naruto/ -> Kind.SERIES
    """
    url = (url or "").lower()
    if "/movies/" in url:
        return Kind.MOVIE
    if "/cartoon/" in url:
        return Kind.CARTOON
    return Kind.SERIES


def content_url(content_id: str, kind: Kind = Kind.SERIES) -> str:
    return f"{BASE_URL}/{KIND_PATHS[kind]}/{content_id}/"


def watch_url(episode_id: str) -> str:
    return f"{BASE_URL}/watch/{episode_id}/"


def sub_category_for(kind: Kind, text: str = "") -> str:
    """
    Examples:
        (Kind.MOVIE, '') -> 'Movie'
        (Kind.SERIES, 'Naruto OVA') -> 'OVA/Special'
        (Kind.SERIES, 'Some ONA') -> 'ONA'
    """
    if kind == Kind.MOVIE:
        return "Movie"
    lowered = text.lower()
    if re.search(r'\bova\b|\bspecial\b', lowered):
        return "OVA/Special"
    if re.search(r'\bona\b', lowered):
        return "ONA"
    if kind == Kind.CARTOON:
        return "Series"
    return "TV Series"


def upgrade_poster(url: Optional[str]) -> Optional[str]:
    """
    Examples:
        https://image.tmdb.org/t/p/w500/x.jpg -> https://image.tmdb.org/t/p/w1280/x.jpg
    """
    if not url:
        return None
    return url.replace("/w500/", "/w1280/").replace("/w342/", "/w1280/")


def genre_name(slug: str) -> str:
    """
    Examples:
        martial-arts -> Martial Arts
        sci-fi -> Sci-Fi
    """
    if slug == "sci-fi":
        return "Sci-Fi"
    return " ".join(part.capitalize() for part in slug.split("-"))


def genre_from_slug(slug: Optional[str]) -> Optional[Genre]:
    """Genre for an allow-listed slug, None for anything else."""
    if not slug:
        return None
    slug = slug.strip("/").lower()
    if slug not in config.VALID_GENRES:
        return None
    return Genre(id=slug, name=genre_name(slug), icon=config.GENRE_ICONS.get(slug, config.DEFAULT_GENRE_ICON))


def image_url(element: Optional[Tag]) -> Optional[str]:
    """Poster URL from an img, preferring lazy-load attributes."""
    if element is None:
        return None
    img = element if element.name == "img" else element.find("img")
    src = attr(img, "data-src", "data-lazy-src", "src")
    if src and src.startswith("data:"):
        src = attr(img, "data-src", "data-lazy-src")
    return normalize_url(src)


def clean_title(text: Optional[str]) -> str:
    """
    Examples:
        'Image Naruto Shippuden' -> 'Naruto Shippuden'
    """
    return re.sub(r'^Image\s+', '', clean_text(text), flags=re.IGNORECASE)


def parse_item_card(element: Tag) -> Optional[ContentItem]:
    """Turn one listing card into a ContentItem, or None if it has no usable link."""
    link = (
        select_attr(element, "a.lnk-blk", "href")
        or select_attr(element, 'a[href*="/series/"]', "href")
        or select_attr(element, 'a[href*="/movies/"]', "href")
        or select_attr(element, 'a[href*="/cartoon/"]', "href")
        or select_attr(element, "a", "href")
        or (attr(element, "href") if element.name == "a" else None)
    )
    link = normalize_url(link)
    content_id = extract_id_from_url(link)
    if not link or not content_id:
        logger.debug(f"Skipping card without content link: {link}")
        return None

    title = clean_title(select_attr(element, "img", "alt"))
    if not title:
        title = select_text(element, ".entry-title, .title, .Title, .chart-title") or ""
    if not title:
        title = genre_name(content_id)

    kind = kind_from_url(link)
    card_text = clean_text(element.get_text(" "))

    episode = None
    episode_match = re.search(r'EP[:\s]*(\d+)', card_text, re.IGNORECASE)
    if episode_match:
        episode = int(episode_match.group(1))

    year = parse_year(card_text)
    if year is None:
        classes = " ".join(element.get("class", []))
        annee = re.search(r'annee-(\d{4})', classes)
        if annee:
            year = parse_year(annee.group(1))

    genres = []
    for slug in re.findall(r'category-([a-z-]+)', " ".join(element.get("class", []))):
        genre = genre_from_slug(slug)
        if genre and genre.id not in [g.id for g in genres]:
            genres.append(genre)

    return ContentItem(
        id=content_id,
        title=title,
        url=link,
        poster_url=image_url(element),
        kind=kind,
        sub_category=sub_category_for(kind, title),
        year=year,
        episode=episode,
        genres=genres,
    )


def parse_item_cards(elements: List[Tag], limit: Optional[int] = None) -> List[ContentItem]:
    """Parse cards, dropping duplicates by id while keeping first-seen order."""
    items = []
    seen = set()
    for element in elements:
        item = parse_item_card(element)
        if item is None or item.id in seen:
            continue
        seen.add(item.id)
        items.append(item)
        if limit and len(items) >= limit:
            break
    return items


def parse_listing(soup: Tag, selectors: List[str] = ITEM_CARD_SELECTORS) -> List[ContentItem]:
    """Item cards from a listing page (movies, search or genre)."""
    cards = select_first_nonempty(soup, selectors)
    if not cards:
        logger.warning("No item cards found on the page")
    return parse_item_cards(cards)


async def scrape_listing(url: str, fetcher: Fetcher, selectors: List[str] = ITEM_CARD_SELECTORS) -> Tuple[List[ContentItem], bool]:
    """Items on one listing page and whether the site has a next page."""
    logger.info(f"Scraping listing URL: {url}")
    soup = parse_html(await fetcher.fetch(url))
    items = parse_listing(soup, selectors)
    logger.info(f"Scraped {len(items)} items from {url}")
    return items, has_next_page(soup)


def extract_quality(text: str, url: str = "") -> str:
    """
    Examples:
        ('Download 1080p', '') -> '1080p'
        ('Full HD', '') -> '1080p'
        ('Download', '') -> 'HD'
    """
    search_text = f"{text} {url}".lower()
    for quality, keywords in config.QUALITY_PATTERNS:
        for keyword in keywords:
            if re.search(r'(?<![a-z0-9])' + re.escape(keyword) + r'(?![a-z0-9])', search_text):
                return quality
    return "HD"


def extract_host(url: str) -> str:
    """
    Examples:
        https://drive.google.com/file/d/x -> Google Drive
        https://mega.nz/file/x -> Mega
        https://files.example.com/x -> files.example.com
    """
    lowered = (url or "").lower()
    for pattern, name in config.DOWNLOAD_HOSTS:
        if pattern in lowered:
            return name
    match = re.match(r'https?://(?:www\.)?([^/]+)', lowered)
    return match.group(1) if match else "Unknown"


def paginate(items: List[ContentItem], page: int, page_size: int) -> ListingPage:
    page = max(1, page)
    page_size = min(max(1, page_size), config.MAX_PAGE_SIZE)
    start = (page - 1) * page_size
    return ListingPage(
        items=items[start:start + page_size],
        page=page,
        page_size=page_size,
        total=len(items),
        has_next=start + page_size < len(items),
    )


def has_next_page(soup: Tag) -> bool:
    return bool(soup.select_one("a.next, .pagination a.next, a.next.page-numbers, .nav-links a.next"))
