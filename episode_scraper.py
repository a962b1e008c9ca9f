# episode_scraper.py
"""
Episode list extraction from an item page.

Anchors come from one primary selector set; a secondary set is tried only
when the primary one finds nothing. Episodes after the sub/dub separator, or
whose card says "sub only", are flagged sub-only. Movies get a single
synthetic episode.
"""
import logging
import re
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from availability import parse_episode_code
from document import clean_text, closest, document_positions, parse_html, select_all
from fetcher import Fetcher
from info_scraper import fetch_content_page, resolve_canonical_url
from models import Episode, EpisodeList, Kind, Season
from scraper import kind_from_url, normalize_url, watch_url

logger = logging.getLogger(__name__)

PRIMARY_SELECTORS = 'a[href*="/episode/"], .episode-link a, .episodes-list a, [class*="episode"] a[href*="-1x"]'
SECONDARY_SELECTORS = [
    '.post a[href*="-1x"]',
    '.TPost a[href*="/episode/"]',
    'article a[href*="-1x"]',
]
SEPARATOR_SELECTOR = '.episodes-separator, [class*="episodes-separator"], .sub-dub-separator'
EPISODE_CONTAINER = 'li, article, .post, [class*="episode-item"]'


def episode_numbers(href: str, text: str) -> Optional[Tuple[int, int]]:
    """
    (season, number) from the URL suffix, else an 'EP:N' marker, else the
    first number in the link text. Season defaults to 1 for text matches.
    Examples:
        ('/episode/naruto-2x5/', 'Episode 5') -> (2, 5)
        ('/watch?id=9', 'EP: 12') -> (1, 12)
        ('/watch?id=9', 'Part 3') -> (1, 3)
        ('/watch?id=9', 'Trailer') -> None
    """
    code = parse_episode_code(href)
    if code:
        return code
    match = re.search(r'EP[:\s]*(\d+)', text, re.IGNORECASE)
    if match:
        return 1, int(match.group(1))
    match = re.search(r'(\d+)', text)
    if match:
        return 1, int(match.group(1))
    return None


def has_sub_only_marker(anchor: Tag) -> bool:
    container = closest(anchor, EPISODE_CONTAINER)
    # A container holding several episodes says nothing about this one
    if container is None or len(container.select("a[href]")) > 1:
        container = anchor
    return 'sub only' in clean_text(container.get_text(" ")).lower()


def _collect(
    anchors: List[Tag],
    content_id: str,
    url_only: bool,
    separator: Optional[Tag],
    positions: Dict[int, int],
) -> List[Episode]:
    episodes = []
    seen = set()
    separator_index = positions.get(id(separator)) if separator is not None else None

    for anchor in anchors:
        href = anchor.get("href")
        if not href:
            continue
        text = clean_text(anchor.get_text(" "))
        numbers = parse_episode_code(href) if url_only else episode_numbers(href, text)
        if numbers is None:
            continue
        season, number = numbers
        episode_id = f"{content_id}-{season}x{number}"
        if episode_id in seen:
            continue
        seen.add(episode_id)

        is_sub_only = separator_index is not None and positions.get(id(anchor), -1) > separator_index
        if not is_sub_only and has_sub_only_marker(anchor):
            is_sub_only = True

        episodes.append(Episode(
            id=episode_id,
            season=season,
            number=number,
            title=text or f"Episode {number}",
            url=normalize_url(href),
            is_sub_only=is_sub_only,
            has_dub=not is_sub_only,
            has_sub=True,
        ))
    return episodes


def group_seasons(episodes: List[Episode]) -> List[Season]:
    seasons: Dict[int, List[Episode]] = {}
    for episode in episodes:
        seasons.setdefault(episode.season, []).append(episode)
    result = []
    for number in sorted(seasons):
        season_episodes = sorted(seasons[number], key=lambda e: e.number)
        result.append(Season(
            season=number,
            episode_count=len(season_episodes),
            start_episode=season_episodes[0].number,
            end_episode=season_episodes[-1].number,
        ))
    return result


def movie_episodes(content_id: str, url: str) -> EpisodeList:
    episode_id = f"{content_id}-1x1"
    episode = Episode(id=episode_id, season=1, number=1, title="Movie", url=watch_url(episode_id))
    return EpisodeList(
        id=content_id,
        url=url,
        kind=Kind.MOVIE,
        episodes=[episode],
        seasons=group_seasons([episode]),
        total_episodes=1,
        total_seasons=1,
    )


def parse_episodes(soup: BeautifulSoup, content_id: str, url: str) -> EpisodeList:
    url = resolve_canonical_url(soup, url, content_id)
    kind = kind_from_url(url)
    if kind == Kind.MOVIE:
        return movie_episodes(content_id, url)

    separator = soup.select_one(SEPARATOR_SELECTOR)
    positions = document_positions(soup)

    episodes = _collect(select_all(soup, PRIMARY_SELECTORS), content_id, False, separator, positions)
    if not episodes:
        logger.info(f"No episodes with primary selectors for {content_id}, trying fallbacks")
        for selector in SECONDARY_SELECTORS:
            episodes = _collect(select_all(soup, selector), content_id, True, separator, positions)
            if episodes:
                break

    episodes.sort(key=lambda e: (e.season, e.number))
    seasons = group_seasons(episodes)
    return EpisodeList(
        id=content_id,
        url=url,
        kind=kind,
        episodes=episodes,
        seasons=seasons,
        total_episodes=len(episodes),
        total_seasons=len(seasons),
        separator_found=separator is not None,
        sub_only_episodes=sum(1 for e in episodes if e.is_sub_only),
    )


async def scrape_episodes(content_id: str, fetcher: Fetcher) -> EpisodeList:
    url, html = await fetch_content_page(content_id, fetcher)
    logger.info(f"Scraping episode list URL: {url}")
    result = parse_episodes(parse_html(html), content_id, url)
    logger.info(f"Found {result.total_episodes} episodes in {result.total_seasons} seasons for {content_id}")
    return result
