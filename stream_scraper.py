# stream_scraper.py
"""
Stream and download link extraction from /watch/{episode_id}/.

Sources come from the server grid when it yields anything; otherwise four
fallback scans run in order (data attributes, keyword iframes, known hosts,
embed links). A URL is never added twice, whichever scan found it first.
"""
import logging
import re
from typing import List, Optional, Set

from bs4 import BeautifulSoup, Tag

import config
from availability import (
    ServerAvailability, build_availability, classify_servers, parse_episode_code,
    player_name, server_role,
)
from document import attr, clean_text, closest, page_text, parse_html, select_all, select_text
from fetcher import Fetcher
from models import ContentItem, DownloadLink, StreamResult, StreamSource
from scraper import extract_host, extract_quality, normalize_url, parse_item_cards, watch_url

logger = logging.getLogger(__name__)

SERVER_BUTTONS = ".server-grid .server-btn"
PLAYER_CONTAINERS = ".video-container, .player-container"
DATA_ATTRIBUTES = ("data-src", "data-url", "data-video", "data-stream")
KEYWORD_IFRAMES = 'iframe[src*="stream"], iframe[src*="player"], iframe[src*="video"]'
EMBED_LINKS = 'a[href*="/embed/"], a[href*="/e/"], a[href*="?v="]'
DOWNLOAD_ANCHORS = 'a[href*="download"], a[href*="dl="], a[href*="drive.google"], a[href*="mega"], a[href*="1fichier"], a[href*="zippy"]'
DOWNLOAD_BUTTONS = '.download-btn, .download-button, .dl-btn, a.btn-download, .TDDownloads a'
RELATED_CONTAINERS = '.related-anime, .recommendations, [class*="related"], .similar-anime'
BACKDROP_ELEMENTS = '.TPostBg, .bghd, [class*="backdrop"]'
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif", ".avif")


def classify_source_type(url: str) -> str:
    """
    Examples:
        https://cdn.example/master.m3u8 -> hls
        https://cdn.example/video.mp4 -> mp4
        https://player.example/embed/1 -> iframe
    """
    lowered = url.lower()
    if ".m3u8" in lowered:
        return "hls"
    if ".mp4" in lowered:
        return "mp4"
    return "iframe"


def _playable(url: Optional[str]) -> Optional[str]:
    url = normalize_url(url)
    if url and url.startswith("http"):
        return url
    return None


def server_labels(buttons: List[Tag]) -> List[str]:
    return [(select_text(button, ".server-info") or "").lower() for button in buttons]


def button_source_url(button: Tag) -> Optional[str]:
    """Media element inside the button, else the nearest player container."""
    for media in select_all(button, "video, iframe"):
        url = _playable(attr(media, "src", "data-src"))
        if url:
            return url
    container = closest(button, PLAYER_CONTAINERS)
    if container is None:
        return None
    for media in select_all(container, "video, iframe, [data-src]"):
        url = _playable(attr(media, "src", "data-src"))
        if url:
            return url
        source = media.find("source")
        url = _playable(attr(source, "src"))
        if url:
            return url
    return None


class SourceCollector:
    """Accumulates stream sources with one URL set shared by every strategy."""

    def __init__(self, servers: ServerAvailability):
        self.servers = servers
        self.sources: List[StreamSource] = []
        self.seen: Set[str] = set()

    def add(self, url: Optional[str], source_type: Optional[str] = None, position: Optional[int] = None) -> bool:
        if not url or url in self.seen:
            return False
        self.seen.add(url)
        position = position or len(self.sources) + 1
        labels = self.servers.labels
        label = labels[position - 1] if position <= len(labels) else ""
        role = server_role(label) if label else "sub"
        if self.servers.is_regional:
            role = "regional"
        self.sources.append(StreamSource(
            player=player_name(position, role, self.servers.is_regional),
            url=url,
            is_sub=role == "sub",
            is_dub=role == "dub",
            is_regional=self.servers.is_regional,
            type=source_type or classify_source_type(url),
        ))
        return True


def from_server_grid(soup: BeautifulSoup, collector: SourceCollector) -> None:
    for position, button in enumerate(select_all(soup, SERVER_BUTTONS), start=1):
        collector.add(button_source_url(button), position=position)


def is_image_url(url: str) -> bool:
    """
    Examples:
        https://image.tmdb.org/t/p/original/bg.jpg -> True
        https://cdn.example/poster.webp?w=300 -> True
        https://cdn.example/master.m3u8 -> False
    """
    path = url.lower().split("?")[0].split("#")[0]
    return path.endswith(IMAGE_EXTENSIONS)


def from_data_attributes(soup: BeautifulSoup, collector: SourceCollector) -> None:
    for element in select_all(soup, ", ".join(f"[{name}]" for name in DATA_ATTRIBUTES)):
        # Lazy-loaded images and backdrops share the data-src attribute
        if element.name == "img" or element.css.match(BACKDROP_ELEMENTS):
            continue
        url = _playable(attr(element, *DATA_ATTRIBUTES))
        if url and not is_image_url(url):
            collector.add(url)


def from_keyword_iframes(soup: BeautifulSoup, collector: SourceCollector) -> None:
    for iframe in select_all(soup, KEYWORD_IFRAMES):
        collector.add(_playable(attr(iframe, "src")))


def from_known_hosts(soup: BeautifulSoup, collector: SourceCollector) -> None:
    for domain in config.STREAMING_DOMAINS:
        for element in select_all(soup, f'a[href*="{domain}"], iframe[src*="{domain}"]'):
            collector.add(_playable(attr(element, "href", "src")), source_type="direct")


def from_embed_links(soup: BeautifulSoup, collector: SourceCollector) -> None:
    for link in select_all(soup, EMBED_LINKS):
        collector.add(_playable(attr(link, "href")), source_type="embed")


FALLBACK_STRATEGIES = [from_data_attributes, from_keyword_iframes, from_known_hosts, from_embed_links]


def extract_sources(soup: BeautifulSoup, servers: ServerAvailability) -> List[StreamSource]:
    collector = SourceCollector(servers)
    from_server_grid(soup, collector)
    if not collector.sources:
        logger.info("Server grid yielded no sources, running fallback scans")
        for strategy in FALLBACK_STRATEGIES:
            strategy(soup, collector)
    return collector.sources


def extract_download_links(soup: BeautifulSoup) -> List[DownloadLink]:
    downloads = []
    seen = set()
    for link in select_all(soup, DOWNLOAD_ANCHORS):
        url = _playable(attr(link, "href"))
        if not url or url in seen:
            continue
        seen.add(url)
        text = clean_text(link.get_text(" "))
        quality = extract_quality(text, url)
        downloads.append(DownloadLink(
            quality=quality,
            host=extract_host(url),
            url=url,
            text=text or f"Download {quality}",
        ))
    for link in select_all(soup, DOWNLOAD_BUTTONS):
        anchor = link if link.name == "a" else link.find("a")
        url = _playable(attr(anchor, "href"))
        if not url or url in seen:
            continue
        seen.add(url)
        downloads.append(DownloadLink(
            quality="Auto",
            host="Direct",
            url=url,
            text=clean_text(link.get_text(" ")) or "Download",
        ))
    return downloads


def content_id_from_episode(episode_id: str) -> str:
    """
    Examples:
        naruto-shippuden-2x15 -> naruto-shippuden
    """
    return re.sub(r'-\d+x\d+$', '', episode_id)


def extract_related_items(soup: BeautifulSoup, content_id: str) -> List[ContentItem]:
    cards = []
    for container in select_all(soup, RELATED_CONTAINERS):
        cards.extend(container.select("article, li, .post, .swiper-slide"))
    items = [item for item in parse_item_cards(cards) if item.id != content_id]
    return items[:config.MAX_STREAM_RELATED]


def stream_message(sources: List[StreamSource], servers: ServerAvailability, resolved_label: str) -> str:
    if not sources:
        return "No streaming sources found"
    if servers.is_regional:
        return f"Found {len(sources)} streaming source(s) in {resolved_label}"
    if servers.is_dual_audio:
        if servers.has_sub and servers.has_dub:
            audio = "Sub and Dub"
        else:
            audio = "Sub" if servers.has_sub else "Dub"
        return f"Found {len(sources)} streaming source(s) - {audio}"
    return f"Found {len(sources)} streaming source(s)"


def parse_stream(soup: BeautifulSoup, episode_id: str, url: str, preferred_language: Optional[str] = "hindi") -> StreamResult:
    buttons = select_all(soup, SERVER_BUTTONS)
    servers = classify_servers([label for label in server_labels(buttons) if label])
    # Keep one label per button so positions line up with the grid
    servers = servers._replace(labels=server_labels(buttons))

    sources = extract_sources(soup, servers)
    language = build_availability(page_text(soup), preferred_language, servers)
    code = parse_episode_code(episode_id)

    return StreamResult(
        episode_id=episode_id,
        episode=code[1] if code else None,
        url=url,
        sources=sources,
        download_links=extract_download_links(soup),
        language=language,
        is_dual_audio=servers.is_dual_audio,
        is_regional=servers.is_regional,
        server_types=[label for label in servers.labels if label],
        message=stream_message(sources, servers, language.resolved_label),
        related_items=extract_related_items(soup, content_id_from_episode(episode_id)),
    )


async def scrape_stream(episode_id: str, fetcher: Fetcher, preferred_language: Optional[str] = "hindi") -> StreamResult:
    url = watch_url(episode_id)
    logger.info(f"Scraping stream URL: {url}")
    html = await fetcher.fetch(url)
    result = parse_stream(parse_html(html), episode_id, url, preferred_language)
    logger.info(f"Found {len(result.sources)} sources and {len(result.download_links)} downloads for {episode_id}")
    return result
