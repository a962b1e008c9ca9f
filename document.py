# document.py
"""
Thin query helpers over BeautifulSoup.

Extractors express every field as an ordered list of strategies, each a
function from a document (or element) to a value or None, and take the first
non-empty result:

    title = first_match(soup, [
        lambda s: select_text(s, "h1.entry-title"),
        lambda s: select_attr(s, 'meta[property="og:title"]', "content"),
    ])
"""
import re
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from bs4 import BeautifulSoup, Tag

T = TypeVar("T")
Strategy = Callable[[Tag], Optional[T]]

_WHITESPACE = re.compile(r'\s+')


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and strip."""
    if not text:
        return ""
    return _WHITESPACE.sub(' ', text).strip()


def is_empty(value) -> bool:
    return value is None or value == "" or (isinstance(value, (list, tuple, dict, set)) and not value)


def first_match(root: Tag, strategies: Iterable[Strategy]) -> Optional[T]:
    """Evaluate strategies left to right and return the first non-empty result."""
    for strategy in strategies:
        value = strategy(root)
        if not is_empty(value):
            return value
    return None


def select_all(root: Tag, selector: str) -> List[Tag]:
    if root is None:
        return []
    return root.select(selector)


def select_first_nonempty(root: Tag, selectors: Iterable[str]) -> List[Tag]:
    """Return the matches of the first selector that matches anything."""
    for selector in selectors:
        matches = select_all(root, selector)
        if matches:
            return matches
    return []


def select_text(root: Tag, selector: str) -> Optional[str]:
    """Text of the first matching element with non-blank text."""
    for element in select_all(root, selector):
        text = clean_text(element.get_text(" "))
        if text:
            return text
    return None


def select_attr(root: Tag, selector: str, *attrs: str) -> Optional[str]:
    """First non-blank value among ``attrs`` on the first element that has one."""
    for element in select_all(root, selector):
        value = attr(element, *attrs)
        if value:
            return value
    return None


def attr(element: Optional[Tag], *attrs: str) -> Optional[str]:
    if element is None:
        return None
    for name in attrs:
        value = element.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        if value and value.strip():
            return value.strip()
    return None


def meta_content(root: Tag, key: str) -> Optional[str]:
    """Content of ``<meta property=key>`` or ``<meta name=key>``."""
    return (
        select_attr(root, f'meta[property="{key}"]', "content")
        or select_attr(root, f'meta[name="{key}"]', "content")
    )


def closest(element: Tag, selector: str) -> Optional[Tag]:
    """Nearest ancestor (not the element itself) matching ``selector``."""
    parent = element.parent if element is not None else None
    if parent is None or not isinstance(parent, Tag):
        return None
    return parent.css.closest(selector)


def page_text(soup: Tag) -> str:
    body = soup.body if isinstance(soup, BeautifulSoup) and soup.body else soup
    return clean_text(body.get_text(" "))


def document_positions(soup: Tag) -> Dict[int, int]:
    """Map ``id(tag)`` to the tag's index in document order."""
    return {id(node): index for index, node in enumerate(soup.find_all(True))}
