import pytest

from document import parse_html
from models import Kind
from scraper import (
    content_url, extract_host, extract_id_from_url, extract_quality, genre_from_slug,
    kind_from_url, normalize_url, paginate, parse_item_card, parse_listing, upgrade_poster,
)


@pytest.mark.parametrize("url,expected", [
    ("//image.tmdb.org/t/p/w500/a.jpg", "https://image.tmdb.org/t/p/w500/a.jpg"),
    ("/series/naruto/", "https://animesalt.cc/series/naruto/"),
    ("http://animesalt.cc/movies/x/", "https://animesalt.cc/movies/x/"),
    ("animesalt.cc/movies/your-name/", "https://animesalt.cc/movies/your-name/"),
    ("javascript:void(0)", None),
    ("", None),
])
def test_normalize_url(url, expected):
    assert normalize_url(url) == expected


@pytest.mark.parametrize("url,expected", [
    ("https://animesalt.cc/series/naruto-shippuden/", "naruto-shippuden"),
    ("/movies/your-name", "your-name"),
    ("https://animesalt.cc/cartoon/ben-10/?ref=home", "ben-10"),
    ("/episode/naruto-shippuden-2x15/", "naruto-shippuden-2x15"),
    ("https://animesalt.cc/category/genre/action/", None),
    (None, None),
])
def test_extract_id_from_url(url, expected):
    assert extract_id_from_url(url) == expected


def test_extract_id_is_stable_for_canonical_urls():
    for kind in Kind:
        url = content_url("demon-slayer", kind)
        assert extract_id_from_url(url) == "demon-slayer"
        assert kind_from_url(url) == kind


def test_genre_from_slug_uses_allow_list():
    genre = genre_from_slug("martial-arts")
    assert genre.name == "Martial Arts"
    assert genre.icon == "🥋"
    assert genre_from_slug("hindi-dub") is None


def test_parse_item_card():
    soup = parse_html("""
    <li class="post category-action category-hindi-dub annee-2019">
      <a class="lnk-blk" href="/series/demon-slayer/"></a>
      <img alt="Image Demon Slayer" data-src="//image.tmdb.org/t/p/w500/ds.jpg" src="data:image/gif;base64,x">
      <span class="year">EP:26</span>
    </li>
    """)
    item = parse_item_card(soup.select_one("li"))
    assert item.id == "demon-slayer"
    assert item.title == "Demon Slayer"
    assert item.kind == Kind.SERIES
    assert item.poster_url == "https://image.tmdb.org/t/p/w500/ds.jpg"
    assert item.year == 2019
    assert item.episode == 26
    assert [g.id for g in item.genres] == ["action"]


def test_parse_listing_drops_duplicates():
    soup = parse_html("""
    <ul class="post-lst">
      <li><a href="/movies/a/"><img alt="A"></a></li>
      <li><a href="/movies/a/"><img alt="A again"></a></li>
      <li><a href="/series/b/"><img alt="B"></a></li>
      <li><span>no link</span></li>
    </ul>
    """)
    items = parse_listing(soup)
    assert [item.id for item in items] == ["a", "b"]
    assert items[0].sub_category == "Movie"


def test_quality_and_host():
    assert extract_quality("Download 1080p") == "1080p"
    assert extract_quality("Full HD") == "1080p"
    assert extract_quality("Download") == "HD"
    assert extract_host("https://drive.google.com/file/d/x") == "Google Drive"
    assert extract_host("https://www.files.example.com/x") == "files.example.com"


def test_upgrade_poster():
    assert upgrade_poster("https://image.tmdb.org/t/p/w500/x.jpg") == "https://image.tmdb.org/t/p/w1280/x.jpg"
    assert upgrade_poster(None) is None


def test_paginate():
    soup = parse_html("".join(f'<article class="post"><a href="/series/s{i}/">S{i}</a></article>' for i in range(5)))
    items = parse_listing(soup)
    page = paginate(items, page=2, page_size=2)
    assert [item.id for item in page.items] == ["s2", "s3"]
    assert page.total == 5
    assert page.has_next
    assert not paginate(items, page=3, page_size=2).has_next
