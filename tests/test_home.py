import asyncio
import random

from conftest import FakeFetcher
from document import parse_html
from home_scraper import (
    arrange_spotlight, build_spotlight, build_trending, extract_filters,
    extract_most_watched_movies, extract_most_watched_series, extract_upcoming_episodes,
    fallback_backdrop, fallback_home, scrape_home, spotlight_pool,
)
from models import ContentItem, Kind

HOME_URL = "https://animesalt.cc/"


def chart_item(rank, path, slug):
    return f"""
    <div class="chart-item">
      <span class="chart-number">{rank}</span>
      <a class="chart-poster" href="/{path}/{slug}/"><img alt="{slug}" src="https://image.tmdb.org/t/p/w500/{slug}.jpg"></a>
      <span class="chart-title">{slug.title()}</span>
    </div>"""


SERIES_CHART = "".join(chart_item(i, "series", "series-%d" % i) for i in range(1, 9))
MOVIES_CHART = "".join(chart_item(i, "movies", "movie-%d" % i) for i in range(1, 5))

HOME_PAGE = f"""
<html><body>
  <section>
    <h3 class="section-title">Most-Watched Series</h3>
    <div class="chart-content">{SERIES_CHART}</div>
  </section>
  <section>
    <h3 class="section-title">Most-Watched Movies</h3>
    <div class="chart-content">{MOVIES_CHART}</div>
  </section>
  <section>
    <h3 class="section-title">Upcoming Episodes View More</h3>
    <ul class="swiper-wrapper">
      <li class="swiper-slide"><article class="post"><a href="/series/one-piece/"><img alt="One Piece"></a>
        <span class="year">EP:1120</span><div class="countdown-timer" data-target="2024-10-20T15:00:00Z">2d 4h</div></article></li>
    </ul>
  </section>
  <ul class="az-lst"><li><a href="/letter/a/">A</a></li><li><a href="/letter/b/">B</a></li></ul>
  <a href="/category/genre/action/">Action</a>
  <a href="/category/genre/comedy/">Comedy</a>
</body></html>
"""


def make_items(prefix, kind, count):
    path = "movies" if kind == Kind.MOVIE else "series"
    return [
        ContentItem(
            id=f"{prefix}-{i}",
            title=f"{prefix} {i}",
            url=f"https://animesalt.cc/{path}/{prefix}-{i}/",
            poster_url=f"https://image.tmdb.org/t/p/w500/{prefix}-{i}.jpg",
            kind=kind,
        )
        for i in range(1, count + 1)
    ]


def test_charts_are_read_from_their_sections():
    soup = parse_html(HOME_PAGE)
    series = extract_most_watched_series(soup)
    movies = extract_most_watched_movies(soup)

    assert [item.id for item in series] == [f"series-{i}" for i in range(1, 9)]
    assert all(item.kind == Kind.MOVIE for item in movies)
    assert movies[0].rank == 1


def test_trending_takes_six_series_then_four_movies():
    soup = parse_html(HOME_PAGE)
    trending = build_trending(extract_most_watched_series(soup), extract_most_watched_movies(soup))

    assert [item.rank for item in trending] == list(range(1, 11))
    assert [item.kind for item in trending] == [Kind.SERIES] * 6 + [Kind.MOVIE] * 4


def test_spotlight_reserves_movie_positions():
    pool = make_items("series", Kind.SERIES, 7) + make_items("movie", Kind.MOVIE, 3)
    for seed in range(5):
        arranged = arrange_spotlight(pool, random.Random(seed))
        assert len(arranged) == 10
        assert arranged[1].kind == Kind.MOVIE
        assert arranged[5].kind == Kind.MOVIE
        assert len({item.id for item in arranged}) == 10


def test_spotlight_fills_with_series_when_movies_run_short():
    pool = make_items("series", Kind.SERIES, 10) + make_items("movie", Kind.MOVIE, 1)
    arranged = arrange_spotlight(pool, random.Random(1))
    assert len(arranged) == 10
    assert arranged[1].kind == Kind.MOVIE
    assert arranged[5].kind == Kind.SERIES


def test_spotlight_backdrop_falls_back_when_page_fails():
    items = make_items("series", Kind.SERIES, 2)
    fetcher = FakeFetcher({items[0].url: '<div class="bghd"><img src="//image.tmdb.org/t/p/original/bg.jpg"></div>'})

    spotlight = asyncio.run(build_spotlight(items, fetcher, random.Random(0)))
    by_id = {item.id: item for item in spotlight}

    assert 'src="https://image.tmdb.org/t/p/original/bg.jpg"' in by_id["series-1"].backdrop
    assert by_id["series-2"].backdrop == fallback_backdrop(items[1])
    assert "/w1280/series-2.jpg" in by_id["series-2"].backdrop
    assert [item.rank for item in spotlight] == [1, 2]


def test_upcoming_episodes():
    upcoming = extract_upcoming_episodes(parse_html(HOME_PAGE))
    assert len(upcoming) == 1
    assert upcoming[0].id == "one-piece"
    assert upcoming[0].next_episode == "1120"
    assert upcoming[0].countdown == "2d 4h"
    assert upcoming[0].countdown_target == "2024-10-20T15:00:00Z"


def test_filters_fall_back_to_defaults():
    filters = extract_filters(parse_html(HOME_PAGE))
    assert filters.genres == ["Action", "Comedy"]
    assert filters.letters == ["A", "B"]
    assert "Hindi" in filters.languages
    assert "Crunchyroll" in filters.networks


def test_scrape_home():
    fetcher = FakeFetcher({HOME_URL: HOME_PAGE})
    payload = asyncio.run(scrape_home(fetcher, rng=random.Random(3)))

    assert len(payload.spotlight) == 10
    assert payload.spotlight[1].kind == Kind.MOVIE
    assert payload.spotlight[5].kind == Kind.MOVIE
    assert len(payload.trending) == 10
    assert not payload.meta.is_fallback
    assert payload.meta.item_count == 13
    assert all(item.backdrop for item in payload.spotlight)


def test_scrape_home_serves_fallback_when_site_is_down():
    payload = asyncio.run(scrape_home(FakeFetcher()))

    assert payload.meta.is_fallback
    assert len(payload.spotlight) == 10
    assert payload.spotlight[5].id == "jujutsu-kaisen-0"


def test_fallback_home_is_self_consistent():
    payload = fallback_home()
    assert [item.rank for item in payload.trending] == list(range(1, 11))
    assert all(item.backdrop is None for item in payload.trending)


def test_spotlight_pool_pulls_movies_from_any_section():
    trending = make_items("series", Kind.SERIES, 6)
    more_series = make_items("series", Kind.SERIES, 10)
    arrivals = make_items("arrival", Kind.SERIES, 3) + make_items("movie", Kind.MOVIE, 2)

    pool = spotlight_pool(trending, more_series, arrivals)

    assert len(pool) == 10
    assert [item.id for item in pool if item.kind == Kind.MOVIE] == ["movie-1", "movie-2"]
    assert len({item.id for item in pool}) == 10


SERIES_ONLY_HOME = f"""
<html><body>
  <section>
    <h3 class="section-title">Most-Watched Series</h3>
    <div class="chart-content">{"".join(chart_item(i, "series", "series-%d" % i) for i in range(1, 11))}</div>
  </section>
  <section>
    <h3 class="section-title">New Anime Arrivals</h3>
    <article class="post"><a href="/movies/your-name/"><img alt="Your Name"></a></article>
    <article class="post"><a href="/movies/a-silent-voice/"><img alt="A Silent Voice"></a></article>
  </section>
</body></html>
"""


def test_spotlight_movies_found_outside_the_charts():
    fetcher = FakeFetcher({HOME_URL: SERIES_ONLY_HOME})
    payload = asyncio.run(scrape_home(fetcher, rng=random.Random(7)))

    assert payload.most_watched_movies == []
    assert len(payload.spotlight) == 10
    assert payload.spotlight[1].kind == Kind.MOVIE
    assert payload.spotlight[5].kind == Kind.MOVIE
    assert {payload.spotlight[1].id, payload.spotlight[5].id} == {"your-name", "a-silent-voice"}


def test_spotlight_pages_fetched_as_one_batch():
    fetcher = FakeFetcher({HOME_URL: HOME_PAGE})
    payload = asyncio.run(scrape_home(fetcher, rng=random.Random(3)))

    assert len(fetcher.batches) == 1
    assert fetcher.batches[0] == [item.url for item in payload.spotlight]
