import asyncio
import random

import config
from cache import ExtractionCache
from conftest import FakeFetcher
from controller import Controller, error_result, listing_url, normalize_letter, starts_with_letter
from errors import ExtractionError, FetchError
from models import Kind
from scraper import content_url

HOME_URL = "https://animesalt.cc/"
INFO_PAGE = '<h1 class="entry-title">Naruto</h1><div class="TPostBg" data-src="https://img.example/bg.jpg"></div>'
MOVIE_LISTING = """
<ul class="post-lst">
  <li><a href="/movies/your-name/"><img alt="Your Name"></a></li>
  <li><a href="/movies/a-silent-voice/"><img alt="A Silent Voice"></a></li>
  <li><a href="/series/naruto/"><img alt="Naruto"></a></li>
</ul>
<a class="next page-numbers" href="/movies/page/2/">Next</a>
"""


class SlowFetcher:
    async def fetch(self, url):
        await asyncio.sleep(5)
        return ""


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_home_deadline_returns_scraping_error():
    controller = Controller(SlowFetcher(), home_deadline=0.05)
    result = asyncio.run(controller.get_home())

    assert result["success"] is False
    assert result["error_code"] == "SCRAPING_ERROR"
    assert result["status_code"] == 503


def test_home_cached_payload_carries_cache_meta():
    clock = FakeClock()
    controller = Controller(
        FakeFetcher({HOME_URL: "<html><body></body></html>"}),
        ExtractionCache(clock=clock),
        rng=random.Random(0),
    )
    first = asyncio.run(controller.get_home())
    assert first["success"]
    assert first["data"]["meta"]["cache"] is None

    clock.now = 120
    second = asyncio.run(controller.get_home())
    cache_meta = second["data"]["meta"]["cache"]
    assert cache_meta["age_seconds"] == 120
    assert cache_meta["is_stale"] is False
    assert cache_meta["warning"] is None


def test_home_fallback_is_not_cached():
    controller = Controller(FakeFetcher())
    result = asyncio.run(controller.get_home())

    assert result["success"]
    assert result["data"]["meta"]["is_fallback"] is True
    assert "home" not in controller.cache


def test_info_served_from_cache_on_second_call():
    fetcher = FakeFetcher({content_url("naruto"): INFO_PAGE})
    controller = Controller(fetcher)

    first = asyncio.run(controller.get_info("naruto"))
    calls = len(fetcher.calls)
    second = asyncio.run(controller.get_info("naruto"))

    assert first == second
    assert len(fetcher.calls) == calls
    assert controller.cache_stats()["hits"] == 1


def test_unknown_item_is_not_found():
    result = asyncio.run(Controller(FakeFetcher()).get_info("ghost"))
    assert result["success"] is False
    assert result["error_code"] == "NOT_FOUND"
    assert result["status_code"] == 404


def test_failures_are_not_cached():
    fetcher = FakeFetcher()
    controller = Controller(fetcher)
    asyncio.run(controller.get_episodes("ghost"))
    fetcher.pages[content_url("ghost")] = '<div class="episodes-list"><a href="/episode/ghost-1x1/">Ep 1</a></div>'

    result = asyncio.run(controller.get_episodes("ghost"))
    assert result["success"]
    assert result["data"]["total_episodes"] == 1


def test_error_mapping():
    url = "https://animesalt.cc/x/"
    assert error_result(FetchError("down", url=url, status_code=503))["status_code"] == 503
    assert error_result(FetchError("timeout", url=url))["error_code"] == "FETCH_ERROR"
    forbidden = error_result(FetchError("HTTP 403", url=url, status_code=403))
    assert (forbidden["error_code"], forbidden["status_code"]) == ("FETCH_ERROR", 502)
    parse = error_result(ExtractionError("Title not found", url=url))
    assert (parse["error_code"], parse["status_code"]) == ("PARSE_ERROR", 500)


def test_stream_cache_key_includes_language():
    page = '<p>Hindi English</p><div class="server-grid"><button class="server-btn"><span class="server-info">Sub</span><iframe src="https://p.example/1"></iframe></button></div>'
    fetcher = FakeFetcher({"https://animesalt.cc/watch/naruto-1x1/": page})
    controller = Controller(fetcher)

    hindi = asyncio.run(controller.get_stream("naruto-1x1", "hindi"))
    english = asyncio.run(controller.get_stream("naruto-1x1", "english"))

    assert hindi["data"]["language"]["resolved_language"] == "hindi"
    assert english["data"]["language"]["resolved_language"] == "english"
    assert len(fetcher.calls) == 2


def test_get_movies_keeps_only_movies():
    fetcher = FakeFetcher({"https://animesalt.cc/movies/": MOVIE_LISTING})
    result = asyncio.run(Controller(fetcher).get_movies(page=1, page_size=1))

    page = result["data"]
    assert [item["id"] for item in page["items"]] == ["your-name"]
    assert page["total"] == 2
    assert page["has_next"] is True
    assert page["items"][0]["kind"] == Kind.MOVIE.value


def test_search_and_genre_urls():
    fetcher = FakeFetcher({
        "https://animesalt.cc/?s=demon+slayer": '<article class="post"><a href="/series/demon-slayer/">Demon Slayer</a></article>',
        "https://animesalt.cc/category/genre/action/page/2/": '<article class="post"><a href="/series/one-piece/">One Piece</a></article>',
    })
    controller = Controller(fetcher)

    found = asyncio.run(controller.search("demon slayer"))
    by_genre = asyncio.run(controller.get_genre("Action", page=2))

    assert [item["id"] for item in found["data"]["items"]] == ["demon-slayer"]
    assert [item["id"] for item in by_genre["data"]["items"]] == ["one-piece"]


def test_empty_search_is_rejected():
    result = asyncio.run(Controller(FakeFetcher()).search("   "))
    assert (result["error_code"], result["status_code"]) == ("VALIDATION_ERROR", 400)


def test_clear_cache():
    fetcher = FakeFetcher({content_url("naruto"): INFO_PAGE})
    controller = Controller(fetcher)
    asyncio.run(controller.get_info("naruto"))
    controller.clear_cache()
    assert controller.cache_stats()["size"] == 0


def test_home_older_than_an_hour_is_flagged_stale(monkeypatch):
    monkeypatch.setitem(config.CACHE_TTL, "home", 2 * 60 * 60)
    clock = FakeClock()
    controller = Controller(FakeFetcher({HOME_URL: "<html><body></body></html>"}), ExtractionCache(clock=clock))
    asyncio.run(controller.get_home())

    clock.now = 4000
    cache_meta = asyncio.run(controller.get_home())["data"]["meta"]["cache"]
    assert cache_meta["is_stale"] is True
    assert cache_meta["warning"]


def chart_item(rank, path, slug, title):
    return (f'<div class="chart-item"><span class="chart-number">{rank}</span>'
            f'<a class="chart-poster" href="/{path}/{slug}/"><img alt="{title}"></a>'
            f'<span class="chart-title">{title}</span></div>')


SECTIONED_HOME = f"""
<html><body>
  <section>
    <h3 class="section-title">Most-Watched Series</h3>
    <div class="chart-content">{chart_item(1, "series", "one-piece", "One Piece")}{chart_item(2, "series", "86-eighty-six", "86 Eighty-Six")}</div>
  </section>
  <section>
    <h3 class="section-title">Most-Watched Movies</h3>
    <div class="chart-content">{chart_item(1, "movies", "your-name", "Your Name")}</div>
  </section>
  <section>
    <h3 class="section-title">On-Air Series</h3>
    <article class="post"><a href="/series/naruto/"><img alt="Naruto"></a></article>
    <article class="post"><a href="/series/bleach/"><img alt="Bleach"></a></article>
  </section>
  <section>
    <h3 class="section-title">Upcoming Episodes</h3>
    <ul class="swiper-wrapper">
      <li class="swiper-slide"><article class="post"><a href="/series/one-piece/"><img alt="One Piece"></a>
        <span class="year">EP:1120</span><div class="countdown-timer" data-target="2024-10-20T15:00:00Z">2d 4h</div></article></li>
    </ul>
  </section>
  <ul class="az-lst"><li><a href="/letter/a/">A</a></li><li><a href="/letter/b/">B</a></li></ul>
  <a href="/category/genre/action/">Action</a>
</body></html>
"""


def home_controller(pages=None):
    fetcher = FakeFetcher({HOME_URL: SECTIONED_HOME, **(pages or {})})
    return Controller(fetcher, rng=random.Random(0)), fetcher


def test_listing_url():
    assert listing_url("series") == "https://animesalt.cc/series/"
    assert listing_url("cartoon/movies", 3) == "https://animesalt.cc/cartoon/movies/page/3/"


def test_get_series_keeps_only_series():
    fetcher = FakeFetcher({"https://animesalt.cc/series/": MOVIE_LISTING})
    result = asyncio.run(Controller(fetcher).get_series())

    assert [item["id"] for item in result["data"]["items"]] == ["naruto"]
    assert result["data"]["total"] == 1


def test_get_cartoons_by_type():
    fetcher = FakeFetcher({
        "https://animesalt.cc/cartoon/movies/page/2/": '<article class="post"><a href="/movies/shrek/"><img alt="Shrek"></a></article>',
    })
    controller = Controller(fetcher)

    result = asyncio.run(controller.get_cartoons("Movies", page=2))
    assert [item["title"] for item in result["data"]["items"]] == ["Shrek"]

    rejected = asyncio.run(controller.get_cartoons("anime"))
    assert (rejected["error_code"], rejected["status_code"]) == ("VALIDATION_ERROR", 400)


def test_get_ongoing_pages_the_on_air_section():
    controller, _ = home_controller()
    result = asyncio.run(controller.get_ongoing(page=1, page_size=1))

    page = result["data"]
    assert [item["id"] for item in page["items"]] == ["naruto"]
    assert page["total"] == 2
    assert page["has_next"] is True


def test_get_letter_from_site_page_is_cached():
    listing = '<ul class="post-lst"><li><a href="/series/naruto/"><img alt="Naruto"></a></li></ul>'
    controller, fetcher = home_controller({"https://animesalt.cc/letter/n/": listing})

    first = asyncio.run(controller.get_letter("n"))
    calls = len(fetcher.calls)
    second = asyncio.run(controller.get_letter("N"))

    assert [item["id"] for item in first["data"]["items"]] == ["naruto"]
    assert first == second
    assert len(fetcher.calls) == calls
    assert HOME_URL not in fetcher.calls


def test_get_letter_falls_back_to_home_items():
    controller, fetcher = home_controller()
    result = asyncio.run(controller.get_letter("b"))

    assert [item["id"] for item in result["data"]["items"]] == ["bleach"]
    assert fetcher.calls[:3] == [
        "https://animesalt.cc/letter/b/",
        "https://animesalt.cc/?letter=B",
        "https://animesalt.cc/anime-list/b/",
    ]

    digits = asyncio.run(controller.get_letter("#"))
    assert [item["id"] for item in digits["data"]["items"]] == ["86-eighty-six"]


def test_get_letter_rejects_words():
    result = asyncio.run(Controller(FakeFetcher()).get_letter("ab"))
    assert (result["error_code"], result["status_code"]) == ("VALIDATION_ERROR", 400)


def test_normalize_and_match_letters():
    assert normalize_letter("a") == "A"
    assert normalize_letter("7") == "7"
    assert normalize_letter("?") is None
    assert starts_with_letter("Naruto", "N")
    assert starts_with_letter("86 Eighty-Six", "#")
    assert not starts_with_letter("Bleach", "#")


def test_get_random_picks_a_trending_item():
    controller, _ = home_controller()
    result = asyncio.run(controller.get_random())
    assert result["data"]["item"]["id"] in {"one-piece", "86-eighty-six", "your-name"}


def test_get_random_without_trending_items():
    controller = Controller(FakeFetcher({HOME_URL: "<html><body></body></html>"}))
    result = asyncio.run(controller.get_random())
    assert (result["error_code"], result["status_code"]) == ("NOT_FOUND", 404)


def test_get_top_ten_and_schedule():
    controller, fetcher = home_controller()
    top = asyncio.run(controller.get_top_ten())["data"]
    schedule = asyncio.run(controller.get_schedule())["data"]

    assert [item["id"] for item in top["series"]] == ["one-piece", "86-eighty-six"]
    assert [item["id"] for item in top["movies"]] == ["your-name"]
    assert schedule["upcoming"][0]["next_episode"] == "1120"
    assert fetcher.calls.count(HOME_URL) == 1


def test_get_catalog():
    controller, _ = home_controller()
    genres = asyncio.run(controller.get_catalog("genres"))["data"]
    letters = asyncio.run(controller.get_catalog("letters"))["data"]

    assert genres["genres"] == ["Action"]
    assert "martial-arts" in genres["valid_genres"]
    assert letters == {"letters": ["A", "B"]}
    assert asyncio.run(controller.get_catalog("years"))["status_code"] == 400
