from datetime import datetime

from availability import (
    build_availability, classify_servers, detect_language, detect_languages,
    is_sub_only_tag, parse_episode_code, parse_year, player_name,
)


def test_detect_language_prefers_requested_when_present():
    assert detect_language("Hindi and English audio", "english") == "english"


def test_detect_language_falls_back_by_priority():
    assert detect_language("Watch in Hindi", "english") == "hindi"
    assert detect_language("Tamil and Japanese tracks", "korean") == "japanese"
    assert detect_language("", "tamil") == "original"


def test_detect_languages_matches_whole_words_only():
    assert detect_languages("Episode length 24 min") == []
    assert detect_languages("ENG dub available") == ["english"]


def test_detect_languages_native_script():
    assert detect_languages("हिंदी में देखें") == ["hindi"]


def test_classify_dual_audio():
    servers = classify_servers(["Sub", "Dub"])
    assert servers.is_dual_audio
    assert not servers.is_regional
    assert servers.has_sub and servers.has_dub


def test_classify_regional():
    servers = classify_servers(["MyStream", "Abyss"])
    assert servers.is_regional
    assert not servers.is_dual_audio


def test_classify_no_labels():
    servers = classify_servers([])
    assert not servers.is_regional
    assert not servers.is_dual_audio


def test_player_names():
    assert player_name(1, "sub", False) == "HD 1 (Sub)"
    assert player_name(2, "dub", False) == "HD 2 (Dub)"
    assert player_name(3, "regional", True) == "Player 3"


def test_build_availability_for_regional_servers():
    info = build_availability("Available in Tamil", "hindi", classify_servers(["abyss"]))
    assert info.is_regional
    assert not info.has_sub and not info.has_dub
    assert info.resolved_language == "tamil"
    assert info.resolved_label == "Tamil"


def test_build_availability_without_servers_infers_dub_from_languages():
    info = build_availability("Japanese audio with English dub", None, classify_servers([]))
    assert info.has_sub
    assert info.has_dub
    assert info.languages == ["english", "japanese"]


def test_sub_only_tags():
    assert is_sub_only_tag("(Sub Only)")
    assert is_sub_only_tag("[RAW]")
    assert is_sub_only_tag("(Japanese Audio Only)")
    assert not is_sub_only_tag("(Hindi Dub)")
    assert not is_sub_only_tag(None)


def test_parse_year_range():
    now = datetime(2024, 6, 1)
    assert parse_year("Released 2019, 24 min", now) == 2019
    assert parse_year("Episode 1080", now) is None
    assert parse_year("Founded 1950", now) is None
    assert parse_year("Coming 2026", now) == 2026
    assert parse_year("Coming 2027", now) is None
    assert parse_year(None) is None


def test_parse_episode_code():
    assert parse_episode_code("naruto-shippuden-2x15") == (2, 15)
    assert parse_episode_code("/episode/naruto-1x3/") == (1, 3)
    assert parse_episode_code("naruto") is None
