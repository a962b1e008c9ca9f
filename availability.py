# availability.py
"""
Heuristics for sub/dub/regional availability, language detection and years.

Everything here works on plain strings so it can be tested without markup.
"""
import re
from datetime import datetime
from typing import List, NamedTuple, Optional

import config
from models import AvailabilityInfo, Language


class ServerAvailability(NamedTuple):
    """Classification of a server grid by its button labels."""
    labels: List[str]
    is_dual_audio: bool
    is_regional: bool
    has_sub: bool
    has_dub: bool


def classify_servers(labels: List[str]) -> ServerAvailability:
    """
    Dual-audio when any label is exactly 'sub' or 'dub'; regional when labels
    exist but none of them is.
    Examples:
        ['sub', 'dub'] -> dual audio, has_sub and has_dub
        ['mystream', 'abyss'] -> regional
        [] -> neither
    """
    labels = [label.strip().lower() for label in labels]
    has_sub = 'sub' in labels
    has_dub = 'dub' in labels
    is_dual_audio = has_sub or has_dub
    return ServerAvailability(
        labels=labels,
        is_dual_audio=is_dual_audio,
        is_regional=not is_dual_audio and bool(labels),
        has_sub=has_sub,
        has_dub=has_dub,
    )


def server_role(label: str) -> str:
    label = label.strip().lower()
    if label in ('sub', 'dub'):
        return label
    return 'regional'


def player_name(position: int, role: str, is_regional: bool) -> str:
    """
    Examples:
        (1, 'regional', True) -> 'Player 1'
        (2, 'dub', False) -> 'HD 2 (Dub)'
        (1, 'sub', False) -> 'HD 1 (Sub)'
    """
    if is_regional:
        return f"Player {position}"
    if role == 'dub':
        return f"HD {position} (Dub)"
    return f"HD {position} (Sub)"


def _keyword_pattern(keyword: str) -> re.Pattern:
    # Latin keywords must match whole words so 'eng' does not hit 'length'
    if keyword.isascii():
        return re.compile(r'(?<![a-z])' + re.escape(keyword) + r'(?![a-z])')
    return re.compile(re.escape(keyword))


_LANGUAGE_PATTERNS = {
    code: [_keyword_pattern(keyword) for keyword in keywords]
    for code, (_, _, keywords) in config.LANGUAGES.items()
}


def detect_languages(text: str) -> List[str]:
    """Language codes mentioned in ``text``, in the configured priority order."""
    text = (text or "").lower()
    return [
        code for code, patterns in _LANGUAGE_PATTERNS.items()
        if any(pattern.search(text) for pattern in patterns)
    ]


def resolve_language(detected: List[str], preferred: Optional[str] = None) -> str:
    """
    Pick the caller's language when present, else fall back through
    Hindi, English, Japanese, Tamil, Telugu and finally 'original'.
    """
    preferred = (preferred or "").lower()
    if preferred and preferred in detected:
        return preferred
    for code in config.LANGUAGE_PRIORITY:
        if code in detected:
            return code
    return config.ORIGINAL_LANGUAGE


def detect_language(text: str, preferred: Optional[str] = None) -> str:
    """
    Examples:
        ('watch in hindi', 'english') -> 'hindi'
        ('hindi and english audio', 'english') -> 'english'
        ('', 'tamil') -> 'original'
    """
    return resolve_language(detect_languages(text), preferred)


def language_label(code: str) -> str:
    if code in config.LANGUAGES:
        return config.LANGUAGES[code][0]
    return code.title()


def language_objects(codes: List[str]) -> List[Language]:
    return [
        Language(code=code, name=config.LANGUAGES[code][0], flag=config.LANGUAGES[code][1])
        for code in codes if code in config.LANGUAGES
    ]


def build_availability(text: str, preferred: Optional[str], servers: ServerAvailability) -> AvailabilityInfo:
    detected = detect_languages(text)
    resolved = resolve_language(detected, preferred)
    if servers.is_dual_audio:
        has_sub, has_dub = servers.has_sub, servers.has_dub
    elif servers.is_regional:
        has_sub, has_dub = False, False
    else:
        has_sub = True
        has_dub = any(code != 'japanese' for code in detected)
    return AvailabilityInfo(
        has_sub=has_sub,
        has_dub=has_dub,
        is_regional=servers.is_regional,
        languages=detected,
        preferred=preferred or None,
        resolved_language=resolved,
        resolved_label=language_label(resolved),
    )


_SUB_ONLY = [re.compile(pattern, re.IGNORECASE) for pattern in config.SUB_ONLY_PATTERNS]


def is_sub_only_tag(tag: Optional[str]) -> bool:
    """
    Examples:
        '(Sub Only)' -> True
        '[RAW]' -> True
        '(Hindi Dub)' -> False
    """
    if not tag:
        return False
    return any(pattern.search(tag) for pattern in _SUB_ONLY)


def parse_year(text: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """
    First 4-digit year within [1960, current year + 2], else None.
    Examples:
        'Released 2019, 24 min' -> 2019
        'Episode 1080' -> None
        '' -> None
    """
    if not text:
        return None
    max_year = (now or datetime.now()).year + 2
    for match in re.finditer(r'(?<!\d)((?:19|20)\d{2})(?!\d)', text):
        year = int(match.group(1))
        if 1960 <= year <= max_year:
            return year
    return None


def parse_episode_code(value: Optional[str]) -> Optional[tuple]:
    """
    Season and episode from an ``-SxN`` suffix.
    Examples:
        'naruto-2x15' -> (2, 15)
        '/episode/naruto-1x3/' -> (1, 3)
        'naruto' -> None
    """
    if not value:
        return None
    match = re.search(r'-(\d+)x(\d+)', value, re.IGNORECASE)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))
