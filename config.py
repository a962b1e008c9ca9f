# config.py
"""
Settings and static lookup tables for the animesalt.cc catalog scraper.

Numeric settings can be overridden through environment variables; the tables
below mirror the markup and vocabulary used by the source site.
"""
import os

# Base URL for scraping
BASE_URL = os.getenv("CATALOG_BASE_URL", "https://animesalt.cc").rstrip("/")
SITE_HOST = BASE_URL.split("://", 1)[-1]

# Fetch client
REQUEST_TIMEOUT = float(os.getenv("CATALOG_REQUEST_TIMEOUT", "15"))
MAX_RETRIES = int(os.getenv("CATALOG_MAX_RETRIES", "3"))
RETRY_DELAY = float(os.getenv("CATALOG_RETRY_DELAY", "1"))
BATCH_CONCURRENCY = 5

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}

# Extraction cache (seconds)
CACHE_MAX_SIZE = int(os.getenv("CATALOG_CACHE_SIZE", "1000"))
CACHE_DEFAULT_TTL = 300
CACHE_TTL = {
    "home": 30 * 60,
    "info": 30 * 60,
    "episodes": 15 * 60,
    "stream": 5 * 60,
    "movies": 15 * 60,
    "search": 10 * 60,
    "genre": 10 * 60,
    "series": 15 * 60,
    "cartoon": 15 * 60,
    "letter": 10 * 60,
}
STALE_AFTER = 60 * 60

# Home aggregator
HOME_DEADLINE = float(os.getenv("CATALOG_HOME_DEADLINE", "9"))
SPOTLIGHT_SIZE = 10
SPOTLIGHT_MOVIE_POSITIONS = (2, 6)
TRENDING_SERIES = 6
TRENDING_MOVIES = 4

# Listings
CARTOON_TYPES = ["series", "movies"]

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Extractor limits
SYNOPSIS_MIN_LENGTH = 50
SYNOPSIS_MAX_LENGTH = 2000
MAX_RELATED = 20
MAX_STREAM_RELATED = 12

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

SUPPORTED_LANGUAGES = [
    'hindi', 'english', 'tamil', 'telugu', 'malayalam',
    'bengali', 'japanese', 'korean', 'chinese',
]

VALID_GENRES = [
    'action', 'adventure', 'cars', 'comedy', 'dementia', 'demons', 'drama',
    'ecchi', 'fantasy', 'game', 'harem', 'historical', 'horror', 'josei',
    'kids', 'magic', 'martial-arts', 'mecha', 'military', 'music', 'mystery',
    'parody', 'police', 'psychological', 'romance', 'samurai', 'school',
    'sci-fi', 'seinen', 'shoujo', 'shounen', 'slice-of-life', 'space',
    'sports', 'super-power', 'supernatural', 'thriller', 'vampire', 'yaoi',
    'yuri',
]

GENRE_ICONS = {
    'action': '⚔️',
    'adventure': '🗺️',
    'comedy': '😂',
    'drama': '🎭',
    'fantasy': '🧙',
    'horror': '👻',
    'kids': '🧒',
    'magic': '✨',
    'martial-arts': '🥋',
    'mecha': '🤖',
    'music': '🎵',
    'mystery': '🔍',
    'romance': '💕',
    'school': '🏫',
    'sci-fi': '🚀',
    'slice-of-life': '☕',
    'space': '🌌',
    'sports': '⚽',
    'supernatural': '🔮',
    'thriller': '🔪',
    'vampire': '🧛',
}
DEFAULT_GENRE_ICON = '🎬'

# Language code -> (display name, flag, keywords). Order is detection priority.
LANGUAGES = {
    'hindi': ('Hindi', '🇮🇳', ['hindi', 'हिंदी', 'hindi dubbed', 'hindi dub']),
    'english': ('English', '🇺🇸', ['english', 'eng', 'english dub', 'english dubbed']),
    'japanese': ('Japanese', '🇯🇵', ['japanese', 'jap', 'jpn', 'japanese audio']),
    'tamil': ('Tamil', '🇮🇳', ['tamil', 'தமிழ்']),
    'telugu': ('Telugu', '🇮🇳', ['telugu', 'తెలుగు']),
    'malayalam': ('Malayalam', '🇮🇳', ['malayalam', 'മലയാളം']),
    'bengali': ('Bengali', '🇮🇳', ['bengali', 'বাংলা']),
    'korean': ('Korean', '🇰🇷', ['korean', '한국어']),
    'chinese': ('Chinese', '🇨🇳', ['chinese', 'mandarin', '中文']),
}

# Fallback order when the preferred language is not on the page
LANGUAGE_PRIORITY = ['hindi', 'english', 'japanese', 'tamil', 'telugu']
ORIGINAL_LANGUAGE = 'original'

DOWNLOAD_HOSTS = [
    ('drive.google', 'Google Drive'),
    ('mega', 'Mega'),
    ('1fichier', '1Fichier'),
    ('zippyshare', 'Zippyshare'),
    ('zippy', 'Zippyshare'),
    ('mediafire', 'MediaFire'),
    ('dropbox', 'Dropbox'),
    ('rapidgator', 'RapidGator'),
    ('nitroflare', 'NitroFlare'),
    ('turbobit', 'TurboBit'),
    ('uptobox', 'Uptobox'),
]

QUALITY_PATTERNS = [
    ('4K', ['4k', '2160p']),
    ('1080p', ['1080p', 'full hd', 'fhd']),
    ('720p', ['720p', 'hd']),
    ('480p', ['480p', 'sd']),
    ('360p', ['360p']),
]

STREAMING_DOMAINS = [
    'streamlare', 'streamsb', 'streamtape', 'videovard',
    'mp4upload', 'yourupload', 'upstream',
]

# Trailing season tags that mark a sub-only or raw release
SUB_ONLY_PATTERNS = [
    r'\bsub(?:bed)?\s*only\b',
    r'\bonly\s*sub(?:bed)?\b',
    r'\braw\b',
    r'\bjapanese\s*(?:audio\s*)?only\b',
    r'\bno\s*dub\b',
]

DEFAULT_LETTERS = list('#ABCDEFGHIJKLMNOPQRSTUVWXYZ')
DEFAULT_NETWORKS = [
    'Crunchyroll', 'Netflix', 'Disney+', 'Prime Video', 'Cartoon Network',
    'HBO', 'Hulu', 'Disney Channel', 'Hungama TV', 'Sony Yay',
]
