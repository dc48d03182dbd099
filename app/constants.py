import os

APP_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_DIR = os.path.join(APP_DIR, 'config')
CONFIG_FILE = os.environ.get('ANISYNC_CONFIG', os.path.join(CONFIG_DIR, 'settings.yaml'))
DB_FILE = os.path.join(CONFIG_DIR, 'anisync.db')
ALEMBIC_DIR = os.path.join(APP_DIR, 'migrations')
ALEMBIC_CONF = os.path.join(ALEMBIC_DIR, 'alembic.ini')

ANISYNC_DB = 'sqlite:///' + DB_FILE

BUILD_VERSION = '20261018_0900'

CONTENT_TYPES = ('anime', 'manga')

# Sources
SOURCE_ANILIST = 'anilist'
SOURCE_KITSU = 'kitsu'
SOURCE_MAL = 'mal'

ANILIST_URL = 'https://graphql.anilist.co'
KITSU_URL = 'https://kitsu.io/api/edge'
JIKAN_URL = 'https://api.jikan.moe/v4'
OPENAI_URL = 'https://api.openai.com/v1/chat/completions'

# Sync strategies
STRATEGY_ULTRA_FAST = 'ultra_fast'
STRATEGY_ENHANCED = 'enhanced'
STRATEGY_DUAL_SOURCE = 'dual_source'
STRATEGY_KITSU = 'kitsu'

LINK_REPLACE = 'replace'
LINK_ADDITIVE = 'additive'

# Cache TTL tiers (seconds)
CACHE_TTL = {
    'trending': 300,
    'popular': 600,
    'recent': 300,
    'search': 180,
    'detail': 1800,
    'stats': 3600,
    'homepage': 600,
    'genres': 7200,
    'generic': 300,
}

CACHE_PREFIX = 'cache'
CACHE_DOMAINS = ('trending', 'popular', 'recent', 'search', 'detail', 'stats', 'homepage', 'genres', 'generic')

WARMUP_ENDPOINTS = [
    {'endpoint': 'trending', 'contentType': 'anime', 'limit': 20},
    {'endpoint': 'trending', 'contentType': 'manga', 'limit': 20},
    {'endpoint': 'popular', 'contentType': 'anime', 'limit': 20},
    {'endpoint': 'popular', 'contentType': 'manga', 'limit': 20},
    {'endpoint': 'recent', 'contentType': 'anime', 'limit': 20},
    {'endpoint': 'homepage'},
]

ANIME_STATUS_MAP = {
    'FINISHED': 'Finished Airing',
    'RELEASING': 'Currently Airing',
    'NOT_YET_RELEASED': 'Not yet aired',
    'CANCELLED': 'Cancelled',
    'HIATUS': 'Hiatus',
}

MANGA_STATUS_MAP = {
    'FINISHED': 'Finished',
    'RELEASING': 'Publishing',
    'NOT_YET_RELEASED': 'Not yet published',
    'CANCELLED': 'Cancelled',
    'HIATUS': 'On Hiatus',
}

RELEASING_STATUSES = ('Currently Airing', 'Publishing')

DEFAULT_SETTINGS = {
    "database": {
        "url": ANISYNC_DB,
    },
    "redis": {
        "url": "redis://localhost:6379/0",
    },
    "sync": {
        "per_page": 50,
        "item_delay": 0.1,
        "page_delay": 1.0,
        "max_consecutive_failures": 3,
        "error_cap": 50,
        "synopsis_max_length": 5000,
        "request_timeout": 30,
    },
    "sources": {
        "anilist_url": ANILIST_URL,
        "kitsu_url": KITSU_URL,
        "jikan_url": JIKAN_URL,
        "kitsu_page_size": 10,
        "oracle_url": OPENAI_URL,
        "oracle_model": "gpt-4o-mini",
    },
    "cache": {
        "ttl": {},
        "invalidate_batch_size": 100,
        "stats_sample_size": 5,
        "metrics_retention_days": 7,
        "homepage_workers": 6,
    },
    "scheduler": {
        "enabled": False,
        "dual_sync_hours": 6,
        "dual_sync_pages": 3,
    },
}
