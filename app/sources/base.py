"""
Shared plumbing for source clients: HTTP session handling, typed records
and the decode helpers that turn loose JSON into them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from exceptions import SourceProtocolError, SourceUnavailable

logger = logging.getLogger("main")


class DecodeError(ValueError):
    """A single raw record could not be decoded"""

    def __init__(self, message: str, external_id=None):
        self.external_id = external_id
        super().__init__(message)


@dataclass
class FuzzyDate:
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None


@dataclass
class MediaTitle:
    romaji: Optional[str] = None
    english: Optional[str] = None
    native: Optional[str] = None


@dataclass
class TagRef:
    name: str
    rank: Optional[int] = None
    is_spoiler: bool = False
    description: Optional[str] = None
    category: Optional[str] = None


@dataclass
class StaffRef:
    anilist_id: int
    name: str
    name_native: Optional[str] = None
    role: Optional[str] = None
    image_url: Optional[str] = None
    language: Optional[str] = None


@dataclass
class CharacterRef:
    anilist_id: int
    name: str
    name_native: Optional[str] = None
    role: Optional[str] = None
    image_url: Optional[str] = None
    voice_actors: List[StaffRef] = field(default_factory=list)


@dataclass
class AiringEpisode:
    episode: Optional[int]
    airing_at: Optional[int]  # epoch seconds


@dataclass
class MediaRecord:
    """One AniList media entry"""

    id: int
    title: MediaTitle
    media_type: Optional[str] = None
    id_mal: Optional[int] = None
    description: Optional[str] = None
    cover_image: Optional[str] = None
    cover_color: Optional[str] = None
    banner_image: Optional[str] = None
    average_score: Optional[int] = None
    mean_score: Optional[int] = None
    popularity: Optional[int] = None
    favourites: Optional[int] = None
    episodes: Optional[int] = None
    chapters: Optional[int] = None
    volumes: Optional[int] = None
    status: Optional[str] = None
    format: Optional[str] = None
    season: Optional[str] = None
    season_year: Optional[int] = None
    start_date: FuzzyDate = field(default_factory=FuzzyDate)
    end_date: FuzzyDate = field(default_factory=FuzzyDate)
    genres: List[str] = field(default_factory=list)
    tags: List[TagRef] = field(default_factory=list)
    studios: List[str] = field(default_factory=list)
    staff: List[StaffRef] = field(default_factory=list)
    characters: List[CharacterRef] = field(default_factory=list)
    next_airing: Optional[AiringEpisode] = None
    trailer_id: Optional[str] = None
    trailer_site: Optional[str] = None

    @property
    def external_id(self):
        return self.id


@dataclass
class KitsuRecord:
    """One Kitsu anime/manga resource with its included relationships resolved"""

    id: int
    canonical_title: str
    titles: Dict[str, str] = field(default_factory=dict)
    synopsis: Optional[str] = None
    average_rating: Optional[float] = None  # 0-100
    user_count: Optional[int] = None
    favorites_count: Optional[int] = None
    popularity_rank: Optional[int] = None
    rating_rank: Optional[int] = None
    genres: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    producers: List[str] = field(default_factory=list)
    staff: List[Dict[str, str]] = field(default_factory=list)  # {"name", "role"}

    @property
    def external_id(self):
        return self.id


@dataclass
class JikanRecord:
    """One MyAnimeList entry as served by Jikan"""

    mal_id: int
    title: str
    title_english: Optional[str] = None
    title_japanese: Optional[str] = None
    synopsis: Optional[str] = None
    score: Optional[float] = None
    scored_by: Optional[int] = None
    rank: Optional[int] = None
    popularity: Optional[int] = None
    members: Optional[int] = None
    favorites: Optional[int] = None
    image_url: Optional[str] = None
    episodes: Optional[int] = None
    chapters: Optional[int] = None
    volumes: Optional[int] = None
    status: Optional[str] = None
    season: Optional[str] = None
    year: Optional[int] = None
    genres: List[str] = field(default_factory=list)
    studios: List[str] = field(default_factory=list)

    @property
    def external_id(self):
        return self.mal_id


@dataclass
class RejectedRecord:
    external_id: Any
    reason: str


@dataclass
class SourcePage:
    records: list
    has_next_page: bool
    page: int
    rejected: List[RejectedRecord] = field(default_factory=list)


# Decode helpers


def as_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def as_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def as_str(value) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


def as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def as_list(value) -> list:
    return value if isinstance(value, list) else []


def decode_fuzzy_date(value) -> FuzzyDate:
    value = as_dict(value)
    return FuzzyDate(year=as_int(value.get("year")), month=as_int(value.get("month")), day=as_int(value.get("day")))


def decode_records(raw_items, decoder):
    """Decode every item, splitting good records from rejected ones"""
    records = []
    rejected = []
    for raw in as_list(raw_items):
        try:
            records.append(decoder(raw))
        except DecodeError as e:
            logger.warning(f"Rejected source record {e.external_id}: {e}")
            rejected.append(RejectedRecord(external_id=e.external_id, reason=str(e)))
    return records, rejected


class BaseSourceClient:
    """HTTP client shared by every source adapter"""

    name = "source"

    def __init__(self, base_url: str, timeout: int = 30, session: requests.Session = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "AniSync Metadata Sync", "Accept": "application/json"})

    def _request(self, method: str, url: str, **kwargs) -> Any:
        """Perform a request and return the decoded JSON body"""
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise SourceUnavailable(f"{self.name} request failed: {e}", source=self.name)

        if not 200 <= response.status_code < 300:
            raise SourceUnavailable(
                f"{self.name} API error: {response.status_code}",
                source=self.name,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise SourceProtocolError(f"{self.name} returned malformed JSON: {e}", source=self.name)
