"""
Record transformers: source records -> row dicts for titles and details.

Pure functions. Anything a decoded record can hold maps to a row or to
None, which callers treat as "skip this item".
"""

import difflib
import html
from datetime import date, datetime, timezone

from constants import ANIME_STATUS_MAP, MANGA_STATUS_MAP
from utils import now_utc, strip_html

MIN_YEAR = 1900
MAX_YEAR = 2100
MAL_MATCH_RATIO = 0.85
AUTHOR_ROLE_MARKERS = ("Story", "Art", "Original Creator")


def format_fuzzy_date(fuzzy):
    """
    YYYY-MM-DD from a partial date, missing month/day default to 01.

    Returns None without a year, with a year outside 1900-2100, or when the
    components do not form a real calendar date (month 13, Feb 30).
    """
    if fuzzy is None or fuzzy.year is None:
        return None
    year = fuzzy.year
    month = fuzzy.month or 1
    day = fuzzy.day or 1
    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def rescale_score(score):
    """0-100 -> 0-10, None stays None"""
    if score is None:
        return None
    return round(score / 10.0, 2)


def resolve_display_title(title):
    """romaji, then English, then native; first non-empty wins"""
    if title is None:
        return None
    for candidate in (title.romaji, title.english, title.native):
        if candidate and candidate.strip():
            return candidate.strip()
    return None


def clean_synopsis(text, max_length=5000):
    cleaned = strip_html(html.unescape(text)) if text else None
    if cleaned and len(cleaned) > max_length:
        cleaned = cleaned[:max_length].rstrip()
    return cleaned


def epoch_to_iso(timestamp):
    if timestamp is None:
        return None
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat().replace("+00:00", "Z")
    except (OverflowError, OSError, ValueError):
        return None


def map_anime_status(status):
    return ANIME_STATUS_MAP.get(status) or status or "Finished Airing"


def map_manga_status(status):
    return MANGA_STATUS_MAP.get(status) or status or "Finished"


def to_title_row(record, content_type, synopsis_max_length=5000):
    """AniList MediaRecord -> titles row, or None when it has no usable title"""
    display_title = resolve_display_title(record.title)
    if display_title is None:
        return None

    year = record.season_year
    if year is None and record.start_date is not None:
        year = record.start_date.year

    return {
        "anilist_id": record.id,
        "mal_id": record.id_mal,
        "content_type": content_type,
        "title": display_title,
        "title_english": record.title.english,
        "title_japanese": record.title.native,
        "synopsis": clean_synopsis(record.description, synopsis_max_length),
        "image_url": record.cover_image,
        "banner_image": record.banner_image,
        "color_theme": record.cover_color,
        "score": rescale_score(record.average_score),
        "anilist_score": record.average_score,
        "popularity": record.popularity or 0,
        "favorites": record.favourites or 0,
        "members": record.popularity or 0,
        "year": year,
        "last_anilist_update": now_utc(),
    }


def to_anime_detail_row(record):
    """AniList MediaRecord -> anime_details columns (title_id is added by the caller)"""
    youtube = record.trailer_site == "youtube" and record.trailer_id
    next_airing = record.next_airing
    return {
        "episodes": record.episodes,
        "aired_from": format_fuzzy_date(record.start_date),
        "aired_to": format_fuzzy_date(record.end_date),
        "season": record.season,
        "status": map_anime_status(record.status),
        "type": record.format or "TV",
        "trailer_url": f"https://www.youtube.com/watch?v={record.trailer_id}" if youtube else None,
        "trailer_id": record.trailer_id if youtube else None,
        "trailer_site": record.trailer_site,
        "next_episode_date": epoch_to_iso(next_airing.airing_at) if next_airing else None,
        "next_episode_number": next_airing.episode if next_airing else None,
        "last_sync_check": now_utc(),
    }


def to_manga_detail_row(record):
    return {
        "chapters": record.chapters,
        "volumes": record.volumes,
        "published_from": format_fuzzy_date(record.start_date),
        "published_to": format_fuzzy_date(record.end_date),
        "status": map_manga_status(record.status),
        "type": record.format or "Manga",
        "last_sync_check": now_utc(),
    }


def to_detail_row(record, content_type):
    if content_type == "anime":
        return to_anime_detail_row(record)
    return to_manga_detail_row(record)


def manga_authors(record):
    """Staff whose role marks them as a writer or artist"""
    authors = []
    for member in record.staff:
        role = member.role or ""
        if any(marker in role for marker in AUTHOR_ROLE_MARKERS):
            authors.append({"name": member.name, "role": role})
    return authors


def kitsu_title_fields(record):
    """Columns a Kitsu pass may write on an existing title"""
    return {
        "kitsu_id": record.id,
        "kitsu_rating": round(record.average_rating / 10.0, 2) if record.average_rating is not None else None,
        "kitsu_user_count": record.user_count,
        "kitsu_favorites_count": record.favorites_count,
        "kitsu_popularity_rank": record.popularity_rank,
        "kitsu_rating_rank": record.rating_rank,
        "synopsis": record.synopsis,
        "last_kitsu_update": now_utc(),
    }


def _normalise(text):
    return (text or "").strip().lower()


def _titles_match(left, right):
    left, right = _normalise(left), _normalise(right)
    if not left or not right:
        return False
    if left in right or right in left:
        return True
    return difflib.SequenceMatcher(None, left, right).ratio() >= MAL_MATCH_RATIO


def find_mal_match(record, candidates):
    """
    Pick the Jikan entry that corresponds to an AniList record.

    A known idMal only ever matches that exact entry. Without one, fall back
    to case-insensitive containment (either way) or a close difflib ratio on
    the romaji or English title.
    """
    if record.id_mal is not None:
        for candidate in candidates:
            if candidate.mal_id == record.id_mal:
                return candidate
        return None

    for candidate in candidates:
        if _titles_match(record.title.romaji, candidate.title):
            return candidate
        if record.title.english and _titles_match(record.title.english, candidate.title_english):
            return candidate
    return None


def merge_mal_gaps(title_row, detail_row, mal, synopsis_max_length=5000):
    """Fill empty AniList fields from the MAL match; never overwrite a present value"""
    if mal is None:
        return title_row, detail_row

    fills = {
        "mal_id": mal.mal_id,
        "title_english": mal.title_english,
        "title_japanese": mal.title_japanese,
        "synopsis": clean_synopsis(mal.synopsis, synopsis_max_length),
        "image_url": mal.image_url,
        "score": mal.score,
        "rank": mal.rank,
        "year": mal.year,
    }
    for key, value in fills.items():
        if title_row.get(key) is None and value is not None:
            title_row[key] = value
    if not title_row.get("favorites") and mal.favorites:
        title_row["favorites"] = mal.favorites

    if "episodes" in detail_row and detail_row["episodes"] is None:
        detail_row["episodes"] = mal.episodes
    if "season" in detail_row and detail_row["season"] is None and mal.season:
        detail_row["season"] = mal.season.upper()
    if "chapters" in detail_row and detail_row["chapters"] is None:
        detail_row["chapters"] = mal.chapters
    if "volumes" in detail_row and detail_row["volumes"] is None:
        detail_row["volumes"] = mal.volumes
    return title_row, detail_row


def needs_schedule_estimate(record, content_type):
    """Only ongoing anime without a live AniList schedule go to the oracle"""
    return content_type == "anime" and record.status == "RELEASING" and record.next_airing is None
