"""
Jikan (MyAnimeList) REST client

Plain paged GET, no relationship expansion. Used to fill gaps in AniList
records, matched by title.
"""

import logging

from constants import JIKAN_URL, SOURCE_MAL
from exceptions import SourceProtocolError
from sources.base import (
    BaseSourceClient,
    DecodeError,
    JikanRecord,
    SourcePage,
    as_dict,
    as_float,
    as_int,
    as_list,
    as_str,
    decode_records,
)

logger = logging.getLogger("main")

JIKAN_MAX_LIMIT = 25


def decode_entry(raw) -> JikanRecord:
    if not isinstance(raw, dict):
        raise DecodeError("jikan entry is not an object")
    mal_id = as_int(raw.get("mal_id"))
    title = as_str(raw.get("title"))
    if mal_id is None or not title:
        raise DecodeError("jikan entry has no mal_id or title", external_id=raw.get("mal_id"))

    images = as_dict(as_dict(raw.get("images")).get("jpg"))
    studios = as_list(raw.get("studios")) or as_list(raw.get("authors"))
    return JikanRecord(
        mal_id=mal_id,
        title=title,
        title_english=as_str(raw.get("title_english")),
        title_japanese=as_str(raw.get("title_japanese")),
        synopsis=as_str(raw.get("synopsis")),
        score=as_float(raw.get("score")),
        scored_by=as_int(raw.get("scored_by")),
        rank=as_int(raw.get("rank")),
        popularity=as_int(raw.get("popularity")),
        members=as_int(raw.get("members")),
        favorites=as_int(raw.get("favorites")),
        image_url=as_str(images.get("large_image_url")) or as_str(images.get("image_url")),
        episodes=as_int(raw.get("episodes")),
        chapters=as_int(raw.get("chapters")),
        volumes=as_int(raw.get("volumes")),
        status=as_str(raw.get("status")),
        season=as_str(raw.get("season")),
        year=as_int(raw.get("year")),
        genres=[g for g in (as_str(as_dict(x).get("name")) for x in as_list(raw.get("genres"))) if g],
        studios=[s for s in (as_str(as_dict(x).get("name")) for x in studios) if s],
    )


class JikanClient(BaseSourceClient):
    """Client for the Jikan v4 REST API"""

    name = SOURCE_MAL

    def __init__(self, base_url: str = JIKAN_URL, timeout: int = 30, session=None):
        super().__init__(base_url, timeout=timeout, session=session)

    def fetch_page(self, content_type: str, page: int, per_page: int = JIKAN_MAX_LIMIT) -> SourcePage:
        params = {"page": page, "limit": min(per_page, JIKAN_MAX_LIMIT), "order_by": "popularity"}
        payload = self._request("GET", f"{self.base_url}/{content_type}", params=params)

        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            raise SourceProtocolError("Jikan response has no data list", source=self.name)

        records, rejected = decode_records(payload["data"], decode_entry)
        has_next = bool(as_dict(payload.get("pagination")).get("has_next_page"))
        return SourcePage(records=records, has_next_page=has_next, page=page, rejected=rejected)
