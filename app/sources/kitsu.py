"""
Kitsu JSON:API client

Related resources are requested with `include` in the same call and
resolved from the compound document's `included` array.
"""

import logging

from constants import KITSU_URL
from exceptions import SourceProtocolError
from sources.base import (
    BaseSourceClient,
    DecodeError,
    KitsuRecord,
    SourcePage,
    as_dict,
    as_float,
    as_int,
    as_list,
    as_str,
    decode_records,
)

logger = logging.getLogger("main")

BASE_FIELDS = "canonicalTitle,titles,averageRating,userCount,favoritesCount,popularityRank,ratingRank,synopsis,genres,categories"

INCLUDES = {
    "anime": "genres,categories,animeProductions.producer",
    "manga": "genres,categories,staff.person",
}


def _related(resource, name):
    """(type, id) pairs of a to-many relationship"""
    data = as_dict(as_dict(as_dict(resource.get("relationships")).get(name))).get("data")
    pairs = []
    for ref in as_list(data):
        ref = as_dict(ref)
        if ref.get("type") and ref.get("id") is not None:
            pairs.append((ref["type"], str(ref["id"])))
    return pairs


def _related_one(resource, name):
    ref = as_dict(as_dict(as_dict(resource.get("relationships")).get(name)).get("data"))
    if ref.get("type") and ref.get("id") is not None:
        return ref["type"], str(ref["id"])
    return None


def make_decoder(included):
    """Build a decoder bound to the page's included resources"""
    index = {}
    for item in as_list(included):
        item = as_dict(item)
        if item.get("type") and item.get("id") is not None:
            index[(item["type"], str(item["id"]))] = item

    def attr(key, name):
        return as_dict(index.get(key, {}).get("attributes")).get(name)

    def decode(raw) -> KitsuRecord:
        if not isinstance(raw, dict):
            raise DecodeError("kitsu resource is not an object")
        kitsu_id = as_int(raw.get("id"))
        attrs = as_dict(raw.get("attributes"))
        canonical = as_str(attrs.get("canonicalTitle"))
        if kitsu_id is None or not canonical:
            raise DecodeError("kitsu resource has no id or canonicalTitle", external_id=raw.get("id"))

        genres = [g for g in (as_str(attr(k, "name")) for k in _related(raw, "genres")) if g]
        categories = [c for c in (as_str(attr(k, "title")) for k in _related(raw, "categories")) if c]

        producers = []
        for key in _related(raw, "animeProductions"):
            production = index.get(key)
            if not production:
                continue
            if as_str(as_dict(production.get("attributes")).get("role")) not in (None, "studio"):
                continue
            producer_key = _related_one(production, "producer")
            name = as_str(attr(producer_key, "name")) if producer_key else None
            if name:
                producers.append(name)

        staff = []
        for key in _related(raw, "staff"):
            member = index.get(key)
            if not member:
                continue
            person_key = _related_one(member, "person")
            name = as_str(attr(person_key, "name")) if person_key else None
            if name:
                role = as_str(as_dict(member.get("attributes")).get("role")) or "author"
                staff.append({"name": name, "role": role})

        titles = {k: v for k, v in as_dict(attrs.get("titles")).items() if isinstance(v, str) and v}
        return KitsuRecord(
            id=kitsu_id,
            canonical_title=canonical,
            titles=titles,
            synopsis=as_str(attrs.get("synopsis")),
            average_rating=as_float(attrs.get("averageRating")),
            user_count=as_int(attrs.get("userCount")),
            favorites_count=as_int(attrs.get("favoritesCount")),
            popularity_rank=as_int(attrs.get("popularityRank")),
            rating_rank=as_int(attrs.get("ratingRank")),
            genres=genres,
            categories=categories,
            producers=producers,
            staff=staff,
        )

    return decode


class KitsuClient(BaseSourceClient):
    """Client for the Kitsu edge API"""

    name = "kitsu"

    def __init__(self, base_url: str = KITSU_URL, timeout: int = 30, session=None):
        super().__init__(base_url, timeout=timeout, session=session)
        self.session.headers.update({"Accept": "application/vnd.api+json"})

    def fetch_page(self, content_type: str, page: int, per_page: int = 10) -> SourcePage:
        params = {
            "page[limit]": per_page,
            "page[offset]": (page - 1) * per_page,
            "sort": "-updatedAt",
            f"fields[{content_type}]": BASE_FIELDS + (",animeProductions" if content_type == "anime" else ",staff"),
            "include": INCLUDES[content_type],
        }
        payload = self._request("GET", f"{self.base_url}/{content_type}", params=params)

        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            raise SourceProtocolError("Kitsu response has no data list", source=self.name)

        records, rejected = decode_records(payload["data"], make_decoder(payload.get("included")))
        has_next = bool(as_dict(payload.get("links")).get("next"))
        return SourcePage(records=records, has_next_page=has_next, page=page, rejected=rejected)
