"""
AniList GraphQL client

One query per page with the full field set, so a sync needs a single
round-trip per page regardless of how many relationship types it links.
"""

import logging

from constants import ANILIST_URL
from exceptions import SourceProtocolError
from sources.base import (
    AiringEpisode,
    BaseSourceClient,
    CharacterRef,
    DecodeError,
    MediaRecord,
    MediaTitle,
    SourcePage,
    StaffRef,
    TagRef,
    as_dict,
    as_int,
    as_list,
    as_str,
    decode_fuzzy_date,
    decode_records,
)

logger = logging.getLogger("main")

MEDIA_PAGE_QUERY = """
query ($page: Int, $perPage: Int, $type: MediaType) {
  Page(page: $page, perPage: $perPage) {
    pageInfo { hasNextPage currentPage }
    media(type: $type, sort: [POPULARITY_DESC, SCORE_DESC]) {
      id
      idMal
      type
      title { romaji english native }
      description(asHtml: false)
      startDate { year month day }
      endDate { year month day }
      season
      seasonYear
      format
      status
      episodes
      chapters
      volumes
      coverImage { extraLarge large medium color }
      bannerImage
      genres
      averageScore
      meanScore
      popularity
      favourites
      tags { name rank isMediaSpoiler description category }
      studios { nodes { name } }
      staff(perPage: 10) {
        edges { role node { id name { full native } image { large } } }
      }
      characters(perPage: 10, sort: [ROLE, RELEVANCE]) {
        edges {
          role
          node { id name { full native } image { large } }
          voiceActors(language: JAPANESE) { id name { full native } image { large } languageV2 }
        }
      }
      trailer { id site }
      nextAiringEpisode { episode airingAt }
    }
  }
}
"""


def _decode_staff(node, role=None, language=None):
    node = as_dict(node)
    staff_id = as_int(node.get("id"))
    name = as_dict(node.get("name"))
    full = as_str(name.get("full"))
    if staff_id is None or not full:
        return None
    return StaffRef(
        anilist_id=staff_id,
        name=full,
        name_native=as_str(name.get("native")),
        role=as_str(role),
        image_url=as_str(as_dict(node.get("image")).get("large")),
        language=as_str(language or node.get("languageV2")),
    )


def decode_media(raw) -> MediaRecord:
    """Validate one AniList media object into a MediaRecord"""
    if not isinstance(raw, dict):
        raise DecodeError("media entry is not an object")
    media_id = as_int(raw.get("id"))
    if media_id is None:
        raise DecodeError("media entry has no id", external_id=raw.get("id"))

    title = as_dict(raw.get("title"))
    cover = as_dict(raw.get("coverImage"))

    tags = []
    for tag in as_list(raw.get("tags")):
        tag = as_dict(tag)
        name = as_str(tag.get("name"))
        if name:
            tags.append(
                TagRef(
                    name=name,
                    rank=as_int(tag.get("rank")),
                    is_spoiler=bool(tag.get("isMediaSpoiler")),
                    description=as_str(tag.get("description")),
                    category=as_str(tag.get("category")),
                )
            )

    staff = []
    for edge in as_list(as_dict(raw.get("staff")).get("edges")):
        edge = as_dict(edge)
        person = _decode_staff(edge.get("node"), role=edge.get("role"))
        if person:
            staff.append(person)

    characters = []
    for edge in as_list(as_dict(raw.get("characters")).get("edges")):
        edge = as_dict(edge)
        node = as_dict(edge.get("node"))
        char_id = as_int(node.get("id"))
        char_name = as_dict(node.get("name"))
        if char_id is None or not as_str(char_name.get("full")):
            continue
        voice_actors = [va for va in (_decode_staff(v) for v in as_list(edge.get("voiceActors"))) if va]
        characters.append(
            CharacterRef(
                anilist_id=char_id,
                name=as_str(char_name.get("full")),
                name_native=as_str(char_name.get("native")),
                role=as_str(edge.get("role")),
                image_url=as_str(as_dict(node.get("image")).get("large")),
                voice_actors=voice_actors,
            )
        )

    next_airing = None
    airing = raw.get("nextAiringEpisode")
    if isinstance(airing, dict):
        next_airing = AiringEpisode(episode=as_int(airing.get("episode")), airing_at=as_int(airing.get("airingAt")))

    trailer = as_dict(raw.get("trailer"))

    return MediaRecord(
        id=media_id,
        title=MediaTitle(
            romaji=as_str(title.get("romaji")),
            english=as_str(title.get("english")),
            native=as_str(title.get("native")),
        ),
        media_type=as_str(raw.get("type")),
        id_mal=as_int(raw.get("idMal")),
        description=raw.get("description") if isinstance(raw.get("description"), str) else None,
        cover_image=as_str(cover.get("extraLarge")) or as_str(cover.get("large")) or as_str(cover.get("medium")),
        cover_color=as_str(cover.get("color")),
        banner_image=as_str(raw.get("bannerImage")),
        average_score=as_int(raw.get("averageScore")),
        mean_score=as_int(raw.get("meanScore")),
        popularity=as_int(raw.get("popularity")),
        favourites=as_int(raw.get("favourites")),
        episodes=as_int(raw.get("episodes")),
        chapters=as_int(raw.get("chapters")),
        volumes=as_int(raw.get("volumes")),
        status=as_str(raw.get("status")),
        format=as_str(raw.get("format")),
        season=as_str(raw.get("season")),
        season_year=as_int(raw.get("seasonYear")),
        start_date=decode_fuzzy_date(raw.get("startDate")),
        end_date=decode_fuzzy_date(raw.get("endDate")),
        genres=[g for g in (as_str(g) for g in as_list(raw.get("genres"))) if g],
        tags=tags,
        studios=[
            s for s in (as_str(as_dict(n).get("name")) for n in as_list(as_dict(raw.get("studios")).get("nodes"))) if s
        ],
        staff=staff,
        characters=characters,
        next_airing=next_airing,
        trailer_id=as_str(trailer.get("id")),
        trailer_site=as_str(trailer.get("site")),
    )


class AniListClient(BaseSourceClient):
    """Client for the AniList GraphQL API"""

    name = "anilist"

    def __init__(self, base_url: str = ANILIST_URL, timeout: int = 30, session=None):
        super().__init__(base_url, timeout=timeout, session=session)

    def fetch_page(self, content_type: str, page: int, per_page: int = 50) -> SourcePage:
        variables = {"page": page, "perPage": per_page, "type": content_type.upper()}
        payload = self._request(
            "POST",
            self.base_url,
            json={"query": MEDIA_PAGE_QUERY, "variables": variables},
            headers={"Content-Type": "application/json"},
        )

        if not isinstance(payload, dict):
            raise SourceProtocolError("AniList response is not an object", source=self.name)

        errors = payload.get("errors")
        if errors:
            message = as_dict(errors[0]).get("message") if isinstance(errors, list) and errors else None
            raise SourceProtocolError(f"AniList GraphQL error: {message or 'Unknown GraphQL error'}", source=self.name)

        page_data = as_dict(as_dict(payload.get("data")).get("Page"))
        if "media" not in page_data:
            raise SourceProtocolError("AniList response has no Page.media", source=self.name)

        records, rejected = decode_records(page_data.get("media"), decode_media)
        has_next = bool(as_dict(page_data.get("pageInfo")).get("hasNextPage"))
        logger.debug(f"AniList {content_type} page {page}: {len(records)} records, {len(rejected)} rejected")
        return SourcePage(records=records, has_next_page=has_next, page=page, rejected=rejected)
