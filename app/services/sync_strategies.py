"""
Sync strategies plugged into the single sync orchestrator.

A strategy names its adapter, turns one decoded record into rows, decides
which title columns it may overwrite, and links relationships in its own
mode. The orchestrator owns paging, dedup, delays, transactions and
error accumulation.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from constants import (
    LINK_ADDITIVE,
    LINK_REPLACE,
    SOURCE_ANILIST,
    SOURCE_KITSU,
    STRATEGY_DUAL_SOURCE,
    STRATEGY_ENHANCED,
    STRATEGY_KITSU,
    STRATEGY_ULTRA_FAST,
)
from exceptions import SourceError
from models.animedetails import AnimeDetails
from models.mangadetails import MangaDetails
from repositories.details_repository import DetailsRepository
from repositories.titles_repository import TitlesRepository
from services import relationship_service as rel
import transformers

logger = logging.getLogger("main")

METADATA_FIELDS = frozenset(
    {
        "mal_id",
        "content_type",
        "title",
        "title_english",
        "title_japanese",
        "image_url",
        "banner_image",
        "color_theme",
        "year",
        "popularity",
        "favorites",
        "members",
        "last_anilist_update",
    }
)
RATING_FIELDS = frozenset({"score", "anilist_score", "rank"})
KITSU_FIELDS = frozenset(
    {
        "kitsu_id",
        "kitsu_rating",
        "kitsu_user_count",
        "kitsu_favorites_count",
        "kitsu_popularity_rank",
        "kitsu_rating_rank",
        "synopsis",
        "last_kitsu_update",
    }
)
ALL_ANILIST_FIELDS = METADATA_FIELDS | RATING_FIELDS | {"synopsis"}

DETAIL_MODELS = {"anime": AnimeDetails, "manga": MangaDetails}


@dataclass
class ItemRows:
    """Everything one record turns into before it is written"""

    external_id: Any
    title: Dict[str, Any]
    details: Optional[Dict[str, Any]] = None
    record: Any = None


@dataclass
class ItemOutcome:
    title_id: Optional[int] = None
    skipped: bool = False
    counts: Counter = field(default_factory=Counter)


def unique_by(items, key):
    seen = set()
    result = []
    for item in items:
        value = key(item)
        if value in seen:
            continue
        seen.add(value)
        result.append(item)
    return result


class SyncStrategy:
    """Base strategy: AniList adapter, insert-or-update keyed by anilist_id"""

    name = None
    source = SOURCE_ANILIST
    adapter_name = SOURCE_ANILIST
    link_mode = LINK_ADDITIVE
    title_key = "anilist_id"
    updatable_fields = ALL_ANILIST_FIELDS

    def __init__(self, sources, settings):
        self.sources = sources
        self.settings = settings
        self.synopsis_max_length = settings["sync"]["synopsis_max_length"]

    @property
    def adapter(self):
        return self.sources[self.adapter_name]

    def page_size(self):
        return self.settings["sync"]["per_page"]

    def fetch_page(self, content_type, page):
        return self.adapter.fetch_page(content_type, page, self.page_size())

    def transform(self, record, content_type):
        title_row = transformers.to_title_row(record, content_type, self.synopsis_max_length)
        if title_row is None:
            return None
        return ItemRows(
            external_id=record.id,
            title=title_row,
            details=transformers.to_detail_row(record, content_type),
            record=record,
        )

    def persist(self, rows, content_type):
        outcome = ItemOutcome()
        title_id, inserted = TitlesRepository.upsert_sparse(self.title_key, rows.title, self.updatable_fields)
        outcome.title_id = title_id
        outcome.counts["titlesInserted" if inserted else "titlesUpdated"] += 1

        if rows.details is not None:
            detail_inserted = DetailsRepository.upsert(DETAIL_MODELS[content_type], title_id, rows.details)
            outcome.counts["detailsInserted" if detail_inserted else "detailsUpdated"] += 1

        self.link_relationships(title_id, rows, content_type, outcome.counts)
        return outcome

    def link_relationships(self, title_id, rows, content_type, counts):
        raise NotImplementedError

    # Shared linkers

    def _link_genres(self, title_id, names, counts):
        genres = rel.ensure_genres(names)
        counts["genresCreated"] += genres.created
        counts["relationshipsCreated"] += rel.link_genres(title_id, genres.ids, self.link_mode, self.source)

    def _link_studios(self, title_id, names, counts):
        studios = rel.ensure_studios(names)
        counts["studiosCreated"] += studios.created
        counts["relationshipsCreated"] += rel.link_studios(title_id, studios.ids, self.link_mode, self.source)

    def _link_authors(self, title_id, authors, counts):
        """authors: dicts with name and role"""
        authors = unique_by(authors, lambda a: a["name"])
        result = rel.ensure_authors([a["name"] for a in authors])
        counts["authorsCreated"] += result.created
        roles = {author_id: author.get("role") for author_id, author in zip(result.ids, authors)}
        counts["relationshipsCreated"] += rel.link_authors(title_id, result.ids, roles, self.link_mode, self.source)


class UltraFastStrategy(SyncStrategy):
    """Full AniList snapshot; genres/studios/authors replaced per source"""

    name = STRATEGY_ULTRA_FAST
    link_mode = LINK_REPLACE
    updatable_fields = ALL_ANILIST_FIELDS

    def link_relationships(self, title_id, rows, content_type, counts):
        record = rows.record
        self._link_genres(title_id, record.genres, counts)
        if content_type == "anime":
            self._link_studios(title_id, record.studios, counts)
        else:
            self._link_authors(title_id, transformers.manga_authors(record), counts)


class EnhancedStrategy(SyncStrategy):
    """Metadata-only title updates plus every AniList relationship type, additively"""

    name = STRATEGY_ENHANCED
    link_mode = LINK_ADDITIVE
    updatable_fields = METADATA_FIELDS

    def link_relationships(self, title_id, rows, content_type, counts):
        record = rows.record
        self._link_genres(title_id, record.genres, counts)

        tags = unique_by(record.tags, lambda t: t.name)
        tag_result = rel.ensure_tags(tags)
        counts["tagsCreated"] += tag_result.created
        counts["relationshipsCreated"] += rel.link_tags(title_id, tag_result.ids, tags, self.link_mode, self.source)

        if content_type == "anime":
            self._link_studios(title_id, record.studios, counts)
        else:
            self._link_authors(title_id, transformers.manga_authors(record), counts)

        staff = unique_by(record.staff, lambda s: (s.anilist_id, s.role))
        people = rel.ensure_people(unique_by(staff, lambda s: s.anilist_id))
        counts["peopleCreated"] += people.created
        person_ids = dict(zip([s.anilist_id for s in unique_by(staff, lambda s: s.anilist_id)], people.ids))
        counts["relationshipsCreated"] += rel.link_people(
            title_id, [(person_ids[s.anilist_id], s.role) for s in staff], self.link_mode, self.source
        )

        characters = unique_by(record.characters, lambda c: c.anilist_id)
        char_result = rel.ensure_characters(characters)
        counts["charactersCreated"] += char_result.created
        character_ids = dict(zip([c.anilist_id for c in characters], char_result.ids))
        counts["relationshipsCreated"] += rel.link_characters(
            title_id, [(character_ids[c.anilist_id], c.role) for c in characters], self.link_mode, self.source
        )

        voice_actors = unique_by([va for c in characters for va in c.voice_actors], lambda v: v.anilist_id)
        if voice_actors:
            va_result = rel.ensure_people(voice_actors)
            counts["peopleCreated"] += va_result.created
            va_ids = dict(zip([v.anilist_id for v in voice_actors], va_result.ids))
            pairs = [
                (character_ids[c.anilist_id], va_ids[va.anilist_id], va.language)
                for c in characters
                for va in c.voice_actors
            ]
            counts["relationshipsCreated"] += rel.link_voice_actors(title_id, pairs, self.link_mode, self.source)


class DualSourceStrategy(SyncStrategy):
    """AniList page merged with a Jikan page; the schedule oracle fills missing air dates"""

    name = STRATEGY_DUAL_SOURCE
    link_mode = LINK_ADDITIVE
    updatable_fields = ALL_ANILIST_FIELDS

    def __init__(self, sources, settings):
        super().__init__(sources, settings)
        self.mal_candidates = []
        self.claimed_mal_ids = set()

    def fetch_page(self, content_type, page):
        result = super().fetch_page(content_type, page)
        jikan = self.sources.get("jikan")
        self.mal_candidates = []
        self.claimed_mal_ids = set()
        if jikan is not None:
            try:
                self.mal_candidates = jikan.fetch_page(content_type, page).records
            except SourceError as e:
                logger.warning(f"MAL page {page} unavailable, continuing with AniList only: {e.message}")
        return result

    def transform(self, record, content_type):
        rows = super().transform(record, content_type)
        if rows is None:
            return None

        # A Jikan entry pairs with at most one AniList record per page
        candidates = [c for c in self.mal_candidates if c.mal_id not in self.claimed_mal_ids]
        match = transformers.find_mal_match(record, candidates)
        if match is not None:
            self.claimed_mal_ids.add(match.mal_id)
            if record.id_mal is None and self._mal_owned_elsewhere(match.mal_id, record.id):
                match = None
        transformers.merge_mal_gaps(rows.title, rows.details, match, self.synopsis_max_length)

        oracle = self.sources.get("oracle")
        if oracle is not None and transformers.needs_schedule_estimate(record, content_type):
            guess = oracle.estimate(rows.title["title_english"] or rows.title["title"], record.status, record.episodes)
            if guess.confidence > 0 and guess.next_date:
                rows.details["next_episode_date"] = guess.next_date
                rows.details["next_episode_number"] = guess.next_number
            rows.details["schedule_confidence"] = guess.confidence
        return rows

    @staticmethod
    def _mal_owned_elsewhere(mal_id, anilist_id):
        owner = TitlesRepository.get_id_by_external_id("mal_id", mal_id)
        if owner is None or owner == TitlesRepository.get_id_by_external_id("anilist_id", anilist_id):
            return False
        logger.debug(f"MAL id {mal_id} already belongs to title {owner}, skipping merge for AniList {anilist_id}")
        return True

    def link_relationships(self, title_id, rows, content_type, counts):
        record = rows.record
        self._link_genres(title_id, record.genres, counts)
        if content_type == "anime":
            self._link_studios(title_id, record.studios, counts)
        else:
            self._link_authors(title_id, transformers.manga_authors(record), counts)


class KitsuStrategy(SyncStrategy):
    """Kitsu ratings and taxonomy for titles that already exist"""

    name = STRATEGY_KITSU
    source = SOURCE_KITSU
    adapter_name = SOURCE_KITSU
    link_mode = LINK_ADDITIVE
    title_key = "kitsu_id"
    updatable_fields = KITSU_FIELDS

    def page_size(self):
        return self.settings["sources"]["kitsu_page_size"]

    def transform(self, record, content_type):
        fields = transformers.kitsu_title_fields(record)
        if fields.get("synopsis"):
            fields["synopsis"] = transformers.clean_synopsis(fields["synopsis"], self.synopsis_max_length)
        return ItemRows(external_id=record.id, title=fields, record=record)

    def persist(self, rows, content_type):
        record = rows.record
        outcome = ItemOutcome()
        title_id = TitlesRepository.find_for_kitsu(record.id, record.canonical_title, content_type)
        if title_id is None:
            outcome.skipped = True
            return outcome

        TitlesRepository.update_fields(title_id, rows.title, self.updatable_fields)
        outcome.title_id = title_id
        outcome.counts["titlesUpdated"] += 1
        self.link_relationships(title_id, rows, content_type, outcome.counts)
        return outcome

    def link_relationships(self, title_id, rows, content_type, counts):
        record = rows.record
        self._link_genres(title_id, record.genres, counts)

        categories = list(dict.fromkeys(record.categories))
        tag_result = rel.ensure_tags(categories)
        counts["tagsCreated"] += tag_result.created
        counts["relationshipsCreated"] += rel.link_tags(title_id, tag_result.ids, None, self.link_mode, self.source)

        if content_type == "anime":
            self._link_studios(title_id, record.producers, counts)
        else:
            self._link_authors(title_id, record.staff, counts)


STRATEGIES = {
    STRATEGY_ULTRA_FAST: UltraFastStrategy,
    STRATEGY_ENHANCED: EnhancedStrategy,
    STRATEGY_DUAL_SOURCE: DualSourceStrategy,
    STRATEGY_KITSU: KitsuStrategy,
}


def build_strategy(name, sources, settings):
    try:
        strategy_cls = STRATEGIES[name]
    except KeyError:
        raise ValueError(f"Unknown sync strategy '{name}'")
    return strategy_cls(sources, settings)
