"""
Tests for the sync orchestrator and its strategies
"""
import pytest

from conftest import make_media, make_page
from exceptions import SourceUnavailable
from models.animedetails import AnimeDetails
from models.mangadetails import MangaDetails
from models.relationships import TitleAuthor, TitleCharacter, TitleGenre, TitlePerson
from models.synclog import SyncLog
from models.titles import Title
from services.sync_service import run_automated_dual_sync
from sources.base import KitsuRecord, SourcePage
from sources.jikan import decode_entry


def enhanced_media(media_id=1):
    return make_media(
        media_id,
        "Sousou no Frieren",
        tags=[{"name": "Elf", "rank": 90, "isMediaSpoiler": False}],
        staff={
            "edges": [
                {"role": "Director", "node": {"id": 100, "name": {"full": "Keiichiro Saito"}}},
            ]
        },
        characters={
            "edges": [
                {
                    "role": "MAIN",
                    "node": {"id": 200, "name": {"full": "Frieren"}},
                    "voiceActors": [{"id": 300, "name": {"full": "Atsumi Tanezaki"}, "languageV2": "Japanese"}],
                }
            ]
        },
    )


class TestUltraFast:
    def test_run_inserts_titles_details_and_links(self, sync_service, sources):
        sources["anilist"].pages = {1: make_page([make_media(1, "Frieren"), make_media(2, "Dungeon Meshi"), make_media(1, "Frieren")])}

        result = sync_service.run("ultra_fast", "anime", max_pages=1)

        assert result["success"] is True
        assert result["status"] == "completed"
        assert result["totalProcessed"] == 2
        assert result["results"]["titlesInserted"] == 2
        assert result["results"]["detailsInserted"] == 2
        assert result["results"]["genresCreated"] == 1
        assert result["results"]["studiosCreated"] == 1
        assert result["results"]["relationshipsCreated"] == 4
        assert result["results"]["errors"] == []
        assert Title.query.count() == 2
        assert AnimeDetails.query.count() == 2

    def test_second_run_updates_instead_of_inserting(self, sync_service, sources):
        sources["anilist"].pages = {1: make_page([make_media(1, "Frieren")])}
        sync_service.run("ultra_fast", "anime")

        sources["anilist"].pages = {1: make_page([make_media(1, "Frieren", averageScore=91, genres=["Drama"])])}
        result = sync_service.run("ultra_fast", "anime")

        assert result["results"]["titlesInserted"] == 0
        assert result["results"]["titlesUpdated"] == 1
        assert result["results"]["detailsUpdated"] == 1
        title = Title.query.filter_by(anilist_id=1).one()
        assert title.score == 9.1
        # Replace mode: the old genre link is gone
        assert TitleGenre.query.filter_by(title_id=title.id).count() == 1

    def test_bad_items_are_reported_not_fatal(self, sync_service, sources):
        sources["anilist"].pages = {
            1: make_page(
                [
                    make_media(1, "Frieren"),
                    make_media(2, title={"romaji": None, "english": None, "native": None}),
                    {"title": {"romaji": "No id"}},
                ]
            )
        }

        result = sync_service.run("ultra_fast", "anime")

        assert result["success"] is True
        assert result["totalProcessed"] == 1
        assert result["results"]["errorCount"] == 2
        assert any(error.startswith("Item 2:") for error in result["results"]["errors"])

    def test_aborts_after_consecutive_page_failures(self, sync_service, sources):
        sources["anilist"].pages = {page: SourceUnavailable("down", source="anilist") for page in range(1, 6)}

        result = sync_service.run("ultra_fast", "anime", max_pages=5)

        assert result["success"] is False
        assert result["status"] == "failed"
        assert result["aborted"] is True
        assert result["pagesFailed"] == 3
        assert len(sources["anilist"].calls) == 3

    def test_recovers_after_failed_page(self, sync_service, sources):
        sources["anilist"].pages = {
            1: SourceUnavailable("down", source="anilist"),
            2: make_page([make_media(1, "Frieren")], page=2),
        }

        result = sync_service.run("ultra_fast", "anime", max_pages=2)

        assert result["success"] is True
        assert result["pagesFailed"] == 1
        assert result["pagesProcessed"] == 1
        assert result["totalProcessed"] == 1

    def test_stops_when_source_has_no_next_page(self, sync_service, sources):
        sources["anilist"].pages = {
            1: make_page([make_media(1)], has_next=True),
            2: make_page([make_media(2)], page=2, has_next=False),
        }

        result = sync_service.run("ultra_fast", "anime", max_pages=10)

        assert result["pagesProcessed"] == 2
        assert [call[1] for call in sources["anilist"].calls] == [1, 2]

    def test_manga_links_authors(self, sync_service, sources):
        raw = make_media(
            5,
            "Berserk",
            type="MANGA",
            format="MANGA",
            chapters=380,
            staff={
                "edges": [
                    {"role": "Story & Art", "node": {"id": 1, "name": {"full": "Kentaro Miura"}}},
                    {"role": "Assistant", "node": {"id": 2, "name": {"full": "Someone Else"}}},
                ]
            },
        )
        sources["anilist"].pages = {("manga", 1): make_page([raw])}

        result = sync_service.run("ultra_fast", "manga")

        assert result["results"]["authorsCreated"] == 1
        assert MangaDetails.query.one().chapters == 380
        assert TitleAuthor.query.one().role == "Story & Art"

    def test_run_writes_sync_log(self, sync_service, sources):
        sources["anilist"].pages = {1: make_page([make_media(1)])}
        sync_service.run("ultra_fast", "anime")

        log = SyncLog.query.filter_by(job_name="ultra_fast_sync_anime").one()
        assert log.status == "completed"
        assert log.details["totalProcessed"] == 1
        assert log.completed_at is not None

    def test_unknown_strategy_and_content_type(self, sync_service):
        with pytest.raises(ValueError):
            sync_service.run("ultra_fast", "novel")
        with pytest.raises(ValueError):
            sync_service.run("warp_speed", "anime")


class TestEnhanced:
    def test_links_people_characters_and_voice_actors(self, sync_service, sources):
        sources["anilist"].pages = {1: make_page([enhanced_media()])}

        result = sync_service.run("enhanced", "anime")
        counts = result["results"]

        assert counts["tagsCreated"] == 1
        assert counts["peopleCreated"] == 2
        assert counts["charactersCreated"] == 1
        assert counts["relationshipsCreated"] == 6
        assert TitlePerson.query.one().role == "Director"
        assert TitleCharacter.query.one().is_main is True

    def test_enhanced_does_not_overwrite_ratings(self, sync_service, sources):
        sources["anilist"].pages = {1: make_page([make_media(1, averageScore=80)])}
        sync_service.run("ultra_fast", "anime")

        sources["anilist"].pages = {1: make_page([make_media(1, averageScore=40, popularity=5000)])}
        sync_service.run("enhanced", "anime")

        title = Title.query.filter_by(anilist_id=1).one()
        assert title.score == 8.0
        assert title.popularity == 5000


class TestDualSource:
    def test_fills_gaps_from_mal(self, sync_service, sources):
        sources["anilist"].pages = {1: make_page([make_media(1, "Sousou no Frieren", episodes=None)])}
        mal = decode_entry({"mal_id": 52991, "title": "Sousou no Frieren", "title_english": "Frieren", "rank": 1, "episodes": 28})
        sources["jikan"].pages = {1: SourcePage(records=[mal], has_next_page=False, page=1)}

        result = sync_service.run("dual_source", "anime")

        assert result["success"] is True
        title = Title.query.one()
        assert title.mal_id == 52991
        assert title.title_english == "Frieren"
        assert title.rank == 1
        assert title.anime_details.episodes == 28

    def test_one_mal_entry_fills_only_one_title(self, sync_service, sources):
        sources["anilist"].pages = {1: make_page([make_media(1, "Naruto"), make_media(2, "Naruto: Shippuuden")])}
        mal = decode_entry({"mal_id": 20, "title": "Naruto"})
        sources["jikan"].pages = {1: SourcePage(records=[mal], has_next_page=False, page=1)}

        result = sync_service.run("dual_source", "anime")

        assert result["results"]["errors"] == []
        assert result["results"]["titlesInserted"] == 2
        assert Title.query.filter_by(anilist_id=1).one().mal_id == 20
        assert Title.query.filter_by(anilist_id=2).one().mal_id is None

    def test_mal_id_owned_by_another_title_is_not_copied(self, sync_service, sources):
        sources["anilist"].pages = {1: make_page([make_media(1, "Naruto", idMal=20)])}
        sync_service.run("ultra_fast", "anime")

        sources["anilist"].pages = {1: make_page([make_media(2, "Naruto: Shippuuden")])}
        mal = decode_entry({"mal_id": 20, "title": "Naruto"})
        sources["jikan"].pages = {1: SourcePage(records=[mal], has_next_page=False, page=1)}
        result = sync_service.run("dual_source", "anime")

        assert result["results"]["errors"] == []
        assert result["results"]["titlesInserted"] == 1
        assert Title.query.filter_by(anilist_id=2).one().mal_id is None

    def test_known_mal_id_does_not_borrow_other_work(self, sync_service, sources):
        sources["anilist"].pages = {1: make_page([make_media(1, "Naruto", idMal=20, episodes=None)])}
        mal = decode_entry({"mal_id": 1735, "title": "Naruto: Shippuuden", "episodes": 500})
        sources["jikan"].pages = {1: SourcePage(records=[mal], has_next_page=False, page=1)}

        sync_service.run("dual_source", "anime")

        title = Title.query.one()
        assert title.mal_id == 20
        assert title.anime_details.episodes is None

    def test_mal_outage_does_not_fail_page(self, sync_service, sources):
        sources["anilist"].pages = {1: make_page([make_media(1, "Frieren")])}
        sources["jikan"].pages = {1: SourceUnavailable("429", source="mal")}

        result = sync_service.run("dual_source", "anime")

        assert result["success"] is True
        assert result["totalProcessed"] == 1


class TestKitsu:
    def test_unknown_titles_are_skipped(self, sync_service, sources):
        sources["kitsu"].pages = {1: SourcePage(records=[KitsuRecord(id=9, canonical_title="Unknown")], has_next_page=False, page=1)}

        result = sync_service.run("kitsu", "anime")

        assert result["results"]["skipped"] == 1
        assert result["totalProcessed"] == 0
        assert Title.query.count() == 0

    def test_enriches_existing_title(self, sync_service, sources):
        sources["anilist"].pages = {1: make_page([make_media(1, "Frieren")])}
        sync_service.run("ultra_fast", "anime")

        record = KitsuRecord(id=42, canonical_title="Frieren", average_rating=87.5, genres=["Fantasy"], producers=["Madhouse"])
        sources["kitsu"].pages = {1: SourcePage(records=[record], has_next_page=False, page=1)}
        result = sync_service.run("kitsu", "anime")

        assert result["results"]["titlesUpdated"] == 1
        title = Title.query.one()
        assert title.kitsu_id == 42
        assert title.kitsu_rating == 8.75
        assert title.score == 8.2
        assert TitleGenre.query.filter_by(title_id=title.id, source="kitsu").count() == 1
        assert TitleGenre.query.filter_by(title_id=title.id, source="anilist").count() == 1

    def test_title_bound_to_another_kitsu_entry_is_not_taken_over(self, sync_service, sources):
        sources["anilist"].pages = {1: make_page([make_media(1, "Hunter x Hunter")])}
        sync_service.run("ultra_fast", "anime")

        records = [
            KitsuRecord(id=6448, canonical_title="Hunter x Hunter", average_rating=90.0, genres=["Adventure"]),
            KitsuRecord(id=145, canonical_title="Hunter x Hunter", average_rating=88.0, genres=["Comedy"]),
        ]
        sources["kitsu"].pages = {1: SourcePage(records=records, has_next_page=False, page=1)}
        result = sync_service.run("kitsu", "anime")

        assert result["results"]["titlesUpdated"] == 1
        assert result["results"]["skipped"] == 1
        title = Title.query.one()
        assert title.kitsu_id == 6448
        assert title.kitsu_rating == 9.0
        assert TitleGenre.query.filter_by(title_id=title.id, source="kitsu").count() == 1


class TestCacheInvalidation:
    def test_sync_drops_cached_views_for_content_type(self, sync_service, sources, fake_redis):
        fake_redis.store.update(
            {
                "cache:trending:anime:20": "[]",
                "cache:trending:manga:20": "[]",
                "cache:homepage:all:all": "{}",
            }
        )
        sources["anilist"].pages = {1: make_page([make_media(1)])}

        sync_service.run("ultra_fast", "anime")

        assert "cache:trending:anime:20" not in fake_redis.store
        assert "cache:homepage:all:all" not in fake_redis.store
        assert "cache:trending:manga:20" in fake_redis.store

    def test_nothing_written_means_nothing_invalidated(self, sync_service, fake_redis):
        fake_redis.store["cache:trending:anime:20"] = "[]"

        sync_service.run("ultra_fast", "anime")

        assert "cache:trending:anime:20" in fake_redis.store


class TestAutomatedDualSync:
    def test_runs_both_content_types(self, sync_service, sources):
        sources["anilist"].pages = {
            ("anime", 1): make_page([make_media(1)]),
            ("manga", 1): make_page([make_media(2, type="MANGA")]),
        }

        summary = run_automated_dual_sync(sync_service, pages=1)

        assert summary["success"] is True
        assert summary["totalProcessed"] == 2
        assert set(summary["results"]) == {"anime", "manga"}
        log = SyncLog.query.filter_by(job_name="automated_dual_sync").one()
        assert log.status == "completed"

    def test_failed_content_type_marks_run_failed(self, sync_service, sources):
        sources["anilist"].pages = {
            ("anime", 1): make_page([make_media(1)]),
            ("manga", 1): SourceUnavailable("down", source="anilist"),
        }

        summary = run_automated_dual_sync(sync_service, pages=1)

        assert summary["success"] is False
        assert summary["results"]["anime"]["success"] is True
        assert SyncLog.query.filter_by(job_name="automated_dual_sync").one().status == "failed"
