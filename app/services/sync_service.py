"""
Sync orchestrator

Idle -> Paging -> (ItemProcessing)* -> Completed | Failed

Pages are fetched and items processed strictly one at a time, with a
fixed delay between items and a longer one between pages. A page that
fails or comes back empty is recorded and skipped; the run aborts after
max_consecutive_failures such pages in a row. Each item is its own
transaction, and a failing item only adds an entry to the error list.
"""

import time
from collections import Counter

import structlog
from sqlalchemy.exc import SQLAlchemyError

from constants import CONTENT_TYPES, STRATEGY_ULTRA_FAST
from db import db
from exceptions import AniSyncException, ItemPersistError, ItemTransformError, SourceError
from metrics import ACTIVE_SYNCS, observe_sync
from repositories.synclog_repository import SyncLogRepository
from services.sync_strategies import build_strategy

logger = structlog.get_logger("sync")


class SyncState:
    IDLE = "idle"
    PAGING = "paging"
    COMPLETED = "completed"
    FAILED = "failed"


RESULT_COUNTERS = (
    "titlesInserted",
    "titlesUpdated",
    "detailsInserted",
    "detailsUpdated",
    "genresCreated",
    "studiosCreated",
    "authorsCreated",
    "tagsCreated",
    "peopleCreated",
    "charactersCreated",
    "relationshipsCreated",
    "skipped",
)


class SyncRun:
    """Mutable state of one orchestrator invocation"""

    def __init__(self, strategy, content_type, max_pages, start_page, error_cap):
        self.strategy = strategy
        self.content_type = content_type
        self.max_pages = max_pages
        self.start_page = start_page
        self.error_cap = error_cap
        self.state = SyncState.IDLE
        self.counts = Counter()
        self.errors = []
        self.error_count = 0
        self.processed = 0
        self.pages_processed = 0
        self.pages_failed = 0
        self.aborted = False
        self.started = None
        self.duration = 0.0

    def add_error(self, message):
        self.error_count += 1
        if len(self.errors) < self.error_cap:
            self.errors.append(message)

    def to_dict(self):
        duration = round(self.duration, 2)
        results = {name: self.counts.get(name, 0) for name in RESULT_COUNTERS}
        results["errors"] = list(self.errors)
        results["errorCount"] = self.error_count
        return {
            "success": self.state == SyncState.COMPLETED,
            "status": self.state,
            "strategy": self.strategy.name,
            "contentType": self.content_type,
            "startPage": self.start_page,
            "totalProcessed": self.processed,
            "pagesProcessed": self.pages_processed,
            "pagesFailed": self.pages_failed,
            "aborted": self.aborted,
            "duration": duration,
            "averagePerSecond": round(self.processed / self.duration, 2) if self.duration > 0 else 0.0,
            "results": results,
        }


class SyncService:
    """Runs one strategy over a page range"""

    def __init__(self, sources, settings, item_delay=None, page_delay=None, cache=None, sleep=time.sleep):
        sync_settings = settings["sync"]
        self.sources = sources
        self.settings = settings
        self.item_delay = sync_settings["item_delay"] if item_delay is None else item_delay
        self.page_delay = sync_settings["page_delay"] if page_delay is None else page_delay
        self.max_consecutive_failures = sync_settings["max_consecutive_failures"]
        self.error_cap = sync_settings["error_cap"]
        self.cache = cache
        self.sleep = sleep

    def run(self, strategy_name, content_type, max_pages=1, start_page=1):
        if content_type not in CONTENT_TYPES:
            raise ValueError(f"Unsupported content type: {content_type}")

        strategy = build_strategy(strategy_name, self.sources, self.settings)
        run = SyncRun(strategy, content_type, max_pages, start_page, self.error_cap)
        log = SyncLogRepository.start(
            f"{strategy.name}_sync_{content_type}",
            {"maxPages": max_pages, "startPage": start_page},
        )
        log_id = log.id

        log_ctx = logger.bind(strategy=strategy.name, content_type=content_type)
        log_ctx.info("sync_started", max_pages=max_pages, start_page=start_page)

        run.started = time.time()
        with ACTIVE_SYNCS.track_inprogress():
            try:
                self._page_loop(run, log_ctx)
            finally:
                run.duration = time.time() - run.started

        observe_sync(strategy.name, run.duration, run.processed, run.error_count)
        result = run.to_dict()

        SyncLogRepository.finish(
            log_id,
            run.state,
            details=result,
            error_message="; ".join(run.errors[:5]) if run.state == SyncState.FAILED else None,
        )

        if self.cache is not None and (run.counts["titlesInserted"] or run.counts["titlesUpdated"]):
            self.cache.invalidate_content(content_type)

        log_ctx.info(
            "sync_finished",
            status=run.state,
            processed=run.processed,
            pages=run.pages_processed,
            errors=run.error_count,
            duration=result["duration"],
        )
        return result

    def _page_loop(self, run, log_ctx):
        run.state = SyncState.PAGING
        consecutive_failures = 0
        end_page = run.start_page + run.max_pages

        for page in range(run.start_page, end_page):
            if page > run.start_page:
                self.sleep(self.page_delay)

            try:
                result = run.strategy.fetch_page(run.content_type, page)
            except SourceError as e:
                run.pages_failed += 1
                consecutive_failures += 1
                run.add_error(f"Page {page}: {e.message}")
                log_ctx.error("page_fetch_failed", page=page, error=e.message)
                if consecutive_failures >= self.max_consecutive_failures:
                    run.aborted = True
                    log_ctx.error("sync_aborted", consecutive_failures=consecutive_failures)
                    break
                continue

            run.pages_processed += 1
            for rejected in result.rejected:
                run.add_error(f"Item {rejected.external_id}: {rejected.reason}")

            records = self._dedupe(result.records)
            if not records:
                consecutive_failures += 1
                log_ctx.warning("empty_page", page=page)
                if consecutive_failures >= self.max_consecutive_failures:
                    run.aborted = True
                    break
            else:
                consecutive_failures = 0

            log_ctx.debug("page_fetched", page=page, items=len(records), raw=len(result.records))
            for index, record in enumerate(records):
                if index:
                    self.sleep(self.item_delay)
                self._process_item(run, record, log_ctx)

            if not result.has_next_page:
                break

        run.state = SyncState.COMPLETED if run.pages_processed > 0 else SyncState.FAILED

    @staticmethod
    def _dedupe(records):
        """Keep the first record per external id, preserving source order"""
        seen = set()
        unique = []
        for record in records:
            if record.external_id in seen:
                continue
            seen.add(record.external_id)
            unique.append(record)
        return unique

    def _process_item(self, run, record, log_ctx):
        external_id = record.external_id
        try:
            rows = run.strategy.transform(record, run.content_type)
            if rows is None:
                raise ItemTransformError("record has no usable title", external_id=external_id)
            outcome = run.strategy.persist(rows, run.content_type)
            db.session.commit()
        except AniSyncException as e:
            db.session.rollback()
            run.add_error(f"Item {external_id}: {e.message}")
            log_ctx.warning("item_failed", external_id=external_id, error=e.message)
            return
        except SQLAlchemyError as e:
            db.session.rollback()
            error = ItemPersistError(str(e.__cause__ or e), external_id=external_id)
            run.add_error(f"Item {external_id}: {error.message}")
            log_ctx.warning("item_persist_failed", external_id=external_id, error=error.message)
            return
        except Exception as e:
            db.session.rollback()
            run.add_error(f"Item {external_id}: {e}")
            log_ctx.warning("item_failed", external_id=external_id, error=str(e), exc_info=True)
            return

        if outcome.skipped:
            run.counts["skipped"] += 1
            log_ctx.debug("item_skipped", external_id=external_id)
            return

        run.counts.update(outcome.counts)
        run.processed += 1
        log_ctx.debug("item_processed", external_id=external_id, title_id=outcome.title_id)


def run_automated_dual_sync(service, pages=3):
    """
    Periodic job: one ultra_fast pass over anime then manga, recorded as a
    single combined log row on top of the per-run rows.
    """
    log = SyncLogRepository.start("automated_dual_sync", {"pages": pages})
    log_id = log.id
    results = {}
    failures = []
    for content_type in CONTENT_TYPES:
        try:
            results[content_type] = service.run(STRATEGY_ULTRA_FAST, content_type, max_pages=pages)
        except Exception as e:
            db.session.rollback()
            logger.error("automated_sync_failed", content_type=content_type, error=str(e), exc_info=True)
            failures.append(f"{content_type}: {e}")
            continue
        if not results[content_type]["success"]:
            failures.append(f"{content_type}: {results[content_type]['status']}")

    status = SyncState.FAILED if failures else SyncState.COMPLETED
    summary = {
        "success": not failures,
        "totalProcessed": sum(r["totalProcessed"] for r in results.values()),
        "results": results,
    }
    SyncLogRepository.finish(log_id, status, details=summary, error_message="; ".join(failures) or None)
    logger.info("automated_sync_finished", status=status, processed=summary["totalProcessed"])
    return summary
