"""
Sync Routes - trigger a strategy run over a page range
"""

from flask import Blueprint, request, jsonify, current_app
import structlog

from api_responses import success_response, handle_api_errors
from exceptions import ValidationException
from services.sync_strategies import STRATEGIES
from validation import bounded_int, json_body, validate_content_type

logger = structlog.get_logger("sync")

sync_bp = Blueprint("sync", __name__, url_prefix="/api")


@sync_bp.post("/sync/<strategy>")
@handle_api_errors
def run_sync_api(strategy):
    """
    Run one sync strategy.

    Partial failures answer 200 with success true and a non-empty errors
    list; a run that never fetched a page answers 500. With ?async=1 the
    run is queued on Celery, or run inline when CELERY_ENABLED is off.
    """
    if strategy not in STRATEGIES:
        raise ValidationException(f"Unknown strategy '{strategy}'. Expected one of: {', '.join(STRATEGIES)}")

    body = json_body(request)
    content_type = validate_content_type(body.get("contentType"))
    max_pages = bounded_int(body, "maxPages", 1, minimum=1, maximum=100)
    start_page = bounded_int(body, "startPage", 1, minimum=1)

    if request.args.get("async") in ("1", "true") and current_app.config.get("CELERY_ENABLED", True):
        from tasks import sync_content_async

        task = sync_content_async.delay(strategy, content_type, max_pages, start_page)
        logger.info("sync_queued", strategy=strategy, content_type=content_type, task_id=task.id)
        return success_response(message="Sync queued", status_code=202, task_id=task.id)

    result = current_app.extensions["anisync"]["sync"].run(strategy, content_type, max_pages, start_page)
    return jsonify(result), 200 if result["success"] else 500


@sync_bp.get("/sync/logs")
@handle_api_errors
def sync_logs_api():
    """Most recent sync log rows"""
    from repositories.synclog_repository import SyncLogRepository

    limit = bounded_int(request.args, "limit", 20, minimum=1, maximum=100)
    logs = SyncLogRepository.get_recent(limit=limit, job_name=request.args.get("job"))
    return success_response(data=[log.to_dict() for log in logs])
