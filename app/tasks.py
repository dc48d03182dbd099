import structlog

from celery_app import celery
from utils import configure_logging

configure_logging()
logger = structlog.get_logger("main")

# Lazy initialization of Flask app to avoid errors on import
# The app context will only be created when the first task runs
_flask_app = None


def get_flask_app():
    """Get or create the Flask app lazily"""
    global _flask_app
    if _flask_app is None:
        from app import create_app

        logger.info("Creating Flask app for worker (lazy initialization)...")
        _flask_app = create_app()
    return _flask_app


@celery.task(name="tasks.sync_content_async")
def sync_content_async(strategy, content_type, max_pages=1, start_page=1):
    """Run one sync strategy in the worker and return its summary"""
    logger.info("task_execution_started", task="sync_content_async", strategy=strategy, content_type=content_type)
    app = get_flask_app()
    with app.app_context():
        result = app.extensions["anisync"]["sync"].run(strategy, content_type, max_pages, start_page)
    logger.info("task_execution_finished", task="sync_content_async", success=result["success"])
    return result


@celery.task(name="tasks.automated_dual_sync")
def automated_dual_sync(pages=None):
    """ultra_fast anime + manga pass with one combined log row"""
    from services.sync_service import run_automated_dual_sync

    app = get_flask_app()
    with app.app_context():
        extension = app.extensions["anisync"]
        pages = pages or extension["settings"]["scheduler"]["dual_sync_pages"]
        return run_automated_dual_sync(extension["sync"], pages=pages)
