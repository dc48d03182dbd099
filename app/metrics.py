from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from flask import Response, request
import logging
import time

logger = logging.getLogger("main")

# Cache Metrics
cache_operations_total = Counter("anisync_cache_operations_total", "Total cache operations", ["operation"])

cache_latency_seconds = Histogram("anisync_cache_latency_seconds", "Cache operation latency", ["operation"])

# Sync Metrics
sync_items_total = Counter("anisync_sync_items_total", "Items handled by sync runs", ["strategy", "status"])

sync_duration_seconds = Histogram("anisync_sync_duration_seconds", "Wall-clock duration of a sync run", ["strategy"])

ACTIVE_SYNCS = Gauge("anisync_active_syncs", "Number of sync runs in progress")

# Database Metrics
db_titles_total = Gauge("anisync_titles_total", "Total number of titles", ["content_type"])

# API Metrics
api_request_duration_seconds = Histogram(
    "anisync_api_request_duration_seconds", "API request duration", ["endpoint", "method"]
)

api_requests_total = Counter("anisync_api_requests_total", "Total API requests", ["endpoint", "method", "status_code"])


def init_metrics(app):
    @app.route("/api/metrics")
    def metrics():
        update_db_metrics()
        return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)

    @app.before_request
    def before_request():
        request.start_time = time.time()

    @app.after_request
    def after_request(response):
        duration = time.time() - getattr(request, "start_time", time.time())
        api_request_duration_seconds.labels(endpoint=request.endpoint or "unknown", method=request.method).observe(
            duration
        )
        api_requests_total.labels(
            endpoint=request.endpoint or "unknown", method=request.method, status_code=response.status_code
        ).inc()
        return response

    logger = app.logger
    logger.info("Prometheus metrics initialized at /api/metrics")


def update_db_metrics():
    """Refresh title gauges from the database."""
    try:
        from models.titles import Title

        for content_type in ("anime", "manga"):
            db_titles_total.labels(content_type=content_type).set(
                Title.query.filter(Title.content_type == content_type).count()
            )
    except Exception as e:
        logger.warning(f"Could not refresh title gauges: {e}")


def observe_cache(operation, duration):
    cache_operations_total.labels(operation=operation).inc()
    cache_latency_seconds.labels(operation=operation).observe(duration)


def observe_sync(strategy, duration, processed, failed):
    sync_duration_seconds.labels(strategy=strategy).observe(duration)
    if processed:
        sync_items_total.labels(strategy=strategy, status="processed").inc(processed)
    if failed:
        sync_items_total.labels(strategy=strategy, status="failed").inc(failed)
