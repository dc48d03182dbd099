"""
AniSync - Anime/manga metadata sync and cached content service
Application Factory e Inicialização
"""
import warnings
import os
import logging

# Suppress Flask-Limiter in-memory storage warning
warnings.filterwarnings("ignore", category=UserWarning, module="flask_limiter")

import flask.cli
flask.cli.show_server_banner = lambda *args: None

# Core Flask imports
from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import structlog

# Local imports
from constants import BUILD_VERSION, SOURCE_ANILIST, SOURCE_KITSU
from settings import load_settings, merge_settings
from db import db, migrate, init_db
from exceptions import register_exception_handlers
from metrics import init_metrics
from redis_cache import ContentCache, connect
from repositories.cachemetric_repository import CacheMetricRepository
from sources import AniListClient, KitsuClient, JikanClient, ScheduleOracle
from services.sync_service import SyncService
from services.content_service import ContentService
from services.cache_admin_service import CacheAdminService
from utils import configure_logging

# Routes
from routes.sync import sync_bp
from routes.content import content_bp
from routes.cache import cache_bp
from routes.system import system_bp

configure_logging(logging.DEBUG if os.environ.get("ANISYNC_DEBUG") else logging.INFO)
logger = structlog.get_logger('main')

limiter = Limiter(key_func=get_remote_address, default_limits=["300 per day", "100 per hour"])


def build_sources(settings):
    """Source adapters keyed by the names strategies look them up with"""
    source_settings = settings["sources"]
    timeout = settings["sync"]["request_timeout"]
    return {
        SOURCE_ANILIST: AniListClient(source_settings["anilist_url"], timeout=timeout),
        SOURCE_KITSU: KitsuClient(source_settings["kitsu_url"], timeout=timeout),
        "jikan": JikanClient(source_settings["jikan_url"], timeout=timeout),
        "oracle": ScheduleOracle(
            api_key=source_settings.get("oracle_api_key"),
            url=source_settings["oracle_url"],
            model=source_settings["oracle_model"],
            timeout=timeout,
        ),
    }


def record_cache_metric(metric_type, value, cache_key, metadata):
    CacheMetricRepository.record(metric_type, value, cache_key, metadata)


def create_app(config=None, redis_client=None, sources=None):
    """
    Application factory

    redis_client and sources are built from settings unless injected,
    which is how tests swap in fakes.
    """
    app = Flask(__name__)
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['RATELIMIT_ENABLED'] = True
    app.config['CELERY_ENABLED'] = os.environ.get('CELERY_ENABLED', 'true').lower() == 'true'
    app.config.update(config or {})

    if 'ANISYNC_SETTINGS' in app.config:
        settings = merge_settings(app.config['ANISYNC_SETTINGS'])
    else:
        settings = load_settings()
    app.config.setdefault('SQLALCHEMY_DATABASE_URI', settings["database"]["url"])

    # Initialize components
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # Register exception handlers
    register_exception_handlers(app)

    # Initialize metrics
    init_metrics(app)

    if redis_client is None:
        redis_client = connect(settings["redis"]["url"])
    if sources is None:
        sources = build_sources(settings)

    cache_settings = settings["cache"]
    cache = ContentCache(
        redis_client,
        recorder=record_cache_metric,
        batch_size=cache_settings["invalidate_batch_size"],
    )
    content_service = ContentService(cache, app, settings=settings)
    app.extensions['anisync'] = {
        'settings': settings,
        'redis': redis_client,
        'sources': sources,
        'cache': cache,
        'content': content_service,
        'cache_admin': CacheAdminService(cache, content_service, sample_size=cache_settings["stats_sample_size"]),
        'sync': SyncService(
            sources,
            settings,
            item_delay=app.config.get('SYNC_ITEM_DELAY'),
            page_delay=app.config.get('SYNC_PAGE_DELAY'),
            cache=cache,
        ),
    }

    # Register blueprints
    app.register_blueprint(sync_bp)
    app.register_blueprint(content_bp)
    app.register_blueprint(cache_bp)
    app.register_blueprint(system_bp)

    # Initialize database
    init_db(app)

    # Initialize job scheduler
    if settings["scheduler"]["enabled"] and not app.config.get('TESTING'):
        from jobs.scheduler import JobScheduler

        job_scheduler = JobScheduler()
        job_scheduler.init_app(app)
        app.extensions['anisync']['scheduler'] = job_scheduler

    logger.info("app_initialized", version=BUILD_VERSION, database=app.config['SQLALCHEMY_DATABASE_URI'].split('://')[0])
    return app


if __name__ == '__main__':
    app = create_app()
    logger.info(f'Build Version: {BUILD_VERSION}')
    logger.info('Starting server on port 8465...')
    app.run(debug=False, use_reloader=False, host="0.0.0.0", port=8465)
    logger.info('Shutting down server...')
