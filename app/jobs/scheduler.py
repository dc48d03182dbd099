"""
Background Jobs - periodic sync and metrics housekeeping
"""
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.triggers.cron import CronTrigger
import logging

logger = logging.getLogger('main')


class JobScheduler:
    """Background jobs bound to one Flask app"""

    def __init__(self, scheduler=None):
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self._jobs_registered = False

    def init_app(self, app, start=True):
        """Register jobs for the app and start the scheduler"""
        self._register_jobs(app)
        if start:
            self.scheduler.start()
        logger.info("Job scheduler initialized")

    def _register_jobs(self, app):
        if self._jobs_registered:
            return

        scheduler_settings = app.extensions['anisync']['settings']['scheduler']

        # ultra_fast anime + manga pass
        self.scheduler.add_job(
            func=self._dual_sync_job,
            trigger=IntervalTrigger(hours=scheduler_settings['dual_sync_hours']),
            id='automated_dual_sync',
            name='Automated Dual Sync',
            args=[app],
            max_instances=1,
            coalesce=True,
        )

        # Cache metric retention (daily at 3 AM UTC)
        self.scheduler.add_job(
            func=self._prune_cache_metrics_job,
            trigger=CronTrigger(hour=3, minute=0),
            id='prune_cache_metrics',
            name='Prune Cache Metrics',
            args=[app],
        )

        self._jobs_registered = True
        logger.info("Background jobs registered")

    def _dual_sync_job(self, app):
        from services.sync_service import run_automated_dual_sync

        with app.app_context():
            extension = app.extensions['anisync']
            run_automated_dual_sync(extension['sync'], pages=extension['settings']['scheduler']['dual_sync_pages'])

    def _prune_cache_metrics_job(self, app):
        from repositories.cachemetric_repository import CacheMetricRepository

        with app.app_context():
            days = app.extensions['anisync']['settings']['cache']['metrics_retention_days']
            deleted = CacheMetricRepository.prune(days=days)
            logger.info(f"Pruned {deleted} cache metric rows older than {days} days")

    def shutdown(self):
        """Encerrar scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Job scheduler shutdown")
