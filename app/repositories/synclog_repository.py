"""
Repository for SyncLog database operations
"""

from sqlalchemy.exc import SQLAlchemyError
from db import db, now_utc
from models.synclog import SyncLog


class SyncLogRepository:
    """Repository for SyncLog database operations"""

    @staticmethod
    def get_by_id(id):
        """Get SyncLog by ID"""
        return db.session.get(SyncLog, id)

    @staticmethod
    def get_recent(limit=20, job_name=None):
        query = SyncLog.query
        if job_name:
            query = query.filter(SyncLog.job_name == job_name)
        return query.order_by(SyncLog.started_at.desc()).limit(limit).all()

    @staticmethod
    def start(job_name, details=None):
        """Create a running log row"""
        try:
            item = SyncLog(job_name=job_name, status="running", details=details or {})
            db.session.add(item)
            db.session.commit()
            db.session.refresh(item)
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def finish(id, status, details=None, error_message=None):
        """Close a log row as completed or failed"""
        item = db.session.get(SyncLog, id)
        if not item:
            return None

        item.status = status
        item.completed_at = now_utc()
        if details is not None:
            item.details = {**(item.details or {}), **details}
        if error_message:
            item.error_message = error_message

        db.session.commit()
        return item

    @staticmethod
    def record(job_name, status, details=None, error_message=None):
        """Write a single already-finished log row"""
        item = SyncLog(
            job_name=job_name,
            status=status,
            details=details or {},
            error_message=error_message,
            completed_at=now_utc(),
        )
        db.session.add(item)
        db.session.commit()
        return item
