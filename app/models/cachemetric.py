"""
Model: CachePerformanceMetric
Append-only; pruned by age
"""

from db import db, now_utc


class CachePerformanceMetric(db.Model):
    __tablename__ = "cache_performance_metrics"

    id = db.Column(db.Integer, primary_key=True)
    metric_type = db.Column(db.String(16), nullable=False)  # hit | miss | set | invalidate | error
    metric_value = db.Column(db.Float, default=0.0)  # duration ms or count
    cache_key = db.Column(db.String(512))
    metadata_json = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=now_utc, index=True)

    __table_args__ = (db.Index("idx_cache_metrics_type_created", "metric_type", "created_at"),)
