"""
Repository for CachePerformanceMetric database operations
"""

from collections import Counter
from datetime import timedelta
from sqlalchemy.exc import SQLAlchemyError
from db import db, now_utc
from models.cachemetric import CachePerformanceMetric


class CacheMetricRepository:
    """Repository for CachePerformanceMetric database operations"""

    @staticmethod
    def record(metric_type, value=0.0, cache_key=None, metadata=None):
        """Append one metric row"""
        try:
            item = CachePerformanceMetric(
                metric_type=metric_type,
                metric_value=value,
                cache_key=cache_key,
                metadata_json=metadata,
            )
            db.session.add(item)
            db.session.commit()
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def get_since(cutoff, metric_types=None):
        query = CachePerformanceMetric.query.filter(CachePerformanceMetric.created_at >= cutoff)
        if metric_types:
            query = query.filter(CachePerformanceMetric.metric_type.in_(metric_types))
        return query.all()

    @staticmethod
    def get_hit_ratio(hours=24):
        """hits / (hits + misses) * 100 over the window, 0 when nothing was requested"""
        cutoff = now_utc() - timedelta(hours=hours)
        counts = Counter(m.metric_type for m in CacheMetricRepository.get_since(cutoff, ("hit", "miss")))
        total = counts["hit"] + counts["miss"]
        if total == 0:
            return 0.0
        return round(counts["hit"] / total * 100, 2)

    @staticmethod
    def get_daily_stats(days=7):
        """Per-day totals for each metric type, oldest day first"""
        cutoff = now_utc() - timedelta(days=days)
        daily = {}
        for metric in CacheMetricRepository.get_since(cutoff):
            day = metric.created_at.date().isoformat()
            bucket = daily.setdefault(day, {"date": day, "hits": 0, "misses": 0, "sets": 0, "invalidations": 0, "errors": 0})
            if metric.metric_type == "hit":
                bucket["hits"] += 1
            elif metric.metric_type == "miss":
                bucket["misses"] += 1
            elif metric.metric_type == "set":
                bucket["sets"] += 1
            elif metric.metric_type == "invalidate":
                bucket["invalidations"] += 1
            elif metric.metric_type == "error":
                bucket["errors"] += 1

        result = []
        for day in sorted(daily):
            bucket = daily[day]
            requests = bucket["hits"] + bucket["misses"]
            bucket["hitRatio"] = round(bucket["hits"] / requests * 100, 2) if requests else 0.0
            result.append(bucket)
        return result

    @staticmethod
    def get_average_latency(days=7):
        """Mean recorded duration (ms) of hit and miss lookups"""
        cutoff = now_utc() - timedelta(days=days)
        values = [m.metric_value or 0.0 for m in CacheMetricRepository.get_since(cutoff, ("hit", "miss"))]
        if not values:
            return 0.0
        return round(sum(values) / len(values), 2)

    @staticmethod
    def get_top_keys(days=7, limit=10):
        """Most-hit cache keys in the window"""
        cutoff = now_utc() - timedelta(days=days)
        counts = Counter(m.cache_key for m in CacheMetricRepository.get_since(cutoff, ("hit",)) if m.cache_key)
        return [{"key": key, "hits": hits} for key, hits in counts.most_common(limit)]

    @staticmethod
    def clear():
        """Delete every metric row"""
        deleted = CachePerformanceMetric.query.delete()
        db.session.commit()
        return deleted

    @staticmethod
    def prune(days=7):
        """Delete rows older than the retention window"""
        cutoff = now_utc() - timedelta(days=days)
        deleted = CachePerformanceMetric.query.filter(CachePerformanceMetric.created_at < cutoff).delete()
        db.session.commit()
        return deleted

    @staticmethod
    def count():
        """Count total CachePerformanceMetric records"""
        return CachePerformanceMetric.query.count()
