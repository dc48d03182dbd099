"""
System Routes - health check
"""

from flask import Blueprint, current_app
from sqlalchemy import text
import socket

from api_responses import success_response, handle_api_errors
from constants import BUILD_VERSION
from db import db, logger
from utils import now_utc

system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.route("/health", methods=["GET"])
@handle_api_errors
def health_check_api():
    """
    Health check endpoint for monitoring.
    """
    overall_status = "healthy"
    checks = {
        "timestamp": now_utc().isoformat(),
        "version": BUILD_VERSION,
        "hostname": socket.gethostname(),
        "database": "unknown",
        "redis": "unknown",
    }

    # Check Database connection
    try:
        db.session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        db.session.rollback()
        logger.warning(f"Health check: database error: {e}")
        checks["database"] = f"error: {str(e)}"
        overall_status = "unhealthy"

    # Check Redis connection; content reads survive without it
    if current_app.extensions["anisync"]["cache"].ping():
        checks["redis"] = "ok"
    else:
        checks["redis"] = "error"
        if overall_status == "healthy":
            overall_status = "degraded"

    status_code = 200 if overall_status == "healthy" else 503
    return success_response(data={"status": overall_status, "checks": checks}, status_code=status_code)
