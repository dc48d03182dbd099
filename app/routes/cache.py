"""
Cache Routes - admin actions and metrics reports
"""

from flask import Blueprint, request, current_app

from api_responses import success_response, handle_api_errors
from exceptions import ValidationException
from validation import bounded_int, json_body

cache_bp = Blueprint("cache", __name__, url_prefix="/api")


@cache_bp.post("/cache")
@handle_api_errors
def cache_admin_api():
    body = json_body(request)
    action = body.get("action")
    if not action:
        raise ValidationException("action is required")

    patterns = body.get("patterns")
    if patterns is not None and (
        not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns)
    ):
        raise ValidationException("patterns must be a list of strings")

    result = current_app.extensions["anisync"]["cache_admin"].handle(
        action,
        pattern=body.get("pattern"),
        patterns=patterns,
        limit=bounded_int(body, "limit", 100, minimum=1, maximum=1000),
    )
    return success_response(data=result, action=action)


@cache_bp.post("/cache/stats")
@handle_api_errors
def cache_stats_api():
    body = json_body(request)
    result = current_app.extensions["anisync"]["cache_admin"].report(
        action=body.get("action") or "get",
        date_range=bounded_int(body, "dateRange", 7, minimum=1, maximum=90),
    )
    return success_response(data=result)
