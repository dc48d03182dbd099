"""
Content Routes - cached read views
"""

from flask import Blueprint, request, current_app

from api_responses import success_response, error_response, handle_api_errors, ErrorCode
from exceptions import ValidationException
from validation import bounded_int, json_body, validate_content_type

content_bp = Blueprint("content", __name__, url_prefix="/api")


@content_bp.post("/content")
@handle_api_errors
def content_api():
    body = json_body(request)
    endpoint = body.get("endpoint")
    if not endpoint or not isinstance(endpoint, str):
        raise ValidationException("endpoint is required")

    content_type = validate_content_type(body.get("contentType") or "anime")
    limit = bounded_int(body, "limit", 20, minimum=1, maximum=100)
    filters = body.get("filters")
    if filters is None:
        filters = {}
    if not isinstance(filters, dict):
        raise ValidationException("filters must be an object")

    title_id = None
    if endpoint == "detail":
        title_id = bounded_int(body, "id", None, minimum=1)

    data, hit = current_app.extensions["anisync"]["content"].get_content(
        endpoint,
        content_type=content_type,
        limit=limit,
        sort_by=body.get("sort_by"),
        filters=filters,
        query=body.get("query"),
        title_id=title_id,
    )
    if endpoint == "detail" and data is None:
        response, status = error_response(ErrorCode.NOT_FOUND, message=f"Title {title_id} not found", status_code=404)
    else:
        response, status = success_response(data=data, cached=hit, endpoint=endpoint, contentType=content_type)
    response.headers["X-Cache"] = "HIT" if hit else "MISS"
    return response, status
