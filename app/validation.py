"""
Request body validation shared by the API blueprints
"""

from constants import CONTENT_TYPES
from exceptions import ValidationException


def validate_content_type(content_type):
    if content_type not in CONTENT_TYPES:
        raise ValidationException(f"contentType must be one of {', '.join(CONTENT_TYPES)}")
    return content_type


def bounded_int(body, name, default, minimum=None, maximum=None):
    """Integer field from a JSON body, defaulted when absent, range-checked otherwise"""
    value = body.get(name)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValidationException(f"{name} must be an integer")
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationException(f"{name} must be an integer")
    if minimum is not None and value < minimum:
        raise ValidationException(f"{name} must be >= {minimum}")
    if maximum is not None and value > maximum:
        raise ValidationException(f"{name} must be <= {maximum}")
    return value


def json_body(request):
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationException("Request body must be a JSON object")
    return body
