"""
AniSync - Custom Exceptions and Exception Handlers
"""
import structlog
from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = structlog.get_logger('exceptions')


class AniSyncException(Exception):
    """Base exception for AniSync"""
    def __init__(self, message: str, code: str = "ANISYNC_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self):
        return {
            'error': True,
            'success': False,
            'code': self.code,
            'message': self.message
        }


class SourceError(AniSyncException):
    """External metadata source failed for a whole page"""
    def __init__(self, message: str, source: str = None, code: str = "SOURCE_ERROR"):
        self.source = source
        super().__init__(message, code=code)


class SourceUnavailable(SourceError):
    """Source unreachable or answered with a non-2xx status"""
    def __init__(self, message: str, source: str = None, status_code: int = None):
        self.status_code = status_code
        super().__init__(message, source=source, code="SOURCE_UNAVAILABLE")
        logger.error(f"Source unavailable ({source}): {message}")


class SourceProtocolError(SourceError):
    """Source answered 2xx but the payload is unusable (GraphQL errors, bad JSON)"""
    def __init__(self, message: str, source: str = None):
        super().__init__(message, source=source, code="SOURCE_PROTOCOL_ERROR")
        logger.error(f"Source protocol error ({source}): {message}")


class ItemTransformError(AniSyncException):
    """A single record could not be mapped to rows"""
    def __init__(self, message: str, external_id=None):
        self.external_id = external_id
        super().__init__(message, code="ITEM_TRANSFORM_ERROR")


class ItemPersistError(AniSyncException):
    """A single record could not be written"""
    def __init__(self, message: str, external_id=None):
        self.external_id = external_id
        super().__init__(message, code="ITEM_PERSIST_ERROR")


class CacheUnavailable(AniSyncException):
    """Redis call failed"""
    def __init__(self, message: str):
        super().__init__(message, code="CACHE_UNAVAILABLE")


class DataUnavailable(AniSyncException):
    """Database read failed after a cache miss"""
    def __init__(self, message: str, retry_after: int = 30):
        self.retry_after = retry_after
        super().__init__(message, code="DATA_UNAVAILABLE")
        logger.error(f"Data unavailable: {message}")


class ValidationException(AniSyncException):
    """Validation-related exceptions"""
    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")
        logger.warning(f"Validation error: {message}")


def register_exception_handlers(app):
    """Register exception handlers with Flask app"""

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Handle HTTP exceptions"""
        return jsonify({
            'error': True,
            'success': False,
            'code': e.name.upper().replace(' ', '_'),
            'message': e.description
        }), e.code

    @app.errorhandler(AniSyncException)
    def handle_anisync_exception(e):
        """Handle AniSync custom exceptions"""
        return jsonify(e.to_dict()), 400

    @app.errorhandler(ValidationException)
    def handle_validation_exception(e):
        """Handle validation exceptions"""
        return jsonify(e.to_dict()), 400

    @app.errorhandler(SourceError)
    def handle_source_exception(e):
        """Handle upstream source failures"""
        return jsonify(e.to_dict()), 502

    @app.errorhandler(CacheUnavailable)
    def handle_cache_unavailable(e):
        """Redis down for an operation that cannot degrade"""
        return jsonify(e.to_dict()), 503

    @app.errorhandler(DataUnavailable)
    def handle_data_unavailable(e):
        """Database down: tell the caller when to come back"""
        response = jsonify(e.to_dict())
        response.status_code = 503
        response.headers['Retry-After'] = str(e.retry_after)
        return response

    @app.errorhandler(Exception)
    def handle_generic_exception(e):
        """Handle all other exceptions"""
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify({
            'error': True,
            'success': False,
            'code': 'INTERNAL_ERROR',
            'message': 'An unexpected error occurred'
        }), 500
