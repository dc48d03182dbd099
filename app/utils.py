import logging
import os
import re
import sys
from datetime import datetime, timezone

import structlog

_HTML_TAG_RE = re.compile(r'<[^>]*>')
_SLUG_STRIP_RE = re.compile(r'[^\w\s-]')
_SLUG_SPACE_RE = re.compile(r'\s+')
_SLUG_DASH_RE = re.compile(r'-+')


# Custom logging formatter to support colors
class ColoredFormatter(logging.Formatter):
    # Define color codes
    COLORS = {
        'DEBUG': '\033[94m',   # Blue
        'INFO': '\033[92m',    # Green
        'WARNING': '\033[93m', # Yellow
        'ERROR': '\033[91m',   # Red
        'CRITICAL': '\033[95m' # Magenta
    }
    RESET = '\033[0m'  # Reset color

    def format(self, record):
        # Add color to the log level name
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"

        return super().format(record)


_logging_configured = False


def configure_logging(level=logging.INFO):
    """Configure stdlib logging and structlog once per process"""
    global _logging_configured
    if _logging_configured:
        return

    formatter = ColoredFormatter(
        '[%(asctime)s.%(msecs)03d] %(levelname)s (%(module)s) %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=[handler])

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if os.environ.get('LOG_FORMAT') == 'json' else structlog.dev.ConsoleRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger('alembic.runtime.migration').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    _logging_configured = True


def slugify(text):
    """
    Deterministic slug: lowercase, strip non-word chars, whitespace to hyphens.

    'Slice of Life' -> 'slice-of-life', 'Mahou Shoujo!!' -> 'mahou-shoujo'
    """
    if not text:
        return ''
    slug = _SLUG_STRIP_RE.sub('', text.lower())
    slug = _SLUG_SPACE_RE.sub('-', slug.strip())
    return _SLUG_DASH_RE.sub('-', slug).strip('-')


def strip_html(text):
    if not text:
        return None
    cleaned = _HTML_TAG_RE.sub('', text).strip()
    return cleaned or None


def now_utc():
    """Returns current datetime in UTC (aware)"""
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """
    Ensure a datetime object is aware and in UTC.
    Handles ISO strings, None, and naive datetimes.
    """
    if dt is None:
        return None

    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt.replace('Z', '+00:00'))
        except (ValueError, TypeError, AttributeError):
            return None

    if not hasattr(dt, 'tzinfo'):
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)

