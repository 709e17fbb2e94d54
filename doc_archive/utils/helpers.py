"""
Utility functions shared by the routes and services.

Coercion helpers normalise loosely typed sqlite rows, `sanitize_html` escapes
user supplied text before it is stored, and `TTLCache` is the small expiring
cache the services use in front of their heavier queries.
"""

import html
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Hashable, Optional

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_int(value: Any, fallback: int = 0) -> int:
    """Coerce a database value to int, returning `fallback` when impossible."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and value not in (float('inf'), float('-inf')) else fallback
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError:
            return fallback
    return fallback


def to_float(value: Any, fallback: float = 0.0) -> float:
    """Coerce a database value to float, returning `fallback` when impossible."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return fallback
    else:
        return fallback
    if number != number or number in (float('inf'), float('-inf')):
        return fallback
    return number


def to_str(value: Any, fallback: str = '') -> str:
    return value if isinstance(value, str) else fallback


def to_date(value: Any) -> datetime:
    """
    Parse a sqlite timestamp into an aware UTC datetime.

    SQLite's CURRENT_TIMESTAMP produces ``YYYY-MM-DD HH:MM:SS`` in UTC.
    Unparseable values map to the Unix epoch so sorting stays total.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return EPOCH
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return EPOCH


def sanitize_html(value: str) -> str:
    """Escape ``& < > " '`` so stored comment text renders as plain text."""
    return html.escape(value, quote=True)


class TTLCache:
    """
    Tiny per-key expiring cache.

    Entries are ``{'data': ..., 'loaded_at': ...}`` and are reloaded through
    the supplied loader once older than `ttl` seconds.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[Hashable, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and now - entry['loaded_at'] < self.ttl:
                return entry['data']
        data = loader()
        with self._lock:
            self._entries[key] = {'data': data, 'loaded_at': now}
        return data

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Drop one key, or everything when `key` is None."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)


def create_error_response(error_message: str, status_code: int = 500) -> Dict[str, Any]:
    """
    Create standardized error response format.

    Args:
        error_message: Error message to return
        status_code: HTTP status code

    Returns:
        Dictionary with error response data
    """
    return {
        'error': error_message,
        'success': False,
        'status_code': status_code
    }


def create_success_response(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """
    Create standardized success response format.

    Args:
        data: Optional data to include in response
        message: Optional success message

    Returns:
        Dictionary with success response data
    """
    response = {
        'success': True,
        'status_code': 200
    }

    if data is not None:
        response['data'] = data

    if message:
        response['message'] = message

    return response
