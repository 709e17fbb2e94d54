"""
Request authorisation helpers for the archive's scheduled endpoints.
"""
from functools import wraps
from flask import current_app, jsonify, request
import hmac
from typing import Callable, Optional
import logging

logger = logging.getLogger(__name__)


def bearer_token_matches(header_value: Optional[str], secret: str) -> bool:
    """
    Compare an ``Authorization`` header against ``Bearer <secret>``.

    Args:
        header_value: Raw header value (may be None)
        secret: Expected shared secret

    Returns:
        bool: True if the header carries exactly that bearer token
    """
    if not header_value:
        return False
    expected = f"Bearer {secret}"
    return hmac.compare_digest(header_value.encode('utf-8'), expected.encode('utf-8'))


def require_cron_secret(f: Callable) -> Callable:
    """
    Decorator guarding scheduler endpoints.

    When the app's CRON_SECRET is unset every caller is allowed; otherwise
    the request must carry ``Authorization: Bearer <CRON_SECRET>``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        secret = current_app.config.get('CRON_SECRET')
        if secret and not bearer_token_matches(request.headers.get('Authorization'), secret):
            logger.warning(f"Rejected unauthorised call to {request.path} from {request.remote_addr}")
            return jsonify({'error': 'Unauthorized'}), 401
        return f(*args, **kwargs)
    return decorated_function
