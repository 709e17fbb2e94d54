"""
API Routes Blueprint

Endpoints called by infrastructure rather than by pages:
- the scheduled view-queue drain
- the view-queue depth probe
"""

from flask import Blueprint, jsonify
from datetime import datetime, timezone
import logging

from ..security import require_cron_secret
from ..services.view_tracking import process_view_queue, pending_view_count
from ..utils.helpers import create_success_response

bp = Blueprint('api', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)


@bp.route("/cron/process-views", methods=['GET'])
@require_cron_secret
def process_views():
    """
    Drain queued page views into permanent view records.

    Called on a fixed interval by an external scheduler. Responds
    ``{"success": true, "processed": n, "timestamp": iso}`` or a 500 with
    the error message; a failed drain leaves the queue for the next run.
    """
    try:
        result = process_view_queue()
    except Exception as e:
        logger.error(f"Cron job failed: {e}", exc_info=True)
        message = getattr(e, 'message', None) or str(e) or 'Unknown error'
        return jsonify({'success': False, 'error': message}), 500
    return jsonify({
        'success': True,
        'processed': result.processed,
        'timestamp': result.timestamp,
    })


@bp.route("/queue", methods=['GET'])
@require_cron_secret
def queue_status():
    """Number of page views waiting for the next drain."""
    return jsonify(create_success_response({
        'pending': pending_view_count(),
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }))
