"""
Gallery Routes Blueprint

The home page: a searchable, sortable listing of every document in the
manifest, served in fixed-size windows for infinite scrolling, plus the
per-document like/comment counts shown on the cards.
"""

from flask import Blueprint, request, jsonify, current_app
import logging

from ..manifest import SORT_OPTIONS
from ..utils.helpers import create_error_response, create_success_response, to_int

bp = Blueprint('gallery', __name__)
logger = logging.getLogger(__name__)


@bp.route("/")
def index():
    """
    Gallery listing.

    Query params: q (search), sort (name|pages|likes|comments),
    offset, limit (defaults to GALLERY_PAGE_SIZE).
    """
    manifest = current_app.manifest
    query = request.args.get('q', '')
    sort_by = request.args.get('sort', 'name')
    if sort_by not in SORT_OPTIONS:
        return jsonify(create_error_response(f"Unknown sort option: {sort_by}", 400)), 400

    page_size = current_app.config['GALLERY_PAGE_SIZE']
    offset = max(to_int(request.args.get('offset'), 0), 0)
    limit = max(to_int(request.args.get('limit'), page_size), 1)

    stats = current_app.stats_service.get_all_document_stats()
    matches = manifest.search(query, sort_by, stats)
    window = matches[offset:offset + limit]

    payload = {
        'documents': [
            dict(doc.to_summary(), **stats.get(doc.id, {'likes': 0, 'comments': 0}))
            for doc in window
        ],
        'total': len(matches),
        'offset': offset,
        'limit': limit,
        'has_more': offset + limit < len(matches),
    }
    if len(manifest) == 0:
        return jsonify(create_success_response(
            payload, message="No documents found. Run the conversion script to populate the archive."
        ))
    return jsonify(create_success_response(payload))


@bp.route("/api/documents/stats")
def document_stats():
    """Likes and comment counts for every document that has any."""
    return jsonify(create_success_response(current_app.stats_service.get_all_document_stats()))
