"""
Viewer Routes Blueprint

Per-document endpoints:
- the viewer and file pages (document, neighbours, first page window,
  comments, likes). Every visit is queued for view analytics.
- the page window endpoint used for infinite scrolling
- comment, comment-like and document-like actions
"""

from flask import Blueprint, request, jsonify, current_app
import logging
from typing import Any, Dict

from ..exceptions import ValidationError
from ..services.view_tracking import track_document_view
from ..utils.helpers import create_error_response, create_success_response, to_int

bp = Blueprint('viewer', __name__)
logger = logging.getLogger(__name__)


def _page_window(document_id: str, offset: int, limit: int) -> Dict[str, Any]:
    pages = current_app.manifest.page_urls(document_id)
    offset = max(offset, 0)
    limit = max(limit, 1)
    return {
        'pages': pages[offset:offset + limit],
        'offset': offset,
        'limit': limit,
        'total_pages': len(pages),
        'has_more': offset + limit < len(pages),
    }


def _document_payload(document_id: str) -> Dict[str, Any]:
    """Shared body of the viewer and file pages. Raises DocumentNotFoundError."""
    manifest = current_app.manifest
    doc = manifest.require(document_id)
    prev_doc, next_doc = manifest.neighbours(document_id)
    window = _page_window(document_id, 0, current_app.config['VIEWER_PAGE_WINDOW'])

    comments = current_app.comment_service.get_comments(document_id)
    likes = current_app.stats_service.get_document_likes(document_id)

    track_document_view(document_id)

    return {
        'document': doc.to_summary(),
        'prev_id': prev_doc.id if prev_doc else None,
        'next_id': next_doc.id if next_doc else None,
        'page_window': window,
        'comments': [c.to_dict() for c in comments],
        'likes': likes,
    }


@bp.route("/viewer/<document_id>")
def viewer(document_id: str):
    return jsonify(create_success_response(_document_payload(document_id)))


@bp.route("/files/<document_id>")
def file_page(document_id: str):
    """Viewer payload plus up to ten related documents."""
    payload = _document_payload(document_id)
    related = current_app.manifest.related(
        document_id, pool_size=current_app.config['STATIC_BUILD_COUNT']
    )
    payload['related'] = [doc.to_summary() for doc in related]
    return jsonify(create_success_response(payload))


@bp.route("/api/documents/<document_id>/pages")
def document_pages(document_id: str):
    """Next window of page image URLs. Query params: offset, limit."""
    offset = to_int(request.args.get('offset'), 0)
    limit = to_int(request.args.get('limit'), current_app.config['VIEWER_PAGE_WINDOW'])
    return jsonify(create_success_response(_page_window(document_id, offset, limit)))


@bp.route("/api/documents/<document_id>/comments", methods=['GET'])
def list_comments(document_id: str):
    current_app.manifest.require(document_id)
    comments = current_app.comment_service.get_comments(document_id)
    return jsonify(create_success_response([c.to_dict() for c in comments]))


@bp.route("/api/documents/<document_id>/comments", methods=['POST'])
def add_comment(document_id: str):
    """Body: {"username": str, "content": str, "parent_id": int | null}"""
    current_app.manifest.require(document_id)
    data = request.get_json(silent=True) or {}
    parent_id = data.get('parent_id')
    if parent_id is not None:
        parent_id = to_int(parent_id, -1)
        if parent_id < 0:
            raise ValidationError("parent_id must be an integer")

    comment_id = current_app.comment_service.add_comment(
        document_id,
        str(data.get('username') or ''),
        str(data.get('content') or ''),
        parent_id,
    )
    if comment_id is None:
        return jsonify(create_error_response("Username and comment are required", 400)), 400
    return jsonify(create_success_response({'id': comment_id}, message="Comment added")), 201


@bp.route("/api/documents/<document_id>/like", methods=['POST'])
def like_document(document_id: str):
    current_app.manifest.require(document_id)
    likes = current_app.stats_service.like_document(document_id)
    return jsonify(create_success_response({'document_id': document_id, 'likes': likes}))


@bp.route("/api/comments/<int:comment_id>/like", methods=['POST'])
def like_comment(comment_id: int):
    """Body: {"document_id": str}, used to refresh that document's thread."""
    data = request.get_json(silent=True) or {}
    document_id = str(data.get('document_id') or '')
    if not document_id:
        raise ValidationError("document_id is required")
    if not current_app.comment_service.like_comment(comment_id, document_id):
        return jsonify(create_error_response("Comment not found", 404)), 404
    return jsonify(create_success_response({'comment_id': comment_id}))
