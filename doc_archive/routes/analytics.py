"""
Analytics Routes Blueprint

Dashboard payload plus one endpoint per dashboard panel.
"""

from flask import Blueprint, request, jsonify, current_app
from dataclasses import asdict
import logging

from ..services.analytics_service import PERIODS
from ..utils.helpers import create_error_response, create_success_response, to_int

bp = Blueprint('analytics', __name__, url_prefix='/analytics')
logger = logging.getLogger(__name__)


def _period_and_days(default_days: int = 30):
    period = request.args.get('period', 'daily')
    days = max(to_int(request.args.get('days'), default_days), 1)
    return period, days


@bp.route("")
@bp.route("/")
def dashboard():
    """All dashboard panels. Query params: period (daily|weekly), days."""
    period, days = _period_and_days()
    if period not in PERIODS:
        return jsonify(create_error_response(f"Unknown period: {period}", 400)), 400
    return jsonify(create_success_response(current_app.analytics_service.get_dashboard(period, days)))


@bp.route("/stats")
def stats():
    return jsonify(create_success_response(asdict(current_app.analytics_service.get_dashboard_stats())))


@bp.route("/most-viewed")
def most_viewed():
    limit = max(to_int(request.args.get('limit'), 10), 1)
    docs = current_app.analytics_service.get_most_viewed_documents(limit)
    return jsonify(create_success_response([d.to_dict() for d in docs]))


@bp.route("/trending")
def trending():
    limit = max(to_int(request.args.get('limit'), 10), 1)
    _, days = _period_and_days(default_days=7)
    docs = current_app.analytics_service.get_trending_discussions(limit, days)
    return jsonify(create_success_response([d.to_dict() for d in docs]))


@bp.route("/commenters")
def commenters():
    limit = max(to_int(request.args.get('limit'), 20), 1)
    rows = current_app.analytics_service.get_most_active_commenters(limit)
    return jsonify(create_success_response([asdict(r) for r in rows]))


@bp.route("/time-series")
def time_series():
    period, days = _period_and_days()
    if period not in PERIODS:
        return jsonify(create_error_response(f"Unknown period: {period}", 400)), 400
    points = current_app.analytics_service.get_time_series_stats(period, days)
    return jsonify(create_success_response([asdict(p) for p in points]))
