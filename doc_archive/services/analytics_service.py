"""
Analytics Service Layer

Aggregates for the analytics dashboard: most viewed documents, trending
discussions, most active commenters, a views/comments/likes time series and
headline totals.

Document rows are enriched with manifest data (title, page count,
thumbnail). Rows for documents that are no longer in the manifest are
dropped. Every query degrades to an empty or zeroed result on database
errors so the dashboard always renders.
"""

import logging
import sqlite3
from collections import defaultdict
from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from .. import database
from ..manifest import Manifest
from ..utils.helpers import to_date, to_float, to_int, to_str

logger = logging.getLogger(__name__)

PERIODS = ('daily', 'weekly')

# Engagement weights: one view < one like < one reply < one comment
VIEW_WEIGHT = 1
LIKE_WEIGHT = 5
COMMENT_WEIGHT = 10
REPLY_WEIGHT = 3


def engagement_score(views: int, likes: int, comments: int, replies: int) -> int:
    return (views * VIEW_WEIGHT + likes * LIKE_WEIGHT
            + comments * COMMENT_WEIGHT + replies * REPLY_WEIGHT)


@dataclass
class DocumentAnalytics:
    document_id: str
    title: str
    pageCount: int
    thumbnail: str
    views: int
    likes: int
    comments: int
    comment_replies: int
    engagement_score: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CommenterStats:
    username: str
    total_comments: int
    total_likes_received: int
    documents_commented: int
    recent_activity: str


@dataclass
class TimeSeriesPoint:
    date: str
    views: int = 0
    comments: int = 0
    likes: int = 0


@dataclass
class DashboardStats:
    total_documents: int = 0
    total_views: int = 0
    total_comments: int = 0
    total_likes: int = 0
    active_users: int = 0
    avg_engagement_per_doc: float = 0.0


def bucket_for(day: str, period: str) -> str:
    """Map a ``YYYY-MM-DD`` day to its bucket label (ISO ``YYYY-Www`` when weekly)."""
    if period == 'daily':
        return day
    iso_year, iso_week, _ = date.fromisoformat(day).isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def merge_time_series(view_rows: Iterable[Any], comment_rows: Iterable[Any],
                      liked_rows: Iterable[Any], period: str = 'daily') -> List[TimeSeriesPoint]:
    """
    Combine per-day query results into one point per bucket, sorted by bucket.

    Views and comments are summed. Likes count distinct liked documents
    viewed within the bucket.
    """
    points: Dict[str, TimeSeriesPoint] = {}
    liked_docs = defaultdict(set)

    def point(day: str) -> TimeSeriesPoint:
        label = bucket_for(day, period)
        if label not in points:
            points[label] = TimeSeriesPoint(date=label)
        return points[label]

    for row in view_rows:
        point(to_str(row['date'])).views += to_int(row['views'])
    for row in comment_rows:
        point(to_str(row['date'])).comments += to_int(row['comments'])
    for row in liked_rows:
        day = to_str(row['date'])
        liked_docs[bucket_for(day, period)].add(to_str(row['document_id']))
        point(day)
    for label, docs in liked_docs.items():
        points[label].likes = len(docs)

    return [points[label] for label in sorted(points)]


class AnalyticsService:
    """Service class behind the analytics dashboard."""

    def __init__(self, manifest: Optional[Manifest] = None):
        self.manifest = manifest or Manifest([])

    def _enrich(self, rows: Iterable[Any]) -> List[DocumentAnalytics]:
        results = []
        for row in rows:
            document_id = to_str(row['document_id'])
            doc = self.manifest.get(document_id)
            if doc is None:
                continue
            views = to_int(row['views'])
            likes = to_int(row['likes'])
            comments = to_int(row['comments'])
            replies = to_int(row['comment_replies'])
            results.append(DocumentAnalytics(
                document_id=document_id,
                title=doc.title,
                pageCount=doc.page_count,
                thumbnail=doc.thumbnail,
                views=views,
                likes=likes,
                comments=comments,
                comment_replies=replies,
                engagement_score=engagement_score(views, likes, comments, replies),
            ))
        return results

    def get_most_viewed_documents(self, limit: int = 10) -> List[DocumentAnalytics]:
        try:
            return self._enrich(database.get_most_viewed(limit))
        except sqlite3.Error as e:
            logger.error(f"Error fetching most viewed documents: {e}")
            return []

    def get_trending_discussions(self, limit: int = 10, days: int = 7) -> List[DocumentAnalytics]:
        try:
            return self._enrich(database.get_trending_discussions(limit, days))
        except sqlite3.Error as e:
            logger.error(f"Error fetching trending discussions: {e}")
            return []

    def get_most_active_commenters(self, limit: int = 20) -> List[CommenterStats]:
        try:
            rows = database.get_active_commenters(limit)
        except sqlite3.Error as e:
            logger.error(f"Error fetching active commenters: {e}")
            return []
        return [
            CommenterStats(
                username=to_str(row['username']),
                total_comments=to_int(row['total_comments']),
                total_likes_received=to_int(row['total_likes_received']),
                documents_commented=to_int(row['documents_commented']),
                recent_activity=to_date(row['recent_activity']).isoformat(),
            )
            for row in rows
        ]

    def get_time_series_stats(self, period: str = 'daily', days: int = 30) -> List[TimeSeriesPoint]:
        if period not in PERIODS:
            raise ValueError(f"Unknown period: {period}")
        try:
            views = database.get_daily_view_counts(days)
            comments = database.get_daily_comment_counts(days)
            liked = database.get_liked_document_view_days(days)
        except sqlite3.Error as e:
            logger.error(f"Error fetching time series stats: {e}")
            return []
        return merge_time_series(views, comments, liked, period)

    def get_dashboard_stats(self) -> DashboardStats:
        try:
            totals = database.get_dashboard_totals()
        except sqlite3.Error as e:
            logger.error(f"Error fetching dashboard stats: {e}")
            return DashboardStats()
        return DashboardStats(
            total_documents=len(self.manifest),
            total_views=to_int(totals['total_views']),
            total_comments=to_int(totals['total_comments']),
            total_likes=to_int(totals['total_likes']),
            active_users=to_int(totals['active_users']),
            avg_engagement_per_doc=to_float(totals['avg_views']),
        )

    def get_dashboard(self, period: str = 'daily', days: int = 30) -> Dict[str, Any]:
        """Everything the dashboard page shows, in one payload."""
        return {
            'stats': asdict(self.get_dashboard_stats()),
            'most_viewed': [d.to_dict() for d in self.get_most_viewed_documents(10)],
            'trending_discussions': [d.to_dict() for d in self.get_trending_discussions(10)],
            'active_commenters': [asdict(c) for c in self.get_most_active_commenters(20)],
            'time_series': [asdict(p) for p in self.get_time_series_stats(period, days)],
        }
