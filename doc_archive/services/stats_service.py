"""
Document like counters and the per-document stats shown on gallery cards.
"""

import logging
import sqlite3
from typing import Dict

from ..database import (
    get_document_likes,
    get_all_document_likes,
    get_comment_counts_by_document,
    increment_document_likes,
)
from ..utils.helpers import TTLCache, to_int, to_str

logger = logging.getLogger(__name__)

ALL_STATS_KEY = 'all-document-stats'


class StatsService:
    """Service class for document likes and gallery statistics."""

    def __init__(self, cache_ttl: float = 300):
        self.likes_cache = TTLCache(cache_ttl)
        self.stats_cache = TTLCache(cache_ttl)

    def get_document_likes(self, document_id: str) -> int:
        return self.likes_cache.get(document_id, lambda: get_document_likes(document_id))

    def like_document(self, document_id: str) -> int:
        likes = increment_document_likes(document_id)
        self.likes_cache.invalidate(document_id)
        return likes

    def _fetch_all_document_stats(self) -> Dict[str, Dict[str, int]]:
        try:
            like_rows = get_all_document_likes()
            comment_rows = get_comment_counts_by_document()
        except sqlite3.Error as e:
            logger.error(f"Error fetching document stats: {e}")
            return {}

        stats: Dict[str, Dict[str, int]] = {}
        for row in like_rows:
            entry = stats.setdefault(to_str(row['document_id']), {'likes': 0, 'comments': 0})
            entry['likes'] = to_int(row['likes'])
        for row in comment_rows:
            entry = stats.setdefault(to_str(row['document_id']), {'likes': 0, 'comments': 0})
            entry['comments'] = to_int(row['count'])
        return stats

    def get_all_document_stats(self) -> Dict[str, Dict[str, int]]:
        """{document_id: {'likes': n, 'comments': n}}, empty on database errors."""
        return self.stats_cache.get(ALL_STATS_KEY, self._fetch_all_document_stats)
