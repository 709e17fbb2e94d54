"""
This module serves as the Data Access Layer (DAL) for the archive.
It encapsulates all the SQL issued on behalf of the web tier, providing a
function-based API for the services and routes to use.

The functions are divided into three groups:
1.  **Data Retrieval Functions (Queries)**: read comments, likes, views and
    the aggregates behind the analytics dashboard.
2.  **Data Modification Functions (Commands)**: insert comments, bump like
    counters, enqueue and drain page views. Each runs in its own transaction.
3.  **Maintenance Functions**: summary counts and bulk deletes used by the
    analytics cleanup tool.

Every function opens its own connection and closes it before returning; there
is no connection shared between requests.
"""
# Standard library imports
import sqlite3
import os
import json
import stat
import time
import logging
from typing import Any, Dict, List, Optional

# Third-party imports
from dotenv import load_dotenv

from .utils.helpers import to_int

load_dotenv()

logger = logging.getLogger(__name__)


# --- DATABASE CONNECTION UTILITY ---

def _gather_db_file_metadata(db_path: str) -> dict:
    """Return metadata about the SQLite database file for richer startup logging."""
    info = {
        "path": os.path.abspath(db_path),
        "exists": False,
    }
    try:
        if os.path.exists(db_path):
            st = os.stat(db_path)
            info.update(
                {
                    "exists": True,
                    "size_bytes": st.st_size,
                    "last_modified_iso": time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime(st.st_mtime)),
                    "permissions_octal": oct(stat.S_IMODE(st.st_mode)),
                }
            )
    except OSError as e:
        info["metadata_error"] = str(e)
    return info


_DB_LOGGED_ONCE = False


def resolve_db_path() -> str:
    """
    Resolve the database location.

    Prefers config_manager.AppConfig.DATABASE_PATH but honours a DATABASE_PATH
    environment variable set after the config was loaded (test fixtures do this).
    """
    from .config_manager import app_config  # local import to avoid cycles
    db_path = app_config.DATABASE_PATH
    env_override = os.getenv("DATABASE_PATH")
    if env_override and os.path.abspath(env_override) != os.path.abspath(db_path):
        override_dir = os.path.dirname(env_override)
        if override_dir:
            os.makedirs(override_dir, exist_ok=True)
        db_path = env_override
    if not db_path:
        raise RuntimeError("Database path is not configured. Set in .env or via config_manager.")
    return db_path


def get_db_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    """Create and return a configured SQLite connection (logs rich context once)."""
    global _DB_LOGGED_ONCE
    db_path = db_path or resolve_db_path()

    if not _DB_LOGGED_ONCE:
        payload = {
            "event": "database_init",
            "description": "SQLite database configuration",
            "metadata": _gather_db_file_metadata(db_path),
        }
        logger.info(json.dumps(payload))
        _DB_LOGGED_ONCE = True

    conn = sqlite3.connect(db_path, timeout=30.0)  # 30 second timeout for locks
    conn.row_factory = sqlite3.Row

    # WAL lets the drain run while page visits keep enqueueing
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=30000")
    conn.execute("PRAGMA foreign_keys=ON")

    return conn


def _days_modifier(days: int) -> str:
    """SQLite datetime() modifier for "now minus `days` days"."""
    return f"-{max(int(days), 0)} days"


# --- DATA RETRIEVAL FUNCTIONS (QUERIES) ---

def get_comment_rows(document_id: str) -> List[sqlite3.Row]:
    """All comments for a document, newest first, as flat rows."""
    conn = get_db_connection()
    try:
        return conn.execute(
            "SELECT * FROM comments WHERE document_id = ? ORDER BY created_at DESC, id DESC",
            (document_id,)
        ).fetchall()
    finally:
        conn.close()


def get_comment_document_id(comment_id: int) -> Optional[str]:
    """Document a comment belongs to, or None when no comment has that id."""
    conn = get_db_connection()
    try:
        row = conn.execute(
            "SELECT document_id FROM comments WHERE id = ?", (comment_id,)
        ).fetchone()
        return row['document_id'] if row else None
    finally:
        conn.close()


def get_document_likes(document_id: str) -> int:
    conn = get_db_connection()
    try:
        row = conn.execute(
            "SELECT likes FROM document_stats WHERE document_id = ?",
            (document_id,)
        ).fetchone()
        return to_int(row['likes']) if row else 0
    finally:
        conn.close()


def get_all_document_likes() -> List[sqlite3.Row]:
    conn = get_db_connection()
    try:
        return conn.execute("SELECT document_id, likes FROM document_stats").fetchall()
    finally:
        conn.close()


def get_comment_counts_by_document() -> List[sqlite3.Row]:
    conn = get_db_connection()
    try:
        return conn.execute(
            "SELECT document_id, COUNT(*) AS count FROM comments GROUP BY document_id"
        ).fetchall()
    finally:
        conn.close()


def count_queued_views() -> int:
    conn = get_db_connection()
    try:
        row = conn.execute("SELECT COUNT(*) AS count FROM view_queue").fetchone()
        return to_int(row['count'])
    finally:
        conn.close()


def get_most_viewed(limit: int = 10) -> List[sqlite3.Row]:
    """
    Documents ordered by permanent view count, with like, top-level comment
    and reply counts attached.
    """
    conn = get_db_connection()
    try:
        return conn.execute(
            """
            SELECT
                v.document_id,
                COUNT(*) AS views,
                COALESCE(ds.likes, 0) AS likes,
                COALESCE(comment_counts.comments, 0) AS comments,
                COALESCE(reply_counts.replies, 0) AS comment_replies
            FROM document_views v
            LEFT JOIN document_stats ds ON v.document_id = ds.document_id
            LEFT JOIN (
                SELECT document_id, COUNT(*) AS comments
                FROM comments
                WHERE parent_id IS NULL
                GROUP BY document_id
            ) comment_counts ON v.document_id = comment_counts.document_id
            LEFT JOIN (
                SELECT document_id, COUNT(*) AS replies
                FROM comments
                WHERE parent_id IS NOT NULL
                GROUP BY document_id
            ) reply_counts ON v.document_id = reply_counts.document_id
            GROUP BY v.document_id, ds.likes, comment_counts.comments, reply_counts.replies
            ORDER BY views DESC, v.document_id ASC
            LIMIT ?
            """,
            (limit,)
        ).fetchall()
    finally:
        conn.close()


def get_trending_discussions(limit: int = 10, days: int = 7) -> List[sqlite3.Row]:
    """Documents with comments in the last `days` days, busiest first."""
    conn = get_db_connection()
    try:
        return conn.execute(
            """
            SELECT
                c.document_id,
                COUNT(DISTINCT c.id) AS comments,
                COUNT(DISTINCT CASE WHEN c.parent_id IS NOT NULL THEN c.id END) AS comment_replies,
                MAX(c.created_at) AS last_comment_at,
                COALESCE(ds.likes, 0) AS likes,
                COUNT(DISTINCT v.id) AS views
            FROM comments c
            LEFT JOIN document_stats ds ON c.document_id = ds.document_id
            LEFT JOIN document_views v ON c.document_id = v.document_id
            WHERE c.created_at >= datetime('now', ?)
            GROUP BY c.document_id, ds.likes
            ORDER BY comments DESC, last_comment_at DESC
            LIMIT ?
            """,
            (_days_modifier(days), limit)
        ).fetchall()
    finally:
        conn.close()


def get_active_commenters(limit: int = 20) -> List[sqlite3.Row]:
    conn = get_db_connection()
    try:
        return conn.execute(
            """
            SELECT
                username,
                COUNT(*) AS total_comments,
                COALESCE(SUM(likes), 0) AS total_likes_received,
                COUNT(DISTINCT document_id) AS documents_commented,
                MAX(created_at) AS recent_activity
            FROM comments
            GROUP BY username
            ORDER BY total_comments DESC, total_likes_received DESC
            LIMIT ?
            """,
            (limit,)
        ).fetchall()
    finally:
        conn.close()


def get_daily_view_counts(days: int = 30) -> List[sqlite3.Row]:
    conn = get_db_connection()
    try:
        return conn.execute(
            """
            SELECT strftime('%Y-%m-%d', viewed_at) AS date, COUNT(*) AS views
            FROM document_views
            WHERE viewed_at >= datetime('now', ?)
            GROUP BY date
            ORDER BY date ASC
            """,
            (_days_modifier(days),)
        ).fetchall()
    finally:
        conn.close()


def get_daily_comment_counts(days: int = 30) -> List[sqlite3.Row]:
    conn = get_db_connection()
    try:
        return conn.execute(
            """
            SELECT strftime('%Y-%m-%d', created_at) AS date, COUNT(*) AS comments
            FROM comments
            WHERE created_at >= datetime('now', ?)
            GROUP BY date
            ORDER BY date ASC
            """,
            (_days_modifier(days),)
        ).fetchall()
    finally:
        conn.close()


def get_liked_document_view_days(days: int = 30) -> List[sqlite3.Row]:
    """
    Distinct (day, document) pairs for liked documents that were viewed.

    Likes carry no timestamp, so a liked document counts towards every day
    on which it was viewed.
    """
    conn = get_db_connection()
    try:
        return conn.execute(
            """
            SELECT DISTINCT strftime('%Y-%m-%d', v.viewed_at) AS date, v.document_id
            FROM document_views v
            JOIN document_stats ds ON v.document_id = ds.document_id
            WHERE v.viewed_at >= datetime('now', ?) AND ds.likes > 0
            ORDER BY date ASC
            """,
            (_days_modifier(days),)
        ).fetchall()
    finally:
        conn.close()


def get_dashboard_totals() -> Dict[str, Any]:
    conn = get_db_connection()
    try:
        cur = conn.cursor()
        total_views = cur.execute("SELECT COUNT(*) FROM document_views").fetchone()[0]
        total_comments = cur.execute("SELECT COUNT(*) FROM comments").fetchone()[0]
        total_likes = cur.execute("SELECT COALESCE(SUM(likes), 0) FROM document_stats").fetchone()[0]
        active_users = cur.execute("SELECT COUNT(DISTINCT username) FROM comments").fetchone()[0]
        doc_stats = cur.execute(
            """
            SELECT COUNT(DISTINCT document_id) AS docs_with_views,
                   COALESCE(AVG(view_count), 0) AS avg_views
            FROM (
                SELECT document_id, COUNT(*) AS view_count
                FROM document_views
                GROUP BY document_id
            )
            """
        ).fetchone()
        return {
            'total_views': total_views,
            'total_comments': total_comments,
            'total_likes': total_likes,
            'active_users': active_users,
            'docs_with_views': doc_stats['docs_with_views'],
            'avg_views': doc_stats['avg_views'],
        }
    finally:
        conn.close()


# --- DATA MODIFICATION FUNCTIONS (COMMANDS) ---

def insert_comment(document_id: str, username: str, content: str, parent_id: Optional[int] = None) -> int:
    """Insert a comment row and return its id. Inputs must already be validated."""
    conn = get_db_connection()
    try:
        with conn:
            cur = conn.execute(
                """
                INSERT INTO comments (document_id, username, content, parent_id)
                VALUES (?, ?, ?, ?)
                """,
                (document_id, username, content, parent_id)
            )
            return cur.lastrowid
    finally:
        conn.close()


def increment_comment_likes(comment_id: int) -> bool:
    """Returns False when no comment has that id."""
    conn = get_db_connection()
    try:
        with conn:
            cur = conn.execute("UPDATE comments SET likes = likes + 1 WHERE id = ?", (comment_id,))
            return cur.rowcount > 0
    finally:
        conn.close()


def increment_document_likes(document_id: str) -> int:
    """Upsert the document's like counter and return the new value."""
    conn = get_db_connection()
    try:
        with conn:
            conn.execute(
                """
                INSERT INTO document_stats (document_id, likes)
                VALUES (?, 1)
                ON CONFLICT (document_id)
                DO UPDATE SET likes = document_stats.likes + 1
                """,
                (document_id,)
            )
            row = conn.execute(
                "SELECT likes FROM document_stats WHERE document_id = ?", (document_id,)
            ).fetchone()
            return to_int(row['likes'])
    finally:
        conn.close()


def enqueue_view(document_id: str) -> None:
    """Append one row to `view_queue`; `queued_at` defaults to now (UTC)."""
    conn = get_db_connection()
    try:
        with conn:
            conn.execute("INSERT INTO view_queue (document_id) VALUES (?)", (document_id,))
    finally:
        conn.close()


def drain_view_queue() -> int:
    """
    Move every pending queued view into `document_views`.

    The pending set is fixed by the highest queue id seen when the drain
    starts; rows enqueued afterwards stay queued for the next run. The
    count, copy and delete share one IMMEDIATE transaction, so concurrent
    drains serialise on the write lock and see disjoint rows.

    Returns:
        int: Number of views moved. 0 means nothing was written.
    """
    conn = get_db_connection()
    try:
        conn.execute("BEGIN IMMEDIATE")
        row = conn.execute("SELECT COUNT(*) AS count, MAX(id) AS max_id FROM view_queue").fetchone()
        pending = to_int(row['count'])
        if pending == 0:
            conn.rollback()
            return 0
        max_id = row['max_id']
        conn.execute(
            """
            INSERT INTO document_views (document_id, viewed_at)
            SELECT document_id, queued_at
            FROM view_queue
            WHERE id <= ?
            ORDER BY queued_at ASC, id ASC
            """,
            (max_id,)
        )
        conn.execute("DELETE FROM view_queue WHERE id <= ?", (max_id,))
        conn.commit()
        return pending
    except sqlite3.Error:
        if conn.in_transaction:
            conn.rollback()
        raise
    finally:
        conn.close()


# --- MAINTENANCE FUNCTIONS ---

def get_analytics_summary() -> Dict[str, int]:
    """Row counts shown by the cleanup tool before it deletes anything."""
    conn = get_db_connection()
    try:
        cur = conn.cursor()
        views = cur.execute(
            "SELECT COUNT(*) AS total, COUNT(DISTINCT document_id) AS documents FROM document_views"
        ).fetchone()
        comments = cur.execute(
            "SELECT COUNT(*) AS total, COUNT(DISTINCT document_id) AS documents FROM comments"
        ).fetchone()
        likes = cur.execute(
            "SELECT COUNT(*) AS total, COALESCE(SUM(likes), 0) AS total_likes FROM document_stats"
        ).fetchone()
        queue = cur.execute("SELECT COUNT(*) AS total FROM view_queue").fetchone()
        return {
            'views': to_int(views['total']),
            'viewed_documents': to_int(views['documents']),
            'comments': to_int(comments['total']),
            'commented_documents': to_int(comments['documents']),
            'liked_documents': to_int(likes['total']),
            'likes': to_int(likes['total_likes']),
            'queued_views': to_int(queue['total']),
        }
    finally:
        conn.close()


def get_top_viewed_documents(limit: int = 5) -> List[sqlite3.Row]:
    conn = get_db_connection()
    try:
        return conn.execute(
            """
            SELECT document_id, COUNT(*) AS views
            FROM document_views
            GROUP BY document_id
            ORDER BY views DESC, document_id ASC
            LIMIT ?
            """,
            (limit,)
        ).fetchall()
    finally:
        conn.close()


def _clear_tables(*tables: str) -> Dict[str, int]:
    conn = get_db_connection()
    try:
        deleted = {}
        with conn:
            for table in tables:
                deleted[table] = conn.execute(f"DELETE FROM {table}").rowcount
        return deleted
    finally:
        conn.close()


def delete_view_analytics() -> Dict[str, int]:
    """Delete permanent view records and anything still queued."""
    return _clear_tables("document_views", "view_queue")


def delete_all_comments() -> Dict[str, int]:
    return _clear_tables("comments")


def delete_all_likes() -> Dict[str, int]:
    return _clear_tables("document_stats")
