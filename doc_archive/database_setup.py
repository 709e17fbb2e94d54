"""
This script, `database_setup.py`, is responsible for initializing the archive's database.
It creates the SQLite tables used by the community features and by the view
tracking pipeline. The script is idempotent: it can be run multiple times
without errors and without touching an already correct database.

The schema is composed of four tables:
- `comments`: Threaded comments. `parent_id` points at another comment row.
- `document_stats`: One row per liked document holding its like counter.
- `document_views`: Permanent view records, written only by the queue drain.
- `view_queue`: Append-only queue of page visits waiting to be drained.

Run it once during setup: ``python -m doc_archive.database_setup``.
"""
# Standard library imports
import sqlite3
import os
import logging
from typing import Optional

# Third-party imports
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

COMMENTS_TABLE = """
CREATE TABLE IF NOT EXISTS comments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id TEXT NOT NULL,
    username TEXT NOT NULL,
    content TEXT NOT NULL,
    parent_id INTEGER REFERENCES comments(id),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    likes INTEGER DEFAULT 0
);
"""

DOCUMENT_STATS_TABLE = """
CREATE TABLE IF NOT EXISTS document_stats (
    document_id TEXT PRIMARY KEY,
    likes INTEGER DEFAULT 0
);
"""

DOCUMENT_VIEWS_TABLE = """
CREATE TABLE IF NOT EXISTS document_views (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id TEXT NOT NULL,
    viewed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

VIEW_QUEUE_TABLE = """
CREATE TABLE IF NOT EXISTS view_queue (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id TEXT NOT NULL,
    queued_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_comments_document_id ON comments(document_id)",
    "CREATE INDEX IF NOT EXISTS idx_comments_parent_id ON comments(parent_id)",
    "CREATE INDEX IF NOT EXISTS idx_comments_created_at ON comments(created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_views_document_id ON document_views(document_id)",
    "CREATE INDEX IF NOT EXISTS idx_views_viewed_at ON document_views(viewed_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_views_document_date ON document_views(document_id, viewed_at DESC)",
]

VIEW_QUEUE_INDEX = "CREATE INDEX IF NOT EXISTS idx_view_queue_queued_at ON view_queue(queued_at)"


def _resolve_db_path(db_path: Optional[str]) -> str:
    path = db_path or os.getenv("DATABASE_PATH", "archive.db")
    db_dir = os.path.dirname(path)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir)
        logger.info(f"Created directory: {db_dir}")
    return path


def add_view_queue_table(db_path: Optional[str] = None) -> None:
    """Create the `view_queue` table and its `queued_at` index if missing."""
    path = _resolve_db_path(db_path)
    conn = sqlite3.connect(path)
    try:
        with conn:
            conn.execute(VIEW_QUEUE_TABLE)
            conn.execute(VIEW_QUEUE_INDEX)
        logger.info("Table 'view_queue' created or already exists.")
    finally:
        conn.close()


def create_database(db_path: Optional[str] = None) -> str:
    """
    Connects to the SQLite database and creates the archive's table schema.

    Args:
        db_path: Database file to initialise. Defaults to the DATABASE_PATH
            environment variable, then ``archive.db``.

    Returns:
        str: The path of the initialised database.

    Raises:
        sqlite3.Error: If any statement fails. The transaction is rolled back.
    """
    path = _resolve_db_path(db_path)
    conn = sqlite3.connect(path)
    try:
        with conn:
            conn.execute(COMMENTS_TABLE)
            logger.info("Table 'comments' created or already exists.")
            conn.execute(DOCUMENT_STATS_TABLE)
            logger.info("Table 'document_stats' created or already exists.")
            conn.execute(DOCUMENT_VIEWS_TABLE)
            logger.info("Table 'document_views' created or already exists.")
            conn.execute(VIEW_QUEUE_TABLE)
            logger.info("Table 'view_queue' created or already exists.")
            for statement in INDEXES + [VIEW_QUEUE_INDEX]:
                conn.execute(statement)
            logger.info("Database indexes created or already exist.")
    except sqlite3.Error as e:
        logger.error(f"Error initializing database at '{path}': {e}")
        raise
    finally:
        conn.close()
    return path


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')
    initialised = create_database()
    print(f"Database initialization completed successfully: {initialised}")
