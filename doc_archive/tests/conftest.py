import json
import sqlite3
import sys
from pathlib import Path

import pytest

# Ensure project root is on path
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from doc_archive.database_setup import create_database


SAMPLE_DOCUMENTS = [
    {
        "id": "EFTA00001",
        "title": "Flight Logs Volume 1",
        "pageCount": 3,
        "thumbnail": "https://blob.example/documents/EFTA00001/page-0.webp",
        "pages": [f"https://blob.example/documents/EFTA00001/page-{i}.webp" for i in range(3)],
    },
    {
        "id": "EFTA00002",
        "title": "deposition transcript",
        "pageCount": 12,
        "thumbnail": "https://blob.example/documents/EFTA00002/page-0.webp",
        "pages": [f"https://blob.example/documents/EFTA00002/page-{i}.webp" for i in range(12)],
    },
    {
        "id": "EFTA00003",
        "title": "Address Book",
        "pageCount": 1,
        "thumbnail": "https://blob.example/documents/EFTA00003/page-0.webp",
        "pages": ["https://blob.example/documents/EFTA00003/page-0.webp"],
    },
    {
        "id": "EFTA00004",
        "title": "Court Exhibit 14",
        "pageCount": 5,
        "thumbnail": "https://blob.example/documents/EFTA00004/page-0.webp",
        "pages": [f"https://blob.example/documents/EFTA00004/page-{i}.webp" for i in range(5)],
    },
    {
        "id": "EFTA00005",
        "title": "Unmigrated Scan",
        "pageCount": 2,
        "thumbnail": "/documents/EFTA00005/page-0.webp",
    },
]


@pytest.fixture()
def temp_db_path(tmp_path, monkeypatch):
    """Fresh temp database with the full schema; DATABASE_PATH points at it."""
    db_path = tmp_path / "archive.db"
    monkeypatch.setenv("DATABASE_PATH", str(db_path))
    create_database(str(db_path))
    return db_path


@pytest.fixture()
def manifest_path(tmp_path):
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps(SAMPLE_DOCUMENTS), encoding="utf-8")
    return path


@pytest.fixture()
def manifest(manifest_path):
    from doc_archive.manifest import Manifest
    return Manifest.load(str(manifest_path))


@pytest.fixture()
def app(temp_db_path, manifest_path, monkeypatch):
    """Flask app bound to the temp database and sample manifest."""
    monkeypatch.setenv("MANIFEST_PATH", str(manifest_path))
    monkeypatch.delenv("CRON_SECRET", raising=False)

    from doc_archive.config_manager import AppConfig
    from doc_archive.app import create_app  # imported late

    application = create_app(AppConfig.load_from_env())
    application.config['TESTING'] = True
    yield application


@pytest.fixture()
def client(app):
    """Flask test client fixture."""
    return app.test_client()


@pytest.fixture()
def seed_conn(temp_db_path):
    """Open a connection to the temp DB for seeding and yield it (auto-close)."""
    conn = sqlite3.connect(temp_db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture()
def count_rows(temp_db_path):
    """Return a callable giving the current row count of a table."""
    def _count(table):
        conn = sqlite3.connect(temp_db_path)
        try:
            return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        finally:
            conn.close()
    return _count
