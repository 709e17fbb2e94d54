import sqlite3
import threading

import pytest

from doc_archive import database
from doc_archive.exceptions import DatabaseError
from doc_archive.services import view_tracking
from doc_archive.services.view_tracking import process_view_queue, track_document_view


def test_track_document_view_appends_queue_row(temp_db_path, seed_conn):
    assert track_document_view("EFTA00001") is True
    assert track_document_view("EFTA00001") is True
    assert track_document_view("EFTA00002") is True

    rows = seed_conn.execute("SELECT document_id, queued_at FROM view_queue ORDER BY id").fetchall()
    assert [r["document_id"] for r in rows] == ["EFTA00001", "EFTA00001", "EFTA00002"]
    assert all(r["queued_at"] for r in rows)
    # Nothing reaches the permanent table until a drain runs
    assert seed_conn.execute("SELECT COUNT(*) FROM document_views").fetchone()[0] == 0


def test_track_document_view_swallows_errors(temp_db_path, monkeypatch):
    def _boom(document_id):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(view_tracking, "enqueue_view", _boom)
    assert track_document_view("EFTA00001") is False


def test_track_document_view_survives_missing_table(temp_db_path, seed_conn):
    seed_conn.execute("DROP TABLE view_queue")
    seed_conn.commit()
    assert track_document_view("EFTA00001") is False


def test_drain_empty_queue_is_noop(temp_db_path, count_rows):
    result = process_view_queue()
    assert result.processed == 0
    assert result.timestamp
    assert count_rows("document_views") == 0
    assert count_rows("view_queue") == 0


def test_drain_copies_rows_and_preserves_timestamps(temp_db_path, seed_conn, count_rows):
    seed_conn.executemany(
        "INSERT INTO view_queue (document_id, queued_at) VALUES (?, ?)",
        [
            ("EFTA00002", "2026-03-01 10:00:05"),
            ("EFTA00001", "2026-03-01 10:00:00"),
            ("EFTA00001", "2026-03-01 10:00:09"),
        ],
    )
    seed_conn.commit()

    result = process_view_queue()

    assert result.processed == 3
    assert count_rows("view_queue") == 0
    views = seed_conn.execute("SELECT document_id, viewed_at FROM document_views ORDER BY id").fetchall()
    # Copied in enqueue order, timestamps carried over unchanged
    assert [(v["document_id"], v["viewed_at"]) for v in views] == [
        ("EFTA00001", "2026-03-01 10:00:00"),
        ("EFTA00002", "2026-03-01 10:00:05"),
        ("EFTA00001", "2026-03-01 10:00:09"),
    ]


def test_drain_counts_are_at_least_enqueued(temp_db_path, seed_conn):
    for _ in range(4):
        track_document_view("EFTA00003")
    track_document_view("EFTA00004")

    process_view_queue()
    track_document_view("EFTA00003")
    process_view_queue()

    counts = dict(seed_conn.execute(
        "SELECT document_id, COUNT(*) FROM document_views GROUP BY document_id"
    ).fetchall())
    assert counts["EFTA00003"] >= 5
    assert counts["EFTA00004"] >= 1


def test_failed_drain_leaves_queue_intact(temp_db_path, seed_conn, count_rows):
    track_document_view("EFTA00001")
    track_document_view("EFTA00002")
    seed_conn.execute("DROP TABLE document_views")
    seed_conn.commit()

    with pytest.raises(DatabaseError):
        process_view_queue()

    assert count_rows("view_queue") == 2


def test_drain_wraps_sqlite_errors(temp_db_path, monkeypatch):
    def _boom():
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(view_tracking, "drain_view_queue", _boom)
    with pytest.raises(DatabaseError) as excinfo:
        process_view_queue()
    assert excinfo.value.details == "disk I/O error"


def test_concurrent_drains_and_visits_lose_nothing(temp_db_path, count_rows):
    visits_per_writer = 25
    writers = 3
    errors = []

    def _visit(doc_id):
        for _ in range(visits_per_writer):
            if not track_document_view(doc_id):
                errors.append(doc_id)

    def _drain():
        for _ in range(10):
            try:
                process_view_queue()
            except DatabaseError as e:  # pragma: no cover - surfaced below
                errors.append(e)

    threads = [threading.Thread(target=_visit, args=(f"EFTA0000{i}",)) for i in range(1, writers + 1)]
    threads += [threading.Thread(target=_drain) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    process_view_queue()

    assert errors == []
    assert count_rows("view_queue") == 0
    assert count_rows("document_views") >= visits_per_writer * writers


def test_pending_view_count(temp_db_path):
    assert view_tracking.pending_view_count() == 0
    track_document_view("EFTA00001")
    assert database.count_queued_views() == 1
