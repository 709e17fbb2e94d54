import pytest

from doc_archive.dev_tools import cleanup_analytics
from doc_archive.dev_tools import add_view_queue_table


@pytest.fixture()
def seeded(temp_db_path, seed_conn, monkeypatch):
    monkeypatch.delenv("CONFIRM_RESET", raising=False)
    seed_conn.executemany(
        "INSERT INTO document_views (document_id) VALUES (?)",
        [("EFTA00001",), ("EFTA00001",), ("EFTA00002",)],
    )
    seed_conn.execute("INSERT INTO view_queue (document_id) VALUES ('EFTA00003')")
    seed_conn.execute("INSERT INTO comments (document_id, username, content) VALUES ('EFTA00001', 'a', 'b')")
    seed_conn.execute("INSERT INTO document_stats (document_id, likes) VALUES ('EFTA00001', 7)")
    seed_conn.commit()
    return seed_conn


def test_stats_only_changes_nothing(seeded, count_rows, capsys):
    assert cleanup_analytics.main(["stats"]) == 0
    out = capsys.readouterr().out
    assert "3 total views across 2 documents" in out
    assert "1 views pending processing" in out
    assert "1. EFTA00001: 2 views" in out
    assert count_rows("document_views") == 3


def test_views_cleanup_with_yes_clears_views_and_queue(seeded, count_rows):
    assert cleanup_analytics.main(["views", "--yes"]) == 0
    assert count_rows("document_views") == 0
    assert count_rows("view_queue") == 0
    assert count_rows("comments") == 1
    assert count_rows("document_stats") == 1


def test_numeric_choice_all(seeded, count_rows):
    assert cleanup_analytics.main(["4", "--yes"]) == 0
    for table in ("document_views", "view_queue", "comments", "document_stats"):
        assert count_rows(table) == 0


def test_confirmation_declined(seeded, count_rows, capsys):
    assert cleanup_analytics.main(["likes"], input_fn=lambda prompt: "no") == 0
    assert "Cancelled." in capsys.readouterr().out
    assert count_rows("document_stats") == 1


def test_interactive_menu_choice(seeded, count_rows):
    answers = iter(["2", "yes"])
    assert cleanup_analytics.main([], input_fn=lambda prompt: next(answers)) == 0
    assert count_rows("comments") == 0
    assert count_rows("document_views") == 3


def test_dry_run_and_invalid_choice(seeded, count_rows):
    assert cleanup_analytics.main(["all", "--yes", "--dry-run"]) == 0
    assert count_rows("comments") == 1
    assert cleanup_analytics.main(["everything"]) == 2


def test_add_view_queue_table_is_idempotent(tmp_path, monkeypatch):
    import sqlite3

    db_path = tmp_path / "legacy.db"
    assert add_view_queue_table.main(["--db", str(db_path)]) == 0
    assert add_view_queue_table.main(["--db", str(db_path)]) == 0

    conn = sqlite3.connect(db_path)
    try:
        tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        indexes = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='index'")}
    finally:
        conn.close()
    assert "view_queue" in tables
    assert "idx_view_queue_queued_at" in indexes


def test_dry_run_never_prompts(seeded, count_rows, capsys):
    def _no_prompt(prompt):
        raise AssertionError(f"unexpected prompt: {prompt}")

    assert cleanup_analytics.main(["comments", "--dry-run"], input_fn=_no_prompt) == 0
    assert "DRY-RUN: would delete comments" in capsys.readouterr().out
    assert count_rows("comments") == 1
