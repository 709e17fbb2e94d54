from datetime import datetime, timezone

import pytest

from doc_archive.config_manager import AppConfig
from doc_archive.database_setup import create_database
from doc_archive.exceptions import ConfigurationError
from doc_archive.security import bearer_token_matches
from doc_archive.utils.helpers import (
    EPOCH,
    TTLCache,
    create_error_response,
    create_success_response,
    sanitize_html,
    to_date,
    to_float,
    to_int,
)


@pytest.mark.parametrize("value,expected", [(7, 7), ("42", 42), (" 3 ", 3), ("x", 0), (None, 0), (2.9, 2), (True, 1)])
def test_to_int(value, expected):
    assert to_int(value) == expected


def test_to_float_rejects_non_finite():
    assert to_float("2.5") == 2.5
    assert to_float(float("nan"), 1.0) == 1.0
    assert to_float(None) == 0.0


def test_to_date_parses_sqlite_timestamps():
    assert to_date("2026-03-01 10:00:00") == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert to_date("2026-03-01T10:00:00Z") == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert to_date("garbage") == EPOCH
    assert to_date(None) == EPOCH


def test_sanitize_html():
    assert sanitize_html("<a href=\"x\">'&'</a>") == "&lt;a href=&quot;x&quot;&gt;&#x27;&amp;&#x27;&lt;/a&gt;"


def test_ttl_cache_expires_and_invalidates():
    now = [0.0]
    calls = []
    cache = TTLCache(10, clock=lambda: now[0])

    def loader():
        calls.append(1)
        return len(calls)

    assert cache.get("k", loader) == 1
    now[0] = 9.9
    assert cache.get("k", loader) == 1
    now[0] = 10.0
    assert cache.get("k", loader) == 2
    cache.invalidate("k")
    assert cache.get("k", loader) == 3
    cache.invalidate()
    assert cache.get("k", loader) == 4


def test_response_envelopes():
    assert create_error_response("bad", 400) == {"error": "bad", "success": False, "status_code": 400}
    assert create_success_response({"a": 1}, "ok") == {
        "success": True, "status_code": 200, "data": {"a": 1}, "message": "ok"
    }


def test_bearer_token_matches():
    assert bearer_token_matches("Bearer abc", "abc") is True
    assert bearer_token_matches("Bearer abcd", "abc") is False
    assert bearer_token_matches("abc", "abc") is False
    assert bearer_token_matches(None, "abc") is False


def test_config_loads_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "nested" / "archive.db"))
    monkeypatch.setenv("CRON_SECRET", "'quoted'")
    monkeypatch.setenv("COMMENTS_CACHE_TTL", "30")
    monkeypatch.setenv("DEBUG", "true")

    config = AppConfig.load_from_env()

    assert config.CRON_SECRET == "quoted"
    assert config.COMMENTS_CACHE_TTL == 30
    assert config.DEBUG is True
    assert config.MAX_COMMENT_LENGTH == 1500
    assert (tmp_path / "nested").is_dir()


def test_empty_cron_secret_means_unset(monkeypatch):
    monkeypatch.setenv("CRON_SECRET", "")
    assert AppConfig.load_from_env().CRON_SECRET is None


def test_bad_numeric_config_raises(monkeypatch):
    monkeypatch.setenv("PORT", "not-a-number")
    with pytest.raises(ConfigurationError) as excinfo:
        AppConfig.load_from_env()
    assert "not-a-number" in excinfo.value.details


def test_create_database_is_idempotent(tmp_path):
    import sqlite3

    db_path = str(tmp_path / "archive.db")
    create_database(db_path)
    create_database(db_path)

    conn = sqlite3.connect(db_path)
    try:
        tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    finally:
        conn.close()
    assert {"comments", "document_stats", "document_views", "view_queue"} <= tables
