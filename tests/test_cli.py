"""
Tests for the ``kana-trainer`` command group.
"""

import curses
import datetime
import json
import logging
import os
import tempfile
from typing import Any, Generator, List

import pytest
from click.testing import CliRunner
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from kana_trainer import db
from kana_trainer.cli import cli
from kana_trainer.kana import KanaType
from kana_trainer.stats import UserHistory

T0 = datetime.datetime(2026, 3, 1, 9, 0, tzinfo=datetime.UTC)


@pytest.fixture(scope="function")
def temp_db() -> Generator[None, None, None]:
    """Setup transient SQLite DB for testing."""
    fd, path = tempfile.mkstemp()
    os.close(fd)
    db.engine = create_engine(f"sqlite:///{path}")
    db.SessionLocal = sessionmaker(bind=db.engine, expire_on_commit=False)
    db.Base.metadata.create_all(bind=db.engine)
    yield
    db.engine.dispose()
    os.unlink(path)


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    yield
    logger = logging.getLogger("kana_trainer")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def invoke(tmp_path):
    runner = CliRunner()

    def _invoke(*args: str) -> Any:
        return runner.invoke(cli, ["--log-file", str(tmp_path / "trainer.log"), *args])

    return _invoke


def seed_history() -> UserHistory:
    history = UserHistory(last_session=T0, total_practice_time=120.0)
    shi = history.get_or_init("し")
    shi.record_attempt("shi", True, 900.0, now=T0)
    shi.record_attempt("su", False, 2100.0, now=T0 + datetime.timedelta(seconds=3))
    db.save_history(history)
    return history


def test_init_db(invoke, tmp_path):
    path = tmp_path / "fresh.db"
    result = invoke("--db", str(path), "init-db")
    assert result.exit_code == 0
    assert "Database initialized." in result.output
    assert path.exists()


def test_stats_without_practice(invoke, temp_db):
    result = invoke("stats")
    assert result.exit_code == 0
    assert "No practice recorded yet" in result.output


def test_stats_report(invoke, temp_db):
    seed_history()
    result = invoke("stats", "--limit", "5")
    assert result.exit_code == 0
    assert "Total attempts: 2" in result.output
    assert "Accuracy: 50.0%" in result.output
    assert "Practice time: 0:02:00" in result.output
    assert "し → す" in result.output


def test_check_reports_then_repairs(invoke, temp_db):
    history = seed_history()
    history.character_stats["し"].exp_avg_response = 50.0
    db.save_history(history)

    result = invoke("check")
    assert result.exit_code == 0
    assert "1 kana differ" in result.output
    assert db.load_history().get("し").exp_avg_response == 50.0

    result = invoke("check", "--repair")
    assert result.exit_code == 0
    assert "Repaired 1 kana." in result.output
    assert db.load_history().get("し").exp_avg_response == pytest.approx(0.2 * 2100.0 + 0.8 * 900.0)

    result = invoke("check")
    assert "All stored averages match" in result.output


def test_check_logs_each_mismatch_once(invoke, temp_db, tmp_path):
    history = seed_history()
    history.character_stats["し"].exp_avg_response = 50.0
    db.save_history(history)

    result = invoke("check")
    assert result.exit_code == 0
    log_text = (tmp_path / "trainer.log").read_text(encoding="utf-8")
    assert log_text.count("EMA mismatch for し") == 1


def test_export_then_import(invoke, temp_db, tmp_path):
    seed_history()
    snapshot = tmp_path / "backup.json"
    result = invoke("export", str(snapshot))
    assert result.exit_code == 0
    data = json.loads(snapshot.read_text(encoding="utf-8"))
    assert data["character_stats"]["し"]["appearances"] == 2

    db.save_history(UserHistory())
    result = invoke("import", str(snapshot))
    assert result.exit_code == 0
    assert "Imported 1 kana" in result.output
    assert db.load_history().get("し").failures == 1


def test_import_bad_snapshot_fails(invoke, temp_db, tmp_path):
    snapshot = tmp_path / "broken.json"
    snapshot.write_text("[", encoding="utf-8")
    result = invoke("import", str(snapshot))
    assert result.exit_code != 0
    assert "Could not read snapshot" in result.output


def test_practice_rejects_unknown_mode(invoke, temp_db):
    result = invoke("practice", "--mode", "extended")
    assert result.exit_code != 0


def test_practice_runs_session_and_saves(invoke, temp_db, monkeypatch):
    calls: List[Any] = []

    def fake_wrapper(func, session, kana_type):
        calls.append(kana_type)
        session.start()
        session.submit_timed(session.current.romaji, 800.0)

    monkeypatch.setattr(curses, "wrapper", fake_wrapper)
    result = invoke("practice", "--kana-type", "katakana", "--mode", "dakuten", "--seed", "4")

    assert result.exit_code == 0, result.output
    assert calls == [KanaType.KATAKANA]
    assert "1 attempts, 1 correct (100.0%)" in result.output

    history = db.load_history()
    seen = [k for k, s in history.character_stats.items() if not s.is_unseen]
    assert len(seen) == 1
    assert history.total_practice_time == pytest.approx(0.8)
    assert len(history.character_stats) == 26


def test_debug_flag_logs_selection_events(invoke, temp_db, monkeypatch, tmp_path):
    def fake_wrapper(func, session, kana_type):
        session.start()

    monkeypatch.setattr(curses, "wrapper", fake_wrapper)
    result = invoke("--debug", "practice", "--seed", "1")
    assert result.exit_code == 0, result.output

    log_text = (tmp_path / "trainer.log").read_text(encoding="utf-8")
    assert "item_selected" in log_text
    assert "Practice started: hiragana/main, 46 kana" in log_text
