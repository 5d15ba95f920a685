from __future__ import annotations

import datetime
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, create_engine, delete
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship, sessionmaker

from . import config
from .errors import PersistenceError
from .stats import EmaMismatch, ItemStatistics, MistakeEntry, TestEntry, UserHistory

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


DB_PATH: str = config.DB_PATH
engine = create_engine(f"sqlite:///{DB_PATH}")
# Prevent attribute expiration on commit so returned objects remain accessible
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    # SQLite drops tzinfo; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value


class ItemStatsRecord(Base):
    __tablename__ = "item_stats"
    item_id: Mapped[str] = mapped_column(String, primary_key=True)
    appearances: Mapped[int] = mapped_column(Integer, default=0)
    successes: Mapped[int] = mapped_column(Integer, default=0)
    failures: Mapped[int] = mapped_column(Integer, default=0)
    total_response_time: Mapped[float] = mapped_column(Float, default=0.0)
    exp_avg_response: Mapped[float] = mapped_column(Float, default=0.0)
    exp_avg_accuracy: Mapped[float] = mapped_column(Float, default=0.0)
    last_appearance: Mapped[datetime.datetime] = mapped_column(DateTime, default=lambda: datetime.datetime.now(datetime.UTC))

    attempts: Mapped[List["AttemptRecord"]] = relationship(
        back_populates="item", cascade="all, delete-orphan", order_by="AttemptRecord.seq")
    mistakes: Mapped[List["MistakeRecord"]] = relationship(
        back_populates="item", cascade="all, delete-orphan", order_by="MistakeRecord.seq")


class AttemptRecord(Base):
    __tablename__ = "attempts"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_id: Mapped[str] = mapped_column(String, ForeignKey("item_stats.item_id"), nullable=False)
    seq: Mapped[int] = mapped_column(Integer, nullable=False)  # position in the item's history
    input: Mapped[str] = mapped_column(String, nullable=False)
    start_time: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    duration_ms: Mapped[float] = mapped_column(Float, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)

    item: Mapped[ItemStatsRecord] = relationship(back_populates="attempts")


class MistakeRecord(Base):
    __tablename__ = "mistakes"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_id: Mapped[str] = mapped_column(String, ForeignKey("item_stats.item_id"), nullable=False)
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    input: Mapped[str] = mapped_column(String, nullable=False)
    timestamp: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)

    item: Mapped[ItemStatsRecord] = relationship(back_populates="mistakes")


class SessionMeta(Base):
    __tablename__ = "session_meta"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_session: Mapped[datetime.datetime] = mapped_column(DateTime, default=lambda: datetime.datetime.now(datetime.UTC))
    total_practice_time: Mapped[float] = mapped_column(Float, default=0.0)


def use_database(db_path: str) -> None:
    """Point the module at a different SQLite file."""
    global DB_PATH, engine, SessionLocal
    DB_PATH = db_path
    engine = create_engine(f"sqlite:///{db_path}")
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


def is_db_initialized() -> bool:
    """Check if the database is already initialized by checking if tables exist."""
    from sqlalchemy import inspect
    inspector = inspect(engine)
    table_names = inspector.get_table_names()
    required_tables = {"item_stats", "attempts", "mistakes", "session_meta"}
    return required_tables.issubset(set(table_names))


def init_db() -> None:
    """Initialize the database by creating all tables."""
    Base.metadata.create_all(bind=engine)


def get_session() -> Session:
    return SessionLocal()


# ----------------------------------------------------------------------
# Snapshot save / load
# ----------------------------------------------------------------------
def _to_record(item_id: str, stats: ItemStatistics) -> ItemStatsRecord:
    record = ItemStatsRecord(
        item_id=item_id,
        appearances=stats.appearances,
        successes=stats.successes,
        failures=stats.failures,
        total_response_time=stats.total_response_time,
        exp_avg_response=stats.exp_avg_response,
        exp_avg_accuracy=stats.exp_avg_accuracy,
        last_appearance=stats.last_appearance,
    )
    record.attempts = [
        AttemptRecord(seq=i, input=t.input, start_time=t.start_time,
                      duration_ms=t.duration_ms, success=t.success)
        for i, t in enumerate(stats.test_history)
    ]
    record.mistakes = [
        MistakeRecord(seq=i, input=m.input, timestamp=m.timestamp)
        for i, m in enumerate(stats.mistakes)
    ]
    return record


def _from_record(record: ItemStatsRecord) -> ItemStatistics:
    return ItemStatistics(
        appearances=record.appearances,
        successes=record.successes,
        failures=record.failures,
        total_response_time=record.total_response_time,
        exp_avg_response=record.exp_avg_response,
        exp_avg_accuracy=record.exp_avg_accuracy,
        last_appearance=_as_utc(record.last_appearance),
        mistakes=[MistakeEntry(input=m.input, timestamp=_as_utc(m.timestamp)) for m in record.mistakes],
        test_history=[
            TestEntry(input=a.input, start_time=_as_utc(a.start_time),
                      duration_ms=a.duration_ms, success=a.success)
            for a in record.attempts
        ],
    )


def save_history(history: UserHistory) -> None:
    """Replace the stored snapshot with ``history`` in a single transaction."""
    session: Session = get_session()
    try:
        session.execute(delete(AttemptRecord))
        session.execute(delete(MistakeRecord))
        session.execute(delete(ItemStatsRecord))
        session.execute(delete(SessionMeta))
        session.add_all(_to_record(k, v) for k, v in history.character_stats.items())
        session.add(SessionMeta(
            id=1,
            last_session=history.last_session,
            total_practice_time=history.total_practice_time,
        ))
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
    logger.info("Saved statistics for %d kana to %s", len(history.character_stats), engine.url)


def check_consistency(history: UserHistory, repair: bool = False) -> List[EmaMismatch]:
    """Warn about stored EMAs that differ from a replay of the attempt history.

    Stored values are kept unless ``repair`` is set.
    """
    mismatches = history.find_ema_mismatches()
    for m in mismatches:
        logger.warning(
            "EMA mismatch for %s: response stored=%.3f recomputed=%.3f, accuracy stored=%.4f recomputed=%.4f",
            m.item_id, m.stored_response, m.recomputed_response,
            m.stored_accuracy, m.recomputed_accuracy,
        )
        if repair:
            history.character_stats[m.item_id].recalculate_ema()
    return mismatches


def load_history(repair: bool = False, check: bool = True) -> UserHistory:
    """Load the stored snapshot, or an empty history if nothing was saved yet.

    With ``check=False`` the EMA consistency check is left to the caller.
    """
    if not is_db_initialized():
        init_db()
        return UserHistory()

    session: Session = get_session()
    try:
        records = session.query(ItemStatsRecord).all()
        history = UserHistory(character_stats={r.item_id: _from_record(r) for r in records})
        meta: Optional[SessionMeta] = session.get(SessionMeta, 1)
        if meta is not None:
            history.last_session = _as_utc(meta.last_session)
            history.total_practice_time = meta.total_practice_time
    finally:
        session.close()

    if check:
        check_consistency(history, repair=repair)
    logger.info("Loaded statistics for %d kana", len(history.character_stats))
    return history


# ----------------------------------------------------------------------
# JSON snapshots
# ----------------------------------------------------------------------
def export_json(history: UserHistory, path: str | os.PathLike[str]) -> None:
    Path(path).write_text(json.dumps(history.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")


def import_json(path: str | os.PathLike[str]) -> UserHistory:
    try:
        data: Dict[str, Any] = json.loads(Path(path).read_text(encoding="utf-8"))
        return UserHistory.from_dict(data)
    except FileNotFoundError:
        raise PersistenceError(f"Snapshot not found: {path}") from None
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise PersistenceError(f"Could not read snapshot {path}: {e}") from e


__all__ = [
    "Base", "engine", "SessionLocal", "get_session", "init_db", "is_db_initialized", "use_database",
    "ItemStatsRecord", "AttemptRecord", "MistakeRecord", "SessionMeta",
    "save_history", "load_history", "check_consistency",
    "export_json", "import_json",
]
