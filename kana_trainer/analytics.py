"""Read-only reports over a learner's history."""
from __future__ import annotations

import datetime
from typing import Any, Dict, List, Tuple

from .kana import KanaType, romaji_lookup
from .stats import ALPHA, UserHistory


def _ranking_rows(history: UserHistory) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for kana, stats in history.character_stats.items():
        if stats.is_unseen:
            continue
        rows.append({
            "kana": kana,
            "ema_accuracy": stats.exp_avg_accuracy,
            "ema_response": stats.exp_avg_response,
            "tests": len(stats.test_history),
        })
    return rows


def accuracy_ranking(history: UserHistory, limit: int = 15) -> List[Dict[str, Any]]:
    """Seen kana ordered by EMA accuracy, weakest first."""
    rows = _ranking_rows(history)
    rows.sort(key=lambda r: r["ema_accuracy"])
    return rows[:limit]


def speed_ranking(history: UserHistory, limit: int = 15) -> List[Dict[str, Any]]:
    """Seen kana ordered by EMA response time, slowest first."""
    rows = _ranking_rows(history)
    rows.sort(key=lambda r: r["ema_response"], reverse=True)
    return rows[:limit]


def recent_mistakes(history: UserHistory, kana_type: KanaType | str, limit: int = 15) -> List[Dict[str, Any]]:
    """Kana with mistakes, most recently missed first.

    Wrong romaji answers are shown as the kana they actually name when there
    is one, otherwise as typed.
    """
    lookup = romaji_lookup(kana_type)
    rows: List[Dict[str, Any]] = []
    for kana, stats in history.character_stats.items():
        if not stats.mistakes:
            continue
        rows.append({
            "kana": kana,
            "confused_with": [lookup.get(m.input, m.input) for m in stats.mistakes],
            "latest": max(m.timestamp for m in stats.mistakes),
        })
    rows.sort(key=lambda r: r["latest"], reverse=True)
    return rows[:limit]


def response_time_trend(history: UserHistory) -> List[Tuple[int, float]]:
    """EMA of response time over every attempt, in chronological order."""
    durations = sorted(
        (entry.start_time, entry.duration_ms)
        for stats in history.character_stats.values()
        for entry in stats.test_history
    )
    points: List[Tuple[int, float]] = []
    ema = 0.0
    for idx, (_, duration) in enumerate(durations):
        ema = duration if idx == 0 else ALPHA * duration + (1 - ALPHA) * ema
        points.append((idx, ema))
    return points


def summary(history: UserHistory) -> Dict[str, Any]:
    total_attempts = 0
    total_successes = 0
    total_response = 0.0
    seen = 0
    for stats in history.character_stats.values():
        total_attempts += stats.appearances
        total_successes += stats.successes
        total_response += stats.total_response_time
        if not stats.is_unseen:
            seen += 1

    return {
        "total_attempts": total_attempts,
        "total_successes": total_successes,
        "success_rate": total_successes / total_attempts if total_attempts else 0.0,
        "avg_response_ms": total_response / total_attempts if total_attempts else 0.0,
        "items_seen": seen,
        "total_practice_time": history.total_practice_time,
        "last_session": history.last_session,
    }


def format_duration(seconds: float) -> str:
    return str(datetime.timedelta(seconds=int(seconds)))
