"""Per-kana practice statistics.

Each practiced kana owns an ``ItemStatistics`` record holding:
  - attempt counters (appearances, successes, failures)
  - exponential moving averages of accuracy and response time (alpha 0.2)
  - the full attempt history and every mistake, oldest first

EMA update rule for the k-th attempt:
  k == 1  -> EMA = raw value               (seed)
  k >= 2  -> EMA = a * raw + (1 - a) * EMA (blend)

``calculate_weight`` turns the statistics into a selection priority:
unseen items get ``W_NEW``; seen items get 1 + mean(error, recency, slowness)
so error-prone, stale or slow kana come up more often.
"""
from __future__ import annotations

import datetime
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

ALPHA = 0.2
W_NEW = 3.0

# Sigmoid centres and slopes for the recency (seconds) and response (ms) components
RECENCY_CENTER_S = 1800.0
RECENCY_SLOPE = 0.002
RESPONSE_CENTER_MS = 1200.0
RESPONSE_SLOPE = 0.005

EventListener = Callable[[str, Dict[str, Any]], None]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def sigmoid(x: float) -> float:
    # Split on sign so exp() never overflows
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def _finite(value: Any, name: str) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{name} must be finite, got {number!r}")
    return number


def _parse_ts(value: str) -> datetime.datetime:
    ts = datetime.datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=datetime.UTC)
    return ts


@dataclass
class MistakeEntry:
    input: str
    timestamp: datetime.datetime


@dataclass
class TestEntry:
    input: str
    start_time: datetime.datetime
    duration_ms: float
    success: bool


@dataclass
class ItemStatistics:
    appearances: int = 0
    successes: int = 0
    failures: int = 0
    total_response_time: float = 0.0
    exp_avg_response: float = 0.0
    exp_avg_accuracy: float = 0.0
    last_appearance: datetime.datetime = field(default_factory=utcnow)
    mistakes: List[MistakeEntry] = field(default_factory=list)
    test_history: List[TestEntry] = field(default_factory=list)

    @property
    def is_unseen(self) -> bool:
        return self.appearances == 0

    # ── Updates ───────────────────────────────────────────────────────

    def record_attempt(
        self,
        input: str,
        success: bool,
        response_time_ms: float,
        now: Optional[datetime.datetime] = None,
        listener: Optional[EventListener] = None,
    ) -> None:
        """Record one completed attempt and update the moving averages."""
        now = now or utcnow()
        # Computed before any counter changes so a bad latency leaves the record untouched
        start_time = now - datetime.timedelta(milliseconds=response_time_ms)

        self.appearances += 1
        if success:
            self.successes += 1
        else:
            self.failures += 1
            self.mistakes.append(MistakeEntry(input=input, timestamp=now))

        self.test_history.append(TestEntry(
            input=input,
            start_time=start_time,
            duration_ms=response_time_ms,
            success=success,
        ))

        raw_accuracy = 1.0 if success else 0.0
        if self.appearances == 1:
            self.exp_avg_response = response_time_ms
            self.exp_avg_accuracy = raw_accuracy
        else:
            self.exp_avg_response = ALPHA * response_time_ms + (1 - ALPHA) * self.exp_avg_response
            self.exp_avg_accuracy = ALPHA * raw_accuracy + (1 - ALPHA) * self.exp_avg_accuracy

        self.total_response_time += response_time_ms
        self.last_appearance = now

        if listener is not None:
            listener("attempt_recorded", {
                "input": input,
                "success": success,
                "response_time_ms": response_time_ms,
                "appearances": self.appearances,
                "exp_avg_response": self.exp_avg_response,
                "exp_avg_accuracy": self.exp_avg_accuracy,
            })

    def replay_ema(self) -> Tuple[float, float]:
        """Rebuild (response EMA, accuracy EMA) from ``test_history`` alone."""
        response = 0.0
        accuracy = 0.0
        for i, entry in enumerate(self.test_history):
            raw_accuracy = 1.0 if entry.success else 0.0
            if i == 0:
                response = entry.duration_ms
                accuracy = raw_accuracy
            else:
                response = ALPHA * entry.duration_ms + (1 - ALPHA) * response
                accuracy = ALPHA * raw_accuracy + (1 - ALPHA) * accuracy
        return response, accuracy

    def recalculate_ema(self) -> None:
        self.exp_avg_response, self.exp_avg_accuracy = self.replay_ema()

    # ── Weighting ─────────────────────────────────────────────────────

    def weight_components(self, now: datetime.datetime) -> Tuple[float, float, float]:
        """Return (error, recency, response) components, each in [0, 1]."""
        error_component = 1.0 - self.exp_avg_accuracy
        seconds_since = (now - self.last_appearance).total_seconds()
        recency_component = sigmoid(RECENCY_SLOPE * (seconds_since - RECENCY_CENTER_S))
        response_component = sigmoid(RESPONSE_SLOPE * (self.exp_avg_response - RESPONSE_CENTER_MS))
        return error_component, recency_component, response_component

    def calculate_weight(
        self,
        now: datetime.datetime,
        listener: Optional[EventListener] = None,
    ) -> float:
        if self.appearances == 0:
            if listener is not None:
                listener("weight_computed", {"appearances": 0, "weight": W_NEW})
            return W_NEW

        error_component, recency_component, response_component = self.weight_components(now)
        components_avg = (error_component + recency_component + response_component) / 3.0
        weight = 1.0 + components_avg

        if listener is not None:
            listener("weight_computed", {
                "appearances": self.appearances,
                "error_component": error_component,
                "recency_component": recency_component,
                "response_component": response_component,
                "exp_avg_accuracy": self.exp_avg_accuracy,
                "exp_avg_response": self.exp_avg_response,
                "weight": weight,
            })
        return weight

    # ── Read-only accessors ───────────────────────────────────────────

    def success_rate(self) -> float:
        if self.appearances == 0:
            return 0.0
        return self.successes / self.appearances

    def avg_response_time(self) -> float:
        if self.appearances == 0:
            return 0.0
        return self.total_response_time / self.appearances

    def recent_success_rate(self, n: int) -> float:
        recent = self.test_history[-n:] if n > 0 else []
        if not recent:
            return 0.0
        return sum(1 for entry in recent if entry.success) / len(recent)

    def recent_avg_response_time(self, n: int) -> float:
        recent = self.test_history[-n:] if n > 0 else []
        if not recent:
            return 0.0
        return sum(entry.duration_ms for entry in recent) / len(recent)

    def recent_mistakes(self, n: int) -> List[MistakeEntry]:
        """Most recent ``n`` mistakes, newest first."""
        if n <= 0:
            return []
        return list(reversed(self.mistakes[-n:]))

    # ── Snapshot ──────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appearances": self.appearances,
            "successes": self.successes,
            "failures": self.failures,
            "total_response_time": self.total_response_time,
            "exp_avg_response": self.exp_avg_response,
            "exp_avg_accuracy": self.exp_avg_accuracy,
            "last_appearance": self.last_appearance.isoformat(),
            "mistakes": [
                {"input": m.input, "timestamp": m.timestamp.isoformat()}
                for m in self.mistakes
            ],
            "test_history": [
                {
                    "input": t.input,
                    "start_time": t.start_time.isoformat(),
                    "duration_ms": t.duration_ms,
                    "success": t.success,
                }
                for t in self.test_history
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ItemStatistics":
        history = [
            TestEntry(
                input=t["input"],
                start_time=_parse_ts(t["start_time"]),
                duration_ms=_finite(t["duration_ms"], "duration_ms"),
                success=bool(t["success"]),
            )
            for t in data.get("test_history", [])
        ]
        total = data.get("total_response_time")
        if total is None:
            total = sum(t.duration_ms for t in history)
        return cls(
            appearances=int(data.get("appearances", 0)),
            successes=int(data.get("successes", 0)),
            failures=int(data.get("failures", 0)),
            total_response_time=_finite(total, "total_response_time"),
            exp_avg_response=_finite(data.get("exp_avg_response", 0.0), "exp_avg_response"),
            exp_avg_accuracy=_finite(data.get("exp_avg_accuracy", 0.0), "exp_avg_accuracy"),
            last_appearance=_parse_ts(data["last_appearance"]) if data.get("last_appearance") else utcnow(),
            mistakes=[
                MistakeEntry(input=m["input"], timestamp=_parse_ts(m["timestamp"]))
                for m in data.get("mistakes", [])
            ],
            test_history=history,
        )


@dataclass
class EmaMismatch:
    item_id: str
    stored_response: float
    recomputed_response: float
    stored_accuracy: float
    recomputed_accuracy: float


@dataclass
class UserHistory:
    """All statistics for one learner plus session metadata."""

    character_stats: Dict[str, ItemStatistics] = field(default_factory=dict)
    last_session: datetime.datetime = field(default_factory=utcnow)
    total_practice_time: float = 0.0  # seconds

    def get_or_init(self, item_id: str) -> ItemStatistics:
        stats = self.character_stats.get(item_id)
        if stats is None:
            stats = ItemStatistics()
            self.character_stats[item_id] = stats
        return stats

    def get(self, item_id: str) -> Optional[ItemStatistics]:
        return self.character_stats.get(item_id)

    def find_ema_mismatches(self, tolerance: float = 1e-6) -> List[EmaMismatch]:
        """Compare stored EMAs against a replay of each item's history.

        Nothing is modified; callers decide whether to warn or repair.
        """
        mismatches: List[EmaMismatch] = []
        for item_id, stats in self.character_stats.items():
            response, accuracy = stats.replay_ema()
            # Written as "not <=" so a NaN on either side counts as a mismatch
            if not (abs(response - stats.exp_avg_response) <= tolerance
                    and abs(accuracy - stats.exp_avg_accuracy) <= tolerance):
                mismatches.append(EmaMismatch(
                    item_id=item_id,
                    stored_response=stats.exp_avg_response,
                    recomputed_response=response,
                    stored_accuracy=stats.exp_avg_accuracy,
                    recomputed_accuracy=accuracy,
                ))
        return mismatches

    def to_dict(self) -> Dict[str, Any]:
        return {
            "character_stats": {k: v.to_dict() for k, v in self.character_stats.items()},
            "last_session": self.last_session.isoformat(),
            "total_practice_time": self.total_practice_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserHistory":
        return cls(
            character_stats={
                k: ItemStatistics.from_dict(v)
                for k, v in data.get("character_stats", {}).items()
            },
            last_session=_parse_ts(data["last_session"]) if data.get("last_session") else utcnow(),
            total_practice_time=float(data.get("total_practice_time", 0.0)),
        )
