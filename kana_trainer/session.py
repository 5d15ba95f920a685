"""Practice session state machine.

    initial --start()--> ready --submit(correct)--> ready (next kana)
                         ready --submit(wrong)----> ready (same kana, retry)
                         ready --submit("")-------> paused
    paused --resume()--> ready
"""
from __future__ import annotations

import datetime
import enum
import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .errors import InvalidAttemptError, NoItemAvailableError
from .kana import KanaItem
from .scheduler import AdaptiveSelector
from .stats import EventListener, UserHistory, utcnow

logger = logging.getLogger(__name__)


class SessionMode(str, enum.Enum):
    INITIAL = "initial"
    READY = "ready"
    PAUSED = "paused"


@dataclass
class AttemptResult:
    item: KanaItem
    input: str
    success: bool
    response_time_ms: float


def validate_response_time(response_time_ms: float) -> float:
    if not math.isfinite(response_time_ms) or response_time_ms < 0:
        raise InvalidAttemptError(f"Response time must be a finite non-negative number, got {response_time_ms!r}")
    return float(response_time_ms)


class PracticeSession:
    def __init__(
        self,
        catalog: Sequence[KanaItem],
        history: UserHistory,
        selector: Optional[AdaptiveSelector] = None,
        listener: Optional[EventListener] = None,
    ) -> None:
        if not catalog:
            raise NoItemAvailableError("Cannot start a practice session with an empty catalog")
        self.catalog = tuple(catalog)
        self.history = history
        self.selector = selector or AdaptiveSelector(listener=listener)
        self.listener = listener

        self.mode = SessionMode.INITIAL
        self.current: Optional[KanaItem] = None
        self.start_time: Optional[datetime.datetime] = None
        self.last_result: Optional[AttemptResult] = None

        self.attempts = 0
        self.correct = 0
        self.practice_ms = 0.0
        self._prompt_ms = 0.0

    # ── Transitions ───────────────────────────────────────────────────

    def start(self, now: Optional[datetime.datetime] = None) -> KanaItem:
        """Leave the initial or paused state and show the next kana."""
        now = now or utcnow()
        self.mode = SessionMode.READY
        return self._next(now)

    resume = start

    def pause(self) -> None:
        self.mode = SessionMode.PAUSED
        self.current = None
        self.start_time = None

    def submit(self, raw_input: str, now: Optional[datetime.datetime] = None) -> Optional[AttemptResult]:
        """Check an answer for the current kana.

        Empty input pauses the session without recording anything. A wrong
        answer keeps the same kana on screen; a correct one selects the next.
        Latency is always measured from when the kana was first shown, so a
        retry includes the time spent on earlier wrong answers.
        """
        if self.mode != SessionMode.READY or self.current is None or self.start_time is None:
            return None

        answer = raw_input.strip().lower()
        if not answer:
            self.pause()
            return None

        now = now or utcnow()
        response_time_ms = validate_response_time((now - self.start_time).total_seconds() * 1000.0)
        return self._record(answer, response_time_ms, now)

    def submit_timed(self, raw_input: str, response_time_ms: float,
                     now: Optional[datetime.datetime] = None) -> Optional[AttemptResult]:
        """Like ``submit`` but with a latency measured by the caller."""
        response_time_ms = validate_response_time(response_time_ms)
        if self.mode != SessionMode.READY or self.current is None:
            return None
        answer = raw_input.strip().lower()
        if not answer:
            self.pause()
            return None
        return self._record(answer, response_time_ms, now or utcnow())

    def finish(self, now: Optional[datetime.datetime] = None) -> UserHistory:
        """Fold this session's practice time into the history."""
        self.history.total_practice_time += self.practice_ms / 1000.0
        self.history.last_session = now or utcnow()
        logger.info(
            "Session finished: %d attempts, %d correct, %.1fs practiced",
            self.attempts, self.correct, self.practice_ms / 1000.0,
        )
        return self.history

    # ── Helpers ───────────────────────────────────────────────────────

    @property
    def accuracy(self) -> float:
        return self.correct / self.attempts if self.attempts else 0.0

    def _record(self, answer: str, response_time_ms: float, now: datetime.datetime) -> AttemptResult:
        item = self.current
        assert item is not None
        success = answer == item.romaji.lower()

        stats = self.history.get_or_init(item.item_id)
        stats.record_attempt(answer, success, response_time_ms, now=now, listener=self.listener)

        self.attempts += 1
        # Retries keep the original start time, so only count time not already added
        self.practice_ms += max(0.0, response_time_ms - self._prompt_ms)
        self._prompt_ms = max(self._prompt_ms, response_time_ms)
        if success:
            self.correct += 1
            self._next(now)

        self.last_result = AttemptResult(item=item, input=answer, success=success,
                                         response_time_ms=response_time_ms)
        return self.last_result

    def _next(self, now: datetime.datetime) -> KanaItem:
        self.current = self.selector.select(self.catalog, self.history, now=now)
        self.start_time = now
        self._prompt_ms = 0.0
        return self.current
