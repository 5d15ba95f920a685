import datetime

import numpy as np
import pytest

from kana_trainer.errors import InvalidAttemptError, NoItemAvailableError
from kana_trainer.kana import KanaItem
from kana_trainer.scheduler import AdaptiveSelector
from kana_trainer.session import PracticeSession, SessionMode
from kana_trainer.stats import UserHistory

T0 = datetime.datetime(2026, 3, 1, 9, 0, tzinfo=datetime.UTC)
SHI = KanaItem("し", "shi")
TSU = KanaItem("つ", "tsu")


def ms(n: float) -> datetime.timedelta:
    return datetime.timedelta(milliseconds=n)


@pytest.fixture
def session() -> PracticeSession:
    return PracticeSession([SHI, TSU], UserHistory(), selector=AdaptiveSelector(rng=np.random.default_rng(11)))


def test_empty_catalog_is_rejected():
    with pytest.raises(NoItemAvailableError):
        PracticeSession([], UserHistory())


def test_start_shows_an_item(session):
    assert session.mode == SessionMode.INITIAL
    item = session.start(now=T0)
    assert session.mode == SessionMode.READY
    assert item in (SHI, TSU)
    assert session.current is item
    assert session.start_time == T0


def test_correct_answer_is_timed_from_start():
    session = PracticeSession([SHI], UserHistory(), selector=AdaptiveSelector(rng=np.random.default_rng(0)))
    session.start(now=T0)
    result = session.submit("  SHI ", now=T0 + ms(850))

    assert result is not None
    assert result.success
    assert result.input == "shi"
    assert result.response_time_ms == pytest.approx(850.0)
    stats = session.history.get("し")
    assert stats.appearances == 1
    assert stats.exp_avg_response == pytest.approx(850.0)
    assert stats.exp_avg_accuracy == 1.0
    # next item is timed from the moment of the correct answer
    assert session.start_time == T0 + ms(850)


def test_wrong_answer_keeps_the_same_item(session):
    item = session.start(now=T0)
    wrong = "xyz"
    result = session.submit(wrong, now=T0 + ms(1500))

    assert result is not None
    assert not result.success
    assert session.current is item
    assert session.start_time == T0

    stats = session.history.get(item.item_id)
    assert stats.failures == 1
    assert stats.mistakes[0].input == "xyz"

    result = session.submit(item.romaji, now=T0 + ms(2300))
    assert result.success
    assert result.response_time_ms == pytest.approx(2300.0)
    assert session.attempts == 2
    assert session.correct == 1
    assert session.accuracy == pytest.approx(0.5)
    # the retry's latency already covers the failed attempt
    assert session.practice_ms == pytest.approx(2300.0)


def test_empty_input_pauses_without_recording(session):
    item = session.start(now=T0)
    assert session.submit("   ", now=T0 + ms(400)) is None
    assert session.mode == SessionMode.PAUSED
    assert session.current is None
    assert session.history.get(item.item_id).appearances == 0

    # answers are ignored while paused
    assert session.submit(item.romaji, now=T0 + ms(500)) is None
    assert session.attempts == 0

    session.resume(now=T0 + ms(9000))
    assert session.mode == SessionMode.READY
    assert session.current is not None


def test_submit_before_start_is_ignored(session):
    assert session.submit("shi", now=T0) is None
    assert session.attempts == 0


@pytest.mark.parametrize("bad", [-1.0, float("nan"), float("inf")])
def test_invalid_response_time_is_rejected(session, bad):
    item = session.start(now=T0)
    with pytest.raises(InvalidAttemptError):
        session.submit_timed(item.romaji, bad, now=T0)
    assert session.history.get(item.item_id).appearances == 0
    assert session.history.get(item.item_id).test_history == []


def test_clock_going_backwards_is_rejected(session):
    session.start(now=T0)
    with pytest.raises(InvalidAttemptError):
        session.submit("shi", now=T0 - ms(5))


def test_finish_accumulates_practice_time():
    history = UserHistory(total_practice_time=10.0)
    session = PracticeSession([SHI], history, selector=AdaptiveSelector(rng=np.random.default_rng(0)))
    session.start(now=T0)
    session.submit_timed("shi", 850.0, now=T0 + ms(850))
    session.submit_timed("su", 1200.0, now=T0 + ms(2050))

    end = T0 + datetime.timedelta(minutes=5)
    assert session.finish(now=end) is history
    assert history.total_practice_time == pytest.approx(12.05)
    assert history.last_session == end


def test_listener_sees_attempts_and_selections():
    events = []
    session = PracticeSession(
        [SHI], UserHistory(),
        selector=AdaptiveSelector(rng=np.random.default_rng(0), listener=lambda n, f: events.append(n)),
        listener=lambda n, f: events.append(n),
    )
    session.start(now=T0)
    session.submit_timed("shi", 700.0, now=T0 + ms(700))
    assert events.count("item_selected") == 2
    assert events.count("attempt_recorded") == 1
