import datetime

import numpy as np
import pytest

from kana_trainer.errors import ConfigurationError, NoItemAvailableError
from kana_trainer.kana import KanaItem, MAIN_HIRAGANA
from kana_trainer.scheduler import AdaptiveSelector, normalize_weights, weighted_index
from kana_trainer.stats import ItemStatistics, UserHistory, W_NEW

NOW = datetime.datetime(2026, 3, 1, 12, 0, tzinfo=datetime.UTC)
A = KanaItem("あ", "a")
B = KanaItem("い", "i")


def history_with_practiced_b() -> UserHistory:
    history = UserHistory()
    history.character_stats["い"] = ItemStatistics(
        appearances=10, successes=5, failures=5,
        exp_avg_accuracy=0.5, exp_avg_response=1200.0,
        last_appearance=NOW - datetime.timedelta(hours=2),
    )
    return history


def test_normalize_spans_one_to_ten():
    weights = normalize_weights([1.2, 3.0, 1.7, 1.9])
    assert weights.min() == pytest.approx(1.0)
    assert weights.max() == pytest.approx(10.0)
    assert weights[0] == pytest.approx(1.0)
    assert weights[1] == pytest.approx(10.0)
    assert np.all((weights >= 1.0) & (weights <= 10.0))


def test_normalize_equal_weights_are_one():
    assert normalize_weights([3.0, 3.0, 3.0]).tolist() == [1.0, 1.0, 1.0]
    assert normalize_weights([1.4]).tolist() == [1.0]


def test_normalize_empty():
    assert normalize_weights([]).size == 0


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
def test_normalize_rejects_non_finite(bad):
    with pytest.raises(NoItemAvailableError):
        normalize_weights([1.5, bad, 3.0])


def test_select_refuses_corrupted_statistics():
    history = history_with_practiced_b()
    history.character_stats["い"].exp_avg_response = float("nan")
    selector = AdaptiveSelector(rng=np.random.default_rng(0))
    with pytest.raises(NoItemAvailableError):
        selector.select([A, B], history, now=NOW)


def test_weighted_index_rejects_degenerate_vectors():
    rng = np.random.default_rng(0)
    with pytest.raises(NoItemAvailableError):
        weighted_index([], rng)
    with pytest.raises(NoItemAvailableError):
        weighted_index([0.0, 0.0], rng)
    with pytest.raises(NoItemAvailableError):
        weighted_index([-1.0, -2.0], rng)
    with pytest.raises(NoItemAvailableError):
        weighted_index([1.0, float("nan")], rng)
    with pytest.raises(NoItemAvailableError):
        weighted_index([1.0, float("inf")], rng)


def test_weighted_index_clamps_negatives():
    rng = np.random.default_rng(1)
    draws = {weighted_index([-5.0, 2.0, 0.0], rng) for _ in range(200)}
    assert draws == {1}


def test_no_item_is_a_configuration_error():
    assert issubclass(NoItemAvailableError, ConfigurationError)


def test_tenfold_weight_is_drawn_proportionally_more():
    rng = np.random.default_rng(2024)
    n = 20000
    counts = np.bincount([weighted_index([10.0, 1.0], rng) for _ in range(n)], minlength=2)
    share = counts[0] / n
    assert share == pytest.approx(10.0 / 11.0, abs=0.02)
    assert counts[0] > 5 * counts[1]


def test_unseen_item_dominates_practiced_item():
    history = history_with_practiced_b()
    selector = AdaptiveSelector(rng=np.random.default_rng(7))

    raw = selector.raw_weights([A, B], history, NOW)
    assert raw[0] == W_NEW
    assert 1.0 < raw[1] < 2.0
    assert normalize_weights(raw).tolist() == pytest.approx([10.0, 1.0])

    picks = [selector.select([A, B], history, now=NOW) for _ in range(2000)]
    assert picks.count(A) > 1600
    assert picks.count(B) > 0


def test_select_inserts_missing_stats_once():
    history = history_with_practiced_b()
    b_stats = history.character_stats["い"]
    selector = AdaptiveSelector(rng=np.random.default_rng(3))

    selector.select([A, B], history, now=NOW)
    selector.select([A, B], history, now=NOW)

    assert set(history.character_stats) == {"あ", "い"}
    assert history.character_stats["あ"].appearances == 0
    assert history.character_stats["い"] is b_stats
    assert b_stats.appearances == 10


def test_select_empty_catalog_raises():
    selector = AdaptiveSelector(rng=np.random.default_rng(0))
    with pytest.raises(NoItemAvailableError):
        selector.select([], UserHistory(), now=NOW)


def test_seeded_selection_is_reproducible():
    first = AdaptiveSelector(rng=np.random.default_rng(99))
    second = AdaptiveSelector(rng=np.random.default_rng(99))
    h1, h2 = UserHistory(), UserHistory()
    picks_1 = [first.select(MAIN_HIRAGANA, h1, now=NOW).kana for _ in range(50)]
    picks_2 = [second.select(MAIN_HIRAGANA, h2, now=NOW).kana for _ in range(50)]
    assert picks_1 == picks_2


def test_selection_events():
    events = []
    selector = AdaptiveSelector(rng=np.random.default_rng(5), listener=lambda n, f: events.append((n, f)))
    chosen = selector.select([A, B], history_with_practiced_b(), now=NOW)

    names = [name for name, _ in events]
    assert names == ["weight_computed", "weight_computed", "item_selected"]
    selected = events[-1][1]
    assert selected["item"] == chosen.item_id
    assert selected["catalog_size"] == 2
    assert selected["normalized_weight"] in (pytest.approx(10.0), pytest.approx(1.0))
