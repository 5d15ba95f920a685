"""Adaptive kana selection.

Weighted random sampling over a fixed catalog:

  1. Every catalog item gets a raw weight from its ``ItemStatistics``
     (statistics are created on first reference through ``get_or_init``).
  2. Raw weights are rescaled linearly into [1, 10]; if they are all equal
     every item gets weight 1.
  3. One index is drawn proportionally to the rescaled weights.

Each call is independent, so the same kana may come up twice in a row.
"""
from __future__ import annotations

import datetime
from typing import Optional, Protocol, Sequence

import numpy as np
from numpy.typing import NDArray

from .errors import NoItemAvailableError
from .kana import KanaItem
from .stats import EventListener, ItemStatistics, utcnow

NORMALIZED_MIN = 1.0
NORMALIZED_MAX = 10.0


class StatsStore(Protocol):
    def get_or_init(self, item_id: str) -> ItemStatistics:
        ...


def normalize_weights(raw: Sequence[float]) -> NDArray[np.float64]:
    """Rescale raw weights into [1, 10]; equal weights all become 1.

    Raises ``NoItemAvailableError`` if any raw weight is NaN or infinite.
    """
    weights = np.asarray(raw, dtype=np.float64)
    if weights.size == 0:
        return weights
    if not np.all(np.isfinite(weights)):
        raise NoItemAvailableError("Selection weights contain non-finite values")
    min_w = weights.min()
    max_w = weights.max()
    if max_w > min_w:
        span = NORMALIZED_MAX - NORMALIZED_MIN
        return NORMALIZED_MIN + span * (weights - min_w) / (max_w - min_w)
    return np.full_like(weights, NORMALIZED_MIN)


def weighted_index(weights: Sequence[float], rng: np.random.Generator) -> int:
    """Draw one index proportionally to ``weights``.

    Negative entries are clamped to zero. Raises ``NoItemAvailableError`` for
    an empty vector, a non-finite entry, or no positive entry at all.
    """
    w = np.asarray(weights, dtype=np.float64)
    if w.size == 0:
        raise NoItemAvailableError("No items to choose from: the catalog is empty")
    if not np.all(np.isfinite(w)):
        raise NoItemAvailableError("Selection weights contain non-finite values")
    w = np.clip(w, 0.0, None)
    total = w.sum()
    if total <= 0:
        raise NoItemAvailableError("No item has a positive selection weight")
    return int(rng.choice(w.size, p=w / total))


class AdaptiveSelector:
    """Pick the next kana, favouring new, error-prone, stale and slow items."""

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        listener: Optional[EventListener] = None,
    ) -> None:
        self.rng = rng if rng is not None else np.random.default_rng()
        self.listener = listener

    def raw_weights(
        self,
        catalog: Sequence[KanaItem],
        store: StatsStore,
        now: datetime.datetime,
    ) -> NDArray[np.float64]:
        return np.array(
            [store.get_or_init(item.item_id).calculate_weight(now, self.listener) for item in catalog],
            dtype=np.float64,
        )

    def select(
        self,
        catalog: Sequence[KanaItem],
        store: StatsStore,
        now: Optional[datetime.datetime] = None,
    ) -> KanaItem:
        if not catalog:
            raise NoItemAvailableError("No items to choose from: the catalog is empty")
        now = now or utcnow()

        raw = self.raw_weights(catalog, store, now)
        weights = normalize_weights(raw)
        index = weighted_index(weights, self.rng)
        chosen = catalog[index]

        if self.listener is not None:
            self.listener("item_selected", {
                "item": chosen.item_id,
                "index": index,
                "raw_weight": float(raw[index]),
                "normalized_weight": float(weights[index]),
                "catalog_size": len(catalog),
            })
        return chosen
