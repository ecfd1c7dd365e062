"""Level-2 order book with price-sorted sides."""

from __future__ import annotations

import operator
from collections.abc import Iterable, MutableMapping
from dataclasses import dataclass, field

from sortedcontainers import SortedDict


def _new_bids(items=()) -> SortedDict:
    return SortedDict(operator.neg, items)


def _new_asks(items=()) -> SortedDict:
    return SortedDict(items)


@dataclass
class OrderBook:
    """Price -> size maps: bids iterate best (highest) first, asks lowest first."""

    bids: SortedDict = field(default_factory=_new_bids)
    asks: SortedDict = field(default_factory=_new_asks)

    def __post_init__(self) -> None:
        if not isinstance(self.bids, SortedDict) or self.bids.key is not operator.neg:
            self.bids = _new_bids(dict(self.bids))
        if not isinstance(self.asks, SortedDict) or self.asks.key is not None:
            self.asks = _new_asks(dict(self.asks))

    def copy(self) -> OrderBook:
        """Return an independent copy of this book."""
        return OrderBook(_new_bids(self.bids), _new_asks(self.asks))


def apply_deltas(
    side: MutableMapping[float, float], deltas: Iterable[tuple[float, float]]
) -> None:
    """Apply L2 deltas to one side: a size of zero removes the level, otherwise sets it."""
    for price, size in deltas:
        if size == 0.0:
            side.pop(price, None)
        else:
            side[price] = size