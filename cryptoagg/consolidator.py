"""Merge several venue books into one book aligned to a price tick."""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from fractions import Fraction

from .order_book import OrderBook

_SCALE = 100_000_000  # fixed-point scale, 1e8


@dataclass(frozen=True)
class ConsolidationConfig:
    """Tick size for price alignment and the number of levels kept per side."""

    tick: float = 0.1
    top_n: int = 50


def floor_to_tick(price: float, tick: float) -> float:
    """Round a price down to a multiple of tick; unchanged if tick is not positive."""
    if tick <= 0:
        return price
    return math.floor(price / tick) * tick


def ceil_to_tick(price: float, tick: float) -> float:
    """Round a price up to a multiple of tick; unchanged if tick is not positive."""
    if tick <= 0:
        return price
    return math.ceil(price / tick) * tick


def _top(levels: Mapping[float, float], top_n: int, descending: bool) -> list[tuple[float, float]]:
    return sorted(levels.items(), reverse=descending)[:top_n]


def _raw_merge(books: list[OrderBook], top_n: int) -> OrderBook:
    bids: defaultdict[float, float] = defaultdict(float)
    asks: defaultdict[float, float] = defaultdict(float)
    for book in books:
        for price, size in book.bids.items():
            if size > 0.0:
                bids[price] += size
        for price, size in book.asks.items():
            if size > 0.0:
                asks[price] += size
    return OrderBook(
        dict(_top(bids, top_n, descending=True)),
        dict(_top(asks, top_n, descending=False)),
    )


def consolidate(books: Iterable[OrderBook], cfg: ConsolidationConfig) -> OrderBook:
    """Sum sizes across books, bids floored and asks ceiled to the tick, top N per side.

    Prices are aligned in exact fixed point so that values sitting on a tick
    boundary stay there. A non-positive tick merges raw prices instead.
    """
    books = list(books)
    if not books:
        return OrderBook()
    if not cfg.tick > 0.0:
        return _raw_merge(books, cfg.top_n)

    tick_i = math.floor(Fraction(cfg.tick) * _SCALE + Fraction(1, 2))
    if tick_i <= 0:
        raise ValueError(f"tick {cfg.tick!r} is below the fixed-point resolution")

    bids_i: defaultdict[int, float] = defaultdict(float)
    asks_i: defaultdict[int, float] = defaultdict(float)
    for book in books:
        for price, size in book.bids.items():
            if not size > 0.0:
                continue
            p_i = math.floor(Fraction(price) * _SCALE)
            bids_i[p_i // tick_i] += size
        for price, size in book.asks.items():
            if not size > 0.0:
                continue
            p_i = math.ceil(Fraction(price) * _SCALE)
            asks_i[(p_i + tick_i - 1) // tick_i] += size

    def to_price(index: int) -> float:
        return float(Fraction(index * tick_i, _SCALE))

    return OrderBook(
        {to_price(i): s for i, s in _top(bids_i, cfg.top_n, descending=True)},
        {to_price(i): s for i, s in _top(asks_i, cfg.top_n, descending=False)},
    )