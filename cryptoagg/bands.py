"""Consolidated book snapshot and BBO / VWAP band calculations."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import NamedTuple

from .order_book import OrderBook


@dataclass(frozen=True)
class Level:
    """One price level."""

    price: float
    size: float


@dataclass
class ConsolidatedBook:
    """A timestamped book: bids best-first (descending), asks best-first (ascending)."""

    ts_ms: int = 0
    bids: list[Level] = field(default_factory=list)
    asks: list[Level] = field(default_factory=list)

    @classmethod
    def from_order_book(cls, book: OrderBook, ts_ms: int) -> ConsolidatedBook:
        """Build a snapshot from an order book, keeping each side's best-first order."""
        return cls(
            ts_ms=ts_ms,
            bids=[Level(p, s) for p, s in book.bids.items()],
            asks=[Level(p, s) for p, s in book.asks.items()],
        )


class Bbo(NamedTuple):
    """Best bid and offer with their sizes."""

    best_bid: float
    bid_size: float
    best_ask: float
    ask_size: float


def compute_bbo(book: ConsolidatedBook) -> Bbo | None:
    """Return the top of book, or None if either side is empty."""
    if not book.bids or not book.asks:
        return None
    bid, ask = book.bids[0], book.asks[0]
    return Bbo(bid.price, bid.size, ask.price, ask.size)


def _vwap(qty: float, notional: float) -> tuple[float, float]:
    return (notional / qty if qty > 0 else 0.0), qty


def vwap_asks_to_price(asks: Iterable[Level], up_to_price: float) -> tuple[float, float]:
    """Consume asks up to a price ceiling (inclusive); return (vwap, quantity)."""
    qty = notional = 0.0
    for level in asks:
        if level.price > up_to_price:
            break
        qty += level.size
        notional += level.size * level.price
    return _vwap(qty, notional)


def vwap_bids_to_price(bids: Iterable[Level], down_to_price: float) -> tuple[float, float]:
    """Consume bids down to a price floor (inclusive); return (vwap, quantity)."""
    qty = notional = 0.0
    for level in bids:
        if level.price < down_to_price:
            break
        qty += level.size
        notional += level.size * level.price
    return _vwap(qty, notional)


def vwap_for_notional_asks(asks: Iterable[Level], target_notional: float) -> tuple[float, float]:
    """Buy a target quote notional from the asks; return (vwap, quantity).

    Lower levels are taken whole and the last one proportionally. With too
    little depth the result covers what could be filled.
    """
    qty = notional = 0.0
    for level in asks:
        level_notional = level.price * level.size
        if notional + level_notional >= target_notional:
            qty += (target_notional - notional) / level.price
            return _vwap(qty, target_notional)
        qty += level.size
        notional += level_notional
    return _vwap(qty, notional)