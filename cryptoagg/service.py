"""Aggregation service: collects venue books and serves consolidated snapshots."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Iterator
from typing import Protocol

from .bands import ConsolidatedBook
from .binance import BinanceAdapter
from .consolidator import ConsolidationConfig, consolidate
from .kraken import KrakenAdapter
from .okx import OKXAdapter
from .order_book import OrderBook

log = logging.getLogger(__name__)

VENUES = ("BINANCE", "OKX", "KRAKEN")
DEFAULT_CONFIG = ConsolidationConfig(tick=0.1, top_n=200)
DEFAULT_INTERVAL = 0.2


class Adapter(Protocol):
    def start(self, callback) -> None: ...

    def stop(self) -> None: ...


def default_adapters() -> list[Adapter]:
    """The venue feeds the aggregator runs by default."""
    return [
        BinanceAdapter("BTCUSDT"),
        OKXAdapter("BTC-USDT"),
        KrakenAdapter("BTC-USDT"),
    ]


class BookFeedService:
    """Keeps the latest book per venue and produces consolidated snapshots."""

    def __init__(
        self,
        adapters: Iterable[Adapter] = (),
        cfg: ConsolidationConfig | None = None,
    ) -> None:
        self.adapters = list(adapters)
        self.cfg = cfg if cfg is not None else DEFAULT_CONFIG
        self._lock = threading.Lock()
        self._books: dict[str, OrderBook] = {venue: OrderBook() for venue in VENUES}

    def __enter__(self) -> BookFeedService:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def start(self) -> None:
        """Start every adapter, routing its updates to this service."""
        for adapter in self.adapters:
            adapter.start(self.on_venue_update)

    def stop(self) -> None:
        """Stop every adapter."""
        for adapter in self.adapters:
            adapter.stop()

    def on_venue_update(self, book: OrderBook, venue: str) -> None:
        """Store the latest book of a known venue; other venues are ignored."""
        if venue not in self._books:
            log.debug("ignoring update from unknown venue %s", venue)
            return
        copied = book.copy()
        with self._lock:
            self._books[venue] = copied

    def snapshot(self) -> ConsolidatedBook:
        """Consolidate the current venue books into a timestamped snapshot."""
        with self._lock:
            merged = consolidate([self._books[venue] for venue in VENUES], self.cfg)
        ts_ms = time.time_ns() // 1_000_000
        return ConsolidatedBook.from_order_book(merged, ts_ms)

    def stream(
        self,
        interval: float = DEFAULT_INTERVAL,
        stop_event: threading.Event | None = None,
    ) -> Iterator[ConsolidatedBook]:
        """Yield a snapshot every interval seconds until stop_event is set."""
        if stop_event is None:
            stop_event = threading.Event()
        while not stop_event.is_set():
            yield self.snapshot()
            stop_event.wait(interval)