"""Binance depth feed: REST snapshot plus sequenced diff stream."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import requests
import websocket

from .order_book import OrderBook, apply_deltas

log = logging.getLogger(__name__)

VENUE = "BINANCE"
REST_URL = "https://api.binance.com/api/v3/depth"
WS_URL = "wss://stream.binance.com:9443/ws/{symbol}@depth@100ms"

Callback = Callable[[OrderBook, str], None]


class SequenceGapError(RuntimeError):
    """An update does not follow the last applied one; a new snapshot is needed."""


def _levels(raw: Iterable[Any] | None) -> list[tuple[float, float]]:
    return [(float(level[0]), float(level[1])) for level in raw or ()]


def parse_snapshot(data: Mapping[str, Any]) -> tuple[OrderBook, int]:
    """Build a book from a REST depth response; return (book, lastUpdateId)."""
    last_update_id = int(data["lastUpdateId"])
    book = OrderBook(
        {p: s for p, s in _levels(data.get("bids")) if s > 0},
        {p: s for p, s in _levels(data.get("asks")) if s > 0},
    )
    return book, last_update_id


class BinanceAdapter:
    """Keeps a Binance order book in sync and reports it to a callback."""

    def __init__(self, symbol: str = "BTCUSDT") -> None:
        self.symbol = symbol
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._read_timeout = 1.0
        self._retry_delay = 1.0

    def start(self, callback: Callback) -> None:
        """Run the feed on a background thread; does nothing if already running."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, args=(callback,), name=f"binance-{self.symbol}", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the feed and wait for its thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def fetch_snapshot(self) -> tuple[OrderBook, int]:
        """Fetch the REST depth snapshot; return (book, lastUpdateId)."""
        response = requests.get(
            REST_URL, params={"symbol": self.symbol, "limit": 1000}, timeout=10
        )
        if response.status_code != 200:
            raise RuntimeError(f"HTTP {response.status_code}")
        return parse_snapshot(response.json())

    def apply_update(self, payload: str | bytes, last_update_id: int, book: OrderBook) -> int:
        """Apply one diff message to the book and return the new last update id.

        Stale updates are ignored. Raises SequenceGapError if the update
        starts after the next expected id.
        """
        message = json.loads(payload)
        first = int(message["U"])
        final = int(message["u"])
        if final <= last_update_id:
            return last_update_id
        if first > last_update_id + 1:
            raise SequenceGapError("sequence gap; need resnapshot")
        bid_deltas = _levels(message.get("b"))
        ask_deltas = _levels(message.get("a"))
        apply_deltas(book.bids, bid_deltas)
        apply_deltas(book.asks, ask_deltas)
        return final

    def _run(self, callback: Callback) -> None:
        while not self._stop_event.is_set():
            try:
                self._session(callback)
            except Exception as exc:  # connection failures: log, back off, retry
                log.error("[%s] exception: %s", VENUE, exc)
            self._stop_event.wait(self._retry_delay)

    def _session(self, callback: Callback) -> None:
        try:
            book, last_id = self.fetch_snapshot()
        except (requests.RequestException, RuntimeError, ValueError, KeyError, TypeError) as exc:
            log.error("[%s] snapshot error: %s", VENUE, exc)
            return
        callback(book.copy(), VENUE)

        ws = websocket.create_connection(
            WS_URL.format(symbol=self.symbol.lower()), timeout=self._read_timeout
        )
        try:
            while not self._stop_event.is_set():
                try:
                    payload = ws.recv()
                except websocket.WebSocketTimeoutException:
                    continue
                try:
                    last_id = self.apply_update(payload, last_id, book)
                except (ValueError, KeyError, TypeError, IndexError) as exc:
                    log.warning("[%s] %s; resyncing", VENUE, exc)
                    break
                callback(book.copy(), VENUE)
        finally:
            ws.close()