"""OKX order book feed: REST snapshot plus books channel over websocket."""

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

VENUE = "OKX"
REST_URL = "https://www.okx.com/api/v5/market/books"
WS_URL = "wss://ws.okx.com:8443/ws/v5/public"

Callback = Callable[[OrderBook, str], None]


def _levels(raw: Iterable[Any] | None) -> list[tuple[float, float]]:
    """Parse [price, size, ...] levels, skipping malformed entries."""
    return [
        (float(level[0]), float(level[1]))
        for level in raw or ()
        if isinstance(level, list) and len(level) >= 2
    ]


def parse_snapshot(data: Mapping[str, Any]) -> OrderBook:
    """Build a book from a REST books response."""
    entries = data.get("data")
    if not entries:
        raise ValueError("no data")
    entry = entries[0]
    return OrderBook(
        {p: s for p, s in _levels(entry.get("bids")) if s > 0},
        {p: s for p, s in _levels(entry.get("asks")) if s > 0},
    )


class OKXAdapter:
    """Keeps an OKX order book in sync and reports it to a callback."""

    def __init__(self, symbol: str = "BTC-USDT") -> None:
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
            target=self._run, args=(callback,), name=f"okx-{self.symbol}", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the feed and wait for its thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def fetch_snapshot(self) -> OrderBook:
        """Fetch the REST book snapshot."""
        response = requests.get(
            REST_URL, params={"instId": self.symbol, "sz": 400}, timeout=10
        )
        if response.status_code != 200:
            raise RuntimeError(f"HTTP {response.status_code}")
        return parse_snapshot(response.json())

    def apply_update(self, payload: str | bytes, book: OrderBook) -> None:
        """Apply the levels carried by a websocket message (object or array) to the book.

        Messages without a data array, such as subscription events, are ignored.
        """
        decoded = json.loads(payload)
        if isinstance(decoded, list):
            messages = decoded
        elif isinstance(decoded, dict):
            messages = [decoded]
        else:
            return

        for message in messages:
            if not isinstance(message, dict):
                continue
            entries = message.get("data")
            if not isinstance(entries, list):
                continue
            for entry in entries:
                if not isinstance(entry, dict):
                    continue
                if "b" in entry or "a" in entry:
                    bid_deltas = _levels(entry.get("b"))
                    ask_deltas = _levels(entry.get("a"))
                else:
                    bid_deltas = _levels(entry.get("bids"))
                    ask_deltas = _levels(entry.get("asks"))
                apply_deltas(book.bids, bid_deltas)
                apply_deltas(book.asks, ask_deltas)

    def _run(self, callback: Callback) -> None:
        while not self._stop_event.is_set():
            try:
                self._session(callback)
            except Exception as exc:  # connection failures: log, back off, retry
                log.error("[%s] exception: %s", VENUE, exc)
            self._stop_event.wait(self._retry_delay)

    def _session(self, callback: Callback) -> None:
        try:
            book = self.fetch_snapshot()
        except (requests.RequestException, RuntimeError, ValueError, KeyError, TypeError) as exc:
            log.error("[%s] snapshot error: %s", VENUE, exc)
            return
        callback(book.copy(), VENUE)

        ws = websocket.create_connection(WS_URL, timeout=self._read_timeout)
        try:
            ws.send(
                json.dumps(
                    {"op": "subscribe", "args": [{"channel": "books", "instId": self.symbol}]}
                )
            )
            while not self._stop_event.is_set():
                try:
                    payload = ws.recv()
                except websocket.WebSocketTimeoutException:
                    continue
                try:
                    self.apply_update(payload, book)
                except (ValueError, KeyError, TypeError, IndexError) as exc:
                    log.warning("[%s] update apply error: %s; resyncing", VENUE, exc)
                    break
                callback(book.copy(), VENUE)
        finally:
            ws.close()