"""Kraken order book feed: best-effort REST snapshot plus v2 websocket book channel."""

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

VENUE = "KRAKEN"
REST_URL = "https://api.kraken.com/0/public/Depth"
WS_URL = "wss://ws.kraken.com/v2"
WS_DEPTH = 100

_QUOTES = ("USDT", "USDC", "USD", "EUR", "BTC", "ETH")
_SEPARATORS = "/-_"

Callback = Callable[[OrderBook, str], None]


def normalize_symbol_for_ws(symbol: str) -> str:
    """Turn "BTCUSDT", "BTC-USDT" or "BTC_USDT" into the "BTC/USDT" form used on the websocket.

    Symbols without a separator are split at a known quote currency; failing
    that, in the middle.
    """
    s = symbol.replace("-", "/").replace("_", "/")
    if "/" in s:
        return s
    upper = s.upper()
    for quote in _QUOTES:
        if len(upper) > len(quote) and upper.endswith(quote):
            return f"{upper[: -len(quote)]}/{quote}"
    mid = len(s) // 2
    return f"{s[:mid]}/{s[mid:]}"


def rest_symbol(symbol: str) -> str:
    """REST pair name: separators removed, upper case ("BTC/USDT" -> "BTCUSDT")."""
    return "".join(c for c in symbol if c not in _SEPARATORS).upper()


def rest_symbol_xbt(symbol: str) -> str:
    """REST pair name with a leading BTC written as XBT ("BTC/USDT" -> "XBTUSDT")."""
    pair = rest_symbol(symbol)
    if pair.startswith("BTC"):
        return "XBT" + pair[3:]
    return pair


def _number(value: Any) -> float:
    return float(value)


def _rest_levels(raw: Iterable[Any] | None) -> dict[float, float]:
    levels: dict[float, float] = {}
    for level in raw or ():
        price, size = _number(level[0]), _number(level[1])
        if size > 0:
            levels[price] = size
    return levels


def parse_rest_snapshot(data: Mapping[str, Any]) -> OrderBook:
    """Build a book from a REST Depth response.

    Raises ValueError if the response reports errors or carries no result.
    """
    if data.get("error"):
        raise ValueError("kraken rest error")
    result = data.get("result")
    if not result:
        raise ValueError("no result")
    payload = result[min(result)]
    return OrderBook(_rest_levels(payload.get("bids")), _rest_levels(payload.get("asks")))


def _ws_levels(raw: Iterable[Mapping[str, Any]]) -> list[tuple[float, float]]:
    return [(_number(level["price"]), _number(level["qty"])) for level in raw]


class KrakenAdapter:
    """Keeps a Kraken order book in sync and reports it to a callback."""

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
            target=self._run, args=(callback,), name=f"kraken-{self.symbol}", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the feed and wait for its thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def fetch_snapshot(self) -> OrderBook:
        """Fetch the REST depth snapshot, trying the plain and the XBT pair names.

        Raises RuntimeError with the last error if no attempt succeeds.
        """
        pairs = [rest_symbol(self.symbol)]
        alternative = rest_symbol_xbt(self.symbol)
        if alternative != pairs[0]:
            pairs.append(alternative)

        error = "no attempt made"
        for pair in pairs:
            try:
                response = requests.get(
                    REST_URL, params={"pair": pair, "count": 100}, timeout=10
                )
                if response.status_code != 200:
                    error = f"HTTP {response.status_code}"
                    continue
                return parse_rest_snapshot(response.json())
            except (requests.RequestException, ValueError, KeyError, TypeError, IndexError) as exc:
                error = str(exc)
                log.warning("[%s][REST] attempt error: %s", VENUE, exc)
        raise RuntimeError(error)

    def apply_ws_message(self, payload: str | bytes, book: OrderBook) -> None:
        """Apply a v2 "book" channel snapshot or update message to the book.

        A snapshot replaces the book; an update sets levels and removes those
        with zero quantity. Other messages are ignored.
        """
        message = json.loads(payload)
        if not isinstance(message, dict):
            return
        if message.get("channel") != "book":
            return
        if "type" not in message or "data" not in message:
            return
        kind = message["type"]
        data = message["data"]
        if not isinstance(data, list) or not data:
            return
        levels = data[0]

        if kind == "snapshot":
            book.bids.clear()
            book.asks.clear()
            for price, qty in _ws_levels(levels.get("bids", ())):
                if qty > 0:
                    book.bids[price] = qty
            for price, qty in _ws_levels(levels.get("asks", ())):
                if qty > 0:
                    book.asks[price] = qty
        elif kind == "update":
            apply_deltas(book.bids, _ws_levels(levels.get("bids", ())))
            apply_deltas(book.asks, _ws_levels(levels.get("asks", ())))

    def _subscription(self) -> str:
        return json.dumps(
            {
                "method": "subscribe",
                "params": {
                    "channel": "book",
                    "symbol": [normalize_symbol_for_ws(self.symbol)],
                    "depth": WS_DEPTH,
                    "snapshot": True,
                },
            }
        )

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
        except RuntimeError as exc:
            # The websocket sends its own snapshot on subscribe, so carry on.
            log.warning("[%s] REST snapshot error: %s; will try WS snapshot", VENUE, exc)
            book = OrderBook()
        else:
            callback(book.copy(), VENUE)

        ws = websocket.create_connection(WS_URL, timeout=self._read_timeout)
        try:
            ws.send(self._subscription())
            while not self._stop_event.is_set():
                try:
                    payload = ws.recv()
                except websocket.WebSocketTimeoutException:
                    continue
                try:
                    self.apply_ws_message(payload, book)
                except (ValueError, KeyError, TypeError, IndexError, AttributeError) as exc:
                    log.warning("[%s][WS] apply error: %s; resyncing", VENUE, exc)
                    break
                callback(book.copy(), VENUE)
        finally:
            ws.close()