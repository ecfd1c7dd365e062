import json
import threading
import time
from unittest import mock

import pytest
import websocket

from cryptoagg.binance import BinanceAdapter, SequenceGapError, parse_snapshot
from cryptoagg.order_book import OrderBook


def first(side):
    return next(iter(side.items()))


UPD1 = """{
  "U":101,"u":102,
  "b":[["100.0","1.5"],["99.5","2.0"]],
  "a":[["100.5","3.0"]]
}"""

UPD2 = """{
  "U":103,"u":104,
  "b":[["100.0","0"]],
  "a":[["100.5","1.0"]]
}"""


def test_sequence_chain_and_deletion():
    adp = BinanceAdapter("BTCUSDT")
    book = OrderBook()
    last = 100

    last = adp.apply_update(UPD1, last, book)
    assert last == 102
    assert len(book.bids) == 2
    assert len(book.asks) == 1
    assert first(book.bids) == (100.0, 1.5)
    assert first(book.asks) == (100.5, 3.0)

    last = adp.apply_update(UPD2, last, book)
    assert last == 104
    assert len(book.bids) == 1
    assert first(book.bids) == (99.5, 2.0)
    assert len(book.asks) == 1
    assert first(book.asks)[1] == 1.0

    gap = '{"U":200,"u":201,"b":[],"a":[]}'
    with pytest.raises(SequenceGapError):
        adp.apply_update(gap, last, book)


def test_stale_update_is_ignored():
    adp = BinanceAdapter()
    book = OrderBook({100.0: 1.0}, {})
    stale = '{"U":90,"u":95,"b":[["100.0","0"]],"a":[]}'
    assert adp.apply_update(stale, 100, book) == 100
    assert dict(book.bids) == {100.0: 1.0}


def test_missing_sequence_field_raises():
    adp = BinanceAdapter()
    with pytest.raises(KeyError):
        adp.apply_update('{"u":5}', 0, OrderBook())


def test_parse_snapshot_drops_zero_sizes():
    book, last = parse_snapshot(
        {
            "lastUpdateId": 42,
            "bids": [["100.0", "1.0"], ["99.0", "0"]],
            "asks": [["101.0", "2.0"], ["102.0", "0.00000000"]],
        }
    )
    assert last == 42
    assert dict(book.bids) == {100.0: 1.0}
    assert dict(book.asks) == {101.0: 2.0}


def test_fetch_snapshot_http_error():
    response = mock.Mock(status_code=503)
    with mock.patch("requests.get", return_value=response):
        with pytest.raises(RuntimeError, match="HTTP 503"):
            BinanceAdapter().fetch_snapshot()


def test_fetch_snapshot_parses_response():
    response = mock.Mock(status_code=200)
    response.json.return_value = {
        "lastUpdateId": 7,
        "bids": [["100.0", "1.0"]],
        "asks": [["100.5", "2.0"]],
    }
    with mock.patch("requests.get", return_value=response) as get:
        book, last = BinanceAdapter("ETHUSDT").fetch_snapshot()
    assert last == 7
    assert first(book.bids) == (100.0, 1.0)
    assert first(book.asks) == (100.5, 2.0)
    assert get.call_args.kwargs["params"] == {"symbol": "ETHUSDT", "limit": 1000}


def test_start_streams_snapshot_then_updates():
    snapshot_doc = {
        "lastUpdateId": 100,
        "bids": [["98.0", "1.0"]],
        "asks": [["101.0", "1.0"]],
    }
    response = mock.Mock(status_code=200)
    response.json.return_value = snapshot_doc
    messages = [UPD1]

    def recv():
        if messages:
            return messages.pop(0)
        time.sleep(0.01)
        raise websocket.WebSocketTimeoutException("timeout")

    fake_ws = mock.Mock()
    fake_ws.recv.side_effect = recv

    venues = []
    books = []
    done = threading.Event()

    def callback(book, venue):
        venues.append(venue)
        books.append(book.copy())
        if len(books) >= 2:
            done.set()

    adp = BinanceAdapter("BTCUSDT")
    with mock.patch("requests.get", return_value=response), mock.patch(
        "websocket.create_connection", return_value=fake_ws
    ) as connect:
        adp.start(callback)
        assert done.wait(5)
        adp.stop()

    expected_snapshot, expected_last = parse_snapshot(snapshot_doc)
    assert expected_last == 100
    assert venues[:2] == ["BINANCE", "BINANCE"]
    assert dict(books[0].bids) == dict(expected_snapshot.bids) == {98.0: 1.0}
    assert dict(books[0].asks) == {101.0: 1.0}
    assert dict(books[1].bids) == {100.0: 1.5, 99.5: 2.0, 98.0: 1.0}
    assert dict(books[1].asks) == {100.5: 3.0, 101.0: 1.0}
    assert connect.call_args.args[0] == "wss://stream.binance.com:9443/ws/btcusdt@depth@100ms"
    assert fake_ws.close.called


def test_apply_update_accepts_json_text():
    adp = BinanceAdapter()
    book = OrderBook()
    payload = json.dumps({"U": 1, "u": 1, "b": [["10", "2"]], "a": []})
    assert adp.apply_update(payload, 0, book) == 1
    assert dict(book.bids) == {10.0: 2.0}