import pytest

from cryptoagg.bands import (
    Bbo,
    ConsolidatedBook,
    Level,
    compute_bbo,
    vwap_asks_to_price,
    vwap_bids_to_price,
    vwap_for_notional_asks,
)
from cryptoagg.order_book import OrderBook


@pytest.fixture
def book():
    return ConsolidatedBook(
        ts_ms=1,
        bids=[Level(101.0, 1.0), Level(100.5, 2.0), Level(100.0, 3.0)],
        asks=[Level(101.0, 3.0), Level(101.5, 4.0), Level(102.0, 5.0)],
    )


def test_up_and_down_bps_selection_and_vwap(book):
    bbo = compute_bbo(book)
    assert bbo == Bbo(101.0, 1.0, 101.0, 3.0)
    mid = 0.5 * (bbo.best_bid + bbo.best_ask)

    up, qty_up = vwap_asks_to_price(book.asks, mid * 1.005)
    assert up > 0.0
    assert qty_up == pytest.approx(7.0)
    assert 101.0 <= up <= 101.5

    dn, qty_dn = vwap_bids_to_price(book.bids, mid * 0.995)
    assert dn > 0.0
    assert qty_dn == pytest.approx(6.0)
    assert 100.0 <= dn <= 101.0


def test_partial_fill_vwap():
    asks = [Level(100.0, 1.0), Level(100.5, 2.0), Level(101.0, 3.0)]
    notional = 100.0 * 2.5
    vwap, qty = vwap_for_notional_asks(asks, notional)
    assert vwap > 0.0
    assert qty > 0.0
    assert 1.0 < qty < 3.0
    assert vwap * qty == pytest.approx(notional)
    assert 100.0 <= vwap <= 100.5


def test_notional_beyond_depth_fills_everything():
    asks = [Level(100.0, 1.0), Level(200.0, 1.0)]
    vwap, qty = vwap_for_notional_asks(asks, 1e9)
    assert qty == pytest.approx(2.0)
    assert vwap == pytest.approx(150.0)


def test_empty_sides_give_zero():
    assert vwap_asks_to_price([], 100.0) == (0.0, 0.0)
    assert vwap_bids_to_price([], 100.0) == (0.0, 0.0)
    assert vwap_for_notional_asks([], 100.0) == (0.0, 0.0)


def test_price_limits_are_inclusive(book):
    assert vwap_asks_to_price(book.asks, 101.0) == (101.0, 3.0)
    assert vwap_bids_to_price(book.bids, 101.0) == (101.0, 1.0)
    assert vwap_asks_to_price(book.asks, 100.9) == (0.0, 0.0)


def test_compute_bbo_missing_side():
    assert compute_bbo(ConsolidatedBook(bids=[Level(1.0, 1.0)])) is None
    assert compute_bbo(ConsolidatedBook(asks=[Level(1.0, 1.0)])) is None


def test_from_order_book_keeps_best_first_order():
    ob = OrderBook({99.0: 1.0, 100.0: 2.0}, {102.0: 3.0, 101.0: 4.0})
    snap = ConsolidatedBook.from_order_book(ob, 42)
    assert snap.ts_ms == 42
    assert snap.bids == [Level(100.0, 2.0), Level(99.0, 1.0)]
    assert snap.asks == [Level(101.0, 4.0), Level(102.0, 3.0)]