"""Console clients printing BBO, price bands or volume bands of the consolidated book."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Iterable

from .bands import (
    ConsolidatedBook,
    compute_bbo,
    vwap_asks_to_price,
    vwap_bids_to_price,
    vwap_for_notional_asks,
)
from .service import DEFAULT_INTERVAL, BookFeedService, default_adapters

DEFAULT_BPS = (50, 100, 200, 500, 1000)
DEFAULT_NOTIONALS = (1e6, 5e6, 1e7, 2.5e7, 5e7)


def _num(value: float) -> str:
    return f"{value:g}"


def _na(book: ConsolidatedBook) -> str:
    return f"ts={book.ts_ms} BBO=NA"


def format_bbo(book: ConsolidatedBook) -> str:
    """One line with the best bid and ask and their sizes."""
    bbo = compute_bbo(book)
    if bbo is None:
        return _na(book)
    return (
        f"ts={book.ts_ms}"
        f" bid={_num(bbo.best_bid)}@{_num(bbo.bid_size)}"
        f" ask={_num(bbo.best_ask)}@{_num(bbo.ask_size)}"
    )


def format_price_bands(book: ConsolidatedBook, bps: Iterable[int] = DEFAULT_BPS) -> list[str]:
    """One line per band: quantity and VWAP within +/- bps of the mid price."""
    bbo = compute_bbo(book)
    if bbo is None:
        return [_na(book)]
    mid = 0.5 * (bbo.best_bid + bbo.best_ask)
    lines = []
    for bp in bps:
        vwap_up, qty_up = vwap_asks_to_price(book.asks, mid * (1.0 + bp * 1e-4))
        vwap_dn, qty_dn = vwap_bids_to_price(book.bids, mid * (1.0 - bp * 1e-4))
        lines.append(
            f"ts={book.ts_ms}"
            f" +{bp}bps qty={_num(qty_up)} vwap={_num(vwap_up)}"
            f" | -{bp}bps qty={_num(qty_dn)} vwap={_num(vwap_dn)}"
        )
    return lines


def format_volume_bands(
    book: ConsolidatedBook, notionals: Iterable[float] = DEFAULT_NOTIONALS
) -> list[str]:
    """One line per notional: quantity and VWAP of buying it from the asks."""
    lines = []
    for notional in notionals:
        vwap, qty = vwap_for_notional_asks(book.asks, notional)
        lines.append(
            f"ts={book.ts_ms} notional={_num(notional)} qty={_num(qty)} vwap={_num(vwap)}"
        )
    return lines


_FORMATTERS: dict[str, Callable[[ConsolidatedBook], list[str]]] = {
    "bbo": lambda book: [format_bbo(book)],
    "price-bands": format_price_bands,
    "volume-bands": format_volume_bands,
}


def main(argv: list[str] | None = None) -> int:
    """Run the aggregator in-process and print the chosen view of each snapshot."""
    parser = argparse.ArgumentParser(
        prog="cryptoagg", description="Print views of the consolidated order book."
    )
    parser.add_argument("mode", choices=sorted(_FORMATTERS))
    parser.add_argument(
        "--interval",
        type=float,
        default=DEFAULT_INTERVAL,
        help="seconds between snapshots",
    )
    args = parser.parse_args(argv)
    formatter = _FORMATTERS[args.mode]

    service = BookFeedService(default_adapters())
    try:
        with service:
            for book in service.stream(args.interval):
                for line in formatter(book):
                    print(line, flush=True)
    except KeyboardInterrupt:
        print("Stream ended: interrupted", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())