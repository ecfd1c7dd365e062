# cryptoagg

Keep live level-2 order books from Binance, OKX and Kraken. Merge them into one
consolidated book on a common price grid. Derive simple liquidity figures from the
result.

## What it does

- **Order books** (`cryptoagg.order_book`). An `OrderBook` holds two price -> size
  maps: `bids`, iterated highest price first, and `asks`, iterated lowest price first.
  `apply_deltas(side, deltas)` applies `(price, size)` pairs to one side. A size of
  zero removes the level; any other size sets it. `OrderBook.copy()` returns an
  independent copy.
- **Venue adapters** (`cryptoagg.binance`, `cryptoagg.okx`, `cryptoagg.kraken`).
  `BinanceAdapter`, `OKXAdapter` and `KrakenAdapter` each look after one venue:
  - they take a REST snapshot of the book (`fetch_snapshot()`);
  - they subscribe to the venue's websocket depth stream;
  - they keep a local `OrderBook` up to date from that stream.

  `start(callback)` runs the feed on a background thread. After every update the
  thread calls `callback(book, venue)` with a copy of the book and the venue name
  (`"BINANCE"`, `"OKX"` or `"KRAKEN"`). `stop()` ends the thread and waits for it.

  A connection or parsing failure ends the session. The adapter logs it, waits a
  second and starts again from a fresh snapshot. Binance updates are checked for
  sequence. An update whose first id is past the next expected one raises
  `SequenceGapError` and leads to a resnapshot; stale updates are ignored. Kraken
  tries the plain REST pair name first and then the `XBT` form. If neither works, it
  relies on the snapshot the websocket sends on subscribe.

  The message handlers can be used on their own with JSON text:
  - `BinanceAdapter.apply_update(payload, last_update_id, book)` returns the new
    last update id;
  - `OKXAdapter.apply_update(payload, book)`;
  - `KrakenAdapter.apply_ws_message(payload, book)`.

  The REST parsers are also available: `binance.parse_snapshot`,
  `okx.parse_snapshot` and `kraken.parse_rest_snapshot`. So are the Kraken symbol
  helpers `normalize_symbol_for_ws`, `rest_symbol` and `rest_symbol_xbt`.
- **Consolidation** (`cryptoagg.consolidator`). `consolidate(books, cfg)` merges
  books onto the tick grid of a `ConsolidationConfig(tick=0.1, top_n=50)`:
  - bid prices are floored to the tick;
  - ask prices are ceiled to the tick;
  - sizes that land on the same level are summed;
  - each side is then cut to its best `top_n` levels.

  Alignment uses exact fixed point at 1e-8, so prices that sit on a tick boundary
  stay on it. A tick that is not positive merges the raw prices instead. A positive
  tick below 1e-8 raises `ValueError`. `floor_to_tick` and `ceil_to_tick` round a
  single price.
- **Analytics** (`cryptoagg.bands`). A `ConsolidatedBook` is a timestamp (`ts_ms`)
  and best-first lists of `Level(price, size)`. `ConsolidatedBook.from_order_book`
  builds one from an `OrderBook`.
  - `compute_bbo(book)` returns a `Bbo(best_bid, bid_size, best_ask, ask_size)`, or
    `None` if either side is empty.
  - `vwap_asks_to_price(asks, up_to_price)` and
    `vwap_bids_to_price(bids, down_to_price)` take levels up to an inclusive price
    limit. They return `(vwap, quantity)`.
  - `vwap_for_notional_asks(asks, target_notional)` buys a quote-currency notional
    from the asks. Whole levels are taken first and the last one in part. It returns
    `(vwap, quantity)`. If the book is too thin, the result covers what could be
    filled.

  Where the quantity is zero, the VWAP is `0.0`.
- **Service** (`cryptoagg.service`). `BookFeedService(adapters, cfg)` keeps the
  latest book of each known venue. It is fed through `on_venue_update`; updates from
  other venue names are ignored.
  - `start()` and `stop()` start and stop all its adapters. The service also works
    as a context manager.
  - `snapshot()` consolidates the current books into a `ConsolidatedBook` stamped
    with the current time in milliseconds.
  - `stream(interval=0.2, stop_event=None)` yields a snapshot every `interval`
    seconds until the event is set.

  Without a config it uses a tick of 0.1 and the top 200 levels per side.
  `default_adapters()` builds the BTC-USDT feeds of Binance, OKX and Kraken.

## Installation

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

## Library use

Maintain a book from deltas:

```python
from cryptoagg.order_book import OrderBook, apply_deltas

book = OrderBook()
apply_deltas(book.bids, [(100.0, 1.5), (99.5, 2.0)])
apply_deltas(book.bids, [(100.0, 0.0)])   # removes the 100.0 level
```

Merge books and look at the top of the result:

```python
from cryptoagg.bands import ConsolidatedBook, compute_bbo, vwap_for_notional_asks
from cryptoagg.consolidator import ConsolidationConfig, consolidate

merged = consolidate([book_a, book_b], ConsolidationConfig(tick=0.5, top_n=20))
view = ConsolidatedBook.from_order_book(merged, ts_ms=0)
print(compute_bbo(view))
vwap, qty = vwap_for_notional_asks(view.asks, 1_000_000.0)
```

Run the live feeds in your own process:

```python
from cryptoagg.service import BookFeedService, default_adapters

with BookFeedService(default_adapters()) as service:
    current = service.snapshot()
```

## Command line

```
cryptoagg-client {bbo,price-bands,volume-bands} [--interval SECONDS]
```

The command starts the Binance, OKX and Kraken feeds in-process. It then prints one
view of the consolidated book every `--interval` seconds (default 0.2) until
interrupted with Ctrl-C.

- `bbo` prints one line per snapshot: `ts=... bid=PRICE@SIZE ask=PRICE@SIZE`.
- `price-bands` prints one line for each of 50, 100, 200, 500 and 1000 basis points
  around the mid. Each line gives the quantity and VWAP of the asks up to the upper
  price and of the bids down to the lower price.
- `volume-bands` prints one line for each notional of 1e6, 5e6, 1e7, 2.5e7 and 5e7.
  Each line gives the quantity and VWAP of buying that notional from the asks.

When either side of the book is empty, `bbo` and `price-bands` print
`ts=... BBO=NA` instead.

## What it does not do

There is no network server. The consolidated book is not published over RPC or any
other protocol, and the command line client does not connect to a separately running
aggregator. Each run of `cryptoagg-client` opens its own connections to the
exchanges. Other programs get the book by using `BookFeedService` in their own
process.

The symbols are fixed to BTC-USDT in `default_adapters()` and on the command line;
other markets need adapters built by hand. Nothing is stored: books live only in
memory.