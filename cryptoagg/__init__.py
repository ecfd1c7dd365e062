"""Live Binance, OKX and Kraken order books, tick-aligned consolidation, and BBO and VWAP band analytics."""

__version__ = "0.1.0"