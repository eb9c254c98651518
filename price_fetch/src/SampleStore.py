"""SampleStore: Per-symbol append-only price samples."""

from __future__ import annotations

from .Ledger import Ledger
from .PriceRecord import FetchedSample

FETCHED_PRICES_KEY = "FetchedPrices"


class SampleStore:
    """Stores fetched samples in a ledger, grouped by symbol.

    Samples keep insertion order. There is no capacity bound here; the
    fetcher's window limits how many samples are collected.

    :ivar ledger: Ledger holding the samples.
    """

    def __init__(self, ledger: Ledger) -> None:
        self.ledger = ledger

    def append(self, sample: FetchedSample) -> None:
        """Append a sample to its symbol's sequence."""
        prices: dict[bytes, list[FetchedSample]] = self.ledger.read(
            FETCHED_PRICES_KEY, {}
        )
        prices.setdefault(sample.symbol, []).append(sample)
        self.ledger.write(FETCHED_PRICES_KEY, prices)

    def get(self, symbol: bytes) -> list[FetchedSample]:
        """Return all samples stored for a symbol since it was last cleared."""
        prices: dict[bytes, list[FetchedSample]] = self.ledger.read(
            FETCHED_PRICES_KEY, {}
        )
        return prices.get(symbol, [])

    def clear(self, symbol: bytes) -> None:
        """Remove all samples for a symbol."""
        prices: dict[bytes, list[FetchedSample]] = self.ledger.read(
            FETCHED_PRICES_KEY, {}
        )
        if prices.pop(symbol, None) is not None:
            self.ledger.write(FETCHED_PRICES_KEY, prices)
