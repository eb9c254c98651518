"""FetcherRegistry: Active collection windows keyed by symbol.

A fetcher is either absent or active; there is no paused state. The registry
keeps two views in the ledger that must always agree:

    - ``FetchersMap``: symbol -> symbol, for uniqueness checks and lookups
    - ``Fetchers``: ordered list of active Fetcher entries, for iteration

.. code-block:: python

    >>> registry = FetcherRegistry(InMemoryLedger())
    >>> registry.start_fetcher(b"ETH", b"https://api.diadata.org/v1/quotation/ETH", 600, 0)
    Fetcher(symbol=b'ETH', url=b'https://api.diadata.org/v1/quotation/ETH', end_fetching_at=600)
    >>> registry.is_expired(registry.get(b"ETH"), 600)
    True
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import FetcherAlreadyExists
from .Ledger import Ledger

FETCHERS_MAP_KEY = "FetchersMap"
FETCHERS_KEY = "Fetchers"

# Maximum symbol length in bytes.
MAX_SYMBOL_LENGTH = 16


def normalize_symbol(symbol: str | bytes) -> bytes:
    """Convert a symbol to its canonical byte form.

    Only printable ASCII is accepted.

    :param symbol: Symbol as text or bytes (e.g., "ETH" or b"ETH").
    :returns: Symbol bytes.
    :raises ValueError: If the symbol is empty, longer than MAX_SYMBOL_LENGTH
        or contains non-printable or non-ASCII characters.
    """
    if isinstance(symbol, str):
        symbol = symbol.encode("utf-8")
    symbol = bytes(symbol)
    if not symbol:
        raise ValueError("Symbol cannot be empty")
    if len(symbol) > MAX_SYMBOL_LENGTH:
        raise ValueError(
            f"Symbol {symbol!r} is longer than {MAX_SYMBOL_LENGTH} bytes"
        )
    if not symbol.isascii() or not symbol.decode("ascii").isprintable():
        raise ValueError(f"Symbol {symbol!r} must be printable ASCII")
    return symbol


@dataclass(frozen=True)
class Fetcher:
    """A time-bounded collection window for one symbol.

    :ivar symbol: Asset symbol, unique among active fetchers.
    :ivar url: Provider endpoint queried for this symbol.
    :ivar end_fetching_at: Tick at which the window closes.
    """

    symbol: bytes
    url: bytes
    end_fetching_at: int


class FetcherRegistry:
    """Registry of active fetchers stored in a ledger.

    :ivar ledger: Ledger holding the registry state.
    """

    def __init__(self, ledger: Ledger) -> None:
        self.ledger = ledger

    def start_fetcher(
        self, symbol: bytes, url: bytes, duration: int, current_tick: int
    ) -> Fetcher:
        """Create an active fetcher for a symbol.

        :param symbol: Asset symbol.
        :param url: Provider endpoint for the symbol.
        :param duration: Window length in ticks.
        :param current_tick: Tick at which the window opens.
        :returns: The new Fetcher.
        :raises FetcherAlreadyExists: If the symbol already has an active fetcher.
        :raises ValueError: If duration is negative.
        """
        if duration < 0:
            raise ValueError("duration must not be negative")

        fetchers_map: dict[bytes, bytes] = self.ledger.read(FETCHERS_MAP_KEY, {})
        if symbol in fetchers_map:
            raise FetcherAlreadyExists(f"Fetcher for {symbol!r} already exists")

        fetcher = Fetcher(
            symbol=symbol,
            url=url,
            end_fetching_at=current_tick + duration,
        )
        fetchers: list[Fetcher] = self.ledger.read(FETCHERS_KEY, [])
        fetchers.append(fetcher)
        fetchers_map[symbol] = symbol

        self.ledger.write(FETCHERS_MAP_KEY, fetchers_map)
        self.ledger.write(FETCHERS_KEY, fetchers)
        return fetcher

    def remove_fetcher(self, symbol: bytes) -> None:
        """Remove a symbol's fetcher from both views. No-op when absent."""
        fetchers_map: dict[bytes, bytes] = self.ledger.read(FETCHERS_MAP_KEY, {})
        fetchers: list[Fetcher] = self.ledger.read(FETCHERS_KEY, [])

        fetchers_map.pop(symbol, None)
        fetchers = [f for f in fetchers if f.symbol != symbol]

        self.ledger.write(FETCHERS_MAP_KEY, fetchers_map)
        self.ledger.write(FETCHERS_KEY, fetchers)

    def contains(self, symbol: bytes) -> bool:
        """Check whether a symbol has an active fetcher."""
        return symbol in self.ledger.read(FETCHERS_MAP_KEY, {})

    def get(self, symbol: bytes) -> Fetcher | None:
        """Look up the active fetcher for a symbol.

        :param symbol: Asset symbol.
        :returns: Fetcher or None if the symbol has none.
        """
        if not self.contains(symbol):
            return None
        for fetcher in self.ledger.read(FETCHERS_KEY, []):
            if fetcher.symbol == symbol:
                return fetcher
        return None

    def list_active(self) -> list[Fetcher]:
        """Snapshot of active fetchers in insertion order."""
        return self.ledger.read(FETCHERS_KEY, [])

    @staticmethod
    def is_expired(fetcher: Fetcher, current_tick: int) -> bool:
        """Check whether a fetcher's window has closed at current_tick."""
        return current_tick >= fetcher.end_fetching_at
