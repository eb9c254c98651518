"""PriceRecord and FetchedSample: provider results and stored samples."""

from __future__ import annotations

from dataclasses import dataclass

from .Price import Price


@dataclass(frozen=True)
class PriceRecord:
    """A parsed provider quotation.

    :ivar symbol: Asset symbol (e.g., b"BTC").
    :ivar price: Quoted price.
    :ivar time: Provider timestamp, kept as opaque bytes.
    :ivar source: Source tag reported by the provider (e.g., "diadata.org").
    """

    symbol: bytes
    price: Price
    time: bytes
    source: str = ""


@dataclass(frozen=True)
class FetchedSample:
    """A price observation stored for a symbol.

    :ivar symbol: Asset symbol.
    :ivar price: Observed price.
    :ivar time: Provider timestamp.
    :ivar author: Account address that submitted the observation.
    """

    symbol: bytes
    price: Price
    time: bytes
    author: str

    @classmethod
    def from_record(cls, record: PriceRecord, author: str) -> FetchedSample:
        """Attribute a provider record to an author."""
        return cls(
            symbol=record.symbol,
            price=record.price,
            time=record.time,
            author=author,
        )


@dataclass(frozen=True)
class MedianReport:
    """The median price recorded when a fetcher's window closes.

    :ivar symbol: Asset symbol.
    :ivar price: Median price.
    :ivar tick: Tick reported by the submitter.
    :ivar author: Account address that submitted the median.
    """

    symbol: bytes
    price: Price
    tick: int
    author: str
