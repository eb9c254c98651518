"""PriceFetch: Consensus entry points for fetchers, samples and medians.

Every entry point requires an authenticated origin and runs inside a ledger
transaction: a failing call leaves the registry and the sample store exactly
as they were.

Entry points:
    - start_fetcher: open a collection window for a symbol
    - submit_new_price: attach an observation to an active window
    - submit_new_median_price: close a window with its median

Off-chain workers reach these through signed submissions (see ``apply`` and
``execute_block``). Several nodes race to close the same window; the first
submission removes the fetcher and the others fail with FetcherNotFound.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import BadOrigin, BadSignature, DispatchError, FetcherNotFound
from .FetcherRegistry import Fetcher, FetcherRegistry, normalize_symbol
from .Keystore import recover_signer
from .Ledger import Event, Ledger
from .Price import Price
from .PriceRecord import FetchedSample, MedianReport, PriceRecord
from .SampleStore import SampleStore
from .TransactionPool import SUBMIT_NEW_MEDIAN_PRICE, SUBMIT_NEW_PRICE

if TYPE_CHECKING:
    from .fetchers import BaseFetcher
    from .TransactionPool import SignedSubmission, TransactionPool

logger = logging.getLogger(__name__)

MEDIAN_PRICES_KEY = "MedianPrices"


def ensure_signed(origin: str | None) -> str:
    """Return the caller's account, rejecting unauthenticated calls.

    :param origin: Caller account address.
    :returns: The same address.
    :raises BadOrigin: If origin is missing.
    """
    if not origin:
        raise BadOrigin("Entry point requires a signed origin")
    return origin


class PriceFetch:
    """Consensus-side state machine of the price fetch oracle.

    :ivar ledger: Shared ledger state.
    :ivar provider: Price provider used to build fetcher endpoints.
    :ivar registry: Fetcher registry backed by the ledger.
    :ivar store: Sample store backed by the ledger.
    """

    def __init__(self, ledger: Ledger, provider: BaseFetcher) -> None:
        """Initialize the module.

        :param ledger: Ledger holding all state.
        :param provider: Price provider; only its ``endpoint()`` is used here.
        """
        self.ledger = ledger
        self.provider = provider
        self.registry = FetcherRegistry(ledger)
        self.store = SampleStore(ledger)

    def start_fetcher(self, origin: str | None, symbol: str | bytes, duration: int) -> Fetcher:
        """Open a collection window for a symbol.

        :param origin: Caller account address.
        :param symbol: Asset symbol.
        :param duration: Window length in ticks.
        :returns: The new Fetcher.
        :raises BadOrigin: If origin is missing.
        :raises FetcherAlreadyExists: If the symbol already has an active fetcher.
        """
        ensure_signed(origin)
        symbol = normalize_symbol(symbol)

        with self.ledger.transaction():
            fetcher = self.registry.start_fetcher(
                symbol,
                self.provider.endpoint(symbol),
                duration,
                self.ledger.block_number,
            )
            self.ledger.deposit_event(
                Event("NewFetcher", {"symbol": symbol, "end_fetching_at": fetcher.end_fetching_at})
            )

        logger.info(
            f"Fetcher started for {symbol.decode(errors='replace')} "
            f"until block {fetcher.end_fetching_at}"
        )
        return fetcher

    def submit_new_price(self, origin: str | None, record: PriceRecord) -> None:
        """Attach a fresh observation to an active fetcher.

        :param origin: Caller account address, recorded as the sample author.
        :param record: Provider record.
        :raises BadOrigin: If origin is missing.
        :raises FetcherNotFound: If the symbol has no active fetcher.
        """
        author = ensure_signed(origin)

        with self.ledger.transaction():
            if not self.registry.contains(record.symbol):
                raise FetcherNotFound(f"No active fetcher for {record.symbol!r}")
            self.store.append(FetchedSample.from_record(record, author))
            self.ledger.deposit_event(
                Event("NewPrice", {"symbol": record.symbol, "price": record.price, "author": author})
            )

        logger.debug(f"New price {record.price} for {record.symbol!r} from {author}")

    def submit_new_median_price(
        self, origin: str | None, symbol: bytes, price: Price, tick: int
    ) -> None:
        """Close a fetcher's window with its median price.

        Records the median, removes the fetcher and clears its samples.

        :param origin: Caller account address.
        :param symbol: Asset symbol.
        :param price: Median price computed off-chain.
        :param tick: Tick reported by the submitter.
        :raises BadOrigin: If origin is missing.
        :raises FetcherNotFound: If the symbol has no active fetcher.
        """
        author = ensure_signed(origin)

        with self.ledger.transaction():
            if not self.registry.contains(symbol):
                raise FetcherNotFound(f"No active fetcher for {symbol!r}")

            medians: dict[bytes, MedianReport] = self.ledger.read(MEDIAN_PRICES_KEY, {})
            medians[symbol] = MedianReport(symbol=symbol, price=price, tick=tick, author=author)
            self.ledger.write(MEDIAN_PRICES_KEY, medians)

            self.registry.remove_fetcher(symbol)
            self.store.clear(symbol)
            self.ledger.deposit_event(
                Event(
                    "NewMedianPrice",
                    {"symbol": symbol, "price": price, "tick": tick, "author": author},
                )
            )

        logger.info(f"Median price {price} recorded for {symbol!r} at tick {tick} by {author}")

    def apply(self, tx: SignedSubmission) -> None:
        """Verify a signed submission and dispatch its call.

        :param tx: Signed submission from the transaction pool.
        :raises BadSignature: If the signature does not match the claimed signer.
        :raises DispatchError: If the dispatched entry point fails.
        """
        try:
            signer = recover_signer(tx.call.encode(), tx.signature)
        except ValueError as e:
            raise BadSignature(f"Invalid signature on {tx.hash}: {e}") from e
        if signer != tx.signer:
            raise BadSignature(f"Signature on {tx.hash} is not from {tx.signer}")

        if tx.call.name == SUBMIT_NEW_PRICE:
            self.submit_new_price(signer, *tx.call.args)
        elif tx.call.name == SUBMIT_NEW_MEDIAN_PRICE:
            self.submit_new_median_price(signer, *tx.call.args)
        else:
            raise DispatchError(f"Unknown call: {tx.call.name}")

    def execute_block(
        self, pool: TransactionPool
    ) -> list[tuple[SignedSubmission, DispatchError | None]]:
        """Apply every queued submission in order.

        Failed submissions are logged and dropped.

        :param pool: Pool to drain.
        :returns: List of (submission, error or None) outcomes.
        """
        outcomes: list[tuple[SignedSubmission, DispatchError | None]] = []
        for tx in pool.drain():
            try:
                self.apply(tx)
            except DispatchError as e:
                logger.warning(f"Submission {tx.call.name} from {tx.signer} failed: {e}")
                outcomes.append((tx, e))
            else:
                outcomes.append((tx, None))
        return outcomes

    def fetchers(self) -> list[Fetcher]:
        """Active fetchers in insertion order."""
        return self.registry.list_active()

    def fetcher(self, symbol: str | bytes) -> Fetcher | None:
        """Active fetcher for a symbol, or None."""
        return self.registry.get(normalize_symbol(symbol))

    def samples(self, symbol: str | bytes) -> list[FetchedSample]:
        """Samples collected so far for a symbol."""
        return self.store.get(normalize_symbol(symbol))

    def median_price(self, symbol: str | bytes) -> MedianReport | None:
        """Last median recorded for a symbol, or None."""
        medians: dict[bytes, MedianReport] = self.ledger.read(MEDIAN_PRICES_KEY, {})
        return medians.get(normalize_symbol(symbol))
