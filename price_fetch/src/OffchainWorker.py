"""OffchainWorker: Per-tick fetch and median submission for one node.

On every tick, for each active fetcher:
    - window closed: compute the median of the collected samples and queue a
      signed submit_new_median_price
    - window open: fetch the provider quotation and queue a signed
      submit_new_price (all open windows are fetched concurrently)

The worker only reads ledger state. All changes go through the transaction
pool, so a failed fetch or aggregation never leaves partial state behind.
Errors are logged per fetcher and retried on the next tick.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .errors import (
    FetcherError,
    FetcherNotFound,
    NoLocalAccountsAvailable,
    PriceFetchError,
)
from .FetcherRegistry import Fetcher, FetcherRegistry
from .MedianAggregator import MedianAggregator
from .Price import Price
from .SampleStore import SampleStore
from .TransactionPool import Call, SignedSubmission

if TYPE_CHECKING:
    from .fetchers import BaseFetcher
    from .Keystore import Keystore
    from .Ledger import Ledger
    from .TransactionPool import TransactionPool

logger = logging.getLogger(__name__)


class OffchainWorker:
    """Off-chain half of the submission controller.

    :ivar registry: Read access to active fetchers.
    :ivar store: Read access to collected samples.
    :ivar provider: Price provider used for fetching.
    :ivar keystore: Local signing accounts.
    :ivar pool: Outbound transaction pool.
    :ivar aggregator: Median aggregation engine.
    :ivar fetch_timeout: Upper bound for a single fetch in seconds.
    """

    def __init__(
        self,
        ledger: Ledger,
        provider: BaseFetcher,
        keystore: Keystore,
        pool: TransactionPool,
        aggregator: MedianAggregator | None = None,
        fetch_timeout: float | None = None,
    ) -> None:
        """Initialize the worker.

        :param ledger: Ledger to read fetchers and samples from.
        :param provider: Price provider to fetch quotations with.
        :param keystore: Keystore holding the signing account.
        :param pool: Pool receiving signed submissions.
        :param aggregator: Median engine (default: MedianAggregator()).
        :param fetch_timeout: Timeout for a single fetch (default: provider timeout).
        """
        self.registry = FetcherRegistry(ledger)
        self.store = SampleStore(ledger)
        self.provider = provider
        self.keystore = keystore
        self.pool = pool
        self.aggregator = aggregator or MedianAggregator()
        self.fetch_timeout = fetch_timeout or provider.timeout

    async def on_tick(self, current_tick: int) -> None:
        """Process every active fetcher for this tick.

        :param current_tick: Current block number.
        """
        fetchers = self.registry.list_active()
        if not fetchers:
            return
        logger.debug(f"Tick {current_tick}: {len(fetchers)} active fetchers")

        open_fetchers: list[Fetcher] = []
        for fetcher in fetchers:
            if not self.registry.is_expired(fetcher, current_tick):
                open_fetchers.append(fetcher)
                continue
            try:
                self.calc_and_submit_median_price(fetcher, current_tick)
            except PriceFetchError as e:
                self._log_failure(fetcher, current_tick, e)

        results = await asyncio.gather(
            *(self.fetch_price_and_submit(f) for f in open_fetchers),
            return_exceptions=True,
        )
        for fetcher, result in zip(open_fetchers, results, strict=True):
            if isinstance(result, PriceFetchError):
                self._log_failure(fetcher, current_tick, result)
            elif isinstance(result, Exception):
                logger.error(
                    f"[{fetcher.symbol!r}] Unexpected fetch exception: {result!r}",
                    exc_info=result,
                )
            elif isinstance(result, BaseException):
                raise result

    async def fetch_price_and_submit(self, fetcher: Fetcher) -> bool:
        """Fetch a quotation for a fetcher and queue it for submission.

        Transport and parse failures are logged and skipped; the fetcher is
        retried on the next tick.

        :param fetcher: Active fetcher.
        :returns: True if a submission was queued.
        :raises NoLocalAccountsAvailable: If the node cannot sign.
        """
        if not self.keystore.has_local_identity():
            raise NoLocalAccountsAvailable("No local accounts available")

        try:
            record = await asyncio.wait_for(
                self.provider.fetch_price(fetcher.url),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"[{self.provider.name}] Timeout fetching {fetcher.url!r}")
            return False
        except FetcherError as e:
            logger.warning(f"[{self.provider.name}] Failed to fetch {fetcher.url!r}: {e}")
            return False

        if record.symbol != fetcher.symbol:
            logger.warning(
                f"[{self.provider.name}] Expected {fetcher.symbol!r}, got {record.symbol!r}"
            )
            return False

        self.pool.submit(SignedSubmission.sign(Call.submit_new_price(record), self.keystore))
        logger.debug(f"Queued price {record.price} for {record.symbol!r}")
        return True

    def calc_and_submit_median_price(self, fetcher: Fetcher, tick: int) -> Price:
        """Compute a closed window's median and queue it for submission.

        Expiry is not checked here: ``on_tick`` only routes expired fetchers
        to this method, and a direct call submits whatever has been collected
        so far.

        :param fetcher: Fetcher whose window closed.
        :param tick: Current block number, included in the submission.
        :returns: The submitted median price.
        :raises NoLocalAccountsAvailable: If the node cannot sign.
        :raises FetcherNotFound: If the fetcher is no longer active.
        :raises MinimalPriceSampleRequirementNotMet: If too few samples were collected.
        """
        if not self.keystore.has_local_identity():
            raise NoLocalAccountsAvailable("No local accounts available")

        if not self.registry.contains(fetcher.symbol):
            raise FetcherNotFound(f"No active fetcher for {fetcher.symbol!r}")

        samples = self.store.get(fetcher.symbol)
        median = self.aggregator.compute_median(samples)

        call = Call.submit_new_median_price(fetcher.symbol, median, tick)
        self.pool.submit(SignedSubmission.sign(call, self.keystore))
        logger.info(
            f"Queued median {median} for {fetcher.symbol!r} "
            f"({len(samples)} samples, tick {tick})"
        )
        return median

    def _log_failure(self, fetcher: Fetcher, tick: int, error: PriceFetchError) -> None:
        symbol = fetcher.symbol.decode(errors="replace")
        if isinstance(error, NoLocalAccountsAvailable):
            logger.warning(f"[{symbol}] Skipping submission: {error}")
        else:
            logger.warning(f"[{symbol}] Tick {tick} failed: {error}")
