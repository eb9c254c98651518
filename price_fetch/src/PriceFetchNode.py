"""PriceFetchNode: Main orchestrator for a single oracle node.

This module wires the consensus-side state machine and the off-chain worker
together and drives them from a simple timer.

Architecture:
    - One tick every tick_period seconds, used as the block number
    - Each tick first applies the queued signed submissions (consensus step)
    - Then the off-chain worker fetches prices for open windows and submits
      medians for closed ones
    - Submissions queued during tick N are applied at tick N + 1
"""

from __future__ import annotations

import asyncio
import logging

from .errors import DispatchError
from .fetchers import BaseFetcher
from .Keystore import Keystore
from .Ledger import InMemoryLedger, Ledger
from .MedianAggregator import DEFAULT_MIN_SAMPLES, MedianAggregator
from .OffchainWorker import OffchainWorker
from .PriceFetch import PriceFetch
from .TransactionPool import TransactionPool

logger = logging.getLogger(__name__)


class PriceFetchNode:
    """A node running the price fetch oracle.

    :ivar ledger: Shared ledger state.
    :ivar module: Consensus entry points.
    :ivar worker: Off-chain worker.
    :ivar pool: Transaction pool shared by module and worker.
    :ivar keystore: Local signing accounts.
    :ivar tick_period: Seconds between ticks.
    """

    def __init__(
        self,
        provider: BaseFetcher,
        keystore: Keystore,
        ledger: Ledger | None = None,
        tick_period: float = 6.0,
        min_samples: int = DEFAULT_MIN_SAMPLES,
    ) -> None:
        """Initialize the node.

        :param provider: Price provider.
        :param keystore: Keystore with the node's signing account.
        :param ledger: Ledger state (default: a fresh InMemoryLedger).
        :param tick_period: Seconds between ticks (default: 6.0).
        :param min_samples: Minimum samples for a median (default: 3).
        """
        self.ledger = ledger or InMemoryLedger()
        self.keystore = keystore
        self.tick_period = tick_period
        self.pool = TransactionPool()
        self.module = PriceFetch(self.ledger, provider)
        self.worker = OffchainWorker(
            self.ledger,
            provider,
            keystore,
            self.pool,
            aggregator=MedianAggregator(min_samples),
        )

        logger.info(
            f"PriceFetchNode initialized: provider={provider.name}, "
            f"tick_period={tick_period}s, min_samples={min_samples}"
        )

    def start_fetchers(self, symbols: list[str], duration: int) -> int:
        """Open a collection window for each symbol.

        Symbols that already have an active fetcher are logged and skipped.

        :param symbols: Symbols to start fetchers for.
        :param duration: Window length in ticks.
        :returns: Number of fetchers started.
        """
        origin = self.keystore.local_account()
        started = 0
        for symbol in symbols:
            try:
                self.module.start_fetcher(origin, symbol, duration)
                started += 1
            except (DispatchError, ValueError) as e:
                logger.warning(f"Could not start fetcher for {symbol}: {e}")
        return started

    async def tick(self) -> int:
        """Advance one block: apply queued submissions, then run the worker.

        :returns: The new block number.
        """
        block_number = self.ledger.block_number + 1
        self.ledger.set_block_number(block_number)

        outcomes = self.module.execute_block(self.pool)
        if outcomes:
            failed = sum(1 for _, error in outcomes if error is not None)
            logger.info(
                f"Block {block_number}: applied {len(outcomes) - failed}/{len(outcomes)} submissions"
            )

        await self.worker.on_tick(block_number)
        return block_number

    async def run(self, max_ticks: int | None = None) -> None:
        """Run the tick loop.

        :param max_ticks: Stop after this many ticks (default: run forever).
        """
        logger.info("Starting tick loop")
        ticks = 0
        try:
            while max_ticks is None or ticks < max_ticks:
                await self.tick()
                ticks += 1
                if not self.module.fetchers():
                    logger.debug("No active fetchers")
                await asyncio.sleep(self.tick_period)
        finally:
            # Clean up shared HTTP client
            await BaseFetcher.close_shared_client()
