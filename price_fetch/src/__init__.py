"""
Price Fetch Oracle - Fetcher Lifecycle and Median Submission Module

This module provides windowed price collection and median reporting:
- Price: Exact fixed-point price type
- FetcherRegistry: Active collection windows keyed by symbol
- SampleStore: Per-symbol fetched samples
- MedianAggregator: Deterministic median with a minimum sample threshold
- PriceFetch: Consensus entry points (start, submit price, submit median)
- OffchainWorker: Per-tick fetching and median submission
- PriceFetchNode: Main orchestrator for the tick loop
- fetchers: Price provider implementations
"""

from .FetcherRegistry import Fetcher, FetcherRegistry
from .Keystore import Keystore
from .Ledger import InMemoryLedger, Ledger
from .MedianAggregator import DEFAULT_MIN_SAMPLES, MedianAggregator, compute_median
from .OffchainWorker import OffchainWorker
from .Price import DECIMALS, Price
from .PriceFetch import PriceFetch
from .PriceFetchNode import PriceFetchNode
from .PriceRecord import FetchedSample, MedianReport, PriceRecord
from .SampleStore import SampleStore
from .TransactionPool import Call, SignedSubmission, TransactionPool

__all__ = [
    "Call",
    "DECIMALS",
    "DEFAULT_MIN_SAMPLES",
    "FetchedSample",
    "Fetcher",
    "FetcherRegistry",
    "InMemoryLedger",
    "Keystore",
    "Ledger",
    "MedianAggregator",
    "MedianReport",
    "OffchainWorker",
    "Price",
    "PriceFetch",
    "PriceFetchNode",
    "PriceRecord",
    "SampleStore",
    "SignedSubmission",
    "TransactionPool",
    "compute_median",
]
