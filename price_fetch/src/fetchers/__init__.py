"""
Price providers for the fetch & parse stage.

Usage:
    from price_fetch.src.fetchers import get_fetcher, get_available_fetchers

    # Get list of available fetchers
    available = get_available_fetchers()
    # ['dia']

    # Create a fetcher instance
    fetcher = get_fetcher("dia")
    record = await fetcher.fetch_price(fetcher.endpoint(b"ETH"))
"""

# Import base classes and utilities
from .base import (
    FETCHER_REGISTRY,
    BaseFetcher,
    get_available_fetchers,
    get_fetcher,
    register_fetcher,
)

# Import all fetcher implementations to trigger registration
from .dia import DiaFetcher

__all__ = [
    # Base classes
    "BaseFetcher",
    # Registry functions
    "register_fetcher",
    "get_fetcher",
    "get_available_fetchers",
    "FETCHER_REGISTRY",
    # Fetcher implementations
    "DiaFetcher",
]
