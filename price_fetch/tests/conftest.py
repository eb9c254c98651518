"""Shared fixtures for the price fetch tests."""

import json
from collections.abc import Callable

import httpx
import pytest

from price_fetch.src.fetchers import DiaFetcher
from price_fetch.src.Keystore import Keystore
from price_fetch.src.Ledger import InMemoryLedger

# Well-known development keys (hardhat accounts #0 and #1).
ALICE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
ALICE = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
BOB_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
BOB = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


def dia_body(symbol: str = "ETH", price: float | int = 599.5155962856843, **extra) -> bytes:
    """Build a DIA quotation body."""
    data = {
        "Symbol": symbol,
        "Name": "Ethereum",
        "Price": price,
        "PriceYesterday": 611.6692248881053,
        "VolumeYesterdayUSD": 230899109.84247947,
        "Source": "diadata.org",
        "Time": "2020-12-04T17:22:35.694940893Z",
        "ITIN": "undefined",
    }
    data.update(extra)
    return json.dumps(data).encode("utf-8")


def mock_provider(handler: Callable[[httpx.Request], httpx.Response]) -> DiaFetcher:
    """DIA fetcher whose HTTP requests are answered by handler."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DiaFetcher(timeout=1.0, client=client)


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def keystore() -> Keystore:
    return Keystore.from_keys([ALICE_KEY])


@pytest.fixture
def empty_keystore() -> Keystore:
    return Keystore()
