"""Unit tests for the PriceFetch consensus entry points."""

import pytest

from conftest import ALICE, ALICE_KEY, BOB, BOB_KEY
from price_fetch.src.errors import (
    BadOrigin,
    BadSignature,
    FetcherAlreadyExists,
    FetcherNotFound,
)
from price_fetch.src.fetchers import DiaFetcher
from price_fetch.src.FetcherRegistry import FETCHERS_KEY, FETCHERS_MAP_KEY, Fetcher
from price_fetch.src.Keystore import Keystore, Signature
from price_fetch.src.Ledger import InMemoryLedger
from price_fetch.src.Price import Price
from price_fetch.src.PriceFetch import PriceFetch
from price_fetch.src.PriceRecord import FetchedSample, MedianReport, PriceRecord
from price_fetch.src.TransactionPool import Call, SignedSubmission, TransactionPool

ETH_FETCHER = Fetcher(
    symbol=b"ETH",
    url=b"https://api.diadata.org/v1/quotation/ETH",
    end_fetching_at=600,
)


@pytest.fixture
def module(ledger: InMemoryLedger) -> PriceFetch:
    return PriceFetch(ledger, DiaFetcher())


def eth_record(price: Price) -> PriceRecord:
    return PriceRecord(symbol=b"ETH", price=price, time=b"2020-11-26T20:02:19.699386233Z")


class TestStartFetcher:
    """Test PriceFetch.start_fetcher()."""

    def test_start_new_fetcher(self, module: PriceFetch, ledger: InMemoryLedger) -> None:
        """Starting a fetcher should register it in both views."""
        fetcher = module.start_fetcher(ALICE, b"ETH", 600)

        assert fetcher == ETH_FETCHER
        assert ledger.read(FETCHERS_MAP_KEY)[b"ETH"] == b"ETH"
        assert ledger.read(FETCHERS_KEY).pop() == ETH_FETCHER
        assert ledger.events[-1].name == "NewFetcher"

    def test_accepts_text_symbol(self, module: PriceFetch) -> None:
        """Text symbols should be normalized to bytes."""
        module.start_fetcher(ALICE, "ETH", 600)
        assert module.fetcher(b"ETH") == ETH_FETCHER

    def test_expiry_uses_block_number(self, ledger: InMemoryLedger) -> None:
        """Expiry should be counted from the current block."""
        ledger.set_block_number(100)
        module = PriceFetch(ledger, DiaFetcher())
        assert module.start_fetcher(ALICE, b"ETH", 600).end_fetching_at == 700

    def test_start_existing_fetcher_fails(self, module: PriceFetch, ledger: InMemoryLedger) -> None:
        """Starting a duplicate should fail without changing state."""
        module.start_fetcher(ALICE, b"ETH", 600)
        events_before = ledger.events

        with pytest.raises(FetcherAlreadyExists):
            module.start_fetcher(BOB, b"ETH", 10)

        assert module.fetchers() == [ETH_FETCHER]
        assert ledger.events == events_before

    def test_unprintable_symbol_rejected(self, module: PriceFetch, ledger: InMemoryLedger) -> None:
        """Symbols that cannot form a provider URL never become fetchers."""
        with pytest.raises(ValueError):
            module.start_fetcher(ALICE, b"\xff", 600)

        assert module.fetchers() == []
        assert ledger.events == []

    def test_unsigned_origin(self, module: PriceFetch) -> None:
        """Unsigned calls should be rejected."""
        with pytest.raises(BadOrigin):
            module.start_fetcher(None, b"ETH", 600)
        assert module.fetchers() == []


class TestSubmitNewPrice:
    """Test PriceFetch.submit_new_price()."""

    def test_submit_new_price_without_fetcher_fails(self, module: PriceFetch, ledger: InMemoryLedger) -> None:
        """A price for an unknown symbol should fail and store nothing."""
        record = PriceRecord(symbol=b"Bar", price=Price.from_fraction(1.0), time=b"Foo")

        with pytest.raises(FetcherNotFound):
            module.submit_new_price(ALICE, record)

        assert module.samples(b"Bar") == []
        assert ledger.events == []

    def test_submit_new_price_appends_sample(self, module: PriceFetch) -> None:
        """A price for an active fetcher should be stored with its author."""
        module.start_fetcher(ALICE, b"ETH", 600)
        record = eth_record(Price.from_integer(10))

        module.submit_new_price(BOB, record)

        assert module.samples(b"ETH") == [FetchedSample.from_record(record, BOB)]

    def test_unsigned_origin(self, module: PriceFetch) -> None:
        """Unsigned submissions should be rejected."""
        module.start_fetcher(ALICE, b"ETH", 600)
        with pytest.raises(BadOrigin):
            module.submit_new_price("", eth_record(Price.from_integer(10)))
        assert module.samples(b"ETH") == []


class TestSubmitNewMedianPrice:
    """Test PriceFetch.submit_new_median_price()."""

    def test_submit_new_median_price_should_remove_fetchers(
        self, module: PriceFetch, ledger: InMemoryLedger
    ) -> None:
        """A median submission should close the window."""
        module.start_fetcher(ALICE, b"ETH", 600)
        assert ledger.read(FETCHERS_KEY) == [ETH_FETCHER]

        module.submit_new_median_price(ALICE, b"ETH", Price.from_integer(10), 0)

        assert b"ETH" not in ledger.read(FETCHERS_MAP_KEY)
        assert ledger.read(FETCHERS_KEY) == []
        assert module.fetcher(b"ETH") is None

    def test_records_median_and_clears_samples(self, module: PriceFetch, ledger: InMemoryLedger) -> None:
        """The median should be recorded and the samples cleared."""
        module.start_fetcher(ALICE, b"ETH", 600)
        for p in (1, 2, 3):
            module.submit_new_price(ALICE, eth_record(Price.from_integer(p)))

        module.submit_new_median_price(BOB, b"ETH", Price.from_integer(2), 600)

        assert module.median_price(b"ETH") == MedianReport(
            symbol=b"ETH", price=Price.from_integer(2), tick=600, author=BOB
        )
        assert module.samples(b"ETH") == []
        assert ledger.events[-1].name == "NewMedianPrice"

    def test_next_window_starts_empty(self, module: PriceFetch) -> None:
        """A new window for the same symbol begins without samples."""
        module.start_fetcher(ALICE, b"ETH", 600)
        module.submit_new_price(ALICE, eth_record(Price.from_integer(1)))
        module.submit_new_median_price(ALICE, b"ETH", Price.from_integer(1), 600)

        module.start_fetcher(ALICE, b"ETH", 600)
        assert module.samples(b"ETH") == []

    def test_without_fetcher_fails(self, module: PriceFetch) -> None:
        """A median for an unknown symbol should fail."""
        with pytest.raises(FetcherNotFound):
            module.submit_new_median_price(ALICE, b"ETH", Price.from_integer(10), 0)
        assert module.median_price(b"ETH") is None

    def test_second_submission_fails(self, module: PriceFetch) -> None:
        """Only the first median for a window is accepted."""
        module.start_fetcher(ALICE, b"ETH", 600)
        module.submit_new_median_price(ALICE, b"ETH", Price.from_integer(10), 600)

        with pytest.raises(FetcherNotFound):
            module.submit_new_median_price(BOB, b"ETH", Price.from_integer(11), 600)

        assert module.median_price(b"ETH").price == Price.from_integer(10)


class TestApply:
    """Test signed submission dispatch."""

    def test_apply_submit_new_price(self, module: PriceFetch) -> None:
        """The recovered signer should become the sample author."""
        module.start_fetcher(ALICE, b"ETH", 600)
        record = eth_record(Price.from_integer(10))
        tx = SignedSubmission.sign(Call.submit_new_price(record), Keystore.from_keys([BOB_KEY]))

        module.apply(tx)

        assert module.samples(b"ETH")[0].author == BOB

    def test_apply_median(self, module: PriceFetch) -> None:
        """Median submissions are dispatched to submit_new_median_price."""
        module.start_fetcher(ALICE, b"ETH", 600)
        call = Call.submit_new_median_price(b"ETH", Price.from_integer(5), 600)

        module.apply(SignedSubmission.sign(call, Keystore.from_keys([ALICE_KEY])))

        assert module.fetchers() == []
        assert module.median_price(b"ETH").author == ALICE

    def test_tampered_call(self, module: PriceFetch) -> None:
        """A signature over a different call should be rejected."""
        module.start_fetcher(ALICE, b"ETH", 600)
        keystore = Keystore.from_keys([ALICE_KEY])
        signed = SignedSubmission.sign(
            Call.submit_new_median_price(b"ETH", Price.from_integer(5), 600), keystore
        )
        forged = SignedSubmission(
            call=Call.submit_new_median_price(b"ETH", Price.from_integer(500), 600),
            signature=signed.signature,
        )

        with pytest.raises(BadSignature):
            module.apply(forged)

        assert module.fetchers() == [ETH_FETCHER]

    def test_malformed_signature_bytes(self, module: PriceFetch) -> None:
        """Signature bytes that cannot be recovered are rejected."""
        module.start_fetcher(ALICE, b"ETH", 600)
        forged = SignedSubmission(
            call=Call.submit_new_median_price(b"ETH", Price.from_integer(5), 600),
            signature=Signature(signer=ALICE, value=b"\x00" * 10),
        )

        with pytest.raises(BadSignature, match="Invalid signature"):
            module.apply(forged)

        assert module.fetchers() == [ETH_FETCHER]

    def test_execute_block_resolves_races(self, module: PriceFetch) -> None:
        """The first median wins; later racers fail with FetcherNotFound."""
        module.start_fetcher(ALICE, b"ETH", 600)
        pool = TransactionPool()
        for key in (ALICE_KEY, BOB_KEY):
            call = Call.submit_new_median_price(b"ETH", Price.from_integer(7), 600)
            pool.submit(SignedSubmission.sign(call, Keystore.from_keys([key])))

        outcomes = module.execute_block(pool)

        assert len(pool) == 0
        assert outcomes[0][1] is None
        assert isinstance(outcomes[1][1], FetcherNotFound)
        assert module.median_price(b"ETH").author == ALICE
