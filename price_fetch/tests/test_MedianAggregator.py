"""Unit tests for MedianAggregator."""

import random

import pytest

from price_fetch.src.errors import MinimalPriceSampleRequirementNotMet
from price_fetch.src.MedianAggregator import (
    DEFAULT_MIN_SAMPLES,
    MedianAggregator,
    compute_median,
)
from price_fetch.src.Price import Price
from price_fetch.src.PriceRecord import FetchedSample

PRICES = [
    Price.from_fraction(1232.032342323423),
    Price.from_fraction(3223332.32032890342),
    Price.from_fraction(82339.3203842),
    Price.from_fraction(812341241234214.320381241242),
    Price.from_fraction(234214.1241242),
]


def samples_of(prices: list[Price]) -> list[FetchedSample]:
    return [
        FetchedSample(
            symbol=b"ETH",
            price=price,
            time=b"2020-11-26T20:02:19.699386233Z",
            author="0x0000000000000000000000000000000000000000",
        )
        for price in prices
    ]


class TestMedianAggregatorInit:
    """Test MedianAggregator initialization."""

    def test_default_values(self) -> None:
        """Default threshold should be the policy constant."""
        assert MedianAggregator().min_samples == DEFAULT_MIN_SAMPLES
        assert DEFAULT_MIN_SAMPLES > 1

    def test_custom_values(self) -> None:
        """Custom threshold should be stored."""
        assert MedianAggregator(min_samples=5).min_samples == 5

    def test_invalid_min_samples(self) -> None:
        """min_samples < 2 should raise ValueError."""
        with pytest.raises(ValueError, match="min_samples must be at least 2"):
            MedianAggregator(min_samples=1)

        with pytest.raises(ValueError, match="min_samples must be at least 2"):
            MedianAggregator(min_samples=0)


class TestMedianSelection:
    """Test the deterministic median rule."""

    def test_median_odd(self) -> None:
        """Odd counts pick the middle element."""
        agg = MedianAggregator(min_samples=2)
        prices = [Price.from_integer(p) for p in (102, 100, 101)]
        assert agg.median_of(prices) == Price.from_integer(101)

    def test_median_even_picks_upper_middle(self) -> None:
        """Even counts pick index n // 2, never an average."""
        agg = MedianAggregator(min_samples=2)
        prices = [Price.from_integer(p) for p in (100, 101)]
        assert agg.median_of(prices) == Price.from_integer(101)

        prices = [Price.from_integer(p) for p in (4, 1, 3, 2)]
        assert agg.median_of(prices) == Price.from_integer(3)

    def test_cycling_samples(self) -> None:
        """100 samples cycling 5 prices give the 3rd-ranked price."""
        samples = samples_of([PRICES[i % 5] for i in range(100)])
        median = MedianAggregator().compute_median(samples)

        assert median == sorted(PRICES)[2]
        assert median == PRICES[4]

    def test_order_independent(self) -> None:
        """Permuting the samples should not change the median."""
        prices = [PRICES[i % 5] for i in range(37)]
        expected = compute_median(samples_of(prices))

        rng = random.Random(1234)
        for _ in range(10):
            shuffled = list(prices)
            rng.shuffle(shuffled)
            assert compute_median(samples_of(shuffled)) == expected

    def test_duplicates(self) -> None:
        """Equal prices are handled like any other."""
        prices = [Price.from_integer(7)] * 4
        assert compute_median(samples_of(prices)) == Price.from_integer(7)

    def test_input_not_mutated(self) -> None:
        """The sample sequence should be left untouched."""
        samples = samples_of([PRICES[3], PRICES[0], PRICES[1]])
        before = list(samples)
        compute_median(samples)
        assert samples == before


class TestMinimumSamples:
    """Test the minimum sample requirement."""

    def test_single_sample_fails(self) -> None:
        """One sample is never enough."""
        with pytest.raises(MinimalPriceSampleRequirementNotMet) as exc_info:
            compute_median(samples_of([PRICES[0]]))

        assert exc_info.value.available == 1
        assert exc_info.value.required == DEFAULT_MIN_SAMPLES

    def test_empty_fails(self) -> None:
        """No samples should fail."""
        with pytest.raises(MinimalPriceSampleRequirementNotMet):
            compute_median([])

    def test_below_threshold_fails(self) -> None:
        """One below the threshold should fail, the threshold itself succeeds."""
        agg = MedianAggregator(min_samples=4)
        with pytest.raises(MinimalPriceSampleRequirementNotMet):
            agg.compute_median(samples_of(PRICES[:3]))

        assert agg.compute_median(samples_of(PRICES[:4])) == PRICES[1]
