"""MedianAggregator: Deterministic median over fetched samples.

Algorithm:
    1. Reject if fewer than min_samples samples were collected
    2. Extract the price of every sample
    3. Sort ascending
    4. Return the element at index n // 2 (upper middle for even counts)

No averaging is done for even counts: every node must pick the exact same
sample from the same sample set.

.. code-block:: python

    >>> aggregator = MedianAggregator(min_samples=3)
    >>> prices = [Price.from_integer(p) for p in (3, 1, 4, 2)]
    >>> aggregator.median_of(prices)
    Price('3')
"""

from __future__ import annotations

from typing import Iterable, Sequence

from .errors import MinimalPriceSampleRequirementNotMet
from .Price import Price
from .PriceRecord import FetchedSample

# Minimum number of samples required to submit a median.
DEFAULT_MIN_SAMPLES = 3


class MedianAggregator:
    """Computes the representative price of a closed window.

    :ivar min_samples: Minimum number of samples required.
    """

    def __init__(self, min_samples: int = DEFAULT_MIN_SAMPLES) -> None:
        """Initialize the aggregator.

        :param min_samples: Minimum number of samples required (must be > 1).
        :raises ValueError: If min_samples is 1 or less.
        """
        if min_samples < 2:
            raise ValueError("min_samples must be at least 2")
        self.min_samples = min_samples

    def median_of(self, prices: Iterable[Price]) -> Price:
        """Return the median of a collection of prices.

        :param prices: Prices to aggregate.
        :returns: The price at index n // 2 of the sorted prices.
        :raises MinimalPriceSampleRequirementNotMet: If too few prices are given.
        """
        sorted_prices = sorted(prices)
        if len(sorted_prices) < self.min_samples:
            raise MinimalPriceSampleRequirementNotMet(
                len(sorted_prices), self.min_samples
            )
        return sorted_prices[len(sorted_prices) // 2]

    def compute_median(self, samples: Sequence[FetchedSample]) -> Price:
        """Return the median price of a window's samples.

        :param samples: Samples collected for one symbol.
        :returns: Median price.
        :raises MinimalPriceSampleRequirementNotMet: If too few samples are given.
        """
        return self.median_of(sample.price for sample in samples)


def compute_median(
    samples: Sequence[FetchedSample], min_samples: int = DEFAULT_MIN_SAMPLES
) -> Price:
    """Shortcut for ``MedianAggregator(min_samples).compute_median(samples)``."""
    return MedianAggregator(min_samples).compute_median(samples)
