"""Price: Exact fixed-point price representation.

Prices are stored as an unsigned integer of 10^-18 units, the same layout as
a 128-bit unsigned fixed-point number. Every node must compute byte-identical
medians from identical samples, so floats are converted at the boundary and
never used internally.

.. code-block:: python

    >>> Price.from_fraction(8.23455)
    Price('8.23455')
    >>> Price.from_fraction("8.23455") == Price.from_fraction(8.23455)
    True
    >>> Price.from_integer(10) > Price.from_fraction(9.99)
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

from .errors import PriceOverflowError

# Number of fractional digits.
DECIMALS = 18

ACCURACY = 10 ** DECIMALS

MAX_INNER = 2 ** 128 - 1


def _check_inner(inner: int) -> int:
    if inner < 0 or inner > MAX_INNER:
        raise PriceOverflowError(f"Price out of range: {inner} units")
    return inner


@dataclass(frozen=True, order=True)
class Price:
    """An immutable fixed-point price.

    :ivar inner: Price value multiplied by 10^18.
    """

    inner: int

    def __post_init__(self) -> None:
        if isinstance(self.inner, bool) or not isinstance(self.inner, int):
            raise TypeError(f"Price inner value must be int, got {type(self.inner).__name__}")
        _check_inner(self.inner)

    @classmethod
    def from_integer(cls, value: int) -> Price:
        """Build an exact price from an integer.

        :param value: Whole number of units.
        :returns: New Price.
        :raises PriceOverflowError: If the value is negative or too large.
        """
        if value < 0 or value > MAX_INNER // ACCURACY:
            raise PriceOverflowError(f"Price out of range: {value}")
        return cls(value * ACCURACY)

    @classmethod
    def from_fraction(cls, value: float | Decimal | str | int) -> Price:
        """Build a price from a fractional value, truncated to 18 digits.

        Floats go through their shortest round-trip text (``repr``), so
        ``from_fraction(0.1) == from_fraction("0.1")``.

        :param value: Float, Decimal, decimal string or int.
        :returns: New Price.
        :raises PriceOverflowError: If the value is negative, not finite or too large.
        :raises ValueError: If a string is not a decimal number.
        """
        if isinstance(value, bool):
            raise TypeError("Price cannot be built from a bool")
        if isinstance(value, float):
            value = repr(value)
        try:
            decimal = Decimal(value)
        except InvalidOperation as e:
            raise ValueError(f"Invalid price value: {value!r}") from e

        if not decimal.is_finite():
            raise PriceOverflowError(f"Price is not finite: {value!r}")
        if decimal < 0:
            raise PriceOverflowError(f"Price cannot be negative: {value!r}")

        with localcontext() as ctx:
            ctx.prec = 80
            scaled = (decimal * ACCURACY).to_integral_value(rounding=ROUND_DOWN)
            if scaled > MAX_INNER:
                raise PriceOverflowError(f"Price out of range: {value!r}")
            return cls(int(scaled))

    def encode(self) -> int:
        """Return the integer value used in signed payloads."""
        return self.inner

    def to_decimal(self) -> Decimal:
        """Return the exact decimal value of this price."""
        with localcontext() as ctx:
            ctx.prec = 80
            return Decimal(self.inner) / ACCURACY

    def __add__(self, other: Price) -> Price:
        if not isinstance(other, Price):
            return NotImplemented
        return Price(_check_inner(self.inner + other.inner))

    def __sub__(self, other: Price) -> Price:
        if not isinstance(other, Price):
            return NotImplemented
        return Price(_check_inner(self.inner - other.inner))

    def __str__(self) -> str:
        whole, frac = divmod(self.inner, ACCURACY)
        if frac == 0:
            return str(whole)
        return f"{whole}.{frac:0{DECIMALS}d}".rstrip("0")

    def __repr__(self) -> str:
        return f"Price('{self}')"
