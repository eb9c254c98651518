"""Error taxonomy for the price fetch oracle.

Three families:
    - Fetch errors (FetcherError and subclasses): soft, retried on the next tick.
    - Dispatch errors (DispatchError and subclasses): raised by the consensus
      entry points, state is rolled back.
    - Local precondition errors (NoLocalAccountsAvailable): the node cannot
      sign, nothing is submitted.
"""


class PriceFetchError(Exception):
    """Base exception for all price fetch errors."""

    pass


class PriceOverflowError(PriceFetchError, ArithmeticError):
    """Raised when a price falls outside the representable fixed-point range."""

    pass


class FetcherError(PriceFetchError):
    """Base exception for fetch stage errors."""

    pass


class FetcherConfigError(FetcherError):
    """Raised when a provider is misconfigured (e.g., unknown provider name)."""

    pass


class TransportError(FetcherError):
    """Raised on connection failures and timeouts."""

    pass


class FetcherHTTPError(TransportError):
    """Raised when the provider answers with a non-2xx status.

    :ivar status_code: HTTP status code from the failed request.
    """

    def __init__(self, status_code: int, message: str):
        """Initialize the HTTP error.

        :param status_code: HTTP status code.
        :param message: Error message from response.
        """
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}")


class MalformedResponse(FetcherError):
    """Raised when a provider response cannot be parsed into a PriceRecord."""

    pass


class NoLocalAccountsAvailable(PriceFetchError):
    """Raised when the node has no signing account in its keystore."""

    pass


class DispatchError(PriceFetchError):
    """Base exception for failures of the consensus entry points."""

    pass


class BadOrigin(DispatchError):
    """Raised when an entry point is called without an authenticated origin."""

    pass


class BadSignature(DispatchError):
    """Raised when a submission's signature does not match its signer."""

    pass


class FetcherAlreadyExists(DispatchError):
    """Raised when starting a fetcher for a symbol that already has one."""

    pass


class FetcherNotFound(DispatchError):
    """Raised when no active fetcher exists for a symbol."""

    pass


class MinimalPriceSampleRequirementNotMet(DispatchError):
    """Raised when too few samples were collected to compute a median.

    :ivar available: Number of samples available.
    :ivar required: Minimum number of samples required.
    """

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            f"Minimal price sample requirement not met: {available} < {required}"
        )
