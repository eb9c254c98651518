"""Base fetcher interface and shared HTTP client management.

All price providers inherit from BaseFetcher and implement ``endpoint()`` and
``parse_response()``. A shared httpx.AsyncClient is used across all fetchers
to avoid connection overhead.

Parsing is pure and returns None on empty or malformed bodies; fetching turns
that into MalformedResponse so callers can tell "no data" from "transport
failure". Both are soft failures: the worker skips the symbol for this tick.

.. code-block:: python

    @register_fetcher
    class MyFetcher(BaseFetcher):
        name = "myfetcher"

        def endpoint(self, symbol: bytes) -> bytes:
            return b"https://api.example.com/quote/" + symbol

        def parse_response(self, body: bytes | str) -> PriceRecord | None:
            ...
"""

import logging
from abc import ABC, abstractmethod
from typing import ClassVar

import httpx

from ..errors import (
    FetcherConfigError,
    FetcherHTTPError,
    MalformedResponse,
    TransportError,
)
from ..PriceRecord import PriceRecord

logger = logging.getLogger(__name__)


class BaseFetcher(ABC):
    """Abstract base class for price providers.

    Subclasses must implement:
        - name: Class variable identifying the provider (e.g., "dia")
        - endpoint(): Provider URL for a symbol
        - parse_response(): Pure parse of a response body

    :cvar name: Unique identifier for this fetcher.
    :cvar DEFAULT_TIMEOUT: Default HTTP request timeout in seconds.
    :ivar timeout: Request timeout in seconds.
    """

    # Class-level shared HTTP client
    _shared_client: ClassVar[httpx.AsyncClient | None] = None

    # Fetcher identification
    name: ClassVar[str] = ""

    # Default timeout for HTTP requests (seconds)
    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the fetcher.

        :param timeout: Request timeout in seconds (default: 10).
        :param client: Optional HTTP client, overrides the shared one.
        """
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self._client = client

    @classmethod
    def get_shared_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client.

        The client is shared across all fetcher instances to reuse connections.

        :returns: Shared httpx.AsyncClient instance.
        """
        if BaseFetcher._shared_client is None or BaseFetcher._shared_client.is_closed:
            BaseFetcher._shared_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
                follow_redirects=True,
            )
        return BaseFetcher._shared_client

    @classmethod
    async def close_shared_client(cls) -> None:
        """Close the shared HTTP client."""
        if BaseFetcher._shared_client is not None and not BaseFetcher._shared_client.is_closed:
            await BaseFetcher._shared_client.aclose()
            BaseFetcher._shared_client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """HTTP client used by this fetcher."""
        return self._client or self.get_shared_client()

    @abstractmethod
    def endpoint(self, symbol: bytes) -> bytes:
        """Provider URL queried for a symbol.

        :param symbol: Asset symbol (e.g., b"ETH").
        :returns: URL bytes.
        """
        pass

    @abstractmethod
    def parse_response(self, body: bytes | str) -> PriceRecord | None:
        """Parse a provider response body.

        :param body: Raw response body.
        :returns: PriceRecord, or None if the body is empty or malformed.
        """
        pass

    async def fetch_price(self, endpoint: bytes | str) -> PriceRecord:
        """Fetch and parse the quotation at an endpoint.

        :param endpoint: Provider URL.
        :returns: Parsed PriceRecord.
        :raises TransportError: On invalid URLs, network errors, timeouts and
            non-2xx responses.
        :raises MalformedResponse: If the body cannot be parsed.
        """
        if isinstance(endpoint, bytes):
            try:
                url = endpoint.decode("utf-8")
            except UnicodeDecodeError as e:
                raise TransportError(f"[{self.name}] Invalid endpoint {endpoint!r}: {e}") from e
        else:
            url = endpoint
        response = await self._get(url)

        record = self.parse_response(response.content)
        if record is None:
            logger.debug("Malformed response from %s: %s", url, response.text[:200])
            raise MalformedResponse(f"[{self.name}] Malformed response from {url}")
        return record

    async def _get(
        self,
        url: str,
        *,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        """Make an HTTP GET request.

        :param url: Request URL.
        :param params: Optional query parameters.
        :param headers: Optional request headers.
        :returns: httpx.Response object.
        :raises FetcherHTTPError: On non-2xx response.
        :raises TransportError: On invalid URLs and network/timeout errors.
        """
        try:
            response = await self.client.get(
                url,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.InvalidURL as e:
            raise TransportError(f"Invalid URL {url!r}: {e}") from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise TransportError(f"Request failed: {e}") from e

        if not response.is_success:
            logger.debug(
                "HTTP GET %s failed with status %s: %s",
                url,
                response.status_code,
                response.text[:200],
            )
            raise FetcherHTTPError(response.status_code, response.text[:200])
        return response


# Registry of available fetchers (populated by subclass imports)
FETCHER_REGISTRY: dict[str, type[BaseFetcher]] = {}


def register_fetcher(cls: type[BaseFetcher]) -> type[BaseFetcher]:
    """Decorator to register a fetcher class in the global registry.

    :param cls: Fetcher class to register.
    :returns: The registered class (unchanged).
    :raises ValueError: If fetcher has no name defined.
    """
    if not cls.name:
        raise ValueError(f"Fetcher {cls.__name__} must define a 'name' class variable")
    FETCHER_REGISTRY[cls.name] = cls
    return cls


def get_fetcher(
    name: str,
    timeout: float | None = None,
    client: httpx.AsyncClient | None = None,
) -> BaseFetcher:
    """Get a fetcher instance by name.

    :param name: Fetcher name (e.g., "dia").
    :param timeout: Optional request timeout in seconds.
    :param client: Optional HTTP client.
    :returns: Fetcher instance.
    :raises FetcherConfigError: If fetcher name is unknown.
    """
    if name not in FETCHER_REGISTRY:
        available = ", ".join(sorted(FETCHER_REGISTRY.keys()))
        raise FetcherConfigError(f"Unknown fetcher '{name}'. Available: {available}")
    return FETCHER_REGISTRY[name](timeout=timeout, client=client)


def get_available_fetchers() -> list[str]:
    """Get list of available fetcher names.

    :returns: Sorted list of registered fetcher names.
    """
    return sorted(FETCHER_REGISTRY.keys())
