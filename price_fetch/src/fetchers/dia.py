"""DIA quotation fetcher.

Endpoint: https://api.diadata.org/v1/quotation/{SYMBOL}
Rate Limit: High (no key required)

Response schema:
    Required: Symbol (string), Price (number), Time (string)
    Optional: Name, PriceYesterday, VolumeYesterdayUSD, Source, ITIN
"""

import json
import logging
from decimal import Decimal

from ..errors import PriceOverflowError
from ..FetcherRegistry import normalize_symbol
from ..Price import Price
from ..PriceRecord import PriceRecord
from .base import BaseFetcher, register_fetcher

logger = logging.getLogger(__name__)

# Placeholder DIA uses for absent identifiers.
UNDEFINED = "undefined"


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if not isinstance(value, str) or value == UNDEFINED:
        return None
    return value


@register_fetcher
class DiaFetcher(BaseFetcher):
    """Fetcher for the DIA quotation API.

    Prices are decoded as Decimal and converted to Price immediately, so the
    JSON number never passes through a float.
    """

    name = "dia"
    BASE_URL = "https://api.diadata.org/v1"

    def endpoint(self, symbol: bytes) -> bytes:
        """DIA quotation URL for a symbol.

        :param symbol: Asset symbol (e.g., b"ETH").
        :returns: URL bytes.
        """
        return f"{self.BASE_URL}/quotation/".encode("utf-8") + symbol

    def parse_response(self, body: bytes | str) -> PriceRecord | None:
        """Parse a DIA quotation.

        :param body: Raw response body.
        :returns: PriceRecord, or None if the body is empty or malformed.
        """
        if not body:
            return None

        try:
            data = json.loads(body, parse_float=Decimal)
        except ValueError as e:
            logger.warning(f"[dia] Failed to decode response: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"[dia] Unexpected response type: {type(data).__name__}")
            return None

        symbol = data.get("Symbol")
        price = data.get("Price")
        time = data.get("Time")

        if not isinstance(symbol, str) or not isinstance(time, str):
            logger.warning(f"[dia] Missing Symbol or Time in response: {data}")
            return None
        if isinstance(price, bool) or not isinstance(price, (int, Decimal)):
            logger.warning(f"[dia] Missing or invalid Price in response: {data}")
            return None

        try:
            return PriceRecord(
                symbol=normalize_symbol(symbol),
                price=Price.from_fraction(price),
                time=time.encode("utf-8"),
                source=_optional_str(data, "Source") or "",
            )
        except (ValueError, PriceOverflowError) as e:
            logger.warning(f"[dia] Failed to parse response for {symbol}: {e}")
            return None
