from __future__ import annotations

from dataclasses import dataclass
import logging
from urllib.error import HTTPError, URLError

from grinder_bot.errors import PriceFeedError
from grinder_bot.http_utils import get_json

LOGGER = logging.getLogger("grinder_bot")


@dataclass
class EthPriceClient:
    url: str
    fallback_price: float = 2700.0
    timeout_seconds: float = 10.0

    def fetch_price(self) -> float:
        try:
            payload = get_json(self.url, timeout=self.timeout_seconds)
        except HTTPError as exc:
            raise PriceFeedError(f"price feed status={exc.code}") from exc
        except (URLError, OSError, ValueError) as exc:
            raise PriceFeedError(f"price feed unreachable: {exc}") from exc

        if isinstance(payload, dict):
            quote = payload.get("ethereum")
            if isinstance(quote, dict) and "usd" in quote:
                try:
                    price = float(quote["usd"])
                except (TypeError, ValueError) as exc:
                    raise PriceFeedError(f"unparseable price {quote['usd']!r}") from exc
                if price > 0:
                    return price
        raise PriceFeedError("Unable to parse ETH price response")

    def get_price(self) -> float:
        """Latest ETH/USD quote, or exactly ``fallback_price`` when the feed fails."""
        try:
            return self.fetch_price()
        except PriceFeedError as exc:
            LOGGER.warning("price_feed_fallback price=%.2f reason=%s", self.fallback_price, exc)
            return float(self.fallback_price)
