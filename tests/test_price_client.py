from __future__ import annotations

import io
import unittest
from pathlib import Path
import sys
from unittest.mock import patch
from urllib.error import HTTPError, URLError

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from grinder_bot.clients_price import EthPriceClient
from grinder_bot.errors import PriceFeedError


def _http_error(code: int) -> HTTPError:
    return HTTPError("https://example.com", code, "error", {}, io.BytesIO(b""))


class PriceClientTests(unittest.TestCase):
    def test_reads_coingecko_quote(self) -> None:
        client = EthPriceClient(url="https://example.com", fallback_price=2700.0)
        with patch(
            "grinder_bot.clients_price.get_json",
            return_value={"ethereum": {"usd": 3123.45}},
        ):
            self.assertAlmostEqual(client.get_price(), 3123.45, places=6)

    def test_non_200_returns_fallback_constant(self) -> None:
        client = EthPriceClient(url="https://example.com", fallback_price=2700.0)
        with patch("grinder_bot.clients_price.get_json", side_effect=_http_error(429)):
            self.assertEqual(client.get_price(), 2700.0)

    def test_fallback_ignores_previous_quote(self) -> None:
        client = EthPriceClient(url="https://example.com", fallback_price=2700.0)
        with patch(
            "grinder_bot.clients_price.get_json",
            return_value={"ethereum": {"usd": 3500.0}},
        ):
            self.assertEqual(client.get_price(), 3500.0)
        with patch("grinder_bot.clients_price.get_json", side_effect=_http_error(500)):
            self.assertEqual(client.get_price(), 2700.0)

    def test_network_failure_returns_fallback(self) -> None:
        client = EthPriceClient(url="https://example.com", fallback_price=1999.0)
        with patch("grinder_bot.clients_price.get_json", side_effect=URLError("dns")):
            self.assertEqual(client.get_price(), 1999.0)

    def test_malformed_payload_raises_on_strict_fetch(self) -> None:
        client = EthPriceClient(url="https://example.com")
        with patch("grinder_bot.clients_price.get_json", return_value={"bitcoin": {"usd": 1}}):
            with self.assertRaises(PriceFeedError):
                client.fetch_price()
            self.assertEqual(client.get_price(), 2700.0)


if __name__ == "__main__":
    unittest.main()
