"""Market data pass-through — gold/currency prices and business news.

Learn: Thin proxies so the frontend never sees the third-party API keys.
Prices come from BrsApi and are reshaped to {name, price, change, unit};
news comes from NewsData.io (Persian business/technology/science, Iran).
Upstream problems surface as MarketDataError; the router turns that
into a 502 without echoing upstream details.
"""

from typing import Any, Optional

import httpx
import structlog

from bizdesk.config import Settings

logger = structlog.get_logger()

BRSAPI_URL = "https://brsapi.ir/Api/Market/Gold_Currency.php"
NEWSDATA_URL = "https://newsdata.io/api/1/news"


class MarketDataError(Exception):
    """Raised when a market data source is unavailable or misconfigured."""


def _price_item(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": item.get("name"),
        "price": item.get("price"),
        "change": item.get("change_percent"),
        "unit": item.get("unit"),
    }


class MarketDataClient:
    def __init__(
        self,
        brsapi_key: str,
        newsdata_key: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.brsapi_key = brsapi_key
        self.newsdata_key = newsdata_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, cfg: Settings) -> "MarketDataClient":
        return cls(
            brsapi_key=cfg.brsapi_key,
            newsdata_key=cfg.newsdata_api_key,
            timeout=cfg.market_timeout_seconds,
        )

    async def _get_json(self, url: str, params: dict[str, str]) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("market.upstream_error", url=url, error=repr(e))
            raise MarketDataError("Market data source unavailable")

    async def prices(self) -> dict[str, list[dict[str, Any]]]:
        if not self.brsapi_key:
            raise MarketDataError("BRSAPI key is not configured")
        data = await self._get_json(BRSAPI_URL, {"key": self.brsapi_key})
        try:
            return {
                "gold": [_price_item(i) for i in data["gold"]],
                "currency": [_price_item(i) for i in data["currency"]],
            }
        except (KeyError, TypeError, AttributeError):
            raise MarketDataError("Unexpected price feed format")

    async def news(self) -> list[dict[str, Any]]:
        if not self.newsdata_key:
            raise MarketDataError("NewsData key is not configured")
        data = await self._get_json(
            NEWSDATA_URL,
            {
                "apikey": self.newsdata_key,
                "category": "business,technology,science",
                "language": "fa",
                "country": "ir",
            },
        )
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise MarketDataError("Unexpected news feed format")
        return results
