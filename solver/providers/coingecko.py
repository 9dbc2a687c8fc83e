import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from .base import PriceProvider


logger = logging.getLogger(__name__)

# Coingecko coin id of each chain's native asset
NATIVE_COIN_IDS: Dict[int, str] = {
    1: "ethereum",
    10: "ethereum",
    130: "ethereum",
    8453: "ethereum",
    42161: "ethereum",
    11155111: "ethereum",
    84532: "ethereum",
    11155420: "ethereum",
    421614: "ethereum",
}


class CoingeckoProvider(PriceProvider):
    """Coingecko API provider for native asset prices"""

    name = "coingecko"
    timeout_s = 15

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.coingecko_api_key if api_key is None else api_key
        self.base_url = (
            "https://pro-api.coingecko.com/api/v3"
            if self.api_key
            else "https://api.coingecko.com/api/v3"
        )
        self._transport = transport

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"accept": "application/json"}
        if self.api_key:
            headers["x-cg-pro-api-key"] = self.api_key
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self.timeout_s)

    async def ready(self) -> bool:
        return True  # API key is optional for basic tier

    async def health_check(self) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.get(f"{self.base_url}/ping", headers=self._build_headers())
                response.raise_for_status()
                return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def get_native_price(self, chain_id: int, vs_currency: str = "usd") -> Dict[str, Any]:
        """Get the native asset price for a chain.

        Raises:
            ValueError: chain has no known native asset, or the response has no price.
            httpx.HTTPError: request failed.
        """
        coin_id = NATIVE_COIN_IDS.get(int(chain_id))
        if not coin_id:
            raise ValueError(f"Unsupported chain ID: {chain_id}")

        params = {
            "ids": coin_id,
            "vs_currencies": vs_currency,
        }

        async with self._client() as client:
            for attempt in range(2):
                try:
                    response = await client.get(
                        f"{self.base_url}/simple/price",
                        headers=self._build_headers(),
                        params=params,
                    )
                    response.raise_for_status()
                    break
                except httpx.HTTPStatusError as exc:
                    if exc.response.status_code == 429 and attempt == 0:
                        logger.warning("Coingecko rate limited, retrying")
                        await asyncio.sleep(2)
                        continue
                    raise
            data = response.json()

        price = (data.get(coin_id) or {}).get(vs_currency)
        if price is None:
            raise ValueError(f"No {vs_currency} price for {coin_id} in Coingecko response")

        return {
            "price_usd": float(price),
            "_source": {"name": "coingecko", "url": "https://coingecko.com"},
        }
