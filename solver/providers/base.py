from abc import ABC, abstractmethod
from typing import Any, Dict


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class PriceProvider(Provider):
    """Provider for native asset price data"""

    @abstractmethod
    async def get_native_price(self, chain_id: int, vs_currency: str = "usd") -> Dict[str, Any]:
        """Get the current price of a chain's native asset.

        Returns a dict with ``price_usd`` and ``_source``.
        """
        pass
