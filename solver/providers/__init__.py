"""External data providers."""

from .base import PriceProvider, Provider
from .coingecko import CoingeckoProvider

__all__ = ["PriceProvider", "Provider", "CoingeckoProvider"]
