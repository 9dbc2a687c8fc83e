"""
Settlement Models

Inputs and outputs of the settlement calculator. All amounts are integers
in on-chain units (wei, or token base units).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..chain.models import ZERO_ADDRESS


USDC_DECIMALS = 6
NATIVE_DECIMALS = 18

# Percentage buffers
DISPENSATION_BUFFER_PCT = 125
GAS_BUFFER_PCT = 125
BASE_FEE_BUFFER_PCT = 120
SIMULATION_SETTLEMENT_PCT = 101


class RejectionReason(str, Enum):
    """Named reasons a fill is not worth (or not possible) submitting."""
    UNSUPPORTED_CHAIN = "unsupported_chain"
    UNSUPPORTED_TOKEN = "unsupported_token"
    INSUFFICIENT_TOKEN_BALANCE = "insufficient_token_balance"
    INSUFFICIENT_NATIVE_FOR_SIMULATION = "insufficient_native_for_simulation"
    MISSING_BASE_FEE = "missing_base_fee"
    PRICE_UNAVAILABLE = "price_unavailable"
    STALE_PRICE = "stale_price"
    UNPROFITABLE = "unprofitable"
    INSUFFICIENT_NATIVE_BALANCE = "insufficient_native_balance"


@dataclass(frozen=True)
class ChainTokens:
    """Tokens the calculator can settle in on one chain (lower-cased addresses)."""
    weth: str
    usdc: str
    eth: str = ZERO_ADDRESS

    def is_native_or_wrapped(self, token: str) -> bool:
        return token.lower() in (self.eth, self.weth)

    def is_supported(self, token: str) -> bool:
        return token.lower() in (self.eth, self.weth, self.usdc)

    def is_native(self, token: str) -> bool:
        return token.lower() == self.eth


@dataclass(frozen=True)
class SettlementConfig:
    """Per-chain settlement parameters."""
    tokens: Mapping[int, ChainTokens]
    priority_fees: Mapping[int, int]

    def supports(self, chain_id: int) -> bool:
        return int(chain_id) in self.tokens and int(chain_id) in self.priority_fees


@dataclass(frozen=True)
class SettlementQuote:
    """A sized, affordable fill ready to be submitted."""
    chain_id: int
    to: str
    data: str
    value: int
    settlement_amount: int
    minimum_amount: int
    estimated_gas: int
    gas_limit: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    gas_cost_usd: Optional[float] = None

    @property
    def max_gas_cost(self) -> int:
        return self.max_fee_per_gas * self.gas_limit

    @property
    def required_balance(self) -> int:
        return self.value + self.max_gas_cost


@dataclass(frozen=True)
class SettlementRejection:
    """A fill that must not be submitted, with a distinct reason."""
    reason: RejectionReason
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
