"""
Settlement sizing and affordability checks.

Usage:
    from solver.core.settlement import SettlementCalculator, SettlementQuote

    outcome = await calculator.quote(request, fill_data, filler_address)
    if isinstance(outcome, SettlementQuote):
        ...
"""

from .calculator import (
    PriceSource,
    SettlementCalculator,
    buffered_dispensation,
    buffered_gas,
    max_fee_per_gas,
)
from .models import (
    ChainTokens,
    RejectionReason,
    SettlementConfig,
    SettlementQuote,
    SettlementRejection,
)

__all__ = [
    "PriceSource",
    "SettlementCalculator",
    "buffered_dispensation",
    "buffered_gas",
    "max_fee_per_gas",
    "ChainTokens",
    "RejectionReason",
    "SettlementConfig",
    "SettlementQuote",
    "SettlementRejection",
]
