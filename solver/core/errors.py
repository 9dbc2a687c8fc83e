"""
Error Classification

Defines the error taxonomy shared by the solving engine.

Transport errors are logged and trigger a reconnect or a dropped message.
Validation, authentication and resource errors are normally reported as
structured results; the exception types below exist for the few places
where a lower layer has to abort (claim hash derivation, price lookup).
Submission errors are the only ones allowed to escape the fill step.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories of errors for rejection and logging decisions."""

    TRANSPORT = "transport"            # Connection or single-message failures
    VALIDATION = "validation"          # Schema, unsupported chain/token, rules
    AUTHENTICATION = "authentication"  # Sponsor/allocator signature checks
    RESOURCE = "resource"              # Balance, profitability, price data
    SUBMISSION = "submission"          # Gas estimation or send failures


class SolverError(Exception):
    """Base class for solver errors."""

    category: ErrorCategory = ErrorCategory.SUBMISSION

    def __init__(
        self,
        message: str,
        category: Optional[ErrorCategory] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if category is not None:
            self.category = category
        self.details = details or {}


class ClaimHashError(SolverError):
    """A field required for claim hash derivation is missing or invalid."""

    category = ErrorCategory.VALIDATION


class UnsupportedChainError(SolverError):
    """The chain is not configured for the protocol."""

    category = ErrorCategory.VALIDATION

    def __init__(self, chain_id: Any):
        super().__init__(f"Unsupported chain ID: {chain_id}")
        self.chain_id = chain_id


class PriceUnavailableError(SolverError):
    """No price sample has been recorded for the chain."""

    category = ErrorCategory.RESOURCE

    def __init__(self, chain_id: int):
        super().__init__(f"No price data available for chain {chain_id}")
        self.chain_id = chain_id


class StalePriceError(SolverError):
    """The cached price is older than the staleness threshold (strict policy)."""

    category = ErrorCategory.RESOURCE

    def __init__(self, chain_id: int, age_seconds: float):
        super().__init__(
            f"Price data for chain {chain_id} is stale ({age_seconds:.1f}s old)"
        )
        self.chain_id = chain_id
        self.age_seconds = age_seconds


class SubmissionError(SolverError):
    """Gas estimation or transaction submission failed."""

    category = ErrorCategory.SUBMISSION
