"""
The Compact claims: wire models, claim hash derivation and authorization.

Usage:
    from solver.core.compact import BroadcastRequest, derive_claim_hash

    request = BroadcastRequest.model_validate(payload)
    request = request.with_claim_hash(derive_claim_hash(request.compact))
"""

from .claim_hash import (
    COMPACT_REGISTRATION_TYPEHASH,
    COMPACT_TYPEHASH,
    MANDATE_TYPEHASH,
    derive_claim_hash,
    derive_witness_hash,
    domain_prefix,
    domain_separator,
)
from .models import BroadcastContext, BroadcastRequest, CompactMessage, Mandate
from .service import RegistrationStatus, TheCompactService
from .signature import (
    AuthFailure,
    VerificationResult,
    extract_allocator_id,
    verify_broadcast_request,
    verify_signature,
)

__all__ = [
    "COMPACT_REGISTRATION_TYPEHASH",
    "COMPACT_TYPEHASH",
    "MANDATE_TYPEHASH",
    "derive_claim_hash",
    "derive_witness_hash",
    "domain_prefix",
    "domain_separator",
    "BroadcastContext",
    "BroadcastRequest",
    "CompactMessage",
    "Mandate",
    "RegistrationStatus",
    "TheCompactService",
    "AuthFailure",
    "VerificationResult",
    "extract_allocator_id",
    "verify_broadcast_request",
    "verify_signature",
]
