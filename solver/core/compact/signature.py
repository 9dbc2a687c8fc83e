"""
Sponsor and allocator signature verification.

A broadcast compact is authorized when both checks pass:

1. Sponsor: a sponsor signature over the domain-prefixed claim hash that
   recovers to ``compact.sponsor``, or, when no signature is supplied, an
   active registration of the claim hash on The Compact.
2. Allocator: an allocator signature over the same digest that recovers to
   the signing address of the allocator encoded in ``compact.id``.

Both checks always run. Failures are returned as a ``VerificationResult``
naming the check that failed; nothing is raised past this module.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Tuple, Union

import structlog
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import keccak, to_bytes

from .claim_hash import COMPACT_REGISTRATION_TYPEHASH
from .models import BroadcastRequest, to_int
from .service import TheCompactService


logger = structlog.stdlib.get_logger(__name__)

ALLOCATOR_ID_BITS = 92
ALLOCATOR_ID_MASK = (1 << ALLOCATOR_ID_BITS) - 1
_S_MASK = (1 << 255) - 1


class AuthFailure(str, Enum):
    """Which authorization check rejected a compact."""

    SPONSOR = "sponsor"
    ALLOCATOR = "allocator"


@dataclass(frozen=True)
class VerificationResult:
    sponsor_valid: bool
    allocator_valid: bool
    is_onchain_registration: bool = False
    error: Optional[str] = None
    failure: Optional[AuthFailure] = None

    @property
    def is_valid(self) -> bool:
        return self.sponsor_valid and self.allocator_valid


def extract_allocator_id(compact_id: Union[str, int]) -> int:
    """Allocator id packed into a resource lock id (bits 160..251)."""
    return (to_int(compact_id) >> 160) & ALLOCATOR_ID_MASK


def split_signature(signature: Union[str, bytes]) -> Tuple[int, int, int]:
    """
    Split a signature into ``(v, r, s)`` with ``v`` in {0, 1}.

    Accepts 64-byte EIP-2098 compact signatures (``r || yParityAndS``) and
    65-byte ``r || s || v`` signatures with ``v`` in {0, 1, 27, 28}.
    """
    raw = signature if isinstance(signature, bytes) else to_bytes(hexstr=signature)

    if len(raw) == 64:
        r = int.from_bytes(raw[:32], "big")
        y_parity_and_s = int.from_bytes(raw[32:], "big")
        return y_parity_and_s >> 255, r, y_parity_and_s & _S_MASK

    if len(raw) == 65:
        r = int.from_bytes(raw[:32], "big")
        s = int.from_bytes(raw[32:64], "big")
        v = raw[64]
        if v >= 27:
            v -= 27
        if v not in (0, 1):
            raise ValueError(f"Invalid signature recovery id: {raw[64]}")
        return v, r, s

    raise ValueError(f"Invalid signature length: {len(raw)} bytes")


def signing_digest(claim_hash: str, domain_prefix: str) -> bytes:
    """keccak256(domainPrefix || claimHash)."""
    return keccak(to_bytes(hexstr=domain_prefix) + to_bytes(hexstr=claim_hash))


def recover_signer(digest: bytes, signature: Union[str, bytes]) -> str:
    """Recover the lower-cased signer address of ``digest``."""
    v, r, s = split_signature(signature)
    public_key = keys.Signature(vrs=(v, r, s)).recover_public_key_from_msg_hash(digest)
    return public_key.to_checksum_address().lower()


def verify_signature(
    claim_hash: str,
    signature: str,
    expected_signer: str,
    domain_prefix: str,
) -> bool:
    """True when ``signature`` over the prefixed claim hash recovers to ``expected_signer``."""
    try:
        digest = signing_digest(claim_hash, domain_prefix)
        recovered = recover_signer(digest, signature)
    except (ValueError, BadSignature, ValidationError) as e:
        logger.debug("Signature recovery failed", error=str(e))
        return False

    match = recovered == expected_signer.lower()
    logger.debug(
        "Recovered signer",
        recovered=recovered,
        expected=expected_signer.lower(),
        match=match,
    )
    return match


async def _verify_sponsor(
    request: BroadcastRequest,
    compact_service: TheCompactService,
    domain_prefix: str,
) -> Tuple[bool, bool, Optional[str]]:
    claim_hash = request.claim_hash
    sponsor = request.compact.sponsor

    if request.has_sponsor_signature:
        if verify_signature(claim_hash, request.sponsor_signature, sponsor, domain_prefix):
            return True, False, None
        return False, False, "Invalid sponsor signature provided"

    logger.debug("No sponsor signature provided, checking onchain registration")
    try:
        status = await compact_service.get_registration_status(
            request.origin_chain_id,
            sponsor,
            claim_hash,
            COMPACT_REGISTRATION_TYPEHASH,
        )
    except Exception as e:
        logger.error(
            "Registration status check failed",
            error=str(e),
            chain_id=request.origin_chain_id,
            sponsor=sponsor,
            claim_hash=claim_hash,
        )
        return False, False, "Failed to check onchain registration status"

    if status.is_active:
        return True, True, None
    return (
        False,
        False,
        "No sponsor signature provided (0x) and no active onchain registration found",
    )


def _verify_allocator(
    request: BroadcastRequest,
    domain_prefix: str,
    allocators: Mapping[int, str],
) -> Tuple[bool, Optional[str]]:
    allocator_id = extract_allocator_id(request.compact.id)
    signer = allocators.get(allocator_id)
    if signer is None:
        return False, f"No allocator found for ID: {allocator_id}"

    if verify_signature(request.claim_hash, request.allocator_signature, signer, domain_prefix):
        return True, None
    return False, "Invalid allocator signature"


async def verify_broadcast_request(
    request: BroadcastRequest,
    compact_service: TheCompactService,
    domain_prefix: str,
    allocators: Mapping[int, str],
) -> VerificationResult:
    """
    Authenticate a broadcast compact.

    Args:
        request: Request with its claim hash already attached.
        compact_service: Used for the registration lookup when the sponsor
            signature is absent.
        domain_prefix: ``0x1901 || domainSeparator`` of the origin chain.
        allocators: Allocator id -> signing address.

    Returns:
        VerificationResult; when both checks fail the sponsor reason is reported.
    """
    if not request.claim_hash:
        return VerificationResult(
            sponsor_valid=False,
            allocator_valid=False,
            error="Claim hash is required for signature verification",
            failure=AuthFailure.SPONSOR,
        )

    logger.info(
        "Verifying broadcast request",
        chain_id=request.origin_chain_id,
        sponsor=request.compact.sponsor,
        arbiter=request.compact.arbiter,
        nonce=request.compact.nonce,
        claim_hash=request.claim_hash,
    )

    sponsor_valid, onchain, sponsor_error = await _verify_sponsor(
        request, compact_service, domain_prefix
    )
    allocator_valid, allocator_error = _verify_allocator(request, domain_prefix, allocators)

    if not sponsor_valid:
        logger.error("Sponsor verification failed", reason=sponsor_error)
        return VerificationResult(
            sponsor_valid=False,
            allocator_valid=allocator_valid,
            is_onchain_registration=onchain,
            error=sponsor_error,
            failure=AuthFailure.SPONSOR,
        )

    if not allocator_valid:
        logger.error("Allocator verification failed", reason=allocator_error)
        return VerificationResult(
            sponsor_valid=True,
            allocator_valid=False,
            is_onchain_registration=onchain,
            error=allocator_error,
            failure=AuthFailure.ALLOCATOR,
        )

    return VerificationResult(
        sponsor_valid=True,
        allocator_valid=True,
        is_onchain_registration=onchain,
    )
