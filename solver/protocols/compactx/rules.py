"""
CompactX rules.

Each factory returns a rule ``(request, context) -> Result``. Base rules
run in this order: expirations, chains and tokens, arbiter and tribunal,
nonce, signatures, already filled. Only the last three read chain state.
"""

import time
from typing import Callable, Dict, List

from ...core.compact.claim_hash import claim_hash_bytes, derive_claim_hash
from ...core.compact.models import BroadcastRequest, to_int
from ...core.compact.service import TheCompactService
from ...core.compact.signature import verify_broadcast_request
from ...core.filler.models import Rule, RuleContext, RuleFactory
from ...core.result import Result
from .metadata import CompactXMetadata


DEFAULT_COMPACT_EXPIRATION_BUFFER = 60
DEFAULT_MANDATE_EXPIRATION_BUFFER = 10


def _metadata(context: RuleContext) -> CompactXMetadata:
    return context.metadata


def _claim_hash(request: BroadcastRequest) -> str:
    return request.claim_hash or derive_claim_hash(request.compact)


def check_expirations(clock: Callable[[], float] = time.time) -> Rule:
    async def check_expirations(request: BroadcastRequest, context: RuleContext) -> Result[str]:
        now = int(clock())
        info = _metadata(context).chain(request.origin_chain_id)
        compact_buffer = info.compact_expiration_buffer if info else DEFAULT_COMPACT_EXPIRATION_BUFFER
        mandate_buffer = info.mandate_expiration_buffer if info else DEFAULT_MANDATE_EXPIRATION_BUFFER

        if to_int(request.compact.expires) <= now + compact_buffer:
            return Result.fail(
                f"Compact must have at least {compact_buffer} seconds until expiration",
                reason="compact_expiring",
            )

        if to_int(request.compact.mandate.expires) <= now + mandate_buffer:
            return Result.fail(
                f"Mandate must have at least {mandate_buffer} seconds until expiration",
                reason="mandate_expiring",
            )

        return Result.ok("Intent is not expired")

    return check_expirations


def validate_chains_and_tokens() -> Rule:
    async def validate_chains_and_tokens(request: BroadcastRequest, context: RuleContext) -> Result[str]:
        metadata = _metadata(context)
        origin = metadata.chain(request.origin_chain_id)
        destination = metadata.chain(request.mandate_chain_id)

        if origin is None:
            return Result.fail(f"Origin {request.origin_chain_id} is not supported", reason="unsupported_chain")
        if destination is None:
            return Result.fail(
                f"Destination {request.mandate_chain_id} is not supported", reason="unsupported_chain"
            )

        claim_token = request.compact.claim_token
        if claim_token not in origin.token_addresses():
            return Result.fail(
                f"Claim token not supported {claim_token}, on chain {request.origin_chain_id}",
                reason="unsupported_token",
            )

        mandate_token = request.compact.mandate.token
        if mandate_token not in destination.token_addresses():
            return Result.fail(
                f"Destination token not supported {mandate_token}, on chain {request.mandate_chain_id}",
                reason="unsupported_token",
            )

        return Result.ok("Chains and tokens are Ok")

    return validate_chains_and_tokens


def validate_arbiter_and_tribunal() -> Rule:
    async def validate_arbiter_and_tribunal(request: BroadcastRequest, context: RuleContext) -> Result[str]:
        metadata = _metadata(context)
        origin = metadata.chain(request.origin_chain_id)
        destination = metadata.chain(request.mandate_chain_id)

        if origin is None or request.compact.arbiter != origin.arbiter:
            return Result.fail(
                f"Unsupported arbiter address {request.compact.arbiter}, on chain {request.origin_chain_id}",
                reason="unsupported_arbiter",
            )

        tribunal = request.compact.mandate.tribunal
        if destination is None or tribunal != destination.tribunal:
            return Result.fail(
                f"Unsupported tribunal address {tribunal}, on chain {request.mandate_chain_id}",
                reason="unsupported_tribunal",
            )

        return Result.ok("Arbiter and Tribunal are Ok")

    return validate_arbiter_and_tribunal


def verify_nonce() -> Rule:
    async def verify_nonce(request: BroadcastRequest, context: RuleContext) -> Result[str]:
        service = TheCompactService(context.chain_client, _metadata(context).compact_addresses())
        consumed = await service.has_consumed_allocator_nonce(
            request.origin_chain_id,
            to_int(request.compact.nonce),
            request.compact.arbiter,
        )
        if consumed:
            return Result.fail("Nonce has already been consumed", reason="nonce_consumed")
        return Result.ok("Nonce is Ok")

    return verify_nonce


def verify_signatures() -> Rule:
    async def verify_signatures(request: BroadcastRequest, context: RuleContext) -> Result[str]:
        metadata = _metadata(context)
        if request.claim_hash is None:
            request = request.with_claim_hash(derive_claim_hash(request.compact))

        verification = await verify_broadcast_request(
            request,
            TheCompactService(context.chain_client, metadata.compact_addresses()),
            metadata.domain_prefix(request.origin_chain_id),
            metadata.allocator_signers(),
        )
        if not verification.is_valid:
            return Result.fail(
                verification.error or "Could not verify signatures",
                reason=f"invalid_{verification.failure.value}_signature",
            )

        context.log.info(
            "Signature verification successful",
            registration="onchain" if verification.is_onchain_registration else "offchain",
        )
        return Result.ok("Signatures are Ok")

    return verify_signatures


def intent_not_filled() -> Rule:
    async def intent_not_filled(request: BroadcastRequest, context: RuleContext) -> Result[str]:
        tribunal = context.chain_client.contract(
            request.mandate_chain_id, "Tribunal", request.compact.mandate.tribunal
        )
        is_filled = await tribunal.call("filled", claim_hash_bytes(_claim_hash(request)))
        context.log.info("Intent filled status", is_filled=bool(is_filled))

        if is_filled:
            return Result.fail("Intent already filled", reason="already_filled")
        return Result.ok("Intent not yet filled")

    return intent_not_filled


# Rules selectable by name from customRules; none of them take arguments
RULE_FACTORIES: Dict[str, RuleFactory] = {
    "checkExpirations": lambda args=None: check_expirations(),
    "validateChainsAndTokens": lambda args=None: validate_chains_and_tokens(),
    "validateArbiterAndTribunal": lambda args=None: validate_arbiter_and_tribunal(),
    "verifyNonce": lambda args=None: verify_nonce(),
    "verifySignatures": lambda args=None: verify_signatures(),
    "intentNotFilled": lambda args=None: intent_not_filled(),
}


def base_rules(clock: Callable[[], float] = time.time) -> List[Rule]:
    return [
        check_expirations(clock),
        validate_chains_and_tokens(),
        validate_arbiter_and_tribunal(),
        verify_nonce(),
        verify_signatures(),
        intent_not_filled(),
    ]
