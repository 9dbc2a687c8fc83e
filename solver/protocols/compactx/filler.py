"""
CompactX filler.

Fills broadcast compacts by calling ``Tribunal.fill`` on the mandate chain.
The claim hash is derived once when the origin info is resolved and rides
on the request through the rules; the settlement calculator sizes the fill
and the nonce sequencer orders submissions per chain.
"""

from typing import Any, Callable, List, Optional

import time

from ...core.chain.chains import chain_name_for
from ...core.chain.client import ChainClient
from ...core.chain.models import TransactionRequest
from ...core.compact.claim_hash import derive_claim_hash
from ...core.compact.models import BroadcastRequest, to_int
from ...core.errors import ClaimHashError, SubmissionError
from ...core.execution.nonce_manager import NonceSequencer
from ...core.filler.allow_block import IntentRoute
from ...core.filler.models import OriginContext, RuleContext
from ...core.filler.pipeline import FillPipeline
from ...core.filler.rules import build_rules
from ...core.result import Result
from ...core.settlement.calculator import PriceSource, SettlementCalculator
from ...core.settlement.models import SettlementRejection
from .metadata import CompactXMetadata
from .rules import RULE_FACTORIES, base_rules


EMPTY_SIGNATURE = "0x" + "0" * 128


def encode_fill(request: BroadcastRequest, claimant: str, tribunal: Any) -> str:
    """ABI-encode ``Tribunal.fill(claim, mandate, claimant)`` for ``request``."""
    compact = request.compact
    mandate = compact.mandate
    sponsor_signature = request.sponsor_signature if request.has_sponsor_signature else EMPTY_SIGNATURE

    claim = (
        request.origin_chain_id,
        (
            compact.arbiter,
            compact.sponsor,
            to_int(compact.nonce),
            to_int(compact.expires),
            to_int(compact.id),
            to_int(compact.amount),
        ),
        bytes.fromhex(sponsor_signature[2:]),
        bytes.fromhex(request.allocator_signature[2:]),
    )
    mandate_args = (
        mandate.recipient,
        to_int(mandate.expires),
        mandate.token,
        to_int(mandate.minimum_amount),
        to_int(mandate.baseline_priority_fee),
        to_int(mandate.scaling_factor),
        bytes.fromhex(mandate.salt[2:]),
    )
    return tribunal.encode("fill", claim, mandate_args, claimant)


class CompactXAdapter:
    """Protocol steps for CompactX broadcast compacts."""

    def __init__(
        self,
        metadata: CompactXMetadata,
        chain_client: ChainClient,
        calculator: SettlementCalculator,
        nonces: NonceSequencer,
    ):
        self.metadata = metadata
        self.chain_client = chain_client
        self.calculator = calculator
        self.nonces = nonces

    def intent_id(self, request: BroadcastRequest) -> str:
        return request.compact.nonce

    async def resolve_origin_info(
        self, request: BroadcastRequest, origin: OriginContext, log: Any
    ) -> Result[BroadcastRequest]:
        try:
            claim_hash = derive_claim_hash(request.compact)
        except ClaimHashError as e:
            return Result.fail(e.message, reason="invalid_claim")

        if request.context.claim_hash and request.context.claim_hash.lower() != claim_hash:
            log.warning(
                "Broadcast claim hash differs from derived claim hash",
                broadcast=request.context.claim_hash,
                derived=claim_hash,
            )

        try:
            request = request.with_claim_hash(claim_hash)
        except ValueError as e:
            return Result.fail(str(e), reason="claim_hash_mismatch")

        log.info(
            "Processing fill request",
            chain_id=request.origin_chain_id,
            claim_hash=claim_hash,
        )
        return Result.ok(request)

    async def resolve_target_info(self, request: BroadcastRequest, log: Any) -> Result[Any]:
        return Result.ok(None)

    def routes(self, request: BroadcastRequest, origin: OriginContext) -> List[IntentRoute]:
        return [
            IntentRoute(
                sender_address=request.compact.sponsor,
                destination_domain=chain_name_for(request.mandate_chain_id),
                recipient_address=request.compact.mandate.recipient,
            )
        ]

    async def prepare(self, request: BroadcastRequest, context: RuleContext) -> Result[BroadcastRequest]:
        if not request.claim_hash:
            return Result.fail("Claim hash is required to fill", reason="missing_claim_hash")
        return Result.ok(request)

    async def fill(
        self, intent: BroadcastRequest, request: BroadcastRequest, context: RuleContext
    ) -> Result[List[str]]:
        chain_id = request.mandate_chain_id
        log = context.log
        log.debug("Evaluating fill", chain_id=chain_id)

        filler_address = await self.chain_client.get_signer_address(chain_id)
        tribunal = self.chain_client.contract(chain_id, "Tribunal", request.compact.mandate.tribunal)
        data = encode_fill(request, filler_address, tribunal)

        quote = await self.calculator.quote(request, data, filler_address)
        if isinstance(quote, SettlementRejection):
            return Result.fail(quote.message, reason=quote.reason.value)

        nonce = await self.nonces.next_nonce(chain_id)
        tx = TransactionRequest(
            chain_id=chain_id,
            to=quote.to,
            data=quote.data,
            value=quote.value,
            from_address=filler_address,
            max_fee_per_gas=quote.max_fee_per_gas,
            max_priority_fee_per_gas=quote.max_priority_fee_per_gas,
            gas_limit=quote.gas_limit,
            nonce=nonce,
        )

        try:
            receipt = await self.chain_client.send_transaction(chain_id, tx)
        except Exception as e:
            raise SubmissionError(f"Fill submission failed on chain {chain_id}: {e}") from e

        if not receipt.is_success:
            raise SubmissionError(
                f"Fill transaction {receipt.transaction_hash} reverted on chain {chain_id}",
                details={"transaction_hash": receipt.transaction_hash},
            )

        log.info(
            "Transaction submitted",
            hash=receipt.transaction_hash,
            block_explorer=self.chain_client.explorer_url(chain_id, receipt.transaction_hash),
            nonce=nonce,
            settlement_amount=quote.settlement_amount,
            minimum_amount=quote.minimum_amount,
            gas_cost_usd=quote.gas_cost_usd,
        )
        return Result.ok([receipt.transaction_hash])


def create(
    chain_client: ChainClient,
    prices: PriceSource,
    nonces: NonceSequencer,
    metadata: CompactXMetadata,
    clock: Callable[[], float] = time.time,
) -> FillPipeline[BroadcastRequest, BroadcastRequest]:
    """Build the CompactX fill pipeline."""
    calculator = SettlementCalculator(chain_client, prices, metadata.settlement_config())
    adapter = CompactXAdapter(metadata, chain_client, calculator, nonces)
    rules = build_rules(base_rules(clock), RULE_FACTORIES, metadata.custom_rules)
    return FillPipeline(adapter, chain_client, rules)
