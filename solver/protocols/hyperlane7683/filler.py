"""
Hyperlane7683 filler.

Fills ERC-7683 orders opened on an origin settler by calling ``fill`` on
each destination settler. The solver pays the ``maxSpent`` outputs from its
own balance: preparation checks the balances and approves ERC-20 spend to
the destination settler, then every fill instruction is submitted with the
native value owed on that chain.
"""

from collections import defaultdict
from typing import Any, Dict, List, Optional, Set, Tuple

from eth_abi import encode as abi_encode

from ...core.chain.chains import chain_name_for
from ...core.chain.client import ChainClient
from ...core.chain.utils import is_zero_address, retrieve_token_balance
from ...core.execution.executor import TransactionExecutor
from ...core.execution.nonce_manager import NonceSequencer
from ...core.filler.allow_block import IntentRoute
from ...core.filler.models import OriginContext, RuleContext
from ...core.filler.pipeline import FillPipeline
from ...core.filler.rules import build_rules
from ...core.result import Result
from .metadata import Hyperlane7683Metadata
from .models import FillInstruction, IntentData, OpenEventArgs, Output
from .rules import RULE_FACTORIES, base_rules


def filler_data(filler_address: str) -> bytes:
    """ABI-encoded bytes32 of the filler address, as the settler expects it."""
    return abi_encode(["bytes32"], [bytes.fromhex(filler_address[2:].rjust(64, "0"))])


def required_amounts(outputs: List[Output]) -> Dict[Tuple[int, str], int]:
    """Sum of ``maxSpent`` amounts per (chain id, token address)."""
    totals: Dict[Tuple[int, str], int] = defaultdict(int)
    for output in outputs:
        totals[(output.chain_id, output.token_address)] += output.amount
    return dict(totals)


def native_value(outputs: List[Output], chain_id: int) -> int:
    return sum(
        output.amount
        for output in outputs
        if output.chain_id == chain_id and is_zero_address(output.token_address)
    )


class Hyperlane7683Adapter:
    """Protocol steps for Hyperlane7683 orders."""

    def __init__(
        self,
        metadata: Hyperlane7683Metadata,
        chain_client: ChainClient,
        nonces: NonceSequencer,
    ):
        self.metadata = metadata
        self.chain_client = chain_client
        self.nonces = nonces
        self.executor = TransactionExecutor(chain_client, nonces, metadata.priority_fee)

    def intent_id(self, intent: OpenEventArgs) -> str:
        return intent.order_id

    async def resolve_origin_info(
        self, intent: OpenEventArgs, origin: OriginContext, log: Any
    ) -> Result[OpenEventArgs]:
        chain_id = intent.resolved_order.origin_chain_id
        if origin.chain_id is not None and origin.chain_id != chain_id:
            return Result.fail(
                f"Order origin chain {chain_id} does not match source chain {origin.chain_id}",
                reason="origin_mismatch",
            )
        log.debug("Origin resolved", origin_chain_id=chain_id, sender=intent.sender_address)
        return Result.ok(None)

    async def resolve_target_info(self, intent: OpenEventArgs, log: Any) -> Result[List[str]]:
        targets = []
        for instruction in intent.resolved_order.fill_instructions:
            name = chain_name_for(instruction.destination_chain_id)
            if name is None:
                return Result.fail(
                    f"Unsupported destination chain {instruction.destination_chain_id}",
                    reason="unsupported_chain",
                )
            targets.append(name)
        log.debug("Targets resolved", targets=targets)
        return Result.ok(targets)

    def routes(self, intent: OpenEventArgs, origin: OriginContext) -> List[IntentRoute]:
        return [
            IntentRoute(
                sender_address=intent.sender_address,
                destination_domain=recipient.destination_chain_name,
                recipient_address=recipient.recipient_address,
            )
            for recipient in intent.recipients
        ]

    def _settler_for(self, intent: OpenEventArgs, chain_id: int) -> Optional[FillInstruction]:
        for instruction in intent.resolved_order.fill_instructions:
            if instruction.destination_chain_id == chain_id:
                return instruction
        return None

    async def prepare(self, intent: OpenEventArgs, context: RuleContext) -> Result[IntentData]:
        order = intent.resolved_order
        totals = required_amounts(order.max_spent)

        for (chain_id, token), amount in totals.items():
            filler_address = await self.chain_client.get_signer_address(chain_id)
            balance = await retrieve_token_balance(self.chain_client, chain_id, token, filler_address)
            if balance < amount:
                return Result.fail(
                    f"Insufficient balance of {token} on chain {chain_id}: have {balance}, need {amount}",
                    reason="insufficient_balance",
                )
            if self._settler_for(intent, chain_id) is None:
                return Result.fail(
                    f"No fill instruction for destination chain {chain_id}",
                    reason="missing_fill_instruction",
                )

        for (chain_id, token), amount in totals.items():
            if is_zero_address(token):
                continue
            settler = self._settler_for(intent, chain_id).settler_address
            erc20 = self.chain_client.contract(chain_id, "ERC20", token)
            await self.executor.submit(
                chain_id,
                token,
                erc20.encode("approve", settler, amount),
                0,
                context.log,
                action="approve",
            )

        return Result.ok(
            IntentData(fill_instructions=order.fill_instructions, max_spent=order.max_spent)
        )

    async def fill(
        self, intent: OpenEventArgs, data: IntentData, context: RuleContext
    ) -> Result[List[str]]:
        hashes = []
        valued_chains: Set[int] = set()
        for instruction in data.fill_instructions:
            chain_id = instruction.destination_chain_id
            # the native amount owed on a chain rides on its first fill only
            value = 0 if chain_id in valued_chains else native_value(data.max_spent, chain_id)
            valued_chains.add(chain_id)
            filler_address = await self.chain_client.get_signer_address(chain_id)
            settler = self.chain_client.contract(chain_id, "Hyperlane7683", instruction.settler_address)
            calldata = settler.encode(
                "fill",
                bytes.fromhex(intent.order_id[2:]),
                bytes.fromhex(instruction.origin_data[2:]),
                filler_data(filler_address),
            )
            tx_hash = await self.executor.submit(
                chain_id,
                instruction.settler_address,
                calldata,
                value,
                context.log,
                action="fill",
            )
            hashes.append(tx_hash)

        return Result.ok(hashes)


def create(
    chain_client: ChainClient,
    nonces: NonceSequencer,
    metadata: Hyperlane7683Metadata,
) -> FillPipeline[OpenEventArgs, IntentData]:
    """Build the Hyperlane7683 fill pipeline."""
    adapter = Hyperlane7683Adapter(metadata, chain_client, nonces)
    rules = build_rules(base_rules(), RULE_FACTORIES, metadata.custom_rules)
    return FillPipeline(adapter, chain_client, rules)
