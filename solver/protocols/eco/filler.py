"""
Eco filler.

Fills intents created on an origin ``IntentSource`` by replaying their
ERC-20 transfers through the destination ``EcoAdapter``. The solver pays
the transfers from its own balance: preparation checks every token balance
and approves the adapter, the fill pays the Hyperlane fee quoted by
``fetchFee`` as native value, and once the HyperProver has recorded the
proof on the origin chain the rewards are withdrawn to the solver.
"""

import asyncio
from typing import Any, Callable, List, Optional

from ...core.chain.client import ChainClient
from ...core.chain.utils import is_zero_address, retrieve_token_balance
from ...core.errors import SubmissionError
from ...core.execution.executor import TransactionExecutor
from ...core.execution.nonce_manager import NonceSequencer
from ...core.filler.allow_block import IntentRoute
from ...core.filler.models import OriginContext, RuleContext
from ...core.filler.pipeline import FillPipeline
from ...core.filler.rules import build_rules
from ...core.result import Result
from .metadata import EcoMetadata
from .models import IntentCreatedArgs, IntentData
from .rules import RULE_FACTORIES, base_rules


def _bytes(value: str) -> bytes:
    return bytes.fromhex(value[2:])


class EcoAdapter:
    """Protocol steps for Eco intents."""

    def __init__(
        self,
        metadata: EcoMetadata,
        chain_client: ChainClient,
        nonces: NonceSequencer,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.metadata = metadata
        self.chain_client = chain_client
        self.nonces = nonces
        self.executor = TransactionExecutor(chain_client, nonces, metadata.priority_fee)
        self._sleep = sleep

    def intent_id(self, intent: IntentCreatedArgs) -> str:
        return intent.intent_hash

    async def resolve_origin_info(
        self, intent: IntentCreatedArgs, origin: OriginContext, log: Any
    ) -> Result[IntentCreatedArgs]:
        if origin.chain_id is None:
            return Result.fail("Intent origin chain is unknown", reason="unknown_origin")
        log.debug("Origin resolved", origin_chain_id=origin.chain_id, creator=intent.creator)
        return Result.ok(intent.with_origin(origin.chain_id))

    async def resolve_target_info(self, intent: IntentCreatedArgs, log: Any) -> Result[List[str]]:
        name = intent.destination_chain_name
        if name is None:
            return Result.fail(
                f"Unsupported destination chain {intent.destination_chain_id}",
                reason="unsupported_chain",
            )
        if self.metadata.adapter_for(intent.destination_chain_id) is None:
            return Result.fail("No adapter found for destination chain", reason="missing_adapter")
        log.debug("Targets resolved", targets=[name])
        return Result.ok([name])

    def routes(self, intent: IntentCreatedArgs, origin: OriginContext) -> List[IntentRoute]:
        return [
            IntentRoute(
                sender_address=intent.creator,
                destination_domain=intent.destination_chain_name,
                recipient_address=transfer.recipient,
            )
            for transfer in intent.transfers
        ]

    async def prepare(self, intent: IntentCreatedArgs, context: RuleContext) -> Result[IntentData]:
        chain_id = intent.destination_chain_id
        adapter = self.metadata.adapter_for(chain_id)
        filler_address = await self.chain_client.get_signer_address(chain_id)
        totals = intent.required_amounts()

        for token, amount in totals.items():
            balance = await retrieve_token_balance(
                self.chain_client, chain_id, token, filler_address
            )
            if balance < amount:
                context.log.info(
                    "Insufficient balance", token=token, balance=balance, required=amount
                )
                return Result.fail("Not enough tokens", reason="insufficient_balance")

        context.log.debug("Approving tokens", adapter=adapter.address)
        for token, amount in totals.items():
            if is_zero_address(token):
                continue
            erc20 = self.chain_client.contract(chain_id, "ERC20", token)
            await self.executor.submit(
                chain_id,
                token,
                erc20.encode("approve", adapter.address, amount),
                0,
                context.log,
                action="approve",
            )

        return Result.ok(IntentData(adapter=adapter.address, chain_id=chain_id))

    async def fill(
        self, intent: IntentCreatedArgs, data: IntentData, context: RuleContext
    ) -> Result[List[str]]:
        origin_chain_id = intent.origin_chain_id
        claimant = await self.chain_client.get_signer_address(origin_chain_id)
        adapter = self.chain_client.contract(data.chain_id, "EcoAdapter", data.adapter)
        intent_hash = _bytes(intent.intent_hash)

        fee = await adapter.call(
            "fetchFee", origin_chain_id, [intent_hash], [claimant], intent.prover
        )
        calldata = adapter.encode(
            "fulfillHyperInstant",
            origin_chain_id,
            intent.targets,
            [_bytes(call) for call in intent.data],
            intent.expiry_time,
            _bytes(intent.nonce),
            claimant,
            intent_hash,
            intent.prover,
        )
        tx_hash = await self.executor.submit(
            data.chain_id, data.adapter, calldata, int(fee), context.log, action="fill"
        )

        hashes = [tx_hash]
        withdrawal = await self.withdraw_rewards(intent, claimant, context.log)
        if withdrawal is not None:
            hashes.append(withdrawal)
        return Result.ok(hashes)

    async def withdraw_rewards(
        self, intent: IntentCreatedArgs, claimant: str, log: Any
    ) -> Optional[str]:
        """
        Wait for the origin HyperProver to prove the intent for ``claimant``
        and withdraw its rewards; returns the withdrawal hash.

XX        withdrawal is logged and returns None.
        """
        chain_id = intent.origin_chain_id
        source = self.metadata.source_for(chain_id)
        if source is None:
            log.warning("No IntentSource configured for origin chain", chain_id=chain_id)
            return None

        prover = self.chain_client.contract(chain_id, "HyperProver", intent.prover)
        intent_hash = _bytes(intent.intent_hash)

        for _ in range(self.metadata.proof_poll_attempts):
            proven_for = str(await prover.call("provenIntents", intent_hash)).lower()
            if proven_for == claimant.lower():
                break
            if not is_zero_address(proven_for):
                log.warning("Intent proven for another claimant", claimant=proven_for)
                return None
            await self._sleep(self.metadata.proof_poll_interval)
        else:
            log.warning(
                "Intent not proven, rewards not withdrawn",
                attempts=self.metadata.proof_poll_attempts,
            )
            return None

        intent_source = self.chain_client.contract(chain_id, "IntentSource", source.address)
        try:
            return await self.executor.submit(
                chain_id,
                source.address,
                intent_source.encode("withdrawRewards", intent_hash),
                0,
                log,
                action="withdrawRewards",
            )
        except SubmissionError as e:
            log.warning("Reward withdrawal failed", error=str(e))
            return None


def create(
    chain_client: ChainClient,
    nonces: NonceSequencer,
    metadata: EcoMetadata,
    sleep: Callable[[float], Any] = asyncio.sleep,
) -> FillPipeline[IntentCreatedArgs, IntentData]:
    """Build the Eco fill pipeline."""
    adapter = EcoAdapter(metadata, chain_client, nonces, sleep=sleep)
    rules = build_rules(base_rules(), RULE_FACTORIES, metadata.custom_rules)
    return FillPipeline(adapter, chain_client, rules)
