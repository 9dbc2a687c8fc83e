"""Hyperlane7683 rules."""

from typing import Dict, List

from ...core.filler.models import Rule, RuleContext, RuleFactory
from ...core.result import Result
from .models import OpenEventArgs


# Hyperlane7683 status constants are short strings stored as bytes32; UNKNOWN is empty
UNKNOWN_STATUS = "0x" + "00" * 32


def _as_hex(value) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value).lower()


def intent_not_filled() -> Rule:
    async def intent_not_filled(intent: OpenEventArgs, context: RuleContext) -> Result[str]:
        for instruction in intent.resolved_order.fill_instructions:
            settler = context.chain_client.contract(
                instruction.destination_chain_id, "Hyperlane7683", instruction.settler_address
            )
            status = _as_hex(await settler.call("orderStatus", bytes.fromhex(intent.order_id[2:])))
            if status != UNKNOWN_STATUS:
                context.log.info(
                    "Intent already processed",
                    chain_id=instruction.destination_chain_id,
                    status=status,
                )
                return Result.fail("Intent already filled", reason="already_filled")

        return Result.ok("Intent not yet filled")

    return intent_not_filled


RULE_FACTORIES: Dict[str, RuleFactory] = {
    "intentNotFilled": lambda args=None: intent_not_filled(),
}


def base_rules() -> List[Rule]:
    return [intent_not_filled()]
