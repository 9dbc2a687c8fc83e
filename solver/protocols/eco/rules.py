"""Eco rules."""

import time
from typing import Callable, Dict, List

from ...core.filler.models import Rule, RuleContext, RuleFactory
from ...core.result import Result
from .models import IntentCreatedArgs


DEFAULT_EXPIRY_BUFFER = 60  # seconds


def intent_not_expired(
    buffer: int = DEFAULT_EXPIRY_BUFFER, clock: Callable[[], float] = time.time
) -> Rule:
    async def intent_not_expired(intent: IntentCreatedArgs, context: RuleContext) -> Result[str]:
        if intent.expiry_time <= int(clock()) + buffer:
            return Result.fail(
                f"Intent expires at {intent.expiry_time}, within {buffer}s",
                reason="intent_expiring",
            )
        return Result.ok("Intent not expired")

    return intent_not_expired


def rewards_declared() -> Rule:
    async def rewards_declared(intent: IntentCreatedArgs, context: RuleContext) -> Result[str]:
        if len(intent.reward_tokens) != len(intent.reward_amounts):
            return Result.fail(
                "Reward tokens and amounts differ in length", reason="invalid_rewards"
            )
        if not any(intent.reward_amounts):
            return Result.fail("Intent carries no reward", reason="no_reward")
        return Result.ok("Intent carries a reward")

    return rewards_declared


RULE_FACTORIES: Dict[str, RuleFactory] = {
    "intentNotExpired": lambda args=None: intent_not_expired(
        int(args[0]) if args else DEFAULT_EXPIRY_BUFFER
    ),
    "rewardsDeclared": lambda args=None: rewards_declared(),
}


def base_rules() -> List[Rule]:
    return [intent_not_expired(), rewards_declared()]
