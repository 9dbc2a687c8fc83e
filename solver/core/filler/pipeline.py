"""
Fill Pipeline

Drives one intent through

    Discovered -> OriginInfoResolved -> TargetInfoResolved -> RulesEvaluated
               -> Prepared -> {Filled | Rejected | Failed}

Protocol specifics live in a ``ProtocolAdapter``; the pipeline owns the
ordering, the short-circuit on the first failed rule and the mapping of
stage results to terminal states. Stages report expected rejections as a
failed ``Result``; any exception escaping a stage marks the intent
``Failed``. Nothing raised while processing one intent reaches the caller.
"""

import asyncio
from typing import Any, Generic, Iterable, List, Optional, Protocol, Sequence, Set, TypeVar

import structlog

from ...logging_config import bind_intent_context
from ..chain.client import ChainClient
from ..result import Result
from .allow_block import IntentRoute, is_allowed_intent
from .models import (
    BaseMetadata,
    FillOutcome,
    IntentState,
    OriginContext,
    Rule,
    RuleContext,
)


logger = structlog.stdlib.get_logger(__name__)

UNKNOWN_INTENT_ID = "unknown"

TIntent = TypeVar("TIntent")
TData = TypeVar("TData")


class ProtocolAdapter(Protocol[TIntent, TData]):
    """The protocol-specific steps of filling an intent."""

    metadata: BaseMetadata

    def intent_id(self, intent: TIntent) -> str:
        """Identifier used in logs and outcomes."""
        ...

    async def resolve_origin_info(
        self, intent: TIntent, origin: OriginContext, log: Any
    ) -> Result[TIntent]:
        """Resolve origin-chain details; may return the intent with derived fields attached."""
        ...

    async def resolve_target_info(self, intent: TIntent, log: Any) -> Result[Any]:
        """Resolve destination-chain details."""
        ...

    def routes(self, intent: TIntent, origin: OriginContext) -> Iterable[IntentRoute]:
        """(sender, destination, recipient) routes checked against the allow/block lists."""
        ...

    async def prepare(self, intent: TIntent, context: RuleContext) -> Result[TData]:
        """Shape the intent into the record the fill step consumes."""
        ...

    async def fill(self, intent: TIntent, data: TData, context: RuleContext) -> Result[List[str]]:
        """Submit the fill; returns the transaction hashes."""
        ...


class FillPipeline(Generic[TIntent, TData]):
    """
    Shared pipeline driver for every protocol.

    Usage:
        pipeline = FillPipeline(adapter, chain_client, rules)
        outcome = await pipeline.evaluate(intent, origin)

        # or, from an event source callback:
        pipeline.dispatch(intent, origin)
    """

    def __init__(
        self,
        adapter: ProtocolAdapter[TIntent, TData],
        chain_client: ChainClient,
        rules: Sequence[Rule],
    ):
        self.adapter = adapter
        self.chain_client = chain_client
        self.rules = list(rules)
        self._tasks: Set[asyncio.Task] = set()

    @property
    def protocol_name(self) -> str:
        return self.adapter.metadata.protocol_name

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def evaluate(self, intent: TIntent, origin: Optional[OriginContext] = None) -> FillOutcome:
        origin = origin or OriginContext()
        outcome = FillOutcome(protocol=self.protocol_name, intent_id=UNKNOWN_INTENT_ID)
        log = logger.bind(protocol=self.protocol_name)

        try:
            outcome.intent_id = str(self.adapter.intent_id(intent))
            with bind_intent_context(self.protocol_name, outcome.intent_id, origin.chain_id):
                log = logger.bind(intent=outcome.label)
                await self._run(intent, origin, outcome, log)
        except Exception as e:
            log.exception("Failed processing intent", error=str(e))
            outcome.fail(str(e))

        return outcome

    async def _run(
        self,
        intent: TIntent,
        origin: OriginContext,
        outcome: FillOutcome,
        log: Any,
    ) -> None:
        resolved = await self.adapter.resolve_origin_info(intent, origin, log)
        if not resolved.success:
            log.info("Could not resolve origin info", error=resolved.error)
            outcome.reject(resolved.error, resolved.reason)
            return
        if resolved.data is not None:
            intent = resolved.data
        outcome.advance(IntentState.ORIGIN_INFO_RESOLVED)

        target = await self.adapter.resolve_target_info(intent, log)
        if not target.success:
            log.info("Could not resolve target info", error=target.error)
            outcome.reject(target.error, target.reason)
            return
        outcome.advance(IntentState.TARGET_INFO_RESOLVED)

        log.info("Intent Indexed", origin=origin.chain_name, block=origin.block_number)

        context = RuleContext(
            chain_client=self.chain_client,
            log=log,
            metadata=self.adapter.metadata,
            origin=origin,
        )

        evaluation = await self._evaluate_rules(intent, origin, context)
        if not evaluation.success:
            log.error("Failed evaluating filling Intent", error=evaluation.error)
            outcome.reject(evaluation.error, evaluation.reason)
            return
        outcome.advance(IntentState.RULES_EVALUATED)

        prepared = await self.adapter.prepare(intent, context)
        if not prepared.success:
            log.error("Failed preparing Intent", error=prepared.error)
            outcome.reject(prepared.error, prepared.reason)
            return
        outcome.advance(IntentState.PREPARED)

        log.info("Filling Intent")
        filled = await self.adapter.fill(intent, prepared.data, context)
        if not filled.success:
            log.info("Intent not filled", error=filled.error, reason=filled.reason)
            outcome.reject(filled.error, filled.reason)
            return

        outcome.transaction_hashes = list(filled.data or [])
        outcome.advance(IntentState.FILLED)
        log.info("Intent filled", transactions=outcome.transaction_hashes)

    async def _evaluate_rules(
        self,
        intent: TIntent,
        origin: OriginContext,
        context: RuleContext,
    ) -> Result[str]:
        lists = self.adapter.metadata.allow_block_lists
        if not is_allowed_intent(lists, self.adapter.routes(intent, origin)):
            return Result.fail("Not allowed intent", reason="not_allowed")

        for rule in self.rules:
            result = await rule(intent, context)
            if not result.success:
                return Result.fail(
                    result.error or "Rule failed",
                    reason=result.reason or getattr(rule, "__name__", None),
                )
            context.log.debug("Rule passed", rule=getattr(rule, "__name__", None), note=result.data)

        return Result.ok("Intent passed all rules")

    def dispatch(self, intent: TIntent, origin: Optional[OriginContext] = None) -> asyncio.Task:
        """Process ``intent`` in its own task; no ordering across intents."""
        task = asyncio.create_task(self.evaluate(intent, origin))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> List[FillOutcome]:
        """Wait for every dispatched intent to finish."""
        if not self._tasks:
            return []
        return list(await asyncio.gather(*self._tasks))
