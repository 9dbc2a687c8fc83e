"""
Tests for the shared fill pipeline driver.
"""

import asyncio
from typing import List

import pytest
import structlog

from solver.core.filler.allow_block import AllowBlockListItem, AllowBlockLists, IntentRoute
from solver.core.filler.models import BaseMetadata, FillOutcome, IntentState, OriginContext
from solver.core.filler.pipeline import FillPipeline
from solver.core.result import Result


class CountingRule:
    def __init__(self, name, passes=True):
        self.__name__ = name
        self.passes = passes
        self.calls = 0

    async def __call__(self, intent, context):
        self.calls += 1
        if self.passes:
            return Result.ok(f"{self.__name__} ok")
        return Result.fail(f"{self.__name__} failed", reason=self.__name__)


class FakeAdapter:
    def __init__(self, lists=None, fill_error=None, fill_result=None, origin_result=None):
        self.metadata = BaseMetadata(
            protocol_name="Test",
            allow_block_lists=lists or AllowBlockLists(),
        )
        self.fill_error = fill_error
        self.fill_result = fill_result or Result.ok(["0xabc"])
        self.origin_result = origin_result
        self.filled: List[dict] = []
        self.prepared = 0

    def intent_id(self, intent):
        return intent["id"]

    async def resolve_origin_info(self, intent, origin, log):
        if self.origin_result is not None:
            return self.origin_result
        return Result.ok(dict(intent, resolved=True))

    async def resolve_target_info(self, intent, log):
        return Result.ok(None)

    def routes(self, intent, origin):
        return [IntentRoute(intent["sender"], "base", intent["recipient"])]

    async def prepare(self, intent, context):
        self.prepared += 1
        return Result.ok({"intent": intent})

    async def fill(self, intent, data, context):
        if self.fill_error is not None:
            raise self.fill_error
        self.filled.append(intent)
        return self.fill_result


INTENT = {"id": "1", "sender": "0xaaa", "recipient": "0xbbb"}


@pytest.mark.asyncio
async def test_successful_intent_walks_every_state(chain_client):
    adapter = FakeAdapter()
    pipeline = FillPipeline(adapter, chain_client, [CountingRule("a"), CountingRule("b")])

    outcome = await pipeline.evaluate(INTENT, OriginContext(chain_name="optimism"))

    assert outcome.state == IntentState.FILLED
    assert outcome.states == [
        IntentState.DISCOVERED,
        IntentState.ORIGIN_INFO_RESOLVED,
        IntentState.TARGET_INFO_RESOLVED,
        IntentState.RULES_EVALUATED,
        IntentState.PREPARED,
        IntentState.FILLED,
    ]
    assert outcome.transaction_hashes == ["0xabc"]
    assert outcome.label == "Test-1"
    # the intent returned by origin resolution flows into later stages
    assert adapter.filled[0]["resolved"] is True


@pytest.mark.asyncio
async def test_first_failing_rule_short_circuits(chain_client):
    first, failing, never = CountingRule("first"), CountingRule("second", passes=False), CountingRule("third")
    adapter = FakeAdapter()
    pipeline = FillPipeline(adapter, chain_client, [first, failing, never])

    outcome = await pipeline.evaluate(INTENT)

    assert (first.calls, failing.calls, never.calls) == (1, 1, 0)
    assert outcome.state == IntentState.REJECTED
    assert outcome.reason == "second"
    assert adapter.prepared == 0
    assert adapter.filled == []


@pytest.mark.asyncio
async def test_blocked_intent_is_rejected_before_rules(chain_client):
    lists = AllowBlockLists(block_list=[AllowBlockListItem(recipient_address=["0xBBB"])])
    rule = CountingRule("rule")
    pipeline = FillPipeline(FakeAdapter(lists=lists), chain_client, [rule])

    outcome = await pipeline.evaluate(INTENT)

    assert outcome.state == IntentState.REJECTED
    assert outcome.error == "Not allowed intent"
    assert rule.calls == 0


@pytest.mark.asyncio
async def test_origin_failure_rejects(chain_client):
    adapter = FakeAdapter(origin_result=Result.fail("bad claim", reason="invalid_claim"))
    pipeline = FillPipeline(adapter, chain_client, [])

    outcome = await pipeline.evaluate(INTENT)

    assert outcome.state == IntentState.REJECTED
    assert outcome.reason == "invalid_claim"
    assert outcome.states == [IntentState.DISCOVERED, IntentState.REJECTED]


@pytest.mark.asyncio
async def test_fill_rejection_is_rejected_not_failed(chain_client):
    adapter = FakeAdapter(fill_result=Result.fail("unprofitable", reason="unprofitable"))
    pipeline = FillPipeline(adapter, chain_client, [])

    outcome = await pipeline.evaluate(INTENT)

    assert outcome.state == IntentState.REJECTED
    assert outcome.reason == "unprofitable"


@pytest.mark.asyncio
async def test_exception_marks_intent_failed_and_is_contained(chain_client):
    pipeline = FillPipeline(FakeAdapter(fill_error=RuntimeError("boom")), chain_client, [])

    outcome = await pipeline.evaluate(INTENT)

    assert outcome.state == IntentState.FAILED
    assert outcome.error == "boom"
    assert outcome.to_dict()["state"] == "failed"


@pytest.mark.asyncio
async def test_dispatch_runs_intents_concurrently(chain_client):
    pipeline = FillPipeline(FakeAdapter(), chain_client, [])

    pipeline.dispatch(dict(INTENT, id="1"))
    pipeline.dispatch(dict(INTENT, id="2"))
    assert pipeline.in_flight == 2

    outcomes = await pipeline.drain()
    await asyncio.sleep(0)

    assert sorted(o.intent_id for o in outcomes) == ["1", "2"]
    assert all(o.state == IntentState.FILLED for o in outcomes)
    assert pipeline.in_flight == 0


def test_terminal_outcome_cannot_advance():
    outcome = FillOutcome(protocol="Test", intent_id="1").reject("nope")

    with pytest.raises(ValueError):
        outcome.advance(IntentState.PREPARED)


@pytest.mark.asyncio
async def test_malformed_intent_without_id_fails_instead_of_raising(chain_client):
    adapter = FakeAdapter()
    pipeline = FillPipeline(adapter, chain_client, [])

    outcome = await pipeline.evaluate({"sender": "0xaaa"})

    assert outcome.state == IntentState.FAILED
    assert outcome.intent_id == "unknown"
    assert "id" in outcome.error
    assert adapter.prepared == 0


@pytest.mark.asyncio
async def test_intent_identity_is_bound_to_log_context(chain_client):
    seen = []

    async def capture(intent, context):
        seen.append(structlog.contextvars.get_contextvars())
        return Result.ok("captured")

    capture.__name__ = "capture"
    pipeline = FillPipeline(FakeAdapter(), chain_client, [capture])

    await pipeline.evaluate(INTENT, OriginContext(chain_id=10))

    assert seen == [{"protocol": "Test", "intent_id": "1", "chain_id": 10}]
    assert "intent_id" not in structlog.contextvars.get_contextvars()
