"""
Tests for per-chain nonce sequencing.
"""

import asyncio
import gc

import pytest

from solver.core.execution.nonce_manager import NonceSequencer


class SlowCounter:
    """Transaction count source that yields before answering."""

    def __init__(self, start=7, fail_times=0):
        self.start = start
        self.fail_times = fail_times
        self.fetches = 0

    async def __call__(self, chain_id):
        self.fetches += 1
        await asyncio.sleep(0)
        if self.fail_times:
            self.fail_times -= 1
            raise ConnectionError("rpc down")
        return self.start


@pytest.mark.asyncio
async def test_concurrent_requests_get_distinct_sequential_nonces():
    counter = SlowCounter(start=7)
    sequencer = NonceSequencer(counter)

    nonces = await asyncio.gather(*(sequencer.next_nonce(1) for _ in range(10)))

    assert list(nonces) == list(range(7, 17))
    assert counter.fetches == 1


@pytest.mark.asyncio
async def test_chains_are_sequenced_independently():
    sequencer = NonceSequencer(SlowCounter(start=3))

    a = await sequencer.next_nonce(10)
    b = await sequencer.next_nonce(8453)
    c = await sequencer.next_nonce(10)

    assert (a, b, c) == (3, 3, 4)


@pytest.mark.asyncio
async def test_failed_seed_is_refetched_by_next_request():
    counter = SlowCounter(start=5, fail_times=1)
    sequencer = NonceSequencer(counter)

    with pytest.raises(ConnectionError):
        await sequencer.next_nonce(1)

    assert await sequencer.next_nonce(1) == 5
    assert await sequencer.next_nonce(1) == 6
    assert counter.fetches == 2


@pytest.mark.asyncio
async def test_peek_and_reset():
    counter = SlowCounter(start=2)
    sequencer = NonceSequencer(counter)

    assert sequencer.peek(1) is None
    await sequencer.next_nonce(1)
    for _ in range(3):
        await asyncio.sleep(0)
    assert sequencer.peek(1) == 3

    sequencer.reset(1)
    assert sequencer.peek(1) is None
    assert await sequencer.next_nonce(1) == 2
    assert counter.fetches == 2


@pytest.mark.asyncio
async def test_for_client_seeds_from_pending_count(chain_client):
    chain_client.transaction_counts[8453] = 42
    sequencer = NonceSequencer.for_client(chain_client)

    assert await sequencer.next_nonce(8453) == 42
    assert await sequencer.next_nonce(8453) == 43


@pytest.mark.asyncio
async def test_failed_seed_leaves_no_unretrieved_task_exceptions():
    loop = asyncio.get_running_loop()
    reported = []
    loop.set_exception_handler(lambda loop, context: reported.append(context))
    try:
        sequencer = NonceSequencer(SlowCounter(fail_times=1))

        results = await asyncio.gather(
            *(sequencer.next_nonce(1) for _ in range(3)), return_exceptions=True
        )
        for _ in range(5):
            await asyncio.sleep(0)
        sequencer.reset()
        gc.collect()

        assert all(isinstance(result, ConnectionError) for result in results)
        assert reported == []
    finally:
        loop.set_exception_handler(None)
