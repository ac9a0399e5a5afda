"""
RedisQuotaStore against fakeredis, so DEDUCT_SCRIPT itself is executed
(needs the ``lua`` extra of fakeredis).
"""
import asyncio
from datetime import date

import fakeredis
import pytest

from sentiment_api.quota import (
    QuotaExceeded,
    QuotaGate,
    RedisQuotaStore,
    Unauthorized,
)

TODAY = date(2026, 10, 19)
ALLOTMENT = 100


def _store():
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    return RedisQuotaStore(client)


def _gate(store):
    return QuotaGate(store, ALLOTMENT, clock=lambda: TODAY)


@pytest.mark.asyncio
async def test_script_deducts_then_refuses_without_touching_balance():
    store = _store()
    await store.provision("key-1", "2026-10-19", 50)
    gate = _gate(store)

    assert await gate.try_deduct("key-1", 30) == 20
    with pytest.raises(QuotaExceeded):
        await gate.try_deduct("key-1", 30)
    assert await store.get_balance("key-1") == 20
    assert await gate.token_count("key-1") == 20
    await store.close()


@pytest.mark.asyncio
async def test_script_resets_yesterdays_record():
    store = _store()
    await store.provision("key-1", "2026-10-18", 3)

    assert await _gate(store).try_deduct("key-1", 30) == 70
    assert await store.get_record("key-1") == ("2026-10-19", 70)
    await store.close()


@pytest.mark.asyncio
async def test_script_reports_unknown_key():
    store = _store()
    gate = _gate(store)

    with pytest.raises(Unauthorized):
        await gate.try_deduct("nobody", 1)
    with pytest.raises(Unauthorized):
        await gate.token_count("nobody")
    await store.close()


@pytest.mark.asyncio
async def test_script_never_overspends_under_concurrency():
    store = _store()
    await store.provision("shared", "2026-10-19", 100)
    gate = _gate(store)

    results = await asyncio.gather(
        *(gate.try_deduct("shared", 10) for _ in range(25)),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, int)]
    assert len(successes) == 10
    assert sum(isinstance(r, QuotaExceeded) for r in results) == 15
    assert await store.get_balance("shared") == 0
    await store.close()


@pytest.mark.asyncio
async def test_grant_then_read_record_through_redis():
    store = _store()
    gate = _gate(store)

    await gate.grant_free_tokens("new-key")

    assert await store.get_record("new-key") == ("2026-10-19", ALLOTMENT)
    assert await gate.token_count("new-key") == ALLOTMENT
    await store.close()
