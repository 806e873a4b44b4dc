import asyncio
from dataclasses import replace

import pytest
import pytest_asyncio

from lnurlbot.core.models import PendingPayRequest, pending_reply_key
from lnurlbot.tasks import start_background_tasks
from lnurlbot.utils.cache import Cache

pending = PendingPayRequest(
    metadata='[["text/plain", "hi"]]',
    url="https://service.com/cb",
    lnurl="LNURL1TEST",
)
reply_key = pending_reply_key(42, 1001)


@pytest_asyncio.fixture
async def cache():
    cache = Cache(interval=0.05)
    task = asyncio.create_task(cache.invalidate_forever())
    yield cache
    task.cancel()


@pytest.mark.asyncio
async def test_pending_reply_roundtrip(cache):
    cache.set(reply_key, pending.model_dump_json(), expiry=3600)

    assert reply_key == "reply:42:1001"
    assert PendingPayRequest.model_validate_json(cache.get(reply_key)) == pending
    assert cache.get("reply:42:1002", default="none") == "none"


@pytest.mark.asyncio
async def test_expired_on_read(cache):
    cache.set(reply_key, "value", expiry=0.01)
    await asyncio.sleep(0.02)
    assert cache.get(reply_key) is None
    assert reply_key not in cache._values


@pytest.mark.asyncio
async def test_unanswered_prompt_is_evicted(cache):
    cache.set(reply_key, "value", expiry=0.01)
    await asyncio.sleep(0.15)
    # nobody read the key, the invalidation task removed it
    assert reply_key not in cache._values


@pytest.mark.asyncio
async def test_pop_consumes_once(cache):
    cache.set(reply_key, "value")
    assert cache.pop(reply_key) == "value"
    assert cache.pop(reply_key, default="gone") == "gone"

    cache.set(reply_key, "value", expiry=0.01)
    await asyncio.sleep(0.02)
    assert cache.pop(reply_key) is None


@pytest.mark.anyio
async def test_startup_schedules_invalidation(ctx):
    ctx = replace(ctx, cache=Cache(interval=0.05))
    background = start_background_tasks(ctx)
    try:
        ctx.cache.set(reply_key, "value", expiry=0.01)
        await asyncio.sleep(0.15)
        assert reply_key not in ctx.cache._values
    finally:
        for task in background:
            task.cancel()
