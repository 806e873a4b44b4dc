import asyncio

import pytest

from lnurlbot.tasks import create_task, payment_listener
from lnurlbot.utils.crypto import random_secret_and_hash
from lnurlbot.waiters import PaymentWaiters
from lnurlbot.wallets.base import PaymentSettled
from lnurlbot.wallets.fake import FakeWallet


@pytest.mark.anyio
async def test_resolve_without_waiters(waiters: PaymentWaiters):
    assert waiters.resolve_payment("00" * 32, "11" * 32) == 0
    assert waiters.pending("00" * 32) == 0


@pytest.mark.anyio
async def test_all_waiters_receive_the_preimage(waiters: PaymentWaiters):
    preimage, payment_hash = random_secret_and_hash()
    first = waiters.wait_for_payment(payment_hash)
    second = waiters.wait_for_payment(payment_hash)
    assert waiters.pending(payment_hash) == 2

    assert waiters.resolve_payment(payment_hash, preimage) == 2

    assert await first.wait(timeout=1) == preimage
    assert await second.wait(timeout=1) == preimage
    assert waiters.pending(payment_hash) == 0


@pytest.mark.anyio
async def test_resolve_before_wait(waiters: PaymentWaiters):
    preimage, payment_hash = random_secret_and_hash()
    waiter = waiters.wait_for_payment(payment_hash)
    waiters.resolve_payment(payment_hash, preimage)
    assert await waiter.wait(timeout=1) == preimage


@pytest.mark.anyio
async def test_timed_out_waiter_is_skipped(waiters: PaymentWaiters):
    preimage, payment_hash = random_secret_and_hash()
    late = waiters.wait_for_payment(payment_hash)
    with pytest.raises(asyncio.TimeoutError):
        await late.wait(timeout=0.01)
    assert not late.receiving

    waiting = waiters.wait_for_payment(payment_hash)
    assert waiters.resolve_payment(payment_hash, preimage) == 1
    assert await waiting.wait(timeout=1) == preimage
    assert waiters.pending(payment_hash) == 0


@pytest.mark.anyio
async def test_discarded_waiter(waiters: PaymentWaiters):
    preimage, payment_hash = random_secret_and_hash()
    waiter = waiters.wait_for_payment(payment_hash)
    waiters.discard(waiter)

    assert not waiter.receiving
    assert waiters.pending(payment_hash) == 0
    assert waiters.resolve_payment(payment_hash, preimage) == 0


@pytest.mark.anyio
async def test_other_hashes_are_untouched(waiters: PaymentWaiters):
    preimage, payment_hash = random_secret_and_hash()
    _, other_hash = random_secret_and_hash()
    waiters.wait_for_payment(payment_hash)
    other = waiters.wait_for_payment(other_hash)

    waiters.resolve_payment(payment_hash, preimage)

    assert other.receiving
    assert waiters.pending(other_hash) == 1


@pytest.mark.anyio
async def test_resolve_from_another_thread(waiters: PaymentWaiters):
    preimage, payment_hash = random_secret_and_hash()
    waiter = waiters.wait_for_payment(payment_hash)

    delivered = await asyncio.to_thread(
        waiters.resolve_payment, payment_hash, preimage
    )

    assert delivered == 1
    assert await waiter.wait(timeout=1) == preimage


@pytest.mark.anyio
async def test_payment_listener(wallet: FakeWallet, waiters: PaymentWaiters):
    preimage, payment_hash = random_secret_and_hash()
    _, bad_hash = random_secret_and_hash()
    valid = waiters.wait_for_payment(payment_hash)
    invalid = waiters.wait_for_payment(bad_hash)

    listener = create_task(payment_listener(wallet, waiters))
    try:
        # a preimage that does not hash to the payment hash is dropped
        await wallet.queue.put(PaymentSettled(bad_hash, preimage))
        await wallet.queue.put(PaymentSettled(payment_hash, preimage))

        assert await valid.wait(timeout=1) == preimage
        assert invalid.receiving
        assert waiters.pending(bad_hash) == 1
    finally:
        listener.cancel()
