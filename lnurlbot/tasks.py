from __future__ import annotations

import asyncio
import traceback
from collections.abc import Callable, Coroutine
from typing import TYPE_CHECKING

from loguru import logger

from lnurlbot.utils.crypto import verify_preimage
from lnurlbot.waiters import PaymentWaiters
from lnurlbot.wallets.base import Wallet

if TYPE_CHECKING:
    from lnurlbot.core.context import LnurlContext

tasks: list[asyncio.Task] = []


def create_task(coro: Coroutine) -> asyncio.Task:
    task = asyncio.create_task(coro)
    tasks.append(task)
    task.add_done_callback(_forget_task)
    return task


def _forget_task(task: asyncio.Task) -> None:
    if task in tasks:
        tasks.remove(task)


def create_permanent_task(
    func: Callable[[], Coroutine], name: str = "unnamed"
) -> asyncio.Task:
    return create_task(catch_everything_and_restart(func, name))


def cancel_all_tasks() -> None:
    for task in list(tasks):
        try:
            task.cancel()
        except Exception as exc:
            logger.warning(f"error while cancelling task: {exc!s}")


async def catch_everything_and_restart(
    func: Callable[[], Coroutine],
    name: str = "unnamed",
) -> Coroutine:
    try:
        return await func()
    except asyncio.CancelledError:
        raise  # because we must pass this up
    except Exception as exc:
        logger.error(f"exception in background task `{name}`: {exc!s}")
        logger.error(traceback.format_exc())
        logger.error("will restart the task in 5 seconds.")
        await asyncio.sleep(5)
        return await catch_everything_and_restart(func, name)


async def payment_listener(wallet: Wallet, waiters: PaymentWaiters) -> None:
    """
    Feeds settled outgoing payments from the funding source into the
    confirmation broker.

    Called by the bot startup sequence.
    """
    async for settled in wallet.paid_payments_stream():
        if not verify_preimage(settled.preimage, settled.payment_hash):
            logger.warning(
                f"funding source reported an invalid preimage for"
                f" {settled.payment_hash}, ignoring it."
            )
            continue
        logger.info(f"got a payment confirmation {settled.payment_hash}")
        waiters.resolve_payment(settled.payment_hash, settled.preimage)


def start_background_tasks(ctx: LnurlContext) -> list[asyncio.Task]:
    """
    Payment confirmations and cache invalidation for the lifetime of the bot.

    Called by the bot startup sequence.
    """
    return [
        create_permanent_task(
            lambda: payment_listener(ctx.wallet, ctx.waiters), "payment_listener"
        ),
        create_permanent_task(ctx.cache.invalidate_forever, "cache_invalidation"),
    ]
