import asyncio
import threading
from typing import Optional

from loguru import logger


class PaymentWaiter:
    """
    Single-use receive handle for the preimage of one payment hash.
    It is receiving from the moment it is registered until it got a value,
    timed out or was discarded.
    """

    def __init__(self, payment_hash: str, loop: asyncio.AbstractEventLoop):
        self.payment_hash = payment_hash
        self.loop = loop
        self.future: asyncio.Future[str] = loop.create_future()

    @property
    def receiving(self) -> bool:
        return not self.future.done()

    def _set(self, preimage: str) -> None:
        if not self.future.done():
            self.future.set_result(preimage)

    def deliver(self, preimage: str) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self.loop:
            self._set(preimage)
        else:
            self.loop.call_soon_threadsafe(self._set, preimage)

    async def wait(self, timeout: Optional[float] = None) -> str:
        """
        Suspends until the preimage arrives.
        :raises asyncio.TimeoutError: after `timeout` seconds, the handle is
        then no longer receiving
        """
        return await asyncio.wait_for(self.future, timeout)

    def cancel(self) -> None:
        if not self.future.done():
            self.future.cancel()


class PaymentWaiters:
    """
    Registry of everyone waiting for a payment to settle, by payment hash.
    `wait_for_payment` and `resolve_payment` may be called from any task or
    thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._waiters: dict[str, list[PaymentWaiter]] = {}

    def wait_for_payment(self, payment_hash: str) -> PaymentWaiter:
        waiter = PaymentWaiter(payment_hash, asyncio.get_running_loop())
        with self._lock:
            self._waiters.setdefault(payment_hash, []).append(waiter)
        return waiter

    def resolve_payment(self, payment_hash: str, preimage: str) -> int:
        """
        Hands `preimage` to every waiter of `payment_hash` that is still
        receiving, skips the others and forgets the hash.
        Returns the number of waiters the preimage was delivered to.
        """
        with self._lock:
            waiters = self._waiters.pop(payment_hash, [])

        delivered = 0
        for waiter in waiters:
            if not waiter.receiving:
                logger.debug(f"skipping waiter for {payment_hash}, not receiving.")
                continue
            waiter.deliver(preimage)
            delivered += 1

        if waiters:
            logger.debug(
                f"resolved {payment_hash} for {delivered}/{len(waiters)} waiters."
            )
        return delivered

    def discard(self, waiter: PaymentWaiter) -> None:
        waiter.cancel()
        with self._lock:
            waiters = self._waiters.get(waiter.payment_hash)
            if not waiters:
                return
            if waiter in waiters:
                waiters.remove(waiter)
            if not waiters:
                del self._waiters[waiter.payment_hash]

    def pending(self, payment_hash: str) -> int:
        with self._lock:
            return len(self._waiters.get(payment_hash, []))
