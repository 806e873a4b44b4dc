from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Coroutine
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from lnurlbot.core.models import User


class StatusResponse(NamedTuple):
    error_message: str | None
    balance_msat: int


class InvoiceResponse(NamedTuple):
    ok: bool
    checking_id: str | None = None  # payment_hash
    payment_request: str | None = None
    error_message: str | None = None
    preimage: str | None = None

    @property
    def success(self) -> bool:
        return self.ok is True

    @property
    def failed(self) -> bool:
        return self.ok is False


class PaymentResponse(NamedTuple):
    # when ok is None it means we don't know if this succeeded
    ok: bool | None = None
    checking_id: str | None = None  # payment_hash
    fee_msat: int | None = None
    preimage: str | None = None
    error_message: str | None = None

    @property
    def success(self) -> bool:
        return self.ok is True

    @property
    def pending(self) -> bool:
        return self.ok is None

    @property
    def failed(self) -> bool:
        return self.ok is False


class PaymentSettled(NamedTuple):
    payment_hash: str
    preimage: str


class Wallet(ABC):
    """
    The payment capability of the bot. Every call acts on behalf of a user,
    the funding source keeps the per user accounting.
    """

    @abstractmethod
    async def cleanup(self):
        pass

    @abstractmethod
    def status(self) -> Coroutine[None, None, StatusResponse]:
        pass

    @abstractmethod
    def create_invoice(
        self,
        user: User,
        amount_msat: int,
        memo: str | None = None,
        description_hash: bytes | None = None,
        ignore_size_limit: bool = False,
        skip_qr: bool = False,
        message_id: int | None = None,
        **kwargs,
    ) -> Coroutine[None, None, InvoiceResponse]:
        pass

    @abstractmethod
    def pay_invoice(
        self, user: User, bolt11: str, message_id: int | None = None
    ) -> Coroutine[None, None, PaymentResponse]:
        pass

    @abstractmethod
    def paid_payments_stream(self) -> AsyncGenerator[PaymentSettled, None]:
        """Yields every outgoing payment once it is settled, with its preimage."""
        pass
