import asyncio
from collections.abc import AsyncGenerator
from datetime import datetime
from hashlib import sha256
from os import urandom
from typing import Optional

from bolt11 import (
    Bolt11,
    Bolt11Exception,
    MilliSatoshi,
    TagChar,
    Tags,
    decode,
    encode,
)
from loguru import logger

from lnurlbot.core.models import User
from lnurlbot.settings import settings
from lnurlbot.utils.crypto import fake_privkey

from .base import (
    InvoiceResponse,
    PaymentResponse,
    PaymentSettled,
    StatusResponse,
    Wallet,
)


class FakeWallet(Wallet):
    """
    Signs real bolt11 invoices with a key derived from `fake_wallet_secret`
    and settles payments to invoices it knows the preimage of.
    Preimages of foreign invoices can be taught with `register_preimage`.
    """

    def __init__(self) -> None:
        self.queue: asyncio.Queue = asyncio.Queue(0)
        self.payment_secrets: dict[str, str] = {}
        self.paid_invoices: set[str] = set()
        self.secret = settings.fake_wallet_secret
        self.privkey = fake_privkey(self.secret)

    async def cleanup(self):
        pass

    async def status(self) -> StatusResponse:
        logger.info(
            "FakeWallet funding source is for development and testing,"
            " payments only settle for invoices it knows the preimage of."
        )
        return StatusResponse(None, 1000000000)

    def register_preimage(self, preimage: str) -> str:
        payment_hash = sha256(bytes.fromhex(preimage)).hexdigest()
        self.payment_secrets[payment_hash] = preimage
        return payment_hash

    async def create_invoice(
        self,
        user: User,
        amount_msat: int,
        memo: Optional[str] = None,
        description_hash: Optional[bytes] = None,
        ignore_size_limit: bool = False,
        skip_qr: bool = False,
        message_id: Optional[int] = None,
        expiry: Optional[int] = None,
        **_,
    ) -> InvoiceResponse:
        if not ignore_size_limit and amount_msat > settings.lnurlbot_max_invoice_msat:
            return InvoiceResponse(
                ok=False,
                error_message=(
                    f"Invoice amount {amount_msat} msat exceeds the maximum of "
                    f"{settings.lnurlbot_max_invoice_msat} msat."
                ),
            )

        tags = Tags()
        if description_hash:
            tags.add(TagChar.description_hash, description_hash.hex())
        else:
            tags.add(TagChar.description, memo or "")

        if expiry:
            tags.add(TagChar.expire_time, expiry)

        tags.add(TagChar.payment_secret, urandom(32).hex())

        preimage = urandom(32)
        payment_hash = sha256(preimage).hexdigest()
        tags.add(TagChar.payment_hash, payment_hash)
        self.payment_secrets[payment_hash] = preimage.hex()

        bolt11 = Bolt11(
            currency="bc",
            amount_msat=MilliSatoshi(amount_msat),
            date=int(datetime.now().timestamp()),
            tags=tags,
        )
        payment_request = encode(bolt11, self.privkey)
        logger.debug(f"FakeWallet created invoice for user {user.id}: {payment_hash}")

        return InvoiceResponse(
            ok=True,
            checking_id=payment_hash,
            payment_request=payment_request,
            preimage=preimage.hex(),
        )

    async def pay_invoice(
        self, user: User, bolt11: str, message_id: Optional[int] = None
    ) -> PaymentResponse:
        try:
            invoice = decode(bolt11)
        except Bolt11Exception as exc:
            return PaymentResponse(ok=False, error_message=str(exc))

        preimage = self.payment_secrets.get(invoice.payment_hash)
        if not preimage:
            return PaymentResponse(
                ok=False, error_message="Only known invoices can be paid!"
            )
        if invoice.payment_hash in self.paid_invoices:
            return PaymentResponse(ok=False, error_message="Invoice already paid.")

        self.paid_invoices.add(invoice.payment_hash)
        await self.queue.put(PaymentSettled(invoice.payment_hash, preimage))
        return PaymentResponse(
            ok=True, checking_id=invoice.payment_hash, fee_msat=0, preimage=preimage
        )

    async def paid_payments_stream(self) -> AsyncGenerator[PaymentSettled, None]:
        while settings.lnurlbot_running:
            value: PaymentSettled = await self.queue.get()
            yield value
