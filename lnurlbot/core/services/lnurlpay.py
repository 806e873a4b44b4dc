import asyncio
import json
from typing import Optional, Union

from bolt11 import Bolt11Exception
from bolt11 import decode as bolt11_decode
from loguru import logger
from pydantic import ValidationError

from lnurlbot.core.context import LnurlContext
from lnurlbot.core.crud import check_proxy_balance
from lnurlbot.core.models import (
    AesAction,
    DocumentMessage,
    HandleLnurlOpts,
    Invoice,
    LnurlPayActionResponse,
    LnurlPayParams,
    MessageAction,
    NotificationKind,
    NotificationMessage,
    PayPromptMessage,
    PendingPayRequest,
    SuccessAction,
    UrlAction,
    User,
    pending_reply_key,
)
from lnurlbot.exceptions import (
    LedgerInvariantError,
    LnurlDecodeError,
    LnurlError,
    LnurlProtocolError,
    PaymentError,
)
from lnurlbot.helpers import sats, url_host
from lnurlbot.lnurl import lnurl_get, to_bech32_lnurl
from lnurlbot.settings import settings
from lnurlbot.tasks import create_task
from lnurlbot.utils.crypto import calculate_hash, verify_preimage
from lnurlbot.waiters import PaymentWaiter
from lnurlbot.wallets.base import PaymentResponse

from .notifications import notify_error


def should_pay_without_prompt(fixed_amount: int, threshold: Optional[int]) -> bool:
    """Small fixed amounts below the caller's threshold skip the prompt."""
    return (
        fixed_amount > 0
        and threshold is not None
        and fixed_amount < threshold + settings.lnurl_pay_grace_msat
    )


async def negotiate_pay(
    ctx: LnurlContext,
    user: User,
    params: LnurlPayParams,
    lnurl_text: str,
    opts: HandleLnurlOpts,
) -> Optional[int]:
    """
    Either pays right away or prompts the user for the amount. Returns the
    id of the prompt message, which keys the pending request in the cache.
    """
    fixed_amount = params.fixed_amount
    host = params.callback_host

    create_task(
        ctx.notifier.track(
            user,
            "lnurl-pay",
            {
                "domain": host,
                "fixed": sats(fixed_amount),
                "max": sats(params.max_sendable),
                "min": sats(params.min_sendable),
            },
        )
    )

    if should_pay_without_prompt(fixed_amount, opts.pay_without_prompt_if):
        await lnurlpay_fetch_invoice_and_pay(
            ctx,
            user,
            fixed_amount,
            params.callback,
            params.encoded_metadata,
            lnurl_text,
            opts.message_id,
        )
        return None

    metadata = params.metadata
    values = {
        "Domain": host,
        "FixedAmount": sats(fixed_amount),
        "Max": sats(params.max_sendable),
        "Min": sats(params.min_sendable),
        "Text": metadata.description,
    }
    if ctx.dollar_rate:
        values["USD"] = await ctx.dollar_rate.get_dollar_price(
            fixed_amount or params.min_sendable
        )

    image = metadata.image
    prompt = PayPromptMessage(
        values=values,
        fixed_amount=fixed_amount,
        image=image.data if image else None,
        image_extension=image.extension if image else None,
        reply_to=opts.message_id,
    )
    sent_id = await ctx.notifier.send_pay_prompt(user, prompt)

    pending = PendingPayRequest(
        metadata=params.encoded_metadata, url=params.callback, lnurl=lnurl_text
    )
    ctx.cache.set(
        pending_reply_key(user.id, sent_id),
        pending.model_dump_json(),
        expiry=settings.lnurl_pay_prompt_ttl,
    )
    return sent_id


def decode_invoice(bolt11: str) -> Invoice:
    try:
        invoice = bolt11_decode(bolt11)
    except Bolt11Exception as exc:
        raise LnurlDecodeError(f"Invalid bolt11 invoice: {exc!s}") from exc
    return Invoice(
        payment_hash=invoice.payment_hash,
        amount_msat=int(invoice.amount_msat or 0),
        description_hash=invoice.description_hash,
    )


def validate_pay_invoice(invoice: Invoice, msats: int, metadata: str) -> None:
    """
    The invoice must commit to the metadata we were shown and to the amount
    we asked for.
    :raises LnurlProtocolError: on either mismatch
    """
    description_hash = (invoice.description_hash or "").lower()
    if description_hash != calculate_hash(metadata):
        raise LnurlProtocolError("Got invoice with wrong description_hash")
    if invoice.amount_msat != msats:
        raise LnurlProtocolError("Got invoice with wrong amount.")


async def fetch_pay_invoice(
    callback: str, msats: int, metadata: str
) -> tuple[LnurlPayActionResponse, Invoice]:
    data = await lnurl_get(callback, {"amount": msats})
    try:
        res = LnurlPayActionResponse.model_validate(data)
    except ValidationError as exc:
        raise LnurlDecodeError(f"Invalid lnurl-pay response: {exc!s}") from exc
    logger.debug(f"got lnurl-pay values: {res!r}")

    invoice = decode_invoice(res.pr)
    validate_pay_invoice(invoice, msats, metadata)
    return res, invoice


async def check_ledger(ctx: LnurlContext) -> None:
    if settings.lnurlbot_proxy_account is None or ctx.db is None:
        return
    async with ctx.db.connect() as conn:
        await check_proxy_balance(settings.lnurlbot_proxy_account, conn=conn)


async def lnurlpay_fetch_invoice_and_pay(
    ctx: LnurlContext,
    user: User,
    msats: int,
    callback: str,
    metadata: str,
    lnurl_text: str,
    message_id: Optional[int] = None,
) -> Optional[str]:
    """
    Second stage of lnurl-pay: get the invoice for `msats`, check it against
    the metadata, pay it and report the outcome once the payment settles.
    Returns the payment hash when the payment was submitted.
    """
    try:
        encoded_lnurl = to_bech32_lnurl(lnurl_text)
    except LnurlDecodeError:
        encoded_lnurl = lnurl_text

    try:
        res, invoice = await fetch_pay_invoice(callback, msats, metadata)
        await check_ledger(ctx)
    except (LnurlError, LedgerInvariantError) as exc:
        await notify_error(ctx, user, exc)
        return None

    processing_id = await ctx.notifier.notify(
        user,
        NotificationMessage(
            kind=NotificationKind.processing, values={"Invoice": res.pr}
        ),
    )

    try:
        payment = await ctx.wallet.pay_invoice(user, res.pr, message_id=message_id)
    except PaymentError as exc:
        payment = PaymentResponse(ok=False, error_message=exc.message)

    if payment.failed:
        await notify_error(
            ctx,
            user,
            PaymentError(payment.error_message or "Payment failed.", status="failed"),
            reply_to=processing_id,
        )
        return None

    # the listener resolves by payment hash, whatever the backend checking_id is
    payment_hash = invoice.payment_hash
    waiter = ctx.waiters.wait_for_payment(payment_hash)
    if payment.preimage and verify_preimage(payment.preimage, payment_hash):
        ctx.waiters.resolve_payment(payment_hash, payment.preimage)

    if processing_id is not None:
        await ctx.notifier.delete_message(user, processing_id)

    create_task(
        wait_lnurlpay_success(
            ctx,
            user,
            waiter,
            res,
            invoice,
            callback,
            metadata,
            encoded_lnurl,
            message_id,
        )
    )
    return payment_hash


def resolve_success_action(
    action: SuccessAction, preimage: str
) -> tuple[str, str, Optional[str]]:
    """Returns the text, url and decipher error of a success action."""
    if isinstance(action, MessageAction):
        return action.message, "", None
    if isinstance(action, UrlAction):
        return action.description, action.url, None
    if isinstance(action, AesAction):
        try:
            return action.decrypt(preimage), "", None
        except ValueError as exc:
            logger.warning(f"could not decipher aes success action: {exc!s}")
            return "", "", str(exc)
    return "", "", None


async def wait_lnurlpay_success(
    ctx: LnurlContext,
    user: User,
    waiter: PaymentWaiter,
    res: LnurlPayActionResponse,
    invoice: Invoice,
    callback: str,
    metadata: str,
    encoded_lnurl: str,
    message_id: Optional[int] = None,
) -> None:
    try:
        preimage = await waiter.wait(timeout=settings.lnurl_pay_confirmation_timeout)
    except asyncio.TimeoutError:
        logger.warning(f"gave up waiting for lnurl-pay {invoice.payment_hash}.")
        ctx.waiters.discard(waiter)
        return

    logger.success(f"lnurl-pay {invoice.payment_hash} settled.")
    host = url_host(callback)

    try:
        # raw metadata, for checking it against the description_hash later
        await ctx.notifier.send_document(
            user,
            DocumentMessage(
                filename=f"{encoded_lnurl}.json",
                mime_type="text/json",
                content=metadata.encode(),
                caption=NotificationMessage(
                    kind=NotificationKind.lnurl_pay_metadata,
                    values={
                        "Domain": host,
                        "LNURL": encoded_lnurl,
                        "Hash": invoice.payment_hash,
                        "HashFirstChars": invoice.payment_hash[:5],
                    },
                ),
            ),
        )

        if res.success_action:
            text, url, decipher_error = resolve_success_action(
                res.success_action, preimage
            )
            # keep this the last message of the payment
            await asyncio.sleep(settings.lnurl_pay_success_delay)
            await ctx.notifier.notify(
                user,
                NotificationMessage(
                    kind=NotificationKind.lnurl_pay_success,
                    values={
                        "Domain": host,
                        "Text": text,
                        "URL": url,
                        "DecipherError": decipher_error or "",
                    },
                    reply_to=message_id,
                ),
            )
    except Exception as exc:
        logger.error(f"failed to report lnurl-pay {invoice.payment_hash}: {exc!s}")

    try:
        await check_ledger(ctx)
    except LedgerInvariantError as exc:
        logger.critical(f"ledger invariant violated after lnurl-pay: {exc!s}")


async def handle_lnurl_pay_confirmation(
    ctx: LnurlContext,
    user: User,
    msats: int,
    data: Union[PendingPayRequest, dict, str],
    message_id: Optional[int] = None,
) -> Optional[str]:
    """Continues an lnurl-pay with the amount the user confirmed or typed."""
    if isinstance(data, str):
        pending = PendingPayRequest.model_validate_json(data)
    elif isinstance(data, dict):
        pending = PendingPayRequest.model_validate(data)
    else:
        pending = data

    return await lnurlpay_fetch_invoice_and_pay(
        ctx,
        user,
        msats,
        pending.url,
        pending.metadata,
        pending.lnurl,
        message_id,
    )


async def resume_pending_reply(
    ctx: LnurlContext, user: User, prompt_message_id: int, msats: int
) -> bool:
    """
    Called when the user answers a prompt. Returns False if no lnurl-pay
    is pending for that message, the entry is consumed otherwise.
    """
    key = pending_reply_key(user.id, prompt_message_id)
    raw = ctx.cache.get(key)
    if not raw:
        return False
    data = json.loads(raw)
    if data.get("type") != "lnurlpay":
        return False
    ctx.cache.pop(key)

    await handle_lnurl_pay_confirmation(ctx, user, msats, data, prompt_message_id)
    return True
