import hashlib
from io import BytesIO
from typing import Optional

from ecdsa import SECP256k1, SigningKey
from loguru import logger

from lnurlbot.core.context import LnurlContext
from lnurlbot.core.models import (
    HandleLnurlOpts,
    LnurlAuthParams,
    LnurlPayParams,
    LnurlWithdrawParams,
    NotificationKind,
    NotificationMessage,
    User,
)
from lnurlbot.exceptions import (
    InvoiceError,
    LnurlDecodeError,
    LnurlError,
    LnurlRemoteError,
    LnurlUnsupportedError,
    PaymentError,
)
from lnurlbot.helpers import sats
from lnurlbot.lnurl import fetch_lnurl_params, lnurl_get
from lnurlbot.settings import settings
from lnurlbot.tasks import create_task

from .lnurlpay import negotiate_pay
from .notifications import notify_error


def lnurlauth_key(host: str, user_id: int, secret: Optional[str] = None) -> SigningKey:
    """
    The linking key of a user for a service. Derived from the user id and
    the bot secret only, so nothing has to be stored for it.
    """
    secret = settings.bot_token if secret is None else secret
    seed = hashlib.sha256(f"lnurlkeyseed:{host}:{user_id}:{secret}".encode()).digest()
    return SigningKey.from_string(seed, curve=SECP256k1, hashfunc=hashlib.sha256)


def int_to_bytes_suitable_der(x: int) -> bytes:
    """for strict DER we need to encode the integer with some quirks"""
    b = x.to_bytes((x.bit_length() + 7) // 8, "big")

    if len(b) == 0:
        # ensure there's at least one byte when the int is zero
        return bytes([0])

    if b[0] & 0x80 != 0:
        # ensure it doesn't start with a 0x80 and so it isn't
        # interpreted as a negative number
        return bytes([0]) + b

    return b


def encode_strict_der(r: int, s: int, order: int) -> bytes:
    # low-S form
    if s > order // 2:
        s = order - s

    r_temp = int_to_bytes_suitable_der(r)
    s_temp = int_to_bytes_suitable_der(s)

    r_len = len(r_temp)
    s_len = len(s_temp)
    sign_len = 6 + r_len + s_len

    signature = BytesIO()
    signature.write(0x30.to_bytes(1, "big", signed=False))
    signature.write((sign_len - 2).to_bytes(1, "big", signed=False))
    signature.write(0x02.to_bytes(1, "big", signed=False))
    signature.write(r_len.to_bytes(1, "big", signed=False))
    signature.write(r_temp)
    signature.write(0x02.to_bytes(1, "big", signed=False))
    signature.write(s_len.to_bytes(1, "big", signed=False))
    signature.write(s_temp)

    return signature.getvalue()


def sign_lnurlauth_challenge(key: SigningKey, k1_hex: str) -> bytes:
    try:
        k1 = bytes.fromhex(k1_hex)
    except ValueError as exc:
        raise LnurlDecodeError(f"Invalid k1 '{k1_hex}'.") from exc
    if len(k1) != 32:
        raise LnurlDecodeError(f"k1 must be 32 bytes, got {len(k1)}.")
    return key.sign_digest_deterministic(k1, sigencode=encode_strict_der)


async def perform_lnurlauth(
    ctx: LnurlContext, user: User, params: LnurlAuthParams, opts: HandleLnurlOpts
) -> str:
    """
    Logs the user in to `params.host`, returns the linking public key.
    `login_silently` only mutes the success notification.
    """
    key = lnurlauth_key(params.host, user.id)
    sig = sign_lnurlauth_challenge(key, params.k1)
    assert key.verifying_key, "lnurl-auth verifying_key does not exist"
    pubkey = key.verifying_key.to_string("compressed").hex()

    await lnurl_get(params.callback, {"sig": sig.hex(), "key": pubkey})

    if not opts.login_silently:
        await ctx.notifier.notify(
            user,
            NotificationMessage(
                kind=NotificationKind.lnurl_auth_success,
                values={"Host": params.host, "PublicKey": pubkey},
            ),
        )
        create_task(ctx.notifier.track(user, "lnurl-auth", {"domain": params.host}))
    return pubkey


async def perform_lnurlwithdraw(
    ctx: LnurlContext,
    user: User,
    params: LnurlWithdrawParams,
    opts: HandleLnurlOpts,
) -> str:
    """
    Asks the service to pay an invoice for its maximum withdrawable amount.
    The service sets the amount, so the invoice size limit does not apply.
    Returns the invoice, settling it is up to the service.
    """
    invoice = await ctx.wallet.create_invoice(
        user,
        params.max_withdrawable,
        memo=params.default_description,
        ignore_size_limit=True,
        skip_qr=True,
        message_id=opts.message_id,
    )
    if not invoice.ok or not invoice.payment_request:
        raise InvoiceError(
            invoice.error_message or "Could not create an invoice.", status="failed"
        )

    logger.debug(
        f"sending invoice to lnurl callback {params.callback}: "
        f"{invoice.payment_request}, k1: {params.k1}"
    )
    await lnurl_get(params.callback, {"k1": params.k1, "pr": invoice.payment_request})

    create_task(
        ctx.notifier.track(
            user, "lnurl-withdraw", {"sats": sats(params.max_withdrawable)}
        )
    )
    return invoice.payment_request


async def handle_lnurl(
    ctx: LnurlContext,
    user: User,
    lnurl_text: str,
    opts: Optional[HandleLnurlOpts] = None,
) -> None:
    """
    Entry point for any lnurl a user sends. Resolves it and runs the
    matching flow. Every failure ends in exactly one notification.
    """
    opts = opts or HandleLnurlOpts()

    try:
        params = await fetch_lnurl_params(lnurl_text)
    except (LnurlRemoteError, LnurlUnsupportedError) as exc:
        await notify_error(ctx, user, exc, reply_to=opts.message_id)
        return
    except LnurlError as exc:
        await notify_error(
            ctx,
            user,
            LnurlError(f"failed to fetch lnurl params: {exc.message}"),
        )
        return

    logger.debug(f"got lnurl params: {params!r}")

    try:
        if isinstance(params, LnurlAuthParams):
            await perform_lnurlauth(ctx, user, params, opts)
        elif isinstance(params, LnurlWithdrawParams):
            await perform_lnurlwithdraw(ctx, user, params, opts)
        elif isinstance(params, LnurlPayParams):
            await negotiate_pay(ctx, user, params, lnurl_text, opts)
        else:
            await ctx.notifier.notify(
                user,
                NotificationMessage(
                    kind=NotificationKind.lnurl_unsupported,
                    reply_to=opts.message_id,
                ),
            )
    except (LnurlError, PaymentError, InvoiceError) as exc:
        await notify_error(ctx, user, exc)
