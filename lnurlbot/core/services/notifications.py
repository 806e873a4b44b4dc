from typing import Optional, Union

from loguru import logger

from lnurlbot.core.context import LnurlContext
from lnurlbot.core.models import NotificationKind, NotificationMessage, User
from lnurlbot.exceptions import (
    InvoiceError,
    LedgerInvariantError,
    LnurlError,
    LnurlRemoteError,
    LnurlUnsupportedError,
    PaymentError,
)

FlowError = Union[LnurlError, PaymentError, InvoiceError, LedgerInvariantError]


def error_notification(
    exc: FlowError, reply_to: Optional[int] = None
) -> NotificationMessage:
    """Maps a failed flow to the one notification the user gets for it."""
    if isinstance(exc, LnurlRemoteError):
        return NotificationMessage(
            kind=NotificationKind.lnurl_error,
            values={"Host": exc.host, "Reason": exc.reason},
            reply_to=reply_to,
        )
    if isinstance(exc, LnurlUnsupportedError):
        return NotificationMessage(
            kind=NotificationKind.lnurl_unsupported, reply_to=reply_to
        )
    if isinstance(exc, LedgerInvariantError):
        # the user never sees ledger internals
        return NotificationMessage(
            kind=NotificationKind.error,
            values={"Err": "Internal error, the operation was halted."},
            reply_to=reply_to,
        )
    return NotificationMessage(
        kind=NotificationKind.error, values={"Err": exc.message}, reply_to=reply_to
    )


async def notify_error(
    ctx: LnurlContext,
    user: User,
    exc: FlowError,
    reply_to: Optional[int] = None,
) -> None:
    if isinstance(exc, LedgerInvariantError):
        logger.critical(f"ledger invariant violated: {exc!s}")
    else:
        logger.debug(f"lnurl flow for user {user.id} failed: {exc!s}")
    await ctx.notifier.notify(user, error_notification(exc, reply_to))
