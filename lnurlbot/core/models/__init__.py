from .ledger import AccountTxn, DbVersion
from .lnurl import (
    AesAction,
    HandleLnurlOpts,
    Invoice,
    LnurlAuthParams,
    LnurlParams,
    LnurlPayActionResponse,
    LnurlPayImage,
    LnurlPayMetadata,
    LnurlPayParams,
    LnurlWithdrawParams,
    MessageAction,
    PendingPayRequest,
    SuccessAction,
    UrlAction,
    pending_reply_key,
)
from .notifications import (
    DocumentMessage,
    NotificationKind,
    NotificationMessage,
    PayPromptMessage,
    render_notification,
)
from .users import User

__all__ = [
    # ledger
    "AccountTxn",
    "DbVersion",
    # lnurl
    "AesAction",
    "HandleLnurlOpts",
    "Invoice",
    "LnurlAuthParams",
    "LnurlParams",
    "LnurlPayActionResponse",
    "LnurlPayImage",
    "LnurlPayMetadata",
    "LnurlPayParams",
    "LnurlWithdrawParams",
    "MessageAction",
    "PendingPayRequest",
    "SuccessAction",
    "UrlAction",
    "pending_reply_key",
    # notifications
    "DocumentMessage",
    "NotificationKind",
    "NotificationMessage",
    "PayPromptMessage",
    "render_notification",
    # users
    "User",
]
