from .lnurl import (
    handle_lnurl,
    lnurlauth_key,
    perform_lnurlauth,
    perform_lnurlwithdraw,
)
from .lnurlpay import (
    handle_lnurl_pay_confirmation,
    lnurlpay_fetch_invoice_and_pay,
    negotiate_pay,
    resolve_success_action,
    resume_pending_reply,
    should_pay_without_prompt,
    validate_pay_invoice,
)
from .notifications import error_notification, notify_error

__all__ = [
    # lnurl
    "handle_lnurl",
    "lnurlauth_key",
    "perform_lnurlauth",
    "perform_lnurlwithdraw",
    # lnurlpay
    "handle_lnurl_pay_confirmation",
    "lnurlpay_fetch_invoice_and_pay",
    "negotiate_pay",
    "resolve_success_action",
    "resume_pending_reply",
    "should_pay_without_prompt",
    "validate_pay_invoice",
    # notifications
    "error_notification",
    "notify_error",
]
