from .core.context import LnurlContext
from .core.services import (
    handle_lnurl,
    handle_lnurl_pay_confirmation,
    resume_pending_reply,
)
from .exceptions import InvoiceError, LnurlError, PaymentError
from .waiters import PaymentWaiters

__all__ = [
    "LnurlContext",
    "PaymentWaiters",
    "handle_lnurl",
    "handle_lnurl_pay_confirmation",
    "resume_pending_reply",
    "InvoiceError",
    "LnurlError",
    "PaymentError",
]
