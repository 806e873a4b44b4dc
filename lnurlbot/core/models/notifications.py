from enum import Enum
from typing import Optional

from pydantic import BaseModel


class NotificationKind(Enum):
    error = "error"
    lnurl_error = "lnurl_error"
    lnurl_auth_success = "lnurl_auth_success"
    lnurl_pay_prompt = "lnurl_pay_prompt"
    lnurl_pay_metadata = "lnurl_pay_metadata"
    lnurl_pay_success = "lnurl_pay_success"
    lnurl_unsupported = "lnurl_unsupported"
    qr_code_fail = "qr_code_fail"
    processing = "processing"


class NotificationMessage(BaseModel):
    kind: NotificationKind
    values: dict = {}
    reply_to: Optional[int] = None


class PayPromptMessage(BaseModel):
    """
    The lnurl-pay prompt. With a fixed amount the transport shows a
    confirm/cancel choice carrying `fixed_amount`, otherwise it asks
    for an amount as free text.
    """

    values: dict
    fixed_amount: int = 0
    image: Optional[bytes] = None
    image_extension: Optional[str] = None
    reply_to: Optional[int] = None


class DocumentMessage(BaseModel):
    filename: str
    mime_type: str
    content: bytes
    caption: NotificationMessage


NOTIFICATION_TEMPLATES = {
    "error": "Error: {Err}",
    "lnurl_error": "*{Host}* said: {Reason}",
    "lnurl_auth_success": "Successfully logged in to *{Host}* with key `{PublicKey}`.",
    "lnurl_pay_prompt": """*{Domain}* expects you to pay
        {Text}
        *Amount*: `{FixedAmount}` sats ({USD}).
        *Min*: `{Min}` sats. *Max*: `{Max}` sats.""",
    "lnurl_pay_metadata": """*{Domain}*
        *LNURL*: `{LNURL}`
        *Payment hash*: `{Hash}` ({HashFirstChars}...)""",
    "lnurl_pay_success": """*{Domain}* says:
        {Text}
        {URL}
        {DecipherError}""",
    "lnurl_unsupported": "This lnurl is not supported.",
    "qr_code_fail": "Could not decode the QR code.",
    "processing": "`{Invoice}`\nProcessing...",
}


def render_notification(message: NotificationMessage) -> str:
    template = NOTIFICATION_TEMPLATES[message.kind.value]
    return template.format_map(_Blank(message.values))


class _Blank(dict):
    def __missing__(self, key):
        return ""
