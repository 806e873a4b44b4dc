import pytest

from lnurlbot.core.models import (
    NotificationKind,
    NotificationMessage,
    PayPromptMessage,
    render_notification,
)
from lnurlbot.core.services import error_notification
from lnurlbot.exceptions import (
    InvoiceError,
    LedgerInvariantError,
    LnurlDecodeError,
    LnurlRemoteError,
    LnurlUnsupportedError,
    PaymentError,
)
from lnurlbot.notifiers import LogNotifier


def test_render_notification():
    message = NotificationMessage(
        kind=NotificationKind.lnurl_error,
        values={"Host": "service.com", "Reason": "no route"},
    )
    assert render_notification(message) == "*service.com* said: no route"


def test_render_missing_values():
    message = NotificationMessage(kind=NotificationKind.error)
    assert render_notification(message) == "Error: "


@pytest.mark.parametrize("kind", list(NotificationKind))
def test_every_kind_has_a_template(kind):
    assert isinstance(render_notification(NotificationMessage(kind=kind)), str)


@pytest.mark.parametrize(
    "exc, kind, values",
    [
        (
            LnurlRemoteError("service.com", "expired"),
            NotificationKind.lnurl_error,
            {"Host": "service.com", "Reason": "expired"},
        ),
        (
            LnurlUnsupportedError("channelRequest"),
            NotificationKind.lnurl_unsupported,
            {},
        ),
        (
            LnurlDecodeError("Invalid bech32 string."),
            NotificationKind.error,
            {"Err": "Invalid bech32 string."},
        ),
        (
            PaymentError("no route", status="failed"),
            NotificationKind.error,
            {"Err": "no route"},
        ),
        (
            InvoiceError("too big", status="failed"),
            NotificationKind.error,
            {"Err": "too big"},
        ),
        (
            LedgerInvariantError(7, -1),
            NotificationKind.error,
            {"Err": "Internal error, the operation was halted."},
        ),
    ],
)
def test_error_notification(exc, kind, values):
    message = error_notification(exc, reply_to=5)
    assert message.kind == kind
    assert message.values == values
    assert message.reply_to == 5


@pytest.mark.anyio
async def test_log_notifier(user):
    notifier = LogNotifier()
    first = await notifier.notify(
        user, NotificationMessage(kind=NotificationKind.processing)
    )
    prompt_id = await notifier.send_pay_prompt(
        user, PayPromptMessage(values={"Domain": "service.com"}, fixed_amount=21_000)
    )
    assert first == 1
    assert prompt_id == 2
    assert notifier.prompt_ids == [2]
