import asyncio
import json
import random
import string
from datetime import datetime
from hashlib import sha256
from itertools import count
from os import urandom
from typing import Optional

from bolt11 import Bolt11, MilliSatoshi, TagChar, Tags
from bolt11 import encode as bolt11_encode

from lnurlbot.core.models import (
    DocumentMessage,
    NotificationKind,
    NotificationMessage,
    PayPromptMessage,
    User,
)
from lnurlbot.notifiers import Notifier
from lnurlbot.tasks import tasks
from lnurlbot.utils.crypto import fake_privkey

privkey = fake_privkey("lnurl test service")


class RecordingNotifier(Notifier):
    """Keeps everything the flows send, in order."""

    def __init__(self) -> None:
        self.message_ids = count(100)
        self.events: list[str] = []
        self.notifications: list[NotificationMessage] = []
        self.prompts: list[tuple[int, PayPromptMessage]] = []
        self.documents: list[DocumentMessage] = []
        self.deleted: list[int] = []
        self.tracked: list[tuple[str, dict]] = []
        self.sent: dict[int, NotificationMessage] = {}

    @property
    def kinds(self) -> list[NotificationKind]:
        return [n.kind for n in self.notifications]

    def last(self, kind: NotificationKind) -> NotificationMessage:
        return [n for n in self.notifications if n.kind == kind][-1]

    async def notify(self, user: User, message: NotificationMessage) -> int:
        message_id = next(self.message_ids)
        self.notifications.append(message)
        self.sent[message_id] = message
        self.events.append(message.kind.value)
        return message_id

    async def send_pay_prompt(self, user: User, prompt: PayPromptMessage) -> int:
        message_id = next(self.message_ids)
        self.prompts.append((message_id, prompt))
        self.events.append("prompt")
        return message_id

    async def send_document(self, user: User, document: DocumentMessage) -> int:
        message_id = next(self.message_ids)
        self.documents.append(document)
        self.events.append("document")
        return message_id

    async def delete_message(self, user: User, message_id: int) -> None:
        self.deleted.append(message_id)

    async def track(self, user: User, event: str, values: dict) -> None:
        self.tracked.append((event, values))


def get_random_string(iterations: int = 10):
    return "".join(
        random.SystemRandom().choice(string.ascii_uppercase + string.digits)
        for _ in range(iterations)
    )


def pay_metadata(text: str = "test payment", image: Optional[str] = None) -> str:
    pairs = [["text/plain", text]]
    if image:
        pairs.append(["image/png;base64", image])
    return json.dumps(pairs)


def make_invoice(
    amount_msat: int,
    metadata: Optional[str] = None,
    description: Optional[str] = None,
    preimage: Optional[str] = None,
) -> tuple[str, str, str]:
    """
    A signed bolt11 invoice as an lnurl service would create it.
    Returns the invoice, its payment hash and preimage.
    """
    preimage = preimage or urandom(32).hex()
    payment_hash = sha256(bytes.fromhex(preimage)).hexdigest()

    tags = Tags()
    if metadata is not None:
        tags.add(TagChar.description_hash, sha256(metadata.encode()).hexdigest())
    else:
        tags.add(TagChar.description, description or "")
    tags.add(TagChar.payment_secret, urandom(32).hex())
    tags.add(TagChar.payment_hash, payment_hash)

    invoice = Bolt11(
        currency="bc",
        amount_msat=MilliSatoshi(amount_msat),
        date=int(datetime.now().timestamp()),
        tags=tags,
    )
    return bolt11_encode(invoice, privkey), payment_hash, preimage


async def wait_for_background_tasks():
    loop = asyncio.get_running_loop()
    pending = [t for t in tasks if not t.done() and t.get_loop() is loop]
    if pending:
        await asyncio.gather(*pending)
