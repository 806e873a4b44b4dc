from __future__ import annotations

from itertools import count

from loguru import logger

from lnurlbot.core.models import (
    DocumentMessage,
    NotificationKind,
    NotificationMessage,
    PayPromptMessage,
    User,
    render_notification,
)

from .base import Notifier


class LogNotifier(Notifier):
    """Writes every notification to the log, for the cli and development."""

    def __init__(self) -> None:
        self.message_ids = count(1)
        self.prompt_ids: list[int] = []

    async def notify(self, user: User, message: NotificationMessage) -> int:
        logger.info(f"[{user.chat_id}] {render_notification(message)}")
        return next(self.message_ids)

    async def send_pay_prompt(self, user: User, prompt: PayPromptMessage) -> int:
        if prompt.fixed_amount:
            action = f"confirm paying {prompt.fixed_amount // 1000} sat"
        else:
            action = "reply with an amount in sat"
        text = render_notification(
            NotificationMessage(
                kind=NotificationKind.lnurl_pay_prompt, values=prompt.values
            )
        )
        logger.info(f"[{user.chat_id}] {text}\n{action}")
        message_id = next(self.message_ids)
        self.prompt_ids.append(message_id)
        return message_id

    async def send_document(self, user: User, document: DocumentMessage) -> int:
        logger.info(
            f"[{user.chat_id}] document {document.filename}"
            f" ({len(document.content)} bytes):"
            f" {render_notification(document.caption)}"
        )
        return next(self.message_ids)

    async def delete_message(self, user: User, message_id: int) -> None:
        logger.debug(f"[{user.chat_id}] deleted message {message_id}")
