from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from lnurlbot.core.models import (
        DocumentMessage,
        NotificationMessage,
        PayPromptMessage,
        User,
    )


class Notifier(ABC):
    """
    The chat transport. Methods that send something return the id of the
    sent message, flows reply to and delete messages by that id.
    """

    @abstractmethod
    async def notify(self, user: User, message: NotificationMessage) -> int | None:
        pass

    @abstractmethod
    async def send_pay_prompt(self, user: User, prompt: PayPromptMessage) -> int:
        pass

    @abstractmethod
    async def send_document(
        self, user: User, document: DocumentMessage
    ) -> int | None:
        pass

    @abstractmethod
    async def delete_message(self, user: User, message_id: int) -> None:
        pass

    async def track(self, user: User, event: str, values: dict) -> None:
        logger.debug(f"track {event} for user {user.id}: {values}")
