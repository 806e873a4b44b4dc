from .base import Notifier
from .log import LogNotifier

__all__ = ["LogNotifier", "Notifier"]
