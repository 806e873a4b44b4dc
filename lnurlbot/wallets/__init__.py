from __future__ import annotations

import importlib

from lnurlbot.settings import settings
from lnurlbot.wallets.base import Wallet

from .fake import FakeWallet
from .void import VoidWallet


def set_funding_source(class_name: str | None = None) -> None:
    backend_wallet_class = class_name or settings.lnurlbot_backend_wallet_class
    funding_source_constructor = getattr(wallets_module, backend_wallet_class)
    global funding_source
    funding_source = funding_source_constructor()


def get_funding_source() -> Wallet:
    return funding_source


wallets_module = importlib.import_module("lnurlbot.wallets")
fake_wallet = FakeWallet()

# initialize as fake wallet
funding_source: Wallet = fake_wallet


__all__ = [
    "FakeWallet",
    "VoidWallet",
    "Wallet",
    "get_funding_source",
    "set_funding_source",
]
