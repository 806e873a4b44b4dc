from dataclasses import dataclass
from typing import Optional

from lnurlbot.db import Database
from lnurlbot.notifiers import Notifier
from lnurlbot.utils.cache import Cache
from lnurlbot.utils.exchange_rates import DollarRate
from lnurlbot.waiters import PaymentWaiters
from lnurlbot.wallets.base import Wallet


@dataclass
class LnurlContext:
    """The collaborators every lnurl flow needs, built once at startup."""

    wallet: Wallet
    notifier: Notifier
    waiters: PaymentWaiters
    cache: Cache
    dollar_rate: Optional[DollarRate] = None
    db: Optional[Database] = None
