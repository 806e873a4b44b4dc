from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class AccountTxn(BaseModel):
    id: Optional[int] = None
    account_id: int
    # msat, positive for credits and negative for debits
    amount: int
    fees: int = 0
    payment_hash: Optional[str] = None
    description: str = ""
    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DbVersion(BaseModel):
    db: str
    version: int
