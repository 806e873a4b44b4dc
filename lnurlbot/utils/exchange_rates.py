import asyncio
from time import time
from typing import Optional

import httpx
import jsonpath_ng.ext as jpx
from loguru import logger

from lnurlbot.settings import settings


async def fetch_msat_per_dollar(url: str, path: str) -> float:
    """Fetch the BTC/USD ticker and turn it into a msat -> dollar rate."""
    headers = {"User-Agent": settings.user_agent}
    async with httpx.AsyncClient(headers=headers) as client:
        r = await client.get(url, timeout=3)
        r.raise_for_status()
        data = r.json()

    result = jpx.parse(path).find(data)
    if not result:
        raise ValueError(f"No price found at '{path}'.")
    btc_price = float(str(result[0].value).replace(",", ""))
    if btc_price <= 0:
        raise ValueError(f"Invalid Bitcoin price: {btc_price}.")

    # we want the msat -> dollar rate, not dollar -> btc
    return 1 / (btc_price / 100_000_000_000)


class DollarRate:
    """
    Process-wide msat/USD rate, refreshed lazily at most once per `max_age`.
    Stale reads are fine. A failed refresh falls back to the last known rate
    and only raises when there never was one.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        path: Optional[str] = None,
        max_age: Optional[float] = None,
    ) -> None:
        self.url = url or settings.lnurlbot_dollar_rate_url
        self.path = path or settings.lnurlbot_dollar_rate_path
        self.max_age = (
            max_age
            if max_age is not None
            else settings.lnurlbot_dollar_rate_cache_seconds
        )
        self.rate: float = 0
        self.last_update: float = 0
        self._lock = asyncio.Lock()

    @property
    def is_fresh(self) -> bool:
        return self.rate > 0 and self.last_update > time() - self.max_age

    async def get_rate(self) -> float:
        if self.is_fresh:
            return self.rate

        async with self._lock:
            if self.is_fresh:
                return self.rate
            try:
                rate = await fetch_msat_per_dollar(self.url, self.path)
            except Exception as exc:
                if self.rate > 0:
                    logger.warning(f"Failed to refresh dollar rate: {exc!s}")
                    return self.rate
                raise ValueError("Could not fetch the dollar rate.") from exc

            self.rate = rate
            self.last_update = time()
            logger.debug(f"dollar rate updated: {rate} msat/USD")
            return self.rate

    async def get_dollar_price(self, msats: int) -> str:
        try:
            rate = await self.get_rate()
        except ValueError as exc:
            logger.debug(exc)
            return "~ USD"
        return f"{msats / rate:.2f} USD"
