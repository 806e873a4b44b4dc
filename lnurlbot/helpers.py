import re
from typing import Optional
from urllib.parse import urlparse

from loguru import logger

from lnurlbot.settings import settings

bolt11_regex = re.compile(r"(lnbcrt|lntb|lnbc)[0-9]+[a-z0-9]+")


def check_callback_url(url: str):
    if not settings.lnurl_callback_url_rules:
        # no rules, all urls are allowed
        return
    u = urlparse(url)
    for rule in settings.lnurl_callback_url_rules:
        try:
            if re.match(rule, f"{u.scheme}://{u.netloc}") is not None:
                return
        except re.error:
            logger.debug(f"Invalid regex rule: '{rule}'. ")
            continue
    raise ValueError(
        f"Callback not allowed. URL: {url}. Netloc: {u.netloc}. "
        f"Please check your settings."
    )


def url_host(url: str) -> str:
    return urlparse(url).netloc or "<unknown>"


def get_bolt11(text: str) -> Optional[str]:
    results = bolt11_regex.search(text.lower())
    if not results:
        return None
    return results.group(0)


def sats(msats: int) -> float:
    return msats / 1000
