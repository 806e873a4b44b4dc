import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

import httpx
from bech32 import bech32_decode, bech32_encode, convertbits
from loguru import logger
from pydantic import ValidationError

from lnurlbot.core.models.lnurl import (
    LnurlAuthParams,
    LnurlParams,
    LnurlPayActionResponse,
    LnurlPayParams,
    LnurlWithdrawParams,
)
from lnurlbot.exceptions import (
    LnurlDecodeError,
    LnurlRemoteError,
    LnurlTransportError,
    LnurlUnsupportedError,
)
from lnurlbot.helpers import check_callback_url, get_bolt11, url_host
from lnurlbot.settings import settings

LUD17_SCHEMES = ("lnurlc", "lnurlw", "lnurlp", "keyauth")
# lnurl subtypes we recognise but do not handle
KNOWN_TAGS = ("channelRequest", "hostedChannelRequest")

lnurl_regex = re.compile(r"(?:lightning:)?(lnurl1[02-9ac-hj-np-z]+)", re.IGNORECASE)
lud17_regex = re.compile(
    r"((?:lnurlc|lnurlw|lnurlp|keyauth)://[^\s]+)", re.IGNORECASE
)
lnaddress_regex = re.compile(
    r"(?:lightning:)?([a-z0-9_.+\-]+@[a-z0-9\-]+(?:\.[a-z0-9\-]+)+)", re.IGNORECASE
)


def lnurl_decode(lnurl: str) -> str:
    """Decodes a bech32 `LNURL1...` string into the url it wraps."""
    hrp, data = bech32_decode(lnurl.strip().lower())
    if hrp is None or data is None:
        raise LnurlDecodeError("Invalid bech32 string.")
    if hrp != "lnurl":
        raise LnurlDecodeError(f"Invalid lnurl prefix '{hrp}'.")
    decoded = convertbits(data, 5, 8, False)
    if decoded is None:
        raise LnurlDecodeError("Invalid bech32 data.")
    try:
        return bytes(decoded).decode()
    except UnicodeDecodeError as exc:
        raise LnurlDecodeError("lnurl does not wrap a valid url.") from exc


def lnurl_encode(url: str) -> str:
    data = convertbits(url.encode(), 8, 5, True)
    return bech32_encode("lnurl", data).upper()


def _lud17_to_url(lud17: str) -> str:
    scheme, rest = lud17.split("://", 1)
    host = rest.split("/", 1)[0].split(":", 1)[0]
    new_scheme = "http" if host.endswith(".onion") else "https"
    return f"{new_scheme}://{rest}"


def _lnaddress_to_url(address: str) -> str:
    username, domain = address.split("@", 1)
    scheme = "http" if domain.endswith(".onion") else "https"
    return f"{scheme}://{domain}/.well-known/lnurlp/{username}"


def lnurl_to_url(text: str) -> str:
    """
    Resolves anything the user may send as an lnurl into the url to query:
    bech32 lnurls, `lightning:` uris, LUD-17 schemes, lightning addresses
    and plain urls (also with a `?lightning=LNURL...` fallback parameter).
    """
    text = text.strip()
    if text.lower().startswith("lightning:"):
        text = text[len("lightning:") :]

    if text.lower().startswith("lnurl1"):
        return lnurl_decode(text)

    scheme = text.split("://", 1)[0].lower() if "://" in text else ""
    if scheme in LUD17_SCHEMES:
        return _lud17_to_url(text)

    if scheme in ("http", "https"):
        fallback = parse_qs(urlparse(text).query).get("lightning")
        if fallback and fallback[0].lower().startswith("lnurl1"):
            return lnurl_decode(fallback[0])
        return text

    if lnaddress_regex.fullmatch(text):
        return _lnaddress_to_url(text)

    raise LnurlDecodeError(f"'{text}' is not a valid lnurl.")


def to_bech32_lnurl(text: str) -> str:
    """Canonical bech32 form of `text`, a no-op for an already encoded lnurl."""
    stripped = text.strip()
    if stripped.lower().startswith("lightning:"):
        stripped = stripped[len("lightning:") :]
    if stripped.lower().startswith("lnurl1"):
        lnurl_decode(stripped)
        return stripped.upper()
    return lnurl_encode(lnurl_to_url(stripped))


def find_lnurl_in_text(text: str) -> Optional[str]:
    match = lnurl_regex.search(text)
    if match:
        return match.group(1)
    match = lud17_regex.search(text)
    if match:
        return match.group(1)
    match = lnaddress_regex.search(text)
    if match:
        return match.group(1)
    return None


def search_for_invoice(text: str) -> tuple[Optional[str], Optional[str]]:
    """Returns the first bolt11 invoice or lnurl found in a message."""
    bolt11 = get_bolt11(text)
    if bolt11:
        return bolt11, None
    return None, find_lnurl_in_text(text)


async def lnurl_get(url: str, params: Optional[dict] = None) -> dict:
    """
    GET an lnurl endpoint and return its json body.
    :raises LnurlDecodeError: the url is not allowed or the body is not json
    :raises LnurlTransportError: network failure or a non-2xx status
    :raises LnurlRemoteError: the service answered with `status: ERROR`
    """
    try:
        check_callback_url(url)
    except ValueError as exc:
        raise LnurlDecodeError(f"Invalid callback URL: {exc!s}") from exc

    # the callback may carry its own query, params are added to it
    if params:
        url = str(httpx.URL(url).copy_merge_params(params))

    headers = {"User-Agent": settings.user_agent}
    async with httpx.AsyncClient(
        headers=headers, timeout=settings.lnurl_timeout, follow_redirects=False
    ) as client:
        try:
            r = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning(f"lnurl request to {url} failed: {exc!s}")
            raise LnurlTransportError(str(exc) or exc.__class__.__name__) from exc

    if r.status_code >= 300:
        raise LnurlTransportError(f"Got status {r.status_code} on callback {url}")

    try:
        data = r.json()
    except ValueError as exc:
        raise LnurlDecodeError(f"Got invalid JSON from {url_host(url)}.") from exc
    if not isinstance(data, dict):
        raise LnurlDecodeError(f"Got invalid JSON from {url_host(url)}.")

    if str(data.get("status", "")).upper() == "ERROR":
        raise LnurlRemoteError(url_host(url), data.get("reason") or "unknown error")

    logger.debug(f"lnurl response from {url_host(url)}: {data}")
    return data


def parse_lnurl_response(data: dict) -> LnurlParams:
    tag = data.get("tag")
    try:
        if tag == "withdrawRequest":
            return LnurlWithdrawParams.model_validate(data)
        if tag == "payRequest":
            return LnurlPayParams.model_validate(data)
        if tag is None and "pr" in data:
            return LnurlPayActionResponse.model_validate(data)
    except ValidationError as exc:
        raise LnurlDecodeError(f"Invalid lnurl response: {exc!s}") from exc
    if tag in KNOWN_TAGS:
        raise LnurlUnsupportedError(str(tag))
    raise LnurlDecodeError(f"Unknown lnurl response tag '{tag}'.")


async def fetch_lnurl_params(text: str) -> LnurlParams:
    """
    Resolves lnurl text into one of the four parameter variants. Auth urls
    carry everything in the query string, all others cost one GET.
    """
    url = lnurl_to_url(text)
    parsed = urlparse(url)
    query = parse_qs(parsed.query)

    if query.get("tag") == ["login"]:
        k1 = query.get("k1")
        if not k1:
            raise LnurlDecodeError("lnurl-auth url without k1.")
        return LnurlAuthParams(host=parsed.netloc, k1=k1[0], callback=url)

    data = await lnurl_get(url)
    return parse_lnurl_response(data)
