from __future__ import annotations

import base64
import json
from typing import Annotated, Literal, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lnurlbot.helpers import url_host
from lnurlbot.utils.crypto import AESCipher


class LnurlPayImage(NamedTuple):
    data: bytes
    extension: str


class LnurlPayMetadata:
    """
    The ordered `[type, value]` pairs of an lnurl-pay `metadata` string.
    The raw string itself is kept by `LnurlPayParams`, it is what gets hashed.
    """

    text_types = ("text/plain",)
    image_types = ("image/png;base64", "image/jpeg;base64")
    identifier_types = ("text/identifier", "text/email")

    def __init__(self, pairs: list[list[str]]):
        self.pairs = pairs

    @classmethod
    def parse(cls, encoded: str) -> LnurlPayMetadata:
        pairs = json.loads(encoded)
        if not isinstance(pairs, list) or not all(
            isinstance(p, list) and len(p) >= 2 for p in pairs
        ):
            raise ValueError("metadata must be a list of [type, value] pairs")
        return cls(pairs)

    def _first(self, *types: str) -> Optional[str]:
        for pair in self.pairs:
            if pair[0] in types:
                return pair[1]
        return None

    @property
    def description(self) -> str:
        return self._first(*self.text_types) or ""

    @property
    def long_description(self) -> Optional[str]:
        return self._first("text/long-desc")

    @property
    def identifier(self) -> Optional[str]:
        return self._first(*self.identifier_types)

    @property
    def image(self) -> Optional[LnurlPayImage]:
        for pair in self.pairs:
            if pair[0] in self.image_types:
                try:
                    data = base64.b64decode(pair[1], validate=True)
                except ValueError:
                    return None
                extension = pair[0].split("/")[1].split(";")[0]
                return LnurlPayImage(data=data, extension=extension)
        return None


class LnurlAuthParams(BaseModel):
    tag: Literal["login"] = "login"
    host: str
    k1: str
    callback: str


class LnurlWithdrawParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tag: Literal["withdrawRequest"] = "withdrawRequest"
    callback: str
    k1: str
    min_withdrawable: int = Field(default=0, alias="minWithdrawable", ge=0)
    max_withdrawable: int = Field(alias="maxWithdrawable", gt=0)
    default_description: str = Field(default="", alias="defaultDescription")

    @property
    def callback_host(self) -> str:
        return url_host(self.callback)


class LnurlPayParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tag: Literal["payRequest"] = "payRequest"
    callback: str
    min_sendable: int = Field(alias="minSendable", gt=0)
    max_sendable: int = Field(alias="maxSendable", gt=0)
    encoded_metadata: str = Field(alias="metadata")

    @field_validator("encoded_metadata")
    @classmethod
    def validate_metadata(cls, value: str) -> str:
        LnurlPayMetadata.parse(value)
        return value

    @property
    def metadata(self) -> LnurlPayMetadata:
        return LnurlPayMetadata.parse(self.encoded_metadata)

    @property
    def callback_host(self) -> str:
        return url_host(self.callback)

    @property
    def fixed_amount(self) -> int:
        """The amount in msat if the service only accepts one, else 0."""
        if self.max_sendable == self.min_sendable:
            return self.max_sendable
        return 0


class MessageAction(BaseModel):
    tag: Literal["message"] = "message"
    message: str


class UrlAction(BaseModel):
    tag: Literal["url"] = "url"
    description: str = ""
    url: str


class AesAction(BaseModel):
    tag: Literal["aes"] = "aes"
    description: str = ""
    ciphertext: str
    iv: str

    def decrypt(self, preimage: str) -> str:
        """The payment preimage is the AES key."""
        return AESCipher(bytes.fromhex(preimage)).decrypt(self.ciphertext, self.iv)


SuccessAction = Annotated[
    Union[MessageAction, UrlAction, AesAction], Field(discriminator="tag")
]


class LnurlPayActionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pr: str
    success_action: Optional[SuccessAction] = Field(
        default=None, alias="successAction"
    )
    status: Literal["OK", "ERROR"] = "OK"
    reason: Optional[str] = None
    disposable: Optional[bool] = None

    @field_validator("pr")
    @classmethod
    def validate_pr(cls, value: str) -> str:
        return value.strip().lower().removeprefix("lightning:")

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value):
        return value.upper() if isinstance(value, str) else value


LnurlParams = Union[
    LnurlAuthParams, LnurlWithdrawParams, LnurlPayParams, LnurlPayActionResponse
]


class HandleLnurlOpts(BaseModel):
    message_id: Optional[int] = None
    login_silently: bool = False
    # pay fixed amounts below this (plus a small grace) without asking, in msat
    pay_without_prompt_if: Optional[int] = None


class PendingPayRequest(BaseModel):
    """What is needed to resume an lnurl-pay after the user answers the prompt."""

    type: Literal["lnurlpay"] = "lnurlpay"
    metadata: str
    url: str
    lnurl: str


def pending_reply_key(user_id: int, message_id: int) -> str:
    return f"reply:{user_id}:{message_id}"


class Invoice(NamedTuple):
    payment_hash: str
    amount_msat: int
    description_hash: Optional[str] = None
