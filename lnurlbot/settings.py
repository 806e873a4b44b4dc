from __future__ import annotations

import json
from time import time

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def list_parse_fallback(v: str):
    v = v.replace(" ", "")
    if len(v) > 0:
        if v.startswith("[") or v.startswith("{"):
            return json.loads(v)
        else:
            return v.split(",")
    else:
        return []


class LnurlbotSettings(BaseModel):
    @classmethod
    def validate_list(cls, val):
        if isinstance(val, str):
            val = list_parse_fallback(val)
        return val


class EnvSettings(LnurlbotSettings):
    debug: bool = Field(default=False)
    debug_database: bool = Field(default=False)
    version: str = Field(default="0.1.0")
    user_agent: str = Field(default="lnurlbot")
    enable_log_to_file: bool = Field(default=False)
    log_rotation: str = Field(default="100 MB")
    log_retention: str = Field(default="3 months")
    server_startup_time: int = Field(default=int(time()))


class PersistenceSettings(LnurlbotSettings):
    lnurlbot_data_folder: str = Field(default="./data")
    lnurlbot_database_url: str | None = Field(default=None)


class BotSettings(LnurlbotSettings):
    # the bot token doubles as the server secret for lnurl-auth key derivation
    bot_token: str = Field(default="")


class LnurlSettings(LnurlbotSettings):
    lnurl_timeout: float = Field(default=10)
    lnurl_callback_url_rules: list[str] = Field(default=[])
    # fixed amounts up to `pay_without_prompt_if + grace` are paid without asking
    lnurl_pay_grace_msat: int = Field(default=3000)
    lnurl_pay_prompt_ttl: int = Field(default=3600)
    lnurl_pay_success_delay: float = Field(default=2)
    lnurl_pay_confirmation_timeout: float = Field(default=3600)

    @field_validator("lnurl_callback_url_rules", mode="before")
    @classmethod
    def validate_callback_rules(cls, val):
        return super().validate_list(val)


class FundingSourceSettings(LnurlbotSettings):
    lnurlbot_backend_wallet_class: str = Field(default="FakeWallet")
    fake_wallet_secret: str = Field(default="ToTheMoon1")
    lnurlbot_max_invoice_msat: int = Field(default=4_294_967_000)


class LedgerSettings(LnurlbotSettings):
    # clearing account whose transactions must always net to zero
    lnurlbot_proxy_account: int | None = Field(default=None)


class ExchangeRateSettings(LnurlbotSettings):
    lnurlbot_dollar_rate_url: str = Field(
        default="https://www.bitstamp.net/api/v2/ticker/btcusd"
    )
    lnurlbot_dollar_rate_path: str = Field(default="$.last")
    lnurlbot_dollar_rate_cache_seconds: int = Field(default=3600)


class TransientSettings(LnurlbotSettings):
    # Indicates that the bot should continue to run.
    # When set to false it indicates that the shutdown procedure is ongoing.
    # Long running while loops should use this flag instead of `while True:`
    lnurlbot_running: bool = Field(default=True)


class Settings(
    EnvSettings,
    PersistenceSettings,
    BotSettings,
    LnurlSettings,
    FundingSourceSettings,
    LedgerSettings,
    ExchangeRateSettings,
    TransientSettings,
    BaseSettings,
):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
