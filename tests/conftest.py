import os

# keep the sqlite files of the tests away from a real data folder
os.environ.setdefault("LNURLBOT_DATA_FOLDER", "./tests/data")

import pytest  # noqa: E402

from lnurlbot.core.context import LnurlContext  # noqa: E402
from lnurlbot.core.helpers import migrate_databases  # noqa: E402
from lnurlbot.core.models import User  # noqa: E402
from lnurlbot.db import Database  # noqa: E402
from lnurlbot.settings import Settings  # noqa: E402
from lnurlbot.settings import settings as lnurlbot_settings  # noqa: E402
from lnurlbot.utils.cache import Cache  # noqa: E402
from lnurlbot.waiters import PaymentWaiters  # noqa: E402
from lnurlbot.wallets.fake import FakeWallet  # noqa: E402
from tests.helpers import RecordingNotifier  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def settings():
    # override settings for tests
    lnurlbot_settings.bot_token = "123456:test-bot-token"
    lnurlbot_settings.lnurl_timeout = 5

    yield lnurlbot_settings


@pytest.fixture(autouse=True)
def run_before_and_after_tests(settings: Settings):
    """Fixture to execute asserts before and after a test is run"""
    _settings_cleanup(settings)
    yield  # this is where the testing happens
    _settings_cleanup(settings)


@pytest.fixture
def user() -> User:
    return User(id=42, chat_id=4242, username="satoshi")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def waiters() -> PaymentWaiters:
    return PaymentWaiters()


@pytest.fixture
def ctx(
    wallet: FakeWallet, notifier: RecordingNotifier, waiters: PaymentWaiters
) -> LnurlContext:
    return LnurlContext(
        wallet=wallet, notifier=notifier, waiters=waiters, cache=Cache()
    )


@pytest.fixture
async def db(tmp_path):
    database = Database("test", data_folder=str(tmp_path))
    await migrate_databases(database)
    yield database
    await database.close()


def _settings_cleanup(settings: Settings):
    settings.lnurl_callback_url_rules = []
    settings.lnurl_pay_grace_msat = 3000
    settings.lnurl_pay_prompt_ttl = 3600
    settings.lnurl_pay_success_delay = 0
    settings.lnurl_pay_confirmation_timeout = 5
    settings.lnurlbot_max_invoice_msat = 4_294_967_000
    settings.lnurlbot_proxy_account = None
