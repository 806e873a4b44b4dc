import asyncio
from functools import wraps
from typing import Optional

import click

from lnurlbot.core.context import LnurlContext
from lnurlbot.core.crud import (
    check_proxy_balance,
    get_account_txns,
    get_balance,
    get_db_versions,
)
from lnurlbot.core.db import db as core_db
from lnurlbot.core.helpers import migrate_databases
from lnurlbot.core.models import HandleLnurlOpts, User
from lnurlbot.core.services import handle_lnurl, resume_pending_reply
from lnurlbot.exceptions import LedgerInvariantError, LnurlError
from lnurlbot.lnurl import fetch_lnurl_params, lnurl_decode, lnurl_encode
from lnurlbot.notifiers import LogNotifier
from lnurlbot.settings import settings
from lnurlbot.tasks import cancel_all_tasks, start_background_tasks
from lnurlbot.utils.cache import Cache
from lnurlbot.utils.exchange_rates import DollarRate
from lnurlbot.utils.logger import configure_logger, log_bot_info
from lnurlbot.waiters import PaymentWaiters
from lnurlbot.wallets import get_funding_source, set_funding_source


def coro(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))

    return wrapper


@click.group()
def lnurlbot_cli():
    """
    Python CLI for lnurlbot
    """
    configure_logger()


@lnurlbot_cli.group()
def db():
    """
    Database related commands
    """


@lnurlbot_cli.group()
def lnurl():
    """
    LNURL related commands
    """


@lnurlbot_cli.group()
def ledger():
    """
    Ledger related commands
    """


@db.command("migrate")
@coro
async def database_migrate():
    """Migrate databases"""
    await migrate_databases()


@db.command("versions")
@coro
async def db_versions():
    """Show current database versions"""
    async with core_db.connect() as conn:
        click.echo(await get_db_versions(conn))


@lnurl.command("decode")
@click.argument("lnurl_text")
def decode_lnurl(lnurl_text: str):
    """Print the url a bech32 lnurl wraps"""
    try:
        click.echo(lnurl_decode(lnurl_text))
    except LnurlError as e:
        raise click.ClickException(e.message) from e


@lnurl.command("encode")
@click.argument("url")
def encode_lnurl(url: str):
    """Print the bech32 lnurl of a url"""
    click.echo(lnurl_encode(url))


@lnurl.command("fetch")
@click.argument("lnurl_text")
@coro
async def fetch_lnurl(lnurl_text: str):
    """Resolve an lnurl, lightning address or url and print its parameters"""
    try:
        params = await fetch_lnurl_params(lnurl_text)
    except LnurlError as e:
        raise click.ClickException(e.message) from e
    click.echo(params.model_dump_json(indent=2, by_alias=True))


@lnurl.command("handle")
@click.argument("lnurl_text")
@click.option("-u", "--user-id", type=int, default=1, help="Id of the acting user.")
@click.option("-a", "--amount", type=int, help="Amount in sat to pay if prompted.")
@click.option(
    "--pay-without-prompt-if", type=int, help="Pay fixed amounts below this (sat)."
)
@click.option("--silent", is_flag=True, help="Do not notify on lnurl-auth login.")
@click.option("--wait", type=float, default=5, help="Seconds to wait for payments.")
@coro
async def handle_lnurl_text(
    lnurl_text: str,
    user_id: int,
    amount: Optional[int],
    pay_without_prompt_if: Optional[int],
    silent: bool,
    wait: float,
):
    """Run the lnurl flows against the configured funding source"""
    set_funding_source()
    log_bot_info()
    wallet = get_funding_source()
    notifier = LogNotifier()
    ctx = LnurlContext(
        wallet=wallet,
        notifier=notifier,
        waiters=PaymentWaiters(),
        cache=Cache(),
        dollar_rate=DollarRate(),
        db=core_db,
    )
    user = User(id=user_id, chat_id=user_id)
    start_background_tasks(ctx)

    opts = HandleLnurlOpts(
        login_silently=silent,
        pay_without_prompt_if=(
            pay_without_prompt_if * 1000 if pay_without_prompt_if is not None else None
        ),
    )
    await handle_lnurl(ctx, user, lnurl_text, opts)
    if notifier.prompt_ids and amount:
        await resume_pending_reply(ctx, user, notifier.prompt_ids[-1], amount * 1000)

    await asyncio.sleep(wait)
    cancel_all_tasks()


@ledger.command("balance")
@click.argument("account_id", type=int)
@coro
async def ledger_balance(account_id: int):
    """Show the balance and transactions of an account"""
    async with core_db.connect() as conn:
        balance = await get_balance(account_id, conn=conn)
        for txn in await get_account_txns(account_id, conn=conn):
            click.echo(
                f"{txn.time.isoformat()} {txn.amount:>14} {txn.fees:>10}"
                f" {txn.payment_hash or ''} {txn.description}"
            )
    click.echo(f"balance: {balance} msat")


@ledger.command("check-proxy")
@click.option("-a", "--account-id", type=int, help="Defaults to the configured one.")
@coro
async def ledger_check_proxy(account_id: Optional[int] = None):
    """Check that the proxy account nets to zero"""
    if account_id is None:
        account_id = settings.lnurlbot_proxy_account
    if account_id is None:
        raise click.ClickException("No proxy account configured.")
    try:
        await check_proxy_balance(account_id)
    except LedgerInvariantError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"proxy account {account_id} is balanced.")


def main():
    """main function"""
    lnurlbot_cli()


if __name__ == "__main__":
    main()
