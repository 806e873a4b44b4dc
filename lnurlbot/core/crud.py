from typing import Optional

from lnurlbot.core.db import db
from lnurlbot.core.models import AccountTxn, DbVersion
from lnurlbot.db import Connection
from lnurlbot.exceptions import LedgerInvariantError


async def get_db_versions(conn: Optional[Connection] = None) -> list[DbVersion]:
    return await (conn or db).fetchall("SELECT * FROM dbversions", model=DbVersion)


async def update_migration_version(conn, db_name, version):
    await (conn or db).execute(
        """
        INSERT INTO dbversions (db, version) VALUES (:db, :version)
        ON CONFLICT (db) DO UPDATE SET version = :version
        """,
        {"db": db_name, "version": version},
    )


async def create_account_txn(
    txn: AccountTxn, conn: Optional[Connection] = None
) -> AccountTxn:
    async with db.reuse_conn(conn) if conn else db.connect() as conn:
        await conn.execute(
            f"""
            INSERT INTO account_txn
            (account_id, amount, fees, payment_hash, description, time)
            VALUES (:account_id, :amount, :fees, :payment_hash, :description,
            {conn.timestamp_placeholder("time")})
            """,
            txn.model_dump(exclude={"id"}),
        )
        row = await conn.fetchone(
            """
            SELECT * FROM account_txn WHERE account_id = :account_id
            ORDER BY id DESC LIMIT 1
            """,
            {"account_id": txn.account_id},
            AccountTxn,
        )
    return row


async def credit(
    account_id: int,
    amount_msat: int,
    description: str = "",
    payment_hash: Optional[str] = None,
    conn: Optional[Connection] = None,
) -> AccountTxn:
    txn = AccountTxn(
        account_id=account_id,
        amount=abs(amount_msat),
        payment_hash=payment_hash,
        description=description,
    )
    return await create_account_txn(txn, conn=conn)


async def debit(
    account_id: int,
    amount_msat: int,
    fees_msat: int = 0,
    description: str = "",
    payment_hash: Optional[str] = None,
    conn: Optional[Connection] = None,
) -> AccountTxn:
    txn = AccountTxn(
        account_id=account_id,
        amount=-abs(amount_msat),
        fees=fees_msat,
        payment_hash=payment_hash,
        description=description,
    )
    return await create_account_txn(txn, conn=conn)


async def get_account_txns(
    account_id: int, conn: Optional[Connection] = None
) -> list[AccountTxn]:
    return await (conn or db).fetchall(
        "SELECT * FROM account_txn WHERE account_id = :account_id ORDER BY id",
        {"account_id": account_id},
        AccountTxn,
    )


async def get_balance(account_id: int, conn: Optional[Connection] = None) -> int:
    """Spendable balance in msat, fees are paid on top of debits."""
    row = await (conn or db).fetchone(
        """
        SELECT coalesce(sum(amount), 0) - coalesce(sum(fees), 0) AS balance
        FROM account_txn WHERE account_id = :account_id
        """,
        {"account_id": account_id},
    )
    return int(row["balance"]) if row else 0


async def get_proxy_balance(
    account_id: int, conn: Optional[Connection] = None
) -> int:
    return await get_balance(account_id, conn=conn)


async def check_proxy_balance(
    account_id: int, conn: Optional[Connection] = None
) -> None:
    """
    Every msat routed through the proxy account must leave it again,
    so its balance is always zero. Reads within one transaction.
    :raises LedgerInvariantError: if the balance is not zero
    """
    async with db.reuse_conn(conn) if conn else db.connect() as conn:
        balance = await get_proxy_balance(account_id, conn=conn)
    if balance != 0:
        raise LedgerInvariantError(account_id, balance)
