from lnurlbot.db import Connection


async def m000_create_migrations_table(db: Connection):
    await db.execute(
        """
    CREATE TABLE IF NOT EXISTS dbversions (
        db TEXT PRIMARY KEY,
        version INT NOT NULL
    )
    """
    )


async def m001_account_txn(db: Connection):
    """
    Ledger entries. Amounts and fees are in msat, debits are negative.
    """
    await db.execute(
        f"""
        CREATE TABLE IF NOT EXISTS account_txn (
            id {db.serial_primary_key},
            account_id {db.big_int} NOT NULL,
            amount {db.big_int} NOT NULL,
            fees {db.big_int} NOT NULL DEFAULT 0,
            payment_hash TEXT,
            description TEXT NOT NULL DEFAULT '',
            time TIMESTAMP NOT NULL DEFAULT {db.timestamp_now}
        );
    """
    )
    await db.execute(
        """
        CREATE INDEX IF NOT EXISTS by_account ON account_txn (account_id)
        """
    )
