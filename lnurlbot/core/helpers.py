import re
from typing import Any, Optional

from loguru import logger

from lnurlbot.core import migrations as core_migrations
from lnurlbot.core.crud import get_db_versions, update_migration_version
from lnurlbot.core.db import db as core_db
from lnurlbot.core.models import DbVersion
from lnurlbot.db import SQLITE, Connection, Database


async def run_migration(
    db: Connection,
    migrations_module: Any,
    db_name: str,
    current_version: Optional[DbVersion] = None,
):
    matcher = re.compile(r"^m(\d\d\d)_")

    for key, migrate in list(migrations_module.__dict__.items()):
        match = matcher.match(key)
        if match:
            version = int(match.group(1))
            if not current_version or version > current_version.version:
                logger.debug(f"running migration {db_name}.{version}")
                await migrate(db)
                await update_migration_version(db, db_name, version)


async def migrate_databases(database: Optional[Database] = None):
    """Creates the database if needed and runs all pending core migrations."""
    database = database or core_db
    async with database.connect() as conn:
        exists = False
        if conn.type == SQLITE:
            exists = await conn.fetchone(
                "SELECT * FROM sqlite_master WHERE type='table' AND name='dbversions'"
            )
        else:
            exists = await conn.fetchone(
                "SELECT * FROM information_schema.tables WHERE table_schema = 'public'"
                " AND table_name = 'dbversions'"
            )

        if not exists:
            await core_migrations.m000_create_migrations_table(conn)

        current_versions = await get_db_versions(conn)
        core_version = next(
            (v for v in current_versions if v.db == "core"), None
        )
        await run_migration(conn, core_migrations, "core", core_version)

    logger.info("✔️ All migrations done.")
