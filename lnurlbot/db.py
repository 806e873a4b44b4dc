from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.sql import text

from lnurlbot.settings import settings

POSTGRES = "POSTGRES"
SQLITE = "SQLITE"

TModel = TypeVar("TModel", bound=BaseModel)


def get_db_type(database_url: str | None) -> str:
    if not database_url:
        return SQLITE
    if not database_url.startswith("postgres://"):
        raise ValueError("Please use the 'postgres://...' format for the database URL.")
    return POSTGRES


class Compat:
    type: str | None = "<inherited>"

    @property
    def timestamp_now(self) -> str:
        if self.type == POSTGRES:
            return "now()"
        elif self.type == SQLITE:
            return "(strftime('%s', 'now'))"
        return "<nothing>"

    @property
    def serial_primary_key(self) -> str:
        if self.type == POSTGRES:
            return "SERIAL PRIMARY KEY"
        elif self.type == SQLITE:
            return "INTEGER PRIMARY KEY AUTOINCREMENT"
        return "<nothing>"

    @property
    def big_int(self) -> str:
        if self.type == POSTGRES:
            return "BIGINT"
        return "INT"

    def timestamp_placeholder(self, key: str) -> str:
        if self.type == POSTGRES:
            return f"to_timestamp(:{key})"
        return f":{key}"


class Connection(Compat):
    """
    A connection handed out by `Database.connect()`. Everything executed on
    it belongs to the same transaction, which commits when the block exits.
    """

    def __init__(self, conn: AsyncConnection, typ: str, name: str):
        self.conn = conn
        self.type = typ
        self.name = name

    def rewrite_values(self, values: dict) -> dict:
        clean_values: dict = {}
        for key, raw_value in values.items():
            if isinstance(raw_value, datetime):
                ts = raw_value.timestamp()
                clean_values[key] = int(ts) if self.type == SQLITE else ts
            else:
                clean_values[key] = raw_value
        return clean_values

    async def fetchall(
        self,
        query: str,
        values: dict | None = None,
        model: type[TModel] | None = None,
    ) -> list[Any]:
        params = self.rewrite_values(values) if values else {}
        result = await self.conn.execute(text(query), params)
        rows = result.mappings().all()
        result.close()
        if model:
            return [model.model_validate(dict(r)) for r in rows]
        return list(rows)

    async def fetchone(
        self,
        query: str,
        values: dict | None = None,
        model: type[TModel] | None = None,
    ) -> Any:
        params = self.rewrite_values(values) if values else {}
        result = await self.conn.execute(text(query), params)
        row = result.mappings().first()
        result.close()
        if model and row:
            return model.model_validate(dict(row))
        return row

    async def execute(self, query: str, values: dict | None = None):
        params = self.rewrite_values(values) if values else {}
        return await self.conn.execute(text(query), params)


class Database(Compat):
    def __init__(
        self,
        db_name: str,
        database_url: str | None = None,
        data_folder: str | None = None,
    ):
        self.name = db_name
        database_url = database_url or settings.lnurlbot_database_url
        self.type = get_db_type(database_url)

        if self.type == SQLITE:
            data_folder = data_folder or settings.lnurlbot_data_folder
            if not os.path.isdir(data_folder):
                os.makedirs(data_folder)
                logger.info(f"Created {data_folder}")
            self.path = os.path.join(data_folder, f"{self.name}.sqlite3")
            database_uri = f"sqlite+aiosqlite:///{self.path}"
        else:
            assert database_url, "postgres needs a database url"
            database_uri = database_url.replace("postgres://", "postgresql+asyncpg://")

        self.engine: AsyncEngine = create_async_engine(
            database_uri, echo=settings.debug_database
        )
        self.lock = asyncio.Lock()

        logger.trace(f"database {self.type} added for {self.name}")

    @asynccontextmanager
    async def connect(self):
        await self.lock.acquire()
        try:
            async with self.engine.begin() as conn:
                yield Connection(conn, self.type, self.name)
        finally:
            self.lock.release()

    async def fetchall(
        self,
        query: str,
        values: dict | None = None,
        model: type[TModel] | None = None,
    ) -> list[Any]:
        async with self.connect() as conn:
            return await conn.fetchall(query, values, model)

    async def fetchone(
        self,
        query: str,
        values: dict | None = None,
        model: type[TModel] | None = None,
    ) -> Any:
        async with self.connect() as conn:
            return await conn.fetchone(query, values, model)

    async def execute(self, query: str, values: dict | None = None):
        async with self.connect() as conn:
            return await conn.execute(query, values)

    @asynccontextmanager
    async def reuse_conn(self, conn: Connection):
        yield conn

    async def close(self):
        await self.engine.dispose()
