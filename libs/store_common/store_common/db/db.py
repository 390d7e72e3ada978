from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, override

from sqlalchemy import event
from sqlalchemy.engine.url import URL
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from store_common.core.lifecycle import Lifecycle
from store_common.utils import JsonSnakeCaseModel, decode_json, encode_json_str, get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = get_logger()


class DBConfig(JsonSnakeCaseModel):
    db_name: str
    user: str | None = None
    password: str | None = None
    host: str | None = None
    port: int | None = None
    driver: str = "postgresql+asyncpg"
    pool_size: int = 10
    pool_max_overflow: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 300
    echo: bool = False
    pool_pre_ping: bool = True
    pool_use_lifo: bool = True
    pool_disabled: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.driver.startswith("sqlite")

    @property
    def url(self) -> URL:
        if self.is_sqlite:
            return URL.create(self.driver, database=self.db_name)
        return URL.create(self.driver, self.user, self.password, self.host, self.port, self.db_name)


class Db(Lifecycle):
    """One engine and connection pool for one database."""

    _config: DBConfig
    engine: AsyncEngine

    def __init__(self, config: DBConfig, label: str | None = None) -> None:
        super().__init__()
        self._config = config
        self._label = label or config.db_name

        if config.is_sqlite:
            self.engine = create_async_engine(
                url=config.url,
                json_serializer=encode_json_str,
                json_deserializer=decode_json,
                echo=config.echo,
                pool_recycle=config.pool_recycle,
            )

            @event.listens_for(self.engine.sync_engine, "connect")
            def _sqla_on_connect(dbapi_connection: Any, _: Any) -> Any:  # type: ignore
                """Disable pysqlite's own BEGIN handling so SQLAlchemy controls transactions."""
                dbapi_connection.isolation_level = None

            @event.listens_for(self.engine.sync_engine, "begin")
            def _sqla_on_begin(dbapi_connection: Any) -> Any:  # type: ignore
                """Emits a custom begin"""
                dbapi_connection.exec_driver_sql("BEGIN")
        else:
            self.engine = create_async_engine(
                url=config.url,
                json_serializer=encode_json_str,
                json_deserializer=decode_json,
                echo=config.echo,
                max_overflow=config.pool_max_overflow,
                pool_size=config.pool_size,
                pool_timeout=config.pool_timeout,
                pool_recycle=config.pool_recycle,
                pool_pre_ping=config.pool_pre_ping,
                pool_use_lifo=config.pool_use_lifo,  # use lifo to reduce the number of idle connections
                poolclass=NullPool if config.pool_disabled else None,
            )

    @property
    def label(self) -> str:
        return self._label

    @property
    @override
    def _name_for_log(self) -> str:
        return f"Db[{self._label}]"

    @override
    async def _start(self) -> None:
        pass

    @override
    async def _stop(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def new_session(self) -> AsyncGenerator[AsyncSession]:
        """A short-lived session; its connection goes back to the pool when the block exits, on every path."""
        async with AsyncSession(self.engine, expire_on_commit=False, autoflush=False) as session:
            yield session
