import os
from logging.config import fileConfig
from typing import Any, Literal

from alembic import context
from alembic.autogenerate.api import AutogenContext
from sqlalchemy import TypeDecorator, engine_from_config, pool

from ledger_db.db import EXTERNAL_TABLE, Base

# Ensure models are imported so Base.metadata is populated for autogenerate
from ledger_db.models import payments, player, subscriptions  # type: ignore # noqa: F401
from store_common.core.config_service import ConfigService
from store_common.logging.setup_logging import setup_logging

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

use_alembic_logging = os.getenv("ALEMBIC_USE_DEFAULT_LOGGING", "false").lower() in {"true", "1", "t", "yes"}

if use_alembic_logging and config.config_file_name is not None:
    fileConfig(config.config_file_name)
else:
    setup_logging()

target_metadata = Base.metadata

# Every shard carries the same schema; pick the one to migrate with `-x shard=<label>`
config_service = ConfigService()
shard_label = context.get_x_argument(as_dictionary=True).get("shard") or config_service.shards.primary
db_config = config_service.shards.databases.get(shard_label)
if db_config is None:
    raise ValueError(f"Shard {shard_label!r} is not configured (known: {', '.join(config_service.shards.databases)})")

# Alembic runs on a sync engine
sync_driver = {"postgresql+asyncpg": "postgresql", "sqlite+aiosqlite": "sqlite"}.get(db_config.driver, db_config.driver)
sync_url = db_config.url.set(drivername=sync_driver)
config.set_main_option("sqlalchemy.url", sync_url.render_as_string(hide_password=False).replace("%", "%%"))


def include_object(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    """Skip tables owned by the game server."""
    if type_ == "table" and obj.info.get(EXTERNAL_TABLE):
        return False
    return True


def render_item(type_: str, obj: Any, autogen_context: AutogenContext) -> str | Literal[False]:
    """Apply custom rendering for selected items."""
    if type_ == "type" and isinstance(obj, TypeDecorator):
        return f"sa.{obj.impl!r}"

    # default rendering for other objects
    return False


def run_migrations_offline() -> None:
    raise RuntimeError("Offline mode is not supported")


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_object=include_object,
            render_item=render_item,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
