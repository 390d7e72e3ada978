from sqlalchemy.orm import DeclarativeBase as _DeclarativeBase

from store_common.db.db_utils import create_registry

from .shard_registry import ShardRegistry

EXTERNAL_TABLE = "external"
"""``Table.info`` flag for tables owned by the game server; migrations skip them."""


class Base(_DeclarativeBase):
    __abstract__ = True

    registry = create_registry()


__all__ = ["EXTERNAL_TABLE", "Base", "ShardRegistry"]
