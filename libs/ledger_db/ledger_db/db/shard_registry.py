"""One database pool per game shard, built once at boot and closed at shutdown."""

from __future__ import annotations

from typing import override

from store_common.core.lifecycle import Lifecycle
from store_common.db.db import Db, DBConfig
from store_common.utils import get_logger

logger = get_logger()


class ShardRegistry(Lifecycle):
    """Owns the ``Db`` of every shard.

    Labels are resolved case-sensitively; an empty or unknown label falls back to the primary
    shard. The primary shard doubles as the store for order metadata.
    """

    _shards: dict[str, Db]
    _primary: str

    def __init__(self, databases: dict[str, DBConfig], primary: str | None = None) -> None:
        super().__init__()
        if not databases:
            raise ValueError("At least one shard must be configured")
        self._shards = {label: Db(config, label=label) for label, config in databases.items()}
        self._primary = primary or next(iter(databases))
        if self._primary not in self._shards:
            raise ValueError(f"Primary shard {self._primary!r} is not configured")

    @property
    def labels(self) -> list[str]:
        return list(self._shards)

    @property
    def primary_label(self) -> str:
        return self._primary

    @property
    def primary(self) -> Db:
        return self._shards[self._primary]

    def resolve(self, label: str | None) -> str:
        if not label:
            return self._primary
        if label not in self._shards:
            logger.warning("Unknown shard requested, using primary", shard=label, primary=self._primary)
            return self._primary
        return label

    def get(self, label: str | None) -> Db:
        return self._shards[self.resolve(label)]

    @override
    async def _start(self) -> None:
        for db in self._shards.values():
            await db.start()

    @override
    async def _stop(self) -> None:
        for db in self._shards.values():
            await db.stop()
