from __future__ import annotations

from ledger_db.crud.player import PlayerDAO
from ledger_db.db import ShardRegistry
from ledger_db.schemas.player import PlayerStats
from store_common.utils import get_logger
from storefront.errors import StoreErrors

logger = get_logger()


class PlayerService:
    def __init__(self, shards: ShardRegistry, player_dao: PlayerDAO) -> None:
        self.shards = shards
        self.player_dao = player_dao

    async def get_stats(self, owner_id: str, shard: str | None = None) -> tuple[PlayerStats, str]:
        """The player's stats on the resolved shard, with that shard's label."""
        label = self.shards.resolve(shard)
        async with self.shards.get(label).new_session() as db:
            stats = await self.player_dao.get(db, owner_id)
        if stats is None:
            logger.info("Player not found", owner_id=owner_id, shard=label)
            raise StoreErrors.Capture.PLAYER_NOT_FOUND.create()
        return stats, label
