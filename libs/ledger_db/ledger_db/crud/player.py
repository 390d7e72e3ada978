"""DAO for the externally owned player row."""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_db.models.player import Player
from ledger_db.schemas.player import PlayerBalance, PlayerStats


class PlayerDAO:
    """Reads players and credits balances.

    ``lock`` and ``credit`` never commit; they run inside the caller's ledger transaction.
    """

    async def get(self, db: AsyncSession, player_id: str) -> PlayerStats | None:
        result = await db.execute(select(Player).where(Player.id == player_id))
        player = result.scalar_one_or_none()
        return PlayerStats.model_validate(player) if player else None

    async def lock(self, db: AsyncSession, player_id: str) -> PlayerBalance | None:
        """Take a row lock on the player until the surrounding transaction ends."""
        result = await db.execute(select(Player).where(Player.id == player_id).with_for_update())
        player = result.scalar_one_or_none()
        return PlayerBalance.model_validate(player) if player else None

    async def credit(self, db: AsyncSession, player_id: str, coins: int) -> PlayerBalance | None:
        await db.execute(
            update(Player)
            .where(Player.id == player_id)
            .values(
                dao_coins=Player.dao_coins + coins,
                dao_coins_spent=Player.dao_coins_spent + coins,
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(
            select(Player.id, Player.dao_coins, Player.dao_coins_spent).where(Player.id == player_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return PlayerBalance(id=row.id, dao_coins=row.dao_coins, dao_coins_spent=row.dao_coins_spent)
