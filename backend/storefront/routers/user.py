from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.dependencies import get_player_service, get_principal, get_query_shard
from storefront.schemas.user import PlayerStatsResponse
from storefront.services.player_service import PlayerService
from storefront.services.principal import Principal

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/stats", response_model=PlayerStatsResponse)
async def player_stats(
    principal: Annotated[Principal, Depends(get_principal)],
    players: Annotated[PlayerService, Depends(get_player_service)],
    shard: Annotated[str | None, Depends(get_query_shard)],
):
    stats, label = await players.get_stats(principal.owner_id, shard)
    return PlayerStatsResponse(
        user_id=stats.id,
        realm=stats.realm,
        stage=stats.stage,
        qi=str(stats.qi),
        prestige=stats.prestige,
        dao_coins=stats.dao_coins,
        dao_coins_spent=stats.dao_coins_spent,
        spirit_stones=str(stats.spirit_stones),
        shard=label,
    )
