from store_common.utils import JsonModel


class PlayerStatsResponse(JsonModel):
    user_id: str
    realm: str | None = None
    stage: int | None = None
    qi: str
    prestige: int
    dao_coins: int
    dao_coins_spent: int
    spirit_stones: str
    shard: str
