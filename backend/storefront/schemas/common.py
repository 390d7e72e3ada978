"""Fields shared by request bodies."""

from pydantic import AliasChoices, Field

from store_common.utils import JsonModel


class ShardScopedRequest(JsonModel):
    """A request aimed at one game shard; ``server`` is accepted for older clients."""

    shard: str | None = Field(default=None, validation_alias=AliasChoices("shard", "server"))
