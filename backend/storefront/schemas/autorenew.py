"""AutoRenew schemas."""

from typing import Any

from pydantic import AliasChoices, Field

from store_common.utils import JsonModel
from storefront.schemas.common import ShardScopedRequest


class AutorenewCheckResponse(JsonModel):
    has_purchased: bool


class ActivateAutorenewRequest(ShardScopedRequest):
    owner_id: Any = Field(default=None, validation_alias=AliasChoices("ownerId", "userId", "discordId", "owner_id"))
    payment_id: Any = None


class ActivateAutorenewResponse(JsonModel):
    activated: bool = True
    owner_id: str
    payment_id: str
