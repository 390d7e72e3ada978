"""AutoRenew unlock routes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.dependencies import get_autorenew_service, get_optional_principal, get_query_shard, require_admin_key
from storefront.errors import StoreErrors
from storefront.schemas.autorenew import ActivateAutorenewRequest, ActivateAutorenewResponse, AutorenewCheckResponse
from storefront.services.autorenew_service import AutorenewService
from storefront.services.principal import Principal
from storefront.services.sanitizer import sanitize_owner_id, strip_identifier

router = APIRouter(prefix="/autorenew", tags=["autorenew"])


@router.get("/check-purchase", response_model=AutorenewCheckResponse)
async def check_purchase(
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
    autorenew: Annotated[AutorenewService, Depends(get_autorenew_service)],
    shard: Annotated[str | None, Depends(get_query_shard)],
):
    """Anonymous callers simply have not purchased."""
    if principal is None:
        return AutorenewCheckResponse(has_purchased=False)
    return AutorenewCheckResponse(has_purchased=await autorenew.has_purchased(principal.owner_id, shard))


@router.post("/activate", response_model=ActivateAutorenewResponse, dependencies=[Depends(require_admin_key)])
async def activate(
    req: ActivateAutorenewRequest,
    autorenew: Annotated[AutorenewService, Depends(get_autorenew_service)],
):
    if not req.owner_id or not req.payment_id:
        raise StoreErrors.Input.MISSING_FIELDS.create()
    owner_id = sanitize_owner_id(str(req.owner_id))
    payment_id = strip_identifier(str(req.payment_id))
    if not payment_id:
        raise StoreErrors.Input.MISSING_FIELDS.create()

    entry = await autorenew.activate(owner_id, payment_id, req.shard)
    return ActivateAutorenewResponse(owner_id=entry.user_id, payment_id=entry.payment_id)
