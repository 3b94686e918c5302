"""
Inventory endpoints — minimal pool management.

Endpoints:
    GET  /inventory   — List numbers (optional state filter)
    POST /inventory   — Add a number (admin)

Numbers change state only through order operations; there is no endpoint
that marks a number Sold or Available directly.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from database import transaction
from deps import Pagination, get_db, pagination_params, require_actor, require_admin
from domain.enums import InventoryState
from domain.responses import paginated_response, success_response
from models import CreateInventoryItemRequest
from services import inventory_service
from services.audit_service import Actor

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("")
async def list_inventory(
    state: Optional[InventoryState] = Query(None),
    pagination: Pagination = Depends(pagination_params),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    items, total = await inventory_service.list_items(
        db, state=state, limit=pagination["limit"], offset=pagination["offset"],
    )
    return paginated_response(
        [inventory_service.serialize_item(i) for i in items],
        limit=pagination["limit"],
        offset=pagination["offset"],
        total=total,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    body: CreateInventoryItemRequest,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    async with transaction(db, "create inventory item"):
        item = await inventory_service.create_item(
            db,
            number=body.number,
            price=body.price,
            discount=body.discount,
            state=body.state,
        )
    return success_response(
        inventory_service.serialize_item(item),
        message="Inventory item created successfully",
        code=status.HTTP_201_CREATED,
    )
