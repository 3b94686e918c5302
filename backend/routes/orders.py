"""
Order endpoints — creation, lookups and every lifecycle transition.

Endpoints:
    POST   /orders                               — Create an order
    GET    /orders                               — List orders (filters + pagination)
    GET    /orders/status-info/{display_id}      — Current status by display id
    GET    /orders/{order_uuid}                  — Order details
    DELETE /orders/{order_uuid}                  — Soft-delete, frees the number
    PATCH  /orders/{order_uuid}/status           — Manual status change
    POST   /orders/{order_uuid}/inventory        — Assign a number (and bundle)
    POST   /orders/{order_uuid}/events/{event}   — Apply CANCELED / ORDER_COMPLETED
    PATCH  /orders/{order_uuid}/notes            — Update notes
    PATCH  /orders/{order_uuid}/national-id      — Replace the national id
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from deps import (
    Pagination,
    get_db,
    live_order,
    pagination_params,
    require_actor,
    validated_event,
    validated_order_uuid,
)
from db_models import Order
from domain.enums import OrderEvent, PaymentStatus
from domain.responses import paginated_response, success_response
from middleware.rate_limit import rate_limit
from models import (
    AssignInventoryRequest,
    ChangeStatusRequest,
    CreateOrderRequest,
    UpdateNationalIdRequest,
    UpdateNotesRequest,
)
from services import order_service
from services.audit_service import Actor

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/orders", tags=["orders"])


# ── POST /orders ────────────────────────────────────────────────────
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    body: CreateOrderRequest,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    """Create an order in the creation status, claiming a number if one is given."""
    order = await order_service.create_order(
        db,
        personal_phone=body.personal_phone,
        customer_name=body.customer_name,
        alternate_phone=body.alternate_phone,
        address=body.address,
        notes=body.notes,
        national_id=body.national_id,
        inventory_item_id=body.inventory_item_id,
        bundle_id=body.bundle_id,
        city_id=body.city_id,
        actor=actor,
    )
    return success_response(
        await order_service.serialize_order(db, order),
        message="Order created successfully",
        code=status.HTTP_201_CREATED,
    )


# ── GET /orders ─────────────────────────────────────────────────────
@router.get("")
async def list_orders(
    status_id: Optional[int] = Query(None, alias="statusId", ge=1),
    payment_status: Optional[PaymentStatus] = Query(None, alias="paymentStatus"),
    pagination: Pagination = Depends(pagination_params),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    orders, total = await order_service.list_orders(
        db,
        status_id=status_id,
        payment_status=payment_status,
        limit=pagination["limit"],
        offset=pagination["offset"],
    )
    return paginated_response(
        [await order_service.serialize_order(db, o) for o in orders],
        limit=pagination["limit"],
        offset=pagination["offset"],
        total=total,
    )


# ── GET /orders/status-info/{display_id} ────────────────────────────
@router.get("/status-info/{display_id}")
async def get_status_info(
    display_id: str,
    db: AsyncSession = Depends(get_db),
    _rate=Depends(rate_limit(max_requests=settings.status_info_rate_limit, window_seconds=60)),
):
    """
    Current status for a display id (e.g. SO-1000).

    Public: used by the customer-facing assistant, so no token is required.
    """
    info = await order_service.get_status_info(db, display_id)
    return success_response(info, message="Sales order status info retrieved successfully")


# ── GET /orders/{order_uuid} ────────────────────────────────────────
@router.get("/{order_uuid}")
async def get_order(
    actor: Actor = Depends(require_actor),
    order: Order = Depends(live_order),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await order_service.serialize_order(db, order))


# ── DELETE /orders/{order_uuid} ─────────────────────────────────────
@router.delete("/{order_uuid}")
async def delete_order(
    order_uuid: str = Depends(validated_order_uuid),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.delete_order(db, order_uuid=order_uuid, actor=actor)
    return success_response(
        {"uuid": order.uuid, "orderId": order.display_id, "isDeleted": True},
        message="Order deleted successfully",
    )


# ── PATCH /orders/{order_uuid}/status ───────────────────────────────
@router.patch("/{order_uuid}/status")
async def change_status(
    body: ChangeStatusRequest,
    order_uuid: str = Depends(validated_order_uuid),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.manual_status_change(
        db, order_uuid=order_uuid, status_id=body.status_id, actor=actor,
    )
    return success_response(
        await order_service.serialize_order(db, order),
        message="Order status updated successfully",
    )


# ── POST /orders/{order_uuid}/inventory ─────────────────────────────
@router.post("/{order_uuid}/inventory")
async def assign_inventory(
    body: AssignInventoryRequest,
    order_uuid: str = Depends(validated_order_uuid),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.assign_inventory(
        db,
        order_uuid=order_uuid,
        item_id=body.inventory_item_id,
        bundle_id=body.bundle_id,
        actor=actor,
    )
    return success_response(
        await order_service.serialize_order(db, order),
        message="Number assigned successfully",
    )


# ── POST /orders/{order_uuid}/events/{event} ────────────────────────
@router.post("/{order_uuid}/events/{event}")
async def apply_event(
    order_uuid: str = Depends(validated_order_uuid),
    event: OrderEvent = Depends(validated_event),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.apply_event(db, order_uuid=order_uuid, event=event, actor=actor)
    return success_response(
        await order_service.serialize_order(db, order),
        message=f"{event.value} applied",
    )


# ── PATCH /orders/{order_uuid}/notes ────────────────────────────────
@router.patch("/{order_uuid}/notes")
async def update_notes(
    body: UpdateNotesRequest,
    order_uuid: str = Depends(validated_order_uuid),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.update_notes(db, order_uuid=order_uuid, notes=body.notes, actor=actor)
    return success_response(
        await order_service.serialize_order(db, order),
        message="Notes updated successfully",
    )


# ── PATCH /orders/{order_uuid}/national-id ──────────────────────────
@router.patch("/{order_uuid}/national-id")
async def update_national_id(
    body: UpdateNationalIdRequest,
    order_uuid: str = Depends(validated_order_uuid),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.update_national_id(
        db, order_uuid=order_uuid, national_id=body.national_id, actor=actor,
    )
    return success_response(
        await order_service.serialize_order(db, order),
        message="National id updated successfully",
    )
