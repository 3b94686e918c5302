"""
Audit trail endpoints (read-only).

Endpoints:
    GET /audit-logs                       — Filtered, paginated global view
    GET /orders/{order_uuid}/audit-logs   — Chronological trail of one order
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from deps import Pagination, get_db, pagination_params, require_actor, validated_order_uuid
from domain.enums import ActorKind
from domain.errors import ValidationError
from domain.responses import paginated_response, success_response
from services import audit_service
from services.audit_service import Actor

logger = logging.getLogger(__name__)
router = APIRouter(tags=["audit"])


@router.get("/audit-logs")
async def list_audit_logs(
    done_by: Optional[ActorKind] = Query(None, alias="doneBy"),
    action: Optional[str] = Query(None, max_length=50),
    actor_email: Optional[str] = Query(None, alias="actorEmail", max_length=200),
    order_uuid: Optional[str] = Query(None, alias="orderUuid"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    pagination: Pagination = Depends(pagination_params),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    if start_date and end_date and start_date > end_date:
        raise ValidationError("startDate must not be after endDate", field="startDate")

    rows, total = await audit_service.list_entries(
        db,
        done_by=done_by,
        action=action,
        actor_email=actor_email,
        order_uuid=order_uuid,
        start_date=start_date,
        end_date=end_date,
        limit=pagination["limit"],
        offset=pagination["offset"],
    )
    return paginated_response(
        [audit_service.serialize_entry(r) for r in rows],
        limit=pagination["limit"],
        offset=pagination["offset"],
        total=total,
    )


@router.get("/orders/{order_uuid}/audit-logs")
async def get_order_audit_logs(
    order_uuid: str = Depends(validated_order_uuid),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    rows = await audit_service.list_for_order(db, order_uuid=order_uuid)
    return success_response([audit_service.serialize_entry(r) for r in rows])
