"""
Event registry & mapping endpoints.

Endpoints:
    GET /events                    — The fixed event set
    GET /events/mappings           — Every event with its mapped statuses
    GET /events/{event}/statuses   — Statuses mapped to one event
    PUT /events/{event}/statuses   — Replace the mapping for one event (admin)
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import transaction
from deps import get_db, require_actor, require_admin, validated_event
from domain.enums import OrderEvent
from domain.responses import success_response
from models import ReplaceMappingsRequest
from services import mapping_service, status_service
from services.audit_service import Actor

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/events", tags=["events"])


@router.get("")
async def list_events():
    return success_response([e.value for e in OrderEvent])


@router.get("/mappings")
async def list_mappings(
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await mapping_service.list_event_mappings(db))


@router.get("/{event}/statuses")
async def get_event_statuses(
    event: OrderEvent = Depends(validated_event),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    statuses = await mapping_service.list_statuses_for_event(db, event)
    return success_response({
        "event": event.value,
        "statuses": [status_service.serialize_status(s) for s in statuses],
    })


@router.put("/{event}/statuses")
async def replace_event_statuses(
    body: ReplaceMappingsRequest,
    event: OrderEvent = Depends(validated_event),
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Make `statusIds` the exact set mapped to `event`. All-or-nothing."""
    async with transaction(db, f"replace mappings for {event.value}"):
        result = await mapping_service.replace_mappings_for_event(db, event, body.status_ids)

    logger.info(f"{admin.email} replaced mappings for {event.value}: {result}")
    return success_response(
        {"event": event.value, **result},
        message="Event status mappings updated successfully",
    )
