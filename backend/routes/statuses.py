"""
Order status catalog endpoints.

Endpoints:
    GET    /statuses        — Live statuses with their event tags
    POST   /statuses        — Create (admin)
    PATCH  /statuses/{id}   — Rename (admin)
    DELETE /statuses/{id}   — Soft-delete (admin; refused while orders use it)
"""
import logging

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from database import transaction
from deps import get_db, require_actor, require_admin
from domain.responses import success_response
from models import StatusRequest
from services import mapping_service, status_service
from services.audit_service import Actor

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/statuses", tags=["statuses"])


@router.get("")
async def list_statuses(
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    statuses = await status_service.list_statuses(db)
    return success_response([
        {
            **status_service.serialize_status(s),
            "events": [e.value for e in await mapping_service.list_events_for_status(db, s.id)],
        }
        for s in statuses
    ])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_status(
    body: StatusRequest,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    async with transaction(db, "create status"):
        created = await status_service.create_status(db, name=body.name)
    return success_response(
        status_service.serialize_status(created),
        message="Order status created successfully",
        code=status.HTTP_201_CREATED,
    )


@router.patch("/{status_id}")
async def rename_status(
    body: StatusRequest,
    status_id: int = Path(..., ge=1),
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    async with transaction(db, "rename status"):
        renamed = await status_service.rename_status(db, status_id=status_id, name=body.name)
    return success_response(
        status_service.serialize_status(renamed),
        message="Order status updated successfully",
    )


@router.delete("/{status_id}")
async def delete_status(
    status_id: int = Path(..., ge=1),
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    async with transaction(db, "delete status"):
        deleted = await status_service.soft_delete_status(db, status_id=status_id)
    logger.info(f"{admin.email} deleted status '{deleted.name}'")
    return success_response(
        status_service.serialize_status(deleted),
        message="Order status deleted successfully",
    )
