"""
Reclamation scheduler endpoints.

Endpoints:
    GET  /scheduler/schedule   — Stored schedule and derived grace period
    PUT  /scheduler/schedule   — Update the schedule (admin)
    GET  /scheduler/status     — Background task state and sweep metrics
    POST /scheduler/run        — Run a sweep now (admin)
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import transaction
from deps import get_db, require_actor, require_admin
from domain.responses import success_response
from models import UpdateScheduleRequest
from services import reclamation_service, schedule_service
from services.audit_service import Actor
from utils.cron import classify_schedule_minutes

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/scheduler", tags=["scheduler"])


@router.get("/schedule")
async def get_schedule(
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    schedule = await schedule_service.get_schedule(db)
    return success_response({
        "schedule": schedule,
        "graceMinutes": classify_schedule_minutes(schedule),
    })


@router.put("/schedule")
async def update_schedule(
    body: UpdateScheduleRequest,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    async with transaction(db, "update schedule"):
        schedule = await schedule_service.update_schedule(db, value=body.schedule)
    return success_response(
        {"schedule": schedule, "graceMinutes": classify_schedule_minutes(schedule)},
        message="Cron schedule updated successfully",
    )


@router.get("/status")
async def get_scheduler_status(actor: Actor = Depends(require_actor)):
    return success_response(reclamation_service.get_status())


@router.post("/run")
async def run_sweep_now(
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    processed = await reclamation_service.run_sweep(db)
    logger.info(f"Manual sweep by {admin.email}: {len(processed)} order(s) reclaimed")
    return success_response(
        {"processed": processed, "count": len(processed)},
        message="Reclamation sweep completed",
    )
