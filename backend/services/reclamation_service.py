"""
Reclamation Scheduler — returns numbers held by abandoned unpaid orders.

A sweep:
    1. classifies the stored schedule into a grace period (minutes)
    2. finds live orders still in an ORDER_CREATION status, not paid, holding
       a number and older than the grace period
    3. releases each one in its own transaction; a failing order is logged
       and skipped
    4. returns a summary of the orders it reclaimed

Re-running a sweep is harmless: a reclaimed order no longer holds a number,
so it cannot qualify again.

The background loop ticks every RECLAMATION_TICK_SECONDS, re-reads the
schedule from the DB and runs a sweep whenever the cron expression matches
the current UTC minute (at most once per minute). This runs as an asyncio
background task during the FastAPI app lifespan.
"""
import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import async_session, transaction
from db_models import Order
from domain.enums import AuditAction, OrderEvent, PaymentStatus
from domain.errors import DomainError
from services import inventory_service, mapping_service, schedule_service, status_service
from services.audit_service import SYSTEM_ACTOR, AuditBatch
from services.reclamation_metrics import get_sweep_metrics
from utils.cron import classify_schedule_minutes, cron_matches

logger = logging.getLogger(__name__)

# Scheduler state
_scheduler_task: Optional[asyncio.Task] = None
_is_running: bool = False
_errors_count: int = 0
_last_run_minute: Optional[datetime] = None


# ════════════════════════════════════════════════════════════════════
# Sweep
# ════════════════════════════════════════════════════════════════════


async def _find_expired_order_ids(db: AsyncSession, cutoff: datetime) -> list[int]:
    creation_status_ids = await mapping_service.resolve_statuses_for_event(db, OrderEvent.ORDER_CREATION)
    if not creation_status_ids:
        logger.warning("No status mapped to ORDER_CREATION; nothing to reclaim")
        return []

    res = await db.execute(
        select(Order.id)
        .where(
            Order.is_deleted == False,  # noqa: E712
            Order.status_id.in_(creation_status_ids),
            Order.payment_status != PaymentStatus.PAID.value,
            Order.inventory_item_id.is_not(None),
            Order.created_at < cutoff,
        )
        .order_by(Order.created_at.asc(), Order.id.asc())
    )
    return [row[0] for row in res.all()]


async def _reclaim_order(
    db: AsyncSession,
    order_id: int,
    *,
    grace_minutes: int,
    auto_status_id: int | None,
    now: datetime,
) -> dict | None:
    """Release one order's number. Returns its summary, or None if it no longer qualifies."""
    async with transaction(db, f"auto release order {order_id}"):
        # Re-read inside the transaction: a payment may have landed since the scan.
        order = await db.get(Order, order_id, populate_existing=True)
        if (
            order is None
            or order.is_deleted
            or order.payment_status == PaymentStatus.PAID.value
            or order.inventory_item_id is None
        ):
            return None

        had_bundle = order.bundle_id is not None
        age_minutes = (now - order.created_at).total_seconds() / 60
        overage_minutes = max(0, int(age_minutes - grace_minutes))
        number = await inventory_service.release_for_order(db, order)

        previous_status = await status_service.status_name(db, order.status_id)
        new_status = previous_status
        if auto_status_id is not None and auto_status_id != order.status_id:
            order.status_id = auto_status_id
            new_status = await status_service.status_name(db, auto_status_id)
        order.updated_at = now

        released = f"SIM Number {number}" + (" and its bundle" if had_bundle else "")
        batch = AuditBatch(order=order, actor=SYSTEM_ACTOR)
        batch.add(
            AuditAction.AUTOMATIC_RELEASE_INVENTORY,
            previous_value=previous_status,
            new_value=new_status,
            details=(
                f"{released} was released due to exceeding the payment deadline "
                f"of {grace_minutes} minutes (exceeded by {overage_minutes} minutes)"
            ),
        )
        batch.stage(db)

    return {
        "order_uuid": order.uuid,
        "display_id": order.display_id,
        "number": number,
        "created_at": order.created_at.isoformat(),
        "overage_minutes": overage_minutes,
    }


async def run_sweep(
    db: AsyncSession,
    *,
    schedule: str | None = None,
    now: datetime | None = None,
) -> list[dict]:
    """
    Run one reclamation sweep.

    Args:
        db: Database session
        schedule: cron expression to derive the grace period from
            (defaults to the stored schedule)
        now: reference time, UTC (defaults to the current time)

    Returns:
        list[dict]: one entry per reclaimed order:
            {order_uuid, display_id, number, created_at, overage_minutes}
    """
    started = time.monotonic()
    metrics = get_sweep_metrics()

    if schedule is None:
        schedule = await schedule_service.get_schedule(db)
    now = now or datetime.utcnow()
    grace_minutes = classify_schedule_minutes(schedule)
    cutoff = now - timedelta(minutes=grace_minutes)

    order_ids = await _find_expired_order_ids(db, cutoff)
    auto_status_id = await mapping_service.first_status_for_event(db, OrderEvent.AUTO_RELEASE_INVENTORY)

    processed = []
    failures = 0
    if order_ids:
        logger.info(f"Sweep: {len(order_ids)} expired unpaid order(s) (grace {grace_minutes} min)")

    for order_id in order_ids:
        try:
            summary = await _reclaim_order(
                db,
                order_id,
                grace_minutes=grace_minutes,
                auto_status_id=auto_status_id,
                now=now,
            )
        except DomainError as e:
            failures += 1
            logger.error(f"Sweep: failed to reclaim order id={order_id}: {e.message}")
            continue
        except Exception as e:
            failures += 1
            logger.error(f"Sweep: unexpected error reclaiming order id={order_id}: {e}", exc_info=True)
            continue
        if summary:
            processed.append(summary)
            logger.info(
                f"Sweep: released {summary['number']} from {summary['display_id']} "
                f"({summary['overage_minutes']} min over deadline)"
            )

    metrics.record_sweep(
        reclaimed=len(processed),
        failures=failures,
        duration_ms=(time.monotonic() - started) * 1000,
        schedule=schedule,
    )
    return processed


# ════════════════════════════════════════════════════════════════════
# Background loop
# ════════════════════════════════════════════════════════════════════


async def _scheduler_loop():
    """Tick, re-read the schedule, sweep when it fires. Runs until stop()."""
    global _is_running, _errors_count, _last_run_minute

    metrics = get_sweep_metrics()
    tick = settings.reclamation_tick_seconds
    logger.info(f"Reclamation scheduler started (tick every {tick}s)")

    while _is_running:
        try:
            await asyncio.sleep(tick)
            metrics.heartbeat()

            minute = datetime.utcnow().replace(second=0, microsecond=0)
            if _last_run_minute == minute:
                continue

            async with async_session() as db:
                schedule = await schedule_service.get_schedule(db)
                if not cron_matches(schedule, minute):
                    continue
                _last_run_minute = minute
                processed = await run_sweep(db, schedule=schedule)

            if processed:
                logger.info(f"Reclamation sweep released {len(processed)} number(s)")

        except asyncio.CancelledError:
            logger.info("Reclamation scheduler cancelled")
            break
        except Exception as e:
            _errors_count += 1
            metrics.record_sweep_error()
            logger.error(f"Reclamation scheduler cycle error: {e}", exc_info=True)

    _is_running = False
    logger.info("Reclamation scheduler stopped")


# ════════════════════════════════════════════════════════════════════
# Public API
# ════════════════════════════════════════════════════════════════════


async def start():
    """Start the scheduler as a background asyncio task."""
    global _scheduler_task, _is_running

    if _scheduler_task and not _scheduler_task.done():
        logger.warning("Reclamation scheduler already running")
        return

    _is_running = True
    _scheduler_task = asyncio.create_task(_scheduler_loop())


async def stop():
    """Stop the scheduler gracefully."""
    global _scheduler_task, _is_running
    _is_running = False

    if _scheduler_task and not _scheduler_task.done():
        _scheduler_task.cancel()
        try:
            await _scheduler_task
        except asyncio.CancelledError:
            pass

    _scheduler_task = None


def get_status() -> dict:
    """Scheduler status for the /scheduler/status endpoint."""
    return {
        "running": _is_running,
        "enabled": settings.reclamation_enabled,
        "tickSeconds": settings.reclamation_tick_seconds,
        "lastRunMinute": _last_run_minute.isoformat() if _last_run_minute else None,
        "errorsCount": _errors_count,
        "metrics": get_sweep_metrics().to_dict(),
    }
