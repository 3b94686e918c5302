"""
Status Catalog — admin-defined workflow states.

Plain CRUD. Names are unique among live statuses; deleting a status also drops
its event tags so no mapping points at a deleted status.
"""
import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import EventStatusMapping, Order, OrderStatus, live
from domain.constants import DEFAULT_CREATION_STATUS_NAME
from domain.enums import OrderEvent
from domain.errors import BusinessRuleError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("must not be empty", field="name")
    if len(name) > 100:
        raise ValidationError("should be maximum 100 characters", field="name")
    return name


async def find_by_name(db: AsyncSession, name: str) -> OrderStatus | None:
    res = await db.execute(
        live(OrderStatus).where(func.lower(OrderStatus.name) == name.strip().lower())
    )
    return res.scalars().first()


async def get_status(db: AsyncSession, status_id: int) -> OrderStatus:
    res = await db.execute(live(OrderStatus).where(OrderStatus.id == status_id))
    status = res.scalar_one_or_none()
    if not status:
        raise NotFoundError("Order status", status_id)
    return status


async def status_name(db: AsyncSession, status_id: int | None) -> str | None:
    """Name of a status even if it has since been deleted (for audit snapshots)."""
    if status_id is None:
        return None
    res = await db.execute(
        select(OrderStatus.name).where(OrderStatus.id == status_id)
    )
    return res.scalar_one_or_none()


async def list_statuses(db: AsyncSession) -> list[OrderStatus]:
    res = await db.execute(live(OrderStatus).order_by(OrderStatus.id.asc()))
    return res.scalars().all()


async def create_status(db: AsyncSession, *, name: str) -> OrderStatus:
    name = _clean_name(name)
    if await find_by_name(db, name):
        raise BusinessRuleError(f"Order status '{name}' already exists")

    status = OrderStatus(name=name)
    db.add(status)
    await db.flush()
    logger.info(f"Order status created: '{name}' (id={status.id})")
    return status


async def rename_status(db: AsyncSession, *, status_id: int, name: str) -> OrderStatus:
    status = await get_status(db, status_id)
    name = _clean_name(name)
    existing = await find_by_name(db, name)
    if existing and existing.id != status.id:
        raise BusinessRuleError(f"Order status '{name}' already exists")

    status.name = name
    status.updated_at = datetime.utcnow()
    await db.flush()
    return status


async def soft_delete_status(db: AsyncSession, *, status_id: int) -> OrderStatus:
    """Soft-delete a status. Refused while live orders still sit in it."""
    status = await get_status(db, status_id)

    in_use = await db.execute(
        select(func.count(Order.id)).where(Order.status_id == status.id, Order.is_deleted == False)  # noqa: E712
    )
    count = in_use.scalar() or 0
    if count:
        raise BusinessRuleError(
            f"Cannot delete status '{status.name}': {count} order(s) currently use it"
        )

    now = datetime.utcnow()
    status.soft_delete()
    await db.execute(
        update(EventStatusMapping)
        .where(EventStatusMapping.status_id == status.id, EventStatusMapping.is_deleted == False)  # noqa: E712
        .values(is_deleted=True, deleted_at=now)
    )
    await db.flush()
    return status


async def get_or_create_tagged(db: AsyncSession, *, name: str, events: list[OrderEvent]) -> OrderStatus:
    """
    Return the live status called `name`, creating it if needed, and make sure
    it carries every event tag in `events`.
    """
    from services import mapping_service

    status = await find_by_name(db, name)
    if not status:
        status = OrderStatus(name=name)
        db.add(status)
        await db.flush()
        logger.info(f"Fallback status '{name}' created on demand (id={status.id})")

    for event in events:
        await mapping_service.tag_status(db, status_id=status.id, event=event)
    return status


async def ensure_creation_status(db: AsyncSession) -> OrderStatus:
    """Status used for new orders: first ORDER_CREATION mapping, else a tagged 'Draft'."""
    from services import mapping_service

    status_id = await mapping_service.first_status_for_event(db, OrderEvent.ORDER_CREATION)
    if status_id is not None:
        return await get_status(db, status_id)

    logger.warning(
        f"No status mapped to {OrderEvent.ORDER_CREATION.value}; "
        f"using default '{DEFAULT_CREATION_STATUS_NAME}'"
    )
    return await get_or_create_tagged(
        db, name=DEFAULT_CREATION_STATUS_NAME, events=[OrderEvent.ORDER_CREATION]
    )


def serialize_status(status: OrderStatus) -> dict:
    return {"id": status.id, "uuid": status.uuid, "name": status.name}
