"""
Mapping Registry — the configurable event <-> status wiring.

Two uses:
    resolve:  which status should an order move to when event E happens?
    predicate: does status S also imply event E's side effect (e.g. release)?

When an event maps to several statuses the lowest status id wins; the same
ordering is used everywhere so resolve and first-status agree.
"""
import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import EventStatusMapping, OrderStatus
from domain.enums import OrderEvent
from domain.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _live_pairs():
    """Live mappings joined to live statuses."""
    return (
        select(EventStatusMapping, OrderStatus)
        .join(OrderStatus, OrderStatus.id == EventStatusMapping.status_id)
        .where(
            EventStatusMapping.is_deleted == False,  # noqa: E712
            OrderStatus.is_deleted == False,  # noqa: E712
        )
    )


async def resolve_statuses_for_event(db: AsyncSession, event: OrderEvent | str) -> list[int]:
    """Status ids mapped to `event`, lowest id first. Empty when unconfigured."""
    event = OrderEvent.parse(event)
    res = await db.execute(
        select(EventStatusMapping.status_id)
        .join(OrderStatus, OrderStatus.id == EventStatusMapping.status_id)
        .where(
            EventStatusMapping.event == event.value,
            EventStatusMapping.is_deleted == False,  # noqa: E712
            OrderStatus.is_deleted == False,  # noqa: E712
        )
        .order_by(EventStatusMapping.status_id.asc())
        .distinct()
    )
    return [row[0] for row in res.all()]


async def first_status_for_event(db: AsyncSession, event: OrderEvent | str) -> int | None:
    status_ids = await resolve_statuses_for_event(db, event)
    return status_ids[0] if status_ids else None


async def is_status_mapped_to_event(db: AsyncSession, status_id: int | None, event: OrderEvent | str) -> bool:
    if status_id is None:
        return False
    return status_id in await resolve_statuses_for_event(db, event)


async def list_events_for_status(db: AsyncSession, status_id: int) -> list[OrderEvent]:
    res = await db.execute(
        select(EventStatusMapping.event)
        .where(
            EventStatusMapping.status_id == status_id,
            EventStatusMapping.is_deleted == False,  # noqa: E712
        )
        .distinct()
    )
    return sorted((OrderEvent(row[0]) for row in res.all()), key=lambda e: list(OrderEvent).index(e))


async def list_event_mappings(db: AsyncSession) -> dict[str, list[dict]]:
    """Every event with its mapped statuses; unconfigured events get an empty list."""
    mappings: dict[str, list[dict]] = {event.value: [] for event in OrderEvent}

    res = await db.execute(_live_pairs().order_by(OrderStatus.id.asc()))
    for mapping, status in res.all():
        bucket = mappings.get(mapping.event)
        if bucket is None:
            continue  # row written before an event was retired
        if any(s["id"] == status.id for s in bucket):
            continue
        bucket.append({"id": status.id, "uuid": status.uuid, "name": status.name})
    return mappings


async def list_statuses_for_event(db: AsyncSession, event: OrderEvent | str) -> list[OrderStatus]:
    event = OrderEvent.parse(event)
    res = await db.execute(
        select(OrderStatus)
        .join(EventStatusMapping, EventStatusMapping.status_id == OrderStatus.id)
        .where(
            EventStatusMapping.event == event.value,
            EventStatusMapping.is_deleted == False,  # noqa: E712
            OrderStatus.is_deleted == False,  # noqa: E712
        )
        .order_by(OrderStatus.id.asc())
        .distinct()
    )
    return res.scalars().all()


async def tag_status(db: AsyncSession, *, status_id: int, event: OrderEvent | str) -> bool:
    """Add one (event, status) tag if it is not already live. Returns True if added."""
    event = OrderEvent.parse(event)
    res = await db.execute(
        select(EventStatusMapping.id).where(
            EventStatusMapping.event == event.value,
            EventStatusMapping.status_id == status_id,
            EventStatusMapping.is_deleted == False,  # noqa: E712
        )
    )
    if res.first():
        return False
    db.add(EventStatusMapping(event=event.value, status_id=status_id))
    await db.flush()
    return True


async def replace_mappings_for_event(
    db: AsyncSession,
    event: OrderEvent | str,
    status_ids: list[int],
) -> dict:
    """
    Make `status_ids` the exact set of statuses mapped to `event`.

    Diff-based: only missing pairs are inserted and only surplus pairs are
    soft-deleted, so repeating a call reports zero changes. Everything is
    validated before the first write; the caller commits.

    Raises:
        ValidationError: unknown event or malformed id list
        NotFoundError: a status id is missing or soft-deleted

    Returns:
        dict: {"added": int, "removed": int}
    """
    event = OrderEvent.parse(event)

    requested: list[int] = []
    for raw in status_ids or []:
        try:
            status_id = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"'{raw}' is not a status id", field="statusIds")
        if status_id not in requested:
            requested.append(status_id)

    if requested:
        res = await db.execute(
            select(OrderStatus.id).where(
                OrderStatus.id.in_(requested),
                OrderStatus.is_deleted == False,  # noqa: E712
            )
        )
        found = {row[0] for row in res.all()}
        missing = [sid for sid in requested if sid not in found]
        if missing:
            raise NotFoundError("Order status", ", ".join(str(m) for m in missing))

    existing_res = await db.execute(
        select(EventStatusMapping.status_id).where(
            EventStatusMapping.event == event.value,
            EventStatusMapping.is_deleted == False,  # noqa: E712
        )
    )
    existing = {row[0] for row in existing_res.all()}

    to_add = [sid for sid in requested if sid not in existing]
    to_remove = sorted(existing - set(requested))

    for status_id in to_add:
        db.add(EventStatusMapping(event=event.value, status_id=status_id))

    if to_remove:
        await db.execute(
            update(EventStatusMapping)
            .where(
                EventStatusMapping.event == event.value,
                EventStatusMapping.status_id.in_(to_remove),
                EventStatusMapping.is_deleted == False,  # noqa: E712
            )
            .values(is_deleted=True, deleted_at=datetime.utcnow())
        )

    await db.flush()

    if to_add or to_remove:
        logger.info(
            f"Mappings for {event.value} updated: +{len(to_add)} {to_add} / -{len(to_remove)} {to_remove}"
        )
    return {"added": len(to_add), "removed": len(to_remove)}
