"""
Audit Trail — append-only log of every order mutation.

Engine operations collect entries in an AuditBatch while they work and add
them to the same session right before commit, so an entry exists exactly when
the state change it describes does. Entries are never updated or deleted.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Order, OrderAuditLog, live
from domain.constants import SYSTEM_ACTOR_NAME
from domain.enums import ActorKind, AuditAction
from domain.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Who performed a change. System actors have no email."""
    kind: ActorKind
    name: str
    email: str | None = None
    role: str | None = None

    @classmethod
    def system(cls) -> "Actor":
        return cls(kind=ActorKind.SYSTEM, name=SYSTEM_ACTOR_NAME)

    @classmethod
    def user(cls, name: str, email: str | None = None, role: str | None = None) -> "Actor":
        return cls(kind=ActorKind.USER, name=name or email or "Unknown user", email=email, role=role)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


SYSTEM_ACTOR = Actor.system()


@dataclass
class AuditBatch:
    """Pending audit entries for one order, written together with the mutation."""
    order: Order
    actor: Actor
    entries: list[dict] = field(default_factory=list)

    def add(
        self,
        action: AuditAction | str,
        *,
        details: str | None = None,
        previous_value: str | None = None,
        new_value: str | None = None,
    ) -> None:
        self.entries.append({
            "action": action.value if isinstance(action, AuditAction) else action,
            "details": details,
            "previous_value": previous_value,
            "new_value": new_value,
        })

    @property
    def actions(self) -> list[str]:
        return [e["action"] for e in self.entries]

    def stage(self, db: AsyncSession) -> list[OrderAuditLog]:
        """Add every pending entry to the session. Commit is the caller's job."""
        now = datetime.utcnow()
        rows = [
            OrderAuditLog(
                order_id=self.order.id,
                order_uuid=self.order.uuid,
                done_by=self.actor.kind.value,
                actor_name=self.actor.name,
                actor_email=self.actor.email,
                created_at=now,
                **entry,
            )
            for entry in self.entries
        ]
        db.add_all(rows)
        self.entries = []
        return rows


async def create_entry(
    db: AsyncSession,
    *,
    order_uuid: str,
    action: AuditAction | str,
    actor: Actor = SYSTEM_ACTOR,
    details: str | None = None,
    previous_value: str | None = None,
    new_value: str | None = None,
) -> OrderAuditLog:
    """
    Insert a single audit entry for an existing order.

    Raises:
        NotFoundError: the order does not exist (deleted orders keep their trail,
            so they are still accepted here).
    """
    res = await db.execute(live(Order, include_deleted=True).where(Order.uuid == order_uuid))
    order = res.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order", order_uuid)

    batch = AuditBatch(order=order, actor=actor)
    batch.add(action, details=details, previous_value=previous_value, new_value=new_value)
    [row] = batch.stage(db)
    await db.flush()
    return row


async def list_for_order(db: AsyncSession, *, order_uuid: str) -> list[OrderAuditLog]:
    """Chronological trail for one order (oldest first)."""
    res = await db.execute(live(Order, include_deleted=True).where(Order.uuid == order_uuid))
    if not res.scalar_one_or_none():
        raise NotFoundError("Order", order_uuid)

    rows = await db.execute(
        select(OrderAuditLog)
        .where(OrderAuditLog.order_uuid == order_uuid)
        .order_by(OrderAuditLog.created_at.asc(), OrderAuditLog.id.asc())
    )
    return rows.scalars().all()


async def list_entries(
    db: AsyncSession,
    *,
    done_by: ActorKind | None = None,
    action: str | None = None,
    actor_email: str | None = None,
    order_uuid: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[OrderAuditLog], int]:
    """Filtered, paginated global view, newest first. Returns (rows, total)."""
    conditions = []
    if done_by is not None:
        conditions.append(OrderAuditLog.done_by == ActorKind(done_by).value)
    if action:
        conditions.append(OrderAuditLog.action == action)
    if actor_email:
        conditions.append(OrderAuditLog.actor_email == actor_email)
    if order_uuid:
        conditions.append(OrderAuditLog.order_uuid == order_uuid)
    if start_date:
        conditions.append(OrderAuditLog.created_at >= start_date)
    if end_date:
        conditions.append(OrderAuditLog.created_at <= end_date)

    total_res = await db.execute(
        select(func.count(OrderAuditLog.id)).where(*conditions)
    )
    total = total_res.scalar() or 0

    rows = await db.execute(
        select(OrderAuditLog)
        .where(*conditions)
        .order_by(OrderAuditLog.created_at.desc(), OrderAuditLog.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return rows.scalars().all(), total


def serialize_entry(row: OrderAuditLog) -> dict:
    return {
        "uuid": row.uuid,
        "orderUuid": row.order_uuid,
        "action": row.action,
        "doneBy": row.done_by,
        "actorName": row.actor_name,
        "actorEmail": row.actor_email,
        "previousValue": row.previous_value,
        "newValue": row.new_value,
        "details": row.details,
        "createdAt": row.created_at.isoformat() if row.created_at else None,
    }
