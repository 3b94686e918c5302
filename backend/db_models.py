"""
SQLAlchemy ORM models for the SIM order lifecycle service.

Tables:
    order_statuses         — admin-defined workflow states
    event_status_mappings  — configurable event <-> status wiring
    inventory_items        — sellable numbers (Available / Sold / Not Available)
    bundles                — plan metadata, optionally attached to an order
    cities                 — delivery cities (reference data)
    orders                 — customer orders, the only rows the engine mutates
    order_audit_log        — append-only audit trail
    scheduler_settings     — key/value settings read by the reclamation sweep

Soft-deleted rows are excluded through live(); callers pass
include_deleted=True only when they need history.
"""
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, Text, ForeignKey,
    Index, select,
)

from database import Base
from domain.enums import ActorKind, InventoryState, PaymentStatus


def _uuid() -> str:
    return str(uuid.uuid4())


class SoftDeleteMixin:
    """is_deleted flag plus timestamp; rows are never hard-deleted."""
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime, nullable=True)

    def soft_delete(self) -> None:
        self.is_deleted = True
        self.deleted_at = datetime.utcnow()


def live(model, *, include_deleted: bool = False):
    """Base select() for a soft-deletable model, excluding deleted rows by default."""
    stmt = select(model)
    if not include_deleted:
        stmt = stmt.where(model.is_deleted == False)  # noqa: E712
    return stmt


# ════════════════════════════════════════════════════════════════════
# Workflow wiring
# ════════════════════════════════════════════════════════════════════

class OrderStatus(SoftDeleteMixin, Base):
    """Named workflow state an order can occupy. Name is unique among live rows."""
    __tablename__ = "order_statuses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=_uuid)
    name = Column(String(100), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class EventStatusMapping(SoftDeleteMixin, Base):
    """
    One (event, status) tag.

    An event may map to several statuses and a status may carry several event
    tags; no duplicate live pair is allowed (enforced by the registry).
    """
    __tablename__ = "event_status_mappings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=_uuid)
    event = Column(String(40), nullable=False, index=True)
    status_id = Column(Integer, ForeignKey("order_statuses.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_event_status_mappings_event_status", "event", "status_id", "is_deleted"),
    )


# ════════════════════════════════════════════════════════════════════
# Resource pool & reference data
# ════════════════════════════════════════════════════════════════════

class InventoryItem(SoftDeleteMixin, Base):
    """
    A sellable number.

    state == Sold exactly when one live order references it; only the
    lifecycle engine and the reclamation sweep change state.
    """
    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=_uuid)
    number = Column(String(20), unique=True, nullable=False, index=True)
    state = Column(String(20), nullable=False, default=InventoryState.AVAILABLE.value, index=True)
    price = Column(Float, nullable=False, default=0.0)
    discount = Column(Float, nullable=False, default=0.0)
    final_price = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Bundle(SoftDeleteMixin, Base):
    """Plan metadata and pricing. State-free."""
    __tablename__ = "bundles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=_uuid)
    name = Column(String(200), nullable=False)
    price = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)


class City(SoftDeleteMixin, Base):
    __tablename__ = "cities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=_uuid)
    name = Column(String(100), nullable=False)


# ════════════════════════════════════════════════════════════════════
# Orders & audit trail
# ════════════════════════════════════════════════════════════════════

class Order(SoftDeleteMixin, Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=_uuid, index=True)
    display_id = Column(String(20), unique=True, nullable=False, index=True)  # SO-1000, SO-1001, ...

    customer_name = Column(String(100), nullable=True)
    personal_phone = Column(String(20), nullable=False)
    alternate_phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True, default="")
    national_id_encrypted = Column(Text, nullable=True)  # SecretBox ciphertext, hex

    # unique: a number can be held by at most one order (NULLs don't collide)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=True, unique=True)
    bundle_id = Column(Integer, ForeignKey("bundles.id"), nullable=True)
    city_id = Column(Integer, ForeignKey("cities.id"), nullable=True)
    status_id = Column(Integer, ForeignKey("order_statuses.id"), nullable=False, index=True)

    payment_status = Column(String(20), nullable=False, default=PaymentStatus.UNPAID.value)
    payment_method = Column(String(50), nullable=True)
    transaction_ref = Column(String(100), nullable=True)
    transaction_at = Column(DateTime, nullable=True)
    total_transaction_price = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        # Reclamation sweep: status + payment + age
        Index("ix_orders_status_payment_created", "status_id", "payment_status", "created_at"),
    )


class OrderAuditLog(Base):
    """
    Immutable audit entry. Status values are stored as names, not ids, so the
    history stays readable after statuses are renamed or deleted.
    """
    __tablename__ = "order_audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=_uuid)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    order_uuid = Column(String(36), nullable=False, index=True)
    action = Column(String(50), nullable=False, index=True)
    done_by = Column(String(10), nullable=False, default=ActorKind.USER.value)  # "system" | "user"
    actor_name = Column(String(200), nullable=False)
    actor_email = Column(String(200), nullable=True)
    previous_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("ix_order_audit_log_order_created", "order_id", "created_at"),
    )


class SchedulerSetting(Base):
    """Key/value settings read by the reclamation scheduler on every tick."""
    __tablename__ = "scheduler_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(50), unique=True, nullable=False)
    value = Column(String(100), nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
