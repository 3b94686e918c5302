"""
Order Lifecycle Engine — every mutation of an order goes through here.

Each public operation:
    1. loads and validates everything it needs (no writes yet)
    2. mutates the order / number rows
    3. stages its audit entries into the same session
    4. commits once via database.transaction()

so a status change, the number release it triggers and the audit rows that
describe both land together or not at all.

Target statuses always come from the mapping registry; the only hard-coded
names are the fallback statuses created on first use when an event has no
mapping yet.
"""
import logging
import uuid as uuid_lib
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import transaction
from db_models import Bundle, City, Order, live
from domain.constants import (
    PAYMENT_FAILED_FALLBACK_STATUS_NAME,
    PAYMENT_SUCCESS_FALLBACK_STATUS_NAME,
    UNKNOWN_STATUS_NAME,
)
from domain.enums import AuditAction, OrderEvent, PaymentStatus
from domain.errors import BusinessRuleError, NotFoundError, ValidationError
from services import inventory_service, mapping_service, status_service
from services.audit_service import SYSTEM_ACTOR, Actor, AuditBatch
from utils.encryption import decrypt_national_id, encrypt_national_id, mask_national_id
from utils.validators import validate_national_id, validate_phone

logger = logging.getLogger(__name__)

# Events that may be applied directly through apply_event(); the others have
# dedicated operations with their own side effects.
DIRECT_EVENTS = (OrderEvent.CANCELED, OrderEvent.ORDER_COMPLETED)


# ════════════════════════════════════════════════════════════════════
# Lookups
# ════════════════════════════════════════════════════════════════════

async def get_order(db: AsyncSession, order_uuid: str, *, include_deleted: bool = False) -> Order:
    res = await db.execute(
        live(Order, include_deleted=include_deleted).where(Order.uuid == order_uuid)
    )
    order = res.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order", order_uuid)
    return order


async def get_order_by_display_id(db: AsyncSession, display_id: str) -> Order:
    res = await db.execute(live(Order).where(Order.display_id == display_id.strip().upper()))
    order = res.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order", display_id)
    return order


async def list_orders(
    db: AsyncSession,
    *,
    status_id: int | None = None,
    payment_status: PaymentStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Order], int]:
    """Live orders, newest first. Returns (rows, total)."""
    conditions = [Order.is_deleted == False]  # noqa: E712
    if status_id is not None:
        conditions.append(Order.status_id == status_id)
    if payment_status is not None:
        conditions.append(Order.payment_status == PaymentStatus(payment_status).value)

    total_res = await db.execute(select(func.count(Order.id)).where(*conditions))
    total = total_res.scalar() or 0

    rows = await db.execute(
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return rows.scalars().all(), total


async def get_status_info(db: AsyncSession, display_id: str) -> dict:
    """Current status name and whether that status means the number was auto-released."""
    order = await get_order_by_display_id(db, display_id)
    name = await status_service.status_name(db, order.status_id)
    if name is None:
        raise NotFoundError("Order status", order.status_id)
    auto_released = await mapping_service.is_status_mapped_to_event(
        db, order.status_id, OrderEvent.AUTO_RELEASE_INVENTORY
    )
    return {
        "orderId": order.display_id,
        "currentStatus": name,
        "isOrderInventoryAutoReleased": auto_released,
    }


# ════════════════════════════════════════════════════════════════════
# Internal helpers
# ════════════════════════════════════════════════════════════════════

def _display_id_for(order_id: int) -> str:
    return f"{settings.order_id_prefix}-{settings.first_order_number + order_id - 1}"


async def _get_bundle(db: AsyncSession, bundle_id: int | None) -> Bundle | None:
    if bundle_id is None:
        return None
    res = await db.execute(live(Bundle).where(Bundle.id == bundle_id))
    bundle = res.scalar_one_or_none()
    if not bundle:
        raise NotFoundError("Bundle", bundle_id)
    return bundle


async def _check_city(db: AsyncSession, city_id: int | None) -> None:
    if city_id is None:
        return
    res = await db.execute(live(City).where(City.id == city_id))
    if not res.scalar_one_or_none():
        raise NotFoundError("City", city_id)


async def _move_to_status(
    db: AsyncSession,
    order: Order,
    target_status_id: int,
    batch: AuditBatch,
    reason: str | None = None,
) -> tuple[str, str]:
    """Point the order at a new status and record it. Returns (old name, new name)."""
    old_name = await status_service.status_name(db, order.status_id) or UNKNOWN_STATUS_NAME
    new_name = await status_service.status_name(db, target_status_id) or UNKNOWN_STATUS_NAME

    if order.status_id != target_status_id:
        order.status_id = target_status_id
        order.updated_at = datetime.utcnow()
        details = f"Order status changed from {old_name} to {new_name}"
        if reason:
            details += f" {reason}"
        batch.add(
            AuditAction.STATUS_CHANGED,
            previous_value=old_name,
            new_value=new_name,
            details=details,
        )
        logger.info(f"Order {order.display_id}: '{old_name}' -> '{new_name}'")
    return old_name, new_name


async def _release(db: AsyncSession, order: Order, batch: AuditBatch, reason: str) -> str | None:
    number = await inventory_service.release_for_order(db, order)
    if number is not None:
        batch.add(
            AuditAction.RELEASE_INVENTORY,
            previous_value=number,
            details=f"SIM Number {number} was released {reason}",
        )
    return number


async def _change_status_with_release(
    db: AsyncSession,
    order: Order,
    target_status_id: int,
    batch: AuditBatch,
    reason: str | None = None,
) -> None:
    """Status change plus the release rule: a RELEASE_INVENTORY-tagged status frees the number."""
    _, new_name = await _move_to_status(db, order, target_status_id, batch, reason)

    if order.inventory_item_id is None:
        return
    if await mapping_service.is_status_mapped_to_event(db, target_status_id, OrderEvent.RELEASE_INVENTORY):
        await _release(db, order, batch, f"due to status change to {new_name}")


# ════════════════════════════════════════════════════════════════════
# Creation
# ════════════════════════════════════════════════════════════════════

async def create_order(
    db: AsyncSession,
    *,
    personal_phone: str,
    customer_name: str | None = None,
    alternate_phone: str | None = None,
    address: str | None = None,
    notes: str | None = None,
    national_id: str | None = None,
    inventory_item_id: int | None = None,
    bundle_id: int | None = None,
    city_id: int | None = None,
    actor: Actor = SYSTEM_ACTOR,
) -> Order:
    """
    Create an order in the creation status, optionally claiming a number.

    Raises:
        ValidationError: malformed phone or national id
        NotFoundError: unknown number, bundle or city
        BusinessRuleError: the number is not available
    """
    personal_phone = validate_phone(personal_phone)
    if alternate_phone:
        alternate_phone = validate_phone(alternate_phone, field="alternatePhone")
    national_id = validate_national_id(national_id)

    async with transaction(db, "create order"):
        bundle = await _get_bundle(db, bundle_id)
        await _check_city(db, city_id)
        if bundle is not None and inventory_item_id is None:
            raise ValidationError("a bundle can only be selected together with a number", field="bundleId")

        status = await status_service.ensure_creation_status(db)

        item = None
        if inventory_item_id is not None:
            item = await inventory_service.claim_item(db, item_id=inventory_item_id)

        order = Order(
            display_id=f"pending-{uuid_lib.uuid4().hex[:12]}",
            customer_name=customer_name,
            personal_phone=personal_phone,
            alternate_phone=alternate_phone,
            address=address,
            notes=notes or "",
            national_id_encrypted=encrypt_national_id(national_id),
            inventory_item_id=item.id if item else None,
            bundle_id=bundle.id if bundle else None,
            city_id=city_id,
            status_id=status.id,
            payment_status=PaymentStatus.UNPAID.value,
            total_transaction_price=(item.final_price if item else 0.0) + (bundle.price if bundle else 0.0),
        )
        db.add(order)
        await db.flush()
        order.display_id = _display_id_for(order.id)

        batch = AuditBatch(order=order, actor=actor)
        details = f"Order {order.display_id} created with status {status.name}"
        if item:
            details += f" and SIM Number {item.number}"
        batch.add(AuditAction.ORDER_CREATED, new_value=status.name, details=details)
        batch.stage(db)

    logger.info(f"Order {order.display_id} created in '{status.name}' by {actor.name}")
    return order


# ════════════════════════════════════════════════════════════════════
# Transitions
# ════════════════════════════════════════════════════════════════════

async def transition_on_payment_event(
    db: AsyncSession,
    *,
    order_uuid: str,
    outcome: PaymentStatus | str,
    reference: str | None = None,
    method: str | None = None,
    amount: float | None = None,
    actor: Actor = SYSTEM_ACTOR,
) -> Order:
    """
    Apply a payment outcome reported by the gateway.

    paid            -> first PAYMENT_SUCCESSFUL status (fallback 'New Order')
    payment_failed  -> first PAYMENT_FAILED status (fallback
                       'Cancelled: Payment Failed'); the number is released
                       when that status is tagged RELEASE_INVENTORY or any
                       status is configured for RELEASE_INVENTORY.

    Raises:
        ValidationError: outcome is not paid / payment_failed
        NotFoundError: order missing or deleted
        BusinessRuleError: the order is already paid
    """
    try:
        outcome = PaymentStatus(outcome)
    except ValueError:
        raise ValidationError(f"'{outcome}' is not a payment outcome", field="outcome")
    if outcome == PaymentStatus.UNPAID:
        raise ValidationError("outcome must be paid or payment_failed", field="outcome")

    failed = outcome == PaymentStatus.PAYMENT_FAILED
    event = OrderEvent.PAYMENT_FAILED if failed else OrderEvent.PAYMENT_SUCCESSFUL

    async with transaction(db, f"payment {outcome.value}"):
        order = await get_order(db, order_uuid)
        if order.payment_status == PaymentStatus.PAID.value:
            raise BusinessRuleError(
                f"Order {order.display_id} is already paid",
                details={"paymentStatus": order.payment_status},
            )

        target_id = await mapping_service.first_status_for_event(db, event)
        if target_id is None:
            if failed:
                fallback = await status_service.get_or_create_tagged(
                    db,
                    name=PAYMENT_FAILED_FALLBACK_STATUS_NAME,
                    events=[OrderEvent.PAYMENT_FAILED, OrderEvent.RELEASE_INVENTORY],
                )
            else:
                fallback = await status_service.get_or_create_tagged(
                    db,
                    name=PAYMENT_SUCCESS_FALLBACK_STATUS_NAME,
                    events=[OrderEvent.PAYMENT_SUCCESSFUL],
                )
            target_id = fallback.id

        batch = AuditBatch(order=order, actor=actor)
        reason = "due to failed payment" if failed else "due to successful payment"
        await _move_to_status(db, order, target_id, batch, reason)

        if failed and order.inventory_item_id is not None:
            release = await mapping_service.is_status_mapped_to_event(
                db, target_id, OrderEvent.RELEASE_INVENTORY
            ) or bool(await mapping_service.resolve_statuses_for_event(db, OrderEvent.RELEASE_INVENTORY))
            if release:
                await _release(db, order, batch, "due to payment failure")

        previous_payment = order.payment_status
        order.payment_status = outcome.value
        order.transaction_ref = reference
        order.payment_method = method
        order.transaction_at = datetime.utcnow()
        if amount is not None:
            order.total_transaction_price = amount

        batch.add(
            AuditAction.TRANSACTION_FAILED if failed else AuditAction.TRANSACTION_SUCCESSFUL,
            new_value=reference,
            details=f"Transaction {'failed' if failed else 'successful'} for order {order.display_id}",
        )
        if previous_payment != outcome.value:
            batch.add(
                AuditAction.PAYMENT_STATUS_CHANGED,
                previous_value=previous_payment,
                new_value=outcome.value,
                details=f"Payment status changed from {previous_payment} to {outcome.value}",
            )
        batch.stage(db)

    return order


async def manual_status_change(
    db: AsyncSession,
    *,
    order_uuid: str,
    status_id: int,
    actor: Actor,
) -> Order:
    """
    Move an order to an explicit status chosen by a staff member.

    Raises:
        NotFoundError: order or status missing
        BusinessRuleError: the order is already in that status
    """
    async with transaction(db, "manual status change"):
        order = await get_order(db, order_uuid)
        target = await status_service.get_status(db, status_id)
        if order.status_id == target.id:
            raise BusinessRuleError(f"Order {order.display_id} is already in status '{target.name}'")

        batch = AuditBatch(order=order, actor=actor)
        await _change_status_with_release(db, order, target.id, batch)
        batch.stage(db)

    return order


async def assign_inventory(
    db: AsyncSession,
    *,
    order_uuid: str,
    item_id: int,
    bundle_id: int | None = None,
    actor: Actor,
) -> Order:
    """
    Attach a number (and optionally a bundle) to an order that holds none.

    Moves the order to the first ASSIGN_NUMBER status when one is mapped.

    Raises:
        NotFoundError: order, number or bundle missing
        BusinessRuleError: the order already holds a number, or the number
            was taken (including by a concurrent request)
    """
    async with transaction(db, "assign inventory"):
        order = await get_order(db, order_uuid)
        if order.inventory_item_id is not None:
            raise BusinessRuleError(f"Order {order.display_id} already has a number assigned")
        bundle = await _get_bundle(db, bundle_id)

        item = await inventory_service.claim_item(db, item_id=item_id, order_id=order.id)
        order.inventory_item_id = item.id
        order.bundle_id = bundle.id if bundle else None
        order.total_transaction_price = item.final_price + (bundle.price if bundle else 0.0)
        order.updated_at = datetime.utcnow()

        batch = AuditBatch(order=order, actor=actor)
        batch.add(
            AuditAction.SIM_ASSIGNED,
            new_value=item.number,
            details=f"SIM Number {item.number} assigned to order {order.display_id}",
        )
        if bundle:
            batch.add(
                AuditAction.BUNDLE_SELECTED,
                new_value=bundle.name,
                details=f"Bundle {bundle.name} selected",
            )

        target_id = await mapping_service.first_status_for_event(db, OrderEvent.ASSIGN_NUMBER)
        if target_id is not None:
            await _move_to_status(db, order, target_id, batch, "after number assignment")

        await db.flush()
        batch.stage(db)

    return order


async def apply_event(
    db: AsyncSession,
    *,
    order_uuid: str,
    event: OrderEvent | str,
    actor: Actor,
) -> Order:
    """
    Move an order to the first status mapped to CANCELED or ORDER_COMPLETED.

    Raises:
        ValidationError: unknown event, or one with its own operation
        NotFoundError: order missing or no status mapped to the event
    """
    event = OrderEvent.parse(event)
    if event not in DIRECT_EVENTS:
        allowed = ", ".join(e.value for e in DIRECT_EVENTS)
        raise ValidationError(f"{event.value} cannot be applied directly. Allowed: {allowed}", field="event")

    async with transaction(db, f"apply {event.value}"):
        order = await get_order(db, order_uuid)
        target_id = await mapping_service.first_status_for_event(db, event)
        if target_id is None:
            raise NotFoundError("Status mapping", event.value)

        batch = AuditBatch(order=order, actor=actor)
        await _change_status_with_release(db, order, target_id, batch, f"by event {event.value}")
        batch.stage(db)

    return order


# ════════════════════════════════════════════════════════════════════
# Field updates & deletion
# ════════════════════════════════════════════════════════════════════

async def update_notes(db: AsyncSession, *, order_uuid: str, notes: str, actor: Actor) -> Order:
    async with transaction(db, "update notes"):
        order = await get_order(db, order_uuid)
        previous = order.notes or ""
        order.notes = notes or ""
        order.updated_at = datetime.utcnow()

        batch = AuditBatch(order=order, actor=actor)
        batch.add(
            AuditAction.NOTES_UPDATED,
            previous_value=previous,
            new_value=order.notes,
            details="Order notes updated",
        )
        batch.stage(db)
    return order


async def update_national_id(db: AsyncSession, *, order_uuid: str, national_id: str, actor: Actor) -> Order:
    """Replace the encrypted national id. The value itself never reaches the audit log."""
    national_id = validate_national_id(national_id)
    if national_id is None:
        raise ValidationError("must not be empty", field="nationalId")

    async with transaction(db, "update national id"):
        order = await get_order(db, order_uuid)
        order.national_id_encrypted = encrypt_national_id(national_id)
        order.updated_at = datetime.utcnow()

        batch = AuditBatch(order=order, actor=actor)
        batch.add(AuditAction.NATIONAL_ID_UPDATED, details="National id updated")
        batch.stage(db)
    return order


async def delete_order(db: AsyncSession, *, order_uuid: str, actor: Actor) -> Order:
    """Soft-delete an order and return its number to the pool."""
    async with transaction(db, "delete order"):
        order = await get_order(db, order_uuid)
        batch = AuditBatch(order=order, actor=actor)
        await _release(db, order, batch, "because the order was deleted")

        order.soft_delete()
        batch.add(AuditAction.ORDER_DELETED, details=f"Order {order.display_id} deleted")
        batch.stage(db)

    logger.info(f"Order {order.display_id} deleted by {actor.name}")
    return order


# ════════════════════════════════════════════════════════════════════
# Serialization
# ════════════════════════════════════════════════════════════════════

async def serialize_order(db: AsyncSession, order: Order) -> dict:
    """camelCase view of an order with status name and number resolved."""
    masked = None
    if order.national_id_encrypted:
        try:
            masked = mask_national_id(decrypt_national_id(order.national_id_encrypted))
        except ValueError:
            masked = None  # key rotated; the ciphertext stays untouched

    return {
        "uuid": order.uuid,
        "orderId": order.display_id,
        "customerName": order.customer_name,
        "personalPhone": order.personal_phone,
        "alternatePhone": order.alternate_phone,
        "address": order.address,
        "notes": order.notes,
        "nationalId": masked,
        "statusId": order.status_id,
        "status": await status_service.status_name(db, order.status_id),
        "inventoryItemId": order.inventory_item_id,
        "number": await inventory_service.item_number(db, order.inventory_item_id),
        "bundleId": order.bundle_id,
        "cityId": order.city_id,
        "paymentStatus": order.payment_status,
        "paymentMethod": order.payment_method,
        "transactionRef": order.transaction_ref,
        "transactionAt": order.transaction_at.isoformat() if order.transaction_at else None,
        "totalTransactionPrice": order.total_transaction_price,
        "isDeleted": order.is_deleted,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "updatedAt": order.updated_at.isoformat() if order.updated_at else None,
    }
