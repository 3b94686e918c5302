"""
Resource Pool — sellable numbers.

A number moves Available -> Sold only through claim_item() (atomic
compare-and-set) and Sold -> Available only through release_for_order().
Neither commits; both run inside the caller's transaction so the order row and
the item row change together.
"""
import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import InventoryItem, Order, live
from domain.enums import InventoryState
from domain.errors import BusinessRuleError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


async def get_item(db: AsyncSession, item_id: int) -> InventoryItem:
    res = await db.execute(live(InventoryItem).where(InventoryItem.id == item_id))
    item = res.scalar_one_or_none()
    if not item:
        raise NotFoundError("Inventory item", item_id)
    return item


async def item_number(db: AsyncSession, item_id: int | None) -> str | None:
    if item_id is None:
        return None
    res = await db.execute(select(InventoryItem.number).where(InventoryItem.id == item_id))
    return res.scalar_one_or_none()


async def create_item(
    db: AsyncSession,
    *,
    number: str,
    price: float = 0.0,
    discount: float = 0.0,
    state: InventoryState = InventoryState.AVAILABLE,
) -> InventoryItem:
    number = (number or "").strip()
    if not number:
        raise ValidationError("must not be empty", field="number")
    if price < 0 or discount < 0 or discount > price:
        raise ValidationError("discount must be between 0 and price", field="discount")

    existing = await db.execute(select(InventoryItem.id).where(InventoryItem.number == number))
    if existing.first():
        raise BusinessRuleError(f"Number {number} already exists in inventory")

    item = InventoryItem(
        number=number,
        price=price,
        discount=discount,
        final_price=round(price - discount, 2),
        state=InventoryState(state).value,
    )
    db.add(item)
    await db.flush()
    return item


async def list_items(
    db: AsyncSession,
    *,
    state: InventoryState | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[InventoryItem], int]:
    conditions = [InventoryItem.is_deleted == False]  # noqa: E712
    if state is not None:
        conditions.append(InventoryItem.state == InventoryState(state).value)

    total_res = await db.execute(select(func.count(InventoryItem.id)).where(*conditions))
    total = total_res.scalar() or 0

    rows = await db.execute(
        select(InventoryItem)
        .where(*conditions)
        .order_by(InventoryItem.id.asc())
        .limit(limit)
        .offset(offset)
    )
    return rows.scalars().all(), total


async def claim_item(db: AsyncSession, *, item_id: int, order_id: int | None = None) -> InventoryItem:
    """
    Atomically flip an Available item to Sold.

    The UPDATE only matches while the row is still Available, so of two
    concurrent claims exactly one sees rowcount == 1; the other gets
    BusinessRuleError.

    Raises:
        NotFoundError: no live item with that id
        BusinessRuleError: item is not Available or another live order holds it
    """
    item = await get_item(db, item_id)

    holder = await db.execute(
        select(Order.id).where(
            Order.inventory_item_id == item.id,
            Order.is_deleted == False,  # noqa: E712
        )
    )
    holder_id = holder.scalar_one_or_none()
    if holder_id is not None and holder_id != order_id:
        raise BusinessRuleError(f"Number {item.number} is already attached to another order")

    result = await db.execute(
        update(InventoryItem)
        .where(
            InventoryItem.id == item.id,
            InventoryItem.state == InventoryState.AVAILABLE.value,
            InventoryItem.is_deleted == False,  # noqa: E712
        )
        .values(state=InventoryState.SOLD.value, updated_at=datetime.utcnow())
    )
    if result.rowcount != 1:
        raise BusinessRuleError(
            f"Number {item.number} is not available",
            details={"number": item.number},
        )

    logger.info(f"Number {item.number} claimed (order_id={order_id})")
    return item


async def release_for_order(db: AsyncSession, order: Order) -> str | None:
    """
    Return the order's number to the pool and detach it (and its bundle).

    Returns the released number, or None when the order held nothing.
    """
    if order.inventory_item_id is None:
        return None

    item_id = order.inventory_item_id
    number = await item_number(db, item_id)

    await db.execute(
        update(InventoryItem)
        .where(InventoryItem.id == item_id)
        .values(state=InventoryState.AVAILABLE.value, updated_at=datetime.utcnow())
    )
    order.inventory_item_id = None
    order.bundle_id = None
    await db.flush()

    logger.info(f"Number {number} released from order {order.display_id}")
    return number


def serialize_item(item: InventoryItem) -> dict:
    return {
        "id": item.id,
        "uuid": item.uuid,
        "number": item.number,
        "state": item.state,
        "price": item.price,
        "discount": item.discount,
        "finalPrice": item.final_price,
    }
