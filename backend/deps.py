"""
Shared FastAPI dependencies.

Routers import common dependencies from a single place (DB session, actor
guards, pagination, path validation).
"""

from __future__ import annotations

from typing import TypedDict

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import Order
from middleware.auth import optional_actor, require_actor, require_admin
from services import order_service
from utils.validators import validated_event, validated_order_uuid

__all__ = [
    "Pagination",
    "get_db",
    "live_order",
    "optional_actor",
    "pagination_params",
    "require_actor",
    "require_admin",
    "validated_event",
    "validated_order_uuid",
]


class Pagination(TypedDict):
    limit: int
    offset: int


def pagination_params(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=100_000),
) -> Pagination:
    return {"limit": limit, "offset": offset}


async def live_order(
    order_uuid: str = Depends(validated_order_uuid),
    db: AsyncSession = Depends(get_db),
) -> Order:
    """Resolve `{order_uuid}` to a live order (404 otherwise)."""
    return await order_service.get_order(db, order_uuid)
