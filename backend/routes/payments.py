"""
Payment callback endpoint.

Endpoints:
    POST /payments/callback  — Apply a payment outcome to an order

The gateway integration has already verified the payment; this endpoint only
drives the lifecycle transition. Without a bearer token the change is
attributed to the system actor.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from deps import get_db, optional_actor
from domain.errors import ValidationError
from domain.responses import success_response
from middleware.rate_limit import rate_limit
from models import PaymentCallbackRequest
from services import order_service
from services.audit_service import Actor
from utils.validators import validate_uuid

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/callback")
async def payment_callback(
    body: PaymentCallbackRequest,
    actor: Actor = Depends(optional_actor),
    db: AsyncSession = Depends(get_db),
    _rate=Depends(rate_limit(max_requests=settings.payment_callback_rate_limit, window_seconds=60)),
):
    if body.order_uuid:
        order_uuid = validate_uuid(body.order_uuid, field="orderUuid")
    elif body.order_id:
        order_uuid = (await order_service.get_order_by_display_id(db, body.order_id)).uuid
    else:
        raise ValidationError("either orderUuid or orderId is required", field="order")

    order = await order_service.transition_on_payment_event(
        db,
        order_uuid=order_uuid,
        outcome=body.outcome,
        reference=body.transaction_ref,
        method=body.payment_method,
        amount=body.amount,
        actor=actor,
    )
    logger.info(f"Payment {body.outcome} applied to {order.display_id} by {actor.name}")
    return success_response(
        await order_service.serialize_order(db, order),
        message="Transaction details updated successfully",
    )
