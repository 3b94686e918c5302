"""
Pydantic models for request validation.

Bodies accept camelCase aliases (the public API) or snake_case names.
Responses are plain dicts wrapped by domain.responses.success_response().
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from domain.enums import InventoryState


class ApiBase(BaseModel):
    """Shared base — allows construction by Python name or alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Order Models ────────────────────────────────────────────────────

class CreateOrderRequest(ApiBase):
    """Create an order, optionally claiming a number right away."""
    personal_phone: str = Field(..., alias="personalPhone", min_length=1, max_length=20)
    customer_name: Optional[str] = Field(None, alias="customerName", max_length=100)
    alternate_phone: Optional[str] = Field(None, alias="alternatePhone", max_length=20)
    address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=2000)
    national_id: Optional[str] = Field(
        None,
        alias="nationalId",
        max_length=15,
        description="Digits and dashes; stored encrypted",
    )
    inventory_item_id: Optional[int] = Field(None, alias="inventoryItemId", ge=1)
    bundle_id: Optional[int] = Field(None, alias="bundleId", ge=1)
    city_id: Optional[int] = Field(None, alias="cityId", ge=1)


class ChangeStatusRequest(ApiBase):
    status_id: int = Field(..., alias="statusId", ge=1, description="Target order status id")


class AssignInventoryRequest(ApiBase):
    inventory_item_id: int = Field(..., alias="inventoryItemId", ge=1)
    bundle_id: Optional[int] = Field(None, alias="bundleId", ge=1)


class UpdateNotesRequest(ApiBase):
    notes: str = Field("", max_length=2000)


class UpdateNationalIdRequest(ApiBase):
    national_id: str = Field(..., alias="nationalId", min_length=1, max_length=15)


# ── Payment Models ──────────────────────────────────────────────────

class PaymentCallbackRequest(ApiBase):
    """
    Payment outcome reported by the gateway integration.

    Identify the order by uuid or by its display id (e.g. SO-1000).
    """
    order_uuid: Optional[str] = Field(None, alias="orderUuid")
    order_id: Optional[str] = Field(None, alias="orderId", description="Display id, e.g. SO-1000")
    outcome: str = Field(..., description="paid | payment_failed")
    transaction_ref: Optional[str] = Field(None, alias="transactionRef", max_length=100)
    payment_method: Optional[str] = Field(None, alias="paymentMethod", max_length=50)
    amount: Optional[float] = Field(None, ge=0)


# ── Mapping & Status Models ─────────────────────────────────────────

class ReplaceMappingsRequest(ApiBase):
    status_ids: List[int] = Field(
        default_factory=list,
        alias="statusIds",
        description="Exact set of status ids the event should map to",
    )


class StatusRequest(ApiBase):
    name: str = Field(..., min_length=1, max_length=100)


# ── Scheduler Models ────────────────────────────────────────────────

class UpdateScheduleRequest(ApiBase):
    schedule: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="'H:MM' (daily) or a five-field cron expression",
    )


# ── Inventory Models ────────────────────────────────────────────────

class CreateInventoryItemRequest(ApiBase):
    number: str = Field(..., min_length=1, max_length=20)
    price: float = Field(0.0, ge=0)
    discount: float = Field(0.0, ge=0)
    state: InventoryState = InventoryState.AVAILABLE
