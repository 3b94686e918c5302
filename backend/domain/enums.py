"""
Domain enums shared by services and routers.

OrderEvent is the closed set of business events that can drive a status
transition. It is a compile-time constant; the event -> status wiring lives in
the event_status_mappings table.
"""

from enum import Enum


class OrderEvent(str, Enum):
    ORDER_CREATION = "ORDER_CREATION"
    PAYMENT_SUCCESSFUL = "PAYMENT_SUCCESSFUL"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    RELEASE_INVENTORY = "RELEASE_INVENTORY"
    CANCELED = "CANCELED"
    ORDER_COMPLETED = "ORDER_COMPLETED"
    ASSIGN_NUMBER = "ASSIGN_NUMBER"
    AUTO_RELEASE_INVENTORY = "AUTO_RELEASE_INVENTORY"

    @classmethod
    def parse(cls, raw) -> "OrderEvent":
        """Return the event for `raw`, raising ValidationError for anything outside the set."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            from domain.errors import ValidationError
            allowed = ", ".join(e.value for e in cls)
            raise ValidationError(
                f"Invalid event '{raw}'. Must be one of: {allowed}",
                details={"allowed": [e.value for e in cls]},
            )


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    PAYMENT_FAILED = "payment_failed"


class InventoryState(str, Enum):
    AVAILABLE = "Available"
    SOLD = "Sold"
    NOT_AVAILABLE = "Not Available"


class ActorKind(str, Enum):
    SYSTEM = "system"
    USER = "user"


class AuditAction(str, Enum):
    ORDER_CREATED = "order_created"
    ORDER_DELETED = "order_deleted"
    STATUS_CHANGED = "status_changed"
    RELEASE_INVENTORY = "release_inventory"
    AUTOMATIC_RELEASE_INVENTORY = "automatic_release_inventory"
    SIM_ASSIGNED = "sim_assigned"
    BUNDLE_SELECTED = "bundle_selected"
    TRANSACTION_FAILED = "transaction_failed"
    TRANSACTION_SUCCESSFUL = "transaction_successful"
    PAYMENT_STATUS_CHANGED = "payment_status_changed"
    NOTES_UPDATED = "notes_updated"
    NATIONAL_ID_UPDATED = "national_id_updated"
