# mealplan/domain/errors.py
"""
Domain exceptions for the plan/order accounting engine.

Every error carries a stable ``code`` and an HTTP ``status_code`` so the API
layer can turn it into a structured response without string matching.
"""
from enum import Enum
from typing import Any, Dict, Optional


class MealPlanError(Exception):
    """Base exception for all engine errors."""
    code = "error"
    status_code = 400

    def __init__(self, message: Optional[str] = None, **extra: Any):
        super().__init__(message or self.__doc__)
        self.message = message or (self.__doc__ or "").strip()
        self.extra = extra

    def to_detail(self) -> Dict[str, Any]:
        detail = {"code": self.code, "message": self.message}
        detail.update(self.extra)
        return detail


# --- validation ---------------------------------------------------------------

class ValidationError(MealPlanError):
    """Input rejected before any write."""
    code = "validation_error"


class EmptyCartError(ValidationError):
    """Cart is empty."""
    code = "empty_cart"


class QuantityOutOfRangeError(ValidationError):
    """Quantity must be between 0 and 10."""
    code = "quantity_out_of_range"


class UnknownMenuItemError(ValidationError):
    """Menu item does not exist."""
    code = "unknown_menu_item"

    def __init__(self, item_id: str):
        super().__init__(f"Menu item {item_id!r} does not exist", item_id=item_id)


class InvalidReceiptError(ValidationError):
    """Only JPG and PNG receipts are accepted."""
    code = "invalid_receipt"


class InvalidPlanTransitionError(ValidationError):
    """Plan cannot make this transition from its current status."""
    code = "invalid_plan_transition"


# --- capacity -----------------------------------------------------------------

class CapacityReason(str, Enum):
    PLAN_FULL = "plan_full"
    ITEM_MAXED_FOR_PLAN = "item_maxed_for_plan"
    EXCEEDS_REMAINING_CAPACITY = "exceeds_remaining_capacity"


_CAPACITY_MESSAGES = {
    CapacityReason.PLAN_FULL: "Plan capacity reached. Please renew your plan to order more.",
    CapacityReason.ITEM_MAXED_FOR_PLAN: "This item is maxed for your current plan.",
    CapacityReason.EXCEEDS_REMAINING_CAPACITY: (
        "Adding this will exceed your plan capacity. Please reduce cart or renew plan."
    ),
}


class CapacityError(MealPlanError):
    """Cart addition rejected by the plan ledger."""
    code = "capacity_error"
    status_code = 409

    def __init__(self, reason: CapacityReason, item_id: Optional[str] = None):
        super().__init__(_CAPACITY_MESSAGES[reason], reason=reason.value, item_id=item_id)
        self.reason = reason
        self.item_id = item_id


# --- conflicts ----------------------------------------------------------------

class ConflictError(MealPlanError):
    """State changed underneath the caller; re-read and retry."""
    code = "conflict"
    status_code = 409


class OrderNotFoundError(ConflictError):
    """Order does not exist."""
    code = "order_not_found"
    status_code = 404


class CustomerNotFoundError(ConflictError):
    """Customer does not exist."""
    code = "customer_not_found"
    status_code = 404


class AlreadyApprovedError(ConflictError):
    """Order was already approved."""
    code = "already_approved"


class OrderNotPendingError(ConflictError):
    """Only pending orders can change status."""
    code = "order_not_pending"


class ConcurrentLedgerUpdateError(ConflictError):
    """Plan ledger kept changing during the update; nothing was written."""
    code = "concurrent_ledger_update_lost"


class LedgerBusyError(ConflictError):
    """Another operation holds this customer's ledger."""
    code = "ledger_busy"


class CartConflictError(ConflictError):
    """Cart was modified by another request."""
    code = "cart_conflict"


# --- permissions --------------------------------------------------------------

class PermissionDeniedError(MealPlanError):
    """You do not have permission to perform this action."""
    code = "permission_denied"
    status_code = 403


# --- collaborators ------------------------------------------------------------

class CollaboratorError(MealPlanError):
    """An external collaborator failed; the operation can be retried."""
    code = "collaborator_error"
    status_code = 503


class ReceiptUploadError(CollaboratorError):
    """Receipt upload failed."""
    code = "receipt_upload_failed"


class LedgerLockUnavailableError(CollaboratorError):
    """Ledger lock store is unavailable."""
    code = "ledger_lock_unavailable"


class StoreUnavailableError(CollaboratorError):
    """Record store is unavailable."""
    code = "store_unavailable"
