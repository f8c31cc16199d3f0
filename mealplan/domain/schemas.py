# mealplan/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, List, Optional
from decimal import Decimal
from datetime import datetime


class MenuItemOut(BaseModel):
    """Menu item (response)."""

    id: str
    name: str
    category: str
    unit_price: Decimal
    calories: int

    model_config = ConfigDict(from_attributes=True)


class CustomerCreate(BaseModel):
    """Schema for registering a customer profile."""

    id: int = Field(..., gt=0, description="Customer id from the identity provider")
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=200)
    mobile: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=300)
    role: str = Field("customer", pattern="^(customer|owner)$")


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=200)
    mobile: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=300)


class CustomerRead(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    mobile: Optional[str] = None
    address: Optional[str] = None
    role: str

    model_config = ConfigDict(from_attributes=True)


class PlanOut(BaseModel):
    """Plan ledger view; status and label are derived, never stored."""

    customer_id: int
    status: str
    status_label: str
    paid: bool
    payment_submitted: bool
    renewal_pending: bool
    total_meals: int
    meals_remaining: int
    remaining_capacity: int
    plan_used_meals: int
    pending_plan_meals: int
    item_usage: Dict[str, int]
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    receipt_name: Optional[str] = None
    receipt_uploaded_at: Optional[datetime] = None
    payment_approved_at: Optional[datetime] = None


class ItemIn(BaseModel):
    """Schema for adding one unit of a menu item to the cart."""

    item_id: str = Field(..., min_length=1)


class QuantityIn(BaseModel):
    # clamped to [0, 10] by the cart
    quantity: int


class CartLineOut(BaseModel):
    item_id: str
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class CartOut(BaseModel):
    cart_id: int
    user_id: int
    status: str
    items: List[CartLineOut]
    total_qty: int
    total: Decimal
    expires_at: Optional[datetime] = None


class CheckoutIn(BaseModel):
    idempotency_key: Optional[str] = Field(None, min_length=1, max_length=100)


class OrderItemOut(BaseModel):
    item_id: str
    name: str
    quantity: int
    unit_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    user_id: int
    status: str
    is_extra_order: bool
    items: List[OrderItemOut]
    total_qty: int
    total_price: Decimal
    address: Optional[str] = None
    created_at: datetime
    approved_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderHistoryGroup(BaseModel):
    month: str
    orders: List[OrderOut]


class OrderSummaryOut(BaseModel):
    total_orders: int
    total_expense: Decimal


class PendingPaymentOut(BaseModel):
    customer_id: int
    name: str
    email: Optional[str] = None
    status: str
    receipt_ref: Optional[str] = None
    receipt_name: Optional[str] = None
    receipt_uploaded_at: Optional[datetime] = None


class CustomerStatsOut(BaseModel):
    customer_id: int
    name: Optional[str] = None
    email: Optional[str] = None
    status: str
    status_label: str
    total_spent: Decimal
    approved_count: int
    pending_count: int
    plan_used_meals: int
    used: int
    total: int
    pct: int
    remaining: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class DashboardOut(BaseModel):
    customers: List[CustomerStatsOut]
    pending_payments: int
    pending_orders: int
