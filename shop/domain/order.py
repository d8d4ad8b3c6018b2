"""
Domain model for Order aggregate.
"""
from __future__ import annotations

import json
import re
import secrets
import time
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping
from uuid import UUID, uuid4

from shop.domain.errors import InvalidStatusTransitionError, ValidationError


class OrderStatus(str, Enum):
    """Order status enumeration."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value: str) -> "OrderStatus":
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValidationError(f"Unknown order status: {value}") from None


class PaymentStatus(str, Enum):
    """Payment status enumeration."""
    PENDING = "PENDING"
    PAID = "PAID"

    @classmethod
    def parse(cls, value: str) -> "PaymentStatus":
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValidationError(f"Unknown payment status: {value}") from None


class PaymentMethod(str, Enum):
    """Accepted payment methods."""
    COD = "cod"
    CARD = "card"

    @classmethod
    def parse(cls, value: str) -> "PaymentMethod":
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError(f"Unknown payment method: {value}") from None

    @property
    def initial_payment_status(self) -> PaymentStatus:
        # Card orders are captured up front, cash is collected on delivery.
        if self is PaymentMethod.CARD:
            return PaymentStatus.PAID
        return PaymentStatus.PENDING


# Forward fulfilment flow; CANCELLED is reachable from any non-terminal status.
FULFILMENT_FLOW = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """Check whether an order may move from ``current`` to ``new``.

    Re-asserting the current status is allowed so that tracking notes can be
    appended without a status change. Forward moves may skip stages.
    """
    if current == new:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if new == OrderStatus.CANCELLED:
        return True
    return FULFILMENT_FLOW.index(new) > FULFILMENT_FLOW.index(current)


class ShippingAddress:
    """Delivery address captured verbatim at checkout."""

    REQUIRED_FIELDS = ("name", "phone", "address", "city", "state", "zipCode")
    PHONE_PATTERN = re.compile(r"^[\d\s()+-]+$")

    def __init__(self, data: Mapping[str, Any]):
        self._data = dict(data)

    @classmethod
    def from_input(cls, raw: Any) -> "ShippingAddress":
        """Validate a client supplied address (mapping or JSON object string)."""
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError:
                raise ValidationError("Shipping address must be a JSON object") from None
        if not isinstance(raw, Mapping):
            raise ValidationError("Shipping address must be an object")

        errors = {}
        for field in cls.REQUIRED_FIELDS:
            value = raw.get(field)
            if not isinstance(value, str) or not value.strip():
                errors[field] = "This field is required"
        phone = raw.get("phone")
        if "phone" not in errors and not cls.PHONE_PATTERN.match(phone):
            errors["phone"] = "Invalid phone number"

        if errors:
            raise ValidationError(
                "Invalid shipping address: " + ", ".join(sorted(errors)),
                fields=errors,
            )
        return cls(raw)

    def __getitem__(self, field: str) -> Any:
        return self._data[field]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ShippingAddress):
            return NotImplemented
        return self._data == other._data

    def as_dict(self) -> dict[str, Any]:
        return dict(self._data)


class OrderItem:
    """Order line item value object. ``price`` is the unit price at order time."""

    def __init__(
        self,
        product_id: UUID,
        quantity: int,
        price: Decimal,
        product_name: str = "",
        id: UUID | None = None,
    ):
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        if price < 0:
            raise ValueError("Price must be non-negative")

        self.id = id
        self.product_id = product_id
        self.product_name = product_name
        self.quantity = quantity
        self.price = price

    @property
    def subtotal(self) -> Decimal:
        """Calculate item subtotal."""
        return self.price * self.quantity


class TrackingEvent:
    """Entry in an order's append-only tracking log."""

    def __init__(
        self,
        status: str,
        message: str = "",
        location: str = "",
        created_at: datetime | None = None,
        id: int | None = None,
    ):
        self.id = id
        self.status = status
        self.message = message
        self.location = location
        self.created_at = created_at


class Order:
    """Order aggregate root."""

    def __init__(
        self,
        id: UUID | None = None,
        order_number: str = "",
        user_id: int | None = None,
        items: list[OrderItem] | None = None,
        tracking: list[TrackingEvent] | None = None,
        shipping_address: ShippingAddress | None = None,
        payment_method: PaymentMethod = PaymentMethod.COD,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        status: OrderStatus = OrderStatus.PENDING,
        total_amount: Decimal | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.order_number = order_number
        self.user_id = user_id
        self._items = items or []
        self._tracking = tracking or []
        self.shipping_address = shipping_address
        self.payment_method = payment_method
        self.payment_status = payment_status
        self._status = status
        self._total_amount = total_amount
        self.created_at = created_at

    @property
    def items(self) -> list[OrderItem]:
        """Get order items (immutable)."""
        return list(self._items)

    @property
    def tracking(self) -> list[TrackingEvent]:
        """Get tracking events in creation order."""
        return list(self._tracking)

    @property
    def status(self) -> OrderStatus:
        return self._status

    @property
    def total_amount(self) -> Decimal:
        """Snapshotted total, or the sum of line subtotals for a new order."""
        if self._total_amount is not None:
            return self._total_amount
        return sum((item.subtotal for item in self._items), Decimal("0.00"))

    def change_status(self, new_status: OrderStatus) -> bool:
        """Move to ``new_status``. Returns whether the status actually changed."""
        if not can_transition(self._status, new_status):
            raise InvalidStatusTransitionError(self._status.value, new_status.value)
        changed = self._status != new_status
        self._status = new_status
        return changed

    def is_visible_to(self, user_id: int, is_admin: bool = False) -> bool:
        return is_admin or self.user_id == user_id


ORDER_NUMBER_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def new_order_number(prefix: str = "ORD", now: float | None = None) -> str:
    """Human readable order number: prefix, epoch millis and a random suffix.

    Uniqueness is enforced by the storage constraint, not by this scheme.
    """
    millis = int((time.time() if now is None else now) * 1000)
    suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(9))
    return f"{prefix}-{millis}-{suffix}"
