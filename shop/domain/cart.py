"""
Cart lines and checkout pricing.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from shop.domain.errors import InsufficientStockError
from shop.domain.order import OrderItem


class CartLine:
    """Cart row joined with the product snapshot read at the same time."""

    def __init__(
        self,
        product_id: UUID,
        quantity: int,
        unit_price: Decimal,
        stock: int,
        product_name: str = "",
        id: UUID | None = None,
    ):
        if quantity <= 0:
            raise ValueError("Quantity must be positive")

        self.id = id
        self.product_id = product_id
        self.product_name = product_name
        self.quantity = quantity
        self.unit_price = unit_price
        self.stock = stock

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def in_stock(self) -> bool:
        return self.stock >= self.quantity

    def to_order_item(self) -> OrderItem:
        """Copy the snapshot price onto a new order line."""
        return OrderItem(
            product_id=self.product_id,
            quantity=self.quantity,
            price=self.unit_price,
            product_name=self.product_name,
        )


def ensure_in_stock(lines: Iterable[CartLine]) -> None:
    """Raise for the first line whose quantity exceeds the snapshot stock."""
    for line in lines:
        if not line.in_stock:
            raise InsufficientStockError(
                line.product_id,
                line.product_name,
                requested=line.quantity,
                available=line.stock,
            )


def cart_total(lines: Iterable[CartLine]) -> Decimal:
    """Exact sum of price x quantity over all lines."""
    return sum((line.subtotal for line in lines), Decimal("0.00"))
