"""
Expose ORM models for Django's auto-discovery while keeping real definitions
under the infrastructure module.
"""

from shop.infra.models import (
    CategoryORM,
    ProductORM,
    CartItemORM,
    WishlistItemORM,
    OrderORM,
    OrderItemORM,
    OrderTrackingORM,
)

__all__ = [
    "CategoryORM",
    "ProductORM",
    "CartItemORM",
    "WishlistItemORM",
    "OrderORM",
    "OrderItemORM",
    "OrderTrackingORM",
]
