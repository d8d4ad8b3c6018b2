"""
Infrastructure repositories for domain entities.
"""
from __future__ import annotations

import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID, uuid4

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F, ProtectedError, Sum
from django.utils import timezone
from django.utils.text import slugify

from shop.conf import shop_setting
from shop.domain.cart import CartLine
from shop.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from shop.domain.order import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ShippingAddress,
    TrackingEvent,
    new_order_number,
)
from shop.infra.models import (
    CartItemORM,
    CategoryORM,
    OrderItemORM,
    OrderORM,
    OrderTrackingORM,
    ProductORM,
    WishlistItemORM,
)
from shop.infra.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Per-product stock counters."""

    def decrement_if_available(self, product_id: UUID, quantity: int) -> bool:
        """Subtract ``quantity`` only if at least that much is in stock.

        Runs as one conditional UPDATE, so the sufficiency check and the write
        cannot interleave with another caller.
        """
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        updated = (
            ProductORM.objects
            .filter(id=product_id, stock__gte=quantity)
            .update(stock=F("stock") - quantity, updated_at=timezone.now())
        )
        return updated == 1

    def restore_stock(self, product_id: UUID, quantity: int) -> None:
        """Give back ``quantity`` units, compensating a decrement that must be undone."""
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        updated = (
            ProductORM.objects
            .filter(id=product_id)
            .update(stock=F("stock") + quantity, updated_at=timezone.now())
        )
        if not updated:
            raise NotFoundError(f"Product {product_id} not found")

    def snapshot(self, product_id: UUID) -> tuple[Decimal, int] | None:
        """Current (price, stock) of a product, or None if it does not exist."""
        return (
            ProductORM.objects
            .filter(id=product_id)
            .values_list("price", "stock")
            .first()
        )


class CartRepository:
    """Repository for per-user cart rows."""

    def list_items(self, user_id: int) -> list[CartLine]:
        """Cart lines with the product price and stock read in the same query."""
        items = (
            CartItemORM.objects
            .filter(user_id=user_id)
            .select_related("product")
            .order_by("-created_at")
        )
        return [self._to_domain(item) for item in items]

    def get_item(self, user_id: int, item_id: UUID) -> CartItemORM | None:
        return (
            CartItemORM.objects
            .select_related("product")
            .filter(id=item_id, user_id=user_id)
            .first()
        )

    def upsert_item(self, user_id: int, product_id: UUID, quantity: int) -> CartLine:
        """Add ``quantity`` of a product, merging into an existing row."""
        if quantity <= 0:
            raise ValidationError("Quantity must be positive")

        product = ProductORM.objects.filter(id=product_id).first()
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")

        existing = (
            CartItemORM.objects
            .filter(user_id=user_id, product_id=product_id)
            .values_list("quantity", flat=True)
            .first()
        )
        merged = quantity + (existing or 0)
        # Advisory only: checkout re-checks with a conditional decrement.
        if product.stock < merged:
            raise InsufficientStockError(product.id, product.name, requested=merged, available=product.stock)

        if existing is None:
            try:
                with transaction.atomic():
                    CartItemORM.objects.create(user_id=user_id, product=product, quantity=quantity)
            except IntegrityError:
                # A concurrent request created the row first; merge into it.
                self._increment(user_id, product_id, quantity)
        else:
            self._increment(user_id, product_id, quantity)

        item = CartItemORM.objects.select_related("product").get(user_id=user_id, product_id=product_id)
        return self._to_domain(item)

    def set_quantity(self, user_id: int, item_id: UUID, quantity: int) -> CartLine:
        if quantity <= 0:
            raise ValidationError("Quantity must be positive")
        item = self.get_item(user_id, item_id)
        if item is None:
            raise NotFoundError(f"Cart item {item_id} not found")
        if item.product.stock < quantity:
            raise InsufficientStockError(
                item.product_id, item.product.name, requested=quantity, available=item.product.stock
            )
        item.quantity = quantity
        item.save(update_fields=["quantity", "updated_at"])
        return self._to_domain(item)

    def remove_item(self, user_id: int, item_id: UUID) -> None:
        deleted, _ = CartItemORM.objects.filter(id=item_id, user_id=user_id).delete()
        if not deleted:
            raise NotFoundError(f"Cart item {item_id} not found")

    def clear_items(self, user_id: int) -> int:
        """Delete every cart row of the user. Returns the number of rows removed."""
        deleted, _ = CartItemORM.objects.filter(user_id=user_id).delete()
        return deleted

    def count(self, user_id: int) -> int:
        return CartItemORM.objects.filter(user_id=user_id).count()

    def _increment(self, user_id: int, product_id: UUID, quantity: int) -> None:
        CartItemORM.objects.filter(user_id=user_id, product_id=product_id).update(
            quantity=F("quantity") + quantity,
            updated_at=timezone.now(),
        )

    def _to_domain(self, item_orm: CartItemORM) -> CartLine:
        product = item_orm.product
        return CartLine(
            id=item_orm.id,
            product_id=product.id,
            product_name=product.name,
            quantity=item_orm.quantity,
            unit_price=product.price,
            stock=product.stock,
        )


class WishlistRepository:
    """Repository for wishlist rows. Rows are returned as ORM objects."""

    def list_items(self, user_id: int) -> list[WishlistItemORM]:
        return list(
            WishlistItemORM.objects
            .filter(user_id=user_id)
            .select_related("product", "product__category")
            .order_by("-created_at")
        )

    def add_item(self, user_id: int, product_id: UUID) -> WishlistItemORM:
        product = ProductORM.objects.filter(id=product_id).first()
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        try:
            with transaction.atomic():
                return WishlistItemORM.objects.create(user_id=user_id, product=product)
        except IntegrityError:
            raise ValidationError("Already in wishlist") from None

    def remove_item(self, user_id: int, item_id: UUID) -> None:
        deleted, _ = WishlistItemORM.objects.filter(id=item_id, user_id=user_id).delete()
        if not deleted:
            raise NotFoundError(f"Wishlist item {item_id} not found")

    def count(self, user_id: int) -> int:
        return WishlistItemORM.objects.filter(user_id=user_id).count()


class ProductRepository:
    """Repository for catalog products. Rows are returned as ORM objects."""

    EDITABLE_FIELDS = ("name", "description", "price", "discount_price", "stock", "images", "category")

    def get_by_id(self, product_id: UUID) -> ProductORM | None:
        return ProductORM.objects.select_related("category").filter(id=product_id).first()

    def list(
        self,
        category: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[ProductORM], dict[str, int]]:
        """Newest first, filtered by category slug and name substring."""
        queryset = ProductORM.objects.select_related("category")
        if category:
            queryset = queryset.filter(category__slug=category)
        if search:
            queryset = queryset.filter(name__icontains=search)

        total = queryset.count()
        offset = (page - 1) * limit
        products = list(queryset.order_by("-created_at")[offset:offset + limit])
        pagination = {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        }
        return products, pagination

    def create(self, data: dict[str, Any]) -> ProductORM:
        fields = self._clean(data)
        fields["slug"] = self._unique_slug(fields["name"])
        return ProductORM.objects.create(**fields)

    def update(self, product_id: UUID, data: dict[str, Any]) -> ProductORM:
        product = self.get_by_id(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        for field, value in self._clean(data, partial=True).items():
            setattr(product, field, value)
        product.save()
        return product

    def delete(self, product_id: UUID) -> None:
        try:
            deleted, _ = ProductORM.objects.filter(id=product_id).delete()
        except ProtectedError:
            raise ValidationError("Product has been ordered and cannot be deleted") from None
        if not deleted:
            raise NotFoundError(f"Product {product_id} not found")

    def _clean(self, data: dict[str, Any], partial: bool = False) -> dict[str, Any]:
        fields = {key: data[key] for key in self.EDITABLE_FIELDS if key in data}
        if not partial:
            for required in ("name", "price"):
                if fields.get(required) in (None, ""):
                    raise ValidationError(f"{required} is required")
        if "price" in fields:
            fields["price"] = self._amount("price", fields["price"])
        if fields.get("discount_price") is not None:
            fields["discount_price"] = self._amount("discount_price", fields["discount_price"])
        if "stock" in fields and (fields["stock"] is None or fields["stock"] < 0):
            raise ValidationError("Stock must be non-negative")
        if "category" in fields and fields["category"] is not None:
            category = CategoryORM.objects.filter(slug=fields["category"]).first()
            if category is None:
                raise NotFoundError(f"Category {fields['category']} not found")
            fields["category"] = category
        return fields

    def _amount(self, field: str, value: Any) -> Decimal:
        """Finite, non-negative money amount."""
        if value is None:
            raise ValidationError(f"{field} is required")
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise ValidationError(f"Invalid {field}: {value}") from None
        if not amount.is_finite():
            raise ValidationError(f"Invalid {field}: {value}")
        if amount < 0:
            raise ValidationError(f"{field} must be non-negative")
        return amount

    def _unique_slug(self, name: str) -> str:
        slug = slugify(name) or uuid4().hex[:8]
        if ProductORM.objects.filter(slug=slug).exists():
            slug = f"{slug}-{uuid4().hex[:6]}"
        return slug


class OrderRepository:
    """Repository for Order aggregate."""

    def get_by_id(self, order_id: UUID) -> Order | None:
        """Get order by ID with items and tracking (no N+1)."""
        order_orm = self._queryset().filter(id=order_id).first()
        if order_orm is None:
            return None
        return self._to_domain(order_orm)

    def get_for_update(self, order_id: UUID) -> Order | None:
        """Load an order while holding a row lock until the transaction ends."""
        order_orm = OrderORM.objects.select_for_update().filter(id=order_id).first()
        if order_orm is None:
            return None
        return self.get_by_id(order_orm.id)

    def list(self, user_id: int | None = None, limit: int = 50, offset: int = 0) -> list[Order]:
        """Orders newest first, for one user or for everyone when ``user_id`` is None."""
        queryset = self._queryset().order_by("-created_at")
        if user_id is not None:
            queryset = queryset.filter(user_id=user_id)
        return [self._to_domain(order_orm) for order_orm in queryset[offset:offset + limit]]

    def create(self, order: Order, initial_tracking: TrackingEvent) -> Order:
        """Insert the order row, its items and the first tracking entry.

        Must run inside the caller's transaction.
        """
        insert = retry_with_backoff(
            attempts=shop_setting("ORDER_NUMBER_ATTEMPTS"),
            exceptions=(IntegrityError,),
        )(self._insert_order)
        order_orm = insert(order)

        OrderItemORM.objects.bulk_create([
            OrderItemORM(
                order=order_orm,
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price,
            )
            for item in order.items
        ])
        OrderTrackingORM.objects.create(
            order=order_orm,
            status=initial_tracking.status,
            message=initial_tracking.message,
            location=initial_tracking.location,
        )
        return self.get_by_id(order_orm.id)

    def save_status(self, order: Order) -> None:
        OrderORM.objects.filter(id=order.id).update(
            status=order.status.value,
            payment_status=order.payment_status.value,
            updated_at=timezone.now(),
        )

    def append_tracking(self, order_id: UUID, event: TrackingEvent) -> TrackingEvent:
        tracking_orm = OrderTrackingORM.objects.create(
            order_id=order_id,
            status=event.status,
            message=event.message,
            location=event.location,
        )
        return self._tracking_to_domain(tracking_orm)

    def _insert_order(self, order: Order) -> OrderORM:
        # Savepoint so a duplicate order number does not poison the outer transaction.
        with transaction.atomic():
            return OrderORM.objects.create(
                id=order.id,
                order_number=new_order_number(shop_setting("ORDER_NUMBER_PREFIX")),
                user_id=order.user_id,
                total_amount=order.total_amount,
                shipping_address=order.shipping_address.as_dict(),
                payment_method=order.payment_method.value,
                payment_status=order.payment_status.value,
                status=order.status.value,
            )

    def _queryset(self):
        return OrderORM.objects.prefetch_related("items__product", "tracking")

    def _to_domain(self, order_orm: OrderORM) -> Order:
        """Convert ORM model to domain entity."""
        items = [
            OrderItem(
                id=item_orm.id,
                product_id=item_orm.product_id,
                product_name=item_orm.product.name,
                quantity=item_orm.quantity,
                price=item_orm.price,
            )
            for item_orm in order_orm.items.all()
        ]
        tracking = [self._tracking_to_domain(t) for t in order_orm.tracking.all()]

        return Order(
            id=order_orm.id,
            order_number=order_orm.order_number,
            user_id=order_orm.user_id,
            items=items,
            tracking=tracking,
            shipping_address=ShippingAddress(order_orm.shipping_address),
            payment_method=PaymentMethod(order_orm.payment_method),
            payment_status=PaymentStatus(order_orm.payment_status),
            status=OrderStatus(order_orm.status),
            total_amount=order_orm.total_amount,
            created_at=order_orm.created_at,
        )

    def _tracking_to_domain(self, tracking_orm: OrderTrackingORM) -> TrackingEvent:
        return TrackingEvent(
            id=tracking_orm.id,
            status=tracking_orm.status,
            message=tracking_orm.message,
            location=tracking_orm.location,
            created_at=tracking_orm.created_at,
        )


class StatsRepository:
    """Read-only aggregates for the admin dashboard."""

    def dashboard(self, recent_limit: int = 5) -> dict[str, Any]:
        revenue = (
            OrderORM.objects
            .filter(payment_status=PaymentStatus.PAID.value)
            .aggregate(total=Sum("total_amount"))["total"]
        )
        recent = (
            OrderORM.objects
            .select_related("user")
            .order_by("-created_at")[:recent_limit]
        )
        return {
            "total_revenue": revenue or Decimal("0.00"),
            "total_orders": OrderORM.objects.count(),
            "total_products": ProductORM.objects.count(),
            "total_users": get_user_model().objects.count(),
            "recent_orders": list(recent),
        }
