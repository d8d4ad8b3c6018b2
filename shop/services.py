"""
Application services for checkout, order tracking, cart, wishlist and catalog.
"""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from django.db import DatabaseError, transaction

from shop.conf import shop_setting
from shop.domain.cart import CartLine, cart_total, ensure_in_stock
from shop.domain.errors import (
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
    ShopError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from shop.domain.order import (
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ShippingAddress,
    TrackingEvent,
)
from shop.domain.principal import Principal
from shop.infra.pii_masker import mask_shipping_address
from shop.infra.repositories import (
    CartRepository,
    InventoryLedger,
    OrderRepository,
    ProductRepository,
    StatsRepository,
    WishlistRepository,
)


logger = logging.getLogger(__name__)


class OrderService:
    """Turns carts into orders and drives order status changes."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        cart_repo: CartRepository | None = None,
        inventory: InventoryLedger | None = None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.cart_repo = cart_repo or CartRepository()
        self.inventory = inventory or InventoryLedger()

    def place_order(self, user_id: int, shipping_address: Any, payment_method: str) -> Order:
        """
        Convert the user's cart into an order.

        The order row, its items, the first tracking entry, every stock
        decrement and the cart clearing commit together or not at all.
        Raises EmptyCartError, InsufficientStockError, ValidationError or
        StorageError; in every case the cart and stock are left untouched.
        """
        address = ShippingAddress.from_input(shipping_address)
        method = self._payment_method(payment_method)

        try:
            order = self._commit_order(user_id, address, method)
        except ShopError as e:
            logger.info(
                "order_rejected",
                extra={"user_id": user_id, "code": e.code, "error": e.message},
            )
            raise
        except DatabaseError as e:
            logger.error(
                "order_storage_failure",
                extra={"user_id": user_id, "error": str(e)},
                exc_info=True,
            )
            raise StorageError("Failed to place order") from e

        logger.info(
            "order_placed",
            extra={
                "user_id": user_id,
                "order_id": str(order.id),
                "order_number": order.order_number,
                "total_amount": str(order.total_amount),
                "items_count": len(order.items),
                "shipping_address": mask_shipping_address(address.as_dict()),
            },
        )
        return order

    @transaction.atomic
    def _commit_order(self, user_id: int, address: ShippingAddress, method: PaymentMethod) -> Order:
        lines = self.cart_repo.list_items(user_id)
        if not lines:
            raise EmptyCartError()
        ensure_in_stock(lines)

        order = Order(
            user_id=user_id,
            items=[line.to_order_item() for line in lines],
            shipping_address=address,
            payment_method=method,
            payment_status=method.initial_payment_status,
            status=OrderStatus.PENDING,
            total_amount=cart_total(lines),
        )
        created = self.order_repo.create(order, self._initial_tracking())

        # Stock may have moved since the snapshot; the conditional decrement decides.
        # Rows are locked in product id order so concurrent checkouts cannot deadlock.
        for line in sorted(lines, key=lambda line: str(line.product_id)):
            if not self.inventory.decrement_if_available(line.product_id, line.quantity):
                current = self.inventory.snapshot(line.product_id)
                raise InsufficientStockError(
                    line.product_id,
                    line.product_name,
                    requested=line.quantity,
                    available=current[1] if current else 0,
                )

        self.cart_repo.clear_items(user_id)
        return created

    def update_order_status(
        self,
        order_id: UUID,
        new_status: str,
        tracking_message: str | None = None,
        tracking_location: str | None = None,
        payment_status: str | None = None,
    ) -> Order:
        """Admin status change, optionally appending a tracking entry."""
        status = OrderStatus.parse(new_status)
        new_payment_status = PaymentStatus.parse(payment_status) if payment_status else None

        try:
            with transaction.atomic():
                order = self.order_repo.get_for_update(order_id)
                if order is None:
                    raise NotFoundError(f"Order {order_id} not found")

                previous = order.status
                order.change_status(status)
                if new_payment_status is not None:
                    order.payment_status = new_payment_status
                self.order_repo.save_status(order)

                if tracking_message:
                    self.order_repo.append_tracking(
                        order.id,
                        TrackingEvent(
                            status=status.value,
                            message=tracking_message,
                            location=tracking_location or "",
                        ),
                    )
        except DatabaseError as e:
            logger.error(
                "order_status_storage_failure",
                extra={"order_id": str(order_id), "error": str(e)},
                exc_info=True,
            )
            raise StorageError("Failed to update order") from e

        logger.info(
            "order_status_updated",
            extra={
                "order_id": str(order_id),
                "previous_status": previous.value,
                "status": status.value,
                "tracking_appended": bool(tracking_message),
            },
        )
        return self.order_repo.get_by_id(order_id)

    def get_order(self, order_id: UUID, principal: Principal) -> Order:
        """Get order by ID, visible to its owner and to admins only."""
        order = self.order_repo.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        if not order.is_visible_to(principal.user_id, principal.is_admin):
            raise UnauthorizedError("Not allowed to view this order")
        return order

    def list_orders(self, principal: Principal, limit: int = 50, offset: int = 0) -> list[Order]:
        """Own orders for users, every order for admins."""
        user_id = None if principal.is_admin else principal.user_id
        limit = min(max(limit or 1, 1), shop_setting("MAX_PAGE_SIZE"))
        offset = max(offset or 0, 0)
        return self.order_repo.list(user_id=user_id, limit=limit, offset=offset)

    def _payment_method(self, value: str) -> PaymentMethod:
        method = PaymentMethod.parse(value)
        if method.value not in shop_setting("ENABLED_PAYMENT_METHODS"):
            raise ValidationError(f"Payment method '{method.value}' is not available")
        return method

    def _initial_tracking(self) -> TrackingEvent:
        return TrackingEvent(
            status=shop_setting("INITIAL_TRACKING_STATUS"),
            message=shop_setting("INITIAL_TRACKING_MESSAGE"),
            location=shop_setting("INITIAL_TRACKING_LOCATION"),
        )


class CartService:
    """Service for cart operations."""

    def __init__(self, cart_repo: CartRepository | None = None):
        self.cart_repo = cart_repo or CartRepository()

    def get_cart(self, user_id: int) -> dict:
        lines = self.cart_repo.list_items(user_id)
        return {"items": lines, "total_amount": cart_total(lines), "count": len(lines)}

    def add_item(self, user_id: int, product_id: UUID, quantity: int = 1) -> CartLine:
        line = self.cart_repo.upsert_item(user_id, product_id, quantity)
        logger.info(
            "cart_item_added",
            extra={"user_id": user_id, "product_id": str(product_id), "quantity": line.quantity},
        )
        return line

    def update_quantity(self, user_id: int, item_id: UUID, quantity: int) -> CartLine:
        return self.cart_repo.set_quantity(user_id, item_id, quantity)

    def remove_item(self, user_id: int, item_id: UUID) -> None:
        self.cart_repo.remove_item(user_id, item_id)

    def count(self, user_id: int) -> int:
        return self.cart_repo.count(user_id)


class WishlistService:
    """Service for wishlist operations."""

    def __init__(self, wishlist_repo: WishlistRepository | None = None):
        self.wishlist_repo = wishlist_repo or WishlistRepository()

    def list_items(self, user_id: int):
        return self.wishlist_repo.list_items(user_id)

    def add_item(self, user_id: int, product_id: UUID):
        return self.wishlist_repo.add_item(user_id, product_id)

    def remove_item(self, user_id: int, item_id: UUID) -> None:
        self.wishlist_repo.remove_item(user_id, item_id)

    def count(self, user_id: int) -> int:
        return self.wishlist_repo.count(user_id)


class CatalogService:
    """Product browsing and admin product management."""

    def __init__(self, product_repo: ProductRepository | None = None):
        self.product_repo = product_repo or ProductRepository()

    def list_products(
        self,
        category: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> dict:
        page = max(page or 1, 1)
        limit = limit or shop_setting("DEFAULT_PAGE_SIZE")
        limit = min(max(limit, 1), shop_setting("MAX_PAGE_SIZE"))
        products, pagination = self.product_repo.list(category, search, page, limit)
        return {"products": products, "pagination": pagination}

    def get_product(self, product_id: UUID):
        product = self.product_repo.get_by_id(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def create_product(self, data: dict):
        product = self.product_repo.create(data)
        logger.info("product_created", extra={"product_id": str(product.id)})
        return product

    def update_product(self, product_id: UUID, data: dict):
        return self.product_repo.update(product_id, data)

    def delete_product(self, product_id: UUID) -> None:
        self.product_repo.delete(product_id)
        logger.info("product_deleted", extra={"product_id": str(product_id)})


class AdminStatsService:
    def __init__(self, stats_repo: StatsRepository | None = None):
        self.stats_repo = stats_repo or StatsRepository()

    def dashboard(self) -> dict:
        return self.stats_repo.dashboard(recent_limit=shop_setting("RECENT_ORDERS_LIMIT"))
