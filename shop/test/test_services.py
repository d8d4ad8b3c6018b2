"""
Tests for checkout, order status updates, cart and wishlist services.
"""
from decimal import Decimal
from uuid import uuid4

from django.test import TestCase, override_settings

from shop.domain.errors import (
    EmptyCartError,
    InsufficientStockError,
    InvalidStatusTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from shop.domain.order import OrderStatus, PaymentStatus
from shop.domain.principal import Principal, Role
from shop.infra.models import CartItemORM, OrderItemORM, OrderORM, OrderTrackingORM, ProductORM
from shop.services import CartService, CatalogService, OrderService, WishlistService
from shop.test.helpers import ADDRESS, make_product, make_user, put_in_cart, stock_of


class PlaceOrderTest(TestCase):

    def setUp(self):
        self.user = make_user()
        self.service = OrderService()

    def test_end_to_end_checkout(self):
        product_a = make_product("Product A", price="10.00", stock=5)
        product_b = make_product("Product B", price="20.00", stock=1)
        put_in_cart(self.user, product_a, 3)
        put_in_cart(self.user, product_b, 1)

        order = self.service.place_order(self.user.pk, ADDRESS, "cod")

        self.assertEqual(order.total_amount, Decimal("50.00"))
        self.assertEqual(stock_of(product_a), 2)
        self.assertEqual(stock_of(product_b), 0)
        self.assertFalse(CartItemORM.objects.filter(user=self.user).exists())
        self.assertEqual(len(order.tracking), 1)
        self.assertEqual(order.tracking[0].status, "Order Placed")
        self.assertEqual(order.tracking[0].location, "Processing Center")
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.payment_status, PaymentStatus.PENDING)
        self.assertRegex(order.order_number, r"^ORD-\d+-[0-9A-Z]{9}$")

    def test_items_snapshot_cart_lines(self):
        product_a = make_product("Product A", price="10.00", stock=5)
        product_b = make_product("Product B", price="20.00", stock=1)
        put_in_cart(self.user, product_a, 3)
        put_in_cart(self.user, product_b, 1)

        order = self.service.place_order(self.user.pk, ADDRESS, "cod")

        items = {item.product_id: item for item in order.items}
        self.assertEqual(set(items), {product_a.id, product_b.id})
        self.assertEqual(items[product_a.id].quantity, 3)
        self.assertEqual(items[product_a.id].price, Decimal("10.00"))
        self.assertEqual(order.total_amount, sum(item.subtotal for item in order.items))
        self.assertEqual(OrderORM.objects.filter(user=self.user).count(), 1)

    def test_price_snapshot_survives_product_price_change(self):
        product = make_product(price="10.00", stock=5)
        put_in_cart(self.user, product, 2)
        order = self.service.place_order(self.user.pk, ADDRESS, "cod")

        ProductORM.objects.filter(id=product.id).update(price=Decimal("99.00"))

        reloaded = self.service.get_order(order.id, Principal(self.user.pk))
        self.assertEqual(reloaded.items[0].price, Decimal("10.00"))
        self.assertEqual(reloaded.total_amount, Decimal("20.00"))

    def test_shipping_address_round_trips(self):
        product = make_product(stock=1)
        put_in_cart(self.user, product, 1)
        address = dict(ADDRESS, landmark="Blue gate", zipCode="00501")

        order = self.service.place_order(self.user.pk, address, "cod")

        reloaded = self.service.get_order(order.id, Principal(self.user.pk))
        self.assertEqual(reloaded.shipping_address.as_dict(), address)

    def test_total_with_fractional_prices(self):
        put_in_cart(self.user, make_product("Pen", price="19.99", stock=3), 3)
        put_in_cart(self.user, make_product("Clip", price="0.01", stock=7), 7)

        order = self.service.place_order(self.user.pk, ADDRESS, "cod")

        self.assertEqual(order.total_amount, Decimal("60.04"))

    def test_quantity_equal_to_stock_succeeds(self):
        product = make_product(stock=4)
        put_in_cart(self.user, product, 4)

        self.service.place_order(self.user.pk, ADDRESS, "cod")

        self.assertEqual(stock_of(product), 0)

    def test_quantity_one_above_stock_fails_without_side_effects(self):
        product = make_product(name="Lamp", stock=4)
        other = make_product(name="Shade", stock=10)
        put_in_cart(self.user, other, 2)
        put_in_cart(self.user, product, 5)

        with self.assertRaises(InsufficientStockError) as context:
            self.service.place_order(self.user.pk, ADDRESS, "cod")

        self.assertEqual(context.exception.product_id, product.id)
        self.assertIn("Lamp", context.exception.message)
        self.assertEqual(stock_of(product), 4)
        self.assertEqual(stock_of(other), 10)
        self.assertEqual(CartItemORM.objects.filter(user=self.user).count(), 2)
        self.assertFalse(OrderORM.objects.exists())

    def test_empty_cart(self):
        with self.assertRaises(EmptyCartError):
            self.service.place_order(self.user.pk, ADDRESS, "cod")
        self.assertFalse(OrderORM.objects.exists())

    def test_invalid_address_rejected_before_transaction(self):
        product = make_product(stock=1)
        put_in_cart(self.user, product, 1)

        with self.assertRaises(ValidationError):
            self.service.place_order(self.user.pk, dict(ADDRESS, name=""), "cod")

        self.assertEqual(stock_of(product), 1)
        self.assertTrue(CartItemORM.objects.filter(user=self.user).exists())

    def test_card_payment_disabled_by_default(self):
        put_in_cart(self.user, make_product(stock=1), 1)
        with self.assertRaises(ValidationError):
            self.service.place_order(self.user.pk, ADDRESS, "card")
        self.assertFalse(OrderORM.objects.exists())

    @override_settings(SHOP={"ENABLED_PAYMENT_METHODS": ["cod", "card"]})
    def test_card_payment_when_enabled_is_paid(self):
        put_in_cart(self.user, make_product(stock=1), 1)
        order = self.service.place_order(self.user.pk, ADDRESS, "card")
        self.assertEqual(order.payment_status, PaymentStatus.PAID)

    def test_repeated_checkout_creates_fresh_orders(self):
        product = make_product(stock=10)
        put_in_cart(self.user, product, 3)
        first = self.service.place_order(self.user.pk, ADDRESS, "cod")

        put_in_cart(self.user, product, 3)
        second = self.service.place_order(self.user.pk, ADDRESS, "cod")

        self.assertNotEqual(first.id, second.id)
        self.assertNotEqual(first.order_number, second.order_number)
        self.assertEqual(OrderORM.objects.count(), 2)
        self.assertEqual(stock_of(product), 4)

    def test_cart_of_other_users_is_untouched(self):
        other_user = make_user("other")
        product = make_product(stock=10)
        put_in_cart(self.user, product, 1)
        put_in_cart(other_user, product, 2)

        self.service.place_order(self.user.pk, ADDRESS, "cod")

        self.assertEqual(CartItemORM.objects.get(user=other_user).quantity, 2)


class UpdateOrderStatusTest(TestCase):

    def setUp(self):
        self.user = make_user()
        self.product = make_product(stock=5)
        put_in_cart(self.user, self.product, 2)
        self.service = OrderService()
        self.order = self.service.place_order(self.user.pk, ADDRESS, "cod")

    def test_status_update_with_tracking(self):
        order = self.service.update_order_status(
            self.order.id, "SHIPPED", tracking_message="Handed to carrier", tracking_location="Hub 4"
        )

        self.assertEqual(order.status, OrderStatus.SHIPPED)
        self.assertEqual([t.status for t in order.tracking], ["Order Placed", "SHIPPED"])
        self.assertEqual(order.tracking[1].message, "Handed to carrier")
        self.assertEqual(order.tracking[1].location, "Hub 4")

    def test_status_update_without_message_adds_no_tracking(self):
        order = self.service.update_order_status(self.order.id, "CONFIRMED")

        self.assertEqual(order.status, OrderStatus.CONFIRMED)
        self.assertEqual(len(order.tracking), 1)

    def test_tracking_note_on_same_status(self):
        self.service.update_order_status(self.order.id, "SHIPPED", tracking_message="Left warehouse")
        order = self.service.update_order_status(self.order.id, "SHIPPED", tracking_message="Arrived in city")

        self.assertEqual(
            [t.message for t in order.tracking][1:],
            ["Left warehouse", "Arrived in city"],
        )
        self.assertEqual(OrderTrackingORM.objects.filter(order_id=self.order.id).count(), 3)

    def test_backwards_transition_rejected(self):
        self.service.update_order_status(self.order.id, "DELIVERED")

        with self.assertRaises(InvalidStatusTransitionError):
            self.service.update_order_status(self.order.id, "PENDING", tracking_message="oops")

        self.assertEqual(OrderORM.objects.get(id=self.order.id).status, "DELIVERED")
        self.assertEqual(OrderTrackingORM.objects.filter(order_id=self.order.id).count(), 1)

    def test_cancel_changes_status_and_tracking_only(self):
        self.assertEqual(stock_of(self.product), 3)

        order = self.service.update_order_status(self.order.id, "CANCELLED", tracking_message="Customer request")

        self.assertEqual(order.status, OrderStatus.CANCELLED)
        self.assertEqual(order.tracking[-1].message, "Customer request")
        self.assertEqual(stock_of(self.product), 3)
        self.assertEqual(order.total_amount, self.order.total_amount)

    def test_payment_status_update(self):
        order = self.service.update_order_status(self.order.id, "DELIVERED", payment_status="PAID")
        self.assertEqual(order.payment_status, PaymentStatus.PAID)

    def test_unknown_order(self):
        with self.assertRaises(NotFoundError):
            self.service.update_order_status(uuid4(), "SHIPPED")

    def test_unknown_status(self):
        with self.assertRaises(ValidationError):
            self.service.update_order_status(self.order.id, "LOST")


class OrderReadTest(TestCase):

    def setUp(self):
        self.owner = make_user("owner")
        self.stranger = make_user("stranger")
        self.admin = make_user("admin", is_staff=True)
        put_in_cart(self.owner, make_product(stock=5), 1)
        self.service = OrderService()
        self.order = self.service.place_order(self.owner.pk, ADDRESS, "cod")

    def test_owner_and_admin_can_read(self):
        self.assertEqual(self.service.get_order(self.order.id, Principal(self.owner.pk)).id, self.order.id)
        self.assertEqual(self.service.get_order(self.order.id, Principal(self.admin.pk, Role.ADMIN)).id, self.order.id)

    def test_stranger_cannot_read(self):
        with self.assertRaises(UnauthorizedError):
            self.service.get_order(self.order.id, Principal(self.stranger.pk))

    def test_missing_order(self):
        with self.assertRaises(NotFoundError):
            self.service.get_order(uuid4(), Principal(self.owner.pk))

    def test_list_orders_scoped_by_role(self):
        put_in_cart(self.stranger, make_product(stock=5), 1)
        self.service.place_order(self.stranger.pk, ADDRESS, "cod")

        self.assertEqual(len(self.service.list_orders(Principal(self.owner.pk))), 1)
        self.assertEqual(len(self.service.list_orders(Principal(self.admin.pk, Role.ADMIN))), 2)

    def test_list_orders_clamps_window(self):
        principal = Principal(self.owner.pk)

        self.assertEqual(len(self.service.list_orders(principal, limit=-1)), 1)
        self.assertEqual(len(self.service.list_orders(principal, offset=-5)), 1)
        self.assertEqual(len(self.service.list_orders(principal, limit=0, offset=1)), 0)

    def test_tracking_in_creation_order(self):
        for status in ("CONFIRMED", "PROCESSING", "SHIPPED"):
            self.service.update_order_status(self.order.id, status, tracking_message=status.title())

        order = self.service.get_order(self.order.id, Principal(self.owner.pk))
        self.assertEqual(
            [t.status for t in order.tracking],
            ["Order Placed", "CONFIRMED", "PROCESSING", "SHIPPED"],
        )


class CartServiceTest(TestCase):

    def setUp(self):
        self.user = make_user()
        self.service = CartService()

    def test_repeat_add_merges_quantity(self):
        product = make_product(stock=5)
        self.service.add_item(self.user.pk, product.id, 2)
        line = self.service.add_item(self.user.pk, product.id, 1)

        self.assertEqual(line.quantity, 3)
        self.assertEqual(CartItemORM.objects.filter(user=self.user).count(), 1)

    def test_add_beyond_stock_is_rejected(self):
        product = make_product(stock=2)
        self.service.add_item(self.user.pk, product.id, 2)

        with self.assertRaises(InsufficientStockError):
            self.service.add_item(self.user.pk, product.id, 1)
        self.assertEqual(CartItemORM.objects.get(user=self.user).quantity, 2)

    def test_add_unknown_product(self):
        with self.assertRaises(NotFoundError):
            self.service.add_item(self.user.pk, uuid4(), 1)

    def test_add_non_positive_quantity(self):
        with self.assertRaises(ValidationError):
            self.service.add_item(self.user.pk, make_product().id, 0)

    def test_update_and_remove(self):
        product = make_product(stock=5)
        line = self.service.add_item(self.user.pk, product.id, 1)

        updated = self.service.update_quantity(self.user.pk, line.id, 4)
        self.assertEqual(updated.quantity, 4)

        with self.assertRaises(InsufficientStockError):
            self.service.update_quantity(self.user.pk, line.id, 6)

        self.service.remove_item(self.user.pk, line.id)
        self.assertEqual(self.service.count(self.user.pk), 0)

    def test_cannot_touch_another_users_item(self):
        other = make_user("other")
        line = self.service.add_item(other.pk, make_product().id, 1)

        with self.assertRaises(NotFoundError):
            self.service.remove_item(self.user.pk, line.id)
        with self.assertRaises(NotFoundError):
            self.service.update_quantity(self.user.pk, line.id, 2)

    def test_cart_total(self):
        self.service.add_item(self.user.pk, make_product(price="2.50", stock=9).id, 4)
        self.service.add_item(self.user.pk, make_product(price="1.25", stock=9).id, 2)

        cart = self.service.get_cart(self.user.pk)
        self.assertEqual(cart["total_amount"], Decimal("12.50"))
        self.assertEqual(cart["count"], 2)


class WishlistServiceTest(TestCase):

    def setUp(self):
        self.user = make_user()
        self.service = WishlistService()

    def test_add_list_remove(self):
        product = make_product()
        item = self.service.add_item(self.user.pk, product.id)

        self.assertEqual([i.product_id for i in self.service.list_items(self.user.pk)], [product.id])
        self.assertEqual(self.service.count(self.user.pk), 1)

        self.service.remove_item(self.user.pk, item.id)
        self.assertEqual(self.service.count(self.user.pk), 0)

    def test_duplicate_rejected(self):
        product = make_product()
        self.service.add_item(self.user.pk, product.id)
        with self.assertRaises(ValidationError):
            self.service.add_item(self.user.pk, product.id)


class CatalogServiceTest(TestCase):

    def setUp(self):
        self.service = CatalogService()

    def test_create_derives_slug(self):
        product = self.service.create_product({"name": "Blue Mug", "price": Decimal("4.00"), "stock": 3})
        self.assertEqual(product.slug, "blue-mug")

        duplicate = self.service.create_product({"name": "Blue Mug", "price": Decimal("4.00")})
        self.assertNotEqual(duplicate.slug, product.slug)

    def test_list_filters_and_paginates(self):
        for index in range(5):
            make_product(f"Lamp {index}")
        make_product("Chair")

        result = self.service.list_products(search="lamp", page=2, limit=2)

        self.assertEqual(len(result["products"]), 2)
        self.assertEqual(result["pagination"], {"page": 2, "limit": 2, "total": 5, "pages": 3})

    def test_delete_ordered_product_is_refused(self):
        user = make_user()
        product = make_product(stock=1)
        put_in_cart(user, product, 1)
        OrderService().place_order(user.pk, ADDRESS, "cod")

        with self.assertRaises(ValidationError):
            self.service.delete_product(product.id)
        self.assertTrue(OrderItemORM.objects.filter(product=product).exists())

    def test_negative_stock_rejected(self):
        product = make_product()
        with self.assertRaises(ValidationError):
            self.service.update_product(product.id, {"stock": -1})

    def test_non_finite_price_rejected(self):
        for price in ("NaN", "Infinity", "-Infinity"):
            with self.assertRaises(ValidationError):
                self.service.create_product({"name": "Mug", "price": Decimal(price)})
        self.assertFalse(ProductORM.objects.filter(name="Mug").exists())

    def test_negative_price_rejected(self):
        product = make_product()
        with self.assertRaises(ValidationError):
            self.service.update_product(product.id, {"price": Decimal("-1.00")})
        with self.assertRaises(ValidationError):
            self.service.update_product(product.id, {"discount_price": Decimal("NaN")})
