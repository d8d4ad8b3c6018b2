from __future__ import annotations

from uuid import uuid4

from django.conf import settings
from django.db import models
from django.db.models import Q


ORDER_STATUS_CHOICES = (
    ("PENDING", "Pending"),
    ("CONFIRMED", "Confirmed"),
    ("PROCESSING", "Processing"),
    ("SHIPPED", "Shipped"),
    ("DELIVERED", "Delivered"),
    ("CANCELLED", "Cancelled"),
)

PAYMENT_STATUS_CHOICES = (
    ("PENDING", "Pending"),
    ("PAID", "Paid"),
)

PAYMENT_METHOD_CHOICES = (
    ("cod", "Cash on delivery"),
    ("card", "Card"),
)


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class CategoryORM(TimeStampedModel):
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)

    class Meta:
        verbose_name = "category"
        verbose_name_plural = "categories"
        ordering = ("name",)

    def __str__(self):
        return self.name


class ProductORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=12, decimal_places=2)
    discount_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    stock = models.IntegerField(default=0)
    images = models.JSONField(default=list, blank=True)
    category = models.ForeignKey(
        CategoryORM,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
    )

    class Meta:
        verbose_name = "product"
        constraints = [
            models.CheckConstraint(condition=Q(stock__gte=0), name="product_stock_non_negative"),
            models.CheckConstraint(condition=Q(price__gte=0), name="product_price_non_negative"),
        ]
        indexes = [
            models.Index(fields=("category", "-created_at"), name="product_category_created_idx"),
            models.Index(fields=("-created_at",), name="product_created_idx"),
        ]

    def __str__(self):
        return self.name


class CartItemORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    product = models.ForeignKey(
        ProductORM,
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    quantity = models.IntegerField()

    class Meta:
        verbose_name = "cart item"
        constraints = [
            models.UniqueConstraint(fields=("user", "product"), name="cart_item_user_product_unique"),
            models.CheckConstraint(condition=Q(quantity__gt=0), name="cart_item_quantity_positive"),
        ]


class WishlistItemORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wishlist_items",
    )
    product = models.ForeignKey(
        ProductORM,
        on_delete=models.CASCADE,
        related_name="wishlist_items",
    )

    class Meta:
        verbose_name = "wishlist item"
        constraints = [
            models.UniqueConstraint(fields=("user", "product"), name="wishlist_item_user_product_unique"),
        ]


class OrderORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    order_number = models.CharField(max_length=64, unique=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    shipping_address = models.JSONField()
    payment_method = models.CharField(max_length=16, choices=PAYMENT_METHOD_CHOICES)
    payment_status = models.CharField(max_length=16, choices=PAYMENT_STATUS_CHOICES, default="PENDING")
    status = models.CharField(max_length=16, choices=ORDER_STATUS_CHOICES, default="PENDING")

    class Meta:
        verbose_name = "order"
        indexes = [
            models.Index(fields=("user", "-created_at"), name="order_user_created_idx"),
            models.Index(fields=("status",), name="order_status_idx"),
        ]

    def __str__(self):
        return self.order_number


class OrderItemORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        ProductORM,
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity = models.IntegerField()
    # Unit price copied at order time, never joined from the product.
    price = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        verbose_name = "order item"
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gt=0), name="order_item_quantity_positive"),
        ]


class OrderTrackingORM(models.Model):
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="tracking",
    )
    status = models.CharField(max_length=64)
    message = models.TextField(blank=True, default="")
    location = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "order tracking entry"
        verbose_name_plural = "order tracking"
        ordering = ("created_at", "id")
        indexes = [
            models.Index(fields=("order", "created_at"), name="tracking_order_created_idx"),
        ]
