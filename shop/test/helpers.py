"""
Shared builders for shop tests.
"""
from decimal import Decimal
from uuid import uuid4

from django.contrib.auth import get_user_model
from django.utils.text import slugify

from shop.infra.models import CartItemORM, ProductORM


ADDRESS = {
    "name": "Jane Doe",
    "phone": "+1 (555) 010-2030",
    "address": "42 Long Street, Apt 7",
    "city": "Springfield",
    "state": "IL",
    "zipCode": "62701",
}


def make_user(username: str = "customer", is_staff: bool = False):
    return get_user_model().objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="secret-pass-123",
        is_staff=is_staff,
    )


def make_product(name: str = "Widget", price: str = "10.00", stock: int = 5, category=None) -> ProductORM:
    return ProductORM.objects.create(
        name=name,
        slug=f"{slugify(name)}-{uuid4().hex[:6]}",
        price=Decimal(price),
        stock=stock,
        category=category,
    )


def put_in_cart(user, product: ProductORM, quantity: int) -> CartItemORM:
    return CartItemORM.objects.create(user=user, product=product, quantity=quantity)


def stock_of(product: ProductORM) -> int:
    product.refresh_from_db(fields=["stock"])
    return product.stock
