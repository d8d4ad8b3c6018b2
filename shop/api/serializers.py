"""
Convert domain objects and ORM rows into GraphQL-shaped dicts.
"""
from __future__ import annotations

from shop.domain.cart import CartLine
from shop.domain.order import Order, OrderItem, TrackingEvent
from shop.infra.models import CategoryORM, OrderORM, ProductORM, WishlistItemORM


def serialize_category(category: CategoryORM | None) -> dict | None:
    if category is None:
        return None
    return {"id": category.pk, "name": category.name, "slug": category.slug}


def serialize_product(product: ProductORM) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "description": product.description,
        "price": product.price,
        "discountPrice": product.discount_price,
        "stock": product.stock,
        "images": list(product.images or []),
        "category": serialize_category(product.category),
        "createdAt": product.created_at,
    }


def serialize_cart_line(line: CartLine) -> dict:
    return {
        "id": line.id,
        "productId": line.product_id,
        "productName": line.product_name,
        "quantity": line.quantity,
        "unitPrice": line.unit_price,
        "stock": line.stock,
        "subtotal": line.subtotal,
    }


def serialize_wishlist_item(item: WishlistItemORM) -> dict:
    return {
        "id": item.id,
        "product": serialize_product(item.product),
        "createdAt": item.created_at,
    }


def serialize_order_item(item: OrderItem) -> dict:
    return {
        "id": item.id,
        "productId": item.product_id,
        "productName": item.product_name,
        "quantity": item.quantity,
        "price": item.price,
        "subtotal": item.subtotal,
    }


def serialize_tracking(event: TrackingEvent) -> dict:
    return {
        "id": event.id,
        "status": event.status,
        "message": event.message,
        "location": event.location,
        "createdAt": event.created_at,
    }


def serialize_order(order: Order) -> dict:
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "userId": order.user_id,
        "totalAmount": order.total_amount,
        "shippingAddress": order.shipping_address.as_dict(),
        "paymentMethod": order.payment_method.value,
        "paymentStatus": order.payment_status.value,
        "status": order.status.value,
        "createdAt": order.created_at,
        "items": [serialize_order_item(item) for item in order.items],
        "tracking": [serialize_tracking(event) for event in order.tracking],
    }


def serialize_recent_order(order: OrderORM) -> dict:
    user = order.user
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "totalAmount": order.total_amount,
        "status": order.status,
        "paymentStatus": order.payment_status,
        "customerName": user.get_full_name() or user.get_username(),
        "customerEmail": user.email or "",
        "createdAt": order.created_at,
    }
