from shop.domain.cart import CartLine
from shop.domain.order import Order, OrderItem, ShippingAddress, TrackingEvent

__all__ = ["CartLine", "Order", "OrderItem", "ShippingAddress", "TrackingEvent"]
