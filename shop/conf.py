"""
Shop settings with defaults, overridable through ``settings.SHOP``.
"""
from __future__ import annotations

from typing import Any

from django.conf import settings


DEFAULTS: dict[str, Any] = {
    "ENABLED_PAYMENT_METHODS": ["cod"],
    "ORDER_NUMBER_PREFIX": "ORD",
    "ORDER_NUMBER_ATTEMPTS": 3,
    "INITIAL_TRACKING_STATUS": "Order Placed",
    "INITIAL_TRACKING_MESSAGE": "Your order has been placed successfully",
    "INITIAL_TRACKING_LOCATION": "Processing Center",
    "DEFAULT_PAGE_SIZE": 20,
    "MAX_PAGE_SIZE": 100,
    "RECENT_ORDERS_LIMIT": 5,
}


def shop_setting(name: str) -> Any:
    """Return a shop setting, falling back to the default."""
    overrides = getattr(settings, "SHOP", {}) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
