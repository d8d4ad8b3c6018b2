"""
GraphQL schema definition using Ariadne.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from uuid import UUID

from ariadne import (
    MutationType,
    QueryType,
    ScalarType,
    load_schema_from_path,
    make_executable_schema,
)
from graphql import value_from_ast_untyped

from shop.api.permissions import require_admin, require_user
from shop.api.serializers import (
    serialize_cart_line,
    serialize_order,
    serialize_product,
    serialize_recent_order,
    serialize_wishlist_item,
)
from shop.domain.errors import ValidationError
from shop.services import (
    AdminStatsService,
    CartService,
    CatalogService,
    OrderService,
    WishlistService,
)

# Load schema from .graphql files
SCHEMAS_DIR = Path(__file__).parent / "schemas"
type_defs = "\n".join([
    load_schema_from_path(SCHEMAS_DIR / "common.graphql"),
    load_schema_from_path(SCHEMAS_DIR / "query.graphql"),
    load_schema_from_path(SCHEMAS_DIR / "mutation.graphql"),
])

query = QueryType()
mutation = MutationType()

# Input field name -> repository field name
PRODUCT_INPUT_FIELDS = {
    "name": "name",
    "description": "description",
    "price": "price",
    "discountPrice": "discount_price",
    "stock": "stock",
    "images": "images",
    "category": "category",
}


def product_fields(data: dict) -> dict:
    return {PRODUCT_INPUT_FIELDS[key]: value for key, value in data.items() if key in PRODUCT_INPUT_FIELDS}


# Catalog

@query.field("products")
def resolve_products(_, info, category=None, search=None, page=1, limit=None):
    require_user(info)
    result = CatalogService().list_products(category=category, search=search, page=page, limit=limit)
    return {
        "products": [serialize_product(product) for product in result["products"]],
        "pagination": result["pagination"],
    }


@query.field("product")
def resolve_product(_, info, id):
    require_user(info)
    return serialize_product(CatalogService().get_product(id))


@mutation.field("createProduct")
def resolve_create_product(_, info, input: dict):
    require_admin(info)
    return serialize_product(CatalogService().create_product(product_fields(input)))


@mutation.field("updateProduct")
def resolve_update_product(_, info, id, input: dict):
    require_admin(info)
    return serialize_product(CatalogService().update_product(id, product_fields(input)))


@mutation.field("deleteProduct")
def resolve_delete_product(_, info, id):
    require_admin(info)
    CatalogService().delete_product(id)
    return True


# Cart

@query.field("cart")
def resolve_cart(_, info):
    principal = require_user(info)
    cart = CartService().get_cart(principal.user_id)
    return {
        "items": [serialize_cart_line(line) for line in cart["items"]],
        "totalAmount": cart["total_amount"],
        "count": cart["count"],
    }


@query.field("cartCount")
def resolve_cart_count(_, info):
    principal = require_user(info)
    return CartService().count(principal.user_id)


@mutation.field("addToCart")
def resolve_add_to_cart(_, info, productId, quantity=1):
    principal = require_user(info)
    return serialize_cart_line(CartService().add_item(principal.user_id, productId, quantity))


@mutation.field("updateCartItem")
def resolve_update_cart_item(_, info, id, quantity):
    principal = require_user(info)
    return serialize_cart_line(CartService().update_quantity(principal.user_id, id, quantity))


@mutation.field("removeCartItem")
def resolve_remove_cart_item(_, info, id):
    principal = require_user(info)
    CartService().remove_item(principal.user_id, id)
    return True


# Wishlist

@query.field("wishlist")
def resolve_wishlist(_, info):
    principal = require_user(info)
    return [serialize_wishlist_item(item) for item in WishlistService().list_items(principal.user_id)]


@query.field("wishlistCount")
def resolve_wishlist_count(_, info):
    principal = require_user(info)
    return WishlistService().count(principal.user_id)


@mutation.field("addToWishlist")
def resolve_add_to_wishlist(_, info, productId):
    principal = require_user(info)
    return serialize_wishlist_item(WishlistService().add_item(principal.user_id, productId))


@mutation.field("removeWishlistItem")
def resolve_remove_wishlist_item(_, info, id):
    principal = require_user(info)
    WishlistService().remove_item(principal.user_id, id)
    return True


# Orders

@query.field("orders")
def resolve_orders(_, info, limit=50, offset=0):
    principal = require_user(info)
    orders = OrderService().list_orders(principal, limit=limit, offset=offset)
    return [serialize_order(order) for order in orders]


@query.field("order")
def resolve_order(_, info, id):
    principal = require_user(info)
    return serialize_order(OrderService().get_order(id, principal))


@mutation.field("placeOrder")
def resolve_place_order(_, info, input: dict):
    principal = require_user(info)
    order = OrderService().place_order(
        principal.user_id,
        input["shippingAddress"],
        input["paymentMethod"],
    )
    return serialize_order(order)


@mutation.field("updateOrderStatus")
def resolve_update_order_status(_, info, id, input: dict):
    require_admin(info)
    order = OrderService().update_order_status(
        id,
        input["status"],
        tracking_message=input.get("trackingMessage"),
        tracking_location=input.get("trackingLocation"),
        payment_status=input.get("paymentStatus"),
    )
    return serialize_order(order)


# Admin dashboard

@query.field("adminStats")
def resolve_admin_stats(_, info):
    require_admin(info)
    stats = AdminStatsService().dashboard()
    return {
        "totalRevenue": stats["total_revenue"],
        "totalOrders": stats["total_orders"],
        "totalProducts": stats["total_products"],
        "totalUsers": stats["total_users"],
        "recentOrders": [serialize_recent_order(order) for order in stats["recent_orders"]],
    }


# Define custom scalars
decimal_scalar = ScalarType("Decimal")
uuid_scalar = ScalarType("UUID")
datetime_scalar = ScalarType("DateTime")
json_scalar = ScalarType("JSON")


@decimal_scalar.serializer
def serialize_decimal(value):
    """Serialize Decimal to string."""
    return str(value)


@decimal_scalar.value_parser
def parse_decimal_value(value):
    """Parse a finite Decimal from string or number."""
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Invalid decimal: {value}") from None
    if not amount.is_finite():
        raise ValidationError(f"Invalid decimal: {value}")
    return amount


@decimal_scalar.literal_parser
def parse_decimal_literal(ast, _variables=None):
    return parse_decimal_value(getattr(ast, "value", None))


@uuid_scalar.serializer
def serialize_uuid(value):
    return str(value)


@uuid_scalar.value_parser
def parse_uuid_value(value):
    """Parse UUID from string."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid UUID: {value}") from None


@uuid_scalar.literal_parser
def parse_uuid_literal(ast, _variables=None):
    """Parse UUID from GraphQL literal."""
    return parse_uuid_value(getattr(ast, "value", None))


@datetime_scalar.serializer
def serialize_datetime(value):
    """Serialize DateTime to ISO format string."""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


@datetime_scalar.value_parser
def parse_datetime_value(value):
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace('Z', '+00:00'))


@json_scalar.serializer
def serialize_json(value):
    return value


@json_scalar.value_parser
def parse_json_value(value):
    return value


@json_scalar.literal_parser
def parse_json_literal(ast, variables=None):
    return value_from_ast_untyped(ast, variables)


# Create executable schema
schema = make_executable_schema(
    type_defs,
    query,
    mutation,
    datetime_scalar,
    decimal_scalar,
    uuid_scalar,
    json_scalar,
)
