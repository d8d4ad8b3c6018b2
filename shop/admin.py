from django import forms
from django.contrib import admin

from shop.domain.order import OrderStatus, can_transition
from shop.infra.models import (
    CartItemORM,
    CategoryORM,
    OrderItemORM,
    OrderORM,
    OrderTrackingORM,
    ProductORM,
    WishlistItemORM,
)
from shop.services import OrderService


@admin.register(CategoryORM)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "created_at")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(ProductORM)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "price", "discount_price", "stock", "created_at")
    list_filter = ("category", "created_at")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


class OrderItemInline(admin.TabularInline):
    model = OrderItemORM
    extra = 0
    fields = ("product", "quantity", "price")
    readonly_fields = ("product", "quantity", "price")
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class OrderTrackingInline(admin.TabularInline):
    """Tracking is append-only: new notes may be added, existing ones never change."""

    model = OrderTrackingORM
    extra = 0
    fields = ("status", "message", "location", "created_at")
    readonly_fields = ("created_at",)
    can_delete = False

    def has_change_permission(self, request, obj=None):
        return False


class OrderAdminForm(forms.ModelForm):
    class Meta:
        model = OrderORM
        fields = "__all__"

    def clean_status(self):
        status = self.cleaned_data["status"]
        if self.instance.pk and not can_transition(OrderStatus(self.instance.status), OrderStatus(status)):
            raise forms.ValidationError(f"Cannot change status from {self.instance.status} to {status}")
        return status


@admin.register(OrderORM)
class OrderAdmin(admin.ModelAdmin):
    form = OrderAdminForm
    list_display = ("order_number", "user", "status", "payment_status", "total_amount", "created_at")
    list_filter = ("status", "payment_status", "payment_method", "created_at")
    search_fields = ("order_number", "user__username", "user__email")
    readonly_fields = ("id", "order_number", "user", "total_amount", "shipping_address", "payment_method", "created_at")
    inlines = (OrderItemInline, OrderTrackingInline)

    def save_model(self, request, obj, form, change):
        # Status changes go through the service so they are validated and row locked.
        if change and {"status", "payment_status"} & set(form.changed_data):
            OrderService().update_order_status(obj.id, obj.status, payment_status=obj.payment_status)
            return
        super().save_model(request, obj, form, change)


@admin.register(CartItemORM)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "product", "quantity", "created_at")
    search_fields = ("user__username", "product__name")


@admin.register(WishlistItemORM)
class WishlistItemAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "product", "created_at")
    search_fields = ("user__username", "product__name")
