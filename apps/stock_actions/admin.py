from django.contrib import admin

from .models import SaleDetails, VehicleChecklist


@admin.register(SaleDetails)
class SaleDetailsAdmin(admin.ModelAdmin):
    list_display = (
        "stock_id",
        "registration",
        "dealer_id",
        "customer",
        "sale_date",
        "sale_price",
        "vat_scheme",
        "payment_method",
        "deposit_paid",
        "updated_at",
    )
    list_filter = ("vat_scheme", "payment_method", "delivery_type", "deposit_paid", "documentation_complete")
    search_fields = ("stock_id", "registration", "first_name", "last_name", "email_address")
    raw_id_fields = ("customer",)


@admin.register(VehicleChecklist)
class VehicleChecklistAdmin(admin.ModelAdmin):
    list_display = ("stock_id", "registration", "dealer_id", "number_of_keys", "completion_percentage", "is_complete")
    list_filter = ("is_complete",)
    search_fields = ("stock_id", "registration")
