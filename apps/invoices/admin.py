from django.contrib import admin

from .models import Invoice


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "stock_id", "dealer_id", "invoice_date", "sale_type", "updated_at")
    list_filter = ("sale_type",)
    search_fields = ("invoice_number", "stock_id")
