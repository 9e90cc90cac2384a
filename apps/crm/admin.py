from django.contrib import admin

from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = (
        "first_name",
        "last_name",
        "email",
        "phone",
        "postcode",
        "dealer_id",
        "gdpr_consent",
        "marketing_consent",
        "vulnerability_marker",
        "updated_at",
    )
    list_filter = ("status", "gdpr_consent", "marketing_consent", "vulnerability_marker")
    search_fields = ("first_name", "last_name", "email", "phone", "postcode")
