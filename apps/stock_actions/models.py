from django.db import models
from django.utils import timezone


class SaleDetails(models.Model):
    VAT_SCHEME_CHOICES = [
        ("no_vat", "No VAT"),
        ("includes", "Includes VAT"),
        ("excludes", "Excludes VAT"),
    ]
    DELIVERY_TYPE_CHOICES = [
        ("collection", "Collection"),
        ("delivery", "Delivery"),
    ]

    stock_id = models.CharField("Stock ID", max_length=255, db_index=True)
    dealer_id = models.CharField("Dealer", max_length=64, db_index=True)
    customer = models.ForeignKey(
        "crm.Customer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sale_details",
    )
    registration = models.CharField("Registration", max_length=50, blank=True)

    sale_date = models.DateTimeField("Sale date", default=timezone.now)
    month_of_sale = models.CharField("Month of sale", max_length=100, blank=True)
    quarter_of_sale = models.CharField("Quarter of sale", max_length=100, blank=True)
    sale_price = models.DecimalField("Sale price", max_digits=12, decimal_places=2, default=0)
    vat_scheme = models.CharField("VAT scheme", max_length=20, choices=VAT_SCHEME_CHOICES, null=True, blank=True)

    first_name = models.CharField("First name", max_length=255, blank=True)
    last_name = models.CharField("Last name", max_length=255, blank=True)
    email_address = models.CharField("Email", max_length=255, blank=True)
    contact_number = models.CharField("Contact number", max_length=50, blank=True)
    address_first_line = models.CharField("Address first line", max_length=255, blank=True)
    address_post_code = models.CharField("Postcode", max_length=20, blank=True)

    payment_method = models.CharField("Payment method", max_length=50, default="cash")
    cash_amount = models.DecimalField("Cash", max_digits=12, decimal_places=2, default=0)
    bacs_amount = models.DecimalField("BACS", max_digits=12, decimal_places=2, default=0)
    card_amount = models.DecimalField("Card", max_digits=12, decimal_places=2, default=0)
    finance_amount = models.DecimalField("Finance", max_digits=12, decimal_places=2, default=0)
    deposit_amount = models.DecimalField("Deposit", max_digits=12, decimal_places=2, default=0)
    deposit_date = models.DateTimeField("Deposit date", null=True, blank=True)
    part_ex_amount = models.DecimalField("Part exchange", max_digits=12, decimal_places=2, default=0)

    warranty_type = models.CharField("Warranty type", max_length=50, default="none")
    warranty_price = models.DecimalField("Warranty price", max_digits=12, decimal_places=2, default=0)

    delivery_type = models.CharField("Delivery type", max_length=20, choices=DELIVERY_TYPE_CHOICES, default="collection")
    delivery_price = models.DecimalField("Delivery price", max_digits=12, decimal_places=2, default=0)
    delivery_date = models.DateTimeField("Delivery date", null=True, blank=True)
    delivery_address = models.TextField("Delivery address", blank=True)

    total_finance_add_on = models.DecimalField("Finance add-ons", max_digits=12, decimal_places=2, default=0)
    total_customer_add_on = models.DecimalField("Customer add-ons", max_digits=12, decimal_places=2, default=0)

    documentation_complete = models.BooleanField("Documentation complete", default=False)
    key_handed_over = models.BooleanField("Key handed over", default=False)
    customer_satisfied = models.BooleanField("Customer satisfied", default=False)
    vulnerability_marker = models.BooleanField("Vulnerability marker", default=False)
    deposit_paid = models.BooleanField("Deposit paid", default=False)
    vehicle_purchased = models.BooleanField("Vehicle purchased", default=False)
    gdpr_consent = models.BooleanField("GDPR consent", default=False)
    sales_marketing_consent = models.BooleanField("Sales/marketing consent", default=False)

    notes = models.TextField("Notes", blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-sale_date"]
        verbose_name = "Sale details"
        verbose_name_plural = "Sale details"
        constraints = [
            models.UniqueConstraint(fields=["stock_id", "dealer_id"], name="uniq_sale_details_stock_dealer"),
        ]

    def __str__(self):
        return f"Sale {self.stock_id} ({self.sale_price})"


class VehicleChecklist(models.Model):
    stock_id = models.CharField("Stock ID", max_length=255, db_index=True)
    dealer_id = models.CharField("Dealer", max_length=64, db_index=True)
    registration = models.CharField("Registration", max_length=50, blank=True)

    user_manual = models.TextField("User manual", blank=True)
    number_of_keys = models.TextField("Number of keys", blank=True)
    service_book = models.TextField("Service book", blank=True)
    wheel_locking_nut = models.TextField("Wheel locking nut", blank=True)
    cambelt_chain_confirmation = models.TextField("Cambelt/chain confirmation", blank=True)

    completion_percentage = models.PositiveIntegerField("Completion (%)", default=0)
    is_complete = models.BooleanField("Complete", default=False)
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-updated_at"]
        verbose_name = "Vehicle checklist"
        verbose_name_plural = "Vehicle checklists"
        constraints = [
            models.UniqueConstraint(fields=["stock_id", "dealer_id"], name="uniq_vehicle_checklist_stock_dealer"),
        ]

    def __str__(self):
        return f"Checklist {self.stock_id} ({self.completion_percentage}%)"
