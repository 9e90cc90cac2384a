import uuid

from django.db import models


class Customer(models.Model):
    STATUS_CHOICES = [
        ("active", "Active"),
        ("inactive", "Inactive"),
        ("prospect", "Prospect"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    dealer_id = models.CharField("Dealer", max_length=64, db_index=True)

    first_name = models.CharField("First name", max_length=255)
    last_name = models.CharField("Last name", max_length=255)
    email = models.EmailField("Email", max_length=255, blank=True, db_index=True)
    phone = models.CharField("Phone", max_length=50, blank=True)

    address_line_1 = models.CharField("Address line 1", max_length=255, blank=True)
    address_line_2 = models.CharField("Address line 2", max_length=255, blank=True)
    city = models.CharField("City", max_length=100, blank=True)
    county = models.CharField("County", max_length=100, blank=True)
    postcode = models.CharField("Postcode", max_length=20, blank=True)
    country = models.CharField("Country", max_length=100, default="United Kingdom")

    gdpr_consent = models.BooleanField("GDPR consent", default=False)
    marketing_consent = models.BooleanField("Marketing consent", default=False)
    sales_consent = models.BooleanField("Sales consent", default=False)
    vulnerability_marker = models.BooleanField("Vulnerability marker", default=False)
    consent_date = models.DateTimeField("Consent date", null=True, blank=True)

    notes = models.TextField("Notes", blank=True)
    customer_source = models.CharField("Source", max_length=100, blank=True)
    status = models.CharField("Status", max_length=50, choices=STATUS_CHOICES, default="active")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["last_name", "first_name"]
        verbose_name = "Customer"
        verbose_name_plural = "Customers"

    def __str__(self):
        return f"{self.first_name} {self.last_name}".strip()
