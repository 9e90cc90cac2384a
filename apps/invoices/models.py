from django.db import models


class Invoice(models.Model):
    stock_id = models.CharField("Stock ID", max_length=255, db_index=True)
    dealer_id = models.CharField("Dealer", max_length=64, db_index=True)
    invoice_number = models.CharField("Invoice number", max_length=100, blank=True)
    invoice_date = models.DateField("Invoice date", null=True, blank=True)
    sale_type = models.CharField("Sale type", max_length=50, blank=True)
    invoice_type = models.CharField("Invoice type", max_length=100, blank=True)
    data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]
        verbose_name = "Invoice"
        verbose_name_plural = "Invoices"
        constraints = [
            models.UniqueConstraint(fields=["stock_id", "dealer_id"], name="uniq_invoice_stock_dealer"),
        ]

    def __str__(self):
        return self.invoice_number or f"Invoice {self.stock_id}"

    @property
    def is_complete(self) -> bool:
        """Only complete invoices are reconciled with the CRM and stock records."""
        return all(self.data.get(key) for key in ("invoiceNumber", "invoiceDate", "saleType"))
