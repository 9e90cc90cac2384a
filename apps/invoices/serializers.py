from rest_framework import serializers

from .models import Invoice


class InvoiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Invoice
        fields = [
            "id",
            "stock_id",
            "dealer_id",
            "invoice_number",
            "invoice_date",
            "sale_type",
            "invoice_type",
            "data",
            "created_at",
            "updated_at",
        ]


class InvoiceSaveSerializer(serializers.Serializer):
    stockId = serializers.CharField(max_length=255)
    dealerId = serializers.CharField(max_length=64)
    invoiceData = serializers.DictField()
