from rest_framework import serializers

from apps.crm.models import Customer
from apps.stock_actions.models import SaleDetails, VehicleChecklist


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = [
            "id",
            "dealer_id",
            "first_name",
            "last_name",
            "email",
            "phone",
            "address_line_1",
            "address_line_2",
            "city",
            "county",
            "postcode",
            "country",
            "gdpr_consent",
            "marketing_consent",
            "sales_consent",
            "vulnerability_marker",
            "notes",
            "status",
            "updated_at",
        ]


class SaleDetailsSerializer(serializers.ModelSerializer):
    class Meta:
        model = SaleDetails
        exclude = ["created_at"]


class VehicleChecklistSerializer(serializers.ModelSerializer):
    class Meta:
        model = VehicleChecklist
        exclude = ["created_at"]
