from rest_framework import viewsets
from rest_framework.permissions import IsAdminUser

from apps.crm.models import Customer
from apps.stock_actions.models import SaleDetails, VehicleChecklist
from .serializers import CustomerSerializer, SaleDetailsSerializer, VehicleChecklistSerializer


class DealerFilterMixin:
    """Narrow the queryset with ``?dealer_id=`` and ``?stock_id=`` when given."""

    filter_params = ("dealer_id",)

    def get_queryset(self):
        queryset = super().get_queryset()
        for param in self.filter_params:
            value = self.request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})
        return queryset


class CustomerViewSet(DealerFilterMixin, viewsets.ReadOnlyModelViewSet):
    queryset = Customer.objects.all()
    serializer_class = CustomerSerializer
    permission_classes = [IsAdminUser]


class SaleDetailsViewSet(DealerFilterMixin, viewsets.ReadOnlyModelViewSet):
    queryset = SaleDetails.objects.select_related("customer").all()
    serializer_class = SaleDetailsSerializer
    permission_classes = [IsAdminUser]
    filter_params = ("dealer_id", "stock_id")


class VehicleChecklistViewSet(DealerFilterMixin, viewsets.ReadOnlyModelViewSet):
    queryset = VehicleChecklist.objects.all()
    serializer_class = VehicleChecklistSerializer
    permission_classes = [IsAdminUser]
    filter_params = ("dealer_id", "stock_id")
