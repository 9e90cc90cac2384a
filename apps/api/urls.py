from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import CustomerViewSet, SaleDetailsViewSet, VehicleChecklistViewSet

router = DefaultRouter()
router.register("customers", CustomerViewSet)
router.register("sale-details", SaleDetailsViewSet)
router.register("vehicle-checklists", VehicleChecklistViewSet)

urlpatterns = [
    path("", include(router.urls)),
]
