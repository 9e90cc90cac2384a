from django.urls import path

from . import views

urlpatterns = [
    path("invoice-data/", views.invoice_data, name="invoice_data"),
]
