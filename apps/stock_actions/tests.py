from decimal import Decimal

from django.db import IntegrityError, transaction
from django.test import TestCase

from apps.crm.models import Customer

from .db import SaleDetailsRepository, VehicleChecklistRepository
from .models import SaleDetails, VehicleChecklist


class SaleDetailsRepositoryTests(TestCase):
    def setUp(self):
        self.repo = SaleDetailsRepository()

    def test_create_and_get(self):
        record = self.repo.create(
            {"stock_id": "stock-1", "dealer_id": "dealer-1", "sale_price": Decimal("9995.00"), "vat_scheme": "no_vat"}
        )
        self.assertEqual(self.repo.get_by_stock_id("stock-1", "dealer-1"), record)
        self.assertIsNone(self.repo.get_by_stock_id("stock-1", "dealer-2"))

    def test_update_applies_only_given_fields(self):
        self.repo.create({"stock_id": "stock-1", "dealer_id": "dealer-1", "notes": "Keep me", "cash_amount": 10})

        record = self.repo.update("stock-1", "dealer-1", {"cash_amount": Decimal("150")})

        self.assertEqual(record.cash_amount, Decimal("150"))
        self.assertEqual(record.notes, "Keep me")

    def test_update_links_customer_by_id(self):
        customer = Customer.objects.create(dealer_id="dealer-1", first_name="Ann", last_name="Lee")
        self.repo.create({"stock_id": "stock-1", "dealer_id": "dealer-1"})

        record = self.repo.update("stock-1", "dealer-1", {"customer_id": str(customer.pk)})

        self.assertEqual(record.customer, customer)
        self.assertEqual(list(customer.sale_details.all()), [record])

    def test_free_text_month_and_quarter_fit(self):
        month = "January 2024 (registered late, see notes)"
        quarter = "Q1 2024 / financial year 2023-24"
        self.repo.create({"stock_id": "stock-1", "dealer_id": "dealer-1"})

        record = self.repo.update("stock-1", "dealer-1", {"month_of_sale": month, "quarter_of_sale": quarter})

        self.assertEqual(record.month_of_sale, month)
        self.assertEqual(record.quarter_of_sale, quarter)
        self.assertGreaterEqual(SaleDetails._meta.get_field("month_of_sale").max_length, len(month))
        self.assertGreaterEqual(SaleDetails._meta.get_field("quarter_of_sale").max_length, len(quarter))

    def test_update_missing_row_returns_none(self):
        self.assertIsNone(self.repo.update("missing", "dealer-1", {"notes": "x"}))

    def test_one_row_per_stock_and_dealer(self):
        self.repo.create({"stock_id": "stock-1", "dealer_id": "dealer-1"})
        with self.assertRaises(IntegrityError), transaction.atomic():
            SaleDetails.objects.create(stock_id="stock-1", dealer_id="dealer-1")
        self.repo.create({"stock_id": "stock-1", "dealer_id": "dealer-2"})
        self.assertEqual(SaleDetails.objects.count(), 2)


class VehicleChecklistRepositoryTests(TestCase):
    def test_create_with_defaults(self):
        record = VehicleChecklistRepository().create({"stock_id": "stock-1", "dealer_id": "dealer-1"})
        self.assertEqual(record.completion_percentage, 0)
        self.assertFalse(record.is_complete)
        self.assertEqual(record.metadata, {})

    def test_update_replaces_metadata(self):
        repo = VehicleChecklistRepository()
        repo.create({"stock_id": "stock-1", "dealer_id": "dealer-1", "metadata": {"mileage": "1000"}})

        record = repo.update("stock-1", "dealer-1", {"metadata": {"mileage": "2000"}, "is_complete": True})

        self.assertEqual(record.metadata, {"mileage": "2000"})
        self.assertTrue(VehicleChecklist.objects.get(pk=record.pk).is_complete)
