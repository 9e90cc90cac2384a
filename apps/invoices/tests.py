import json
import tempfile
from io import StringIO
from pathlib import Path

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from apps.crm.models import Customer
from apps.stock_actions.models import SaleDetails
from apps.sync.test_utils import sample_invoice
from .models import Invoice


@override_settings(SECURE_SSL_REDIRECT=False)
class InvoiceDataApiTests(APITestCase):
    url = "/api/invoice-data/"

    def setUp(self):
        user = get_user_model().objects.create_user(username="tester", password="pass1234")
        token = RefreshToken.for_user(user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.access_token}")

    def _save(self, invoice, stock_id="stock-1"):
        return self.client.post(
            self.url,
            {"stockId": stock_id, "dealerId": "dealer-1", "invoiceData": invoice},
            format="json",
        )

    def test_requires_authentication(self):
        self.client.credentials()
        resp = self.client.get(self.url, {"stockId": "stock-1", "dealerId": "dealer-1"})
        self.assertEqual(resp.status_code, 401)

    def test_save_complete_invoice_runs_sync(self):
        resp = self._save(sample_invoice())

        self.assertEqual(resp.status_code, 201)
        self.assertTrue(resp.data["success"])
        self.assertEqual(resp.data["data"]["invoice_number"], "INV-1001")
        sync = resp.data["sync"]
        self.assertTrue(sync["success"], sync["errors"])
        self.assertEqual(str(Customer.objects.get().pk), sync["customerId"])
        self.assertEqual(SaleDetails.objects.get().pk, sync["saleDetailsId"])

    def test_second_save_updates_invoice(self):
        self._save(sample_invoice())
        resp = self._save(sample_invoice(invoiceNumber="INV-1002"))

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(Invoice.objects.count(), 1)
        self.assertEqual(Invoice.objects.get().invoice_number, "INV-1002")
        self.assertEqual(SaleDetails.objects.count(), 1)

    def test_incomplete_invoice_is_saved_without_sync(self):
        resp = self._save(sample_invoice(saleType=None))

        self.assertEqual(resp.status_code, 201)
        self.assertIsNone(resp.data["sync"])
        self.assertTrue(Invoice.objects.filter(stock_id="stock-1").exists())
        self.assertFalse(Customer.objects.exists())

    def test_save_rejects_missing_ids(self):
        resp = self.client.post(self.url, {"invoiceData": sample_invoice()}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("stockId", resp.data)

    def test_vehicle_finder_invoice_syncs_customer_only(self):
        resp = self._save(sample_invoice(), stock_id="vehicle-finder-7")

        self.assertTrue(resp.data["sync"]["success"])
        self.assertIsNone(resp.data["sync"]["saleDetailsId"])
        self.assertEqual(Customer.objects.count(), 1)
        self.assertFalse(SaleDetails.objects.exists())

    def test_get_returns_saved_invoice(self):
        self._save(sample_invoice())
        resp = self.client.get(self.url, {"stockId": "stock-1", "dealerId": "dealer-1"})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["data"]["customer"]["firstName"], "John")
        self.assertEqual(str(resp.data["invoice_date"]), "2024-01-15")

    def test_get_requires_ids(self):
        resp = self.client.get(self.url, {"stockId": "stock-1"})
        self.assertEqual(resp.status_code, 400)

    def test_get_unknown_invoice(self):
        resp = self.client.get(self.url, {"stockId": "nope", "dealerId": "dealer-1"})
        self.assertEqual(resp.status_code, 404)


class SyncInvoiceCommandTests(TestCase):
    def _write(self, content):
        handle = tempfile.NamedTemporaryFile("w", suffix=".json", delete=False, encoding="utf-8")
        with handle:
            handle.write(content)
        self.addCleanup(Path(handle.name).unlink)
        return handle.name

    def test_command_syncs_invoice(self):
        path = self._write(json.dumps(sample_invoice()))
        out = StringIO()

        call_command("sync_invoice", "dealer-1", "stock-1", path, stdout=out)

        output = out.getvalue()
        self.assertIn("Invoice synchronised.", output)
        self.assertIn(f"Sale details: {SaleDetails.objects.get().pk}", output)
        self.assertEqual(Customer.objects.count(), 1)

    def test_command_reports_warnings(self):
        path = self._write(json.dumps(sample_invoice(customer=None, checklist=None)))
        out = StringIO()

        call_command("sync_invoice", "dealer-1", "stock-1", path, stdout=out)

        output = out.getvalue()
        self.assertIn("Customer: -", output)
        self.assertIn("Warning: No customer data found in invoice", output)
        self.assertIn("Warning: No checklist data found in invoice", output)

    def test_command_rejects_bad_json(self):
        path = self._write("{not json")
        with self.assertRaises(CommandError):
            call_command("sync_invoice", "dealer-1", "stock-1", path, stdout=StringIO())

    def test_command_rejects_non_object(self):
        path = self._write("[1, 2, 3]")
        with self.assertRaises(CommandError):
            call_command("sync_invoice", "dealer-1", "stock-1", path, stdout=StringIO())

    def test_command_missing_file(self):
        with self.assertRaises(CommandError):
            call_command("sync_invoice", "dealer-1", "stock-1", "/nonexistent/invoice.json", stdout=StringIO())
