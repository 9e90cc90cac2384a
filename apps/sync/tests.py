from datetime import datetime
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from apps.crm.models import Customer
from apps.stock_actions.models import SaleDetails, VehicleChecklist

from .documents import InvoiceDocument
from .services import (
    InvoiceSyncService,
    aggregate_payments,
    derive_vat_scheme,
    first_dated_payment,
    parse_invoice_date,
    resolve_delivery_price,
    sync_invoice_data,
)
from .test_utils import FakeCustomerDirectory, FakePostcodeLookup, FakeStockRecordStore, sample_invoice


def _document(**overrides):
    return InvoiceDocument.from_dict(sample_invoice(**overrides))


class PaymentAggregationTests(SimpleTestCase):
    def test_cash_payments_are_summed(self):
        invoice = _document(
            payment={"breakdown": {"cashPayments": [{"amount": 100}, {"amount": 50}]}},
            pricing={},
        )
        totals = aggregate_payments(invoice)
        self.assertEqual(totals.cash_amount, Decimal("150"))
        self.assertEqual(totals.card_amount, Decimal("0"))
        self.assertEqual(totals.total, Decimal("150"))

    def test_deposit_adds_every_source(self):
        invoice = _document(
            payment={"breakdown": {"depositAmount": 200}},
            pricing={
                "amountPaidDepositFinance": 100,
                "amountPaidDepositCustomer": 50,
                "dealerDepositPaidCustomer": 25,
            },
        )
        self.assertEqual(aggregate_payments(invoice).deposit_amount, Decimal("375"))

    def test_deposit_from_pricing_without_breakdown(self):
        invoice = _document(payment={"method": "finance"}, pricing={"amountPaidDepositCustomer": "300.50"})
        self.assertEqual(aggregate_payments(invoice).deposit_amount, Decimal("300.50"))

    def test_part_exchange_adds_breakdown_and_amount_paid(self):
        invoice = _document(
            payment={"breakdown": {"partExAmount": 1000}, "partExchange": {"included": True, "amountPaid": 500}}
        )
        self.assertEqual(aggregate_payments(invoice).part_ex_amount, Decimal("1500"))

    def test_no_payment_block_gives_zero_totals(self):
        invoice = _document(payment=None, pricing=None)
        self.assertEqual(aggregate_payments(invoice).total, Decimal("0"))

    def test_first_dated_payment_prefers_card_then_bacs(self):
        invoice = _document(
            payment={
                "breakdown": {
                    "cardPayments": [{"amount": 0, "date": "A"}],
                    "bacsPayments": [{"amount": 50, "date": "B"}],
                    "cashPayments": [{"amount": 20, "date": "C"}],
                }
            }
        )
        self.assertEqual(first_dated_payment(invoice).date, "B")

    def test_first_dated_payment_skips_undated_entries(self):
        invoice = _document(
            payment={
                "breakdown": {
                    "cardPayments": [{"amount": 100}],
                    "cashPayments": [{"amount": 20, "date": "2024-02-01"}],
                }
            }
        )
        self.assertEqual(first_dated_payment(invoice).date, "2024-02-01")

    def test_first_dated_payment_without_payments(self):
        self.assertIsNone(first_dated_payment(_document(payment={"breakdown": {}})))


class VatSchemeTests(SimpleTestCase):
    def test_vat_included_when_prices_match(self):
        invoice = _document(pricing={"applyVatToSalePrice": True, "salePrice": 1000, "salePriceIncludingVat": "1000.00"})
        self.assertEqual(derive_vat_scheme(invoice), "includes")

    def test_vat_excluded_when_prices_differ(self):
        invoice = _document(pricing={"applyVatToSalePrice": True, "salePrice": 1000, "salePriceIncludingVat": 1200})
        self.assertEqual(derive_vat_scheme(invoice), "excludes")

    def test_no_vat_when_not_applied(self):
        invoice = _document(pricing={"applyVatToSalePrice": False, "salePrice": 1000, "salePriceIncludingVat": 1000})
        self.assertEqual(derive_vat_scheme(invoice), "no_vat")

    def test_explicit_scheme_wins(self):
        invoice = _document(
            vatScheme="Excludes",
            pricing={"applyVatToSalePrice": True, "salePrice": 1000, "salePriceIncludingVat": 1000},
        )
        self.assertEqual(derive_vat_scheme(invoice), "excludes")

    def test_additional_data_status_is_normalised(self):
        invoice = _document(additionalData={"vatStatus": "No VAT"}, pricing={"applyVatToSalePrice": True})
        self.assertEqual(derive_vat_scheme(invoice), "no_vat")

    def test_unknown_scheme_falls_through_to_pricing(self):
        invoice = _document(metadata={"vatScheme": "margin"}, pricing={"applyVatToSalePrice": True, "salePrice": 10})
        self.assertEqual(derive_vat_scheme(invoice), "excludes")


class DeliveryPriceTests(SimpleTestCase):
    def test_delivery_post_discount_cost_first(self):
        invoice = _document(
            delivery={"postDiscountCost": 150, "cost": 200},
            pricing={"deliveryCostPostDiscount": 180, "deliveryCost": 250},
        )
        self.assertEqual(resolve_delivery_price(invoice), ("delivery.postDiscountCost", Decimal("150")))

    def test_pricing_post_discount_before_raw_costs(self):
        invoice = _document(delivery={"cost": 200}, pricing={"deliveryCostPostDiscount": 180, "deliveryCost": 250})
        self.assertEqual(resolve_delivery_price(invoice), ("pricing.deliveryCostPostDiscount", Decimal("180")))

    def test_zero_cost_is_kept(self):
        invoice = _document(delivery={"cost": 0}, pricing={"deliveryCost": 250})
        self.assertEqual(resolve_delivery_price(invoice), ("delivery.cost", Decimal("0")))

    def test_default_when_no_cost_anywhere(self):
        invoice = _document(delivery={"type": "collection"}, pricing={})
        self.assertEqual(resolve_delivery_price(invoice), ("default", Decimal("0")))

    def test_only_delivery_post_discount_cost(self):
        invoice = _document(delivery={"postDiscountCost": 150}, pricing={})
        self.assertEqual(resolve_delivery_price(invoice), ("delivery.postDiscountCost", Decimal("150")))

    def test_only_pricing_post_discount_cost(self):
        invoice = _document(delivery={"type": "delivery"}, pricing={"deliveryCostPostDiscount": 180})
        self.assertEqual(resolve_delivery_price(invoice), ("pricing.deliveryCostPostDiscount", Decimal("180")))

    def test_only_pricing_delivery_cost(self):
        invoice = _document(delivery={"type": "delivery"}, pricing={"deliveryCost": 250})
        self.assertEqual(resolve_delivery_price(invoice), ("pricing.deliveryCost", Decimal("250")))


class InvoiceDocumentTests(SimpleTestCase):
    def test_non_finite_money_is_treated_as_absent(self):
        invoice = _document(pricing={"salePrice": "NaN", "deliveryCost": "Infinity", "warrantyPrice": "-inf"})
        self.assertIsNone(invoice.pricing.sale_price)
        self.assertIsNone(invoice.pricing.delivery_cost)
        self.assertIsNone(invoice.pricing.warranty_price)

    def test_non_finite_payment_amount_counts_as_zero(self):
        invoice = _document(
            payment={
                "breakdown": {
                    "cardPayments": [{"amount": "NaN", "date": "2024-01-01"}],
                    "bacsPayments": [{"amount": 40, "date": "2024-01-02"}],
                }
            }
        )
        self.assertEqual(aggregate_payments(invoice).card_amount, Decimal("0"))
        self.assertEqual(first_dated_payment(invoice).date, "2024-01-02")

    def test_out_of_range_completion_percentage_is_ignored(self):
        for value in ("Infinity", 1e400, "-inf", "nan"):
            with self.subTest(value=value):
                invoice = _document(checklist={"mileage": "100", "completionPercentage": value})
                self.assertIsNone(invoice.checklist.completion_percentage)


class InvoiceSyncServiceTests(SimpleTestCase):
    def setUp(self):
        self.customers = FakeCustomerDirectory()
        self.sale_details = FakeStockRecordStore()
        self.checklists = FakeStockRecordStore()
        self.postcodes = FakePostcodeLookup()

    def _service(self, invoice, stock_id="stock-1", **kwargs):
        options = {
            "customers": self.customers,
            "sale_details": self.sale_details,
            "checklists": self.checklists,
            "postcode_lookup": self.postcodes,
            "vehicle_finder_prefix": "vehicle-finder-",
        }
        options.update(kwargs)
        return InvoiceSyncService("dealer-1", stock_id, invoice, **options)

    def _sync(self, invoice, **kwargs):
        return self._service(invoice, **kwargs).sync()

    def test_full_sync_creates_sale_details_and_checklist(self):
        result = self._sync(sample_invoice())

        self.assertTrue(result.success)
        self.assertEqual(result.customer_id, "cust-1")
        self.assertEqual(result.sale_details_id, 1)
        self.assertEqual(result.errors, [])

        row = self.sale_details.rows[("stock-1", "dealer-1")]
        self.assertEqual(row.customer_id, "cust-1")
        self.assertEqual(row.registration, "AB12 CDE")
        self.assertEqual(row.sale_price, Decimal("14500"))
        self.assertEqual(row.vat_scheme, "no_vat")
        self.assertEqual(row.card_amount, Decimal("3500"))
        self.assertEqual(row.bacs_amount, Decimal("5000"))
        self.assertEqual(row.cash_amount, Decimal("1000"))
        self.assertEqual(row.finance_amount, Decimal("5000"))
        self.assertEqual(row.deposit_amount, Decimal("500"))
        self.assertTrue(row.deposit_paid)
        self.assertEqual(row.deposit_date.date().isoformat(), "2024-01-15")
        self.assertEqual(row.warranty_type, "in_house")
        self.assertEqual(row.warranty_price, Decimal("750"))
        self.assertEqual(row.delivery_price, Decimal("180"))
        self.assertEqual(row.delivery_date.date().isoformat(), "2024-01-20")
        self.assertEqual(row.notes, "Customer collected spare key\nPaid in full")
        self.assertTrue(row.key_handed_over)

        checklist = self.checklists.rows[("stock-1", "dealer-1")]
        self.assertEqual(checklist.registration, "AB12 CDE")
        self.assertEqual(checklist.number_of_keys, "1")
        self.assertEqual(checklist.service_book, "Full")
        self.assertEqual(checklist.completion_percentage, 100)
        self.assertTrue(checklist.is_complete)
        self.assertEqual(checklist.metadata["mileage"], "25000")
        self.assertEqual(checklist.metadata["fuelType"], "Petrol")

    def test_customer_fields_passed_to_directory(self):
        self._sync(sample_invoice())
        dealer_id, fields = self.customers.lookups[0]
        self.assertEqual(dealer_id, "dealer-1")
        self.assertEqual(fields["first_name"], "John")
        self.assertEqual(fields["email"], "john.doe@example.com")
        self.assertEqual(fields["postcode"], "CU1 2ST")
        self.assertTrue(fields["gdpr_consent"])
        self.assertEqual(fields["notes"], "Updated from invoice: INV-1001")

    def test_customer_id_is_stable_across_syncs(self):
        first = self._sync(sample_invoice())
        second = self._sync(sample_invoice())
        self.assertEqual(first.customer_id, second.customer_id)
        self.assertEqual([call[0] for call in self.sale_details.writes], ["create", "update"])

    def test_second_sync_updates_existing_row(self):
        self.sale_details.add("stock-1", "dealer-1", notes="old", delivery_address="Depot")
        invoice = sample_invoice(sale=None, invoiceDate=None, delivery={"type": "collection"})

        result = self._sync(invoice)

        self.assertTrue(result.success)
        kind, fields = self.sale_details.writes[0]
        self.assertEqual(kind, "update")
        self.assertNotIn("sale_date", fields)
        self.assertNotIn("delivery_date", fields)
        self.assertNotIn("delivery_address", fields)
        self.assertEqual(self.sale_details.rows[("stock-1", "dealer-1")].delivery_address, "Depot")

    def test_sale_date_falls_back_to_invoice_date(self):
        self._sync(sample_invoice(sale={"monthOfSale": "March 2024"}, invoiceDate="2024-03-02"))
        _, fields = self.sale_details.writes[0]
        self.assertEqual(fields["sale_date"].date().isoformat(), "2024-03-02")

    def test_create_seeds_sale_date_when_invoice_has_none(self):
        before = timezone.now()
        self._sync(sample_invoice(sale=None, invoiceDate=None))
        _, fields = self.sale_details.writes[0]
        self.assertGreaterEqual(fields["sale_date"], before)

    def test_missing_customer_is_a_warning(self):
        result = self._sync(sample_invoice(customer=None))
        self.assertTrue(result.success)
        self.assertIsNone(result.customer_id)
        self.assertIn("No customer data found in invoice", result.warnings)
        self.assertEqual(self.customers.lookups, [])
        _, fields = self.sale_details.writes[0]
        self.assertIn("customer_id", fields)
        self.assertIsNone(fields["customer_id"])

    def test_missing_names_is_a_warning(self):
        invoice = sample_invoice()
        invoice["customer"]["lastName"] = "  "
        result = self._sync(invoice)
        self.assertTrue(result.success)
        self.assertIn("Missing required customer fields (firstName, lastName)", result.warnings)
        self.assertEqual(self.customers.lookups, [])

    def test_customer_not_created_is_an_error(self):
        self.customers.customer_id = None
        result = self._sync(sample_invoice())
        self.assertFalse(result.success)
        self.assertIn("Failed to create/find customer in CRM", result.errors)
        self.assertEqual(result.sale_details_id, 1)

    def test_customer_failure_does_not_stop_other_steps(self):
        self.customers.error = RuntimeError("CRM offline")
        result = self._sync(sample_invoice())
        self.assertFalse(result.success)
        self.assertEqual(result.errors, ["Customer sync failed: CRM offline"])
        self.assertIsNone(result.customer_id)
        self.assertEqual(result.sale_details_id, 1)
        self.assertEqual(len(self.checklists.writes), 1)

    def test_sales_details_failure_is_reported(self):
        self.sale_details.error = ValueError("bad decimal")
        result = self._sync(sample_invoice())
        self.assertFalse(result.success)
        self.assertEqual(result.customer_id, "cust-1")
        self.assertIsNone(result.sale_details_id)
        self.assertIn("Sales details sync failed: bad decimal", result.errors)
        self.assertEqual(len(self.checklists.writes), 1)

    def test_sales_details_store_returning_nothing(self):
        self.sale_details.returns_nothing = True
        result = self._sync(sample_invoice())
        self.assertIn("Failed to create/update sales details", result.errors)

    def test_checklist_failure_is_reported(self):
        self.checklists.error = RuntimeError("locked")
        result = self._sync(sample_invoice())
        self.assertFalse(result.success)
        self.assertEqual(result.sale_details_id, 1)
        self.assertEqual(result.errors, ["Vehicle checklist sync failed: locked"])

    def test_checklist_store_returning_nothing(self):
        self.checklists.returns_nothing = True
        result = self._sync(sample_invoice())
        self.assertEqual(result.errors, ["Failed to create/update vehicle checklist"])

    def test_missing_checklist_is_a_warning(self):
        result = self._sync(sample_invoice(checklist=None))
        self.assertTrue(result.success)
        self.assertIn("No checklist data found in invoice", result.warnings)
        self.assertEqual(self.checklists.calls, [])

    def test_checklist_with_only_defaults_is_not_written(self):
        invoice = sample_invoice(
            checklist={
                "numberOfKeys": "2",
                "userManual": "Not Present",
                "serviceHistoryRecord": "Unknown",
                "wheelLockingNut": "Not Present",
                "cambeltChainConfirmation": "No",
                "fuelType": "Petrol",
                "completionPercentage": 0,
                "isComplete": False,
            }
        )
        result = self._sync(invoice)
        self.assertTrue(result.success)
        self.assertEqual(self.checklists.writes, [])

    def test_checklist_metadata_keeps_existing_keys(self):
        self.checklists.add("stock-1", "dealer-1", metadata={"mileage": "10000", "colour": "Blue"})
        self._sync(sample_invoice())
        kind, fields = self.checklists.writes[0]
        self.assertEqual(kind, "update")
        self.assertEqual(fields["metadata"]["mileage"], "25000")
        self.assertEqual(fields["metadata"]["colour"], "Blue")
        self.assertEqual(fields["metadata"]["dealerPreSaleCheck"], "No")

    def test_blank_checklist_values_take_defaults(self):
        invoice = sample_invoice(checklist={"mileage": "1200", "numberOfKeys": "", "userManual": None})
        self._sync(invoice)
        _, fields = self.checklists.writes[0]
        self.assertEqual(fields["number_of_keys"], "2")
        self.assertEqual(fields["user_manual"], "Not Present")
        self.assertEqual(fields["completion_percentage"], 0)
        self.assertFalse(fields["is_complete"])

    def test_vehicle_finder_stock_skips_stock_records(self):
        result = self._sync(sample_invoice(), stock_id="vehicle-finder-123")
        self.assertTrue(result.success)
        self.assertEqual(result.customer_id, "cust-1")
        self.assertIsNone(result.sale_details_id)
        self.assertEqual(self.sale_details.calls, [])
        self.assertEqual(self.checklists.calls, [])
        self.assertIn(
            "Vehicle finder invoice: sales details and vehicle checklist sync skipped (no stock record)",
            result.warnings,
        )

    def test_invalid_document_never_raises(self):
        result = sync_invoice_data(
            "dealer-1",
            "stock-1",
            "not an invoice",
            customers=self.customers,
            sale_details=self.sale_details,
            checklists=self.checklists,
        )
        self.assertFalse(result.success)
        self.assertEqual(len(result.errors), 1)
        self.assertTrue(result.errors[0].startswith("Synchronization failed: "))

    def test_bad_checklist_number_does_not_stop_other_steps(self):
        invoice = sample_invoice()
        invoice["checklist"]["completionPercentage"] = "Infinity"

        result = self._sync(invoice)

        self.assertTrue(result.success, result.errors)
        self.assertEqual(result.customer_id, "cust-1")
        self.assertEqual(result.sale_details_id, 1)
        _, fields = self.checklists.writes[0]
        self.assertEqual(fields["completion_percentage"], 0)

    def test_nan_payment_amount_does_not_fail_sales_details(self):
        invoice = sample_invoice(
            payment={
                "breakdown": {
                    "cardPayments": [{"amount": "NaN", "date": "2024-01-01"}],
                    "cashPayments": [{"amount": 100, "date": "2024-01-03"}],
                }
            },
            pricing={"applyVatToSalePrice": True, "salePrice": "NaN", "salePriceIncludingVat": "Infinity"},
        )

        result = self._sync(invoice)

        self.assertTrue(result.success, result.errors)
        self.assertEqual(result.sale_details_id, 1)
        _, fields = self.sale_details.writes[0]
        self.assertEqual(fields["card_amount"], Decimal("0"))
        self.assertEqual(fields["cash_amount"], Decimal("100"))
        self.assertEqual(fields["deposit_date"].date().isoformat(), "2024-01-03")
        self.assertEqual(fields["vat_scheme"], "excludes")

    def test_result_as_dict(self):
        data = self._sync(sample_invoice()).as_dict()
        self.assertEqual(
            set(data),
            {"success", "customerId", "saleDetailsId", "errors", "warnings"},
        )
        self.assertEqual(data["customerId"], "cust-1")

    def test_add_on_totals(self):
        invoice = sample_invoice(
            addons={
                "finance": {
                    "enabled": True,
                    "addon1": {"name": "GAP", "cost": 100, "postDiscountCost": 80},
                    "addon2": {"name": "Tyres", "cost": 50},
                    "dynamicAddons": {"0": {"name": "Paint", "cost": 20, "postDiscountCost": 10}},
                },
                "customer": {"dynamicAddons": [{"name": "Mats", "cost": 30}]},
            }
        )
        self._sync(invoice)
        _, fields = self.sale_details.writes[0]
        self.assertEqual(fields["total_finance_add_on"], Decimal("140"))
        self.assertEqual(fields["total_customer_add_on"], Decimal("30"))

    def test_add_on_totals_only_for_present_groups(self):
        self._sync(sample_invoice(addons={"customer": {"addon1": {"cost": 99}}}))
        _, fields = self.sale_details.writes[0]
        self.assertNotIn("total_finance_add_on", fields)
        self.assertEqual(fields["total_customer_add_on"], Decimal("99"))

    def test_string_notes_kept_as_is(self):
        self._sync(sample_invoice(notes="Single note"))
        _, fields = self.sale_details.writes[0]
        self.assertEqual(fields["notes"], "Single note")

    def test_defaults_for_missing_payment_and_delivery(self):
        self._sync(sample_invoice(payment=None, delivery=None, warranty=None))
        _, fields = self.sale_details.writes[0]
        self.assertEqual(fields["payment_method"], "cash")
        self.assertEqual(fields["delivery_type"], "collection")
        self.assertEqual(fields["delivery_price"], Decimal("180"))
        self.assertEqual(fields["warranty_type"], "none")
        self.assertFalse(fields["deposit_paid"])


class CustomerEnrichmentTests(SimpleTestCase):
    def setUp(self):
        self.customers = FakeCustomerDirectory()
        self.postcodes = FakePostcodeLookup()

    def _sync(self, invoice):
        return InvoiceSyncService(
            "dealer-1",
            "stock-1",
            invoice,
            customers=self.customers,
            sale_details=FakeStockRecordStore(),
            checklists=FakeStockRecordStore(),
            postcode_lookup=self.postcodes,
        ).sync()

    def test_explicit_address_is_not_replaced(self):
        self._sync(sample_invoice())
        customer_id, changes = self.customers.enrichments[0]
        self.assertEqual(customer_id, "cust-1")
        self.assertEqual(changes["city"], "Customer City")
        self.assertEqual(changes["county"], "Customer County")
        self.assertEqual(changes["address_line_2"], "Apt 2B")
        self.assertEqual(self.postcodes.calls, [])

    def test_city_and_county_derived_from_postcode(self):
        invoice = sample_invoice()
        address = invoice["customer"]["address"]
        address["postCode"] = "M1 5GD"
        del address["city"]
        del address["county"]

        self._sync(invoice)

        _, changes = self.customers.enrichments[0]
        self.assertEqual(self.postcodes.calls, ["M1 5GD"])
        self.assertEqual(changes["city"], "Manchester")
        self.assertEqual(changes["county"], "Greater Manchester")

    def test_derived_value_only_fills_the_missing_part(self):
        invoice = sample_invoice()
        del invoice["customer"]["address"]["county"]
        self._sync(invoice)
        _, changes = self.customers.enrichments[0]
        self.assertEqual(changes["city"], "Customer City")
        self.assertEqual(changes["county"], "Greater Manchester")

    def test_home_country_not_staged(self):
        self._sync(sample_invoice())
        _, changes = self.customers.enrichments[0]
        self.assertNotIn("country", changes)

    def test_foreign_country_staged(self):
        invoice = sample_invoice()
        invoice["customer"]["address"]["country"] = "Ireland"
        self._sync(invoice)
        _, changes = self.customers.enrichments[0]
        self.assertEqual(changes["country"], "Ireland")

    def test_consent_flags_only_staged_when_true(self):
        invoice = sample_invoice()
        invoice["customer"]["flags"] = {"gdprConsent": False, "salesMarketingConsent": True}
        self._sync(invoice)
        _, changes = self.customers.enrichments[0]
        self.assertNotIn("gdpr_consent", changes)
        self.assertNotIn("vulnerability_marker", changes)
        self.assertTrue(changes["marketing_consent"])
        self.assertTrue(changes["sales_consent"])
        self.assertIn("updated_at", changes)

    def test_nothing_staged_means_no_update(self):
        invoice = sample_invoice()
        invoice["customer"] = {"firstName": "Jane", "lastName": "Roe"}
        result = self._sync(invoice)
        self.assertEqual(result.customer_id, "cust-1")
        self.assertEqual(self.customers.enrichments, [])

    def test_enrichment_failure_is_a_warning(self):
        self.customers.enrich_error = RuntimeError("row locked")
        result = self._sync(sample_invoice())
        self.assertTrue(result.success)
        self.assertEqual(result.customer_id, "cust-1")
        self.assertIn("Failed to update customer details: row locked", result.warnings)


class InvoiceSyncDatabaseTests(TestCase):
    """Runs the sync against the ORM-backed collaborators."""

    def test_sync_writes_customer_sale_details_and_checklist(self):
        result = sync_invoice_data("dealer-1", "stock-1", sample_invoice())

        self.assertTrue(result.success, result.errors)
        customer = Customer.objects.get(pk=result.customer_id)
        self.assertEqual(customer.email, "john.doe@example.com")
        self.assertEqual(customer.city, "Customer City")
        self.assertEqual(customer.address_line_2, "Apt 2B")
        self.assertTrue(customer.gdpr_consent)
        self.assertEqual(customer.customer_source, "invoice")

        sale = SaleDetails.objects.get(pk=result.sale_details_id)
        self.assertEqual(sale.customer_id, customer.pk)
        self.assertEqual(sale.sale_price, Decimal("14500"))
        self.assertEqual(sale.card_amount, Decimal("3500"))
        self.assertEqual(sale.sale_date.date().isoformat(), "2024-01-15")

        checklist = VehicleChecklist.objects.get(stock_id="stock-1", dealer_id="dealer-1")
        self.assertEqual(checklist.registration, "AB12 CDE")
        self.assertTrue(checklist.is_complete)

    def test_repeat_sync_reuses_customer_and_row(self):
        first = sync_invoice_data("dealer-1", "stock-1", sample_invoice())
        second = sync_invoice_data("dealer-1", "stock-1", sample_invoice())

        self.assertEqual(first.customer_id, second.customer_id)
        self.assertEqual(first.sale_details_id, second.sale_details_id)
        self.assertEqual(Customer.objects.count(), 1)
        self.assertEqual(SaleDetails.objects.count(), 1)
        self.assertEqual(VehicleChecklist.objects.count(), 1)

    def test_consent_is_never_withdrawn(self):
        first = sync_invoice_data("dealer-1", "stock-1", sample_invoice())
        invoice = sample_invoice()
        invoice["customer"]["flags"] = {"gdprConsent": False, "salesMarketingConsent": False}
        del invoice["customer"]["address"]["secondLine"]

        sync_invoice_data("dealer-1", "stock-1", invoice)

        customer = Customer.objects.get(pk=first.customer_id)
        self.assertTrue(customer.gdpr_consent)
        self.assertTrue(customer.marketing_consent)
        self.assertEqual(customer.address_line_2, "Apt 2B")

    def test_postcode_fills_address_from_table(self):
        invoice = sample_invoice()
        address = invoice["customer"]["address"]
        address["postCode"] = "M1 5GD"
        del address["city"]
        del address["county"]

        result = sync_invoice_data("dealer-1", "stock-2", invoice)

        customer = Customer.objects.get(pk=result.customer_id)
        self.assertEqual(customer.city, "Manchester")
        self.assertEqual(customer.county, "Greater Manchester")

    def test_vehicle_finder_stock_writes_only_customer(self):
        result = sync_invoice_data("dealer-1", "vehicle-finder-42", sample_invoice())
        self.assertTrue(result.success)
        self.assertEqual(Customer.objects.count(), 1)
        self.assertFalse(SaleDetails.objects.exists())
        self.assertFalse(VehicleChecklist.objects.exists())

    def test_parse_failure_returns_result(self):
        result = sync_invoice_data("dealer-1", "stock-1", ["not", "a", "dict"])
        self.assertFalse(result.success)
        self.assertIsNone(result.customer_id)
        self.assertEqual(SaleDetails.objects.count(), 0)


class ParseInvoiceDateTests(SimpleTestCase):
    def test_dates_are_timezone_aware(self):
        parsed = parse_invoice_date("2024-01-15")
        self.assertIsInstance(parsed, datetime)
        self.assertTrue(timezone.is_aware(parsed))
        self.assertIsNone(parse_invoice_date("not a date"))
        self.assertIsNone(parse_invoice_date("2024-13-45"))
        self.assertIsNone(parse_invoice_date(""))
