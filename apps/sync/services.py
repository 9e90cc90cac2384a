"""Reconcile a saved invoice with the CRM, sale details and vehicle checklist.

``sync_invoice_data`` runs after an invoice is saved. It upserts the CRM
customer, then the sale details row for (stock_id, dealer_id) linked to that
customer, then the vehicle checklist row. The steps are independent writes:
a failure in one is reported in the result and the others still run, and
nothing already written is rolled back.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, time
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from apps.crm.postcodes import lookup_city_and_county
from apps.crm.services import CustomerService
from apps.stock_actions.db import SaleDetailsRepository, VehicleChecklistRepository

from .documents import (
    InvoiceChecklist,
    InvoiceCustomer,
    InvoiceDelivery,
    InvoiceDocument,
    InvoicePricing,
    PaymentBreakdown,
    PaymentEntry,
)
from .interfaces import CustomerDirectory, PostcodeLookup, StockRecordStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
VAT_TOLERANCE = Decimal("0.01")
VAT_SCHEMES = ("no_vat", "includes", "excludes")
HOME_COUNTRY = "United Kingdom"

CHECKLIST_DEFAULTS = {
    "number_of_keys": "2",
    "user_manual": "Not Present",
    "service_book": "Unknown",
    "wheel_locking_nut": "Not Present",
    "cambelt_chain_confirmation": "No",
}
CHECKLIST_METADATA_DEFAULTS = {
    "vehicleInspectionTestDrive": "No",
    "dealerPreSaleCheck": "No",
    "fuelType": "Petrol",
    "serviceHistory": "Not Available",
}


@dataclass
class SyncResult:
    success: bool
    customer_id: Optional[str] = None
    sale_details_id: Optional[int] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "customerId": self.customer_id,
            "saleDetailsId": self.sale_details_id,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass
class PaymentTotals:
    cash_amount: Decimal = ZERO
    bacs_amount: Decimal = ZERO
    card_amount: Decimal = ZERO
    finance_amount: Decimal = ZERO
    deposit_amount: Decimal = ZERO
    part_ex_amount: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return (
            self.cash_amount
            + self.bacs_amount
            + self.card_amount
            + self.finance_amount
            + self.deposit_amount
            + self.part_ex_amount
        )


class UpsertPatch:
    """Partial update for a stored row.

    ``set`` ignores ``None`` so a value the invoice does not carry never
    blanks a stored column; ``assign`` writes the value whatever it is.
    """

    def __init__(self) -> None:
        self._fields: Dict[str, Any] = {}

    def set(self, name: str, value: Any) -> "UpsertPatch":
        if value is not None:
            self._fields[name] = value
        return self

    def assign(self, name: str, value: Any) -> "UpsertPatch":
        self._fields[name] = value
        return self

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __getitem__(self, name: str) -> Any:
        return self._fields[name]

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._fields)


def first_defined(accessors: Iterable[Tuple[str, Callable[[], Any]]]) -> Tuple[Optional[str], Any]:
    """Evaluate ``(source, accessor)`` pairs in order; return the first non-None value and its source."""
    for source, accessor in accessors:
        value = accessor()
        if value is not None:
            return source, value
    return None, None


def _present(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _error_message(exc: Exception) -> str:
    return str(exc) or "Unknown error"


def parse_invoice_date(value: Optional[str]) -> Optional[datetime]:
    raw = _present(value)
    if raw is None:
        return None
    try:
        parsed = parse_datetime(raw)
        if parsed is None:
            day = parse_date(raw)
            if day is None:
                return None
            parsed = datetime.combine(day, time.min)
    except ValueError:
        return None
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def normalize_vat_scheme(value: Any) -> Optional[str]:
    if value is None:
        return None
    key = re.sub(r"[\s-]+", "_", str(value).strip().lower())
    return key if key in VAT_SCHEMES else None


def derive_vat_scheme(invoice: InvoiceDocument) -> str:
    """Explicit scheme, then metadata, then the editor's VAT status, then pricing."""
    candidates = (
        invoice.vat_scheme,
        invoice.metadata.get("vatScheme"),
        invoice.additional_data.get("vatStatus"),
    )
    for candidate in candidates:
        scheme = normalize_vat_scheme(candidate)
        if scheme:
            return scheme

    pricing = invoice.pricing or InvoicePricing()
    if not pricing.apply_vat_to_sale_price:
        return "no_vat"
    including_vat = pricing.sale_price_including_vat
    sale_price = pricing.sale_price if pricing.sale_price is not None else ZERO
    if including_vat is not None and abs(including_vat - sale_price) < VAT_TOLERANCE:
        return "includes"
    return "excludes"


def _sum_entries(entries: List[PaymentEntry]) -> Decimal:
    return sum((entry.amount for entry in entries), ZERO)


def aggregate_payments(invoice: InvoiceDocument) -> PaymentTotals:
    payment = invoice.payment
    breakdown = (payment.breakdown if payment else None) or PaymentBreakdown()
    pricing = invoice.pricing or InvoicePricing()
    part_exchange = payment.part_exchange if payment else None

    deposit_sources = (
        breakdown.deposit_amount,
        pricing.amount_paid_deposit_finance,
        pricing.amount_paid_deposit_customer,
        pricing.dealer_deposit_paid_customer,
    )
    part_ex_sources = (
        breakdown.part_ex_amount,
        part_exchange.amount_paid if part_exchange else None,
    )
    return PaymentTotals(
        cash_amount=_sum_entries(breakdown.cash_payments),
        bacs_amount=_sum_entries(breakdown.bacs_payments),
        card_amount=_sum_entries(breakdown.card_payments),
        finance_amount=breakdown.finance_amount or ZERO,
        deposit_amount=sum((amount or ZERO for amount in deposit_sources), ZERO),
        part_ex_amount=sum((amount or ZERO for amount in part_ex_sources), ZERO),
    )


def first_dated_payment(invoice: InvoiceDocument) -> Optional[PaymentEntry]:
    """First positive payment carrying a date, scanning card, BACS, then cash."""
    breakdown = invoice.payment.breakdown if invoice.payment else None
    if breakdown is None:
        return None
    for entry in [*breakdown.card_payments, *breakdown.bacs_payments, *breakdown.cash_payments]:
        if _present(entry.date) and entry.amount > 0:
            return entry
    return None


def first_payment_date(invoice: InvoiceDocument) -> Optional[datetime]:
    entry = first_dated_payment(invoice)
    return parse_invoice_date(entry.date) if entry else None


def resolve_delivery_price(invoice: InvoiceDocument) -> Tuple[str, Decimal]:
    delivery = invoice.delivery or InvoiceDelivery()
    pricing = invoice.pricing or InvoicePricing()
    source, price = first_defined(
        [
            ("delivery.postDiscountCost", lambda: delivery.post_discount_cost),
            ("pricing.deliveryCostPostDiscount", lambda: pricing.delivery_cost_post_discount),
            ("delivery.cost", lambda: delivery.cost),
            ("pricing.deliveryCost", lambda: pricing.delivery_cost),
        ]
    )
    if price is None:
        return "default", ZERO
    return source, price


def _discounted(post_discount: Optional[Decimal], raw: Optional[Decimal]) -> Decimal:
    _, value = first_defined([("post_discount", lambda: post_discount), ("raw", lambda: raw)])
    return value if value is not None else ZERO


def _join_notes(notes: Union[str, List[str], None]) -> Optional[str]:
    if isinstance(notes, list):
        return "\n".join(notes)
    return notes


class InvoiceSyncService:
    def __init__(
        self,
        dealer_id: str,
        stock_id: str,
        invoice_data: Union[Dict[str, Any], InvoiceDocument],
        *,
        customers: Optional[CustomerDirectory] = None,
        sale_details: Optional[StockRecordStore] = None,
        checklists: Optional[StockRecordStore] = None,
        postcode_lookup: Optional[PostcodeLookup] = None,
        vehicle_finder_prefix: Optional[str] = None,
    ) -> None:
        self.dealer_id = dealer_id
        self.stock_id = stock_id
        self.invoice_data = invoice_data
        self.invoice: Optional[InvoiceDocument] = None

        self.customers = customers if customers is not None else CustomerService()
        self.sale_details = sale_details if sale_details is not None else SaleDetailsRepository()
        self.checklists = checklists if checklists is not None else VehicleChecklistRepository()
        self.postcode_lookup = postcode_lookup if postcode_lookup is not None else lookup_city_and_county
        self.vehicle_finder_prefix = (
            vehicle_finder_prefix if vehicle_finder_prefix is not None else settings.VEHICLE_FINDER_STOCK_PREFIX
        )
        self.errors: List[str] = []
        self.warnings: List[str] = []

    @property
    def is_vehicle_finder_stock(self) -> bool:
        return bool(self.vehicle_finder_prefix) and str(self.stock_id).startswith(self.vehicle_finder_prefix)

    def _result(self, customer_id: Optional[str] = None, sale_details_id: Optional[int] = None) -> SyncResult:
        return SyncResult(
            success=not self.errors,
            customer_id=customer_id,
            sale_details_id=sale_details_id,
            errors=list(self.errors),
            warnings=list(self.warnings),
        )

    def sync(self) -> SyncResult:
        logger.info("Starting invoice synchronization for stock %s (dealer %s)", self.stock_id, self.dealer_id)
        try:
            if isinstance(self.invoice_data, InvoiceDocument):
                self.invoice = self.invoice_data
            else:
                self.invoice = InvoiceDocument.from_dict(self.invoice_data)

            customer_id = self.sync_customer()

            if self.is_vehicle_finder_stock:
                self.warnings.append(
                    "Vehicle finder invoice: sales details and vehicle checklist sync skipped (no stock record)"
                )
                return self._result(customer_id=customer_id)

            sale_details_id = self.sync_sales_details(customer_id)
            self.sync_vehicle_checklist()
            result = self._result(customer_id=customer_id, sale_details_id=sale_details_id)
        except Exception as exc:
            logger.exception("Invoice synchronization failed for stock %s", self.stock_id)
            self.errors.append(f"Synchronization failed: {_error_message(exc)}")
            return self._result()

        if result.success:
            logger.info("Invoice synchronization completed for stock %s", self.stock_id)
        else:
            logger.warning("Invoice synchronization for stock %s completed with errors: %s", self.stock_id, result.errors)
        return result

    # --- Customer ---

    def sync_customer(self) -> Optional[str]:
        customer = self.invoice.customer
        if customer is None:
            self.warnings.append("No customer data found in invoice")
            return None
        if not _present(customer.first_name) or not _present(customer.last_name):
            self.warnings.append("Missing required customer fields (firstName, lastName)")
            return None

        try:
            fields = {
                "first_name": _present(customer.first_name),
                "last_name": _present(customer.last_name),
                "email": _present(customer.contact.email),
                "phone": _present(customer.contact.phone),
                "address_line_1": _present(customer.address.first_line),
                "postcode": _present(customer.address.post_code),
                "gdpr_consent": customer.flags.gdpr_consent,
                "sales_marketing_consent": customer.flags.sales_marketing_consent,
                "vulnerability_marker": customer.flags.vulnerability_marker,
                "notes": f"Updated from invoice: {self.invoice.invoice_number or ''}".rstrip(),
            }
            customer_id = self.customers.find_or_create(self.dealer_id, fields)
        except Exception as exc:
            logger.exception("Error syncing customer for stock %s", self.stock_id)
            self.errors.append(f"Customer sync failed: {_error_message(exc)}")
            return None

        if not customer_id:
            self.errors.append("Failed to create/find customer in CRM")
            return None

        customer_id = str(customer_id)
        logger.info("Customer %s synced for stock %s", customer_id, self.stock_id)
        self.update_existing_customer(customer_id, customer)
        return customer_id

    def customer_enrichment(self, customer: InvoiceCustomer) -> UpsertPatch:
        address = customer.address
        flags = customer.flags
        changes = UpsertPatch()

        changes.set("address_line_2", _present(address.second_line))

        city = _present(address.city)
        county = _present(address.county)
        postcode = _present(address.post_code)
        if postcode and (city is None or county is None):
            derived = self.postcode_lookup(postcode) or {}
            city = city or _present(derived.get("city"))
            county = county or _present(derived.get("county"))
        changes.set("city", city)
        changes.set("county", county)

        country = _present(address.country)
        if country and country != HOME_COUNTRY:
            changes.set("country", country)

        # Consent only ever moves to True here.
        if flags.gdpr_consent:
            changes.set("gdpr_consent", True)
        if flags.sales_marketing_consent:
            changes.set("marketing_consent", True)
            changes.set("sales_consent", True)
        if flags.vulnerability_marker:
            changes.set("vulnerability_marker", True)
        return changes

    def update_existing_customer(self, customer_id: str, customer: InvoiceCustomer) -> None:
        try:
            changes = self.customer_enrichment(customer)
            if not changes:
                return
            changes.set("updated_at", timezone.now())
            self.customers.enrich(customer_id, changes.as_dict())
            logger.info("Customer %s updated with invoice details", customer_id)
        except Exception as exc:
            logger.warning("Error updating customer %s: %s", customer_id, exc)
            self.warnings.append(f"Failed to update customer details: {_error_message(exc)}")

    # --- Sale details ---

    def _sale_date(self) -> Optional[datetime]:
        sale_date = self.invoice.sale.date if self.invoice.sale else None
        return parse_invoice_date(sale_date) or parse_invoice_date(self.invoice.invoice_date)

    def prepare_sales_details(self, customer_id: Optional[str]) -> UpsertPatch:
        invoice = self.invoice
        pricing = invoice.pricing or InvoicePricing()
        customer = invoice.customer
        sale = invoice.sale
        delivery = invoice.delivery or InvoiceDelivery()
        status = invoice.status
        totals = aggregate_payments(invoice)
        delivery_source, delivery_price = resolve_delivery_price(invoice)

        logger.debug(
            "Payment aggregation for stock %s: cash=%s bacs=%s card=%s finance=%s deposit=%s part_ex=%s total=%s",
            self.stock_id,
            totals.cash_amount,
            totals.bacs_amount,
            totals.card_amount,
            totals.finance_amount,
            totals.deposit_amount,
            totals.part_ex_amount,
            totals.total,
        )
        logger.debug("Delivery price %s for stock %s taken from %s", delivery_price, self.stock_id, delivery_source)

        patch = UpsertPatch()
        patch.assign("customer_id", customer_id)
        patch.set("registration", invoice.registration)

        patch.set("sale_date", self._sale_date())
        patch.set("month_of_sale", sale.month_of_sale if sale else None)
        patch.set("quarter_of_sale", sale.quarter_of_sale if sale else None)
        patch.set("sale_price", _discounted(pricing.sale_price_post_discount, pricing.sale_price))
        patch.set("vat_scheme", derive_vat_scheme(invoice))

        if customer is not None:
            patch.set("first_name", customer.first_name)
            patch.set("last_name", customer.last_name)
            patch.set("email_address", customer.contact.email)
            patch.set("contact_number", customer.contact.phone)
            patch.set("address_first_line", customer.address.first_line)
            patch.set("address_post_code", customer.address.post_code)

        patch.set("payment_method", (invoice.payment.method if invoice.payment else None) or "cash")
        patch.set("cash_amount", totals.cash_amount)
        patch.set("bacs_amount", totals.bacs_amount)
        patch.set("card_amount", totals.card_amount)
        patch.set("finance_amount", totals.finance_amount)
        patch.set("deposit_amount", totals.deposit_amount)
        patch.set("part_ex_amount", totals.part_ex_amount)
        patch.set("deposit_date", first_payment_date(invoice))

        patch.set("warranty_type", invoice.warranty_type or "none")
        patch.set("warranty_price", _discounted(pricing.warranty_price_post_discount, pricing.warranty_price))

        patch.set("delivery_type", delivery.type or "collection")
        patch.set("delivery_price", delivery_price)
        patch.set("delivery_date", parse_invoice_date(delivery.date))
        patch.set("delivery_address", delivery.address)

        addons = invoice.addons
        if addons is not None:
            patch.set("total_finance_add_on", addons.finance.total() if addons.finance else None)
            patch.set("total_customer_add_on", addons.customer.total() if addons.customer else None)

        patch.set("documentation_complete", bool(status and status.documentation_complete))
        patch.set("key_handed_over", bool(status and status.key_handed_over))
        patch.set("customer_satisfied", bool(status and status.customer_satisfied))
        patch.set("vehicle_purchased", bool(status and status.vehicle_purchased))
        patch.set("vulnerability_marker", bool(customer and customer.flags.vulnerability_marker))
        patch.set("gdpr_consent", bool(customer and customer.flags.gdpr_consent))
        patch.set("sales_marketing_consent", bool(customer and customer.flags.sales_marketing_consent))
        patch.set("deposit_paid", totals.deposit_amount > 0)

        patch.set("notes", _join_notes(invoice.notes))
        patch.set("updated_at", timezone.now())
        return patch

    def sync_sales_details(self, customer_id: Optional[str]) -> Optional[int]:
        try:
            existing = self.sale_details.get_by_stock_id(self.stock_id, self.dealer_id)
            patch = self.prepare_sales_details(customer_id)

            if existing is not None:
                logger.info("Updating sales details for stock %s", self.stock_id)
                record = self.sale_details.update(self.stock_id, self.dealer_id, patch.as_dict())
            else:
                logger.info("Creating sales details for stock %s", self.stock_id)
                fields = {
                    "stock_id": self.stock_id,
                    "dealer_id": self.dealer_id,
                    "sale_date": timezone.now(),
                    **patch.as_dict(),
                }
                record = self.sale_details.create(fields)
        except Exception as exc:
            logger.exception("Error syncing sales details for stock %s", self.stock_id)
            self.errors.append(f"Sales details sync failed: {_error_message(exc)}")
            return None

        if not record:
            self.errors.append("Failed to create/update sales details")
            return None
        return record.id

    # --- Vehicle checklist ---

    @staticmethod
    def _checklist_values(checklist: InvoiceChecklist) -> Dict[str, Optional[str]]:
        return {
            "number_of_keys": _present(checklist.number_of_keys),
            "user_manual": _present(checklist.user_manual),
            "service_book": _present(checklist.service_history_record),
            "wheel_locking_nut": _present(checklist.wheel_locking_nut),
            "cambelt_chain_confirmation": _present(checklist.cambelt_chain_confirmation),
        }

    @staticmethod
    def _checklist_metadata(checklist: InvoiceChecklist) -> Dict[str, Optional[str]]:
        return {
            "mileage": _present(checklist.mileage),
            "vehicleInspectionTestDrive": _present(checklist.vehicle_inspection_test_drive),
            "dealerPreSaleCheck": _present(checklist.dealer_pre_sale_check),
            "fuelType": _present(checklist.fuel_type),
            "serviceHistory": _present(checklist.service_history),
        }

    def has_checklist_data(self, checklist: InvoiceChecklist) -> bool:
        """False when every supplied value is blank or equal to its fallback."""
        for name, value in self._checklist_values(checklist).items():
            if value is not None and value != CHECKLIST_DEFAULTS[name]:
                return True
        for key, value in self._checklist_metadata(checklist).items():
            if value is not None and value != CHECKLIST_METADATA_DEFAULTS.get(key):
                return True
        return bool(checklist.completion_percentage) or bool(checklist.is_complete)

    def prepare_checklist(self, checklist: InvoiceChecklist, existing: Any) -> UpsertPatch:
        patch = UpsertPatch()
        for name, value in self._checklist_values(checklist).items():
            patch.set(name, value or CHECKLIST_DEFAULTS[name])

        existing_metadata = getattr(existing, "metadata", None) or {}
        supplied = {key: value for key, value in self._checklist_metadata(checklist).items() if value is not None}
        patch.set("metadata", {**CHECKLIST_METADATA_DEFAULTS, **existing_metadata, **supplied})

        patch.set("completion_percentage", checklist.completion_percentage or 0)
        patch.set("is_complete", bool(checklist.is_complete))
        patch.set("updated_at", timezone.now())
        return patch

    def sync_vehicle_checklist(self) -> None:
        checklist = self.invoice.checklist
        if checklist is None:
            self.warnings.append("No checklist data found in invoice")
            return

        try:
            if not self.has_checklist_data(checklist):
                logger.info("No checklist data to persist for stock %s", self.stock_id)
                return

            existing = self.checklists.get_by_stock_id(self.stock_id, self.dealer_id)
            patch = self.prepare_checklist(checklist, existing)
            if existing is not None:
                record = self.checklists.update(self.stock_id, self.dealer_id, patch.as_dict())
            else:
                fields = {"stock_id": self.stock_id, "dealer_id": self.dealer_id}
                if self.invoice.registration:
                    fields["registration"] = self.invoice.registration
                record = self.checklists.create({**fields, **patch.as_dict()})
        except Exception as exc:
            logger.exception("Error syncing vehicle checklist for stock %s", self.stock_id)
            self.errors.append(f"Vehicle checklist sync failed: {_error_message(exc)}")
            return

        if not record:
            self.errors.append("Failed to create/update vehicle checklist")
        else:
            logger.info("Vehicle checklist synced for stock %s", self.stock_id)


def sync_invoice_data(
    dealer_id: str,
    stock_id: str,
    invoice_data: Union[Dict[str, Any], InvoiceDocument],
    **collaborators: Any,
) -> SyncResult:
    """Run the invoice reconciliation once; never raises."""
    return InvoiceSyncService(dealer_id, stock_id, invoice_data, **collaborators).sync()
