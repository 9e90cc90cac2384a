"""Typed view of the invoice document produced by the invoice editor.

The editor posts a nested camelCase JSON document in which almost every
section and field is optional. ``InvoiceDocument.from_dict`` reads it into
dataclasses so the sync code works with explicit ``None`` instead of chained
dictionary lookups. Money values are ``Decimal``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

TRUE_VALUES = {"1", "true", "yes", "on"}


def _mapping(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _money(value: Any) -> Optional[Decimal]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    # NaN and infinities cannot be compared or stored; treat them as absent.
    return amount if amount.is_finite() else None


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_VALUES
    return bool(value)


def _optional_flag(value: Any) -> Optional[bool]:
    return None if value is None else _flag(value)


def _int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


@dataclass
class PaymentEntry:
    amount: Decimal = Decimal("0")
    date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "PaymentEntry":
        data = _mapping(data) or {}
        return cls(amount=_money(data.get("amount")) or Decimal("0"), date=_text(data.get("date")))


def _entries(value: Any) -> List[PaymentEntry]:
    if not isinstance(value, list):
        return []
    return [PaymentEntry.from_dict(item) for item in value]


@dataclass
class CustomerAddress:
    first_line: Optional[str] = None
    second_line: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    post_code: Optional[str] = None
    country: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomerAddress":
        return cls(
            first_line=_text(data.get("firstLine")),
            second_line=_text(data.get("secondLine")),
            city=_text(data.get("city")),
            county=_text(data.get("county")),
            post_code=_text(data.get("postCode")),
            country=_text(data.get("country")),
        )


@dataclass
class CustomerContact:
    phone: Optional[str] = None
    email: Optional[str] = None


@dataclass
class CustomerFlags:
    vulnerability_marker: bool = False
    gdpr_consent: bool = False
    sales_marketing_consent: bool = False


@dataclass
class InvoiceCustomer:
    title: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: CustomerAddress = field(default_factory=CustomerAddress)
    contact: CustomerContact = field(default_factory=CustomerContact)
    flags: CustomerFlags = field(default_factory=CustomerFlags)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoiceCustomer":
        contact = _mapping(data.get("contact")) or {}
        flags = _mapping(data.get("flags")) or {}
        return cls(
            title=_text(data.get("title")),
            first_name=_text(data.get("firstName")),
            last_name=_text(data.get("lastName")),
            address=CustomerAddress.from_dict(_mapping(data.get("address")) or {}),
            contact=CustomerContact(phone=_text(contact.get("phone")), email=_text(contact.get("email"))),
            flags=CustomerFlags(
                vulnerability_marker=_flag(flags.get("vulnerabilityMarker")),
                gdpr_consent=_flag(flags.get("gdprConsent")),
                sales_marketing_consent=_flag(flags.get("salesMarketingConsent")),
            ),
        )


@dataclass
class InvoiceSale:
    date: Optional[str] = None
    month_of_sale: Optional[str] = None
    quarter_of_sale: Optional[str] = None


@dataclass
class InvoicePricing:
    sale_price: Optional[Decimal] = None
    sale_price_post_discount: Optional[Decimal] = None
    sale_price_including_vat: Optional[Decimal] = None
    apply_vat_to_sale_price: Optional[bool] = None
    warranty_price: Optional[Decimal] = None
    warranty_price_post_discount: Optional[Decimal] = None
    delivery_cost: Optional[Decimal] = None
    delivery_cost_post_discount: Optional[Decimal] = None
    amount_paid_deposit_finance: Optional[Decimal] = None
    amount_paid_deposit_customer: Optional[Decimal] = None
    dealer_deposit_paid_customer: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoicePricing":
        return cls(
            sale_price=_money(data.get("salePrice")),
            sale_price_post_discount=_money(data.get("salePricePostDiscount")),
            sale_price_including_vat=_money(data.get("salePriceIncludingVat")),
            apply_vat_to_sale_price=_optional_flag(data.get("applyVatToSalePrice")),
            warranty_price=_money(data.get("warrantyPrice")),
            warranty_price_post_discount=_money(data.get("warrantyPricePostDiscount")),
            delivery_cost=_money(data.get("deliveryCost")),
            delivery_cost_post_discount=_money(data.get("deliveryCostPostDiscount")),
            amount_paid_deposit_finance=_money(data.get("amountPaidDepositFinance")),
            amount_paid_deposit_customer=_money(data.get("amountPaidDepositCustomer")),
            dealer_deposit_paid_customer=_money(data.get("dealerDepositPaidCustomer")),
        )


@dataclass
class PaymentBreakdown:
    card_payments: List[PaymentEntry] = field(default_factory=list)
    bacs_payments: List[PaymentEntry] = field(default_factory=list)
    cash_payments: List[PaymentEntry] = field(default_factory=list)
    finance_amount: Optional[Decimal] = None
    deposit_amount: Optional[Decimal] = None
    part_ex_amount: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentBreakdown":
        return cls(
            card_payments=_entries(data.get("cardPayments")),
            bacs_payments=_entries(data.get("bacsPayments")),
            cash_payments=_entries(data.get("cashPayments")),
            finance_amount=_money(data.get("financeAmount")),
            deposit_amount=_money(data.get("depositAmount")),
            part_ex_amount=_money(data.get("partExAmount")),
        )


@dataclass
class PartExchange:
    included: bool = False
    amount_paid: Optional[Decimal] = None


@dataclass
class InvoicePayment:
    method: Optional[str] = None
    breakdown: Optional[PaymentBreakdown] = None
    part_exchange: Optional[PartExchange] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoicePayment":
        breakdown = _mapping(data.get("breakdown"))
        part_exchange = _mapping(data.get("partExchange"))
        return cls(
            method=_text(data.get("method")),
            breakdown=PaymentBreakdown.from_dict(breakdown) if breakdown is not None else None,
            part_exchange=(
                PartExchange(
                    included=_flag(part_exchange.get("included")),
                    amount_paid=_money(part_exchange.get("amountPaid")),
                )
                if part_exchange is not None
                else None
            ),
        )


@dataclass
class AddOn:
    name: Optional[str] = None
    cost: Optional[Decimal] = None
    post_discount_cost: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["AddOn"]:
        data = _mapping(data)
        if data is None:
            return None
        return cls(
            name=_text(data.get("name")),
            cost=_money(data.get("cost")),
            post_discount_cost=_money(data.get("postDiscountCost")),
        )

    @property
    def charge(self) -> Decimal:
        if self.post_discount_cost is not None:
            return self.post_discount_cost
        return self.cost if self.cost is not None else Decimal("0")


@dataclass
class AddOnGroup:
    enabled: bool = False
    addon1: Optional[AddOn] = None
    addon2: Optional[AddOn] = None
    dynamic_addons: List[AddOn] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AddOnGroup":
        dynamic = data.get("dynamicAddons")
        # The editor stores dynamic add-ons either keyed by slot or as a list.
        if isinstance(dynamic, dict):
            dynamic = list(dynamic.values())
        if not isinstance(dynamic, list):
            dynamic = []
        return cls(
            enabled=_flag(data.get("enabled")),
            addon1=AddOn.from_dict(data.get("addon1")),
            addon2=AddOn.from_dict(data.get("addon2")),
            dynamic_addons=[addon for addon in map(AddOn.from_dict, dynamic) if addon is not None],
        )

    def total(self) -> Decimal:
        slots = [self.addon1, self.addon2, *self.dynamic_addons]
        return sum((addon.charge for addon in slots if addon is not None), Decimal("0"))


@dataclass
class InvoiceAddOns:
    finance: Optional[AddOnGroup] = None
    customer: Optional[AddOnGroup] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoiceAddOns":
        finance = _mapping(data.get("finance"))
        customer = _mapping(data.get("customer"))
        return cls(
            finance=AddOnGroup.from_dict(finance) if finance is not None else None,
            customer=AddOnGroup.from_dict(customer) if customer is not None else None,
        )


@dataclass
class InvoiceDelivery:
    type: Optional[str] = None
    date: Optional[str] = None
    cost: Optional[Decimal] = None
    post_discount_cost: Optional[Decimal] = None
    address: Optional[str] = None


@dataclass
class InvoiceStatus:
    documentation_complete: bool = False
    key_handed_over: bool = False
    customer_satisfied: bool = False
    vehicle_purchased: bool = False


@dataclass
class InvoiceChecklist:
    mileage: Optional[str] = None
    number_of_keys: Optional[str] = None
    user_manual: Optional[str] = None
    service_history_record: Optional[str] = None
    wheel_locking_nut: Optional[str] = None
    cambelt_chain_confirmation: Optional[str] = None
    vehicle_inspection_test_drive: Optional[str] = None
    dealer_pre_sale_check: Optional[str] = None
    fuel_type: Optional[str] = None
    service_history: Optional[str] = None
    completion_percentage: Optional[int] = None
    is_complete: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoiceChecklist":
        return cls(
            mileage=_text(data.get("mileage")),
            number_of_keys=_text(data.get("numberOfKeys")),
            user_manual=_text(data.get("userManual")),
            service_history_record=_text(data.get("serviceHistoryRecord")),
            wheel_locking_nut=_text(data.get("wheelLockingNut")),
            cambelt_chain_confirmation=_text(data.get("cambeltChainConfirmation")),
            vehicle_inspection_test_drive=_text(data.get("vehicleInspectionTestDrive")),
            dealer_pre_sale_check=_text(data.get("dealerPreSaleCheck")),
            fuel_type=_text(data.get("fuelType")),
            service_history=_text(data.get("serviceHistory")),
            completion_percentage=_int(data.get("completionPercentage")),
            is_complete=_optional_flag(data.get("isComplete")),
        )


@dataclass
class InvoiceDocument:
    invoice_number: Optional[str] = None
    invoice_date: Optional[str] = None
    sale_type: Optional[str] = None
    vat_scheme: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    additional_data: Dict[str, Any] = field(default_factory=dict)
    registration: Optional[str] = None
    customer: Optional[InvoiceCustomer] = None
    sale: Optional[InvoiceSale] = None
    pricing: Optional[InvoicePricing] = None
    payment: Optional[InvoicePayment] = None
    addons: Optional[InvoiceAddOns] = None
    warranty_type: Optional[str] = None
    delivery: Optional[InvoiceDelivery] = None
    status: Optional[InvoiceStatus] = None
    checklist: Optional[InvoiceChecklist] = None
    notes: Union[str, List[str], None] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoiceDocument":
        if not isinstance(data, dict):
            raise TypeError(f"Invoice document must be an object, got {type(data).__name__}")

        customer = _mapping(data.get("customer"))
        vehicle = _mapping(data.get("vehicle")) or {}
        sale = _mapping(data.get("sale"))
        pricing = _mapping(data.get("pricing"))
        payment = _mapping(data.get("payment"))
        addons = _mapping(data.get("addons"))
        warranty = _mapping(data.get("warranty")) or {}
        delivery = _mapping(data.get("delivery"))
        status = _mapping(data.get("status"))
        checklist = _mapping(data.get("checklist"))
        notes = data.get("notes")

        return cls(
            invoice_number=_text(data.get("invoiceNumber")),
            invoice_date=_text(data.get("invoiceDate")),
            sale_type=_text(data.get("saleType")),
            vat_scheme=_text(data.get("vatScheme")),
            metadata=_mapping(data.get("metadata")) or {},
            additional_data=_mapping(data.get("additionalData")) or {},
            registration=_text(vehicle.get("registration")),
            customer=InvoiceCustomer.from_dict(customer) if customer is not None else None,
            sale=(
                InvoiceSale(
                    date=_text(sale.get("date")),
                    month_of_sale=_text(sale.get("monthOfSale")),
                    quarter_of_sale=_text(sale.get("quarterOfSale")),
                )
                if sale is not None
                else None
            ),
            pricing=InvoicePricing.from_dict(pricing) if pricing is not None else None,
            payment=InvoicePayment.from_dict(payment) if payment is not None else None,
            addons=InvoiceAddOns.from_dict(addons) if addons is not None else None,
            warranty_type=_text(warranty.get("type")),
            delivery=(
                InvoiceDelivery(
                    type=_text(delivery.get("type")),
                    date=_text(delivery.get("date")),
                    cost=_money(delivery.get("cost")),
                    post_discount_cost=_money(delivery.get("postDiscountCost")),
                    address=_text(delivery.get("address")),
                )
                if delivery is not None
                else None
            ),
            status=(
                InvoiceStatus(
                    documentation_complete=_flag(status.get("documentationComplete")),
                    key_handed_over=_flag(status.get("keyHandedOver")),
                    customer_satisfied=_flag(status.get("customerSatisfied")),
                    vehicle_purchased=_flag(status.get("vehiclePurchased")),
                )
                if status is not None
                else None
            ),
            checklist=InvoiceChecklist.from_dict(checklist) if checklist is not None else None,
            notes=[str(note) for note in notes] if isinstance(notes, list) else _text(notes),
        )
