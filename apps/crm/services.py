"""CRM customer matching and updates used by sale and invoice workflows."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from .models import Customer

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ("email", "phone", "address_line_1", "postcode")


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def find_matching_customer(dealer_id: str, fields: Dict[str, Any]) -> Optional[Customer]:
    """Find an existing customer of the dealer: email, then phone, then name with postcode."""
    customers = Customer.objects.filter(dealer_id=dealer_id)

    email = _text(fields.get("email"))
    if email:
        match = customers.filter(email__iexact=email).first()
        if match:
            return match

    phone = _text(fields.get("phone"))
    if phone:
        match = customers.filter(phone=phone).first()
        if match:
            return match

    postcode = _text(fields.get("postcode"))
    if postcode:
        return customers.filter(
            Q(first_name__iexact=_text(fields.get("first_name")))
            & Q(last_name__iexact=_text(fields.get("last_name")))
            & Q(postcode__iexact=postcode)
        ).first()
    return None


def _append_note(existing: str, note: str) -> str:
    if not note or note in existing:
        return existing
    return f"{existing}\n{note}" if existing else note


def auto_create_customer_from_sale_details(dealer_id: str, fields: Dict[str, Any]) -> Optional[str]:
    """Return the id of the matching CRM customer, creating one when none matches.

    A matched customer only gains data: blank contact fields are filled in,
    consent flags are OR-ed and the note is appended.
    """
    first_name = _text(fields.get("first_name"))
    last_name = _text(fields.get("last_name"))
    if not first_name and not last_name:
        return None

    gdpr = bool(fields.get("gdpr_consent"))
    sales_marketing = bool(fields.get("sales_marketing_consent"))
    vulnerable = bool(fields.get("vulnerability_marker"))
    note = _text(fields.get("notes"))

    with transaction.atomic():
        customer = find_matching_customer(dealer_id, fields)
        if customer is None:
            customer = Customer.objects.create(
                dealer_id=dealer_id,
                first_name=first_name,
                last_name=last_name,
                email=_text(fields.get("email")),
                phone=_text(fields.get("phone")),
                address_line_1=_text(fields.get("address_line_1")),
                postcode=_text(fields.get("postcode")),
                gdpr_consent=gdpr,
                marketing_consent=sales_marketing,
                sales_consent=sales_marketing,
                vulnerability_marker=vulnerable,
                consent_date=timezone.now() if gdpr or sales_marketing else None,
                notes=note,
                customer_source="invoice",
            )
            logger.info("Created CRM customer %s for dealer %s", customer.id, dealer_id)
            return str(customer.id)

        changed = []
        for name in CONTACT_FIELDS:
            value = _text(fields.get(name))
            if value and not getattr(customer, name):
                setattr(customer, name, value)
                changed.append(name)
        if gdpr and not customer.gdpr_consent:
            customer.gdpr_consent = True
            changed.append("gdpr_consent")
        if sales_marketing and not (customer.marketing_consent and customer.sales_consent):
            customer.marketing_consent = True
            customer.sales_consent = True
            changed += ["marketing_consent", "sales_consent"]
        if vulnerable and not customer.vulnerability_marker:
            customer.vulnerability_marker = True
            changed.append("vulnerability_marker")
        if ("gdpr_consent" in changed or "marketing_consent" in changed) and not customer.consent_date:
            customer.consent_date = timezone.now()
            changed.append("consent_date")
        notes = _append_note(customer.notes, note)
        if notes != customer.notes:
            customer.notes = notes
            changed.append("notes")

        if changed:
            customer.save(update_fields=changed + ["updated_at"])
        logger.info("Matched CRM customer %s for dealer %s", customer.id, dealer_id)
        return str(customer.id)


class CustomerService:
    """ORM-backed customer directory for the invoice sync."""

    def find_or_create(self, dealer_id: str, fields: Dict[str, Any]) -> Optional[str]:
        return auto_create_customer_from_sale_details(dealer_id, fields)

    def enrich(self, customer_id: str, changes: Dict[str, Any]) -> None:
        with transaction.atomic():
            updated = Customer.objects.filter(id=customer_id).update(**changes)
        if not updated:
            raise Customer.DoesNotExist(f"Customer {customer_id} not found")
