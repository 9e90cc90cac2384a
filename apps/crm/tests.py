from unittest import mock

import requests
from django.core.cache import cache
from django.test import SimpleTestCase, TestCase, override_settings

from .models import Customer
from .postcodes import get_city_and_county_from_api, get_city_and_county_from_postcode, lookup_city_and_county
from .services import CustomerService, auto_create_customer_from_sale_details, find_matching_customer


def _fields(**overrides):
    fields = {
        "first_name": "John",
        "last_name": "Doe",
        "email": "john.doe@example.com",
        "phone": "07123456789",
        "address_line_1": "456 Customer Street",
        "postcode": "CU1 2ST",
        "gdpr_consent": True,
        "sales_marketing_consent": False,
        "vulnerability_marker": False,
        "notes": "Updated from invoice: INV-1001",
    }
    fields.update(overrides)
    return fields


class CustomerMatchingTests(TestCase):
    def setUp(self):
        self.customer = Customer.objects.create(
            dealer_id="dealer-1",
            first_name="John",
            last_name="Doe",
            email="John.Doe@Example.com",
            phone="07000000000",
            postcode="CU1 2ST",
        )

    def test_match_by_email_ignores_case(self):
        self.assertEqual(find_matching_customer("dealer-1", _fields()), self.customer)

    def test_match_by_phone(self):
        fields = _fields(email="other@example.com", phone="07000000000")
        self.assertEqual(find_matching_customer("dealer-1", fields), self.customer)

    def test_match_by_name_and_postcode(self):
        fields = _fields(email="", phone="", first_name="john", postcode="cu1 2st")
        self.assertEqual(find_matching_customer("dealer-1", fields), self.customer)

    def test_other_dealer_does_not_match(self):
        self.assertIsNone(find_matching_customer("dealer-2", _fields()))

    def test_name_without_postcode_does_not_match(self):
        self.assertIsNone(find_matching_customer("dealer-1", _fields(email="", phone="", postcode="")))


class AutoCreateCustomerTests(TestCase):
    def test_creates_customer(self):
        customer_id = auto_create_customer_from_sale_details("dealer-1", _fields())

        customer = Customer.objects.get(pk=customer_id)
        self.assertEqual(customer.email, "john.doe@example.com")
        self.assertEqual(customer.customer_source, "invoice")
        self.assertTrue(customer.gdpr_consent)
        self.assertFalse(customer.marketing_consent)
        self.assertIsNotNone(customer.consent_date)
        self.assertEqual(customer.notes, "Updated from invoice: INV-1001")

    def test_returns_same_id_for_same_customer(self):
        first = auto_create_customer_from_sale_details("dealer-1", _fields())
        second = auto_create_customer_from_sale_details("dealer-1", _fields())
        self.assertEqual(first, second)
        self.assertEqual(Customer.objects.count(), 1)

    def test_no_names_creates_nothing(self):
        self.assertIsNone(auto_create_customer_from_sale_details("dealer-1", _fields(first_name="", last_name=None)))
        self.assertFalse(Customer.objects.exists())

    def test_match_fills_blanks_and_keeps_consent(self):
        existing = Customer.objects.create(
            dealer_id="dealer-1",
            first_name="John",
            last_name="Doe",
            email="john.doe@example.com",
            address_line_1="Old Road",
            gdpr_consent=True,
            notes="Walk-in",
        )

        auto_create_customer_from_sale_details(
            "dealer-1", _fields(gdpr_consent=False, sales_marketing_consent=True, notes="Updated from invoice: INV-2")
        )

        existing.refresh_from_db()
        self.assertEqual(existing.phone, "07123456789")
        self.assertEqual(existing.address_line_1, "Old Road")
        self.assertTrue(existing.gdpr_consent)
        self.assertTrue(existing.marketing_consent)
        self.assertTrue(existing.sales_consent)
        self.assertEqual(existing.notes, "Walk-in\nUpdated from invoice: INV-2")

    def test_same_note_not_appended_twice(self):
        customer_id = auto_create_customer_from_sale_details("dealer-1", _fields())
        auto_create_customer_from_sale_details("dealer-1", _fields())
        self.assertEqual(Customer.objects.get(pk=customer_id).notes, "Updated from invoice: INV-1001")


class CustomerServiceTests(TestCase):
    def test_enrich_updates_fields(self):
        customer = Customer.objects.create(dealer_id="dealer-1", first_name="Ann", last_name="Lee")
        CustomerService().enrich(str(customer.pk), {"city": "Leeds", "gdpr_consent": True})
        customer.refresh_from_db()
        self.assertEqual(customer.city, "Leeds")
        self.assertTrue(customer.gdpr_consent)

    def test_enrich_missing_customer_raises(self):
        with self.assertRaises(Customer.DoesNotExist):
            CustomerService().enrich("00000000-0000-0000-0000-000000000000", {"city": "Leeds"})


class PostcodeTableTests(SimpleTestCase):
    def test_single_letter_area(self):
        self.assertEqual(
            get_city_and_county_from_postcode("m1 5gd"),
            {"city": "Manchester", "county": "Greater Manchester"},
        )

    def test_two_letter_area_wins_over_one(self):
        self.assertEqual(get_city_and_county_from_postcode("SW1A 1AA")["city"], "London")
        self.assertEqual(get_city_and_county_from_postcode("ME14 1XX")["city"], "Maidstone")

    def test_unknown_or_short_postcode(self):
        self.assertEqual(get_city_and_county_from_postcode("Z"), {"city": "", "county": ""})
        self.assertEqual(get_city_and_county_from_postcode(None), {"city": "", "county": ""})
        self.assertEqual(get_city_and_county_from_postcode("ZZ9 9ZZ"), {"city": "", "county": ""})


class PostcodeApiTests(SimpleTestCase):
    def setUp(self):
        cache.clear()

    def _response(self, status_code=200, payload=None):
        response = mock.Mock(status_code=status_code)
        response.json.return_value = payload
        return response

    @mock.patch("apps.crm.postcodes.requests.get")
    def test_api_result_is_cached(self, get):
        get.return_value = self._response(
            payload={"result": {"admin_district": "Leeds", "admin_county": None, "admin_ward": "Headingley"}}
        )

        first = get_city_and_county_from_api("LS6 3AA")
        second = get_city_and_county_from_api("ls63aa")

        self.assertEqual(first, {"city": "Headingley", "county": "Leeds"})
        self.assertEqual(second, first)
        self.assertEqual(get.call_count, 1)

    @mock.patch("apps.crm.postcodes.requests.get")
    def test_api_failure_falls_back_to_table(self, get):
        get.side_effect = requests.ConnectionError("down")
        self.assertEqual(get_city_and_county_from_api("B1 1AA"), {"city": "Birmingham", "county": "West Midlands"})

    @mock.patch("apps.crm.postcodes.requests.get")
    def test_api_not_found_falls_back_to_table(self, get):
        get.return_value = self._response(status_code=404)
        self.assertEqual(get_city_and_county_from_api("L1 8JQ")["city"], "Liverpool")

    @mock.patch("apps.crm.postcodes.requests.get")
    def test_api_non_json_body_falls_back_to_table(self, get):
        response = self._response()
        response.json.side_effect = ValueError("Expecting value")
        get.return_value = response

        self.assertEqual(
            get_city_and_county_from_api("M1 5GD"),
            {"city": "Manchester", "county": "Greater Manchester"},
        )

    @mock.patch("apps.crm.postcodes.requests.get")
    def test_api_unexpected_json_shape_falls_back_to_table(self, get):
        for payload in (["M1 5GD"], {"result": "not an object"}):
            with self.subTest(payload=payload):
                cache.clear()
                get.return_value = self._response(payload=payload)
                self.assertEqual(get_city_and_county_from_api("M1 5GD")["city"], "Manchester")

    @mock.patch("apps.crm.postcodes.requests.get")
    def test_lookup_uses_table_unless_enabled(self, get):
        self.assertEqual(lookup_city_and_county("M1 5GD")["city"], "Manchester")
        get.assert_not_called()

    @override_settings(POSTCODE_LOOKUP_USE_API=True)
    @mock.patch("apps.crm.postcodes.requests.get")
    def test_lookup_uses_api_when_enabled(self, get):
        get.return_value = self._response(payload={"result": {"admin_district": "Salford"}})
        self.assertEqual(lookup_city_and_county("M5 4WT"), {"city": "Salford", "county": "Salford"})
        get.assert_called_once()
