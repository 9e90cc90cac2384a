"""Invoice fixtures and in-memory collaborators shared by the test suites."""
import copy
from types import SimpleNamespace


SAMPLE_INVOICE = {
    "invoiceNumber": "INV-1001",
    "invoiceDate": "2024-01-15",
    "saleType": "Retail",
    "invoiceType": "Retail (Customer) Invoice",
    "customer": {
        "title": "Mr",
        "firstName": "John",
        "lastName": "Doe",
        "address": {
            "firstLine": "456 Customer Street",
            "secondLine": "Apt 2B",
            "city": "Customer City",
            "county": "Customer County",
            "postCode": "CU1 2ST",
            "country": "United Kingdom",
        },
        "contact": {"phone": "07123456789", "email": "john.doe@example.com"},
        "flags": {"vulnerabilityMarker": False, "gdprConsent": True, "salesMarketingConsent": True},
    },
    "vehicle": {"registration": "AB12 CDE", "make": "Toyota", "model": "Corolla"},
    "pricing": {
        "salePrice": 15000,
        "salePricePostDiscount": 14500,
        "warrantyPrice": 800,
        "warrantyPricePostDiscount": 750,
        "deliveryCost": 200,
        "deliveryCostPostDiscount": 180,
    },
    "payment": {
        "method": "mixed",
        "breakdown": {
            "cardPayments": [{"amount": 2000, "date": "2024-01-15"}, {"amount": 1500, "date": "2024-01-16"}],
            "bacsPayments": [{"amount": 5000, "date": "2024-01-17"}],
            "cashPayments": [{"amount": 1000, "date": "2024-01-15"}],
            "financeAmount": 5000,
            "depositAmount": 500,
            "partExAmount": 0,
        },
    },
    "sale": {"date": "2024-01-15", "monthOfSale": "January 2024", "quarterOfSale": "Q1 2024"},
    "warranty": {"type": "in_house", "level": "12 months"},
    "delivery": {"type": "delivery", "date": "2024-01-20", "address": "456 Customer Street"},
    "status": {
        "documentationComplete": True,
        "keyHandedOver": True,
        "customerSatisfied": True,
        "vehiclePurchased": True,
    },
    "checklist": {
        "mileage": "25000",
        "numberOfKeys": "1",
        "userManual": "Present",
        "serviceHistoryRecord": "Full",
        "wheelLockingNut": "Present",
        "cambeltChainConfirmation": "Yes",
        "completionPercentage": 100,
        "isComplete": True,
    },
    "notes": ["Customer collected spare key", "Paid in full"],
}


def sample_invoice(**overrides):
    invoice = copy.deepcopy(SAMPLE_INVOICE)
    invoice.update(overrides)
    return invoice


class FakeCustomerDirectory:
    def __init__(self, customer_id="cust-1", error=None, enrich_error=None):
        self.customer_id = customer_id
        self.error = error
        self.enrich_error = enrich_error
        self.lookups = []
        self.enrichments = []

    def find_or_create(self, dealer_id, fields):
        self.lookups.append((dealer_id, fields))
        if self.error:
            raise self.error
        return self.customer_id

    def enrich(self, customer_id, changes):
        if self.enrich_error:
            raise self.enrich_error
        self.enrichments.append((customer_id, changes))


class FakeStockRecordStore:
    """Rows keyed by (stock_id, dealer_id); every call is recorded."""

    def __init__(self, error=None, returns_nothing=False):
        self.rows = {}
        self.calls = []
        self.error = error
        self.returns_nothing = returns_nothing
        self._next_id = 1

    def add(self, stock_id, dealer_id, **fields):
        row = SimpleNamespace(id=self._next_id, stock_id=stock_id, dealer_id=dealer_id, **fields)
        self._next_id += 1
        self.rows[(stock_id, dealer_id)] = row
        return row

    def get_by_stock_id(self, stock_id, dealer_id):
        self.calls.append(("get", stock_id, dealer_id))
        return self.rows.get((stock_id, dealer_id))

    def create(self, fields):
        self.calls.append(("create", fields))
        if self.error:
            raise self.error
        if self.returns_nothing:
            return None
        fields = dict(fields)
        return self.add(fields.pop("stock_id"), fields.pop("dealer_id"), **fields)

    def update(self, stock_id, dealer_id, fields):
        self.calls.append(("update", fields))
        if self.error:
            raise self.error
        row = self.rows.get((stock_id, dealer_id))
        if row is None or self.returns_nothing:
            return None
        for name, value in fields.items():
            setattr(row, name, value)
        return row

    @property
    def writes(self):
        return [call for call in self.calls if call[0] in ("create", "update")]


class FakePostcodeLookup:
    def __init__(self, city="Manchester", county="Greater Manchester"):
        self.result = {"city": city, "county": county}
        self.calls = []

    def __call__(self, postcode):
        self.calls.append(postcode)
        return dict(self.result)
