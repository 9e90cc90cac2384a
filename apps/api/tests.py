from django.contrib.auth import get_user_model
from django.test import override_settings
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from apps.crm.models import Customer
from apps.stock_actions.models import SaleDetails, VehicleChecklist


@override_settings(SECURE_SSL_REDIRECT=False)
class ReadOnlyApiTests(APITestCase):
    def setUp(self):
        self.customer = Customer.objects.create(dealer_id="dealer-1", first_name="Ann", last_name="Lee")
        Customer.objects.create(dealer_id="dealer-2", first_name="Bob", last_name="Roe")
        SaleDetails.objects.create(stock_id="stock-1", dealer_id="dealer-1", customer=self.customer)
        SaleDetails.objects.create(stock_id="stock-2", dealer_id="dealer-1")
        VehicleChecklist.objects.create(stock_id="stock-1", dealer_id="dealer-1", number_of_keys="1")

    def _login(self, is_staff=True):
        user = get_user_model().objects.create_user(username="staff", password="pass1234", is_staff=is_staff)
        token = RefreshToken.for_user(user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.access_token}")

    def test_customers_filtered_by_dealer(self):
        self._login()
        resp = self.client.get("/api/customers/", {"dealer_id": "dealer-1"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([row["first_name"] for row in resp.data], ["Ann"])

    def test_sale_details_filtered_by_stock(self):
        self._login()
        resp = self.client.get("/api/sale-details/", {"dealer_id": "dealer-1", "stock_id": "stock-1"})
        self.assertEqual(len(resp.data), 1)
        self.assertEqual(resp.data[0]["customer"], self.customer.pk)

    def test_checklist_detail(self):
        self._login()
        checklist = VehicleChecklist.objects.get()
        resp = self.client.get(f"/api/vehicle-checklists/{checklist.pk}/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["number_of_keys"], "1")

    def test_read_only(self):
        self._login()
        resp = self.client.post("/api/customers/", {"first_name": "X"}, format="json")
        self.assertEqual(resp.status_code, 405)

    def test_staff_only(self):
        self._login(is_staff=False)
        resp = self.client.get("/api/customers/")
        self.assertEqual(resp.status_code, 403)
