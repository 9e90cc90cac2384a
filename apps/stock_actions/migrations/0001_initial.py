from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("crm", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SaleDetails",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("stock_id", models.CharField(db_index=True, max_length=255, verbose_name="Stock ID")),
                ("dealer_id", models.CharField(db_index=True, max_length=64, verbose_name="Dealer")),
                ("registration", models.CharField(blank=True, max_length=50, verbose_name="Registration")),
                ("sale_date", models.DateTimeField(default=django.utils.timezone.now, verbose_name="Sale date")),
                ("month_of_sale", models.CharField(blank=True, max_length=100, verbose_name="Month of sale")),
                ("quarter_of_sale", models.CharField(blank=True, max_length=100, verbose_name="Quarter of sale")),
                ("sale_price", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="Sale price")),
                (
                    "vat_scheme",
                    models.CharField(
                        blank=True,
                        choices=[("no_vat", "No VAT"), ("includes", "Includes VAT"), ("excludes", "Excludes VAT")],
                        max_length=20,
                        null=True,
                        verbose_name="VAT scheme",
                    ),
                ),
                ("first_name", models.CharField(blank=True, max_length=255, verbose_name="First name")),
                ("last_name", models.CharField(blank=True, max_length=255, verbose_name="Last name")),
                ("email_address", models.CharField(blank=True, max_length=255, verbose_name="Email")),
                ("contact_number", models.CharField(blank=True, max_length=50, verbose_name="Contact number")),
                ("address_first_line", models.CharField(blank=True, max_length=255, verbose_name="Address first line")),
                ("address_post_code", models.CharField(blank=True, max_length=20, verbose_name="Postcode")),
                ("payment_method", models.CharField(default="cash", max_length=50, verbose_name="Payment method")),
                ("cash_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="Cash")),
                ("bacs_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="BACS")),
                ("card_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="Card")),
                ("finance_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="Finance")),
                ("deposit_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="Deposit")),
                ("deposit_date", models.DateTimeField(blank=True, null=True, verbose_name="Deposit date")),
                ("part_ex_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="Part exchange")),
                ("warranty_type", models.CharField(default="none", max_length=50, verbose_name="Warranty type")),
                ("warranty_price", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="Warranty price")),
                (
                    "delivery_type",
                    models.CharField(
                        choices=[("collection", "Collection"), ("delivery", "Delivery")],
                        default="collection",
                        max_length=20,
                        verbose_name="Delivery type",
                    ),
                ),
                ("delivery_price", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="Delivery price")),
                ("delivery_date", models.DateTimeField(blank=True, null=True, verbose_name="Delivery date")),
                ("delivery_address", models.TextField(blank=True, verbose_name="Delivery address")),
                ("total_finance_add_on", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="Finance add-ons")),
                ("total_customer_add_on", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="Customer add-ons")),
                ("documentation_complete", models.BooleanField(default=False, verbose_name="Documentation complete")),
                ("key_handed_over", models.BooleanField(default=False, verbose_name="Key handed over")),
                ("customer_satisfied", models.BooleanField(default=False, verbose_name="Customer satisfied")),
                ("vulnerability_marker", models.BooleanField(default=False, verbose_name="Vulnerability marker")),
                ("deposit_paid", models.BooleanField(default=False, verbose_name="Deposit paid")),
                ("vehicle_purchased", models.BooleanField(default=False, verbose_name="Vehicle purchased")),
                ("gdpr_consent", models.BooleanField(default=False, verbose_name="GDPR consent")),
                ("sales_marketing_consent", models.BooleanField(default=False, verbose_name="Sales/marketing consent")),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sale_details",
                        to="crm.customer",
                    ),
                ),
            ],
            options={
                "verbose_name": "Sale details",
                "verbose_name_plural": "Sale details",
                "ordering": ["-sale_date"],
            },
        ),
        migrations.CreateModel(
            name="VehicleChecklist",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("stock_id", models.CharField(db_index=True, max_length=255, verbose_name="Stock ID")),
                ("dealer_id", models.CharField(db_index=True, max_length=64, verbose_name="Dealer")),
                ("registration", models.CharField(blank=True, max_length=50, verbose_name="Registration")),
                ("user_manual", models.TextField(blank=True, verbose_name="User manual")),
                ("number_of_keys", models.TextField(blank=True, verbose_name="Number of keys")),
                ("service_book", models.TextField(blank=True, verbose_name="Service book")),
                ("wheel_locking_nut", models.TextField(blank=True, verbose_name="Wheel locking nut")),
                ("cambelt_chain_confirmation", models.TextField(blank=True, verbose_name="Cambelt/chain confirmation")),
                ("completion_percentage", models.PositiveIntegerField(default=0, verbose_name="Completion (%)")),
                ("is_complete", models.BooleanField(default=False, verbose_name="Complete")),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "verbose_name": "Vehicle checklist",
                "verbose_name_plural": "Vehicle checklists",
                "ordering": ["-updated_at"],
            },
        ),
        migrations.AddConstraint(
            model_name="saledetails",
            constraint=models.UniqueConstraint(fields=("stock_id", "dealer_id"), name="uniq_sale_details_stock_dealer"),
        ),
        migrations.AddConstraint(
            model_name="vehiclechecklist",
            constraint=models.UniqueConstraint(fields=("stock_id", "dealer_id"), name="uniq_vehicle_checklist_stock_dealer"),
        ),
    ]
