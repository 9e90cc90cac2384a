from django.db import migrations, models
import uuid


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("dealer_id", models.CharField(db_index=True, max_length=64, verbose_name="Dealer")),
                ("first_name", models.CharField(max_length=255, verbose_name="First name")),
                ("last_name", models.CharField(max_length=255, verbose_name="Last name")),
                ("email", models.EmailField(blank=True, db_index=True, max_length=255, verbose_name="Email")),
                ("phone", models.CharField(blank=True, max_length=50, verbose_name="Phone")),
                ("address_line_1", models.CharField(blank=True, max_length=255, verbose_name="Address line 1")),
                ("address_line_2", models.CharField(blank=True, max_length=255, verbose_name="Address line 2")),
                ("city", models.CharField(blank=True, max_length=100, verbose_name="City")),
                ("county", models.CharField(blank=True, max_length=100, verbose_name="County")),
                ("postcode", models.CharField(blank=True, max_length=20, verbose_name="Postcode")),
                ("country", models.CharField(default="United Kingdom", max_length=100, verbose_name="Country")),
                ("gdpr_consent", models.BooleanField(default=False, verbose_name="GDPR consent")),
                ("marketing_consent", models.BooleanField(default=False, verbose_name="Marketing consent")),
                ("sales_consent", models.BooleanField(default=False, verbose_name="Sales consent")),
                ("vulnerability_marker", models.BooleanField(default=False, verbose_name="Vulnerability marker")),
                ("consent_date", models.DateTimeField(blank=True, null=True, verbose_name="Consent date")),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                ("customer_source", models.CharField(blank=True, max_length=100, verbose_name="Source")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("inactive", "Inactive"), ("prospect", "Prospect")],
                        default="active",
                        max_length=50,
                        verbose_name="Status",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Customer",
                "verbose_name_plural": "Customers",
                "ordering": ["last_name", "first_name"],
            },
        ),
    ]
