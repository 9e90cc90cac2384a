from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("stock_id", models.CharField(db_index=True, max_length=255, verbose_name="Stock ID")),
                ("dealer_id", models.CharField(db_index=True, max_length=64, verbose_name="Dealer")),
                ("invoice_number", models.CharField(blank=True, max_length=100, verbose_name="Invoice number")),
                ("invoice_date", models.DateField(blank=True, null=True, verbose_name="Invoice date")),
                ("sale_type", models.CharField(blank=True, max_length=50, verbose_name="Sale type")),
                ("invoice_type", models.CharField(blank=True, max_length=100, verbose_name="Invoice type")),
                ("data", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Invoice",
                "verbose_name_plural": "Invoices",
                "ordering": ["-updated_at"],
            },
        ),
        migrations.AddConstraint(
            model_name="invoice",
            constraint=models.UniqueConstraint(fields=("stock_id", "dealer_id"), name="uniq_invoice_stock_dealer"),
        ),
    ]
