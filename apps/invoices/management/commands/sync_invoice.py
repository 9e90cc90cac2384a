import json
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from apps.sync.services import sync_invoice_data


class Command(BaseCommand):
    help = "Reconcile an invoice JSON document with the CRM, sale details and vehicle checklist."

    def add_arguments(self, parser):
        parser.add_argument("dealer_id")
        parser.add_argument("stock_id")
        parser.add_argument("invoice_path", help="Path to the invoice document (JSON).")

    def handle(self, *args, **options):
        path = Path(options["invoice_path"])
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise CommandError(f"Cannot read {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise CommandError(f"{path} is not valid JSON: {exc}") from exc
        if not isinstance(document, dict):
            raise CommandError(f"{path} must contain a JSON object")

        result = sync_invoice_data(options["dealer_id"], options["stock_id"], document)

        self.stdout.write(f"Customer: {result.customer_id or '-'}")
        self.stdout.write(f"Sale details: {result.sale_details_id or '-'}")
        for warning in result.warnings:
            self.stdout.write(self.style.WARNING(f"Warning: {warning}"))
        for error in result.errors:
            self.stdout.write(self.style.ERROR(f"Error: {error}"))
        if result.success:
            self.stdout.write(self.style.SUCCESS("Invoice synchronised."))
        else:
            self.stdout.write(self.style.ERROR("Invoice synchronised with errors."))
