import logging

from django.utils.dateparse import parse_date
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.sync.services import sync_invoice_data
from .models import Invoice
from .serializers import InvoiceSaveSerializer, InvoiceSerializer

logger = logging.getLogger(__name__)


def _parse_date(value):
    try:
        return parse_date(str(value)[:10]) if value else None
    except ValueError:
        return None


def _get_invoice(request):
    stock_id = (request.query_params.get("stockId") or "").strip()
    dealer_id = (request.query_params.get("dealerId") or "").strip()
    if not stock_id or not dealer_id:
        return Response({"error": "stockId and dealerId are required"}, status=400)

    invoice = Invoice.objects.filter(stock_id=stock_id, dealer_id=dealer_id).first()
    if invoice is None:
        return Response({"error": "Invoice not found"}, status=404)
    return Response(InvoiceSerializer(invoice).data)


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def invoice_data(request):
    if request.method == "GET":
        return _get_invoice(request)

    serializer = InvoiceSaveSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    stock_id = serializer.validated_data["stockId"].strip()
    dealer_id = serializer.validated_data["dealerId"].strip()
    document = serializer.validated_data["invoiceData"]

    invoice, created = Invoice.objects.update_or_create(
        stock_id=stock_id,
        dealer_id=dealer_id,
        defaults={
            "invoice_number": str(document.get("invoiceNumber") or ""),
            "invoice_date": _parse_date(document.get("invoiceDate")),
            "sale_type": str(document.get("saleType") or ""),
            "invoice_type": str(document.get("invoiceType") or ""),
            "data": document,
        },
    )
    logger.info("%s invoice %s for stock %s", "Created" if created else "Updated", invoice.pk, stock_id)

    sync = None
    if invoice.is_complete:
        result = sync_invoice_data(dealer_id, stock_id, document)
        if not result.success:
            logger.warning("Invoice sync for stock %s completed with issues: %s", stock_id, result.errors)
        sync = result.as_dict()
    else:
        logger.info("Skipping invoice sync for stock %s: invoice data is incomplete", stock_id)

    return Response(
        {"success": True, "data": InvoiceSerializer(invoice).data, "sync": sync},
        status=201 if created else 200,
    )
