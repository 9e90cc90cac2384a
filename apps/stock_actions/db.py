"""Lookups and upserts for stock action records, keyed by (stock_id, dealer_id)."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db import transaction
from django.db.models import Model

from .models import SaleDetails, VehicleChecklist

logger = logging.getLogger(__name__)


class StockRecordRepository:
    model: type[Model]

    def get_by_stock_id(self, stock_id: str, dealer_id: str) -> Optional[Model]:
        return self.model.objects.filter(stock_id=stock_id, dealer_id=dealer_id).first()

    def create(self, fields: Dict[str, Any]) -> Model:
        with transaction.atomic():
            record = self.model.objects.create(**fields)
        logger.debug("Created %s %s for stock %s", self.model.__name__, record.pk, record.stock_id)
        return record

    def update(self, stock_id: str, dealer_id: str, fields: Dict[str, Any]) -> Optional[Model]:
        with transaction.atomic():
            queryset = self.model.objects.filter(stock_id=stock_id, dealer_id=dealer_id)
            if not queryset.update(**fields):
                return None
            return queryset.first()


class SaleDetailsRepository(StockRecordRepository):
    model = SaleDetails


class VehicleChecklistRepository(StockRecordRepository):
    model = VehicleChecklist
