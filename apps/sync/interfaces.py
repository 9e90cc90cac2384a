"""Collaborators the invoice sync depends on.

The default implementations live next to the models they write
(``apps.crm`` and ``apps.stock_actions``); tests substitute in-memory fakes.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Protocol


class CustomerDirectory(Protocol):
    def find_or_create(self, dealer_id: str, fields: Dict[str, Any]) -> Optional[str]:
        """Match or create a CRM customer and return its id."""
        ...

    def enrich(self, customer_id: str, changes: Dict[str, Any]) -> None:
        """Apply a partial update to an existing customer."""
        ...


class StockRecordStore(Protocol):
    def get_by_stock_id(self, stock_id: str, dealer_id: str) -> Optional[Any]:
        ...

    def create(self, fields: Dict[str, Any]) -> Optional[Any]:
        ...

    def update(self, stock_id: str, dealer_id: str, fields: Dict[str, Any]) -> Optional[Any]:
        ...


class PostcodeLookup(Protocol):
    def __call__(self, postcode: str) -> Dict[str, str]:
        ...
