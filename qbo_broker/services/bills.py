"""
Batched creation of bills and purchases in QuickBooks.

Each category gets its own correlation id sequence (``bill1``, ``check1``,
``purchase1``, ``cccharge1``...) so callers can match entries of the
provider's ``BatchItemResponse`` back to their input.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from qbo_broker.clients.quickbooks import QuickBooksClient
from qbo_broker.services.token_manager import QuickBooksTokenManager

logger = logging.getLogger(__name__)

MAX_BATCH_ITEMS = 30


class BatchRequestError(ValueError):
    """Raised when a batch is empty or exceeds the provider limit."""


def _batch_items(
    records: Iterable[Dict[str, Any]],
    *,
    prefix: str,
    entity: str,
    payment_type: Optional[str] = None,
) -> List[Dict[str, Any]]:
    items = []
    for index, record in enumerate(records, start=1):
        body = dict(record)
        if payment_type:
            body.setdefault("PaymentType", payment_type)
        items.append({"bId": f"{prefix}{index}", "operation": "create", entity: body})
    return items


def build_batch_request(
    *,
    bills: Sequence[Dict[str, Any]] = (),
    checks: Sequence[Dict[str, Any]] = (),
    expenses: Sequence[Dict[str, Any]] = (),
    cc_charges: Sequence[Dict[str, Any]] = (),
) -> Dict[str, Any]:
    """Build a ``BatchItemRequest`` mixing bills and purchase records."""
    items = [
        *_batch_items(bills, prefix="bill", entity="Bill"),
        *_batch_items(checks, prefix="check", entity="Purchase", payment_type="Check"),
        *_batch_items(expenses, prefix="purchase", entity="Purchase", payment_type="Cash"),
        *_batch_items(
            cc_charges, prefix="cccharge", entity="Purchase", payment_type="CreditCard"
        ),
    ]
    if not items:
        raise BatchRequestError("Batch must contain at least one record.")
    if len(items) > MAX_BATCH_ITEMS:
        raise BatchRequestError(
            f"Batch holds {len(items)} records; QuickBooks accepts at most {MAX_BATCH_ITEMS}."
        )
    return {"BatchItemRequest": items}


class BillBatchService:
    """Submit batched bill and purchase creation for a tenant."""

    def __init__(
        self, *, token_manager: QuickBooksTokenManager, api_client: QuickBooksClient
    ) -> None:
        self._tokens = token_manager
        self._api = api_client

    async def create_bills(
        self,
        tenant_id: str,
        *,
        bills: Sequence[Dict[str, Any]] = (),
        checks: Sequence[Dict[str, Any]] = (),
        expenses: Sequence[Dict[str, Any]] = (),
        cc_charges: Sequence[Dict[str, Any]] = (),
    ) -> Dict[str, Any]:
        payload = build_batch_request(
            bills=bills, checks=checks, expenses=expenses, cc_charges=cc_charges
        )
        connection = await self._tokens.get_connection(tenant_id)
        logger.info(
            "Submitting %d batch operations for tenant %s",
            len(payload["BatchItemRequest"]),
            tenant_id,
        )
        return await self._api.batch(
            realm_id=connection.realm_id,
            access_token=connection.access_token,
            payload=payload,
        )


__all__ = [
    "BatchRequestError",
    "BillBatchService",
    "MAX_BATCH_ITEMS",
    "build_batch_request",
]
