"""
Caller-facing entity kinds and the QuickBooks queries behind them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from qbo_broker.clients.quickbooks import QuickBooksClient
from qbo_broker.services.token_manager import QuickBooksTokenManager

MAX_RESULTS = 1000


class UnknownEntityError(ValueError):
    """Raised for an entity kind outside the catalog."""


@dataclass(frozen=True)
class EntityQuery:
    entity_name: str
    filter_clause: Optional[str] = None

    def to_statement(self) -> str:
        statement = f"SELECT * FROM {self.entity_name}"
        if self.filter_clause:
            statement += f" WHERE {self.filter_clause}"
        return f"{statement} MAXRESULTS {MAX_RESULTS}"


ENTITY_CATALOG: Mapping[str, EntityQuery] = {
    "accounts": EntityQuery("Account"),
    "bank-accounts": EntityQuery("Account", "AccountType = 'Bank'"),
    "credit-card-accounts": EntityQuery("Account", "AccountType = 'Credit Card'"),
    "expense-accounts": EntityQuery("Account", "AccountType = 'Expense'"),
    "income-accounts": EntityQuery("Account", "AccountType = 'Income'"),
    "vendors": EntityQuery("Vendor", "Active = true"),
    "customers": EntityQuery("Customer", "Active = true"),
    "classes": EntityQuery("Class"),
    "departments": EntityQuery("Department"),
    "items": EntityQuery("Item"),
    "terms": EntityQuery("Term"),
    "payment-methods": EntityQuery("PaymentMethod"),
    "employees": EntityQuery("Employee"),
    "tax-codes": EntityQuery("TaxCode"),
}

_KIND_PATTERN = re.compile(r"^[a-z]+(-[a-z]+)*$")
_ENTITY_PATTERN = re.compile(r"^[A-Z][A-Za-z]+$")


def _validate_catalog(catalog: Mapping[str, EntityQuery]) -> None:
    for kind, query in catalog.items():
        if not _KIND_PATTERN.match(kind):
            raise ValueError(f"Entity kind {kind!r} must be lower-case kebab case")
        if not _ENTITY_PATTERN.match(query.entity_name):
            raise ValueError(f"Entity {query.entity_name!r} for {kind!r} is not a QuickBooks type")


_validate_catalog(ENTITY_CATALOG)


def resolve_entity(kind: str) -> EntityQuery:
    try:
        return ENTITY_CATALOG[kind]
    except KeyError:
        raise UnknownEntityError(f"Invalid entity: {kind}") from None


class EntityService:
    """Fetch catalog entities for a connected tenant."""

    def __init__(
        self, *, token_manager: QuickBooksTokenManager, api_client: QuickBooksClient
    ) -> None:
        self._tokens = token_manager
        self._api = api_client

    async def fetch_entity(self, tenant_id: str, kind: str) -> Dict[str, Any]:
        query = resolve_entity(kind)
        connection = await self._tokens.get_connection(tenant_id)
        return await self._api.query(
            realm_id=connection.realm_id,
            access_token=connection.access_token,
            query=query.to_statement(),
        )


__all__ = [
    "ENTITY_CATALOG",
    "EntityQuery",
    "EntityService",
    "UnknownEntityError",
    "resolve_entity",
]
