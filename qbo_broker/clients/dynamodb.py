"""
Document store backed by a single DynamoDB table.

Collections map to the partition key and document keys to the sort key.
"""

from __future__ import annotations

from functools import reduce
from typing import Any, Dict, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from qbo_broker.core.config import StoreSettings


class DynamoDBStore:
    """Collection-scoped CRUD operations on a DynamoDB table."""

    def __init__(self, settings: StoreSettings, table: Any = None) -> None:
        if table is None:
            if not settings.dynamodb_table_name:
                raise ValueError("DYNAMODB_TABLE_NAME is required for the dynamodb backend")
            resource = boto3.resource("dynamodb", region_name=settings.region_name)
            table = resource.Table(settings.dynamodb_table_name)
        self._table = table

    def put_item(self, collection: str, key: str, item: Dict[str, Any]) -> None:
        """Put a document in the table, replacing any previous version."""
        self._table.put_item(Item={**item, "pk": collection, "sk": key})

    def get_item(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """Retrieve a document using its key."""
        response = self._table.get_item(Key={"pk": collection, "sk": key})
        item = response.get("Item")
        return self._strip_keys(item) if item else None

    def delete_item(self, collection: str, key: str) -> bool:
        response = self._table.delete_item(
            Key={"pk": collection, "sk": key}, ReturnValues="ALL_OLD"
        )
        return bool(response.get("Attributes"))

    def pop_item(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """Atomically delete a document and return what was removed."""
        response = self._table.delete_item(
            Key={"pk": collection, "sk": key}, ReturnValues="ALL_OLD"
        )
        item = response.get("Attributes")
        return self._strip_keys(item) if item else None

    def replace_item_if(
        self, collection: str, key: str, item: Dict[str, Any], **expected: Any
    ) -> bool:
        """Conditionally overwrite a document; False when the condition fails."""
        condition = Attr("sk").exists()
        for field, value in expected.items():
            condition = condition & Attr(field).eq(value)
        try:
            self._table.put_item(
                Item={**item, "pk": collection, "sk": key},
                ConditionExpression=condition,
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                return False
            raise
        return True

    def query_items(self, collection: str, **filters: Any) -> list[Dict[str, Any]]:
        """Query a collection, filtering on attribute equality."""
        kwargs: Dict[str, Any] = {
            "KeyConditionExpression": Key("pk").eq(collection),
        }
        if filters:
            conditions = [Attr(field).eq(value) for field, value in filters.items()]
            kwargs["FilterExpression"] = reduce(lambda a, b: a & b, conditions)

        items: list[Dict[str, Any]] = []
        while True:
            response = self._table.query(**kwargs)
            items.extend(self._strip_keys(item) for item in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    @staticmethod
    def _strip_keys(item: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in item.items() if k not in ("pk", "sk")}


__all__ = ["DynamoDBStore"]
