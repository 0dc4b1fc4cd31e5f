"""Structural interface shared by the document store backends."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol


class DocumentStore(Protocol):
    def put_item(self, collection: str, key: str, item: Dict[str, Any]) -> None: ...

    def get_item(self, collection: str, key: str) -> Optional[Dict[str, Any]]: ...

    def delete_item(self, collection: str, key: str) -> bool: ...

    def pop_item(self, collection: str, key: str) -> Optional[Dict[str, Any]]: ...

    def replace_item_if(
        self, collection: str, key: str, item: Dict[str, Any], **expected: Any
    ) -> bool: ...

    def query_items(self, collection: str, **filters: Any) -> list[Dict[str, Any]]: ...


__all__ = ["DocumentStore"]
