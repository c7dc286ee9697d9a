"""Document store interface the gateway persists through."""

from __future__ import annotations

from typing import Any, Protocol


class DocumentStore(Protocol):
    """Collections of schemaless records keyed by identifier."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def ping(self) -> bool: ...

    async def add(self, collection: str, data: dict[str, Any]) -> str: ...

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    async def list(self, collection: str) -> list[dict[str, Any]]: ...

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> bool: ...
