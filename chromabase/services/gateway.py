"""Validating front door for all collection reads and writes."""

from __future__ import annotations

import logging
from typing import Any

import aiosqlite

from chromabase.collections import CollectionRule, sanitize, validate_record
from chromabase.exceptions import NotFoundError, PersistenceError, ValidationError
from chromabase.services.events import ChangeEvent, EventType, utc_now_iso
from chromabase.services.notifier import ChangeNotifier
from chromabase.store.base import DocumentStore

logger = logging.getLogger(__name__)

# Store failures that become PersistenceError (RuntimeError: store not started).
_STORE_ERRORS = (aiosqlite.Error, OSError, RuntimeError)


class MutationGateway:
    """Generic CRUD over every configured collection.

    Writes are validated against the collection's rule, persisted, and only
    then announced through the notifier as a ChangeEvent.
    """

    def __init__(
        self,
        store: DocumentStore,
        rules: dict[str, CollectionRule],
        notifier: ChangeNotifier,
    ):
        self._store = store
        self._rules = rules
        self._notifier = notifier

    @property
    def collections(self) -> list[str]:
        return list(self._rules)

    def _rule(self, collection: str) -> CollectionRule:
        rule = self._rules.get(collection)
        if rule is None:
            raise NotFoundError()
        return rule

    @staticmethod
    def _require_id(doc_id: str | None) -> str:
        if not isinstance(doc_id, str) or not doc_id.strip():
            raise ValidationError("Invalid document ID")
        return doc_id

    # -- Reads ---------------------------------------------------------------

    async def list(self, collection: str) -> list[dict[str, Any]]:
        self._rule(collection)
        try:
            return await self._store.list(collection)
        except _STORE_ERRORS as exc:
            raise PersistenceError(str(exc)) from exc

    async def get(self, collection: str, doc_id: str) -> dict[str, Any]:
        self._rule(collection)
        try:
            record = await self._store.get(collection, doc_id)
        except _STORE_ERRORS as exc:
            raise PersistenceError(str(exc)) from exc
        if record is None:
            raise NotFoundError()
        return record

    # -- Writes --------------------------------------------------------------

    async def create(self, collection: str, payload: dict[str, Any]) -> str:
        rule = self._rule(collection)
        fields = sanitize(payload)
        validate_record(rule, fields)

        now = utc_now_iso()
        data = {**fields, "created_at": now, "updated_at": now}
        try:
            doc_id = await self._store.add(collection, data)
        except _STORE_ERRORS as exc:
            raise PersistenceError(str(exc)) from exc

        logger.info("Created %s/%s", collection, doc_id)
        self._notifier.publish(ChangeEvent(collection, EventType.CREATED, {"id": doc_id, **data}))
        return doc_id

    async def update(self, collection: str, doc_id: str | None, payload: dict[str, Any]) -> str:
        rule = self._rule(collection)
        doc_id = self._require_id(doc_id)
        fields = sanitize(payload)

        try:
            existing = await self._store.get(collection, doc_id)
        except _STORE_ERRORS as exc:
            raise PersistenceError(str(exc)) from exc
        if existing is None:
            raise NotFoundError()

        validate_record(rule, {**existing, **fields})

        stamped = {**fields, "updated_at": utc_now_iso(after=existing.get("updated_at"))}
        try:
            await self._store.update(collection, doc_id, stamped)
        except PersistenceError:
            raise
        except _STORE_ERRORS as exc:
            raise PersistenceError(str(exc)) from exc

        logger.info("Updated %s/%s (%d field(s))", collection, doc_id, len(fields))
        self._notifier.publish(ChangeEvent(collection, EventType.UPDATED, {**fields, "id": doc_id}))
        return doc_id

    async def delete(self, collection: str, doc_id: str | None) -> None:
        self._rule(collection)
        doc_id = self._require_id(doc_id)

        try:
            removed = await self._store.delete(collection, doc_id)
        except _STORE_ERRORS as exc:
            raise PersistenceError(str(exc)) from exc
        if not removed:
            raise NotFoundError()

        logger.info("Deleted %s/%s", collection, doc_id)
        self._notifier.publish(ChangeEvent(collection, EventType.DELETED, {"id": doc_id}))
