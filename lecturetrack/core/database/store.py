"""Generic document store contract and its in-memory implementation.

Documents are flat JSON objects addressed by ``(collection, doc_id)``.
Values are normalized to JSON types on write, so timestamps come back as
ISO strings regardless of the backend.
"""

import asyncio
import copy
import json
from typing import Any, Protocol


Document = dict[str, Any]


def to_json_document(fields: Document) -> Document:
    """Normalize field values to their JSON representation."""
    return json.loads(json.dumps(fields, default=str))


class DocumentStore(Protocol):
    """Key/document store with get, merge-upsert and query-by-field."""

    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Return the document or ``None`` when absent."""
        ...

    async def upsert(
        self,
        collection: str,
        doc_id: str,
        fields: Document,
        merge: bool = True,
    ) -> Document:
        """Create or update a document and return the stored result.

        With ``merge=True`` only the given fields are written and the rest of
        an existing document is kept; otherwise the document is replaced.
        """
        ...

    async def query(
        self,
        collection: str,
        field_equals: dict[str, Any],
    ) -> list[Document]:
        """Return every document whose fields equal all given values."""
        ...


class InMemoryDocumentStore:
    """Process-local document store used for tests and local development."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._lock = asyncio.Lock()

    async def get(self, collection: str, doc_id: str) -> Document | None:
        doc = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def upsert(
        self,
        collection: str,
        doc_id: str,
        fields: Document,
        merge: bool = True,
    ) -> Document:
        values = to_json_document(fields)
        async with self._lock:
            docs = self._collections.setdefault(collection, {})
            current = docs.get(doc_id) if merge else None
            stored = {**current, **values} if current else values
            docs[doc_id] = stored
            return copy.deepcopy(stored)

    async def query(
        self,
        collection: str,
        field_equals: dict[str, Any],
    ) -> list[Document]:
        wanted = to_json_document(field_equals)
        return [
            copy.deepcopy(doc)
            for doc in self._collections.get(collection, {}).values()
            if all(doc.get(k) == v for k, v in wanted.items())
        ]

    def clear(self) -> None:
        """Drop every collection."""
        self._collections.clear()
