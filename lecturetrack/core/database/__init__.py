"""Document store adapters."""

from lecturetrack.core.database.store import (
    Document,
    DocumentStore,
    InMemoryDocumentStore,
)


__all__ = [
    "Document",
    "DocumentStore",
    "InMemoryDocumentStore",
]
