"""Collection naming and lifecycle against the vector index.

Callers name collections freely ("Product Docs v2!"); the index only sees
sanitized identifiers (``Product-Docs-v2``).  Existence is checked against
the index on every call and never cached, so a collection deleted by
another request is noticed straight away.
"""

from __future__ import annotations

import re

import structlog

from vectorqa.interfaces.vector_store_provider import IVectorStoreProvider
from vectorqa.models.rag import IndexHandle
from vectorqa.utils.errors import NotFoundError, ValidationError

logger = structlog.get_logger(logger_name=__name__)

_DISALLOWED = re.compile(r"[^a-zA-Z0-9_\- ]")


def sanitize(name: str) -> str:
    """Turn a caller-supplied name into a collection id.

    Characters other than ASCII letters, digits, ``_``, ``-`` and space are
    dropped, then spaces become hyphens.  Pure and idempotent.

    >>> sanitize("My Docs (2024)!")
    'My-Docs-2024'
    """
    return _DISALLOWED.sub("", name).replace(" ", "-")


class CollectionManager:
    """Resolves, creates and deletes collections through the vector store."""

    def __init__(self, vector_store: IVectorStoreProvider) -> None:
        self._store = vector_store

    @staticmethod
    def sanitize(name: str) -> str:
        """Sanitize *name*, rejecting names with no usable characters."""
        collection_id = sanitize(name)
        if not collection_id:
            raise ValidationError(f"Collection name {name!r} has no valid characters")
        return collection_id

    async def exists(self, collection_id: str) -> bool:
        return await self._store.collection_exists(collection_id)

    async def resolve(self, collection_id: str) -> IndexHandle:
        """Return a handle for an existing collection.

        Raises
        ------
        NotFoundError
            If the collection does not exist.
        IndexUnavailableError
            If the index could not be queried.
        """
        if not await self._store.collection_exists(collection_id):
            logger.info("collection_not_found", collection=collection_id)
            raise NotFoundError(f"{collection_id} does not exist")
        return IndexHandle(collection_id=collection_id)

    async def delete(self, collection_id: str) -> None:
        """Drop an existing collection, or raise :class:`NotFoundError`."""
        handle = await self.resolve(collection_id)
        await self._store.delete_collection(handle.collection_id)
        logger.info("collection_deleted", collection=collection_id)

    async def list_all(self) -> list[str]:
        return sorted(await self._store.list_collections())
