"""
Journal storage for the Quote Journal service.

Saved quotes live in a document collection. The MongoDB store is used in
deployments; the in-memory store backs tests and local runs without a
database. Both issue ObjectId-formatted identifiers.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone

from bson import ObjectId
from pymongo import AsyncMongoClient, DESCENDING
from pymongo.errors import PyMongoError

from .errors import JournalStoreError, StoreNotConfiguredError
from .models import JournalEntry, Quote

logger = logging.getLogger(__name__)

COLLECTION_NAME = "journal"


def is_valid_entry_id(entry_id: str) -> bool:
    """Check that ``entry_id`` is a 24-hex-digit ObjectId string."""
    return isinstance(entry_id, str) and ObjectId.is_valid(entry_id)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JournalStore(ABC):
    """Insert, list and delete journal entries."""

    @abstractmethod
    async def insert(self, quote: Quote) -> str:
        """Save a quote, stamping ``savedAt`` now. Returns the new identifier."""

    @abstractmethod
    async def list_entries(self) -> list[JournalEntry]:
        """Return all entries, most recently saved first."""

    @abstractmethod
    async def delete(self, entry_id: str) -> bool:
        """Delete an entry. Returns False when no entry matched."""

    async def close(self) -> None:
        """Release any connections held by the store."""


class InMemoryJournalStore(JournalStore):
    """Process-memory journal, lost on restart."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._entries: dict[str, JournalEntry] = {}
        self._lock = asyncio.Lock()

    async def insert(self, quote: Quote) -> str:
        async with self._lock:
            entry_id = str(ObjectId())
            self._entries[entry_id] = JournalEntry(
                id=entry_id,
                quote=quote.quote,
                author=quote.author,
                saved_at=self._clock(),
            )
            return entry_id

    async def list_entries(self) -> list[JournalEntry]:
        async with self._lock:
            return sorted(
                self._entries.values(), key=lambda e: e.saved_at, reverse=True
            )

    async def delete(self, entry_id: str) -> bool:
        async with self._lock:
            return self._entries.pop(entry_id, None) is not None


class MongoJournalStore(JournalStore):
    """
    Journal backed by a MongoDB collection.

    The client is created on first use, so a missing URI or database name
    only surfaces when the journal is actually accessed.
    """

    def __init__(self, uri: str, db_name: str, collection: str = COLLECTION_NAME) -> None:
        self._uri = uri
        self._db_name = db_name
        self._collection_name = collection
        self._client: AsyncMongoClient | None = None

    def _collection(self):
        if not self._uri:
            raise StoreNotConfiguredError(
                "Please define the MONGODB_URI environment variable"
            )
        if not self._db_name:
            raise StoreNotConfiguredError(
                "Please define the MONGODB_DB environment variable"
            )
        if self._client is None:
            try:
                self._client = AsyncMongoClient(self._uri)
            except PyMongoError as e:
                # Malformed URI or options
                raise JournalStoreError(str(e)) from e
        return self._client[self._db_name][self._collection_name]

    async def insert(self, quote: Quote) -> str:
        collection = self._collection()
        document = {"quote": quote.quote, "author": quote.author, "savedAt": _utcnow()}
        try:
            result = await collection.insert_one(document)
        except PyMongoError as e:
            raise JournalStoreError(str(e)) from e
        return str(result.inserted_id)

    async def list_entries(self) -> list[JournalEntry]:
        collection = self._collection()
        try:
            documents = await collection.find({}).sort("savedAt", DESCENDING).to_list()
        except PyMongoError as e:
            raise JournalStoreError(str(e)) from e

        return [
            JournalEntry(
                id=str(doc["_id"]),
                quote=doc.get("quote", ""),
                author=doc.get("author", ""),
                saved_at=doc["savedAt"],
            )
            for doc in documents
        ]

    async def delete(self, entry_id: str) -> bool:
        collection = self._collection()
        try:
            result = await collection.delete_one({"_id": ObjectId(entry_id)})
        except PyMongoError as e:
            raise JournalStoreError(str(e)) from e
        return result.deleted_count > 0

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("Closed MongoDB client")
