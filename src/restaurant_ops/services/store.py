"""
Storage facades: a collection-oriented document store and a blob store.

The ledger only talks to the two Protocols below. The MongoDB implementations
are what the worker and CLI wire up; tests substitute in-memory fakes.

Documents cross this boundary as plain dicts with a string `id` key; the
MongoDB `_id`/ObjectId detail never leaks out.
"""

import logging
from collections.abc import Mapping
from typing import Any, Protocol
from urllib.parse import quote

from bson import ObjectId
from gridfs import AsyncGridFSBucket
from pymongo import ASCENDING, DESCENDING, AsyncMongoClient

from restaurant_ops.config import Settings

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    async def insert(self, collection: str, data: Mapping[str, Any]) -> str: ...

    async def get(self, collection: str, doc_id: str) -> dict | None: ...

    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> None: ...

    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any],
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]: ...


class ObjectStore(Protocol):
    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        """Store `data` at `path` and return a URL it can be fetched from."""
        ...


def _from_mongo(doc: dict) -> dict:
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


class MongoDocumentStore:
    """DocumentStore backed by pymongo's asyncio client.

    Equality filters map straight onto `find()`. Writes are single-document
    operations; nothing here opens a transaction.
    """

    def __init__(self, client: AsyncMongoClient, database: str) -> None:
        self.client = client
        self.db = client[database]

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoDocumentStore":
        # tz_aware so timestamps come back as aware UTC datetimes.
        client = AsyncMongoClient(settings.mongo_url, tz_aware=True)
        return cls(client, settings.mongo_database)

    async def insert(self, collection: str, data: Mapping[str, Any]) -> str:
        doc = {k: v for k, v in data.items() if k != "id"}
        result = await self.db[collection].insert_one(doc)
        logger.debug("Inserted %s/%s", collection, result.inserted_id)
        return str(result.inserted_id)

    async def get(self, collection: str, doc_id: str) -> dict | None:
        doc = await self.db[collection].find_one({"_id": ObjectId(doc_id)})
        return _from_mongo(doc) if doc is not None else None

    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        await self.db[collection].update_one({"_id": ObjectId(doc_id)}, {"$set": dict(fields)})

    async def delete(self, collection: str, doc_id: str) -> None:
        await self.db[collection].delete_one({"_id": ObjectId(doc_id)})

    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any],
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        cursor = self.db[collection].find(dict(filters))
        if order_by:
            cursor = cursor.sort(order_by, DESCENDING if descending else ASCENDING)
        if limit:
            cursor = cursor.limit(limit)
        return [_from_mongo(doc) async for doc in cursor]

    async def close(self) -> None:
        await self.client.close()


class GridFSObjectStore:
    """ObjectStore that keeps blobs in a GridFS bucket.

    GridFS has no public URLs of its own; `base_url` is whatever HTTP front
    serves the bucket by filename.
    """

    def __init__(self, client: AsyncMongoClient, database: str, bucket: str, base_url: str) -> None:
        self.bucket = AsyncGridFSBucket(client[database], bucket_name=bucket)
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, client: AsyncMongoClient, settings: Settings) -> "GridFSObjectStore":
        return cls(client, settings.mongo_database, settings.attachments_bucket, settings.attachments_base_url)

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        metadata = {"content_type": content_type} if content_type else None
        file_id = await self.bucket.upload_from_stream(path, data, metadata=metadata)
        logger.info("Stored attachment %s (%d bytes) as %s", path, len(data), file_id)
        return f"{self.base_url}/{quote(path.lstrip('/'))}"
