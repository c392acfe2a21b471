from __future__ import annotations

import logging
from collections.abc import Mapping

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import OperationFailure

from ..core.config import Settings
from .models import AuditEntry

logger = logging.getLogger(__name__)

TTL_INDEX_NAME = "audit_created_at_ttl"


class AuditStore:
    """Own the motor client backing the audit collection.

    Built once per application in the lifespan and closed on shutdown; tests
    pass an in-memory client instead of a real MongoDB connection.
    """

    def __init__(
        self,
        *,
        mongo_url: str,
        database_name: str,
        ttl_seconds: int,
        client: AsyncIOMotorClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or AsyncIOMotorClient(mongo_url, tz_aware=True, uuidRepresentation="standard")
        self._database_name = database_name
        self.ttl_seconds = max(int(ttl_seconds), 1)
        self._initialized = False

    @classmethod
    def from_settings(cls, settings: Settings, *, client: AsyncIOMotorClient | None = None) -> "AuditStore":
        return cls(
            mongo_url=settings.mongo_url,
            database_name=settings.mongo_database,
            ttl_seconds=settings.audit_ttl_seconds,
            client=client,
        )

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def collection(self) -> AsyncIOMotorCollection:
        return AuditEntry.get_motor_collection()

    async def init(self, *, force: bool = False) -> None:
        """Register the document model and ensure the collection's indexes."""

        if self._initialized and not force:
            return
        await init_beanie(
            database=self._client[self._database_name],
            document_models=[AuditEntry],
            allow_index_dropping=True,
        )
        await self._ensure_indexes()
        self._initialized = True
        logger.info(
            "Audit store initialised",
            extra={"database": self._database_name, "ttl_seconds": self.ttl_seconds},
        )

    async def _ensure_indexes(self) -> None:
        collection = self.collection
        existing = await collection.index_information()

        current_ttl = None
        ttl_index = existing.get(TTL_INDEX_NAME)
        if isinstance(ttl_index, Mapping):
            current_ttl = ttl_index.get("expireAfterSeconds")

        if current_ttl is not None and int(current_ttl) != self.ttl_seconds:
            try:
                await collection.drop_index(TTL_INDEX_NAME)
            except OperationFailure:
                logger.warning("Could not drop stale audit TTL index", exc_info=True)

        await collection.create_index(
            [("created_at", ASCENDING)],
            expireAfterSeconds=self.ttl_seconds,
            name=TTL_INDEX_NAME,
        )
        await collection.create_index(
            [("entity_type", ASCENDING), ("entity_id", ASCENDING), ("created_at", DESCENDING)],
            name="audit_entity_created_at",
        )
        await collection.create_index(
            [("user_id", ASCENDING), ("created_at", DESCENDING)],
            name="audit_user_created_at",
        )

    async def close(self) -> None:
        if self._owns_client:
            self._client.close()
        self._initialized = False


__all__ = ["AuditStore", "TTL_INDEX_NAME"]
