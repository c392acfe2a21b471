from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest
from mongomock_motor import AsyncMongoMockClient
from pymongo.errors import ServerSelectionTimeoutError

from taskhub.audit import AuditAction, AuditEntityType, AuditEntry, AuditLogService, AuditStore
from taskhub.audit.store import TTL_INDEX_NAME
from taskhub.core.config import Settings

pytestmark = pytest.mark.asyncio

TASK_ID = "a" * 24
ACTOR = SimpleNamespace(id="b" * 24, email="Actor@Example.com", name="Audit Actor")


async def test_ttl_index_respects_settings(settings: Settings) -> None:
    settings.audit_ttl_seconds = 864
    store = AuditStore.from_settings(settings, client=AsyncMongoMockClient())
    await store.init(force=True)
    try:
        info = await store.collection.index_information()
        assert info[TTL_INDEX_NAME]["expireAfterSeconds"] == 864
    finally:
        await store.close()


async def test_ttl_index_is_recreated_when_setting_changes(settings: Settings) -> None:
    client = AsyncMongoMockClient()
    settings.audit_ttl_seconds = 100
    await AuditStore.from_settings(settings, client=client).init(force=True)

    settings.audit_ttl_seconds = 200
    store = AuditStore.from_settings(settings, client=client)
    await store.init(force=True)

    info = await store.collection.index_information()
    assert info[TTL_INDEX_NAME]["expireAfterSeconds"] == 200


async def test_default_ttl_is_ninety_days() -> None:
    assert Settings(environment="test").audit_ttl_seconds == 90 * 24 * 60 * 60


async def test_append_denormalises_actor(audit_store: AuditStore) -> None:
    service = AuditLogService()

    entry = await service.append(
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.TASK,
        entity_id=TASK_ID,
        actor=ACTOR,
        changes={"status": {"old": "todo", "new": "done"}},
    )

    assert entry is not None
    stored = await AuditEntry.get(entry.id)
    assert stored is not None
    assert stored.user_id == ACTOR.id
    assert stored.user_email == "actor@example.com"
    assert stored.user_name == "Audit Actor"
    assert stored.changes == {"status": {"old": "todo", "new": "done"}}
    assert stored.metadata == {}


async def test_query_for_task_is_newest_first_and_limited(audit_store: AuditStore) -> None:
    service = AuditLogService(default_limit=2)
    for index in range(3):
        await service.append(
            action=AuditAction.UPDATE,
            entity_type=AuditEntityType.TASK,
            entity_id=TASK_ID,
            actor=ACTOR,
            metadata={"sequence": index},
        )
    await service.append(
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.TASK,
        entity_id="c" * 24,
        actor=ACTOR,
    )

    default = await service.query_for_task(TASK_ID)
    everything = await service.query_for_task(TASK_ID, limit=500)

    assert [entry.metadata["sequence"] for entry in default] == [2, 1]
    assert [entry.metadata["sequence"] for entry in everything] == [2, 1, 0]


async def test_append_failure_is_logged_and_swallowed(
    audit_store: AuditStore,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    async def _fail(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("mongo unavailable")

    monkeypatch.setattr(AuditEntry, "insert", _fail)

    with caplog.at_level(logging.ERROR, logger="taskhub.audit.service"):
        result = await AuditLogService().append(
            action=AuditAction.DELETE,
            entity_type=AuditEntityType.TASK,
            entity_id=TASK_ID,
            actor=ACTOR,
        )

    assert result is None
    assert any(record.getMessage() == "Failed to write audit entry" for record in caplog.records)
