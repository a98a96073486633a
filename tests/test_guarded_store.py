import pytest

from permission_bridge.core.event_bus import EventBus
from permission_bridge.pipelines.guarded_store import GuardedStore
from permission_bridge.protocol import events_v1
from permission_bridge.protocol.errors import AccessDenied, DocumentNotFound, StorePermissionError
from permission_bridge.store.memory_store import InMemoryDocumentStore, user_scoped_rules


def _guarded():
    bus = EventBus()
    published = []
    bus.subscribe(events_v1.PERMISSION_ERROR, published.append)
    memory = InMemoryDocumentStore(rules=user_scoped_rules())
    memory.sign_in("7")
    return GuardedStore(bus, memory), published


@pytest.mark.asyncio
async def test_allowed_calls_pass_through_silently():
    store, published = _guarded()

    doc_id = await store.create("users/7/todos", {"title": "buy clay"})
    await store.update(f"users/7/todos/{doc_id}", {"done": True})
    docs = await store.list("users/7/todos")

    assert docs[0].data == {"title": "buy clay", "done": True}
    assert published == []


@pytest.mark.asyncio
async def test_denied_read_publishes_then_reraises_original():
    store, published = _guarded()

    with pytest.raises(AccessDenied) as excinfo:
        await store.list("users/42/todos")

    assert len(published) == 1
    error = published[0]
    assert isinstance(error, StorePermissionError)
    assert error.path == "users/42/todos"
    assert error.operation == "list"
    assert error.context.auth == {"uid": "7"}
    assert error.context.request_resource_data is None
    assert error.cause is excinfo.value
    assert error.__cause__ is excinfo.value


@pytest.mark.asyncio
async def test_denied_write_carries_request_data():
    store, published = _guarded()

    with pytest.raises(AccessDenied):
        await store.create("stories", {"title": "Kalamkari", "commentCount": 0})

    context = published[0].context
    assert context.operation == "create"
    assert context.request_resource_data == {"title": "Kalamkari", "commentCount": 0}
    assert '"commentCount": 0' in str(published[0])


@pytest.mark.asyncio
async def test_each_denied_operation_is_reported():
    store, published = _guarded()

    for call in (
        store.get("users/42"),
        store.set("users/42", {"name": "x"}),
        store.update("users/42", {"name": "x"}),
        store.delete("users/42"),
    ):
        with pytest.raises(AccessDenied):
            await call

    assert [e.operation for e in published] == ["get", "write", "update", "delete"]


@pytest.mark.asyncio
async def test_other_store_errors_are_not_published():
    store, published = _guarded()

    with pytest.raises(DocumentNotFound):
        await store.update("users/7/todos/missing", {"done": True})

    assert published == []


@pytest.mark.asyncio
async def test_custom_channel():
    bus = EventBus()
    seen = []
    bus.subscribe("audit", seen.append)
    store = GuardedStore(bus, InMemoryDocumentStore(rules=lambda request: False), channel="audit")

    with pytest.raises(AccessDenied):
        await store.get("stories/1")

    assert len(seen) == 1
