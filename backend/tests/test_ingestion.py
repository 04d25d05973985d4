import asyncio
import json

from tagtracker.models import where
from tagtracker.services import MemoryStore, NotificationIngestor


def payload(**fields) -> bytes:
    return json.dumps(fields).encode("utf-8")


def fixed_clock(value=123456):
    return lambda: value


def make_store() -> MemoryStore:
    return MemoryStore({
        "sensors": [
            {"sensor_id": "door-1", "map_id": "m", "sector_id": "lobby", "owner": "acme"},
        ],
    })


def test_stores_notification_with_our_timestamp():
    store = make_store()
    ingestor = NotificationIngestor(store, clock=fixed_clock(555))

    async def scenario():
        stored = await ingestor.handle_message(
            "notifications", payload(tag_id="badge-9", sensor_id="door-1", timestamp=1, extra="x")
        )
        return stored, await store.find("notifications")

    stored, docs = asyncio.run(scenario())
    assert stored is not None
    assert stored.timestamp == 555
    assert docs == [{"tag_id": "badge-9", "sensor_id": "door-1", "timestamp": 555}]


def test_unknown_sensor_is_dropped():
    store = make_store()
    ingestor = NotificationIngestor(store, clock=fixed_clock())

    async def scenario():
        stored = await ingestor.handle_message("notifications", payload(tag_id="badge-9", sensor_id="ghost"))
        return stored, await store.find("notifications"), await store.find("tags")

    stored, notifications, tags = asyncio.run(scenario())
    assert stored is None
    assert notifications == []
    assert tags == []


def test_tag_created_once_per_owner():
    store = make_store()
    ingestor = NotificationIngestor(store, clock=fixed_clock())

    async def scenario():
        await ingestor.handle_message("notifications", payload(tag_id="badge-9", sensor_id="door-1"))
        await ingestor.handle_message("notifications", payload(tag_id="badge-9", sensor_id="door-1"))
        return await store.find("tags"), await store.find("notifications")

    tags, notifications = asyncio.run(scenario())
    assert tags == [{"tag_id": "badge-9", "name": "badge-9", "owner": "acme"}]
    assert len(notifications) == 2


def test_same_tag_id_is_separate_per_owner():
    store = make_store()
    ingestor = NotificationIngestor(store, clock=fixed_clock())

    async def scenario():
        await store.insert("sensors", {"sensor_id": "gx-1", "map_id": "hq", "sector_id": "hall", "owner": "globex"})
        await ingestor.handle_message("notifications", payload(tag_id="badge-9", sensor_id="door-1"))
        await ingestor.handle_message("notifications", payload(tag_id="badge-9", sensor_id="gx-1"))
        return (
            await store.find("tags", where(owner="acme")),
            await store.find("tags", where(owner="globex")),
        )

    acme_tags, globex_tags = asyncio.run(scenario())
    assert len(acme_tags) == 1
    assert len(globex_tags) == 1


def test_existing_tag_keeps_its_name():
    store = make_store()
    ingestor = NotificationIngestor(store, clock=fixed_clock())

    async def scenario():
        await store.insert("tags", {"tag_id": "badge-9", "name": "Alice", "owner": "acme"})
        created = await ingestor.ensure_tag("badge-9", "acme")
        return created, await store.find("tags")

    created, tags = asyncio.run(scenario())
    assert created is False
    assert tags == [{"tag_id": "badge-9", "name": "Alice", "owner": "acme"}]


def test_bad_payloads_are_dropped():
    store = make_store()
    ingestor = NotificationIngestor(store, clock=fixed_clock())
    bad = [
        b"not json",
        b"\xff\xfe",
        b"[1, 2, 3]",
        payload(tag_id="badge-9"),
        payload(sensor_id="door-1"),
        payload(tag_id="", sensor_id="door-1"),
    ]

    async def scenario():
        results = [await ingestor.handle_message("notifications", body) for body in bad]
        return results, await store.find("notifications")

    results, notifications = asyncio.run(scenario())
    assert results == [None] * len(bad)
    assert notifications == []


class BrokenStore(MemoryStore):
    async def insert(self, collection, doc):
        raise RuntimeError("database is down")


def test_store_errors_are_swallowed():
    store = BrokenStore({"sensors": [{"sensor_id": "door-1", "map_id": "m", "sector_id": "s", "owner": "acme"}]})
    ingestor = NotificationIngestor(store, clock=fixed_clock())

    result = asyncio.run(ingestor.handle_message("notifications", payload(tag_id="t", sensor_id="door-1")))
    assert result is None
