import asyncio

from tagtracker.models import And, Equals, Or, Range, matches, to_mongo, where
from tagtracker.services import MemoryStore


def test_mongo_filter_shapes():
    assert to_mongo(None) == {}
    assert to_mongo(Equals("sensor_id", "a")) == {"sensor_id": "a"}
    assert to_mongo(Range("timestamp", gte=3)) == {"timestamp": {"$gte": 3}}
    assert to_mongo(Range("timestamp", lte=7)) == {"timestamp": {"$lte": 7}}
    assert to_mongo(Range("timestamp", gte=3, lte=7)) == {
        "$and": [{"timestamp": {"$gte": 3}}, {"timestamp": {"$lte": 7}}]
    }


def test_owner_sensors_with_range_merge_into_one_document():
    predicate = And([
        Or([Equals("sensor_id", "a"), Equals("sensor_id", "b")]),
        Range("timestamp", gte=3, lte=7),
    ])
    assert to_mongo(predicate) == {
        "$or": [{"sensor_id": "a"}, {"sensor_id": "b"}],
        "$and": [{"timestamp": {"$gte": 3}}, {"timestamp": {"$lte": 7}}],
    }


def test_clashing_keys_fall_back_to_and():
    predicate = And([Range("timestamp", gte=3), Range("timestamp", lte=7)])
    assert to_mongo(predicate) == {"$and": [{"timestamp": {"$gte": 3}}, {"timestamp": {"$lte": 7}}]}


def test_where_builds_equalities():
    assert where(owner="acme") == Equals("owner", "acme")
    assert to_mongo(where(sensor_id="s", owner="acme")) == {"sensor_id": "s", "owner": "acme"}


def test_matches():
    doc = {"sensor_id": "a", "timestamp": 5}
    assert matches(Range("timestamp", gte=5, lte=5), doc)
    assert not matches(Range("timestamp", gte=6), doc)
    assert matches(Or([Equals("sensor_id", "x"), Equals("sensor_id", "a")]), doc)
    assert not matches(Or([]), doc)
    assert not matches(Equals("missing", None), doc)
    assert not matches(Range("missing", gte=0), doc)


def test_memory_store_sort_and_mutations():
    store = MemoryStore({"notifications": [
        {"tag_id": "t", "sensor_id": "a", "timestamp": 30},
        {"tag_id": "t", "sensor_id": "b", "timestamp": 10},
        {"tag_id": "t", "sensor_id": "c", "timestamp": 20},
    ]})

    async def scenario():
        docs = await store.find("notifications", sort=[("timestamp", 1)])
        assert [d["timestamp"] for d in docs] == [10, 20, 30]

        docs = await store.find("notifications", sort=[("timestamp", -1)])
        assert [d["timestamp"] for d in docs] == [30, 20, 10]

        result = await store.update("notifications", where(sensor_id="a"), {"tag_id": "u"})
        assert (result.matched_count, result.modified_count) == (1, 1)
        result = await store.update("notifications", where(sensor_id="a"), {"tag_id": "u"})
        assert (result.matched_count, result.modified_count) == (1, 0)

        result = await store.delete_many("notifications", Range("timestamp", lte=20))
        assert result.deleted_count == 2
        assert await store.find("notifications") == [{"tag_id": "u", "sensor_id": "a", "timestamp": 30}]

    asyncio.run(scenario())


def test_memory_store_returns_copies():
    store = MemoryStore({"tags": [{"tag_id": "t", "owner": "o"}]})

    async def scenario():
        doc = await store.find_one("tags", where(tag_id="t"))
        doc["owner"] = "changed"
        assert (await store.find_one("tags", where(tag_id="t")))["owner"] == "o"

    asyncio.run(scenario())
