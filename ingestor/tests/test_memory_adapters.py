import pytest

from ingestor.adapters.memory import MemoryKeyValueStore, MemoryVectorIndex
from ingestor.adapters.memory.vector_index import cosine_similarity
from ingestor.core.models.records import VectorRecord
from ingestor.tests.fakes import FakeClock


def _record(record_id, embedding, **metadata):
    return VectorRecord(id=record_id, embedding=embedding, metadata=metadata)


@pytest.mark.unit
class TestMemoryKeyValueStore:

    @pytest.mark.asyncio
    async def test_put_get_delete(self):
        kv = MemoryKeyValueStore()
        await kv.put("a", "1")
        assert await kv.get("a") == "1"
        await kv.delete("a")
        assert await kv.get("a") is None
        await kv.delete("missing")

    @pytest.mark.asyncio
    async def test_expiry(self):
        clock = FakeClock()
        kv = MemoryKeyValueStore(clock=clock)
        await kv.put("short", "x", ttl_seconds=10)
        await kv.put("forever", "y")

        clock.advance(9)
        assert await kv.get("short") == "x"
        clock.advance(1)
        assert await kv.get("short") is None
        clock.advance(10_000_000)
        assert await kv.get("forever") == "y"
        assert (await kv.get_stats())["keys"] == 1

    @pytest.mark.asyncio
    async def test_rewrite_extends_ttl(self):
        clock = FakeClock()
        kv = MemoryKeyValueStore(clock=clock)
        await kv.put("k", "1", ttl_seconds=10)
        clock.advance(8)
        await kv.put("k", "1", ttl_seconds=10)
        clock.advance(8)
        assert await kv.get("k") == "1"

    @pytest.mark.asyncio
    async def test_unread_expired_keys_are_swept(self):
        clock = FakeClock()
        kv = MemoryKeyValueStore(clock=clock)
        for i in range(5):
            await kv.put(f"old-{i}", "x", ttl_seconds=10)
        await kv.put("kept", "y")
        assert (await kv.get_stats())["keys"] == 6

        clock.advance(10)
        assert (await kv.get_stats())["keys"] == 1

        await kv.put("late", "z", ttl_seconds=5)
        clock.advance(5)
        await kv.put("next", "w")
        assert "late" not in kv._entries
        assert set(kv._entries) == {"kept", "next"}


@pytest.mark.unit
class TestMemoryVectorIndex:

    def test_cosine_similarity(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    @pytest.mark.asyncio
    async def test_query_orders_and_filters(self):
        index = MemoryVectorIndex()
        await index.upsert([
            _record("t_p_1", [1.0, 0.0], tenantId="t", projectId="p"),
            _record("t_p_2", [0.7, 0.7], tenantId="t", projectId="p"),
            _record("u_p_1", [1.0, 0.0], tenantId="u", projectId="p"),
        ])

        matches = await index.query([1.0, 0.0], top_k=5, filter={"tenantId": "t"})
        assert [m.id for m in matches] == ["t_p_1", "t_p_2"]
        assert matches[0].score > matches[1].score

        assert len(await index.query([1.0, 0.0], top_k=1)) == 1

    @pytest.mark.asyncio
    async def test_upsert_replaces_by_id(self):
        index = MemoryVectorIndex()
        await index.upsert([_record("a", [1.0], summary="old")])
        await index.upsert([_record("a", [1.0], summary="new")])
        assert (await index.get("a")).metadata["summary"] == "new"
        assert (await index.get_stats())["records"] == 1

    @pytest.mark.asyncio
    async def test_delete_where(self):
        index = MemoryVectorIndex()
        await index.upsert([
            _record("1", [1.0], tenantId="t", filePath="a.py"),
            _record("2", [1.0], tenantId="t", filePath="b.py"),
            _record("3", [1.0], tenantId="u", filePath="a.py"),
        ])
        assert await index.delete_where({"tenantId": "t", "filePath": "a.py"}) == 1
        assert await index.get("1") is None
        assert await index.get("3") is not None

    @pytest.mark.asyncio
    async def test_dimension(self):
        assert await MemoryVectorIndex().get_dimension() is None
        assert await MemoryVectorIndex(dimension=8).get_dimension() == 8
