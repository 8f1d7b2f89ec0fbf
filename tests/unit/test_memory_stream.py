from __future__ import annotations

import threading

import numpy as np
import pytest

from memory_recall.core.memory_stream import MemoryStream
from memory_recall.errors import OutOfOrderObservation


def test_append_assigns_ids_sequence_and_defaults():
    s = MemoryStream()
    a = s.add_observation("first", timestamp=10.0)
    b = s.add_observation("second", timestamp=10.0, importance=3.0, tags=["x"])

    assert (a.sequence, b.sequence) == (0, 1)
    assert a.id != b.id
    assert a.importance == 1.0
    assert a.memory_type == "observation"
    assert b.tags == ("x",)
    assert not a.has_embedding
    assert len(s) == 2
    assert [m.content for m in s] == ["first", "second"]
    assert s.get_memory(b.id) is b
    assert s.get_memory("missing") is None


def test_default_timestamp_never_goes_backwards():
    s = MemoryStream()
    future = s.add_observation("set in the future", timestamp=4_000_000_000.0)
    now = s.add_observation("no timestamp")
    assert now.created_at == future.created_at


def test_out_of_order_timestamp_rejected():
    s = MemoryStream()
    s.add_observation("later", timestamp=100.0)
    with pytest.raises(OutOfOrderObservation):
        s.add_observation("earlier", timestamp=50.0)
    assert len(s) == 1


def test_invalid_importance_and_type():
    s = MemoryStream()
    with pytest.raises(ValueError):
        s.add_observation("x", timestamp=1.0, importance=-1.0)
    with pytest.raises(ValueError):
        s._append("x", 1.0, 1.0, "dream", ())


def test_recent_observations_most_recent_first():
    s = MemoryStream()
    for i in range(5):
        s.add_observation(f"m{i}", timestamp=float(i))
    assert [m.content for m in s.get_recent_observations(3)] == ["m4", "m3", "m2"]
    assert len(s.get_recent_observations(50)) == 5
    assert s.get_recent_observations(0) == []


def test_reflections_and_plans():
    s = MemoryStream()
    a = s.add_observation("saw smoke", timestamp=1.0)
    b = s.add_observation("smelled burning", timestamp=2.0)
    r = s.add_reflection("there is a fire nearby", timestamp=3.0, importance=8.0, based_on=[a.id, b.id])
    p = s.add_plan("leave through the west door", timestamp=4.0)

    assert r.memory_type == "reflection"
    assert "reflection" in r.tags
    assert f"based_on:{a.id},{b.id}" in r.tags
    assert p.memory_type == "plan"
    assert s.get_memories_by_type("reflection") == [r]
    assert s.get_memories_by_tag("plan") == [p]
    assert s.get_memories_in_time_range(2.0, 3.0) == [b, r]


def test_embedding_set_once():
    s = MemoryStream()
    m = s.add_observation("x", timestamp=1.0)
    assert s.get_memories_needing_embeddings() == [m]

    assert s.set_memory_embedding(m.id, np.ones(4)) is True
    assert s.set_memory_embedding(m.id, np.zeros(4)) is False
    assert np.array_equal(m.embedding, np.ones(4, dtype=np.float32))
    assert not m.embedding.flags.writeable
    assert s.get_memories_needing_embeddings() == []
    assert s.set_memory_embedding("missing", np.ones(4)) is False


def test_statistics():
    s = MemoryStream()
    s.add_observation("a", timestamp=1.0, importance=2.0)
    s.add_plan("b", timestamp=2.0, importance=5.0)
    st = s.get_statistics()
    assert st["total"] == 2
    assert st["by_type"] == {"observation": 1, "reflection": 0, "plan": 1}
    assert st["with_embeddings"] == 0
    assert st["avg_importance"] == 3.5


def test_concurrent_appends_keep_sequence_dense():
    s = MemoryStream()

    def writer(tag):
        for i in range(100):
            s.add_observation(f"{tag}-{i}")

    threads = [threading.Thread(target=writer, args=(t,)) for t in "abcd"]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    items = s.get_all_memories()
    assert [m.sequence for m in items] == list(range(400))
    stamps = [m.created_at for m in items]
    assert stamps == sorted(stamps)


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_timestamp_rejected(bad):
    s = MemoryStream()
    s.add_observation("a", timestamp=1.0)
    with pytest.raises(ValueError):
        s.add_observation("b", timestamp=bad)
    with pytest.raises(OutOfOrderObservation):
        s.add_observation("c", timestamp=0.5)
    assert [m.created_at for m in s.get_all_memories()] == [1.0]
