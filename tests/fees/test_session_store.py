"""Memory session store tests.

Invariants:
    - Sessions are isolated
    - Stored values cannot be mutated through references
"""

import pytest
from kungfu import Ok

from cartcore import fees as F


@pytest.mark.asyncio
async def test_get_missing_is_none(session_store):
    assert await session_store.get("s1", "k") == Ok(None)


@pytest.mark.asyncio
async def test_set_get_delete(session_store):
    await session_store.set("s1", "k", {"a": 1})
    assert await session_store.get("s1", "k") == Ok({"a": 1})
    assert await session_store.delete("s1", "k") == Ok(True)
    assert await session_store.delete("s1", "k") == Ok(False)
    assert await session_store.get("s1", "k") == Ok(None)


@pytest.mark.asyncio
async def test_sessions_are_isolated(session_store):
    await session_store.set("s1", "k", 1)
    await session_store.set("s2", "k", 2)
    assert await session_store.clear("s1") == Ok(1)
    assert await session_store.get("s1", "k") == Ok(None)
    assert await session_store.get("s2", "k") == Ok(2)


@pytest.mark.asyncio
async def test_values_are_copied(session_store):
    value = {"fingerprint": "abc"}
    await session_store.set("s1", "k", value)
    value["fingerprint"] = "changed"

    stored = (await session_store.get("s1", "k")).unwrap()
    stored["fingerprint"] = "changed again"

    assert await session_store.get("s1", "k") == Ok({"fingerprint": "abc"})


def test_baseline_dict_roundtrip():
    baseline = F.RecalcBaseline("abc", force=True, fee_applied=True)
    assert F.RecalcBaseline.from_dict(baseline.to_dict()) == baseline


@pytest.mark.parametrize("raw", ["garbage", 3, ["abc"], {"fingerprint": 42}])
def test_baseline_rejects_foreign_data(raw):
    with pytest.raises(ValueError):
        F.RecalcBaseline.from_dict(raw)
