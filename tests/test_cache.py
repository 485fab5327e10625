"""Tests for cache key derivation and the file-backed result cache."""

import json
import time

import pytest

from virtualfit.services.cache import DEFAULT_TTL_SECONDS, ResultCache, derive_cache_key
from virtualfit.services.validation import validate_request
from tests.helpers import make_request_body

RESULT = {"generatedImageUrl": "/generated/1700000000000-abcdef12.png", "promptUsed": "prompt"}


# ---------------------------------------------------------------------------
# derive_cache_key
# ---------------------------------------------------------------------------

def test_cache_key_is_deterministic():
    first = derive_cache_key(validate_request(make_request_body()))
    second = derive_cache_key(validate_request(make_request_body()))
    assert first == second
    assert len(first) == 64


def test_cache_key_ignores_field_order():
    body = make_request_body()
    reordered = dict(reversed(list(body.items())))
    assert derive_cache_key(validate_request(body)) == derive_cache_key(
        validate_request(reordered)
    )


@pytest.mark.parametrize(
    "field,value",
    [
        ("clothingItemUrl", "https://images.example.com/shirts/red-shirt.png"),
        ("modelGender", "male"),
        ("modelBodyType", "slim"),
        ("modelAgeRange", "60+"),
        ("modelEthnicity", "mixed"),
        ("environmentDescription", "beach"),
        ("lightingStyle", "bright"),
        ("lensStyle", "casual"),
    ],
)
def test_cache_key_changes_with_any_field(field, value):
    base = derive_cache_key(validate_request(make_request_body()))
    changed = derive_cache_key(validate_request(make_request_body(**{field: value})))
    assert base != changed


# ---------------------------------------------------------------------------
# ResultCache
# ---------------------------------------------------------------------------

@pytest.mark.anyio
async def test_set_then_get_round_trip(tmp_path):
    cache = ResultCache(tmp_path / "cache")
    await cache.set("abc123", RESULT)
    assert await cache.get("abc123") == RESULT
    assert await cache.has("abc123") is True


@pytest.mark.anyio
async def test_get_missing_key_is_miss(tmp_path):
    cache = ResultCache(tmp_path / "cache")
    assert await cache.get("missing") is None
    assert await cache.has("missing") is False


@pytest.mark.anyio
async def test_entry_records_timestamp_and_default_expiry(tmp_path):
    cache = ResultCache(tmp_path / "cache")
    before = int(time.time() * 1000)
    await cache.set("abc123", RESULT)

    entry = json.loads((tmp_path / "cache" / "abc123.json").read_text())
    assert entry["data"] == RESULT
    assert entry["timestamp"] >= before
    assert entry["expiresAt"] - entry["timestamp"] == DEFAULT_TTL_SECONDS * 1000


@pytest.mark.anyio
async def test_ttl_none_never_expires(tmp_path):
    cache = ResultCache(tmp_path / "cache")
    await cache.set("forever", RESULT, ttl=None)

    entry = json.loads((tmp_path / "cache" / "forever.json").read_text())
    assert entry["expiresAt"] is None
    assert await cache.get("forever") == RESULT


@pytest.mark.anyio
async def test_cache_without_default_ttl(tmp_path):
    cache = ResultCache(tmp_path / "cache", default_ttl=None)
    await cache.set("forever", RESULT)
    entry = json.loads((tmp_path / "cache" / "forever.json").read_text())
    assert entry["expiresAt"] is None


@pytest.mark.anyio
async def test_expired_entry_is_a_miss_and_evicted(tmp_path):
    cache = ResultCache(tmp_path / "cache")
    path = tmp_path / "cache" / "stale.json"
    path.write_text(
        json.dumps({"data": RESULT, "timestamp": 1000, "expiresAt": 2000}), encoding="utf-8"
    )

    assert await cache.get("stale") is None
    assert await cache.has("stale") is False

    await cache.aclose()
    assert not path.exists()


@pytest.mark.anyio
async def test_negative_ttl_expires_immediately(tmp_path):
    cache = ResultCache(tmp_path / "cache")
    await cache.set("abc123", RESULT, ttl=-1)
    assert await cache.get("abc123") is None
    await cache.aclose()


@pytest.mark.anyio
async def test_delete(tmp_path):
    cache = ResultCache(tmp_path / "cache")
    await cache.set("abc123", RESULT)
    assert await cache.delete("abc123") is True
    assert await cache.get("abc123") is None
    assert await cache.delete("abc123") is False


@pytest.mark.anyio
async def test_clear_removes_all_entries(tmp_path):
    cache = ResultCache(tmp_path / "cache")
    for key in ("one", "two", "three"):
        await cache.set(key, RESULT)

    assert await cache.clear() is True
    assert list((tmp_path / "cache").iterdir()) == []
    assert await cache.has("one") is False


@pytest.mark.anyio
async def test_corrupt_entry_is_a_miss(tmp_path):
    """Read failures degrade to a miss instead of raising."""
    cache = ResultCache(tmp_path / "cache")
    (tmp_path / "cache" / "broken.json").write_text("{not json", encoding="utf-8")
    assert await cache.get("broken") is None


@pytest.mark.anyio
async def test_unserializable_value_is_not_stored(tmp_path):
    cache = ResultCache(tmp_path / "cache")
    await cache.set("abc123", {"value": object()})
    assert await cache.get("abc123") is None


@pytest.mark.anyio
async def test_unusable_cache_directory_fails_open(tmp_path):
    """A cache rooted at a regular file never raises."""
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    cache = ResultCache(blocker)

    await cache.set("abc123", RESULT)
    assert await cache.get("abc123") is None
    assert await cache.delete("abc123") is False
    assert await cache.clear() is False


@pytest.mark.anyio
@pytest.mark.parametrize(
    "entry",
    [
        {"data": RESULT, "timestamp": 1, "expiresAt": "soon"},
        {"data": RESULT, "timestamp": "yesterday", "expiresAt": None},
        {"data": RESULT, "timestamp": 1},
        {"timestamp": 1, "expiresAt": None},
        ["not", "an", "entry"],
    ],
)
async def test_malformed_entry_is_a_miss(tmp_path, entry):
    """Entries with the wrong shape degrade to a miss instead of raising."""
    cache = ResultCache(tmp_path / "cache")
    (tmp_path / "cache" / "odd.json").write_text(json.dumps(entry), encoding="utf-8")
    assert await cache.get("odd") is None
    assert await cache.has("odd") is False
