from dither_studio.infrastructure import cache as cache_module
from dither_studio.infrastructure.cache import ResponseCache, cache_key


def test_response_cache_eviction_limit():
    cache = ResponseCache(ttl=60, max_entries=16)

    # Fill the cache beyond the limit to trigger eviction logic.
    for idx in range(20):
        cache.put(f"key-{idx}", b"data")

    assert len(cache) == 16

    # Ensure the oldest entries are evicted first
    assert cache.get("key-0") is None
    assert cache.get("key-3") is None
    assert cache.get("key-4") == b"data"


def test_response_cache_expires_entries(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(cache_module.time, "time", lambda: now[0])
    cache = ResponseCache(ttl=5, max_entries=4)

    cache.put("key", b"payload")
    now[0] += 4
    assert cache.get("key") == b"payload"

    now[0] += 2
    assert cache.get("key") is None
    assert len(cache) == 0


def test_response_cache_disabled_with_zero_entries():
    cache = ResponseCache(ttl=60, max_entries=0)

    cache.put("key", b"payload")

    assert cache.get("key") is None


def test_cache_key_depends_on_image_and_settings():
    settings = {"algorithm": "ordered", "palette": "bw"}

    assert cache_key(b"img", settings) == cache_key(b"img", dict(reversed(list(settings.items()))))
    assert cache_key(b"img", settings) != cache_key(b"img2", settings)
    assert cache_key(b"img", settings) != cache_key(b"img", {**settings, "palette": "2bit"})
