from transhelper.cache import CorpusCache
from transhelper.models import Corpus, Entry


def _corpus(text: str) -> Corpus:
    return Corpus(name="E1", kind="csv", entries=(Entry(source_text=text),))


def test_get_or_load_loads_once():
    cache = CorpusCache()
    calls = []

    def loader():
        calls.append(1)
        return _corpus("Hello")

    first = cache.get_or_load("k", loader)
    second = cache.get_or_load("k", loader)
    assert first is second
    assert len(calls) == 1
    assert "k" in cache and len(cache) == 1 and cache.keys() == ["k"]


def test_reload_replaces_whole_corpus():
    cache = CorpusCache()
    old = cache.get_or_load("k", lambda: _corpus("old"))
    new = cache.reload("k", lambda: _corpus("new"))
    assert cache.get("k") is new
    assert old.entries[0].source_text == "old"   # earlier snapshot is untouched


def test_load_overtaken_by_invalidate_is_not_stored():
    cache = CorpusCache()

    def slow_loader():
        # a reload request lands while this fetch is still running
        cache.invalidate("k")
        return _corpus("stale")

    got = cache.get_or_load("k", slow_loader)
    assert got.entries[0].source_text == "stale"
    assert "k" not in cache

    fresh = cache.get_or_load("k", lambda: _corpus("fresh"))
    assert cache.get("k") is fresh


def test_stale_load_yields_to_newer_value():
    cache = CorpusCache()
    newer = _corpus("newer")

    def slow_loader():
        cache.invalidate()
        cache.put("k", newer)
        return _corpus("older")

    assert cache.get_or_load("k", slow_loader) is newer
    assert cache.get("k") is newer


def test_invalidate_all():
    cache = CorpusCache()
    cache.put("a", _corpus("a"))
    cache.put("b", _corpus("b"))
    cache.invalidate()
    assert len(cache) == 0 and cache.get("a") is None
