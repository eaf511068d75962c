from __future__ import annotations
import logging
import threading
from typing import Callable, Dict, Hashable, List, Optional

from .models import Corpus

log = logging.getLogger(__name__)

Loader = Callable[[], Corpus]


class CorpusCache:
    """
    Loaded corpora keyed by (kind, name).

    Values are immutable Corpus snapshots. A (re)load swaps the whole mapping
    slot under a lock, so readers always see either the old or the new corpus.
    Each invalidate bumps a per-key generation; a load that started before the
    bump is discarded when it finishes (last fetch wins).
    """

    def __init__(self) -> None:
        self._items: Dict[Hashable, Corpus] = {}
        self._generation: Dict[Hashable, int] = {}
        self._lock = threading.Lock()

    # ------------- read -------------

    def get(self, key: Hashable) -> Optional[Corpus]:
        return self._items.get(key)

    def keys(self) -> List[Hashable]:
        with self._lock:
            return list(self._items)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    # ------------- write -------------

    def put(self, key: Hashable, corpus: Corpus) -> None:
        with self._lock:
            self._items[key] = corpus

    def get_or_load(self, key: Hashable, loader: Loader) -> Corpus:
        hit = self._items.get(key)
        if hit is not None:
            return hit
        return self._load(key, loader)

    def reload(self, key: Hashable, loader: Loader) -> Corpus:
        self.invalidate(key)
        return self._load(key, loader)

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Drop one corpus, or all of them when key is None."""
        with self._lock:
            keys = list(self._items) if key is None else [key]
            for k in keys:
                self._items.pop(k, None)
                self._generation[k] = self._generation.get(k, 0) + 1
            if key is None:
                # bump keys that are only mid-load too
                for k in self._generation:
                    if k not in keys:
                        self._generation[k] += 1
        log.info("Invalidated corpus cache: %s", "all" if key is None else key)

    # ------------- internals -------------

    def _load(self, key: Hashable, loader: Loader) -> Corpus:
        with self._lock:
            gen = self._generation.setdefault(key, 0)
        corpus = loader()
        with self._lock:
            if self._generation.get(key, 0) != gen:
                log.info("Discarding stale load for %s", key)
                current = self._items.get(key)
                return current if current is not None else corpus
            self._items[key] = corpus
        return corpus
