# transhelper/engine.py
from __future__ import annotations

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from . import config as CFG
from .cache import CorpusCache
from .models import Corpus, Entry, MatchResult, Span
from .loader import list_files, load_codex, load_csv, load_json, load_xlsx
from .match import extract_placeholder_candidates, match_codex, search_entries, suggest
from .session import TranslationSession
from .store import TranslationStore, make_store

log = logging.getLogger(__name__)

Source = Tuple[str, str]   # (kind, file name), e.g. ("csv", "E1.csv")

_KINDS = {
    "csv": (CFG.CSV_DIR, ".csv", load_csv),
    "json": (CFG.JSON_DIR, ".json", load_json),
    "xlsx": (CFG.XLSX_DIR, ".xlsx", load_xlsx),
}


def parse_source(text: str) -> Source:
    """"csv:E1.csv" -> ("csv", "E1.csv")."""
    kind, sep, name = text.partition(":")
    if not sep or kind not in _KINDS or not name:
        raise ValueError(f"source must look like kind:name with kind in {sorted(_KINDS)}: {text!r}")
    return kind, name


@dataclass
class Suggestions:
    matches: List[MatchResult] = field(default_factory=list)
    spans: List[Span] = field(default_factory=list)
    placeholders: List[str] = field(default_factory=list)
    unavailable: List[str] = field(default_factory=list)
    codex: List[Entry] = field(default_factory=list)


class Engine:
    """
    Thin orchestration layer that glues together:
      - corpus loading (CSV / JSON / XLSX under the data root),
      - an explicit CorpusCache (reload = wholesale replace),
      - the pure match functions (match.py),
      - a TranslationStore for writing drafts back.

    Public API (used by CLI/Flask):
      * open(data_root, store_dsn): resolve folders, attach a store
      * list_files(kind) / corpus(kind, name) / reload(...)
      * suggest(query, sources): ranked matches + spans + placeholders (+ codex notes)
      * codex(): lore notes from <data_root>/codex
      * persist(file, row, text): upsert a translation
      * shutdown(): close underlying resources

    Store DSNs (via store.make_store):
      - "json:///path/to/data/json"   (default: <data_root>/data/json)
      - "memory://"
    """

    # ------------- lifecycle -------------

    def __init__(self) -> None:
        self.root: Optional[Path] = None
        self.cache = CorpusCache()
        self._store: Optional[TranslationStore] = None

    def open(
        self,
        data_root: Optional[str] = None,
        *,
        store_dsn: Optional[str] = None,   # e.g., "json:///srv/data/json" or "memory://"
        verbose: bool = False,
    ) -> "Engine":
        if verbose:
            logging.basicConfig(level=logging.INFO)
            os.environ["TRANSHELPER_VERBOSE"] = "1"
            CFG.VERBOSE = True

        self.root = Path(data_root).resolve() if data_root else CFG.DATA_ROOT
        dsn = store_dsn or f"json:///{self.dir_for('json')}"
        log.info("Opening engine at %s (store=%s)", self.root, dsn)
        self._store = make_store(dsn)
        return self

    def shutdown(self) -> None:
        try:
            if self._store:
                self._store.close()
        finally:
            self._store = None
            self.cache.invalidate()
            log.info("Engine shutdown complete")

    # ------------- corpora -------------

    def _require_open(self) -> Path:
        if self.root is None:
            raise RuntimeError("Engine not initialized. Call open() first.")
        return self.root

    def dir_for(self, kind: str) -> Path:
        root = self._require_open()
        if kind not in _KINDS:
            raise ValueError(f"unknown corpus kind: {kind!r}")
        return root / _KINDS[kind][0]

    def path_for(self, kind: str, name: str) -> Path:
        """Resolve a file name inside the kind's folder; names may omit the suffix."""
        folder = self.dir_for(kind)
        suffix = _KINDS[kind][1]
        if not name.lower().endswith(suffix):
            name = f"{name}{suffix}"
        path = (folder / name).resolve()
        if path.parent != folder.resolve():
            raise ValueError(f"file outside {folder.name}/: {name!r}")
        return path

    def list_files(self, kind: str) -> List[str]:
        return list_files(self.dir_for(kind), _KINDS[kind][1])

    def corpus(self, kind: str, name: str, *, sheet: Optional[str] = None) -> Corpus:
        """Cached load; raises FileNotFoundError / ValueError when the file is unusable."""
        path = self.path_for(kind, name)
        loader = _KINDS[kind][2]
        return self.cache.get_or_load((kind, path.name, sheet), lambda: loader(path, sheet=sheet))

    def reload(self, kind: Optional[str] = None, name: Optional[str] = None) -> int:
        """Invalidate one file (all its sheet filters), one kind, or everything. Returns keys dropped."""
        if kind is None:
            n = len(self.cache)
            self.cache.invalidate()
            return n
        if kind == "codex":
            fname = None
        elif kind not in _KINDS:
            raise ValueError(f"unknown corpus kind: {kind!r}")
        else:
            fname = self.path_for(kind, name).name if name else None
        dropped = 0
        for key in self.cache.keys():
            k_kind, k_name, _ = key
            if k_kind == kind and (fname is None or k_name == fname):
                self.cache.invalidate(key)
                dropped += 1
        return dropped

    def codex(self) -> Corpus:
        """Lore notes under <data_root>/codex; FileNotFoundError when the folder is missing."""
        folder = self._require_open() / CFG.CODEX_DIR
        return self.cache.get_or_load(("codex", CFG.CODEX_DIR, None), lambda: load_codex(folder))

    def _try_corpus(self, source: Source, unavailable: List[str]) -> Optional[Corpus]:
        kind, name = source
        try:
            return self.corpus(kind, name)
        except (OSError, ValueError) as exc:
            log.warning("Corpus %s:%s unavailable: %s", kind, name, exc)
            unavailable.append(f"{kind}:{name}")
            return None

    # ------------- query -------------

    # /* ~~~ Match a row's text against every requested corpus ~~~ */
    def suggest(
        self,
        query: str,
        sources: Iterable[Source],
        *,
        characters: Optional[Source] = None,
        limit: int = CFG.MAX_SUGGESTIONS,
        short_names: bool = False,
        codex: bool = False,
    ) -> Suggestions:
        out = Suggestions()
        corpora: List[Sequence[Entry]] = []
        for src in sources:
            c = self._try_corpus(src, out.unavailable)
            if c is not None:
                corpora.append(c.entries)

        ranked, spans = suggest(query, corpora)
        out.matches = ranked[:limit] if limit else ranked
        out.spans = spans

        char_entries: Sequence[Entry] = ()
        if characters is not None:
            c = self._try_corpus(characters, out.unavailable)
            if c is not None:
                char_entries = c.entries
        out.placeholders = extract_placeholder_candidates(query, char_entries, short_names=short_names)

        if codex:
            try:
                out.codex = match_codex(query, self.codex().entries)
            except OSError as exc:
                log.warning("Codex unavailable: %s", exc)
                out.unavailable.append("codex")
        return out

    def search(
        self,
        files: Iterable[str],
        term: str = "",
        context: Optional[str] = None,
        max_results: int = CFG.MAX_SUGGESTIONS,
    ) -> List[Tuple[str, List[Entry]]]:
        """Consultation search over CSV files; files that fail to load are skipped."""
        results: List[Tuple[str, List[Entry]]] = []
        skipped: List[str] = []
        for name in files:
            c = self._try_corpus(("csv", name), skipped)
            if c is None:
                continue
            hits = search_entries(c.entries, term, context, max_results)
            if hits:
                results.append((name, hits))
        return results

    # ------------- sessions / persistence -------------

    def session(self, kind: str, name: str, *, sheet: Optional[str] = None) -> TranslationSession:
        c = self.corpus(kind, name, sheet=sheet)
        return TranslationSession(c.entries, file_name=c.name)

    def persist(
        self,
        file_name: str,
        row_number: int,
        text: str,
        *,
        sheet_name: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        if self._store is None:
            raise RuntimeError("Engine not initialized. Call open() first.")
        self._store.upsert(file_name, row_number, text, sheet_name=sheet_name, key=key)
        # the JSON corpus on disk changed: next read must see it
        self.reload("json", file_name)
