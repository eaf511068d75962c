# store/api.py
from __future__ import annotations
from typing import Protocol, Optional

from .json_store import JsonFileStore


class TranslationStore(Protocol):
    # Upsert
    def upsert(
        self, file_name: str, row_number: int, text: str, *,
        sheet_name: Optional[str] = None, key: Optional[str] = None,
    ) -> None: ...
    # Read
    def read(
        self, file_name: str, row_number: int, *,
        sheet_name: Optional[str] = None, key: Optional[str] = None,
    ) -> str: ...
    def count(self, file_name: str) -> int: ...
    # lifecycle
    def close(self) -> None: ...


def make_store(dsn: str) -> TranslationStore:
    """
    Factory:
      - json:///path/to/dir -> JsonFileStore (rewrites <dir>/<file>.json in place)
      - memory://           -> MemoryStore (tests, dry runs)
    """
    if dsn.startswith("json:///"):
        return JsonFileStore(dsn.removeprefix("json:///"))

    if dsn.startswith("json://"):
        # relative form: json://data/json
        return JsonFileStore(dsn.removeprefix("json://"))

    if dsn.startswith("memory://"):
        # Lazy import to avoid a circular import
        from .memory_store import MemoryStore
        return MemoryStore()

    raise ValueError(f"Unsupported store DSN: {dsn}")
