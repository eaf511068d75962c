# store/memory_store.py
from __future__ import annotations
from typing import Dict, Optional, Tuple
from .api import TranslationStore

_Key = Tuple[str, Optional[str], int, Optional[str]]


class MemoryStore(TranslationStore):
    """Simple in-memory upsert store (useful for tests or ephemeral runs)."""
    def __init__(self) -> None:
        self._rows: Dict[_Key, str] = {}

    def upsert(
        self, file_name: str, row_number: int, text: str, *,
        sheet_name: Optional[str] = None, key: Optional[str] = None,
    ) -> None:
        self._rows[(file_name, sheet_name, int(row_number), key or None)] = text

    def read(
        self, file_name: str, row_number: int, *,
        sheet_name: Optional[str] = None, key: Optional[str] = None,
    ) -> str:
        wanted = (file_name, sheet_name, int(row_number), key or None)
        if wanted in self._rows:
            return self._rows[wanted]
        # unspecified sheet or key: first written row that agrees on the rest wins
        for (f, sh, r, k), text in self._rows.items():
            if f != file_name or r != int(row_number):
                continue
            if sheet_name is not None and sh != sheet_name:
                continue
            if key and k != key:
                continue
            return text
        raise KeyError(row_number)

    def count(self, file_name: str) -> int:
        return sum(1 for (f, _, _, _) in self._rows if f == file_name)

    def close(self) -> None:
        self._rows.clear()
