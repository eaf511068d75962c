# store/json_store.py
from __future__ import annotations
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

from .. import config as CFG

log = logging.getLogger(__name__)

_TRANSLATED_KEYS = ("translatedText", "translatedDutch")


def _translated_key(entry: dict) -> str:
    for k in _TRANSLATED_KEYS:
        if k in entry:
            return k
    return CFG.JSON_TRANSLATED_KEY


def _iter_sheets(doc: Any):
    if isinstance(doc, dict) and isinstance(doc.get("sheets"), list):
        for sh in doc["sheets"]:
            if isinstance(sh, dict) and isinstance(sh.get("entries"), list):
                yield sh.get("sheetName") or sh.get("name"), sh["entries"]
    elif isinstance(doc, dict) and isinstance(doc.get("entries"), list):
        yield doc.get("sheetName"), doc["entries"]


def _find(doc: Any, row_number: int, sheet_name: Optional[str], key: Optional[str] = None) -> Optional[dict]:
    for name, entries in _iter_sheets(doc):
        if sheet_name is not None and name != sheet_name:
            continue
        for entry in entries:
            if not isinstance(entry, dict) or "data" in entry:
                continue
            if entry.get("rowNumber") != row_number:
                continue
            # entries written without a key accept any key
            if key and entry.get("key", key) != key:
                continue
            return entry
    return None


def _find_overview_cell(doc: Any, key: Optional[str]) -> Optional[dict]:
    """
    Names overview kept as raw rows ({"rowNumber", "data": [{"column", "value"}]}):
    key "Character Names:B" addresses column B of that category's translated row.
    """
    category, _, column = (key or "").partition(":")
    pair = CFG.NAMES_ROWS.get(category)
    if pair is None or not column:
        return None
    for name, entries in _iter_sheets(doc):
        if name != CFG.NAMES_SHEET:
            continue
        for entry in entries:
            if isinstance(entry, dict) and entry.get("rowNumber") == pair[1] and isinstance(entry.get("data"), list):
                for cell in entry["data"]:
                    if isinstance(cell, dict) and cell.get("column") == column:
                        return cell
    return None


class JsonFileStore:
    """
    Writes translations back into <root>/<file>.json.
    Each upsert is read-modify-write of the whole document, replaced atomically
    (temp file + os.replace). Concurrent writers: last write wins.
    """

    def __init__(self, root: str) -> None:
        self.root = Path(root)
        self._lock = threading.Lock()

    def _path(self, file_name: str) -> Path:
        name = file_name.removesuffix(".json")
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise ValueError(f"invalid file name: {file_name!r}")
        return self.root / f"{name}.json"

    def _load(self, path: Path) -> Any:
        if not path.is_file():
            raise FileNotFoundError(str(path))
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _save(self, path: Path, doc: Any) -> None:
        tmp = path.with_name(f"{path.name}.tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(doc, f, ensure_ascii=False, indent=2)
        os.replace(tmp, path)

    # ---- Upsert ----
    def upsert(
        self, file_name: str, row_number: int, text: str, *,
        sheet_name: Optional[str] = None, key: Optional[str] = None,
    ) -> None:
        path = self._path(file_name)
        with self._lock:
            doc = self._load(path)
            entry = _find(doc, int(row_number), sheet_name, key)
            if entry is not None:
                entry[_translated_key(entry)] = text
            else:
                cell = _find_overview_cell(doc, key)
                if cell is None:
                    raise KeyError(f"row {row_number} (key={key}) not found in {path.name}")
                cell["value"] = text
            self._save(path, doc)
        log.info("Persisted translation %s row %s (sheet=%s key=%s)", path.name, row_number, sheet_name, key)

    # ---- Read ----
    def read(
        self, file_name: str, row_number: int, *,
        sheet_name: Optional[str] = None, key: Optional[str] = None,
    ) -> str:
        doc = self._load(self._path(file_name))
        entry = _find(doc, int(row_number), sheet_name, key)
        if entry is not None:
            return entry.get(_translated_key(entry)) or ""
        cell = _find_overview_cell(doc, key)
        if cell is None:
            raise KeyError(f"row {row_number} not found in {file_name}")
        return cell.get("value") or ""

    def count(self, file_name: str) -> int:
        doc = self._load(self._path(file_name))
        return sum(len(entries) for _, entries in _iter_sheets(doc))

    # ---- lifecycle ----
    def close(self) -> None:
        pass
