from __future__ import annotations
import json
import logging
import os
import zipfile
from pathlib import Path
from typing import Any, Iterable, List, Optional

from openpyxl import load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from .models import Entry, Corpus
from .normalize import clean_cell
from .csvio import read_csv_text, read_character_text, is_character_table, now_iso
from . import config as CFG

log = logging.getLogger(__name__)

PROGRESS_EVERY_ROWS = 10_000


def list_files(directory: str | os.PathLike, suffix: str) -> List[str]:
    """Sorted file names with the given suffix; processing summaries are skipped."""
    d = Path(directory)
    if not d.is_dir():
        return []
    return sorted(
        p.name for p in d.iterdir()
        if p.is_file() and p.name.lower().endswith(suffix) and "summary" not in p.name.lower()
    )


def _read_text(path: Path) -> str:
    if not path.is_file():
        raise FileNotFoundError(str(path))
    return path.read_text(encoding="utf-8-sig")


def _sheets_of(entries: Iterable[Entry]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for e in entries:
        seen.setdefault(e.sheet_name, None)
    return tuple(seen)


def _corpus(name: str, kind: str, entries: List[Entry]) -> Corpus:
    return Corpus(name=name, kind=kind, entries=tuple(entries), loaded_at=now_iso(), sheets=_sheets_of(entries))


# ---------- CSV ----------

def load_csv(path: str | os.PathLike, *, sheet: Optional[str] = None) -> Corpus:
    """
    Episode CSV or character table (detected from the header).
    sheet: keep only sheets whose name contains this text (case-insensitive).
    """
    p = Path(path)
    text = _read_text(p)
    if is_character_table(text):
        entries = read_character_text(text)
        kind = "characters"
    else:
        _, entries = read_csv_text(text)
        kind = "csv"
    if sheet:
        needle = sheet.lower()
        entries = [e for e in entries if needle in e.sheet_name.lower()]
    log.info("Loaded %s corpus %s: %d entries", kind, p.name, len(entries))
    return _corpus(p.stem, kind, entries)


# ---------- XLSX ----------

def _cell(row: tuple, idx: int) -> str:
    return clean_cell(row[idx]) if idx < len(row) else ""


def _rows_to_entries(rows: Iterable[tuple], sheet_name: str, first_row: int) -> List[Entry]:
    entries: List[Entry] = []
    for row_no, row in enumerate(rows, start=first_row):
        if not row:
            continue
        source = _cell(row, CFG.XLSX_SOURCE_COL)
        if not source:
            continue
        entries.append(Entry(
            source_text=source,
            translated_text=_cell(row, CFG.XLSX_TRANSLATED_COL),
            context=_cell(row, CFG.XLSX_CONTEXT_COL),
            utterer=_cell(row, CFG.XLSX_UTTERER_COL),
            sheet_name=sheet_name,
            row_number=row_no,
        ))
        if CFG.VERBOSE and row_no % PROGRESS_EVERY_ROWS == 0:
            log.info("[xlsx] %s rows=%d", sheet_name, row_no)
    return entries


def parse_names_overview(rows: dict[int, List[str]]) -> List[Entry]:
    """
    Horizontal name tables: each category pairs an English row with a translated row,
    one name per column from B onward. rows maps 1-based row number -> cell values (column A first).
    Names in one category share a row, so each entry is told apart by key "<category>:<column>".
    """
    entries: List[Entry] = []
    for category, (src_row, tgt_row) in CFG.NAMES_ROWS.items():
        src = rows.get(src_row)
        tgt = rows.get(tgt_row)
        if not src or tgt is None:
            continue
        for col in range(1, max(len(src), len(tgt))):
            name = clean_cell(src[col]) if col < len(src) else ""
            if not name:
                continue
            entries.append(Entry(
                source_text=name,
                translated_text=clean_cell(tgt[col]) if col < len(tgt) else "",
                context=category,
                sheet_name=CFG.NAMES_SHEET,
                row_number=src_row,
                key=f"{category}:{get_column_letter(col + 1)}",
            ))
    return entries


def _open_workbook(p: Path):
    if not p.is_file():
        raise FileNotFoundError(str(p))
    try:
        return load_workbook(p, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError) as exc:
        raise ValueError(f"{p.name} is not a readable workbook: {exc}") from exc


def load_xlsx(path: str | os.PathLike, *, sheet: Optional[str] = None) -> Corpus:
    """
    Every sheet: utterer A, context B, source C, translated J, rows below the header.
    The names overview sheet is read horizontally instead.
    """
    p = Path(path)
    wb = _open_workbook(p)
    entries: List[Entry] = []
    try:
        for ws in wb.worksheets:
            if sheet and sheet.lower() not in ws.title.lower():
                continue
            if ws.title == CFG.NAMES_SHEET:
                wanted = {r for pair in CFG.NAMES_ROWS.values() for r in pair}
                rows = {
                    i: [clean_cell(v) for v in row]
                    for i, row in enumerate(ws.iter_rows(values_only=True), start=1)
                    if i in wanted
                }
                entries.extend(parse_names_overview(rows))
                continue
            first = CFG.XLSX_HEADER_ROWS + 1
            entries.extend(_rows_to_entries(ws.iter_rows(min_row=first, values_only=True), ws.title, first))
    finally:
        wb.close()
    log.info("Loaded xlsx corpus %s: %d entries", p.name, len(entries))
    return _corpus(p.stem, "xlsx", entries)


# ---------- JSON ----------

def _first(d: dict, *keys: str) -> Any:
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return None


def _json_entry(raw: Any, sheet_name: str) -> Optional[Entry]:
    if not isinstance(raw, dict):
        return None
    source = clean_cell(_first(raw, "sourceText", "sourceEnglish", "source_text"))
    if not source:
        return None
    try:
        row_no = int(_first(raw, "rowNumber", "row_number") or 0)
    except (TypeError, ValueError):
        row_no = 0
    return Entry(
        source_text=source,
        translated_text=clean_cell(_first(raw, "translatedText", "translatedDutch", "translated_text")),
        context=clean_cell(raw.get("context")),
        utterer=clean_cell(raw.get("utterer")),
        sheet_name=clean_cell(_first(raw, "sheetName", "sheet_name")) or sheet_name,
        row_number=row_no,
        key=clean_cell(raw.get("key")),
    )


def _overview_rows(raw_entries: List[Any]) -> dict[int, List[str]]:
    rows: dict[int, List[str]] = {}
    for raw in raw_entries:
        if isinstance(raw, dict) and isinstance(raw.get("data"), list):
            cells = raw["data"]
            rows[int(raw.get("rowNumber") or 0)] = [
                clean_cell(c.get("value")) if isinstance(c, dict) else clean_cell(c) for c in cells
            ]
    return rows


def parse_json_document(doc: Any) -> List[Entry]:
    """Entries from {"sheets": [{"sheetName", "entries"}]} or {"entries": [...]}."""
    if isinstance(doc, dict) and isinstance(doc.get("sheets"), list):
        sheets = doc["sheets"]
    elif isinstance(doc, dict) and isinstance(doc.get("entries"), list):
        sheets = [{"sheetName": doc.get("sheetName") or doc.get("fileName") or "", "entries": doc["entries"]}]
    else:
        raise ValueError("JSON corpus must hold a 'sheets' or 'entries' list")

    entries: List[Entry] = []
    for sh in sheets:
        if not isinstance(sh, dict):
            continue
        name = clean_cell(_first(sh, "sheetName", "name"))
        raw_entries = sh.get("entries") if isinstance(sh.get("entries"), list) else []
        if name == CFG.NAMES_SHEET and any(isinstance(r, dict) and "data" in r for r in raw_entries):
            entries.extend(parse_names_overview(_overview_rows(raw_entries)))
            continue
        for raw in raw_entries:
            e = _json_entry(raw, name)
            if e is not None:
                entries.append(e)
    return entries


def load_json(path: str | os.PathLike, *, sheet: Optional[str] = None) -> Corpus:
    p = Path(path)
    try:
        doc = json.loads(_read_text(p))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{p.name}: invalid JSON ({exc})") from exc
    entries = parse_json_document(doc)
    if sheet:
        needle = sheet.lower()
        entries = [e for e in entries if needle in e.sheet_name.lower()]
    log.info("Loaded json corpus %s: %d entries", p.name, len(entries))
    return _corpus(p.stem, "json", entries)


# ---------- Codex ----------

def format_codex_name(file_name: str) -> str:
    """"butte-mines.md" -> "Butte Mines"."""
    stem = file_name[:-3] if file_name.lower().endswith(".md") else file_name
    words = stem.replace("-", " ").replace("_", " ").split(" ")
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)


def _codex_entries(folder: Path, category: str, prefix: str) -> List[Entry]:
    entries: List[Entry] = []
    names = sorted(p.name for p in folder.iterdir() if p.is_file() and p.name.lower().endswith(".md"))
    for i, name in enumerate(names, start=1):
        entries.append(Entry(
            source_text=format_codex_name(name),
            context=(folder / name).read_text(encoding="utf-8-sig"),
            sheet_name=category,
            row_number=i,
            key=f"{prefix}{name}",
        ))
    return entries


def load_codex(directory: str | os.PathLike) -> Corpus:
    """
    Lore notes: codex/<Category>/<name>.md, one entry per file.
    source = title from the file name, context = markdown body, sheet = category, key = relative path.
    Markdown files directly under codex/ go to the "Root" category, after the others.
    """
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(str(root))
    entries: List[Entry] = []
    for sub in sorted((p for p in root.iterdir() if p.is_dir()), key=lambda p: p.name):
        entries.extend(_codex_entries(sub, sub.name, f"{sub.name}/"))
    entries.extend(_codex_entries(root, CFG.CODEX_ROOT_CATEGORY, ""))
    log.info("Loaded codex %s: %d notes", root.name, len(entries))
    return _corpus(root.name, "codex", entries)


_LOADERS = {".csv": load_csv, ".xlsx": load_xlsx, ".json": load_json}


def load_corpus(path: str | os.PathLike, *, sheet: Optional[str] = None) -> Corpus:
    """Pick a loader from the file suffix."""
    p = Path(path)
    loader = _LOADERS.get(p.suffix.lower())
    if loader is None:
        raise ValueError(f"unsupported corpus format: {p.suffix or p.name}")
    return loader(p, sheet=sheet)
