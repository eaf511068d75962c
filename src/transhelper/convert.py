"""Batch conversion of translation workbooks into the JSON and CSV corpora."""
from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from .models import Corpus, Entry
from .loader import list_files, load_xlsx
from .csvio import now_iso, write_csv
from . import config as CFG

log = logging.getLogger(__name__)


def corpus_to_document(corpus: Corpus, processed_at: Optional[str] = None) -> dict:
    """Corpus -> {"fileName", "processedAt", "sheets": [{"sheetName", "entries"}]}."""
    sheets: dict[str, List[dict]] = {}
    for e in corpus.entries:
        sheets.setdefault(e.sheet_name, []).append(_entry_to_json(e))
    return {
        "fileName": corpus.name,
        "processedAt": processed_at or now_iso(),
        "sheets": [{"sheetName": name, "entries": entries} for name, entries in sheets.items()],
    }


def _entry_to_json(e: Entry) -> dict:
    d = {
        "rowNumber": e.row_number,
        "utterer": e.utterer,
        "context": e.context,
        CFG.JSON_SOURCE_KEY: e.source_text,
        CFG.JSON_TRANSLATED_KEY: e.translated_text,
    }
    if e.key:
        d["key"] = e.key
    return d


def _atomic_write(path: Path, text: str) -> None:
    tmp = path.with_name(f"{path.name}.tmp")
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(tmp, "w", encoding="utf-8", newline="") as f:
        f.write(text)
    os.replace(tmp, path)


def convert_workbook(path: str | os.PathLike, json_dir: Path, csv_dir: Path) -> dict:
    """One workbook -> <stem>.json + <stem>.csv. Returns its summary row."""
    p = Path(path)
    try:
        corpus = load_xlsx(p)
    except (OSError, ValueError) as exc:
        log.error("Failed to convert %s: %s", p.name, exc)
        return {"fileName": p.stem, "success": False, "sheets": 0, "entries": 0, "error": str(exc)}

    stamp = now_iso()
    doc = corpus_to_document(corpus, stamp)
    _atomic_write(json_dir / f"{corpus.name}.json", json.dumps(doc, ensure_ascii=False, indent=2))

    csv_path = csv_dir / f"{corpus.name}.csv"
    csv_dir.mkdir(parents=True, exist_ok=True)
    tmp = csv_path.with_name(f"{csv_path.name}.tmp")
    with open(tmp, "w", encoding="utf-8", newline="") as f:
        write_csv(corpus.entries, f, file_name=p.name, processed_at=stamp)
    os.replace(tmp, csv_path)

    log.info("Converted %s: sheets=%d entries=%d", p.name, len(corpus.sheets), len(corpus))
    return {"fileName": corpus.name, "success": True, "sheets": len(corpus.sheets), "entries": len(corpus), "error": None}


def convert_folder(
    xlsx_dir: str | os.PathLike,
    json_dir: str | os.PathLike,
    csv_dir: str | os.PathLike,
) -> dict:
    """
    Convert every .xlsx under xlsx_dir and write processing-summary.json next to the JSON output.
    Failing workbooks are reported in the summary; the rest still convert.
    """
    src = Path(xlsx_dir)
    jdir, cdir = Path(json_dir), Path(csv_dir)
    names = list_files(src, ".xlsx")
    if not names:
        log.warning("No workbooks found in %s", src)

    files = [convert_workbook(src / name, jdir, cdir) for name in names]
    summary = _summary(files)
    _atomic_write(jdir / "processing-summary.json", json.dumps(summary, ensure_ascii=False, indent=2))
    return summary


def _summary(files: Iterable[dict]) -> dict:
    files = list(files)
    return {
        "processedAt": now_iso(),
        "totalFiles": len(files),
        "successfulFiles": sum(1 for f in files if f["success"]),
        "failedFiles": sum(1 for f in files if not f["success"]),
        "totalSheets": sum(f["sheets"] for f in files),
        "totalEntries": sum(f["entries"] for f in files),
        "files": files,
    }
