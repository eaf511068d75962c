"""CSV writer/reader for the 8-column episode export."""
from __future__ import annotations
import csv
import io
import logging
from datetime import datetime, timezone
from typing import IO, Iterable, List, Optional

from .models import Entry
from .normalize import clean_cell
from . import config as CFG

log = logging.getLogger(__name__)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _writer(fp: IO[str]):
    # QUOTE_MINIMAL quotes fields holding the delimiter, the quote char, CR or LF and doubles inner quotes
    return csv.writer(fp, delimiter=",", quotechar='"', quoting=csv.QUOTE_MINIMAL, lineterminator="\n")


def write_metadata(fp: IO[str], *, file_name: str, processed_at: str, total_sheets: int) -> None:
    fp.write(f"# File: {file_name}\n")
    fp.write(f"# Processed: {processed_at}\n")
    fp.write(f"# Sheets: {total_sheets}\n")
    fp.write("\n")


def write_csv(
    entries: Iterable[Entry],
    fp: IO[str],
    *,
    file_name: str = "",
    processed_at: Optional[str] = None,
    include_metadata: bool = True,
) -> int:
    """Write entries as the episode CSV; returns the number of data rows written."""
    rows = list(entries)
    stamp = processed_at or now_iso()
    if include_metadata:
        sheets = {e.sheet_name for e in rows}
        write_metadata(fp, file_name=file_name, processed_at=stamp, total_sheets=len(sheets))
    w = _writer(fp)
    w.writerow(CFG.CSV_HEADERS)
    for e in rows:
        w.writerow([
            e.row_number if e.row_number else "",
            e.sheet_name,
            e.context,
            e.key,
            e.utterer,
            e.source_text,
            e.translated_text,
            stamp,
        ])
    return len(rows)


def dumps(entries: Iterable[Entry], **kw) -> str:
    buf = io.StringIO()
    write_csv(entries, buf, **kw)
    return buf.getvalue()


def _split_preamble(text: str) -> tuple[dict, Optional[str]]:
    """
    Consume '# key: value' metadata and blank lines up to the header row.
    Returns (metadata, body after the header) or (metadata, None) if no header was found.
    Metadata only ever precedes the header, so quoted multi-line fields are never inspected here.
    """
    meta: dict = {}
    pos = 0
    header_prefix = ",".join(CFG.CSV_HEADERS[:7])
    while pos < len(text):
        nl = text.find("\n", pos)
        line_end = len(text) if nl < 0 else nl
        line = text[pos:line_end].strip()
        nxt = line_end + 1
        if not line:
            pos = nxt
            continue
        if line.startswith("#"):
            key, _, value = line[1:].partition(":")
            meta[key.strip().lower()] = value.strip()
            pos = nxt
            continue
        if line.startswith(header_prefix):
            return meta, text[nxt:]
        return meta, None
    return meta, None


def read_csv_text(text: str) -> tuple[dict, List[Entry]]:
    """
    Parse episode CSV text -> (metadata, entries).
    Rows with fewer than 7 columns or an empty source are dropped.
    """
    meta, body = _split_preamble(text)
    if body is None:
        raise ValueError("episode CSV header not found")

    entries: List[Entry] = []
    dropped = 0
    for values in csv.reader(io.StringIO(body, newline="")):
        if not values or all(not v.strip() for v in values):
            continue
        if len(values) < 7:
            dropped += 1
            continue
        source = clean_cell(values[5])
        if not source:
            dropped += 1
            continue
        try:
            row_no = int(values[0]) if values[0].strip() else 0
        except ValueError:
            row_no = 0
        entries.append(Entry(
            source_text=source,
            translated_text=clean_cell(values[6]),
            context=clean_cell(values[2]),
            utterer=clean_cell(values[4]),
            sheet_name=clean_cell(values[1]),
            row_number=row_no,
            key=clean_cell(values[3]),
        ))
    if dropped:
        log.debug("dropped %d malformed CSV rows", dropped)
    return meta, entries


def read_character_text(text: str, target_language: str = CFG.TARGET_LANGUAGE) -> List[Entry]:
    """
    Character table: Name/Key,Description,English,<languages...>.
    The translated column is picked by header name.
    """
    reader = csv.reader(io.StringIO(text, newline=""))
    try:
        header = [h.strip() for h in next(reader)]
    except StopIteration:
        return []
    cols = {h.lower(): i for i, h in enumerate(header)}
    try:
        name_i = cols["name/key"]
        src_i = cols["english"]
    except KeyError as exc:
        raise ValueError(f"character CSV lacks column {exc}") from exc
    desc_i = cols.get("description")
    tgt_i = cols.get(target_language.lower())
    if tgt_i is None:
        log.warning("character CSV has no %r column; translations left empty", target_language)

    entries: List[Entry] = []
    for row_no, values in enumerate(reader, start=2):
        if len(values) <= src_i:
            continue
        source = clean_cell(values[src_i])
        if not source:
            continue
        entries.append(Entry(
            source_text=source,
            translated_text=clean_cell(values[tgt_i]) if tgt_i is not None and tgt_i < len(values) else "",
            context=clean_cell(values[desc_i]) if desc_i is not None and desc_i < len(values) else "",
            utterer=clean_cell(values[name_i]) if name_i < len(values) else "",
            sheet_name="Characters",
            row_number=row_no,
            key=clean_cell(values[name_i]) if name_i < len(values) else "",
        ))
    return entries


def is_character_table(text: str) -> bool:
    first = text.lstrip("﻿").split("\n", 1)[0]
    return first.startswith(CFG.CHARACTER_CSV_PREFIX)
