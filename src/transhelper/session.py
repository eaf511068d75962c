from __future__ import annotations
import csv
import io
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .models import Entry
from .match import format_placeholder, insert_at
from . import config as CFG

log = logging.getLogger(__name__)

RowKey = Tuple[str, int, str]


def extract_speaker_name(utterer: str) -> str:
    """
    "SAY.Sign_TheMines_Dirty.1.Dirty Sign" -> "Dirty Sign".
    Anything without the four dotted parts is returned as is; empty -> "Speaker".
    """
    if not utterer:
        return "Speaker"
    parts = utterer.split(".")
    if len(parts) >= 4:
        return ".".join(parts[3:])
    return utterer


@dataclass(frozen=True)
class Progress:
    translated: int
    total: int

    @property
    def percent(self) -> float:
        return round(100.0 * self.translated / self.total, 1) if self.total else 0.0


class TranslationSession:
    """
    Steps through the rows of one sheet and keeps a draft per row.

    Drafts are keyed by (sheet name, row number, key); the key separates
    names-overview entries that share one sheet row. submit() hands the current
    draft to a TranslationStore; the session itself does no I/O.
    """

    def __init__(self, entries: Sequence[Entry], *, file_name: str = "") -> None:
        self.entries: List[Entry] = list(entries)
        self.file_name = file_name
        self.index = 0
        self._drafts: Dict[RowKey, str] = {}
        for e in self.entries:
            if e.translated_text:
                self._drafts[self._key(e)] = e.translated_text

    @staticmethod
    def _key(e: Entry) -> RowKey:
        return (e.sheet_name, e.row_number, e.key)

    def __len__(self) -> int:
        return len(self.entries)

    # ------------- navigation -------------

    @property
    def current(self) -> Optional[Entry]:
        if not self.entries:
            return None
        return self.entries[self.index]

    def next(self) -> Optional[Entry]:
        if self.index < len(self.entries) - 1:
            self.index += 1
        return self.current

    def previous(self) -> Optional[Entry]:
        if self.index > 0:
            self.index -= 1
        return self.current

    def jump_to_row(self, row_number: int) -> bool:
        """Move to the entry with this 1-based sheet row; unknown rows leave the index alone."""
        for i, e in enumerate(self.entries):
            if e.row_number == row_number:
                self.index = i
                return True
        return False

    # ------------- drafts -------------

    def draft(self, entry: Optional[Entry] = None) -> str:
        e = entry or self.current
        if e is None:
            return ""
        return self._drafts.get(self._key(e), "")

    def set_draft(self, text: str, entry: Optional[Entry] = None) -> None:
        e = entry or self.current
        if e is None:
            raise IndexError("session has no rows")
        self._drafts[self._key(e)] = text

    def insert_placeholder(self, name: str, cursor: Optional[int] = None) -> int:
        """Insert "(name)" into the current draft at cursor; returns the new cursor."""
        new_text, new_cursor = insert_at(self.draft(), cursor, format_placeholder(name))
        self.set_draft(new_text)
        return new_cursor

    def trim_to_current(self) -> None:
        """Forget drafts for rows after the current one."""
        keep = {self._key(e) for e in self.entries[: self.index + 1]}
        self._drafts = {k: v for k, v in self._drafts.items() if k in keep}

    def progress(self) -> Progress:
        done = sum(1 for e in self.entries if self._drafts.get(self._key(e), "").strip())
        return Progress(translated=done, total=len(self.entries))

    # ------------- output -------------

    def submit(self, store, file_name: Optional[str] = None) -> None:
        e = self.current
        if e is None:
            raise IndexError("session has no rows")
        store.upsert(
            file_name or self.file_name, e.row_number, self.draft(e),
            sheet_name=e.sheet_name or None, key=e.key or None,
        )

    def export_csv(self) -> str:
        """Row No,Key,Value, with blanks spelled out so they are easy to find later."""
        buf = io.StringIO()
        w = csv.writer(buf, lineterminator="\n")
        w.writerow(["Row No", "Key", "Value"])
        for e in self.entries:
            w.writerow([e.row_number, e.source_text or CFG.BLANK_MARKER, self.draft(e) or CFG.BLANK_MARKER])
        return buf.getvalue()
