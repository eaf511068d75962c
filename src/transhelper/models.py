from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Tuple


@dataclass(frozen=True)
class Entry:
    source_text: str
    translated_text: str = ""
    context: str = ""
    utterer: str = ""
    sheet_name: str = ""
    row_number: int = 0       # 1-based row in the source sheet/file
    key: str = ""             # CSV "Key" column, overview slot ("Character Names:B") or codex path


class MatchKind(str, Enum):
    EXACT = "exact"
    SUBSTRING = "substring"
    REVERSE_SUBSTRING = "reverse_substring"


@dataclass(frozen=True)
class MatchResult:
    entry: Entry
    kind: MatchKind
    start_index: Optional[int] = None   # offsets into the query, when known
    end_index: Optional[int] = None
    field: str = "source"               # "source" | "translated"


@dataclass(frozen=True)
class Span:
    start: int
    end: int                  # half-open
    match: MatchResult


@dataclass(frozen=True)
class Corpus:
    name: str
    kind: str                 # "csv" | "xlsx" | "json" | "characters" | "codex"
    entries: Tuple[Entry, ...] = ()
    loaded_at: str = ""
    sheets: Tuple[str, ...] = field(default=())

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)
