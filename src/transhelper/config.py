from __future__ import annotations
import os
from pathlib import Path

# Data layout (override the root with TRANSHELPER_DATA_ROOT)
DATA_ROOT: Path = Path(os.environ.get("TRANSHELPER_DATA_ROOT", ".")).resolve()
CSV_DIR: str = "data/csv"
JSON_DIR: str = "data/json"
XLSX_DIR: str = "excels"
CODEX_DIR: str = "codex"

# Progress logging (set TRANSHELPER_VERBOSE=1 to enable)
VERBOSE: bool = os.environ.get("TRANSHELPER_VERBOSE") == "1"

# Episode CSV layout
CSV_HEADERS: tuple[str, ...] = (
    "RowNumber",
    "SheetName",
    "Context",
    "Key",
    "Utterer",
    "SourceEnglish",
    "TranslatedDutch",
    "ProcessedAt",
)
CHARACTER_CSV_PREFIX: str = "Name/Key,Description,English,Spanish"
TARGET_LANGUAGE: str = os.environ.get("TRANSHELPER_TARGET_LANGUAGE", "Dutch")

# /* ~~~ spreadsheet column map (0-based): A=utterer, B=context, C=source, J=translated ~~~ */
XLSX_UTTERER_COL: int = 0
XLSX_CONTEXT_COL: int = 1
XLSX_SOURCE_COL: int = 2
XLSX_TRANSLATED_COL: int = 9
XLSX_HEADER_ROWS: int = 1

# "Names and World Overview" sheet: category -> (english row, translated row)
NAMES_SHEET: str = "Names and World Overview"
NAMES_ROWS: dict[str, tuple[int, int]] = {
    "Character Names": (4, 16),
    "Human Character Names": (38, 47),
    "Machine Names": (67, 74),
    "Location Names": (116, 124),
}

# Codex notes: codex/<Category>/*.md; loose files at the top level land here
CODEX_ROOT_CATEGORY: str = "Root"

# JSON keys written by the converter (readers also accept the older names)
JSON_SOURCE_KEY: str = "sourceText"
JSON_TRANSLATED_KEY: str = "translatedText"

# Named-entity suffix used by the source data ("Big Ass", "Smart Ass")
NAME_MARKER: str = "Ass"
PLACEHOLDER_FORMAT: str = "({name})"

# Suggestion limits
MAX_SUGGESTIONS: int = 50
QUICK_SUGGESTIONS: int = 5

# Session export
BLANK_MARKER: str = "[BLANK, REMOVE LATER]"
