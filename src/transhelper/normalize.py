from __future__ import annotations
from typing import Any, List


def _is_word_char(ch: str) -> bool:
    """Letters and digits form words; everything else is a boundary."""
    return ch.isalnum()


def fold_and_map(text: str) -> tuple[str, List[int]]:
    """
    Lower-case text for matching and return:
      - folded string
      - mapping list: folded index -> original index (in the ORIGINAL string)
    Rules:
      * case-insensitive: compare via .lower() BUT mapping points to indices of the original string
      * a character whose lower form is longer (e.g. 'İ') maps every produced char to its origin
      * nothing is dropped or collapsed, so offsets stay faithful to the caller's text
    """
    out_chars: list[str] = []
    mapping: List[int] = []
    for orig_i, ch in enumerate(text):
        low = ch.lower()
        out_chars.append(low)
        mapping.extend([orig_i] * len(low))
    return "".join(out_chars), mapping


def fold(text: str) -> str:
    """Convenience: fold and return only the folded string (same per-char rule as fold_and_map)."""
    return "".join(ch.lower() for ch in text)


def to_original_range(mapping: List[int], start: int, length: int) -> tuple[int, int]:
    """Translate a [start, start+length) range in folded space back to the original string."""
    o_start = mapping[start]
    o_end = mapping[start + length - 1] + 1
    return o_start, o_end


def on_word_boundary(text: str, start: int, end: int) -> bool:
    """
    True if [start, end) does not begin or end inside an alphanumeric run.
    "Ass" in "Assistant" fails (end splits "Ass|istant").
    """
    if start > 0 and _is_word_char(text[start - 1]) and _is_word_char(text[start]):
        return False
    if end < len(text) and _is_word_char(text[end - 1]) and _is_word_char(text[end]):
        return False
    return True


def as_text(value: Any) -> str:
    """Strings pass through, anything else reads as empty."""
    return value if isinstance(value, str) else ""


def clean_cell(value: Any) -> str:
    """Spreadsheet/CSV cell -> trimmed string ('' for None)."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()
