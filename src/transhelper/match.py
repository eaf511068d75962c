"""
Match engine: pure functions that relate a query string to corpus entries.

Nothing in here touches the filesystem or mutates its arguments, and no
public function raises. Malformed input (non-string query, None entries,
entries without source text) simply produces no match.
"""
from __future__ import annotations
import re
from typing import Any, Iterable, List, Optional, Sequence

from .models import Entry, MatchKind, MatchResult, Span
from .normalize import as_text, fold, fold_and_map, on_word_boundary, to_original_range
from . import config as CFG

# Words for placeholder detection: letters/digits, inner apostrophes or hyphens ("O'Neil", "Jean-Luc")
_WORD = re.compile(r"[^\W_]+(?:['’-][^\W_]+)*")


def _text(obj: Any, name: str) -> str:
    return as_text(getattr(obj, name, None))


def _iter_safe(items: Any) -> list:
    if not items or isinstance(items, (str, bytes)):
        return []
    try:
        return list(items)
    except TypeError:
        return []


def _locate(q_folded: str, q_map: List[int], needle: str) -> Optional[tuple[int, int]]:
    """First occurrence of folded needle in the folded query, as original offsets."""
    pos = q_folded.find(needle)
    if pos < 0:
        return None
    return to_original_range(q_map, pos, len(needle))


def _classify(query: str, q_folded: str, q_map: List[int], text: str, *, allow_exact: bool):
    needle = fold(text)
    if allow_exact and needle == q_folded:
        return MatchKind.EXACT, 0, len(query)
    rng = _locate(q_folded, q_map, needle)
    if rng is not None:
        return MatchKind.SUBSTRING, rng[0], rng[1]
    if q_folded in needle:
        return MatchKind.REVERSE_SUBSTRING, None, None
    return None


# /* ~~~ find every entry whose source (or translation) overlaps the query ~~~ */
def find_matches(query: str, corpus: Iterable[Entry]) -> List[MatchResult]:
    """
    Rules, per entry, all case-insensitive:
      1. query == source                -> EXACT
      2. source inside query            -> SUBSTRING (offsets of first occurrence)
      3. query inside source            -> REVERSE_SUBSTRING (no offsets)
      4. translation satisfies 2 or 3   -> same kinds, field="translated"
    Context and utterer are display-only and never matched here.
    Result keeps corpus order.
    """
    if not isinstance(query, str) or not query:
        return []
    entries = _iter_safe(corpus)
    if not entries:
        return []

    q_folded, q_map = fold_and_map(query)
    out: List[MatchResult] = []
    for e in entries:
        src = _text(e, "source_text")
        if not src:
            continue
        hit = _classify(query, q_folded, q_map, src, allow_exact=True)
        field = "source"
        if hit is None:
            tr = _text(e, "translated_text")
            if tr:
                hit = _classify(query, q_folded, q_map, tr, allow_exact=False)
                field = "translated"
        if hit is None:
            continue
        kind, start, end = hit
        out.append(MatchResult(entry=e, kind=kind, start_index=start, end_index=end, field=field))
    return out


def _rank_key(m: MatchResult) -> tuple[int, int]:
    if m.kind is MatchKind.EXACT:
        return (0, 0)
    return (1, -len(_text(m.entry, "source_text")))


def rank_matches(matches: Iterable[MatchResult], query: str = "") -> List[MatchResult]:
    """
    Exact matches first, then longer source phrases first.
    sorted() is stable, so equal-priority matches keep their input order.
    The ordering depends only on the matches; query is accepted so callers can pass it through.
    """
    items = [m for m in _iter_safe(matches) if isinstance(m, MatchResult)]
    return sorted(items, key=_rank_key)


def _first_bounded(query: str, q_folded: str, q_map: List[int], needle: str) -> Optional[tuple[int, int]]:
    pos = q_folded.find(needle)
    while pos >= 0:
        start, end = to_original_range(q_map, pos, len(needle))
        if on_word_boundary(query, start, end):
            return start, end
        pos = q_folded.find(needle, pos + 1)
    return None


# /* ~~~ turn overlapping matches into non-overlapping highlight spans ~~~ */
def highlight_spans(query: str, matches: Iterable[MatchResult]) -> List[Span]:
    """
    Longest phrase wins: candidates are tried by source length (descending),
    each at its first whole-word occurrence in the query, and dropped if that
    range overlaps an accepted span. Returned spans are sorted by start.
    """
    if not isinstance(query, str) or not query:
        return []
    candidates = [
        m for m in _iter_safe(matches)
        if isinstance(m, MatchResult) and _text(m.entry, "source_text")
    ]
    if not candidates:
        return []
    candidates.sort(key=lambda m: -len(_text(m.entry, "source_text")))

    q_folded, q_map = fold_and_map(query)
    accepted: List[Span] = []
    for m in candidates:
        rng = _first_bounded(query, q_folded, q_map, fold(_text(m.entry, "source_text")))
        if rng is None:
            continue
        start, end = rng
        if any(start < s.end and s.start < end for s in accepted):
            continue
        accepted.append(Span(start=start, end=end, match=m))

    accepted.sort(key=lambda s: s.start)
    return accepted


def _is_capitalized(word: str) -> bool:
    return word[:1].isupper()


def _same_line_gap(text: str, left_end: int, right_start: int) -> bool:
    gap = text[left_end:right_start]
    return bool(gap) and gap.isspace() and "\n" not in gap


# /* ~~~ named-entity candidates for placeholder insertion ~~~ */
def extract_placeholder_candidates(
    text: str,
    characters: Optional[Iterable[Entry]] = None,
    *,
    marker: str = CFG.NAME_MARKER,
    short_names: bool = False,
) -> List[str]:
    """
    Candidates, in order of first appearance and without duplicates:
      * capitalized words followed by the marker word ("Big Ass", "Smart Ass").
        With a character table, a known trailing name wins ("Then Big Ass" -> "Big Ass").
      * a capitalized single word that is itself a character name.
      * short_names=True: a capitalized word that starts exactly one multi-word
        character name expands to that name ("Trusty" -> "Trusty Ass").
    """
    if not isinstance(text, str) or not text:
        return []

    names: dict[str, str] = {}
    for e in _iter_safe(characters):
        src = _text(e, "source_text")
        if src:
            names.setdefault(fold(src), src)

    tokens = [(m.start(), m.end(), m.group()) for m in _WORD.finditer(text)]
    found: list[tuple[int, str]] = []

    for i, (_, end, word) in enumerate(tokens):
        if not marker or word != marker:
            continue
        j = i
        while j > 0 and _is_capitalized(tokens[j - 1][2]) and _same_line_gap(text, tokens[j - 1][1], tokens[j][0]):
            j -= 1
        if j == i:
            continue
        start = tokens[j][0]
        if names:
            for k in range(j, i):
                if fold(text[tokens[k][0]:end]) in names:
                    start = tokens[k][0]
                    break
        found.append((start, text[start:end]))

    if names:
        by_first: dict[str, list[str]] = {}
        for folded, canonical in names.items():
            parts = folded.split()
            if len(parts) > 1:
                by_first.setdefault(parts[0], []).append(canonical)

        for start, _, word in tokens:
            if not _is_capitalized(word):
                continue
            key = fold(word)
            if key in names:
                found.append((start, word))
            elif short_names and len(by_first.get(key, ())) == 1:
                found.append((start, by_first[key][0]))

    found.sort(key=lambda item: item[0])
    seen: set[str] = set()
    out: List[str] = []
    for _, cand in found:
        if cand not in seen:
            seen.add(cand)
            out.append(cand)
    return out


def search_entries(
    entries: Iterable[Entry],
    term: str = "",
    context: Optional[str] = None,
    max_results: int = CFG.MAX_SUGGESTIONS,
) -> List[Entry]:
    """
    Consultation search: term is a substring of source, translation, utterer or key;
    otherwise a context filter may still admit the entry. No filters -> everything.
    """
    term_f = fold(as_text(term))
    ctx_f = fold(as_text(context))
    out: List[Entry] = []
    for e in _iter_safe(entries):
        if len(out) >= max_results:
            break
        if not term_f and not ctx_f:
            hit = True
        else:
            hit = bool(term_f) and any(
                term_f in fold(_text(e, name))
                for name in ("source_text", "translated_text", "utterer", "key")
            )
            if not hit and ctx_f:
                hit = ctx_f in fold(_text(e, "context"))
        if hit:
            out.append(e)
    return out


def quick_suggestions(text: str, entries: Iterable[Entry], max_results: int = CFG.QUICK_SUGGESTIONS) -> List[Entry]:
    """Entries whose source text or utterer contains text."""
    needle = fold(as_text(text))
    if not needle:
        return []
    out: List[Entry] = []
    for e in _iter_safe(entries):
        if len(out) >= max_results:
            break
        if needle in fold(_text(e, "source_text")) or needle in fold(_text(e, "utterer")):
            out.append(e)
    return out


def _has_whole_word(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text, re.IGNORECASE) is not None


# /* ~~~ codex notes mentioned by a row ~~~ */
def match_codex(text: str, notes: Iterable[Entry]) -> List[Entry]:
    """
    A note matches when, case-insensitively:
      * its title appears in text, or
      * any word of its title appears in text as a whole word ("Butte" -> "Butte Mines"), or
      * its title is hyphenated and every part appears as a whole word.
    Notes keep their input order.
    """
    if not isinstance(text, str) or not text:
        return []
    folded = fold(text)
    out: List[Entry] = []
    for note in _iter_safe(notes):
        title = _text(note, "source_text")
        if not title:
            continue
        title_f = fold(title)
        if title_f in folded:
            out.append(note)
            continue
        if any(_has_whole_word(text, w) for w in title_f.split()):
            out.append(note)
            continue
        if "-" in title_f:
            parts = [p for p in title_f.split("-") if p]
            if parts and all(_has_whole_word(text, p) for p in parts):
                out.append(note)
    return out


def format_placeholder(name: str) -> str:
    return CFG.PLACEHOLDER_FORMAT.format(name=name)


def insert_at(draft: str, cursor: Optional[int], text: str) -> tuple[str, int]:
    """Insert text at cursor (clamped; None appends). Returns (new draft, new cursor)."""
    if cursor is None or cursor > len(draft):
        cursor = len(draft)
    cursor = max(0, cursor)
    return draft[:cursor] + text + draft[cursor:], cursor + len(text)


def suggest(query: str, corpora: Sequence[Iterable[Entry]]) -> tuple[List[MatchResult], List[Span]]:
    """Match a query against several corpora, rank the union and derive spans."""
    matches: List[MatchResult] = []
    for corpus in _iter_safe(corpora):
        matches.extend(find_matches(query, corpus))
    ranked = rank_matches(matches, query)
    return ranked, highlight_spans(query, ranked)
