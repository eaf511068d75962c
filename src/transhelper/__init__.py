"""Public API for the translation helper."""
from __future__ import annotations
from .models import Entry, MatchKind, MatchResult, Span, Corpus
from .match import (
    find_matches,
    rank_matches,
    highlight_spans,
    extract_placeholder_candidates,
    search_entries,
    quick_suggestions,
    match_codex,
)
from .cache import CorpusCache
from .engine import Engine, Suggestions
from .session import TranslationSession

__all__ = [
    "Entry", "MatchKind", "MatchResult", "Span", "Corpus",
    "find_matches", "rank_matches", "highlight_spans", "extract_placeholder_candidates",
    "search_entries", "quick_suggestions", "match_codex",
    "CorpusCache", "Engine", "Suggestions", "TranslationSession",
]
