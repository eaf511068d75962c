from transhelper.match import find_matches, highlight_spans, rank_matches
from transhelper.models import Entry, MatchKind, MatchResult


def _spans(query: str, corpus: list[Entry]):
    return highlight_spans(query, find_matches(query, corpus))


def _assert_well_formed(spans):
    starts = [s.start for s in spans]
    assert starts == sorted(starts)
    for left, right in zip(spans, spans[1:]):
        assert left.end <= right.start


def test_hello_there_scenario():
    q = "Well, Hello there, friend"
    spans = _spans(q, [Entry(source_text="Hello there", translated_text="Hallo daar")])
    assert [(s.start, s.end) for s in spans] == [(6, 17)]
    assert q[6:17] == "Hello there"


def test_longest_phrase_wins_over_nested_shorter_phrase():
    corpus = [
        Entry(source_text="Dirty Sign", translated_text="Vuil Bord"),
        Entry(source_text="Sign", translated_text="Bord"),
    ]
    spans = _spans("The Dirty Sign", corpus)
    assert len(spans) == 1
    assert spans[0].match.entry.source_text == "Dirty Sign"
    assert (spans[0].start, spans[0].end) == (4, 14)


def test_overlapping_phrases_never_double_highlight():
    corpus = [Entry(source_text="Old"), Entry(source_text="Old Sign")]
    spans = _spans("The Old Sign creaks", corpus)
    assert [(s.start, s.end) for s in spans] == [(4, 12)]
    assert spans[0].match.entry.source_text == "Old Sign"


def test_no_highlight_inside_a_larger_word():
    assert _spans("Assistant helped", [Entry(source_text="Ass")]) == []


def test_first_whole_word_occurrence_is_used():
    q = "Assistant met Big Ass"
    spans = _spans(q, [Entry(source_text="Ass")])
    assert [(s.start, s.end) for s in spans] == [(18, 21)]


def test_spans_are_sorted_and_disjoint():
    q = "The Old Sign creaks"
    corpus = [Entry(source_text="Sign"), Entry(source_text="creaks"), Entry(source_text="The Old"),
              Entry(source_text="Old Sign"), Entry(source_text="e O")]
    spans = highlight_spans(q, rank_matches(find_matches(q, corpus), q))
    _assert_well_formed(spans)
    # "Old Sign" (8 chars) beats "The Old" (7) on the shared "Old"
    assert [q[s.start:s.end] for s in spans] == ["Old Sign", "creaks"]


def test_many_overlapping_inputs_stay_disjoint():
    q = "the quick brown fox jumps over the lazy dog"
    words = q.split()
    corpus = [Entry(source_text=" ".join(words[i:j])) for i in range(len(words)) for j in range(i + 1, len(words) + 1)]
    spans = _spans(q, corpus)
    _assert_well_formed(spans)
    assert [(s.start, s.end) for s in spans] == [(0, len(q))]


def test_zero_length_source_never_produces_a_span():
    empty = MatchResult(entry=Entry(source_text=""), kind=MatchKind.SUBSTRING, start_index=0, end_index=0)
    assert highlight_spans("anything", [empty]) == []


def test_junk_inputs_are_tolerated():
    assert highlight_spans("", [MatchResult(entry=Entry(source_text="x"), kind=MatchKind.EXACT)]) == []
    assert highlight_spans("x", None) == []  # type: ignore[arg-type]
    assert highlight_spans("x", [None, "x"]) == []  # type: ignore[list-item]


def test_translation_only_matches_do_not_highlight_source():
    q = "een vuil bord"
    matches = find_matches(q, [Entry(source_text="Dirty Sign", translated_text="Vuil Bord")])
    assert matches and matches[0].field == "translated"
    assert highlight_spans(q, matches) == []
