from pathlib import Path
import pytest
from transhelper.engine import Engine
from transhelper.loader import format_codex_name, load_codex
from transhelper.match import match_codex
from transhelper.models import Entry
from transhelper_web.web import app as flask_app

BIG = Entry(source_text="Big Ass", context="Leader of the herd.")
BUTTE = Entry(source_text="Butte Mines", context="Old mines.")
JEAN = Entry(source_text="Jean-Luc", context="A visitor.")
NOTES = [BIG, BUTTE, JEAN]


def _seed(tmp: Path) -> str:
    root = tmp / "project"
    codex = root / "codex"
    (codex / "Main Asses").mkdir(parents=True)
    (codex / "Places").mkdir()
    (codex / "Main Asses" / "big-ass.md").write_text("# Big Ass\nLeader of the herd.\n", encoding="utf-8")
    (codex / "Places" / "butte-mines.md").write_text("Old mines.\n", encoding="utf-8")
    (codex / "Places" / "the_dust_bowl.md").write_text("Dry.\n", encoding="utf-8")
    (codex / "Places" / "notes.txt").write_text("not a note", encoding="utf-8")
    (codex / "overview.md").write_text("All about it.\n", encoding="utf-8")
    return str(root)


def test_codex_titles_come_from_file_names():
    assert format_codex_name("butte-mines.md") == "Butte Mines"
    assert format_codex_name("the_dust_bowl.md") == "The Dust Bowl"
    assert format_codex_name("ASS_of-DOOM.MD") == "Ass Of Doom"


def test_codex_title_inside_text_matches():
    assert match_codex("Welcome to the butte mines, stranger", NOTES) == [BUTTE]


def test_codex_single_word_of_title_matches_whole_words_only():
    assert match_codex("Back at Butte tonight", NOTES) == [BUTTE]
    assert match_codex("A butterfly landed", NOTES) == []


def test_codex_hyphenated_title_needs_every_part():
    assert match_codex("Luc met Jean", NOTES) == [JEAN]
    assert match_codex("Jean came alone", NOTES) == []


def test_codex_keeps_note_order_and_ignores_junk():
    assert match_codex("Jean-Luc walked to Butte Mines", NOTES) == [BUTTE, JEAN]
    assert match_codex("", NOTES) == []
    assert match_codex(None, NOTES) == []
    assert match_codex("Butte", None) == []
    assert match_codex("Butte", [Entry(source_text=""), None, BUTTE]) == [BUTTE]


@pytest.mark.e2e
def test_load_codex_reads_categories_then_root(tmp_path: Path):
    corpus = load_codex(Path(_seed(tmp_path)) / "codex")
    assert corpus.kind == "codex"
    assert [(e.sheet_name, e.source_text, e.key) for e in corpus.entries] == [
        ("Main Asses", "Big Ass", "Main Asses/big-ass.md"),
        ("Places", "Butte Mines", "Places/butte-mines.md"),
        ("Places", "The Dust Bowl", "Places/the_dust_bowl.md"),
        ("Root", "Overview", "overview.md"),
    ]
    assert corpus.entries[0].context == "# Big Ass\nLeader of the herd.\n"
    assert corpus.sheets == ("Main Asses", "Places", "Root")

    with pytest.raises(FileNotFoundError):
        load_codex(tmp_path / "nowhere")


@pytest.mark.e2e
def test_engine_suggest_lists_codex_notes(tmp_path: Path):
    eng = Engine().open(_seed(tmp_path), store_dsn="memory://")
    try:
        assert len(eng.codex()) == 4
        res = eng.suggest("Back at Butte tonight", [], codex=True)
        assert [e.source_text for e in res.codex] == ["Butte Mines"]
        assert eng.suggest("Back at Butte tonight", []).codex == []
        assert eng.reload("codex") == 1
    finally:
        eng.shutdown()

    bare = Engine().open(str(tmp_path / "empty"), store_dsn="memory://")
    try:
        res = bare.suggest("Back at Butte", [], codex=True)
        assert res.codex == [] and res.unavailable == ["codex"]
    finally:
        bare.shutdown()


@pytest.mark.e2e
def test_frontend_codex_api(tmp_path: Path):
    eng = Engine().open(_seed(tmp_path), store_dsn="memory://")

    import transhelper_web.web as webmod
    webmod._engine = eng

    client = flask_app.test_client()
    rv = client.get("/api/codex")
    assert rv.status_code == 200
    data = rv.get_json()
    assert sorted(data) == ["Main Asses", "Places", "Root"]
    assert data["Places"][0] == {"name": "Butte Mines", "path": "Places/butte-mines.md",
                                 "content": "Old mines.\n", "category": "Places"}

    only = client.get("/api/codex", query_string={"q": "Back at Butte"}).get_json()
    assert list(only) == ["Places"] and [n["name"] for n in only["Places"]] == ["Butte Mines"]

    rv = client.get("/api/match", query_string={"q": "Back at Butte", "codex": "1"})
    assert [n["name"] for n in rv.get_json()["codex"]] == ["Butte Mines"]
    eng.shutdown()

    webmod._engine = Engine().open(str(tmp_path / "empty"), store_dsn="memory://")
    rv = client.get("/api/codex")
    assert rv.status_code == 404
    assert rv.get_json() == {"error": "Codex directory not found"}
    webmod._engine.shutdown()
