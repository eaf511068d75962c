import json
from pathlib import Path
import pytest
from transhelper.loader import load_json, parse_json_document
from transhelper import config as CFG

DOC = {
    "fileName": "E1",
    "sheets": [
        {"sheetName": "Dialogue", "entries": [
            {"rowNumber": 2, "utterer": "SAY.Npc.1.Gerald", "context": "greeting",
             "sourceText": "Hello there", "translatedText": "Hallo daar"},
            {"rowNumber": 3, "sourceEnglish": "Good morning", "translatedDutch": "Goedemorgen"},
            {"rowNumber": 4, "sourceText": ""},
            "junk",
        ]},
        {"sheetName": "Signs", "entries": [
            {"rowNumber": "5", "sourceText": "Dirty Sign", "translatedText": None, "key": "SIGN_DIRTY"},
        ]},
    ],
}


def test_sheets_document_with_legacy_keys():
    rows = parse_json_document(DOC)
    assert [(e.sheet_name, e.row_number, e.source_text, e.translated_text) for e in rows] == [
        ("Dialogue", 2, "Hello there", "Hallo daar"),
        ("Dialogue", 3, "Good morning", "Goedemorgen"),
        ("Signs", 5, "Dirty Sign", ""),
    ]
    assert rows[2].key == "SIGN_DIRTY"


def test_flat_entries_document_and_names_overview():
    flat = parse_json_document({"sheetName": "Flat", "entries": [{"rowNumber": 1, "sourceText": "One"}]})
    assert [(e.sheet_name, e.source_text) for e in flat] == [("Flat", "One")]

    overview = {"sheets": [{"sheetName": CFG.NAMES_SHEET, "entries": [
        {"rowNumber": 4, "data": [{"value": "English"}, {"value": "Big Ass"}]},
        {"rowNumber": 16, "data": ["Dutch", "Grote Kont"]},
    ]}]}
    names = parse_json_document(overview)
    assert [(e.source_text, e.translated_text, e.context) for e in names] == [
        ("Big Ass", "Grote Kont", "Character Names"),
    ]

    with pytest.raises(ValueError):
        parse_json_document({"rows": []})
    with pytest.raises(ValueError):
        parse_json_document([1, 2])


@pytest.mark.e2e
def test_load_json_from_disk(tmp_path: Path):
    (tmp_path / "E1.json").write_text(json.dumps(DOC), encoding="utf-8")
    corpus = load_json(tmp_path / "E1.json", sheet="signs")
    assert corpus.kind == "json" and corpus.name == "E1"
    assert [e.source_text for e in corpus.entries] == ["Dirty Sign"]

    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        load_json(tmp_path / "broken.json")
