from pathlib import Path
import pytest
from transhelper.csvio import dumps
from transhelper.engine import Engine
from transhelper.models import Entry
from transhelper_web.web import app as flask_app

def _seed(tmp: Path) -> str:
    root = tmp / "project"
    (root / "data" / "csv").mkdir(parents=True)
    rows = [
        Entry(source_text="Hello there", translated_text="Hallo daar", context="greeting", sheet_name="Dialogue", row_number=2),
        Entry(source_text="Dirty Sign", translated_text="Vuil Bord", context="mines", sheet_name="Signs", row_number=2),
    ]
    (root / "data" / "csv" / "E1.csv").write_text(dumps(rows, file_name="E1.xlsx"), encoding="utf-8")
    (root / "data" / "csv" / "character_translations.csv").write_text(
        "Name/Key,Description,English,Spanish,Dutch\nBig Ass,Leader,Big Ass,Gran Culo,Grote Kont\n", encoding="utf-8")
    return str(root)

@pytest.mark.e2e
def test_frontend_csv_data_api(tmp_path: Path):
    eng = Engine().open(_seed(tmp_path), store_dsn="memory://")

    import transhelper_web.web as webmod
    webmod._engine = eng

    client = flask_app.test_client()
    assert client.get("/api/csv-files").get_json() == ["E1.csv", "character_translations.csv"]
    assert client.get("/api/json-files").get_json() == []

    data = client.get("/api/csv-data?file=E1.csv").get_json()
    assert data["fileName"] == "E1" and data["totalSheets"] == 2 and data["totalEntries"] == 2
    assert [s["sheetName"] for s in data["sheets"]] == ["Dialogue", "Signs"]

    signs = client.get("/api/csv-data?file=E1.csv&sheet=Signs").get_json()
    assert signs["requestedSheet"] == "Signs" and signs["totalSheets"] == 2
    assert [s["sheetName"] for s in signs["sheets"]] == ["Signs"]

    raw = client.get("/api/csv-data?file=E1.csv&format=csv")
    assert raw.status_code == 200 and raw.mimetype == "text/csv"
    assert b"Hello there" in raw.data

    assert client.get("/api/csv-data").status_code == 400
    assert client.get("/api/csv-data?file=gone.csv").status_code == 404
    assert client.get("/api/csv-data?file=../E1.csv").status_code == 400

    rv = client.post("/api/csv-data", json={
        "files": ["E1.csv", "character_translations.csv", "gone.csv"], "searchTerm": "", "context": "mines"})
    found = rv.get_json()
    assert rv.status_code == 200
    assert found["filesWithResults"] == 1 and found["totalMatches"] == 1
    assert found["results"][0]["matches"][0]["sourceText"] == "Dirty Sign"
    assert client.post("/api/csv-data", json={"searchTerm": "x"}).status_code == 400

    assert client.post("/api/reload", json={"kind": "csv", "file": "E1.csv"}).get_json() == {"ok": True, "dropped": 2}
    assert client.post("/api/reload", json={"kind": "txt"}).status_code == 400

    eng.shutdown()
