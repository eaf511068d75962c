import json
from pathlib import Path
import pytest
from transhelper.engine import Engine
from transhelper_web.web import app as flask_app

def _seed(tmp: Path) -> str:
    root = tmp / "project"
    (root / "data" / "json").mkdir(parents=True)
    doc = {"fileName": "E1", "sheets": [{"sheetName": "Dialogue", "entries": [
        {"rowNumber": 2, "sourceText": "Hello there", "translatedText": ""},
    ]}]}
    (root / "data" / "json" / "E1.json").write_text(json.dumps(doc), encoding="utf-8")
    return str(root)

@pytest.mark.e2e
def test_frontend_persist_translation(tmp_path: Path):
    root = _seed(tmp_path)
    eng = Engine().open(root)

    import transhelper_web.web as webmod
    webmod._engine = eng

    client = flask_app.test_client()
    rows = client.get("/api/rows?source=json:E1").get_json()["rows"]
    assert rows[0]["translatedText"] == ""

    rv = client.post("/api/persist-translation", json={
        "fileName": "E1", "rowNumber": 2, "sheetName": "Dialogue", "newTranslation": "Hallo daar"})
    assert rv.status_code == 200
    assert rv.get_json()["success"] is True

    on_disk = json.loads((Path(root) / "data" / "json" / "E1.json").read_text(encoding="utf-8"))
    assert on_disk["sheets"][0]["entries"][0]["translatedText"] == "Hallo daar"
    rows = client.get("/api/rows?source=json:E1").get_json()["rows"]
    assert rows[0]["translatedText"] == "Hallo daar"

    assert client.post("/api/persist-translation", json={"fileName": "E1"}).status_code == 400
    assert client.post("/api/persist-translation", json={
        "fileName": "E1", "rowNumber": 99, "newTranslation": "x"}).status_code == 404
    assert client.post("/api/persist-translation", json={
        "fileName": "nope", "rowNumber": 2, "newTranslation": "x"}).status_code == 404
    assert client.post("/api/persist-translation", json={
        "fileName": "../E1", "rowNumber": 2, "newTranslation": "x"}).status_code == 400

    assert client.get("/api/json-data?file=E1.json").get_json()["fileName"] == "E1"
    assert client.get("/api/json-data?file=nope.json").status_code == 404
    assert client.get("/api/rows?source=json:nope").status_code == 404

    eng.shutdown()
