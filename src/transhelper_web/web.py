from __future__ import annotations
import argparse
import json
from flask import Flask, request, jsonify, Response
from transhelper.engine import Engine, parse_source
from transhelper.match import match_codex
from transhelper.models import Entry, MatchResult
from transhelper import config as CFG

app = Flask(__name__)
_engine: Engine | None = None


def _eng() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized")
    return _engine


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _entry_json(e: Entry) -> dict:
    return {
        "sourceText": e.source_text,
        "translatedText": e.translated_text,
        "context": e.context,
        "utterer": e.utterer,
        "sheetName": e.sheet_name,
        "rowNumber": e.row_number,
        "key": e.key,
    }


def _match_json(m: MatchResult) -> dict:
    return {
        "entry": _entry_json(m.entry),
        "matchKind": m.kind.value,
        "startIndex": m.start_index,
        "endIndex": m.end_index,
        "field": m.field,
    }


def _codex_json(e: Entry) -> dict:
    return {"name": e.source_text, "path": e.key, "content": e.context, "category": e.sheet_name}


def _sheets_json(entries) -> list[dict]:
    sheets: dict[str, list[dict]] = {}
    for e in entries:
        sheets.setdefault(e.sheet_name, []).append(_entry_json(e))
    return [{"sheetName": k, "entries": v} for k, v in sheets.items()]


# ---------- API ----------
@app.get("/api/health")
def api_health():
    return jsonify({"ok": _engine is not None, "corpora": len(_engine.cache) if _engine else 0})


def _files(kind: str):
    return jsonify(_eng().list_files(kind))


@app.get("/api/csv-files")
def api_csv_files():
    return _files("csv")


@app.get("/api/json-files")
def api_json_files():
    return _files("json")


@app.get("/api/xlsx-files")
def api_xlsx_files():
    return _files("xlsx")


@app.get("/api/csv-data")
def api_csv_data():
    name = request.args.get("file", "", type=str)
    fmt = request.args.get("format", "json", type=str)
    sheet = request.args.get("sheet", None, type=str) or None
    if not name:
        return _error("Missing required parameter: file", 400)
    eng = _eng()
    try:
        path = eng.path_for("csv", name)
        if fmt == "csv":
            if not path.is_file():
                return _error(f"CSV file not found: {name}", 404)
            return Response(path.read_text(encoding="utf-8"), mimetype="text/csv",
                            headers={"Content-Disposition": f'attachment; filename="{path.name}"'})
        everything = eng.corpus("csv", name)
        corpus = eng.corpus("csv", name, sheet=sheet) if sheet else everything
    except FileNotFoundError:
        return _error(f"CSV file not found: {name}", 404)
    except ValueError as exc:
        return _error(str(exc), 400)
    return jsonify({
        "fileName": corpus.name,
        "totalSheets": len(everything.sheets),
        "totalEntries": len(everything),
        "requestedSheet": sheet,
        "sheets": _sheets_json(corpus.entries),
        "loadedAt": corpus.loaded_at,
    })


@app.post("/api/csv-data")
def api_csv_search():
    body = request.get_json(silent=True) or {}
    files = body.get("files")
    if not isinstance(files, list):
        return _error("Missing required parameter: files (array)", 400)
    term = body.get("searchTerm") or ""
    context = body.get("context") or None
    try:
        max_results = int(body.get("maxResults") or CFG.MAX_SUGGESTIONS)
    except (TypeError, ValueError):
        return _error("maxResults must be an integer", 400)
    results = _eng().search([str(f) for f in files], term, context, max_results)
    return jsonify({
        "searchTerm": term,
        "context": context,
        "totalFiles": len(files),
        "filesWithResults": len(results),
        "totalMatches": sum(len(hits) for _, hits in results),
        "results": [{"file": f, "matches": [_entry_json(e) for e in hits]} for f, hits in results],
    })


@app.get("/api/json-data")
def api_json_data():
    name = request.args.get("file", "", type=str)
    if not name:
        return _error("File parameter is required", 400)
    try:
        path = _eng().path_for("json", name)
    except ValueError as exc:
        return _error(str(exc), 400)
    if not path.is_file():
        return _error("File not found", 404)
    with open(path, "r", encoding="utf-8") as f:
        return jsonify(json.load(f))


@app.get("/api/rows")
def api_rows():
    source = request.args.get("source", "", type=str)
    sheet = request.args.get("sheet", None, type=str) or None
    try:
        kind, name = parse_source(source)
        corpus = _eng().corpus(kind, name, sheet=sheet)
    except FileNotFoundError:
        return _error(f"File not found: {source}", 404)
    except ValueError as exc:
        return _error(str(exc), 400)
    return jsonify({"fileName": corpus.name, "sheets": list(corpus.sheets),
                    "rows": [_entry_json(e) for e in corpus.entries]})


@app.get("/api/codex")
def api_codex():
    q = request.args.get("q", "", type=str)
    try:
        corpus = _eng().codex()
    except FileNotFoundError:
        return _error("Codex directory not found", 404)
    notes = match_codex(q, corpus.entries) if q else corpus.entries
    out: dict[str, list[dict]] = {}
    for e in notes:
        out.setdefault(e.sheet_name, []).append(_codex_json(e))
    return jsonify(out)


@app.get("/api/match")
def api_match():
    q = request.args.get("q", "", type=str)
    k = request.args.get("k", CFG.MAX_SUGGESTIONS, type=int)
    chars = request.args.get("characters", None, type=str) or None
    short_names = request.args.get("shortNames", "0", type=str) == "1"
    codex = request.args.get("codex", "0", type=str) == "1"
    try:
        sources = [parse_source(s) for s in request.args.getlist("corpus")]
        characters = parse_source(chars) if chars else None
    except ValueError as exc:
        return _error(str(exc), 400)
    if not q:
        return jsonify({"matches": [], "spans": [], "placeholders": [], "codex": [], "unavailable": []})
    res = _eng().suggest(q, sources, characters=characters, limit=k, short_names=short_names, codex=codex)
    return jsonify({
        "matches": [_match_json(m) for m in res.matches],
        "spans": [{"start": s.start, "end": s.end, "translatedText": s.match.entry.translated_text,
                   "sourceText": s.match.entry.source_text} for s in res.spans],
        "placeholders": res.placeholders,
        "codex": [_codex_json(e) for e in res.codex],
        "unavailable": res.unavailable,
    })


@app.post("/api/persist-translation")
def api_persist():
    body = request.get_json(silent=True) or {}
    file_name = body.get("fileName")
    row = body.get("rowNumber")
    text = body.get("newTranslation")
    if not file_name or not row or text is None:
        return _error("Missing required fields: fileName, rowNumber, newTranslation", 400)
    try:
        _eng().persist(str(file_name), int(row), str(text),
                       sheet_name=body.get("sheetName") or None, key=body.get("key") or None)
    except FileNotFoundError:
        return _error(f"File {file_name}.json not found", 404)
    except KeyError:
        return _error(f"Entry with row number {row} not found", 404)
    except ValueError as exc:
        return _error(str(exc), 400)
    return jsonify({"success": True, "message": f"Translation updated successfully for row {row}",
                    "updatedTranslation": text})


@app.post("/api/reload")
def api_reload():
    body = request.get_json(silent=True) or {}
    try:
        dropped = _eng().reload(body.get("kind") or None, body.get("file") or None)
    except ValueError as exc:
        return _error(str(exc), 400)
    return jsonify({"ok": True, "dropped": dropped})


# ---------- UI ----------
@app.get("/")
def home():
    # Single page: row stepper, highlighted source, click-to-insert suggestions. No external deps.
    html = r"""
<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width,initial-scale=1" />
<title>Translation Helper • Flask UI</title>
<style>
:root{
  --bg:#0b0f14; --panel:#0f141b; --ink:#cfd8e3; --muted:#8a94a6;
  --accent:#6ee7ff; --accent-2:#22d3ee; --border:#1c2530;
  --mark-bg:rgba(110,231,255,.2); --pill:#17324a;
}
*{box-sizing:border-box}
body{ margin:0; background:var(--bg); color:var(--ink);
  font:16px/1.45 system-ui,-apple-system,Segoe UI,Roboto,Ubuntu,"Helvetica Neue",Arial; }
.container{ max-width:1080px; margin:24px auto; padding:0 16px }
.card{ background:var(--panel); border:1px solid var(--border); border-radius:16px; padding:18px; margin-bottom:16px }
h1{ font-size:20px; margin:0 0 8px 0 }
.controls{ display:flex; gap:12px; align-items:center; flex-wrap:wrap; margin:8px 0 }
input,select,textarea{ padding:10px 12px; border-radius:10px; border:1px solid var(--border);
  background:#0b1117; color:var(--ink); font-size:15px; outline:none }
textarea{ width:100%; min-height:90px; resize:vertical }
.btn{ padding:10px 14px; border-radius:10px; border:1px solid var(--border); background:#0b1117; color:var(--ink); cursor:pointer }
.btn:hover{ border-color:var(--accent-2) }
.meta{ color:var(--muted); font-size:13px }
.source{ font-size:18px; padding:12px; border:1px solid var(--border); border-radius:12px; white-space:pre-wrap }
.mark{ background:var(--mark-bg); border-bottom:1px solid var(--accent-2); cursor:pointer }
.pill{ display:inline-block; padding:4px 10px; margin:4px 6px 0 0; border-radius:999px; background:var(--pill); cursor:pointer }
.row{ display:grid; grid-template-columns:8rem 1fr 1fr; gap:10px; padding:8px 0; border-top:1px solid var(--border) }
.err{ color:#ffb0b0 }
</style>
</head>
<body>
<div class="container">
  <div class="card">
    <h1>Translation Helper</h1>
    <div class="controls">
      <select id="rowsrc"></select>
      <input id="corpora" placeholder="match corpora, e.g. csv:E1.csv json:E2" size="40" />
      <input id="chars" placeholder="characters, e.g. csv:character_translations.csv" size="32" />
      <button id="load" class="btn">Load</button>
    </div>
    <div class="controls">
      <button id="prev" class="btn">&larr; Prev</button>
      <button id="next" class="btn">Next &rarr;</button>
      <input id="jump" type="number" placeholder="row" style="width:6rem" />
      <button id="go" class="btn">Go</button>
      <span id="stats" class="meta">Ready.</span>
    </div>
    <div id="speaker" class="meta"></div>
    <div id="source" class="source">Load a file to start.</div>
    <div id="pills"></div>
    <p><textarea id="draft" placeholder="Translation…"></textarea></p>
    <div class="controls">
      <button id="submit" class="btn">Submit</button>
      <span id="err" class="err"></span>
    </div>
  </div>
  <div class="card">
    <div class="meta">Suggestions</div>
    <div id="out"></div>
  </div>
</div>
<script>
const $ = (s) => document.querySelector(s);
let rows = [], idx = 0, file = "", t;
function esc(s){ return String(s ?? "").replace(/[&<>"]/g, c => ({"&":"&amp;","<":"&lt;",">":"&gt;",'"':"&quot;"}[c])); }
function speaker(u){ if(!u) return "Speaker"; const p = u.split("."); return p.length >= 4 ? p.slice(3).join(".") : u; }
function insert(text){
  const d = $("#draft"), pos = d.selectionStart ?? d.value.length;
  d.value = d.value.slice(0,pos) + text + d.value.slice(pos);
  d.focus(); d.setSelectionRange(pos+text.length, pos+text.length);
}
function render(text, spans){
  // spans are sorted and non-overlapping
  let html = "", at = 0;
  for(const s of spans){
    html += esc(text.slice(at, s.start));
    html += `<span class="mark" title="${esc(s.translatedText || "Not found in Localization Manual")}" data-ins="${esc(s.translatedText)}">${esc(text.slice(s.start, s.end))}</span>`;
    at = s.end;
  }
  return html + esc(text.slice(at));
}
async function match(){
  const row = rows[idx]; if(!row) return;
  const qs = new URLSearchParams({q: row.sourceText, codex: "1"});
  $("#corpora").value.split(/\s+/).filter(Boolean).forEach(c => qs.append("corpus", c));
  if($("#chars").value) qs.set("characters", $("#chars").value);
  const r = await fetch(`/api/match?${qs}`); const data = await r.json();
  if(!r.ok){ $("#err").textContent = data.error || `HTTP ${r.status}`; return; }
  $("#source").innerHTML = render(row.sourceText, data.spans);
  $("#pills").innerHTML = data.placeholders.map(p => `<span class="pill" data-ins="(${esc(p)})">${esc(p)}</span>`).join("");
  $("#out").innerHTML = data.matches.map(m => `
    <div class="row"><div class="meta">${esc(m.matchKind)}</div>
    <div>${esc(m.entry.sourceText)}</div><div class="mark" data-ins="${esc(m.entry.translatedText)}">${esc(m.entry.translatedText)}</div></div>`).join("")
    + data.codex.map(n => `<div class="row"><div class="meta">${esc(n.category)}</div><div>${esc(n.name)}</div><div class="meta">${esc(n.content.slice(0, 160))}</div></div>`).join("")
    + data.unavailable.map(u => `<div class="meta">No suggestions available for ${esc(u)}</div>`).join("");
}
function show(){
  const row = rows[idx]; if(!row) return;
  $("#speaker").textContent = speaker(row.utterer) + (row.context ? " • " + row.context : "");
  $("#draft").value = row.translatedText || "";
  $("#stats").textContent = `${row.sheetName || "Unknown"} • Row ${row.rowNumber} • ${idx+1}/${rows.length}`;
  $("#err").textContent = "";
  match();
}
async function loadRows(){
  const src = $("#rowsrc").value; if(!src) return;
  const r = await fetch(`/api/rows?source=${encodeURIComponent(src)}`); const data = await r.json();
  if(!r.ok){ $("#err").textContent = data.error; return; }
  rows = data.rows; idx = 0; file = data.fileName; show();
}
async function init(){
  const files = await (await fetch("/api/json-files")).json();
  $("#rowsrc").innerHTML = files.map(f => `<option value="json:${esc(f)}">${esc(f)}</option>`).join("");
}
document.addEventListener("click", (ev) => { const ins = ev.target.dataset && ev.target.dataset.ins; if(ins) insert(ins); });
$("#load").addEventListener("click", loadRows);
$("#prev").addEventListener("click", () => { if(idx > 0){ rows[idx].translatedText = $("#draft").value; idx--; show(); } });
$("#next").addEventListener("click", () => { if(idx < rows.length-1){ rows[idx].translatedText = $("#draft").value; idx++; show(); } });
$("#go").addEventListener("click", () => { const n = parseInt($("#jump").value, 10); const i = rows.findIndex(r => r.rowNumber === n); if(i >= 0){ idx = i; show(); } });
$("#corpora").addEventListener("input", () => { clearTimeout(t); t = setTimeout(match, 150); });
$("#submit").addEventListener("click", async () => {
  const row = rows[idx]; if(!row) return;
  const body = {fileName: file, rowNumber: row.rowNumber, sheetName: row.sheetName, key: row.key, newTranslation: $("#draft").value};
  const r = await fetch("/api/persist-translation", {method:"POST", headers:{"Content-Type":"application/json"}, body: JSON.stringify(body)});
  const data = await r.json();
  $("#err").textContent = r.ok ? "Saved." : (data.error || `HTTP ${r.status}`);
  if(r.ok) row.translatedText = body.newTranslation;
});
init();
</script>
</body>
</html>
"""
    return Response(html, mimetype="text/html")


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Run Flask UI on top of Engine")
    ap.add_argument("--data-root", default=None)
    ap.add_argument("--store", dest="store", default=None)  # DSN: "json:///path" or "memory://"
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    global _engine
    _engine = Engine()
    _engine.open(args.data_root, store_dsn=args.store, verbose=args.verbose)

    try:
        app.run(host=args.host, port=args.port, debug=args.verbose)
    finally:
        _engine.shutdown()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
