from __future__ import annotations
import argparse, json, sys
from dataclasses import asdict

from .engine import Engine, parse_source
from .convert import convert_folder
from . import config as CFG


def _row(m) -> dict:
    d = asdict(m)
    d["kind"] = m.kind.value
    return d


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Translation helper CLI")
    g = p.add_mutually_exclusive_group(required=True)
    g.add_argument("--convert", action="store_true", help="Convert excels/*.xlsx into data/json and data/csv")
    g.add_argument("--match", action="store_true", help="Match text against corpora")

    p.add_argument("--data-root", default=None, help="Folder holding excels/ and data/")
    p.add_argument("--corpus", nargs="+", default=[], help="Sources as kind:name, e.g. csv:E1.csv json:E1")
    p.add_argument("--characters", default=None, help="Character table source, e.g. csv:character_translations.csv")
    p.add_argument("-k", type=int, default=CFG.MAX_SUGGESTIONS, help="Max matches shown")
    p.add_argument("--q", default=None, help="Single query to run once")
    p.add_argument("--repl", action="store_true", help="Interactive loop")
    p.add_argument("--json", action="store_true", help="Emit JSON rows")
    p.add_argument("--codex", action="store_true", help="Also list codex notes the text mentions")
    p.add_argument("--verbose", action="store_true")

    args = p.parse_args(argv)

    eng = Engine()
    try:
        eng.open(args.data_root, verbose=args.verbose)

        if args.convert:
            summary = convert_folder(eng.dir_for("xlsx"), eng.dir_for("json"), eng.dir_for("csv"))
            print(f"files={summary['totalFiles']} ok={summary['successfulFiles']} "
                  f"failed={summary['failedFiles']} entries={summary['totalEntries']}")
            return 0 if summary["failedFiles"] == 0 else 1

        if not args.corpus:
            p.error("--match requires --corpus")
        try:
            sources = [parse_source(s) for s in args.corpus]
            characters = parse_source(args.characters) if args.characters else None
        except ValueError as exc:
            p.error(str(exc))

        def run_query(q: str):
            res = eng.suggest(q, sources, characters=characters, limit=args.k, codex=args.codex)
            if args.json:
                print(json.dumps({
                    "matches": [_row(m) for m in res.matches],
                    "spans": [{"start": s.start, "end": s.end} for s in res.spans],
                    "placeholders": res.placeholders,
                    "codex": [{"name": e.source_text, "category": e.sheet_name, "path": e.key} for e in res.codex],
                    "unavailable": res.unavailable,
                }, ensure_ascii=False, indent=2))
                return
            for src in res.unavailable:
                print(f"(no suggestions available for {src})", file=sys.stderr)
            if not res.matches:
                print("(no matches)")
            else:
                print("#  Kind               Sheet:Row        Source                               Translation")
                for i, m in enumerate(res.matches, 1):
                    loc = f"{m.entry.sheet_name}:{m.entry.row_number}"
                    print(f"{i:<2} {m.kind.value:<18} {loc:<16} {m.entry.source_text:<36} {m.entry.translated_text}")
            if res.placeholders:
                print("placeholders: " + ", ".join(res.placeholders))
            if res.codex:
                print("codex: " + ", ".join(f"{e.source_text} ({e.sheet_name})" for e in res.codex))

        if args.q:
            run_query(args.q)

        if args.repl:
            print("Type a line to match (empty line to exit).")
            while True:
                try:
                    q = input("> ").strip()
                except (EOFError, KeyboardInterrupt):
                    break
                if not q:
                    break
                run_query(q)

        return 0
    finally:
        eng.shutdown()


if __name__ == "__main__":
    raise SystemExit(main())
