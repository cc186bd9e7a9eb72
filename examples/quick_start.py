#!/usr/bin/env python3
# Example usage of jsonl_docstore

from rich.console import Console

from jsonl_docstore import Database

_console = Console(force_terminal=True, color_system="standard")


def progress_printer(evt):
    phase = evt.get("phase", "")
    pct = int(evt.get("pct", 0))
    msg = evt.get("msg", "")
    if pct < 100:
        return
    text = f"[progress] {phase} {pct}%"
    if msg:
        text += f" - {msg}"
    _console.print(text, highlight=False)


def main() -> None:
    # Create/open the data file; "title" and "summary" are searched by $text
    db = Database("books.jsonl", ["title", "summary"], on_progress=progress_printer)

    db.insert({"title": "Blue Sky", "year": 2001, "summary": "a quiet novel"})
    db.insert({"title": "Red Planet", "year": 1949, "summary": "early space fiction"})
    db.insert({"title": "Green Fields", "year": 1987, "summary": "a quiet farm story"})

    # Field operators, sorted and projected
    for r in db.find({"year": {"$gt": 1950}}, {"sort": {"year": -1}, "projection": {"title": 1}}):
        _console.print("Recent:", r["title"])

    # Boolean combination
    old_or_blue = db.find({"$or": [{"year": {"$lt": 1950}}, {"title": "Blue Sky"}]})
    _console.print("Old or blue:", [r["title"] for r in old_or_blue])

    # Whole-token full-text search
    _console.print("Quiet:", [r["title"] for r in db.find({"$text": "QUIET"})])

    # Logical delete: the line stays in the file with a "D" marker
    deleted = db.delete({"title": "Red Planet"})
    _console.print("Deleted (logical):", deleted, db.stats())


if __name__ == "__main__":
    main()
