import os
import sys
import time

from rich.console import Console

from jsonl_docstore import Database

_force_tty = os.environ.get("FORCE_TTY", "").lower() in ("1", "true", "yes", "on")
_isatty = getattr(sys.stderr, "isatty", lambda: False)()
_console = Console(file=sys.stderr, force_terminal=(_isatty or _force_tty), color_system="standard")

WORDS = ["alpha", "bravo", "charlie", "delta", "echo", "foxtrot", "golf", "hotel"]


def make_record(i):
    rec = {
        "n": i,
        "grp": f"g{i % 10}",
        "even": i % 2 == 0,
        "title": " ".join(WORDS[(i + k) % len(WORDS)] for k in range(3)),
    }
    # Some generic payload fields
    for k in range(20):
        rec[f"f{k:02d}"] = (i * k) % 97
    return rec


def test_performance_medium_dataset(tmp_path):
    db_path = tmp_path / "perf.jsonl"
    N = 2_000

    db = Database(str(db_path), ["title"])

    t0 = time.perf_counter()
    for i in range(N):
        db.insert(make_record(i))
    t1 = time.perf_counter()
    _console.print(f"[perf] insert {N} records: {(t1 - t0):.3f}s")

    t2 = time.perf_counter()
    res_gt = db.find({"n": {"$gt": N // 2 - 1}})
    t3 = time.perf_counter()
    _console.print(f"[perf] range query matched={len(res_gt)}: {(t3 - t2):.3f}s")
    assert len(res_gt) == N // 2

    t4 = time.perf_counter()
    res_or = db.find({"$or": [{"grp": "g1"}, {"grp": "g2"}]}, {"sort": {"n": -1}, "projection": {"n": 1}})
    t5 = time.perf_counter()
    _console.print(f"[perf] $or + sort + projection matched={len(res_or)}: {(t5 - t4):.3f}s")
    assert len(res_or) == N // 5
    assert res_or[0] == {"n": N - 8}
    assert res_or[-1] == {"n": 1}

    t6 = time.perf_counter()
    res_txt = db.find({"$text": "ALPHA"})
    t7 = time.perf_counter()
    _console.print(f"[perf] text query matched={len(res_txt)}: {(t7 - t6):.3f}s")
    assert 0 < len(res_txt) < N

    t8 = time.perf_counter()
    n_del = db.delete({"even": True})
    t9 = time.perf_counter()
    _console.print(f"[perf] delete {n_del} records: {(t9 - t8):.3f}s")
    assert n_del == N // 2
    assert db.stats() == {"active": N // 2, "deleted": N // 2, "lines": N}
