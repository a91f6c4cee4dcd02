import sqlite3
from collections import defaultdict
from typing import Any

from fncli import cli

from .db import TABLES, get_db
from .lib.format import emit

__all__ = ["health_cmd", "score"]


def _check_fk_violations(conn: sqlite3.Connection) -> dict[str, int]:
    rows = conn.execute("PRAGMA foreign_key_check").fetchall()
    violations: dict[tuple[str, str], int] = defaultdict(int)
    for row in rows:
        violations[(row[0], row[2])] += 1
    return {f"{t}→{p}": n for (t, p), n in violations.items()}


def _missing_tables(conn: sqlite3.Connection) -> list[str]:
    live = {
        name
        for (name,) in conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
        ).fetchall()
    }
    return [t for t in TABLES if t not in live]


def score() -> dict[str, Any]:
    issues: list[str] = []
    table_counts: dict[str, int] = {}

    with get_db() as conn:
        result = conn.execute("PRAGMA integrity_check").fetchone()
        if not result or result[0] != "ok":
            issues.append(f"integrity: {result[0] if result else 'unknown'}")

        fk_violations = _check_fk_violations(conn)
        if fk_violations:
            issues.append(f"FK violations: {len(fk_violations)} relation(s)")

        missing = _missing_tables(conn)
        if missing:
            issues.append(f"missing tables: {', '.join(missing)}")

        for table in TABLES:
            if table not in missing:
                table_counts[table] = conn.execute(
                    f'SELECT COUNT(*) FROM "{table}"'  # noqa: S608
                ).fetchone()[0]

    ok = not issues
    return {
        "ok": ok,
        "detail": "db healthy" if ok else "; ".join(issues),
        "issues": issues,
        "fk_violations": fk_violations,
        "missing_tables": missing,
        "table_counts": table_counts,
    }


@cli("habitflow", name="health")
def health_cmd() -> None:
    """Check database integrity"""
    result = score()
    emit(result)
    if not result["ok"]:
        raise SystemExit(1)
