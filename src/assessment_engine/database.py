"""
assessment_engine/database.py — SQLite persistence collaborator
===============================================================
Backs the Question Store Adapter with four small tables so that admin-entered
and machine-generated questions survive between runs, and so usage
statistics and finished attempt reports can be reviewed later.

Design decisions
----------------
- **Options as JSON** — the four options of a question are stored in one
  TEXT column (``options_json``); rows whose options cannot be decoded are
  skipped with a warning, the rest are validated by the store adapter.
- **Deterministic question ids** — generated questions carry an id derived
  from their text, so ``upsert_question`` converges instead of duplicating.
- **UNIQUE(question_id, field_id)** on the mapping table gives a native
  upsert.  Databases created before the constraint existed fall back to an
  existence check followed by an insert.
- **WAL journal mode** and one short-lived connection per call.

Schema (see init_db for the full CREATE TABLE)
----------------------------------------------
  question_banks          question_id PK, category, difficulty, text,
                          options_json, correct_answer, explanation,
                          enrichment, source, is_active
  question_field_mapping  question_id, field_id, weight, is_primary
  question_usage_stats    question_id PK, times_used, times_correct,
                          total_time_seconds, last_used_at
  attempt_reports         attempt_id PK, report_json, created_at

Public API
----------
  init_db()                                 create tables if they don't exist
  fetch_questions(cat, diff, limit, field)  → list[dict]
  upsert_question(question)                 insert or refresh one question row
  upsert_field_mapping(qid, field, …)       idempotent mapping insert
  record_question_usage(qid, correct, t)    bump usage counters
  get_question_stats(qid)                   → dict | None
  deactivate_question(qid)                  hide a question from every fetch
  save_attempt_report(attempt_id, json)     persist a finished report
  load_attempt_report(attempt_id)           → dict | None
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Database file lives next to the workspace root unless configured otherwise
_DB_DIR = Path(__file__).resolve().parent.parent.parent
_DB_PATH = _DB_DIR / "assessment_data.db"


def _get_conn(db_path: str | Path | None = None) -> sqlite3.Connection:
    """Return a connection with row_factory set."""
    conn = sqlite3.connect(str(db_path or _DB_PATH), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def init_db(db_path: str | Path | None = None) -> None:
    """Create tables if they don't exist."""
    conn = _get_conn(db_path)
    conn.executescript("""
    CREATE TABLE IF NOT EXISTS question_banks (
        question_id     TEXT PRIMARY KEY,
        category        TEXT    NOT NULL,
        difficulty      TEXT    NOT NULL,
        question_text   TEXT    NOT NULL,
        options_json    TEXT    NOT NULL,
        correct_answer  TEXT    NOT NULL,
        explanation     TEXT    NOT NULL,
        enrichment      TEXT,
        source          TEXT    DEFAULT 'admin',
        is_active       INTEGER DEFAULT 1,
        created_at      TEXT    DEFAULT (datetime('now')),
        updated_at      TEXT    DEFAULT (datetime('now'))
    );
    CREATE INDEX IF NOT EXISTS idx_question_cell
        ON question_banks (category, difficulty, is_active);
    CREATE TABLE IF NOT EXISTS question_field_mapping (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        question_id     TEXT    NOT NULL,
        field_id        TEXT    NOT NULL,
        weight          INTEGER DEFAULT 1,
        is_primary      INTEGER DEFAULT 0,
        created_at      TEXT    DEFAULT (datetime('now')),
        UNIQUE (question_id, field_id)
    );
    CREATE TABLE IF NOT EXISTS question_usage_stats (
        question_id        TEXT PRIMARY KEY,
        times_used         INTEGER DEFAULT 0,
        times_correct      INTEGER DEFAULT 0,
        total_time_seconds REAL    DEFAULT 0,
        last_used_at       TEXT
    );
    CREATE TABLE IF NOT EXISTS attempt_reports (
        attempt_id      TEXT PRIMARY KEY,
        report_json     TEXT NOT NULL,
        created_at      TEXT DEFAULT (datetime('now'))
    );
    """)
    conn.commit()
    conn.close()


def _row_to_question(row: sqlite3.Row) -> dict[str, Any]:
    data = dict(row)
    data["options"] = json.loads(data.pop("options_json") or "[]")
    data["is_active"] = bool(data.get("is_active", 1))
    return data


# ─── Question banks ──────────────────────────────────────────────────────────

_QUESTION_COLUMNS = """
    q.question_id, q.category, q.difficulty, q.question_text, q.options_json,
    q.correct_answer, q.explanation, q.enrichment, q.source, q.is_active
"""


def fetch_questions(
    category: str,
    difficulty: str,
    limit: int,
    field_id: Optional[str] = None,
    db_path: str | Path | None = None,
) -> list[dict]:
    """
    Active questions for one (category, difficulty) cell.

    With *field_id* only questions mapped to that study field are returned,
    primary mappings first.  Rows come back as plain dicts with ``options``
    already decoded.
    """
    if limit <= 0:
        return []
    conn = _get_conn(db_path)
    try:
        if field_id is None:
            rows = conn.execute(
                f"""
                SELECT {_QUESTION_COLUMNS} FROM question_banks q
                WHERE q.category = ? AND q.difficulty = ? AND q.is_active = 1
                ORDER BY q.created_at DESC
                LIMIT ?
                """,
                (category, difficulty, limit),
            ).fetchall()
        else:
            rows = conn.execute(
                f"""
                SELECT {_QUESTION_COLUMNS} FROM question_banks q
                JOIN question_field_mapping m ON m.question_id = q.question_id
                WHERE m.field_id = ? AND q.category = ? AND q.difficulty = ?
                  AND q.is_active = 1
                ORDER BY m.is_primary DESC, m.weight DESC, q.created_at DESC
                LIMIT ?
                """,
                (field_id, category, difficulty, limit),
            ).fetchall()
    finally:
        conn.close()

    questions: list[dict] = []
    for r in rows:
        try:
            questions.append(_row_to_question(r))
        except ValueError as exc:
            # Corrupt options_json; skip the row, keep the rest of the cell
            logger.warning("Skipping stored question %s: undecodable options (%s)",
                           r["question_id"], exc)
    return questions


def upsert_question(question: dict[str, Any], db_path: str | Path | None = None) -> None:
    """Insert a question row or refresh the existing row with the same id."""
    conn = _get_conn(db_path)
    conn.execute(
        """
        INSERT INTO question_banks
            (question_id, category, difficulty, question_text, options_json,
             correct_answer, explanation, enrichment, source, is_active)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(question_id) DO UPDATE SET
            category       = excluded.category,
            difficulty     = excluded.difficulty,
            question_text  = excluded.question_text,
            options_json   = excluded.options_json,
            correct_answer = excluded.correct_answer,
            explanation    = excluded.explanation,
            enrichment     = excluded.enrichment,
            updated_at     = datetime('now')
        """,
        (
            question["question_id"],
            question["category"],
            question["difficulty"],
            question["question_text"],
            json.dumps(list(question["options"])),
            question["correct_answer"],
            question["explanation"],
            question.get("enrichment"),
            question.get("source", "admin"),
            1 if question.get("is_active", True) else 0,
        ),
    )
    conn.commit()
    conn.close()


def deactivate_question(question_id: str, db_path: str | Path | None = None) -> None:
    conn = _get_conn(db_path)
    conn.execute(
        "UPDATE question_banks SET is_active = 0, updated_at = datetime('now') "
        "WHERE question_id = ?",
        (question_id,),
    )
    conn.commit()
    conn.close()


# ─── Field mappings ──────────────────────────────────────────────────────────

def mapping_exists(question_id: str, field_id: str, db_path: str | Path | None = None) -> bool:
    conn = _get_conn(db_path)
    row = conn.execute(
        "SELECT 1 FROM question_field_mapping WHERE question_id = ? AND field_id = ?",
        (question_id, field_id),
    ).fetchone()
    conn.close()
    return row is not None


def insert_field_mapping(
    question_id: str,
    field_id: str,
    weight: int = 1,
    is_primary: bool = False,
    db_path: str | Path | None = None,
) -> None:
    conn = _get_conn(db_path)
    conn.execute(
        "INSERT INTO question_field_mapping (question_id, field_id, weight, is_primary) "
        "VALUES (?, ?, ?, ?)",
        (question_id, field_id, weight, 1 if is_primary else 0),
    )
    conn.commit()
    conn.close()


def upsert_field_mapping(
    question_id: str,
    field_id: str,
    weight: int = 1,
    is_primary: bool = False,
    db_path: str | Path | None = None,
) -> None:
    """Map a question to a study field; an existing pair is left untouched."""
    conn = _get_conn(db_path)
    try:
        conn.execute(
            """
            INSERT INTO question_field_mapping (question_id, field_id, weight, is_primary)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(question_id, field_id) DO NOTHING
            """,
            (question_id, field_id, weight, 1 if is_primary else 0),
        )
        conn.commit()
        return
    except sqlite3.OperationalError:
        # Legacy table without the UNIQUE(question_id, field_id) constraint
        logger.debug("Mapping table lacks a unique pair constraint; checking before insert")
    finally:
        conn.close()

    if not mapping_exists(question_id, field_id, db_path):
        insert_field_mapping(question_id, field_id, weight, is_primary, db_path)


# ─── Usage statistics ────────────────────────────────────────────────────────

def record_question_usage(
    question_id: str,
    is_correct: bool,
    time_seconds: float = 0.0,
    db_path: str | Path | None = None,
) -> None:
    """Increment the usage counters for one answered question."""
    conn = _get_conn(db_path)
    conn.execute(
        """
        INSERT INTO question_usage_stats
            (question_id, times_used, times_correct, total_time_seconds, last_used_at)
        VALUES (?, 1, ?, ?, datetime('now'))
        ON CONFLICT(question_id) DO UPDATE SET
            times_used         = times_used + 1,
            times_correct      = times_correct + excluded.times_correct,
            total_time_seconds = total_time_seconds + excluded.total_time_seconds,
            last_used_at       = excluded.last_used_at
        """,
        (question_id, 1 if is_correct else 0, float(time_seconds)),
    )
    conn.commit()
    conn.close()


def get_question_stats(question_id: str, db_path: str | Path | None = None) -> Optional[dict]:
    """Usage counters plus a derived ``success_rate`` (0–100), or None."""
    conn = _get_conn(db_path)
    row = conn.execute(
        "SELECT * FROM question_usage_stats WHERE question_id = ?", (question_id,)
    ).fetchone()
    conn.close()
    if row is None:
        return None
    stats = dict(row)
    used = stats["times_used"] or 0
    stats["success_rate"] = round(stats["times_correct"] / used * 100, 2) if used else 0.0
    return stats


# ─── Attempt reports ─────────────────────────────────────────────────────────

def save_attempt_report(attempt_id: str, report_json: str, db_path: str | Path | None = None) -> None:
    """Persist a finished report; re-saving the same attempt replaces it."""
    conn = _get_conn(db_path)
    conn.execute(
        """
        INSERT INTO attempt_reports (attempt_id, report_json) VALUES (?, ?)
        ON CONFLICT(attempt_id) DO UPDATE SET report_json = excluded.report_json
        """,
        (attempt_id, report_json),
    )
    conn.commit()
    conn.close()


def load_attempt_report(attempt_id: str, db_path: str | Path | None = None) -> Optional[dict]:
    conn = _get_conn(db_path)
    row = conn.execute(
        "SELECT report_json FROM attempt_reports WHERE attempt_id = ?", (attempt_id,)
    ).fetchone()
    conn.close()
    if row is None:
        return None
    return json.loads(row["report_json"])
