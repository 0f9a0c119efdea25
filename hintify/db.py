from __future__ import annotations

import base64
import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from hintify.models import QuestionRecord, SaveResult

log = logging.getLogger("hintify.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS questions (
    id TEXT PRIMARY KEY,
    question_text TEXT NOT NULL,
    question_type TEXT NOT NULL,
    image_data TEXT,
    metadata_json TEXT DEFAULT '{}',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS answers (
    id TEXT PRIMARY KEY,
    question_id TEXT NOT NULL REFERENCES questions(id),
    answer_text TEXT NOT NULL,
    ai_provider TEXT,
    ai_model TEXT,
    processing_time_ms INTEGER,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS activity (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    category TEXT NOT NULL,
    action TEXT NOT NULL,
    details_json TEXT,
    created_at TEXT NOT NULL
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """Local SQLite history store and activity sink."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    # ── History ───────────────────────────────────────────────────────────

    def save(self, record: QuestionRecord) -> SaveResult:
        question_id = str(uuid.uuid4())
        answer_id = str(uuid.uuid4())
        meta = dict(record.metadata)
        image = base64.b64encode(record.image_data).decode("ascii") if record.image_data else None
        try:
            self.conn.execute(
                """INSERT INTO questions
                   (id, question_text, question_type, image_data, metadata_json, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (question_id, record.question_text, record.question_type, image,
                 json.dumps(meta), _now()),
            )
            self.conn.execute(
                """INSERT INTO answers
                   (id, question_id, answer_text, ai_provider, ai_model, processing_time_ms, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (answer_id, question_id, record.answer_text, meta.get("ai_provider"),
                 meta.get("ai_model"), record.processing_time_ms, _now()),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            log.error("Failed to save Q&A: %s", e)
            return SaveResult(success=False, error=str(e))
        return SaveResult(success=True, id=question_id)

    def get_history(self, limit: int = 50) -> list[dict]:
        rows = self.conn.execute(
            """SELECT q.id, q.question_text, q.question_type, q.metadata_json, q.created_at,
                      a.answer_text, a.ai_provider, a.ai_model, a.processing_time_ms
               FROM questions q JOIN answers a ON a.question_id = q.id
               ORDER BY q.created_at DESC, q.rowid DESC LIMIT ?""",
            (limit,),
        ).fetchall()
        history = []
        for r in rows:
            d = dict(r)
            d["metadata"] = json.loads(d.pop("metadata_json") or "{}")
            history.append(d)
        return history

    def get_question_count(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM questions").fetchone()[0]

    # ── Activity ──────────────────────────────────────────────────────────

    def log(self, category: str, action: str, details: dict | None = None) -> None:
        self.conn.execute(
            "INSERT INTO activity (category, action, details_json, created_at) VALUES (?, ?, ?, ?)",
            (category, action, json.dumps(details) if details is not None else None, _now()),
        )
        self.conn.commit()

    def get_activity(self, category: str | None = None) -> list[dict]:
        if category is None:
            rows = self.conn.execute("SELECT * FROM activity ORDER BY id").fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM activity WHERE category = ? ORDER BY id", (category,)
            ).fetchall()
        out = []
        for r in rows:
            d = dict(r)
            raw = d.pop("details_json")
            d["details"] = json.loads(raw) if raw else None
            out.append(d)
        return out
