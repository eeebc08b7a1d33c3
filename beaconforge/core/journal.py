"""Append-only, hash-chained step journal backed by SQLite.

Every bootstrap step transition lands here so a failed ceremony can be
diagnosed after the fact. There is no update or delete.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

from beaconforge.core.hasher import compute_entry_hash
from beaconforge.models.journal import JournalEntry

_CREATE_JOURNAL = """
CREATE TABLE IF NOT EXISTS step_journal (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id            TEXT NOT NULL UNIQUE,
    run_id              TEXT NOT NULL,
    step_id             TEXT NOT NULL,
    state_transition    TEXT NOT NULL,
    timestamp_utc       TEXT NOT NULL,
    detail              TEXT NOT NULL DEFAULT '',
    input_hash          TEXT NOT NULL DEFAULT '',
    output_hash         TEXT NOT NULL DEFAULT '',
    artifact_refs_json  TEXT NOT NULL DEFAULT '[]',
    previous_entry_hash TEXT NOT NULL DEFAULT '',
    entry_hash          TEXT NOT NULL UNIQUE
);
"""

_CREATE_IDX_RUN = """
CREATE INDEX IF NOT EXISTS idx_journal_run ON step_journal(run_id, id);
"""

_COLUMNS = (
    "entry_id, run_id, step_id, state_transition, timestamp_utc, detail, "
    "input_hash, output_hash, artifact_refs_json, previous_entry_hash, entry_hash"
)


class JournalIntegrityError(RuntimeError):
    """Raised when the hash chain of a run is broken."""


class StepJournal:
    """Append-only, hash-chained journal of step transitions.

    Parameters
    ----------
    db_path:
        SQLite database file, created if missing. ``":memory:"`` is not
        supported because every call opens a fresh connection.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(_CREATE_JOURNAL)
            conn.execute(_CREATE_IDX_RUN)
            conn.commit()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def append(self, entry: JournalEntry) -> JournalEntry:
        """Seal *entry* onto its run's chain and persist it."""
        previous_hash = self._latest_hash(entry.run_id)
        entry_dict = entry.model_dump(mode="json")
        entry_dict["previous_entry_hash"] = previous_hash
        entry_dict["entry_hash"] = ""
        sealed = entry.model_copy(
            update={
                "previous_entry_hash": previous_hash,
                "entry_hash": compute_entry_hash(entry_dict),
            }
        )
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO step_journal ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    sealed.entry_id,
                    sealed.run_id,
                    sealed.step_id,
                    sealed.state_transition,
                    sealed.timestamp_utc.isoformat(),
                    sealed.detail,
                    sealed.input_hash,
                    sealed.output_hash,
                    json.dumps(sealed.artifact_references),
                    sealed.previous_entry_hash,
                    sealed.entry_hash,
                ),
            )
            conn.commit()
        return sealed

    def _latest_hash(self, run_id: str) -> str:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT entry_hash FROM step_journal WHERE run_id = ? "
                "ORDER BY id DESC LIMIT 1",
                (run_id,),
            ).fetchone()
        return row[0] if row else ""

    def get_run_entries(self, run_id: str) -> list[JournalEntry]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM step_journal WHERE run_id = ? ORDER BY id ASC",
                (run_id,),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def get_all_run_ids(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT run_id FROM step_journal GROUP BY run_id ORDER BY MIN(id)"
            ).fetchall()
        return [row[0] for row in rows]

    def verify_chain(self, run_id: str) -> bool:
        """Recompute every hash link of *run_id*.

        Raises JournalIntegrityError at the first broken link.
        """
        previous = ""
        for entry in self.get_run_entries(run_id):
            if entry.previous_entry_hash != previous:
                raise JournalIntegrityError(
                    f"Entry {entry.entry_id} does not link to its predecessor"
                )
            expected = compute_entry_hash(entry.model_dump(mode="json"))
            if expected != entry.entry_hash:
                raise JournalIntegrityError(
                    f"Entry {entry.entry_id} hash mismatch"
                )
            previous = entry.entry_hash
        return True

    @staticmethod
    def _row_to_entry(row: tuple) -> JournalEntry:
        return JournalEntry(
            entry_id=row[0],
            run_id=row[1],
            step_id=row[2],
            state_transition=row[3],
            timestamp_utc=row[4],
            detail=row[5],
            input_hash=row[6],
            output_hash=row[7],
            artifact_references=json.loads(row[8]),
            previous_entry_hash=row[9],
            entry_hash=row[10],
        )
