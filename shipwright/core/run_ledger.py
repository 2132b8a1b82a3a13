"""Append-only, hash-chained run ledger backed by SQLite.

One row per stage state transition.  The ledger is an audit record: the
status view reads it, but no run ever reads another run's entries to decide
what to do.

- Append-only: only ``append()`` writes; no update, no delete.
- Hash-chained per run: each entry carries the SHA-256 of the previous one.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path

from shipwright.core.hasher import compute_entry_hash
from shipwright.models.ledger import LedgerEntry

_CREATE_LEDGER = """
CREATE TABLE IF NOT EXISTS run_ledger (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id              TEXT NOT NULL UNIQUE,
    run_id                TEXT NOT NULL,
    stage_id              TEXT NOT NULL,
    state_transition      TEXT NOT NULL,
    timestamp_utc         TEXT NOT NULL,
    input_hash            TEXT NOT NULL DEFAULT '',
    output_hash           TEXT NOT NULL DEFAULT '',
    artifact_refs_json    TEXT NOT NULL DEFAULT '[]',
    detail_json           TEXT NOT NULL DEFAULT '{}',
    previous_entry_hash   TEXT NOT NULL DEFAULT '',
    entry_hash            TEXT NOT NULL UNIQUE
);
"""

_CREATE_IDX_RUN = """
CREATE INDEX IF NOT EXISTS idx_run_id ON run_ledger(run_id, id);
"""

_COLUMNS = (
    "id, entry_id, run_id, stage_id, state_transition, timestamp_utc, "
    "input_hash, output_hash, artifact_refs_json, detail_json, "
    "previous_entry_hash, entry_hash"
)


class LedgerIntegrityError(RuntimeError):
    """Raised when the hash chain is broken."""


class RunLedger:
    """Append-only, hash-chained run ledger.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self._db_path))

    def _init_schema(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(_CREATE_LEDGER)
            conn.execute(_CREATE_IDX_RUN)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def append(self, entry: LedgerEntry) -> LedgerEntry:
        """Seal *entry* onto its run's hash chain and persist it.

        Returns the entry with ``previous_entry_hash`` and ``entry_hash`` set.
        """
        previous_hash = self._get_latest_hash(entry.run_id)
        unsealed = entry.model_copy(
            update={"previous_entry_hash": previous_hash, "entry_hash": ""}
        )
        entry_hash = compute_entry_hash(unsealed.model_dump(mode="json"))
        sealed = unsealed.model_copy(update={"entry_hash": entry_hash})
        self._insert(sealed)
        return sealed

    def _insert(self, entry: LedgerEntry) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT INTO run_ledger
                    (entry_id, run_id, stage_id, state_transition, timestamp_utc,
                     input_hash, output_hash, artifact_refs_json, detail_json,
                     previous_entry_hash, entry_hash)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.entry_id,
                    entry.run_id,
                    entry.stage_id,
                    entry.state_transition,
                    entry.timestamp_utc.isoformat(),
                    entry.input_hash,
                    entry.output_hash,
                    json.dumps(entry.artifact_references),
                    json.dumps(entry.detail, sort_keys=True),
                    entry.previous_entry_hash,
                    entry.entry_hash,
                ),
            )

    def _get_latest_hash(self, run_id: str) -> str:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT entry_hash FROM run_ledger WHERE run_id = ? ORDER BY id DESC LIMIT 1",
                (run_id,),
            ).fetchone()
        return row[0] if row else ""

    # ------------------------------------------------------------------
    # Queries (read-only)
    # ------------------------------------------------------------------

    def get_run_entries(self, run_id: str) -> list[LedgerEntry]:
        """Return all ledger entries for a run, ordered chronologically."""
        with closing(self._connect()) as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM run_ledger WHERE run_id = ? ORDER BY id ASC",
                (run_id,),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def get_stage_history(self, run_id: str, stage_id: str) -> list[LedgerEntry]:
        """Return all ledger entries for one stage in a run."""
        return [e for e in self.get_run_entries(run_id) if e.stage_id == stage_id]

    def get_all_run_ids(self) -> list[str]:
        """Return all distinct run ids, most recent first."""
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT run_id, MAX(id) AS last_id FROM run_ledger "
                "GROUP BY run_id ORDER BY last_id DESC"
            ).fetchall()
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Chain verification
    # ------------------------------------------------------------------

    def verify_chain(self, run_id: str) -> bool:
        """Walk a run's entries and recompute every link.

        Returns True if the chain is valid, raises LedgerIntegrityError otherwise.
        """
        prev_hash = ""
        for entry in self.get_run_entries(run_id):
            if entry.previous_entry_hash != prev_hash:
                raise LedgerIntegrityError(
                    f"Chain broken at entry {entry.entry_id}: "
                    f"expected previous_hash={prev_hash!r}, "
                    f"got {entry.previous_entry_hash!r}"
                )
            expected_hash = compute_entry_hash(entry.model_dump(mode="json"))
            if entry.entry_hash != expected_hash:
                raise LedgerIntegrityError(
                    f"Tampered entry {entry.entry_id}: "
                    f"expected hash={expected_hash!r}, got {entry.entry_hash!r}"
                )
            prev_hash = entry.entry_hash
        return True

    @staticmethod
    def _row_to_entry(row: tuple) -> LedgerEntry:
        (
            _id,
            entry_id,
            run_id,
            stage_id,
            state_transition,
            timestamp_utc,
            input_hash,
            output_hash,
            artifact_refs_json,
            detail_json,
            previous_entry_hash,
            entry_hash,
        ) = row
        return LedgerEntry(
            entry_id=entry_id,
            run_id=run_id,
            stage_id=stage_id,
            state_transition=state_transition,
            timestamp_utc=datetime.fromisoformat(timestamp_utc),
            input_hash=input_hash,
            output_hash=output_hash,
            artifact_references=json.loads(artifact_refs_json),
            detail=json.loads(detail_json),
            previous_entry_hash=previous_entry_hash,
            entry_hash=entry_hash,
        )
