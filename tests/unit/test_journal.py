"""Tests for StepJournal: append-only storage and hash chaining."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from beaconforge.core.journal import JournalIntegrityError, StepJournal
from beaconforge.models.journal import JournalEntry


def _entry(run_id: str, step_id: str, transition: str = "not_started->running") -> JournalEntry:
    return JournalEntry(run_id=run_id, step_id=step_id, state_transition=transition)


class TestStepJournal:
    def test_append_links_entries(self, journal: StepJournal, run_id: str):
        first = journal.append(_entry(run_id, "collect_genesis"))
        second = journal.append(_entry(run_id, "collect_genesis", "running->passed"))
        assert first.previous_entry_hash == ""
        assert second.previous_entry_hash == first.entry_hash
        assert len(first.entry_hash) == 64

    def test_entries_round_trip_in_order(self, journal: StepJournal, run_id: str):
        journal.append(_entry(run_id, "collect_genesis"))
        sealed = journal.append(
            JournalEntry(
                run_id=run_id,
                step_id="merge_genesis",
                state_transition="not_started->running",
                artifact_references=["cosmos-genesis-final"],
            )
        )
        entries = journal.get_run_entries(run_id)
        assert [e.step_id for e in entries] == ["collect_genesis", "merge_genesis"]
        assert entries[1].entry_hash == sealed.entry_hash
        assert entries[1].artifact_references == ["cosmos-genesis-final"]

    def test_chains_are_per_run(self, journal: StepJournal):
        journal.append(_entry("run-a", "collect_genesis"))
        b = journal.append(_entry("run-b", "collect_genesis"))
        assert b.previous_entry_hash == ""
        assert journal.get_all_run_ids() == ["run-a", "run-b"]

    def test_verify_intact_chain(self, journal: StepJournal, run_id: str):
        for transition in ("not_started->running", "running->passed"):
            journal.append(_entry(run_id, "collect_genesis", transition))
        assert journal.verify_chain(run_id) is True

    def test_tampered_detail_detected(self, journal: StepJournal, run_id: str, tmp_dir: Path):
        journal.append(_entry(run_id, "collect_genesis"))
        journal.append(_entry(run_id, "collect_genesis", "running->failed"))

        conn = sqlite3.connect(str(tmp_dir / "journal.db"))
        conn.execute(
            "UPDATE step_journal SET detail = 'all good' WHERE state_transition = ?",
            ("running->failed",),
        )
        conn.commit()
        conn.close()

        with pytest.raises(JournalIntegrityError, match="hash mismatch"):
            journal.verify_chain(run_id)

    def test_deleted_entry_breaks_link(self, journal: StepJournal, run_id: str, tmp_dir: Path):
        for transition in ("not_started->running", "running->passed"):
            journal.append(_entry(run_id, "collect_genesis", transition))
        journal.append(_entry(run_id, "merge_genesis"))

        conn = sqlite3.connect(str(tmp_dir / "journal.db"))
        conn.execute("DELETE FROM step_journal WHERE state_transition = 'running->passed'")
        conn.commit()
        conn.close()

        with pytest.raises(JournalIntegrityError, match="predecessor"):
            journal.verify_chain(run_id)

    def test_reopen_keeps_entries(self, journal: StepJournal, run_id: str, tmp_dir: Path):
        journal.append(_entry(run_id, "collect_genesis"))
        reopened = StepJournal(tmp_dir / "journal.db")
        assert len(reopened.get_run_entries(run_id)) == 1
