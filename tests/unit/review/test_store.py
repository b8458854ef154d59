"""Tests for SQLite-backed mapping persistence."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest

from mapstudio.models.lifecycle import ConfirmationAudit, MappingFieldRow, VersionStatus
from mapstudio.review.store import MappingStore

NOW = "2026-01-05T10:00:00+00:00"


def _row(source: str, target: str) -> MappingFieldRow:
    return MappingFieldRow(source_path=source, target_path=target, confidence=0.9)


def _audit(project: str = "ORDERS", version: str = "1.0.0") -> ConfirmationAudit:
    return ConfirmationAudit(
        project_code=project,
        version_code=version,
        selected_count=1,
        mapping_snapshot="[]",
        created_at=NOW,
    )


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[MappingStore]:
    """A fresh store in a nested temp directory."""
    s = MappingStore(tmp_path / "nested" / "mapstudio.db")
    yield s
    s.close()


class TestMappingStoreVersions:
    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        db = tmp_path / "a" / "b" / "m.db"
        MappingStore(db).close()
        assert db.exists()

    def test_ensure_version_is_insert_or_ignore(self, store: MappingStore) -> None:
        assert store.ensure_version("ORDERS", "1.0.0", '{"targetType":"XSD"}', created_at=NOW)
        assert not store.ensure_version("ORDERS", "1.0.0", "{}", created_at="later")

        version = store.get_version("ORDERS", "1.0.0")
        assert version is not None
        assert version.status == VersionStatus.DRAFT
        assert version.target_schema_snapshot == '{"targetType":"XSD"}'
        assert version.created_at == NOW
        assert version.saved_at is None

    def test_get_missing_version(self, store: MappingStore) -> None:
        assert store.get_version("NOPE", "0") is None

    def test_project_source_type(self, store: MappingStore) -> None:
        store.ensure_version("ORDERS", "1.0.0", created_at=NOW, source_type="XML")
        assert store.get_project_source_type("ORDERS") == "XML"
        assert store.get_project_source_type("NOPE") is None

    def test_mark_published(self, store: MappingStore) -> None:
        store.ensure_version("ORDERS", "1.0.0", created_at=NOW)
        updated = store.mark_published(
            "ORDERS", "1.0.0", artifact_id="abc", published_at=NOW
        )
        version = store.get_version("ORDERS", "1.0.0")
        assert updated == 1
        assert version is not None
        assert version.status == VersionStatus.PUBLISHED
        assert version.artifact_id == "abc"

    def test_data_survives_reopen(self, tmp_path: Path) -> None:
        db = tmp_path / "m.db"
        first = MappingStore(db)
        first.replace_field_rows("ORDERS", "1.0.0", [_row("a", "b")], saved_at=NOW)
        first.close()

        second = MappingStore(db)
        assert [r.source_path for r in second.list_field_rows("ORDERS", "1.0.0")] == ["a"]
        second.close()


class TestReplaceFieldRows:
    def test_replaces_previous_rows(self, store: MappingStore) -> None:
        store.replace_field_rows("ORDERS", "1.0.0", [_row("a", "x"), _row("b", "y")], saved_at=NOW)
        store.replace_field_rows("ORDERS", "1.0.0", [_row("c", "z")], saved_at=NOW)

        rows = store.list_field_rows("ORDERS", "1.0.0")
        assert [(r.source_path, r.target_path) for r in rows] == [("c", "z")]

    def test_clears_confirmations_and_stamps_saved_at(self, store: MappingStore) -> None:
        store.ensure_version("ORDERS", "1.0.0", created_at=NOW)
        store.insert_confirmation(_audit())
        assert store.has_active_confirmation("ORDERS", "1.0.0")

        store.replace_field_rows("ORDERS", "1.0.0", [_row("a", "x")], saved_at="2026-02-01")

        assert not store.has_active_confirmation("ORDERS", "1.0.0")
        version = store.get_version("ORDERS", "1.0.0")
        assert version is not None
        assert version.saved_at == "2026-02-01"

    def test_other_versions_untouched(self, store: MappingStore) -> None:
        store.replace_field_rows("ORDERS", "1.0.0", [_row("a", "x")], saved_at=NOW)
        store.insert_confirmation(_audit(version="2.0.0"))

        store.replace_field_rows("ORDERS", "1.0.0", [], saved_at=NOW)

        assert store.has_active_confirmation("ORDERS", "2.0.0")

    def test_failure_rolls_back_everything(self, store: MappingStore) -> None:
        store.replace_field_rows("ORDERS", "1.0.0", [_row("old", "x")], saved_at=NOW)
        store.insert_confirmation(_audit())
        store._conn.execute("""
            CREATE TRIGGER fail_insert BEFORE INSERT ON mapping_field
            WHEN NEW.source_path = 'boom'
            BEGIN SELECT RAISE(ABORT, 'forced failure'); END;
        """)

        with pytest.raises(sqlite3.Error):
            store.replace_field_rows(
                "ORDERS", "1.0.0", [_row("new", "y"), _row("boom", "z")], saved_at="later"
            )

        rows = store.list_field_rows("ORDERS", "1.0.0")
        assert [r.source_path for r in rows] == ["old"]
        assert store.has_active_confirmation("ORDERS", "1.0.0")


class TestConfirmations:
    def test_latest_confirmation_wins(self, store: MappingStore) -> None:
        store.insert_confirmation(_audit())
        later = _audit()
        later.selected_count = 3
        later.created_at = "2026-03-01"
        store.insert_confirmation(later)

        latest = store.latest_confirmation("ORDERS", "1.0.0")
        assert latest is not None
        assert latest.selected_count == 3
        assert latest.confirmed is True

    def test_no_confirmation(self, store: MappingStore) -> None:
        assert store.latest_confirmation("ORDERS", "1.0.0") is None
        assert not store.has_active_confirmation("ORDERS", "1.0.0")
