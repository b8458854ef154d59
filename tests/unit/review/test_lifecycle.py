"""Tests for the save -> confirm -> export -> publish lifecycle."""

from __future__ import annotations

import json
import sqlite3
import uuid
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from mapstudio.models.lifecycle import LifecycleState, VersionStatus
from mapstudio.models.mapping import MappingSelection, Suggestion
from mapstudio.review.lifecycle import (
    PUBLISH_SKIPPED_REASON,
    ExportPreconditionError,
    LifecycleError,
    MappingLifecycleManager,
    MappingValidationError,
    PersistenceError,
)
from mapstudio.review.store import MappingStore

PROJECT = "ORDERS"
VERSION = "1.0.0"


def _selection(*mappings: Suggestion) -> MappingSelection:
    return MappingSelection(project_code=PROJECT, version_code=VERSION, mappings=list(mappings))


def _mapping(source: str, target: str, selected: bool = True, **extra: object) -> Suggestion:
    return Suggestion(
        source_path=source,
        target_path=target,
        confidence=0.95,
        reason="Field name and type exact match",
        selected=selected,
        **extra,  # type: ignore[arg-type]
    )


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[MappingStore]:
    """A store backed by a temp SQLite file."""
    s = MappingStore(tmp_path / "mapstudio.db")
    yield s
    s.close()


@pytest.fixture()
def lifecycle(store: MappingStore) -> MappingLifecycleManager:
    """Lifecycle manager over the temp store."""
    return MappingLifecycleManager(store)


class TestSave:
    def test_persists_only_selected_non_blank_rows(
        self, lifecycle: MappingLifecycleManager, store: MappingStore
    ) -> None:
        selection = _selection(
            _mapping("user.id", "id"),
            _mapping("user.name", "name", selected=False),
            _mapping("  ", "email"),
            _mapping("user.age", " "),
            _mapping(" user.city ", "city"),
        )
        result = lifecycle.save(selection)

        rows = store.list_field_rows(PROJECT, VERSION)
        assert [(r.source_path, r.target_path) for r in rows] == [
            ("user.id", "id"),
            ("user.city", "city"),
        ]
        assert result.saved_count == 2
        assert result.selected_count == 4

    def test_transform_config_and_reasoning(
        self, lifecycle: MappingLifecycleManager, store: MappingStore
    ) -> None:
        lifecycle.save(
            _selection(
                _mapping(
                    "user.id",
                    "id",
                    manual_override=True,
                    notes="checked by hand",
                    target_artifact_name="users.xsd",
                    target_artifact_type="XSD",
                ),
                _mapping("user.name", "name"),
            )
        )
        first, second = store.list_field_rows(PROJECT, VERSION)

        assert json.loads(first.transform_config) == {
            "manualOverride": True,
            "selected": True,
            "mappingOrigin": "EDITED",
            "targetArtifactName": "users.xsd",
            "targetArtifactType": "XSD",
        }
        assert first.reasoning == "checked by hand"
        assert json.loads(second.transform_config)["mappingOrigin"] == "LLM_DERIVED"
        assert second.reasoning == "Field name and type exact match"

    def test_save_moves_state_to_saved(self, lifecycle: MappingLifecycleManager) -> None:
        assert lifecycle.state(PROJECT, VERSION) == LifecycleState.DRAFT
        lifecycle.save(_selection(_mapping("user.id", "id")))
        assert lifecycle.state(PROJECT, VERSION) == LifecycleState.SAVED


class TestConfirm:
    def test_zero_selected_is_rejected(self, lifecycle: MappingLifecycleManager) -> None:
        with pytest.raises(MappingValidationError):
            lifecycle.confirm(_selection(_mapping("user.id", "id", selected=False)))

    def test_validation_error_is_lifecycle_error(self) -> None:
        assert issubclass(MappingValidationError, LifecycleError)
        assert issubclass(ExportPreconditionError, LifecycleError)

    def test_confirm_without_save_records_snapshot(
        self, lifecycle: MappingLifecycleManager, store: MappingStore
    ) -> None:
        selection = _selection(_mapping("user.id", "id"), _mapping("user.x", "x", selected=False))
        result = lifecycle.confirm(selection)

        assert result.confirmed is True
        assert result.selected_count == 1
        audit = store.latest_confirmation(PROJECT, VERSION)
        assert audit is not None
        assert audit.confirmed_by == "studio-user"
        assert audit.notes == "Manual confirmation from studio UI"
        snapshot = json.loads(audit.mapping_snapshot)
        assert [m["source_path"] for m in snapshot] == ["user.id", "user.x"]
        assert lifecycle.state(PROJECT, VERSION) == LifecycleState.CONFIRMED

    def test_custom_actor(self, store: MappingStore) -> None:
        manager = MappingLifecycleManager(store, actor="alice")
        manager.confirm(_selection(_mapping("user.id", "id")))
        audit = store.latest_confirmation(PROJECT, VERSION)
        assert audit is not None
        assert audit.confirmed_by == "alice"


class TestExport:
    def test_export_before_confirm_fails(self, lifecycle: MappingLifecycleManager) -> None:
        with pytest.raises(ExportPreconditionError):
            lifecycle.export(PROJECT, VERSION)

    def test_export_after_confirm_returns_snapshot(
        self, lifecycle: MappingLifecycleManager
    ) -> None:
        lifecycle.ensure_version(
            PROJECT, VERSION, "XML", json.dumps({"targetType": "XSD", "schemaText": "<x/>"})
        )
        lifecycle.confirm(_selection(_mapping("user.id", "id"), _mapping("user.name", "name")))

        bundle = lifecycle.export(PROJECT, VERSION)

        assert bundle.project_code == PROJECT
        assert bundle.source_type == "XML"
        assert bundle.target_type == "XSD"
        assert bundle.confirmed_by == "studio-user"
        assert [m.target_path for m in bundle.selected_mappings] == ["id", "name"]

    def test_confirm_export_save_scenario(self, lifecycle: MappingLifecycleManager) -> None:
        first = _selection(_mapping("user.id", "id"), _mapping("user.name", "name"))
        assert lifecycle.confirm(first).selected_count == 2
        lifecycle.export(PROJECT, VERSION)

        changed = _selection(_mapping("user.id", "id"), _mapping("user.name", "name", False))
        lifecycle.save(changed)

        with pytest.raises(ExportPreconditionError):
            lifecycle.export(PROJECT, VERSION)
        assert lifecycle.state(PROJECT, VERSION) == LifecycleState.SAVED

        lifecycle.confirm(changed)
        bundle = lifecycle.export(PROJECT, VERSION)
        assert len(bundle.selected_mappings) == 1


class TestPublish:
    @pytest.mark.parametrize("state", ["DRAFT", "", None, "CONFIRMED"])
    def test_skipped_outside_awaiting_confirmation(
        self, lifecycle: MappingLifecycleManager, store: MappingStore, state: str | None
    ) -> None:
        result = lifecycle.publish(PROJECT, VERSION, state)
        assert result.skipped is True
        assert result.reason == PUBLISH_SKIPPED_REASON
        assert result.artifact_id is None
        assert store.get_version(PROJECT, VERSION) is None

    def test_publishes_case_insensitively(
        self, lifecycle: MappingLifecycleManager, store: MappingStore
    ) -> None:
        lifecycle.ensure_version(PROJECT, VERSION)
        result = lifecycle.publish(PROJECT, VERSION, "awaiting_confirmation")

        assert result.skipped is False
        assert result.artifact_id is not None
        uuid.UUID(result.artifact_id)
        version = store.get_version(PROJECT, VERSION)
        assert version is not None
        assert version.status == VersionStatus.PUBLISHED
        assert version.published_at == result.published_at
        assert lifecycle.state(PROJECT, VERSION) == LifecycleState.PUBLISHED

    def test_publish_creates_missing_version(
        self, lifecycle: MappingLifecycleManager, store: MappingStore
    ) -> None:
        lifecycle.publish(PROJECT, VERSION, "AWAITING_CONFIRMATION")
        version = store.get_version(PROJECT, VERSION)
        assert version is not None
        assert version.status == VersionStatus.PUBLISHED


class TestEnsureVersion:
    def test_created_once(self, lifecycle: MappingLifecycleManager) -> None:
        assert lifecycle.ensure_version(PROJECT, VERSION) is True
        assert lifecycle.ensure_version(PROJECT, VERSION) is False


class TestPersistenceErrors:
    def test_store_failure_is_wrapped_with_cause(self) -> None:
        store = MagicMock(spec=MappingStore)
        store.replace_field_rows.side_effect = sqlite3.OperationalError("database is locked")
        manager = MappingLifecycleManager(store)

        with pytest.raises(PersistenceError, match="database is locked") as exc_info:
            manager.save(_selection(_mapping("user.id", "id")))

        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)

    def test_confirm_failure_is_wrapped(self) -> None:
        store = MagicMock(spec=MappingStore)
        store.insert_confirmation.side_effect = sqlite3.DatabaseError("disk I/O error")
        manager = MappingLifecycleManager(store)

        with pytest.raises(PersistenceError):
            manager.confirm(_selection(_mapping("user.id", "id")))
