"""Mapping lifecycle state machine: save -> confirm -> export -> publish.

Transitions fail closed. An unmet precondition raises a descriptive
LifecycleError subclass instead of proceeding, except publish, which
reports a skipped result when the session is not awaiting confirmation.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from loguru import logger

from mapstudio.models.lifecycle import (
    DEFAULT_ACTOR,
    ConfirmationAudit,
    ConfirmResult,
    ExportBundle,
    LifecycleState,
    MappingFieldRow,
    PublishResult,
    SaveResult,
    VersionStatus,
)
from mapstudio.models.mapping import DEFAULT_TRANSFORM_TYPE, MappingSelection, Suggestion
from mapstudio.review.store import MappingStore

STATE_AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
CONFIRM_NOTES = "Manual confirmation from studio UI"
PUBLISH_SKIPPED_REASON = f"Publish allowed only from {STATE_AWAITING_CONFIRMATION}"


class LifecycleError(Exception):
    """Base class for rejected lifecycle transitions."""


class MappingValidationError(LifecycleError):
    """Raised when a submitted selection is structurally unacceptable."""


class ExportPreconditionError(LifecycleError):
    """Raised when export is attempted without an active confirmation."""


class PersistenceError(LifecycleError):
    """Raised when the store fails during a transition. Chained to the sqlite3 error."""


def _now() -> str:
    return datetime.now(tz=UTC).isoformat()


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        msg = f"Failed to {action}: {exc}"
        logger.error(msg)
        raise PersistenceError(msg) from exc


def _to_field_row(mapping: Suggestion) -> MappingFieldRow:
    config: dict[str, object] = {
        "manualOverride": mapping.manual_override,
        "selected": mapping.selected,
        "mappingOrigin": mapping.resolved_origin,
    }
    if mapping.target_artifact_name:
        config["targetArtifactName"] = mapping.target_artifact_name
    if mapping.target_artifact_type:
        config["targetArtifactType"] = mapping.target_artifact_type

    return MappingFieldRow(
        source_path=mapping.source_path.strip(),
        target_path=mapping.target_path.strip(),
        transform_type=mapping.transform_type.strip() or DEFAULT_TRANSFORM_TYPE,
        transform_config=json.dumps(config),
        confidence=mapping.confidence,
        reasoning=mapping.notes.strip() or mapping.reason.strip(),
    )


def _snapshot_target_type(snapshot: str) -> str:
    try:
        payload = json.loads(snapshot or "{}")
    except json.JSONDecodeError:
        return ""
    if not isinstance(payload, dict):
        return ""
    return str(payload.get("targetType") or "")


class MappingLifecycleManager:
    """Governs persistence, confirmation, export, and publishing of a mapping.

    Usage::

        lifecycle = MappingLifecycleManager(MappingStore(db_path))
        lifecycle.save(selection)
        lifecycle.confirm(selection)
        bundle = lifecycle.export("ORDERS", "1.0.0")
    """

    def __init__(self, store: MappingStore, actor: str = DEFAULT_ACTOR) -> None:
        self._store = store
        self._actor = actor

    def ensure_version(
        self,
        project_code: str,
        version_code: str,
        source_type: str = "JSON",
        target_snapshot: str = "{}",
    ) -> bool:
        """Lazily create the project and its DRAFT version.

        Returns:
            True if the version did not exist before.
        """
        with _storage_errors(f"create version {project_code}/{version_code}"):
            created = self._store.ensure_version(
                project_code,
                version_code,
                target_snapshot,
                created_at=_now(),
                source_type=source_type,
                created_by=self._actor,
            )
        if created:
            logger.info(
                "Created mapping version {project}/{version}",
                project=project_code,
                version=version_code,
            )
        return created

    def save(self, selection: MappingSelection) -> SaveResult:
        """Persist the selected, non-blank rows and drop any confirmation.

        Runs as one store transaction: either the new row set and the
        cleared confirmation both land, or nothing changes.
        """
        rows = [
            _to_field_row(m)
            for m in selection.mappings
            if m.selected and m.source_path.strip() and m.target_path.strip()
        ]
        saved_at = _now()
        with _storage_errors(f"save {selection.project_code}/{selection.version_code}"):
            saved = self._store.replace_field_rows(
                selection.project_code,
                selection.version_code,
                rows,
                saved_at=saved_at,
                source_type=selection.source_type,
                created_by=self._actor,
            )
        logger.info(
            "Saved {n} mapping rows for {project}/{version}; confirmation cleared",
            n=saved,
            project=selection.project_code,
            version=selection.version_code,
        )
        return SaveResult(
            project_code=selection.project_code,
            version_code=selection.version_code,
            saved_count=saved,
            selected_count=selection.selected_count,
            saved_at=saved_at,
        )

    def confirm(self, selection: MappingSelection, notes: str = CONFIRM_NOTES) -> ConfirmResult:
        """Record that a human approved the submitted selection.

        Raises:
            MappingValidationError: If no row is selected.
        """
        if selection.selected_count == 0:
            msg = "At least one mapping must be selected before confirmation"
            raise MappingValidationError(msg)

        confirmed_at = _now()
        audit = ConfirmationAudit(
            project_code=selection.project_code,
            version_code=selection.version_code,
            confirmed=True,
            confirmed_by=self._actor,
            selected_count=selection.selected_count,
            mapping_snapshot=json.dumps(
                [m.model_dump(mode="json") for m in selection.mappings]
            ),
            notes=notes,
            created_at=confirmed_at,
        )
        with _storage_errors(f"confirm {selection.project_code}/{selection.version_code}"):
            self._store.insert_confirmation(audit)
        logger.info(
            "Confirmed {n} mappings for {project}/{version} by {actor}",
            n=selection.selected_count,
            project=selection.project_code,
            version=selection.version_code,
            actor=self._actor,
        )
        return ConfirmResult(
            project_code=selection.project_code,
            version_code=selection.version_code,
            confirmed=True,
            selected_count=selection.selected_count,
            confirmed_at=confirmed_at,
        )

    def export(self, project_code: str, version_code: str) -> ExportBundle:
        """Return the most recently confirmed selection for rendering.

        Raises:
            ExportPreconditionError: If the version has no active confirmation.
        """
        with _storage_errors(f"read confirmation {project_code}/{version_code}"):
            audit = self._store.latest_confirmation(project_code, version_code)
            version = self._store.get_version(project_code, version_code)
            source_type = self._store.get_project_source_type(project_code)

        if audit is None:
            msg = (
                f"Mapping {project_code}/{version_code} must be confirmed before export"
            )
            raise ExportPreconditionError(msg)

        mappings = [Suggestion.model_validate(item) for item in json.loads(audit.mapping_snapshot)]
        return ExportBundle(
            project_code=project_code,
            version_code=version_code,
            source_type=source_type or "",
            target_type=_snapshot_target_type(version.target_schema_snapshot) if version else "",
            confirmed_by=audit.confirmed_by,
            confirmed_at=audit.created_at,
            mappings=mappings,
        )

    def publish(
        self,
        project_code: str,
        version_code: str,
        session_state: str | None,
    ) -> PublishResult:
        """Mark the version PUBLISHED when the session awaits confirmation.

        Any other session state is a no-op reported as skipped.
        """
        if (session_state or "").strip().upper() != STATE_AWAITING_CONFIRMATION:
            logger.info(
                "Publish skipped for {project}/{version}: state={state}",
                project=project_code,
                version=version_code,
                state=session_state,
            )
            return PublishResult(
                project_code=project_code,
                version_code=version_code,
                skipped=True,
                reason=PUBLISH_SKIPPED_REASON,
            )

        artifact_id = str(uuid.uuid4())
        published_at = _now()
        with _storage_errors(f"publish {project_code}/{version_code}"):
            self._store.ensure_version(
                project_code,
                version_code,
                created_at=published_at,
                created_by=self._actor,
            )
            self._store.mark_published(
                project_code,
                version_code,
                artifact_id=artifact_id,
                published_at=published_at,
            )
        logger.info(
            "Published {project}/{version} as artifact {artifact}",
            project=project_code,
            version=version_code,
            artifact=artifact_id,
        )
        return PublishResult(
            project_code=project_code,
            version_code=version_code,
            artifact_id=artifact_id,
            published_at=published_at,
        )

    def state(self, project_code: str, version_code: str) -> LifecycleState:
        """Derive the lifecycle state from stored rows."""
        with _storage_errors(f"read state {project_code}/{version_code}"):
            version = self._store.get_version(project_code, version_code)
            confirmed = self._store.has_active_confirmation(project_code, version_code)

        if version is not None and version.status == VersionStatus.PUBLISHED:
            return LifecycleState.PUBLISHED
        if confirmed:
            return LifecycleState.CONFIRMED
        if version is not None and version.saved_at:
            return LifecycleState.SAVED
        return LifecycleState.DRAFT
