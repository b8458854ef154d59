"""Studio actions invoked by the conversation orchestrator's rule engine.

Each action reads its inputs from a :class:`StudioSession`, runs one step of
the mapping workflow, and writes its outputs and status back to the session.
"""

from __future__ import annotations

from loguru import logger

from mapstudio.mapping.resolver import CorrespondenceResolver
from mapstudio.mapping.validation import build_validation_report
from mapstudio.models.fields import TargetType
from mapstudio.models.mapping import Suggestion
from mapstudio.parsing.source_flattener import flatten_source
from mapstudio.parsing.target_schema import (
    TargetSchemaInput,
    parse_target_fields,
    resolve_effective_target_schema,
    target_schema_snapshot,
)
from mapstudio.review.lifecycle import MappingLifecycleManager
from mapstudio.studio.session import SessionKeys, StudioSession


class MappingStudioTask:
    """Parse, suggest, validate, and publish steps of a mapping conversation."""

    def __init__(
        self,
        resolver: CorrespondenceResolver,
        lifecycle: MappingLifecycleManager,
    ) -> None:
        self._resolver = resolver
        self._lifecycle = lifecycle

    def _project_version(self, session: StudioSession) -> tuple[str, str]:
        return (
            session.read_value(SessionKeys.PROJECT_CODE, SessionKeys.DEFAULT_PROJECT_CODE),
            session.read_value(SessionKeys.MAPPING_VERSION, SessionKeys.DEFAULT_MAPPING_VERSION),
        )

    def parse_schemas(self, session: StudioSession) -> None:
        """Flatten the source, parse the target, and lazily create the version."""
        session.clear_transient_statuses()

        source_spec = session.read_value(SessionKeys.SOURCE_SPEC, SessionKeys.DEFAULT_SOURCE_SPEC)
        target_schema = session.read_value(
            SessionKeys.TARGET_SCHEMA, SessionKeys.DEFAULT_TARGET_SCHEMA
        )
        target_json = session.read_value(SessionKeys.TARGET_SCHEMA_JSON)
        target_xsd = session.read_value(SessionKeys.TARGET_SCHEMA_XSD)
        target_wsdl = session.read_value(SessionKeys.TARGET_SCHEMA_WSDL)

        target_type = TargetType.resolve(
            session.read_value(SessionKeys.TARGET_TYPE, SessionKeys.DEFAULT_TARGET_TYPE),
            target_schema,
        )
        effective_schema = resolve_effective_target_schema(
            target_type, target_schema, target_json, target_xsd, target_wsdl
        )

        source_fields = flatten_source(source_spec)
        target_fields = parse_target_fields(
            TargetSchemaInput(
                schema_text=effective_schema,
                target_type=target_type,
                xsd_text=target_xsd,
                wsdl_text=target_wsdl,
                xsd_name=session.read_value(
                    SessionKeys.TARGET_SCHEMA_XSD_NAME,
                    SessionKeys.DEFAULT_TARGET_SCHEMA_XSD_NAME,
                ),
                wsdl_name=session.read_value(
                    SessionKeys.TARGET_SCHEMA_WSDL_NAME,
                    SessionKeys.DEFAULT_TARGET_SCHEMA_WSDL_NAME,
                ),
                xsd_artifacts=session.read_artifact_list(SessionKeys.TARGET_SCHEMA_XSD_LIST),
            )
        )

        session.put(
            SessionKeys.PARSED_SOURCE_FIELDS,
            [f.model_dump(mode="json") for f in source_fields],
        )
        session.put(
            SessionKeys.PARSED_TARGET_FIELDS,
            [f.model_dump(mode="json") for f in target_fields],
        )
        session.put(SessionKeys.TARGET_TYPE_NORMALIZED, target_type.value)
        session.put(SessionKeys.PARSE_STATUS, SessionKeys.STATUS_DONE)
        session.put(
            SessionKeys.PARSE_RESULT,
            f"Parsed source + target schema successfully ({target_type.value})",
        )
        logger.info(
            "Parsed schemas | source_fields={s} target_fields={t} target_type={tt}",
            s=len(source_fields),
            t=len(target_fields),
            tt=target_type.value,
        )

        project_code, version_code = self._project_version(session)
        self._lifecycle.ensure_version(
            project_code,
            version_code,
            source_type=session.read_value(
                SessionKeys.SOURCE_TYPE, SessionKeys.DEFAULT_SOURCE_TYPE
            ),
            target_snapshot=target_schema_snapshot(
                target_type, effective_schema, target_xsd, target_wsdl
            ),
        )

    def generate_suggestions(self, session: StudioSession) -> None:
        """Run the resolver over the parsed field lists."""
        suggestions = self._resolver.resolve(
            session.read_field_list(SessionKeys.PARSED_SOURCE_FIELDS),
            session.read_field_list(SessionKeys.PARSED_TARGET_FIELDS),
        )
        session.put(
            SessionKeys.MAPPING_SUGGESTIONS,
            [s.model_dump(mode="json") for s in suggestions],
        )
        session.put(SessionKeys.SUGGESTION_STATUS, SessionKeys.STATUS_DONE)

    def validate_mappings(self, session: StudioSession) -> None:
        """Check the current suggestions against the parsed field lists."""
        raw = session.input_params.get(SessionKeys.MAPPING_SUGGESTIONS) or []
        suggestions = [Suggestion.model_validate(item) for item in raw if isinstance(item, dict)]
        report = build_validation_report(
            suggestions,
            session.read_field_list(SessionKeys.PARSED_SOURCE_FIELDS),
            session.read_field_list(SessionKeys.PARSED_TARGET_FIELDS),
        )
        session.put(SessionKeys.VALIDATION_REPORT, report.model_dump(mode="json"))
        session.put(SessionKeys.MISSING_REQUIRED, report.missing_required)
        session.put(SessionKeys.TYPE_MISMATCH, report.type_mismatch)
        session.put(SessionKeys.DUPLICATE_TARGETS, report.duplicate_targets)
        session.put(SessionKeys.VALIDATION_STATUS, SessionKeys.STATUS_DONE)

    def publish_mapping_artifact(self, session: StudioSession) -> None:
        """Publish the version if the conversation is awaiting confirmation."""
        project_code, version_code = self._project_version(session)
        result = self._lifecycle.publish(project_code, version_code, session.state)
        session.put(
            SessionKeys.PUBLISH_STATUS,
            SessionKeys.STATUS_SKIPPED if result.skipped else SessionKeys.STATUS_DONE,
        )
        session.put(SessionKeys.PUBLISH_RESULT, result.model_dump(mode="json", exclude_none=True))
