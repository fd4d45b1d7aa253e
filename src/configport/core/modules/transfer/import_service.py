from collections.abc import Callable, Sequence
from functools import partial
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError
from structlog.contextvars import bound_contextvars

from configport.core.core import Service
from configport.core.modules.proxy_rule.models import proxy_rule_adapter
from configport.core.modules.rule.models import RuleType, rule_adapter
from configport.core.modules.source.models import Source
from configport.core.modules.transfer.constants import (
    ENVIRONMENT_KEYS,
    ErrorMessage,
    ImportMode,
    MessageLevel,
    SuccessMessage,
    TransferEvent,
)
from configport.core.modules.transfer.duplicates import (
    batch_duplicate_detection,
    is_proxy_rule_duplicate,
    is_rule_duplicate,
    is_source_duplicate,
)
from configport.core.modules.transfer.files import show_import_file_dialog, validate_file_path
from configport.core.modules.transfer.messages import (
    generate_environment_variables_message,
    generate_error_message,
    generate_import_success_message,
    generate_import_summary,
    generate_import_warnings,
    generate_progress_message,
    sanitize_options_for_logging,
)
from configport.core.modules.transfer.models import (
    EntityPreview,
    ImportOptions,
    ImportPreview,
    ImportReport,
    ImportStats,
)
from configport.core.modules.transfer.validators import (
    format_pydantic_error,
    validate_and_parse_file_content,
    validate_import_payload,
    validate_proxy_rule,
    validate_rule,
    validate_source,
)
from configport.errors import (
    FileOperationError,
    InvalidOptionsError,
    OperationCancelledError,
    PayloadParseError,
    PayloadValidationError,
    UserError,
)
from configport.utils import generate_id

logger = structlog.get_logger(__name__)

IMPORT_STEPS = ("sources", "proxyRules", "rules", "environments")


def parse_import_options(options: ImportOptions | dict[str, Any]) -> ImportOptions:
    """Check import options and return them as a model. Raises InvalidOptionsError."""
    if isinstance(options, ImportOptions):
        parsed = options
    else:
        if not isinstance(options, dict):
            raise InvalidOptionsError("Import options must be provided as an object")
        if not isinstance(options.get("selectedItems"), dict):
            raise InvalidOptionsError("Selected items must be specified")
        import_mode = options.get("importMode")
        if import_mode is not None and import_mode not in tuple(ImportMode):
            raise InvalidOptionsError(f"Invalid import mode: {import_mode}")
        try:
            parsed = ImportOptions.model_validate(options)
        except PydanticValidationError as e:
            raise InvalidOptionsError(f"Invalid import options: {format_pydantic_error(e)}") from e

    if not parsed.selected_items.any_selected():
        raise InvalidOptionsError("At least one data type must be selected for import")
    return parsed


def parse_import_files(file_content: str, env_file_content: str | None = None) -> dict[str, Any]:
    """Parse the main file and the optional companion environment file into one payload."""
    main = validate_and_parse_file_content(file_content)
    if not main.success or main.data is None:
        raise PayloadParseError(f"Main file parsing failed: {main.error}")
    payload = main.data

    if env_file_content:
        environment = validate_and_parse_file_content(env_file_content)
        if not environment.success or environment.data is None:
            raise PayloadParseError(f"Environment file parsing failed: {environment.error}")
        for key in ENVIRONMENT_KEYS:
            if environment.data.get(key):
                payload[key] = environment.data[key]

    logger.debug(
        "import_files_parsed",
        version=payload.get("version"),
        has_environment_file=bool(env_file_content),
    )
    return payload


def _preview_items(raw_items: Sequence[Any], parse: Callable[[Any], Any]) -> tuple[list[Any], int]:
    """Parse raw items, counting the ones that fail."""
    parsed, invalid = [], 0
    for raw in raw_items:
        try:
            parsed.append(parse(raw))
        except (PydanticValidationError, ValueError, TypeError):
            invalid += 1
    return parsed, invalid


def _parse_source(raw: Any) -> Source:
    validation = validate_source(raw)
    if not validation.success:
        raise ValueError(validation.error)
    return Source.model_validate(raw)


def _parse_proxy_rule(raw: Any) -> Any:
    validation = validate_proxy_rule(raw)
    if not validation.success:
        raise ValueError(validation.error)
    return proxy_rule_adapter.validate_python(raw)


def _parse_rule(raw: Any, rule_type: str) -> Any:
    validation = validate_rule(raw, rule_type)
    if not validation.success or validation.data is None:
        raise ValueError(validation.error)
    return rule_adapter.validate_python(validation.data)


class ImportService(Service):
    """Applies an exported payload to the current state, entity family by entity family."""

    async def execute(self, options: ImportOptions | dict[str, Any]) -> ImportReport:
        with bound_contextvars(operation="import", operation_id=generate_id()[:8]):
            return await self._execute(options)

    async def _execute(self, options: ImportOptions | dict[str, Any]) -> ImportReport:
        try:
            options = parse_import_options(options)
            logger.info("import_started", options=sanitize_options_for_logging(options))

            payload = await self.load_payload(options)
            warnings = self.validate_payload(payload)
            warnings.extend(self._show_import_warnings(payload, options))

            stats = ImportStats()
            workspace_info = options.workspace_info or payload.get("workspace")
            if workspace_info:
                stats.workspace = await self.core.services.workspace.import_workspace(workspace_info, options)

            await self._import_all_data_types(payload, options, stats)
            await self._finalize(stats, options)
        except OperationCancelledError:
            logger.info("import_cancelled")
            raise
        except UserError as e:
            logger.warning("import_failed", error=str(e))
            self.ports.notifier.notify(MessageLevel.ERROR, generate_error_message(e, "import"))
            raise
        except Exception as e:
            logger.exception("import_failed", error=str(e))
            self.ports.notifier.notify(MessageLevel.ERROR, generate_error_message(e, "import"))
            raise

        message = (
            generate_import_success_message(stats, options.is_git_sync)
            if stats.has_imported_data()
            else ErrorMessage.NO_DATA_IMPORTED
        )
        logger.info("import_complete", summary=generate_import_summary(stats))
        return ImportReport(message=message, warnings=warnings, stats=stats, statistics=self.get_import_statistics(stats))

    async def load_payload(self, options: ImportOptions) -> dict[str, Any]:
        """Resolve file contents (inline, from paths, or through the open dialog) and parse them."""
        file_content = options.file_content
        env_file_content = options.env_file_content

        if file_content is None:
            file_path = options.file_path
            if file_path is None:
                file_path = await show_import_file_dialog(self.ports.dialogs)
                if not file_path:
                    raise OperationCancelledError("Import cancelled by user")
            file_content = await self._read_text(file_path)

        if env_file_content is None and options.env_file_path:
            env_file_content = await self._read_text(options.env_file_path)

        if not file_content or not isinstance(file_content, str):
            raise InvalidOptionsError("File content must be provided as a string")

        return parse_import_files(file_content, env_file_content)

    async def _read_text(self, file_path: str) -> str:
        validation = validate_file_path(file_path)
        if not validation.success:
            raise FileOperationError(f"Failed to read file {file_path}: {validation.error}")
        try:
            return await self.ports.files.read_text(file_path)
        except OSError as e:
            raise FileOperationError(f"Failed to read file {file_path}: {e}") from e

    def validate_payload(self, payload: dict[str, Any]) -> list[str]:
        """Structural validation of the whole payload. Returns the non-blocking warnings."""
        validation = validate_import_payload(payload)
        if not validation.success:
            raise PayloadValidationError(f"Import data validation failed: {validation.error}")
        if validation.warnings:
            logger.warning("import_validation_warnings", warnings=validation.warnings)
        return list(validation.warnings)

    def _show_import_warnings(self, payload: dict[str, Any], options: ImportOptions) -> list[str]:
        config = self.core.config
        warnings = generate_import_warnings(
            payload,
            options,
            current_version=config.data_format_version,
            large_dataset_threshold=config.large_dataset_threshold,
            replace_warning_threshold=config.replace_warning_threshold,
        )
        if warnings:
            self.ports.notifier.notify(MessageLevel.WARNING, "; ".join(warnings))
        return warnings

    async def _import_all_data_types(self, payload: dict[str, Any], options: ImportOptions, stats: ImportStats) -> None:
        services = self.core.services
        selected = options.selected_items

        for step, name in enumerate(IMPORT_STEPS, start=1):
            logger.debug("import_progress", message=generate_progress_message("Importing", step, len(IMPORT_STEPS), name))

            if name == "sources" and selected.sources and payload.get("sources"):
                stats.sources = await services.sources.import_sources(payload["sources"], options)
            elif name == "proxyRules" and selected.proxy_rules and payload.get("proxyRules"):
                stats.proxy_rules = await services.proxy_rules.import_proxy_rules(payload["proxyRules"], options)
            elif name == "rules" and selected.rules and (payload.get("rules") or payload.get("rulesMetadata")):
                stats.rules = await services.rules.import_rules(payload.get("rules") or {}, options)
            elif name == "environments" and selected.environments:
                stats.environments = await services.environments.import_environments(payload, options)

    async def _finalize(self, stats: ImportStats, options: ImportOptions) -> None:
        notifier = self.ports.notifier

        if stats.has_imported_data():
            notifier.notify(MessageLevel.SUCCESS, generate_import_success_message(stats, options.is_git_sync))

            variables_message = generate_environment_variables_message(
                stats.environments.variables_created, stats.environments.environment_names
            )
            if variables_message:
                notifier.notify(MessageLevel.INFO, variables_message)

            if stats.environments.environments_imported > 0 or stats.rules.imported > 0:
                workspace = await self.ports.workspaces.get_active_workspace()
                await self.core.events.emit(
                    TransferEvent.WORKSPACE_DATA_REFRESH, {"workspaceId": workspace.id if workspace else None}
                )

            if options.is_git_sync:
                notifier.notify(MessageLevel.SUCCESS, SuccessMessage.WORKSPACE_SYNC_SUCCESS)
        else:
            notifier.notify(MessageLevel.WARNING, ErrorMessage.NO_DATA_IMPORTED)

        if stats.errors:
            logger.warning(
                "import_completed_with_errors",
                count=len(stats.errors),
                errors=[error.to_json_dict() for error in stats.errors],
            )

    def get_import_statistics(self, stats: ImportStats) -> dict[str, Any]:
        workspace = stats.workspace.created_workspace
        return {
            "totalImported": stats.sources.imported + stats.proxy_rules.imported + stats.rules.imported,
            "totalSkipped": stats.sources.skipped + stats.proxy_rules.skipped + stats.rules.skipped,
            "totalErrors": len(stats.errors),
            "dataTypes": {
                "sources": {"imported": stats.sources.imported, "skipped": stats.sources.skipped},
                "proxyRules": {"imported": stats.proxy_rules.imported, "skipped": stats.proxy_rules.skipped},
                "rules": {
                    "imported": stats.rules.imported,
                    "skipped": stats.rules.skipped,
                    "byType": stats.rules.imported_by_type,
                },
                "environments": {
                    "environmentsImported": stats.environments.environments_imported,
                    "variablesCreated": stats.environments.variables_created,
                },
                "workspace": {
                    "created": workspace is not None,
                    "name": workspace.name if workspace else None,
                    "type": workspace.type if workspace else None,
                },
            },
        }

    async def preview(self, options: ImportOptions | dict[str, Any]) -> ImportPreview:
        """Report what a merge import would add, without writing anything."""
        options = parse_import_options(options)
        payload = await self.load_payload(options)
        warnings = self.validate_payload(payload)
        config = self.core.config
        warnings.extend(
            generate_import_warnings(
                payload,
                options,
                current_version=config.data_format_version,
                large_dataset_threshold=config.large_dataset_threshold,
                replace_warning_threshold=config.replace_warning_threshold,
            )
        )

        preview = ImportPreview(version=payload["version"], warnings=warnings)
        selected = options.selected_items
        batch_size = config.duplicate_batch_size

        if selected.sources and payload.get("sources"):
            items, invalid = _preview_items(payload["sources"], _parse_source)
            existing = await self.ports.sources.list_sources()
            checks = await batch_duplicate_detection(items, existing, is_source_duplicate, batch_size)
            preview.sources = _entity_preview(checks, invalid)

        if selected.proxy_rules and payload.get("proxyRules"):
            items, invalid = _preview_items(payload["proxyRules"], _parse_proxy_rule)
            existing_rules = await self.ports.proxy_rules.get_rules()
            checks = await batch_duplicate_detection(items, existing_rules, is_proxy_rule_duplicate, batch_size)
            preview.proxy_rules = _entity_preview(checks, invalid)

        if selected.rules and payload.get("rules"):
            storage = await self.core.services.rules.load_storage()
            stored, _ = _preview_items(
                [rule for group in storage.rules.values() for rule in group], rule_adapter.validate_python
            )
            items, invalid = [], 0
            for rule_type, group in payload["rules"].items():
                if rule_type not in tuple(RuleType):
                    invalid += len(group)
                    continue
                parsed, failed = _preview_items(group, partial(_parse_rule, rule_type=rule_type))
                items.extend(parsed)
                invalid += failed
            checks = await batch_duplicate_detection(items, stored, is_rule_duplicate, batch_size)
            preview.rules = _entity_preview(checks, invalid)

        logger.info("import_previewed", version=preview.version)
        return preview


def _entity_preview(checks: Sequence[Any], invalid: int) -> EntityPreview:
    duplicates = sum(1 for check in checks if check.is_duplicate)
    return EntityPreview(new=len(checks) - duplicates, duplicates=duplicates, invalid=invalid)
