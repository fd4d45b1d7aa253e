import asyncio
import json
import time
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError
from structlog.contextvars import bound_contextvars

from configport.core.core import Service
from configport.core.modules.transfer.constants import (
    CONFIG_FILE_PREFIX,
    ENV_FILE_PREFIX,
    ENVIRONMENT_KEYS,
    EnvironmentOption,
    FileFormat,
    MessageLevel,
)
from configport.core.modules.transfer.files import (
    generate_timestamped_filename,
    handle_multi_file_export,
    handle_single_file_export,
)
from configport.core.modules.transfer.messages import (
    count_rules,
    generate_error_message,
    generate_export_success_message,
    sanitize_options_for_logging,
)
from configport.core.modules.transfer.models import ExportOptions, ExportReport
from configport.core.modules.transfer.validators import format_pydantic_error
from configport.errors import InvalidOptionsError, OperationCancelledError, PayloadValidationError, UserError
from configport.utils import format_size, generate_id

logger = structlog.get_logger(__name__)


def parse_export_options(options: ExportOptions | dict[str, Any]) -> ExportOptions:
    """Check export options and return them as a model. Raises InvalidOptionsError."""
    if isinstance(options, ExportOptions):
        parsed = options
    else:
        if not isinstance(options, dict):
            raise InvalidOptionsError("Export options must be provided as an object")
        if not isinstance(options.get("selectedItems"), dict):
            raise InvalidOptionsError("Selected items must be specified")
        file_format = options.get("fileFormat")
        if file_format is not None and file_format not in tuple(FileFormat):
            raise InvalidOptionsError(f"Invalid file format: {file_format}")
        try:
            parsed = ExportOptions.model_validate(options)
        except PydanticValidationError as e:
            raise InvalidOptionsError(f"Invalid export options: {format_pydantic_error(e)}") from e

    if not parsed.selected_items.any_selected():
        raise InvalidOptionsError("At least one data type must be selected for export")
    return parsed


def count_export_items(payload: dict[str, Any]) -> int:
    """Sources, proxy rules, rules, environment variables, plus one for a workspace."""
    count = 0
    if isinstance(payload.get("sources"), list):
        count += len(payload["sources"])
    if isinstance(payload.get("proxyRules"), list):
        count += len(payload["proxyRules"])
    count += count_rules(payload.get("rules"))
    if isinstance(payload.get("environments"), dict):
        count += sum(len(variables) for variables in payload["environments"].values() if isinstance(variables, dict))
    if payload.get("workspace"):
        count += 1
    return count


def calculate_export_size(payload: dict[str, Any]) -> str:
    return format_size(len(json.dumps(payload, ensure_ascii=False).encode()))


def split_environment_data(payload: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any] | None]:
    """Move environment keys out of the main payload for the separate-files format."""
    main = {key: value for key, value in payload.items() if key not in ENVIRONMENT_KEYS}
    environment = {key: payload[key] for key in ENVIRONMENT_KEYS if payload.get(key)}
    return main, environment or None


class ExportService(Service):
    """Collects the selected entity families into one payload and writes it to disk."""

    async def execute(self, options: ExportOptions | dict[str, Any]) -> ExportReport:
        with bound_contextvars(operation="export", operation_id=generate_id()[:8]):
            return await self._execute(options)

    async def _execute(self, options: ExportOptions | dict[str, Any]) -> ExportReport:
        started = time.monotonic()
        try:
            options = parse_export_options(options)
            logger.info("export_started", options=sanitize_options_for_logging(options))

            payload = await self.gather_export_data(options)
            self.validate_export_data(payload, options)
            files = await self._write_files(payload, options)
        except OperationCancelledError:
            logger.info("export_cancelled")
            raise
        except UserError as e:
            logger.warning("export_failed", error=str(e))
            self.ports.notifier.notify(MessageLevel.ERROR, generate_error_message(e, "export"))
            raise
        except Exception as e:
            logger.exception("export_failed", error=str(e))
            self.ports.notifier.notify(MessageLevel.ERROR, generate_error_message(e, "export"))
            raise

        message = generate_export_success_message(options, payload, files)
        self.ports.notifier.notify(MessageLevel.SUCCESS, message)

        report = ExportReport(
            files=files,
            message=message,
            total_items=count_export_items(payload),
            estimated_size=calculate_export_size(payload),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        logger.info("export_complete", files=len(files), size=report.estimated_size, duration_ms=report.duration_ms)
        return report

    async def gather_export_data(self, options: ExportOptions) -> dict[str, Any]:
        """Build the payload. Environments and workspace first, then the entity families concurrently."""
        services = self.core.services
        payload: dict[str, Any] = {"version": options.app_version or self.core.config.app_version}

        environment_data = await services.environments.export_environments(options)
        if environment_data:
            payload.update(environment_data)

        workspace_data = await services.workspace.export_workspace(options)
        if workspace_data:
            payload["workspace"] = workspace_data

        sources, proxy_rules, rules = await asyncio.gather(
            services.sources.export_sources(options),
            services.proxy_rules.export_proxy_rules(options),
            services.rules.export_rules(options),
        )
        if sources is not None:
            payload["sources"] = sources
        if proxy_rules is not None:
            payload["proxyRules"] = proxy_rules
        if rules is not None:
            payload["rules"] = rules["rules"]
            payload["rulesMetadata"] = rules["rulesMetadata"]

        logger.info("export_data_gathered", items=count_export_items(payload))
        return payload

    def validate_export_data(self, payload: dict[str, Any], options: ExportOptions) -> None:
        """Second pass over the assembled payload. Every failure is reported, not just the first."""
        services = self.core.services
        selected = options.selected_items
        errors = []

        if selected.sources and payload.get("sources"):
            validation = services.sources.validate_sources_for_export(payload["sources"])
            if not validation.success:
                errors.append(f"Sources validation failed: {validation.error}")

        if selected.proxy_rules and payload.get("proxyRules"):
            validation = services.proxy_rules.validate_proxy_rules_for_export(payload["proxyRules"])
            if not validation.success:
                errors.append(f"Proxy rules validation failed: {validation.error}")

        if selected.rules and payload.get("rules") is not None:
            validation = services.rules.validate_rules_for_export(payload["rules"])
            if not validation.success:
                errors.append(f"Rules validation failed: {validation.error}")

        if any(payload.get(key) for key in ENVIRONMENT_KEYS):
            validation = services.environments.validate_environments_for_export(
                {key: payload.get(key) for key in ENVIRONMENT_KEYS}
            )
            if not validation.success:
                errors.append(f"Environments validation failed: {validation.error}")

        if payload.get("workspace"):
            validation = services.workspace.validate_workspace_for_export(payload["workspace"])
            if not validation.success:
                errors.append(f"Workspace validation failed: {validation.error}")

        if errors:
            raise PayloadValidationError(f"Export data validation failed: {'; '.join(errors)}")

    async def _write_files(self, payload: dict[str, Any], options: ExportOptions) -> list[str]:
        dialogs, files = self.ports.dialogs, self.ports.files
        main_filename = generate_timestamped_filename(CONFIG_FILE_PREFIX)

        if options.file_format == FileFormat.SINGLE:
            return [await handle_single_file_export(dialogs, files, main_filename, payload)]

        main_data, environment_data = payload, None
        if options.environment_option != EnvironmentOption.NONE:
            main_data, environment_data = split_environment_data(payload)

        return await handle_multi_file_export(
            dialogs,
            files,
            main_filename,
            main_data,
            environment_filename=generate_timestamped_filename(ENV_FILE_PREFIX) if environment_data else None,
            environment_data=environment_data,
        )

    def get_export_statistics(self, payload: dict[str, Any]) -> dict[str, Any]:
        services = self.core.services
        data_types: dict[str, Any] = {}

        if payload.get("sources") is not None:
            data_types["sources"] = services.sources.get_sources_statistics(payload["sources"])
        if payload.get("proxyRules") is not None:
            data_types["proxyRules"] = services.proxy_rules.get_proxy_rules_statistics(payload["proxyRules"])
        if payload.get("rules") is not None or payload.get("rulesMetadata") is not None:
            data_types["rules"] = services.rules.get_rules_statistics(payload.get("rules"), payload.get("rulesMetadata"))
        if any(payload.get(key) is not None for key in ENVIRONMENT_KEYS):
            data_types["environments"] = services.environments.get_environment_statistics(payload)
        if payload.get("workspace"):
            data_types["workspace"] = services.workspace.get_workspace_statistics(payload["workspace"])

        return {
            "version": payload.get("version"),
            "totalItems": count_export_items(payload),
            "estimatedSize": calculate_export_size(payload),
            "dataTypes": data_types,
        }
