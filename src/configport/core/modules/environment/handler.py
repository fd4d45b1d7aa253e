from typing import Any

import structlog

from configport.core.core import Service
from configport.core.modules.environment.models import EnvironmentVariable
from configport.core.modules.environment.schema import generate_environment_schema
from configport.core.modules.transfer.constants import EnvironmentOption, ImportMode, TransferEvent
from configport.core.modules.transfer.duplicates import is_environment_variable_duplicate
from configport.core.modules.transfer.models import (
    EnvironmentImportResult,
    ExportOptions,
    ImportOptions,
    ItemError,
    ValidationResult,
)
from configport.core.modules.transfer.validators import validate_environment_schema, validate_environment_variable
from configport.errors import PayloadValidationError

logger = structlog.get_logger(__name__)


def _select[T](items: dict[str, T], selected: list[str]) -> dict[str, T]:
    """Keep only the selected names, or everything when nothing is selected."""
    if not selected:
        return items
    return {name: items[name] for name in selected if name in items}


def _schema_variables(schema: dict[str, Any], environment_entry: Any) -> list[dict[str, Any]]:
    """Variables to create for one environment: all definitions, then the environment's own list."""
    variables: list[dict[str, Any]] = []

    definitions = schema.get("variableDefinitions")
    if isinstance(definitions, dict):
        for name, definition in definitions.items():
            variables.append({**(definition if isinstance(definition, dict) else {}), "name": name})
    elif isinstance(definitions, list):
        variables.extend(definition for definition in definitions if isinstance(definition, dict))

    listed = environment_entry.get("variables") if isinstance(environment_entry, dict) else None
    if isinstance(listed, list):
        for entry in listed:
            if isinstance(entry, dict):
                variables.append(entry)
            elif isinstance(entry, str):
                variables.append({"name": entry})
    elif isinstance(listed, dict):
        variables.extend({"name": name} for name in listed)

    return variables


class EnvironmentsHandler(Service):
    """Environment schemas and variable values."""

    async def export_environments(self, options: ExportOptions) -> dict[str, Any] | None:
        if options.environment_option == EnvironmentOption.NONE:
            logger.debug("environments_not_selected")
            return None

        sources = await self.ports.sources.list_sources()
        environments = await self.ports.environments.get_environments()
        schema = generate_environment_schema(sources, environments)
        schema.environments = _select(schema.environments, options.selected_environments)

        if options.environment_option == EnvironmentOption.SCHEMA:
            logger.info("environment_schema_exported", environments=len(schema.environments))
            return {"environmentSchema": schema.to_json_dict()}

        exported = _select(environments, options.selected_environments)
        logger.info(
            "environments_exported",
            environments=len(exported),
            variables=sum(len(variables) for variables in exported.values()),
        )
        return {
            "environmentSchema": schema.to_json_dict(),
            "environments": {
                name: {var_name: var.to_json_dict() for var_name, var in variables.items()}
                for name, variables in exported.items()
            },
        }

    async def import_environments(self, payload: dict[str, Any], options: ImportOptions) -> EnvironmentImportResult:
        """Import values when the payload has them, otherwise create empty variables from the schema."""
        result = EnvironmentImportResult()
        if not options.selected_items.environments:
            return result

        values = payload.get("environments")
        schema = payload.get("environmentSchema")
        if not values and not schema:
            logger.debug("no_environment_data")
            return result

        if options.import_mode == ImportMode.REPLACE:
            logger.info("environments_clear")
            await self.ports.environments.clear_environments()

        if values:
            await self._import_values(values, options, result)
        else:
            await self._import_schema(schema, options, result)

        logger.info(
            "environments_import_complete",
            environments=result.environments_imported,
            created=result.variables_created,
            skipped=result.variables_skipped,
            errors=len(result.errors),
        )
        return result

    async def _import_values(
        self, values: dict[str, Any], options: ImportOptions, result: EnvironmentImportResult
    ) -> None:
        environments = await self.ports.environments.get_environments()

        for env_name, variables in _select(values, options.selected_environments).items():
            try:
                created = env_name not in environments
                if created:
                    await self.ports.environments.create_environment(env_name)
                    environments[env_name] = {}
                    logger.debug("environment_created", environment=env_name)

                written: dict[str, EnvironmentVariable] = {}
                for var_name, raw in (variables or {}).items():
                    if options.import_mode == ImportMode.MERGE and is_environment_variable_duplicate(
                        var_name, env_name, environments
                    ):
                        result.variables_skipped += 1
                        continue
                    try:
                        variable = EnvironmentVariable.from_raw(raw)
                        await self.ports.environments.set_variable(env_name, var_name, variable)
                        written[var_name] = variable
                        result.variables_created += 1
                    except Exception as e:
                        logger.warning(
                            "environment_variable_import_failed", environment=env_name, variable=var_name, error=str(e)
                        )
                        result.errors.append(
                            ItemError(entity="environmentVariable", identifier=f"{env_name}.{var_name}", error=str(e))
                        )

                if created or written:
                    result.environments_imported += 1
                    result.environment_names.append(env_name)
                if written:
                    await self._emit_changed(env_name, written)
            except Exception as e:
                logger.warning("environment_import_failed", environment=env_name, error=str(e))
                result.errors.append(ItemError(entity="environment", identifier=env_name, error=str(e)))

    async def _import_schema(self, schema: Any, options: ImportOptions, result: EnvironmentImportResult) -> None:
        validation = validate_environment_schema(schema)
        if not validation.success:
            raise PayloadValidationError(f"Invalid environment schema: {validation.error}")

        schema_environments = schema.get("environments")
        if not schema_environments:
            return

        targets = _select(schema_environments, options.selected_environments)

        # A single-environment schema lands in whatever environment is active locally
        if not options.is_git_sync and not options.selected_environments and len(targets) == 1:
            active = await self.ports.environments.get_active_environment()
            source_name, entry = next(iter(targets.items()))
            logger.debug("schema_redirected_to_active_environment", schema_environment=source_name, environment=active)
            targets = {active: entry}

        environments = await self.ports.environments.get_environments()
        for env_name, entry in targets.items():
            try:
                created = env_name not in environments
                if created:
                    await self.ports.environments.create_environment(env_name)
                    environments[env_name] = {}
                    logger.debug("environment_created", environment=env_name)

                batch: dict[str, EnvironmentVariable] = {}
                for definition in _schema_variables(schema, entry):
                    name = definition.get("name")
                    check = validate_environment_variable(definition)
                    if not check.success:
                        identifier = f"{env_name}.{name}"
                        result.errors.append(
                            ItemError(entity="environmentVariable", identifier=identifier, error=str(check.error))
                        )
                        continue
                    if name in batch:
                        continue
                    if options.import_mode == ImportMode.MERGE and is_environment_variable_duplicate(
                        name, env_name, environments
                    ):
                        result.variables_skipped += 1
                        continue
                    batch[name] = EnvironmentVariable(
                        value="", is_secret=bool(definition.get("isSecret") or definition.get("sensitive"))
                    )

                if batch:
                    await self.ports.environments.set_variables(env_name, batch)
                    result.variables_created += len(batch)
                    await self._emit_changed(env_name, batch)

                if created or batch:
                    result.environments_imported += 1
                    result.environment_names.append(env_name)
            except Exception as e:
                logger.warning("environment_schema_import_failed", environment=env_name, error=str(e))
                result.errors.append(ItemError(entity="environment", identifier=env_name, error=str(e)))

    async def _emit_changed(self, environment: str, variables: dict[str, EnvironmentVariable]) -> None:
        await self.core.events.emit(
            TransferEvent.ENVIRONMENT_VARIABLES_CHANGED,
            {"environment": environment, "variables": {name: var.to_json_dict() for name, var in variables.items()}},
        )

    def get_environment_statistics(self, data: dict[str, Any]) -> dict[str, Any]:
        stats = {
            "environments": 0,
            "totalVariables": 0,
            "secretVariables": 0,
            "emptyVariables": 0,
            "schemaVariables": 0,
        }

        environments = data.get("environments")
        if isinstance(environments, dict):
            stats["environments"] = len(environments)
            for variables in environments.values():
                if not isinstance(variables, dict):
                    continue
                for raw in variables.values():
                    stats["totalVariables"] += 1
                    variable = EnvironmentVariable.from_raw(raw)
                    if variable.is_secret:
                        stats["secretVariables"] += 1
                    if not variable.value:
                        stats["emptyVariables"] += 1

        schema = data.get("environmentSchema")
        if isinstance(schema, dict) and isinstance(schema.get("variableDefinitions"), dict | list):
            stats["schemaVariables"] = len(schema["variableDefinitions"])
        return stats

    def validate_environments_for_export(self, data: Any) -> ValidationResult:
        if not isinstance(data, dict):
            return ValidationResult.fail("Environment data must be an object")

        errors = []
        if data.get("environmentSchema") is not None:
            schema = validate_environment_schema(data["environmentSchema"])
            if not schema.success:
                errors.append(f"Schema validation failed: {schema.error}")

        environments = data.get("environments")
        if isinstance(environments, dict):
            for env_name, variables in environments.items():
                if not isinstance(variables, dict):
                    errors.append(f"Environment {env_name} variables must be an object")
                    continue
                for var_name, raw in variables.items():
                    check = validate_environment_variable({**(raw if isinstance(raw, dict) else {}), "name": var_name})
                    if not check.success:
                        errors.append(f"Variable {var_name} in environment {env_name}: {check.error}")
        return ValidationResult.fail("; ".join(errors)) if errors else ValidationResult.ok()

