"""Environment schema generation: which variables exist and where sources reference them."""

import re
from collections.abc import Sequence
from typing import Any

from configport.core.modules.environment.models import (
    EnvironmentSchema,
    EnvironmentSchemaEntry,
    Environments,
    SchemaVariable,
    VariableDefinition,
)
from configport.core.modules.source.models import Source, SourceType

VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}")
EXAMPLE_URL = "https://api.example.com"


def _collect(value: Any, source_id: str, usage: dict[str, list[str]]) -> None:
    if isinstance(value, str):
        for name in VARIABLE_PATTERN.findall(value):
            used_in = usage.setdefault(name, [])
            if source_id not in used_in:
                used_in.append(source_id)
    elif isinstance(value, dict):
        for nested in value.values():
            _collect(nested, source_id, usage)
    elif isinstance(value, list):
        for nested in value:
            _collect(nested, source_id, usage)


def find_variable_usage(sources: Sequence[Source]) -> dict[str, list[str]]:
    """Map each `{{VAR}}` placeholder found in http sources to the ids of the sources using it."""
    usage: dict[str, list[str]] = {}
    for source in sources:
        if source.source_type != SourceType.HTTP:
            continue

        _collect(source.source_path, source.source_id, usage)

        options = source.request_options or {}
        for key in ("headers", "queryParams"):
            entries = options.get(key)
            if isinstance(entries, list):
                for entry in entries:
                    if isinstance(entry, dict) and entry.get("value"):
                        _collect(entry["value"], source.source_id, usage)
        _collect(options.get("body"), source.source_id, usage)
        _collect(options.get("totpSecret"), source.source_id, usage)

        json_filter = source.json_filter or {}
        if json_filter.get("enabled") and json_filter.get("path"):
            _collect(json_filter["path"], source.source_id, usage)
    return usage


def generate_environment_schema(sources: Sequence[Source], environments: Environments) -> EnvironmentSchema:
    schema = EnvironmentSchema(
        environments={
            name: EnvironmentSchemaEntry(
                variables=[
                    SchemaVariable(name=var_name, is_secret=var.is_secret) for var_name, var in variables.items()
                ]
            )
            for name, variables in environments.items()
        }
    )

    for var_name, used_in in find_variable_usage(sources).items():
        sensitive = any(
            variables[var_name].is_secret for variables in environments.values() if var_name in variables
        )
        schema.variable_definitions[var_name] = VariableDefinition(
            sensitive=sensitive,
            used_in=used_in,
            example=EXAMPLE_URL if "URL" in var_name or "ENDPOINT" in var_name else None,
        )
    return schema
