"""Structural and semantic validators for import/export payloads and their entities.

Validators never raise: they return a ValidationResult so callers can decide whether a
failure is fatal (whole payload) or item-level (one entity during import).
"""

import json
from typing import Any
from urllib.parse import urlparse

from pydantic import ValidationError as PydanticValidationError

from configport.core.modules.rule.models import RuleType, rule_adapter
from configport.core.modules.source.models import SourceType
from configport.core.modules.transfer.constants import (
    MAX_NAME_LENGTH,
    SOURCE_REQUIRED_FIELDS,
    SUPPORTED_VERSIONS,
    WORKSPACE_REQUIRED_FIELDS,
    ErrorMessage,
)
from configport.core.modules.transfer.models import ValidationResult


def format_pydantic_error(error: PydanticValidationError) -> str:
    """Condense a pydantic error into one `field: message` entry per failing field."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)


def validate_import_data(data: Any) -> ValidationResult:
    if isinstance(data, list):
        return ValidationResult.fail("Import data must be an object, not an array")
    if not isinstance(data, dict):
        return ValidationResult.fail(ErrorMessage.INVALID_FILE_FORMAT)
    return ValidationResult.ok()


def validate_and_parse_file_content(content: Any) -> ValidationResult:
    """Parse JSON text and check that it holds an object. The parsed object is returned in `data`."""
    if not content or not isinstance(content, str):
        return ValidationResult.fail("File content is empty or invalid")

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        return ValidationResult.fail(f"Invalid JSON format: {e}")

    result = validate_import_data(parsed)
    if not result.success:
        return result
    return ValidationResult.ok(data=parsed)


def validate_workspace_config(workspace: Any) -> ValidationResult:
    if not isinstance(workspace, dict):
        return ValidationResult.fail("Workspace configuration is required and must be an object")

    for field in WORKSPACE_REQUIRED_FIELDS:
        if not workspace.get(field):
            return ValidationResult.fail(f"Workspace configuration missing required field: {field}")

    name = workspace["name"]
    if not isinstance(name, str):
        return ValidationResult.fail("Workspace name must be a string")
    if len(name) > MAX_NAME_LENGTH:
        return ValidationResult.fail(f"Workspace name exceeds maximum length of {MAX_NAME_LENGTH} characters")

    return ValidationResult.ok()


def validate_environment_variable(variable: Any) -> ValidationResult:
    if not isinstance(variable, dict):
        return ValidationResult.fail("Environment variable must be an object")

    name = variable.get("name")
    if not name or not isinstance(name, str):
        return ValidationResult.fail("Environment variable must have a valid name")
    if len(name) > MAX_NAME_LENGTH:
        return ValidationResult.fail(f"Variable name exceeds maximum length of {MAX_NAME_LENGTH} characters")

    return ValidationResult.ok()


def validate_header_mods(headers: Any) -> ValidationResult:
    if headers is None:
        return ValidationResult.ok()
    if not isinstance(headers, list):
        return ValidationResult.fail("Proxy rule headers must be an array")
    for index, header in enumerate(headers, start=1):
        if not isinstance(header, dict) or not isinstance(header.get("name"), str) or not header["name"]:
            return ValidationResult.fail(f"Header {index} must be an object with a name")
    return ValidationResult.ok()


def validate_proxy_rule(rule: Any) -> ValidationResult:
    """Static rules need domains and a header name; dynamic rules need a header rule reference."""
    if not isinstance(rule, dict):
        return ValidationResult.fail("Proxy rule must be an object")

    domains = rule.get("domains")
    header_rule_id = rule.get("headerRuleId")
    is_dynamic = rule.get("isDynamic") is True or bool(header_rule_id)
    is_static = rule.get("isDynamic") is False or bool(domains)

    if not is_dynamic and not is_static:
        return ValidationResult.fail(
            "Proxy rule must have either domains (for static rules) or headerRuleId (for dynamic rules)"
        )

    if is_dynamic:
        if not header_rule_id or not isinstance(header_rule_id, str | int):
            return ValidationResult.fail("Dynamic proxy rule must have a valid header rule ID")
    else:
        if not isinstance(domains, list) or not domains:
            return ValidationResult.fail("Static proxy rule must have at least one domain")
        header_name = rule.get("headerName")
        if not header_name or not isinstance(header_name, str):
            return ValidationResult.fail("Static proxy rule must have a valid header name")

    return validate_header_mods(rule.get("headers"))


def validate_source(source: Any) -> ValidationResult:
    if not isinstance(source, dict):
        return ValidationResult.fail("Source must be an object")

    for field in SOURCE_REQUIRED_FIELDS:
        if not source.get(field):
            return ValidationResult.fail(f"Source missing required field: {field}")

    source_type = source["sourceType"]
    source_path = source["sourcePath"]
    if source_type not in tuple(SourceType):
        return ValidationResult.fail(f"Source has unsupported type: {source_type}")

    if source_type == SourceType.HTTP:
        parsed = urlparse(source_path) if isinstance(source_path, str) else None
        if parsed is None or not parsed.scheme or not parsed.netloc:
            return ValidationResult.fail("HTTP source must have a valid URL in sourcePath")
    elif source_type == SourceType.FILE and not isinstance(source_path, str):
        return ValidationResult.fail("File source must have a valid file path")
    elif source_type == SourceType.ENV and not isinstance(source_path, str):
        return ValidationResult.fail("Environment source must have a valid variable name")

    return ValidationResult.ok()


def validate_rule(rule: Any, rule_type: str | None = None) -> ValidationResult:
    """Validate a rule against its variant. `rule_type` is the group the rule was stored under.

    On success `data` holds the normalized rule with its `type` filled in.
    """
    if not isinstance(rule, dict):
        return ValidationResult.fail("Rule must be an object")

    declared_type = rule.get("type")
    if rule_type is not None and declared_type is not None and declared_type != rule_type:
        return ValidationResult.fail(f"Rule type '{declared_type}' does not match its group '{rule_type}'")

    effective_type = declared_type or rule_type
    if effective_type not in tuple(RuleType):
        return ValidationResult.fail(f"Unknown rule type: {effective_type}")

    try:
        parsed = rule_adapter.validate_python({**rule, "type": effective_type})
    except PydanticValidationError as e:
        return ValidationResult.fail(f"Invalid {effective_type} rule: {format_pydantic_error(e)}")
    return ValidationResult.ok(data=parsed.to_json_dict())


def validate_version(version: Any) -> ValidationResult:
    """Unknown versions pass with a warning. Only a missing or non-string version fails."""
    if not version or not isinstance(version, str):
        return ValidationResult.fail("Version must be a valid string")

    if version not in SUPPORTED_VERSIONS:
        return ValidationResult.ok(
            warnings=[
                f"Version {version} may not be fully supported. Supported versions: {', '.join(SUPPORTED_VERSIONS)}"
            ]
        )
    return ValidationResult.ok()


def validate_environment_schema(schema: Any) -> ValidationResult:
    if not isinstance(schema, dict):
        return ValidationResult.fail("Environment schema must be an object")

    environments = schema.get("environments")
    if environments is not None and not isinstance(environments, dict):
        return ValidationResult.fail("Environment schema environments must be an object")

    # Both the object and the array format are accepted for definitions
    definitions = schema.get("variableDefinitions")
    if definitions is not None and not isinstance(definitions, dict | list):
        return ValidationResult.fail("Environment schema variable definitions must be an object or array")

    return ValidationResult.ok()


def _validate_containers(payload: dict[str, Any]) -> list[str]:
    errors = []
    for key in ("sources", "proxyRules"):
        if key in payload and payload[key] is not None and not isinstance(payload[key], list):
            errors.append(f"{key} must be an array")

    rules = payload.get("rules")
    if rules is not None:
        if not isinstance(rules, dict):
            errors.append("rules must be an object keyed by rule type")
        else:
            errors.extend(f"Rules for type {key} must be an array" for key, value in rules.items() if not isinstance(value, list))

    environments = payload.get("environments")
    if environments is not None:
        if not isinstance(environments, dict):
            errors.append("environments must be an object keyed by environment name")
        else:
            errors.extend(
                f"Environment {name} variables must be an object"
                for name, variables in environments.items()
                if not isinstance(variables, dict)
            )
    return errors


def validate_import_payload(payload: Any) -> ValidationResult:
    """Validate a whole payload, aggregating every failure into one message.

    Individual rules are not checked here: a malformed rule is an item-level error during import.
    """
    basic = validate_import_data(payload)
    if not basic.success:
        return basic

    errors: list[str] = []
    warnings: list[str] = []

    version = validate_version(payload.get("version"))
    if version.success:
        warnings.extend(version.warnings)
    else:
        errors.append(str(version.error))

    errors.extend(_validate_containers(payload))

    if payload.get("workspace"):
        workspace = validate_workspace_config(payload["workspace"])
        if not workspace.success:
            errors.append(f"Workspace validation failed: {workspace.error}")

    if isinstance(payload.get("sources"), list):
        for index, source in enumerate(payload["sources"], start=1):
            result = validate_source(source)
            if not result.success:
                errors.append(f"Source {index} validation failed: {result.error}")

    if isinstance(payload.get("proxyRules"), list):
        for index, rule in enumerate(payload["proxyRules"], start=1):
            result = validate_proxy_rule(rule)
            if not result.success:
                errors.append(f"Proxy rule {index} validation failed: {result.error}")

    if payload.get("environmentSchema") is not None:
        schema = validate_environment_schema(payload["environmentSchema"])
        if not schema.success:
            errors.append(f"Environment schema validation failed: {schema.error}")

    if errors:
        return ValidationResult.fail("; ".join(errors), warnings)
    return ValidationResult.ok(warnings)
