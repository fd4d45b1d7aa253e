"""Human-readable summaries and warnings derived from options and statistics."""

from collections.abc import Sequence
from typing import Any

from configport.core.modules.transfer.constants import (
    DATA_FORMAT_VERSION,
    EnvironmentOption,
    FileFormat,
    ImportMode,
    SuccessMessage,
)
from configport.core.modules.transfer.models import ExportOptions, ImportOptions, ImportStats

ERROR_CONTEXT_LABELS = (("file_name", "file"), ("data_type", "type"), ("step", "step"))


def count_rules(rules: Any) -> int:
    if not isinstance(rules, dict):
        return 0
    return sum(len(group) for group in rules.values() if isinstance(group, list))


def generate_export_success_message(options: ExportOptions, exported: dict[str, Any], file_paths: Sequence[str]) -> str:
    if options.file_format == FileFormat.SEPARATE and len(file_paths) > 1:
        return f"{SuccessMessage.EXPORT_COMPLETE} configuration to {len(file_paths)} files"

    items = []
    selected = options.selected_items
    if selected.sources and exported.get("sources") is not None:
        items.append(f"{len(exported['sources'])} source(s)")
    if selected.rules and exported.get("rules") is not None:
        items.append(f"{count_rules(exported['rules'])} rule(s)")
    if selected.proxy_rules and exported.get("proxyRules") is not None:
        items.append(f"{len(exported['proxyRules'])} proxy rule(s)")
    if options.environment_option == EnvironmentOption.SCHEMA:
        items.append("environment schema")
    elif options.environment_option == EnvironmentOption.FULL:
        items.append("environments with values")
    if options.include_workspace:
        items.append("workspace configuration with credentials" if options.include_credentials else "workspace configuration")

    description = ", ".join(items) if items else "configuration"
    return f"{SuccessMessage.EXPORT_COMPLETE} {description}"


def generate_import_success_message(stats: ImportStats, is_git_sync: bool = False) -> str:
    messages = []

    if stats.sources.imported:
        messages.append(f"{stats.sources.imported} source(s)")
    if stats.sources.skipped:
        messages.append(f"{stats.sources.skipped} duplicate source(s) skipped")

    if stats.rules.imported:
        details = ", ".join(f"{count} {rule_type}" for rule_type, count in stats.rules.imported_by_type.items() if count)
        messages.append(f"{stats.rules.imported} rule(s) ({details})")
    if stats.rules.skipped:
        messages.append(f"{stats.rules.skipped} duplicate rule(s) skipped")

    if stats.proxy_rules.imported:
        messages.append(f"{stats.proxy_rules.imported} proxy rule(s)")
    if stats.proxy_rules.skipped:
        messages.append(f"{stats.proxy_rules.skipped} duplicate proxy rule(s) skipped")

    if stats.environments.environments_imported:
        messages.append(f"{stats.environments.environments_imported} environment(s)")

    if stats.workspace.created_workspace is not None:
        messages.append(f'workspace "{stats.workspace.created_workspace.name}"')

    if not messages:
        return "No new data was imported"

    prefix = SuccessMessage.GIT_SYNC_COMPLETE if is_git_sync else SuccessMessage.IMPORT_COMPLETE
    return f"{prefix}: {', '.join(messages)}"


def generate_import_summary(stats: ImportStats) -> str:
    workspace = stats.workspace.created_workspace
    details = [
        f"Sources: {stats.sources.imported} imported, {stats.sources.skipped} skipped",
        f"Rules: {stats.rules.imported} imported, {stats.rules.skipped} skipped",
        f"Proxy Rules: {stats.proxy_rules.imported} imported, {stats.proxy_rules.skipped} skipped",
        f"Environments: {stats.environments.environments_imported} imported",
        f"Variables Created: {stats.environments.variables_created}",
        f"Workspace Created: {workspace.name if workspace else 'None'}",
    ]
    return f"Import Summary: {' | '.join(details)}"


def generate_import_warnings(
    payload: dict[str, Any],
    options: ImportOptions,
    current_version: str = DATA_FORMAT_VERSION,
    large_dataset_threshold: int = 100,
    replace_warning_threshold: int = 50,
) -> list[str]:
    """Advisory warnings shown before an import. They never block it."""
    warnings = []

    version = payload.get("version")
    if version and version != current_version:
        warnings.append(f"Import data is from version {version}, some features may not work correctly")

    sources = payload.get("sources")
    proxy_rules = payload.get("proxyRules")
    total_items = (
        (len(sources) if isinstance(sources, list) else 0)
        + (len(proxy_rules) if isinstance(proxy_rules, list) else 0)
        + count_rules(payload.get("rules"))
    )
    if total_items > large_dataset_threshold:
        warnings.append(f"Large dataset detected ({total_items} items), import may take longer than usual")

    if options.import_mode == ImportMode.REPLACE and total_items > replace_warning_threshold:
        warnings.append("Replace mode will delete all existing data before importing")

    workspace = payload.get("workspace")
    if isinstance(workspace, dict) and workspace.get("authData") and not options.include_credentials:
        warnings.append("Workspace contains authentication data that will be imported")

    return warnings


def generate_environment_variables_message(count: int, environment_names: Sequence[str] = ()) -> str | None:
    if count == 0:
        return None
    where = f" in {', '.join(environment_names)}" if environment_names else ""
    return f"Created {count} environment variable(s){where}. {SuccessMessage.CONFIGURE_VARIABLES}"


def generate_error_message(error: Exception, operation: str, context: dict[str, str] | None = None) -> str:
    base = "Error exporting data" if operation == "export" else "Error importing data"
    context = context or {}
    info = [f"{label}: {context[key]}" for key, label in ERROR_CONTEXT_LABELS if context.get(key)]
    context_part = f" ({', '.join(info)})" if info else ""
    return f"{base}{context_part}: {error}"


def generate_progress_message(operation: str, current: int, total: int, item_type: str = "items") -> str:
    percentage = round(current / total * 100) if total > 0 else 0
    return f"{operation} {item_type}: {current}/{total} ({percentage}%)"


def sanitize_options_for_logging(options: ExportOptions | ImportOptions) -> dict[str, Any]:
    """Options as logged: file contents reduced to their length, credentials redacted."""
    sanitized = options.to_json_dict()
    for key in ("fileContent", "envFileContent"):
        if isinstance(sanitized.get(key), str):
            sanitized[key] = f"<{len(sanitized[key])} chars>"
    workspace = sanitized.get("workspaceInfo")
    if isinstance(workspace, dict) and workspace.get("authData"):
        sanitized["workspaceInfo"] = {**workspace, "authData": "[REDACTED]"}
    return sanitized
