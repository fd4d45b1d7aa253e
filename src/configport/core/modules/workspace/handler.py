from typing import Any

import structlog

from configport.core.core import Service
from configport.core.modules.transfer.constants import ErrorMessage, ImportOrigin
from configport.core.modules.transfer.duplicates import generate_unique_name, is_workspace_name_duplicate
from configport.core.modules.transfer.models import (
    ExportOptions,
    ImportOptions,
    ItemError,
    ValidationResult,
    WorkspaceImportResult,
)
from configport.core.modules.transfer.validators import validate_workspace_config
from configport.core.modules.workspace.models import Workspace, WorkspaceConfig

logger = structlog.get_logger(__name__)

DROPPED_AUTH_KEYS = ("debugInfo", "lastError", "internalTokens")
EXPORTED_TOKEN_KEYS = ("accessToken", "refreshToken", "expiresAt", "tokenType")
# Assigned locally, never taken from an imported file
LOCAL_KEYS = ("id", "createdAt", "importedFrom")


def sanitize_auth_data(auth_data: Any) -> dict[str, Any]:
    """Strip diagnostics and internal token metadata from a credentials blob."""
    if not isinstance(auth_data, dict):
        return {}

    sanitized = {key: value for key, value in auth_data.items() if key not in DROPPED_AUTH_KEYS}
    tokens = sanitized.get("tokens")
    if isinstance(tokens, dict):
        sanitized["tokens"] = {key: tokens[key] for key in EXPORTED_TOKEN_KEYS if key in tokens}
    return sanitized


def validate_auth_data(auth_data: Any) -> dict[str, Any]:
    """Sanitize imported credentials and check the fields their auth type requires."""
    if not isinstance(auth_data, dict):
        raise ValueError("Authentication data must be an object")

    validated = sanitize_auth_data(auth_data)
    auth_type = validated.get("type")
    if auth_type == "oauth" and not (validated.get("tokens") or {}).get("accessToken"):
        raise ValueError("OAuth authentication data missing required tokens")
    if auth_type == "personal-token" and not validated.get("token"):
        raise ValueError("Personal token authentication data missing token")
    return validated


class WorkspaceHandler(Service):
    async def export_workspace(self, options: ExportOptions) -> dict[str, Any] | None:
        if not options.include_workspace:
            logger.debug("workspace_not_selected")
            return None

        current = await self.ports.workspaces.get_active_workspace()
        if current is None:
            logger.debug("no_active_workspace")
            return None

        config = WorkspaceConfig.model_validate(current.model_dump(include=set(WorkspaceConfig.model_fields)))
        config.auth_data = sanitize_auth_data(current.auth_data) if options.include_credentials and current.auth_data else None

        logger.info("workspace_exported", name=config.name, type=config.type, with_credentials=config.auth_data is not None)
        return config.to_json_dict()

    async def import_workspace(self, workspace_info: dict[str, Any] | None, options: ImportOptions) -> WorkspaceImportResult:
        """Create a workspace from imported configuration.

        Failures are collected into the result so the rest of the import can proceed.
        """
        result = WorkspaceImportResult()
        if not workspace_info:
            logger.debug("no_workspace_data")
            return result

        name = workspace_info.get("name") if isinstance(workspace_info, dict) else None
        validation = validate_workspace_config(workspace_info)
        if not validation.success:
            logger.warning("workspace_import_invalid", name=name, error=validation.error)
            result.errors.append(
                ItemError(entity="workspace", identifier=name, error=f"Invalid workspace configuration: {validation.error}")
            )
            return result

        try:
            workspace = await self._create_workspace(workspace_info, options)
        except Exception as e:
            logger.warning("workspace_import_failed", name=name, error=str(e))
            result.errors.append(
                ItemError(entity="workspace", identifier=name, error=f"{ErrorMessage.WORKSPACE_CREATION_FAILED}: {e}")
            )
            return result

        result.created_workspace = workspace
        if options.switch_to_new_workspace:
            try:
                await self.ports.workspaces.switch_workspace(workspace.id)
                logger.debug("workspace_switched", workspace_id=workspace.id)
            except Exception as e:
                logger.warning("workspace_switch_failed", workspace_id=workspace.id, error=str(e))

        logger.info("workspace_imported", workspace_id=workspace.id, name=workspace.name)
        return result

    async def _create_workspace(self, workspace_info: dict[str, Any], options: ImportOptions) -> Workspace:
        existing = await self.ports.workspaces.list_workspaces()

        name = workspace_info["name"]
        if is_workspace_name_duplicate(name, existing):
            name = generate_unique_name(name, [workspace.name for workspace in existing], "Imported")
            logger.info("workspace_name_taken", requested=workspace_info["name"], name=name)

        fields = {key: value for key, value in workspace_info.items() if value is not None and key not in LOCAL_KEYS}
        raw_auth = fields.pop("authData", None)
        config = WorkspaceConfig.model_validate(fields)

        auth_data = None
        if raw_auth and (options.is_git_sync or options.include_credentials):
            auth_data = validate_auth_data(raw_auth)

        workspace = Workspace(
            **config.model_dump(exclude={"name", "auth_data"}),
            name=name,
            auth_data=auth_data,
            imported_from=ImportOrigin.GIT_SYNC if options.is_git_sync else ImportOrigin.MANUAL_IMPORT,
        )
        return await self.ports.workspaces.create_workspace(workspace)

    def get_workspace_statistics(self, workspace: dict[str, Any] | None) -> dict[str, Any]:
        if not workspace:
            return {"hasWorkspace": False}
        return {
            "hasWorkspace": True,
            "name": workspace.get("name"),
            "type": workspace.get("type"),
            "hasGitUrl": bool(workspace.get("gitUrl")),
            "hasAuthData": bool(workspace.get("authData")),
            "authType": workspace.get("authType"),
            "autoSync": workspace.get("autoSync"),
        }

    def validate_workspace_for_export(self, workspace: dict[str, Any] | None) -> ValidationResult:
        if workspace is None:
            return ValidationResult.ok()
        return validate_workspace_config(workspace)
