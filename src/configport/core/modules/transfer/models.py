from typing import Any

from pydantic import ConfigDict, Field, field_serializer

from configport.core.models import CamelModel
from configport.core.modules.transfer.constants import EnvironmentOption, FileFormat, ImportMode
from configport.core.modules.workspace.models import Workspace


class OptionsModel(CamelModel):
    model_config = ConfigDict(extra="ignore")


class SelectedItems(OptionsModel):
    """Entity families chosen by the user."""

    sources: bool = False
    proxy_rules: bool = False
    rules: bool = False
    environments: bool = False
    workspace: bool = False

    def any_selected(self) -> bool:
        return any(self.model_dump().values())


class ExportOptions(OptionsModel):
    selected_items: SelectedItems
    file_format: FileFormat = FileFormat.SINGLE
    environment_option: EnvironmentOption = EnvironmentOption.NONE
    selected_environments: list[str] = []
    include_workspace: bool = False
    include_credentials: bool = False
    app_version: str | None = None  # Falls back to the configured application version


class ImportOptions(OptionsModel):
    """Import request. Content is given inline or read from paths; with neither, the open dialog is shown."""

    file_content: str | None = None
    env_file_content: str | None = None
    file_path: str | None = None
    env_file_path: str | None = None
    selected_items: SelectedItems
    import_mode: ImportMode = ImportMode.MERGE
    selected_environments: list[str] = []
    include_credentials: bool = False
    is_git_sync: bool = False
    switch_to_new_workspace: bool = True
    workspace_info: dict[str, Any] | None = None  # Overrides the payload's workspace when given


class ExportPayload(CamelModel):
    """The wire format. Entity containers stay raw so that one malformed entity is an item-level error."""

    version: str
    sources: list[Any] | None = None
    proxy_rules: list[Any] | None = None
    rules: dict[str, list[Any]] | None = None
    rules_metadata: dict[str, Any] | None = None
    environment_schema: dict[str, Any] | None = None
    environments: dict[str, dict[str, Any]] | None = None
    workspace: dict[str, Any] | None = None


class ValidationResult(CamelModel):
    success: bool
    error: str | None = None
    warnings: list[str] = []
    data: dict[str, Any] | None = None

    @classmethod
    def ok(cls, warnings: list[str] | None = None, data: dict[str, Any] | None = None) -> "ValidationResult":
        return cls(success=True, warnings=warnings or [], data=data)

    @classmethod
    def fail(cls, error: str, warnings: list[str] | None = None) -> "ValidationResult":
        return cls(success=False, error=error, warnings=warnings or [])


class ItemError(CamelModel):
    """A single entity that failed validation or application during import."""

    entity: str
    identifier: str | None = None
    error: str


class ImportResult(CamelModel):
    """Outcome of importing one entity family. `imported`/`skipped` are totals over the per-type breakdown."""

    imported: int = 0
    skipped: int = 0
    errors: list[ItemError] = []
    imported_by_type: dict[str, int] = {}
    skipped_by_type: dict[str, int] = {}


class EnvironmentImportResult(CamelModel):
    environments_imported: int = 0
    variables_created: int = 0
    variables_skipped: int = 0
    environment_names: list[str] = []
    errors: list[ItemError] = []


class WorkspaceImportResult(CamelModel):
    created_workspace: Workspace | None = None
    errors: list[ItemError] = []

    @field_serializer("created_workspace")
    def _hide_credentials(self, workspace: Workspace | None) -> Workspace | None:
        return workspace.model_copy(update={"auth_data": None}) if workspace is not None else None


class ImportStats(CamelModel):
    sources: ImportResult = Field(default_factory=ImportResult)
    proxy_rules: ImportResult = Field(default_factory=ImportResult)
    rules: ImportResult = Field(default_factory=ImportResult)
    environments: EnvironmentImportResult = Field(default_factory=EnvironmentImportResult)
    workspace: WorkspaceImportResult = Field(default_factory=WorkspaceImportResult)

    @property
    def errors(self) -> list[ItemError]:
        return [
            *self.workspace.errors,
            *self.sources.errors,
            *self.proxy_rules.errors,
            *self.rules.errors,
            *self.environments.errors,
        ]

    def has_imported_data(self) -> bool:
        return (
            self.sources.imported > 0
            or self.proxy_rules.imported > 0
            or self.rules.imported > 0
            or self.environments.environments_imported > 0
            or self.workspace.created_workspace is not None
        )


class ExportReport(CamelModel):
    files: list[str]
    message: str
    total_items: int
    estimated_size: str
    duration_ms: int


class ImportReport(CamelModel):
    message: str
    warnings: list[str] = []
    stats: ImportStats
    statistics: dict[str, Any] = {}


class EntityPreview(CamelModel):
    new: int = 0
    duplicates: int = 0
    invalid: int = 0


class ImportPreview(CamelModel):
    """Dry-run result: what an import in merge mode would do, without writing anything."""

    version: str
    warnings: list[str] = []
    sources: EntityPreview | None = None
    proxy_rules: EntityPreview | None = None
    rules: EntityPreview | None = None
