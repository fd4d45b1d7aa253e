from enum import StrEnum

DATA_FORMAT_VERSION = "3.0.0"
SUPPORTED_VERSIONS = ("1.0.0", "2.0.0", "3.0.0")
MAX_NAME_LENGTH = 255

DEFAULT_APP_VERSION = "3.0.0"
DEFAULT_ENVIRONMENT_NAME = "Default"
DEFAULT_WORKSPACE_TYPE = "git"
DEFAULT_WORKSPACE_BRANCH = "main"
DEFAULT_WORKSPACE_PATH = "config/open-headers.json"
DEFAULT_AUTH_TYPE = "none"

CONFIG_FILE_PREFIX = "open-headers-config"
ENV_FILE_PREFIX = "open-headers-env"

WORKSPACE_REQUIRED_FIELDS = ("name", "type")
SOURCE_REQUIRED_FIELDS = ("sourceId", "sourceType", "sourcePath")

# Keys moved to the companion file in the "separate" format
ENVIRONMENT_KEYS = ("environmentSchema", "environments")


class FileFormat(StrEnum):
    SINGLE = "single"
    SEPARATE = "separate"


class ImportMode(StrEnum):
    MERGE = "merge"
    REPLACE = "replace"


class EnvironmentOption(StrEnum):
    NONE = "none"
    SCHEMA = "schema"
    FULL = "full"


class ImportOrigin(StrEnum):
    GIT_SYNC = "git-sync"
    MANUAL_IMPORT = "manual-import"


class TransferEvent(StrEnum):
    WORKSPACE_DATA_REFRESH = "workspace-data-refresh-needed"
    PROXY_RULES_UPDATED = "proxy-rules-updated"
    RULES_UPDATED = "rules-updated"
    ENVIRONMENT_VARIABLES_CHANGED = "environment-variables-changed"


class MessageLevel(StrEnum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ErrorMessage(StrEnum):
    INVALID_FILE_FORMAT = "Invalid import file format"
    EXPORT_FAILED = "Error exporting data"
    IMPORT_FAILED = "Error importing data"
    FILE_OPERATION_FAILED = "File operation failed"
    WORKSPACE_CREATION_FAILED = "Failed to create workspace from import"
    NO_DATA_IMPORTED = "No new data was imported"


class SuccessMessage(StrEnum):
    EXPORT_COMPLETE = "Successfully exported"
    IMPORT_COMPLETE = "Import complete"
    GIT_SYNC_COMPLETE = "Git sync complete"
    WORKSPACE_SYNC_SUCCESS = "Workspace synced successfully"
    CONFIGURE_VARIABLES = "Please configure their values in the Environments tab."
