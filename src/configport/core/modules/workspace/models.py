from typing import Any

from pydantic import Field

from configport.core.models import CamelModel
from configport.core.modules.transfer.constants import (
    DEFAULT_AUTH_TYPE,
    DEFAULT_WORKSPACE_BRANCH,
    DEFAULT_WORKSPACE_PATH,
    DEFAULT_WORKSPACE_TYPE,
    ImportOrigin,
)
from configport.utils import generate_id, now_iso


class WorkspaceConfig(CamelModel):
    """Portable workspace description. The name is its only external identity."""

    name: str
    type: str = DEFAULT_WORKSPACE_TYPE
    description: str = ""
    git_url: str | None = None
    git_branch: str = DEFAULT_WORKSPACE_BRANCH
    git_path: str = DEFAULT_WORKSPACE_PATH
    auth_type: str = DEFAULT_AUTH_TYPE
    auth_data: dict[str, Any] | None = None  # Opaque credentials blob
    auto_sync: bool = True


class Workspace(WorkspaceConfig):
    id: str = Field(default_factory=generate_id)
    created_at: str = Field(default_factory=now_iso)
    imported_from: ImportOrigin | None = None
