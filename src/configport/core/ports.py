"""Interfaces of the host-application collaborators the transfer engine reads and writes through."""

from dataclasses import dataclass
from typing import Protocol

from configport.core.modules.environment.models import Environments, EnvironmentVariable
from configport.core.modules.proxy_rule.models import DynamicProxyRule, StaticProxyRule
from configport.core.modules.source.models import Source
from configport.core.modules.transfer.constants import MessageLevel
from configport.core.modules.workspace.models import Workspace


class SourceStore(Protocol):
    async def list_sources(self) -> list[Source]: ...

    async def add_source(self, source: Source) -> Source: ...

    async def remove_source(self, source_id: str) -> None: ...


class ProxyRuleStore(Protocol):
    async def get_rules(self) -> list[StaticProxyRule | DynamicProxyRule]: ...

    async def save_rule(self, rule: StaticProxyRule | DynamicProxyRule) -> None: ...

    async def delete_rule(self, rule_id: str) -> None: ...


class KeyValueStore(Protocol):
    """Raw text storage keyed by workspace-scoped paths such as `workspaces/<id>/rules.json`."""

    async def load(self, key: str) -> str | None: ...

    async def save(self, key: str, content: str) -> None: ...


class EnvironmentStore(Protocol):
    async def get_environments(self) -> Environments: ...

    async def get_active_environment(self) -> str: ...

    async def create_environment(self, name: str) -> None: ...

    async def set_variable(self, environment: str, name: str, variable: EnvironmentVariable) -> None: ...

    async def set_variables(self, environment: str, variables: dict[str, EnvironmentVariable]) -> None:
        """Write several variables with a single save."""
        ...

    async def clear_environments(self) -> None: ...


class WorkspaceStore(Protocol):
    async def list_workspaces(self) -> list[Workspace]: ...

    async def get_active_workspace(self) -> Workspace | None: ...

    async def create_workspace(self, workspace: Workspace) -> Workspace: ...

    async def switch_workspace(self, workspace_id: str) -> None: ...


class FileDialogs(Protocol):
    """Save/open dialogs. `None` means the user cancelled."""

    async def save_file(self, title: str, default_path: str) -> str | None: ...

    async def open_file(self, title: str) -> str | None: ...


class FileSystem(Protocol):
    async def read_text(self, path: str) -> str: ...

    async def write_text(self, path: str, content: str) -> None: ...


class Notifier(Protocol):
    """User-facing toast messages."""

    def notify(self, level: MessageLevel, message: str) -> None: ...


@dataclass
class Ports:
    sources: SourceStore
    proxy_rules: ProxyRuleStore
    storage: KeyValueStore
    environments: EnvironmentStore
    workspaces: WorkspaceStore
    dialogs: FileDialogs
    files: FileSystem
    notifier: Notifier
