"""In-memory storage used when no database is configured, and in tests."""

from configport.core.modules.environment.models import Environments, EnvironmentVariable
from configport.core.modules.proxy_rule.models import DynamicProxyRule, StaticProxyRule
from configport.core.modules.source.models import Source
from configport.core.modules.transfer.constants import DEFAULT_ENVIRONMENT_NAME
from configport.core.modules.workspace.models import Workspace
from configport.errors import NotFoundError


class MemorySourceStore:
    def __init__(self, sources: list[Source] | None = None) -> None:
        self._sources: list[Source] = list(sources or [])

    async def list_sources(self) -> list[Source]:
        return [source.model_copy(deep=True) for source in self._sources]

    async def add_source(self, source: Source) -> Source:
        self._sources.append(source.model_copy(deep=True))
        return source

    async def remove_source(self, source_id: str) -> None:
        self._sources = [source for source in self._sources if source.source_id != source_id]


class MemoryProxyRuleStore:
    def __init__(self, rules: list[StaticProxyRule | DynamicProxyRule] | None = None) -> None:
        self._rules: list[StaticProxyRule | DynamicProxyRule] = list(rules or [])

    async def get_rules(self) -> list[StaticProxyRule | DynamicProxyRule]:
        return [rule.model_copy(deep=True) for rule in self._rules]

    async def save_rule(self, rule: StaticProxyRule | DynamicProxyRule) -> None:
        self._rules = [existing for existing in self._rules if rule.id is None or existing.id != rule.id]
        self._rules.append(rule.model_copy(deep=True))

    async def delete_rule(self, rule_id: str) -> None:
        self._rules = [rule for rule in self._rules if rule.id != rule_id]


class MemoryKeyValueStore:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def load(self, key: str) -> str | None:
        return self._data.get(key)

    async def save(self, key: str, content: str) -> None:
        self._data[key] = content


class MemoryEnvironmentStore:
    def __init__(self, environments: Environments | None = None, active: str = DEFAULT_ENVIRONMENT_NAME) -> None:
        self._environments: Environments = environments if environments is not None else {active: {}}
        self._active = active

    async def get_environments(self) -> Environments:
        return {name: {key: var.model_copy() for key, var in variables.items()} for name, variables in self._environments.items()}

    async def get_active_environment(self) -> str:
        return self._active

    async def create_environment(self, name: str) -> None:
        self._environments.setdefault(name, {})

    async def set_variable(self, environment: str, name: str, variable: EnvironmentVariable) -> None:
        if environment not in self._environments:
            raise NotFoundError(f"Environment '{environment}' not found")
        self._environments[environment][name] = variable

    async def set_variables(self, environment: str, variables: dict[str, EnvironmentVariable]) -> None:
        self._environments.setdefault(environment, {}).update(variables)

    async def clear_environments(self) -> None:
        self._environments = {}

    def set_active(self, name: str) -> None:
        self._environments.setdefault(name, {})
        self._active = name


class MemoryWorkspaceStore:
    def __init__(self, workspaces: list[Workspace] | None = None) -> None:
        self._workspaces: list[Workspace] = list(workspaces or [])
        self._active_id: str | None = self._workspaces[0].id if self._workspaces else None

    async def list_workspaces(self) -> list[Workspace]:
        return list(self._workspaces)

    async def get_active_workspace(self) -> Workspace | None:
        for workspace in self._workspaces:
            if workspace.id == self._active_id:
                return workspace
        return None

    async def create_workspace(self, workspace: Workspace) -> Workspace:
        self._workspaces.append(workspace)
        return workspace

    async def switch_workspace(self, workspace_id: str) -> None:
        if not any(workspace.id == workspace_id for workspace in self._workspaces):
            raise NotFoundError(f"Workspace '{workspace_id}' not found")
        self._active_id = workspace_id
