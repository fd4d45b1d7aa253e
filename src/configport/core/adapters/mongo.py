"""MongoDB-backed storage for sources, proxy rules, rule files, environments and workspaces."""

from typing import Any

from pymongo.asynchronous.database import AsyncDatabase

from configport.core.modules.environment.models import Environments, EnvironmentVariable
from configport.core.modules.proxy_rule.models import DynamicProxyRule, StaticProxyRule, proxy_rule_adapter
from configport.core.modules.source.models import Source
from configport.core.modules.transfer.constants import DEFAULT_ENVIRONMENT_NAME
from configport.core.modules.workspace.models import Workspace
from configport.errors import NotFoundError

ACTIVE_ENVIRONMENT_KEY = "active_environment"
ACTIVE_WORKSPACE_KEY = "active_workspace"


async def create_indexes(database: AsyncDatabase[dict[str, Any]]) -> None:
    """Create indexes on startup."""
    await database.get_collection("sources").create_index([("sourceId", 1)], unique=True)
    await database.get_collection("proxy_rules").create_index([("id", 1)], unique=True)
    await database.get_collection("workspaces").create_index([("id", 1)], unique=True)


async def _get_setting(database: AsyncDatabase[dict[str, Any]], key: str) -> Any:
    doc = await database.get_collection("settings").find_one({"_id": key})
    return doc["value"] if doc else None


async def _set_setting(database: AsyncDatabase[dict[str, Any]], key: str, value: Any) -> None:
    await database.get_collection("settings").replace_one({"_id": key}, {"_id": key, "value": value}, upsert=True)


class MongoSourceStore:
    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self._collection = database.get_collection("sources")

    async def list_sources(self) -> list[Source]:
        return [Source.model_validate(doc) async for doc in self._collection.find({}, {"_id": 0})]

    async def add_source(self, source: Source) -> Source:
        await self._collection.insert_one(source.to_json_dict())
        return source

    async def remove_source(self, source_id: str) -> None:
        await self._collection.delete_one({"sourceId": source_id})


class MongoProxyRuleStore:
    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self._collection = database.get_collection("proxy_rules")

    async def get_rules(self) -> list[StaticProxyRule | DynamicProxyRule]:
        return [proxy_rule_adapter.validate_python(doc) async for doc in self._collection.find({}, {"_id": 0})]

    async def save_rule(self, rule: StaticProxyRule | DynamicProxyRule) -> None:
        await self._collection.replace_one({"id": rule.id}, rule.to_json_dict(), upsert=True)

    async def delete_rule(self, rule_id: str) -> None:
        await self._collection.delete_one({"id": rule_id})


class MongoKeyValueStore:
    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self._collection = database.get_collection("storage")

    async def load(self, key: str) -> str | None:
        doc = await self._collection.find_one({"_id": key})
        return str(doc["content"]) if doc else None

    async def save(self, key: str, content: str) -> None:
        await self._collection.replace_one({"_id": key}, {"_id": key, "content": content}, upsert=True)


def variables_to_document(variables: dict[str, EnvironmentVariable]) -> list[dict[str, Any]]:
    """Variable names may contain `.` or start with `$`, so they are stored as values, never as keys."""
    return [{"name": name, **variable.to_json_dict()} for name, variable in variables.items()]


def variables_from_document(entries: list[dict[str, Any]]) -> dict[str, EnvironmentVariable]:
    variables = {}
    for entry in entries:
        fields = dict(entry)
        variables[fields.pop("name")] = EnvironmentVariable.model_validate(fields)
    return variables


class MongoEnvironmentStore:
    """One document per environment: `{_id: <name>, variables: [{name, value, isSecret, updatedAt}]}`."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self._database = database
        self._collection = database.get_collection("environments")

    async def get_environments(self) -> Environments:
        return {doc["_id"]: variables_from_document(doc.get("variables", [])) async for doc in self._collection.find()}

    async def get_active_environment(self) -> str:
        return await _get_setting(self._database, ACTIVE_ENVIRONMENT_KEY) or DEFAULT_ENVIRONMENT_NAME

    async def create_environment(self, name: str) -> None:
        await self._collection.update_one({"_id": name}, {"$setOnInsert": {"variables": []}}, upsert=True)

    async def set_variable(self, environment: str, name: str, variable: EnvironmentVariable) -> None:
        result = await self._collection.update_one({"_id": environment}, {"$pull": {"variables": {"name": name}}})
        if result.matched_count == 0:
            raise NotFoundError(f"Environment '{environment}' not found")
        await self._collection.update_one(
            {"_id": environment}, {"$push": {"variables": {"$each": variables_to_document({name: variable})}}}
        )

    async def set_variables(self, environment: str, variables: dict[str, EnvironmentVariable]) -> None:
        await self.create_environment(environment)
        await self._collection.update_one(
            {"_id": environment}, {"$pull": {"variables": {"name": {"$in": list(variables)}}}}
        )
        await self._collection.update_one(
            {"_id": environment}, {"$push": {"variables": {"$each": variables_to_document(variables)}}}
        )

    async def clear_environments(self) -> None:
        await self._collection.delete_many({})

    async def set_active(self, name: str) -> None:
        await self.create_environment(name)
        await _set_setting(self._database, ACTIVE_ENVIRONMENT_KEY, name)


class MongoWorkspaceStore:
    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self._database = database
        self._collection = database.get_collection("workspaces")

    async def list_workspaces(self) -> list[Workspace]:
        return [Workspace.model_validate(doc) async for doc in self._collection.find({}, {"_id": 0})]

    async def get_active_workspace(self) -> Workspace | None:
        active_id = await _get_setting(self._database, ACTIVE_WORKSPACE_KEY)
        if active_id is None:
            return None
        doc = await self._collection.find_one({"id": active_id}, {"_id": 0})
        return Workspace.model_validate(doc) if doc else None

    async def create_workspace(self, workspace: Workspace) -> Workspace:
        await self._collection.insert_one(workspace.to_json_dict())
        return workspace

    async def switch_workspace(self, workspace_id: str) -> None:
        if await self._collection.count_documents({"id": workspace_id}, limit=1) == 0:
            raise NotFoundError(f"Workspace '{workspace_id}' not found")
        await _set_setting(self._database, ACTIVE_WORKSPACE_KEY, workspace_id)
