"""Shared pytest fixtures."""

import pytest

from configport.config import Config
from configport.core.adapters.memory import (
    MemoryEnvironmentStore,
    MemoryKeyValueStore,
    MemoryProxyRuleStore,
    MemorySourceStore,
    MemoryWorkspaceStore,
)
from configport.core.core import Core
from configport.core.modules.transfer.constants import MessageLevel
from configport.core.modules.workspace.models import Workspace
from configport.core.ports import Ports


class RecordingNotifier:
    """Collects user-facing messages instead of showing them."""

    def __init__(self) -> None:
        self.messages: list[tuple[MessageLevel, str]] = []

    def notify(self, level: MessageLevel, message: str) -> None:
        self.messages.append((level, message))

    def levels(self) -> list[MessageLevel]:
        return [level for level, _ in self.messages]


class MemoryFileSystem:
    def __init__(self) -> None:
        self.files: dict[str, str] = {}

    async def read_text(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    async def write_text(self, path: str, content: str) -> None:
        self.files[path] = content


class StubDialogs:
    """Save dialogs answer inside /exports; set `cancel` to simulate the user closing the dialog."""

    def __init__(self) -> None:
        self.cancel = False
        self.open_path: str | None = None

    async def save_file(self, title: str, default_path: str) -> str | None:
        return None if self.cancel else f"/exports/{default_path}"

    async def open_file(self, title: str) -> str | None:
        return None if self.cancel else self.open_path


@pytest.fixture
def config():
    """Configuration with in-memory storage."""
    return Config(database_url=None, exports_path="/exports")


@pytest.fixture
def workspace():
    return Workspace(id="ws-1", name="Personal", type="personal")


@pytest.fixture
def ports(workspace):
    """In-memory ports with one active workspace and an empty Default environment."""
    return Ports(
        sources=MemorySourceStore(),
        proxy_rules=MemoryProxyRuleStore(),
        storage=MemoryKeyValueStore(),
        environments=MemoryEnvironmentStore(),
        workspaces=MemoryWorkspaceStore([workspace]),
        dialogs=StubDialogs(),
        files=MemoryFileSystem(),
        notifier=RecordingNotifier(),
    )


@pytest.fixture
def core(config, ports):
    return Core(config, ports)


@pytest.fixture
def services(core):
    return core.services


@pytest.fixture
def http_source():
    return {
        "sourceId": "1",
        "sourceType": "http",
        "sourcePath": "https://{{API_HOST}}/token",
        "sourceTag": "auth",
        "requestOptions": {
            "method": "POST",
            "headers": [{"key": "Authorization", "value": "Bearer {{API_TOKEN}}"}],
            "body": '{"client": "{{CLIENT_ID}}"}',
        },
        "jsonFilter": {"enabled": True, "path": "$.data.token"},
    }


@pytest.fixture
def file_source():
    return {"sourceId": "2", "sourceType": "file", "sourcePath": "/home/user/token.txt"}


@pytest.fixture
def static_proxy_rule():
    return {
        "id": "p1",
        "pattern": "*.example.com",
        "isDynamic": False,
        "domains": ["example.com"],
        "headerName": "X-Env",
        "headerValue": "staging",
        "headers": [
            {"name": "X-Env", "value": "staging"},
            {"name": "X-Trace", "value": "on"},
        ],
    }


@pytest.fixture
def header_rule():
    return {
        "id": "r1",
        "name": "Auth header",
        "headerName": "Authorization",
        "headerValue": "Bearer abc",
        "domains": ["api.example.com"],
    }


@pytest.fixture
def payload(http_source, file_source, static_proxy_rule, header_rule):
    """A complete export payload."""
    return {
        "version": "3.0.0",
        "sources": [http_source, file_source],
        "proxyRules": [static_proxy_rule],
        "rules": {
            "header": [header_rule],
            "payload": [{"id": "r2", "name": "Mask", "matchPattern": "secret", "replaceWith": "***"}],
            "url": [],
        },
        "rulesMetadata": {"lastUpdated": "2026-01-01T00:00:00.000Z", "totalRules": 2},
        "environments": {
            "Default": {"API_HOST": {"value": "api.example.com", "isSecret": False}},
            "Staging": {"API_TOKEN": {"value": "s3cr3t", "isSecret": True}, "LEGACY": "plain"},
        },
        "workspace": {"name": "Team", "type": "git", "gitUrl": "https://git.example.com/team/config.git"},
    }
