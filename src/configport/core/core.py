from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, cast
from urllib.parse import urlparse

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from configport.config import Config
from configport.core.events import EventBus
from configport.core.ports import Ports


class Service:
    """Base class for services working through the injected ports."""

    def __init__(self, ports: Ports) -> None:
        self.ports = ports
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    from configport.core.modules.environment.handler import EnvironmentsHandler  # noqa: PLC0415
    from configport.core.modules.proxy_rule.handler import ProxyRulesHandler  # noqa: PLC0415
    from configport.core.modules.rule.handler import RulesHandler  # noqa: PLC0415
    from configport.core.modules.source.handler import SourcesHandler  # noqa: PLC0415
    from configport.core.modules.transfer.export_service import ExportService  # noqa: PLC0415
    from configport.core.modules.transfer.import_service import ImportService  # noqa: PLC0415
    from configport.core.modules.workspace.handler import WorkspaceHandler  # noqa: PLC0415

    sources: SourcesHandler
    proxy_rules: ProxyRulesHandler
    rules: RulesHandler
    environments: EnvironmentsHandler
    workspace: WorkspaceHandler
    exporter: ExportService
    importer: ImportService

    def __init__(self, ports: Ports) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []

        # Service configuration: (attribute_name, module_path, class_name)
        # Handlers first, the orchestrating services depend on them
        service_configs = [
            ("sources", "configport.core.modules.source.handler", "SourcesHandler"),
            ("proxy_rules", "configport.core.modules.proxy_rule.handler", "ProxyRulesHandler"),
            ("rules", "configport.core.modules.rule.handler", "RulesHandler"),
            ("environments", "configport.core.modules.environment.handler", "EnvironmentsHandler"),
            ("workspace", "configport.core.modules.workspace.handler", "WorkspaceHandler"),
            ("exporter", "configport.core.modules.transfer.export_service", "ExportService"),
            ("importer", "configport.core.modules.transfer.import_service", "ImportService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(ports)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in self._services:
            await service.on_stop()


class Core:
    """Container providing config, ports, the event bus, and all service instances."""

    config: Config
    ports: Ports
    events: EventBus
    services: Services

    def __init__(self, config: Config, ports: Ports | None = None) -> None:
        """Initialize core with config and ports. Without explicit ports they are built from config."""
        self.config = config
        self.mongo_client: AsyncMongoClient[dict[str, Any]] | None = None
        self.database: AsyncDatabase[dict[str, Any]] | None = None
        self.ports = ports if ports is not None else self._create_ports(config)
        self.events = EventBus()
        self.services = Services(self.ports)
        self.services.set_core(self)

    def _create_ports(self, config: Config) -> Ports:
        """MongoDB storage when a database URL is configured, in-memory storage otherwise."""
        from configport.core.adapters import local, memory, mongo  # noqa: PLC0415

        common = {
            "dialogs": local.DirectoryDialogs(config.exports_path),
            "files": local.LocalFileSystem(config.exports_path),
            "notifier": local.LogNotifier(),
        }
        if config.database_url is None:
            return Ports(
                sources=memory.MemorySourceStore(),
                proxy_rules=memory.MemoryProxyRuleStore(),
                storage=memory.MemoryKeyValueStore(),
                environments=memory.MemoryEnvironmentStore(),
                workspaces=memory.MemoryWorkspaceStore(),
                **common,
            )

        self.mongo_client = AsyncMongoClient(config.database_url, uuidRepresentation="standard")
        self.database = database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        return Ports(
            sources=mongo.MongoSourceStore(database),
            proxy_rules=mongo.MongoProxyRuleStore(database),
            storage=mongo.MongoKeyValueStore(database),
            environments=mongo.MongoEnvironmentStore(database),
            workspaces=mongo.MongoWorkspaceStore(database),
            **common,
        )

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        """Create indexes and start all services on application startup."""
        if self.database is not None:
            from configport.core.adapters.mongo import create_indexes  # noqa: PLC0415

            await create_indexes(self.database)
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close MongoDB connection on shutdown."""
        await self.services.stop_all()
        if self.mongo_client is not None:
            await self.mongo_client.aclose()
