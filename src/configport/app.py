from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from configport.config import Config
from configport.core.core import Core
from configport.core.events import Listener
from configport.core.modules.transfer.constants import TransferEvent
from configport.core.modules.transfer.models import (
    ExportOptions,
    ExportReport,
    ImportOptions,
    ImportPreview,
    ImportReport,
    ValidationResult,
)
from configport.core.modules.transfer.validators import validate_import_payload
from configport.core.ports import Ports


class App:
    """Facade for the operations the host application calls, delegates to Core."""

    def __init__(self, config: Config, ports: Ports | None = None) -> None:
        self._core = Core(config, ports)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    def subscribe(self, event: TransferEvent, listener: Listener) -> Callable[[], None]:
        """Register a refresh listener. Returns a callable that removes it."""
        return self._core.events.subscribe(event, listener)

    async def export_config(self, options: ExportOptions | dict[str, Any]) -> ExportReport:
        """Export the selected entity families to one or two JSON files."""
        return await self._core.services.exporter.execute(options)

    def get_export_statistics(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Item counts, size estimate and per-type statistics of an export payload."""
        return self._core.services.exporter.get_export_statistics(payload)

    async def import_config(self, options: ImportOptions | dict[str, Any]) -> ImportReport:
        """Import a payload into the current state in merge or replace mode."""
        return await self._core.services.importer.execute(options)

    async def preview_import(self, options: ImportOptions | dict[str, Any]) -> ImportPreview:
        """Dry-run an import: count new, duplicate and invalid items without writing."""
        return await self._core.services.importer.preview(options)

    def validate_payload(self, payload: Any) -> ValidationResult:
        """Validate an export payload without importing it."""
        return validate_import_payload(payload)

    def get_version(self) -> dict[str, str]:
        """Package version, payload format version, and build information."""
        try:
            package_version = version("configport")
        except PackageNotFoundError:
            package_version = "unknown"
        config = self._core.config
        return {
            "version": package_version,
            "appVersion": config.app_version,
            "dataFormatVersion": config.data_format_version,
            "gitCommitHash": config.git_commit_hash,
            "buildTime": config.build_time,
        }
